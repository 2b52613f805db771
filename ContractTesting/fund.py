# fund.py
#
# Registers the merkle root of an airdrop file and funds its pool with the sum
# of all claim amounts, taken from the operator's balance.
#
# Run:
#   python fund.py [claims_json]

import sys

from merkle_airdrop.config import CLAIMS_JSON_PATH, OPERATOR_ADDRESS, PROGRAM_STATE_PATH
from merkle_airdrop.errors import AirdropError, InputValidationError
from merkle_airdrop.leaf import digest_hex, normalize_recipient
from merkle_airdrop.storage import load_airdrop_json, load_program, save_program

# ---------------------------
# SETTINGS (env overridable, see merkle_airdrop/config.py)
# ---------------------------

STATE_PATH = PROGRAM_STATE_PATH
OPERATOR = OPERATOR_ADDRESS


def main():
    merkle_json_path = sys.argv[1] if len(sys.argv) > 1 else CLAIMS_JSON_PATH

    try:
        operator = normalize_recipient(OPERATOR)
    except InputValidationError as e:
        raise SystemExit(f"AIRDROP_OPERATOR is not a valid address: {e}")

    program = load_program(STATE_PATH)
    try:
        airdrop = load_airdrop_json(merkle_json_path)
    except FileNotFoundError:
        raise SystemExit(f"Claims file not found: {merkle_json_path!r}")
    except AirdropError as e:
        raise SystemExit(f"Cannot use {merkle_json_path}: {e}")

    total_wei = airdrop.total_amount

    print(f"Merkle root: {digest_hex(airdrop.root)}")
    print(f"Claims: {len(airdrop.allocations)}")
    print(f"Total distribution (wei): {total_wei}")
    print(f"Operator: {operator}")
    print(f"Operator balance (wei): {program.balance_of(operator)}")

    if airdrop.root in program.registry:
        raise SystemExit(f"Claims already opened. merkleRoot is already registered: {digest_hex(airdrop.root)}")

    try:
        commitment = program.register_commitment(operator, airdrop.root, total_wei)
    except AirdropError as e:
        raise SystemExit(f"register_commitment failed: {e}")

    save_program(program, STATE_PATH)
    print(f"Holding account: {commitment.holding_account}")
    print("Claims are opened and funded.")


if __name__ == "__main__":
    main()
