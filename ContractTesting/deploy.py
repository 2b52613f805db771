# deploy.py
#
# Creates a fresh program state file and credits the operator account with
# the funds it will later commit to airdrops (fund.py).
#
# Run:
#   python deploy.py <operator_funds_wei>

import sys
from pathlib import Path

from merkle_airdrop.config import OPERATOR_ADDRESS, PROGRAM_STATE_PATH
from merkle_airdrop.errors import InputValidationError
from merkle_airdrop.leaf import normalize_recipient
from merkle_airdrop.program import AirdropProgram
from merkle_airdrop.storage import save_program

# ---------------------------
# SETTINGS (env overridable, see merkle_airdrop/config.py)
# ---------------------------

STATE_PATH = PROGRAM_STATE_PATH
OPERATOR = OPERATOR_ADDRESS


def main():
    if len(sys.argv) != 2 or not sys.argv[1].strip().isdigit():
        print("Usage:\n  python deploy.py <operator_funds_wei>", file=sys.stderr)
        raise SystemExit(2)

    funds = int(sys.argv[1].strip())

    if Path(STATE_PATH).exists():
        raise SystemExit(f"{STATE_PATH} already exists; remove it to start over.")

    try:
        operator = normalize_recipient(OPERATOR)
    except InputValidationError as e:
        raise SystemExit(f"AIRDROP_OPERATOR is not a valid address: {e}")

    program = AirdropProgram()
    program.accounts.credit(operator, funds)
    save_program(program, STATE_PATH)

    print(f"Operator: {operator}")
    print(f"Operator balance (wei): {program.balance_of(operator)}")
    print(f"Wrote {STATE_PATH}")


if __name__ == "__main__":
    main()
