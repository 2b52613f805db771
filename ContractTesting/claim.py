# claim.py
#
# Claims an address's allocation.
#
# With AIRDROP_SERVER_URL set, the claim data comes from the proof service and
# only the merkle root is needed (argument or AIRDROP_ROOT). Otherwise it is
# read from the local airdrop file.
#
# Run:
#   python claim.py <address> [claims_json]
#   AIRDROP_SERVER_URL=http://... python claim.py <address> [merkle_root]

import sys

from merkle_airdrop.client import fetch_claim_data
from merkle_airdrop.config import AIRDROP_ROOT, CLAIMS_JSON_PATH, PROGRAM_STATE_PATH, SERVER_URL
from merkle_airdrop.errors import AirdropError
from merkle_airdrop.leaf import digest_hex, to_digest
from merkle_airdrop.proof_server import AirdropController
from merkle_airdrop.storage import load_airdrop_json, load_program, save_program

# ---------------------------
# SETTINGS (env overridable, see merkle_airdrop/config.py)
# ---------------------------

STATE_PATH = PROGRAM_STATE_PATH
ROOT = AIRDROP_ROOT


def usage():
    print(
        "Usage:\n"
        "  python claim.py <address> [claims_json]\n"
        "  AIRDROP_SERVER_URL=... python claim.py <address> [merkle_root]",
        file=sys.stderr,
    )
    raise SystemExit(2)


def fetch_from_server(address, root_arg):
    root_hex = root_arg or ROOT
    if not root_hex:
        raise SystemExit("A merkle root is required when AIRDROP_SERVER_URL is set (argument or AIRDROP_ROOT).")
    try:
        root = to_digest(root_hex)
        print(f"Fetching proof from {SERVER_URL}")
        return root, fetch_claim_data(SERVER_URL, root, address)
    except AirdropError as e:
        raise SystemExit(f"Proof lookup failed: {e}")


def read_from_file(address, merkle_json_path):
    try:
        airdrop = load_airdrop_json(merkle_json_path)
        controller = AirdropController(directory=None)
        controller.add(airdrop)
        return airdrop.root, controller.lookup_proof(airdrop.root, address)
    except FileNotFoundError:
        raise SystemExit(f"Claims file not found: {merkle_json_path!r}")
    except AirdropError as e:
        raise SystemExit(f"Proof lookup failed: {e}")


def main():
    if len(sys.argv) not in (2, 3):
        usage()

    address = sys.argv[1]
    extra = sys.argv[2] if len(sys.argv) == 3 else None

    program = load_program(STATE_PATH)
    if SERVER_URL:
        root, claim_data = fetch_from_server(address, extra)
    else:
        root, claim_data = read_from_file(address, extra or CLAIMS_JSON_PATH)

    print(f"Merkle root: {digest_hex(root)}")
    print(f"Claiming address: {address}")
    print(f"Claim amount: {claim_data.amount}")
    print(f"Leaf index: {claim_data.leaf_index}")
    print(f"Proof length: {len(claim_data.proof)} nodes")

    try:
        receipt = program.claim(root, address, claim_data.amount, claim_data.leaf_index, claim_data.proof)
    except AirdropError as e:
        raise SystemExit(f"claim failed: {e}")

    save_program(program, STATE_PATH)
    print(f"Paid {receipt.amount_paid} to {receipt.recipient}")
    print(f"Remaining pool (wei): {program.holding_balance(root)}")


if __name__ == "__main__":
    main()
