"""
Settings shared by the library and the operator scripts.

Every value can be overridden from the environment so the scripts never need
to be edited to point at a different state file, claims directory or server.
"""

import os

# ---------------------------
# Hashing
# ---------------------------

DIGEST_SIZE = 32  # keccak-256 output, also the width of the committed root

# Preimage of the padding leaf. Changing it changes every root built from a
# non power-of-two recipient list.
PADDING_SENTINEL = b"merkle-airdrop:padding-leaf"

# A uint256 leaf index never needs a deeper tree.
MAX_PROOF_LENGTH = 256

# ---------------------------
# Files
# ---------------------------

AIRDROP_JSON_DIR = os.environ.get("AIRDROP_JSON_DIR", "airdrop_jsons")
CLAIMS_JSON_PATH = os.environ.get("AIRDROP_CLAIMS_PATH", "claims.json")
PROGRAM_STATE_PATH = os.environ.get("AIRDROP_STATE_PATH", "program_state.json")

# Operator that funds commitments from deploy.py / fund.py.
OPERATOR_ADDRESS = os.environ.get(
    "AIRDROP_OPERATOR", "0x000000000000000000000000000000000000dEaD"
)

# ---------------------------
# Proof service
# ---------------------------

SERVER_URL = os.environ.get("AIRDROP_SERVER_URL", "")
# Root claim.py asks the proof service about when no claims file is given.
AIRDROP_ROOT = os.environ.get("AIRDROP_ROOT", "")
SERVER_PORT = int(os.environ.get("PORT", "5000"))

REQUEST_TIMEOUT = 30  # seconds
RETRY_MAX = 5
RETRY_BACKOFF = 1.6  # exponential backoff factor for retries
