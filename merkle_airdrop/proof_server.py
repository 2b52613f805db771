"""
Proof service: answers "what can this address claim under this root, and how".

AirdropController loads every airdrop file in a directory once and serves
claims and proofs from memory. `create_app` wraps it in a small Flask app:

    GET /api/airdrop/<root>/<address>
        200 {"claim": {"amount": "200", "leaf_index": 1}, "proof": ["0x..", ...]}
        400 {"error": ...}   malformed root or address
        404 {"error": ...}   unknown root or address

    GET /api/ping
        200 {"message": "pong"}
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from flask import Flask, jsonify

from merkle_airdrop.config import AIRDROP_JSON_DIR, SERVER_PORT
from merkle_airdrop.errors import InputValidationError, UnknownCommitmentError, UnknownRecipientError
from merkle_airdrop.leaf import digest_hex, normalize_recipient, to_digest
from merkle_airdrop.storage import AirdropFile, load_airdrop_json
from merkle_airdrop.tree import Allocation, prove_leaf

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClaimData:
    amount: int
    leaf_index: int
    proof: List[bytes]

    def to_json(self) -> Dict[str, Any]:
        return {
            "claim": {"amount": str(self.amount), "leaf_index": self.leaf_index},
            "proof": [digest_hex(p) for p in self.proof],
        }

    @classmethod
    def from_json(cls, data: Dict[str, Any]) -> "ClaimData":
        claim = data["claim"]
        return cls(
            amount=int(claim["amount"]),
            leaf_index=int(claim["leaf_index"]),
            proof=[to_digest(p) for p in data["proof"]],
        )


class AirdropController:
    """In-memory index of airdrop files keyed by root."""

    def __init__(self, directory: Optional[str] = AIRDROP_JSON_DIR) -> None:
        self.airdrops: Dict[bytes, AirdropFile] = {}
        if directory is not None:
            self.load_directory(directory)

    def load_directory(self, directory: str) -> None:
        path = Path(directory)
        if not path.is_dir():
            raise FileNotFoundError(f"airdrop directory not found: {directory}")

        for fn in sorted(path.glob("*.json")):
            self.add(load_airdrop_json(str(fn)))
            logger.debug("loaded airdrop file %s", fn)

    def add(self, airdrop: AirdropFile) -> None:
        self.airdrops[airdrop.root] = airdrop

    def _airdrop(self, root: Union[bytes, str]) -> AirdropFile:
        key = to_digest(root)
        airdrop = self.airdrops.get(key)
        if airdrop is None:
            raise UnknownCommitmentError(f"Airdrop with merkle root {digest_hex(key)} not found")
        return airdrop

    def get_user_claim(self, root: Union[bytes, str], address: str) -> Allocation:
        return self._airdrop(root).claim_for(address)

    def generate_proof(self, root: Union[bytes, str], leaf_index: int) -> List[bytes]:
        return prove_leaf(self._airdrop(root).tree, leaf_index)

    def lookup_proof(self, root: Union[bytes, str], recipient: str) -> ClaimData:
        """Everything `AirdropProgram.claim` needs for `recipient` under `root`."""
        allocation = self.get_user_claim(root, recipient)
        return ClaimData(
            amount=allocation.amount,
            leaf_index=allocation.index,
            proof=self.generate_proof(root, allocation.index),
        )


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

def create_app(controller: AirdropController) -> Flask:
    app = Flask(__name__)

    @app.route("/api/ping")
    def ping():
        return jsonify({"message": "pong"})

    @app.route("/api/airdrop/<root>/<address>")
    def airdrop_claim(root, address):
        try:
            normalize_recipient(address)
            data = controller.lookup_proof(root, address)
        except InputValidationError as e:
            return {"error": str(e)}, 400
        except (UnknownCommitmentError, UnknownRecipientError) as e:
            return {"error": str(e)}, 404
        return jsonify(data.to_json())

    return app


def main():
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    controller = AirdropController(AIRDROP_JSON_DIR)
    print(f"Loaded {len(controller.airdrops)} airdrop(s) from {AIRDROP_JSON_DIR}")
    create_app(controller).run(port=SERVER_PORT)


if __name__ == "__main__":
    main()
