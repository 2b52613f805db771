"""
JSON persistence for airdrop trees and program state.

Airdrop file
============
Written once per airdrop by GenerateClaims.py and read back by the proof
service and the operator scripts. It carries enough to regenerate any proof
without rebuilding from the source CSV:

    {
      "merkleRoot":   "0x..",
      "unit":         "wei",
      "leafEncoding": ["uint256", "address", "uint256"],
      "leafHash":     "...",
      "nodeHash":     "...",
      "paddingLeaf":  "0x..",
      "tree":         ["0x..", ...],        flat array, tree[1] is the root
      "leaves":       [{"index", "account", "amount"}, ...],
      "claims":       {account: {"index", "amount", "proof", ["csv"]}},
      "stats":        {...}
    }

Amounts and indices are decimal strings so no JSON consumer rounds them.

Loading rebuilds the tree from "leaves" and refuses the file if the stored
tree or root disagree with it.

Program state
=============
A snapshot of balances, commitments and receipts, used by the scripts under
ContractTesting/ in place of a chain's persistent accounts.
"""

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from merkle_airdrop.errors import CorruptAirdropFileError, InputValidationError, UnknownRecipientError
from merkle_airdrop.leaf import (
    LEAF_ENCODING,
    PADDING_LEAF,
    digest_hex,
    normalize_recipient,
    to_digest,
    validate_amount,
)
from merkle_airdrop.program import AirdropProgram
from merkle_airdrop.registry import HOLDING_PREFIX, AirdropCommitment, ClaimReceipt, holding_account_for
from merkle_airdrop.tree import Allocation, MerkleTree, build_tree_from_allocations, prove_leaf

LEAF_HASH_DESCRIPTION = "keccak256(keccak256(abi.encode(leafIndex, account, amount)))"
NODE_HASH_DESCRIPTION = "keccak256(left || right)  // positional, left = even array index"


# ---------------------------------------------------------------------------
# Airdrop file
# ---------------------------------------------------------------------------

@dataclass
class AirdropFile:
    root: bytes
    tree: MerkleTree
    allocations: List[Allocation]
    by_account: Dict[str, Allocation] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not self.by_account:
            self.by_account = {a.account: a for a in self.allocations}

    @property
    def total_amount(self) -> int:
        return sum(a.amount for a in self.allocations)

    def claim_for(self, account: str) -> Allocation:
        try:
            key = normalize_recipient(account)
        except InputValidationError:
            raise UnknownRecipientError(f"{account!r} is not in airdrop {digest_hex(self.root)}") from None

        allocation = self.by_account.get(key)
        if allocation is None:
            raise UnknownRecipientError(f"{key} is not in airdrop {digest_hex(self.root)}")
        return allocation

    def proof_for(self, account: str) -> List[bytes]:
        return prove_leaf(self.tree, self.claim_for(account).index)


def dump_airdrop(
    tree: MerkleTree,
    allocations: Sequence[Allocation],
    metadata: Optional[Mapping[str, Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Serialize a built tree and the allocations it was built from."""
    claims: Dict[str, Any] = {}
    for a in allocations:
        claim_obj: Dict[str, Any] = {
            "index": str(a.index),
            "amount": str(a.amount),
            "proof": [digest_hex(p) for p in prove_leaf(tree, a.index)],
        }
        if metadata and a.account in metadata:
            claim_obj["csv"] = metadata[a.account]
        claims[a.account] = claim_obj

    return {
        "merkleRoot": digest_hex(tree.root),
        "unit": "wei",
        "leafEncoding": LEAF_ENCODING,
        "leafHash": LEAF_HASH_DESCRIPTION,
        "nodeHash": NODE_HASH_DESCRIPTION,
        "paddingLeaf": digest_hex(PADDING_LEAF),
        "tree": [digest_hex(node) for node in tree.nodes],
        "leaves": [
            {"index": str(a.index), "account": a.account, "amount": str(a.amount)}
            for a in allocations
        ],
        "claims": claims,
        "stats": {
            "leafCount": tree.leaf_count,
            "treeWidth": tree.width,
            "treeHeight": tree.height,
            "totalAmount": str(sum(a.amount for a in allocations)),
        },
    }


def write_airdrop_json(
    path: str,
    tree: MerkleTree,
    allocations: Sequence[Allocation],
    metadata: Optional[Mapping[str, Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    out = dump_airdrop(tree, allocations, metadata)
    with open(path, "w", encoding="utf-8") as f:
        json.dump(out, f, indent=2)
    return out


def parse_airdrop(data: Mapping[str, Any]) -> AirdropFile:
    """
    Rebuild an AirdropFile from its JSON form.

    Raises CorruptAirdropFileError when fields are missing or malformed, when
    leaf indices are not 0..n-1 in order, or when the stored tree/root do not
    match the tree rebuilt from the leaf list.
    """
    try:
        stored_root = to_digest(data["merkleRoot"])
        stored_nodes = [to_digest(node) for node in data["tree"]]
        allocations = [
            Allocation(
                index=int(entry["index"]),
                account=normalize_recipient(entry["account"]),
                amount=int(entry["amount"]),
            )
            for entry in data["leaves"]
        ]
    except (KeyError, TypeError, ValueError) as e:
        raise CorruptAirdropFileError(f"malformed airdrop data: {e}") from e

    for position, a in enumerate(allocations):
        if a.index != position:
            raise CorruptAirdropFileError(
                f"leaf {position} carries index {a.index}; indices must be 0..n-1 in order"
            )

    try:
        tree = build_tree_from_allocations(allocations)
    except InputValidationError as e:
        raise CorruptAirdropFileError(f"invalid leaf in airdrop data: {e}") from e

    if tree.root != stored_root:
        raise CorruptAirdropFileError(
            f"stored root {digest_hex(stored_root)} does not match leaves (rebuilt {digest_hex(tree.root)})"
        )
    if tuple(stored_nodes) != tree.nodes:
        raise CorruptAirdropFileError("stored tree does not match the tree rebuilt from leaves")

    return AirdropFile(root=tree.root, tree=tree, allocations=allocations)


def load_airdrop_json(path: str) -> AirdropFile:
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise CorruptAirdropFileError(f"{path} is not valid JSON: {e}") from e
    return parse_airdrop(data)


# ---------------------------------------------------------------------------
# Program state
# ---------------------------------------------------------------------------

def dump_program(program: AirdropProgram) -> Dict[str, Any]:
    return {
        "accounts": {account: str(balance) for account, balance in program.accounts.items()},
        "commitments": [
            {
                "root": digest_hex(c.root),
                "poolAmount": str(c.pool_amount),
                "authority": c.authority,
                "holdingAccount": c.holding_account,
            }
            for c in program.registry
        ],
        "receipts": [
            {
                "root": digest_hex(r.root),
                "recipient": r.recipient,
                "amountPaid": str(r.amount_paid),
            }
            for r in program.receipts
        ],
    }


def _state_account(account: str) -> str:
    # holding accounts are keyed by root, everything else is an address
    if isinstance(account, str) and account.startswith(HOLDING_PREFIX):
        return holding_account_for(to_digest(account[len(HOLDING_PREFIX):]))
    return normalize_recipient(account)


def restore_program(data: Mapping[str, Any]) -> AirdropProgram:
    """
    Rebuild a program from `dump_program` output.

    Addresses are normalized on the way in, so a hand-edited file cannot
    introduce a second spelling of a recipient that dodges its receipt.
    Malformed entries raise the matching InputValidationError.
    """
    program = AirdropProgram()
    for account, balance in data.get("accounts", {}).items():
        program.accounts.credit(_state_account(account), int(balance))

    for c in data.get("commitments", []):
        root = to_digest(c["root"])
        program.registry.add(AirdropCommitment(
            root=root,
            pool_amount=validate_amount(int(c["poolAmount"])),
            authority=normalize_recipient(c["authority"]),
            holding_account=holding_account_for(root),
        ))

    for r in data.get("receipts", []):
        program.receipts.create(ClaimReceipt(
            root=to_digest(r["root"]),
            recipient=normalize_recipient(r["recipient"]),
            amount_paid=validate_amount(int(r["amountPaid"])),
        ))

    return program


def save_program(program: AirdropProgram, path: str) -> None:
    Path(path).write_text(json.dumps(dump_program(program), indent=2), encoding="utf-8")


def load_program(path: str) -> AirdropProgram:
    return restore_program(json.loads(Path(path).read_text(encoding="utf-8")))
