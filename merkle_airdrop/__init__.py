"""Merkle-committed token airdrops: tree construction, proofs and claim verification."""

from merkle_airdrop.leaf import PADDING_LEAF, encode_leaf, hash_pair, normalize_recipient
from merkle_airdrop.tree import (
    Allocation,
    MerkleTree,
    build_tree,
    build_tree_from_allocations,
    compute_root,
    prove_leaf,
    verify_proof,
)
from merkle_airdrop.program import AirdropProgram
from merkle_airdrop.registry import AirdropCommitment, ClaimReceipt

__all__ = [
    "PADDING_LEAF",
    "AirdropCommitment",
    "AirdropProgram",
    "Allocation",
    "ClaimReceipt",
    "MerkleTree",
    "build_tree",
    "build_tree_from_allocations",
    "compute_root",
    "encode_leaf",
    "hash_pair",
    "normalize_recipient",
    "prove_leaf",
    "verify_proof",
]
