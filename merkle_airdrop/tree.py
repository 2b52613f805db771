"""
Commitment tree construction, proof generation and proof replay.

The tree is a flat, 1-indexed array of digests:

    nodes[1]            root
    nodes[2i], [2i+1]   children of nodes[i]
    nodes[w .. 2w-1]    leaves, w = padded leaf width (a power of two)

nodes[0] is unused. Leaf ordinal `i` lives at array index `w + i`. Unused leaf
slots hold PADDING_LEAF so every internal node has exactly two children.

A sibling is found from an array index by parity alone (even -> +1,
odd -> -1) and a parent by integer halving, so neither the builder nor the
verifier needs parent/child pointers.
"""

from concurrent.futures import Executor
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence, Tuple

from merkle_airdrop.config import DIGEST_SIZE, MAX_PROOF_LENGTH
from merkle_airdrop.errors import EmptyInputError, IndexOutOfRangeError, InvalidDigestError
from merkle_airdrop.leaf import PADDING_LEAF, ZERO_DIGEST, encode_leaf, hash_pair


# ---------------------------------------------------------------------------
# Data structures
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Allocation:
    """One recipient's share: ordinal position, checksummed account, amount (base units)."""
    index: int
    account: str
    amount: int

    def leaf(self) -> bytes:
        return encode_leaf(self.account, self.amount, self.index)


@dataclass(frozen=True)
class MerkleTree:
    nodes: Tuple[bytes, ...]
    leaf_count: int
    width: int

    @property
    def root(self) -> bytes:
        return self.nodes[1]

    @property
    def height(self) -> int:
        return self.width.bit_length() - 1

    @property
    def leaves(self) -> Tuple[bytes, ...]:
        return self.nodes[self.width:self.width + self.leaf_count]

    def leaf_array_index(self, leaf_index: int) -> int:
        return self.width + leaf_index


def next_power_of_two(n: int) -> int:
    return 1 << (n - 1).bit_length()


# ---------------------------------------------------------------------------
# Building
# ---------------------------------------------------------------------------

def build_tree(leaves: Sequence[bytes], executor: Optional[Executor] = None) -> MerkleTree:
    """
    Build the commitment tree over `leaves`, in the given order.

    Pads to the next power of two with PADDING_LEAF and hashes bottom-up.
    When `executor` is given each level's pairs are hashed with
    `executor.map`; the result is byte-identical to the serial build.

    Raises EmptyInputError for zero leaves and InvalidDigestError for a leaf
    that is not a 32-byte digest.
    """
    if not leaves:
        raise EmptyInputError("No leaves (empty input).")

    for i, leaf in enumerate(leaves):
        if not isinstance(leaf, (bytes, bytearray)) or len(leaf) != DIGEST_SIZE:
            raise InvalidDigestError(f"leaf {i} is not a {DIGEST_SIZE}-byte digest")

    leaf_count = len(leaves)
    width = next_power_of_two(leaf_count)

    level: List[bytes] = [bytes(leaf) for leaf in leaves]
    level.extend([PADDING_LEAF] * (width - leaf_count))

    nodes: List[bytes] = [ZERO_DIGEST] * (2 * width)
    nodes[width:2 * width] = level

    start = width
    while start > 1:
        lefts = level[0::2]
        rights = level[1::2]
        if executor is None:
            parents = [hash_pair(left, right) for left, right in zip(lefts, rights)]
        else:
            parents = list(executor.map(hash_pair, lefts, rights))

        start //= 2
        nodes[start:2 * start] = parents
        level = parents

    return MerkleTree(nodes=tuple(nodes), leaf_count=leaf_count, width=width)


def build_tree_from_allocations(
    allocations: Iterable[Allocation],
    executor: Optional[Executor] = None,
) -> MerkleTree:
    leaves = [allocation.leaf() for allocation in allocations]
    return build_tree(leaves, executor=executor)


# ---------------------------------------------------------------------------
# Proofs
# ---------------------------------------------------------------------------

def prove_leaf(tree: MerkleTree, leaf_index: int) -> List[bytes]:
    """
    Sibling path for the leaf at ordinal `leaf_index`, leaf-adjacent first.

    The proof always has exactly `tree.height` entries. Padding slots are not
    occupied, so asking for one raises IndexOutOfRangeError.
    """
    if isinstance(leaf_index, bool) or not isinstance(leaf_index, int):
        raise IndexOutOfRangeError(f"leaf index must be an integer (got {leaf_index!r})")
    if not 0 <= leaf_index < tree.leaf_count:
        raise IndexOutOfRangeError(
            f"leaf index {leaf_index} out of range (tree has {tree.leaf_count} leaves)"
        )

    proof: List[bytes] = []
    index = tree.leaf_array_index(leaf_index)

    while index > 1:
        sibling_index = index + 1 if index % 2 == 0 else index - 1
        proof.append(tree.nodes[sibling_index])
        index //= 2

    return proof


def compute_root(leaf: bytes, proof: Sequence[bytes], leaf_index: int) -> Optional[bytes]:
    """
    Replay `proof` from `leaf` and return the resulting root.

    The leaf starts at array index 2**len(proof) + leaf_index. At every step
    the sibling goes on the right when the current index is even and on the
    left when it is odd. Returns None when the walk cannot end at index 1, when
    a proof entry is not a 32-byte digest, or when the proof is longer than
    MAX_PROOF_LENGTH.
    """
    if len(leaf) != DIGEST_SIZE or len(proof) > MAX_PROOF_LENGTH:
        return None

    width = 1 << len(proof)
    if leaf_index < 0 or leaf_index >= width:
        return None

    index = width + leaf_index
    current = bytes(leaf)

    for sibling in proof:
        if not isinstance(sibling, (bytes, bytearray)) or len(sibling) != DIGEST_SIZE:
            return None
        if index % 2 == 0:
            current = hash_pair(current, bytes(sibling))
        else:
            current = hash_pair(bytes(sibling), current)
        index //= 2

    if index != 1:
        return None
    return current


def verify_proof(leaf: bytes, proof: Sequence[bytes], root: bytes, leaf_index: int) -> bool:
    computed = compute_root(leaf, proof, leaf_index)
    return computed is not None and computed == root
