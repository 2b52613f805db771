"""
Leaf encoding for airdrop allocations.

A leaf binds all three fields of an allocation:

    leaf = keccak256(keccak256(abi.encode(uint256 leafIndex, address account, uint256 amount)))

The leaf index is part of the preimage, so a proof for one position can never
be replayed at another position carrying the same (account, amount) pair. The
outer keccak keeps a leaf preimage (32 bytes) from ever colliding with the
64-byte preimage of an internal node.

Internal nodes are positional, not sorted:

    node = keccak256(left || right)

where `left` always sits at the even array index.
"""

from typing import Union

from eth_abi import encode
from eth_utils import (
    decode_hex,
    encode_hex,
    is_checksum_address,
    is_hex,
    is_hex_address,
    keccak,
    remove_0x_prefix,
    to_checksum_address,
)

from merkle_airdrop.config import DIGEST_SIZE, PADDING_SENTINEL
from merkle_airdrop.errors import (
    IndexOutOfRangeError,
    InvalidAmountError,
    InvalidDigestError,
    InvalidRecipientError,
)

UINT256_MAX = 2 ** 256 - 1

LEAF_ENCODING = ["uint256", "address", "uint256"]

PADDING_LEAF = keccak(PADDING_SENTINEL)

ZERO_DIGEST = b"\x00" * DIGEST_SIZE


def normalize_recipient(recipient: str) -> str:
    """
    Return the EIP-55 checksum form of `recipient` or raise InvalidRecipientError.

    All-lowercase and all-uppercase hex is accepted as is. Mixed case must
    carry a valid checksum.
    """
    if not isinstance(recipient, str):
        raise InvalidRecipientError(f"not a valid address: {recipient!r}")

    value = recipient.strip()
    if not value.startswith(("0x", "0X")) or not is_hex_address(value):
        raise InvalidRecipientError(f"not a valid address: {recipient!r}")

    body = value[2:]
    if body != body.lower() and body != body.upper() and not is_checksum_address("0x" + body):
        raise InvalidRecipientError(f"bad EIP-55 checksum: {recipient!r}")
    return to_checksum_address("0x" + body)


def validate_amount(amount: int) -> int:
    if isinstance(amount, bool) or not isinstance(amount, int):
        raise InvalidAmountError(f"amount must be an integer (got {amount!r})")
    if amount <= 0:
        raise InvalidAmountError(f"amount must be positive (got {amount})")
    if amount > UINT256_MAX:
        raise InvalidAmountError(f"amount does not fit in uint256 (got {amount})")
    return amount


def validate_leaf_index(leaf_index: int) -> int:
    if isinstance(leaf_index, bool) or not isinstance(leaf_index, int):
        raise IndexOutOfRangeError(f"leaf index must be an integer (got {leaf_index!r})")
    if leaf_index < 0 or leaf_index > UINT256_MAX:
        raise IndexOutOfRangeError(f"leaf index out of range: {leaf_index}")
    return leaf_index


def encode_leaf(recipient: str, amount: int, leaf_index: int) -> bytes:
    """
    Encode one allocation into its 32-byte leaf digest.

    Raises InvalidRecipientError, InvalidAmountError or IndexOutOfRangeError
    for input that is not a valid allocation.
    """
    account = normalize_recipient(recipient)
    validate_amount(amount)
    validate_leaf_index(leaf_index)

    inner = keccak(encode(LEAF_ENCODING, [leaf_index, account, amount]))
    return keccak(inner)


def hash_pair(left: bytes, right: bytes) -> bytes:
    return keccak(left + right)


def to_digest(value: Union[bytes, bytearray, str]) -> bytes:
    """Accept a raw 32-byte digest or its hex form (with or without 0x)."""
    if isinstance(value, (bytes, bytearray)):
        digest = bytes(value)
    elif isinstance(value, str):
        body = remove_0x_prefix(value.strip())
        if len(body) != DIGEST_SIZE * 2 or not is_hex(body):
            raise InvalidDigestError(f"not a {DIGEST_SIZE}-byte hex digest: {value!r}")
        digest = decode_hex(body)
    else:
        raise InvalidDigestError(f"unsupported digest type: {type(value).__name__}")

    if len(digest) != DIGEST_SIZE:
        raise InvalidDigestError(f"digest must be {DIGEST_SIZE} bytes (got {len(digest)})")
    return digest


def digest_hex(digest: bytes) -> str:
    return encode_hex(digest)
