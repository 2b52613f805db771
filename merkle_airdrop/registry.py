"""
Persistent records owned by the airdrop program.

- AirdropRegistry  one AirdropCommitment per root, create-only.
- ReceiptLedger    one ClaimReceipt per (root, recipient), create-only. The
                   existence of a receipt is the double-claim guard.
- TokenAccounts    balances by account id, with the single "move N units"
                   operation the program needs.

None of these lock anything themselves: AirdropProgram serializes every
transition that touches them.
"""

from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Tuple

from merkle_airdrop.errors import (
    AlreadyClaimedError,
    AlreadyRegisteredError,
    InsufficientFundsError,
    InvalidAmountError,
    UnknownCommitmentError,
)
from merkle_airdrop.leaf import digest_hex


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------

HOLDING_PREFIX = "airdrop:"


@dataclass(frozen=True)
class AirdropCommitment:
    root: bytes
    pool_amount: int
    authority: str
    holding_account: str


@dataclass(frozen=True)
class ClaimReceipt:
    root: bytes
    recipient: str
    amount_paid: int


def holding_account_for(root: bytes) -> str:
    """Account id of the balance that backs the commitment for `root`."""
    return f"{HOLDING_PREFIX}{digest_hex(root)}"


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

class AirdropRegistry:

    def __init__(self) -> None:
        self._commitments: Dict[bytes, AirdropCommitment] = {}

    def __contains__(self, root: bytes) -> bool:
        return root in self._commitments

    def __len__(self) -> int:
        return len(self._commitments)

    def __iter__(self) -> Iterator[AirdropCommitment]:
        return iter(list(self._commitments.values()))

    def get(self, root: bytes) -> AirdropCommitment:
        try:
            return self._commitments[root]
        except KeyError:
            raise UnknownCommitmentError(f"no airdrop registered for root {digest_hex(root)}") from None

    def add(self, commitment: AirdropCommitment) -> None:
        if commitment.root in self._commitments:
            raise AlreadyRegisteredError(f"root {digest_hex(commitment.root)} is already registered")
        self._commitments[commitment.root] = commitment


# ---------------------------------------------------------------------------
# Receipts
# ---------------------------------------------------------------------------

class ReceiptLedger:

    def __init__(self) -> None:
        self._receipts: Dict[Tuple[bytes, str], ClaimReceipt] = {}

    def __len__(self) -> int:
        return len(self._receipts)

    def __iter__(self) -> Iterator[ClaimReceipt]:
        return iter(list(self._receipts.values()))

    def get(self, root: bytes, recipient: str) -> Optional[ClaimReceipt]:
        return self._receipts.get((root, recipient))

    def exists(self, root: bytes, recipient: str) -> bool:
        return (root, recipient) in self._receipts

    def create(self, receipt: ClaimReceipt) -> None:
        key = (receipt.root, receipt.recipient)
        if key in self._receipts:
            raise AlreadyClaimedError(
                f"{receipt.recipient} already claimed from root {digest_hex(receipt.root)}"
            )
        self._receipts[key] = receipt

    def discard(self, root: bytes, recipient: str) -> None:
        # Only for undoing a receipt whose transition failed before completing.
        self._receipts.pop((root, recipient), None)

    def receipts_for(self, root: bytes) -> List[ClaimReceipt]:
        return [r for (r_root, _), r in self._receipts.items() if r_root == root]


# ---------------------------------------------------------------------------
# Token balances
# ---------------------------------------------------------------------------

class TokenAccounts:
    """Single-asset balances keyed by account id (address or holding account)."""

    def __init__(self) -> None:
        self._balances: Dict[str, int] = {}

    def balance_of(self, account: str) -> int:
        return self._balances.get(account, 0)

    def items(self) -> List[Tuple[str, int]]:
        return sorted(self._balances.items())

    def credit(self, account: str, amount: int) -> None:
        """Add funds from outside the program (stand-in for minting / deposits)."""
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise InvalidAmountError(f"credit amount must be a non-negative integer (got {amount!r})")
        self._balances[account] = self.balance_of(account) + amount

    def transfer(self, src: str, dst: str, amount: int) -> None:
        """Move `amount` from `src` to `dst`; all-or-nothing."""
        if isinstance(amount, bool) or not isinstance(amount, int) or amount < 0:
            raise InvalidAmountError(f"transfer amount must be a non-negative integer (got {amount!r})")

        available = self.balance_of(src)
        if available < amount:
            raise InsufficientFundsError(f"{src} holds {available}, cannot transfer {amount}")

        self._balances[src] = available - amount
        self._balances[dst] = self.balance_of(dst) + amount
