"""
The airdrop program: commitment registration and claim verification.

Per root the program moves through

    Unregistered -> Registered -> {ClaimedBy(recipient)}*

Each public transition runs under a single lock, validates everything it can
before touching state, and applies its mutations as one unit. A rejected
request leaves no trace.
"""

import logging
import threading
from typing import Optional, Sequence, Union

from merkle_airdrop.config import MAX_PROOF_LENGTH
from merkle_airdrop.errors import (
    AlreadyClaimedError,
    AlreadyRegisteredError,
    InsufficientFundsError,
    InsufficientPoolError,
    InvalidProofError,
)
from merkle_airdrop.leaf import (
    digest_hex,
    encode_leaf,
    normalize_recipient,
    to_digest,
    validate_amount,
    validate_leaf_index,
)
from merkle_airdrop.registry import (
    AirdropCommitment,
    AirdropRegistry,
    ClaimReceipt,
    ReceiptLedger,
    TokenAccounts,
    holding_account_for,
)
from merkle_airdrop.tree import compute_root

logger = logging.getLogger(__name__)

Digest = Union[bytes, str]


class AirdropProgram:

    def __init__(
        self,
        accounts: Optional[TokenAccounts] = None,
        registry: Optional[AirdropRegistry] = None,
        receipts: Optional[ReceiptLedger] = None,
    ) -> None:
        self.accounts = accounts if accounts is not None else TokenAccounts()
        self.registry = registry if registry is not None else AirdropRegistry()
        self.receipts = receipts if receipts is not None else ReceiptLedger()
        self._lock = threading.Lock()

    # -----------------------------------------------------------------------
    # Transitions
    # -----------------------------------------------------------------------

    def register_commitment(self, authority: str, root: Digest, pool_amount: int) -> AirdropCommitment:
        """
        Register `root` and fund its pool with `pool_amount` from `authority`.

        Raises
        ------
        InvalidRecipientError / InvalidDigestError / InvalidAmountError
            Malformed authority, root or pool amount.
        AlreadyRegisteredError
            A commitment for this root exists; it is left untouched.
        InsufficientFundsError
            The authority cannot cover the pool.
        """
        authority = normalize_recipient(authority)
        root = to_digest(root)
        validate_amount(pool_amount)

        with self._lock:
            if root in self.registry:
                raise AlreadyRegisteredError(f"root {digest_hex(root)} is already registered")

            available = self.accounts.balance_of(authority)
            if available < pool_amount:
                raise InsufficientFundsError(
                    f"{authority} holds {available}, cannot fund a pool of {pool_amount}"
                )

            commitment = AirdropCommitment(
                root=root,
                pool_amount=pool_amount,
                authority=authority,
                holding_account=holding_account_for(root),
            )
            self.accounts.transfer(authority, commitment.holding_account, pool_amount)
            self.registry.add(commitment)

        logger.info("registered airdrop %s pool=%d authority=%s", digest_hex(root), pool_amount, authority)
        return commitment

    def claim(
        self,
        root: Digest,
        recipient: str,
        amount: int,
        leaf_index: int,
        proof: Sequence[Digest],
    ) -> ClaimReceipt:
        """
        Verify a claim against the commitment for `root` and pay it out.

        The leaf is recomputed from (recipient, amount, leaf_index), the proof
        is replayed to the root, and on success a receipt for
        (root, recipient) is created together with the transfer of `amount`
        from the holding account to the recipient.

        Raises
        ------
        InvalidRecipientError / InvalidAmountError / IndexOutOfRangeError / InvalidDigestError
            Malformed input; nothing is looked up.
        UnknownCommitmentError
            No commitment for `root`.
        InvalidProofError
            The proof does not lead to the committed root.
        AlreadyClaimedError
            A receipt for (root, recipient) exists.
        InsufficientPoolError
            The holding balance cannot cover `amount`.
        """
        recipient = normalize_recipient(recipient)
        validate_amount(amount)
        validate_leaf_index(leaf_index)
        root = to_digest(root)
        siblings = _proof_digests(proof)

        with self._lock:
            commitment = self.registry.get(root)

            leaf = encode_leaf(recipient, amount, leaf_index)
            computed = compute_root(leaf, siblings, leaf_index) if siblings is not None else None
            if computed is None or computed != commitment.root:
                logger.warning("rejected claim for %s on %s: invalid proof", recipient, digest_hex(root))
                raise InvalidProofError()

            if self.receipts.exists(root, recipient):
                logger.warning("rejected claim for %s on %s: already claimed", recipient, digest_hex(root))
                raise AlreadyClaimedError(f"{recipient} already claimed from root {digest_hex(root)}")

            holding = self.accounts.balance_of(commitment.holding_account)
            if holding < amount:
                logger.warning(
                    "rejected claim for %s on %s: pool holds %d, claim is %d", recipient, digest_hex(root), holding, amount
                )
                raise InsufficientPoolError(
                    f"airdrop {digest_hex(root)} holds {holding}, cannot pay {amount}"
                )

            receipt = ClaimReceipt(root=root, recipient=recipient, amount_paid=amount)
            self.receipts.create(receipt)
            try:
                self.accounts.transfer(commitment.holding_account, recipient, amount)
            except Exception:
                self.receipts.discard(root, recipient)
                raise

        logger.info("claim paid: %s received %d from %s", recipient, amount, digest_hex(root))
        return receipt

    # -----------------------------------------------------------------------
    # Queries
    # -----------------------------------------------------------------------

    def commitment(self, root: Digest) -> AirdropCommitment:
        return self.registry.get(to_digest(root))

    def holding_balance(self, root: Digest) -> int:
        return self.accounts.balance_of(self.commitment(root).holding_account)

    def total_claimed(self, root: Digest) -> int:
        return sum(r.amount_paid for r in self.receipts.receipts_for(to_digest(root)))

    def is_claimed(self, root: Digest, recipient: str) -> bool:
        return self.receipts.exists(to_digest(root), normalize_recipient(recipient))

    def balance_of(self, account: str) -> int:
        return self.accounts.balance_of(account)


def _proof_digests(proof: Sequence[Digest]):
    """Convert proof entries to bytes; None if the proof is too long or an entry is not a digest."""
    if len(proof) > MAX_PROOF_LENGTH:
        return None
    out = []
    for entry in proof:
        if isinstance(entry, str):
            try:
                entry = to_digest(entry)
            except ValueError:
                return None
        out.append(entry)
    return out
