"""
Error taxonomy for airdrop construction and claiming.

Every failure is a permanent rejection of one request. Input validation errors
are raised before any state is read or written, state conflicts leave the
prior state authoritative, and a rejected claim never has partial effects.
"""


class AirdropError(Exception):
    """Base class for every error raised by this package."""


# ---------------------------------------------------------------------------
# Input validation
# ---------------------------------------------------------------------------

class InputValidationError(AirdropError, ValueError):
    pass


class InvalidRecipientError(InputValidationError):
    pass


class InvalidAmountError(InputValidationError):
    pass


class InvalidDigestError(InputValidationError):
    pass


class IndexOutOfRangeError(InputValidationError):
    pass


class EmptyInputError(InputValidationError):
    pass


# ---------------------------------------------------------------------------
# State conflicts
# ---------------------------------------------------------------------------

class StateConflictError(AirdropError):
    pass


class AlreadyRegisteredError(StateConflictError):
    pass


class AlreadyClaimedError(StateConflictError):
    pass


class UnknownCommitmentError(AirdropError, LookupError):
    pass


class UnknownRecipientError(AirdropError, LookupError):
    pass


# ---------------------------------------------------------------------------
# Proofs
# ---------------------------------------------------------------------------

class InvalidProofError(AirdropError):
    """Raised for any proof that does not lead to the committed root.

    The message is always the same so a caller cannot learn which step of the
    replay went wrong.
    """

    def __init__(self, message: str = "proof does not match the committed root"):
        super().__init__(message)


# ---------------------------------------------------------------------------
# Resources
# ---------------------------------------------------------------------------

class ResourceError(AirdropError):
    pass


class InsufficientPoolError(ResourceError):
    """The commitment's holding balance cannot cover a verified claim."""


class InsufficientFundsError(ResourceError):
    """A plain account cannot cover a transfer (e.g. funding a commitment)."""


# ---------------------------------------------------------------------------
# Files and services
# ---------------------------------------------------------------------------

class CorruptAirdropFileError(AirdropError, ValueError):
    pass


class ClaimServiceError(AirdropError):
    pass
