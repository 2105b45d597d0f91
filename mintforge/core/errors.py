"""Error taxonomy for the upload-and-reconcile pipeline.

Fatal errors (``InvalidConfig``, ``InitializationFailed``, ``SigningFailed``,
``VerificationError``) stop the current pass.  Per-item and per-transaction
errors are recorded on the cache item and downgrade the run result instead
of propagating.
"""

from __future__ import annotations


class MintforgeError(RuntimeError):
    """Base class for every domain error raised by mintforge."""


class InvalidConfig(MintforgeError):
    """Collection-level configuration is unusable (creators, shares, sizes)."""


class EmptyManifest(InvalidConfig):
    """The manifest holds no items, so there is nothing to register."""


class InitializationFailed(MintforgeError):
    """The registry account could not be created on the ledger."""


class TransactionBuildFailed(MintforgeError):
    """A transaction group could not be turned into an instruction."""


class SigningFailed(MintforgeError):
    """The wallet refused or failed to sign a confirmation batch."""


class SubmissionFailed(MintforgeError):
    """A signed transaction was rejected or could not be delivered."""


class ConfirmationTimeout(MintforgeError):
    """Confirmation did not arrive in time and the signature is unknown."""


class VerificationMismatch(MintforgeError):
    """A stored record differs from the cached name or link."""


class VerificationError(MintforgeError):
    """The registry as a whole is not launch-ready."""


class UnderReported(VerificationError):
    """The registry stores fewer lines than the collection declares."""


class OverCapacity(VerificationError):
    """The collection declares more items than the registry can hold."""


class RegistryLayoutError(MintforgeError):
    """The registry account bytes are missing or too short to decode."""


class CacheIntegrityError(MintforgeError):
    """The cache would violate one of its invariants if the change applied."""


def describe(exc: BaseException) -> str:
    """``"ClassName: message"``, the form errors take when stored on an item."""
    return f"{type(exc).__name__}: {exc}"
