class ReplicatorError(Exception):
    """Base exception for all component replication errors."""

    def __init__(self, message: str = "") -> None:
        self.message = message
        super().__init__(message)


class DurationError(ReplicatorError):
    """Raised when a Go-style duration string cannot be parsed."""


class SubscriptionError(ReplicatorError):
    pass


class SubscriptionParseError(SubscriptionError):
    pass


class SubscriptionValidationError(SubscriptionError):
    pass


class StateStoreError(ReplicatorError):
    """Raised when persisted subscription state cannot be read or written."""


# ── Collaborator failures ───────────────────────────────────────────
# Raised by implementations of ComponentClientProtocol. The driver wraps
# them in a stage-specific ReconcileError; it never retries them itself.


class CollaboratorError(ReplicatorError):
    """Base class for failures reported by the registry/transfer/signing collaborator."""


class CredentialNotFoundError(CollaboratorError):
    pass


class PermissionDeniedError(CollaboratorError):
    pass


class RegistryUnreachableError(CollaboratorError):
    """The registry could not be reached or answered with a server error."""


class ComponentNotFoundError(CollaboratorError):
    pass


class CorruptDescriptorError(CollaboratorError):
    pass


class SignatureVerificationError(CollaboratorError):
    """Base class for signature verification mismatches."""


class KeyNotFoundError(SignatureVerificationError):
    pass


class DigestMismatchError(SignatureVerificationError):
    pass


class SignatureNameAbsentError(SignatureVerificationError):
    pass


class SigningError(CollaboratorError):
    pass


class TransferError(CollaboratorError):
    """Base class for transfer failures."""


class PartialTransferError(TransferError):
    pass


class DestinationUnreachableError(TransferError):
    pass


class OverwriteConflictError(TransferError):
    pass
