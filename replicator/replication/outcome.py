"""Transient result of one reconciliation pass, and the errors a pass can surface."""

from datetime import timedelta
from typing import Literal

from pydantic import BaseModel, ConfigDict

from replicator._compat import StrEnum
from replicator.exceptions import ReplicatorError
from replicator.subscription.models import ConditionReason


class OutcomeKind(StrEnum):
    NO_MATCHING_VERSION = "no_matching_version"
    ALREADY_UP_TO_DATE = "already_up_to_date"
    TRANSFER_SUCCEEDED = "transfer_succeeded"
    TRANSFER_FAILED = "transfer_failed"
    AUTHENTICATION_FAILED = "authentication_failed"


class NoMatchingVersion(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal[OutcomeKind.NO_MATCHING_VERSION] = OutcomeKind.NO_MATCHING_VERSION
    reason: ConditionReason
    message: str


class AlreadyUpToDate(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal[OutcomeKind.ALREADY_UP_TO_DATE] = OutcomeKind.ALREADY_UP_TO_DATE
    version: str
    regressed: bool = False


class TransferSucceeded(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal[OutcomeKind.TRANSFER_SUCCEEDED] = OutcomeKind.TRANSFER_SUCCEEDED
    version: str
    destination_url: str


class TransferFailed(BaseModel):
    """Any failure after a candidate was chosen: descriptor fetch, verification, transfer, signing or persist."""

    model_config = ConfigDict(frozen=True)

    kind: Literal[OutcomeKind.TRANSFER_FAILED] = OutcomeKind.TRANSFER_FAILED
    version: str
    reason: ConditionReason
    error: str


class AuthenticationFailed(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal[OutcomeKind.AUTHENTICATION_FAILED] = OutcomeKind.AUTHENTICATION_FAILED
    error: str


ReplicationOutcome = NoMatchingVersion | AlreadyUpToDate | TransferSucceeded | TransferFailed | AuthenticationFailed


# ---------------------------------------------------------------------------
# Errors surfaced to the host
# ---------------------------------------------------------------------------


class ReconcileError(ReplicatorError):
    """A pass ended with a failure the host should see. ``__cause__`` holds the underlying error."""

    stage: str = "reconcile"
    reason: ConditionReason = ConditionReason.INVALID_CONFIGURATION

    def __init__(self, message: str = "") -> None:
        super().__init__(f"{self.stage}: {message}" if message else self.stage)


class ConfigurationError(ReconcileError):
    stage = "configure"
    reason = ConditionReason.INVALID_CONFIGURATION


class AuthenticationFailedError(ReconcileError):
    stage = "authenticate"
    reason = ConditionReason.AUTHENTICATION_FAILED


class DescriptorFetchFailedError(ReconcileError):
    stage = "fetch descriptor"
    reason = ConditionReason.COMPONENT_DESCRIPTOR_FETCH_FAILED


class SignatureVerificationFailedError(ReconcileError):
    stage = "verify signatures"
    reason = ConditionReason.SIGNATURE_VERIFICATION_FAILED


class TransferFailedError(ReconcileError):
    stage = "transfer"
    reason = ConditionReason.TRANSFER_FAILED


class SigningFailedError(ReconcileError):
    stage = "sign destination"
    reason = ConditionReason.SIGNING_FAILED


class StatePersistError(ReconcileError):
    stage = "persist state"
    reason = ConditionReason.STATE_PERSIST_FAILED


class ReconcileCancelledError(ReconcileError):
    stage = "cancelled"


class ReconcileResult(BaseModel):
    """What one pass hands back to the host scheduler.

    ``requeue_after`` is the next pass delay (the subscription interval); it
    is ``None`` when the subscription is gone or the pass was cancelled.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    requeue_after: timedelta | None = None
    error: ReconcileError | None = None
    outcome: ReplicationOutcome | None = None

    @property
    def ok(self) -> bool:
        return self.error is None
