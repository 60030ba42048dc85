"""Replication decision: compare a resolved candidate with what is already applied.

Pure functions only. The decision is monotonic: a candidate is replicated
only when it is strictly newer than the last applied version, so the
subscription never downgrades and re-running a pass is idempotent.

Conceptual states, implied by ``SubscriptionState`` rather than stored:

- uninitialized: nothing applied yet, compared against the ``0.0.0`` baseline
- up to date: candidate equals the applied version
- stale: candidate is newer, the only state that proceeds
- regressed: candidate is older (constraint narrowed, or upstream withdrew a tag)
"""

import logging

from pydantic import BaseModel, ConfigDict

from replicator._compat import StrEnum
from replicator.subscription.models import SubscriptionState
from replicator.version.semver import BASELINE_VERSION, ComponentVersion, SemVerError, parse_version

logger = logging.getLogger(__name__)


class ReplicationAction(StrEnum):
    SKIP_UP_TO_DATE = "skip_up_to_date"
    PROCEED = "proceed"


class ReplicationDecision(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    action: ReplicationAction
    candidate: ComponentVersion
    baseline: ComponentVersion
    regressed: bool = False

    @property
    def should_proceed(self) -> bool:
        return self.action == ReplicationAction.PROCEED


def applied_baseline(state: SubscriptionState) -> ComponentVersion:
    """Return the last applied version, or the ``0.0.0`` baseline.

    An unparseable persisted value means the status was tampered with or
    written by a bug; replication continues from the baseline rather than halting.
    """
    if not state.last_applied_version:
        return BASELINE_VERSION
    try:
        return parse_version(state.last_applied_version)
    except SemVerError:
        logger.error(
            "Persisted last applied version '%s' is not valid semver; comparing against baseline %s instead",
            state.last_applied_version,
            BASELINE_VERSION,
        )
        return BASELINE_VERSION


def decide(candidate: ComponentVersion, state: SubscriptionState) -> ReplicationDecision:
    """Decide whether ``candidate`` should be replicated.

    Args:
        candidate: The version selected by the resolver.
        state: The persisted subscription state.

    Returns:
        ``PROCEED`` when the candidate is strictly newer than the applied
        version, ``SKIP_UP_TO_DATE`` otherwise (equal or older).
    """
    baseline = applied_baseline(state)
    if candidate > baseline:
        return ReplicationDecision(action=ReplicationAction.PROCEED, candidate=candidate, baseline=baseline)
    return ReplicationDecision(
        action=ReplicationAction.SKIP_UP_TO_DATE,
        candidate=candidate,
        baseline=baseline,
        regressed=candidate < baseline,
    )


def state_before_transfer(state: SubscriptionState, candidate: ComponentVersion) -> SubscriptionState:
    """Record ``candidate`` as attempted, before the transfer starts.

    The attempted version never moves backwards: if a newer candidate was
    already attempted (and failed), it stays recorded.
    """
    if state.last_attempted_version:
        try:
            previous = parse_version(state.last_attempted_version)
        except SemVerError:
            logger.error("Persisted last attempted version '%s' is not valid semver; overwriting it", state.last_attempted_version)
        else:
            if previous > candidate:
                return state
    return state.model_copy(update={"last_attempted_version": candidate.original})


def state_after_transfer(state: SubscriptionState, candidate: ComponentVersion, replicated_url: str) -> SubscriptionState:
    """Record ``candidate`` as applied at ``replicated_url`` after a successful transfer."""
    attempted = state_before_transfer(state, candidate)
    return attempted.model_copy(
        update={
            "last_applied_version": candidate.original,
            "replicated_repository_url": replicated_url,
        }
    )
