"""Reconcile driver: one stateless pass over one subscription.

A pass authenticates, resolves the newest matching version, decides whether
it is newer than what is applied, and if so fetches, verifies, transfers and
optionally signs it. It is the only layer that turns outcomes into persisted
status and the Ready condition. It never retries a collaborator call: the
host scheduler re-invokes ``reconcile_once`` after ``requeue_after`` (or with
its own backoff when an error is returned), and serializes passes per
subscription, so no locking happens here.
"""

import logging
from datetime import timedelta
from threading import Event
from typing import Any

from replicator._utils.duration_utils import parse_duration
from replicator.config.settings import ReplicatorSettings
from replicator.exceptions import DurationError, StateStoreError
from replicator.replication.decision import decide, state_after_transfer, state_before_transfer
from replicator.replication.outcome import (
    AlreadyUpToDate,
    AuthenticationFailed,
    AuthenticationFailedError,
    ConfigurationError,
    DescriptorFetchFailedError,
    NoMatchingVersion,
    ReconcileCancelledError,
    ReconcileError,
    ReconcileResult,
    ReplicationOutcome,
    SignatureVerificationFailedError,
    SigningFailedError,
    StatePersistError,
    TransferFailed,
    TransferFailedError,
    TransferSucceeded,
)
from replicator.replication.protocol import ComponentClientProtocol, ComponentDescriptorHandle
from replicator.subscription.models import (
    ConditionReason,
    ReadyCondition,
    Subscription,
    SubscriptionID,
    SubscriptionSpec,
    SubscriptionState,
    is_valid_repository_url,
)
from replicator.subscription.state_store import SubscriptionStoreProtocol
from replicator.version.resolver import (
    AllVersionsUnparseableError,
    NoConstraintMatchError,
    NoVersionsPublishedError,
    ResolveError,
    resolve_latest,
)
from replicator.version.semver import ComponentVersion, Constraint, SemVerError, parse_constraint

logger = logging.getLogger(__name__)


def _resolve_reason(error: ResolveError) -> ConditionReason:
    if isinstance(error, NoVersionsPublishedError):
        return ConditionReason.NO_VERSIONS_PUBLISHED
    if isinstance(error, AllVersionsUnparseableError):
        return ConditionReason.ALL_VERSIONS_UNPARSEABLE
    if isinstance(error, NoConstraintMatchError):
        return ConditionReason.NO_CONSTRAINT_MATCH
    return ConditionReason.REGISTRY_UNREACHABLE


def _raise_if_cancelled(cancel_event: Event | None, stage: str) -> None:
    if cancel_event is not None and cancel_event.is_set():
        msg = f"pass interrupted before {stage}"
        raise ReconcileCancelledError(msg)


class ReconcileDriver:
    """Runs reconciliation passes against a collaborator and a state store."""

    def __init__(
        self,
        client: ComponentClientProtocol,
        store: SubscriptionStoreProtocol,
        settings: ReplicatorSettings | None = None,
    ):
        self._client = client
        self._store = store
        self._settings = settings or ReplicatorSettings()

    def reconcile_once(self, subscription_id: SubscriptionID, cancel_event: Event | None = None) -> ReconcileResult:
        """Run one pass for a subscription.

        Args:
            subscription_id: The subscription to reconcile.
            cancel_event: Set by the host to abort the pass. Nothing is persisted after
                cancellation, except the attempted version already written before a transfer.

        Returns:
            The next requeue delay and, when the pass failed, the error to surface.
        """
        try:
            subscription = self._store.load_subscription(subscription_id)
            if subscription is None:
                logger.info("Subscription '%s' no longer exists, nothing to reconcile", subscription_id)
                return ReconcileResult()
            state = self._store.load_state(subscription_id)
        except StateStoreError as exc:
            error = StatePersistError(f"failed to load subscription '{subscription_id}': {exc}")
            error.__cause__ = exc
            logger.error("%s", error)
            return ReconcileResult(requeue_after=self._settings.default_interval, error=error)

        logger.debug("Starting reconcile pass for subscription '%s'", subscription_id)
        try:
            return self._reconcile(subscription, state, cancel_event)
        except ReconcileCancelledError as exc:
            logger.info("Reconcile pass for subscription '%s' cancelled: %s", subscription_id, exc)
            return ReconcileResult(error=exc)
        except StatePersistError as exc:
            logger.error("%s", exc)
            return ReconcileResult(requeue_after=self._requeue_hint(subscription.spec), error=exc)

    # ── Stages ──────────────────────────────────────────────────────

    def _reconcile(self, subscription: Subscription, state: SubscriptionState, cancel_event: Event | None) -> ReconcileResult:
        spec = subscription.spec

        try:
            interval = self._interval_for(spec)
        except ConfigurationError as exc:
            return self._fail(subscription, state, exc, self._settings.default_interval, cancel_event)

        try:
            constraint = self._validate_configuration(spec)
        except ConfigurationError as exc:
            return self._fail(subscription, state, exc, interval, cancel_event)

        # 1. authenticate
        _raise_if_cancelled(cancel_event, "authentication")
        try:
            context = self._client.create_authenticated_context(
                subscription, cancel_event, insecure_http=self._settings.insecure_http
            )
        except Exception as exc:
            _raise_if_cancelled(cancel_event, "authentication failure handling")
            error = AuthenticationFailedError(f"failed to configure credentials for '{subscription.id}': {exc}")
            error.__cause__ = exc
            return self._fail(subscription, state, error, interval, cancel_event, AuthenticationFailed(error=str(error)))

        # 2. resolve
        _raise_if_cancelled(cancel_event, "version resolution")
        try:
            candidate = resolve_latest(self._client, context, spec.source.url, spec.component, constraint)
        except ResolveError as exc:
            _raise_if_cancelled(cancel_event, "resolution failure handling")
            return self._still_searching(subscription, state, exc, interval, cancel_event)

        # 3. decide
        decision = decide(candidate, state)
        if not decision.should_proceed:
            if decision.regressed:
                logger.warning(
                    "Subscription '%s': newest matching version %s is older than applied version %s; not downgrading",
                    subscription.id,
                    candidate,
                    state.last_applied_version,
                )
            else:
                logger.info("Subscription '%s' is up to date at version %s", subscription.id, candidate)
            condition = ReadyCondition(
                status=True,
                reason=ConditionReason.ALREADY_UP_TO_DATE,
                message=f"Version {state.last_applied_version or candidate} is replicated",
            )
            self._persist(subscription, state, condition, cancel_event)
            outcome = AlreadyUpToDate(version=candidate.original, regressed=decision.regressed)
            return ReconcileResult(requeue_after=interval, outcome=outcome)

        # 4. proceed
        return self._replicate(subscription, state, context, candidate, interval, cancel_event)

    def _replicate(
        self,
        subscription: Subscription,
        state: SubscriptionState,
        context: Any,
        candidate: ComponentVersion,
        interval: timedelta,
        cancel_event: Event | None,
    ) -> ReconcileResult:
        spec = subscription.spec
        logger.info("Subscription '%s': replicating version %s of '%s'", subscription.id, candidate, spec.component)

        # Written before the transfer so an interrupted pass leaves a trace of what it tried.
        attempted_state = state_before_transfer(state, candidate)
        _raise_if_cancelled(cancel_event, "recording the attempted version")
        self._save(subscription.id, attempted_state)

        try:
            public_key = self._transfer_candidate(context, spec, candidate, cancel_event)
        except ReconcileCancelledError:
            raise
        except ReconcileError as exc:
            _raise_if_cancelled(cancel_event, f"{exc.stage} failure handling")
            outcome = TransferFailed(version=candidate.original, reason=exc.reason, error=str(exc))
            return self._fail(subscription, attempted_state, exc, interval, cancel_event, outcome)

        applied_state = state_after_transfer(attempted_state, candidate, spec.target_url)
        if public_key is not None:
            applied_state = applied_state.model_copy(update={"destination_public_key": public_key})
        condition = ReadyCondition(
            status=True,
            reason=ConditionReason.REPLICATION_SUCCEEDED,
            message=f"Version {candidate} replicated to {spec.target_url}",
        )
        self._persist(subscription, applied_state, condition, cancel_event)
        logger.info("Subscription '%s': version %s replicated to '%s'", subscription.id, candidate, spec.target_url)
        return ReconcileResult(
            requeue_after=interval,
            outcome=TransferSucceeded(version=candidate.original, destination_url=spec.target_url),
        )

    def _transfer_candidate(
        self,
        context: Any,
        spec: SubscriptionSpec,
        candidate: ComponentVersion,
        cancel_event: Event | None,
    ) -> str | None:
        """Fetch, verify, transfer and sign one version. Returns the destination public key when signing."""
        _raise_if_cancelled(cancel_event, "descriptor fetch")
        try:
            descriptor = self._client.get_component_descriptor(context, spec.source.url, spec.component, candidate.original)
        except Exception as exc:
            error = DescriptorFetchFailedError(f"failed to get component version {candidate} of '{spec.component}': {exc}")
            raise error from exc

        try:
            if spec.verify:
                self._verify(context, spec, descriptor, cancel_event)

            if spec.destination is None:
                logger.info("No destination configured for '%s'; version %s stays in place", spec.component, candidate)
                return None

            _raise_if_cancelled(cancel_event, "transfer")
            try:
                self._client.transfer_component(context, descriptor, spec.destination.url)
            except Exception as exc:
                error = TransferFailedError(f"failed to transfer {candidate} to '{spec.destination.url}': {exc}")
                raise error from exc

            if not spec.sign_destination:
                return None

            _raise_if_cancelled(cancel_event, "signing")
            try:
                public_key = self._client.sign_destination_component(context, descriptor)
            except Exception as exc:
                error = SigningFailedError(f"failed to sign {candidate} in '{spec.destination.url}': {exc}")
                raise error from exc
            return public_key.decode("utf-8", errors="replace")
        finally:
            self._close_descriptor(descriptor)

    def _verify(
        self,
        context: Any,
        spec: SubscriptionSpec,
        descriptor: ComponentDescriptorHandle,
        cancel_event: Event | None,
    ) -> None:
        _raise_if_cancelled(cancel_event, "signature verification")
        policy_names = ", ".join(policy.name for policy in spec.verify)
        try:
            verified = self._client.verify_signatures(context, descriptor, list(spec.verify))
        except Exception as exc:
            error = SignatureVerificationFailedError(f"failed to verify signatures [{policy_names}]: {exc}")
            raise error from exc
        if not verified:
            msg = f"signatures [{policy_names}] did not verify"
            raise SignatureVerificationFailedError(msg)
        logger.debug("Component '%s' verified with signatures [%s]", spec.component, policy_names)

    # ── Helpers ─────────────────────────────────────────────────────

    def _interval_for(self, spec: SubscriptionSpec) -> timedelta:
        if not spec.interval:
            return self._settings.default_interval
        try:
            return parse_duration(spec.interval)
        except DurationError as exc:
            error = ConfigurationError(f"failed to parse interval: {exc}")
            raise error from exc

    def _requeue_hint(self, spec: SubscriptionSpec) -> timedelta:
        try:
            return self._interval_for(spec)
        except ConfigurationError:
            return self._settings.default_interval

    def _validate_configuration(self, spec: SubscriptionSpec) -> Constraint:
        if not is_valid_repository_url(spec.source.url):
            msg = f"malformed source repository URL '{spec.source.url}'"
            raise ConfigurationError(msg)
        if spec.destination is not None and not is_valid_repository_url(spec.destination.url):
            msg = f"malformed destination repository URL '{spec.destination.url}'"
            raise ConfigurationError(msg)
        try:
            return parse_constraint(spec.semver)
        except SemVerError as exc:
            error = ConfigurationError(f"failed to parse semver constraint: {exc}")
            raise error from exc

    def _close_descriptor(self, descriptor: ComponentDescriptorHandle) -> None:
        try:
            descriptor.close()
        except Exception as exc:
            logger.warning("Failed to close component descriptor %s:%s: %s", descriptor.name, descriptor.version, exc)

    def _still_searching(
        self,
        subscription: Subscription,
        state: SubscriptionState,
        error: ResolveError,
        interval: timedelta,
        cancel_event: Event | None,
    ) -> ReconcileResult:
        reason = _resolve_reason(error)
        if error.is_expected:
            logger.info("Subscription '%s' is waiting for a matching version: %s", subscription.id, error)
        else:
            logger.error("Subscription '%s': %s", subscription.id, error)
        condition = ReadyCondition(status=False, reason=reason, message=str(error))
        self._persist(subscription, state, condition, cancel_event)
        return ReconcileResult(requeue_after=interval, outcome=NoMatchingVersion(reason=reason, message=str(error)))

    def _fail(
        self,
        subscription: Subscription,
        state: SubscriptionState,
        error: ReconcileError,
        interval: timedelta,
        cancel_event: Event | None,
        outcome: ReplicationOutcome | None = None,
    ) -> ReconcileResult:
        logger.error("Reconcile of subscription '%s' failed: %s", subscription.id, error)
        condition = ReadyCondition(status=False, reason=error.reason, message=str(error))
        try:
            self._persist(subscription, state, condition, cancel_event)
        except StatePersistError as persist_error:
            logger.error("%s", persist_error)
        return ReconcileResult(requeue_after=interval, error=error, outcome=outcome)

    def _persist(
        self,
        subscription: Subscription,
        state: SubscriptionState,
        condition: ReadyCondition,
        cancel_event: Event | None,
    ) -> None:
        _raise_if_cancelled(cancel_event, "persisting status")
        final_state = state.model_copy(update={"ready": condition, "observed_generation": subscription.generation})
        self._save(subscription.id, final_state)

    def _save(self, subscription_id: SubscriptionID, state: SubscriptionState) -> None:
        try:
            self._store.save_state(subscription_id, state)
        except StateStoreError as exc:
            error = StatePersistError(f"failed to save status of '{subscription_id}': {exc}")
            raise error from exc
