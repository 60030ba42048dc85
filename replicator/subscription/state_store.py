"""Subscription declarations and their persisted state.

The reconcile driver reads and writes through ``SubscriptionStoreProtocol``.
In a cluster the host backs it with the custom resource and its status
subresource; ``FileStateStore`` keeps states in a TOML file (one table per
subscription, sorted for clean diffs) and ``InMemoryStateStore`` serves tests
and embedding.
"""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, Protocol, cast

import tomlkit
from pydantic import ValidationError
from typing_extensions import runtime_checkable

from replicator._utils.toml_utils import TomlError, load_toml_from_path_if_exists, save_toml_document
from replicator.exceptions import StateStoreError
from replicator.subscription.models import Subscription, SubscriptionID, SubscriptionState

logger = logging.getLogger(__name__)


@runtime_checkable
class SubscriptionStoreProtocol(Protocol):
    """Strongly consistent, per-subscription read/write access."""

    def load_subscription(self, subscription_id: SubscriptionID) -> Subscription | None: ...

    def load_state(self, subscription_id: SubscriptionID) -> SubscriptionState: ...

    def save_state(self, subscription_id: SubscriptionID, state: SubscriptionState) -> None: ...


class InMemoryStateStore:
    """Dict-backed store."""

    def __init__(self, subscriptions: list[Subscription] | None = None) -> None:
        self._subscriptions: dict[SubscriptionID, Subscription] = {}
        self._states: dict[SubscriptionID, SubscriptionState] = {}
        self.save_count = 0
        for subscription in subscriptions or []:
            self.add_subscription(subscription)

    def add_subscription(self, subscription: Subscription, state: SubscriptionState | None = None) -> None:
        self._subscriptions[subscription.id] = subscription
        if state is not None:
            self._states[subscription.id] = state

    def remove_subscription(self, subscription_id: SubscriptionID) -> None:
        self._subscriptions.pop(subscription_id, None)

    def load_subscription(self, subscription_id: SubscriptionID) -> Subscription | None:
        return self._subscriptions.get(subscription_id)

    def load_state(self, subscription_id: SubscriptionID) -> SubscriptionState:
        return self._states.get(subscription_id, SubscriptionState())

    def save_state(self, subscription_id: SubscriptionID, state: SubscriptionState) -> None:
        self._states[subscription_id] = state
        self.save_count += 1


class FileStateStore:
    """Subscriptions held in memory, states persisted to a TOML file.

    The file is re-read on every ``load_state`` and rewritten on every
    ``save_state``; a single process owns the file. Saves are serialized so
    concurrent reconciles of different subscriptions do not drop each other's state.
    """

    def __init__(self, path: Path, subscriptions: list[Subscription] | None = None) -> None:
        self.path = path
        self._subscriptions: dict[SubscriptionID, Subscription] = {sub.id: sub for sub in subscriptions or []}
        self._lock = threading.Lock()

    def load_subscription(self, subscription_id: SubscriptionID) -> Subscription | None:
        return self._subscriptions.get(subscription_id)

    def load_state(self, subscription_id: SubscriptionID) -> SubscriptionState:
        return self.load_all_states().get(str(subscription_id), SubscriptionState())

    def save_state(self, subscription_id: SubscriptionID, state: SubscriptionState) -> None:
        with self._lock:
            states = self.load_all_states()
            states[str(subscription_id)] = state
            try:
                save_toml_document(serialize_states(states), self.path)
            except OSError as exc:
                msg = f"Failed to write state file '{self.path}': {exc}"
                raise StateStoreError(msg) from exc
        logger.debug("Saved state of subscription '%s' to '%s'", subscription_id, self.path)

    def load_all_states(self) -> dict[str, SubscriptionState]:
        """Read every persisted state, keyed by ``namespace/name``.

        Raises:
            StateStoreError: If the file cannot be read or is not a valid state file.
        """
        try:
            raw = load_toml_from_path_if_exists(self.path)
        except TomlError as exc:
            msg = f"Invalid TOML syntax in state file: {exc}"
            raise StateStoreError(msg) from exc
        except OSError as exc:
            msg = f"Failed to read state file '{self.path}': {exc}"
            raise StateStoreError(msg) from exc
        if raw is None:
            return {}
        return parse_states(raw)


def parse_states(raw: dict[str, Any]) -> dict[str, SubscriptionState]:
    """Validate the tables of a state file into ``SubscriptionState`` models.

    Raises:
        StateStoreError: If an entry is not a table or fails validation.
    """
    states: dict[str, SubscriptionState] = {}
    for key, entry in raw.items():
        if not isinstance(entry, dict):
            msg = f"State entry for '{key}' must be a table, got {type(entry).__name__}"
            raise StateStoreError(msg)
        try:
            states[str(key)] = SubscriptionState.model_validate(cast("dict[str, Any]", entry))
        except ValidationError as exc:
            msg = f"Invalid state entry for '{key}': {exc}"
            raise StateStoreError(msg) from exc
    return states


def serialize_states(states: dict[str, SubscriptionState]) -> tomlkit.TOMLDocument:
    """Build a TOML document with one table per subscription, sorted by id."""
    doc = tomlkit.document()
    for key in sorted(states):
        state = states[key]
        table = tomlkit.table()
        table.add("last_attempted_version", state.last_attempted_version)
        table.add("last_applied_version", state.last_applied_version)
        table.add("replicated_repository_url", state.replicated_repository_url)
        table.add("observed_generation", state.observed_generation)
        if state.destination_public_key is not None:
            table.add("destination_public_key", tomlkit.string(state.destination_public_key, multiline=True))
        if state.ready is not None:
            ready_table = tomlkit.table()
            ready_table.add("status", state.ready.status)
            ready_table.add("reason", str(state.ready.reason))
            ready_table.add("message", state.ready.message)
            table.add("ready", ready_table)
        doc.add(key, table)
    return doc
