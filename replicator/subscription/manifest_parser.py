"""Subscription manifests written as TOML.

Example::

    [subscription]
    namespace = "ocm-system"
    name = "podinfo"
    component = "github.com/acme/podinfo"
    semver = ">=1.0.0 <2.0.0"
    interval = "10m"

    [source]
    url = "ghcr.io/acme/components"
    secret_ref = "source-credentials"

    [destination]
    url = "registry.internal:5000/mirror"

    [[verify]]
    name = "acme-release"
    public_key_secret = "acme-public-key"
"""

from typing import Any, cast

import tomlkit
from pydantic import ValidationError

from replicator._utils.toml_utils import TomlError, load_toml_from_content
from replicator.exceptions import SubscriptionParseError, SubscriptionValidationError
from replicator.subscription.models import RepositoryRef, Subscription, SubscriptionID, SubscriptionSpec

_KNOWN_TOP_LEVEL_KEYS = frozenset({"subscription", "source", "destination", "verify"})
_IDENTITY_KEYS = frozenset({"namespace", "name", "generation"})


def _reshape_raw_manifest(raw: dict[str, Any]) -> dict[str, Any]:
    """Flatten the TOML sections into ``Subscription`` constructor keywords."""
    unknown = set(raw.keys()) - _KNOWN_TOP_LEVEL_KEYS
    if unknown:
        msg = f"Unknown sections in subscription manifest: {', '.join(sorted(unknown))}"
        raise SubscriptionValidationError(msg)

    section: Any = raw.get("subscription")
    if not isinstance(section, dict):
        msg = "Subscription manifest must contain a [subscription] table"
        raise SubscriptionValidationError(msg)
    subscription_section = cast("dict[str, Any]", section)

    spec_data: dict[str, Any] = {key: value for key, value in subscription_section.items() if key not in _IDENTITY_KEYS}
    for key in ("source", "destination", "verify"):
        if key in raw:
            spec_data[key] = raw[key]

    return {
        "id": {
            "namespace": subscription_section.get("namespace", "default"),
            "name": subscription_section.get("name"),
        },
        "generation": subscription_section.get("generation", 0),
        "spec": spec_data,
    }


def parse_subscription_toml(content: str) -> Subscription:
    """Parse a subscription manifest into a ``Subscription`` model.

    Args:
        content: The raw TOML string

    Returns:
        A validated Subscription

    Raises:
        SubscriptionParseError: If the TOML syntax is invalid
        SubscriptionValidationError: If the parsed data fails model validation
    """
    try:
        raw = load_toml_from_content(content)
    except TomlError as exc:
        msg = f"Invalid TOML syntax in subscription manifest: {exc}"
        raise SubscriptionParseError(msg) from exc

    reshaped = _reshape_raw_manifest(raw)
    try:
        return Subscription.model_validate(reshaped)
    except ValidationError as exc:
        msg = f"Subscription manifest validation failed: {exc}"
        raise SubscriptionValidationError(msg) from exc


def _repository_table(repository: RepositoryRef) -> Any:
    table = tomlkit.table()
    table.add("url", repository.url)
    if repository.secret_ref is not None:
        table.add("secret_ref", repository.secret_ref)
    return table


def serialize_subscription_to_toml(subscription: Subscription) -> str:
    """Serialize a Subscription back to manifest TOML."""
    spec: SubscriptionSpec = subscription.spec
    subscription_id: SubscriptionID = subscription.id
    doc = tomlkit.document()

    section = tomlkit.table()
    section.add("namespace", subscription_id.namespace)
    section.add("name", subscription_id.name)
    if subscription.generation:
        section.add("generation", subscription.generation)
    section.add("component", spec.component)
    if spec.semver:
        section.add("semver", spec.semver)
    if spec.interval:
        section.add("interval", spec.interval)
    if spec.service_account_name is not None:
        section.add("service_account_name", spec.service_account_name)
    if spec.sign_destination:
        section.add("sign_destination", True)
    doc.add("subscription", section)

    doc.add(tomlkit.nl())
    doc.add("source", _repository_table(spec.source))
    if spec.destination is not None:
        doc.add(tomlkit.nl())
        doc.add("destination", _repository_table(spec.destination))

    if spec.verify:
        verify_array = tomlkit.aot()
        for policy in spec.verify:
            policy_table = tomlkit.table()
            policy_table.add("name", policy.name)
            policy_table.add("public_key_secret", policy.public_key_secret)
            verify_array.append(policy_table)
        doc.add("verify", verify_array)

    return tomlkit.dumps(doc)  # type: ignore[arg-type]
