import textwrap

import pytest

from replicator.exceptions import SubscriptionParseError, SubscriptionValidationError
from replicator.subscription.manifest_parser import parse_subscription_toml, serialize_subscription_to_toml

FULL_MANIFEST = textwrap.dedent(
    """\
    [subscription]
    namespace = "ocm-system"
    name = "podinfo"
    generation = 4
    component = "github.com/acme/podinfo"
    semver = ">=1.0.0 <2.0.0"
    interval = "10m"
    service_account_name = "replicator"
    sign_destination = true

    [source]
    url = "ghcr.io/acme/components"
    secret_ref = "source-credentials"

    [destination]
    url = "registry.internal:5000/mirror"

    [[verify]]
    name = "acme-release"
    public_key_secret = "acme-public-key"
    """
)

MINIMAL_MANIFEST = textwrap.dedent(
    """\
    [subscription]
    name = "podinfo"
    component = "github.com/acme/podinfo"

    [source]
    url = "ghcr.io/acme/components"
    """
)


class TestManifestParser:
    """Tests for subscription manifest parsing and serialization."""

    def test_parse_full_manifest(self):
        subscription = parse_subscription_toml(FULL_MANIFEST)
        assert str(subscription.id) == "ocm-system/podinfo"
        assert subscription.generation == 4
        spec = subscription.spec
        assert spec.component == "github.com/acme/podinfo"
        assert spec.semver == ">=1.0.0 <2.0.0"
        assert spec.interval == "10m"
        assert spec.service_account_name == "replicator"
        assert spec.sign_destination
        assert spec.source.secret_ref == "source-credentials"
        assert spec.destination is not None
        assert spec.destination.url == "registry.internal:5000/mirror"
        assert [policy.name for policy in spec.verify] == ["acme-release"]

    def test_parse_minimal_manifest(self):
        subscription = parse_subscription_toml(MINIMAL_MANIFEST)
        assert subscription.id.namespace == "default"
        assert subscription.generation == 0
        assert subscription.spec.destination is None
        assert subscription.spec.semver == ""
        assert subscription.spec.verify == []

    def test_invalid_toml_syntax(self):
        with pytest.raises(SubscriptionParseError, match="Invalid TOML syntax"):
            parse_subscription_toml("[subscription\nname = ")

    def test_missing_subscription_table(self):
        with pytest.raises(SubscriptionValidationError, match=r"\[subscription\] table"):
            parse_subscription_toml('[source]\nurl = "ghcr.io/acme"\n')

    def test_unknown_section(self):
        content = MINIMAL_MANIFEST + '\n[schedule]\ncron = "* * * * *"\n'
        with pytest.raises(SubscriptionValidationError, match="Unknown sections.*schedule"):
            parse_subscription_toml(content)

    def test_missing_source(self):
        content = '[subscription]\nname = "podinfo"\ncomponent = "github.com/acme/podinfo"\n'
        with pytest.raises(SubscriptionValidationError, match="validation failed"):
            parse_subscription_toml(content)

    def test_unknown_subscription_key(self):
        content = MINIMAL_MANIFEST.replace('name = "podinfo"', 'name = "podinfo"\nretries = 3')
        with pytest.raises(SubscriptionValidationError):
            parse_subscription_toml(content)

    def test_serialize_then_parse_preserves_subscription(self):
        subscription = parse_subscription_toml(FULL_MANIFEST)
        assert parse_subscription_toml(serialize_subscription_to_toml(subscription)) == subscription

    def test_serialize_minimal_omits_empty_fields(self):
        serialized = serialize_subscription_to_toml(parse_subscription_toml(MINIMAL_MANIFEST))
        assert "[destination]" not in serialized
        assert "semver" not in serialized
        assert "verify" not in serialized
        assert 'namespace = "default"' in serialized
