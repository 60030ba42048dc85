import re

from pydantic import BaseModel, ConfigDict, Field, field_validator

from replicator._compat import StrEnum

# Repository location: optional http(s) scheme, a host (with a dot, a port, or
# "localhost"), then an optional path, e.g. "ghcr.io/acme/components".
REPOSITORY_URL_PATTERN = re.compile(
    r"^(?:https?://)?"
    r"(?P<host>(?:[a-zA-Z0-9-]+(?:\.[a-zA-Z0-9-]+)+|localhost|[a-zA-Z0-9-]+(?=:))(?::\d{1,5})?)"
    r"(?P<path>/[a-zA-Z0-9._/-]*)?$"
)

# Component name: hostname/path pattern, e.g. "github.com/acme/podinfo"
COMPONENT_NAME_PATTERN = re.compile(r"^[a-zA-Z0-9._-]+\.[a-zA-Z0-9._-]+/[a-zA-Z0-9._/-]+$")

READY_CONDITION_TYPE = "Ready"


def is_valid_repository_url(url: str) -> bool:
    """Check if a repository URL is well-formed (``host[:port][/path]`` with optional http(s) scheme)."""
    return REPOSITORY_URL_PATTERN.match(url) is not None


def is_valid_component_name(name: str) -> bool:
    return COMPONENT_NAME_PATTERN.match(name) is not None


class SubscriptionID(BaseModel):
    """Identity of a subscription: the host serializes passes per identity."""

    model_config = ConfigDict(frozen=True)

    namespace: str
    name: str

    @classmethod
    def parse(cls, value: str) -> "SubscriptionID":
        """Parse ``namespace/name``; a bare name lands in the ``default`` namespace."""
        namespace, separator, name = value.partition("/")
        if not separator:
            return cls(namespace="default", name=namespace)
        return cls(namespace=namespace, name=name)

    def __str__(self) -> str:
        return f"{self.namespace}/{self.name}"


class RepositoryRef(BaseModel):
    """A source or destination repository and the secret holding its credentials."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    url: str
    secret_ref: str | None = None

    @field_validator("url")
    @classmethod
    def validate_url(cls, url: str) -> str:
        stripped = url.strip()
        if not stripped:
            msg = "Repository URL must not be empty."
            raise ValueError(msg)
        return stripped


class SignaturePolicy(BaseModel):
    """A signature that must be present and valid on the source component."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    public_key_secret: str

    @field_validator("name", "public_key_secret")
    @classmethod
    def validate_not_blank(cls, value: str) -> str:
        if not value.strip():
            msg = "Signature name and public key secret must not be empty."
            raise ValueError(msg)
        return value.strip()


class SubscriptionSpec(BaseModel):
    """Desired replication: which component, from where, to where, and which versions."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    component: str
    source: RepositoryRef
    destination: RepositoryRef | None = None
    semver: str = ""
    interval: str = ""
    verify: list[SignaturePolicy] = Field(default_factory=list)
    service_account_name: str | None = None
    sign_destination: bool = False

    @field_validator("component")
    @classmethod
    def validate_component(cls, component: str) -> str:
        if not is_valid_component_name(component):
            msg = f"Invalid component name '{component}'. Must follow hostname/path pattern (e.g. 'github.com/org/component')."
            raise ValueError(msg)
        return component

    @property
    def target_url(self) -> str:
        """Where a replicated version lives: the destination, or the source in replicate-in-place mode."""
        if self.destination is None:
            return self.source.url
        return self.destination.url


class Subscription(BaseModel):
    """A subscription as handed to the reconcile driver by its host."""

    model_config = ConfigDict(frozen=True)

    id: SubscriptionID
    generation: int = 0
    spec: SubscriptionSpec


class ConditionReason(StrEnum):
    REPLICATION_SUCCEEDED = "ReplicationSucceeded"
    ALREADY_UP_TO_DATE = "AlreadyUpToDate"
    NO_VERSIONS_PUBLISHED = "NoVersionsPublished"
    ALL_VERSIONS_UNPARSEABLE = "AllVersionsUnparseable"
    NO_CONSTRAINT_MATCH = "NoConstraintMatch"
    REGISTRY_UNREACHABLE = "RegistryUnreachable"
    AUTHENTICATION_FAILED = "AuthenticationFailed"
    COMPONENT_DESCRIPTOR_FETCH_FAILED = "ComponentDescriptorFetchFailed"
    SIGNATURE_VERIFICATION_FAILED = "SignatureVerificationFailed"
    SIGNING_FAILED = "SigningFailed"
    TRANSFER_FAILED = "TransferFailed"
    INVALID_CONFIGURATION = "InvalidConfiguration"
    STATE_PERSIST_FAILED = "StatePersistFailed"


class ReadyCondition(BaseModel):
    """The user-facing status surface: always reflects the most recent pass."""

    model_config = ConfigDict(frozen=True)

    status: bool
    reason: str
    message: str = ""

    @property
    def type(self) -> str:
        return READY_CONDITION_TYPE


class SubscriptionState(BaseModel):
    """Persisted status of one subscription.

    ``last_attempted_version`` records the newest candidate a pass started to
    replicate, whether or not the transfer succeeded; ``last_applied_version``
    only moves after a transfer completed. Both hold the registry's original
    version strings.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    last_attempted_version: str = ""
    last_applied_version: str = ""
    replicated_repository_url: str = ""
    observed_generation: int = 0
    destination_public_key: str | None = None
    ready: ReadyCondition | None = None

    @property
    def is_ready(self) -> bool:
        return self.ready is not None and self.ready.status
