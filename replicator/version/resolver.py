"""Resolution of the version a subscription should replicate next.

Lists the versions a source repository publishes for a component (one registry
call, no internal retry), drops strings that are not semver, and selects the
highest version matching the subscription's constraint.
"""

import logging
from typing import Any

from replicator.exceptions import ReplicatorError
from replicator.replication.protocol import ComponentClientProtocol
from replicator.version.semver import ComponentVersion, Constraint, build_version_set, select_best

logger = logging.getLogger(__name__)


class ResolveError(ReplicatorError):
    """Raised when no version can be selected for a subscription."""

    is_expected: bool = True


class NoVersionsPublishedError(ResolveError):
    """The listing succeeded but the component has no versions."""


class AllVersionsUnparseableError(ResolveError):
    """Versions were listed but none of them is valid semver."""


class NoConstraintMatchError(ResolveError):
    """Valid versions exist but none satisfies the constraint."""


class RegistryUnreachableResolveError(ResolveError):
    """The version listing itself failed. Still retried on the normal interval, but reported prominently."""

    is_expected = False


def resolve_latest(
    client: ComponentClientProtocol,
    context: Any,
    source_url: str,
    component: str,
    constraint: Constraint,
) -> ComponentVersion:
    """Select the highest published version of a component that satisfies a constraint.

    Args:
        client: The registry collaborator.
        context: The authenticated context returned by the collaborator.
        source_url: The source repository URL.
        component: The component name, e.g. ``github.com/acme/podinfo``.
        constraint: The parsed constraint to satisfy.

    Returns:
        The selected version, carrying the registry's original string.

    Raises:
        NoVersionsPublishedError: If the component has no versions.
        AllVersionsUnparseableError: If no listed version is valid semver.
        NoConstraintMatchError: If no valid version satisfies the constraint.
        RegistryUnreachableResolveError: If listing versions failed.
    """
    try:
        raw_versions = client.list_versions(context, source_url, component)
    except Exception as exc:
        msg = f"Failed to list versions of '{component}' in '{source_url}': {exc}"
        raise RegistryUnreachableResolveError(msg) from exc

    if not raw_versions:
        msg = f"No versions found for component '{component}' in '{source_url}'"
        raise NoVersionsPublishedError(msg)

    version_set, warnings = build_version_set(raw_versions)
    for warning in warnings:
        logger.warning("Skipping invalid version '%s' of component '%s': %s", warning.raw, component, warning.message)

    if not version_set:
        msg = f"None of the {len(raw_versions)} versions of component '{component}' is valid semver"
        raise AllVersionsUnparseableError(msg)

    selected = select_best(version_set, constraint)
    if selected is None:
        available_str = ", ".join(version.original for version in version_set.sorted_descending())
        msg = f"No version of '{component}' satisfying '{constraint}' found among: {available_str}"
        raise NoConstraintMatchError(msg)

    logger.debug("Resolved component '%s' to version '%s' (constraint '%s')", component, selected, constraint)
    return selected
