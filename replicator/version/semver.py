# pyright: reportUnknownMemberType=false, reportUnknownVariableType=false, reportUnknownParameterType=false, reportUnknownArgumentType=false
"""Thin typed wrapper around semantic_version for component version selection.

Provides permissive parsing of registry version strings into an ordered,
de-duplicated ``VersionSet``, parsing of range constraints, and selection of
the highest version satisfying a constraint.

Note: semantic_version has no type stubs, so Pyright unknown-type checks are
disabled at file level for this wrapper module.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from functools import total_ordering
from typing import NamedTuple

from semantic_version import SimpleSpec, Version  # type: ignore[import-untyped]

from replicator.exceptions import ReplicatorError


class SemVerError(ReplicatorError):
    """Raised for semver parse failures."""


@total_ordering
class ComponentVersion:
    """A parsed version that remembers the exact string the registry published.

    Two instances are equal, and ordered, by semantic-version precedence only:
    ``v1.0.0`` equals ``1.0.0`` and build metadata is ignored. The original
    string is kept so it can be written back to status and handed to the
    registry unchanged.
    """

    __slots__ = ("original", "semver")

    def __init__(self, semver: Version, original: str) -> None:
        self.semver = semver
        self.original = original

    @property
    def precedence_key(self) -> tuple[int, int, int, tuple[str, ...]]:
        return (self.semver.major, self.semver.minor, self.semver.patch, tuple(self.semver.prerelease))

    @property
    def is_prerelease(self) -> bool:
        return bool(self.semver.prerelease)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ComponentVersion):
            return NotImplemented
        return self.precedence_key == other.precedence_key

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, ComponentVersion):
            return NotImplemented
        if self.precedence_key == other.precedence_key:
            return False
        result: bool = self.semver < other.semver
        return result

    def __hash__(self) -> int:
        return hash(self.precedence_key)

    def __str__(self) -> str:
        return self.original

    def __repr__(self) -> str:
        return f"ComponentVersion({self.original!r})"

    @property
    def normalized(self) -> str:
        """The canonical semver rendering, without any cosmetic prefix."""
        return str(self.semver)


BASELINE_VERSION = ComponentVersion(Version("0.0.0"), "0.0.0")


def parse_version(version_str: str) -> ComponentVersion:
    """Parse a registry version string into a ComponentVersion.

    Strips a single leading 'v' prefix if present (common in OCI tags like v1.2.3).

    Args:
        version_str: The version string to parse (e.g. "1.2.3" or "v1.2.3").

    Returns:
        The parsed version, keeping ``version_str`` (minus surrounding whitespace) as its original form.

    Raises:
        SemVerError: If the version string is not valid semver.
    """
    original = version_str.strip()
    cleaned = original
    if cleaned[:1] in {"v", "V"}:
        cleaned = cleaned[1:]
    if not cleaned:
        msg = f"Invalid semver version: {version_str!r}"
        raise SemVerError(msg)
    try:
        return ComponentVersion(Version(cleaned), original)
    except ValueError as exc:
        msg = f"Invalid semver version: {version_str!r}"
        raise SemVerError(msg) from exc


# ---------------------------------------------------------------------------
# Version sets
# ---------------------------------------------------------------------------


class VersionParseWarning(NamedTuple):
    raw: str
    message: str


class VersionSet:
    """An immutable collection of versions, unique by semver precedence.

    Iteration order is insertion order, which carries no meaning: callers that
    need "the latest" must use :meth:`latest` or :meth:`sorted_descending`.
    """

    def __init__(self, versions: Iterable[ComponentVersion] = ()) -> None:
        unique: dict[tuple[int, int, int, tuple[str, ...]], ComponentVersion] = {}
        for version in versions:
            # First seen wins, e.g. "v1.0.0" then "1.0.0" keeps "v1.0.0".
            unique.setdefault(version.precedence_key, version)
        self._versions: tuple[ComponentVersion, ...] = tuple(unique.values())

    def __iter__(self) -> Iterator[ComponentVersion]:
        return iter(self._versions)

    def __len__(self) -> int:
        return len(self._versions)

    def __contains__(self, item: object) -> bool:
        return item in self._versions

    def __repr__(self) -> str:
        return f"VersionSet([{', '.join(repr(version.original) for version in self._versions)}])"

    def sorted_descending(self) -> list[ComponentVersion]:
        return sorted(self._versions, reverse=True)

    def latest(self) -> ComponentVersion | None:
        if not self._versions:
            return None
        return max(self._versions)


def build_version_set(raw_strings: Iterable[str]) -> tuple[VersionSet, list[VersionParseWarning]]:
    """Parse every raw string, keeping the good ones and reporting the rest.

    An unparseable entry never aborts the build; it is returned as a warning
    so the caller can log it.

    Args:
        raw_strings: Version strings as listed by the registry.

    Returns:
        Tuple of ``(version_set, warnings)``.
    """
    parsed: list[ComponentVersion] = []
    warnings: list[VersionParseWarning] = []
    for raw in raw_strings:
        try:
            parsed.append(parse_version(raw))
        except SemVerError as exc:
            warnings.append(VersionParseWarning(raw=raw, message=exc.message))
    return VersionSet(parsed), warnings


# ---------------------------------------------------------------------------
# Constraints
# ---------------------------------------------------------------------------

_OPERATOR_ONLY = re.compile(r"^(==|=|!=|<=|>=|<|>|\^|~>|~)$")
_CLAUSE_PATTERN = re.compile(r"^(?P<op>==|=|!=|<=|>=|<|>|\^|~>|~)?[vV]?(?P<version>[0-9xX*].*)$")
_WILDCARD_SEGMENT = re.compile(r"(?<=\.)[xX](?=\.|$)|^[xX](?=\.|$)")
_PRERELEASE_CORE = re.compile(r"^(?P<major>\d+)\.(?P<minor>\d+)\.(?P<patch>\d+)-")


class _ClauseGroup(NamedTuple):
    """One ``||`` alternative: its SimpleSpec, and the release cores its clauses name a prerelease of."""

    spec: SimpleSpec
    prerelease_cores: frozenset[tuple[int, int, int]]


class Constraint:
    """A parsed range expression: OR-groups (``||``) of AND-ed clauses.

    Accepts the notation users write in subscriptions: whitespace or commas
    between AND clauses, an optional ``v`` after the operator, and ``x``
    wildcards. An empty expression (or ``*``) matches every version.

    A prerelease only satisfies a group when one of the group's clauses names
    a prerelease of the same ``major.minor.patch``: ``>=1.0.0`` never selects
    ``1.1.0-rc.1``, while ``>=1.1.0-rc.1`` does.
    """

    def __init__(self, expression: str, groups: list[_ClauseGroup]) -> None:
        self.expression = expression
        self._groups = groups

    @property
    def matches_everything(self) -> bool:
        return not self._groups

    def match(self, version: ComponentVersion) -> bool:
        if not self._groups:
            return True
        for group in self._groups:
            if version.is_prerelease and version.precedence_key[:3] not in group.prerelease_cores:
                continue
            if group.spec.match(version.semver):
                return True
        return False

    def __str__(self) -> str:
        return self.expression or "*"

    def __repr__(self) -> str:
        return f"Constraint({self.expression!r})"


def _normalize_group(group: str, expression: str) -> tuple[str, frozenset[tuple[int, int, int]]]:
    """Turn one ``||`` alternative into SimpleSpec syntax (comma-joined clauses).

    Returns:
        The SimpleSpec expression and the release cores of any prerelease clauses.
    """
    tokens = group.replace(",", " ").split()

    # Re-attach operators written with a space, e.g. ">= 1.0.0"
    merged: list[str] = []
    pending_operator = ""
    for token in tokens:
        if _OPERATOR_ONLY.match(token):
            if pending_operator:
                msg = f"Invalid semver constraint: {expression!r}"
                raise SemVerError(msg)
            pending_operator = token
            continue
        merged.append(pending_operator + token)
        pending_operator = ""
    if pending_operator or not merged:
        msg = f"Invalid semver constraint: {expression!r}"
        raise SemVerError(msg)

    clauses: list[str] = []
    prerelease_cores: set[tuple[int, int, int]] = set()
    for token in merged:
        clause_match = _CLAUSE_PATTERN.match(token)
        if clause_match is None:
            msg = f"Invalid semver constraint: {expression!r}"
            raise SemVerError(msg)
        operator = clause_match.group("op") or "=="
        if operator == "~>":
            operator = "~"
        elif operator == "=":
            operator = "=="
        version_part = _WILDCARD_SEGMENT.sub("*", clause_match.group("version"))
        if version_part.startswith("*"):
            clauses.append("*")
            continue
        core_match = _PRERELEASE_CORE.match(version_part)
        if core_match is not None:
            prerelease_cores.add((int(core_match.group("major")), int(core_match.group("minor")), int(core_match.group("patch"))))
        clauses.append(f"{operator}{version_part}")
    return ",".join(clauses), frozenset(prerelease_cores)


def parse_constraint(constraint_str: str | None) -> Constraint:
    """Parse a constraint string into a Constraint.

    Args:
        constraint_str: The constraint to parse (e.g. ">=1.0.0 <2.0.0", "=v1.2.3", "^1.2 || ^2.0").
            ``None``, an empty string and ``*`` all mean "any version".

    Returns:
        The parsed Constraint.

    Raises:
        SemVerError: If the constraint string is not valid.
    """
    expression = (constraint_str or "").strip()
    if expression in {"", "*"}:
        return Constraint(expression, [])

    groups: list[_ClauseGroup] = []
    for group in expression.split("||"):
        normalized, prerelease_cores = _normalize_group(group, expression)
        try:
            groups.append(_ClauseGroup(SimpleSpec(normalized), prerelease_cores))
        except ValueError as exc:
            msg = f"Invalid semver constraint: {expression!r}"
            raise SemVerError(msg) from exc
    return Constraint(expression, groups)


def version_satisfies(version: ComponentVersion, constraint: Constraint) -> bool:
    """Check whether a version satisfies a constraint."""
    return constraint.match(version)


def select_best(versions: VersionSet, constraint: Constraint) -> ComponentVersion | None:
    """Select the highest version that satisfies a constraint.

    Args:
        versions: The candidate versions.
        constraint: The constraint to satisfy. A match-everything constraint selects the global maximum.

    Returns:
        The maximum matching version, or None if no version matches.
    """
    for version in versions.sorted_descending():
        if constraint.match(version):
            return version
    return None
