"""
Semantic version selection for chart repositories.

One selection rule serves both repository kinds:
- empty constraint: the highest parsed version among all entries
- exact version (e.g. "v1.2.3", "1.0.0-rc.1"): must be listed verbatim
- anything else is a semver range; the highest satisfying version wins

Range syntax follows the constraint dialect Helm users write: comparison
operators, tilde and caret ranges, x/X/* wildcards, hyphen ranges, "," or
whitespace for AND and "||" for OR. Prerelease versions only satisfy a
range whose comparators themselves name a prerelease.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import semver

from ..errors import ConfigurationError, NotFoundError

__all__ = [
    "parse_version",
    "is_pinned_version",
    "parse_constraint",
    "select_version",
    "sort_versions",
]

# Fully pinned semantic version, optional leading "v"
_PINNED_RE = re.compile(
    r"^v?(0|[1-9]\d*)\.(0|[1-9]\d*)\.(0|[1-9]\d*)"
    r"(?:-([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+([0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

_HYPHEN_RE = re.compile(r"(\S+)\s+-\s+(\S+)")
_COMPARATOR_RE = re.compile(
    r"(!=|>=|=>|<=|=<|~>|>|<|=|~|\^)?\s*([vV]?[0-9xX*][0-9A-Za-z.+\-xX*]*)"
)

_WILDCARDS = ("x", "X", "*")

Version = semver.Version

Matcher = Callable[[Version], bool]


def parse_version(v: str) -> Optional[Version]:
    """
    Parse a semantic version, returning None on failure.

    A leading "v" is accepted. Ordering follows semver precedence: "1.0.0-1"
    is a prerelease of 1.0.0 and build metadata never affects comparison.
    """
    text = v.strip()
    if text.startswith(("v", "V")):
        text = text[1:]
    try:
        return Version.parse(text)
    except (TypeError, ValueError):
        return None


def is_pinned_version(constraint: str) -> bool:
    """
    Return True if constraint names exactly one semantic version.

    Examples:
        >>> is_pinned_version("v1.2.3")
        True
        >>> is_pinned_version("1.2")
        False
        >>> is_pinned_version(">=1.2.3")
        False
    """
    return bool(_PINNED_RE.match(constraint.strip()))


@dataclass(frozen=True)
class _Partial:
    """A possibly incomplete version from a constraint: 1, 1.2, 1.2.x, 1.2.3-rc.1."""
    major: Optional[int]
    minor: Optional[int]
    patch: Optional[int]
    prerelease: str = ""

    @property
    def wildcard(self) -> bool:
        return self.patch is None

    def floor(self) -> Version:
        text = f"{self.major or 0}.{self.minor or 0}.{self.patch or 0}"
        if self.prerelease and not self.wildcard:
            text = f"{text}-{self.prerelease}"
        return _version_or_error(text)

    def exact(self) -> Version:
        return self.floor()

    def bump(self) -> Version:
        """Smallest version above everything this partial covers."""
        if self.minor is None:
            return Version.parse(f"{(self.major or 0) + 1}.0.0")
        if self.patch is None:
            return Version.parse(f"{self.major}.{self.minor + 1}.0")
        return Version.parse(f"{self.major}.{self.minor}.{self.patch + 1}")


def _version_or_error(text: str) -> Version:
    try:
        return Version.parse(text)
    except ValueError as e:
        raise ConfigurationError(f"invalid version in constraint: {text}") from e


def _parse_partial(text: str) -> _Partial:
    text = text.lstrip("vV")
    text = text.split("+", 1)[0]
    core, _, prerelease = text.partition("-")
    pieces = core.split(".")
    if not core or len(pieces) > 3:
        raise ConfigurationError(f"invalid version in constraint: {text}")

    parts: List[Optional[int]] = []
    seen_wildcard = False
    for piece in pieces:
        if piece in _WILDCARDS or seen_wildcard:
            seen_wildcard = True
            parts.append(None)
        elif piece.isdigit():
            parts.append(int(piece))
        else:
            raise ConfigurationError(f"invalid version in constraint: {text}")
    while len(parts) < 3:
        parts.append(None)

    return _Partial(parts[0], parts[1], parts[2], prerelease)


def _comparator(op: str, p: _Partial) -> Matcher:
    if p.major is None:
        # "*", "x": every version matches, except under negation
        return (lambda v: False) if op == "!=" else (lambda v: True)

    if op in ("", "="):
        if p.wildcard:
            lo, hi = p.floor(), p.bump()
            return lambda v: lo <= v < hi
        target = p.exact()
        return lambda v: v == target
    if op == "!=":
        inner = _comparator("=", p)
        return lambda v: not inner(v)
    if op == ">":
        if p.wildcard:
            bound = p.bump()
            return lambda v: v >= bound
        target = p.exact()
        return lambda v: v > target
    if op in (">=", "=>"):
        bound = p.floor()
        return lambda v: v >= bound
    if op == "<":
        bound = p.floor()
        return lambda v: v < bound
    if op in ("<=", "=<"):
        if p.wildcard:
            bound = p.bump()
            return lambda v: v < bound
        target = p.exact()
        return lambda v: v <= target
    if op in ("~", "~>"):
        lo = p.floor()
        if p.minor is None:
            hi = Version.parse(f"{p.major + 1}.0.0")
        else:
            hi = Version.parse(f"{p.major}.{p.minor + 1}.0")
        return lambda v: lo <= v < hi
    if op == "^":
        lo = p.floor()
        if p.major > 0 or p.minor is None:
            hi = Version.parse(f"{p.major + 1}.0.0")
        elif p.minor > 0 or p.patch is None:
            hi = Version.parse(f"0.{p.minor + 1}.0")
        else:
            hi = Version.parse(f"0.0.{p.patch + 1}")
        return lambda v: lo <= v < hi
    raise ConfigurationError(f"unsupported operator in constraint: {op}")


def _parse_group(text: str) -> Tuple[List[Matcher], bool]:
    """Parse one AND group; returns matchers and whether a prerelease is named."""
    text = _HYPHEN_RE.sub(r">=\1, <=\2", text)
    matchers: List[Matcher] = []
    allows_prerelease = False
    for piece in text.split(","):
        piece = piece.strip()
        if not piece:
            raise ConfigurationError(f"empty comparator in constraint: {text}")
        pos = 0
        for m in _COMPARATOR_RE.finditer(piece):
            if piece[pos:m.start()].strip():
                raise ConfigurationError(f"invalid constraint: {piece}")
            pos = m.end()
            partial = _parse_partial(m.group(2))
            if partial.prerelease:
                allows_prerelease = True
            matchers.append(_comparator(m.group(1) or "", partial))
        if piece[pos:].strip() or pos == 0:
            raise ConfigurationError(f"invalid constraint: {piece}")
    return matchers, allows_prerelease


def parse_constraint(constraint: str) -> Matcher:
    """
    Compile a semver range into a predicate over parsed versions.

    Raises:
        ConfigurationError: If the constraint cannot be parsed
    """
    groups = []
    for group in constraint.split("||"):
        group = group.strip()
        if not group:
            raise ConfigurationError(f"invalid constraint: {constraint!r}")
        groups.append(_parse_group(group))

    def matches(v: Version) -> bool:
        for matchers, allows_prerelease in groups:
            if v.prerelease and not allows_prerelease:
                continue
            if all(m(v) for m in matchers):
                return True
        return False

    return matches


def _parsed(available: Iterable[str]) -> List[Tuple[Version, str]]:
    out = []
    for raw in available:
        v = parse_version(raw)
        if v is not None:
            out.append((v, raw))
    return out


def select_version(available: Sequence[str], constraint: str, *, chart: str = "") -> str:
    """
    Pick the concrete version for a constraint.

    Args:
        available: Versions (or tags) listed by the repository
        constraint: "" for latest, an exact version, or a semver range
        chart: Chart name for error messages

    Returns:
        The matching entry, verbatim as listed

    Raises:
        NotFoundError: If nothing matches
        ConfigurationError: If the constraint cannot be parsed
    """
    constraint = constraint.strip()
    label = f"chart {chart!r}" if chart else "chart"

    if not constraint:
        candidates = _parsed(available)
        if not candidates:
            raise NotFoundError(f"no valid versions found for {label}")
        return max(candidates)[1]

    if is_pinned_version(constraint):
        if constraint in available:
            return constraint
        raise NotFoundError(f"{label} version {constraint} not found")

    matcher = parse_constraint(constraint)
    candidates = [(v, raw) for v, raw in _parsed(available) if matcher(v)]
    if not candidates:
        raise NotFoundError(f"no {label} version matching {constraint!r}")
    return max(candidates)[1]


def sort_versions(available: Iterable[str]) -> List[str]:
    """Newest first; unparseable entries keep their order at the end."""
    available = list(available)
    parsed = sorted(_parsed(available), reverse=True)
    ordered = [raw for _, raw in parsed]
    seen = set(ordered)
    return ordered + [raw for raw in available if raw not in seen]
