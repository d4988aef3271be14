"""
Tests for version selection shared by both repository kinds.
"""
from __future__ import annotations

import pytest

from chartview.errors import ConfigurationError, NotFoundError
from chartview.storage.versions import (
    is_pinned_version,
    parse_constraint,
    parse_version,
    select_version,
    sort_versions,
)

AVAILABLE = ["1.0.0", "1.2.0", "1.2.3", "v1.3.0", "2.0.0", "2.1.0-rc.1", "0.9.0", "not-a-version"]


class TestIsPinnedVersion:

    @pytest.mark.parametrize("value", ["1.2.3", "v1.2.3", "1.0.0-rc.1", "1.0.0+build.5", "0.0.0"])
    def test_pinned(self, value):
        assert is_pinned_version(value)

    @pytest.mark.parametrize("value", ["", "1", "1.2", "1.2.x", ">=1.2.3", "^1.2.3", "~1.2.3", "1.2.3 || 2.0.0", "01.2.3"])
    def test_not_pinned(self, value):
        assert not is_pinned_version(value)


class TestSelectVersion:

    def test_empty_constraint_picks_maximum(self):
        """Prereleases count; unparseable entries are ignored."""
        assert select_version(AVAILABLE, "") == "2.1.0-rc.1"
        assert select_version(["1.0.0", "v1.10.0", "1.9.0"], "") == "v1.10.0"

    def test_exact_version_must_be_listed_verbatim(self):
        assert select_version(AVAILABLE, "v1.3.0") == "v1.3.0"
        with pytest.raises(NotFoundError):
            select_version(AVAILABLE, "1.3.0")
        with pytest.raises(NotFoundError, match="version 9.9.9 not found"):
            select_version(AVAILABLE, "9.9.9", chart="podinfo")

    @pytest.mark.parametrize("constraint,expected", [
        (">=1.0.0", "2.0.0"),
        ("<2.0.0", "v1.3.0"),
        ("~1.2.0", "1.2.3"),
        ("~1.2", "1.2.3"),
        ("^1.0.0", "v1.3.0"),
        ("^0.9", "0.9.0"),
        ("1.2.x", "1.2.3"),
        ("1.x", "v1.3.0"),
        ("*", "2.0.0"),
        (">=1.0.0, <1.2.3", "1.2.0"),
        (">=1.0.0 <1.2.3", "1.2.0"),
        ("1.0.0 - 1.2.0", "1.2.0"),
        ("<1.0.0 || >=1.2.0 <1.3.0", "1.2.3"),
        ("!=2.0.0, >=1.0.0", "v1.3.0"),
        (">1.2, <2", "v1.3.0"),
        ("<=1.2", "1.2.3"),
    ])
    def test_ranges_pick_highest_match(self, constraint, expected):
        assert select_version(AVAILABLE, constraint) == expected

    def test_prerelease_only_matches_when_named(self):
        assert select_version(AVAILABLE, ">=2.0.0") == "2.0.0"
        assert select_version(AVAILABLE, ">=2.1.0-rc.0") == "2.1.0-rc.1"

    def test_no_match(self):
        with pytest.raises(NotFoundError, match="no chart 'podinfo' version matching"):
            select_version(AVAILABLE, ">=5.0.0", chart="podinfo")

    def test_no_valid_versions(self):
        with pytest.raises(NotFoundError, match="no valid versions"):
            select_version(["latest", "main"], "")

    @pytest.mark.parametrize("constraint", [">=", "abc", ">=1.2.3.4.5", "1.2.3 ||", "~> foo", ">=1,,"])
    def test_invalid_constraint(self, constraint):
        with pytest.raises(ConfigurationError):
            select_version(AVAILABLE, constraint)

    def test_deterministic(self):
        shuffled = list(reversed(AVAILABLE))
        assert select_version(AVAILABLE, "^1.0.0") == select_version(shuffled, "^1.0.0")


class TestHelpers:

    def test_parse_version(self):
        assert parse_version("v1.2.3") == parse_version("1.2.3")
        assert parse_version("latest") is None

    def test_build_metadata_ignored_in_ranges(self):
        matcher = parse_constraint("<=1.2.3")
        assert matcher(parse_version("1.2.3+build.1"))

    def test_sort_versions_newest_first(self):
        assert sort_versions(["1.0.0", "latest", "2.0.0", "v1.5.0"]) == ["2.0.0", "v1.5.0", "1.0.0", "latest"]


class TestSemverPrecedence:
    """Versions order by semver rules, not by Python packaging rules."""

    def test_numeric_prerelease_is_below_release(self):
        assert select_version(["1.0.0", "1.0.0-1"], "") == "1.0.0"
        assert parse_version("1.0.0-1") < parse_version("1.0.0")

    def test_numeric_prerelease_excluded_from_plain_range(self):
        assert select_version(["1.0.0", "1.0.1-1"], ">=1.0.0") == "1.0.0"

    def test_alphanumeric_prerelease_is_parsed(self):
        assert select_version(["0.9.0", "1.0.0-SNAPSHOT"], "") == "1.0.0-SNAPSHOT"

    def test_prerelease_identifier_ordering(self):
        ordered = sort_versions(["1.0.0-rc.1", "1.0.0-alpha", "1.0.0-rc.10", "1.0.0-alpha.1", "1.0.0-beta"])
        assert ordered == ["1.0.0-rc.10", "1.0.0-rc.1", "1.0.0-beta", "1.0.0-alpha.1", "1.0.0-alpha"]

    def test_partial_versions_are_not_versions(self):
        assert parse_version("1.2") is None
        assert parse_version("01.2.3") is None
