"""
Tests for path safety utilities.
"""
import pytest

from chartview.path_safety import safe_relpath, strip_chart_root


class TestSafeRelpath:
    """Test safe_relpath validation."""

    @pytest.mark.parametrize("path,expected", [
        ("values.yaml", "values.yaml"),
        ("./values.yaml", "values.yaml"),
        ("templates/deployment.yaml", "templates/deployment.yaml"),
        ("templates//service.yaml", "templates/service.yaml"),
    ])
    def test_valid_paths(self, path, expected):
        assert safe_relpath(path) == expected

    @pytest.mark.parametrize("path", [
        "",
        ".",
        "/etc/passwd",
        "../secrets.txt",
        "templates/../../x",
        "templates\\deployment.yaml",
    ])
    def test_unsafe_paths(self, path):
        with pytest.raises(ValueError, match="unsafe path"):
            safe_relpath(path)


class TestStripChartRoot:
    """Test removal of the chart directory prefix."""

    def test_strips_first_component(self):
        assert strip_chart_root("podinfo/templates/deployment.yaml") == "templates/deployment.yaml"

    def test_member_at_archive_root(self):
        with pytest.raises(ValueError, match="outside chart directory"):
            strip_chart_root("Chart.yaml")

    def test_unsafe_member(self):
        with pytest.raises(ValueError, match="unsafe path"):
            strip_chart_root("podinfo/../../etc/passwd")
