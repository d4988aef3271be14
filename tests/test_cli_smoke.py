"""
CLI smoke tests with a fake registry.

Tests command wiring and exit codes without real repositories: the CLI
context is patched to hand out the fake-backed chart service.
"""
from __future__ import annotations

from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from chartview.cli import app
from chartview.cli_context import CLIContext
from chartview.freshness import FreshnessResult
from chartview.settings import Settings

OCI_URL = "oci://ghcr.io/stefanprodan/charts"


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def context(service):
    ctx = CLIContext(settings=Settings(listen_port=8123))
    ctx._service = service
    with patch("chartview.cli.CLIContext.from_env", return_value=ctx):
        yield ctx


class TestCLISmokeTests:
    """Smoke tests for CLI commands."""

    def test_get_file(self, runner, context):
        result = runner.invoke(app, ["get-file", OCI_URL, "podinfo", "values.yaml", "--version", "6.5.0"])
        assert result.exit_code == 0
        assert "replicaCount: 1" in result.stdout

    def test_get_file_as_json(self, runner, context):
        result = runner.invoke(app, ["get-file", OCI_URL, "podinfo", "values.yaml", "--format", "json"])
        assert result.exit_code == 0
        assert '"replicaCount": 1' in result.stdout

    def test_get_missing_file_exits_1(self, runner, context):
        result = runner.invoke(app, ["get-file", OCI_URL, "podinfo", "nope.yaml"])
        assert result.exit_code == 1

    def test_files(self, runner, context):
        result = runner.invoke(app, ["files", OCI_URL, "podinfo", "--version", "~6.4"])
        assert result.exit_code == 0
        assert result.stdout.splitlines() == ["Chart.yaml", "templates/deployment.yaml", "values.yaml"]

    def test_versions(self, runner, context):
        result = runner.invoke(app, ["versions", OCI_URL, "podinfo"])
        assert result.exit_code == 0
        assert result.stdout.splitlines() == ["7.0.0-rc.1", "6.5.0", "6.4.0"]

    def test_charts_on_oci_exits_2(self, runner, context):
        result = runner.invoke(app, ["charts", OCI_URL])
        assert result.exit_code == 2

    def test_bad_constraint_exits_2(self, runner, context):
        result = runner.invoke(app, ["files", OCI_URL, "podinfo", "--version", ">=nope"])
        assert result.exit_code == 2

    def test_set_flags(self, runner):
        result = runner.invoke(app, ["set-flags", "image.tag=1.2.3", "replicaCount=2"])
        assert result.exit_code == 0
        assert "--set image.tag=1.2.3" in result.stdout
        assert "--set replicaCount=2" in result.stdout

    def test_set_flags_rejects_malformed_pair(self, runner):
        result = runner.invoke(app, ["set-flags", "novalue"])
        assert result.exit_code == 2

    def test_set_flags_rejects_line_break(self, runner):
        result = runner.invoke(app, ["set-flags", "ok=1", "bad=a\nb"])
        assert result.exit_code == 2
        assert "--set" not in result.stdout

    def test_serve_wires_uvicorn(self, runner, context):
        with patch("uvicorn.run") as run:
            result = runner.invoke(app, ["serve", "--host", "127.0.0.1"])
        assert result.exit_code == 0
        assert run.call_args.kwargs["host"] == "127.0.0.1"
        assert run.call_args.kwargs["port"] == 8123

    def test_cache_check(self, runner):
        verdict = FreshnessResult(cacheable=False, reasons=("no-store",))
        with patch("chartview.cli.check_url", return_value=verdict) as check:
            result = runner.invoke(app, [
                "cache-check", "http://localhost:4000/packageview/files/values.yaml",
                "--evaluator", "tests.test_freshness:MaxAgeEvaluator",
            ])
        assert result.exit_code == 0
        assert check.call_args.args[0] == "http://localhost:4000/packageview/files/values.yaml"
        assert "Cacheable: no" in result.stdout
        assert "Reasons to not cache: no-store" in result.stdout
        assert "Expiration: (none)" in result.stdout

    def test_cache_check_bad_evaluator_exits_2(self, runner):
        result = runner.invoke(app, ["cache-check", "http://localhost:4000/healthz", "--evaluator", "nope"])
        assert result.exit_code == 2
