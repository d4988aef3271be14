"""
Tests for the core data model.
"""
from __future__ import annotations

import pytest

from chartview.errors import ConfigurationError
from chartview.models import (
    AnonymousCredential,
    CachedChart,
    ChartFile,
    ChartRef,
    ChartSourceRef,
    CloudCredential,
    SecretRef,
    SourceReference,
    StaticCredential,
    normalize_url,
)


class TestNormalizeUrl:

    def test_index_url_gains_trailing_slash(self):
        assert normalize_url("https://charts.example.com/stable") == "https://charts.example.com/stable/"
        assert normalize_url("https://charts.example.com/") == "https://charts.example.com/"

    def test_oci_url_loses_trailing_slash(self):
        assert normalize_url("oci://ghcr.io/org/charts/") == "oci://ghcr.io/org/charts"
        assert normalize_url("  oci://ghcr.io/org/charts ") == "oci://ghcr.io/org/charts"


class TestSourceReference:

    def test_from_url_infers_kind(self):
        assert SourceReference.from_url("oci://ghcr.io/org/charts").is_oci
        assert not SourceReference.from_url("https://charts.example.com").is_oci

    def test_url_is_normalized(self):
        reference = SourceReference(url="https://charts.example.com")
        assert reference.url == "https://charts.example.com/"

    def test_oci_kind_requires_oci_url(self):
        with pytest.raises(ConfigurationError, match="invalid OCI registry URL"):
            SourceReference(url="https://ghcr.io/org", kind="oci")

    def test_index_kind_requires_http_scheme(self):
        with pytest.raises(ConfigurationError, match="unsupported scheme"):
            SourceReference(url="ftp://charts.example.com")
        with pytest.raises(ConfigurationError, match="unsupported scheme"):
            SourceReference(url="oci://ghcr.io/org")

    def test_unknown_kind_and_provider(self):
        with pytest.raises(ConfigurationError, match="unknown repository kind"):
            SourceReference(url="https://charts.example.com", kind="git")
        with pytest.raises(ConfigurationError, match="unknown provider"):
            SourceReference(url="https://charts.example.com", provider="oracle")

    def test_timeout_must_be_positive(self):
        with pytest.raises(ConfigurationError, match="timeout must be positive"):
            SourceReference(url="https://charts.example.com", timeout_s=0)

    def test_empty_url(self):
        with pytest.raises(ConfigurationError, match="requires a url"):
            SourceReference(url="")

    def test_wants_auto_login(self):
        assert SourceReference(url="oci://x.azurecr.io/c", kind="oci", provider="azure").wants_auto_login
        assert not SourceReference(url="oci://x.azurecr.io/c", kind="oci").wants_auto_login
        assert not SourceReference(url="https://charts.example.com", provider="aws").wants_auto_login

    def test_registry_host(self):
        reference = SourceReference(url="oci://localhost:5000/charts/stable", kind="oci")
        assert reference.registry_host == "localhost:5000"

    def test_cache_scope(self):
        assert SourceReference(url="https://charts.example.com").cache_scope == "https://charts.example.com/"
        reference = SourceReference(
            url="oci://ghcr.io/org/charts", kind="oci", secret_ref=SecretRef(name="auth", namespace="team-a")
        )
        assert reference.cache_scope == "oci://ghcr.io/org/charts#secret=team-a/auth"

    def test_immutable(self):
        reference = SourceReference(url="https://charts.example.com")
        with pytest.raises(Exception):
            reference.url = "https://other.example.com/"


class TestChartRefs:

    def test_chart_ref_validates_name(self):
        assert ChartRef(name="podinfo", version=" 1.0.0 ").version == "1.0.0"
        for bad in ("", "../etc", "has space", "-leading"):
            with pytest.raises(ConfigurationError, match="invalid chart name"):
                ChartRef(name=bad)

    def test_secret_ref_requires_name(self):
        with pytest.raises(ConfigurationError):
            SecretRef(name="")

    def test_chart_source_ref_defaults_to_helm_repository(self):
        ref = ChartSourceRef(name="podinfo", source_name="podinfo").with_defaults()
        assert ref.source_kind == "HelmRepository"
        assert ref.source_api_group == "source.toolkit.fluxcd.io"

    @pytest.mark.parametrize("kind", ["Legacy", "Local", "Embed"])
    def test_chart_source_ref_builtin_kinds(self, kind):
        ref = ChartSourceRef(name="podinfo", source_kind=kind).with_defaults()
        assert ref.source_api_group == "charts.x-helm.dev"


class TestCredentials:

    def test_requires_login(self):
        assert AnonymousCredential().requires_login is False
        assert StaticCredential().requires_login is False
        assert StaticCredential(username="u", password="p").requires_login is True
        assert CloudCredential(provider="aws", username="AWS", password="token").requires_login is True

    def test_secret_material_not_in_repr(self):
        credential = StaticCredential(username="u", password="hunter2", key_pem=b"PRIVATE")
        assert "hunter2" not in repr(credential)
        assert "PRIVATE" not in repr(credential)

    def test_has_tls(self):
        assert StaticCredential(ca_pem=b"CA").has_tls
        assert not StaticCredential(username="u", password="p").has_tls


class TestCachedChart:

    def test_file_lookup(self):
        chart = CachedChart(
            key=("https://charts.example.com/", "podinfo", "6.5.0"),
            files=(ChartFile("values.yaml", b"a: 1"), ChartFile("Chart.yaml", b"name: podinfo")),
            fetched_at=0.0,
        )
        assert chart.version == "6.5.0"
        assert chart.file("values.yaml").data == b"a: 1"
        assert chart.file("missing.yaml") is None
        assert chart.file_names() == ["Chart.yaml", "values.yaml"]
