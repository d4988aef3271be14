"""
Tests for conditional file serving: ETag, max-age policy and 304 responses.
"""
from __future__ import annotations

import hashlib
import json

import pytest

from chartview.errors import NotFoundError, ValidationError
from chartview.serving import FileRequest, etag_matches, make_etag, max_age_for, serve_file
from chartview.settings import Settings

OCI_URL = "oci://ghcr.io/stefanprodan/charts"
TEN_YEARS = 315360000
ONE_DAY = 86400


def _request(version="6.5.0", path="values.yaml", fmt=""):
    return FileRequest(url=OCI_URL, name="podinfo", version=version, path=path, format=fmt)


class TestEtag:

    def test_make_etag_is_quoted_sha256(self):
        assert make_etag(b"abc") == '"%s"' % hashlib.sha256(b"abc").hexdigest()

    @pytest.mark.parametrize("header", ['"abc"', "abc", 'W/"abc"', '"zzz", "abc"', "*"])
    def test_matches(self, header):
        assert etag_matches(header, '"abc"')

    @pytest.mark.parametrize("header", [None, "", '"abd"', '"zzz", W/"yyy"'])
    def test_does_not_match(self, header):
        assert not etag_matches(header, '"abc"')


class TestMaxAge:

    @pytest.mark.parametrize("constraint", ["6.5.0", "v6.5.0", "1.0.0-rc.1"])
    def test_pinned_is_long(self, constraint):
        assert max_age_for(constraint) == TEN_YEARS

    @pytest.mark.parametrize("constraint", ["", "^6.0.0", "6.5", "~6.4", ">=1.0.0"])
    def test_floating_is_short(self, constraint):
        assert max_age_for(constraint) == ONE_DAY

    def test_settings_override(self):
        settings = Settings(pinned_max_age_s=600, floating_max_age_s=60)
        assert max_age_for("6.5.0", settings) == 600
        assert max_age_for("", settings) == 60


class TestServeFile:

    def test_full_response(self, service):
        response = serve_file(service, _request())
        expected = b"replicaCount: 1\nimage:\n  tag: latest\n"

        assert response.status == 200
        assert response.body == expected
        assert response.headers["ETag"] == make_etag(expected)
        assert response.headers["Cache-Control"] == f"private, must-revalidate, max-age={TEN_YEARS}"
        assert response.headers["Content-Type"] == "application/yaml"

    def test_same_content_different_lifetime(self, service):
        pinned = serve_file(service, _request(version="6.5.0"))
        floating = serve_file(service, _request(version="~6.5.0"))
        assert pinned.body == floating.body
        assert pinned.headers["ETag"] == floating.headers["ETag"]
        assert pinned.headers["Cache-Control"].endswith(f"max-age={TEN_YEARS}")
        assert floating.headers["Cache-Control"].endswith(f"max-age={ONE_DAY}")

    def test_not_modified(self, service):
        etag = serve_file(service, _request()).headers["ETag"]
        response = serve_file(service, _request(), if_none_match=etag)
        assert response.status == 304
        assert response.body == b""
        assert response.headers["ETag"] == etag
        assert "Content-Type" not in response.headers

    def test_stale_fingerprint_gets_content(self, service):
        response = serve_file(service, _request(), if_none_match='"0000"')
        assert response.status == 200
        assert response.body

    def test_conversion_changes_fingerprint(self, service):
        raw = serve_file(service, _request())
        converted = serve_file(service, _request(fmt="json"))
        assert json.loads(converted.body) == {"replicaCount": 1, "image": {"tag": "latest"}}
        assert converted.headers["Content-Type"] == "application/json"
        assert converted.headers["ETag"] == make_etag(converted.body)
        assert converted.headers["ETag"] != raw.headers["ETag"]

    def test_missing_file(self, service):
        with pytest.raises(NotFoundError):
            serve_file(service, _request(path="missing.yaml"))

    @pytest.mark.parametrize("path", ["../values.yaml", "", "a\\b"])
    def test_unsafe_path(self, service, path):
        with pytest.raises(ValidationError, match="invalid file path"):
            serve_file(service, _request(path=path))

    def test_unknown_format(self, service):
        with pytest.raises(ValidationError, match="unknown format"):
            serve_file(service, _request(fmt="toml"))
