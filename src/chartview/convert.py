"""
Format conversion for served chart files.

Files are served as stored ("keep", the default) or converted between YAML
and JSON. Conversion parses the whole document, so multi-document YAML is
only supported for format "yaml" with a single document.
"""
from __future__ import annotations

import json
from typing import Tuple

import yaml

from .errors import ValidationError

__all__ = ["convert", "content_type_for", "FORMATS"]

FORMATS = ("", "keep", "yaml", "json")


def content_type_for(name: str) -> str:
    """Guess the content type of a chart file from its name."""
    lowered = name.lower()
    if lowered.endswith((".yaml", ".yml")):
        return "application/yaml"
    if lowered.endswith(".json"):
        return "application/json"
    if lowered.endswith((".md", ".txt", ".tpl")) or "." not in lowered.rsplit("/", 1)[-1]:
        return "text/plain; charset=utf-8"
    return "application/octet-stream"


def _parse(name: str, data: bytes):
    try:
        if name.lower().endswith(".json"):
            return json.loads(data)
        return yaml.safe_load(data)
    except (ValueError, yaml.YAMLError) as e:
        raise ValidationError(f"cannot convert {name}: {e}") from e


def convert(name: str, data: bytes, fmt: str) -> Tuple[bytes, str]:
    """
    Convert file content to the requested format.

    Args:
        name: File name, used to detect the source format
        data: File content
        fmt: "yaml", "json", or ""/"keep" for no conversion

    Returns:
        (content, content_type)

    Raises:
        ValidationError: If the format is unknown or the content cannot be parsed
    """
    fmt = (fmt or "").lower()
    if fmt not in FORMATS:
        raise ValidationError(f"unknown format '{fmt}', expected one of: yaml, json, keep")

    if fmt in ("", "keep"):
        return data, content_type_for(name)

    document = _parse(name, data)
    if fmt == "json":
        return json.dumps(document, indent=2, default=str).encode("utf-8"), "application/json"
    return yaml.safe_dump(document, sort_keys=False).encode("utf-8"), "application/yaml"
