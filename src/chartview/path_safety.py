"""
Path safety utilities for chartview.

Shared validation for archive member names and requested file paths, so a
crafted chart or request cannot address anything outside the chart root.
"""
from __future__ import annotations

from pathlib import PurePosixPath


def safe_relpath(path: str) -> str:
    """
    Validate and normalize a chart-relative path.

    This function enforces the following safety rules:
    - No empty strings or "." (the chart root itself is not a file)
    - No absolute paths (starting with '/')
    - No parent directory references ('..' components)
    - No backslashes

    Args:
        path: Archive member name or requested file path

    Returns:
        Normalized relative path

    Raises:
        ValueError: If path violates safety rules

    Examples:
        >>> safe_relpath("templates/deployment.yaml")
        'templates/deployment.yaml'

        >>> safe_relpath("./values.yaml")
        'values.yaml'

        >>> safe_relpath("../secrets.txt")
        ValueError: unsafe path: ../secrets.txt
    """
    rel = PurePosixPath(path)
    s = str(rel)
    if not s or s == ".":
        raise ValueError(f"unsafe path: {path}")
    if "\\" in s:
        raise ValueError(f"unsafe path: {path}")
    if rel.is_absolute() or ".." in rel.parts:
        raise ValueError(f"unsafe path: {path}")
    return s


def strip_chart_root(member: str) -> str:
    """
    Drop the leading chart directory from an archive member name.

    Chart archives hold every file under "<chart-name>/".

    Raises:
        ValueError: If the member is unsafe or sits directly at the archive root
    """
    parts = PurePosixPath(safe_relpath(member)).parts
    if len(parts) < 2:
        raise ValueError(f"archive member outside chart directory: {member}")
    return "/".join(parts[1:])
