"""
Rendering of values as `--set key=value` command-line flags.

A line break inside a value would split the generated command and change
its meaning, so every value is checked before anything is rendered.
"""
from __future__ import annotations

from typing import Mapping

from .errors import ValidationError

__all__ = ["check_set_values", "render_set_flags"]


def check_set_values(values: Mapping[str, str]) -> None:
    """
    Reject keys or values containing a line break.

    Raises:
        ValidationError: Naming the first offending key
    """
    for key, value in values.items():
        if "\n" in key or "\r" in key:
            raise ValidationError(f"key {key!r} contains a line break")
        if "\n" in str(value) or "\r" in str(value):
            raise ValidationError(f"value of {key!r} contains a line break")


def render_set_flags(values: Mapping[str, str], indent: str = "  ") -> str:
    """
    Render values as shell continuation lines, one `--set` per key.

    Examples:
        >>> print(render_set_flags({"image.tag": "1.2.3"}))
          --set image.tag=1.2.3
    """
    check_set_values(values)
    lines = [f"{indent}--set {key}={value}" for key, value in sorted(values.items())]
    return " \\\n".join(lines)
