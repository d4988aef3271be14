"""
Chart archive loading.

Unpacks a gzipped chart tarball into an ordered tuple of ChartFile, with
paths relative to the chart root (the archive's top-level directory).
"""
from __future__ import annotations

import io
import logging
import tarfile
from typing import List, Tuple

from .errors import ValidationError
from .models import ChartFile
from .path_safety import strip_chart_root

__all__ = ["load_archive", "MAX_ARCHIVE_BYTES"]

logger = logging.getLogger(__name__)

# Upper bound on unpacked chart size
MAX_ARCHIVE_BYTES = 100 * 1024 * 1024


def load_archive(data: bytes) -> Tuple[ChartFile, ...]:
    """
    Load chart files from archive bytes.

    Directories, links and device entries are skipped. Files keep the order
    in which they appear in the archive.

    Args:
        data: Raw .tgz bytes

    Returns:
        Files relative to the chart root

    Raises:
        ValidationError: If the archive is malformed, unsafe or too large
    """
    files: List[ChartFile] = []
    seen = set()
    total = 0

    try:
        with tarfile.open(fileobj=io.BytesIO(data), mode="r:gz") as tar:
            for member in tar:
                if not member.isfile():
                    continue

                try:
                    name = strip_chart_root(member.name)
                except ValueError as e:
                    raise ValidationError(f"invalid chart archive: {e}") from e

                total += member.size
                if total > MAX_ARCHIVE_BYTES:
                    raise ValidationError(f"chart archive exceeds {MAX_ARCHIVE_BYTES} bytes")

                extracted = tar.extractfile(member)
                if extracted is None:
                    continue
                content = extracted.read()

                if name in seen:
                    # Later entries win, as with a real extraction
                    files = [f for f in files if f.name != name]
                seen.add(name)
                files.append(ChartFile(name=name, data=content))
    except (tarfile.TarError, EOFError, OSError) as e:
        raise ValidationError(f"invalid chart archive: {e}") from e

    if not files:
        raise ValidationError("chart archive contains no files")

    logger.debug(f"Loaded chart archive with {len(files)} files ({total} bytes)")
    return tuple(files)
