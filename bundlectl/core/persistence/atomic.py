"""
Atomic file writes: write to a temp file, then rename.

A crash mid-write leaves either the old file or the new one, never a
truncated mix.
"""

from __future__ import annotations

import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


def atomic_write_text(path: Path, content: str, prefix: str = ".tmp_") -> None:
    """Write ``content`` to ``path`` atomically.

    Creates parent directories as needed. The temp file lives in the
    same directory so the final rename never crosses filesystems.

    Raises:
        OSError: If the file cannot be written.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=prefix, suffix=".tmp")
    tmp = Path(tmp_path)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        tmp.replace(path)
        logger.debug("Wrote %s", path)
    except Exception:
        tmp.unlink(missing_ok=True)
        raise
