"""Filesystem helpers that never leave half-written files behind."""

import logging
import os
import shutil
import tempfile
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)


def write_atomic(
    path: Path,
    content: str,
    mode: int = 0o644,
    uid: Optional[int] = None,
    gid: Optional[int] = None,
) -> None:
    """Write ``content`` to ``path`` through a temporary file and a rename.

    Readers (including service managers scanning their directories) see
    either the old file or the complete new one. The temporary file is
    removed if anything fails.
    """
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.chmod(tmp_name, mode)
        if uid is not None:
            os.chown(tmp_name, uid, gid if gid is not None else -1)
        os.replace(tmp_name, path)
    except BaseException:
        leftover = Path(tmp_name)
        if leftover.exists():
            leftover.unlink()
        raise
    logger.debug(f"Wrote {path} (mode {mode:o})")


def copy_atomic(source: Path, destination: Path, mode: int = 0o755) -> None:
    """Copy a file into place by rename, which also works over a running binary."""
    destination.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{destination.name}.", dir=str(destination.parent)
    )
    os.close(fd)
    try:
        shutil.copyfile(source, tmp_name)
        os.chmod(tmp_name, mode)
        os.replace(tmp_name, destination)
    except BaseException:
        leftover = Path(tmp_name)
        if leftover.exists():
            leftover.unlink()
        raise
    logger.debug(f"Copied {source} -> {destination} (mode {mode:o})")
