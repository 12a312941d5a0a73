"""Utility functions for the OUI table generator."""

import atexit
import contextlib
import logging
import os
import tempfile
import uuid
from collections.abc import Iterator
from pathlib import Path
from typing import BinaryIO

from .exceptions import ArtifactPublishError, DirectoryCreationError

logger = logging.getLogger(__name__)

# Temp files not yet published; removed at interpreter exit if still present.
_pending_temp_files: set[Path] = set()


@atexit.register
def _remove_pending_temp_files() -> None:
    for path in list(_pending_temp_files):
        with contextlib.suppress(OSError):
            path.unlink()
    _pending_temp_files.clear()


def ensure_directory(path: Path) -> Path:
    """Create a directory (and parents) if needed and return it."""
    if path.is_dir():
        return path
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise DirectoryCreationError(path, str(e)) from e
    return path


def format_oui(prefix: bytes) -> str:
    """Format a 3-byte prefix as colon separated uppercase hex (00:50:C2)."""
    return ":".join(f"{b:02X}" for b in prefix)


@contextlib.contextmanager
def atomic_write(target: Path) -> Iterator[BinaryIO]:
    """Write ``target`` through a uniquely named temp file beside it.

    The temp file is renamed onto ``target`` only when the block completes
    normally. If the block raises, or the rename fails, the temp file is
    removed and ``target`` is left as it was.
    """
    ensure_directory(target.parent)
    fd, name = tempfile.mkstemp(
        prefix=f"{target.name}.tmp-{uuid.uuid4().hex[:8]}-",
        dir=target.parent,
    )
    temp_path = Path(name)
    _pending_temp_files.add(temp_path)
    try:
        with os.fdopen(fd, "wb") as f:
            yield f
        publish(temp_path, target)
    finally:
        if temp_path in _pending_temp_files:
            _pending_temp_files.discard(temp_path)
            with contextlib.suppress(FileNotFoundError):
                temp_path.unlink()


def publish(temp_path: Path, target: Path) -> Path:
    """Atomically move a completed temp file onto ``target``."""
    try:
        os.replace(temp_path, target)
    except OSError as e:
        raise ArtifactPublishError(temp_path, target, str(e)) from e
    _pending_temp_files.discard(temp_path)
    logger.debug("Published %s", target)
    return target
