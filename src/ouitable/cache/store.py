"""Single-artifact cache of the last fetched registry and its HTTP validators.

The artifact is a zip archive with two entries:

* ``headers.txt`` - response headers of the fetch that produced the payload,
  one ``key=value`` per line
* ``oui.txt`` - the decoded registry payload

A new artifact is always written to a temp file and renamed into place, so
the canonical path never holds a half-written archive.
"""

import contextlib
import logging
import zipfile
import zlib
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import IO

from ..core.exceptions import CacheCorruptError
from ..core.utils import atomic_write

logger = logging.getLogger(__name__)

HEADERS_ENTRY = "headers.txt"
DATA_ENTRY = "oui.txt"

# Raised by zipfile while inflating a damaged entry.
CORRUPT_ENTRY_ERRORS = (zipfile.BadZipFile, zlib.error, EOFError)

_ESCAPES = {"\\": "\\\\", "\n": "\\n", "\r": "\\r"}
_UNESCAPES = {"\\": "\\", "n": "\n", "r": "\r", "=": "="}


def _escape(text: str, key: bool = False) -> str:
    escaped = "".join(_ESCAPES.get(ch, ch) for ch in text)
    if key:
        escaped = escaped.replace("=", "\\=")
        if escaped.startswith("#"):
            escaped = "\\" + escaped
    return escaped


def _unescape(text: str) -> str:
    out = []
    chars = iter(text)
    for ch in chars:
        if ch == "\\":
            nxt = next(chars, "")
            out.append(_UNESCAPES.get(nxt, nxt))
        else:
            out.append(ch)
    return "".join(out)


def _split_line(line: str) -> tuple[str, str]:
    i = 0
    while i < len(line):
        if line[i] == "\\":
            i += 2
            continue
        if line[i] == "=":
            return _unescape(line[:i]), _unescape(line[i + 1 :])
        i += 1
    return _unescape(line), ""


def dump_validators(validators: dict[str, str]) -> str:
    """Serialize validators as line-oriented ``key=value`` text."""
    lines = [f"{_escape(k, key=True)}={_escape(v)}" for k, v in validators.items()]
    return "".join(line + "\n" for line in lines)


def load_validators(text: str) -> dict[str, str]:
    """Parse text produced by :func:`dump_validators`.

    Blank lines and lines starting with ``#`` are ignored. A later line wins
    over an earlier one with the same key.
    """
    validators: dict[str, str] = {}
    for line in text.split("\n"):
        if not line.strip() or line.startswith("#"):
            continue
        key, value = _split_line(line)
        validators[key] = value
    return validators


class CacheStore:
    """Owns the on-disk cache artifact for one remote source."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def __repr__(self) -> str:
        return f"CacheStore({str(self.path)!r})"

    def exists(self) -> bool:
        return self.path.is_file()

    def destroy_corrupt(self, reason: str) -> None:
        """Recovery branch for a structurally broken artifact: delete it."""
        logger.warning(
            "Bad cache file '%s': %s. Destroying cache.", self.path.absolute(), reason
        )
        with contextlib.suppress(FileNotFoundError):
            self.path.unlink()

    def read_validators(self) -> dict[str, str]:
        """Return the stored validators.

        An absent artifact yields an empty dict. A corrupt artifact is
        destroyed and also yields an empty dict, so the next fetch repopulates
        the cache from scratch.
        """
        if not self.exists():
            return {}
        try:
            with zipfile.ZipFile(self.path) as zf:
                try:
                    raw = zf.read(HEADERS_ENTRY)
                except KeyError:
                    raise CacheCorruptError(self.path, "Header information not present") from None
            return load_validators(raw.decode("utf-8"))
        except CacheCorruptError as e:
            self.destroy_corrupt(e.details or "corrupt")
        except (*CORRUPT_ENTRY_ERRORS, UnicodeDecodeError, OSError) as e:
            self.destroy_corrupt(str(e))
        return {}

    def write(self, validators: dict[str, str], payload: Iterable[bytes]) -> Path:
        """Replace the artifact with new validators and payload."""
        with atomic_write(self.path) as f:
            with zipfile.ZipFile(f, "w", compression=zipfile.ZIP_DEFLATED) as zf:
                zf.writestr(HEADERS_ENTRY, dump_validators(validators).encode("utf-8"))
                with zf.open(DATA_ENTRY, "w") as entry:
                    size = 0
                    for chunk in payload:
                        entry.write(chunk)
                        size += len(chunk)
        logger.info("Cached data at %s (%d bytes)", self.path.absolute(), size)
        return self.path

    @contextlib.contextmanager
    def open_payload(self) -> Iterator[IO[bytes]]:
        """Open the cached payload for reading.

        Raises:
            CacheCorruptError: the artifact is unreadable or has no data
                entry. The artifact is deleted before raising.
        """
        try:
            zf = zipfile.ZipFile(self.path)
        except (zipfile.BadZipFile, OSError) as e:
            self.destroy_corrupt(str(e))
            raise CacheCorruptError(self.path, str(e)) from e

        with zf:
            try:
                entry = zf.open(DATA_ENTRY)
            except KeyError:
                zf.close()
                self.destroy_corrupt("No data in cache file")
                raise CacheCorruptError(
                    self.path, "No data in cache file. Destroying cache."
                ) from None
            with entry:
                yield entry

