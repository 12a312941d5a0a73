"""Parser for the IEEE OUI registry text format.

Only the ``(base 16)`` lines carry a record::

    0050C2     (base 16)		IEEE REGISTRATION AUTHORITY

Every other line (the ``(hex)`` duplicates, addresses, headers, blanks) is
skipped.
"""

import io
import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import IO

from ..core.utils import format_oui

# Hex digits match either case; the "(base 16)" marker is case-sensitive.
RECORD_PATTERN = re.compile(
    r"\s*([0-9A-Fa-f]{2})([0-9A-Fa-f]{2})([0-9A-Fa-f]{2})\s+\(base 16\)\s+(.*)",
    re.ASCII,
)


@dataclass(frozen=True)
class RegistryRecord:
    """One registry assignment: a 3-byte OUI and its organization name."""

    prefix: bytes
    organization: str

    def __post_init__(self) -> None:
        if len(self.prefix) != 3:
            raise ValueError(f"OUI prefix must be 3 bytes, got {len(self.prefix)}")

    @property
    def oui(self) -> str:
        return format_oui(self.prefix)

    def to_dict(self) -> dict:
        return {"oui": self.oui, "organization": self.organization}


def parse_line(line: str) -> RegistryRecord | None:
    """Parse a single line; None if it is not a ``(base 16)`` record."""
    match = RECORD_PATTERN.fullmatch(line)
    if match is None:
        return None
    prefix = bytes(int(match.group(i), 16) for i in (1, 2, 3))
    return RegistryRecord(prefix, match.group(4))


def parse_registry(lines: Iterable[str]) -> Iterator[RegistryRecord]:
    """Lazily yield a record for every matching line, in input order."""
    for line in lines:
        record = parse_line(line.rstrip("\r\n"))
        if record is not None:
            yield record


def iter_lines(stream: IO[bytes], encoding: str = "utf-8") -> Iterator[str]:
    """Decode a binary stream into lines without their terminators."""
    text = io.TextIOWrapper(stream, encoding=encoding, errors="replace", newline=None)
    try:
        for line in text:
            yield line.rstrip("\n")
    finally:
        if not stream.closed:
            text.detach()
