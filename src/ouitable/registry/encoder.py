"""Binary OUI table encoding.

Layout, all integers big-endian::

    int64   generation time, milliseconds since the epoch
    repeated until end of stream:
        3 bytes   OUI prefix
        uint16    length of the name in bytes
        N bytes   name, modified UTF-8

Modified UTF-8 is the string encoding of Java's ``DataOutput.writeUTF``. It
matches plain UTF-8 except that NUL is written as two bytes and characters
outside the BMP are written as two 3-byte surrogates, so tables stay readable
by ``DataInputStream.readUTF`` consumers.
"""

import struct
import time
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import IO

from ..core.exceptions import TableEncodingError
from .parser import RegistryRecord

TIMESTAMP = struct.Struct(">q")
LENGTH = struct.Struct(">H")
MAX_NAME_BYTES = 0xFFFF


def encode_modified_utf8(text: str) -> bytes:
    out = bytearray()
    units = text.encode("utf-16-be", "surrogatepass")
    for (code,) in struct.iter_unpack(">H", units):
        if 0x0001 <= code <= 0x007F:
            out.append(code)
        elif code <= 0x07FF:
            out += bytes((0xC0 | (code >> 6), 0x80 | (code & 0x3F)))
        else:
            out += bytes(
                (0xE0 | (code >> 12), 0x80 | ((code >> 6) & 0x3F), 0x80 | (code & 0x3F))
            )
    return bytes(out)


def decode_modified_utf8(data: bytes) -> str:
    units = []
    i = 0
    n = len(data)
    try:
        while i < n:
            b = data[i]
            if b < 0x80:
                units.append(b)
                i += 1
            elif b & 0xE0 == 0xC0:
                units.append(((b & 0x1F) << 6) | (data[i + 1] & 0x3F))
                i += 2
            elif b & 0xF0 == 0xE0:
                units.append(((b & 0x0F) << 12) | ((data[i + 1] & 0x3F) << 6) | (data[i + 2] & 0x3F))
                i += 3
            else:
                raise TableEncodingError("Malformed modified UTF-8", f"byte 0x{b:02x} at {i}")
    except IndexError:
        raise TableEncodingError("Malformed modified UTF-8", "truncated character") from None
    raw = struct.pack(f">{len(units)}H", *units)
    return raw.decode("utf-16-be", "surrogatepass")


def now_millis() -> int:
    return time.time_ns() // 1_000_000


def encode_table(
    records: Iterable[RegistryRecord],
    out: IO[bytes],
    generated_at: int | None = None,
) -> int:
    """Write the table to ``out`` and return the number of records written.

    The timestamp is written first, even when ``records`` is empty.
    """
    if generated_at is None:
        generated_at = now_millis()
    out.write(TIMESTAMP.pack(generated_at))

    count = 0
    for record in records:
        name = encode_modified_utf8(record.organization)
        if len(name) > MAX_NAME_BYTES:
            raise TableEncodingError(
                f"Organization name for {record.oui} too long",
                f"{len(name)} bytes encoded, limit is {MAX_NAME_BYTES}",
            )
        out.write(record.prefix)
        out.write(LENGTH.pack(len(name)))
        out.write(name)
        count += 1
    return count


def _read_exact(stream: IO[bytes], size: int, what: str) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise TableEncodingError("Truncated OUI table", f"incomplete {what}")
    return data


def read_generation_time(stream: IO[bytes]) -> int:
    """Read the leading timestamp of a table."""
    (generated_at,) = TIMESTAMP.unpack(_read_exact(stream, TIMESTAMP.size, "timestamp"))
    return generated_at


def iter_table(stream: IO[bytes]) -> Iterator[RegistryRecord]:
    """Yield the records following the timestamp, which must already be consumed."""
    while True:
        prefix = stream.read(3)
        if not prefix:
            return
        if len(prefix) != 3:
            raise TableEncodingError("Truncated OUI table", "incomplete prefix")
        (length,) = LENGTH.unpack(_read_exact(stream, LENGTH.size, "name length"))
        name = decode_modified_utf8(_read_exact(stream, length, "name"))
        yield RegistryRecord(prefix, name)


@dataclass
class BinaryTable:
    """A decoded table."""

    generated_at: int
    records: list[RegistryRecord] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.records)


def decode_table(stream: IO[bytes]) -> BinaryTable:
    """Read a complete table written by :func:`encode_table`."""
    generated_at = read_generation_time(stream)
    return BinaryTable(generated_at, list(iter_table(stream)))
