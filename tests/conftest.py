"""Shared fixtures for ouitable tests."""

import io
import struct
import zipfile
import zlib
from unittest.mock import MagicMock

import pytest
import requests
import urllib3
from requests.structures import CaseInsensitiveDict

from ouitable.core.config import set_config

SOURCE_URL = "https://standards-oui.example/oui/oui.txt"

SAMPLE_REGISTRY = """\
OUI/MA-L                                                    Organization
company_id                                                  Organization
                                                            Address

00-22-72   (hex)\t\tAmerican Micro-Fuel Device Corp.
002272     (base 16)\t\tAmerican Micro-Fuel Device Corp.
\t\t\t\t2181 Buchanan Loop
\t\t\t\tFerndale  WA  98248
\t\t\t\tUS

00-D0-EF   (hex)\t\tIGT
00D0EF     (base 16)\t\tIGT
\t\t\t\t9295 PROTOTYPE DRIVE
\t\t\t\tRENO  NV  89511
\t\t\t\tUS

08-61-95   (hex)\t\tRockwell Automation
086195     (base 16)\t\tRockwell Automation
\t\t\t\t1 Allen-Bradley Dr.
\t\t\t\tMayfield Heights  OH  44124-6118
\t\t\t\tUS
"""

SAMPLE_RECORDS = [
    (b"\x00\x22\x72", "American Micro-Fuel Device Corp."),
    (b"\x00\xd0\xef", "IGT"),
    (b"\x08\x61\x95", "Rockwell Automation"),
]


def make_response(
    status: int = 200,
    body: bytes = b"",
    headers: dict[str, str] | None = None,
    url: str = SOURCE_URL,
) -> requests.Response:
    """Build a real streaming Response backed by an in-memory body."""
    headers = headers or {}
    response = requests.Response()
    response.status_code = status
    response.reason = {200: "OK", 304: "Not Modified", 404: "Not Found"}.get(status, "")
    response.headers = CaseInsensitiveDict(headers)
    response.url = url
    response.raw = urllib3.HTTPResponse(
        body=io.BytesIO(body),
        headers=headers,
        status=status,
        preload_content=False,
    )
    return response


def make_session(*responses) -> MagicMock:
    """A requests.Session double returning ``responses`` in order."""
    session = MagicMock(spec=requests.Session)
    session.get.side_effect = list(responses)
    return session


def deflate(data: bytes) -> bytes:
    return zlib.compress(data)


def damage_entry(path, name: str, length: int = 64) -> None:
    """Flip bytes in the compressed data of one archive entry in place.

    The central directory stays intact, so the archive still opens and the
    damage only surfaces once the entry is inflated.
    """
    with zipfile.ZipFile(path) as zf:
        info = zf.getinfo(name)
    data = bytearray(path.read_bytes())
    offset = info.header_offset
    name_len, extra_len = struct.unpack("<HH", data[offset + 26 : offset + 30])
    start = offset + 30 + name_len + extra_len
    for i in range(start, start + min(length, info.compress_size)):
        data[i] ^= 0x5A
    path.write_bytes(bytes(data))


@pytest.fixture(autouse=True)
def reset_config():
    """Drop the global configuration between tests."""
    set_config(None)
    yield
    set_config(None)


@pytest.fixture
def registry_bytes() -> bytes:
    return SAMPLE_REGISTRY.encode("utf-8")
