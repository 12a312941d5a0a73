"""HTTP conditional GET for the registry source."""

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from urllib.parse import urlparse

import requests
from requests.structures import CaseInsensitiveDict

from .. import __version__
from ..core.exceptions import MalformedSourceUrlError, NetworkError

logger = logging.getLogger(__name__)

H_ETAG = "ETag"
H_LAST_MODIFIED = "Last-Modified"
ACCEPT_ENCODING = "gzip, deflate"
CHUNK_SIZE = 4096
USER_AGENT = f"ouitable/{__version__}"


@dataclass(frozen=True)
class NotModified:
    """The remote registry is unchanged; keep using the cache."""

    url: str


@dataclass
class Updated:
    """New registry content.

    ``payload`` is a lazy, single-pass iterator of decoded bytes. It holds the
    HTTP connection open until it is exhausted or closed.
    """

    url: str
    validators: dict[str, str]
    payload: Iterator[bytes]
    response: requests.Response | None = field(default=None, repr=False)

    def close(self) -> None:
        close = getattr(self.payload, "close", None)
        if close is not None:
            close()
        if self.response is not None:
            self.response.close()


FetchResult = NotModified | Updated


def check_url(url: str) -> None:
    """Reject URLs that cannot be fetched over HTTP(S)."""
    try:
        parsed = urlparse(url)
    except ValueError as e:
        raise MalformedSourceUrlError(url, str(e)) from e
    if parsed.scheme not in ("http", "https"):
        raise MalformedSourceUrlError(url, f"unsupported scheme '{parsed.scheme}'")
    if not parsed.netloc:
        raise MalformedSourceUrlError(url, "no host")


def build_request_headers(validators: dict[str, str]) -> dict[str, str]:
    """Request headers advertising compression and carrying cache validators."""
    known = CaseInsensitiveDict(validators)
    headers = {"Accept-Encoding": ACCEPT_ENCODING, "User-Agent": USER_AGENT}
    if H_ETAG in known:
        headers["If-None-Match"] = known[H_ETAG]
    if H_LAST_MODIFIED in known:
        headers["If-Modified-Since"] = known[H_LAST_MODIFIED]
    return headers


def _iter_payload(url: str, response: requests.Response) -> Iterator[bytes]:
    try:
        # iter_content undoes gzip/deflate content-encoding
        for chunk in response.iter_content(chunk_size=CHUNK_SIZE):
            if chunk:
                yield chunk
    except requests.RequestException as e:
        raise NetworkError(url, str(e)) from e
    finally:
        response.close()


def fetch(
    url: str,
    validators: dict[str, str],
    timeout: float = 30.0,
    session: requests.Session | None = None,
) -> FetchResult:
    """Issue a conditional GET for ``url``.

    Args:
        url: Registry source URL.
        validators: Headers from the previous successful response.
        timeout: Connect/read timeout in seconds.
        session: Optional session to issue the request with.

    Returns:
        NotModified for a 304 response, Updated for any 2xx response.

    Raises:
        MalformedSourceUrlError: The URL cannot be requested.
        NetworkError: Connection failure, timeout or a non-2xx status.
    """
    check_url(url)
    headers = build_request_headers(validators)
    get = session.get if session is not None else requests.get

    logger.debug("GET %s with %s", url, headers)
    try:
        response = get(url, headers=headers, timeout=timeout, stream=True, allow_redirects=True)
    except (
        requests.exceptions.MissingSchema,
        requests.exceptions.InvalidSchema,
        requests.exceptions.InvalidURL,
    ) as e:
        raise MalformedSourceUrlError(url, str(e)) from e
    except requests.RequestException as e:
        raise NetworkError(url, str(e)) from e

    status = response.status_code
    if status == 304:
        response.close()
        logger.info("Remote OUI data not changed: %s", url)
        return NotModified(url)

    if not 200 <= status < 300:
        response.close()
        raise NetworkError(url, f"HTTP {status} {response.reason or ''}".rstrip())

    # one value per header name; repeated headers arrive already folded
    new_validators = {str(name): str(value) for name, value in response.headers.items()}
    logger.info(
        "Downloading %s (encoding: %s)...",
        url,
        response.headers.get("Content-Encoding", "identity"),
    )
    return Updated(url, new_validators, _iter_payload(url, response), response)
