"""Keep the cache artifact current with the remote registry."""

import logging
from pathlib import Path

import requests

from .fetcher import NotModified, fetch
from .store import CacheStore

logger = logging.getLogger(__name__)


def ensure_current(
    url: str,
    store: CacheStore,
    offline: bool = False,
    timeout: float = 30.0,
    session: requests.Session | None = None,
) -> Path:
    """Bring ``store`` up to date with ``url`` and return the artifact path.

    Offline mode trusts whatever is cached and never touches the network; the
    returned path may not exist. Online, fetch failures propagate: there is no
    fallback to a stale cache.
    """
    if offline:
        logger.info("Operating in offline mode; skipping connection to %s", url)
        return store.path

    validators = store.read_validators()
    result = fetch(url, validators, timeout=timeout, session=session)
    if isinstance(result, NotModified):
        logger.info("Using cached data at %s", store.path.absolute())
        return store.path

    try:
        return store.write(result.validators, result.payload)
    finally:
        result.close()
