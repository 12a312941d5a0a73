"""End-to-end generation: refresh the cache, then write the binary table."""

import hashlib
import json
import logging
from dataclasses import dataclass
from pathlib import Path

import requests

from .cache.refresh import ensure_current
from .cache.store import CORRUPT_ENTRY_ERRORS, CacheStore
from .core.config import DEFAULT_OUTPUT_FILE
from .core.exceptions import CacheCorruptError, NoDataAvailableError, ResourceWriteError
from .core.utils import atomic_write, ensure_directory
from .registry.encoder import encode_table
from .registry.parser import iter_lines, parse_registry

logger = logging.getLogger(__name__)


@dataclass
class GenerationResult:
    """Outcome of one generation run."""

    output_path: Path
    resource_dir: Path
    cache_path: Path
    record_count: int | None
    skipped: bool = False

    def to_dict(self) -> dict:
        return {
            "output_path": str(self.output_path),
            "resource_dir": str(self.resource_dir),
            "cache_path": str(self.cache_path),
            "record_count": self.record_count,
            "skipped": self.skipped,
        }


def cache_filename(url: str) -> str:
    """Name of the cache artifact for ``url``; one artifact per source."""
    digest = hashlib.sha1(url.encode("utf-8")).hexdigest()[:16]
    return f"oui-cache-{digest}.zip"


def cache_store_for(url: str, storage_root: Path) -> CacheStore:
    return CacheStore(Path(storage_root) / cache_filename(url))


BUILD_RECORD_FILE = "builds.json"


def _build_record_path(store: CacheStore) -> Path:
    return store.path.parent / BUILD_RECORD_FILE


def _load_build_records(path: Path) -> dict:
    try:
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError:
        return {}
    except (OSError, ValueError) as e:
        logger.warning("Ignoring unreadable build record %s: %s", path, e)
        return {}
    return data if isinstance(data, dict) else {}


def _build_stamp(output_path: Path, store: CacheStore) -> dict | None:
    """Identify the table at ``output_path`` and the artifact it came from."""
    try:
        cache_stat = store.path.stat()
        output_stat = output_path.stat()
    except FileNotFoundError:
        return None
    return {
        "cache": store.path.name,
        "cache_mtime_ns": cache_stat.st_mtime_ns,
        "output_mtime_ns": output_stat.st_mtime_ns,
        "output_size": output_stat.st_size,
    }


def record_build(output_path: Path, store: CacheStore) -> None:
    """Remember that ``output_path`` was built from the current artifact."""
    stamp = _build_stamp(output_path, store)
    if stamp is None:
        return
    path = _build_record_path(store)
    records = _load_build_records(path)
    records[str(output_path.absolute())] = stamp
    with atomic_write(path) as f:
        f.write(json.dumps(records, indent=2, sort_keys=True).encode("utf-8"))


def is_up_to_date(output_path: Path, store: CacheStore) -> bool:
    """True if ``output_path`` is the unmodified table built from this artifact.

    The record names the artifact, so a table built from another source
    never counts as current.
    """
    current = _build_stamp(output_path, store)
    if current is None:
        return False
    records = _load_build_records(_build_record_path(store))
    return records.get(str(output_path.absolute())) == current


def write_table(store: CacheStore, output_path: Path, generated_at: int | None = None) -> int:
    """Convert the cached registry into a binary table at ``output_path``."""
    logger.info("Creating resource %s...", output_path.absolute())
    try:
        with atomic_write(output_path) as out, store.open_payload() as payload:
            count = encode_table(parse_registry(iter_lines(payload)), out, generated_at)
    except CORRUPT_ENTRY_ERRORS as e:
        store.destroy_corrupt(str(e))
        raise CacheCorruptError(store.path, str(e)) from e
    except OSError as e:
        raise ResourceWriteError(output_path, str(e)) from e
    logger.info("Added %d OUIs.", count)
    return count


def generate(
    url: str,
    storage_root: Path,
    output_dir: Path,
    output_file: str = DEFAULT_OUTPUT_FILE,
    offline: bool = False,
    force: bool = False,
    timeout: float = 30.0,
    session: requests.Session | None = None,
) -> GenerationResult:
    """Refresh the cache for ``url`` and regenerate the binary table.

    Args:
        url: Registry source URL.
        storage_root: Directory holding cache artifacts.
        output_dir: Directory receiving the table; reported back as the
            resource directory for the caller to register.
        output_file: Table file name inside ``output_dir``.
        offline: Use the cache as-is without contacting ``url``.
        force: Regenerate even if the table was already built from the
            current cache artifact.
        timeout: HTTP timeout in seconds.
        session: Optional requests session.

    Raises:
        NoDataAvailableError: No cache artifact exists after the refresh.
        OuiTableError: Any other failure of the run.
    """
    store = cache_store_for(url, ensure_directory(Path(storage_root)))
    cache_path = ensure_current(url, store, offline=offline, timeout=timeout, session=session)
    if not store.exists():
        raise NoDataAvailableError(cache_path)

    resource_dir = ensure_directory(Path(output_dir))
    output_path = resource_dir / output_file

    if not force and is_up_to_date(output_path, store):
        logger.info("Resource %s already built from cached data; skipping", output_path.absolute())
        return GenerationResult(output_path, resource_dir, cache_path, None, skipped=True)

    count = write_table(store, output_path)
    record_build(output_path, store)
    return GenerationResult(output_path, resource_dir, cache_path, count)
