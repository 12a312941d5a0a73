"""Tests for end-to-end table generation."""

import os
import zipfile

import pytest

from conftest import (
    SAMPLE_RECORDS,
    SAMPLE_REGISTRY,
    SOURCE_URL,
    damage_entry,
    make_response,
    make_session,
)
from ouitable.cache.store import DATA_ENTRY, HEADERS_ENTRY
from ouitable.core.exceptions import (
    CacheCorruptError,
    DirectoryCreationError,
    NetworkError,
    NoDataAvailableError,
)
from ouitable.pipeline import cache_filename, cache_store_for, generate, is_up_to_date
from ouitable.registry.encoder import decode_table


def _records(path):
    with open(path, "rb") as f:
        return [(r.prefix, r.organization) for r in decode_table(f).records]


@pytest.fixture
def dirs(tmp_path):
    return tmp_path / "repo", tmp_path / "generated"


class TestCacheFilename:
    """Test per-source artifact naming."""

    def test_stable(self):
        """Test the same URL always maps to the same artifact."""
        assert cache_filename(SOURCE_URL) == cache_filename(SOURCE_URL)
        assert cache_filename(SOURCE_URL).endswith(".zip")

    def test_distinct_sources(self):
        """Test different URLs get different artifacts."""
        assert cache_filename(SOURCE_URL) != cache_filename(SOURCE_URL + "?v=2")


class TestGenerate:
    """Test the generation pipeline."""

    def test_fetch_and_generate(self, dirs, registry_bytes):
        """Test a fresh run fetches, caches, and writes the table."""
        storage_root, output_dir = dirs
        session = make_session(make_response(200, registry_bytes, {"ETag": '"v1"'}))

        result = generate(SOURCE_URL, storage_root, output_dir, session=session)

        assert result.record_count == len(SAMPLE_RECORDS)
        assert result.skipped is False
        assert result.resource_dir == output_dir
        assert result.output_path == output_dir / "oui.dat"
        assert result.cache_path.parent == storage_root
        assert _records(result.output_path) == SAMPLE_RECORDS
        assert sorted(p.name for p in output_dir.iterdir()) == ["oui.dat"]

    def test_custom_output_file(self, dirs, registry_bytes):
        """Test the output file name is configurable."""
        storage_root, output_dir = dirs
        session = make_session(make_response(200, registry_bytes))
        result = generate(
            SOURCE_URL, storage_root, output_dir, output_file="vendors.bin", session=session
        )
        assert result.output_path.name == "vendors.bin"
        assert result.output_path.is_file()

    def test_offline_without_cache(self, dirs):
        """Test offline mode with no cache has no data to convert."""
        storage_root, output_dir = dirs
        session = make_session()

        with pytest.raises(NoDataAvailableError) as exc_info:
            generate(SOURCE_URL, storage_root, output_dir, offline=True, session=session)

        session.get.assert_not_called()
        assert exc_info.value.path.parent == storage_root
        assert not output_dir.exists()

    def test_offline_with_cache(self, dirs, registry_bytes):
        """Test offline mode converts the cached payload."""
        storage_root, output_dir = dirs
        cache_store_for(SOURCE_URL, storage_root).write({}, [registry_bytes])
        session = make_session()

        result = generate(SOURCE_URL, storage_root, output_dir, offline=True, session=session)

        session.get.assert_not_called()
        assert _records(result.output_path) == SAMPLE_RECORDS

    def test_network_failure_is_fatal(self, dirs, registry_bytes):
        """Test an online run fails instead of using a stale cache."""
        import requests

        storage_root, output_dir = dirs
        cache_store_for(SOURCE_URL, storage_root).write({}, [registry_bytes])
        session = make_session(requests.ConnectionError("down"))

        with pytest.raises(NetworkError):
            generate(SOURCE_URL, storage_root, output_dir, session=session)
        assert not (output_dir / "oui.dat").exists()

    def test_corrupt_payload(self, dirs):
        """Test a cache without data fails and is destroyed."""
        storage_root, output_dir = dirs
        store = cache_store_for(SOURCE_URL, storage_root)
        storage_root.mkdir(parents=True)
        with zipfile.ZipFile(store.path, "w") as zf:
            zf.writestr(HEADERS_ENTRY, "ETag=abc\n")

        with pytest.raises(CacheCorruptError):
            generate(SOURCE_URL, storage_root, output_dir, offline=True)

        assert not store.exists()
        assert list(output_dir.iterdir()) == []

    def test_damaged_payload(self, dirs):
        """Test payload data that fails to inflate is fatal and destroys the cache."""
        storage_root, output_dir = dirs
        store = cache_store_for(SOURCE_URL, storage_root)
        store.write({"ETag": "abc"}, [SAMPLE_REGISTRY.encode("utf-8")] * 50)
        damage_entry(store.path, DATA_ENTRY, length=256)

        with pytest.raises(CacheCorruptError) as exc_info:
            generate(SOURCE_URL, storage_root, output_dir, offline=True)

        assert exc_info.value.path == store.path
        assert not store.exists()
        assert list(output_dir.iterdir()) == []

    def test_skip_when_up_to_date(self, dirs, registry_bytes):
        """Test an output already built from the current cache is left alone."""
        storage_root, output_dir = dirs
        store = cache_store_for(SOURCE_URL, storage_root)
        store.write({}, [registry_bytes])
        os.utime(store.path, (1_000_000, 1_000_000))

        first = generate(SOURCE_URL, storage_root, output_dir, offline=True)
        content = first.output_path.read_bytes()
        second = generate(SOURCE_URL, storage_root, output_dir, offline=True)

        assert second.skipped is True
        assert second.record_count is None
        assert second.output_path.read_bytes() == content

    def test_force_regenerates(self, dirs, registry_bytes):
        """Test force rewrites an up-to-date output."""
        storage_root, output_dir = dirs
        store = cache_store_for(SOURCE_URL, storage_root)
        store.write({}, [registry_bytes])
        os.utime(store.path, (1_000_000, 1_000_000))
        generate(SOURCE_URL, storage_root, output_dir, offline=True)

        result = generate(SOURCE_URL, storage_root, output_dir, offline=True, force=True)

        assert result.skipped is False
        assert result.record_count == len(SAMPLE_RECORDS)

    def test_stale_output_regenerated(self, dirs, registry_bytes):
        """Test an output older than the cache is rebuilt."""
        storage_root, output_dir = dirs
        store = cache_store_for(SOURCE_URL, storage_root)
        store.write({}, [registry_bytes])
        output_dir.mkdir(parents=True)
        stale = output_dir / "oui.dat"
        stale.write_bytes(b"old")
        os.utime(stale, (1_000_000, 1_000_000))

        assert not is_up_to_date(stale, store)
        result = generate(SOURCE_URL, storage_root, output_dir, offline=True)
        assert result.skipped is False
        assert _records(stale) == SAMPLE_RECORDS

    def test_idempotent_with_unchanged_remote(self, dirs, registry_bytes):
        """Test two runs against an unchanged source give the same records."""
        storage_root, output_dir = dirs
        session = make_session(
            make_response(200, registry_bytes, {"ETag": '"v1"'}),
            make_response(304),
        )

        first = generate(SOURCE_URL, storage_root, output_dir, session=session)
        first_records = _records(first.output_path)
        second = generate(SOURCE_URL, storage_root, output_dir, force=True, session=session)

        assert _records(second.output_path) == first_records == SAMPLE_RECORDS
        _, kwargs = session.get.call_args
        assert kwargs["headers"]["If-None-Match"] == '"v1"'

    def test_storage_root_not_creatable(self, tmp_path):
        """Test an impossible storage root is reported."""
        blocker = tmp_path / "blocker"
        blocker.write_text("file, not a directory")

        with pytest.raises(DirectoryCreationError) as exc_info:
            generate(SOURCE_URL, blocker / "repo", tmp_path / "out", offline=True)
        assert exc_info.value.path == blocker / "repo"

    def test_source_switch_rebuilds(self, dirs, registry_bytes):
        """Test switching to a source with an older cache still rebuilds."""
        storage_root, output_dir = dirs
        other_url = SOURCE_URL + "?mirror=1"
        first_store = cache_store_for(SOURCE_URL, storage_root)
        first_store.write({}, [registry_bytes])
        other_store = cache_store_for(other_url, storage_root)
        other_store.write({}, [b"ACDE48     (base 16)\t\tPrivate\n"])
        os.utime(other_store.path, (1_000_000, 1_000_000))

        generate(SOURCE_URL, storage_root, output_dir, offline=True)
        output_path = output_dir / "oui.dat"
        assert not is_up_to_date(output_path, other_store)

        result = generate(other_url, storage_root, output_dir, offline=True)

        assert result.skipped is False
        assert _records(result.output_path) == [(b"\xac\xde\x48", "Private")]

    def test_edited_output_rebuilds(self, dirs, registry_bytes):
        """Test an output changed after it was built is regenerated."""
        storage_root, output_dir = dirs
        store = cache_store_for(SOURCE_URL, storage_root)
        store.write({}, [registry_bytes])
        first = generate(SOURCE_URL, storage_root, output_dir, offline=True)
        first.output_path.write_bytes(b"tampered")

        result = generate(SOURCE_URL, storage_root, output_dir, offline=True)

        assert result.skipped is False
        assert _records(result.output_path) == SAMPLE_RECORDS
