"""Adversarial tests: corrupted, truncated or swapped cache entries.

No cache entry is ever trusted by presence. Every read re-verifies, and a
stale entry is discarded and fetched again exactly once.
"""

from __future__ import annotations

import threading

import pytest

from buildvault.core.integrity_cache import IntegrityCache
from buildvault.errors import IntegrityMismatch
from buildvault.models.locator import SourceLocator

URL = "https://example.com/dist/mobilesdk-12.0.0-linux.zip"
PAYLOAD = b"genuine sdk archive" * 100


def _entry(cache: IntegrityCache):
    return cache.cache_root.entry_path(SourceLocator.parse(URL))


class TestCorruptionRecovery:
    def test_corrupted_entry_is_refetched_once(self, cache: IntegrityCache, session, sri):
        session.serve(URL, PAYLOAD)
        cache.cache_root.ensure()
        _entry(cache).write_bytes(b"bit rot")

        path = cache.fetch_verified(URL, sri(PAYLOAD))

        assert path.read_bytes() == PAYLOAD
        assert session.count(URL) == 1

    def test_truncated_entry_is_refetched(self, cache: IntegrityCache, session, sri):
        session.serve(URL, PAYLOAD)
        cache.fetch_verified(URL, sri(PAYLOAD))
        _entry(cache).write_bytes(PAYLOAD[:10])

        cache.fetch_verified(URL, sri(PAYLOAD))

        assert _entry(cache).read_bytes() == PAYLOAD
        assert session.count(URL) == 2

    def test_entry_valid_for_old_digest_is_replaced(self, cache: IntegrityCache, session, sri):
        # Same file name, new release: the old bytes no longer match.
        session.serve(URL, b"release 1", b"release 2")
        cache.fetch_verified(URL, sri(b"release 1"))
        path = cache.fetch_verified(URL, sri(b"release 2"))
        assert path.read_bytes() == b"release 2"
        assert session.count(URL) == 2

    def test_refetch_still_corrupt_is_not_retried(self, cache: IntegrityCache, session, sri):
        session.serve(URL, b"still wrong")
        cache.cache_root.ensure()
        _entry(cache).write_bytes(b"bit rot")

        with pytest.raises(IntegrityMismatch):
            cache.fetch_verified(URL, sri(PAYLOAD))

        assert session.count(URL) == 1
        assert _entry(cache).read_bytes() == b"still wrong"

    def test_weaker_algorithm_cannot_vouch(self, cache: IntegrityCache, session, sri):
        # Only the strongest algorithm in the expectation counts.
        session.serve(URL, b"attacker bytes")
        expected = f"{sri(b'attacker bytes', 'sha256')} {sri(PAYLOAD)}"
        with pytest.raises(IntegrityMismatch):
            cache.fetch_verified(URL, expected)

    def test_stale_part_file_does_not_leak(self, cache: IntegrityCache, session, sri):
        session.serve(URL, PAYLOAD)
        cache.cache_root.ensure()
        cache.cache_root.part_path(SourceLocator.parse(URL)).write_bytes(b"half a download")
        path = cache.fetch_verified(URL, sri(PAYLOAD))
        assert path.read_bytes() == PAYLOAD


class TestSingleFlight:
    def test_concurrent_same_locator_downloads_once(self, cache: IntegrityCache, session, sri):
        session.serve(URL, PAYLOAD)
        expected = sri(PAYLOAD)
        results: list = []
        errors: list = []
        start = threading.Barrier(8, timeout=5)

        def worker():
            start.wait()
            try:
                results.append(cache.fetch_verified(URL, expected))
            except Exception as exc:  # surfaced via the assertion below
                errors.append(exc)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert len(set(results)) == 1
        assert session.count(URL) == 1

    def test_concurrent_different_locators(self, cache: IntegrityCache, session, sri):
        urls = [f"https://example.com/dist/module-{i}.zip" for i in range(4)]
        for i, url in enumerate(urls):
            session.serve(url, f"module {i}".encode())

        threads = [
            threading.Thread(
                target=cache.fetch_verified, args=(url, sri(f"module {i}".encode()))
            )
            for i, url in enumerate(urls)
        ]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        for i, url in enumerate(urls):
            assert session.count(url) == 1
            assert cache.cache_root.entry_path(SourceLocator.parse(url)).read_bytes() == (
                f"module {i}".encode()
            )
