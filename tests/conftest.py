"""Shared test fixtures for buildvault."""

from __future__ import annotations

import json
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest
import requests

from buildvault.core.cache_root import CacheRoot
from buildvault.core.hasher import integrity_of_chunks
from buildvault.core.integrity_cache import IntegrityCache
from buildvault.core.materializer import DependencyMaterializer
from buildvault.models.integrity import Integrity


# ---------------------------------------------------------------------------
# Fake HTTP transport
# ---------------------------------------------------------------------------


class FakeResponse:
    """Just enough of ``requests.Response`` for the downloader."""

    def __init__(
        self,
        body: bytes,
        status_code: int = 200,
        reason: str = "OK",
        send_length: bool = True,
    ) -> None:
        self._body = body
        self.status_code = status_code
        self.reason = reason
        self.headers = {"content-length": str(len(body))} if send_length else {}

    def iter_content(self, chunk_size: int = 1024):
        for start in range(0, len(self._body), chunk_size):
            yield self._body[start:start + chunk_size]

    def __enter__(self) -> FakeResponse:
        return self

    def __exit__(self, *exc: Any) -> None:
        return None


class FakeSession:
    """Serves registered URL bodies and records every request.

    Several bodies may be registered for one URL; successive requests
    receive successive bodies and the last one repeats.
    """

    def __init__(self) -> None:
        self.routes: dict[str, list[FakeResponse | Exception]] = {}
        self.requests: list[str] = []
        self._lock = threading.Lock()

    def serve(self, url: str, *bodies: bytes | FakeResponse | Exception) -> None:
        self.routes[url] = [
            FakeResponse(b) if isinstance(b, bytes) else b for b in bodies
        ]

    def get(self, url: str, stream: bool = False, timeout: float | None = None) -> FakeResponse:
        with self._lock:
            self.requests.append(url)
            queue = self.routes.get(url)
            if not queue:
                return FakeResponse(b"not found", status_code=404, reason="Not Found")
            item = queue.pop(0) if len(queue) > 1 else queue[0]
        if isinstance(item, Exception):
            raise item
        return item

    def count(self, url: str) -> int:
        return self.requests.count(url)


@pytest.fixture
def session() -> FakeSession:
    return FakeSession()


@pytest.fixture
def fake_response() -> type[FakeResponse]:
    """The FakeResponse class, for routes that need a status or no length."""
    return FakeResponse


@pytest.fixture
def connection_error() -> Exception:
    return requests.ConnectionError("connection refused")


# ---------------------------------------------------------------------------
# Cache
# ---------------------------------------------------------------------------


@pytest.fixture
def cache_root(tmp_path: Path) -> CacheRoot:
    """Provide a fresh cache root in a temp directory."""
    return CacheRoot(tmp_path / "cache")


@pytest.fixture
def cache(cache_root: CacheRoot, session: FakeSession) -> IntegrityCache:
    """Provide an IntegrityCache wired to the fake session, progress off."""
    return IntegrityCache(cache_root, session, show_progress=False)


@pytest.fixture
def sri() -> Callable[[bytes], Integrity]:
    """Factory fixture: sha512 integrity of some bytes."""

    def _factory(data: bytes, algorithm: str = "sha512") -> Integrity:
        return integrity_of_chunks([data], (algorithm,))

    return _factory


# ---------------------------------------------------------------------------
# Package trees
# ---------------------------------------------------------------------------


@pytest.fixture
def make_package() -> Callable[..., Path]:
    """Factory fixture: write ``<base>/<module_id>/package.json`` plus files."""

    def _factory(
        base: Path,
        module_id: str,
        dependencies: dict[str, str] | None = None,
        files: dict[str, str] | None = None,
        version: str = "1.0.0",
    ) -> Path:
        root = base / module_id
        root.mkdir(parents=True, exist_ok=True)
        manifest = {
            "name": module_id,
            "version": version,
            "dependencies": dependencies or {},
        }
        (root / "package.json").write_text(json.dumps(manifest), encoding="utf-8")
        for rel, content in (files or {}).items():
            target = root / rel
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(content, encoding="utf-8")
        return root

    return _factory


@pytest.fixture
def registry(tmp_path: Path) -> Path:
    """A directory standing in for a top-level node_modules."""
    path = tmp_path / "registry" / "node_modules"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def dest(tmp_path: Path) -> Path:
    path = tmp_path / "dest" / "node_modules"
    path.mkdir(parents=True)
    return path


@pytest.fixture
def materializer(registry: Path) -> DependencyMaterializer:
    return DependencyMaterializer([registry])
