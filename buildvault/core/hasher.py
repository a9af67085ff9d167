"""Streaming integrity helpers.

Files are hashed in chunks so large archives are never loaded whole.
"""

from __future__ import annotations

import hashlib
from collections.abc import Iterable
from pathlib import Path

from buildvault.errors import ConfigurationError
from buildvault.models.integrity import ALGORITHMS, DEFAULT_ALGORITHM, HashEntry, Integrity

_CHUNK_SIZE = 64 * 1024


def check_algorithms(algorithms: Iterable[str]) -> tuple[str, ...]:
    """Return ``algorithms`` as a tuple, or raise ConfigurationError if any is unsupported."""
    algorithms = tuple(algorithms)
    unsupported = [name for name in algorithms if name not in ALGORITHMS]
    if unsupported:
        raise ConfigurationError(f"Unsupported integrity algorithm: {', '.join(unsupported)}")
    return algorithms


def integrity_of_chunks(
    chunks: Iterable[bytes], algorithms: Iterable[str] = (DEFAULT_ALGORITHM,)
) -> Integrity:
    """Compute an Integrity over a stream of byte chunks."""
    algorithms = check_algorithms(algorithms)
    hashers = {name: hashlib.new(name) for name in algorithms}
    for chunk in chunks:
        for h in hashers.values():
            h.update(chunk)
    return Integrity(
        entries=tuple(HashEntry.from_bytes(name, h.digest()) for name, h in hashers.items())
    )


def iter_file(path: Path, chunk_size: int = _CHUNK_SIZE) -> Iterable[bytes]:
    with open(path, "rb") as fh:
        while True:
            chunk = fh.read(chunk_size)
            if not chunk:
                return
            yield chunk


def integrity_of_file(
    path: Path, algorithms: Iterable[str] = (DEFAULT_ALGORITHM,)
) -> Integrity:
    """Return the Integrity of a file on disk.

    Raises FileNotFoundError if the file does not exist.
    """
    return integrity_of_chunks(iter_file(Path(path)), algorithms)


def check_file(path: Path, expected: Integrity) -> tuple[bool, Integrity]:
    """Hash ``path`` with ``expected``'s strongest algorithm and compare.

    Returns ``(matched, actual)`` so callers can report the computed digest.
    """
    algorithm = expected.strongest_algorithm or DEFAULT_ALGORITHM
    actual = integrity_of_file(path, (algorithm,))
    return expected.satisfied_by(actual), actual
