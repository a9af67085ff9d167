"""Subresource-Integrity style digests.

An integrity string holds one or more whitespace-separated entries of the
form ``<algorithm>-<base64 digest>[?options]``, e.g.::

    sha512-z4PhNX7vuL3xVChQ1m2AB9Yg5AULVxXcg/SpIdNs6c5H0NE8XYXysP+DGNKHfuwvY7kxvUdBeoGlODJ6+SfaPg==

Only the strongest algorithm present is used for verification, and a file
satisfies the integrity when its digest matches any entry of that algorithm.
"""

from __future__ import annotations

import base64
import binascii
import re

from pydantic import BaseModel, ConfigDict

# Weakest to strongest.
ALGORITHMS: tuple[str, ...] = ("sha1", "sha256", "sha384", "sha512")
DEFAULT_ALGORITHM = "sha512"

_ENTRY_PATTERN = re.compile(
    r"^(?P<algorithm>[a-z0-9]+)-(?P<digest>[A-Za-z0-9+/]+={0,2})(?:\?(?P<options>\S*))?$"
)


class HashEntry(BaseModel):
    """A single ``algorithm-digest`` pair."""

    model_config = ConfigDict(frozen=True)

    algorithm: str
    digest: str  # base64
    options: str = ""

    @classmethod
    def from_bytes(cls, algorithm: str, raw: bytes) -> HashEntry:
        return cls(algorithm=algorithm, digest=base64.b64encode(raw).decode("ascii"))

    @property
    def hexdigest(self) -> str:
        return base64.b64decode(self.digest).hex()

    def __str__(self) -> str:
        text = f"{self.algorithm}-{self.digest}"
        return f"{text}?{self.options}" if self.options else text


class Integrity(BaseModel):
    """An expected (or computed) content digest, possibly multi-hash."""

    model_config = ConfigDict(frozen=True)

    entries: tuple[HashEntry, ...] = ()

    @classmethod
    def parse(cls, value: str | Integrity | None) -> Integrity:
        """Parse an integrity string.

        Unknown algorithms and malformed entries are skipped, so the result
        may be empty.
        """
        if isinstance(value, Integrity):
            return value
        if not value:
            return cls()
        entries = []
        for token in value.split():
            match = _ENTRY_PATTERN.match(token)
            if match is None or match.group("algorithm") not in ALGORITHMS:
                continue
            digest = match.group("digest")
            try:
                base64.b64decode(digest, validate=True)
            except binascii.Error:
                continue
            entries.append(
                HashEntry(
                    algorithm=match.group("algorithm"),
                    digest=digest,
                    options=match.group("options") or "",
                )
            )
        return cls(entries=tuple(entries))

    @property
    def is_empty(self) -> bool:
        return not self.entries

    @property
    def strongest_algorithm(self) -> str | None:
        present = {e.algorithm for e in self.entries}
        for algorithm in reversed(ALGORITHMS):
            if algorithm in present:
                return algorithm
        return None

    def digests_for(self, algorithm: str) -> set[str]:
        return {e.digest for e in self.entries if e.algorithm == algorithm}

    def satisfied_by(self, actual: Integrity) -> bool:
        """Whether ``actual`` matches this expectation on its strongest algorithm."""
        algorithm = self.strongest_algorithm
        if algorithm is None:
            return False
        return bool(self.digests_for(algorithm) & actual.digests_for(algorithm))

    def __str__(self) -> str:
        return " ".join(str(e) for e in self.entries)

    def __bool__(self) -> bool:
        return not self.is_empty

    def __eq__(self, other: object) -> bool:
        if isinstance(other, str):
            return str(self) == str(Integrity.parse(other))
        if isinstance(other, Integrity):
            return str(self) == str(other)
        return NotImplemented

    def __hash__(self) -> int:
        return hash(str(self))
