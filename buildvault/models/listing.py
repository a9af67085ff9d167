"""Artifact listing models — named artifacts with their expected integrity."""

from __future__ import annotations

import json
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from buildvault.errors import ConfigurationError


class ListingEntry(BaseModel):
    """One artifact in a listing. ``integrity`` is empty until generated."""

    model_config = ConfigDict(frozen=True)

    url: str
    integrity: str = ""


class ArtifactListing(BaseModel):
    """A JSON document mapping artifact names to ``{url, integrity}``.

    Examples
    --------
    >>> listing = ArtifactListing(entries={
    ...     "ti.map": ListingEntry(url="https://example.com/ti.map-5.0.0.zip"),
    ... })
    >>> listing.entries["ti.map"].integrity
    ''
    """

    model_config = ConfigDict(frozen=True)

    entries: dict[str, ListingEntry] = Field(default_factory=dict)

    @classmethod
    def load(cls, path: Path) -> ArtifactListing:
        try:
            raw = json.loads(Path(path).read_text(encoding="utf-8"))
            return cls(entries=raw)
        except (json.JSONDecodeError, ValidationError) as exc:
            raise ConfigurationError(f"Invalid artifact listing {path}: {exc}") from exc

    def save(self, path: Path) -> None:
        """Write the listing as sorted, indented JSON."""
        payload = {
            name: entry.model_dump() for name, entry in sorted(self.entries.items())
        }
        Path(path).write_text(
            json.dumps(payload, indent=2, sort_keys=True) + "\n", encoding="utf-8"
        )

    def with_integrity(self, name: str, integrity: str) -> ArtifactListing:
        """Return a copy with ``name``'s integrity replaced."""
        entries = dict(self.entries)
        entries[name] = entries[name].model_copy(update={"integrity": integrity})
        return self.model_copy(update={"entries": entries})
