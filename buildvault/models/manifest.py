"""Package manifest model (``package.json``)."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class PackageManifest(BaseModel):
    """The parts of a package manifest the materializer reads.

    Dependency constraint strings are kept but never compared; only the
    module ids (keys) drive materialization. Unknown fields are ignored.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    name: str = ""
    version: str = ""
    dependencies: dict[str, str] = Field(default_factory=dict)

    @property
    def dependency_ids(self) -> list[str]:
        """Declared dependency module ids, in manifest order."""
        return list(self.dependencies)
