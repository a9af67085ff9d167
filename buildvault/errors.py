"""Exception taxonomy shared by the integrity cache and the materializer.

Every error is terminal for the call that raised it. The only internal
recovery is the cache discarding a stale entry and downloading it again;
anything else propagates to the caller unchanged.
"""

from __future__ import annotations


class BuildVaultError(RuntimeError):
    """Base class for all buildvault failures."""


class ConfigurationError(BuildVaultError, ValueError):
    """Raised when a required input is missing, e.g. no digest for a remote fetch."""


class TransferError(BuildVaultError):
    """Raised on a connection failure or an HTTP status >= 400."""

    def __init__(self, url: str, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class IntegrityMismatch(BuildVaultError):
    """Raised when content does not satisfy its expected integrity digest."""

    def __init__(self, path: str, expected: str, actual: str) -> None:
        super().__init__(
            f"Integrity check failed for {path}: expected {expected}, got {actual}"
        )
        self.path = path
        self.expected = expected
        self.actual = actual


class PackageNotFoundError(BuildVaultError, ModuleNotFoundError):
    """Raised when no package root is found for a module id on the search path."""

    def __init__(self, module_id: str, searched: list[str]) -> None:
        super().__init__(
            f"Cannot find package '{module_id}' in any of: {', '.join(searched) or '<none>'}"
        )
        self.module_id = module_id
        self.searched = searched


class CopyVerificationError(BuildVaultError):
    """Raised when repeated copies never leave a manifest at the destination."""


class ManifestError(BuildVaultError, ValueError):
    """Raised when a package manifest cannot be parsed."""


class ArchiveError(BuildVaultError, ValueError):
    """Raised when a package archive cannot be unpacked safely."""
