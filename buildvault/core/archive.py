"""Safe unpacking of verified package archives.

Members are validated before anything is written: absolute paths, ``..``
segments, links and special files are rejected. Only zip and tar (plain,
gzip, bzip2, xz) archives are supported.
"""

from __future__ import annotations

import logging
import shutil
import tarfile
import zipfile
from pathlib import Path, PurePosixPath

from buildvault.errors import ArchiveError

logger = logging.getLogger(__name__)

TAR_SUFFIXES = (".tar", ".tar.gz", ".tgz", ".tar.xz", ".txz", ".tar.bz2", ".tbz2")


def _member_path(name: str) -> Path:
    relative = PurePosixPath(name.replace("\\", "/"))
    if relative.is_absolute():
        raise ArchiveError(f"Absolute path in archive: {name}")
    parts = [part for part in relative.parts if part not in ("", ".")]
    if not parts or ".." in parts:
        raise ArchiveError(f"Unsafe path in archive: {name}")
    return Path(*parts)


def _extract_zip(archive_path: Path, destination: Path) -> int:
    count = 0
    with zipfile.ZipFile(archive_path) as archive:
        members = [(info, _member_path(info.filename)) for info in archive.infolist()]
        for info, _ in members:
            # Unix mode lives in the high word; S_IFLNK = 0o120000
            if (info.external_attr >> 16) & 0o170000 == 0o120000:
                raise ArchiveError(f"Link in archive: {info.filename}")
        for info, relative in members:
            target = destination / relative
            if info.is_dir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            with archive.open(info) as source, target.open("wb") as out:
                shutil.copyfileobj(source, out)
            count += 1
    return count


def _extract_tar(archive_path: Path, destination: Path) -> int:
    count = 0
    with tarfile.open(archive_path, mode="r:*") as archive:
        members = []
        for member in archive.getmembers():
            relative = _member_path(member.name)
            if not (member.isdir() or member.isfile()):
                raise ArchiveError(f"Link or special file in archive: {member.name}")
            members.append((member, relative))
        for member, relative in members:
            target = destination / relative
            if member.isdir():
                target.mkdir(parents=True, exist_ok=True)
                continue
            target.parent.mkdir(parents=True, exist_ok=True)
            source = archive.extractfile(member)
            if source is None:
                raise ArchiveError(f"Cannot read archive member: {member.name}")
            with source, target.open("wb") as out:
                shutil.copyfileobj(source, out)
            count += 1
    return count


def extract_archive(archive_path: Path, destination: Path) -> int:
    """Unpack ``archive_path`` into ``destination`` and return the file count.

    Raises
    ------
    ArchiveError
        On an unsupported format, a corrupt archive or an unsafe member.
    """
    archive_path = Path(archive_path)
    destination.mkdir(parents=True, exist_ok=True)
    name = archive_path.name.lower()
    try:
        if name.endswith(".zip"):
            count = _extract_zip(archive_path, destination)
        elif name.endswith(TAR_SUFFIXES):
            count = _extract_tar(archive_path, destination)
        else:
            raise ArchiveError(f"Unsupported archive format: {archive_path}")
    except (zipfile.BadZipFile, tarfile.TarError) as exc:
        raise ArchiveError(f"Cannot unpack {archive_path}: {exc}") from exc
    logger.debug("Unpacked %d file(s) from %s into %s", count, archive_path, destination)
    return count


def find_package_root(unpacked: Path, manifest_name: str) -> Path:
    """Return the directory holding the manifest inside an unpacked archive.

    Accepts the manifest at the top level or inside a single top-level
    directory (npm tarballs use ``package/``).
    """
    if (unpacked / manifest_name).is_file():
        return unpacked
    children = [child for child in unpacked.iterdir() if child.is_dir()]
    if len(children) == 1 and (children[0] / manifest_name).is_file():
        return children[0]
    raise ArchiveError(f"No {manifest_name} at the top of archive contents in {unpacked}")
