"""Tests for safe archive unpacking."""

from __future__ import annotations

import io
import json
import tarfile
import zipfile
from pathlib import Path

import pytest

from buildvault.core.archive import extract_archive, find_package_root
from buildvault.errors import ArchiveError


def _write_tar(path: Path, members: dict[str, bytes]) -> Path:
    with tarfile.open(path, "w:gz") as archive:
        for name, data in members.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            archive.addfile(info, io.BytesIO(data))
    return path


class TestExtract:
    def test_npm_style_tarball(self, tmp_path: Path):
        manifest = json.dumps({"name": "left-pad", "version": "1.3.0"}).encode()
        archive = _write_tar(
            tmp_path / "left-pad-1.3.0.tgz",
            {"package/package.json": manifest, "package/index.js": b"module.exports = 1;"},
        )
        out = tmp_path / "out"
        assert extract_archive(archive, out) == 2
        assert find_package_root(out, "package.json") == out / "package"
        assert (out / "package" / "index.js").read_bytes() == b"module.exports = 1;"

    def test_zip_with_manifest_at_top(self, tmp_path: Path):
        archive = tmp_path / "ti.map-5.0.0.zip"
        with zipfile.ZipFile(archive, "w") as zf:
            zf.writestr("package.json", "{}")
            zf.writestr("lib/map.js", "//")
        out = tmp_path / "out"
        extract_archive(archive, out)
        assert find_package_root(out, "package.json") == out
        assert (out / "lib" / "map.js").exists()

    def test_path_traversal_rejected(self, tmp_path: Path):
        archive = _write_tar(tmp_path / "evil.tgz", {"../escape.txt": b"x"})
        with pytest.raises(ArchiveError):
            extract_archive(archive, tmp_path / "out")
        assert not (tmp_path / "escape.txt").exists()

    def test_symlink_rejected(self, tmp_path: Path):
        archive = tmp_path / "link.tar"
        with tarfile.open(archive, "w") as tf:
            info = tarfile.TarInfo("package/link")
            info.type = tarfile.SYMTYPE
            info.linkname = "/etc/passwd"
            tf.addfile(info)
        with pytest.raises(ArchiveError):
            extract_archive(archive, tmp_path / "out")

    def test_unsupported_format(self, tmp_path: Path):
        archive = tmp_path / "module.rar"
        archive.write_bytes(b"Rar!")
        with pytest.raises(ArchiveError, match="Unsupported"):
            extract_archive(archive, tmp_path / "out")

    def test_corrupt_zip(self, tmp_path: Path):
        archive = tmp_path / "broken.zip"
        archive.write_bytes(b"not a zip")
        with pytest.raises(ArchiveError):
            extract_archive(archive, tmp_path / "out")

    def test_no_manifest(self, tmp_path: Path):
        (tmp_path / "a").mkdir()
        (tmp_path / "b").mkdir()
        with pytest.raises(ArchiveError):
            find_package_root(tmp_path, "package.json")
