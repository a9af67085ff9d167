"""Tests for the streaming downloader."""

from __future__ import annotations

import io
from pathlib import Path

import pytest
from rich.console import Console

from buildvault.core.transfer import Downloader
from buildvault.errors import TransferError

URL = "https://example.com/files/sdk.zip"


class TestDownloader:
    def test_writes_body_and_removes_part(self, session, tmp_path: Path):
        session.serve(URL, b"a" * 10_000)
        dest = tmp_path / "out" / "sdk.zip"
        part = tmp_path / "out" / "sdk.zip.part"
        Downloader(session, chunk_size=1024, show_progress=False).download(URL, dest, part)
        assert dest.read_bytes() == b"a" * 10_000
        assert not part.exists()

    def test_counts_transfers(self, session, tmp_path: Path):
        session.serve(URL, b"data")
        downloader = Downloader(session, show_progress=False)
        downloader.download(URL, tmp_path / "a", tmp_path / "a.part")
        downloader.download(URL, tmp_path / "a", tmp_path / "a.part")
        assert downloader.transfers == 2

    def test_http_status_error_message(self, session, fake_response, tmp_path: Path):
        session.serve(URL, fake_response(b"", status_code=503, reason="Service Unavailable"))
        with pytest.raises(TransferError) as excinfo:
            Downloader(session, show_progress=False).download(
                URL, tmp_path / "a", tmp_path / "a.part"
            )
        assert "503 Service Unavailable" in str(excinfo.value)
        assert excinfo.value.url == URL
        assert not (tmp_path / "a").exists()

    def test_progress_with_known_length(self, session, tmp_path: Path):
        session.serve(URL, b"z" * 4096)
        console = Console(file=io.StringIO(), force_terminal=False)
        Downloader(session, show_progress=True, console=console).download(
            URL, tmp_path / "a", tmp_path / "a.part"
        )
        assert (tmp_path / "a").read_bytes() == b"z" * 4096

    def test_progress_without_length(self, session, fake_response, tmp_path: Path):
        session.serve(URL, fake_response(b"y" * 4096, send_length=False))
        console = Console(file=io.StringIO(), force_terminal=False)
        Downloader(session, show_progress=True, console=console).download(
            URL, tmp_path / "a", tmp_path / "a.part"
        )
        assert (tmp_path / "a").read_bytes() == b"y" * 4096

    def test_overwrites_previous_occupant(self, session, tmp_path: Path):
        dest = tmp_path / "a"
        dest.write_bytes(b"old")
        session.serve(URL, b"new")
        Downloader(session, show_progress=False).download(URL, dest, tmp_path / "a.part")
        assert dest.read_bytes() == b"new"
