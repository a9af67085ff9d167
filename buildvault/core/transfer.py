"""HTTP download into a cache slot, with Rich progress display.

The body is streamed to a ``.part`` sibling, flushed and fsynced, then
atomically renamed onto the destination. A reader that sees the
destination path therefore always sees fully written bytes.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

import requests
from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

from buildvault.errors import TransferError

logger = logging.getLogger(__name__)


def _progress_for(total: int | None, console: Console | None) -> Progress:
    """Determinate bar when the length is known, a spinner otherwise."""
    if total:
        return Progress(
            TextColumn("  {task.description}"),
            BarColumn(bar_width=40),
            TextColumn("{task.percentage:>3.0f}%"),
            DownloadColumn(),
            TimeRemainingColumn(),
            console=console,
            transient=True,
        )
    return Progress(
        SpinnerColumn(),
        TextColumn("  {task.description}"),
        DownloadColumn(),
        TransferSpeedColumn(),
        console=console,
        transient=True,
    )


class Downloader:
    """Streams a URL to disk.

    Parameters
    ----------
    session:
        A ``requests.Session`` (or compatible object). Injected so tests can
        substitute a fake transport.
    timeout:
        Seconds for connect and per-read timeouts.
    chunk_size:
        Bytes per streamed chunk.
    show_progress:
        Render a Rich progress display while downloading.
    console:
        Rich console for the progress display.
    """

    def __init__(
        self,
        session: Any | None = None,
        *,
        timeout: float = 60.0,
        chunk_size: int = 64 * 1024,
        show_progress: bool = True,
        console: Console | None = None,
    ) -> None:
        self._session = session if session is not None else requests.Session()
        self._timeout = timeout
        self._chunk_size = chunk_size
        self._show_progress = show_progress
        self._console = console
        self.transfers = 0

    def download(self, url: str, destination: Path, part_path: Path) -> Path:
        """Download ``url`` to ``destination`` via ``part_path``.

        Raises
        ------
        TransferError
            On connection failure or an HTTP status >= 400. The partial
            file is removed.
        """
        logger.info("Downloading %s", url)
        self.transfers += 1
        destination.parent.mkdir(parents=True, exist_ok=True)
        try:
            response = self._session.get(url, stream=True, timeout=self._timeout)
        except requests.RequestException as exc:
            logger.error("Failed to download %s: %s", url, exc)
            raise TransferError(url, f"Failed to download {url}: {exc}") from exc

        with response:
            if response.status_code >= 400:
                message = (
                    f"Request for {url} failed with HTTP status code "
                    f"{response.status_code} {response.reason or ''}".rstrip()
                )
                logger.error(message)
                raise TransferError(url, message, status_code=response.status_code)

            total = _content_length(response.headers)
            try:
                self._write_body(response, url, part_path, total)
            except (requests.RequestException, OSError) as exc:
                part_path.unlink(missing_ok=True)
                logger.error("Failed to download %s: %s", url, exc)
                raise TransferError(url, f"Failed to download {url}: {exc}") from exc

        os.replace(part_path, destination)
        logger.debug("Stored %s at %s", url, destination)
        return destination

    def _write_body(self, response: Any, url: str, part_path: Path, total: int | None) -> None:
        chunks = response.iter_content(chunk_size=self._chunk_size)
        with open(part_path, "wb") as fh:
            if not self._show_progress:
                for chunk in chunks:
                    if chunk:
                        fh.write(chunk)
            else:
                with _progress_for(total, self._console) as progress:
                    task = progress.add_task(url.rsplit("/", 1)[-1], total=total)
                    for chunk in chunks:
                        if chunk:
                            fh.write(chunk)
                            progress.update(task, advance=len(chunk))
            fh.flush()
            os.fsync(fh.fileno())


def _content_length(headers: Any) -> int | None:
    value = headers.get("content-length") if headers else None
    try:
        return int(value) if value is not None else None
    except ValueError:
        return None
