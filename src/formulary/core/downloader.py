"""Download functionality with progress reporting."""

from pathlib import Path
import logging

import httpx
from rich.progress import (
    Progress,
    BarColumn,
    DownloadColumn,
    TransferSpeedColumn,
    TimeRemainingColumn,
)

from formulary.core.config import get_config

logger = logging.getLogger(__name__)

USER_AGENT = "formulary"


class DownloadError(Exception):
    """Error during download."""

    pass


def new_client() -> httpx.Client:
    """HTTP client used for archive downloads."""
    return httpx.Client(
        follow_redirects=True,
        timeout=60.0,
        headers={"User-Agent": USER_AGENT},
    )


def download_file(
    url: str,
    dest: Path | None = None,
    filename: str | None = None,
    show_progress: bool = True,
    client: httpx.Client | None = None,
) -> Path:
    """Download a file from URL.

    Args:
        url: URL to download from
        dest: Destination directory (defaults to cache dir)
        filename: Filename to save as (defaults to URL filename)
        show_progress: Whether to show progress bar
        client: HTTP client to use (a new one is created and closed otherwise)

    Returns:
        Path to downloaded file

    The body is written to a .part file which is only renamed into place once
    the transfer completes.
    """
    if dest is None:
        dest = get_config().cache_dir
    dest.mkdir(parents=True, exist_ok=True)

    if filename is None:
        filename = url.rstrip("/").split("/")[-1]

    file_path = dest / filename
    part_path = dest / f"{filename}.part"

    own_client = client is None
    if own_client:
        client = new_client()

    logger.debug("Downloading %s -> %s", url, file_path)
    try:
        with client.stream("GET", url) as response:
            if response.status_code != 200:
                raise DownloadError(
                    f"Failed to download {url}: HTTP {response.status_code}"
                )

            total = int(response.headers.get("content-length", 0))

            with open(part_path, "wb") as f:
                if show_progress and total > 0:
                    with Progress(
                        "[progress.description]{task.description}",
                        BarColumn(),
                        DownloadColumn(),
                        TransferSpeedColumn(),
                        TimeRemainingColumn(),
                    ) as progress:
                        task = progress.add_task(f"Downloading {filename}", total=total)
                        for chunk in response.iter_bytes(chunk_size=8192):
                            f.write(chunk)
                            progress.update(task, advance=len(chunk))
                else:
                    for chunk in response.iter_bytes(chunk_size=8192):
                        f.write(chunk)
    except httpx.HTTPError as e:
        part_path.unlink(missing_ok=True)
        raise DownloadError(f"Failed to download {url}: {e}")
    except DownloadError:
        part_path.unlink(missing_ok=True)
        raise
    finally:
        if own_client:
            client.close()

    part_path.replace(file_path)
    return file_path
