"""HTTP retrieval with progress reporting for installer artifacts."""

import os
from typing import Dict, Optional, Type

import requests
from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from glinstaller.errors import InstallerError


class DownloadService:
    """Downloads binaries and small text documents over HTTP."""

    def __init__(self, logger, console, requests_module=requests):
        self.logger = logger
        self.console = console
        self.requests = requests_module

    def download_file(
        self,
        url: str,
        dest_path: str,
        description: str = "Downloading...",
        mode: Optional[int] = None,
        error_cls: Type[InstallerError] = InstallerError,
    ):
        self.logger.info("Downloading %s to %s", url, dest_path)
        partial_path = f"{dest_path}.part"

        try:
            with self.requests.get(url, stream=True, timeout=60) as response:
                response.raise_for_status()
                total_size = int(response.headers.get("Content-Length", 0))

                os.makedirs(os.path.dirname(dest_path) or ".", exist_ok=True)

                with Progress(
                    SpinnerColumn(),
                    TextColumn("[progress.description]{task.description}"),
                    BarColumn(),
                    TaskProgressColumn(),
                    "•",
                    TimeElapsedColumn(),
                    console=self.console,
                ) as progress:
                    task = progress.add_task(f"[cyan]{description}", total=total_size or None)
                    with open(partial_path, "wb") as file_obj:
                        for chunk in response.iter_content(chunk_size=8192):
                            if not chunk:
                                continue
                            file_obj.write(chunk)
                            progress.update(task, advance=len(chunk))

            if mode is not None:
                os.chmod(partial_path, mode)
            os.replace(partial_path, dest_path)

        except (self.requests.RequestException, OSError) as exc:
            if os.path.exists(partial_path):
                os.remove(partial_path)
            raise error_cls(f"Download failed for {description}: {exc}") from exc

    def fetch_text(
        self,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        timeout: float = 30,
        error_cls: Type[InstallerError] = InstallerError,
    ) -> str:
        self.logger.debug("Fetching %s", url)
        try:
            response = self.requests.get(url, headers=headers or {}, timeout=timeout)
            response.raise_for_status()
        except self.requests.RequestException as exc:
            raise error_cls(f"Request to {url} failed: {exc}") from exc
        return response.text
