"""Download service with progress reporting."""

import os
from typing import Dict, Optional

from rich.progress import (
    BarColumn,
    Progress,
    SpinnerColumn,
    TaskProgressColumn,
    TextColumn,
    TimeElapsedColumn,
)

from cijob.errors import OperationFailure


class DownloadService:
    """Fetches remote files to disk."""

    def __init__(self, logger, console, requests_module, timeout: float = 60.0):
        self.logger = logger
        self.console = console
        self.requests = requests_module
        self.timeout = timeout

    def download_file(
        self,
        url: str,
        dest_path: str,
        description: str = "Downloading...",
        form_data: Optional[Dict[str, str]] = None,
    ):
        """Streams ``url`` into ``dest_path``.

        When ``form_data`` is given the request is a form POST (used by
        endpoints that take a token in the request body), otherwise a GET.
        """
        self.logger.info("Downloading %s to %s", url, dest_path)

        try:
            if form_data is not None:
                response = self.requests.post(url, data=form_data, stream=True, timeout=self.timeout)
            else:
                response = self.requests.get(url, stream=True, timeout=self.timeout)

            with response:
                response.raise_for_status()
                total_size = int(response.headers.get("Content-Length", 0))

                os.makedirs(os.path.dirname(os.path.abspath(dest_path)), exist_ok=True)

                with Progress(
                    SpinnerColumn(),
                    TextColumn("[progress.description]{task.description}"),
                    BarColumn(),
                    TaskProgressColumn(),
                    TimeElapsedColumn(),
                    console=self.console,
                    transient=True,
                ) as progress:
                    task = progress.add_task(f"[cyan]{description}", total=total_size or None)
                    with open(dest_path, "wb") as file_obj:
                        for chunk in response.iter_content(chunk_size=8192):
                            if not chunk:
                                continue
                            file_obj.write(chunk)
                            progress.update(task, advance=len(chunk))

        except self.requests.RequestException as exc:
            if os.path.exists(dest_path):
                try:
                    os.remove(dest_path)
                except OSError:
                    pass
            raise OperationFailure(f"Download failed for {description}: {exc}") from exc
