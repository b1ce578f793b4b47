"""Static-analysis scanning service client."""

import glob
import os
import shutil
from typing import Callable

import requests

from cijob.constants import (
    BUILD_DIR,
    SCAN_INTERMEDIATE_DIR,
    SCAN_SUBMIT_URL,
    SCAN_TOOLS_ARCHIVE,
    SCAN_TOOLS_DIR,
    SCAN_TOOLS_GLOB,
    SCAN_TOOLS_URL,
    SCAN_UPLOAD_ARCHIVE,
    VERSION_FILE,
)
from cijob.errors import ConfigurationError, OperationFailure
from cijob.errors_catalog import actionable_error


class ScanUploader:
    """Downloads the scan tools and submits instrumented builds."""

    def __init__(
        self,
        logger,
        console,
        scan_token: str,
        project: str,
        email: str,
        root_dir: str,
        download_service,
        archive_service,
        filesystem_service,
        requests_module=requests,
        timeout: float = 600.0,
    ):
        self.logger = logger
        self.console = console
        self.scan_token = scan_token
        self.project = project
        self.email = email
        self.root_dir = root_dir
        self.download_service = download_service
        self.archive_service = archive_service
        self.filesystem_service = filesystem_service
        self.requests = requests_module
        self.timeout = timeout

    @property
    def tools_dir(self) -> str:
        return os.path.join(self.root_dir, SCAN_TOOLS_DIR)

    @property
    def tools_bin(self) -> str:
        return os.path.join(self.tools_dir, "bin")

    def install_tools(self):
        archive_path = os.path.join(self.root_dir, SCAN_TOOLS_ARCHIVE)
        self.filesystem_service.cleanup_paths(
            archive_path,
            self.tools_dir,
            os.path.join(self.root_dir, SCAN_TOOLS_GLOB),
        )

        self.console.print("[blue]Downloading static-analysis tools...[/blue]")
        self.download_service.download_file(
            SCAN_TOOLS_URL,
            archive_path,
            "Downloading static-analysis tools...",
            form_data={"token": self.scan_token, "project": self.project},
        )
        self.archive_service.safe_extract_tar(archive_path, self.root_dir)
        self.filesystem_service.remove_file(archive_path)

        unpacked = sorted(
            path
            for path in glob.glob(os.path.join(self.root_dir, SCAN_TOOLS_GLOB))
            if os.path.isdir(path)
        )
        if not unpacked:
            raise OperationFailure(
                f"Static-analysis tool archive did not contain a {SCAN_TOOLS_GLOB} directory."
            )
        shutil.move(unpacked[0], self.tools_dir)
        self.console.print(f"[green]Static-analysis tools installed in {self.tools_dir}.[/green]")

    def read_version(self) -> str:
        path = os.path.join(self.root_dir, VERSION_FILE)
        try:
            with open(path, "r", encoding="utf-8") as file_obj:
                return file_obj.read().strip()
        except OSError as exc:
            raise ConfigurationError(actionable_error("missing_version_file", path=path)) from exc

    def read_revision(self, run_cmd: Callable) -> str:
        result = run_cmd(["git", "rev-parse", "HEAD"], capture_output=True, cwd=self.root_dir)
        return result.stdout.strip()

    def package(self, build_root: str) -> str:
        return self.archive_service.create_tar_gz(
            os.path.join(build_root, SCAN_INTERMEDIATE_DIR),
            os.path.join(build_root, SCAN_UPLOAD_ARCHIVE),
        )

    def submit(self, archive_path: str, version: str, description: str):
        self.console.print("[blue]Sending build to the static-analysis service...[/blue]")
        self.logger.info("Submitting %s (version %s, revision %s)", archive_path, version, description)

        form = {
            "token": self.scan_token,
            "email": self.email,
            "version": version,
            "description": description,
        }
        try:
            with open(archive_path, "rb") as file_obj:
                response = self.requests.post(
                    SCAN_SUBMIT_URL,
                    params={"project": self.project},
                    data=form,
                    files={"file": (os.path.basename(archive_path), file_obj)},
                    timeout=self.timeout,
                )
            response.raise_for_status()
        except self.requests.RequestException as exc:
            raise OperationFailure(f"Static-analysis upload failed: {exc}") from exc
        except OSError as exc:
            raise OperationFailure(f"Could not read {archive_path}: {exc}") from exc

        self.console.print("[green]Static-analysis build submitted.[/green]")

    def upload(self, run_cmd: Callable):
        version = self.read_version()
        description = self.read_revision(run_cmd)
        self.console.print("[blue]Creating tar file...[/blue]")
        archive_path = self.package(os.path.join(self.root_dir, BUILD_DIR))
        self.submit(archive_path, version, description)
