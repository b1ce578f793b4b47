import logging
import os
from typing import List, MutableMapping, Optional

import requests
from rich.console import Console

from .constants import (
    BARE_HOST,
    BARE_HOST_MARKERS,
    FORWARDED_RUN_VARS,
    SCAN_TOKEN_VAR,
    SOURCE_ROOT_MARKER,
    STATIC_ANALYSIS_MARKERS,
    STEP_ALL,
    STEP_BUILD,
    STEP_INSTALL,
    STEP_RUN,
    STEPS,
    USAGE,
)
from .errors import CIJobError, ConfigurationError, OperationFailure
from .errors_catalog import actionable_error
from .models import (
    BareMode,
    ContainerMode,
    DriverSettings,
    ExecutionMode,
    JobContext,
    RunRequest,
    StaticAnalysisMode,
    exit_status,
)
from .profiles import get_profile
from .services.archive import ArchiveService
from .services.build import BuildDriver
from .services.command_runner import CommandRunner
from .services.container import ContainerService
from .services.credentials import CredentialProvisioner
from .services.diagnostics import DiagnosticsReporter
from .services.download import DownloadService
from .services.filesystem import FileSystemService
from .services.scan import ScanUploader
from .services.test_runner import TestRunner

console = Console()
logger = logging.getLogger("cijob")


def parse_request(step: Optional[str], environment: Optional[str]) -> RunRequest:
    if step not in STEPS:
        raise ConfigurationError(actionable_error("unknown_step", step=step))
    if not environment:
        raise ConfigurationError("Missing ENVIRONMENT argument.")
    return RunRequest(step=step, environment=environment)


def select_mode(request: RunRequest, job_context: JobContext) -> ExecutionMode:
    """Maps the request and CI facts to the execution mode, in precedence order."""
    if job_context.is_cron or request.environment in STATIC_ANALYSIS_MARKERS:
        if not job_context.scan_token:
            raise ConfigurationError(actionable_error("missing_scan_token", variable=SCAN_TOKEN_VAR))
        return StaticAnalysisMode(scan_token=job_context.scan_token)

    if request.environment in BARE_HOST_MARKERS:
        return BareMode()

    return ContainerMode(profile=get_profile(request.environment))


class Orchestrator:
    """Runs one lifecycle step in the selected execution mode."""

    def __init__(
        self,
        job_context: JobContext,
        settings: Optional[DriverSettings] = None,
        environ: Optional[MutableMapping[str, str]] = None,
        workdir: Optional[str] = None,
        requests_module=requests,
    ):
        self.job_context = job_context
        self.settings = settings or DriverSettings()
        self.environ = environ if environ is not None else {}
        self.cwd = workdir or os.getcwd()
        self.requests = requests_module

        self.command_runner = CommandRunner(logger=logger)
        self.filesystem_service = FileSystemService(logger=logger, console=console)
        self.archive_service = ArchiveService()
        self.download_service = DownloadService(
            logger=logger,
            console=console,
            requests_module=requests_module,
        )
        self.container_service = ContainerService(
            logger=logger,
            console=console,
            name=self.settings.container_name,
            mount_path=self.settings.mount_path,
            workdir=self.cwd,
            driver_command=self.settings.nested_driver,
        )
        self.credential_provisioner = CredentialProvisioner(
            logger=logger,
            console=console,
            job_context=job_context,
            environ=self.environ,
            download_service=self.download_service,
            filesystem_service=self.filesystem_service,
            ssh_dir=os.path.expanduser(self.settings.ssh_dir),
            known_hosts_entry=self.settings.known_hosts_entry,
        )
        self.diagnostics_reporter = DiagnosticsReporter(logger=logger, console=console)
        self.test_runner = TestRunner(
            logger=logger,
            console=console,
            credential_provisioner=self.credential_provisioner,
            diagnostics_reporter=self.diagnostics_reporter,
            unit_test_jobs=self.settings.unit_test_jobs,
            root_dir=self.cwd,
        )
        self.build_driver = BuildDriver(
            logger=logger,
            console=console,
            root_dir=self.cwd,
            build_jobs=self.settings.build_jobs,
            scan_build_jobs=self.settings.scan_build_jobs,
        )

    def _run_cmd(
        self,
        cmd: List[str],
        check: bool = True,
        capture_output: bool = False,
        cwd: Optional[str] = None,
        env=None,
    ):
        return self.command_runner.run(
            cmd, check=check, capture_output=capture_output, cwd=cwd, env=env
        )

    def _require(self, status: int, stage: str):
        if status != 0:
            raise OperationFailure(f"{stage} failed with status {status}.", returncode=status)

    def ensure_source_root(self):
        if not os.path.isfile(os.path.join(self.cwd, SOURCE_ROOT_MARKER)):
            raise ConfigurationError(
                actionable_error("not_source_root", marker=SOURCE_ROOT_MARKER, cwd=self.cwd)
            )

    def scan_uploader(self, mode: StaticAnalysisMode) -> ScanUploader:
        return ScanUploader(
            logger=logger,
            console=console,
            scan_token=mode.scan_token,
            project=self.settings.scan_project,
            email=self.settings.scan_email,
            root_dir=self.cwd,
            download_service=self.download_service,
            archive_service=self.archive_service,
            filesystem_service=self.filesystem_service,
            requests_module=self.requests,
        )

    # Bare host

    def build(self) -> int:
        return self.build_driver.build(self._run_cmd, environ=self.environ or None)

    def run_tests(self) -> int:
        result = self.test_runner.run(self._run_cmd)
        logger.info(
            "Unit tests: %s, external tests: %s",
            result.unit_suite_status,
            result.external_suite_status,
        )
        return result.exit_code

    def run_bare(self, step: str) -> int:
        if step == STEP_INSTALL:
            logger.info("Nothing to install on the bare host; prerequisites are assumed present.")
            return 0
        if step == STEP_BUILD:
            return self.build()
        if step == STEP_RUN:
            return self.run_tests()

        status = self.build()
        if status != 0:
            return status
        return self.run_tests()

    # Container

    def build_in_container(self, handle, profile) -> int:
        return self.container_service.run_driver(
            handle, profile, [STEP_BUILD, BARE_HOST], self._run_cmd
        )

    def run_in_container(self, handle, profile) -> int:
        self.credential_provisioner.resolve()
        return self.container_service.run_driver(
            handle,
            profile,
            [STEP_RUN, BARE_HOST],
            self._run_cmd,
            env=self.environ,
            forward=FORWARDED_RUN_VARS,
        )

    def run_container(self, mode: ContainerMode, step: str) -> int:
        if step == STEP_INSTALL:
            self.container_service.create(mode.profile, self._run_cmd)
            return 0
        if step == STEP_BUILD:
            handle = self.container_service.handle_for(mode.profile)
            return self.build_in_container(handle, mode.profile)
        if step == STEP_RUN:
            handle = self.container_service.handle_for(mode.profile)
            return self.run_in_container(handle, mode.profile)

        with self.container_service.session(mode.profile, self._run_cmd) as handle:
            self._require(self.build_in_container(handle, mode.profile), "Build")
            self._require(self.run_in_container(handle, mode.profile), "Tests")
        return 0

    # Static analysis

    def run_static_analysis(self, mode: StaticAnalysisMode, step: str) -> int:
        uploader = self.scan_uploader(mode)

        if step in (STEP_INSTALL, STEP_ALL):
            uploader.install_tools()
        if step in (STEP_BUILD, STEP_ALL):
            self._require(
                self.build_driver.build(
                    self._run_cmd,
                    scan_tools_bin=uploader.tools_bin,
                    environ=self.environ or None,
                ),
                "Instrumented build",
            )
        if step in (STEP_RUN, STEP_ALL):
            uploader.upload(self._run_cmd)
        return 0

    def dispatch(self, mode: ExecutionMode, step: str) -> int:
        if isinstance(mode, StaticAnalysisMode):
            return self.run_static_analysis(mode, step)
        if isinstance(mode, ContainerMode):
            return self.run_container(mode, step)
        return self.run_bare(step)

    def _fail(self, exc: Exception, returncode: int = 1) -> int:
        console.print(f"[bold red]Error:[/bold red] {exc}", highlight=False)
        logger.error(str(exc))
        return returncode

    def run(self, step: Optional[str], environment: Optional[str]) -> int:
        try:
            request = parse_request(step, environment)
            mode = None
            if not (self.job_context.is_cron and self.job_context.job_ordinal != 1):
                mode = select_mode(request, self.job_context)
        except ConfigurationError as exc:
            self._fail(exc)
            console.print(USAGE, markup=False, highlight=False)
            return 1

        if mode is None:
            console.print(
                "[yellow]Static-analysis scan is performed only in the first job of this build.[/yellow]"
            )
            return 0

        try:
            self.ensure_source_root()

            logger.info("Running step '%s' in %s", request.step, type(mode).__name__)
            exit_code = exit_status(self.dispatch(mode, request.step))
            if exit_code == 0:
                console.print(f"[green]Step '{request.step}' completed.[/green]")
            else:
                console.print(f"[bold red]Step '{request.step}' failed ({exit_code}).[/bold red]")
            return exit_code

        except KeyboardInterrupt:
            console.print("[bold red]Operation cancelled by user.[/bold red]")
            logger.info("Operation cancelled by user")
            return 1
        except OperationFailure as exc:
            return self._fail(exc, exc.returncode)
        except CIJobError as exc:
            return self._fail(exc)
        except Exception as exc:
            console.print(f"[bold red]Unexpected error:[/bold red] {exc}")
            logger.exception("Unexpected error")
            return 1
