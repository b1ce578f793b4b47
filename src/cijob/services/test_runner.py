"""Unit and external acceptance test execution."""

import os
import sys
from typing import Callable

from cijob.constants import (
    DIAG_LOG,
    EXTERNAL_SUITE_DIR,
    PRIVATE_CORPUS_DIR,
    PUBLIC_CORPUS_DIR,
    UNIT_SUITE_DIR,
    UNIT_SUITE_RUNNER,
)
from cijob.errors import ConfigurationError, ExternalSuiteFailure
from cijob.errors_catalog import actionable_error
from cijob.models import AggregateTestResult


class TestRunner:
    """Runs the in-tree unit suite, then the external acceptance suite."""

    __test__ = False

    def __init__(
        self,
        logger,
        console,
        credential_provisioner,
        diagnostics_reporter,
        unit_test_jobs: int,
        root_dir: str,
    ):
        if not isinstance(unit_test_jobs, int) or unit_test_jobs < 1:
            raise ConfigurationError(
                actionable_error("invalid_parallelism", option="unit_test_jobs", value=unit_test_jobs)
            )
        self.logger = logger
        self.console = console
        self.credential_provisioner = credential_provisioner
        self.diagnostics_reporter = diagnostics_reporter
        self.unit_test_jobs = unit_test_jobs
        self.root_dir = root_dir

    @property
    def unit_dir(self) -> str:
        return os.path.join(self.root_dir, UNIT_SUITE_DIR)

    @property
    def external_dir(self) -> str:
        return os.path.join(self.root_dir, EXTERNAL_SUITE_DIR)

    def _banner(self, title: str):
        self.console.print()
        self.console.print(f"[bold]{title} {'#' * (66 - len(title))}[/bold]")
        self.console.print()

    def enable_core_dumps(self):
        if sys.platform == "win32":
            return

        import resource

        try:
            _, hard = resource.getrlimit(resource.RLIMIT_CORE)
            resource.setrlimit(resource.RLIMIT_CORE, (hard, hard))
        except (ValueError, OSError) as exc:
            self.logger.warning("Could not enable core dumps: %s", exc)

    def run_unit_suite(self, run_cmd: Callable) -> int:
        self._banner("Running unit tests")
        # -j must always be explicit; some CI hosts otherwise pick a huge value.
        result = run_cmd(
            [UNIT_SUITE_RUNNER, "-j", str(self.unit_test_jobs), "-d"],
            check=False,
            cwd=self.unit_dir,
        )
        if result.returncode != 0:
            self.logger.warning("Unit tests exited with status %s", result.returncode)
        return result.returncode

    def prepare_external_corpora(self, run_cmd: Callable):
        self._banner("Getting external tests")

        if not os.path.isdir(os.path.join(self.external_dir, PUBLIC_CORPUS_DIR)):
            run_cmd(["make", "init"], cwd=self.external_dir)

        private_dir = os.path.join(self.external_dir, PRIVATE_CORPUS_DIR)
        if not os.path.isdir(private_dir):
            self.credential_provisioner.fetch_private_corpus(private_dir, run_cmd)

    def run_external_suite(self, run_cmd: Callable) -> str:
        self._banner("Running external tests")
        result = run_cmd(["make"], check=False, cwd=self.external_dir)
        if result.returncode == 0:
            return "pass"

        try:
            self.diagnostics_reporter.report(os.path.join(self.external_dir, DIAG_LOG))
        except ExternalSuiteFailure as exc:
            self.logger.error("%s (status %s)", exc, result.returncode)
        return "fail"

    def run(self, run_cmd: Callable) -> AggregateTestResult:
        self.enable_core_dumps()
        unit_status = self.run_unit_suite(run_cmd)
        self.prepare_external_corpora(run_cmd)
        external_status = self.run_external_suite(run_cmd)
        return AggregateTestResult(
            unit_suite_status=unit_status,
            external_suite_status=external_status,
        )
