"""Failure report for the external acceptance suite."""

from typing import List

from cijob.constants import DIAG_FAILED_MARKER, DIAG_SKIPPED_MARKER
from cijob.errors import ExternalSuiteFailure


class DiagnosticsReporter:
    """Prints the external harness diagnostic log after a failed run."""

    HEADER = "Output of failed external tests #####################################"

    def __init__(self, logger, console):
        self.logger = logger
        self.console = console

    def read_lines(self, log_path: str) -> List[str]:
        try:
            with open(log_path, "r", encoding="utf-8", errors="replace") as file_obj:
                return file_obj.read().splitlines()
        except OSError as exc:
            self.logger.warning("Could not read diagnostic log %s: %s", log_path, exc)
            return []

    def report(self, log_path: str):
        """Shows failed external tests, then always raises ExternalSuiteFailure."""
        lines = self.read_lines(log_path)

        if any(line.rstrip().endswith(DIAG_FAILED_MARKER) for line in lines):
            self.console.print()
            self.console.print(self.HEADER, markup=False, highlight=False)
            self.console.print()
            for line in lines:
                if DIAG_SKIPPED_MARKER in line:
                    continue
                self.console.print(line, markup=False, highlight=False, soft_wrap=True)

        raise ExternalSuiteFailure("External tests failed.", returncode=1)
