"""Configure-and-compile driver."""

import os
from typing import Callable, Dict, List, Mapping, Optional

from cijob.constants import BUILD_DIR, SCAN_INTERMEDIATE_DIR
from cijob.errors import ConfigurationError
from cijob.errors_catalog import actionable_error

# Components the test suites do not need.
EXCLUDED_COMPONENTS = ["--disable-broker-tests", "--disable-python", "--disable-broctl"]


class BuildDriver:
    """Runs the project's configure script and make with a fixed flag profile."""

    def __init__(self, logger, console, root_dir: str, build_jobs: int, scan_build_jobs: int):
        for option, value in (("build_jobs", build_jobs), ("scan_build_jobs", scan_build_jobs)):
            if not isinstance(value, int) or value < 1:
                raise ConfigurationError(
                    actionable_error("invalid_parallelism", option=option, value=value)
                )
        self.logger = logger
        self.console = console
        self.root_dir = root_dir
        self.build_jobs = build_jobs
        self.scan_build_jobs = scan_build_jobs

    @property
    def build_dir(self) -> str:
        return os.path.join(self.root_dir, BUILD_DIR)

    def configure_flags(self, instrumented: bool) -> List[str]:
        if instrumented:
            return [
                f"--prefix={os.path.join(self.build_dir, 'root')}",
                "--enable-debug",
                "--disable-perftools",
            ] + EXCLUDED_COMPONENTS
        return ["--build-type=Release"] + EXCLUDED_COMPONENTS

    def clean(self, run_cmd: Callable) -> int:
        if not os.path.isdir(self.build_dir):
            return 0
        self.logger.info("Removing previous build output")
        return run_cmd(["make", "distclean"], check=False, cwd=self.root_dir).returncode

    def build(
        self,
        run_cmd: Callable,
        scan_tools_bin: Optional[str] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> int:
        """Builds the project and returns the status of the first failing stage.

        With ``scan_tools_bin`` the compile runs under the static-analysis
        build wrapper found in that directory.
        """
        instrumented = scan_tools_bin is not None
        self.console.print(
            "[blue]Building with static-analysis instrumentation...[/blue]"
            if instrumented
            else "[blue]Building...[/blue]"
        )

        status = self.clean(run_cmd)
        if status != 0:
            return status

        status = run_cmd(
            ["./configure"] + self.configure_flags(instrumented),
            check=False,
            cwd=self.root_dir,
        ).returncode
        if status != 0:
            self.logger.error("configure failed with status %s", status)
            return status

        if not instrumented:
            return run_cmd(
                ["make", "-j", str(self.build_jobs)], check=False, cwd=self.root_dir
            ).returncode

        env: Dict[str, str] = dict(os.environ if environ is None else environ)
        env["PATH"] = scan_tools_bin + os.pathsep + env.get("PATH", "")
        return run_cmd(
            [
                "cov-build",
                "--dir",
                SCAN_INTERMEDIATE_DIR,
                "make",
                "-j",
                str(self.scan_build_jobs),
            ],
            check=False,
            cwd=self.build_dir,
            env=env,
        ).returncode
