"""Shared domain models for cijob."""

from dataclasses import dataclass, field
from typing import Optional, Tuple, Union

from .constants import (
    CONTAINER_MOUNT_PATH,
    CONTAINER_NAME,
    DEFAULT_BUILD_JOBS,
    DEFAULT_SCAN_BUILD_JOBS,
    DEFAULT_UNIT_TEST_JOBS,
    SCAN_EMAIL,
    SCAN_PROJECT,
)


def exit_status(returncode: int) -> int:
    """Maps a child's returncode to a process exit status.

    A child killed by signal N reports -N; the shell convention is 128 + N.
    """
    if returncode < 0:
        return 128 - returncode
    return returncode


@dataclass(frozen=True)
class RunRequest:
    step: str
    environment: str


@dataclass(frozen=True)
class JobContext:
    """CI facts captured once per run from the process environment."""

    is_ci: bool = False
    is_cron: bool = False
    job_ordinal: Optional[int] = None
    is_pull_request: bool = False
    scan_token: Optional[str] = field(default=None, repr=False)


@dataclass(frozen=True)
class PlatformProfile:
    name: str
    package_install_commands: Tuple[str, ...]
    python: str = "python3"

    @property
    def image(self) -> str:
        return self.name.replace("_", ":")


@dataclass(frozen=True)
class CredentialMaterial:
    key: str = field(repr=False)
    iv: str = field(repr=False)

    def is_complete(self) -> bool:
        return bool(self.key) and bool(self.iv)


@dataclass(frozen=True)
class ContainerHandle:
    name: str
    image: str
    mount_path: str


@dataclass(frozen=True)
class AggregateTestResult:
    unit_suite_status: int
    external_suite_status: str

    @property
    def exit_code(self) -> int:
        if self.unit_suite_status != 0:
            return exit_status(self.unit_suite_status)
        if self.external_suite_status == "fail":
            return 1
        return 0


@dataclass(frozen=True)
class BareMode:
    pass


@dataclass(frozen=True)
class ContainerMode:
    profile: PlatformProfile


@dataclass(frozen=True)
class StaticAnalysisMode:
    scan_token: str = field(repr=False)


ExecutionMode = Union[BareMode, ContainerMode, StaticAnalysisMode]


@dataclass(frozen=True)
class DriverSettings:
    """Resolved configuration for one driver invocation."""

    container_name: str = CONTAINER_NAME
    mount_path: str = CONTAINER_MOUNT_PATH
    build_jobs: int = DEFAULT_BUILD_JOBS
    scan_build_jobs: int = DEFAULT_SCAN_BUILD_JOBS
    unit_test_jobs: int = DEFAULT_UNIT_TEST_JOBS
    nested_driver: Optional[Tuple[str, ...]] = None
    scan_email: str = SCAN_EMAIL
    scan_project: str = SCAN_PROJECT
    known_hosts_entry: str = ""
    ssh_dir: str = "~/.ssh"
