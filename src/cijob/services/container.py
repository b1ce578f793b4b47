"""Container lifecycle service for cijob."""

import os
import shlex
from contextlib import contextmanager
from typing import Callable, Iterable, Iterator, List, Mapping, Optional, Sequence

from cijob.constants import (
    CONTAINER_SHELL,
    DRIVER_MODULE,
    DRIVER_MOUNT_ROOT,
    DRIVER_REQUIREMENTS,
)
from cijob.errors import OperationFailure
from cijob.errors_catalog import actionable_error
from cijob.models import ContainerHandle, PlatformProfile

DRIVER_SOURCE = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class ContainerService:
    """Creates, addresses, executes commands inside, and removes the job container.

    Unless ``driver_command`` is given, the running driver's own package is
    bind-mounted into the container and executed with the profile's Python.
    """

    def __init__(
        self,
        logger,
        console,
        name: str,
        mount_path: str,
        workdir: str,
        driver_command: Optional[Sequence[str]] = None,
        driver_source: str = DRIVER_SOURCE,
    ):
        self.logger = logger
        self.console = console
        self.name = name
        self.mount_path = mount_path
        self.workdir = workdir
        self.driver_command = tuple(driver_command) if driver_command else None
        self.driver_source = driver_source

    @property
    def mounts_driver(self) -> bool:
        return self.driver_command is None

    def handle_for(self, profile: PlatformProfile) -> ContainerHandle:
        return ContainerHandle(name=self.name, image=profile.image, mount_path=self.mount_path)

    def create(self, profile: PlatformProfile, run_cmd: Callable) -> ContainerHandle:
        handle = self.handle_for(profile)
        self.console.print(f"[blue]Starting container {handle.name} from {handle.image}...[/blue]")
        self.logger.info("Starting container %s from image %s", handle.name, handle.image)

        cmd = [
            "docker",
            "run",
            "--name",
            handle.name,
            "-id",
            "-v",
            f"{self.workdir}:{handle.mount_path}",
        ]
        if self.mounts_driver:
            cmd += ["-v", f"{self.driver_source}:{DRIVER_MOUNT_ROOT}/{DRIVER_MODULE}:ro"]
        cmd += ["-w", handle.mount_path, handle.image, CONTAINER_SHELL]

        result = run_cmd(cmd, check=False, capture_output=True)
        if result.returncode != 0:
            stderr = (result.stderr or "").strip()
            message = actionable_error("container_exists", name=handle.name, image=handle.image)
            if stderr:
                message = f"{message}\n{stderr}"
            raise OperationFailure(message, returncode=result.returncode)

        self.provision(handle, profile, run_cmd)
        return handle

    def provision_commands(self, profile: PlatformProfile) -> List[str]:
        commands = list(profile.package_install_commands)
        if self.mounts_driver:
            requirements = " ".join(shlex.quote(req) for req in DRIVER_REQUIREMENTS)
            commands.append(f"{shlex.quote(profile.python)} -m pip install {requirements}")
        return commands

    def provision(self, handle: ContainerHandle, profile: PlatformProfile, run_cmd: Callable):
        # One batch: a failing command does not stop the ones after it, only
        # the status of the last command decides the outcome.
        script = "; ".join(self.provision_commands(profile))
        self.console.print(f"[blue]Installing packages for {profile.name}...[/blue]")
        status = self.exec(handle, [CONTAINER_SHELL, "-c", script], run_cmd)
        if status != 0:
            raise OperationFailure(
                f"Package installation failed in container {handle.name} ({status}).",
                returncode=status,
            )
        self.console.print("[green]Container is ready.[/green]")

    def driver_argv(self, profile: PlatformProfile, args: Sequence[str]) -> List[str]:
        if self.driver_command:
            return list(self.driver_command) + list(args)
        return [profile.python, "-m", DRIVER_MODULE] + list(args)

    def run_driver(
        self,
        handle: ContainerHandle,
        profile: PlatformProfile,
        args: Sequence[str],
        run_cmd: Callable,
        env: Optional[Mapping[str, str]] = None,
        forward: Iterable[str] = (),
    ) -> int:
        """Runs the driver itself inside the container with ``args``."""
        settings = {"PYTHONPATH": DRIVER_MOUNT_ROOT} if self.mounts_driver else None
        return self.exec(
            handle,
            self.driver_argv(profile, args),
            run_cmd,
            env=env,
            forward=forward,
            settings=settings,
        )

    def exec(
        self,
        handle: ContainerHandle,
        argv: List[str],
        run_cmd: Callable,
        env: Optional[Mapping[str, str]] = None,
        forward: Iterable[str] = (),
        settings: Optional[Mapping[str, str]] = None,
    ) -> int:
        """Runs ``argv`` in the container and returns its exit status.

        Only the variables named in ``forward`` that are set in ``env`` are
        passed through; values travel via the docker client's environment so
        they never appear on a command line. ``settings`` are fixed,
        non-secret assignments made inside the container.
        """
        cmd = ["docker", "exec"]
        for name, value in (settings or {}).items():
            cmd += ["-e", f"{name}={value}"]
        forwarded = [name for name in forward if env and env.get(name)]
        for name in forwarded:
            cmd += ["-e", name]
        cmd.append(handle.name)
        cmd += list(argv)

        if forwarded:
            self.logger.debug("Forwarding variables into %s: %s", handle.name, ", ".join(forwarded))
            result = run_cmd(cmd, check=False, env=env)
        else:
            result = run_cmd(cmd, check=False)
        return result.returncode

    def destroy(self, handle: ContainerHandle, run_cmd: Callable):
        self.console.print("[dim]Removing the docker container...[/dim]")
        self.logger.info("Removing container %s", handle.name)

        try:
            result = run_cmd(["docker", "rm", "-f", handle.name], check=False, capture_output=True)
        except OperationFailure as exc:
            self.logger.warning("Could not remove container %s: %s", handle.name, exc)
            return

        if result.returncode != 0:
            self.logger.warning(
                "Container %s could not be removed (it may no longer exist): %s",
                handle.name,
                (result.stderr or "").strip(),
            )

    @contextmanager
    def session(self, profile: PlatformProfile, run_cmd: Callable) -> Iterator[ContainerHandle]:
        """Yields a fresh container and removes it only if the block succeeds.

        On any exception the container is left running for inspection.
        """
        handle = self.create(profile, run_cmd)
        yield handle
        self.destroy(handle, run_cmd)
