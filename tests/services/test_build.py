import os
import subprocess

import pytest

from cijob.errors import ConfigurationError
from cijob.services.build import BuildDriver


class DummyLogger:
    def info(self, *_args, **_kwargs):
        return None

    def error(self, *_args, **_kwargs):
        return None


class DummyConsole:
    def print(self, *_args, **_kwargs):
        return None


class FakeRunCmd:
    def __init__(self, failing=None):
        self.failing = failing or {}
        self.calls = []

    def __call__(self, cmd, check=True, capture_output=False, cwd=None, env=None):
        self.calls.append({"cmd": cmd, "cwd": cwd, "env": env})
        return subprocess.CompletedProcess(cmd, self.failing.get(cmd[0], 0), stdout="", stderr="")


def _driver(root):
    return BuildDriver(
        logger=DummyLogger(),
        console=DummyConsole(),
        root_dir=str(root),
        build_jobs=2,
        scan_build_jobs=4,
    )


def test_standard_build_configures_release_profile(tmp_path):
    run_cmd = FakeRunCmd()

    assert _driver(tmp_path).build(run_cmd) == 0

    commands = [call["cmd"] for call in run_cmd.calls]
    assert commands == [
        [
            "./configure",
            "--build-type=Release",
            "--disable-broker-tests",
            "--disable-python",
            "--disable-broctl",
        ],
        ["make", "-j", "2"],
    ]


def test_previous_build_output_is_cleaned_first(tmp_path):
    (tmp_path / "build").mkdir()
    run_cmd = FakeRunCmd()

    _driver(tmp_path).build(run_cmd)

    assert run_cmd.calls[0]["cmd"] == ["make", "distclean"]


def test_configure_failure_stops_before_compiling(tmp_path):
    run_cmd = FakeRunCmd(failing={"./configure": 1})

    assert _driver(tmp_path).build(run_cmd) == 1
    assert len(run_cmd.calls) == 1


def test_instrumented_build_uses_scan_wrapper(tmp_path):
    run_cmd = FakeRunCmd()
    tools_bin = str(tmp_path / "coverity-tools" / "bin")

    status = _driver(tmp_path).build(run_cmd, scan_tools_bin=tools_bin, environ={"PATH": "/usr/bin"})

    assert status == 0
    configure, compile_call = run_cmd.calls
    assert "--enable-debug" in configure["cmd"]
    assert "--disable-perftools" in configure["cmd"]
    assert "--disable-broctl" in configure["cmd"]
    assert f"--prefix={os.path.join(str(tmp_path), 'build', 'root')}" in configure["cmd"]
    assert compile_call["cmd"] == ["cov-build", "--dir", "cov-int", "make", "-j", "4"]
    assert compile_call["cwd"] == str(tmp_path / "build")
    assert compile_call["env"]["PATH"] == tools_bin + os.pathsep + "/usr/bin"


def test_zero_parallelism_is_a_configuration_error(tmp_path):
    with pytest.raises(ConfigurationError, match="build_jobs"):
        BuildDriver(
            logger=DummyLogger(),
            console=DummyConsole(),
            root_dir=str(tmp_path),
            build_jobs=0,
            scan_build_jobs=4,
        )
