from pathlib import Path

import pytest

from cijob.constants import DRIVER_REQUIREMENTS
from cijob.errors import ConfigurationError
from cijob.profiles import PROFILES, get_profile


def test_profile_image_maps_underscore_to_tag_separator():
    assert get_profile("centos_7").image == "centos:7"
    assert get_profile("ubuntu_22.04").image == "ubuntu:22.04"


def test_every_profile_installs_a_compiler_toolchain():
    for profile in PROFILES.values():
        script = "; ".join(profile.package_install_commands)
        assert "cmake" in script
        assert "flex" in script and "bison" in script


def test_every_profile_installs_an_interpreter_with_pip_for_the_driver():
    for profile in PROFILES.values():
        script = "; ".join(profile.package_install_commands)
        assert "pip" in script, profile.name
        assert profile.python.startswith("/opt/rh/") or profile.python == "python3"
    assert "rh-python38" in "; ".join(get_profile("centos_7").package_install_commands)


def test_driver_requirements_match_the_distribution_dependencies():
    pyproject = (Path(__file__).resolve().parents[1] / "pyproject.toml").read_text(encoding="utf-8")
    for requirement in DRIVER_REQUIREMENTS:
        assert f'"{requirement}"' in pyproject


def test_unknown_profile_is_a_configuration_error():
    with pytest.raises(ConfigurationError, match="not recognized"):
        get_profile("plan9_4")
