"""Platform profiles available for containerized runs.

Each profile installs the build toolchain plus a Python 3.8+ interpreter with
pip; ``python`` names that interpreter so the driver can run inside the image.
"""

from typing import Dict

from .errors import ConfigurationError
from .errors_catalog import actionable_error
from .models import PlatformProfile

_APT_PACKAGES = (
    "gdb cmake make gcc g++ flex bison libpcap-dev libssl-dev zlib1g-dev "
    "libkrb5-dev git sqlite3 curl bsdmainutils python3 python3-pip"
)

_YUM_PACKAGES = (
    "gdb cmake make gcc gcc-c++ flex bison libpcap-devel openssl-devel git "
    "sqlite findutils which python3 python3-pip"
)

PROFILES: Dict[str, PlatformProfile] = {
    profile.name: profile
    for profile in (
        PlatformProfile(
            name="centos_7",
            package_install_commands=(
                "yum -y install centos-release-scl",
                "yum -y install gdb cmake make gcc gcc-c++ flex bison libpcap-devel "
                "openssl-devel git openssl which rh-python38 rh-python38-python-pip",
            ),
            python="/opt/rh/rh-python38/root/usr/bin/python3",
        ),
        PlatformProfile(
            name="debian_11",
            package_install_commands=(
                "apt-get update",
                "DEBIAN_FRONTEND=noninteractive apt-get -y install " + _APT_PACKAGES,
            ),
        ),
        PlatformProfile(
            name="fedora_34",
            package_install_commands=("yum -y install " + _YUM_PACKAGES,),
        ),
        PlatformProfile(
            name="ubuntu_20.04",
            package_install_commands=(
                "apt-get update",
                "DEBIAN_FRONTEND=noninteractive apt-get -y install " + _APT_PACKAGES,
            ),
        ),
        PlatformProfile(
            name="ubuntu_22.04",
            package_install_commands=(
                "apt-get update",
                "DEBIAN_FRONTEND=noninteractive apt-get -y install " + _APT_PACKAGES,
            ),
        ),
    )
}


def get_profile(name: str) -> PlatformProfile:
    try:
        return PROFILES[name]
    except KeyError:
        raise ConfigurationError(
            actionable_error(
                "unknown_environment",
                environment=name,
                profiles=", ".join(sorted(PROFILES)),
            )
        ) from None
