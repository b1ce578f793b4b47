"""Driver settings from ``.cijob.yml``: command-line options over the file over defaults."""

import os
import shlex
from typing import Any, Dict, Mapping, Optional, Tuple

import yaml

from cijob.constants import DEFAULT_CONFIG_FILE
from cijob.errors import ConfigurationError
from cijob.errors_catalog import actionable_error
from cijob.models import DriverSettings

PARALLELISM_KEYS = ("build_jobs", "scan_build_jobs", "unit_test_jobs")
TEXT_KEYS = ("container_name", "scan_email", "scan_project", "known_hosts_entry")
LOGGING_KEYS = ("verbose", "log_file")


def positive_int(value: Any, option: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError):
        number = 0
    if number < 1 or isinstance(value, bool):
        raise ConfigurationError(actionable_error("invalid_parallelism", option=option, value=value))
    return number


def driver_command(value: Any) -> Optional[Tuple[str, ...]]:
    """Accepts a shell-style string or a list; empty means the mounted driver."""
    if value is None:
        return None
    if isinstance(value, str):
        parts = shlex.split(value)
    elif isinstance(value, (list, tuple)):
        parts = [str(part) for part in value]
    else:
        raise ConfigurationError(f"nested_driver must be a string or a list, got {value!r}.")
    return tuple(parts) or None


class ConfigLoader:
    """Reads the YAML settings file and resolves it into ``DriverSettings``."""

    SETTINGS_KEYS = PARALLELISM_KEYS + TEXT_KEYS + ("nested_driver",)
    SUPPORTED_KEYS = frozenset(SETTINGS_KEYS + LOGGING_KEYS)

    def locate(self, config_path: Optional[str], cwd: str) -> Optional[str]:
        if config_path:
            return config_path
        default_path = os.path.join(cwd, DEFAULT_CONFIG_FILE)
        if os.path.isfile(default_path):
            return default_path
        return None

    def load(self, config_path: Optional[str]) -> Dict[str, Any]:
        if not config_path:
            return {}

        try:
            with open(config_path, encoding="utf-8") as file_obj:
                parsed = yaml.safe_load(file_obj)
        except FileNotFoundError:
            raise ConfigurationError(f"Config file not found: {config_path}") from None
        except (yaml.YAMLError, OSError) as exc:
            raise ConfigurationError(f"Invalid config file '{config_path}': {exc}") from exc

        if parsed is None:
            return {}
        if not isinstance(parsed, dict):
            raise ConfigurationError(f"{config_path} must contain a YAML mapping at the root.")

        unknown = sorted(str(key) for key in set(parsed) - self.SUPPORTED_KEYS)
        if unknown:
            raise ConfigurationError(f"Unknown configuration keys in {config_path}: {', '.join(unknown)}")
        return parsed

    def resolve(
        self,
        config: Mapping[str, Any],
        overrides: Optional[Mapping[str, Any]] = None,
    ) -> DriverSettings:
        """Builds settings; unset (None) values keep the built-in defaults."""
        values = {key: config[key] for key in self.SETTINGS_KEYS if config.get(key) is not None}
        values.update({key: value for key, value in (overrides or {}).items() if value is not None})

        for key in PARALLELISM_KEYS:
            if key in values:
                values[key] = positive_int(values[key], key)
        for key in TEXT_KEYS:
            if key in values:
                values[key] = str(values[key])
        if "nested_driver" in values:
            values["nested_driver"] = driver_command(values["nested_driver"])

        return DriverSettings(**values)
