"""Actionable error catalog for cijob."""

from typing import Dict

_ERROR_MESSAGES: Dict[str, Dict[str, str]] = {
    "unknown_step": {
        "what": "Unknown build step: {step}",
        "next": "Use one of: install, build, run, all.",
    },
    "unknown_environment": {
        "what": "Environment '{environment}' is not recognized.",
        "next": "Use 'bare-host', 'static-analysis' or one of the platform profiles: {profiles}.",
    },
    "not_source_root": {
        "what": "No '{marker}' found in {cwd}.",
        "next": "Change directory to the root of the source tree before running this driver.",
    },
    "missing_job_number": {
        "what": "Cron-triggered job has no usable job identifier ({variable}={value!r}).",
        "next": "The CI system must export {variable} in the form 'group.ordinal'.",
    },
    "missing_scan_token": {
        "what": "{variable} is not defined.",
        "next": "Define it in the environment variables section of the CI settings for this repository.",
    },
    "missing_credentials": {
        "what": "Cannot get private tests because the encrypted environment variables are not defined.",
        "next": "Define {key_var} and {iv_var} in the CI settings, or run as a pull request build.",
    },
    "container_exists": {
        "what": "Could not start container '{name}' from image '{image}'.",
        "next": "A container from a previous failed run may still exist; remove it with `docker rm -f {name}`.",
    },
    "missing_known_host": {
        "what": "No known-hosts entry is configured for {host}.",
        "next": "Set known_hosts_entry in .cijob.yml to the host key line printed by `ssh-keyscan {host}`.",
    },
    "invalid_known_host": {
        "what": "known_hosts_entry is not a usable host key line ({reason}).",
        "next": "Replace it with the line for {host} printed by `ssh-keyscan {host}`.",
    },
    "invalid_parallelism": {
        "what": "{option} must be a positive integer, got {value!r}.",
        "next": "Set an explicit job count; an unset value must not fall back to unbounded parallelism.",
    },
    "missing_version_file": {
        "what": "Version file not found: {path}",
        "next": "Run the static-analysis upload from the root of the source tree.",
    },
}


def actionable_error(code: str, **kwargs) -> str:
    if code not in _ERROR_MESSAGES:
        raise KeyError(f"Unknown error catalog key: {code}")

    template = _ERROR_MESSAGES[code]
    what = template["what"].format(**kwargs)
    next_step = template["next"].format(**kwargs)
    return f"{what} Suggested action: {next_step}"
