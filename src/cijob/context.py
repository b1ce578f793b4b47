"""Builds the JobContext from the CI environment.

This is the only place that interprets the CI system's environment
variables; everything downstream receives the resulting JobContext.
"""

from typing import Mapping, Optional

from .constants import (
    CI_EVENT_TYPE_VAR,
    CI_INDICATOR_VAR,
    CI_JOB_NUMBER_VAR,
    CI_PULL_REQUEST_VAR,
    CRON_EVENT_TYPE,
    SCAN_TOKEN_VAR,
)
from .errors import ConfigurationError
from .errors_catalog import actionable_error
from .models import JobContext


def parse_job_ordinal(job_identifier: Optional[str]) -> int:
    """Returns the ordinal of a "group.ordinal" job identifier."""
    value = (job_identifier or "").strip()
    parts = value.split(".")
    if len(parts) != 2 or not parts[0] or not parts[1].isdigit():
        raise ConfigurationError(
            actionable_error(
                "missing_job_number",
                variable=CI_JOB_NUMBER_VAR,
                value=job_identifier,
            )
        )
    return int(parts[1])


def is_pull_request(value: Optional[str]) -> bool:
    return bool(value) and value != "false"


def load_job_context(environ: Mapping[str, str]) -> JobContext:
    is_cron = environ.get(CI_EVENT_TYPE_VAR) == CRON_EVENT_TYPE

    job_ordinal = None
    if is_cron:
        job_ordinal = parse_job_ordinal(environ.get(CI_JOB_NUMBER_VAR))

    return JobContext(
        is_ci=environ.get(CI_INDICATOR_VAR) == "true",
        is_cron=is_cron,
        job_ordinal=job_ordinal,
        is_pull_request=is_pull_request(environ.get(CI_PULL_REQUEST_VAR)),
        scan_token=environ.get(SCAN_TOKEN_VAR) or None,
    )
