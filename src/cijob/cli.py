import logging
import os

import click
from rich.logging import RichHandler

from .constants import DEFAULT_CONFIG_FILE, USAGE
from .context import load_job_context
from .core import Orchestrator, console, parse_request
from .errors import ConfigurationError
from .services.config_loader import ConfigLoader


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


def _usage_error(message):
    console.print(f"[bold red]Error:[/bold red] {message}", highlight=False)
    console.print(USAGE, markup=False, highlight=False)
    raise SystemExit(1)


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


@click.command(context_settings={"ignore_unknown_options": True})
@click.argument("args", nargs=-1, metavar="STEP ENVIRONMENT")
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_FILE} if present.",
)
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
@click.option(
    "--container-name",
    required=False,
    help="Name of the job container (default: brotest).",
)
@click.option(
    "--build-jobs",
    required=False,
    type=int,
    default=None,
    help="Parallel compile jobs for the standard build.",
)
@click.option(
    "--unit-test-jobs",
    required=False,
    type=int,
    default=None,
    help="Parallel jobs for the unit test suite.",
)
def main(args, config, verbose, log_file, container_name, build_jobs, unit_test_jobs):
    """Install prerequisites, build, and test in CI."""
    logger = logging.getLogger("cijob")

    if len(args) != 2:
        _usage_error(f"Expected STEP and ENVIRONMENT, got {len(args)} argument(s).")

    step, environment = args
    try:
        parse_request(step, environment)
    except ConfigurationError as exc:
        _usage_error(exc)

    try:
        config_loader = ConfigLoader()
        config_values = config_loader.load(config_loader.locate(config, os.getcwd()))
        settings = config_loader.resolve(
            config_values,
            overrides={
                "container_name": container_name,
                "build_jobs": build_jobs,
                "unit_test_jobs": unit_test_jobs,
            },
        )
        job_context = load_job_context(os.environ)
    except ConfigurationError as exc:
        raise click.ClickException(str(exc)) from exc

    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    log_file = _resolve_option(log_file, config_values, "log_file")

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)

    orchestrator = Orchestrator(
        job_context=job_context,
        settings=settings,
        environ=os.environ,
    )

    raise SystemExit(orchestrator.run(step, environment))


if __name__ == "__main__":
    main()
