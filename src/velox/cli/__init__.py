"""CLI module for Velox."""

import dataclasses
import logging
from pathlib import Path

import click

from velox.config.models import LoggingConfig

_logging_configured: bool = False

logger = logging.getLogger(__name__)


def apply_logging_options(
    *,
    config_path: Path | None = None,
    level: str | None = None,
    file: Path | None = None,
    format: str | None = None,
    include_stderr: bool | None = None,
) -> LoggingConfig:
    """Configure logging from ``[logging]`` config with CLI options on top.

    Options left as None keep the configured value.

    Returns:
        The LoggingConfig that was applied.

    Raises:
        ConfigFileError: If the config file cannot be parsed.
        ValueError: If an option value is invalid.
    """
    from velox.config import get_config
    from velox.logging import configure_logging

    overrides = {
        "level": level,
        "file": file,
        "format": format,
        "include_stderr": include_stderr,
    }
    # replace() re-runs LoggingConfig validation
    final_config = dataclasses.replace(
        get_config(config_path=config_path).logging,
        **{key: value for key, value in overrides.items() if value is not None},
    )
    configure_logging(final_config)
    return final_config


def _configure_logging(
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
) -> None:
    """Configure logging from CLI options.

    Args:
        log_level: Override log level (debug, info, warning, error).
        log_file: Override log file path.
        log_json: Use JSON log format.
    """
    global _logging_configured
    if _logging_configured:
        return

    from velox.cli.exit_codes import ExitCode
    from velox.cli.output import error_exit
    from velox.config import ConfigFileError

    try:
        apply_logging_options(
            level=log_level,
            file=log_file,
            format="json" if log_json else None,
        )
    except (ConfigFileError, ValueError) as e:
        error_exit(f"Invalid configuration: {e}", ExitCode.CONFIG_ERROR)
    _logging_configured = True


@click.group()
@click.version_option(package_name="velox")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    default=None,
    help="Override log level (default: info).",
)
@click.option(
    "--log-file",
    type=click.Path(path_type=Path),
    default=None,
    help="Override log file path.",
)
@click.option(
    "--log-json",
    is_flag=True,
    default=False,
    help="Use JSON log format.",
)
@click.pass_context
def main(
    ctx: click.Context,
    log_level: str | None,
    log_file: Path | None,
    log_json: bool,
) -> None:
    """Velox - cancellable, progress-streaming directory scanner."""
    ctx.ensure_object(dict)

    # serve configures logging itself with daemon defaults
    if ctx.invoked_subcommand != "serve":
        _configure_logging(log_level, log_file, log_json)


# Defer import to avoid circular dependency
def _register_commands():
    from velox.cli.remote import remote_group
    from velox.cli.scan import scan_command
    from velox.cli.serve import serve_command

    main.add_command(scan_command)
    main.add_command(serve_command)
    main.add_command(remote_group)


_register_commands()
