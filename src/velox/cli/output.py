"""Unified CLI output formatting for JSON and human-readable output."""

from __future__ import annotations

import json
import sys
from typing import Any, NoReturn

import click

from velox.cli.exit_codes import ExitCode


def error_exit(
    message: str,
    code: ExitCode | int,
    json_output: bool = False,
) -> NoReturn:
    """Exit with formatted error message.

    Args:
        message: Error message to display.
        code: Exit code to use (ExitCode enum or int).
        json_output: Whether to format output as JSON.

    Note:
        This function never returns; it always calls sys.exit().
    """
    if isinstance(code, ExitCode):
        code_name = code.name
        exit_value = int(code)
    else:
        code_name = "UNKNOWN_ERROR"
        exit_value = code

    if json_output:
        click.echo(
            json.dumps(
                {
                    "status": "failed",
                    "error": {
                        "code": code_name,
                        "message": message,
                    },
                }
            ),
            err=True,
        )
    else:
        click.echo(f"Error: {message}", err=True)

    sys.exit(exit_value)


def json_output(data: dict[str, Any]) -> None:
    """Print a JSON document to stdout."""
    click.echo(json.dumps(data, indent=2))
