"""Environment variable reader with dependency injection support.

Reads ``VELOX_*`` variables with type conversion. Accepts an optional env
mapping so tests never have to touch os.environ.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

logger = logging.getLogger(__name__)

_TRUE_VALUES = frozenset({"true", "1", "yes", "on"})


class EnvReader:
    """Environment variable reader with type conversion and validation.

    Invalid numeric values are logged and treated as unset, so a typo in
    the environment never prevents startup.

    Example:
        reader = EnvReader(env={"VELOX_SERVER_PORT": "9000"})
        reader.get_int("VELOX_SERVER_PORT", 8347)  # 9000
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        """Initialize the environment reader.

        Args:
            env: Optional mapping to use instead of os.environ.
        """
        self._env: Mapping[str, str] = env if env is not None else os.environ

    def get_str(self, var: str, default: str | None = None) -> str | None:
        """Get a string value, or default if not set."""
        value = self._env.get(var)
        if value is None:
            return default
        return value

    def get_int(self, var: str, default: int | None = None) -> int | None:
        """Get an integer value.

        Returns:
            Parsed integer, or default if not set or unparseable.
        """
        value = self._env.get(var)
        if value is None:
            return default
        try:
            return int(value)
        except ValueError:
            logger.warning("Invalid integer value for %s: %s", var, value)
            return default

    def get_float(self, var: str, default: float | None = None) -> float | None:
        """Get a float value.

        Returns:
            Parsed float, or default if not set or unparseable.
        """
        value = self._env.get(var)
        if value is None:
            return default
        try:
            return float(value)
        except ValueError:
            logger.warning("Invalid float value for %s: %s", var, value)
            return default

    def get_bool(self, var: str, default: bool | None = None) -> bool | None:
        """Get a boolean value.

        "true", "1", "yes" and "on" (any case) are true; every other
        non-empty value is false.
        """
        value = self._env.get(var)
        if value is None:
            return default
        return value.lower() in _TRUE_VALUES

    def get_path(self, var: str, default: Path | None = None) -> Path | None:
        """Get a path value with tilde expansion. Existence is not checked."""
        value = self._env.get(var)
        if not value:
            return default
        return Path(value).expanduser()
