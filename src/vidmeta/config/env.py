"""Typed access to ``VIDMETA_*`` environment variables."""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

logger = logging.getLogger(__name__)

_TRUE_VALUES = frozenset({"1", "true", "yes", "on"})
_FALSE_VALUES = frozenset({"0", "false", "no", "off", ""})


class EnvReader:
    """Reads environment variables with type conversion.

    Unset variables return None. Values that fail to convert are logged and
    treated as unset. Pass ``env`` to read from a mapping instead of
    ``os.environ`` (used by tests).
    """

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env: Mapping[str, str] = env if env is not None else os.environ

    def get_str(self, var: str) -> str | None:
        return self._env.get(var)

    def get_int(self, var: str) -> int | None:
        value = self._env.get(var)
        if value is None:
            return None
        try:
            return int(value.strip())
        except ValueError:
            logger.warning("Ignoring %s: %r is not an integer", var, value)
            return None

    def get_float(self, var: str) -> float | None:
        value = self._env.get(var)
        if value is None:
            return None
        try:
            return float(value.strip())
        except ValueError:
            logger.warning("Ignoring %s: %r is not a number", var, value)
            return None

    def get_bool(self, var: str) -> bool | None:
        value = self._env.get(var)
        if value is None:
            return None
        lowered = value.strip().lower()
        if lowered in _TRUE_VALUES:
            return True
        if lowered in _FALSE_VALUES:
            return False
        logger.warning("Ignoring %s: %r is not a boolean", var, value)
        return None

    def get_path(self, var: str) -> Path | None:
        value = self._env.get(var)
        if not value:
            return None
        return Path(value).expanduser()

    def get_list(self, var: str, separator: str = ",") -> list[str] | None:
        """Split a delimited variable, dropping empty items."""
        value = self._env.get(var)
        if value is None:
            return None
        return [part.strip() for part in value.split(separator) if part.strip()]
