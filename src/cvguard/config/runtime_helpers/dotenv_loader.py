"""Dotenv file loading for cvguard settings."""

from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional, Tuple

from ..errors import ConfigurationError

_EXPORT_PREFIX = "export "
_QUOTES = ("'", '"')


class DotenvLoader:
    """Reads ``KEY=value`` pairs from .env-style files."""

    @staticmethod
    def load_from_file(path: Path) -> Dict[str, str]:
        """
        Load key-value pairs from a .env file.

        Missing files yield an empty mapping; unreadable files raise.

        Args:
            path: Path to .env file

        Returns:
            Mapping of variable names to raw string values

        Raises:
            ConfigurationError: If the file exists but cannot be read
        """
        if not path.exists():
            return {}

        try:
            lines = path.read_text(encoding="utf-8").splitlines()
        except OSError as exc:
            raise ConfigurationError(f"Failed to load configuration from {path}") from exc

        values: Dict[str, str] = {}
        for line in lines:
            parsed = DotenvLoader.parse_line(line)
            if parsed is not None:
                key, value = parsed
                values[key] = value
        return values

    @staticmethod
    def parse_line(line: str) -> Optional[Tuple[str, str]]:
        """Parse one line; comments, blanks and lines without ``=`` return None."""
        stripped = line.strip()
        if not stripped or stripped.startswith("#") or "=" not in stripped:
            return None
        if stripped.startswith(_EXPORT_PREFIX):
            stripped = stripped[len(_EXPORT_PREFIX) :]

        key, raw_value = stripped.split("=", 1)
        key = key.strip()
        if not key:
            return None
        return key, _unquote(raw_value.strip())


def _unquote(value: str) -> str:
    if len(value) >= 2 and value[0] == value[-1] and value[0] in _QUOTES:
        return value[1:-1]
    return value
