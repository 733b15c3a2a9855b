"""
.env file store

Reads come from an in-memory view hydrated once by load(); only set() touches
disk. The file keeps its line order and comments, holds at most one active
definition per key after an update and is always replaced atomically
(write temp file, then rename).
"""

import logging
import os
import re
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Union

from dotenv import dotenv_values

from .exceptions import ConfigurationError

LOG = logging.getLogger(__name__)

DEFAULT_ENV_PATH = ".env"
FILE_HEADER = "# Environment Variables\n"


def _definition_pattern(key: str) -> "re.Pattern[str]":
    return re.compile(rf"^\s*(?:export\s+)?{re.escape(key)}\s*=")


class EnvStore:
    """
    Key/value configuration backed by a .env file.

    Args:
        path: Location of the .env file
        environ: Process-level values that take precedence over the file,
            copied at construction (defaults to os.environ)
    """

    def __init__(
        self,
        path: Union[str, Path] = DEFAULT_ENV_PATH,
        environ: Optional[Mapping[str, str]] = None
    ):
        self.path = Path(path).resolve()
        self._environ: Dict[str, str] = dict(os.environ if environ is None else environ)
        self._values: Dict[str, str] = dict(self._environ)

    def load(self) -> bool:
        """Hydrate the in-memory view from the file; existing environment wins"""
        if not self.path.exists():
            LOG.warning(f"No .env file at {self.path}, using process environment only")
            return False

        try:
            file_values = dotenv_values(self.path, encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            LOG.error(f"Failed to load .env file: {e}")
            return False

        for key, value in file_values.items():
            if value is not None and key not in self._environ:
                self._values[key] = value

        LOG.debug(f"Loaded {len(file_values)} entries from {self.path}")
        return True

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        value = self._values.get(key)
        return value if value else default

    def get_int(self, key: str, default: int = 0) -> int:
        value = self.get(key)
        if value is None:
            return default
        try:
            return int(value, 10)
        except ValueError:
            LOG.warning(f"Invalid integer value for {key}: {value!r}, using {default}")
            return default

    def get_bool(self, key: str, default: bool = False) -> bool:
        value = self.get(key)
        if value is None:
            return default
        return value.lower() == "true" or value == "1"

    def __contains__(self, key: str) -> bool:
        return self.get(key) is not None

    def as_environ(self) -> Dict[str, str]:
        """Environment for child processes"""
        return dict(self._values)

    def require(self, keys: Iterable[str]) -> None:
        missing = [key for key in keys if self.get(key) is None]
        if missing:
            raise ConfigurationError(
                "Missing required environment variables: "
                + ", ".join(missing)
                + "\nPlease check your .env file and ensure all required variables are set.",
                missing=missing,
                config_file=str(self.path)
            )

    def set(self, key: str, value: str, create_if_missing: bool = True) -> bool:
        """
        Persist `key` as `export KEY=value` and update the in-memory view.

        Returns:
            True on success, False if the file could not be read or written
        """
        try:
            if self.path.exists():
                content = self.path.read_text(encoding="utf-8")
            elif create_if_missing:
                LOG.warning(f"Creating new .env file at {self.path}")
                content = FILE_HEADER
            else:
                raise FileNotFoundError(f"Environment file not found: {self.path}")

            content = self._render(content, key, value)

            tmp_path = self.path.with_name(self.path.name + ".tmp")
            try:
                tmp_path.write_text(content, encoding="utf-8")
                os.replace(tmp_path, self.path)
            finally:
                if tmp_path.exists():
                    tmp_path.unlink()

        except (OSError, UnicodeError) as e:
            LOG.error(f"Failed to update .env file: {e}")
            return False

        self._values[key] = value
        LOG.info(f"Updated {key} in .env file")
        return True

    @staticmethod
    def _render(content: str, key: str, value: str) -> str:
        """Replace the first active definition of `key`, drop the rest, or append"""
        pattern = _definition_pattern(key)
        new_line = f"export {key}={value}"
        lines = content.splitlines(keepends=True)

        out = []
        replaced = False
        for line in lines:
            if pattern.match(line):
                if not replaced:
                    ending = "\n" if line.endswith("\n") else ""
                    out.append(new_line + ending)
                    replaced = True
                continue
            out.append(line)

        if not replaced:
            if out and not out[-1].endswith("\n"):
                out[-1] += "\n"
            out.append(new_line + "\n")

        return "".join(out)
