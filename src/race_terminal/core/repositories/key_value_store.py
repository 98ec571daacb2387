"""
Key-value store implementations.

InMemoryKeyValueStore keeps values for the life of the process and is what
tests and single-process deployments share between tabs.
JsonFileKeyValueStore persists values to one JSON document so identity and
theme survive restarts.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

from race_terminal.core.common.exceptions import PersistenceError
from race_terminal.core.interfaces.key_value_store_interface import IKeyValueStore

logger = logging.getLogger(__name__)


class InMemoryKeyValueStore(IKeyValueStore):
    """In-memory implementation of the key-value store.

    This store does not persist values. It is suitable for development,
    testing, and sharing state between sessions of one process.
    """

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._values: dict[str, str] = dict(initial or {})

    def get(self, key: str) -> str | None:
        return self._values.get(key)

    def set(self, key: str, value: str) -> None:
        self._values[key] = value

    def remove(self, key: str) -> None:
        self._values.pop(key, None)


class JsonFileKeyValueStore(IKeyValueStore):
    """Key-value store backed by a single JSON object on disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _read_all(self) -> dict[str, str]:
        if not self.path.is_file():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            logger.error(
                "Failed to parse store file %s as JSON: %s", self.path, e, exc_info=True
            )
            raise PersistenceError(
                f"Failed to parse store file {self.path.name} as JSON."
            ) from e
        except OSError as e:
            logger.error("Failed to read store file %s: %s", self.path, e, exc_info=True)
            raise PersistenceError(f"Failed to read store file {self.path.name}.") from e

        if not isinstance(data, dict):
            raise PersistenceError(
                f"Store file {self.path.name} does not contain a JSON object."
            )
        return {str(k): str(v) for k, v in data.items() if v is not None}

    def _write_all(self, values: dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as f:
                    json.dump(values, f, indent=2, sort_keys=True)
                os.replace(tmp_name, self.path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as e:
            logger.error("Failed to write store file %s: %s", self.path, e, exc_info=True)
            raise PersistenceError(f"Failed to write store file {self.path.name}.") from e

    def get(self, key: str) -> str | None:
        try:
            return self._read_all().get(key)
        except PersistenceError as e:
            raise PersistenceError(e.message, key=key) from e

    def set(self, key: str, value: str) -> None:
        try:
            values = self._read_all()
        except PersistenceError:
            logger.warning(
                "Store file %s is unreadable; rewriting it from scratch", self.path
            )
            values = {}
        values[key] = value
        try:
            self._write_all(values)
        except PersistenceError as e:
            raise PersistenceError(e.message, key=key) from e

    def remove(self, key: str) -> None:
        values = self._read_all()
        if key in values:
            del values[key]
            self._write_all(values)
