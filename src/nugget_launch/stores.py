"""
Onboarding Flag Stores.

Two PersistedFlagStore implementations:
- InMemoryFlagStore: process-lifetime flags (tests, simulations)
- JsonFlagStore: a single JSON file, the local equivalent of app defaults

Both raise PersistenceError on failure and ValueError for unknown flag
names. Degrading to defaults is the caller's decision.
"""

import json
import logging
import os
from pathlib import Path

from pydantic import ValidationError

from nugget_launch.errors import PersistenceError
from nugget_launch.models import FLAG_NAMES, PersistedFlags

logger = logging.getLogger(__name__)


def _check_flag(flag_name: str) -> None:
    if flag_name not in FLAG_NAMES:
        raise ValueError(f"Unknown onboarding flag: {flag_name}")


class InMemoryFlagStore:
    """Flags held in memory."""

    def __init__(self, flags: PersistedFlags | None = None) -> None:
        self._flags = flags or PersistedFlags()

    def get_flags(self) -> PersistedFlags:
        return self._flags.model_copy()

    def mark_seen(self, flag_name: str) -> None:
        _check_flag(flag_name)
        self._flags = self._flags.model_copy(update={flag_name: True})

    def reset(self, flag_name: str) -> None:
        _check_flag(flag_name)
        self._flags = self._flags.model_copy(update={flag_name: False})


class JsonFlagStore:
    """
    Flags persisted to a JSON file.

    A missing file means every flag is unset. Reading a corrupt file
    raises PersistenceError; the next write starts from defaults and
    replaces it atomically.
    """

    def __init__(self, path: os.PathLike[str] | str) -> None:
        self.path = Path(path)

    def get_flags(self) -> PersistedFlags:
        if not self.path.exists():
            return PersistedFlags()
        try:
            with self.path.open("r", encoding="utf-8") as f:
                raw = json.load(f)
            return PersistedFlags.model_validate(raw)
        except (OSError, json.JSONDecodeError, ValidationError) as e:
            raise PersistenceError(f"Could not read flags from {self.path}: {e}") from e

    def mark_seen(self, flag_name: str) -> None:
        self._write(flag_name, True)

    def reset(self, flag_name: str) -> None:
        self._write(flag_name, False)

    def _write(self, flag_name: str, value: bool) -> None:
        _check_flag(flag_name)
        try:
            current = self.get_flags()
        except PersistenceError as e:
            # Unreadable flags count as unset; the write replaces the file
            logger.warning(f"Overwriting unreadable flags file: {e}")
            current = PersistedFlags()
        flags = current.model_copy(update={flag_name: value})

        tmp_path = self.path.with_name(f"{self.path.name}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            with tmp_path.open("w", encoding="utf-8") as f:
                json.dump(flags.model_dump(), f, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except OSError as e:
            raise PersistenceError(f"Could not write flags to {self.path}: {e}") from e
        logger.debug(f"Flag {flag_name}={value} written to {self.path}")
