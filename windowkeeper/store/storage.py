"""Durable key-value storage for the saved-window registries."""

from __future__ import annotations

import asyncio
import copy
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Iterable

logger = logging.getLogger(__name__)

_DEFAULT_STATE_PATH = os.path.join(os.path.expanduser("~"), ".windowkeeper", "state.json")


class StateStorage(ABC):
    """A blob store read and written as whole top-level keys."""

    @abstractmethod
    async def read(self, keys: Iterable[str]) -> dict[str, Any]:
        """Return the stored value for each present key; absent keys are omitted."""

    @abstractmethod
    async def write(self, values: dict[str, Any]) -> None:
        """Replace the given keys in one atomic write."""


class MemoryStorage(StateStorage):
    """In-process storage. Values are deep-copied so callers never share state."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = copy.deepcopy(initial or {})
        self.write_count = 0

    async def read(self, keys: Iterable[str]) -> dict[str, Any]:
        return {k: copy.deepcopy(self._data[k]) for k in keys if k in self._data}

    async def write(self, values: dict[str, Any]) -> None:
        self._data.update(copy.deepcopy(values))
        self.write_count += 1

    @property
    def data(self) -> dict[str, Any]:
        return copy.deepcopy(self._data)


class JsonFileStorage(StateStorage):
    """
    Single JSON document on disk.

    Writes go to a sibling temp file which then replaces the document, so a
    crash mid-write leaves the previous state intact.
    """

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path or _DEFAULT_STATE_PATH).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def _load(self) -> dict[str, Any]:
        try:
            with open(self._path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Ignoring unreadable state file %s: %s", self._path, exc)
            return {}
        if not isinstance(data, dict):
            logger.warning("Ignoring state file %s: top level is not an object", self._path)
            return {}
        return data

    def _dump(self, values: dict[str, Any]) -> None:
        data = self._load()
        data.update(values)
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self._path.parent, prefix=".state-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp, self._path)
        except BaseException:
            try:
                os.unlink(tmp)
            except FileNotFoundError:
                pass
            raise

    async def read(self, keys: Iterable[str]) -> dict[str, Any]:
        data = await asyncio.to_thread(self._load)
        return {k: data[k] for k in keys if k in data}

    async def write(self, values: dict[str, Any]) -> None:
        await asyncio.to_thread(self._dump, values)
