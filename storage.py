"""Key-value persistence for tokens and the cached user record.

Stores may be synchronous or asynchronous. Callers go through `resolve()` so
either kind works, and treat every call as a suspension point.
"""

import asyncio
import inspect
import json
import logging
import os
from pathlib import Path
from typing import Any, Protocol

log = logging.getLogger(__name__)


class KeyValueStore(Protocol):
    def get(self, key: str) -> Any: ...

    def set(self, key: str, value: Any) -> Any: ...

    def remove(self, key: str) -> Any: ...


async def resolve(result):
    """Await `result` if the store returned an awaitable, then yield once."""
    if inspect.isawaitable(result):
        return await result
    await asyncio.sleep(0)
    return result


class JsonFileStore:
    """Synchronous store backed by one JSON object on disk.

    Writes merge into whatever else the file already holds.
    """

    def __init__(self, path: str | os.PathLike):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> Any:
        return self._read().get(key)

    def set(self, key: str, value: Any) -> bool:
        data = self._read()
        data[key] = value
        return self._write(data)

    def remove(self, key: str) -> bool:
        data = self._read()
        if key not in data:
            return True
        data.pop(key)
        return self._write(data)

    def clear(self) -> bool:
        return self._write({})

    def _read(self) -> dict:
        try:
            with open(self._path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return {}
        except (OSError, json.JSONDecodeError):
            log.error("Error reading %s", self._path, exc_info=True)
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: dict) -> bool:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self._path.with_suffix(self._path.suffix + ".tmp")
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False)
            os.replace(tmp, self._path)
            return True
        except (OSError, TypeError, ValueError):
            log.error("Error writing %s", self._path, exc_info=True)
            return False


class MemoryStore:
    """Asynchronous in-process store. Values are kept JSON-encoded."""

    def __init__(self, initial: dict | None = None):
        self._data: dict[str, str] = {}
        for key, value in (initial or {}).items():
            self._data[key] = json.dumps(value)

    async def get(self, key: str) -> Any:
        raw = self._data.get(key)
        if raw is None:
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            log.error("Error getting %s from storage", key)
            return None

    async def set(self, key: str, value: Any) -> bool:
        try:
            self._data[key] = json.dumps(value)
        except (TypeError, ValueError):
            log.error("Error setting %s in storage", key, exc_info=True)
            return False
        return True

    async def remove(self, key: str) -> bool:
        self._data.pop(key, None)
        return True

    async def clear(self) -> bool:
        self._data.clear()
        return True

    def __contains__(self, key: str) -> bool:
        return key in self._data
