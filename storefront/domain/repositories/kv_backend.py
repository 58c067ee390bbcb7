# storefront/domain/repositories/kv_backend.py
from __future__ import annotations
from pathlib import Path
from typing import Dict, Optional, Protocol
from redis.asyncio import Redis
from redis.exceptions import RedisError
import asyncio
import logging
import os
import tempfile

from storefront.core.errors import PersistenceError

"""
Note:
    - Key-value slots hold one opaque string (a JSON blob) per fixed key.
    - No business logic here, just get/put/delete.
    - Every backend raises PersistenceError for I/O failures; callers decide
      whether that is fatal.
"""

logger = logging.getLogger(__name__)


class KeyValueBackend(Protocol):
    kind: str

    async def get(self, key: str) -> Optional[str]: ...
    async def put(self, key: str, value: str) -> None: ...
    async def delete(self, key: str) -> None: ...


class InMemoryBackend:
    """Dict-backed slots. One process, one session; handy in tests."""
    kind = "memory"

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    async def put(self, key: str, value: str) -> None:
        self.data[key] = value

    async def delete(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileBackend:
    """
    One `<key>.json` file per slot under `directory`.
    Writes go to a temp file first and are moved into place with os.replace,
    so readers see either the old blob or the new one.
    """
    kind = "file"

    def __init__(self, directory: str | Path):
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        if not key or "/" in key or "\\" in key or key.startswith("."):
            raise PersistenceError(f"Invalid slot key: {key!r}")
        return self.directory / f"{key}.json"

    def _read(self, path: Path) -> Optional[str]:
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

    def _write(self, path: Path, value: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=path.parent, prefix=f".{path.stem}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp, path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    async def get(self, key: str) -> Optional[str]:
        path = self.path_for(key)
        try:
            return await asyncio.to_thread(self._read, path)
        except OSError as e:
            raise PersistenceError(f"read {path} failed: {e}") from e

    async def put(self, key: str, value: str) -> None:
        path = self.path_for(key)
        try:
            await asyncio.to_thread(self._write, path, value)
        except OSError as e:
            raise PersistenceError(f"write {path} failed: {e}") from e

    async def delete(self, key: str) -> None:
        path = self.path_for(key)
        try:
            await asyncio.to_thread(path.unlink, True)
        except OSError as e:
            raise PersistenceError(f"delete {path} failed: {e}") from e


class RedisBackend:
    """Slots stored as plain Redis strings under `<prefix>:<key>` (no TTL)."""
    kind = "redis"

    def __init__(self, redis: Redis, prefix: str = "storefront"):
        self.redis = redis
        self.prefix = prefix

    def key(self, key: str) -> str:
        return f"{self.prefix}:{key}"

    async def get(self, key: str) -> Optional[str]:
        try:
            val = await self.redis.get(self.key(key))
        except RedisError as e:
            raise PersistenceError(f"redis get {key} failed: {e}") from e
        if isinstance(val, bytes):
            val = val.decode("utf-8")
        return val

    async def put(self, key: str, value: str) -> None:
        try:
            await self.redis.set(self.key(key), value)
        except RedisError as e:
            raise PersistenceError(f"redis set {key} failed: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            await self.redis.delete(self.key(key))
        except RedisError as e:
            raise PersistenceError(f"redis delete {key} failed: {e}") from e


def build_backend(settings, redis: Optional[Redis] = None) -> KeyValueBackend:
    """Redis when a client is connected, JSON files under DATA_DIR otherwise."""
    if redis is not None:
        logger.info("kv backend=redis prefix=%s", settings.kv_prefix)
        return RedisBackend(redis, prefix=settings.kv_prefix)
    logger.info("kv backend=file dir=%s", settings.DATA_DIR)
    return JsonFileBackend(settings.DATA_DIR)
