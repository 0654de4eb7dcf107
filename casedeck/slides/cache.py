"""
Deck cache - advisory persistence of generated decks keyed by input text.

Records live in a key-value store under a versioned namespace, expire after
the configured TTL and are evicted oldest-first once the entry bound is
exceeded. Store failures are logged and treated as a miss or a skipped write.
"""

from __future__ import annotations

import logging
import time
from abc import ABC, abstractmethod
from typing import Callable, Dict, List, Optional

import anyio
import orjson

from casedeck.config import Settings, get_settings
from casedeck.slides.models import CacheRecord, SlideDeck

logger = logging.getLogger(__name__)

Clock = Callable[[], int]


def wall_clock_ms() -> int:
    return int(time.time() * 1000)


class KeyValueStore(ABC):
    """Byte-oriented key-value backend."""

    @abstractmethod
    async def get(self, key: str) -> Optional[bytes]:
        pass

    @abstractmethod
    async def set(self, key: str, value: bytes) -> None:
        pass

    @abstractmethod
    async def delete(self, key: str) -> None:
        pass

    @abstractmethod
    async def list_keys(self) -> List[str]:
        pass


class MemoryStore(KeyValueStore):
    """Process-local store; contents vanish on restart."""

    def __init__(self) -> None:
        self._data: Dict[str, bytes] = {}

    async def get(self, key: str) -> Optional[bytes]:
        return self._data.get(key)

    async def set(self, key: str, value: bytes) -> None:
        self._data[key] = bytes(value)

    async def delete(self, key: str) -> None:
        self._data.pop(key, None)

    async def list_keys(self) -> List[str]:
        return list(self._data)


class FileStore(KeyValueStore):
    """
    One file per key under ``directory``.

    Writes land in a temporary sibling first and are renamed into place, so a
    cancelled write never leaves a truncated record behind.
    """

    suffix = ".json"

    def __init__(self, directory: str) -> None:
        self.directory = anyio.Path(directory)

    def _path(self, key: str) -> anyio.Path:
        return self.directory / f"{key}{self.suffix}"

    async def get(self, key: str) -> Optional[bytes]:
        path = self._path(key)
        if not await path.exists():
            return None
        return await path.read_bytes()

    async def set(self, key: str, value: bytes) -> None:
        await self.directory.mkdir(parents=True, exist_ok=True)
        target = self._path(key)
        staging = self.directory / f".{key}.tmp"
        await staging.write_bytes(value)
        await staging.replace(target)

    async def delete(self, key: str) -> None:
        await self._path(key).unlink(missing_ok=True)

    async def list_keys(self) -> List[str]:
        if not await self.directory.exists():
            return []
        keys = []
        async for path in self.directory.glob(f"*{self.suffix}"):
            keys.append(path.name[: -len(self.suffix)])
        return keys


def build_store(settings: Settings) -> KeyValueStore:
    if settings.cache_dir:
        logger.info(f"Deck cache persisted under {settings.cache_dir}")
        return FileStore(settings.cache_dir)
    return MemoryStore()


class DeckCache:
    """Fingerprint-keyed cache of validated slide decks."""

    def __init__(
        self,
        backend: KeyValueStore,
        settings: Settings | None = None,
        clock: Clock = wall_clock_ms,
    ) -> None:
        self.backend = backend
        self.settings = settings or get_settings()
        self.clock = clock
        self.prefix = f"{self.settings.cache_namespace}{self.settings.cache_schema_version}_"

    @property
    def enabled(self) -> bool:
        return self.settings.cache_enabled

    @property
    def ttl_ms(self) -> int:
        return self.settings.cache_ttl_seconds * 1000

    @staticmethod
    def fingerprint(text: str) -> int:
        """32-bit rolling hash of the lowercased, trimmed text."""
        value = 0
        for char in text.strip().lower():
            value = (value * 31 + ord(char)) & 0xFFFFFFFF
        return value

    def key_for(self, text: str) -> str:
        return f"{self.prefix}{self.fingerprint(text)}"

    async def lookup(self, text: str) -> Optional[SlideDeck]:
        if not self.enabled:
            return None

        key = self.key_for(text)
        try:
            raw = await self.backend.get(key)
            if raw is None:
                logger.debug(f"Cache miss: {key}")
                return None
            record = CacheRecord.model_validate(orjson.loads(raw))
            if self.clock() - record.timestamp > self.ttl_ms:
                logger.info(f"Cache entry expired: {key}")
                await self.backend.delete(key)
                return None
        except Exception as exc:
            logger.warning(f"Cache lookup failed for {key}: {exc}")
            return None

        deck = record.data.model_copy(deep=True)
        deck.from_cache = True
        logger.info(f"Cache hit: {key} ({deck.total_slides} slides)")
        return deck

    async def store(self, text: str, deck: SlideDeck) -> None:
        if not self.enabled:
            return

        key = self.key_for(text)
        record = CacheRecord(
            fingerprint=self.fingerprint(text),
            data=deck,
            timestamp=self.clock(),
            input_length=len(text.strip()),
        )
        try:
            await self.backend.set(key, self._encode(record))
            logger.debug(f"Cached deck under {key}")
            await self._evict()
        except Exception as exc:
            logger.warning(f"Cache write failed for {key}: {exc}")

    async def clear(self) -> int:
        removed = 0
        try:
            for key in await self._keys():
                await self.backend.delete(key)
                removed += 1
        except Exception as exc:
            logger.warning(f"Cache clear interrupted after {removed} entries: {exc}")
        logger.info(f"Cleared {removed} cached decks")
        return removed

    async def size(self) -> int:
        try:
            return len(await self._keys())
        except Exception as exc:
            logger.warning(f"Cache size unavailable: {exc}")
            return 0

    async def _keys(self) -> List[str]:
        return [key for key in await self.backend.list_keys() if key.startswith(self.prefix)]

    async def _evict(self) -> None:
        keys = await self._keys()
        excess = len(keys) - self.settings.cache_max_entries
        if excess <= 0:
            return

        stamped = []
        for key in keys:
            raw = await self.backend.get(key)
            try:
                timestamp = orjson.loads(raw)["timestamp"] if raw else 0
            except (orjson.JSONDecodeError, KeyError, TypeError):
                timestamp = 0
            stamped.append((timestamp, key))

        stamped.sort()
        for _, key in stamped[:excess]:
            await self.backend.delete(key)
            logger.info(f"Evicted cached deck {key}")

    @staticmethod
    def _encode(record: CacheRecord) -> bytes:
        return orjson.dumps(record.model_dump(mode="json", by_alias=True, exclude_none=True))
