"""Storage backends for the tiered cache.

Both backends index entries and metadata by day, so a query only ever
touches the entries of the days it asks about.
"""

from abc import ABC, abstractmethod

import redis.asyncio as redis

from seismistats.client.cache.models import CacheEntry, CacheInfo, DailyMeta


class CacheBackend(ABC):
    """Abstract per-day store for cache entries and daily metadata."""

    @abstractmethod
    async def write_day(self, day: str, entries: list[CacheEntry], meta: DailyMeta) -> None:
        """Write a day's entries, then its metadata.

        Readers trust entries only through metadata, so metadata must not
        become visible before the entries it describes.
        """
        ...

    @abstractmethod
    async def get_meta(self, day: str, key: str) -> DailyMeta | None:
        ...

    @abstractmethod
    async def metas_for_day(self, day: str) -> list[DailyMeta]:
        ...

    @abstractmethod
    async def all_metas(self) -> list[DailyMeta]:
        ...

    @abstractmethod
    async def delete_meta(self, day: str, key: str) -> None:
        ...

    @abstractmethod
    async def entries_for_day(self, day: str) -> list[CacheEntry]:
        ...

    @abstractmethod
    async def all_entries(self) -> list[CacheEntry]:
        ...

    @abstractmethod
    async def delete_entries(self, day: str, region: str) -> int:
        """Remove a day's entries for one region; returns how many were removed."""
        ...

    @abstractmethod
    async def entry_days(self) -> list[str]:
        """Sorted days that currently hold at least one entry."""
        ...

    @abstractmethod
    async def count_entries(self) -> int:
        ...

    @abstractmethod
    async def get_info(self) -> CacheInfo | None:
        ...

    @abstractmethod
    async def put_info(self, info: CacheInfo) -> None:
        ...

    @abstractmethod
    async def clear(self) -> None:
        ...

    async def close(self) -> None:
        """Release connections, if any."""


class MemoryCacheBackend(CacheBackend):
    """In-process backend; the default for tests and single-process clients."""

    def __init__(self) -> None:
        # day -> entry_id -> entry
        self._entries: dict[str, dict[str, CacheEntry]] = {}
        # day -> meta key -> meta
        self._metas: dict[str, dict[str, DailyMeta]] = {}
        self._info: CacheInfo | None = None

    async def write_day(self, day: str, entries: list[CacheEntry], meta: DailyMeta) -> None:
        if entries:
            bucket = self._entries.setdefault(day, {})
            for entry in entries:
                bucket[entry.entry_id] = entry
        self._metas.setdefault(day, {})[meta.key] = meta

    async def get_meta(self, day: str, key: str) -> DailyMeta | None:
        return self._metas.get(day, {}).get(key)

    async def metas_for_day(self, day: str) -> list[DailyMeta]:
        return list(self._metas.get(day, {}).values())

    async def all_metas(self) -> list[DailyMeta]:
        return [meta for day in sorted(self._metas) for meta in self._metas[day].values()]

    async def delete_meta(self, day: str, key: str) -> None:
        bucket = self._metas.get(day)
        if bucket is None:
            return
        bucket.pop(key, None)
        if not bucket:
            del self._metas[day]

    async def entries_for_day(self, day: str) -> list[CacheEntry]:
        return list(self._entries.get(day, {}).values())

    async def all_entries(self) -> list[CacheEntry]:
        return [entry for bucket in self._entries.values() for entry in bucket.values()]

    async def delete_entries(self, day: str, region: str) -> int:
        bucket = self._entries.get(day)
        if not bucket:
            return 0
        doomed = [entry_id for entry_id, entry in bucket.items() if entry.region == region]
        for entry_id in doomed:
            del bucket[entry_id]
        if not bucket:
            del self._entries[day]
        return len(doomed)

    async def entry_days(self) -> list[str]:
        return sorted(day for day, bucket in self._entries.items() if bucket)

    async def count_entries(self) -> int:
        return sum(len(bucket) for bucket in self._entries.values())

    async def get_info(self) -> CacheInfo | None:
        return self._info

    async def put_info(self, info: CacheInfo) -> None:
        self._info = info

    async def clear(self) -> None:
        self._entries.clear()
        self._metas.clear()
        self._info = None


class RedisCacheBackend(CacheBackend):
    """
    Redis backend shared between client processes.

    Layout under the key prefix:
        {prefix}:entries:{day}   hash  entry_id -> CacheEntry JSON
        {prefix}:meta:{day}      hash  meta key -> DailyMeta JSON
        {prefix}:entry-days      set   days holding entries
        {prefix}:meta-days       set   days holding metadata
        {prefix}:info            string CacheInfo JSON
    """

    def __init__(self, client: redis.Redis, prefix: str = "seismistats:cache"):
        self.client = client
        self.prefix = prefix

    @classmethod
    def from_url(cls, url: str, prefix: str = "seismistats:cache") -> "RedisCacheBackend":
        return cls(redis.from_url(url, decode_responses=True), prefix=prefix)

    def _entries_key(self, day: str) -> str:
        return f"{self.prefix}:entries:{day}"

    def _meta_key(self, day: str) -> str:
        return f"{self.prefix}:meta:{day}"

    @property
    def _entry_days_key(self) -> str:
        return f"{self.prefix}:entry-days"

    @property
    def _meta_days_key(self) -> str:
        return f"{self.prefix}:meta-days"

    @property
    def _info_key(self) -> str:
        return f"{self.prefix}:info"

    async def write_day(self, day: str, entries: list[CacheEntry], meta: DailyMeta) -> None:
        # MULTI/EXEC: readers see the whole day or none of it
        async with self.client.pipeline(transaction=True) as pipe:
            if entries:
                pipe.hset(
                    self._entries_key(day),
                    mapping={entry.entry_id: entry.model_dump_json() for entry in entries},
                )
                pipe.sadd(self._entry_days_key, day)
            pipe.hset(self._meta_key(day), meta.key, meta.model_dump_json())
            pipe.sadd(self._meta_days_key, day)
            await pipe.execute()

    async def get_meta(self, day: str, key: str) -> DailyMeta | None:
        raw = await self.client.hget(self._meta_key(day), key)
        return DailyMeta.model_validate_json(raw) if raw else None

    async def metas_for_day(self, day: str) -> list[DailyMeta]:
        raw = await self.client.hvals(self._meta_key(day))
        return [DailyMeta.model_validate_json(value) for value in raw]

    async def all_metas(self) -> list[DailyMeta]:
        metas: list[DailyMeta] = []
        for day in sorted(await self.client.smembers(self._meta_days_key)):
            metas.extend(await self.metas_for_day(day))
        return metas

    async def delete_meta(self, day: str, key: str) -> None:
        await self.client.hdel(self._meta_key(day), key)
        if not await self.client.hlen(self._meta_key(day)):
            await self.client.srem(self._meta_days_key, day)

    async def entries_for_day(self, day: str) -> list[CacheEntry]:
        raw = await self.client.hvals(self._entries_key(day))
        return [CacheEntry.model_validate_json(value) for value in raw]

    async def all_entries(self) -> list[CacheEntry]:
        entries: list[CacheEntry] = []
        for day in await self.entry_days():
            entries.extend(await self.entries_for_day(day))
        return entries

    async def delete_entries(self, day: str, region: str) -> int:
        doomed = [
            entry.entry_id
            for entry in await self.entries_for_day(day)
            if entry.region == region
        ]
        if doomed:
            await self.client.hdel(self._entries_key(day), *doomed)
        if not await self.client.hlen(self._entries_key(day)):
            await self.client.srem(self._entry_days_key, day)
        return len(doomed)

    async def entry_days(self) -> list[str]:
        return sorted(await self.client.smembers(self._entry_days_key))

    async def count_entries(self) -> int:
        days = await self.entry_days()
        if not days:
            return 0
        async with self.client.pipeline(transaction=False) as pipe:
            for day in days:
                pipe.hlen(self._entries_key(day))
            counts = await pipe.execute()
        return sum(counts)

    async def get_info(self) -> CacheInfo | None:
        raw = await self.client.get(self._info_key)
        return CacheInfo.model_validate_json(raw) if raw else None

    async def put_info(self, info: CacheInfo) -> None:
        await self.client.set(self._info_key, info.model_dump_json())

    async def clear(self) -> None:
        keys = [key async for key in self.client.scan_iter(match=f"{self.prefix}:*")]
        if keys:
            await self.client.delete(*keys)

    async def close(self) -> None:
        await self.client.aclose()
