"""Two-tier translation cache: in-memory dict in front of one-file-per-key disk storage."""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Protocol

from rich.console import Console

from lsr.core.models import BlockTranslation, CacheStats
from lsr.utils.cache import cache_filename

console = Console()


class BlobCache(Protocol):
    """Persistent key/value storage for raw translation text."""

    def get(self, key: str) -> str | None: ...

    def set(self, key: str, value: str) -> None: ...

    def clear(self) -> None: ...

    def stats(self) -> CacheStats: ...


class DiskBlobCache:
    """Stores each value in <cache_dir>/<md5(key)>.txt as UTF-8 text.

    Methods raise OSError on I/O failure; CacheAdapter decides how to degrade.
    """

    def __init__(self, cache_dir: Path) -> None:
        self.cache_dir = Path(cache_dir)

    def _path(self, key: str) -> Path:
        return self.cache_dir / cache_filename(key)

    def get(self, key: str) -> str | None:
        path = self._path(key)
        if not path.is_file():
            return None
        return path.read_text(encoding="utf-8")

    def set(self, key: str, value: str) -> None:
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        path = self._path(key)
        tmp = path.with_suffix(".tmp")
        tmp.write_text(value, encoding="utf-8")
        tmp.replace(path)

    def clear(self) -> None:
        if not self.cache_dir.is_dir():
            return
        for f in self.cache_dir.iterdir():
            if f.is_file():
                f.unlink()

    def stats(self) -> CacheStats:
        if not self.cache_dir.is_dir():
            return CacheStats(count=0, total_bytes=0)
        files = [f for f in self.cache_dir.iterdir() if f.is_file()]
        return CacheStats(count=len(files), total_bytes=sum(f.stat().st_size for f in files))


class CacheAdapter:
    """Async cache facade with a memory tier and transparent fallthrough to disk.

    Reads check memory first, then the persistent tier (promoting hits into
    memory). Persistent-tier failures are reported and treated as a miss or a
    dropped write, so caching never blocks translation.
    """

    def __init__(self, persistent: BlobCache | None = None) -> None:
        self._memory: dict[str, str] = {}
        self._persistent = persistent

    async def get(self, key: str) -> str | None:
        if key in self._memory:
            return self._memory[key]
        if self._persistent is None:
            return None
        try:
            value = await asyncio.to_thread(self._persistent.get, key)
        except OSError as e:
            console.print(f"[yellow]Cache read failed for {key}:[/yellow] {e}")
            return None
        if value:
            self._memory[key] = value
            return value
        return None

    async def set(self, key: str, value: str) -> None:
        self._memory[key] = value
        if self._persistent is None:
            return
        try:
            await asyncio.to_thread(self._persistent.set, key, value)
        except OSError as e:
            console.print(f"[yellow]Cache write failed for {key}:[/yellow] {e}")

    async def clear(self) -> None:
        self._memory.clear()
        if self._persistent is not None:
            try:
                await asyncio.to_thread(self._persistent.clear)
            except OSError as e:
                console.print(f"[yellow]Cache clear failed:[/yellow] {e}")

    async def stats(self) -> CacheStats:
        if self._persistent is None:
            return CacheStats(count=len(self._memory), total_bytes=0)
        try:
            return await asyncio.to_thread(self._persistent.stats)
        except OSError as e:
            console.print(f"[yellow]Cache stats failed:[/yellow] {e}")
            return CacheStats(count=0, total_bytes=0)

    # Block-level entries hold JSON {"src": ..., "dst": ...} under "block_<id>" keys.

    async def get_block(self, block_id: str) -> BlockTranslation | None:
        cached = await self.get(f"block_{block_id}")
        if not cached:
            return None
        try:
            data = json.loads(cached)
            return BlockTranslation(source=data["src"], translated=data["dst"])
        except (json.JSONDecodeError, KeyError, TypeError) as e:
            console.print(f"[yellow]Corrupt block cache entry {block_id}:[/yellow] {e}")
            return None

    async def get_blocks(self, block_ids: list[str]) -> dict[str, BlockTranslation]:
        found = await asyncio.gather(*(self.get_block(b) for b in block_ids))
        return {b: entry for b, entry in zip(block_ids, found) if entry is not None}

    async def set_block(self, block_id: str, source: str, translated: str) -> None:
        payload = json.dumps({"src": source, "dst": translated}, ensure_ascii=False)
        await self.set(f"block_{block_id}", payload)

    async def set_blocks(self, blocks: list[tuple[str, str, str]]) -> None:
        """Save several blocks given as (block_id, source, translated) tuples."""
        await asyncio.gather(*(self.set_block(b_id, src, dst) for b_id, src, dst in blocks))
