"""
Result Cache - SQLite-backed store for finished risk records

DESIGN:
- Keyed by (address lower-cased, chain, scan depth)
- TTL enforced at read time; expired rows are deleted lazily
- Eager sweep of expired rows when the cache is initialized
- Upsert on write (last writer wins), no in-flight deduplication
- Injectable clock so expiry can be tested without sleeping
"""

import asyncio
import json
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Tuple

import aiosqlite

from .errors import CacheCorruptionError

logger = logging.getLogger("ResultCache")

DEFAULT_TTL_SECONDS = 3600

SCHEMA = """
CREATE TABLE IF NOT EXISTS scan_results (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    contract_address TEXT NOT NULL,
    chain TEXT NOT NULL,
    scan_depth TEXT NOT NULL,
    result TEXT NOT NULL,
    created_at REAL NOT NULL,
    UNIQUE(contract_address, chain, scan_depth)
);
CREATE INDEX IF NOT EXISTS idx_scan_results_lookup
    ON scan_results(contract_address, chain, scan_depth);
CREATE INDEX IF NOT EXISTS idx_scan_results_created
    ON scan_results(created_at);
"""


@dataclass(frozen=True)
class CacheEntry:
    """One stored scan result"""
    address: str
    chain: str
    scan_depth: str
    payload: str
    created_at: float

    def is_expired(self, now: float, ttl: float) -> bool:
        return now - self.created_at > ttl


def cache_key(address: str, chain: str, scan_depth: str) -> Tuple[str, str, str]:
    return address.lower(), chain.lower(), scan_depth.lower()


class RiskCache:
    """
    Time-bounded store of serialized risk records.

    Usage:
        cache = RiskCache("scan_cache.db")
        await cache.initialize()
        record = await cache.get(address, chain, "quick")
    """

    def __init__(
        self,
        path: str = "scan_cache.db",
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.path = path
        self.ttl = ttl_seconds
        self._clock = clock
        self._conn: Optional[aiosqlite.Connection] = None
        self._lock = asyncio.Lock()

        self._stats = {
            "hits": 0,
            "misses": 0,
            "expired": 0,
            "corrupted": 0,
            "writes": 0,
        }

    async def initialize(self):
        """Open the database, create the schema and sweep expired rows"""
        if self._conn is not None:
            return
        self._conn = await aiosqlite.connect(self.path)
        self._conn.row_factory = aiosqlite.Row
        await self._conn.executescript(SCHEMA)
        await self._conn.commit()

        removed = await self.sweep_expired()
        logger.info(f"💾 Result cache ready at {self.path} (swept {removed} expired rows)")

    async def close(self):
        if self._conn is not None:
            await self._conn.close()
            self._conn = None
            logger.info("Result cache closed")

    def _require_conn(self) -> aiosqlite.Connection:
        if self._conn is None:
            raise RuntimeError("RiskCache.initialize() must be awaited before use")
        return self._conn

    async def _delete(self, key: Tuple[str, str, str]):
        conn = self._require_conn()
        await conn.execute(
            "DELETE FROM scan_results WHERE contract_address = ? AND chain = ? AND scan_depth = ?",
            key,
        )
        await conn.commit()

    async def get(self, address: str, chain: str, scan_depth: str) -> Optional[Dict[str, Any]]:
        """Return the cached record, or None on miss/expiry/corruption"""
        key = cache_key(address, chain, scan_depth)
        conn = self._require_conn()

        async with self._lock:
            async with conn.execute(
                "SELECT result, created_at FROM scan_results "
                "WHERE contract_address = ? AND chain = ? AND scan_depth = ?",
                key,
            ) as cursor:
                row = await cursor.fetchone()

            if row is None:
                self._stats["misses"] += 1
                return None

            entry = CacheEntry(*key, payload=row["result"], created_at=row["created_at"])

            if entry.is_expired(self._clock(), self.ttl):
                self._stats["expired"] += 1
                self._stats["misses"] += 1
                await self._delete(key)
                logger.debug(f"Cache EXPIRED: {key}")
                return None

            try:
                record = json.loads(entry.payload)
                if not isinstance(record, dict):
                    raise ValueError("payload is not a JSON object")
            except ValueError as e:
                error = CacheCorruptionError(":".join(key), e)
                logger.warning(f"⚠️ {error.message}: {e}")
                self._stats["corrupted"] += 1
                self._stats["misses"] += 1
                await self._delete(key)
                return None

        self._stats["hits"] += 1
        logger.debug(f"Cache HIT: {key}")
        return record

    async def set(self, address: str, chain: str, scan_depth: str, record: Dict[str, Any]):
        """Upsert a record, stamping it with the current clock"""
        key = cache_key(address, chain, scan_depth)
        conn = self._require_conn()
        payload = json.dumps(record)

        async with self._lock:
            await conn.execute(
                """
                INSERT INTO scan_results (contract_address, chain, scan_depth, result, created_at)
                VALUES (?, ?, ?, ?, ?)
                ON CONFLICT(contract_address, chain, scan_depth)
                DO UPDATE SET result = excluded.result, created_at = excluded.created_at
                """,
                (*key, payload, self._clock()),
            )
            await conn.commit()
            self._stats["writes"] += 1

    async def sweep_expired(self) -> int:
        """Delete every row past its TTL. Returns the number removed."""
        conn = self._require_conn()
        cutoff = self._clock() - self.ttl
        async with self._lock:
            cursor = await conn.execute("DELETE FROM scan_results WHERE created_at < ?", (cutoff,))
            await conn.commit()
            return cursor.rowcount or 0

    async def clear(self) -> int:
        conn = self._require_conn()
        async with self._lock:
            cursor = await conn.execute("DELETE FROM scan_results")
            await conn.commit()
            return cursor.rowcount or 0

    async def stats(self) -> Dict[str, Any]:
        """Row counts per chain plus hit/miss counters"""
        conn = self._require_conn()
        async with conn.execute(
            "SELECT chain, COUNT(*) AS total, MIN(created_at) AS oldest, MAX(created_at) AS newest "
            "FROM scan_results GROUP BY chain"
        ) as cursor:
            rows = await cursor.fetchall()

        by_chain = {
            row["chain"]: {"total": row["total"], "oldest": row["oldest"], "newest": row["newest"]}
            for row in rows
        }
        return {
            "entries": sum(c["total"] for c in by_chain.values()),
            "by_chain": by_chain,
            "ttl_seconds": self.ttl,
            **self._stats,
        }

    async def ping(self) -> bool:
        conn = self._require_conn()
        async with conn.execute("SELECT 1") as cursor:
            return (await cursor.fetchone()) is not None
