"""
PromptDash Usage Ledger.

In-process usage accounting for text-generation calls, without external
dependencies. Tracks:
- Token usage per call (bounded log of the most recent records)
- Aggregate statistics per endpoint
- A statistics cache keyed by name with a content hash and a TTL

Thread-safe via locks. One ledger per process through get_usage_ledger().
"""

from __future__ import annotations

import hashlib
import json
import math
import threading
import time
from collections import defaultdict, deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from functools import lru_cache
from typing import Any, Callable, Literal

from promptdash.config import get_settings


# -----------------------------------------------------------------------------
# Token estimation
# -----------------------------------------------------------------------------


def estimate_tokens(text: str | None) -> int:
    """
    Estimate the token count of a string.

    JSON-looking text (starts with '{' or '[') is denser, ~3 characters per
    token; anything else ~4. Always rounded up.
    """
    if not text:
        return 0
    stripped = text.strip()
    chars_per_token = 3 if stripped.startswith(("{", "[")) else 4
    return math.ceil(len(text) / chars_per_token)


def estimate_object_tokens(obj: Any) -> int:
    """Estimate tokens for an object by serializing it to compact JSON first."""
    if obj is None:
        return 0
    return estimate_tokens(json.dumps(obj, separators=(",", ":"), default=str))


# -----------------------------------------------------------------------------
# Hashing
# -----------------------------------------------------------------------------


def content_hash(obj: Any) -> str:
    """Stable SHA-256 of an object's canonical JSON form."""
    canonical = json.dumps(obj, sort_keys=True, separators=(",", ":"), default=str)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


# -----------------------------------------------------------------------------
# Usage records
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class TokenUsage:
    """Single text-generation call record."""

    endpoint: str
    input_tokens: int
    output_tokens: int
    model: str
    latency_ms: float | None = None
    status: Literal["ok", "error"] = "ok"
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def total_tokens(self) -> int:
        return self.input_tokens + self.output_tokens

    def to_dict(self) -> dict[str, Any]:
        return {
            "timestamp": self.timestamp.isoformat(),
            "endpoint": self.endpoint,
            "inputTokens": self.input_tokens,
            "outputTokens": self.output_tokens,
            "totalTokens": self.total_tokens,
            "model": self.model,
            "latencyMs": self.latency_ms,
            "status": self.status,
        }


# -----------------------------------------------------------------------------
# Statistics cache
# -----------------------------------------------------------------------------


@dataclass
class CacheEntry:
    data: Any
    stored_at: float
    data_hash: str


class StatisticsCache:
    """
    Named cache of computed values, invalidated by hash mismatch or age.

    Each key has its own lock held across check-compute-store, so concurrent
    callers for the same key compute the value once.
    """

    def __init__(self, ttl_seconds: float = 300.0, clock: Callable[[], float] = time.monotonic):
        self._ttl_seconds = ttl_seconds
        self._clock = clock
        self._lock = threading.Lock()
        self._key_locks: dict[str, threading.Lock] = {}
        self._entries: dict[str, CacheEntry] = {}
        self._hits = 0
        self._misses = 0

    def _lock_for(self, key: str) -> threading.Lock:
        with self._lock:
            lock = self._key_locks.get(key)
            if lock is None:
                lock = self._key_locks[key] = threading.Lock()
            return lock

    def get_or_compute(self, key: str, data_hash: str, compute: Callable[[], Any]) -> tuple[Any, bool]:
        """
        Return (value, from_cache).

        A stored entry is served only when its hash equals ``data_hash`` and
        it is younger than the TTL; otherwise ``compute`` runs and replaces it.
        """
        with self._lock_for(key):
            now = self._clock()
            with self._lock:
                entry = self._entries.get(key)
                if (
                    entry is not None
                    and entry.data_hash == data_hash
                    and now - entry.stored_at < self._ttl_seconds
                ):
                    self._hits += 1
                    return entry.data, True
                self._misses += 1

            data = compute()

            with self._lock:
                self._entries[key] = CacheEntry(data=data, stored_at=self._clock(), data_hash=data_hash)
            return data, False

    def stats(self) -> dict[str, Any]:
        with self._lock:
            lookups = self._hits + self._misses
            return {
                "size": len(self._entries),
                "keys": list(self._entries),
                "hits": self._hits,
                "misses": self._misses,
                "hitRate": round(self._hits / lookups, 3) if lookups else 0.0,
            }

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._key_locks.clear()
            self._hits = 0
            self._misses = 0


# -----------------------------------------------------------------------------
# Ledger
# -----------------------------------------------------------------------------


class UsageLedger:
    """
    Bounded log of text-generation usage plus the statistics cache.

    Thread-safe; appends and reads happen under a single lock.
    """

    def __init__(
        self,
        max_records: int = 100,
        cache_ttl_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._lock = threading.Lock()
        self._records: deque[TokenUsage] = deque(maxlen=max_records)
        self.cache = StatisticsCache(ttl_seconds=cache_ttl_seconds, clock=clock)

    @property
    def max_records(self) -> int:
        return self._records.maxlen or 0

    def record(self, usage: TokenUsage) -> None:
        """Append a usage record, evicting the oldest beyond capacity."""
        with self._lock:
            self._records.append(usage)

    def records(self) -> list[TokenUsage]:
        with self._lock:
            return list(self._records)

    def recent(self, n: int = 10) -> list[TokenUsage]:
        """The last ``n`` records, oldest first."""
        if n <= 0:
            return []
        with self._lock:
            return list(self._records)[-n:]

    def get_stats(self) -> dict[str, Any]:
        """
        Aggregate statistics over the retained records.

        Averages are rounded to integers; latency is averaged over records
        that carry one.
        """
        with self._lock:
            records = list(self._records)

        total_input = sum(r.input_tokens for r in records)
        total_output = sum(r.output_tokens for r in records)
        latencies = [r.latency_ms for r in records if r.latency_ms]
        requests_by_endpoint: dict[str, int] = defaultdict(int)
        tokens_by_endpoint: dict[str, int] = defaultdict(int)
        for r in records:
            requests_by_endpoint[r.endpoint] += 1
            tokens_by_endpoint[r.endpoint] += r.total_tokens

        count = len(records)
        return {
            "totalRequests": count,
            "totalInputTokens": total_input,
            "totalOutputTokens": total_output,
            "totalTokens": total_input + total_output,
            "avgInputTokens": round(total_input / count) if count else 0,
            "avgOutputTokens": round(total_output / count) if count else 0,
            "avgLatencyMs": round(sum(latencies) / len(latencies)) if latencies else 0,
            "errorCount": sum(1 for r in records if r.status == "error"),
            "requestsByEndpoint": dict(requests_by_endpoint),
            "tokensByEndpoint": dict(tokens_by_endpoint),
        }

    def clear_usage(self) -> None:
        with self._lock:
            self._records.clear()

    def clear_cache(self) -> None:
        self.cache.clear()

    def clear_all(self) -> None:
        self.clear_usage()
        self.clear_cache()


# -----------------------------------------------------------------------------
# Singleton accessor
# -----------------------------------------------------------------------------

@lru_cache(maxsize=1)
def get_usage_ledger() -> UsageLedger:
    """Get the process-wide UsageLedger."""
    settings = get_settings().ledger
    return UsageLedger(
        max_records=settings.max_records,
        cache_ttl_seconds=settings.cache_ttl_seconds,
    )
