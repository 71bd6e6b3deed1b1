"""
=============================================================================
LANDING CONTACT API - RATE LIMITER MODULE
=============================================================================
Fixed-window rate limiting for the contact form.

Features:
- Pluggable storage behind RateLimitStore (in-memory by default)
- Atomic check-and-increment per identity
- Window resets fully once it expires (not a true sliding window)
- Trusted-proxy validation for X-Forwarded-For
- Per-request identities for clients without a usable IP
- Background sweeper that drops expired entries

Usage:
    limiter = RateLimiter(InMemoryRateLimitStore())
    result = limiter.check(identity, max_requests=3, window_ms=3_600_000)
    if not result.allowed:
        ...

Known limitation: state is process-local. Several instances need a shared
store implementing RateLimitStore.
=============================================================================
"""

import asyncio
import ipaddress
import logging
import math
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from threading import Lock
from typing import Callable, Dict, Iterable, List, Optional, Union

from fastapi import Request

logger = logging.getLogger(__name__)

IPNetwork = Union[ipaddress.IPv4Network, ipaddress.IPv6Network]


def now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class RateLimitEntry:
    count: int
    reset_time: int  # epoch milliseconds


@dataclass(frozen=True)
class RateLimitResult:
    allowed: bool
    remaining: int
    reset_time: int
    limit: int

    def retry_after_seconds(self, now: int) -> int:
        """Whole seconds until the window resets, never less than one."""
        return max(1, math.ceil((self.reset_time - now) / 1000))


# =============================================================================
# STORE ABSTRACTION
# =============================================================================


class RateLimitStore(ABC):
    """Storage for per-identity rate-limit windows."""

    @abstractmethod
    def get(self, key: str) -> Optional[RateLimitEntry]:
        """Return a copy of the entry for key, if any."""

    @abstractmethod
    def increment(
        self, key: str, max_requests: int, window_ms: int, now: int
    ) -> RateLimitResult:
        """Atomically count one request for key and report the outcome."""

    @abstractmethod
    def sweep(self, now: int) -> int:
        """Remove expired entries and return how many were dropped."""

    @abstractmethod
    def reset(self) -> None:
        """Clear all state (for tests)."""

    @abstractmethod
    def stats(self) -> dict:
        """Return debugging stats."""


class InMemoryRateLimitStore(RateLimitStore):
    """Thread-safe in-memory store (single-instance only)."""

    def __init__(self) -> None:
        self._lock = Lock()
        self._entries: Dict[str, RateLimitEntry] = {}

    def get(self, key: str) -> Optional[RateLimitEntry]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            return RateLimitEntry(count=entry.count, reset_time=entry.reset_time)

    def increment(
        self, key: str, max_requests: int, window_ms: int, now: int
    ) -> RateLimitResult:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None and entry.reset_time < now:
                # Expired window: start over lazily
                del self._entries[key]
                entry = None

            if entry is None:
                entry = RateLimitEntry(count=0, reset_time=now + window_ms)
                self._entries[key] = entry

            if entry.count >= max_requests:
                return RateLimitResult(
                    allowed=False,
                    remaining=0,
                    reset_time=entry.reset_time,
                    limit=max_requests,
                )

            entry.count += 1
            return RateLimitResult(
                allowed=True,
                remaining=max_requests - entry.count,
                reset_time=entry.reset_time,
                limit=max_requests,
            )

    def sweep(self, now: int) -> int:
        with self._lock:
            expired = [k for k, e in self._entries.items() if e.reset_time < now]
            for key in expired:
                del self._entries[key]
            return len(expired)

    def reset(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict:
        with self._lock:
            return {
                "backend": "in_memory",
                "tracked_keys": len(self._entries),
                "counts": {k: e.count for k, e in self._entries.items()},
            }


# =============================================================================
# LIMITER
# =============================================================================


class RateLimiter:
    """Owns the rate-limit store for the life of the process."""

    def __init__(
        self,
        store: RateLimitStore,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self.store = store
        self.clock = clock

    def check(self, identity: str, max_requests: int, window_ms: int) -> RateLimitResult:
        return self.store.increment(identity, max_requests, window_ms, self.clock())

    def sweep(self) -> int:
        removed = self.store.sweep(self.clock())
        if removed:
            logger.debug("Rate limiter swept %d expired entries", removed)
        return removed

    def reset(self) -> None:
        self.store.reset()


class RateLimitSweeper:
    """Periodically sweeps expired entries; stopped on shutdown."""

    def __init__(self, limiter: RateLimiter, interval_seconds: float = 60.0) -> None:
        self.limiter = limiter
        self.interval_seconds = interval_seconds
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._task = asyncio.create_task(self._run(), name="rate-limit-sweeper")
        logger.info("Rate limit sweeper started (interval=%ss)", self.interval_seconds)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
        logger.info("Rate limit sweeper stopped")

    async def _run(self) -> None:
        while True:
            await asyncio.sleep(self.interval_seconds)
            try:
                self.limiter.sweep()
            except Exception:
                logger.exception("Rate limit sweep failed")


# =============================================================================
# IP EXTRACTION
# =============================================================================


def parse_trusted_networks(entries: Iterable[str]) -> List[IPNetwork]:
    """Parse TRUSTED_PROXIES entries into network objects."""
    nets = []
    for entry in entries:
        try:
            nets.append(ipaddress.ip_network(entry, strict=False))
        except ValueError:
            logger.warning("Invalid TRUSTED_PROXIES entry ignored: %s", entry)
    return nets


def _valid_ip(value: Optional[str]) -> Optional[str]:
    if not value:
        return None
    try:
        return str(ipaddress.ip_address(value.strip()))
    except ValueError:
        return None


def _is_trusted_proxy(ip_str: str, trusted_networks: List[IPNetwork]) -> bool:
    try:
        addr = ipaddress.ip_address(ip_str)
    except ValueError:
        return False
    return any(addr in net for net in trusted_networks)


def get_client_ip(request: Request, trusted_networks: List[IPNetwork]) -> Optional[str]:
    """Extract a validated client IP, trusting X-Forwarded-For only from trusted proxies.

    Returns ``None`` when no syntactically valid address is available.
    """
    direct_ip = _valid_ip(request.client.host if request.client else None)

    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded and direct_ip and _is_trusted_proxy(direct_ip, trusted_networks):
        parts = [p.strip() for p in forwarded.split(",") if p.strip()]
        # Rightmost untrusted IP is the real client
        for candidate in reversed(parts):
            ip = _valid_ip(candidate)
            if ip is None:
                break
            if not _is_trusted_proxy(ip, trusted_networks):
                return ip

    return direct_ip


def resolve_rate_limit_identity(client_ip: Optional[str], request_id: str) -> str:
    """Rate-limit key for a request.

    Clients without a usable IP get a key unique to the request, so they
    never share one bucket.
    """
    if client_ip and client_ip != "anonymous":
        return f"ip:{client_ip}"
    return f"anon:{request_id}"
