"""Per-client rate limiting for authentication endpoints."""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

TOO_MANY_ATTEMPTS = "Too many attempts. Please try again later."
STALE_AFTER = 3600.0
CLEANUP_INTERVAL = 300.0


@dataclass
class _Attempts:
    count: int
    first_time: float
    blocked_until: float | None = None


def _header(headers: Mapping[str, str], name: str) -> str:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return ""


def _environ_headers(environ: Mapping[str, Any]) -> dict[str, str]:
    return {
        key[5:].replace("_", "-"): value
        for key, value in environ.items()
        if key.startswith("HTTP_")
    }


def client_ip(headers: Mapping[str, str], remote_addr: str) -> str:
    """Pick the client address from proxy headers or the peer address.

    For ``X-Forwarded-For`` the part after the last comma or space is used.
    """
    forwarded = _header(headers, "X-Forwarded-For")
    if forwarded:
        cut = max(forwarded.rfind(","), forwarded.rfind(" "))
        return forwarded[cut + 1:] if cut >= 0 else forwarded
    real_ip = _header(headers, "X-Real-IP")
    if real_ip:
        return real_ip
    return remote_addr


class RateLimiter:
    """Counts attempts per client within a window and blocks clients that exceed it.

    Durations are in seconds. ``clock`` returns the current time in seconds.
    When ``cleanup_interval`` is given, a daemon thread purges entries older
    than an hour at that interval.
    """

    def __init__(
        self,
        max_attempts: int,
        window: float,
        block_duration: float,
        *,
        clock: Callable[[], float] = time.monotonic,
        cleanup_interval: float | None = None,
    ) -> None:
        self.max_attempts = max_attempts
        self.window = float(window)
        self.block_duration = float(block_duration)
        self._clock = clock
        self._attempts: dict[str, _Attempts] = {}
        self._lock = threading.Lock()
        if cleanup_interval is not None:
            thread = threading.Thread(
                target=self._cleanup_loop, args=(cleanup_interval,), daemon=True
            )
            thread.start()

    def allow(self, ip: str) -> bool:
        """Record an attempt from ``ip`` and tell whether it may proceed."""
        with self._lock:
            now = self._clock()
            info = self._attempts.get(ip)
            if info is None:
                self._attempts[ip] = _Attempts(count=1, first_time=now)
                return True
            if info.blocked_until is not None and now < info.blocked_until:
                return False
            if now - info.first_time > self.window:
                info.count = 1
                info.first_time = now
                info.blocked_until = None
                return True
            info.count += 1
            if info.count > self.max_attempts:
                info.blocked_until = now + self.block_duration
                return False
            return True

    def record_failure(self, ip: str) -> None:
        """Record a failed attempt; failures count double."""
        with self._lock:
            info = self._attempts.get(ip)
            if info is None:
                self._attempts[ip] = _Attempts(count=1, first_time=self._clock())
                return
            info.count += 2

    def reset(self, ip: str) -> None:
        """Forget everything recorded for ``ip``."""
        with self._lock:
            self._attempts.pop(ip, None)

    def purge_stale(self, max_age: float) -> int:
        """Drop entries whose window began more than ``max_age`` seconds ago.

        Returns the number of entries removed.
        """
        with self._lock:
            now = self._clock()
            stale = [
                ip for ip, info in self._attempts.items()
                if now - info.first_time > max_age
            ]
            for ip in stale:
                del self._attempts[ip]
            return len(stale)

    def stats(self) -> dict[str, Any]:
        """Summarise the clients being tracked and the limiter's settings."""
        with self._lock:
            now = self._clock()
            blocked = sum(
                1 for info in self._attempts.values()
                if info.blocked_until is not None and now < info.blocked_until
            )
            return {
                "total_tracked": len(self._attempts),
                "currently_blocked": blocked,
                "max_attempts": self.max_attempts,
                "window_seconds": self.window,
                "block_duration_seconds": self.block_duration,
            }

    def middleware(self, app: Callable) -> Callable:
        """Wrap a WSGI application, answering 429 to clients over the limit."""

        def wrapped(environ: dict, start_response: Callable) -> Iterable[bytes]:
            headers = _environ_headers(environ)
            ip = client_ip(headers, environ.get("REMOTE_ADDR", ""))
            if not self.allow(ip):
                body = (TOO_MANY_ATTEMPTS + "\n").encode("utf-8")
                start_response(
                    "429 Too Many Requests",
                    [
                        ("Content-Type", "text/plain; charset=utf-8"),
                        ("X-Content-Type-Options", "nosniff"),
                        ("Content-Length", str(len(body))),
                    ],
                )
                return [body]
            return app(environ, start_response)

        return wrapped

    def _cleanup_loop(self, interval: float) -> None:
        while True:
            time.sleep(interval)
            self.purge_stale(STALE_AFTER)


AUTH_RATE_LIMITER = RateLimiter(
    5, 15 * 60, 30 * 60, cleanup_interval=CLEANUP_INTERVAL
)
SIGNUP_RATE_LIMITER = RateLimiter(
    3, 60 * 60, 60 * 60, cleanup_interval=CLEANUP_INTERVAL
)