"""Structured application logging with an in-memory buffer of recent entries."""

from __future__ import annotations

import json
import os
import sys
import threading
import time
import traceback
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import IntEnum
from typing import Any, TextIO

_RESET = "\033[0m"
_SKIPPED_PREFIXES = ("/public/", "/health", "/favicon.ico")
_STACK_LIMIT = 4096


class LogLevel(IntEnum):
    """Severity of a log message."""

    DEBUG = 0
    INFO = 1
    WARN = 2
    ERROR = 3
    FATAL = 4

    def __str__(self) -> str:
        return self.name


_COLORS = {
    LogLevel.DEBUG: "\033[36m",
    LogLevel.INFO: "\033[32m",
    LogLevel.WARN: "\033[33m",
    LogLevel.ERROR: "\033[31m",
    LogLevel.FATAL: "\033[35m",
}


@dataclass
class LogEntry:
    """One structured log record."""

    timestamp: datetime
    level: str
    message: str
    method: str = ""
    path: str = ""
    status_code: int = 0
    duration: float = 0.0
    ip: str = ""
    user_agent: str = ""
    user_id: int = 0
    request_id: str = ""
    error: str = ""
    stack_trace: str = ""
    extra: dict[str, Any] | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        """Return the entry as JSON-ready data, leaving out empty optional fields."""
        data: dict[str, Any] = {
            "timestamp": self.timestamp.isoformat(),
            "level": self.level,
            "message": self.message,
        }
        optional = {
            "method": self.method,
            "path": self.path,
            "status_code": self.status_code,
            "duration_ms": self.duration,
            "ip": self.ip,
            "user_agent": self.user_agent,
            "user_id": self.user_id,
            "request_id": self.request_id,
            "error": self.error,
            "stack_trace": self.stack_trace,
            "extra": self.extra,
        }
        data.update((key, value) for key, value in optional.items() if value)
        return data


def _header(headers: Mapping[str, str], name: str) -> str:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return ""


def client_ip(headers: Mapping[str, str], remote_addr: str) -> str:
    """Pick the client address: first forwarded hop, real-IP header, or peer host."""
    forwarded = _header(headers, "X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    real_ip = _header(headers, "X-Real-IP")
    if real_ip:
        return real_ip
    return remote_addr.split(":")[0]


def level_from_env(environ: Mapping[str, str]) -> LogLevel:
    """Choose the log level from DEBUG and LOG_LEVEL settings; INFO by default."""
    if environ.get("DEBUG") == "true":
        return LogLevel.DEBUG
    name = environ.get("LOG_LEVEL", "").upper()
    return LogLevel.__members__.get(name, LogLevel.INFO)


def _merge(extras: Iterable[Mapping[str, Any] | None]) -> dict[str, Any]:
    result: dict[str, Any] = {}
    for extra in extras:
        if extra:
            result.update(extra)
    return result


class Logger:
    """Writes log lines and keeps the most recent entries in memory.

    Output is JSON when LOG_FORMAT is "json", otherwise coloured text;
    NO_COLOR turns colours off.
    """

    def __init__(
        self,
        level: LogLevel = LogLevel.INFO,
        *,
        stream: TextIO | None = None,
        max_buffer: int = 1000,
        environ: Mapping[str, str] | None = None,
    ) -> None:
        self.level = level
        self.max_buffer = max_buffer
        self._stream = stream
        self._environ = os.environ if environ is None else environ
        self._buffer: list[LogEntry] = []
        self._lock = threading.Lock()

    def log(self, level: LogLevel, message: str, extra: Mapping[str, Any] | None) -> None:
        """Record a message if ``level`` is at or above the logger's level."""
        if level < self.level:
            return
        entry = LogEntry(
            timestamp=datetime.now().astimezone(),
            level=str(level),
            message=message,
            extra=dict(extra) if extra is not None else None,
        )
        if level >= LogLevel.ERROR:
            entry.stack_trace = "".join(traceback.format_stack())[:_STACK_LIMIT]
        self._store(entry)

        if self._json_output():
            self._write(json.dumps(entry.to_dict()))
            return
        color, reset = self._colors(level)
        stamp = entry.timestamp.strftime("%H:%M:%S")
        self._write(f"{color}{stamp} [{entry.level}]{reset} {entry.message}")
        if entry.error:
            self._write(f"  Error: {entry.error}")
        if entry.stack_trace and self._environ.get("DEBUG") == "true":
            self._write(f"  Stack:\n{entry.stack_trace}")

    def debug(self, message: str, *args: Mapping[str, Any]) -> None:
        self.log(LogLevel.DEBUG, message, _merge(args))

    def info(self, message: str, *args: Mapping[str, Any]) -> None:
        self.log(LogLevel.INFO, message, _merge(args))

    def warn(self, message: str, *args: Mapping[str, Any]) -> None:
        self.log(LogLevel.WARN, message, _merge(args))

    def error(self, message: str, err: BaseException | None, *args: Mapping[str, Any]) -> None:
        extra = _merge(args)
        if err is not None:
            extra["error"] = str(err)
        self.log(LogLevel.ERROR, message, extra)

    def fatal(self, message: str, err: BaseException | None, *args: Mapping[str, Any]) -> None:
        """Log at FATAL level and exit with status 1."""
        extra = _merge(args)
        if err is not None:
            extra["error"] = str(err)
        self.log(LogLevel.FATAL, message, extra)
        raise SystemExit(1)

    def log_request(
        self,
        method: str,
        path: str,
        headers: Mapping[str, str],
        remote_addr: str,
        status_code: int,
        duration: float,
        user_id: int,
    ) -> LogEntry:
        """Record an HTTP request; ``duration`` is in seconds."""
        entry = LogEntry(
            timestamp=datetime.now().astimezone(),
            level=str(LogLevel.INFO),
            message=f"{method} {path}",
            method=method,
            path=path,
            status_code=status_code,
            duration=duration * 1000,
            ip=client_ip(headers, remote_addr),
            user_agent=_header(headers, "User-Agent"),
            request_id=_header(headers, "X-Request-ID"),
        )
        if user_id > 0:
            entry.user_id = user_id
        if status_code >= 500:
            level = LogLevel.ERROR
        elif status_code >= 400:
            level = LogLevel.WARN
        else:
            level = LogLevel.INFO
        self._store(entry)

        if self._json_output():
            self._write(json.dumps(entry.to_dict()))
        else:
            color, reset = self._colors(level)
            stamp = entry.timestamp.strftime("%H:%M:%S")
            self._write(
                f"{color}{stamp} [HTTP]{reset} {status_code} {method} {path} "
                f"({entry.duration:.2f}ms) {entry.ip}"
            )
        return entry

    def recent_logs(self, limit: int) -> list[LogEntry]:
        """Return up to ``limit`` newest entries, oldest first; all when limit <= 0."""
        with self._lock:
            if limit <= 0 or limit > len(self._buffer):
                limit = len(self._buffer)
            return self._buffer[len(self._buffer) - limit:]

    def log_stats(self) -> dict[str, Any]:
        """Count buffered entries by level."""
        with self._lock:
            counts = {"total": len(self._buffer)}
            for level in LogLevel:
                counts[level.name.lower()] = 0
            for entry in self._buffer:
                key = entry.level.lower()
                if key in counts and key != "total":
                    counts[key] += 1
            return {"counts": counts, "buffer_size": self.max_buffer}

    def middleware(self, app: Callable) -> Callable:
        """Wrap a WSGI application so each request is logged after it is served."""

        def wrapped(environ: dict, start_response: Callable) -> Iterable[bytes]:
            path = environ.get("PATH_INFO", "")
            if path.startswith(_SKIPPED_PREFIXES):
                return app(environ, start_response)

            started = time.monotonic()
            status = {"code": 200, "written": False}
            if not environ.get("HTTP_X_REQUEST_ID"):
                environ["HTTP_X_REQUEST_ID"] = self._generate_request_id()

            def recording_start_response(status_line, headers, exc_info=None):
                if not status["written"]:
                    status["code"] = int(status_line.split(None, 1)[0])
                    status["written"] = True
                if exc_info is not None:
                    return start_response(status_line, headers, exc_info)
                return start_response(status_line, headers)

            result = app(environ, recording_start_response)

            def body() -> Iterable[bytes]:
                try:
                    yield from result
                finally:
                    close = getattr(result, "close", None)
                    if close is not None:
                        close()
                    headers = {
                        key[5:].replace("_", "-"): value
                        for key, value in environ.items()
                        if key.startswith("HTTP_")
                    }
                    self.log_request(
                        environ.get("REQUEST_METHOD", "GET"),
                        path,
                        headers,
                        environ.get("REMOTE_ADDR", ""),
                        status["code"],
                        time.monotonic() - started,
                        0,
                    )

            return body()

        return wrapped

    def _store(self, entry: LogEntry) -> None:
        with self._lock:
            self._buffer.append(entry)
            if len(self._buffer) > self.max_buffer:
                del self._buffer[: len(self._buffer) - self.max_buffer]

    def _json_output(self) -> bool:
        return self._environ.get("LOG_FORMAT") == "json"

    def _colors(self, level: LogLevel) -> tuple[str, str]:
        if self._environ.get("NO_COLOR"):
            return "", ""
        return _COLORS.get(level, ""), _RESET

    def _write(self, line: str) -> None:
        stream = self._stream if self._stream is not None else sys.stdout
        stream.write(line if line.endswith("\n") else line + "\n")

    @staticmethod
    def _generate_request_id() -> str:
        return f"{time.time_ns()}-{threading.active_count()}"


APP_LOGGER = Logger(level_from_env(os.environ))
APP_LOGGER.info(
    "Logger initialized",
    {"level": str(APP_LOGGER.level), "format": os.environ.get("LOG_FORMAT", "")},
)