import math
import time
from dataclasses import dataclass
from functools import partial
from threading import Lock
from typing import Callable, Collection, Iterable
from fastapi import Request
from fastapi.responses import JSONResponse


@dataclass
class RateLimitInfo:
    is_rate_limited: bool
    time_until_reset: int
    requests_remaining: int
    max_requests: int


@dataclass
class _Window:
    count: int
    reset_at: float


class FixedWindowRateLimiter:
    """Per-identifier request counter over fixed windows.

    The first call for an identifier opens a window of ``window_seconds``;
    calls are counted until it elapses, after which the next call opens a
    fresh window. State lives in process memory only.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic):
        self.clock = clock
        self._windows: dict[str, _Window] = {}
        self._lock = Lock()
        self._next_sweep = 0.0

    def _drop_expired(self, now: float) -> int:
        expired = [k for k, w in self._windows.items() if now >= w.reset_at]
        for key in expired:
            del self._windows[key]
        return len(expired)

    def check(self, identifier: str, max_requests: int, window_seconds: float) -> RateLimitInfo:
        now = self.clock()
        with self._lock:
            if now >= self._next_sweep:
                self._drop_expired(now)
                self._next_sweep = now + window_seconds
            window = self._windows.get(identifier)
            if window is None or now >= window.reset_at:
                self._windows[identifier] = _Window(count=1, reset_at=now + window_seconds)
                return RateLimitInfo(
                    is_rate_limited=False,
                    time_until_reset=math.ceil(window_seconds),
                    requests_remaining=max(0, max_requests - 1),
                    max_requests=max_requests,
                )

            limited = window.count >= max_requests
            if not limited:
                window.count += 1
            return RateLimitInfo(
                is_rate_limited=limited,
                time_until_reset=max(1, math.ceil(window.reset_at - now)),
                requests_remaining=max(0, max_requests - window.count),
                max_requests=max_requests,
            )

    def reset(self, identifier: str) -> None:
        with self._lock:
            self._windows.pop(identifier, None)

    def clear(self) -> None:
        with self._lock:
            self._windows.clear()

    def cleanup(self) -> int:
        with self._lock:
            return self._drop_expired(self.clock())

    def __len__(self) -> int:
        with self._lock:
            return len(self._windows)


def client_ip(req: Request, trusted_proxies: Collection[str] = ()) -> str:
    """Address of the caller.

    ``X-Forwarded-For`` is only read when the direct peer is a trusted proxy;
    hops appended by trusted proxies are skipped from the right.
    """
    peer = req.client.host if req.client else "unknown"
    if peer not in trusted_proxies:
        return peer
    hops = [h.strip() for h in req.headers.get("x-forwarded-for", "").split(",") if h.strip()]
    for hop in reversed(hops):
        if hop not in trusted_proxies:
            return hop
    return hops[0] if hops else peer


class RateLimitMiddleware:
    def __init__(
        self,
        app,
        *,
        limiter: FixedWindowRateLimiter,
        window_seconds: int,
        max_calls: int,
        key_func: Callable[[Request], str] | None = None,
        trusted_proxies: Iterable[str] = (),
        include_path_prefixes: Iterable[str] = ("/openrouter/chat",),
        methods: Iterable[str] = ("POST",),
    ):
        self.app = app
        self.limiter = limiter
        self.window = window_seconds
        self.max_calls = max_calls
        self.key_func = key_func or partial(client_ip, trusted_proxies=frozenset(trusted_proxies))
        self.include_paths = tuple(include_path_prefixes)
        self.methods = {m.upper() for m in methods}

    def _should_guard(self, path: str, method: str) -> bool:
        return method in self.methods and any(path.startswith(p) for p in self.include_paths)

    async def __call__(self, scope, receive, send):
        if scope["type"] != "http":
            return await self.app(scope, receive, send)

        if not self._should_guard(scope.get("path", ""), scope.get("method", "GET")):
            return await self.app(scope, receive, send)

        request = Request(scope, receive=receive)
        key = self.key_func(request)
        info = self.limiter.check(key, self.max_calls, self.window)

        if info.is_rate_limited:
            wait = info.time_until_reset
            resp = JSONResponse(
                status_code=429,
                content={
                    "detail": f"Too many requests. Please wait {wait} seconds before trying again.",
                    "retry_after": wait,
                    "window_seconds": self.window,
                    "max_calls": self.max_calls,
                },
            )
            resp.headers["Retry-After"] = str(wait)
            return await resp(scope, receive, send)

        return await self.app(scope, receive, send)
