"""Poll launched servers until they accept HTTP requests."""

from __future__ import annotations

from typing import TypeAlias

import asyncio
import time
from collections.abc import Awaitable, Callable
from dataclasses import dataclass

import httpx

Sleeper: TypeAlias = Callable[[float], Awaitable[None]]
Clock: TypeAlias = Callable[[], float]


@dataclass(slots=True)
class HttpProbe:
    ok: bool
    status: int | None = None
    error: str | None = None


HttpGetter: TypeAlias = Callable[[str, float], Awaitable[HttpProbe]]


async def http_get(url: str, timeout_seconds: float) -> HttpProbe:
    """Single GET; transport failures are reported, not raised."""
    try:
        async with httpx.AsyncClient(timeout=timeout_seconds) as client:
            response = await client.get(url)
    except httpx.HTTPError as exc:
        return HttpProbe(ok=False, error=str(exc))
    return HttpProbe(ok=response.is_success, status=response.status_code)


class ReadinessProber:
    """Repeat a GET probe at a fixed interval until success or deadline."""

    def __init__(
        self,
        *,
        interval_seconds: float = 1.0,
        request_timeout_seconds: float = 2.0,
        http_getter: HttpGetter | None = None,
        sleeper: Sleeper | None = None,
        clock: Clock | None = None,
    ) -> None:
        self._interval_seconds = interval_seconds
        self._request_timeout_seconds = request_timeout_seconds
        self._get = http_getter or http_get
        self._sleep = sleeper or asyncio.sleep
        self._clock = clock or time.monotonic

    async def wait_for_ready(self, url: str, timeout_seconds: float = 15.0) -> bool:
        started = self._clock()
        while self._clock() - started < timeout_seconds:
            probe = await self._get(url, self._request_timeout_seconds)
            if probe.ok:
                return True
            await self._sleep(self._interval_seconds)
        return False

    async def first_ready(self, urls: list[str], timeout_seconds: float = 15.0) -> str | None:
        """Return the first URL, in order, that becomes ready within its own deadline."""
        for url in urls:
            if await self.wait_for_ready(url, timeout_seconds):
                return url
        return None
