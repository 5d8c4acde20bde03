"""Single HTTP exchange over aiohttp. No auth, no retries."""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from typing import Any

import aiohttp

from constants import DEFAULT_TIMEOUT
from errors import RequestTimeout, TransportError

log = logging.getLogger(__name__)


@dataclass
class TransportRequest:
    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: Any = None
    params: dict[str, str] | None = None
    timeout: float = DEFAULT_TIMEOUT


@dataclass
class TransportResponse:
    status: int
    headers: dict[str, str]
    body: Any

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


def parse_body(raw: bytes) -> Any:
    """JSON if it parses, else text, None when empty."""
    if not raw:
        return None
    text = raw.decode("utf-8", errors="replace")
    try:
        return json.loads(text)
    except ValueError:
        return text


class HttpTransport:
    def __init__(self, session: aiohttp.ClientSession | None = None):
        self._session = session

    async def _ensure_session(self):
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()

    async def close(self):
        if self._session and not self._session.closed:
            await self._session.close()

    async def send(self, request: TransportRequest) -> TransportResponse:
        await self._ensure_session()
        try:
            async with self._session.request(
                request.method,
                request.url,
                headers=request.headers,
                json=request.body,
                params=request.params,
                timeout=aiohttp.ClientTimeout(total=request.timeout),
            ) as resp:
                raw = await resp.read()
                return TransportResponse(resp.status, dict(resp.headers), parse_body(raw))
        # aiohttp's timeout errors are also ClientErrors; check them first
        except asyncio.TimeoutError as e:
            log.warning("%s %s timed out after %.1fs", request.method, request.url, request.timeout)
            raise RequestTimeout() from e
        except aiohttp.ClientError as e:
            log.error("%s %s transport error: %s", request.method, request.url, e)
            raise TransportError(str(e) or type(e).__name__) from e


@dataclass
class RequestOptions:
    """Per-request overrides. `auth=False` sends no Authorization header."""

    timeout: float | None = None
    headers: dict[str, str] | None = None
    params: dict[str, str] | None = None
    auth: bool = True
