import asyncio
import inspect
from urllib.parse import urlparse

import pytest

from api_client import ApiClient
from auth.token_store import TokenStore
from constants import AUTH_TOKEN_KEY, REFRESH_TOKEN_KEY
from storage import MemoryStore
from transport import TransportResponse

BASE_URL = "http://api.test"


def response(status: int, body=None) -> TransportResponse:
    return TransportResponse(status, {"Content-Type": "application/json"}, body)


class FakeTransport:
    """Records every request and answers through `handler`."""

    def __init__(self, handler):
        self.handler = handler
        self.requests = []
        self.closed = False

    async def send(self, request):
        self.requests.append(request)
        result = self.handler(request)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def close(self):
        self.closed = True

    def calls(self, method=None, path=None):
        return [
            r for r in self.requests
            if (method is None or r.method == method)
            and (path is None or urlparse(r.url).path == path)
        ]


class FakeBackend:
    """Accepts exactly one access token and one refresh token at a time.

    Each successful refresh rotates both: T2/R2, T3/R3, ...
    """

    def __init__(self, access_token="T0", refresh_token="R1"):
        self.access_token = access_token
        self.refresh_token = refresh_token
        self.generation = 1
        self.refresh_gate: asyncio.Event | None = None
        self.refresh_status: int | None = None
        self.reject_all = False
        self.routes: dict[tuple[str, str], tuple[int, object]] = {}

    def route(self, method, path, data=None, status=200):
        body = {"success": True, "data": data} if status < 400 else data
        self.routes[(method, path)] = (status, body)

    async def __call__(self, request):
        path = urlparse(request.url).path
        if request.method == "POST" and path == "/auth/refresh":
            return await self._refresh(request)

        expected = f"Bearer {self.access_token}"
        if self.reject_all or request.headers.get("Authorization") != expected:
            return response(401, {"message": "Token expired"})
        status, body = self.routes.get((request.method, path), (404, {"message": "Not found"}))
        return response(status, body)

    async def _refresh(self, request):
        if self.refresh_gate is not None:
            await self.refresh_gate.wait()
        if self.refresh_status is not None:
            return response(self.refresh_status, {"message": "Refresh rejected"})
        if (request.body or {}).get("refreshToken") != self.refresh_token:
            return response(401, {"message": "Invalid refresh token"})
        self.generation += 1
        self.access_token = f"T{self.generation}"
        self.refresh_token = f"R{self.generation}"
        return response(200, {
            "success": True,
            "data": {"accessToken": self.access_token, "refreshToken": self.refresh_token},
        })


@pytest.fixture
def store():
    return MemoryStore({AUTH_TOKEN_KEY: "T1", REFRESH_TOKEN_KEY: "R1"})


@pytest.fixture
def token_store(store):
    return TokenStore(store)


@pytest.fixture
def backend():
    return FakeBackend()


@pytest.fixture
def transport(backend):
    return FakeTransport(backend)


@pytest.fixture
def client(token_store, transport):
    api = ApiClient(BASE_URL, token_store, transport=transport, timeout=5.0)
    api.set_auth_token("T1")
    return api


async def wait_until(predicate, timeout=1.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            raise AssertionError("condition not reached")
        await asyncio.sleep(0)
