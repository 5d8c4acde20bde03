"""Central HTTP client for the backend. Bearer auth with coordinated refresh."""

import logging
from typing import Any, Callable

from auth.refresh import FailureListener, PendingRequest, TokenRefreshCoordinator
from auth.token_store import TokenStore
from constants import AUTH_REFRESH_PATH, DEFAULT_HEADERS, DEFAULT_TIMEOUT, NO_REFRESH_PATHS
from errors import ApplicationError, RefreshLoopGuardError
from transport import HttpTransport, RequestOptions, TransportRequest, TransportResponse

log = logging.getLogger(__name__)


class ApiClient:
    def __init__(
        self,
        base_url: str,
        token_store: TokenStore,
        *,
        transport: HttpTransport | None = None,
        coordinator: TokenRefreshCoordinator | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self._base = base_url.rstrip("/")
        self._tokens = token_store
        self._transport = transport or HttpTransport()
        self._timeout = timeout
        self._auth_token: str | None = None
        self._coordinator = coordinator or TokenRefreshCoordinator(token_store)
        self._coordinator.attach(
            self._exchange_refresh_token, self.set_auth_token, lambda: self._auth_token,
        )
        self._unsubscribe_callback: Callable[[], None] | None = None

    @property
    def base_url(self) -> str:
        return self._base

    @property
    def auth_token(self) -> str | None:
        return self._auth_token

    @property
    def coordinator(self) -> TokenRefreshCoordinator:
        return self._coordinator

    def set_auth_token(self, token: str | None):
        self._auth_token = token or None

    def on_session_failure(self, callback: FailureListener) -> Callable[[], None]:
        return self._coordinator.subscribe(callback)

    def set_token_refresh_failure_callback(self, callback: FailureListener | None):
        """Replace the single convenience callback. Other subscribers are kept."""
        if self._unsubscribe_callback:
            self._unsubscribe_callback()
            self._unsubscribe_callback = None
        if callback is not None:
            self._unsubscribe_callback = self._coordinator.subscribe(callback)

    async def close(self):
        await self._transport.close()

    # ── Verbs ──────────────────────────────────────────────

    async def get(self, path: str, options: RequestOptions | None = None) -> Any:
        return await self.request("GET", path, options=options)

    async def post(self, path: str, body: Any = None, options: RequestOptions | None = None) -> Any:
        return await self.request("POST", path, body, options)

    async def put(self, path: str, body: Any = None, options: RequestOptions | None = None) -> Any:
        return await self.request("PUT", path, body, options)

    async def patch(self, path: str, body: Any = None, options: RequestOptions | None = None) -> Any:
        return await self.request("PATCH", path, body, options)

    async def delete(self, path: str, options: RequestOptions | None = None) -> Any:
        return await self.request("DELETE", path, options=options)

    # ── Pipeline ───────────────────────────────────────────

    async def request(
        self, method: str, path: str, body: Any = None, options: RequestOptions | None = None,
    ) -> Any:
        options = options or RequestOptions()
        sent = self._auth_token
        resp = await self._send(method, path, body, options, sent)
        if resp.status != 401:
            return self._result(method, path, resp)

        if _route(path) in NO_REFRESH_PATHS:
            log.warning("API %s %s -> 401, no refresh for auth endpoints", method, path)
            raise RefreshLoopGuardError(
                _message(resp.body, "Unauthorized"), status=401, payload=resp.body,
            )
        if not options.auth:
            raise ApplicationError.from_response(resp.status, resp.body)

        log.info("API %s %s -> 401, token expired", method, path)
        pending = PendingRequest(method, path, body, options)
        token = await self._coordinator.wait_for_token(
            pending, self._timeout_for(options), sent_token=sent,
        )

        resp = await self._send(method, path, body, options, token)
        return self._result(method, path, resp, replayed=True)

    def _headers(self, options: RequestOptions, token: str | None) -> dict[str, str]:
        headers = dict(DEFAULT_HEADERS)
        if options.auth and token:
            headers["Authorization"] = f"Bearer {token}"
        if options.headers:
            headers.update(options.headers)
        return headers

    def _timeout_for(self, options: RequestOptions) -> float:
        return options.timeout if options.timeout is not None else self._timeout

    async def _send(
        self, method: str, path: str, body: Any, options: RequestOptions, token: str | None,
    ) -> TransportResponse:
        return await self._transport.send(TransportRequest(
            method=method,
            url=f"{self._base}{path}",
            headers=self._headers(options, token),
            body=body,
            params=options.params,
            timeout=self._timeout_for(options),
        ))

    def _result(self, method: str, path: str, resp: TransportResponse, *, replayed: bool = False) -> Any:
        if resp.ok:
            return resp.body
        log.error(
            "API %s %s -> %d%s: %s", method, path, resp.status,
            " after refresh" if replayed else "", str(resp.body)[:200],
        )
        raise ApplicationError.from_response(resp.status, resp.body, replayed=replayed)

    async def _exchange_refresh_token(self, refresh_token: str) -> tuple[str, str]:
        data = await self.post(
            AUTH_REFRESH_PATH, {"refreshToken": refresh_token}, RequestOptions(auth=False),
        )
        payload = data.get("data") if isinstance(data, dict) else None
        if (
            not isinstance(payload, dict)
            or not payload.get("accessToken")
            or not payload.get("refreshToken")
        ):
            raise ApplicationError("Invalid refresh response", status=200, payload=data)
        return payload["accessToken"], payload["refreshToken"]


def _route(path: str) -> str:
    return path.split("?", 1)[0].rstrip("/") or "/"


def _message(body: Any, default: str) -> str:
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return default
