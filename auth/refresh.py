"""Token refresh coordination: one refresh exchange per expiry, shared by all
requests that hit a 401 while it runs.

Requests that need a fresh token are queued as `PendingRequest` records. The
first one moves the coordinator from IDLE to REFRESHING and starts the
exchange as a separate task; the rest only join the queue. When the exchange
finishes the queue is drained once, in FIFO order: every record's future gets
the new access token (the caller then replays its own request), or every
record gets the same `SessionExpiredError`.
"""

import asyncio
import enum
import inspect
import logging
import threading
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable

from auth.token_store import TokenStore
from errors import RequestTimeout, SessionExpiredError
from transport import RequestOptions

log = logging.getLogger(__name__)

TokenExchange = Callable[[str], Awaitable[tuple[str, str]]]
TokenListener = Callable[[str | None], None]
TokenSource = Callable[[], str | None]
FailureListener = Callable[[SessionExpiredError], Any]


class RefreshState(enum.Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"
    FAILED = "failed"


@dataclass
class PendingRequest:
    method: str
    path: str
    body: Any = None
    options: RequestOptions = field(default_factory=RequestOptions)
    future: asyncio.Future | None = field(default=None, repr=False)


def _settle(future: asyncio.Future, token: str | None = None, error: Exception | None = None):
    if future.done():
        return

    def apply():
        if future.done():
            return
        if error is not None:
            future.set_exception(error)
        else:
            future.set_result(token)

    loop = future.get_loop()
    try:
        running = asyncio.get_running_loop()
    except RuntimeError:
        running = None
    if running is loop:
        apply()
    else:
        loop.call_soon_threadsafe(apply)


class TokenRefreshCoordinator:
    def __init__(self, token_store: TokenStore):
        self._tokens = token_store
        self._exchange: TokenExchange | None = None
        self._on_token: TokenListener | None = None
        self._current_token: TokenSource | None = None
        self._state = RefreshState.IDLE
        self._queue: list[PendingRequest] = []
        # Guards the start-vs-enqueue decision, also across threads
        self._lock = threading.Lock()
        self._task: asyncio.Task | None = None
        self._subscribers: list[FailureListener] = []

    def attach(self, exchange: TokenExchange, on_token: TokenListener | None = None,
               current_token: TokenSource | None = None):
        """Wire the refresh call and the setter/getter of the in-memory access token."""
        self._exchange = exchange
        self._on_token = on_token
        self._current_token = current_token

    @property
    def state(self) -> RefreshState:
        return self._state

    @property
    def is_refreshing(self) -> bool:
        return self._state is not RefreshState.IDLE

    @property
    def pending_count(self) -> int:
        return len(self._queue)

    # ── Session failure subscriptions ─────────────────────

    def subscribe(self, callback: FailureListener) -> Callable[[], None]:
        """Call `callback(error)` once per failed refresh. Returns an unsubscriber."""
        self._subscribers.append(callback)

        def unsubscribe():
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return unsubscribe

    async def _notify(self, error: SessionExpiredError):
        for callback in list(self._subscribers):
            try:
                result = callback(error)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                log.exception("Session failure subscriber %r raised", callback)

    # ── Queue ─────────────────────────────────────────────

    async def wait_for_token(self, pending: PendingRequest, timeout: float | None = None,
                             sent_token: str | None = None) -> str:
        """Queue `pending` and return the access token to replay it with.

        `sent_token` is the token the rejected request carried. If a refresh
        already replaced it, the current token is returned without a new
        exchange. Otherwise starts the refresh exchange if none is running.
        Raises `SessionExpiredError` if the refresh fails, `RequestTimeout` if
        `timeout` expires first; the record then leaves the queue and the
        exchange carries on for everyone else.
        """
        loop = asyncio.get_running_loop()
        pending.future = loop.create_future()
        with self._lock:
            if self._state is RefreshState.IDLE and self._current_token:
                current = self._current_token()
                if current and current != sent_token:
                    log.debug("%s %s got a 401 for a replaced token", pending.method, pending.path)
                    return current
            self._queue.append(pending)
            start = self._state is RefreshState.IDLE
            if start:
                self._state = RefreshState.REFRESHING
        if start:
            log.info("Token refresh started by %s %s", pending.method, pending.path)
            self._task = loop.create_task(self._run())
        else:
            log.debug("%s %s queued behind token refresh", pending.method, pending.path)

        try:
            return await asyncio.wait_for(pending.future, timeout)
        except asyncio.TimeoutError:
            self._discard(pending)
            log.warning("%s %s timed out waiting for token refresh", pending.method, pending.path)
            raise RequestTimeout("Timed out waiting for token refresh") from None
        except asyncio.CancelledError:
            self._discard(pending)
            raise

    def _discard(self, pending: PendingRequest):
        with self._lock:
            if pending in self._queue:
                self._queue.remove(pending)

    def _drain(self, *, token: str | None = None, error: Exception | None = None,
               final_state: RefreshState | None = None) -> int:
        with self._lock:
            queue, self._queue = self._queue, []
            if final_state is not None:
                self._state = final_state
        for pending in queue:
            _settle(pending.future, token, error)
        return len(queue)

    # ── Refresh exchange ──────────────────────────────────

    async def _run(self):
        try:
            access_token = await self._exchange_tokens()
        except asyncio.CancelledError:
            self._drain(error=SessionExpiredError("Token refresh cancelled"),
                        final_state=RefreshState.IDLE)
            raise
        except Exception as e:
            await self._fail(e)
        else:
            if self._on_token:
                self._on_token(access_token)
            n = self._drain(token=access_token, final_state=RefreshState.IDLE)
            log.info("Token refresh succeeded, replaying %d request(s)", n)
        finally:
            self._task = None

    async def _exchange_tokens(self) -> str:
        refresh_token = await self._tokens.get_refresh_token()
        if not refresh_token:
            raise SessionExpiredError("No refresh token available")
        if self._exchange is None:
            raise RuntimeError("TokenRefreshCoordinator is not attached to a client")
        access_token, new_refresh_token = await self._exchange(refresh_token)
        await self._tokens.save(access_token, new_refresh_token)
        return access_token

    async def _fail(self, cause: Exception):
        if isinstance(cause, SessionExpiredError):
            error = cause
        else:
            error = SessionExpiredError(f"Session expired: {cause}", cause=cause)
        log.warning("Token refresh failed: %s", error)

        with self._lock:
            self._state = RefreshState.FAILED
        try:
            try:
                await self._tokens.clear_tokens()
            except Exception:
                log.exception("Could not clear stored tokens")
            if self._on_token:
                self._on_token(None)
            self._drain(error=error)
            await self._notify(error)
        finally:
            # Late joiners that queued during cleanup share the same outcome
            self._drain(error=error, final_state=RefreshState.IDLE)
