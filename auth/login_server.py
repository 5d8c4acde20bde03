"""Loopback endpoint that receives the Google ID token after a browser sign-in.

The browser is sent to Google with `redirect_uri` pointing here; Google's
page then redirects to `/callback?id_token=...` (or `?error=...`).
"""

import asyncio
import logging

from aiohttp import web

log = logging.getLogger(__name__)

HOST = "127.0.0.1"
PORT_RANGE = (37100, 37110)

_PAGE = "<html><body><h1>{}</h1></body></html>"


class LoginCallbackServer:
    """One-shot aiohttp server for a single sign-in.

    `get_id_token` fits `SessionController.sign_in_with_google`.
    """

    def __init__(self, host: str = HOST, ports: tuple[int, int] = PORT_RANGE):
        self._host = host
        self._ports = ports
        self._runner: web.AppRunner | None = None
        self._result: asyncio.Future | None = None
        self.port: int | None = None

    @property
    def redirect_uri(self) -> str:
        return f"http://{self._host}:{self.port}/callback"

    @property
    def is_running(self) -> bool:
        return self._runner is not None

    async def start(self) -> int:
        """Bind the first free port in the range. Raises RuntimeError if none is."""
        if self._runner is not None:
            return self.port

        app = web.Application()
        app.router.add_get("/callback", self._on_callback)
        runner = web.AppRunner(app, access_log=None)
        await runner.setup()

        first, last = self._ports
        for port in range(first, last + 1):
            site = web.TCPSite(runner, self._host, port)
            try:
                await site.start()
            except OSError:
                log.debug("Port %d busy", port)
                continue
            self.port = port
            self._runner = runner
            self._result = asyncio.get_running_loop().create_future()
            log.info("Login callback server listening on %s", self.redirect_uri)
            return port

        await runner.cleanup()
        raise RuntimeError(f"No free port in range {first}-{last}")

    async def _on_callback(self, request: web.Request) -> web.StreamResponse:
        token = request.query.get("id_token")
        if not token:
            log.warning("Login callback without id_token: %s", request.query.get("error", "?"))

        text = "Signed in. You can close this tab." if token else "Sign-in failed."
        resp = web.Response(text=_PAGE.format(text), content_type="text/html")
        await resp.prepare(request)
        await resp.write_eof()

        if self._result is not None and not self._result.done():
            self._result.set_result(token or None)
        return resp

    async def wait_for_callback(self, timeout: float = 120.0) -> str | None:
        """Wait for the browser redirect, then shut the server down."""
        if self._result is None:
            raise RuntimeError("Login callback server is not running")
        try:
            return await asyncio.wait_for(asyncio.shield(self._result), timeout)
        except asyncio.TimeoutError:
            log.warning("Login callback timed out after %.0fs", timeout)
            return None
        finally:
            await self.stop()

    async def get_id_token(self, timeout: float = 120.0) -> str | None:
        await self.start()
        log.info("Complete Google sign-in in the browser; redirect URI: %s", self.redirect_uri)
        return await self.wait_for_callback(timeout)

    async def stop(self):
        if self._runner is None:
            return
        runner, self._runner = self._runner, None
        self._result = None
        await runner.cleanup()
        log.info("Login callback server stopped")
