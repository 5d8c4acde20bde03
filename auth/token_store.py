"""Access token, refresh token and cached user in the key-value store."""

import logging

from constants import AUTH_TOKEN_KEY, REFRESH_TOKEN_KEY, USER_DATA_KEY
from storage import KeyValueStore, resolve

log = logging.getLogger(__name__)


class TokenStore:
    def __init__(self, store: KeyValueStore):
        self._store = store

    async def get_access_token(self) -> str | None:
        return await self._get_str(AUTH_TOKEN_KEY)

    async def get_refresh_token(self) -> str | None:
        return await self._get_str(REFRESH_TOKEN_KEY)

    async def get_user(self) -> dict | None:
        user = await resolve(self._store.get(USER_DATA_KEY))
        return user if isinstance(user, dict) else None

    async def set_user(self, user: dict) -> bool:
        return bool(await resolve(self._store.set(USER_DATA_KEY, user)))

    async def save(self, access_token: str, refresh_token: str) -> bool:
        # Two independent writes. Refresh token first: a crash in between
        # leaves a stale access token next to a live refresh token, which the
        # next 401 repairs.
        ok = bool(await resolve(self._store.set(REFRESH_TOKEN_KEY, refresh_token)))
        ok = bool(await resolve(self._store.set(AUTH_TOKEN_KEY, access_token))) and ok
        if ok:
            log.info("Tokens saved")
        else:
            log.warning("Tokens only partially saved")
        return ok

    async def clear_tokens(self) -> None:
        await resolve(self._store.remove(AUTH_TOKEN_KEY))
        await resolve(self._store.remove(REFRESH_TOKEN_KEY))
        log.info("Tokens cleared")

    async def clear(self) -> None:
        await self.clear_tokens()
        await resolve(self._store.remove(USER_DATA_KEY))

    async def _get_str(self, key: str) -> str | None:
        value = await resolve(self._store.get(key))
        return value if isinstance(value, str) and value else None
