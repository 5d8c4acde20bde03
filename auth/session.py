"""Session controller: who is signed in, and keeping tokens, storage and the
API client in step with that."""

import logging
from typing import Awaitable, Callable

from pydantic import ValidationError

from api_client import ApiClient
from auth.token_store import TokenStore
from constants import SESSION_EXPIRED_MESSAGE
from errors import ApiError, ApplicationError, SessionExpiredError
from models import AuthUser
from services import AuthService

log = logging.getLogger(__name__)

# Returns a Google ID token, or None if the user cancelled
IdTokenProvider = Callable[[], Awaitable[str | None]]


class SessionController:
    def __init__(self, api: ApiClient, token_store: TokenStore, auth_service: AuthService | None = None):
        self._api = api
        self._tokens = token_store
        self._auth = auth_service or AuthService(api)
        self._user: AuthUser | None = None
        self._is_loading = True
        self._error: str | None = None
        self._unsubscribe: Callable[[], None] | None = None

    @property
    def user(self) -> AuthUser | None:
        return self._user

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def error(self) -> str | None:
        return self._error

    def clear_error(self):
        self._error = None

    async def restore(self) -> bool:
        """Prime the API client from stored tokens. Call once at startup."""
        if self._unsubscribe is None:
            self._unsubscribe = self._api.on_session_failure(self._handle_refresh_failure)
        try:
            access_token = await self._tokens.get_access_token()
            stored_user = await self._tokens.get_user()
            if access_token and stored_user:
                try:
                    user = AuthUser.model_validate(stored_user)
                except ValidationError:
                    log.warning("Discarding malformed cached user")
                else:
                    self._api.set_auth_token(access_token)
                    self._user = user
                    log.info("Session restored for user %s", user.id)
        finally:
            self._is_loading = False
        return self.is_authenticated

    async def sign_in_with_google(self, id_token_provider: IdTokenProvider) -> AuthUser | None:
        self._is_loading = True
        self._error = None
        try:
            id_token = await id_token_provider()
            if not id_token:
                log.info("Google sign-in cancelled")
                return None

            try:
                result = await self._auth.google_auth(id_token)
            except ValidationError as e:
                raise ApplicationError("Invalid authentication response from server") from e

            await self._tokens.save(result.access_token, result.refresh_token)
            await self._tokens.set_user(result.user.model_dump(by_alias=True))
            self._api.set_auth_token(result.access_token)
            self._user = result.user
            log.info("Signed in as user %s", result.user.id)
            return result.user
        except ApiError as e:
            self._error = e.message
            log.error("Google sign-in failed: %s", e.message)
            raise
        except Exception:
            self._error = "Failed to sign in with Google"
            log.exception("Google sign-in failed")
            raise
        finally:
            self._is_loading = False

    async def sign_out(self):
        self._is_loading = True
        try:
            await self._end_session()
            log.info("Signed out")
        finally:
            self._is_loading = False

    async def _handle_refresh_failure(self, error: SessionExpiredError):
        log.info("Token refresh failed, signing out user")
        await self._end_session()
        self._error = SESSION_EXPIRED_MESSAGE

    async def _end_session(self):
        await self._tokens.clear()
        self._api.set_auth_token(None)
        self._user = None

    def close(self):
        if self._unsubscribe:
            self._unsubscribe()
            self._unsubscribe = None
