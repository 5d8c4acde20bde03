import asyncio
import logging

from auth.login_server import LoginCallbackServer
from config import get_settings
from core import AppState
from errors import ApiError, SessionExpiredError

log = logging.getLogger(__name__)


async def session_check_loop(state: AppState):
    """Periodically re-fetch the profile; a failed refresh signs the user out."""
    while True:
        await asyncio.sleep(state.settings.session_check_interval)
        if not state.session.is_authenticated:
            continue
        try:
            await state.auth.get_profile()
        except SessionExpiredError as e:
            log.info("Session expired: %s", e.message)
        except ApiError as e:
            log.warning("Session check failed: %s", e.message)


async def sign_in(state: AppState) -> bool:
    server = LoginCallbackServer()
    try:
        user = await state.session.sign_in_with_google(server.get_id_token)
    except Exception as e:
        log.error("Sign-in failed: %s", e)
        return False
    finally:
        await server.stop()
    return user is not None


async def run(state: AppState):
    state.loop = asyncio.get_running_loop()
    try:
        if not await state.session.restore() and not await sign_in(state):
            log.error("Not signed in: %s", state.session.error or "cancelled")
            return

        clients = await state.clients.get_clients()
        log.info("Signed in as %s, %d client(s)", state.session.user.email, len(clients))
        await session_check_loop(state)
    finally:
        await state.close()


if __name__ == "__main__":
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s [%(name)s] %(levelname)s: %(message)s",
    )
    try:
        asyncio.run(run(AppState(settings)))
    except KeyboardInterrupt:
        pass
