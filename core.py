import asyncio
import logging

from api_client import ApiClient
from auth.session import SessionController
from auth.token_store import TokenStore
from config import Settings, get_settings
from services import AuthService, AvailabilityService, ClientService, WorkoutService
from storage import JsonFileStore, KeyValueStore

log = logging.getLogger(__name__)


class AppState:
    """Wired client objects shared by the app."""

    def __init__(self, settings: Settings | None = None, store: KeyValueStore | None = None,
                 api_client: ApiClient | None = None):
        self.settings = settings or get_settings()
        self.loop: asyncio.AbstractEventLoop | None = None
        # Persistence
        self.store = store if store is not None else JsonFileStore(self.settings.storage_path)
        self.token_store = TokenStore(self.store)
        # Network
        self.api_client = api_client or ApiClient(
            self.settings.api_base_url, self.token_store, timeout=self.settings.request_timeout,
        )
        # Session
        self.auth = AuthService(self.api_client)
        self.session = SessionController(self.api_client, self.token_store, self.auth)
        # Features
        self.clients = ClientService(self.api_client)
        self.workouts = WorkoutService(self.api_client)
        self.availability = AvailabilityService(self.api_client)

    async def close(self):
        self.session.close()
        await self.api_client.close()
