from functools import lru_cache
from pathlib import Path

from pydantic_settings import BaseSettings

from constants import DEFAULT_TIMEOUT

_ENV_FILE = Path(__file__).parent / ".env"


class Settings(BaseSettings):
    api_base_url: str = "http://localhost:3000/api"
    request_timeout: float = DEFAULT_TIMEOUT
    storage_path: Path = Path.home() / ".wellvantage" / "storage.json"
    google_web_client_id: str = ""
    log_level: str = "INFO"
    session_check_interval: float = 30.0

    model_config = {
        "env_prefix": "WELLVANTAGE_",
        "env_file": str(_ENV_FILE),
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    return Settings()
