"""All settings, loaded from the environment or the .env file."""
from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="SHOPFLOOR_")

    # Store
    database_url: str = "sqlite+aiosqlite:///shopfloor.db"
    tenant_id: str = "tenant_demo"

    # Remote API
    api_base_url: str = "https://api.shopfloor.cloud"
    api_token: str = ""
    health_url: str = ""
    http_timeout_seconds: float = 15

    # Sync behavior
    sync_interval_seconds: int = 60
    connectivity_poll_seconds: int = 15

    # Demo alert generator
    alert_simulation_enabled: bool = False
    alert_simulation_interval_seconds: int = 30

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    @property
    def resolved_health_url(self) -> str:
        return self.health_url or f"{self.api_base_url.rstrip('/')}/health"


@lru_cache
def get_settings() -> Settings:
    return Settings()
