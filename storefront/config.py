from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    SUPABASE_URL: str = "http://localhost:54321"
    SUPABASE_ANON_KEY: str = ""
    DEMO_EMAIL: str = "admin@novatech.com"
    DEMO_PASSWORD: str = "admin"
    SEARCH_DEBOUNCE_SECONDS: float = 0.3
    SUGGESTIONS_LIMIT: int = 5
    MAX_PRICE: int = 100000
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = False

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    @property
    def auth_url(self) -> str:
        return self.SUPABASE_URL.rstrip("/") + "/auth/v1"

    @property
    def rest_url(self) -> str:
        return self.SUPABASE_URL.rstrip("/") + "/rest/v1"


@lru_cache
def get_settings() -> Settings:
    return Settings()
