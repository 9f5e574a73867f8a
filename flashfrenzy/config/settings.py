from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    app_name: str = "Flashcard Frenzy"
    database_url: str = "sqlite:///./flashfrenzy.db"
    auto_advance_seconds: float = 2.0
    default_player_name: str = "Player"
    max_options: int = 6
    log_level: str = "INFO"

    model_config = SettingsConfigDict(env_file=".env", env_prefix="FLASHFRENZY_", extra="ignore")


@lru_cache
def get_settings() -> Settings:
    return Settings()
