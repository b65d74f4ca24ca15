from functools import lru_cache
from typing import Literal, Optional
import os
from pydantic_settings import BaseSettings, SettingsConfigDict

EnvName = Literal["development", "production"]

def _env_file_for(app_env: EnvName) -> str:
    return ".env.development" if app_env == "development" else ".env.production"

class Settings(BaseSettings):

    # Core
    APP_ENV: EnvName = "development"
    APP_NAME: str = "RecoEngine"
    DEBUG: bool = False
    GIT_SHA: str = "unknown"

    # Mongo (empty URI = no connection at startup)
    MONGO_URI: str = ""
    MONGO_DB: str = "recoengine"
    interactions_collection: str = "user_interactions"
    products_collection: str = "products"

    # Result cache config (trending + similar)
    result_cache_ttl: int = 30 * 60              # 30 minutes
    result_cache_max_entries: int = 1024         # LRU bound

    # Personalized bundles
    bundle_ttl: int = 60 * 60                    # 1 hour
    bundle_cache_max_entries: int = 4096

    # Preference profiles (rebuilt from history on miss)
    profile_ttl: int = 24 * 60 * 60              # 24 hours
    profile_cache_max_entries: int = 10_000

    # Logging (unset: DEBUG when DEBUG=true, INFO otherwise)
    LOG_LEVEL: Optional[str] = None

    # pydantic-settings config will be set dynamically in the factory below
    model_config = SettingsConfigDict(env_file=None, case_sensitive=True)

@lru_cache
def get_settings() -> Settings:
    """
    Factory that chooses the right .env file based on APP_ENV.
    Cache makes it cheap to inject via FastAPI dependencies.
    """
    app_env: EnvName = os.getenv("APP_ENV", "development")  # earliest switch
    env_file = _env_file_for(app_env)
    return Settings(
                _env_file=env_file,  # load .env.development or .env.production
                _env_file_encoding="utf-8"
    )
