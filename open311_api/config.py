from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Shared static credential checked on every POST /requests.json.
    api_key: str = Field(default="your-secret-api-key", alias="OPEN311_API_KEY")
    syslog_address: str = Field(default="localhost:514", alias="SYSLOG_ADDRESS")
    log_tag: str = Field(default="open311-api", alias="LOG_TAG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8080, alias="PORT")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
