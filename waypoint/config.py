"""Runtime settings for waypoint."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings read from ``WAYPOINT_*`` environment variables."""

    database_url: str = "sqlite://"
    echo_sql: bool = False

    log_level: str = "WARNING"

    # Glue used on joining composite ids and labels
    id_glue: str = "::"
    label_glue: str = ", "

    model_config = SettingsConfigDict(
        env_prefix="WAYPOINT_",
        case_sensitive=False,
        extra="ignore",
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get the process-wide settings instance."""
    return Settings()
