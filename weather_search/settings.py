import logging

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Centralized configuration.

    Loaded from:
    - environment variables
    - .env file (if present)
    """
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Required key (the app should fail fast if missing)
    openweather_api_key: str

    app_name: str = "Weather Search"

    # SQLite file path (simple local persistence)
    sqlite_path: str = "weather-data.sqlite3"

    # OpenWeather "units" parameter; snapshots are stored in these units
    units: str = "metric"
    http_timeout_s: float = 10.0

    log_level: str = "INFO"


settings = Settings()


def configure_logging(level: str | None = None) -> None:
    """Set up root logging once at process start."""
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
