import logging

from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import DEFAULT_CONCURRENCY, DEFAULT_TIMEOUT

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


class Settings(BaseSettings):
    concurrency: int = DEFAULT_CONCURRENCY
    timeout: float = DEFAULT_TIMEOUT
    wordlist: str = "wordlist.txt"
    max_paths: int = 50000
    log_level: str = "INFO"
    host: str = "127.0.0.1"
    port: int = 8000
    job_retention: float = 600.0  # seconds a finished job stays queryable

    model_config = SettingsConfigDict(
        env_prefix="PATHFINDER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


settings = Settings()


def configure_logging(level: str = "") -> None:
    logging.basicConfig(level=(level or settings.log_level).upper(), format=LOG_FORMAT)
