# File: smart_parking/infrastructure/config.py
"""
Application configuration and logging setup

Settings are read from the environment and from an optional .env file
in the working directory.
"""

import logging
import os
import sys
from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


class Settings(BaseSettings):
    # MongoDB
    mongo_url: str = "mongodb://localhost:27017"
    database_name: str = "smart_parking"
    slots_collection: str = "parking_slots"
    users_collection: str = "users"
    mongo_timeout_ms: int = 5000

    # Tokens
    token_secret: str = "change-me"
    token_ttl_minutes: int = 60
    token_issuer: str = "parking-system"

    # Mail
    smtp_host: str = "localhost"
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_sender: str = "no-reply@parking-system.local"
    smtp_use_tls: bool = True
    password_recovery_url: str = "http://localhost:8080/recover-password"

    # Events (publishing is disabled when redis_url is not set)
    redis_url: Optional[str] = None
    events_channel: str = "parking_slot_events"

    # Logging
    log_level: str = "INFO"
    log_file: Optional[str] = None

    model_config = SettingsConfigDict(
        env_file=".env",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()


def setup_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """Setup application logging configuration"""
    settings = settings or get_settings()

    handlers = [logging.StreamHandler(sys.stdout)]
    if settings.log_file:
        log_dir = os.path.dirname(settings.log_file)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)
        handlers.append(logging.FileHandler(settings.log_file))

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers
    )
    return logging.getLogger("smart_parking")
