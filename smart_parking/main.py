# File: smart_parking/main.py
"""
Main application entry point for the Smart Parking system

Builds every component from Settings (dependency injection by hand) and
owns the lifetime of the shared MongoDB client.
"""

import logging
import sys
from typing import Optional

from .application.account_service import AccountService
from .application.occupancy_service import SlotOccupancyService
from .domain.geo import GeoRadiusTranslator
from .infrastructure.auth import JwtTokenService
from .infrastructure.config import Settings, get_settings, setup_logging
from .infrastructure.database import MongoDatabase
from .infrastructure.mail import SmtpMailSender
from .infrastructure.messaging import RedisEventPublisher
from .infrastructure.repositories import MongoParkingSlotRepository
from .infrastructure.users import MongoUserDirectory
from .presentation.cli import run
from .presentation.handlers import ParkingCommandHandler


class ParkingSystemApplication:
    """Composition root; use as a context manager for explicit shutdown"""

    def __init__(self, settings: Optional[Settings] = None, database: Optional[MongoDatabase] = None):
        self.settings = settings or get_settings()
        self.logger = logging.getLogger(self.__class__.__name__)
        self.database = database or MongoDatabase(self.settings)
        self.event_publisher: Optional[RedisEventPublisher] = None
        self.setup_components()

    def setup_components(self):
        """Initialize all application components with dependency injection"""
        self.database.connect()

        # 1. Repositories (Data Access Layer)
        self.slot_repository = MongoParkingSlotRepository(self.database.slots, GeoRadiusTranslator())
        self.user_directory = MongoUserDirectory(self.database.users)
        self.logger.info("Repositories initialized")

        # 2. Collaborators
        if self.settings.redis_url:
            self.event_publisher = RedisEventPublisher.from_url(
                self.settings.redis_url, self.settings.events_channel
            )
            self.logger.info(f"Publishing slot events to '{self.settings.events_channel}'")

        self.token_service = JwtTokenService(
            self.settings.token_secret,
            ttl_minutes=self.settings.token_ttl_minutes,
            issuer=self.settings.token_issuer
        )
        self.mail_sender = SmtpMailSender(
            host=self.settings.smtp_host,
            port=self.settings.smtp_port,
            sender=self.settings.smtp_sender,
            username=self.settings.smtp_username,
            password=self.settings.smtp_password,
            use_tls=self.settings.smtp_use_tls
        )

        # 3. Application services
        self.occupancy_service = SlotOccupancyService(self.slot_repository, self.event_publisher)
        self.account_service = AccountService(
            self.user_directory,
            self.token_service,
            self.mail_sender,
            self.settings.password_recovery_url
        )
        self.command_handler = ParkingCommandHandler(
            self.occupancy_service,
            self.token_service,
            self.account_service
        )
        self.logger.info("Application services initialized")

    def close(self):
        if self.event_publisher is not None:
            self.event_publisher.close()
        self.database.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()


def main(argv=None) -> int:
    settings = get_settings()
    setup_logging(settings)
    with ParkingSystemApplication(settings) as app:
        return run(app, argv)


if __name__ == "__main__":
    sys.exit(main())
