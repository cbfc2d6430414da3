# File: smart_parking/infrastructure/database.py
"""
Process-wide MongoDB connection

One MongoClient (and its connection pool) is opened at startup, shared by
every repository, and closed explicitly at shutdown.
"""

import logging
from typing import Optional

import pymongo
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.errors import PyMongoError

from ..domain.errors import RepositoryUnavailableError
from .config import Settings


class MongoDatabase:
    """Owner of the shared MongoClient"""

    def __init__(self, settings: Settings, client: Optional[pymongo.MongoClient] = None):
        self.settings = settings
        self._client = client
        self._logger = logging.getLogger(self.__class__.__name__)

    def connect(self) -> 'MongoDatabase':
        if self._client is None:
            # tz_aware: stopEnd values come back as aware UTC datetimes
            self._client = pymongo.MongoClient(
                self.settings.mongo_url,
                tz_aware=True,
                serverSelectionTimeoutMS=self.settings.mongo_timeout_ms
            )
            self._logger.info(f"MongoDB client created for database '{self.settings.database_name}'")
        return self

    @property
    def client(self) -> pymongo.MongoClient:
        if self._client is None:
            raise RuntimeError("MongoDatabase is not connected")
        return self._client

    @property
    def database(self) -> Database:
        return self.client[self.settings.database_name]

    def collection(self, name: str) -> Collection:
        return self.database[name]

    @property
    def slots(self) -> Collection:
        return self.collection(self.settings.slots_collection)

    @property
    def users(self) -> Collection:
        return self.collection(self.settings.users_collection)

    def ping(self) -> bool:
        try:
            self.client.admin.command("ping")
            return True
        except PyMongoError as e:
            raise RepositoryUnavailableError(f"MongoDB ping failed: {e}") from e

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None
            self._logger.info("MongoDB client closed")

    def __enter__(self):
        return self.connect()

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
