# File: smart_parking/infrastructure/messaging.py
"""
Domain event publishing

Publishers:
- RedisEventPublisher - Redis Pub/Sub channel, one JSON message per event
- InMemoryEventPublisher - keeps events in a list (development and tests)

Publishing is fire-and-forget: failures are logged and reported as False,
never raised into the operation that produced the event.
"""

import json
import logging
import threading
from typing import List

import redis

from ..domain.events import DomainEvent


class RedisEventPublisher:
    """Publishes events to a Redis Pub/Sub channel"""

    def __init__(self, redis_client: redis.Redis, channel: str = "parking_slot_events"):
        self.redis_client = redis_client
        self.channel = channel
        self._logger = logging.getLogger(self.__class__.__name__)

    @classmethod
    def from_url(cls, redis_url: str, channel: str = "parking_slot_events", **kwargs) -> 'RedisEventPublisher':
        return cls(redis.Redis.from_url(redis_url, **kwargs), channel)

    def publish(self, event: DomainEvent) -> bool:
        try:
            receivers = self.redis_client.publish(self.channel, json.dumps(event.to_dict()))
            self._logger.debug(f"Published {event.event_type} to {self.channel} ({receivers} receivers)")
            return True
        except redis.RedisError as e:
            self._logger.error(f"Error publishing to Redis: {e}")
            return False

    def close(self):
        """Close Redis connections"""
        self.redis_client.close()


class InMemoryEventPublisher:
    """Collects published events"""

    def __init__(self):
        self._events: List[DomainEvent] = []
        self._lock = threading.Lock()

    def publish(self, event: DomainEvent) -> bool:
        with self._lock:
            self._events.append(event)
        return True

    @property
    def events(self) -> List[DomainEvent]:
        with self._lock:
            return list(self._events)
