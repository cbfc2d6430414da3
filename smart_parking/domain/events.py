# File: smart_parking/domain/events.py
"""
Domain Events for slot occupancy

Events describe transitions that have already been applied to the store.
They are emitted by the occupancy service after a conditional update has
matched, never for rejected or no-op operations.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Dict, Any, Optional
import uuid

from .models import utc_now


class DomainEvent(ABC):
    """
    Base class for all domain events
    Events represent something that happened in the domain
    """

    event_type = "domain_event"

    def __init__(self, timestamp: Optional[datetime] = None):
        self.event_id = str(uuid.uuid4())
        self.timestamp = timestamp or utc_now()
        self.version = "1.0"

    @abstractmethod
    def data(self) -> Dict[str, Any]:
        """Event specific payload"""
        pass

    def to_dict(self) -> Dict[str, Any]:
        """Convert event to dictionary for serialization"""
        return {
            "event_type": self.event_type,
            "event_id": self.event_id,
            "timestamp": self.timestamp.isoformat(),
            "version": self.version,
            "data": self.data(),
        }

    def __str__(self) -> str:
        return f"{self.__class__.__name__} at {self.timestamp}"


class SlotOccupiedEvent(DomainEvent):
    """Event raised when a free slot becomes occupied"""

    event_type = "parking_slot.occupied"

    def __init__(self, slot_id: str, occupier_id: str, stop_end: datetime, timestamp: Optional[datetime] = None):
        super().__init__(timestamp)
        self.slot_id = slot_id
        self.occupier_id = occupier_id
        self.stop_end = stop_end

    def data(self) -> Dict[str, Any]:
        return {
            "slot_id": self.slot_id,
            "occupier_id": self.occupier_id,
            "stop_end": self.stop_end.isoformat(),
        }


class OccupationExtendedEvent(DomainEvent):
    """Event raised when the occupier moves the stop end later"""

    event_type = "parking_slot.extended"

    def __init__(self, slot_id: str, occupier_id: str, stop_end: datetime, timestamp: Optional[datetime] = None):
        super().__init__(timestamp)
        self.slot_id = slot_id
        self.occupier_id = occupier_id
        self.stop_end = stop_end

    def data(self) -> Dict[str, Any]:
        return {
            "slot_id": self.slot_id,
            "occupier_id": self.occupier_id,
            "stop_end": self.stop_end.isoformat(),
        }


class SlotFreedEvent(DomainEvent):
    """Event raised when an occupied slot is released"""

    event_type = "parking_slot.freed"

    def __init__(self, slot_id: str, timestamp: Optional[datetime] = None):
        super().__init__(timestamp)
        self.slot_id = slot_id

    def data(self) -> Dict[str, Any]:
        return {"slot_id": self.slot_id}
