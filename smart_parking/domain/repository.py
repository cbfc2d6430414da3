# File: smart_parking/domain/repository.py
"""
Repository Contract for parking slots

The occupancy core talks to storage exclusively through this interface.
Every operation is a single round trip. Mutations are expressed as
conditional updates: a SlotFilter that encodes the precondition and a
SlotMutation that is applied only when the filter matches. The returned
matched count is the authoritative success signal.

Implementations:
- InMemoryParkingSlotRepository - For testing and development
- MongoParkingSlotRepository - For MongoDB
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, List

from .models import ParkingSlot, Center, ensure_utc


@dataclass(frozen=True)
class SlotFilter:
    """
    Precondition of a conditional update

    Unset criteria are not checked. stop_end_before matches slots whose
    stored stop end is strictly earlier than the given instant.
    """
    slot_id: str
    occupied: Optional[bool] = None
    occupier_id: Optional[str] = None
    stop_end_before: Optional[datetime] = None

    def matches(self, slot: ParkingSlot) -> bool:
        if slot.id != self.slot_id:
            return False
        if self.occupied is not None and slot.occupied != self.occupied:
            return False
        if self.occupier_id is not None and slot.occupier_id != self.occupier_id:
            return False
        if self.stop_end_before is not None:
            if slot.stop_end is None or slot.stop_end >= ensure_utc(self.stop_end_before):
                return False
        return True


@dataclass(frozen=True)
class SlotMutation:
    """Field assignments applied by a conditional update"""
    occupied: Optional[bool] = None
    stop_end: Optional[datetime] = None
    occupier_id: Optional[str] = None
    clear_occupation: bool = False

    @classmethod
    def occupy(cls, user_id: str, stop_end: datetime) -> 'SlotMutation':
        return cls(occupied=True, stop_end=stop_end, occupier_id=user_id)

    @classmethod
    def extend(cls, stop_end: datetime) -> 'SlotMutation':
        return cls(stop_end=stop_end)

    @classmethod
    def free(cls) -> 'SlotMutation':
        return cls(occupied=False, clear_occupation=True)

    def apply(self, slot: ParkingSlot) -> ParkingSlot:
        """Return the slot as it looks after the mutation"""
        if self.clear_occupation:
            return slot.released()
        if self.occupied:
            return slot.occupied_by(self.occupier_id, self.stop_end)
        if self.stop_end is not None:
            return slot.extended_to(self.stop_end)
        return slot


class ParkingSlotRepository(ABC):
    """Durable store of parking slots"""

    @abstractmethod
    def add(self, slot: ParkingSlot) -> ParkingSlot:
        """
        Insert a slot (seeding and administration only)

        Raises DuplicateSlotError when the id is already stored.
        """
        pass

    @abstractmethod
    def get(self, slot_id: str) -> Optional[ParkingSlot]:
        """Point lookup by id"""
        pass

    @abstractmethod
    def find_all(self) -> List[ParkingSlot]:
        """All slots, unordered"""
        pass

    @abstractmethod
    def find_by_occupier(self, user_id: str) -> Optional[ParkingSlot]:
        """
        Slot currently occupied by the user

        Raises AmbiguousOccupierError when more than one slot matches.
        """
        pass

    @abstractmethod
    def find_within_radius(self, center: Center) -> List[ParkingSlot]:
        """Slots within center.radius_km of center.position, unordered"""
        pass

    @abstractmethod
    def conditional_update(self, slot_filter: SlotFilter, mutation: SlotMutation) -> int:
        """Atomically apply mutation where slot_filter matches; return the matched count"""
        pass
