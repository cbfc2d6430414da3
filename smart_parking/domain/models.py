# File: smart_parking/domain/models.py
"""
Domain Models for the Smart Parking core

This module contains:
1. Value Objects: GeoPoint and Center (immutable, validated on creation)
2. Entities: ParkingSlot, identified by an opaque id, and UserInfo
3. Time helpers shared by every layer that handles stop-end timestamps

A ParkingSlot is either Free or Occupied. The occupancy invariant

    occupied  <=>  stop_end is present  <=>  occupier_id is present

is checked every time a slot is built, so a slot object in an invalid
state can never leave this module.
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Tuple
import uuid


def ensure_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are taken as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


# ============================================================================
# VALUE OBJECTS
# ============================================================================

@dataclass(frozen=True)
class GeoPoint:
    """
    Value Object: a (latitude, longitude) pair in decimal degrees

    Storage keeps points as GeoJSON, which orders coordinates as
    (longitude, latitude); use to_lon_lat() when crossing that boundary.
    """
    latitude: float
    longitude: float

    def __post_init__(self):
        if not -90 <= self.latitude <= 90:
            raise ValueError(f"Latitude must be between -90 and 90: {self.latitude}")

        if not -180 <= self.longitude <= 180:
            raise ValueError(f"Longitude must be between -180 and 180: {self.longitude}")

    def to_lon_lat(self) -> Tuple[float, float]:
        return (self.longitude, self.latitude)

    @classmethod
    def from_lon_lat(cls, coordinates) -> 'GeoPoint':
        """Build a point from a GeoJSON coordinate pair"""
        longitude, latitude = coordinates
        return cls(latitude=float(latitude), longitude=float(longitude))

    def __str__(self) -> str:
        return f"({self.latitude:.6f}, {self.longitude:.6f})"


@dataclass(frozen=True)
class Center:
    """
    Value Object: radius search parameter

    Not persisted. radius_km is a great-circle distance in kilometers.
    """
    position: GeoPoint
    radius_km: float

    def __post_init__(self):
        if self.radius_km < 0:
            raise ValueError(f"Radius cannot be negative: {self.radius_km}")

    @classmethod
    def of(cls, latitude: float, longitude: float, radius_km: float) -> 'Center':
        return cls(GeoPoint(latitude, longitude), radius_km)


# ============================================================================
# DOMAIN ENTITIES
# ============================================================================

class Entity:
    """
    Base class for all domain entities
    Provides common functionality for entities with identity
    """

    def __init__(self, id: Optional[str] = None):
        self._id = id or str(uuid.uuid4())

    @property
    def id(self) -> str:
        """Get entity ID"""
        return self._id

    def __eq__(self, other: object) -> bool:
        """Entities are equal if they have the same ID and type"""
        if not isinstance(other, Entity):
            return False
        return self.id == other.id and type(self) == type(other)

    def __hash__(self) -> int:
        return hash((self.id, type(self).__name__))

    def __repr__(self) -> str:
        return f"{type(self).__name__}(id={self.id})"


class ParkingSlot(Entity):
    """
    Entity: a physical parking space and its current occupation

    Instances are treated as snapshots. State transitions return a new
    ParkingSlot instead of mutating the receiver; the store is the only
    source of truth for the current state.
    """

    def __init__(
        self,
        location: GeoPoint,
        occupied: bool = False,
        stop_end: Optional[datetime] = None,
        occupier_id: Optional[str] = None,
        id: Optional[str] = None
    ):
        super().__init__(id)
        self._location = location
        self._occupied = occupied
        self._stop_end = ensure_utc(stop_end) if stop_end is not None else None
        self._occupier_id = occupier_id
        self._validate()

    def _validate(self) -> None:
        """Check the occupancy invariant"""
        if self._occupied:
            if self._stop_end is None or not (self._occupier_id or "").strip():
                raise ValueError(
                    f"Occupied slot {self.id} must have both a stop end and an occupier"
                )
        elif self._stop_end is not None or self._occupier_id is not None:
            raise ValueError(
                f"Free slot {self.id} cannot carry a stop end or an occupier"
            )

    @property
    def location(self) -> GeoPoint:
        return self._location

    @property
    def occupied(self) -> bool:
        return self._occupied

    @property
    def stop_end(self) -> Optional[datetime]:
        return self._stop_end

    @property
    def occupier_id(self) -> Optional[str]:
        return self._occupier_id

    @property
    def is_free(self) -> bool:
        return not self._occupied

    def is_occupied_by(self, user_id: str) -> bool:
        return self._occupied and self._occupier_id == user_id

    def occupied_by(self, user_id: str, stop_end: datetime) -> 'ParkingSlot':
        """Free -> Occupied"""
        return ParkingSlot(self._location, True, stop_end, user_id, id=self.id)

    def extended_to(self, stop_end: datetime) -> 'ParkingSlot':
        """Occupied -> Occupied with a new stop end"""
        return ParkingSlot(self._location, True, stop_end, self._occupier_id, id=self.id)

    def released(self) -> 'ParkingSlot':
        """Occupied -> Free"""
        return ParkingSlot(self._location, id=self.id)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization"""
        return {
            "id": self.id,
            "occupied": self._occupied,
            "stop_end": self._stop_end.isoformat() if self._stop_end else None,
            "occupier_id": self._occupier_id,
            "latitude": self._location.latitude,
            "longitude": self._location.longitude,
        }

    def __str__(self) -> str:
        if self._occupied:
            return f"Slot {self.id} at {self._location} - occupied by {self._occupier_id} until {self._stop_end.isoformat()}"
        return f"Slot {self.id} at {self._location} - free"


@dataclass(frozen=True)
class UserInfo:
    """User profile as exposed to the core; never carries the password"""
    email: str
    name: str
    surname: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {"email": self.email, "name": self.name}
        if self.surname is not None:
            data["surname"] = self.surname
        return data


@dataclass(frozen=True)
class Principal:
    """Authenticated caller extracted from a verified token"""
    email: str
    expires_at: Optional[datetime] = None
