# File: smart_parking/application/dtos.py
"""
Data Transfer Objects (DTOs) for the Smart Parking system

This module defines DTOs for data transfer between layers:
1. Input DTOs - request parameters decoded and validated at the edge
2. Output DTOs - slot and user representations sent back to clients

DTO Principles:
- Validation at creation (pydantic)
- No business logic, only data
- Wire names are camelCase; Python attributes stay snake_case
"""

from datetime import datetime
from typing import Dict, Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..domain.models import Center, GeoPoint, ParkingSlot, UserInfo, ensure_utc


# ============================================================================
# BASE DTO CLASSES
# ============================================================================

class BaseDTO(BaseModel):
    """Base DTO with common functionality"""

    model_config = ConfigDict(
        populate_by_name=True,
        str_strip_whitespace=True,
        extra="ignore",
    )

    def to_dict(self, exclude_none: bool = False, **kwargs) -> Dict[str, Any]:
        """Convert DTO to a JSON compatible dictionary using wire names"""
        return self.model_dump(mode="json", by_alias=True, exclude_none=exclude_none, **kwargs)


# ============================================================================
# OCCUPANCY REQUEST DTOs
# ============================================================================

class SlotRequestDTO(BaseDTO):
    """Request addressing one slot"""
    slot_id: str = Field(alias="slotId", min_length=1, description="Parking slot id")


class StopEndRequestDTO(SlotRequestDTO):
    """Request carrying the end of an occupation"""
    stop_end: datetime = Field(alias="stopEnd", description="End of the occupation")

    @field_validator('stop_end')
    @classmethod
    def normalize_stop_end(cls, v: datetime) -> datetime:
        """Naive timestamps are read as UTC"""
        return ensure_utc(v)


class OccupyRequestDTO(StopEndRequestDTO):
    """Occupy a free slot until stop_end"""
    pass


class ExtendRequestDTO(StopEndRequestDTO):
    """Move the stop end of an occupation later"""
    pass


class FreeRequestDTO(SlotRequestDTO):
    pass


class RadiusSearchDTO(BaseDTO):
    """Radius search around a point"""
    latitude: float = Field(ge=-90, le=90, description="Latitude of the center")
    longitude: float = Field(ge=-180, le=180, description="Longitude of the center")
    radius: float = Field(ge=0, description="Radius in kilometers")

    def to_center(self) -> Center:
        return Center.of(self.latitude, self.longitude, self.radius)


# ============================================================================
# ACCOUNT REQUEST DTOs
# ============================================================================

class RecoverPasswordDTO(BaseDTO):
    email: str = Field(min_length=3, description="Account email")

    @field_validator('email')
    @classmethod
    def validate_email(cls, v: str) -> str:
        """Basic email validation"""
        if '@' not in v:
            raise ValueError("Invalid email address")
        return v.lower()


class ChangePasswordDTO(BaseDTO):
    """Change password; old_password is omitted in the recovery flow"""
    old_password: Optional[str] = Field(default=None, alias="oldPassword")
    new_password: str = Field(alias="newPassword", min_length=8)


# ============================================================================
# OUTPUT DTOs
# ============================================================================

class ParkingSlotDTO(BaseDTO):
    """Parking slot as sent to clients"""
    id: str
    occupied: bool
    stop_end: Optional[datetime] = Field(default=None, alias="stopEnd")
    occupier_id: Optional[str] = Field(default=None, alias="occupierId")
    latitude: float
    longitude: float

    @classmethod
    def from_domain(cls, slot: ParkingSlot) -> 'ParkingSlotDTO':
        return cls(
            id=slot.id,
            occupied=slot.occupied,
            stop_end=slot.stop_end,
            occupier_id=slot.occupier_id,
            latitude=slot.location.latitude,
            longitude=slot.location.longitude,
        )


class UserInfoDTO(BaseDTO):
    email: str
    name: str
    surname: Optional[str] = None

    @classmethod
    def from_domain(cls, user: UserInfo) -> 'UserInfoDTO':
        return cls(email=user.email, name=user.name, surname=user.surname)


# ============================================================================
# ADMINISTRATION DTOs
# ============================================================================

class SlotSeedDTO(BaseDTO):
    """Slot definition used when seeding the store"""
    id: Optional[str] = None
    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)

    def to_domain(self) -> ParkingSlot:
        return ParkingSlot(GeoPoint(self.latitude, self.longitude), id=self.id)
