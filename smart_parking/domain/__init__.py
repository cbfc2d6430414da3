from .models import GeoPoint, Center, ParkingSlot, UserInfo, Principal
from .geo import GeoRadiusTranslator, SphericalCap, EARTH_RADIUS_KM
from .repository import ParkingSlotRepository, SlotFilter, SlotMutation

__all__ = [
    "GeoPoint",
    "Center",
    "ParkingSlot",
    "UserInfo",
    "Principal",
    "GeoRadiusTranslator",
    "SphericalCap",
    "EARTH_RADIUS_KM",
    "ParkingSlotRepository",
    "SlotFilter",
    "SlotMutation",
]
