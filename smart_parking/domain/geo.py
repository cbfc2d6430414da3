# File: smart_parking/domain/geo.py
"""
Radius search geometry

GeoRadiusTranslator turns a Center (point + radius in kilometers) into a
SphericalCap: the set of points whose great-circle distance from the
center is at most the radius. The cap can be rendered as a MongoDB
$centerSphere predicate or evaluated directly against a point, so every
repository implementation applies the same boundary rule.

Boundary policy: points exactly on the rim are inside (<=, not <).
"""

import math
from dataclasses import dataclass
from typing import Dict, Any

from .models import Center, GeoPoint

EARTH_RADIUS_KM = 6371.0

# Relative slack for rounding in the haversine evaluation
DISTANCE_REL_TOLERANCE = 1e-12


def great_circle_distance_km(a: GeoPoint, b: GeoPoint) -> float:
    """Haversine distance on a sphere of radius EARTH_RADIUS_KM"""
    lat1, lon1 = math.radians(a.latitude), math.radians(a.longitude)
    lat2, lon2 = math.radians(b.latitude), math.radians(b.longitude)

    dlat = lat2 - lat1
    dlon = lon2 - lon1

    h = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlon / 2) ** 2
    h = min(1.0, max(0.0, h))
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(h))


@dataclass(frozen=True)
class SphericalCap:
    """Storage-neutral radius predicate"""
    center: GeoPoint
    radius_km: float

    @property
    def angular_radius(self) -> float:
        """Cap radius in radians"""
        return self.radius_km / EARTH_RADIUS_KM

    def contains(self, point: GeoPoint) -> bool:
        distance = great_circle_distance_km(self.center, point)
        return distance <= self.radius_km or math.isclose(distance, self.radius_km, rel_tol=DISTANCE_REL_TOLERANCE)

    def to_mongo_filter(self, field: str = "location") -> Dict[str, Any]:
        """
        Render as a $geoWithin/$centerSphere filter.

        $centerSphere takes [[longitude, latitude], radians].
        """
        longitude, latitude = self.center.to_lon_lat()
        return {
            field: {
                "$geoWithin": {
                    "$centerSphere": [[longitude, latitude], self.angular_radius]
                }
            }
        }


class GeoRadiusTranslator:
    """Converts radius search parameters into a spherical-cap predicate"""

    def translate(self, center: Center) -> SphericalCap:
        return SphericalCap(center=center.position, radius_km=center.radius_km)

    def to_mongo_filter(self, center: Center, field: str = "location") -> Dict[str, Any]:
        return self.translate(center).to_mongo_filter(field)
