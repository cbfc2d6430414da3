"""Smart Parking: parking slot occupancy tracking and radius search"""

__version__ = "1.0.0"
