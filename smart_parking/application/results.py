# File: smart_parking/application/results.py
"""
Typed results returned by the application services

Every expected outcome, including storage outages, is reported through a
result value. Callers branch on `kind`; `code` is the stable string that
travels to clients.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

from ..domain.models import ParkingSlot

T = TypeVar('T')


class ResultKind(str, Enum):
    """Outcome taxonomy shared by all operations"""
    OK = "ok"
    NOT_FOUND = "not_found"          # Entity does not exist
    CONFLICT = "conflict"            # Precondition broken by another actor
    INVALID_STATE = "invalid_state"  # Operation not applicable to current state
    INVALID_INPUT = "invalid_input"  # Caller supplied value fails validation
    FORBIDDEN = "forbidden"          # Caller may not perform this mutation
    UNAUTHORIZED = "unauthorized"    # Missing or invalid credentials
    UNAVAILABLE = "unavailable"      # Store or transport unreachable


class ResultCode(str, Enum):
    """Client facing result codes"""
    SUCCESS = "Success"
    PARKING_SLOT_NOT_VALID = "ParkingSlotNotValid"
    PARKING_SLOT_NOT_FOUND = "ParkingSlotNotFound"
    PARKING_SLOT_OCCUPIED = "ParkingSlotOccupied"
    PARKING_SLOT_FREE = "ParkingSlotFree"
    INVALID_PARKING_SLOT_STOP_END = "InvalidParkingSlotStopEnd"
    NOT_PARKING_SLOT_OCCUPIER = "NotParkingSlotOccupier"
    MULTIPLE_PARKING_SLOTS_OCCUPIED = "MultipleParkingSlotsOccupied"
    PARKING_SLOT_ALREADY_EXISTS = "ParkingSlotAlreadyExists"
    USER_NOT_FOUND = "UserNotFound"
    WRONG_PASSWORD = "WrongPassword"
    UNAUTHORIZED = "Unauthorized"
    INVALID_REQUEST = "InvalidRequest"
    UNKNOWN_COMMAND = "UnknownCommand"
    SERVICE_UNAVAILABLE = "ServiceUnavailable"


@dataclass(frozen=True)
class OccupancyResult:
    """Result of occupy / extend / free"""
    kind: ResultKind
    code: ResultCode
    message: str = ""
    slot_id: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.kind == ResultKind.OK

    @classmethod
    def ok(cls, slot_id: str, message: str = "success") -> 'OccupancyResult':
        return cls(ResultKind.OK, ResultCode.SUCCESS, message, slot_id)

    @classmethod
    def failure(cls, kind: ResultKind, code: ResultCode, message: str, slot_id: Optional[str] = None) -> 'OccupancyResult':
        return cls(kind, code, message, slot_id)


@dataclass(frozen=True)
class QueryResult(Generic[T]):
    """Result of a read operation; value is None for "not present" lookups"""
    kind: ResultKind
    code: ResultCode
    value: Optional[T] = None
    message: str = ""

    @property
    def success(self) -> bool:
        return self.kind == ResultKind.OK

    @classmethod
    def ok(cls, value: Any) -> 'QueryResult':
        return cls(ResultKind.OK, ResultCode.SUCCESS, value)

    @classmethod
    def failure(cls, kind: ResultKind, code: ResultCode, message: str) -> 'QueryResult':
        return cls(kind, code, None, message)


SlotQueryResult = QueryResult[ParkingSlot]
