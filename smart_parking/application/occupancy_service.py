# File: smart_parking/application/occupancy_service.py
"""
Slot Occupancy Application Service

This module implements the occupancy state machine of a parking slot:

    Free --occupy--> Occupied --extend--> Occupied --free--> Free

Responsibilities:
1. Execute occupy / extend / free as single atomic conditional updates
2. Serve the read-only slot queries (by id, all, by occupier, by radius)
3. Translate every outcome, storage outages included, into typed results
4. Publish domain events for applied transitions

Each mutation writes first and reads afterwards only to explain a
rejected write. The filter of the conditional update carries the whole
precondition, so two callers racing on the same slot can never both
succeed. The service itself keeps no slot state between calls.
"""

import logging
from datetime import datetime
from typing import List, Optional

from ..domain.capabilities import EventPublisher
from ..domain.errors import RepositoryError, RepositoryUnavailableError, AmbiguousOccupierError
from ..domain.events import DomainEvent, SlotOccupiedEvent, OccupationExtendedEvent, SlotFreedEvent
from ..domain.models import ParkingSlot, Center, ensure_utc
from ..domain.repository import ParkingSlotRepository, SlotFilter, SlotMutation
from .results import OccupancyResult, QueryResult, ResultKind, ResultCode, SlotQueryResult


def _is_valid_user_id(user_id) -> bool:
    return isinstance(user_id, str) and bool(user_id.strip())


def _storage_failure_message(error: RepositoryError) -> str:
    if isinstance(error, RepositoryUnavailableError):
        return "Parking slot storage is unavailable"
    return str(error)


class SlotOccupancyService:
    """
    Occupancy state machine over the slots held by a repository

    Args:
        repository: Store of parking slots (sole source of truth)
        event_publisher: Optional sink for domain events
    """

    def __init__(self, repository: ParkingSlotRepository, event_publisher: Optional[EventPublisher] = None):
        self.repository = repository
        self.event_publisher = event_publisher
        self.logger = logging.getLogger(self.__class__.__name__)

    # ------------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------------

    def occupy(self, user_id: str, slot_id: str, stop_end: datetime) -> OccupancyResult:
        """Free -> Occupied, keyed on occupied == false"""
        if not _is_valid_user_id(user_id):
            return self._invalid_user(slot_id)
        stop_end = ensure_utc(stop_end)
        self.logger.info(f"Occupy request for slot {slot_id} by {user_id} until {stop_end.isoformat()}")

        try:
            matched = self.repository.conditional_update(
                SlotFilter(slot_id=slot_id, occupied=False),
                SlotMutation.occupy(user_id, stop_end)
            )
            if matched:
                self._publish(SlotOccupiedEvent(slot_id, user_id, stop_end))
                return OccupancyResult.ok(slot_id)

            if self.repository.get(slot_id) is None:
                return self._rejected(
                    ResultKind.NOT_FOUND, ResultCode.PARKING_SLOT_NOT_VALID,
                    f"Parking slot {slot_id} does not exist", slot_id
                )
            return self._rejected(
                ResultKind.CONFLICT, ResultCode.PARKING_SLOT_OCCUPIED,
                f"Parking slot {slot_id} is already occupied", slot_id
            )
        except RepositoryError as e:
            return self._unavailable("occupy", slot_id, e)

    def extend(self, user_id: str, slot_id: str, new_stop_end: datetime) -> OccupancyResult:
        """Occupied -> Occupied with a strictly later stop end, occupier only"""
        if not _is_valid_user_id(user_id):
            return self._invalid_user(slot_id)
        new_stop_end = ensure_utc(new_stop_end)
        self.logger.info(f"Extend request for slot {slot_id} by {user_id} to {new_stop_end.isoformat()}")

        try:
            matched = self.repository.conditional_update(
                SlotFilter(
                    slot_id=slot_id,
                    occupied=True,
                    occupier_id=user_id,
                    stop_end_before=new_stop_end
                ),
                SlotMutation.extend(new_stop_end)
            )
            if matched:
                self._publish(OccupationExtendedEvent(slot_id, user_id, new_stop_end))
                return OccupancyResult.ok(slot_id)

            return self._explain_rejected_extend(user_id, slot_id, new_stop_end)
        except RepositoryError as e:
            return self._unavailable("extend", slot_id, e)

    def free(self, slot_id: str) -> OccupancyResult:
        """Occupied -> Free; freeing a free slot is a successful no-op"""
        self.logger.info(f"Free request for slot {slot_id}")

        try:
            matched = self.repository.conditional_update(
                SlotFilter(slot_id=slot_id, occupied=True),
                SlotMutation.free()
            )
            if matched:
                self._publish(SlotFreedEvent(slot_id))
                return OccupancyResult.ok(slot_id)

            if self.repository.get(slot_id) is None:
                return self._rejected(
                    ResultKind.NOT_FOUND, ResultCode.PARKING_SLOT_NOT_FOUND,
                    f"Parking slot {slot_id} does not exist", slot_id
                )

            self.logger.debug(f"Slot {slot_id} already free, nothing to do")
            return OccupancyResult.ok(slot_id, "already free")
        except RepositoryError as e:
            return self._unavailable("free", slot_id, e)

    def _explain_rejected_extend(self, user_id: str, slot_id: str, new_stop_end: datetime) -> OccupancyResult:
        """
        Work out why an extend matched nothing.

        Checks run in the order NotFound, NotOccupied, StopEndNotLater,
        NotOccupier so the reported reason does not depend on who asks.
        """
        slot = self.repository.get(slot_id)

        if slot is None:
            return self._rejected(
                ResultKind.NOT_FOUND, ResultCode.PARKING_SLOT_NOT_FOUND,
                f"Parking slot {slot_id} does not exist", slot_id
            )

        if slot.is_free:
            return self._rejected(
                ResultKind.INVALID_STATE, ResultCode.PARKING_SLOT_FREE,
                f"Parking slot {slot_id} is not occupied", slot_id
            )

        if new_stop_end <= slot.stop_end:
            return self._rejected(
                ResultKind.INVALID_INPUT, ResultCode.INVALID_PARKING_SLOT_STOP_END,
                f"New stop end must be later than {slot.stop_end.isoformat()}", slot_id
            )

        if slot.occupier_id != user_id:
            return self._rejected(
                ResultKind.FORBIDDEN, ResultCode.NOT_PARKING_SLOT_OCCUPIER,
                f"User {user_id} is not the occupier of parking slot {slot_id}", slot_id
            )

        # The slot changed between the update and the read; report it as a race
        return self._rejected(
            ResultKind.CONFLICT, ResultCode.PARKING_SLOT_OCCUPIED,
            f"Parking slot {slot_id} changed concurrently", slot_id
        )

    # ------------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------------

    def get_slot(self, slot_id: str) -> SlotQueryResult:
        try:
            slot = self.repository.get(slot_id)
        except RepositoryError as e:
            return self._query_unavailable("get_slot", e)

        if slot is None:
            return QueryResult.failure(
                ResultKind.NOT_FOUND, ResultCode.PARKING_SLOT_NOT_FOUND,
                f"Parking slot {slot_id} does not exist"
            )
        return QueryResult.ok(slot)

    def list_slots(self) -> QueryResult[List[ParkingSlot]]:
        try:
            return QueryResult.ok(self.repository.find_all())
        except RepositoryError as e:
            return self._query_unavailable("list_slots", e)

    def find_slots_within_radius(self, center: Center) -> QueryResult[List[ParkingSlot]]:
        """Unordered slots within the radius; sort client side for nearest-first"""
        self.logger.debug(f"Radius search around {center.position} within {center.radius_km} km")
        try:
            return QueryResult.ok(self.repository.find_within_radius(center))
        except RepositoryError as e:
            return self._query_unavailable("find_slots_within_radius", e)

    def get_slot_occupied_by(self, user_id: str) -> SlotQueryResult:
        """
        Slot occupied by the user.

        An absent slot is a successful lookup with value None. More than
        one match is reported as a conflict instead of picking one.
        """
        try:
            return QueryResult.ok(self.repository.find_by_occupier(user_id))
        except AmbiguousOccupierError as e:
            self.logger.warning(str(e))
            return QueryResult.failure(
                ResultKind.CONFLICT, ResultCode.MULTIPLE_PARKING_SLOTS_OCCUPIED, str(e)
            )
        except RepositoryError as e:
            return self._query_unavailable("get_slot_occupied_by", e)

    # ------------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------------

    def _rejected(self, kind: ResultKind, code: ResultCode, message: str, slot_id: str) -> OccupancyResult:
        self.logger.info(f"Rejected ({code.value}): {message}")
        return OccupancyResult.failure(kind, code, message, slot_id)

    def _invalid_user(self, slot_id: str) -> OccupancyResult:
        return self._rejected(
            ResultKind.INVALID_INPUT, ResultCode.INVALID_REQUEST,
            "Occupier id cannot be empty", slot_id
        )

    def _unavailable(self, operation: str, slot_id: str, error: Exception) -> OccupancyResult:
        self.logger.error(f"Storage failure during {operation} of slot {slot_id}: {error}")
        return OccupancyResult.failure(
            ResultKind.UNAVAILABLE, ResultCode.SERVICE_UNAVAILABLE,
            _storage_failure_message(error), slot_id
        )

    def _query_unavailable(self, operation: str, error: Exception) -> QueryResult:
        self.logger.error(f"Storage failure during {operation}: {error}")
        return QueryResult.failure(
            ResultKind.UNAVAILABLE, ResultCode.SERVICE_UNAVAILABLE,
            _storage_failure_message(error)
        )

    def _publish(self, event: DomainEvent) -> None:
        if self.event_publisher is None:
            return
        try:
            if not self.event_publisher.publish(event):
                self.logger.warning(f"Event {event.event_type} for {event.data()} was not delivered")
        except Exception as e:
            self.logger.error(f"Error publishing {event.event_type}: {e}", exc_info=True)
