# File: smart_parking/infrastructure/repositories.py
"""
Repository Implementations for parking slots

Storage Implementations:
- InMemoryParkingSlotRepository - For testing and development
- MongoParkingSlotRepository - For MongoDB

Persisted slot document (collection `parking_slots`):

    {
        "_id": ObjectId | str,
        "occupied": bool,
        "stopEnd": datetime,        # absent when free
        "occupierId": str,          # absent when free
        "location": {"type": "Point", "coordinates": [longitude, latitude]}
    }

Both implementations honour the conditional update contract: the filter
and the mutation are applied as one atomic step and the number of
matched slots is returned.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Optional, List, Dict, Any, Union

from bson import ObjectId
from pymongo import GEOSPHERE
from pymongo.collection import Collection
from pymongo.errors import DuplicateKeyError, PyMongoError

from ..domain.errors import (
    RepositoryUnavailableError, AmbiguousOccupierError, DuplicateSlotError, CorruptSlotDocumentError
)
from ..domain.geo import GeoRadiusTranslator
from ..domain.models import ParkingSlot, GeoPoint, Center, ensure_utc
from ..domain.repository import ParkingSlotRepository, SlotFilter, SlotMutation


# ============================================================================
# IN-MEMORY REPOSITORY (For Testing)
# ============================================================================

class InMemoryParkingSlotRepository(ParkingSlotRepository):
    """In-memory repository; a lock makes each conditional update atomic"""

    def __init__(self, translator: Optional[GeoRadiusTranslator] = None):
        self._storage: Dict[str, ParkingSlot] = {}
        self._lock = threading.Lock()
        self._translator = translator or GeoRadiusTranslator()
        self._logger = logging.getLogger(self.__class__.__name__)

    def add(self, slot: ParkingSlot) -> ParkingSlot:
        with self._lock:
            if slot.id in self._storage:
                raise DuplicateSlotError(slot.id)
            self._storage[slot.id] = slot
        self._logger.debug(f"Added parking slot {slot.id}")
        return slot

    def get(self, slot_id: str) -> Optional[ParkingSlot]:
        return self._storage.get(slot_id)

    def find_all(self) -> List[ParkingSlot]:
        return list(self._storage.values())

    def find_by_occupier(self, user_id: str) -> Optional[ParkingSlot]:
        matches = [slot for slot in self._storage.values() if slot.is_occupied_by(user_id)]
        if len(matches) > 1:
            raise AmbiguousOccupierError(user_id, [slot.id for slot in matches])
        return matches[0] if matches else None

    def find_within_radius(self, center: Center) -> List[ParkingSlot]:
        cap = self._translator.translate(center)
        return [slot for slot in self._storage.values() if cap.contains(slot.location)]

    def conditional_update(self, slot_filter: SlotFilter, mutation: SlotMutation) -> int:
        with self._lock:
            slot = self._storage.get(slot_filter.slot_id)
            if slot is None or not slot_filter.matches(slot):
                return 0
            self._storage[slot.id] = mutation.apply(slot)
        self._logger.debug(f"Updated parking slot {slot_filter.slot_id}")
        return 1


# ============================================================================
# DOCUMENT MAPPER
# ============================================================================

class SlotDocumentMapper:
    """Maps between ParkingSlot and its MongoDB document"""

    @staticmethod
    def document_key(slot_id: str) -> Union[ObjectId, str]:
        """Ids that look like ObjectIds are stored as ObjectIds"""
        return ObjectId(slot_id) if ObjectId.is_valid(slot_id) else slot_id

    @staticmethod
    def to_document(slot: ParkingSlot) -> Dict[str, Any]:
        document = {
            "_id": SlotDocumentMapper.document_key(slot.id),
            "occupied": slot.occupied,
            "location": {
                "type": "Point",
                "coordinates": list(slot.location.to_lon_lat())
            }
        }
        if slot.occupied:
            document["stopEnd"] = slot.stop_end
            document["occupierId"] = slot.occupier_id
        return document

    @staticmethod
    def to_domain(document: Dict[str, Any]) -> ParkingSlot:
        location = document.get("location") or {}
        if location.get("type") != "Point":
            raise ValueError(f"Slot {document.get('_id')} has no GeoJSON point location")

        coordinates = location.get("coordinates") or []
        if len(coordinates) != 2:
            raise ValueError(f"Slot {document.get('_id')} has malformed coordinates: {coordinates}")

        stop_end = document.get("stopEnd")
        occupier_id = document.get("occupierId")
        return ParkingSlot(
            location=GeoPoint.from_lon_lat(coordinates),
            occupied=bool(document.get("occupied", False)),
            stop_end=ensure_utc(stop_end) if stop_end is not None else None,
            occupier_id=str(occupier_id) if occupier_id is not None else None,
            id=str(document["_id"])
        )

    @staticmethod
    def filter_to_query(slot_filter: SlotFilter) -> Dict[str, Any]:
        query: Dict[str, Any] = {"_id": SlotDocumentMapper.document_key(slot_filter.slot_id)}
        if slot_filter.occupied is not None:
            query["occupied"] = slot_filter.occupied
        if slot_filter.occupier_id is not None:
            query["occupierId"] = slot_filter.occupier_id
        if slot_filter.stop_end_before is not None:
            query["stopEnd"] = {"$lt": ensure_utc(slot_filter.stop_end_before)}
        return query

    @staticmethod
    def mutation_to_update(mutation: SlotMutation) -> Dict[str, Any]:
        if mutation.clear_occupation:
            return {
                "$set": {"occupied": False},
                "$unset": {"stopEnd": "", "occupierId": ""}
            }

        assignments: Dict[str, Any] = {}
        if mutation.occupied is not None:
            assignments["occupied"] = mutation.occupied
        if mutation.stop_end is not None:
            assignments["stopEnd"] = ensure_utc(mutation.stop_end)
        if mutation.occupier_id is not None:
            assignments["occupierId"] = mutation.occupier_id
        return {"$set": assignments}


# ============================================================================
# MONGODB REPOSITORY
# ============================================================================

class MongoParkingSlotRepository(ParkingSlotRepository):
    """MongoDB repository; conditional updates map onto update_one"""

    def __init__(self, collection: Collection, translator: Optional[GeoRadiusTranslator] = None):
        self.collection = collection
        self._translator = translator or GeoRadiusTranslator()
        self._logger = logging.getLogger(self.__class__.__name__)

    @contextmanager
    def _storage_errors(self, operation: str):
        """Translate driver errors into RepositoryUnavailableError"""
        try:
            yield
        except PyMongoError as e:
            self._logger.error(f"Database error during {operation}: {e}")
            raise RepositoryUnavailableError(f"{operation} failed: {e}") from e

    def _decode(self, document: Dict[str, Any]) -> ParkingSlot:
        try:
            return SlotDocumentMapper.to_domain(document)
        except (ValueError, TypeError, KeyError, AttributeError) as e:
            raise CorruptSlotDocumentError(document.get("_id"), str(e)) from e

    def _decode_all(self, documents: List[Dict[str, Any]], operation: str) -> List[ParkingSlot]:
        """Decode a result set, leaving out documents that cannot be decoded"""
        slots = []
        for document in documents:
            try:
                slots.append(self._decode(document))
            except CorruptSlotDocumentError as e:
                self._logger.error(f"Skipping document during {operation}: {e}")
        return slots

    def ensure_indexes(self) -> None:
        with self._storage_errors("ensure_indexes"):
            self.collection.create_index([("location", GEOSPHERE)])
            self.collection.create_index("occupierId", sparse=True)

    def add(self, slot: ParkingSlot) -> ParkingSlot:
        with self._storage_errors("add"):
            try:
                self.collection.insert_one(SlotDocumentMapper.to_document(slot))
            except DuplicateKeyError as e:
                raise DuplicateSlotError(slot.id) from e
        self._logger.debug(f"Added parking slot {slot.id}")
        return slot

    def get(self, slot_id: str) -> Optional[ParkingSlot]:
        with self._storage_errors("get"):
            document = self.collection.find_one({"_id": SlotDocumentMapper.document_key(slot_id)})
        return self._decode(document) if document is not None else None

    def find_all(self) -> List[ParkingSlot]:
        with self._storage_errors("find_all"):
            documents = list(self.collection.find({}))
        return self._decode_all(documents, "find_all")

    def find_by_occupier(self, user_id: str) -> Optional[ParkingSlot]:
        with self._storage_errors("find_by_occupier"):
            documents = list(self.collection.find({"occupierId": user_id}).limit(2))

        if len(documents) > 1:
            raise AmbiguousOccupierError(user_id, [str(document["_id"]) for document in documents])
        return self._decode(documents[0]) if documents else None

    def find_within_radius(self, center: Center) -> List[ParkingSlot]:
        query = self._translator.to_mongo_filter(center, "location")
        with self._storage_errors("find_within_radius"):
            documents = list(self.collection.find(query))
        return self._decode_all(documents, "find_within_radius")

    def conditional_update(self, slot_filter: SlotFilter, mutation: SlotMutation) -> int:
        query = SlotDocumentMapper.filter_to_query(slot_filter)
        update = SlotDocumentMapper.mutation_to_update(mutation)
        with self._storage_errors("conditional_update"):
            result = self.collection.update_one(query, update)
        self._logger.debug(f"Conditional update on {slot_filter.slot_id} matched {result.matched_count}")
        return result.matched_count
