#!/usr/bin/env python3
"""
Unit Tests for the MongoDB adapters

The pymongo Collection is replaced by a mock; the tests pin down the
queries and updates sent to the driver and the decoding of documents.
"""

import unittest
import sys
from pathlib import Path
from unittest.mock import Mock
from datetime import datetime, timedelta, timezone

from bson import ObjectId
from pymongo.errors import ServerSelectionTimeoutError, OperationFailure, DuplicateKeyError

sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from smart_parking.domain.errors import (
    RepositoryUnavailableError, AmbiguousOccupierError, DuplicateSlotError, CorruptSlotDocumentError
)
from smart_parking.domain.models import GeoPoint, Center, ParkingSlot
from smart_parking.domain.repository import SlotFilter, SlotMutation
from smart_parking.infrastructure.repositories import (
    InMemoryParkingSlotRepository, MongoParkingSlotRepository, SlotDocumentMapper
)
from smart_parking.infrastructure.users import MongoUserDirectory, hash_password, verify_password

T0 = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)
OBJECT_ID = "64b7f0c2e1d3a4b5c6d7e8f9"


def slot_document(slot_id="S1", occupied=False, stop_end=None, occupier_id=None, lon=11.0, lat=44.0):
    document = {
        "_id": slot_id,
        "occupied": occupied,
        "location": {"type": "Point", "coordinates": [lon, lat]},
    }
    if stop_end is not None:
        document["stopEnd"] = stop_end
    if occupier_id is not None:
        document["occupierId"] = occupier_id
    return document


# ============================================================================
# DOCUMENT MAPPER
# ============================================================================

class TestSlotDocumentMapper(unittest.TestCase):

    def test_object_id_keys(self):
        self.assertEqual(SlotDocumentMapper.document_key(OBJECT_ID), ObjectId(OBJECT_ID))
        self.assertEqual(SlotDocumentMapper.document_key("S1"), "S1")

    def test_free_slot_document(self):
        document = SlotDocumentMapper.to_document(ParkingSlot(GeoPoint(44.0, 11.0), id="S1"))
        self.assertEqual(document, slot_document())

    def test_occupied_slot_document(self):
        slot = ParkingSlot(GeoPoint(44.0, 11.0), id=OBJECT_ID).occupied_by("U1", T0)
        document = SlotDocumentMapper.to_document(slot)
        self.assertEqual(document["_id"], ObjectId(OBJECT_ID))
        self.assertEqual(document["stopEnd"], T0)
        self.assertEqual(document["occupierId"], "U1")

    def test_to_domain(self):
        document = slot_document(OBJECT_ID, True, T0, "U1")
        document["_id"] = ObjectId(OBJECT_ID)
        slot = SlotDocumentMapper.to_domain(document)
        self.assertEqual(slot.id, OBJECT_ID)
        self.assertEqual(slot.location, GeoPoint(44.0, 11.0))
        self.assertTrue(slot.is_occupied_by("U1"))
        self.assertEqual(slot.stop_end, T0)

    def test_to_domain_naive_stop_end(self):
        slot = SlotDocumentMapper.to_domain(slot_document(occupied=True, stop_end=datetime(2026, 10, 19, 12, 0), occupier_id="U1"))
        self.assertEqual(slot.stop_end, T0)

    def test_to_domain_rejects_missing_location(self):
        document = slot_document()
        del document["location"]
        with self.assertRaises(ValueError):
            SlotDocumentMapper.to_domain(document)

    def test_to_domain_rejects_malformed_coordinates(self):
        document = slot_document()
        document["location"]["coordinates"] = [11.0]
        with self.assertRaises(ValueError):
            SlotDocumentMapper.to_domain(document)

    def test_to_domain_rejects_broken_invariant(self):
        with self.assertRaises(ValueError):
            SlotDocumentMapper.to_domain(slot_document(occupied=True))

    def test_extend_query(self):
        query = SlotDocumentMapper.filter_to_query(
            SlotFilter("S1", occupied=True, occupier_id="U1", stop_end_before=T0)
        )
        self.assertEqual(query, {
            "_id": "S1",
            "occupied": True,
            "occupierId": "U1",
            "stopEnd": {"$lt": T0},
        })

    def test_occupy_update(self):
        update = SlotDocumentMapper.mutation_to_update(SlotMutation.occupy("U1", T0))
        self.assertEqual(update, {"$set": {"occupied": True, "stopEnd": T0, "occupierId": "U1"}})

    def test_free_update(self):
        update = SlotDocumentMapper.mutation_to_update(SlotMutation.free())
        self.assertEqual(update, {
            "$set": {"occupied": False},
            "$unset": {"stopEnd": "", "occupierId": ""},
        })


# ============================================================================
# MONGODB REPOSITORY
# ============================================================================

class TestMongoParkingSlotRepository(unittest.TestCase):

    def setUp(self):
        self.collection = Mock()
        self.repository = MongoParkingSlotRepository(self.collection)

    def test_conditional_update_returns_matched_count(self):
        self.collection.update_one.return_value = Mock(matched_count=1)
        matched = self.repository.conditional_update(
            SlotFilter("S1", occupied=False), SlotMutation.occupy("U1", T0)
        )
        self.assertEqual(matched, 1)
        self.collection.update_one.assert_called_once_with(
            {"_id": "S1", "occupied": False},
            {"$set": {"occupied": True, "stopEnd": T0, "occupierId": "U1"}}
        )

    def test_conditional_update_no_match(self):
        self.collection.update_one.return_value = Mock(matched_count=0)
        self.assertEqual(
            self.repository.conditional_update(SlotFilter("S1", occupied=True), SlotMutation.free()), 0
        )

    def test_get(self):
        self.collection.find_one.return_value = slot_document()
        slot = self.repository.get("S1")
        self.assertEqual(slot.id, "S1")
        self.collection.find_one.assert_called_once_with({"_id": "S1"})

    def test_get_missing(self):
        self.collection.find_one.return_value = None
        self.assertIsNone(self.repository.get("S1"))

    def test_find_all(self):
        self.collection.find.return_value = [slot_document("S1"), slot_document("S2")]
        self.assertEqual([slot.id for slot in self.repository.find_all()], ["S1", "S2"])

    def test_find_within_radius_uses_center_sphere(self):
        self.collection.find.return_value = [slot_document("S1")]
        slots = self.repository.find_within_radius(Center.of(44.0, 11.0, 5))

        self.assertEqual([slot.id for slot in slots], ["S1"])
        query = self.collection.find.call_args[0][0]
        center_sphere = query["location"]["$geoWithin"]["$centerSphere"]
        self.assertEqual(center_sphere[0], [11.0, 44.0])
        self.assertAlmostEqual(center_sphere[1], 5 / 6371)

    def test_find_by_occupier(self):
        self.collection.find.return_value.limit.return_value = [
            slot_document(occupied=True, stop_end=T0, occupier_id="U1")
        ]
        slot = self.repository.find_by_occupier("U1")
        self.assertEqual(slot.occupier_id, "U1")
        self.collection.find.assert_called_once_with({"occupierId": "U1"})

    def test_find_by_occupier_none(self):
        self.collection.find.return_value.limit.return_value = []
        self.assertIsNone(self.repository.find_by_occupier("U1"))

    def test_find_by_occupier_ambiguous(self):
        self.collection.find.return_value.limit.return_value = [
            slot_document("S1", True, T0, "U1"),
            slot_document("S2", True, T0 + timedelta(hours=1), "U1"),
        ]
        with self.assertRaises(AmbiguousOccupierError) as context:
            self.repository.find_by_occupier("U1")
        self.assertEqual(context.exception.slot_ids, ["S1", "S2"])

    def test_driver_errors_become_unavailable(self):
        self.collection.find_one.side_effect = ServerSelectionTimeoutError("no servers")
        with self.assertRaises(RepositoryUnavailableError):
            self.repository.get("S1")

        self.collection.update_one.side_effect = OperationFailure("not primary")
        with self.assertRaises(RepositoryUnavailableError):
            self.repository.conditional_update(SlotFilter("S1"), SlotMutation.free())

    def test_add_inserts_document(self):
        slot = ParkingSlot(GeoPoint(44.0, 11.0), id="S1")
        self.assertIs(self.repository.add(slot), slot)
        self.collection.insert_one.assert_called_once_with(slot_document())

    def test_ensure_indexes(self):
        self.repository.ensure_indexes()
        self.assertEqual(self.collection.create_index.call_count, 2)


# ============================================================================
# USER DIRECTORY
# ============================================================================

class TestPasswordHashing(unittest.TestCase):

    def test_verify(self):
        encoded = hash_password("secret123", iterations=1000)
        self.assertTrue(encoded.startswith("pbkdf2_sha256$1000$"))
        self.assertTrue(verify_password("secret123", encoded))
        self.assertFalse(verify_password("secret124", encoded))

    def test_salted(self):
        self.assertNotEqual(hash_password("secret123", iterations=1000), hash_password("secret123", iterations=1000))

    def test_malformed_hash(self):
        self.assertFalse(verify_password("secret123", "plain-text"))
        self.assertFalse(verify_password("secret123", "md5$1$salt$abc"))


class TestMongoUserDirectory(unittest.TestCase):

    def setUp(self):
        self.collection = Mock()
        self.directory = MongoUserDirectory(self.collection)

    def test_lookup_excludes_password(self):
        self.collection.find_one.return_value = {"email": "anna@example.com", "name": "Anna", "surname": "Rossi"}
        user = self.directory.lookup_user("anna@example.com")

        self.assertEqual(user.name, "Anna")
        self.assertEqual(user.surname, "Rossi")
        self.collection.find_one.assert_called_once_with({"email": "anna@example.com"}, projection={"password": 0})

    def test_lookup_unknown(self):
        self.collection.find_one.return_value = None
        self.assertIsNone(self.directory.lookup_user("nobody@example.com"))

    def test_check_password(self):
        self.collection.find_one.return_value = {"password": hash_password("secret123", iterations=1000)}
        self.assertTrue(self.directory.check_password("anna@example.com", "secret123"))
        self.assertFalse(self.directory.check_password("anna@example.com", "wrong"))

    def test_set_password_stores_hash(self):
        self.collection.update_one.return_value = Mock(matched_count=1)
        self.assertTrue(self.directory.set_password("anna@example.com", "new-secret"))

        query, update = self.collection.update_one.call_args[0]
        self.assertEqual(query, {"email": "anna@example.com"})
        self.assertTrue(verify_password("new-secret", update["$set"]["password"]))

    def test_set_password_unknown_user(self):
        self.collection.update_one.return_value = Mock(matched_count=0)
        self.assertFalse(self.directory.set_password("nobody@example.com", "new-secret"))

    def test_driver_errors_become_unavailable(self):
        self.collection.find_one.side_effect = ServerSelectionTimeoutError("no servers")
        with self.assertRaises(RepositoryUnavailableError):
            self.directory.lookup_user("anna@example.com")



# ============================================================================
# DUPLICATES AND CORRUPT DOCUMENTS
# ============================================================================

class TestSlotRepositoryFaults(unittest.TestCase):

    def setUp(self):
        self.collection = Mock()
        self.repository = MongoParkingSlotRepository(self.collection)

    def test_duplicate_id_on_insert(self):
        self.collection.insert_one.side_effect = DuplicateKeyError("E11000 duplicate key error")
        with self.assertRaises(DuplicateSlotError) as context:
            self.repository.add(ParkingSlot(GeoPoint(44.0, 11.0), id="S1"))
        self.assertEqual(context.exception.slot_id, "S1")

    def test_duplicate_id_in_memory(self):
        repository = InMemoryParkingSlotRepository()
        repository.add(ParkingSlot(GeoPoint(44.0, 11.0), id="S1"))
        with self.assertRaises(DuplicateSlotError):
            repository.add(ParkingSlot(GeoPoint(45.0, 11.0), id="S1"))

    def test_get_corrupt_document(self):
        self.collection.find_one.return_value = slot_document(occupied=True, stop_end=T0, occupier_id="")
        with self.assertRaises(CorruptSlotDocumentError) as context:
            self.repository.get("S1")
        self.assertEqual(context.exception.document_id, "S1")

    def test_get_document_without_location(self):
        document = slot_document()
        document["location"] = "44.0,11.0"
        self.collection.find_one.return_value = document
        with self.assertRaises(CorruptSlotDocumentError):
            self.repository.get("S1")

    def test_find_all_skips_corrupt_documents(self):
        self.collection.find.return_value = [
            slot_document("S1", occupied=True),
            slot_document("S2"),
            slot_document("S3", lat=95.0),
        ]
        self.assertEqual([slot.id for slot in self.repository.find_all()], ["S2"])

    def test_radius_search_skips_corrupt_documents(self):
        self.collection.find.return_value = [slot_document("S1", occupier_id="U1"), slot_document("S2")]
        slots = self.repository.find_within_radius(Center.of(44.0, 11.0, 5))
        self.assertEqual([slot.id for slot in slots], ["S2"])


if __name__ == '__main__':
    unittest.main()
