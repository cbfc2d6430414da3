# File: smart_parking/domain/errors.py
"""Exceptions raised by collaborators of the occupancy core"""


class SmartParkingError(Exception):
    """Base exception for the smart parking system"""
    pass


class RepositoryError(SmartParkingError):
    """Base exception for persistence errors"""
    pass


class RepositoryUnavailableError(RepositoryError):
    """The store could not be reached or rejected the operation"""
    pass


class DuplicateSlotError(RepositoryError):
    """A slot with the same id is already stored"""

    def __init__(self, slot_id: str):
        self.slot_id = slot_id
        super().__init__(f"Parking slot {slot_id} already exists")


class CorruptSlotDocumentError(RepositoryError):
    """A stored slot document cannot be decoded into a valid ParkingSlot"""

    def __init__(self, document_id, reason: str):
        self.document_id = str(document_id)
        super().__init__(f"Stored parking slot {document_id} is corrupt: {reason}")


class AmbiguousOccupierError(RepositoryError):
    """More than one slot is bound to the same occupier"""

    def __init__(self, user_id: str, slot_ids):
        self.user_id = user_id
        self.slot_ids = list(slot_ids)
        super().__init__(f"User {user_id} occupies more than one slot: {', '.join(self.slot_ids)}")


class MailDeliveryError(SmartParkingError):
    """The mail transport failed to deliver a message"""
    pass
