# File: smart_parking/infrastructure/users.py
"""
User directory backed by MongoDB

User document (collection `users`):

    {"email": str, "name": str, "surname": str, "password": "pbkdf2_sha256$<iterations>$<salt>$<hash>"}

The password field is excluded from every profile lookup.
"""

import hashlib
import hmac
import logging
import secrets
from typing import Optional

from pymongo.collection import Collection
from pymongo.errors import PyMongoError

from ..domain.errors import RepositoryUnavailableError
from ..domain.models import UserInfo

PASSWORD_ALGORITHM = "pbkdf2_sha256"
PASSWORD_ITERATIONS = 260000


def hash_password(password: str, salt: Optional[str] = None, iterations: int = PASSWORD_ITERATIONS) -> str:
    salt = salt or secrets.token_hex(16)
    digest = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt.encode("utf-8"), iterations)
    return f"{PASSWORD_ALGORITHM}${iterations}${salt}${digest.hex()}"


def verify_password(password: str, encoded: str) -> bool:
    try:
        algorithm, iterations, salt, _ = encoded.split("$", 3)
    except (AttributeError, ValueError):
        return False
    if algorithm != PASSWORD_ALGORITHM:
        return False
    return hmac.compare_digest(hash_password(password, salt, int(iterations)), encoded)


class MongoUserDirectory:
    """UserDirectory implementation over the users collection"""

    def __init__(self, collection: Collection):
        self.collection = collection
        self._logger = logging.getLogger(self.__class__.__name__)

    def lookup_user(self, email: str) -> Optional[UserInfo]:
        try:
            document = self.collection.find_one({"email": email}, projection={"password": 0})
        except PyMongoError as e:
            self._logger.error(f"Database error looking up user {email}: {e}")
            raise RepositoryUnavailableError(str(e)) from e

        if document is None:
            return None
        return UserInfo(
            email=document["email"],
            name=document.get("name", ""),
            surname=document.get("surname"),
        )

    def check_password(self, email: str, password: str) -> bool:
        try:
            document = self.collection.find_one({"email": email}, projection={"password": 1})
        except PyMongoError as e:
            self._logger.error(f"Database error reading credentials of {email}: {e}")
            raise RepositoryUnavailableError(str(e)) from e

        if document is None or not document.get("password"):
            return False
        return verify_password(password, document["password"])

    def set_password(self, email: str, new_password: str) -> bool:
        try:
            result = self.collection.update_one(
                {"email": email},
                {"$set": {"password": hash_password(new_password)}}
            )
        except PyMongoError as e:
            self._logger.error(f"Database error updating password of {email}: {e}")
            raise RepositoryUnavailableError(str(e)) from e
        return result.matched_count > 0
