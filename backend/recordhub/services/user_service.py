"""
RecordHub Backend - User Profile Service
=========================================

What:  Read-only profile lookup in the `users` collection.
How:   Credential fields are projected out in the query itself, so they are
       never loaded into the process, let alone returned.
"""

import logging
from typing import Any, Dict

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo.errors import PyMongoError

from recordhub.exceptions import DatabaseError, NotFoundError, ValidationError

logger = logging.getLogger(__name__)

COLLECTION = "users"

HIDDEN_FIELDS = ("password", "passwordHash", "password_hash", "resetToken", "reset_token")


class UserService:
    async def get_profile(self, db: AsyncIOMotorDatabase, user_id: str) -> Dict[str, Any]:
        """
        Raises:
            ValidationError: malformed ID
            NotFoundError: no such user
            DatabaseError: driver failure
        """
        if not ObjectId.is_valid(user_id):
            raise ValidationError(message=f"Invalid user ID '{user_id}'", field="id")

        projection = {name: 0 for name in HIDDEN_FIELDS}
        try:
            doc = await db[COLLECTION].find_one({"_id": ObjectId(user_id)}, projection)
        except PyMongoError as e:
            logger.error("User lookup failed: %s", str(e))
            raise DatabaseError(context={"operation": "get_profile", "error": str(e)}) from e

        if doc is None:
            raise NotFoundError(resource="user", resource_id=user_id)

        doc["id"] = str(doc.pop("_id"))
        return doc


user_service = UserService()
