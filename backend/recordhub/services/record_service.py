"""
RecordHub Backend - Record Service
===================================

What:  CRUD, CSV export and exact-value duplicate lookup over the `records`
       collection.
How:   Stateless; every call receives the motor database handle from the
       route. Driver errors are wrapped in DatabaseError so the client only
       ever sees the generic 500 body.

Document shape:
    {
        "_id": ObjectId,
        "dataset": "march-import" | null,
        "data": {"name": "...", "email": "...", ...},
        "created_at": datetime (UTC),
        "updated_at": datetime (UTC)
    }
"""

import csv
import io
import logging
import re
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional

from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import DESCENDING, ReturnDocument
from pymongo.errors import PyMongoError

from recordhub.exceptions import DatabaseError, NotFoundError, ValidationError
from recordhub.schemas.record import (
    DuplicateGroup,
    DuplicateReport,
    RecordCreate,
    RecordListResponse,
    RecordResponse,
    RecordUpdate,
)

logger = logging.getLogger(__name__)

COLLECTION = "records"

_FIELD_NAME = re.compile(r"^[A-Za-z0-9_]+$")


@contextmanager
def _db_errors(operation: str) -> Iterator[None]:
    try:
        yield
    except PyMongoError as e:
        logger.error("Record %s failed: %s", operation, str(e))
        raise DatabaseError(
            context={"operation": operation, "error": str(e)},
        ) from e


def _check_data_keys(data: Dict[str, Any]) -> None:
    for key in data:
        if not key or key.startswith("$") or "." in key:
            raise ValidationError(
                message=f"Invalid field name '{key}': must be non-empty and contain no '$' prefix or '.'",
                field="data",
            )


class RecordService:
    """Business logic for /api/records and /api/duplicates."""

    @staticmethod
    def parse_id(record_id: str) -> ObjectId:
        """
        Raises:
            ValidationError if record_id is not a 24-char hex ObjectId.
        """
        if not ObjectId.is_valid(record_id):
            raise ValidationError(message=f"Invalid record ID '{record_id}'", field="id")
        return ObjectId(record_id)

    @staticmethod
    def to_response(doc: Dict[str, Any]) -> RecordResponse:
        return RecordResponse(
            id=str(doc["_id"]),
            dataset=doc.get("dataset"),
            data=doc.get("data", {}),
            created_at=doc["created_at"],
            updated_at=doc.get("updated_at", doc["created_at"]),
        )

    async def list_records(
        self,
        db: AsyncIOMotorDatabase,
        limit: int = 50,
        skip: int = 0,
        dataset: Optional[str] = None,
    ) -> RecordListResponse:
        """Page of records, newest first, optionally filtered by dataset."""
        query: Dict[str, Any] = {"dataset": dataset} if dataset else {}
        collection = db[COLLECTION]

        with _db_errors("list"):
            cursor = collection.find(query).sort("created_at", DESCENDING).skip(skip).limit(limit)
            docs = await cursor.to_list(length=limit)
            total = await collection.count_documents(query)

        return RecordListResponse(
            records=[self.to_response(doc) for doc in docs],
            total_count=total,
            limit=limit,
            skip=skip,
            has_more=skip + len(docs) < total,
        )

    async def get_record(self, db: AsyncIOMotorDatabase, record_id: str) -> RecordResponse:
        """
        Raises:
            ValidationError: malformed ID
            NotFoundError: no such record
        """
        oid = self.parse_id(record_id)
        with _db_errors("get"):
            doc = await db[COLLECTION].find_one({"_id": oid})
        if doc is None:
            raise NotFoundError(resource="record", resource_id=record_id)
        return self.to_response(doc)

    async def create_record(self, db: AsyncIOMotorDatabase, payload: RecordCreate) -> RecordResponse:
        _check_data_keys(payload.data)
        now = datetime.now(timezone.utc)
        doc: Dict[str, Any] = {
            "dataset": payload.dataset,
            "data": payload.data,
            "created_at": now,
            "updated_at": now,
        }
        with _db_errors("create"):
            result = await db[COLLECTION].insert_one(doc)
        doc["_id"] = result.inserted_id
        logger.info("Record created: %s", result.inserted_id)
        return self.to_response(doc)

    async def update_record(
        self, db: AsyncIOMotorDatabase, record_id: str, payload: RecordUpdate
    ) -> RecordResponse:
        """
        Replace `data` and/or `dataset` on an existing record.

        Raises:
            ValidationError: malformed ID, bad field names, or empty update
            NotFoundError: no such record
        """
        oid = self.parse_id(record_id)
        changes = payload.model_dump(exclude_unset=True)
        if not changes:
            raise ValidationError(message="No fields to update")
        if "data" in changes:
            if changes["data"] is None:
                raise ValidationError(message="data cannot be null", field="data")
            _check_data_keys(changes["data"])
        changes["updated_at"] = datetime.now(timezone.utc)

        with _db_errors("update"):
            doc = await db[COLLECTION].find_one_and_update(
                {"_id": oid},
                {"$set": changes},
                return_document=ReturnDocument.AFTER,
            )
        if doc is None:
            raise NotFoundError(resource="record", resource_id=record_id)
        return self.to_response(doc)

    async def delete_record(self, db: AsyncIOMotorDatabase, record_id: str) -> None:
        oid = self.parse_id(record_id)
        with _db_errors("delete"):
            result = await db[COLLECTION].delete_one({"_id": oid})
        if result.deleted_count == 0:
            raise NotFoundError(resource="record", resource_id=record_id)
        logger.info("Record deleted: %s", record_id)

    async def export_csv(self, db: AsyncIOMotorDatabase, dataset: Optional[str] = None) -> str:
        """
        All matching records as CSV text.

        Columns: id, dataset, created_at, then every data key in the order
        it was first seen.
        """
        query: Dict[str, Any] = {"dataset": dataset} if dataset else {}
        with _db_errors("export"):
            docs = await db[COLLECTION].find(query).sort("created_at", DESCENDING).to_list(length=None)

        data_columns: List[str] = []
        for doc in docs:
            for key in doc.get("data", {}):
                if key not in data_columns:
                    data_columns.append(key)

        buffer = io.StringIO()
        writer = csv.writer(buffer)
        writer.writerow(["id", "dataset", "created_at", *data_columns])
        for doc in docs:
            data = doc.get("data", {})
            writer.writerow(
                [
                    str(doc["_id"]),
                    doc.get("dataset") or "",
                    doc["created_at"].isoformat(),
                    *(data.get(column, "") for column in data_columns),
                ]
            )
        return buffer.getvalue()

    async def find_duplicates(
        self,
        db: AsyncIOMotorDatabase,
        field: str,
        dataset: Optional[str] = None,
        limit: int = 100,
    ) -> DuplicateReport:
        """
        Group records whose `data.<field>` values are exactly equal.

        Only groups with more than one member are returned, largest first.

        Raises:
            ValidationError if field is not a plain [A-Za-z0-9_] name.
        """
        if not _FIELD_NAME.match(field):
            raise ValidationError(message=f"Invalid field name '{field}'", field="field")

        match: Dict[str, Any] = {f"data.{field}": {"$exists": True, "$nin": [None, ""]}}
        if dataset:
            match["dataset"] = dataset

        pipeline = [
            {"$match": match},
            {"$group": {"_id": f"$data.{field}", "ids": {"$push": "$_id"}, "count": {"$sum": 1}}},
            {"$match": {"count": {"$gt": 1}}},
            {"$sort": {"count": -1, "_id": 1}},
            {"$limit": limit},
        ]
        with _db_errors("duplicates"):
            rows = await db[COLLECTION].aggregate(pipeline).to_list(length=None)

        groups = [
            DuplicateGroup(
                value=str(row["_id"]) if isinstance(row["_id"], ObjectId) else row["_id"],
                count=row["count"],
                record_ids=[str(oid) for oid in row["ids"]],
            )
            for row in rows
        ]
        return DuplicateReport(field=field, dataset=dataset, groups=groups, total_groups=len(groups))


record_service = RecordService()
