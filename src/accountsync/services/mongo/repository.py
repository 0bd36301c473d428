"""Generic repository for document persistence.

Single repository class that works with any CoreModel document type.
No need for model-specific repository subclasses: document-specific
queries are free functions over a `Repository[T]` (see services.users).

Every operation is one independent document-store call; no transactions.

Usage:
    from accountsync.models.entities import User
    from accountsync.services.mongo import Repository

    repo = Repository(User, collection_name="users", db=mongo)
    user = await repo.create(User(clerk_id="user_123", email="a@x.com"))
    users = await repo.find({"status": "active"}, sort=[("created_at", -1)])
"""

import asyncio
import math
from enum import Enum
from typing import Any, Generic, Optional, Type, TypeVar

from loguru import logger
from pydantic import BaseModel
from pymongo import DESCENDING, ReturnDocument

from ...models.core import CoreModel
from .service import MongoService, get_mongo_service

T = TypeVar("T", bound=CoreModel)

SortSpec = list[tuple[str, int]]


class Page(BaseModel, Generic[T]):
    """One page of results plus the total match count."""

    data: list[T]
    total: int
    page: int
    total_pages: int


def _encode(value: Any) -> Any:
    """Prepare update values for the store (enums by value, models as dicts)."""
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, BaseModel):
        return value.model_dump()
    if isinstance(value, dict):
        return {k: _encode(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_encode(v) for v in value]
    return value


class Repository(Generic[T]):
    """Generic repository for any CoreModel document type."""

    def __init__(
        self,
        model_class: Type[T],
        collection_name: str | None = None,
        db: MongoService | None = None,
    ):
        """
        Initialize repository.

        Args:
            model_class: Document model class (e.g., User, ActivityLogEntry)
            collection_name: Optional collection name (defaults to lowercase model name + 's')
            db: Optional MongoService instance (process-wide service if None)
        """
        self.db = db or get_mongo_service()
        self.model_class = model_class
        self.collection_name = collection_name or f"{model_class.__name__.lower()}s"

    async def _collection(self):
        database = await self.db.connect()
        return database[self.collection_name]

    def _to_model(self, document: Optional[dict]) -> Optional[T]:
        if document is None:
            return None
        return self.model_class.model_validate(document)

    async def create(self, record: T) -> T:
        """
        Insert a new document.

        Raises:
            pymongo.errors.DuplicateKeyError: a unique index rejected the document
        """
        collection = await self._collection()
        await collection.insert_one(record.to_document())
        logger.debug(f"Created {self.model_class.__name__} {record.id}")
        return record

    async def find_by_id(self, record_id: str) -> T | None:
        collection = await self._collection()
        return self._to_model(await collection.find_one({"_id": record_id}))

    async def find_one(self, filters: dict[str, Any]) -> T | None:
        """
        Find the first document matching filters.

        Args:
            filters: Mongo filter document

        Returns:
            Model instance or None if not found
        """
        collection = await self._collection()
        return self._to_model(await collection.find_one(_encode(filters)))

    async def find(
        self,
        filters: dict[str, Any] | None = None,
        sort: SortSpec | None = None,
        skip: int = 0,
        limit: int | None = None,
    ) -> list[T]:
        """
        Find documents matching filters.

        Args:
            filters: Mongo filter document (all documents if None)
            sort: List of (field, direction) pairs
            skip: Number of documents to skip
            limit: Optional maximum number of documents

        Returns:
            List of model instances

        Example:
            users = await repo.find(
                {"clerk_id": {"$in": ["user_1", "user_2"]}},
                sort=[("created_at", -1)],
            )
        """
        collection = await self._collection()
        cursor = collection.find(_encode(filters or {}))
        if sort:
            cursor = cursor.sort(sort)
        if skip:
            cursor = cursor.skip(skip)
        if limit:
            cursor = cursor.limit(limit)
        documents = await cursor.to_list(length=limit)
        return [self.model_class.model_validate(doc) for doc in documents]

    async def find_with_pagination(
        self,
        filters: dict[str, Any] | None = None,
        page: int = 1,
        limit: int = 10,
        sort: SortSpec | None = None,
    ) -> Page[T]:
        """
        Find one page of documents with the total match count.

        The page query and the count query run concurrently.
        """
        page = max(page, 1)
        limit = max(limit, 1)
        sort = sort or [("created_at", DESCENDING)]

        data, total = await asyncio.gather(
            self.find(filters, sort=sort, skip=(page - 1) * limit, limit=limit),
            self.count(filters),
        )
        return Page[self.model_class](
            data=data,
            total=total,
            page=page,
            total_pages=math.ceil(total / limit),
        )

    async def update(self, record_id: str, data: dict[str, Any]) -> T | None:
        """Set fields on a document by id; returns the updated document."""
        return await self.update_one({"_id": record_id}, data)

    async def update_one(
        self, filters: dict[str, Any], data: dict[str, Any]
    ) -> T | None:
        """
        Atomically set fields on the first matching document.

        Returns:
            The updated document, or None if nothing matched
        """
        collection = await self._collection()
        document = await collection.find_one_and_update(
            _encode(filters),
            {"$set": _encode(data)},
            return_document=ReturnDocument.AFTER,
        )
        return self._to_model(document)

    async def delete(self, record_id: str) -> T | None:
        """Hard delete by id; returns the deleted document."""
        return await self.delete_one({"_id": record_id})

    async def delete_one(self, filters: dict[str, Any]) -> T | None:
        collection = await self._collection()
        return self._to_model(await collection.find_one_and_delete(_encode(filters)))

    async def delete_many(self, filters: dict[str, Any]) -> int:
        """Delete all matching documents; returns the deleted count."""
        collection = await self._collection()
        result = await collection.delete_many(_encode(filters))
        return result.deleted_count or 0

    async def count(self, filters: dict[str, Any] | None = None) -> int:
        collection = await self._collection()
        return await collection.count_documents(_encode(filters or {}))

    async def exists(self, filters: dict[str, Any]) -> bool:
        collection = await self._collection()
        document = await collection.find_one(_encode(filters), {"_id": 1})
        return document is not None
