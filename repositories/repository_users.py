from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Iterator, List

from bson import ObjectId
from bson.errors import InvalidId
from motor.motor_asyncio import AsyncIOMotorCollection
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, PyMongoError

from exceptions.exceptions import ErrorEmailAlreadyExists, ErrorInvalidUserId, ErrorUserStore

Document = Dict[str, Any]


def now() -> datetime:
    return datetime.now(timezone.utc)


def parse_user_id(user_id: str) -> ObjectId:
    # ObjectId(None) would mint a fresh id
    if not isinstance(user_id, str):
        raise ErrorInvalidUserId(f"Invalid user ID format: {user_id!r}")
    try:
        return ObjectId(user_id)
    except (InvalidId, TypeError):
        raise ErrorInvalidUserId(f"Invalid user ID format: {user_id!r}")


class UserRepository(ABC):
    """
    Record store for users.

    Missing records come back as ``None``. Malformed identifiers raise
    ``ErrorInvalidUserId``, email collisions ``ErrorEmailAlreadyExists``
    and any other store failure ``ErrorUserStore``.
    """

    @abstractmethod
    async def find_all(self) -> List[Document]:
        ...

    @abstractmethod
    async def find_by_id(self, user_id: str) -> Document | None:
        ...

    @abstractmethod
    async def insert(self, fields: Document) -> Document:
        ...

    @abstractmethod
    async def update_by_id(self, user_id: str, changes: Document, unset: Iterable[str] = ()) -> Document | None:
        ...

    @abstractmethod
    async def delete_by_id(self, user_id: str) -> Document | None:
        ...


@contextmanager
def _store_errors() -> Iterator[None]:
    try:
        yield
    except DuplicateKeyError as e:
        raise ErrorEmailAlreadyExists(f"Email already exists ---> {e.details}")
    except PyMongoError as e:
        raise ErrorUserStore(str(e))


class MongoUserRepository(UserRepository):
    def __init__(self, collection: AsyncIOMotorCollection):
        self.collection = collection

    async def ensure_indexes(self):
        with _store_errors():
            await self.collection.create_index("email", unique=True)

    async def find_all(self) -> List[Document]:
        with _store_errors():
            return await self.collection.find().to_list(length=None)

    async def find_by_id(self, user_id: str) -> Document | None:
        object_id = parse_user_id(user_id)
        with _store_errors():
            return await self.collection.find_one({"_id": object_id})

    async def insert(self, fields: Document) -> Document:
        timestamp = now()
        document = {**fields, "createdAt": timestamp, "updatedAt": timestamp}
        with _store_errors():
            result = await self.collection.insert_one(document)
        document["_id"] = result.inserted_id
        return document

    async def update_by_id(self, user_id: str, changes: Document, unset: Iterable[str] = ()) -> Document | None:
        object_id = parse_user_id(user_id)
        update: Document = {"$set": {**changes, "updatedAt": now()}}
        unset = list(unset)
        if unset:
            update["$unset"] = {field: "" for field in unset}
        with _store_errors():
            return await self.collection.find_one_and_update(
                {"_id": object_id},
                update,
                return_document=ReturnDocument.AFTER,
            )

    async def delete_by_id(self, user_id: str) -> Document | None:
        object_id = parse_user_id(user_id)
        with _store_errors():
            return await self.collection.find_one_and_delete({"_id": object_id})
