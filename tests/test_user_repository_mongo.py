import unittest
from unittest.mock import AsyncMock, MagicMock

from bson import ObjectId
from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError, ServerSelectionTimeoutError

from exceptions.exceptions import ErrorEmailAlreadyExists, ErrorInvalidUserId, ErrorUserStore
from repositories.repository_users import MongoUserRepository


class TestBaseMongoUserRepository(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.collection = MagicMock()
        self.repository = MongoUserRepository(self.collection)
        self.user_id = ObjectId()
        self.document = {
            "_id": self.user_id,
            "name": "Иван",
            "email": "ivan@example.com",
        }


class TestMongoInsert(TestBaseMongoUserRepository):
    async def test_insert_sets_identifier_and_timestamps(self):
        self.collection.insert_one = AsyncMock(return_value=MagicMock(inserted_id=self.user_id))

        document = await self.repository.insert({"name": "Иван", "email": "ivan@example.com"})

        self.assertEqual(document["_id"], self.user_id)
        self.assertEqual(document["createdAt"], document["updatedAt"])
        self.collection.insert_one.assert_awaited_once()

    async def test_insert_duplicate_email(self):
        self.collection.insert_one = AsyncMock(
            side_effect=DuplicateKeyError("E11000 duplicate key error collection: users_db.users index: email_1")
        )

        with self.assertRaises(ErrorEmailAlreadyExists):
            await self.repository.insert({"name": "Иван", "email": "ivan@example.com"})

    async def test_insert_store_unavailable(self):
        self.collection.insert_one = AsyncMock(side_effect=ServerSelectionTimeoutError("no servers"))

        with self.assertRaises(ErrorUserStore):
            await self.repository.insert({"name": "Иван", "email": "ivan@example.com"})


class TestMongoRead(TestBaseMongoUserRepository):
    async def test_find_all(self):
        cursor = MagicMock()
        cursor.to_list = AsyncMock(return_value=[self.document])
        self.collection.find.return_value = cursor

        documents = await self.repository.find_all()

        self.assertEqual(documents, [self.document])
        cursor.to_list.assert_awaited_once_with(length=None)

    async def test_find_by_id_converts_identifier(self):
        self.collection.find_one = AsyncMock(return_value=self.document)

        document = await self.repository.find_by_id(str(self.user_id))

        self.assertEqual(document, self.document)
        self.collection.find_one.assert_awaited_once_with({"_id": self.user_id})

    async def test_find_by_invalid_id(self):
        self.collection.find_one = AsyncMock()

        with self.assertRaises(ErrorInvalidUserId):
            await self.repository.find_by_id("123")

        self.collection.find_one.assert_not_awaited()


class TestMongoUpdate(TestBaseMongoUserRepository):
    async def test_update_sets_and_unsets(self):
        self.collection.find_one_and_update = AsyncMock(return_value=self.document)

        document = await self.repository.update_by_id(str(self.user_id), {"city": "Paris"}, ["age"])

        self.assertEqual(document, self.document)
        args, kwargs = self.collection.find_one_and_update.await_args
        query, update = args
        self.assertEqual(query, {"_id": self.user_id})
        self.assertEqual(update["$set"]["city"], "Paris")
        self.assertIn("updatedAt", update["$set"])
        self.assertEqual(update["$unset"], {"age": ""})
        self.assertEqual(kwargs["return_document"], ReturnDocument.AFTER)

    async def test_update_without_unset(self):
        self.collection.find_one_and_update = AsyncMock(return_value=None)

        document = await self.repository.update_by_id(str(self.user_id), {"city": "Paris"})

        self.assertIsNone(document)
        _, update = self.collection.find_one_and_update.await_args.args
        self.assertNotIn("$unset", update)

    async def test_update_duplicate_email(self):
        self.collection.find_one_and_update = AsyncMock(side_effect=DuplicateKeyError("E11000"))

        with self.assertRaises(ErrorEmailAlreadyExists):
            await self.repository.update_by_id(str(self.user_id), {"email": "taken@example.com"})


class TestMongoDelete(TestBaseMongoUserRepository):
    async def test_delete(self):
        self.collection.find_one_and_delete = AsyncMock(return_value=self.document)

        document = await self.repository.delete_by_id(str(self.user_id))

        self.assertEqual(document, self.document)
        self.collection.find_one_and_delete.assert_awaited_once_with({"_id": self.user_id})

    async def test_delete_invalid_id(self):
        with self.assertRaises(ErrorInvalidUserId):
            await self.repository.delete_by_id("zzzzzzzzzzzzzzzzzzzzzzzz")


class TestMongoIndexes(TestBaseMongoUserRepository):
    async def test_email_index_is_unique(self):
        self.collection.create_index = AsyncMock()

        await self.repository.ensure_indexes()

        self.collection.create_index.assert_awaited_once_with("email", unique=True)


if __name__ == "__main__":
    unittest.main()
