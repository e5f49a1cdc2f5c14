from copy import deepcopy
from typing import Dict, Iterable, List

from bson import ObjectId

from exceptions.exceptions import ErrorEmailAlreadyExists
from repositories.repository_users import Document, UserRepository, now, parse_user_id


class InMemoryUserRepository(UserRepository):
    """Dict-backed store with the same uniqueness and timestamp rules as the Mongo one."""

    def __init__(self):
        self.documents: Dict[ObjectId, Document] = {}

    def _check_email_free(self, email, own_id: ObjectId | None = None):
        for object_id, document in self.documents.items():
            if object_id != own_id and document.get("email") == email:
                raise ErrorEmailAlreadyExists(f"Email already exists ---> {email}")

    async def find_all(self) -> List[Document]:
        return [deepcopy(document) for document in self.documents.values()]

    async def find_by_id(self, user_id: str) -> Document | None:
        document = self.documents.get(parse_user_id(user_id))
        return deepcopy(document) if document is not None else None

    async def insert(self, fields: Document) -> Document:
        self._check_email_free(fields.get("email"))
        timestamp = now()
        object_id = ObjectId()
        self.documents[object_id] = {**fields, "_id": object_id, "createdAt": timestamp, "updatedAt": timestamp}
        return deepcopy(self.documents[object_id])

    async def update_by_id(self, user_id: str, changes: Document, unset: Iterable[str] = ()) -> Document | None:
        object_id = parse_user_id(user_id)
        document = self.documents.get(object_id)
        if document is None:
            return None
        if "email" in changes:
            self._check_email_free(changes["email"], own_id=object_id)
        document.update(changes)
        for field in unset:
            document.pop(field, None)
        document["updatedAt"] = now()
        return deepcopy(document)

    async def delete_by_id(self, user_id: str) -> Document | None:
        return self.documents.pop(parse_user_id(user_id), None)
