from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    email: str
    age: Optional[int] = None
    city: Optional[str] = None
    created_at: datetime = Field(alias="createdAt")
    updated_at: datetime = Field(alias="updatedAt")

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "User":
        """Build a user from a stored document, whose identifier lives under ``_id``."""
        data = {key: value for key, value in document.items() if key != "_id"}
        return cls(id=str(document["_id"]), **data)

    def to_response(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")
