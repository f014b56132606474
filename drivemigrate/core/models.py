"""Document models for the File-Service, Permission-Service and Search-Service."""

from datetime import datetime, timezone
from enum import IntEnum
from typing import Any

from bson import ObjectId
from pydantic import BaseModel, ConfigDict, Field, model_validator

FILES_COLLECTION = "files"
PERMISSIONS_COLLECTION = "permissions"


class Role(IntEnum):
    """Permission roles as the Permission-Service numbers them today."""

    NONE = 0
    WRITE = 1
    READ = 2


# Values stored before the roles were renumbered
LEGACY_READ_ROLE = 3
LEGACY_WRITE_ROLE = 2


def to_epoch_seconds(value: datetime | None) -> int:
    """Convert a stored timestamp to epoch seconds.

    MongoDB hands back naive datetimes in UTC; a missing timestamp maps to 0.
    """
    if value is None:
        return 0
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp())


def id_to_str(value: Any) -> str:
    """Render an ObjectId (or an already-string id) as its hex string."""
    if isinstance(value, ObjectId):
        return str(value)
    return "" if value is None else str(value)


class _StoredDocument(BaseModel):
    model_config = ConfigDict(
        populate_by_name=True,
        arbitrary_types_allowed=True,
        extra="ignore",
    )

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # A stored null decodes to the field's zero value, same as a missing field
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class FileDocument(_StoredDocument):
    """A file as stored in the File-Service ``files`` collection."""

    id: ObjectId | str = Field(alias="_id")
    name: str = ""
    parent: ObjectId | str | None = None
    owner_id: str = Field("", alias="ownerID")
    size: int = 0
    # Absent on documents written before the float flag existed
    is_float: bool = Field(False, alias="float")
    bucket: str = ""
    key: str = ""
    type: str = ""
    description: str = ""
    created_at: datetime | None = Field(None, alias="createdAt")
    updated_at: datetime | None = Field(None, alias="updatedAt")


class PermissionDocument(_StoredDocument):
    """A permission as stored in the Permission-Service ``permissions`` collection."""

    id: ObjectId | str = Field(alias="_id")
    file_id: str = Field("", alias="fileID")
    user_id: str = Field("", alias="userID")
    role: int = Role.NONE
    creator: str | None = None


class FileRecord(BaseModel):
    """A file as returned by the File-Service lookup."""

    model_config = ConfigDict(populate_by_name=True, extra="allow")

    id: str = ""
    owner_id: str = Field(alias="ownerID")


class SearchFile(BaseModel):
    """Denormalized file projection pushed to the Search-Service.

    ``parent`` drives the polymorphic ``location`` of the payload: a file
    either has a parent or is a root, never both.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: str
    key: str = ""
    bucket: str = ""
    name: str = ""
    type: str = ""
    description: str = ""
    owner_id: str = Field("", alias="ownerID")
    size: int = 0
    created_at: int = Field(0, alias="createdAt")
    updated_at: int = Field(0, alias="updatedAt")
    parent: str | None = None
    children: list[str] = Field(default_factory=list)

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @property
    def location(self) -> dict:
        if self.parent is None:
            return {"root": True}
        return {"parent": self.parent}

    @classmethod
    def from_document(cls, document: FileDocument) -> "SearchFile":
        """Build the search projection of a stored file."""
        return cls(
            id=id_to_str(document.id),
            key=document.key,
            bucket=document.bucket,
            name=document.name,
            type=document.type,
            description=document.description,
            owner_id=document.owner_id,
            size=document.size,
            created_at=to_epoch_seconds(document.created_at),
            updated_at=to_epoch_seconds(document.updated_at),
            parent=id_to_str(document.parent) if document.parent is not None else None,
        )

    def to_payload(self) -> dict:
        """Serialize to the JSON body the Search-Service expects."""
        payload = self.model_dump(by_alias=True, exclude={"parent"})
        payload["location"] = self.location
        return payload
