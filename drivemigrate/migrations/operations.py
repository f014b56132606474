"""Built-in collection operations for drivemigrate."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from pydantic import BaseModel, ValidationError
from pymongo import ASCENDING
from pymongo.errors import PyMongoError

from drivemigrate.core.exceptions import IndexMigrationError, StoreOperationError


@dataclass
class CollectionOperation(ABC):
    """Base class for operations applied to a whole collection."""

    @abstractmethod
    async def apply(self, collection) -> int:
        """Apply the operation.

        Args:
            collection: The collection to change

        Returns:
            Number of documents changed

        Raises:
            StoreOperationError: If the store rejects the operation
        """
        pass


@dataclass
class BackfillField(CollectionOperation):
    """Set a field only on documents where it does not exist.

    Documents already holding any value for the field are excluded by the
    filter, so applying the operation again changes nothing.

    Example:
        BackfillField("float", False)
    """

    field_name: str
    default: Any = None

    @property
    def filter(self) -> dict:
        return {self.field_name: {"$exists": False}}

    @property
    def update(self) -> dict:
        return {"$set": {self.field_name: self.default}}

    async def apply(self, collection) -> int:
        try:
            result = await collection.update_many(self.filter, self.update)
        except PyMongoError as e:
            raise StoreOperationError(
                f"failed setting {self.field_name}: {self.default!r} "
                f"in {collection.name}: {e}",
                operation="update_many",
                collection=collection.name,
                original_error=e,
            ) from e
        return result.modified_count


@dataclass
class RenumberValue(CollectionOperation):
    """Rewrite every occurrence of one exact field value to another.

    Example:
        RenumberValue("role", old=3, new=2)
    """

    field_name: str
    old: Any
    new: Any

    @property
    def filter(self) -> dict:
        return {self.field_name: {"$eq": self.old}}

    @property
    def update(self) -> dict:
        return {"$set": {self.field_name: self.new}}

    async def apply(self, collection) -> int:
        try:
            result = await collection.update_many(self.filter, self.update)
        except PyMongoError as e:
            raise StoreOperationError(
                f"failed updating {self.field_name} from {self.old} to {self.new} "
                f"in {collection.name}: {e}",
                operation="update_many",
                collection=collection.name,
                original_error=e,
            ) from e
        return result.modified_count


@dataclass
class ReplaceIndex(CollectionOperation):
    """Drop an index by name and recreate it over the same keys.

    The new index must come back under exactly the same name; a different
    name means the driver generated something else and is reported as an
    error. Once the drop succeeded there is no way back, so this operation
    is run-once.

    Example:
        ReplaceIndex("name_1_parent_1_ownerID_1", ["name", "parent", "ownerID"])
    """

    index_name: str
    fields: list[str]
    unique: bool = False
    background: bool = True

    @property
    def keys(self) -> list[tuple[str, int]]:
        return [(name, ASCENDING) for name in self.fields]

    async def apply(self, collection) -> int:
        try:
            await collection.drop_index(self.index_name)
        except PyMongoError as e:
            raise IndexMigrationError(
                f"failed dropping old index {self.index_name} in {collection.name}: {e}",
                index_name=self.index_name,
                collection=collection.name,
                original_error=e,
            ) from e

        try:
            created = await collection.create_index(
                self.keys, unique=self.unique, background=self.background
            )
        except PyMongoError as e:
            raise IndexMigrationError(
                f"failed creating index {self.index_name} in {collection.name}: {e}",
                index_name=self.index_name,
                collection=collection.name,
                original_error=e,
                dropped=True,
            ) from e

        if created != self.index_name:
            raise IndexMigrationError(
                f"unexpected created index name: expected: {self.index_name} "
                f"but got: {created}",
                index_name=self.index_name,
                collection=collection.name,
                dropped=True,
            )

        return 1


async def load_snapshot(collection, model: type[BaseModel]) -> list:
    """Read every document of a collection into memory.

    Args:
        collection: The collection to read
        model: The pydantic model each document is decoded into

    Returns:
        Decoded documents in the cursor's natural order

    Raises:
        StoreOperationError: If the read or decoding a document fails
    """
    documents = []
    cursor = collection.find({})
    try:
        async for raw in cursor:
            try:
                documents.append(model.model_validate(raw))
            except ValidationError as e:
                raise StoreOperationError(
                    f"failed decoding document {raw.get('_id')} from {collection.name}: {e}",
                    operation="find",
                    collection=collection.name,
                    original_error=e,
                ) from e
    except PyMongoError as e:
        raise StoreOperationError(
            f"{collection.name} cursor error: {e}",
            operation="find",
            collection=collection.name,
            original_error=e,
        ) from e
    finally:
        await cursor.close()
    return documents
