"""In-memory stand-ins for MongoDB and the remote services."""

import copy
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, List

from bson import ObjectId
from pymongo.errors import DuplicateKeyError, OperationFailure

from drivemigrate.core.exceptions import FileLookupError, SearchIndexError
from drivemigrate.core.models import FileRecord, SearchFile


@dataclass
class FakeUpdateResult:
    """The parts of pymongo's UpdateResult the migrations read."""

    matched_count: int
    modified_count: int


def _index_name(keys: List[tuple]) -> str:
    return "_".join(f"{field}_{direction}" for field, direction in keys)


def _matches(document: dict, query: dict) -> bool:
    """Evaluate the subset of MongoDB query operators the migrations use."""
    for key, condition in query.items():
        present = key in document
        value = document.get(key)

        if isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition):
            for op, arg in condition.items():
                if op == "$exists":
                    if present != bool(arg):
                        return False
                elif op == "$eq":
                    if not present or value != arg:
                        return False
                elif op == "$ne":
                    if present and value == arg:
                        return False
                elif op == "$in":
                    if not present or value not in arg:
                        return False
                else:
                    raise NotImplementedError(f"Query operator {op} is not supported")
        elif not present or value != condition:
            return False
    return True


def _apply_update(document: dict, update: dict) -> bool:
    """Apply $set/$unset in place; return whether the document changed."""
    before = copy.deepcopy(document)
    for op, fields in update.items():
        if op == "$set":
            document.update(copy.deepcopy(fields))
        elif op == "$unset":
            for field in fields:
                document.pop(field, None)
        else:
            raise NotImplementedError(f"Update operator {op} is not supported")
    return document != before


class InMemoryCursor:
    """Async cursor over a snapshot of documents."""

    def __init__(self, documents: List[dict], error: Exception | None = None):
        self._documents = documents
        self._position = 0
        self._error = error
        self.closed = False

    def __aiter__(self):
        return self

    async def __anext__(self) -> dict:
        if self._error is not None:
            raise self._error
        if self.closed or self._position >= len(self._documents):
            raise StopAsyncIteration
        document = self._documents[self._position]
        self._position += 1
        return document

    async def to_list(self, length: int | None = None) -> List[dict]:
        return [doc async for doc in self]

    async def close(self) -> None:
        self.closed = True


class InMemoryCollection:
    """In-memory MongoDB collection for testing without a server.

    Implements the async pymongo collection operations the migrations use,
    plus ``fail()`` to make a given operation raise.

    Example:
        >>> files = InMemoryCollection("files")
        >>> await files.insert_many([{"name": "a"}, {"name": "b", "float": True}])
        >>> result = await files.update_many(
        ...     {"float": {"$exists": False}}, {"$set": {"float": False}}
        ... )
        >>> result.modified_count
        1
    """

    def __init__(self, name: str):
        """Initialize the in-memory collection."""
        self.name = name
        self._documents: List[dict] = []
        self._indexes: Dict[str, dict] = {"_id_": {"key": [("_id", 1)], "unique": True}}
        self._failures: Dict[str, Exception] = {}
        self.index_name_override: str | None = None
        self.cursors: List[InMemoryCursor] = []

    def fail(self, operation: str, error: Exception) -> None:
        """Make every later call of ``operation`` raise ``error``."""
        self._failures[operation] = error

    def _check_failure(self, operation: str) -> None:
        if operation in self._failures:
            raise self._failures[operation]

    async def insert_one(self, document: dict) -> Any:
        self._check_failure("insert_one")
        document = copy.deepcopy(document)
        document.setdefault("_id", ObjectId())
        if any(d["_id"] == document["_id"] for d in self._documents):
            raise DuplicateKeyError(f"duplicate key: {document['_id']}")
        self._documents.append(document)
        return document["_id"]

    async def insert_many(self, documents: List[dict]) -> List[Any]:
        return [await self.insert_one(document) for document in documents]

    def find(self, filter: dict | None = None) -> InMemoryCursor:
        snapshot = [
            copy.deepcopy(d) for d in self._documents if _matches(d, filter or {})
        ]
        cursor = InMemoryCursor(snapshot, self._failures.get("find"))
        self.cursors.append(cursor)
        return cursor

    async def find_one(self, filter: dict | None = None) -> dict | None:
        for document in self._documents:
            if _matches(document, filter or {}):
                return copy.deepcopy(document)
        return None

    async def update_many(self, filter: dict, update: dict) -> FakeUpdateResult:
        self._check_failure("update_many")
        matched = modified = 0
        for document in self._documents:
            if _matches(document, filter):
                matched += 1
                if _apply_update(document, update):
                    modified += 1
        return FakeUpdateResult(matched, modified)

    async def find_one_and_update(self, filter: dict, update: dict) -> dict | None:
        """Update the first match and return it as it was before the update."""
        self._check_failure("find_one_and_update")
        for document in self._documents:
            if _matches(document, filter):
                before = copy.deepcopy(document)
                _apply_update(document, update)
                return before
        return None

    async def delete_one(self, filter: dict) -> int:
        for i, document in enumerate(self._documents):
            if _matches(document, filter):
                del self._documents[i]
                return 1
        return 0

    async def create_index(self, keys, **kwargs) -> str:
        self._check_failure("create_index")
        if isinstance(keys, str):
            keys = [(keys, 1)]
        keys = list(keys)
        name = kwargs.get("name") or self.index_name_override or _index_name(keys)
        self._indexes[name] = {"key": keys, "unique": bool(kwargs.get("unique", False))}
        return name

    async def drop_index(self, index_or_name: str) -> None:
        self._check_failure("drop_index")
        if index_or_name not in self._indexes:
            raise OperationFailure(f"index not found with name [{index_or_name}]", code=27)
        del self._indexes[index_or_name]

    def seed_index(self, name: str, fields: List[str], unique: bool = False) -> None:
        """Install an index without going through create_index."""
        self._indexes[name] = {"key": [(field, 1) for field in fields], "unique": unique}

    def seed_documents(self, documents: List[dict]) -> None:
        """Store documents as-is, for tests that run outside an event loop."""
        self._documents.extend(copy.deepcopy(documents))

    async def index_information(self) -> Dict[str, dict]:
        return copy.deepcopy(self._indexes)

    def documents(self) -> List[dict]:
        """Get every stored document (for testing assertions)."""
        return copy.deepcopy(self._documents)

    def clear(self) -> None:
        """Clear all stored data."""
        self._documents.clear()
        self._indexes = {"_id_": {"key": [("_id", 1)], "unique": True}}
        self._failures.clear()
        self.cursors.clear()


class InMemoryDatabase:
    """In-memory MongoDB database; collections are created on first access."""

    def __init__(self, name: str = "test"):
        self.name = name
        self._collections: Dict[str, InMemoryCollection] = {}

    def __getitem__(self, name: str) -> InMemoryCollection:
        return self.get_collection(name)

    def get_collection(self, name: str) -> InMemoryCollection:
        if name not in self._collections:
            self._collections[name] = InMemoryCollection(name)
        return self._collections[name]

    def clear(self) -> None:
        for collection in self._collections.values():
            collection.clear()


class FakeFileService:
    """File-Service stand-in backed by a dict of file records."""

    def __init__(self):
        self.files: Dict[str, FileRecord] = {}
        self.unavailable: set[str] = set()
        self.calls: List[str] = []

    def add_file(self, file_id: str, owner_id: str, **fields) -> FileRecord:
        record = FileRecord(id=file_id, ownerID=owner_id, **fields)
        self.files[file_id] = record
        return record

    async def get_file_by_id(self, file_id: str) -> FileRecord:
        self.calls.append(file_id)
        if file_id in self.unavailable:
            raise FileLookupError(file_id, status=503)
        if file_id not in self.files:
            raise FileLookupError(file_id, status=404)
        return self.files[file_id]


class FakeSearchService:
    """Search-Service stand-in that records every created file.

    ``indexed`` keeps the latest entry per id, the way a deduplicating
    Search-Service would.
    """

    def __init__(self):
        self.created: List[SearchFile] = []
        self.indexed: Dict[str, SearchFile] = {}
        self.rejected_ids: set[str] = set()

    async def create_file(self, file: SearchFile) -> None:
        if file.id in self.rejected_ids:
            raise SearchIndexError(file.id, status=500)
        self.created.append(file)
        self.indexed[file.id] = file


@contextmanager
def mock_mongo_database(name: str = "test"):
    """Context manager providing an in-memory database.

    Yields:
        InMemoryDatabase instance
    """
    db = InMemoryDatabase(name)
    try:
        yield db
    finally:
        db.clear()
