"""
MongoDB client management.

One MongoClient per process: pymongo pools connections internally and is
thread-safe, so the API shares a single client and closes it on shutdown.

Mock mode swaps in an in-memory client implementing the handful of
collection operations HouseholdRepository uses. Results are pymongo's own
result classes, and duplicate keys raise pymongo's DuplicateKeyError, so the
code above this layer cannot tell the two apart.
"""

import copy
import logging
from dataclasses import dataclass
from typing import Any, Iterator, Optional, Union

from bson import ObjectId
from pymongo import MongoClient
from pymongo.errors import DuplicateKeyError
from pymongo.results import DeleteResult, InsertOneResult, UpdateResult

logger = logging.getLogger(__name__)


@dataclass
class MongoConfig:
    """Configuration for the MongoDB connection."""
    uri: str = "mongodb://localhost:27017/census-surveyor"
    database: str = "census-surveyor"


def create_mongo_client(
    config: Optional[MongoConfig] = None,
    mock_mode: bool = False,
) -> Union[MongoClient, "MockMongoClient"]:
    """
    Create a MongoDB client.

    The real client connects lazily; server errors surface on the first
    operation. Timeouts are pymongo's defaults.

    Args:
        config: Connection configuration (required if not mock_mode)
        mock_mode: If True, return an in-memory client
    """
    if mock_mode:
        return MockMongoClient()

    if config is None:
        raise ValueError("config is required when not in mock mode")

    client = MongoClient(config.uri, tz_aware=True)

    logger.info(
        "Initialized MongoDB client",
        extra={"database": config.database},
    )

    return client


# ---------------------------------------------------------------------------
# Mock Client for Local Development
# ---------------------------------------------------------------------------

def _get_path(document: dict, path: str) -> Any:
    value: Any = document
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _matches(document: dict, query: Optional[dict]) -> bool:
    """Equality matching on (dotted) field paths; all the repository needs."""
    if not query:
        return True
    return all(_get_path(document, path) == value for path, value in query.items())


class MockCursor:
    """Iterable result of MockCollection.find, with pymongo-style sort."""

    def __init__(self, documents: list[dict]) -> None:
        self._documents = documents

    def sort(self, key: str, direction: int = 1) -> "MockCursor":
        self._documents.sort(
            key=lambda doc: _get_path(doc, key),
            reverse=direction < 0,
        )
        return self

    def __iter__(self) -> Iterator[dict]:
        return iter(self._documents)


class MockCollection:
    """
    In-memory stand-in for a pymongo Collection.

    Documents are deep-copied on the way in and out, like a round-trip
    through the server would.
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._documents: dict[ObjectId, dict] = {}
        self._unique_fields: set[str] = set()

    def create_index(self, keys: Union[str, list], unique: bool = False, **kwargs) -> str:
        field_name = keys if isinstance(keys, str) else keys[0][0]
        if unique:
            self._unique_fields.add(field_name)
        return f"{field_name}_1"

    def insert_one(self, document: dict) -> InsertOneResult:
        document = copy.deepcopy(document)
        document.setdefault("_id", ObjectId())
        self._check_unique(document)
        self._documents[document["_id"]] = document
        return InsertOneResult(document["_id"], True)

    def find_one(self, query: Optional[dict] = None) -> Optional[dict]:
        for document in self._documents.values():
            if _matches(document, query):
                return copy.deepcopy(document)
        return None

    def find(self, query: Optional[dict] = None) -> MockCursor:
        return MockCursor([
            copy.deepcopy(document)
            for document in self._documents.values()
            if _matches(document, query)
        ])

    def replace_one(self, query: dict, replacement: dict) -> UpdateResult:
        for object_id, document in self._documents.items():
            if _matches(document, query):
                replacement = copy.deepcopy(replacement)
                replacement["_id"] = object_id
                self._check_unique(replacement)
                self._documents[object_id] = replacement
                return UpdateResult({"n": 1, "nModified": 1, "updatedExisting": True}, True)
        return UpdateResult({"n": 0, "nModified": 0, "updatedExisting": False}, True)

    def delete_one(self, query: dict) -> DeleteResult:
        for object_id, document in list(self._documents.items()):
            if _matches(document, query):
                del self._documents[object_id]
                return DeleteResult({"n": 1}, True)
        return DeleteResult({"n": 0}, True)

    def delete_many(self, query: Optional[dict] = None) -> DeleteResult:
        doomed = [
            object_id
            for object_id, document in self._documents.items()
            if _matches(document, query)
        ]
        for object_id in doomed:
            del self._documents[object_id]
        return DeleteResult({"n": len(doomed)}, True)

    def _check_unique(self, document: dict) -> None:
        for field_name in self._unique_fields:
            value = _get_path(document, field_name)
            for other_id, other in self._documents.items():
                if other_id != document["_id"] and _get_path(other, field_name) == value:
                    raise DuplicateKeyError(
                        f"E11000 duplicate key error collection: {self.name} "
                        f"index: {field_name}_1 dup key: {{ {field_name}: {value!r} }}",
                        code=11000,
                    )


class MockDatabase:
    def __init__(self, name: str) -> None:
        self.name = name
        self._collections: dict[str, MockCollection] = {}

    def __getitem__(self, name: str) -> MockCollection:
        if name not in self._collections:
            self._collections[name] = MockCollection(name)
        return self._collections[name]

    def command(self, command: str) -> dict:
        """Only `ping` is supported."""
        if command != "ping":
            raise NotImplementedError(f"Mock database does not support {command!r}")
        return {"ok": 1.0}


class MockMongoClient:
    """
    In-memory MongoDB client for local development and tests.

    Not suitable for production: no persistence, no query operators.
    """

    def __init__(self) -> None:
        self._databases: dict[str, MockDatabase] = {}
        logger.info("Initialized mock MongoDB client (in-memory)")

    def __getitem__(self, name: str) -> MockDatabase:
        if name not in self._databases:
            self._databases[name] = MockDatabase(name)
        return self._databases[name]

    def close(self) -> None:
        logger.debug("Mock MongoDB client close")
