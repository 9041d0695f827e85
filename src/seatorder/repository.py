"""JSON document storage for seatorder entities."""

import fcntl
import json
import logging
import os
import tempfile
from contextlib import contextmanager
from typing import Any, Callable, Generic, Iterator, Protocol, TypeVar

from .config import Settings
from .errors import EntityExistsError, EntityNotFoundError

SCHEMA_VERSION = 1

logger = logging.getLogger("seatorder.repository")


class Document(Protocol):
    """What a repository needs from an entity."""

    def to_dict(self) -> dict[str, Any]: ...


T = TypeVar("T", bound=Document)


class JsonRepository(Generic[T]):
    """
    Stores one collection of entities as a single JSON file.

    Layout: <data_dir>/<prefix><collection>.json
        {"schema_version": 1, "documents": {"<key>": {...}, ...}}

    Every read-modify-write runs under an exclusive lock on
    <data_dir>/.<prefix><collection>.lock, so concurrent writers to the
    same collection are serialized.
    """

    def __init__(
        self,
        collection: str,
        factory: Callable[[dict[str, Any]], T],
        settings: Settings,
        key: Callable[[T], str] | None = None,
    ):
        """
        Initialize JsonRepository.

        Args:
            collection: Base collection name (environment prefix is added).
            factory: Builds an entity from its stored dict (usually Model.from_dict).
            settings: Supplies data_dir and the collection prefix.
            key: Returns the document key for an entity (defaults to entity.id).
        """
        self.collection = collection
        self.name = settings.collection_name(collection)
        self.config_dir = settings.data_dir
        self.config_path = self.config_dir / f"{self.name}.json"
        self._factory = factory
        self._key = key or (lambda entity: entity.id)  # type: ignore[attr-defined]

    def _ensure_dir(self) -> None:
        self.config_dir.mkdir(parents=True, exist_ok=True)

    @contextmanager
    def _lock(self) -> Iterator[None]:
        """Acquire exclusive lock on the collection file for read-modify-write operations."""
        self._ensure_dir()
        lock_path = self.config_dir / f".{self.name}.lock"
        with open(lock_path, "w") as lock_file:
            fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_UN)

    def _load_data(self) -> dict[str, Any]:
        if not self.config_path.exists():
            return {"schema_version": SCHEMA_VERSION, "documents": {}}

        with open(self.config_path, "r", encoding="utf-8") as f:
            return json.load(f)

    def _save_data(self, data: dict[str, Any]) -> None:
        """Save collection data to disk atomically."""
        self._ensure_dir()

        fd, temp_path = tempfile.mkstemp(
            dir=self.config_dir, prefix=f".{self.name}_", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
                f.write("\n")
            os.replace(temp_path, self.config_path)
        except Exception:
            try:
                os.unlink(temp_path)
            except OSError:
                pass
            raise

    def create(self, entity: T) -> T:
        """
        Raises:
            EntityExistsError: If the key is already stored.
        """
        key = self._key(entity)
        with self._lock():
            data = self._load_data()
            documents = data.setdefault("documents", {})
            if key in documents:
                raise EntityExistsError(self.collection, key)
            documents[key] = entity.to_dict()
            self._save_data(data)
        logger.debug("Created %s/%s", self.name, key)
        return entity

    def read(self) -> list[T]:
        """Return every entity in the collection."""
        data = self._load_data()
        return [self._factory(doc) for doc in data.get("documents", {}).values()]

    def find_by_id(self, entity_id: str) -> T:
        """
        Raises:
            EntityNotFoundError: If no document has this key.
        """
        data = self._load_data()
        doc = data.get("documents", {}).get(entity_id)
        if doc is None:
            raise EntityNotFoundError(self.collection, entity_id)
        return self._factory(doc)

    def find_by_field(self, field: str, value: Any) -> list[T]:
        """Return entities whose stored `field` equals `value`."""
        data = self._load_data()
        return [
            self._factory(doc)
            for doc in data.get("documents", {}).values()
            if doc.get(field) == value
        ]

    def update_by_id(self, entity_id: str, entity: T) -> T:
        """
        Replace the stored document.

        Raises:
            EntityNotFoundError: If no document has this key.
        """
        with self._lock():
            data = self._load_data()
            documents = data.setdefault("documents", {})
            if entity_id not in documents:
                raise EntityNotFoundError(self.collection, entity_id)
            documents[entity_id] = entity.to_dict()
            self._save_data(data)
        logger.debug("Updated %s/%s", self.name, entity_id)
        return entity

    def modify_by_id(self, entity_id: str, mutate: Callable[[T], None]) -> T:
        """
        Load, mutate and save one entity while holding the collection lock.

        If mutate raises, nothing is written and the exception propagates.

        Raises:
            EntityNotFoundError: If no document has this key.
        """
        with self._lock():
            data = self._load_data()
            documents = data.setdefault("documents", {})
            doc = documents.get(entity_id)
            if doc is None:
                raise EntityNotFoundError(self.collection, entity_id)
            entity = self._factory(doc)
            mutate(entity)
            documents[entity_id] = entity.to_dict()
            self._save_data(data)
        logger.debug("Modified %s/%s", self.name, entity_id)
        return entity

    def delete_by_id(self, entity_id: str) -> T:
        """
        Remove a document and return the removed entity.

        Raises:
            EntityNotFoundError: If no document has this key.
        """
        with self._lock():
            data = self._load_data()
            documents = data.setdefault("documents", {})
            doc = documents.pop(entity_id, None)
            if doc is None:
                raise EntityNotFoundError(self.collection, entity_id)
            self._save_data(data)
        logger.debug("Deleted %s/%s", self.name, entity_id)
        return self._factory(doc)

    def count(self) -> int:
        return len(self._load_data().get("documents", {}))

    def exists(self, entity_id: str) -> bool:
        return entity_id in self._load_data().get("documents", {})
