"""
Local keyed storage for positions and settings.
Persists named collections to a single JSON file with a versioned structure.
"""

import asyncio
import copy
import json
import os
from typing import Dict, List, Any, Optional, Callable
from loguru import logger


POSITIONS = "Positions"
SETTINGS = "Settings"

SCHEMA_VERSION = 1

# Collection name -> structural definition
SCHEMA = {
    POSITIONS: {
        "key_path": "id",
        "auto_increment": True,
        "indexes": {"tickerSymbol": {"key_path": "tickerSymbol", "unique": False}},
    },
    SETTINGS: {
        "key_path": "key",
        "auto_increment": False,
        "indexes": {},
    },
}


class StorageError(Exception):
    """Exception raised when the local store cannot be opened, read or written."""

    def __init__(self, message: str, cause: Optional[BaseException] = None):
        self.message = message
        self.cause = cause
        super().__init__(self.message)


class LocalStore:
    """
    JSON-file backed store with keyed collections and secondary indexes.

    Every public operation is awaitable. File I/O runs in the default executor
    and writes are serialized through one lock per store.
    """

    def __init__(self, file_path: str = "profit_ladder_db.json"):
        """
        Initialize the local store.

        Args:
            file_path: Path to the JSON file holding all collections
        """
        self.file_path = file_path
        self._data: Optional[Dict[str, Any]] = None
        self._lock = asyncio.Lock()
        logger.debug(f"Initialized LocalStore with file: {file_path}")

    # ------------------------------------------------------------------ #
    # File handling
    # ------------------------------------------------------------------ #

    def _read_file(self) -> Dict[str, Any]:
        if not os.path.exists(self.file_path):
            return {"version": 0, "collections": {}}
        with open(self.file_path, "r") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.file_path} does not hold a store document")
        data.setdefault("version", 0)
        data.setdefault("collections", {})
        return data

    def _write_file(self, data: Dict[str, Any]) -> None:
        directory = os.path.dirname(os.path.abspath(self.file_path))
        os.makedirs(directory, exist_ok=True)
        tmp_path = f"{self.file_path}.tmp"
        with open(tmp_path, "w") as f:
            json.dump(data, f, indent=2)
        os.replace(tmp_path, self.file_path)

    @staticmethod
    def _migrate(data: Dict[str, Any]) -> bool:
        """Bring a document up to SCHEMA in place. Returns whether anything changed."""
        changed = data.get("version", 0) != SCHEMA_VERSION
        collections = data["collections"]

        for name, definition in SCHEMA.items():
            collection = collections.get(name)
            if collection is None:
                collection = {
                    "key_path": definition["key_path"],
                    "auto_increment": definition["auto_increment"],
                    "key_generator": 0,
                    "indexes": {},
                    "records": [],
                }
                collections[name] = collection
                changed = True
                logger.info(f"Created collection {name}")

            for index_name, index_definition in definition["indexes"].items():
                if index_name not in collection.setdefault("indexes", {}):
                    collection["indexes"][index_name] = dict(index_definition)
                    changed = True
                    logger.info(f"Created index {name}.{index_name}")

        data["version"] = SCHEMA_VERSION
        return changed

    async def _run(self, func: Callable[[], Any]) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func)

    async def open(self) -> None:
        """
        Open the store, creating or migrating its structure.

        Safe to call repeatedly; an already current file is left untouched.

        Raises:
            StorageError: If the file cannot be read or written
        """
        async with self._lock:
            try:
                data = await self._run(self._read_file)
                if self._migrate(data):
                    await self._run(lambda: self._write_file(data))
                    logger.info(f"Store {self.file_path} migrated to version {SCHEMA_VERSION}")
                self._data = data
            except (OSError, ValueError) as e:
                logger.error(f"Error opening store {self.file_path}: {e}")
                raise StorageError(f"Could not open store {self.file_path}", e) from e

    async def _ensure_open(self) -> None:
        if self._data is None:
            await self.open()

    def _collection(self, name: str) -> Dict[str, Any]:
        try:
            return self._data["collections"][name]
        except KeyError as e:
            raise StorageError(f"Unknown collection: {name}", e) from e

    # ------------------------------------------------------------------ #
    # Reads
    # ------------------------------------------------------------------ #

    async def get(self, collection: str, key: Any) -> Optional[Dict[str, Any]]:
        """
        Get one record by primary key.

        Args:
            collection: Collection name
            key: Primary key value

        Returns:
            A copy of the record or None if not found
        """
        await self._ensure_open()
        store = self._collection(collection)
        key_path = store["key_path"]
        for record in store["records"]:
            if record.get(key_path) == key:
                return copy.deepcopy(record)
        return None

    async def get_all(self, collection: str) -> List[Dict[str, Any]]:
        """Get copies of every record in a collection, in primary key order"""
        await self._ensure_open()
        return copy.deepcopy(self._collection(collection)["records"])

    async def get_all_by_index(self, collection: str, index_name: str, value: Any) -> List[Dict[str, Any]]:
        """
        Get every record whose indexed field equals a value.

        Args:
            collection: Collection name
            index_name: Name of a secondary index of the collection
            value: Value to match

        Returns:
            Matching records in primary key order
        """
        await self._ensure_open()
        store = self._collection(collection)
        key_path = self._index_key_path(store, collection, index_name)
        return [
            copy.deepcopy(record) for record in store["records"]
            if record.get(key_path) == value
        ]

    async def list_distinct_indexed_values(self, collection: str, index_name: str) -> List[Any]:
        """
        List the distinct values present in a secondary index, sorted.

        Args:
            collection: Collection name
            index_name: Name of a secondary index of the collection

        Returns:
            Sorted distinct values (records without the field are skipped)
        """
        await self._ensure_open()
        store = self._collection(collection)
        key_path = self._index_key_path(store, collection, index_name)
        values = {record[key_path] for record in store["records"] if record.get(key_path) is not None}
        return sorted(values, key=str)

    @staticmethod
    def _index_key_path(store: Dict[str, Any], collection: str, index_name: str) -> str:
        index = store.get("indexes", {}).get(index_name)
        if index is None:
            raise StorageError(f"Unknown index {collection}.{index_name}")
        return index["key_path"]

    # ------------------------------------------------------------------ #
    # Writes
    # ------------------------------------------------------------------ #

    async def _commit(self, mutate: Callable[[Dict[str, Any]], Any], description: str) -> Any:
        """Apply a mutation to a copy of the document and persist it."""
        await self._ensure_open()
        async with self._lock:
            data = copy.deepcopy(self._data)
            result = mutate(data)
            try:
                await self._run(lambda: self._write_file(data))
            except (OSError, TypeError, ValueError) as e:
                logger.error(f"Error writing store ({description}): {e}")
                raise StorageError(f"Could not write store ({description})", e) from e
            self._data = data
            return result

    async def put(self, collection: str, record: Dict[str, Any]) -> Any:
        """
        Insert or replace a record by primary key.

        In an auto-increment collection a record without a key gets the next
        generated key.

        Args:
            collection: Collection name
            record: Record to store

        Returns:
            The record's primary key

        Raises:
            StorageError: If the record has no key and none can be generated, or the write fails
        """
        def mutate(data: Dict[str, Any]) -> Any:
            store = data["collections"].get(collection)
            if store is None:
                raise StorageError(f"Unknown collection: {collection}")

            key_path = store["key_path"]
            new_record = copy.deepcopy(record)
            key = new_record.get(key_path)

            if key is None:
                if not store["auto_increment"]:
                    raise StorageError(f"Record for {collection} has no '{key_path}' value")
                store["key_generator"] = store.get("key_generator", 0) + 1
                key = store["key_generator"]
                new_record[key_path] = key
            elif store["auto_increment"] and isinstance(key, int) and not isinstance(key, bool):
                store["key_generator"] = max(store.get("key_generator", 0), key)

            records = store["records"]
            for i, existing in enumerate(records):
                if existing.get(key_path) == key:
                    records[i] = new_record
                    break
            else:
                records.append(new_record)
                records.sort(key=lambda r: (str(type(r.get(key_path))), r.get(key_path)))
            return key

        key = await self._commit(mutate, f"put {collection}")
        logger.debug(f"Stored {collection} record {key}")
        return key

    async def delete(self, collection: str, key: Any) -> None:
        """
        Delete a record by primary key. Deleting a missing key is a no-op.

        Args:
            collection: Collection name
            key: Primary key value
        """
        def mutate(data: Dict[str, Any]) -> None:
            store = data["collections"].get(collection)
            if store is None:
                raise StorageError(f"Unknown collection: {collection}")
            key_path = store["key_path"]
            store["records"] = [r for r in store["records"] if r.get(key_path) != key]

        await self._commit(mutate, f"delete {collection}")
        logger.debug(f"Deleted {collection} record {key}")

    # ------------------------------------------------------------------ #
    # Settings helpers
    # ------------------------------------------------------------------ #

    async def get_setting(self, key: str, default: Any = None) -> Any:
        """Get a setting value, or the default when the entry is missing or null"""
        record = await self.get(SETTINGS, key)
        if record is None or record.get("value") is None:
            return default
        return record["value"]

    async def put_setting(self, key: str, value: Any) -> None:
        """Create or overwrite one setting"""
        await self.put(SETTINGS, {"key": key, "value": value})
