# farmwise/core/store.py

import json
import os
import tempfile
from typing import Callable, Dict, List, Optional, TypeVar

from pydantic import ValidationError
from pymongo import MongoClient
from pymongo.errors import PyMongoError

from .config import settings
from .errors import SchemaViolation, StoreCorruption, StoreWriteFailure
from .models import HistoryItem, Preferences, Reminder
from .schema import history_item_from_dict

T = TypeVar("T")

HISTORY_KEY = "farmwise_history"
REMINDERS_KEY = "farmwise_reminders"
PREFERENCES_KEY = "farmwise_preferences"


class InMemoryBackend:
    """Key-value backend living in a dict. Used by tests and throwaway sessions."""
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.values: Dict[str, str] = dict(initial or {})
        self.writes: List[str] = []

    def read(self, key: str) -> Optional[str]:
        return self.values.get(key)

    def write(self, key: str, text: str):
        self.values[key] = text
        self.writes.append(key)


class JsonFileBackend:
    """Keeps each key in its own <key>.json file so collections never rewrite each other."""
    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.json")

    def read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        with open(path, "r", encoding="utf-8") as f:
            return f.read()

    def write(self, key: str, text: str):
        fd, tmp_path = tempfile.mkstemp(dir=self.directory, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(text)
            os.replace(tmp_path, self._path(key))
        finally:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)


class MongoBackend:
    """Stores every key as a {key, value} document in MongoDB."""
    def __init__(self, collection=None, db_name: Optional[str] = None):
        if collection is None:
            client = MongoClient(settings.final_mongo_uri)
            collection = client[db_name or settings.mongo_db_name]["farmwise_state"]
            collection.create_index("key", unique=True)
            print("---DURABLE STORE: Connected to MongoDB---")
        self.collection = collection

    def read(self, key: str) -> Optional[str]:
        doc = self.collection.find_one({"key": key})
        return doc["value"] if doc else None

    def write(self, key: str, text: str):
        self.collection.replace_one({"key": key}, {"key": key, "value": text}, upsert=True)


def create_backend():
    """Builds the backend selected by settings.store_backend."""
    if settings.store_backend == "mongo":
        return MongoBackend()
    return JsonFileBackend(settings.data_dir)


class DurableStore:
    """
    Holds the three persisted collections: activity log, reminders and preferences.

    Each collection is read once when the store is created and written back in full on every
    change. A missing or unreadable collection starts empty and is never a fatal error.
    """

    def __init__(self, backend=None):
        self.backend = backend if backend is not None else create_backend()
        self.history: List[HistoryItem] = self._load(HISTORY_KEY, list, _parse_history)
        self.reminders: List[Reminder] = self._load(REMINDERS_KEY, list, _parse_reminders)
        self.preferences: Preferences = self._load(PREFERENCES_KEY, Preferences, Preferences.model_validate)

    def _load(self, key: str, empty: Callable[[], T], parse: Callable[[object], T]) -> T:
        try:
            raw = self.backend.read(key)
        except (OSError, ValueError, PyMongoError) as e:
            # UnicodeDecodeError is a ValueError
            corruption = StoreCorruption(f"'{key}' could not be read: {e}")
        else:
            if raw is None:
                return empty()
            try:
                return parse(json.loads(raw))
            except (ValueError, TypeError, ValidationError, SchemaViolation) as e:
                corruption = StoreCorruption(f"'{key}' could not be parsed: {e}")
        print(f"---DURABLE STORE: {type(corruption).__name__}: {corruption}; starting with an empty collection---")
        return empty()

    def _write(self, key: str, payload):
        try:
            self.backend.write(key, json.dumps(payload))
        except (OSError, PyMongoError) as e:
            print(f"---DURABLE STORE: {type(e).__name__} while writing '{key}': {e}---")
            raise StoreWriteFailure(f"'{key}' could not be written: {e}") from e

    def write_history(self, items: List[HistoryItem]):
        self._write(HISTORY_KEY, [item.model_dump(mode="json", by_alias=True) for item in items])
        self.history = list(items)

    def write_reminders(self, items: List[Reminder]):
        self._write(REMINDERS_KEY, [item.model_dump(mode="json", by_alias=True) for item in items])
        self.reminders = list(items)

    def write_preferences(self, preferences: Preferences):
        self._write(PREFERENCES_KEY, preferences.model_dump(mode="json", by_alias=True))
        self.preferences = preferences


def _parse_history(data) -> List[HistoryItem]:
    if not isinstance(data, list):
        raise TypeError("activity log must be a JSON array")
    if not all(isinstance(item, dict) for item in data):
        raise TypeError("activity log entries must be JSON objects")
    return [history_item_from_dict(item) for item in data]


def _parse_reminders(data) -> List[Reminder]:
    if not isinstance(data, list):
        raise TypeError("task list must be a JSON array")
    return [Reminder.model_validate(item) for item in data]
