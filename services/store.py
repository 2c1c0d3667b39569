"""
Store Service
Key/value persistence for tracker state, in memory or in a SQL table
"""

import copy
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import settings
from database import SessionLocal, get_db_context, init_db
from exceptions import TransientDependencyError
from models import StoreEntry


logger = logging.getLogger(__name__)


class MedicationStore(ABC):
    """
    Durable store of JSON-compatible values under string keys

    Values are opaque to the store. Implementations raise
    TransientDependencyError when the backend is unavailable.
    """

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        ...

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        ...


class InMemoryStore(MedicationStore):
    """Process-local store, used by default and in tests"""

    def __init__(self, initial: Optional[Dict[str, Any]] = None):
        self._data: Dict[str, Any] = copy.deepcopy(initial or {})

    def get(self, key: str) -> Optional[Any]:
        return copy.deepcopy(self._data.get(key))

    def set(self, key: str, value: Any) -> None:
        self._data[key] = copy.deepcopy(value)


class SQLStore(MedicationStore):
    """Store backed by the store_entries table"""

    def __init__(self, session_factory: Optional[Callable[[], Session]] = None):
        self._session_factory = session_factory or SessionLocal

    def get(self, key: str) -> Optional[Any]:
        try:
            with get_db_context(self._session_factory) as db:
                entry = db.query(StoreEntry).filter(StoreEntry.key == key).first()
                return entry.value if entry else None
        except SQLAlchemyError as e:
            logger.error(f"Store read failed for '{key}': {e}")
            raise TransientDependencyError(f"Store read failed for '{key}'") from e

    def set(self, key: str, value: Any) -> None:
        try:
            with get_db_context(self._session_factory) as db:
                entry = db.query(StoreEntry).filter(StoreEntry.key == key).first()
                if entry is None:
                    db.add(StoreEntry(key=key, value=value))
                else:
                    entry.value = value
        except SQLAlchemyError as e:
            logger.error(f"Store write failed for '{key}': {e}")
            raise TransientDependencyError(f"Store write failed for '{key}'") from e


def build_store(backend: Optional[str] = None) -> MedicationStore:
    """Create the store selected by STORE_BACKEND"""
    backend = (backend or settings.STORE_BACKEND).lower()
    if backend == "sql":
        init_db()
        logger.info("Using SQL store")
        return SQLStore()
    if backend != "memory":
        logger.warning(f"Unknown STORE_BACKEND '{backend}', using memory")
    return InMemoryStore()
