"""
Tests for the Store Service
Tests the in-memory and SQL key/value stores
"""

import pytest
from unittest.mock import MagicMock
from sqlalchemy.exc import OperationalError

from exceptions import TransientDependencyError
from services.store import InMemoryStore, SQLStore, build_store


class TestInMemoryStore:
    """Tests for the process-local store"""

    @pytest.mark.unit
    def test_missing_key(self):
        assert InMemoryStore().get("medications") is None

    @pytest.mark.unit
    def test_values_are_copied(self):
        """Test callers cannot mutate stored values through references"""
        store = InMemoryStore()
        value = [{"id": "m1"}]
        store.set("medications", value)
        value[0]["id"] = "changed"

        fetched = store.get("medications")
        fetched.append({"id": "m2"})

        assert store.get("medications") == [{"id": "m1"}]


class TestSQLStore:
    """Tests for the store_entries backed store"""

    @pytest.mark.database
    def test_set_and_get(self, session_factory):
        store = SQLStore(session_factory)

        store.set("medications", [{"id": "m1", "times": ["08:00"]}])

        assert store.get("medications") == [{"id": "m1", "times": ["08:00"]}]

    @pytest.mark.database
    def test_overwrite(self, session_factory):
        """Test a second set replaces the stored value"""
        store = SQLStore(session_factory)
        store.set("check_ins", {"m1": {"checkin": "2024-01-01"}})
        store.set("check_ins", {})

        assert store.get("check_ins") == {}

    @pytest.mark.database
    def test_missing_key(self, session_factory):
        assert SQLStore(session_factory).get("nothing") is None

    @pytest.mark.unit
    def test_backend_failure(self):
        """Test database errors surface as transient failures"""
        session = MagicMock()
        session.query.side_effect = OperationalError("SELECT", {}, Exception("locked"))
        store = SQLStore(lambda: session)

        with pytest.raises(TransientDependencyError):
            store.get("medications")
        session.rollback.assert_called_once()


class TestBuildStore:
    """Tests for backend selection"""

    @pytest.mark.unit
    def test_memory_backend(self):
        assert isinstance(build_store("memory"), InMemoryStore)

    @pytest.mark.unit
    def test_unknown_backend_falls_back(self):
        assert isinstance(build_store("redis"), InMemoryStore)
