"""
Pytest Configuration and Shared Fixtures
========================================

This module provides shared fixtures for all MedMinder tests.
Fixtures include a frozen clock, an in-memory store, the service facade,
sample medications and the API test client.
"""

import asyncio
import os
import sys
from datetime import datetime
from typing import Any, Callable, Dict, Generator
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from database import Base
from tools.clock import FrozenClock
from tools.notification_service import NotificationService
from tools.schedule_model import Medication
from services.store import InMemoryStore
from services.medication_service import MedicationService
from api.deps import services
from app import app


# ==================== CORE FIXTURES ====================

@pytest.fixture
def clock() -> FrozenClock:
    """Friday 2024-01-05 09:00"""
    return FrozenClock(datetime(2024, 1, 5, 9, 0))


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def notifier() -> NotificationService:
    """Notification service without a handler; dispatches land in history"""
    return NotificationService()


@pytest.fixture
def medication_service(store, clock, notifier) -> MedicationService:
    """Facade wired to the in-memory store and frozen clock, no inference"""
    return MedicationService(store=store, clock=clock, notifier=notifier, llm=None)


@pytest.fixture
def add_medication(medication_service) -> Callable[..., Medication]:
    """Add a medication through the facade from synchronous tests"""

    def _add(**kwargs) -> Medication:
        kwargs.setdefault("name", "Metformin")
        kwargs.setdefault("dosage", "500mg")
        return asyncio.run(medication_service.add_medication(**kwargs))

    return _add


# ==================== SAMPLE DATA FIXTURES ====================

@pytest.fixture
def sample_medication_data() -> Dict[str, Any]:
    """Sample data for creating a twice-daily medication"""
    return {
        "name": "Metformin",
        "dosage": "500mg",
        "frequency": "twice daily",
        "times": ["08:00", "20:00"],
        "food": "with-food",
        "quantity": 30,
        "refill_threshold": 5,
    }


@pytest.fixture
def twice_daily(add_medication, sample_medication_data) -> Medication:
    return add_medication(**sample_medication_data)


@pytest.fixture
def prn_medication(add_medication) -> Medication:
    return add_medication(name="Ibuprofen", dosage="200mg", frequency="as needed", quantity=20)


# ==================== DATABASE FIXTURES ====================

@pytest.fixture(scope="function")
def test_engine():
    """Create a test database engine with in-memory SQLite"""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False
    )
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture(scope="function")
def session_factory(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)


# ==================== API FIXTURES ====================

@pytest.fixture(scope="function")
def client(medication_service: MedicationService) -> Generator[TestClient, None, None]:
    """FastAPI test client bound to the test facade (lifespan not started)"""
    app.dependency_overrides[services.get_medication_service] = lambda: medication_service

    yield TestClient(app)

    app.dependency_overrides.clear()


# ==================== MOCK FIXTURES ====================

@pytest.fixture
def mock_llm_service():
    """Mock inference service"""
    mock = MagicMock()
    mock.infer_schedule_times = AsyncMock(return_value=["08:00", "20:00"])
    return mock


# ==================== PYTEST CONFIGURATION ====================

def pytest_configure(config):
    """Configure custom pytest markers"""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "api: mark test as an API test")
    config.addinivalue_line("markers", "database: mark test as requiring database")
