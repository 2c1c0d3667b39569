"""
MedMinder Test Suite
====================

This package contains all tests for the MedMinder dose tracking backend.

Test Structure:
- test_api/: API endpoint tests for FastAPI routes
- test_services/: Ledger, safety gate, PRN, analytics, store and facade tests
- test_actions/: Reminder engine, adaptive timing, behavior patterns and ticker tests
- test_tools/: Frequency classifier and schedule model tests
- conftest.py: Shared pytest fixtures

Running Tests:
    # Run all tests
    pytest

    # Run specific test module
    pytest tests/test_api/

    # Run with verbose output
    pytest -v

    # Run only marked tests
    pytest -m "unit"
    pytest -m "api"
"""

# Test configuration
TEST_DATABASE_URL = "sqlite:///:memory:"

# Common test data
SAMPLE_MEDICATIONS = [
    {"name": "Metformin", "dosage": "500mg", "frequency": "twice daily"},
    {"name": "Lisinopril", "dosage": "10mg", "frequency": "once daily"},
    {"name": "Ibuprofen", "dosage": "200mg", "frequency": "as needed"},
]

__all__ = [
    "TEST_DATABASE_URL",
    "SAMPLE_MEDICATIONS",
]
