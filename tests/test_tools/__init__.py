"""
Test Tools Package
Tests for the tools module (frequency classifier, schedule model)
"""

__all__ = [
    "test_frequency",
    "test_schedule_model",
]
