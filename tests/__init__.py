"""
MedReminder Test Suite
======================

Test Structure:
- test_tools/: time arithmetic, recurrence derivation, push transport, reminder timing
- test_services/: scheduling, cancellation, settings and dose status against SQLite
- test_jobs/: delivery sweep and job scheduler
- test_api/: FastAPI routes
- conftest.py: Shared pytest fixtures

Running Tests:
    # Run all tests
    pytest

    # Run specific test module
    pytest tests/test_services/

    # Run only marked tests
    pytest -m "api"
"""

# Test configuration
TEST_DATABASE_URL = "sqlite:///:memory:"
VALID_PUSH_TOKEN = "ExponentPushToken[xxxxxxxxxxxxxxxxxxxxxx]"

__all__ = [
    "TEST_DATABASE_URL",
    "VALID_PUSH_TOKEN",
]
