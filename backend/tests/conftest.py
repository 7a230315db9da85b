"""
Pytest configuration and shared fixtures.
"""

import pytest

from fakes import FakeItemStore


@pytest.fixture
def store():
    return FakeItemStore()


@pytest.fixture
def seeded_store():
    """Store holding one event, one task and one private event."""
    return FakeItemStore([
        {
            "id": "1",
            "title": "Product Meeting",
            "type": "event",
            "startTime": "2025-04-22T10:00:00",
            "dueDate": "2025-04-22T11:30:00",
        },
        {
            "id": "2",
            "title": "Write report",
            "type": "TASK",
            "status": "in_progress",
            "startTime": "2025-04-23T14:00:00",
            "dueDate": "2025-04-23T15:00:00",
        },
        {
            "id": "3",
            "title": "Board review",
            "type": "EVENT",
            "private": True,
            "startTime": "2025-04-24T09:00:00",
            "dueDate": "2025-04-24T10:00:00",
        },
    ])
