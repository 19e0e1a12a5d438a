"""Pytest configuration and shared fixtures for estimate intake tests."""

import asyncio
import os
import sys
import pytest
from unittest.mock import AsyncMock, MagicMock
from typing import Dict, Any


# ============================================================================
# Ensure local imports work (config/, models/, services/, flow/, utils/)
# ============================================================================
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


# ============================================================================
# Firebase Mocks
# ============================================================================

@pytest.fixture
def mock_firestore_client():
    """Mock Firestore client."""
    client = MagicMock()

    # Set up chain: client.collection().document()
    collection_mock = MagicMock()
    document_mock = MagicMock()
    client.collection.return_value = collection_mock
    collection_mock.document.return_value = document_mock

    document_mock.id = "lead-generated-1"
    document_mock.get = AsyncMock(return_value=MagicMock(
        exists=True,
        id="lead-generated-1",
        to_dict=lambda: {"status": "pending"}
    ))
    document_mock.set = AsyncMock()
    document_mock.update = AsyncMock()

    return client


@pytest.fixture
def lead_service(mock_firestore_client):
    """LeadService with mocked client."""
    from services.lead_service import LeadService

    return LeadService(db=mock_firestore_client)


# ============================================================================
# Gateway Mocks
# ============================================================================

@pytest.fixture
def mock_lead_service():
    """Mock lead gateway that hands out sequential IDs."""
    from models.estimate_flow import Lead, LeadStatusSnapshot

    mock = MagicMock()
    counter = {"n": 0}

    async def insert_lead(lead):
        counter["n"] += 1
        return Lead(id=f"lead-{counter['n']}", **lead.to_record())

    mock.insert_lead = AsyncMock(side_effect=insert_lead)
    mock.update_lead = AsyncMock()
    mock.get_lead_status = AsyncMock(return_value=LeadStatusSnapshot(
        status="complete",
        estimate_data={"total": 12500, "currency": "USD"}
    ))
    mock.list_categories = AsyncMock(return_value=[])
    return mock


@pytest.fixture
def mock_job_client():
    """Mock estimate job gateway."""
    mock = MagicMock()
    mock.invoke = AsyncMock(return_value=None)
    return mock


@pytest.fixture
def notifier():
    """In-memory notification sink."""
    from services.notifications import RecordingNotificationSink

    return RecordingNotificationSink()


@pytest.fixture
def fast_sleep():
    """Sleep replacement that only yields to the event loop."""
    async def _sleep(_seconds):
        await asyncio.sleep(0)

    return _sleep


# ============================================================================
# Sample Data Fixtures
# ============================================================================

@pytest.fixture
def sample_categories():
    """Category catalog with one roofing category."""
    from models.estimate_flow import Category

    return [
        Category(
            id="cat-roofing",
            name="roofing",
            description="Roof repair and replacement",
            keywords=["roof", "leak", "shingle"],
            questions=[
                {"id": "Q1", "question": "What kind of roof do you have?", "type": "single_choice",
                 "options": ["Asphalt shingle", "Metal", "Tile"]},
                {"id": "Q2", "question": "Where is the leak?", "type": "multiple_choice",
                 "options": ["Attic", "Ceiling", "Chimney"]},
            ],
        ),
        Category(
            id="cat-painting",
            name="painting",
            keywords=["paint", "wall color"],
            questions=[
                {"id": "Q1", "question": "Interior or exterior?", "type": "single_choice",
                 "options": ["Interior", "Exterior"]},
            ],
        ),
    ]


@pytest.fixture
def sample_answers() -> Dict[str, Any]:
    """Answers for the roofing question set."""
    return {
        "roofing": {
            "Q1": {
                "question": "What kind of roof do you have?",
                "type": "single_choice",
                "answers": ["Asphalt shingle"],
                "options": ["Asphalt shingle", "Metal", "Tile"],
            },
            "Q2": {
                "question": "Where is the leak?",
                "type": "multiple_choice",
                "answers": ["Attic", "Chimney"],
                "options": ["Attic", "Ceiling", "Chimney"],
            },
        }
    }


@pytest.fixture
def sample_contact():
    return {
        "fullName": "Jordan Rivera",
        "email": "jordan@example.com",
        "phone": "555-0100",
        "address": "12 Elm St",
    }


@pytest.fixture
def make_controller(mock_lead_service, mock_job_client, notifier, fast_sleep):
    """Factory for controllers wired to mocked gateways."""
    from flow.controller import EstimateFlowController
    from models.estimate_flow import EstimateConfig

    def _make(contractor_id="contractor-1", **kwargs):
        params = {
            "lead_service": mock_lead_service,
            "job_client": mock_job_client,
            "notifier": notifier,
            "poll_interval": 3.0,
            "poll_timeout": 120.0,
            "sleep": fast_sleep,
        }
        params.update(kwargs)
        return EstimateFlowController(EstimateConfig(contractor_id=contractor_id), **params)

    return _make
