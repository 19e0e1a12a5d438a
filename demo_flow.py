#!/usr/bin/env python3
"""Demo script to walk the estimate intake wizard locally.

This script:
1. Seeds an in-memory category catalog
2. Drives one session through photo, description, questions and contact
3. Simulates the estimate job writing its result back onto the lead
4. Prints the final state as JSON

Usage:
    python demo_flow.py
    python demo_flow.py --skip
    python demo_flow.py --fail
"""

import argparse
import asyncio
import json
from typing import Any, Dict, List, Optional

import structlog

from config.errors import GatewayError, ErrorCode
from config.settings import settings
from flow.controller import create_flow_controller
from models.estimate_flow import Category, Lead, LeadInsert, LeadStatusSnapshot
from services.notifications import RecordingNotificationSink
from utils.flow_logger import configure_logging

logger = structlog.get_logger()


# =============================================================================
# MOCK SERVICES
# =============================================================================


class InMemoryLeadService:
    """In-memory lead store with the same surface as LeadService."""

    def __init__(self, categories: List[Category]):
        self.leads: Dict[str, Dict[str, Any]] = {}
        self.categories = categories

    async def insert_lead(self, lead: LeadInsert) -> Lead:
        lead_id = f"demo-lead-{len(self.leads) + 1}"
        self.leads[lead_id] = lead.to_record()
        return Lead(id=lead_id, **self.leads[lead_id])

    async def update_lead(self, lead_id: str, data: Dict[str, Any]) -> None:
        if lead_id not in self.leads:
            raise GatewayError(kind=ErrorCode.LEAD_UPDATE_FAILED, message=f"Lead {lead_id} not found")
        self.leads[lead_id].update(data)

    async def get_lead_status(self, lead_id: str) -> Optional[LeadStatusSnapshot]:
        record = self.leads.get(lead_id)
        if record is None:
            return None
        return LeadStatusSnapshot(
            status=record.get("status"),
            estimate_data=record.get("estimate_data"),
            error_message=record.get("error_message"),
        )

    async def list_categories(self) -> List[Category]:
        return list(self.categories)


class SimulatedEstimateJob:
    """Writes a result onto the lead after a short delay."""

    def __init__(self, leads: InMemoryLeadService, fail: bool = False, delay: float = 0.5):
        self.leads = leads
        self.fail = fail
        self.delay = delay

    async def invoke(self, lead_id: str, **kwargs: Any) -> None:
        asyncio.get_running_loop().call_later(self.delay, self._finish, lead_id, kwargs)

    def _finish(self, lead_id: str, request: Dict[str, Any]) -> None:
        record = self.leads.leads[lead_id]
        if self.fail:
            record.update(status="error", error_message="No pricing data for this region")
            return
        record.update(status="complete", estimate_data={
            "category": request.get("category"),
            "low": 8200,
            "high": 12600,
            "currency": "USD",
        })


# =============================================================================
# DEMO
# =============================================================================

CATALOG = [
    Category(
        id="cat-roofing",
        name="roofing",
        keywords=["roof", "leak", "shingle"],
        questions=[
            {"id": "Q1", "question": "What kind of roof do you have?", "type": "single_choice",
             "options": ["Asphalt shingle", "Metal", "Tile"]},
        ],
    ),
]


async def run_demo(skip: bool, fail: bool) -> Dict[str, Any]:
    leads = InMemoryLeadService(CATALOG)
    notifier = RecordingNotificationSink()
    controller = create_flow_controller(
        "demo-contractor",
        lead_service=leads,
        job_client=SimulatedEstimateJob(leads, fail=fail),
        notifier=notifier,
        poll_interval=0.25,
        poll_timeout=10,
    )

    await controller.load_categories()
    controller.submit_photos(["https://example.com/roof.jpg"])
    await controller.submit_description("Leaky roof over the garage")

    if skip:
        await controller.skip()
    else:
        await controller.complete_questions({"roofing": {"Q1": {
            "question": "What kind of roof do you have?",
            "type": "single_choice",
            "answers": ["Asphalt shingle"],
            "options": ["Asphalt shingle", "Metal", "Tile"],
        }}})
        await controller.submit_contact({"fullName": "Demo User", "email": "demo@example.com"})

    result = await controller.wait_for_estimate()
    await controller.close()

    return {
        "stage": controller.stage.value,
        "lead_id": controller.state.current_lead_id,
        "poll_outcome": result.outcome.value if result else None,
        "estimate": controller.state.estimate,
        "notifications": [n.model_dump() for n in notifier.drain()],
    }


def main() -> None:
    parser = argparse.ArgumentParser(description="Walk the estimate intake wizard against in-memory services")
    parser.add_argument("--skip", action="store_true", help="Use the test-estimate shortcut")
    parser.add_argument("--fail", action="store_true", help="Simulate a failed estimate job")
    args = parser.parse_args()

    configure_logging(settings.log_level)
    output = asyncio.run(run_demo(skip=args.skip, fail=args.fail))
    print(json.dumps(output, indent=2))


if __name__ == "__main__":
    main()
