"""Estimate intake flow: wizard state machine and estimate polling."""

from flow.answers import format_answers_for_json
from flow.controller import EstimateFlowController, create_flow_controller
from flow.poller import EstimatePoller

__all__ = [
    "format_answers_for_json",
    "EstimateFlowController",
    "create_flow_controller",
    "EstimatePoller",
]
