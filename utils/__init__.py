"""Utility modules for the estimate intake flow."""

from utils.flow_logger import (
    configure_logging,
    log_estimate_request_start,
    log_estimate_ready,
    log_estimate_failed,
    log_stage_transition,
)

__all__ = [
    "configure_logging",
    "log_estimate_request_start",
    "log_estimate_ready",
    "log_estimate_failed",
    "log_stage_transition",
]
