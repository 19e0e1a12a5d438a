"""Estimate request logger for the intake flow.

Provides highly visible, formatted logging for estimate requests with
distinctive visual markers that stand out in log streams, plus the
structlog setup used by entry points.
"""

import logging
from datetime import datetime, timezone
from typing import Iterable, Optional

import structlog

logger = structlog.get_logger()

# Visual markers for different log types
BANNER_WIDTH = 80
REQUEST_BANNER_CHAR = "█"
READY_BANNER_CHAR = "═"
FAILED_BANNER_CHAR = "!"


def configure_logging(level: str = "INFO") -> None:
    """Configure structlog with ISO timestamps and console rendering."""
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
    )


def _create_banner(char: str, text: str, width: int = BANNER_WIDTH) -> str:
    """Create a centered banner with given character."""
    text_with_spaces = f" {text} "
    padding = (width - len(text_with_spaces)) // 2
    return char * padding + text_with_spaces + char * (width - padding - len(text_with_spaces))


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat()


def log_estimate_request_start(
    lead_id: str,
    entry_path: str,
    category: Optional[str],
    photo_count: int
) -> None:
    """Log an estimate job start with prominent banner."""
    print("\n")
    print(REQUEST_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(REQUEST_BANNER_CHAR, "ESTIMATE REQUESTED"))
    print(REQUEST_BANNER_CHAR * BANNER_WIDTH)
    print(f"║ Lead ID     : {lead_id}")
    print(f"║ Entry Path  : {entry_path}")
    print(f"║ Category    : {category or 'None'}")
    print(f"║ Photos      : {photo_count}")
    print(f"║ Timestamp   : {_timestamp()}")
    print(REQUEST_BANNER_CHAR * BANNER_WIDTH)
    print("\n")

    logger.info(
        "estimate_request_logged",
        lead_id=lead_id,
        entry_path=entry_path,
        category=category
    )


def log_estimate_ready(lead_id: str, ticks: int, estimate_keys: Iterable[str] = ()) -> None:
    """Log estimate completion with summary."""
    keys = list(estimate_keys)

    print("\n")
    print(READY_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(READY_BANNER_CHAR, "✓ ESTIMATE READY"))
    print(READY_BANNER_CHAR * BANNER_WIDTH)
    print(f"║ Lead ID     : {lead_id}")
    print(f"║ Poll Ticks  : {ticks}")
    print(f"║ Fields      : {', '.join(keys) if keys else 'n/a'}")
    print(f"║ Timestamp   : {_timestamp()}")
    print(READY_BANNER_CHAR * BANNER_WIDTH)
    print("\n")

    logger.info("estimate_ready_logged", lead_id=lead_id, ticks=ticks)


def log_estimate_failed(lead_id: str, outcome: str, error: str, ticks: int = 0) -> None:
    """Log estimate failure with details."""
    print("\n")
    print(FAILED_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(FAILED_BANNER_CHAR, f"✗ ESTIMATE {outcome.upper()}"))
    print(FAILED_BANNER_CHAR * BANNER_WIDTH)
    print(f"! Lead ID     : {lead_id}")
    print(f"! Poll Ticks  : {ticks}")
    print(f"! Error       : {error}")
    print(f"! Timestamp   : {_timestamp()}")
    print(FAILED_BANNER_CHAR * BANNER_WIDTH)
    print("\n")

    logger.error(
        "estimate_failed_logged",
        lead_id=lead_id,
        outcome=outcome,
        error=error,
        ticks=ticks
    )


def log_stage_transition(from_stage: str, to_stage: str, trigger: str) -> None:
    """Log a wizard stage change."""
    if from_stage == to_stage:
        return
    logger.info(
        "stage_transition",
        from_stage=from_stage,
        to_stage=to_stage,
        trigger=trigger
    )
