"""Unit tests for the estimate request logger."""

import structlog
from structlog.testing import capture_logs

from utils.flow_logger import (
    BANNER_WIDTH,
    _create_banner,
    configure_logging,
    log_estimate_failed,
    log_estimate_ready,
    log_estimate_request_start,
    log_stage_transition,
)


class TestFlowLogger:

    def test_banner_width(self):
        banner = _create_banner("=", "ESTIMATE READY")

        assert len(banner) == BANNER_WIDTH
        assert " ESTIMATE READY " in banner

    def test_request_banner(self, capsys):
        log_estimate_request_start("lead-1", "skip", None, 2)

        out = capsys.readouterr().out
        assert "ESTIMATE REQUESTED" in out
        assert "lead-1" in out
        assert "Category    : None" in out

    def test_ready_banner(self, capsys):
        log_estimate_ready("lead-1", 4, {"total": 1, "currency": "USD"}.keys())

        assert "total, currency" in capsys.readouterr().out

    def test_failed_banner(self, capsys):
        log_estimate_failed("lead-1", "timeout", "Estimate generation timed out. Please try again.", 40)

        out = capsys.readouterr().out
        assert "ESTIMATE TIMEOUT" in out
        assert "Poll Ticks  : 40" in out

    def test_stage_transition_skips_no_change(self):
        with capture_logs() as logs:
            log_stage_transition("contact", "contact", "submit_contact")
            log_stage_transition("contact", "estimate", "estimate_poll")

        assert [entry["to_stage"] for entry in logs] == ["estimate"]

    def test_configure_logging(self):
        try:
            configure_logging("warning")
            assert structlog.get_config()["wrapper_class"] is not None
        finally:
            structlog.reset_defaults()
