"""Unit tests for EstimatePoller."""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from config.errors import GatewayError, ErrorCode
from flow.poller import EstimatePoller, TIMEOUT_MESSAGE, DEFAULT_ERROR_MESSAGE
from models.estimate_flow import LeadStatusSnapshot, PollOutcome


# ============================================================================
# Fixtures
# ============================================================================

@pytest.fixture
def status_service():
    """Lead gateway whose status is driven by each test."""
    mock = MagicMock()
    mock.get_lead_status = AsyncMock(return_value=LeadStatusSnapshot(status="pending"))
    return mock


@pytest.fixture
def sleeps():
    """Records requested sleep durations without waiting."""
    calls = []

    async def _sleep(seconds):
        calls.append(seconds)
        await asyncio.sleep(0)

    _sleep.calls = calls
    return _sleep


# ============================================================================
# Tests: Terminal Outcomes
# ============================================================================

class TestEstimatePoller:
    """Tests for EstimatePoller."""

    @pytest.mark.asyncio
    async def test_complete(self, status_service, sleeps):
        """Test completion delivers estimate data."""
        status_service.get_lead_status.side_effect = [
            LeadStatusSnapshot(status="pending"),
            LeadStatusSnapshot(status="complete", estimate_data={"total": 4200}),
        ]
        poller = EstimatePoller(status_service, "lead-1", interval=3.0, timeout=120.0, sleep=sleeps)

        result = await poller.wait()

        assert result.outcome == PollOutcome.COMPLETE
        assert result.succeeded is True
        assert result.estimate_data == {"total": 4200}
        assert result.ticks == 2
        assert sleeps.calls == [3.0, 3.0]
        assert poller.running is False

    @pytest.mark.asyncio
    async def test_complete_without_data_keeps_polling(self, status_service, sleeps):
        """Test a complete status with no estimate data is not terminal."""
        status_service.get_lead_status.side_effect = [
            LeadStatusSnapshot(status="complete"),
            LeadStatusSnapshot(status="complete", estimate_data={"total": 1}),
        ]
        poller = EstimatePoller(status_service, "lead-1", interval=3.0, timeout=120.0, sleep=sleeps)

        result = await poller.wait()

        assert result.outcome == PollOutcome.COMPLETE
        assert result.ticks == 2

    @pytest.mark.asyncio
    async def test_error_status_uses_backend_message(self, status_service, sleeps):
        """Test backend error message takes precedence."""
        status_service.get_lead_status.return_value = LeadStatusSnapshot(
            status="error",
            error_message="No pricing for this region"
        )
        poller = EstimatePoller(status_service, "lead-1", interval=3.0, timeout=120.0, sleep=sleeps)

        result = await poller.wait()

        assert result.outcome == PollOutcome.ERROR
        assert result.message == "No pricing for this region"
        assert result.ticks == 1

    @pytest.mark.asyncio
    async def test_error_status_generic_message(self, status_service, sleeps):
        status_service.get_lead_status.return_value = LeadStatusSnapshot(status="error")
        poller = EstimatePoller(status_service, "lead-1", interval=3.0, timeout=120.0, sleep=sleeps)

        result = await poller.wait()

        assert result.message == DEFAULT_ERROR_MESSAGE

    @pytest.mark.asyncio
    async def test_timeout_after_forty_ticks(self, status_service, sleeps):
        """Test 3s interval / 120s ceiling gives exactly 40 ticks."""
        poller = EstimatePoller(status_service, "lead-1", interval=3.0, timeout=120.0, sleep=sleeps)

        result = await poller.wait()

        assert result.outcome == PollOutcome.TIMEOUT
        assert result.message == TIMEOUT_MESSAGE
        assert result.ticks == 40
        assert len(sleeps.calls) == 40
        assert status_service.get_lead_status.await_count == 39

    @pytest.mark.asyncio
    async def test_missing_lead_keeps_polling(self, status_service, sleeps):
        """Test an absent lead counts as not ready."""
        status_service.get_lead_status.side_effect = [
            None,
            None,
            LeadStatusSnapshot(status="complete", estimate_data={"total": 7}),
        ]
        poller = EstimatePoller(status_service, "lead-1", interval=3.0, timeout=120.0, sleep=sleeps)

        result = await poller.wait()

        assert result.outcome == PollOutcome.COMPLETE
        assert result.ticks == 3

    @pytest.mark.asyncio
    async def test_query_failure_stops_immediately(self, status_service, sleeps):
        """Test a gateway failure ends polling without retry."""
        status_service.get_lead_status.side_effect = GatewayError(
            kind=ErrorCode.LEAD_QUERY_FAILED,
            message="Failed to check estimate status: unavailable"
        )
        poller = EstimatePoller(status_service, "lead-1", interval=3.0, timeout=120.0, sleep=sleeps)

        result = await poller.wait()

        assert result.outcome == PollOutcome.ERROR
        assert result.message == "Failed to check estimate status: unavailable"
        assert status_service.get_lead_status.await_count == 1

    @pytest.mark.asyncio
    async def test_unexpected_exception_stops(self, status_service, sleeps):
        status_service.get_lead_status.side_effect = RuntimeError("boom")
        poller = EstimatePoller(status_service, "lead-1", interval=3.0, timeout=120.0, sleep=sleeps)

        result = await poller.wait()

        assert result.outcome == PollOutcome.ERROR
        assert result.message == "boom"


# ============================================================================
# Tests: Lifecycle
# ============================================================================

class TestPollerLifecycle:

    @pytest.mark.asyncio
    async def test_cancel(self, status_service):
        """Test cancel stops the loop and wait reports it."""
        blocker = asyncio.Event()

        async def _blocking_sleep(_seconds):
            await blocker.wait()

        poller = EstimatePoller(status_service, "lead-1", interval=3.0, timeout=120.0, sleep=_blocking_sleep)
        poller.start()
        await asyncio.sleep(0)
        assert poller.running is True

        poller.cancel()
        result = await poller.wait()

        assert result.outcome == PollOutcome.CANCELLED
        assert poller.running is False
        status_service.get_lead_status.assert_not_called()

    @pytest.mark.asyncio
    async def test_start_is_idempotent(self, status_service, sleeps):
        status_service.get_lead_status.return_value = LeadStatusSnapshot(
            status="complete", estimate_data={"total": 1}
        )
        poller = EstimatePoller(status_service, "lead-1", interval=3.0, timeout=120.0, sleep=sleeps)

        assert poller.start() is poller.start()
        await poller.wait()
        assert status_service.get_lead_status.await_count == 1

    def test_max_ticks_rounding(self, status_service):
        assert EstimatePoller(status_service, "l", interval=3.0, timeout=120.0).max_ticks == 40
        assert EstimatePoller(status_service, "l", interval=0.1, timeout=0.3).max_ticks == 3
        assert EstimatePoller(status_service, "l", interval=3.0, timeout=10.0).max_ticks == 4

    def test_rejects_non_positive_interval(self, status_service):
        with pytest.raises(ValueError):
            EstimatePoller(status_service, "l", interval=-1.0, timeout=10.0)

    def test_rejects_zero_interval(self, status_service):
        """Test a zero interval is rejected rather than replaced by the default."""
        with pytest.raises(ValueError):
            EstimatePoller(status_service, "l", interval=0, timeout=10.0)
