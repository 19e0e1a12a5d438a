"""Estimate poller.

Polls a lead's status at a fixed interval until the estimate job
completes, reports an error, or the hard timeout is reached.
"""

import asyncio
import math
from typing import Any, Awaitable, Callable, Optional

import structlog

from config.settings import settings
from config.errors import GatewayError
from models.estimate_flow import PollOutcome, PollResult

logger = structlog.get_logger()

TIMEOUT_MESSAGE = "Estimate generation timed out. Please try again."
DEFAULT_ERROR_MESSAGE = "Failed to generate estimate"
CANCELLED_MESSAGE = "Estimate polling cancelled"

SleepFn = Callable[[float], Awaitable[Any]]


class EstimatePoller:
    """Cancelable polling task for one lead.

    The timeout is counted in ticks (``ceil(timeout / interval)``), and is
    checked before querying on each tick. With a 3 second interval and a
    120 second ceiling the loop runs 40 ticks and issues 39 queries when no
    terminal status ever arrives.

    A lead that does not exist yet counts as "not ready". Any query failure
    ends polling immediately.
    """

    def __init__(
        self,
        lead_service,
        lead_id: str,
        interval: Optional[float] = None,
        timeout: Optional[float] = None,
        sleep: SleepFn = asyncio.sleep
    ):
        """Initialize EstimatePoller.

        Args:
            lead_service: Gateway exposing ``get_lead_status(lead_id)``.
            lead_id: Lead to poll.
            interval: Seconds between ticks (default from settings).
            timeout: Hard ceiling in seconds (default from settings).
            sleep: Coroutine used to wait between ticks.
        """
        self.lead_service = lead_service
        self.lead_id = lead_id
        self.interval = interval if interval is not None else settings.estimate_poll_interval_seconds
        self.timeout = timeout if timeout is not None else settings.estimate_timeout_seconds
        if self.interval <= 0:
            raise ValueError("Poll interval must be positive")
        self.max_ticks = max(1, math.ceil(round(self.timeout / self.interval, 9)))

        self._sleep = sleep
        self._ticks = 0
        self._task: Optional[asyncio.Task] = None
        self._cancel_requested = False
        self._result: Optional[PollResult] = None

    @property
    def ticks(self) -> int:
        return self._ticks

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    @property
    def result(self) -> Optional[PollResult]:
        return self._result

    def start(self) -> asyncio.Task:
        """Schedule the poll loop on the running event loop."""
        if self._task is None:
            self._task = asyncio.create_task(
                self._run(),
                name=f"estimate-poller-{self.lead_id}"
            )
        return self._task

    def cancel(self) -> None:
        """Stop polling. ``wait()`` then returns a cancelled result."""
        if self._task is not None and not self._task.done():
            self._cancel_requested = True
            self._task.cancel()
            logger.info("estimate_polling_cancelled", lead_id=self.lead_id, ticks=self._ticks)

    async def wait(self) -> PollResult:
        """Wait for the terminal outcome, starting the loop if needed."""
        task = self.start()
        try:
            return await task
        except asyncio.CancelledError:
            if not self._cancel_requested:
                raise
            self._result = self._finish(PollOutcome.CANCELLED, message=CANCELLED_MESSAGE)
            return self._result

    def _finish(
        self,
        outcome: PollOutcome,
        message: Optional[str] = None,
        estimate_data: Any = None
    ) -> PollResult:
        self._result = PollResult(
            lead_id=self.lead_id,
            outcome=outcome,
            message=message,
            estimate_data=estimate_data,
            ticks=self._ticks,
        )
        return self._result

    async def _run(self) -> PollResult:
        logger.info(
            "estimate_polling_started",
            lead_id=self.lead_id,
            interval=self.interval,
            max_ticks=self.max_ticks
        )

        while True:
            await self._sleep(self.interval)
            self._ticks += 1

            if self._ticks >= self.max_ticks:
                logger.warning("estimate_polling_timed_out", lead_id=self.lead_id, ticks=self._ticks)
                return self._finish(PollOutcome.TIMEOUT, message=TIMEOUT_MESSAGE)

            try:
                snapshot = await self.lead_service.get_lead_status(self.lead_id)
            except GatewayError as e:
                logger.error("estimate_poll_query_failed", lead_id=self.lead_id, kind=e.kind, error=e.message)
                return self._finish(PollOutcome.ERROR, message=e.message)
            except Exception as e:
                logger.exception("estimate_poll_query_exception", lead_id=self.lead_id, error=str(e))
                return self._finish(PollOutcome.ERROR, message=str(e) or DEFAULT_ERROR_MESSAGE)

            if snapshot is None:
                logger.debug("estimate_poll_lead_missing", lead_id=self.lead_id, tick=self._ticks)
                continue

            logger.debug(
                "estimate_poll_tick",
                lead_id=self.lead_id,
                tick=self._ticks,
                status=snapshot.status,
                has_estimate=bool(snapshot.estimate_data)
            )

            if snapshot.is_error:
                return self._finish(
                    PollOutcome.ERROR,
                    message=snapshot.error_message or DEFAULT_ERROR_MESSAGE
                )

            if snapshot.is_complete:
                logger.info("estimate_polling_complete", lead_id=self.lead_id, ticks=self._ticks)
                return self._finish(PollOutcome.COMPLETE, estimate_data=snapshot.estimate_data)
