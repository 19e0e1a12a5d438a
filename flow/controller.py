"""Estimate flow controller.

Drives the intake wizard: photo -> description -> (category) ->
questions -> contact -> loading -> estimate. Owns the only mutable
reference to the session's ``FlowState`` and is the sole caller of the
lead store, the estimate job client, the question matcher and the
estimate poller.

Three entry paths converge on one estimate lifecycle:
1. Questions complete: create lead, start job, move to contact
2. Contact submitted: update (or create) lead, start job if none in flight
3. Skip: create a test lead, start job, move to estimate

Every gateway failure is caught here and turned into a notification;
public operations never raise for backend errors.
"""

import asyncio
from typing import Any, Callable, Dict, Mapping, Optional, Sequence, Union

import structlog
from pydantic import ValidationError

from config.settings import settings
from config.errors import ConfigurationError
from flow import transitions
from flow.answers import coerce_answers, first_answer, format_answers_for_json
from flow.poller import EstimatePoller, SleepFn
from models.estimate_flow import (
    ContactInfo,
    EstimateConfig,
    FlowState,
    Lead,
    LeadInsert,
    LeadStatus,
    PollOutcome,
    PollResult,
    Stage,
)
from services.estimate_job_client import EstimateJobClient
from services.lead_service import LeadService
from services.notifications import LoggingNotificationSink, NotificationSink
from services.question_matcher import KeywordQuestionSetMatcher, QuestionSetMatcher
from utils.flow_logger import (
    log_estimate_failed,
    log_estimate_ready,
    log_estimate_request_start,
    log_stage_transition,
)

logger = structlog.get_logger()

# Entry paths, for logs
ENTRY_QUESTIONS = "questions_complete"
ENTRY_CONTACT = "contact"
ENTRY_SKIP = "skip"

# User-facing messages
MSG_CONTRACTOR_REQUIRED = "Contractor ID is required"
MSG_START_FAILED = "Failed to start estimate generation. Please try again."
MSG_CONTACT_FAILED = "Failed to process your information. Please try again."
MSG_SKIP_FAILED = "Failed to process your request. Please try again."
MSG_CATEGORIES_FAILED = "Failed to load categories. Please refresh and try again."
MSG_UNEXPECTED = "Something went wrong. Please try again."


class EstimateFlowController:
    """Orchestrates one intake wizard session."""

    def __init__(
        self,
        config: EstimateConfig,
        lead_service: Optional[LeadService] = None,
        job_client: Optional[EstimateJobClient] = None,
        matcher: Optional[QuestionSetMatcher] = None,
        notifier: Optional[NotificationSink] = None,
        poll_interval: Optional[float] = None,
        poll_timeout: Optional[float] = None,
        sleep: SleepFn = asyncio.sleep,
        initial_state: Optional[FlowState] = None
    ):
        """Initialize EstimateFlowController.

        Args:
            config: Session configuration (contractor ID).
            lead_service: Lead record gateway.
            job_client: Estimate job gateway.
            matcher: Question-set matcher.
            notifier: Sink for user-visible messages.
            poll_interval: Seconds between status polls (default from settings).
            poll_timeout: Polling ceiling in seconds (default from settings).
            sleep: Coroutine the poller waits with between ticks.
            initial_state: Snapshot to resume from (defaults to a fresh session).
        """
        self.config = config
        self.leads = lead_service or LeadService()
        self.jobs = job_client or EstimateJobClient()
        self.matcher = matcher or KeywordQuestionSetMatcher()
        self.notifier = notifier or LoggingNotificationSink()
        self.poll_interval = poll_interval if poll_interval is not None else settings.estimate_poll_interval_seconds
        self.poll_timeout = poll_timeout if poll_timeout is not None else settings.estimate_timeout_seconds
        if self.poll_interval <= 0:
            raise ValueError("Poll interval must be positive")
        self._sleep = sleep

        self._state = initial_state or FlowState()
        self._poller: Optional[EstimatePoller] = None
        self._watcher: Optional[asyncio.Task] = None
        # Set once the in-flight insert_lead call has settled
        self._lead_creation: Optional[asyncio.Event] = None

    @property
    def state(self) -> FlowState:
        """Current immutable snapshot."""
        return self._state

    @property
    def stage(self) -> Stage:
        return self._state.stage

    # ------------------------------------------------------------------
    # State plumbing
    # ------------------------------------------------------------------

    def _dispatch(self, transition: Callable[..., FlowState], trigger: str, *args: Any) -> FlowState:
        previous = self._state
        self._state = transition(previous, *args)
        log_stage_transition(previous.stage.value, self._state.stage.value, trigger)
        return self._state

    def _accepts(self, trigger: str, *stages: Stage) -> bool:
        if self._state.stage in stages:
            return True
        logger.warning(
            "trigger_ignored",
            trigger=trigger,
            stage=self._state.stage.value,
            allowed=[s.value for s in stages]
        )
        return False

    async def _accepts_when_settled(self, trigger: str, *stages: Stage) -> bool:
        """Like ``_accepts``, but first waits out any lead creation in flight.

        Only one ``insert_lead`` call runs at a time; the stage is checked
        again once it has settled.
        """
        if not self._accepts(trigger, *stages):
            return False
        waited = False
        while self._lead_creation is not None and not self._lead_creation.is_set():
            if not waited:
                logger.info("trigger_waiting_for_lead_creation", trigger=trigger)
                waited = True
            await self._lead_creation.wait()
        return not waited or self._accepts(trigger, *stages)

    async def _insert_lead(self, lead: LeadInsert) -> Lead:
        done = asyncio.Event()
        self._lead_creation = done
        try:
            return await self.leads.insert_lead(lead)
        finally:
            done.set()

    def _require_contractor_id(self, trigger: str) -> Optional[str]:
        contractor_id = self.config.contractor_id
        if not contractor_id:
            error = ConfigurationError(MSG_CONTRACTOR_REQUIRED, field="contractor_id")
            logger.error("missing_contractor_id", trigger=trigger, **error.to_dict())
            self.notifier.error(error.message)
            return None
        return contractor_id

    def _build_lead(
        self,
        contractor_id: str,
        contact: Optional[ContactInfo] = None
    ) -> LeadInsert:
        state = self._state
        category = state.current_category
        description = first_answer(state.answers, category) or state.project_description or "New project"
        fields: Dict[str, Any] = {
            "project_description": str(description),
            "project_title": f"{category or 'New'} Project",
            "category": category,
            "answers": format_answers_for_json(state.answers),
            "status": LeadStatus.PENDING,
            "contractor_id": contractor_id,
            "project_images": list(state.uploaded_photos),
        }
        if contact is not None:
            fields.update(_contact_fields(contact))
        return LeadInsert(**fields)

    # ------------------------------------------------------------------
    # Public triggers
    # ------------------------------------------------------------------

    def submit_photos(self, urls: Sequence[str]) -> FlowState:
        """Store uploaded photo URLs and move to the description step."""
        if not self._accepts("submit_photos", Stage.PHOTO):
            return self._state
        return self._dispatch(transitions.photos_submitted, "submit_photos", urls)

    async def submit_description(self, description: str) -> FlowState:
        """Match the description to question sets.

        Routes to ``questions`` when at least one set matches, otherwise to
        ``category`` so the user can pick one. Matcher failures count as no
        match.
        """
        if not self._accepts("submit_description", Stage.DESCRIPTION):
            return self._state

        self._dispatch(transitions.description_submitted, "submit_description", description)

        try:
            matches = await self.matcher.find_matching_question_sets(description, self._state.categories)
            consolidated = self.matcher.consolidate_question_sets(matches, description)
        except Exception as e:
            logger.warning("question_matching_failed", error=str(e))
            consolidated = []

        if self._state.stage != Stage.DESCRIPTION:
            logger.info("description_result_superseded", stage=self._state.stage.value)
            return self._state

        if not consolidated:
            return self._dispatch(transitions.no_questions_matched, "submit_description")
        return self._dispatch(transitions.questions_matched, "submit_description", consolidated)

    def select_category(self, category: str) -> FlowState:
        """Pick a category manually after a description found no match."""
        if not self._accepts("select_category", Stage.CATEGORY):
            return self._state
        return self._dispatch(transitions.category_selected, "select_category", category)

    async def complete_questions(self, answers: Mapping[str, Mapping[str, Any]]) -> FlowState:
        """Store answers, create the lead and start estimate generation.

        On lead creation failure the wizard returns to ``questions`` with
        the answers kept.
        """
        if not await self._accepts_when_settled("complete_questions", Stage.QUESTIONS):
            return self._state
        contractor_id = self._require_contractor_id("complete_questions")
        if contractor_id is None:
            return self._state

        try:
            answers = coerce_answers(answers)
        except (ValidationError, AttributeError) as e:
            logger.error("answers_invalid", error=str(e))
            self.notifier.error(MSG_START_FAILED)
            return self._state

        held_lead_id = self._state.current_lead_id
        self._dispatch(transitions.questions_completed, "complete_questions", answers)

        try:
            lead = await self._insert_lead(self._build_lead(contractor_id))
        except Exception as e:
            logger.error("lead_creation_failed", entry_path=ENTRY_QUESTIONS, error=str(e))
            self.notifier.error(MSG_START_FAILED)
            return self._dispatch(transitions.lead_creation_failed, "complete_questions")

        if self._state.stage != Stage.LOADING or self._state.current_lead_id != held_lead_id:
            logger.warning(
                "lead_creation_superseded",
                lead_id=lead.id,
                stage=self._state.stage.value,
                current_lead_id=self._state.current_lead_id
            )
            return self._dispatch(transitions.lead_creation_superseded, "complete_questions")

        self._dispatch(transitions.lead_created, "complete_questions", lead.id, Stage.CONTACT)
        await self._start_estimate_generation(lead.id, ENTRY_QUESTIONS)
        return self._state

    async def submit_contact(self, contact: Union[ContactInfo, Mapping[str, Any]]) -> FlowState:
        """Attach contact details to the session's lead.

        Updates the held lead when there is one, otherwise creates it. A new
        estimate job starts only when none is already in flight.
        """
        if not await self._accepts_when_settled("submit_contact", Stage.CONTACT):
            return self._state
        contractor_id = self._require_contractor_id("submit_contact")
        if contractor_id is None:
            return self._state

        try:
            if not isinstance(contact, ContactInfo):
                contact = ContactInfo.model_validate(contact)
        except ValidationError as e:
            logger.error("contact_invalid", error=str(e))
            self.notifier.error(MSG_CONTACT_FAILED)
            return self._state

        lead_id = self._state.current_lead_id
        try:
            if lead_id:
                logger.info("lead_contact_update", lead_id=lead_id)
                await self.leads.update_lead(lead_id, _contact_fields(contact))
                if not self._state.is_generating_estimate:
                    await self._start_estimate_generation(lead_id, ENTRY_CONTACT)
            else:
                logger.info("lead_contact_create")
                lead = await self._insert_lead(self._build_lead(contractor_id, contact))
                self._dispatch(transitions.lead_created, "submit_contact", lead.id)
                await self._start_estimate_generation(lead.id, ENTRY_CONTACT)
        except Exception as e:
            logger.error("contact_submission_failed", lead_id=lead_id, error=str(e))
            self.notifier.error(MSG_CONTACT_FAILED)
            self._dispatch(transitions.estimate_job_stopped, "submit_contact")

        return self._state

    async def skip(self) -> FlowState:
        """Request a test estimate without contact details.

        Always creates a new lead flagged ``is_test_estimate``. The stage
        moves to ``estimate`` as soon as the job has started; the estimate
        itself may still be pending (``FlowState.is_estimate_ready``).
        """
        if not await self._accepts_when_settled(
            "skip", Stage.CATEGORY, Stage.QUESTIONS, Stage.CONTACT, Stage.LOADING
        ):
            return self._state
        contractor_id = self._require_contractor_id("skip")
        if contractor_id is None:
            return self._state

        state = self._dispatch(transitions.estimate_job_started, "skip")
        lead_data = LeadInsert(
            project_description=state.project_description or "Test project",
            project_title="Test Project",
            answers=format_answers_for_json(state.answers),
            category=state.selected_category,
            status=LeadStatus.PENDING,
            contractor_id=contractor_id,
            project_images=list(state.uploaded_photos),
            is_test_estimate=True,
        )

        try:
            lead = await self._insert_lead(lead_data)
        except Exception as e:
            logger.error("test_lead_creation_failed", error=str(e))
            self.notifier.error(MSG_SKIP_FAILED)
            return self._dispatch(transitions.estimate_job_stopped, "skip")

        self._dispatch(transitions.lead_created, "skip", lead.id)
        if await self._start_estimate_generation(lead.id, ENTRY_SKIP):
            self._dispatch(transitions.skip_initiated, "skip")
        return self._state

    # ------------------------------------------------------------------
    # Supplementary operations
    # ------------------------------------------------------------------

    async def load_categories(self) -> FlowState:
        """Load the category catalog used for matching and manual selection."""
        self._dispatch(transitions.categories_loading, "load_categories")
        try:
            categories = await self.leads.list_categories()
        except Exception as e:
            logger.error("categories_load_failed", error=str(e))
            self.notifier.error(MSG_CATEGORIES_FAILED)
            categories = []
        return self._dispatch(transitions.categories_loaded, "load_categories", categories)

    def update_progress(self, progress: float) -> FlowState:
        return self._dispatch(transitions.progress_updated, "update_progress", progress)

    def mark_category_completed(self, category: str) -> FlowState:
        return self._dispatch(transitions.category_completed, "mark_category_completed", category)

    async def wait_for_estimate(self) -> Optional[PollResult]:
        """Wait for the in-flight estimate poll, if any, and return its result."""
        if self._watcher is None:
            return None
        return await self._watcher

    async def close(self) -> None:
        """Stop any in-flight polling for this session."""
        watcher = self._watcher
        self._cancel_poller()
        if watcher is not None:
            await watcher
        if self._state.is_generating_estimate:
            self._dispatch(transitions.estimate_job_stopped, "close")

    # ------------------------------------------------------------------
    # Estimate lifecycle
    # ------------------------------------------------------------------

    def _cancel_poller(self) -> None:
        if self._poller is not None:
            self._poller.cancel()
            self._poller = None

    async def _start_estimate_generation(self, lead_id: str, entry_path: str) -> bool:
        """Invoke the estimate job and start polling for its result.

        Returns:
            True if the job was started.
        """
        self._cancel_poller()
        state = self._dispatch(transitions.estimate_job_started, entry_path)

        log_estimate_request_start(
            lead_id=lead_id,
            entry_path=entry_path,
            category=state.selected_category,
            photo_count=len(state.uploaded_photos)
        )

        try:
            await self.jobs.invoke(
                lead_id=lead_id,
                contractor_id=self.config.contractor_id,
                project_description=state.project_description,
                category=state.selected_category,
                image_url=state.uploaded_image_url,
                project_images=list(state.uploaded_photos),
            )
        except Exception as e:
            logger.error("estimate_generation_start_failed", lead_id=lead_id, error=str(e))
            self.notifier.error(MSG_START_FAILED)
            self._dispatch(transitions.estimate_job_stopped, entry_path)
            return False

        poller = EstimatePoller(
            self.leads,
            lead_id,
            interval=self.poll_interval,
            timeout=self.poll_timeout,
            sleep=self._sleep,
        )
        self._poller = poller
        poller.start()
        self._watcher = asyncio.create_task(
            self._watch_poller(poller),
            name=f"estimate-watcher-{lead_id}"
        )
        return True

    async def _watch_poller(self, poller: EstimatePoller) -> PollResult:
        try:
            result = await poller.wait()
        except Exception as e:
            logger.exception("estimate_watch_failed", lead_id=poller.lead_id, error=str(e))
            result = PollResult(lead_id=poller.lead_id, outcome=PollOutcome.ERROR, message=MSG_UNEXPECTED, ticks=poller.ticks)

        if poller is not self._poller:
            logger.info("stale_poll_result_ignored", lead_id=poller.lead_id, outcome=result.outcome.value)
            return result
        self._poller = None

        if result.outcome == PollOutcome.COMPLETE:
            data = result.estimate_data
            log_estimate_ready(poller.lead_id, result.ticks, data.keys() if isinstance(data, dict) else ())
            self._dispatch(transitions.estimate_ready, "estimate_poll", data)
        elif result.outcome == PollOutcome.CANCELLED:
            self._dispatch(transitions.estimate_job_stopped, "estimate_poll")
        else:
            log_estimate_failed(poller.lead_id, result.outcome.value, result.message or "", result.ticks)
            self.notifier.error(result.message or MSG_START_FAILED)
            self._dispatch(transitions.estimate_job_stopped, "estimate_poll")
        return result


def _contact_fields(contact: ContactInfo) -> Dict[str, str]:
    return {key: value for key, value in contact.to_lead_fields().items() if value is not None}


def create_flow_controller(contractor_id: Optional[str], **kwargs: Any) -> EstimateFlowController:
    """Build a controller with default gateways for a contractor."""
    return EstimateFlowController(EstimateConfig(contractor_id=contractor_id), **kwargs)
