"""Estimate intake models.

Pydantic models for the intake wizard state, leads, question sets and
estimate polling results.
"""

from enum import Enum
from typing import Dict, Any, Optional, List
from pydantic import BaseModel, Field


class Stage(str, Enum):
    """Active step of the intake wizard."""

    PHOTO = "photo"
    DESCRIPTION = "description"
    CATEGORY = "category"
    QUESTIONS = "questions"
    CONTACT = "contact"
    LOADING = "loading"
    ESTIMATE = "estimate"


class LeadStatus(str, Enum):
    """Status of a lead's estimate job."""

    PENDING = "pending"
    COMPLETE = "complete"
    ERROR = "error"


# ============================================================================
# Questions and answers
# ============================================================================

class AnswerEntry(BaseModel):
    """Answers collected for one question."""

    question: str = Field(
        default="",
        description="Question text as shown to the user"
    )
    type: str = Field(
        default="",
        description="Question type (single_choice, multiple_choice, text)"
    )
    answers: List[Any] = Field(
        default_factory=list,
        description="Selected answer values, in selection order"
    )
    options: List[Any] = Field(
        default_factory=list,
        description="Options that were available"
    )


# category -> question id -> entry
AnswersState = Dict[str, Dict[str, AnswerEntry]]


class Question(BaseModel):
    """A single question definition from a question set."""

    id: str
    question: str = ""
    type: str = "single_choice"
    options: List[Any] = Field(default_factory=list)

    class Config:
        extra = "allow"


class Category(BaseModel):
    """Catalog entry used for description matching."""

    id: str
    name: str
    description: str = ""
    icon: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)
    questions: List[Question] = Field(default_factory=list)

    class Config:
        extra = "ignore"


class QuestionSetMatch(BaseModel):
    """Candidate question set for a description, before consolidation."""

    category: str
    score: float = 0.0
    matched_keywords: List[str] = Field(default_factory=list)
    questions: List[Question] = Field(default_factory=list)


class CategoryQuestions(BaseModel):
    """Consolidated question set for one category."""

    category: str
    questions: List[Question] = Field(default_factory=list)


# ============================================================================
# Leads
# ============================================================================

class ContactInfo(BaseModel):
    """Contact form fields."""

    full_name: Optional[str] = Field(default=None, alias="fullName")
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None

    class Config:
        populate_by_name = True

    def to_lead_fields(self) -> Dict[str, Optional[str]]:
        """Map contact fields onto lead column names."""
        return {
            "user_name": self.full_name,
            "user_email": self.email,
            "user_phone": self.phone,
            "project_address": self.address,
        }


class EstimateConfig(BaseModel):
    """Per-session orchestrator configuration."""

    contractor_id: Optional[str] = Field(default=None, alias="contractorId")

    class Config:
        populate_by_name = True
        frozen = True


class LeadInsert(BaseModel):
    """Fields written when a lead is created."""

    project_description: str
    project_title: str
    category: Optional[str] = None
    answers: Dict[str, Any] = Field(default_factory=dict)
    status: LeadStatus = LeadStatus.PENDING
    contractor_id: str
    project_images: List[str] = Field(default_factory=list)
    user_name: Optional[str] = None
    user_email: Optional[str] = None
    user_phone: Optional[str] = None
    project_address: Optional[str] = None
    is_test_estimate: Optional[bool] = None

    class Config:
        use_enum_values = True

    def to_record(self) -> Dict[str, Any]:
        """Serialize for storage.

        ``category`` is always written, even when unset, so test leads
        record that no category was chosen.
        """
        record = self.model_dump(exclude_none=True)
        record["category"] = self.category
        return record


class Lead(LeadInsert):
    """Persisted lead."""

    id: str
    error_message: Optional[str] = None
    estimate_data: Optional[Any] = None


class LeadStatusSnapshot(BaseModel):
    """Estimate status fields read on each poll tick."""

    status: Optional[str] = None
    estimate_data: Optional[Any] = None
    error_message: Optional[str] = None

    @property
    def is_complete(self) -> bool:
        return self.status == LeadStatus.COMPLETE.value and bool(self.estimate_data)

    @property
    def is_error(self) -> bool:
        return self.status == LeadStatus.ERROR.value


# ============================================================================
# Notifications and polling
# ============================================================================

class NotificationVariant(str, Enum):
    DEFAULT = "default"
    DESTRUCTIVE = "destructive"


class Notification(BaseModel):
    """User-visible transient message."""

    title: str
    description: str
    variant: NotificationVariant = NotificationVariant.DEFAULT

    class Config:
        use_enum_values = True


class PollOutcome(str, Enum):
    """Terminal outcome of an estimate poll loop."""

    COMPLETE = "complete"
    ERROR = "error"
    TIMEOUT = "timeout"
    CANCELLED = "cancelled"


class PollResult(BaseModel):
    """Result delivered by the estimate poller."""

    lead_id: str
    outcome: PollOutcome
    estimate_data: Optional[Any] = None
    message: Optional[str] = None
    ticks: int = Field(default=0, ge=0)

    @property
    def succeeded(self) -> bool:
        return self.outcome == PollOutcome.COMPLETE


# ============================================================================
# Wizard state
# ============================================================================

class FlowState(BaseModel):
    """Immutable snapshot of one wizard session.

    Every change goes through a transition in ``flow.transitions``, which
    returns a new snapshot.
    """

    stage: Stage = Stage.PHOTO
    uploaded_photos: List[str] = Field(default_factory=list)
    uploaded_image_url: Optional[str] = None
    project_description: str = ""
    selected_category: Optional[str] = None
    matched_question_sets: List[CategoryQuestions] = Field(default_factory=list)
    answers: Dict[str, Dict[str, AnswerEntry]] = Field(default_factory=dict)
    current_lead_id: Optional[str] = None
    is_creating_lead: bool = False
    is_generating_estimate: bool = False
    estimate: Optional[Any] = None
    categories: List[Category] = Field(default_factory=list)
    completed_categories: List[str] = Field(default_factory=list)
    progress: int = Field(default=0, ge=0, le=100)
    is_loading: bool = True

    class Config:
        frozen = True

    @property
    def current_category(self) -> Optional[str]:
        """Category the questions were answered for."""
        if self.matched_question_sets:
            return self.matched_question_sets[0].category
        return self.selected_category

    @property
    def is_estimate_ready(self) -> bool:
        """True once estimate data has arrived, not merely been requested."""
        return self.stage == Stage.ESTIMATE and self.estimate is not None
