"""Estimate intake data models."""

from models.estimate_flow import (
    AnswerEntry,
    AnswersState,
    Category,
    CategoryQuestions,
    ContactInfo,
    EstimateConfig,
    FlowState,
    Lead,
    LeadInsert,
    LeadStatus,
    LeadStatusSnapshot,
    Notification,
    NotificationVariant,
    PollOutcome,
    PollResult,
    Question,
    QuestionSetMatch,
    Stage,
)

__all__ = [
    "AnswerEntry",
    "AnswersState",
    "Category",
    "CategoryQuestions",
    "ContactInfo",
    "EstimateConfig",
    "FlowState",
    "Lead",
    "LeadInsert",
    "LeadStatus",
    "LeadStatusSnapshot",
    "Notification",
    "NotificationVariant",
    "PollOutcome",
    "PollResult",
    "Question",
    "QuestionSetMatch",
    "Stage",
]
