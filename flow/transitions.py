"""Wizard state transitions.

One pure function per trigger or async continuation. Each takes the
current ``FlowState`` and returns a new one; none perform I/O.
"""

from typing import Any, Dict, List, Optional, Sequence

from models.estimate_flow import AnswerEntry, Category, CategoryQuestions, FlowState, Stage


def photos_submitted(state: FlowState, urls: Sequence[str]) -> FlowState:
    urls = list(urls)
    return state.model_copy(update={
        "uploaded_photos": urls,
        "uploaded_image_url": urls[0] if urls else state.uploaded_image_url,
        "stage": Stage.DESCRIPTION,
    })


def description_submitted(state: FlowState, description: str) -> FlowState:
    return state.model_copy(update={"project_description": description})


def questions_matched(state: FlowState, question_sets: Sequence[CategoryQuestions]) -> FlowState:
    question_sets = list(question_sets)
    update: Dict[str, Any] = {
        "matched_question_sets": question_sets,
        "stage": Stage.QUESTIONS,
    }
    if question_sets and question_sets[0].category:
        update["selected_category"] = question_sets[0].category
    return state.model_copy(update=update)


def no_questions_matched(state: FlowState) -> FlowState:
    return state.model_copy(update={
        "matched_question_sets": [],
        "stage": Stage.CATEGORY,
    })


def category_selected(state: FlowState, category: str) -> FlowState:
    return state.model_copy(update={
        "selected_category": category,
        "stage": Stage.QUESTIONS,
    })


def questions_completed(state: FlowState, answers: Dict[str, Dict[str, AnswerEntry]]) -> FlowState:
    return state.model_copy(update={
        "answers": answers,
        "stage": Stage.LOADING,
        "is_creating_lead": True,
    })


def lead_creation_failed(state: FlowState) -> FlowState:
    return state.model_copy(update={"stage": Stage.QUESTIONS, "is_creating_lead": False})


def lead_creation_superseded(state: FlowState) -> FlowState:
    return state.model_copy(update={"is_creating_lead": False})


def lead_created(state: FlowState, lead_id: str, stage: Optional[Stage] = None) -> FlowState:
    update: Dict[str, Any] = {"current_lead_id": lead_id, "is_creating_lead": False}
    if stage is not None:
        update["stage"] = stage
    return state.model_copy(update=update)


def estimate_job_started(state: FlowState) -> FlowState:
    return state.model_copy(update={"is_generating_estimate": True})


def estimate_job_stopped(state: FlowState) -> FlowState:
    return state.model_copy(update={"is_generating_estimate": False})


def estimate_ready(state: FlowState, estimate: Any) -> FlowState:
    return state.model_copy(update={
        "estimate": estimate,
        "is_generating_estimate": False,
        "stage": Stage.ESTIMATE,
    })


def skip_initiated(state: FlowState) -> FlowState:
    # Estimate data may still be pending; see FlowState.is_estimate_ready
    return state.model_copy(update={"stage": Stage.ESTIMATE})


def categories_loading(state: FlowState) -> FlowState:
    return state.model_copy(update={"is_loading": True})


def categories_loaded(state: FlowState, categories: List[Category]) -> FlowState:
    return state.model_copy(update={
        "categories": list(categories),
        "is_loading": False,
    })


def progress_updated(state: FlowState, progress: float) -> FlowState:
    return state.model_copy(update={"progress": int(min(100, max(0, round(progress))))})


def category_completed(state: FlowState, category: str) -> FlowState:
    if category in state.completed_categories:
        return state
    return state.model_copy(update={
        "completed_categories": [*state.completed_categories, category],
    })
