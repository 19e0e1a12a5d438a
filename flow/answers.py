"""Answer formatting for lead storage."""

from typing import Any, Dict, Mapping, Optional

from models.estimate_flow import AnswerEntry

ANSWER_FIELDS = ("question", "type", "answers", "options")


def _read(answer: Any, field: str) -> Any:
    if isinstance(answer, Mapping):
        return answer.get(field)
    return getattr(answer, field, None)


def _copy(value: Any) -> Any:
    return list(value) if isinstance(value, (list, tuple)) else value


def format_answers_for_json(
    answers: Optional[Mapping[str, Optional[Mapping[str, Any]]]]
) -> Dict[str, Dict[str, Dict[str, Any]]]:
    """Convert answer state into a JSON-storable dict.

    Keeps the category -> question id -> {question, type, answers, options}
    shape. Entries may be ``AnswerEntry`` models or plain mappings; the
    input is never modified.
    """
    formatted: Dict[str, Dict[str, Dict[str, Any]]] = {}
    for category, category_answers in (answers or {}).items():
        formatted[category] = {
            question_id: {field: _copy(_read(answer, field)) for field in ANSWER_FIELDS}
            for question_id, answer in (category_answers or {}).items()
        }
    return formatted


def first_answer(
    answers: Mapping[str, Mapping[str, Any]],
    category: Optional[str],
    question_id: str = "Q1"
) -> Optional[Any]:
    """First selected value for a question, if any."""
    if category is None:
        return None
    entry = (answers.get(category) or {}).get(question_id)
    if entry is None:
        return None
    values = _read(entry, "answers") or []
    return values[0] if values else None


def coerce_answers(answers: Mapping[str, Mapping[str, Any]]) -> Dict[str, Dict[str, AnswerEntry]]:
    """Normalize incoming answers to ``AnswerEntry`` models."""
    return {
        category: {
            question_id: entry if isinstance(entry, AnswerEntry) else AnswerEntry.model_validate(entry)
            for question_id, entry in (category_answers or {}).items()
        }
        for category, category_answers in answers.items()
    }
