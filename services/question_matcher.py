"""Question-set matching.

Maps a free-text project description onto the category catalog and
returns the question sets to ask. The flow controller depends only on
``QuestionSetMatcher``; ``KeywordQuestionSetMatcher`` is the default.
"""

import re
from abc import ABC, abstractmethod
from typing import Dict, List, Sequence

import structlog

from models.estimate_flow import Category, CategoryQuestions, Question, QuestionSetMatch

logger = structlog.get_logger()

_TOKEN_RE = re.compile(r"[a-z0-9]+")


class QuestionSetMatcher(ABC):
    """Finds and consolidates question sets for a description."""

    @abstractmethod
    async def find_matching_question_sets(
        self,
        description: str,
        categories: Sequence[Category]
    ) -> List[QuestionSetMatch]:
        """Return candidate question sets for the description."""

    @abstractmethod
    def consolidate_question_sets(
        self,
        matches: Sequence[QuestionSetMatch],
        description: str
    ) -> List[CategoryQuestions]:
        """Collapse candidates into ordered per-category question sets."""


def _tokenize(text: str) -> List[str]:
    return _TOKEN_RE.findall(text.lower())


def _keyword_hits(keyword: str, text: str, tokens: List[str]) -> bool:
    keyword = keyword.strip().lower()
    if not keyword:
        return False
    if " " in keyword:
        return keyword in text
    # "leak" matches "leaky" and "leaking"
    return any(token.startswith(keyword) for token in tokens)


class KeywordQuestionSetMatcher(QuestionSetMatcher):
    """Scores categories by keyword hits in the description.

    A category's name counts as a keyword. Categories with no hits, or
    with no questions to ask, are never returned.
    """

    def __init__(self, min_score: float = 1.0):
        self.min_score = min_score

    async def find_matching_question_sets(
        self,
        description: str,
        categories: Sequence[Category]
    ) -> List[QuestionSetMatch]:
        text = " ".join(_tokenize(description))
        tokens = text.split()
        if not tokens:
            return []

        matches: List[QuestionSetMatch] = []
        for category in categories:
            keywords = [category.name, *category.keywords]
            hits = [kw for kw in keywords if _keyword_hits(kw, text, tokens)]
            # Name and keyword may both hit on the same word
            hits = list(dict.fromkeys(kw.lower() for kw in hits))
            if len(hits) < self.min_score:
                continue
            matches.append(QuestionSetMatch(
                category=category.name,
                score=float(len(hits)),
                matched_keywords=hits,
                questions=list(category.questions),
            ))

        logger.debug(
            "question_sets_matched",
            candidates=[(m.category, m.score) for m in matches]
        )
        return matches

    def consolidate_question_sets(
        self,
        matches: Sequence[QuestionSetMatch],
        description: str
    ) -> List[CategoryQuestions]:
        by_category: Dict[str, QuestionSetMatch] = {}
        questions: Dict[str, Dict[str, Question]] = {}

        for match in matches:
            best = by_category.get(match.category)
            if best is None or match.score > best.score:
                by_category[match.category] = match
            bucket = questions.setdefault(match.category, {})
            for question in match.questions:
                bucket.setdefault(question.id, question)

        ranked = sorted(by_category.values(), key=lambda m: m.score, reverse=True)
        consolidated = [
            CategoryQuestions(
                category=match.category,
                questions=list(questions[match.category].values()),
            )
            for match in ranked
            if questions[match.category]
        ]

        logger.info(
            "question_sets_consolidated",
            description_length=len(description),
            categories=[c.category for c in consolidated]
        )
        return consolidated
