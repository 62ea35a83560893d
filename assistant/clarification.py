"""Clarification engine: decide whether to ask, then ask once.

A turn has two phases. Phase A is a cheap necessity check on the
candidate set (count and price uniformity, optionally confirmed by the
model once questions have been asked). Phase B asks the model for one
question and discards it if it repeats a topic already covered.
"""

import logging
import re
from dataclasses import replace
from typing import Dict, Optional, Sequence

from scraper.models import ProductRecord

from .config import LLM_SANITY_CHECK
from .generation import TextGenerationService
from .logging_utils import log_interaction
from .models import ClarificationQuestion, new_question_id
from .prompts import unique_prices

__all__ = [
    "TOPIC_KEYWORDS",
    "ClarificationEngine",
    "find_duplicate",
    "is_clarification_needed",
    "is_duplicate_question",
]

logger = logging.getLogger(__name__)

# Words that name the feature a question is about. Two questions sharing
# one of these ask about the same thing.
TOPIC_KEYWORDS = frozenset(
    {
        "condition",
        "colour",
        "color",
        "storage",
        "capacity",
        "size",
        "edition",
        "network",
        "grade",
        "console",
        "phone",
        "tablet",
        "laptop",
        "watch",
        "controller",
        "version",
    }
)

_WORD_RE = re.compile(r"[a-z0-9]+")
_COLOUR_WORDS = ("colour", "color")


def _topic_words(text: str) -> set:
    return {w for w in _WORD_RE.findall(text.lower()) if w in TOPIC_KEYWORDS}


def _mentions_colour(text: str) -> bool:
    return any(word in text for word in _COLOUR_WORDS)


def is_duplicate_question(new_text: str, asked_text: str) -> bool:
    """True when two question texts ask about the same feature."""
    new_lower = new_text.strip().lower()
    asked_lower = asked_text.strip().lower()

    if new_lower == asked_lower:
        return True
    if _topic_words(new_lower) & _topic_words(asked_lower):
        return True
    if "condition" in new_lower and "condition" in asked_lower:
        return True
    if _mentions_colour(new_lower) and _mentions_colour(asked_lower):
        return True
    return False


def find_duplicate(
    question: ClarificationQuestion,
    asked_questions: Sequence[ClarificationQuestion],
) -> Optional[ClarificationQuestion]:
    """First previously asked question that ``question`` duplicates."""
    for asked in asked_questions:
        if is_duplicate_question(question.question, asked.question):
            return asked
    return None


def is_clarification_needed(candidates: Sequence[ProductRecord]) -> bool:
    """Deterministic necessity check.

    Not needed with one candidate or none, or when every candidate that
    carries a price carries the same one. Candidates without a price do
    not count against uniformity.
    """
    if len(candidates) <= 1:
        return False
    return len(unique_prices(candidates)) != 1


class ClarificationEngine:
    """Runs Phase A and Phase B against a text generation service."""

    def __init__(
        self,
        generator: TextGenerationService,
        sanity_check: bool = LLM_SANITY_CHECK,
    ):
        self.generator = generator
        self.sanity_check = sanity_check

    async def is_needed(
        self,
        candidates: Sequence[ProductRecord],
        asked_questions: Sequence[ClarificationQuestion],
        answers: Dict[str, str],
        request_text: str = "",
    ) -> bool:
        """Phase A. The model is consulted only after the first question,
        and only when sanity checking is enabled."""
        if not is_clarification_needed(candidates):
            return False
        if self.sanity_check and asked_questions:
            return await self.generator.check_clarification_needed(
                candidates, asked_questions, answers, request_text
            )
        return True

    async def generate(
        self,
        candidates: Sequence[ProductRecord],
        asked_questions: Sequence[ClarificationQuestion],
        answers: Dict[str, str],
        request_text: str = "",
    ) -> Optional[ClarificationQuestion]:
        """Phase B. Returns a question with a fresh id, or None when the
        model gives none or repeats an earlier topic."""
        question = await self.generator.generate_clarification_question(
            candidates, asked_questions, answers, request_text
        )
        if question is None:
            return None

        duplicate = find_duplicate(question, asked_questions)
        if duplicate is not None:
            logger.info(
                f"Discarding duplicate question {question.question!r} "
                f"(already asked {duplicate.question!r})"
            )
            log_interaction(
                "refinement_duplicate_question",
                {"question": question.question, "duplicate_of": duplicate.question},
            )
            return None

        return replace(question, id=new_question_id())

    async def next_question(
        self,
        candidates: Sequence[ProductRecord],
        asked_questions: Sequence[ClarificationQuestion],
        answers: Dict[str, str],
        request_text: str = "",
    ) -> Optional[ClarificationQuestion]:
        """One full turn: Phase A, then Phase B if needed."""
        if not await self.is_needed(candidates, asked_questions, answers, request_text):
            return None
        return await self.generate(candidates, asked_questions, answers, request_text)

