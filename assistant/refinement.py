"""Refinement state machine: narrow candidate products by answers.

A session moves through::

    awaiting_extraction -> awaiting_answer -> (filtering -> awaiting_answer)* -> complete

Extraction results enter through ``start``; every later transition is
caused by ``submit_answer``. Candidates are always re-derived from the
full extraction result with every current answer applied in the order
the questions were asked, so clearing an answer lifts its constraint.
"""

import logging
import re
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple

from scraper.models import ProductRecord

from .clarification import ClarificationEngine, is_clarification_needed
from .logging_utils import log_interaction
from .models import ClarificationQuestion
from .prompts import unique_prices

__all__ = [
    "CONDITION_KEYWORDS",
    "RefinementClosedError",
    "RefinementOutcome",
    "RefinementPhase",
    "RefinementSession",
    "RefinementState",
    "UnknownQuestionError",
    "apply_answers",
    "filter_candidates",
    "normalize_label",
    "product_matches_answer",
]

logger = logging.getLogger(__name__)

# Normalized answer label -> words that mark that condition in a title.
# Keywords match whole words, not substrings: "box" does not match "Xbox"
# and "boxed" does not match "unboxed".
CONDITION_KEYWORDS: Dict[str, Tuple[str, ...]] = {
    "boxed": ("boxed", "box"),
    "unboxed": ("unboxed", "no box"),
    "discounted": ("discounted",),
    "refurbished": ("refurbished", "refurb"),
    "used": ("used",),
    "new": ("new",),
}

_NON_ALNUM_RE = re.compile(r"[^a-z0-9\s]")
_SPACE_RE = re.compile(r"\s+")
_MIN_WORD_LEN = 3


class UnknownQuestionError(KeyError):
    """An answer referred to a question the session never asked."""


class RefinementClosedError(RuntimeError):
    """The session cannot accept this call in its current phase."""


class RefinementPhase(str, Enum):
    AWAITING_EXTRACTION = "awaiting_extraction"
    AWAITING_ANSWER = "awaiting_answer"
    FILTERING = "filtering"
    COMPLETE = "complete"


class RefinementOutcome(str, Enum):
    RESOLVED = "resolved"  # one price determined
    NO_MATCH = "no_match"  # answers ruled out every product
    UNRESOLVED = "unresolved"  # several prices left, nothing more to ask


def normalize_label(label: str) -> str:
    """Lowercase, drop punctuation, collapse whitespace."""
    text = _NON_ALNUM_RE.sub("", label.lower())
    return _SPACE_RE.sub(" ", text).strip()


def _has_word(text: str, word: str) -> bool:
    return re.search(rf"\b{re.escape(word)}\b", text) is not None


def _condition_matches(title: str, label: str) -> bool:
    normalized = normalize_label(label)
    keywords = CONDITION_KEYWORDS.get(normalized, (normalized,))
    return any(_has_word(title, kw) for kw in keywords if kw)


def _label_words(label: str) -> List[str]:
    return [w for w in normalize_label(label).split() if len(w) >= _MIN_WORD_LEN]


def product_matches_answer(
    product: ProductRecord,
    question: ClarificationQuestion,
    label: str,
    allow_partial: bool = True,
) -> bool:
    """Whether ``product``'s title agrees with the answer ``label``.

    Condition questions use the condition keyword table. Other questions
    match the whole label, or with ``allow_partial`` any word of it.
    """
    title = product.title.lower()
    if "condition" in question.question.lower():
        return _condition_matches(title, label)

    literal = label.strip().lower()
    if literal and literal in title:
        return True
    if allow_partial:
        return any(word in title for word in _label_words(label))
    return False


def answer_label(question: ClarificationQuestion, answer: str) -> str:
    """Display label for an answer value (the value itself if free text)."""
    return question.option_label(answer) or answer


def filter_candidates(
    candidates: Sequence[ProductRecord],
    question: ClarificationQuestion,
    answer: str,
) -> List[ProductRecord]:
    """Candidates consistent with one answer, in their original order.

    For non-condition questions the whole label is tried first; single
    words of a multi-word label are used only when no title contains the
    whole label, so "Disc Edition" does not keep every "... Edition".
    """
    label = answer_label(question, answer)
    exact = [
        p for p in candidates
        if product_matches_answer(p, question, label, allow_partial=False)
    ]
    if exact or "condition" in question.question.lower():
        return exact
    return [p for p in candidates if product_matches_answer(p, question, label)]


def apply_answers(
    products: Sequence[ProductRecord],
    asked_questions: Sequence[ClarificationQuestion],
    answers: Dict[str, str],
) -> List[ProductRecord]:
    """Filter ``products`` by every answered question, in asking order."""
    candidates = list(products)
    for question in asked_questions:
        answer = answers.get(question.id)
        if answer:
            candidates = filter_candidates(candidates, question, answer)
    return candidates


@dataclass
class RefinementState:
    """Everything one session knows. Owned by exactly one session."""

    original_request_text: str = ""
    original_products: Tuple[ProductRecord, ...] = ()
    candidate_products: List[ProductRecord] = field(default_factory=list)
    asked_questions: List[ClarificationQuestion] = field(default_factory=list)
    answers: Dict[str, str] = field(default_factory=dict)
    complete: bool = False

    def question(self, question_id: str) -> Optional[ClarificationQuestion]:
        for q in self.asked_questions:
            if q.id == question_id:
                return q
        return None

    def pending_question(self) -> Optional[ClarificationQuestion]:
        """Most recent question still without an answer."""
        for q in reversed(self.asked_questions):
            if q.id not in self.answers:
                return q
        return None


class RefinementSession:
    """Drives one refinement from extracted products to an outcome.

    Example:
        session = RefinementSession(engine, request_text="PS5 console")
        await session.start(products)
        while not session.state.complete:
            q = session.current_question
            await session.submit_answer(q.id, q.options[0].value)
        print(session.outcome, session.price)
    """

    def __init__(
        self,
        engine: ClarificationEngine,
        request_text: str = "",
        session_id: Optional[str] = None,
    ):
        self.engine = engine
        self.session_id = session_id or uuid.uuid4().hex
        self.state = RefinementState(original_request_text=request_text)
        self.phase = RefinementPhase.AWAITING_EXTRACTION
        self.current_question: Optional[ClarificationQuestion] = None
        self.outcome: Optional[RefinementOutcome] = None

    @property
    def prices(self) -> List[str]:
        """Distinct prices among the current candidates."""
        return unique_prices(self.state.candidate_products)

    @property
    def price(self) -> Optional[str]:
        """The determined price once resolved."""
        if self.outcome is RefinementOutcome.RESOLVED and len(self.prices) == 1:
            return self.prices[0]
        return None

    async def start(self, products: Sequence[ProductRecord]) -> None:
        """Take the extraction result and run the first turn."""
        if self.phase is not RefinementPhase.AWAITING_EXTRACTION:
            raise RefinementClosedError("Refinement already started")

        self.state.original_products = tuple(products)
        self.state.candidate_products = list(products)
        log_interaction(
            "refinement_start",
            {
                "session_id": self.session_id,
                "request_text": self.state.original_request_text,
                "product_count": len(products),
            },
        )
        await self._advance()

    async def submit_answer(self, question_id: str, answer: Optional[str]) -> None:
        """Record (or clear, with an empty answer) the answer to a question.

        If the turn is interrupted (model error, cancellation) the session
        is rolled back to how it was before the call, still awaiting an
        answer, and the error propagates.

        Raises:
            UnknownQuestionError: ``question_id`` was never asked.
            RefinementClosedError: the session is not awaiting answers.
        """
        if self.phase is not RefinementPhase.AWAITING_ANSWER:
            raise RefinementClosedError(
                f"Session is {self.phase.value}, not awaiting answers"
            )
        question = self.state.question(question_id)
        if question is None:
            raise UnknownQuestionError(question_id)

        answers = dict(self.state.answers)
        candidates = list(self.state.candidate_products)
        asked_count = len(self.state.asked_questions)
        current = self.current_question

        self.phase = RefinementPhase.FILTERING
        try:
            await self._apply_answer(question, answer)
        except BaseException:
            self.state.answers = answers
            self.state.candidate_products = candidates
            del self.state.asked_questions[asked_count:]
            self.state.complete = False
            self.outcome = None
            self._await(current)
            logger.warning(f"Refinement {self.session_id}: answer rolled back after an error")
            raise

    async def _apply_answer(self, question: ClarificationQuestion, answer: Optional[str]) -> None:
        question_id = question.id
        value = (answer or "").strip()
        if value:
            self.state.answers[question_id] = value
        else:
            self.state.answers.pop(question_id, None)

        before = len(self.state.candidate_products)
        self.state.candidate_products = apply_answers(
            self.state.original_products,
            self.state.asked_questions,
            self.state.answers,
        )
        log_interaction(
            "refinement_answer",
            {
                "session_id": self.session_id,
                "question": question.question,
                "answer": value or None,
                "candidates_before": before,
                "candidates_after": len(self.state.candidate_products),
            },
        )
        await self._advance()

    async def _advance(self) -> None:
        candidates = self.state.candidate_products
        if len(candidates) <= 1 or not is_clarification_needed(candidates):
            self._complete()
            return

        pending = self.state.pending_question()
        if pending is not None:
            self._await(pending)
            return

        question = await self.engine.next_question(
            candidates,
            self.state.asked_questions,
            self.state.answers,
            self.state.original_request_text,
        )
        if question is None:
            self._complete()
            return

        self.state.asked_questions.append(question)
        log_interaction(
            "refinement_question",
            {
                "session_id": self.session_id,
                "question": question.to_dict(),
                "candidates": len(candidates),
            },
        )
        self._await(question)

    def _await(self, question: ClarificationQuestion) -> None:
        self.current_question = question
        self.phase = RefinementPhase.AWAITING_ANSWER

    def _complete(self) -> None:
        candidates = self.state.candidate_products
        if not candidates:
            self.outcome = RefinementOutcome.NO_MATCH
        elif len(candidates) == 1 or len(self.prices) == 1:
            self.outcome = RefinementOutcome.RESOLVED
        else:
            self.outcome = RefinementOutcome.UNRESOLVED

        self.current_question = None
        self.state.complete = True
        self.phase = RefinementPhase.COMPLETE
        logger.info(
            f"Refinement {self.session_id} complete: {self.outcome.value} "
            f"({len(candidates)} candidates)"
        )
        log_interaction(
            "refinement_complete",
            {
                "session_id": self.session_id,
                "outcome": self.outcome.value,
                "price": self.price,
                "prices": self.prices,
                "candidates": len(candidates),
            },
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "session_id": self.session_id,
            "phase": self.phase.value,
            "complete": self.state.complete,
            "outcome": self.outcome.value if self.outcome else None,
            "price": self.price,
            "prices": self.prices,
            "request_text": self.state.original_request_text,
            "current_question": (
                self.current_question.to_dict() if self.current_question else None
            ),
            "asked_questions": [q.to_dict() for q in self.state.asked_questions],
            "answers": dict(self.state.answers),
            "candidates": [p.to_dict() for p in self.state.candidate_products],
            "total_products": len(self.state.original_products),
        }
