"""Text generation service: search terms and clarification questions.

Each operation calls the language model once and degrades to a safe
fallback on failure, so a flaky backend never blocks a price check:

- generate_search_term: falls back to the request text verbatim
- check_clarification_needed: falls back to True (the caller's
  deterministic check stands)
- generate_clarification_question: falls back to None ("no question")
"""

import logging
from typing import Any, Dict, Optional, Sequence

from scraper.models import ProductRecord

from .config import (
    CLARIFICATION_MAX_TOKENS,
    SANITY_CHECK_MAX_TOKENS,
    SEARCH_TERM_MAX_TOKENS,
)
from .json_parsing import parse_llm_json
from .llm_client import LLMClient
from .logging_utils import log_interaction
from .models import MAX_OPTIONS, MIN_OPTIONS, ClarificationQuestion
from .prompts import (
    QUESTION_SYSTEM_PROMPT,
    SANITY_CHECK_SYSTEM_PROMPT,
    SEARCH_TERM_SYSTEM_PROMPT,
    build_question_prompt,
    build_sanity_check_prompt,
    build_search_term_prompt,
)

__all__ = ["TextGenerationService", "clean_search_term", "question_from_payload"]

logger = logging.getLogger(__name__)

_QUOTE_CHARS = "\"'`“”‘’"


def clean_search_term(raw: str) -> str:
    """Strip whitespace and surrounding quotes from a model reply."""
    term = raw.strip().splitlines()[0] if raw.strip() else ""
    return term.strip().strip(_QUOTE_CHARS).strip()


def question_from_payload(payload: Dict[str, Any]) -> Optional[ClarificationQuestion]:
    """Pull a question out of a parsed model reply.

    Accepts ``{"question": {...}}``, ``{"question": null}`` and the older
    ``{"questions": [...]}`` shape (first entry used). Questions without
    text or with fewer than 2 / more than 6 options are rejected.
    """
    data = payload.get("question")
    if data is None and isinstance(payload.get("questions"), list):
        questions = payload["questions"]
        data = questions[0] if questions else None

    if not isinstance(data, dict):
        return None
    if not isinstance(data.get("question"), str) or not isinstance(data.get("options"), list):
        logger.info(f"Discarding malformed question payload: {data!r}")
        return None

    try:
        question = ClarificationQuestion.from_dict(data)
    except (TypeError, ValueError, AttributeError) as e:
        logger.info(f"Discarding malformed question payload: {e}")
        return None
    if not question.question.strip():
        return None
    if not MIN_OPTIONS <= len(question.options) <= MAX_OPTIONS:
        logger.info(
            f"Discarding question with {len(question.options)} options: {question.question}"
        )
        return None
    return question


class TextGenerationService:
    """The three language-model operations used by a price check."""

    def __init__(self, client: Optional[LLMClient] = None):
        self.client = client or LLMClient()

    async def generate_search_term(
        self, request_text: str, context: Optional[str] = None
    ) -> str:
        """Short search phrase for ``request_text``.

        Args:
            request_text: The user's free-text description of the item.
            context: Optional extra information (item details, expectations).

        Returns:
            The generated term, or ``request_text`` when generation fails
            or returns nothing.
        """
        prompt = build_search_term_prompt(request_text, context)
        try:
            raw = await self.client.complete(
                SEARCH_TERM_SYSTEM_PROMPT,
                prompt,
                max_tokens=SEARCH_TERM_MAX_TOKENS,
                task="search_term",
            )
        except Exception as e:
            logger.warning(f"Search term generation failed: {e}")
            log_interaction(
                "llm_error_search_term",
                {"error": str(e), "request_text": request_text},
            )
            return request_text

        term = clean_search_term(raw)
        return term or request_text

    async def check_clarification_needed(
        self,
        candidates: Sequence[ProductRecord],
        asked_questions: Sequence[ClarificationQuestion],
        answers: Dict[str, str],
        request_text: str = "",
    ) -> bool:
        """Ask the model whether another question is worth asking.

        Only ``{"question": null}`` counts as "not needed"; anything else,
        including failures and unparsable replies, returns True.
        """
        prompt = build_sanity_check_prompt(candidates, asked_questions, answers)
        try:
            raw = await self.client.complete(
                SANITY_CHECK_SYSTEM_PROMPT,
                prompt,
                max_tokens=SANITY_CHECK_MAX_TOKENS,
                task="sanity_check",
            )
        except Exception as e:
            logger.warning(f"Clarification sanity check failed: {e}")
            log_interaction("llm_error_sanity_check", {"error": str(e)})
            return True

        parsed = parse_llm_json(raw)
        if not parsed:
            log_interaction("llm_parse_error_sanity_check", {"raw_response": raw})
            return True
        return not ("question" in parsed and parsed["question"] is None)

    async def generate_clarification_question(
        self,
        candidates: Sequence[ProductRecord],
        asked_questions: Sequence[ClarificationQuestion],
        answers: Dict[str, str],
        request_text: str = "",
    ) -> Optional[ClarificationQuestion]:
        """Generate one question that tells the candidates apart.

        ``answers`` is accepted for symmetry with the sanity check; the
        prompt lists previous questions, which is what keeps the model
        from repeating itself.

        Returns:
            A validated question, or None when the model declines, fails,
            or replies with something unusable.
        """
        prompt = build_question_prompt(candidates, asked_questions, request_text)
        try:
            raw = await self.client.complete(
                QUESTION_SYSTEM_PROMPT,
                prompt,
                max_tokens=CLARIFICATION_MAX_TOKENS,
                task="clarification",
            )
        except Exception as e:
            logger.warning(f"Clarification question generation failed: {e}")
            log_interaction("llm_error_clarification", {"error": str(e)})
            return None

        parsed = parse_llm_json(raw)
        if not parsed:
            logger.info("Could not parse clarification reply")
            log_interaction("llm_parse_error_clarification", {"raw_response": raw})
            return None

        return question_from_payload(parsed)
