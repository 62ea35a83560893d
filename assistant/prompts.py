"""Prompt building for the text generation tasks.

Three tasks share the model:
1. Search term generation from a free-text request
2. Sanity check: is another clarification question worth asking?
3. Clarification question generation from the candidate product titles
"""

import json
import logging
from typing import Dict, List, Optional, Sequence

from scraper.models import ProductRecord

from .models import ClarificationQuestion

__all__ = [
    "SEARCH_TERM_SYSTEM_PROMPT",
    "SANITY_CHECK_SYSTEM_PROMPT",
    "QUESTION_SYSTEM_PROMPT",
    "build_search_term_prompt",
    "build_sanity_check_prompt",
    "build_question_prompt",
    "unique_prices",
]

logger = logging.getLogger(__name__)


SEARCH_TERM_SYSTEM_PROMPT = """You are a search term generator. Your job is to convert user requests into concise, effective search terms for e-commerce websites.
- Extract the key product/item information from the user's request
- Create a search term that would be effective for finding that item on a resale marketplace like CeX/Webuy
- Keep it concise (1-5 words typically)
- Use common product names and model numbers if mentioned
- Return ONLY the search term, nothing else"""


SANITY_CHECK_SYSTEM_PROMPT = """Analyze the filtered products and previous answers to determine if another question is needed.

Check:
1. Do all products have the same price? If yes, return null
2. Can you identify the product without more questions? If yes, return null
3. Would another question be redundant given previous answers? If yes, return null
4. Is there a NEW distinguishing feature that hasn't been asked about? If yes, return "needed"

Return ONLY: {"question": null} if no question needed, OR {"question": "needed"} if a question is needed."""


QUESTION_SYSTEM_PROMPT = """You are a product refinement assistant. Analyze the product titles and ask questions for clarification if needed.

Return ONLY valid JSON in this exact format:
{
  "question": {
    "id": "question_1",
    "question": "What colour is it?",
    "options": [
      {"value": "white", "label": "White"},
      {"value": "midnight-black", "label": "Midnight Black"}
    ]
  }
}

OR if no question is needed:
{
  "question": null
}

Rules:
- Generate ONE question at a time, OR return null if no question needed
- Questions should be based ONLY on what you see in the product titles, never on prices
- Each question should have 2-6 options, and every option should appear in at least one title
- Option values: lowercase, hyphens (e.g., "midnight-black")
- Option labels: proper capitalization, worded as in the titles (e.g., "Midnight Black")
- Return format: {"question": {...}} OR {"question": null}"""


def unique_prices(products: Sequence[ProductRecord]) -> List[str]:
    """Distinct non-empty prices in first-seen order."""
    seen: List[str] = []
    for p in products:
        if p.price and p.price not in seen:
            seen.append(p.price)
    return seen


def _products_json(products: Sequence[ProductRecord]) -> str:
    return json.dumps(
        [{"title": p.title, "price": p.price} for p in products],
        indent=2,
        ensure_ascii=False,
    )


def _answer_label(question: ClarificationQuestion, answers: Dict[str, str]) -> str:
    answer = answers.get(question.id)
    if not answer:
        return "Not answered"
    return question.option_label(answer) or answer


def build_search_term_prompt(request_text: str, context: Optional[str] = None) -> str:
    """User prompt for search term generation."""
    if context:
        return f'User request: "{request_text}"\n\nContext: {context}\n\nGenerate a search term:'
    return f'User request: "{request_text}"\n\nGenerate a search term:'


def build_sanity_check_prompt(
    products: Sequence[ProductRecord],
    asked_questions: Sequence[ClarificationQuestion],
    answers: Dict[str, str],
) -> str:
    """User prompt asking whether another question is needed."""
    context_text = ""
    if asked_questions:
        history = "\n".join(
            f"- {q.question} → {_answer_label(q, answers)}" for q in asked_questions
        )
        context_text += (
            f"\n\nPrevious questions and answers:\n{history}\n\n"
            "Check if another question would be redundant or unnecessary."
        )

    prices = unique_prices(products)
    if len(prices) == 1:
        context_text += (
            f"\n\nAll {len(products)} products have the same price: {prices[0]}. "
            "You likely don't need another question."
        )
    else:
        context_text += (
            f"\n\nProducts have {len(prices)} different prices: {', '.join(prices)}. "
            "A question may be needed to distinguish them."
        )

    return f"""Given these filtered products (already narrowed by previous answers), determine if another question is needed:

{_products_json(products)}{context_text}

Return {{"question": null}} if no question needed (all same price, or question would be redundant), or {{"question": "needed"}} if a question is needed."""


def build_question_prompt(
    products: Sequence[ProductRecord],
    asked_questions: Sequence[ClarificationQuestion],
    request_text: str = "",
) -> str:
    """User prompt asking for the next clarification question."""
    context_text = ""
    if asked_questions:
        history = "\n".join(f"- {q.question}" for q in asked_questions)
        context_text += f"\n\nPrevious questions asked:\n{history}\n\nDo not ask similar questions."

    if request_text:
        context_text += (
            f'\n\nUser\'s original request: "{request_text}"\n'
            "Do not ask about features already specified."
        )

    prices = unique_prices(products)
    if len(prices) == 1:
        context_text += (
            f"\n\nAll products have the same price ({prices[0]}). "
            "You may return null if no question is needed."
        )
    else:
        context_text += f"\n\nProducts have different prices: {', '.join(prices)}"

    return f"""Analyze these product titles and ask questions for clarification if needed:

{_products_json(products)}{context_text}

Return ONLY the JSON: {{"question": {{...}}}} OR {{"question": null}}"""
