"""HTTP endpoints for price checks and raw scraping.

Flow:
1. POST /api/price-check - generate a search term, search, extract, and
   open a refinement session (first question included when needed)
2. POST /api/sessions/<id>/answers - answer or clear a question
3. GET /api/sessions/<id> - current session state

Browser and model work is handed to the app's AsyncRunner.
"""

import concurrent.futures
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, Tuple, Union

from flask import Blueprint, Response, current_app, jsonify, request

from scraper.config import DEFAULT_SITE_URL
from scraper.models import ScrapeOptions
from scraper.scraper import scrape, scrape_multiple
from scraper.site_configs import get_site_configs

from .clarification import ClarificationEngine
from .generation import TextGenerationService
from .logging_utils import log_interaction
from .price_check import RequestDetails, run_price_check, should_search
from .refinement import RefinementClosedError, UnknownQuestionError
from .runner import AsyncRunner
from .sessions import SessionStore

__all__ = ["api", "AssistantServices", "get_services", "EXTENSION_KEY"]

logger = logging.getLogger(__name__)

EXTENSION_KEY = "price_assistant"

api = Blueprint("api", __name__, url_prefix="/api")

ApiResponse = Union[Tuple[Response, int], Response]


@dataclass
class AssistantServices:
    """Collaborators shared by all requests of one app."""

    runner: AsyncRunner
    generator: TextGenerationService
    engine: ClarificationEngine
    sessions: SessionStore


def get_services() -> AssistantServices:
    return current_app.extensions[EXTENSION_KEY]


def _json_body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _timeout_response(what: str) -> ApiResponse:
    logger.error(f"{what} timed out")
    return jsonify({"error": f"{what} timed out"}), 504


@api.route("/price-check", methods=["POST"])
def start_price_check() -> ApiResponse:
    """Start a price check from free-text request.

    Body: {"request_text": str, "site_url"?: str, "details"?: {...}}
    """
    data = _json_body()
    request_text = (data.get("request_text") or "").strip()
    if not request_text:
        return jsonify({"error": "request_text is required"}), 400

    details = None
    if isinstance(data.get("details"), dict):
        details = RequestDetails.from_dict(data["details"])

    if not should_search(request_text, has_request_context=details is not None):
        return jsonify({"error": "request_text does not look like a product search"}), 400

    site_url = data.get("site_url") or DEFAULT_SITE_URL
    services = get_services()

    log_interaction(
        "price_check_request",
        {"request_text": request_text, "site_url": site_url, "has_details": details is not None},
    )

    try:
        check = services.runner.run(
            lambda pool: run_price_check(
                request_text,
                pool,
                services.generator,
                engine=services.engine,
                site_url=site_url,
                details=details,
            )
        )
    except concurrent.futures.TimeoutError:
        return _timeout_response("Price check")

    if check.session is None:
        return jsonify(check.to_dict()), 502

    services.sessions.add(check)
    return jsonify(check.to_dict())


@api.route("/sessions/<session_id>", methods=["GET"])
def get_session(session_id: str) -> ApiResponse:
    check = get_services().sessions.get(session_id)
    if check is None:
        return jsonify({"error": f"Unknown session: {session_id}"}), 404
    return jsonify(check.to_dict())


@api.route("/sessions/<session_id>/answers", methods=["POST"])
def submit_answer(session_id: str) -> ApiResponse:
    """Answer a question. An empty answer clears a previous one.

    Body: {"question_id": str, "answer": str}
    """
    services = get_services()
    check = services.sessions.get(session_id)
    if check is None or check.session is None:
        return jsonify({"error": f"Unknown session: {session_id}"}), 404

    data = _json_body()
    question_id = data.get("question_id")
    if not question_id:
        return jsonify({"error": "question_id is required"}), 400
    answer = data.get("answer") or ""
    if not isinstance(answer, str):
        return jsonify({"error": "answer must be a string"}), 400

    session = check.session
    try:
        services.runner.run(lambda pool: session.submit_answer(question_id, answer))
    except UnknownQuestionError:
        return jsonify({"error": f"Unknown question: {question_id}"}), 404
    except RefinementClosedError as e:
        return jsonify({"error": str(e)}), 409
    except concurrent.futures.TimeoutError:
        return _timeout_response("Answer processing")

    return jsonify(check.to_dict())


@api.route("/scrape", methods=["POST"])
def scrape_url() -> ApiResponse:
    """Scrape one URL.

    Body: ScrapeOptions fields ({"url": str, "selectors"?: [...], ...})
    """
    data = _json_body()
    if not data.get("url"):
        return jsonify({"error": "url is required"}), 400

    options = ScrapeOptions.from_dict(data)
    try:
        result = get_services().runner.run(lambda pool: scrape(pool, options))
    except concurrent.futures.TimeoutError:
        return _timeout_response("Scrape")

    return jsonify(result.to_dict()), (200 if result.success else 502)


@api.route("/scrape-multiple", methods=["POST"])
def scrape_urls() -> ApiResponse:
    """Scrape several URLs in order with shared options.

    Body: {"urls": [str, ...], ...ScrapeOptions fields}
    """
    data = _json_body()
    urls = data.get("urls")
    if not isinstance(urls, list) or not urls:
        return jsonify({"error": "urls must be a non-empty list"}), 400

    options = replace(ScrapeOptions.from_dict(data), url="")
    try:
        results = get_services().runner.run(
            lambda pool: scrape_multiple(pool, [str(u) for u in urls], options)
        )
    except concurrent.futures.TimeoutError:
        return _timeout_response("Scrape")

    return jsonify({"results": [r.to_dict() for r in results]})


@api.route("/sites", methods=["GET"])
def list_sites() -> Response:
    """Site extraction configurations currently registered."""
    return jsonify({"sites": [c.to_dict() for c in get_site_configs()]})
