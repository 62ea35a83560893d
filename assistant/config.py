"""Centralized configuration for the price assistant."""

import os

# LLM Configuration. Any OpenAI-compatible endpoint works (e.g. Groq).
LLM_MODEL = os.getenv("LLM_MODEL", "gpt-4o-mini")
LLM_BASE_URL = os.getenv("LLM_BASE_URL") or None
# Falls back to OPENAI_API_KEY when unset
LLM_API_KEY = os.getenv("LLM_API_KEY") or None
LLM_TEMPERATURE = float(os.getenv("LLM_TEMPERATURE", "0.3"))
LLM_TIMEOUT_S = float(os.getenv("LLM_TIMEOUT_S", "30"))

# Token limits per task
SEARCH_TERM_MAX_TOKENS = 100  # short replies for tooling
SANITY_CHECK_MAX_TOKENS = 100  # {"question": null} or {"question": "needed"}
CLARIFICATION_MAX_TOKENS = 500  # structured JSON needs more room

# Ask the LLM to confirm a question is worth asking once history exists
LLM_SANITY_CHECK = os.getenv("LLM_SANITY_CHECK", "False").lower() == "true"

# Flask app settings (allow env overrides; default debug off for safety)
FLASK_HOST = os.getenv("FLASK_HOST", "0.0.0.0")
FLASK_PORT = int(os.getenv("FLASK_PORT", os.getenv("PORT", "5000")))
FLASK_DEBUG = os.getenv("FLASK_DEBUG", "False").lower() == "true"

# How long a request thread waits for the browser/LLM work it submitted
RUNNER_TIMEOUT_S = float(os.getenv("RUNNER_TIMEOUT_S", "120"))
