"""JSONL interaction log for the price assistant.

Every model call, raw reply, parse failure and refinement transition is
appended as one JSON object per line to
``assistant/logs/llm_interactions_YYYYMMDD.jsonl``.
"""

import json
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Optional

__all__ = ["log_interaction", "interaction_log_path", "LOG_DIR"]

LOG_DIR = Path(__file__).resolve().parent / "logs"


def interaction_log_path(day: Optional[datetime] = None) -> Path:
    stamp = (day or datetime.now()).strftime("%Y%m%d")
    return LOG_DIR / f"llm_interactions_{stamp}.jsonl"


def log_interaction(event_type: str, data: Mapping[str, Any]) -> None:
    """Append one event; ``data`` keys sit beside ``timestamp`` and ``event_type``.

    Args:
        event_type: e.g. llm_call_clarification, refinement_answer
        data: Event fields (anything not JSON-native is stringified)
    """
    entry = {"timestamp": datetime.now().isoformat(), "event_type": event_type}
    entry.update(data)
    LOG_DIR.mkdir(parents=True, exist_ok=True)
    with open(interaction_log_path(), "a", encoding="utf-8") as f:
        f.write(json.dumps(entry, ensure_ascii=False, default=str) + "\n")
