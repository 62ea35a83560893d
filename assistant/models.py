"""Clarification question data structures."""

import re
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

__all__ = [
    "QuestionOption",
    "ClarificationQuestion",
    "new_question_id",
    "slugify_option",
    "MIN_OPTIONS",
    "MAX_OPTIONS",
]

MIN_OPTIONS = 2
MAX_OPTIONS = 6


def new_question_id() -> str:
    """Fresh id for a question at the moment it is shown to the user."""
    return f"question_{uuid.uuid4().hex[:12]}"


def slugify_option(label: str) -> str:
    """Option value from a label: "Midnight Black" -> "midnight-black"."""
    slug = re.sub(r"[^a-z0-9]+", "-", label.lower()).strip("-")
    return slug


@dataclass(frozen=True)
class QuestionOption:
    """One selectable answer: a machine value and a display label."""

    value: str
    label: str

    def to_dict(self) -> Dict[str, str]:
        return {"value": self.value, "label": self.label}

    @classmethod
    def from_raw(cls, raw: Any) -> Optional["QuestionOption"]:
        """Build from a model-produced option.

        Accepts {"value": ..., "label": ...} or a bare label string.
        Returns None when there is no usable label.
        """
        if isinstance(raw, str):
            label = raw.strip()
            value = slugify_option(label)
        elif isinstance(raw, dict):
            label = str(raw.get("label") or raw.get("value") or "").strip()
            value = str(raw.get("value") or "").strip().lower() or slugify_option(label)
        else:
            return None
        if not label or not value:
            return None
        return cls(value=value, label=label)


@dataclass(frozen=True)
class ClarificationQuestion:
    """A multiple-choice question that narrows the candidate products.

    Immutable once created; answers refer to it by ``id``.
    """

    id: str
    question: str
    options: Tuple[QuestionOption, ...] = field(default_factory=tuple)

    def option_label(self, value: str) -> Optional[str]:
        """Label of the option with ``value`` (None if no such option)."""
        for option in self.options:
            if option.value == value:
                return option.label
        return None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "id": self.id,
            "question": self.question,
            "options": [o.to_dict() for o in self.options],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClarificationQuestion":
        """Create from dictionary."""
        options: List[QuestionOption] = []
        for raw in data.get("options", []):
            option = QuestionOption.from_raw(raw)
            if option is not None:
                options.append(option)
        return cls(
            id=data.get("id", ""),
            question=data.get("question", ""),
            options=tuple(options),
        )
