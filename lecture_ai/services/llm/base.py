from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol

import pydantic

from lecture_ai.core.errors import GenerationError
from lecture_ai.schemas.quiz import parse_quiz_payload


@dataclass(frozen=True)
class GenerationResult:
    # summary: str; quiz: {"questions": [...]}
    payload: Any
    model: str
    processing_time_ms: int
    tokens_used: int | None = None


class Generator(Protocol):
    name: str

    def generate(self, kind: str, transcript: str, *, model: str | None = None) -> GenerationResult:
        ...


def validate_summary(text: str) -> str:
    s = (text or "").strip()
    if not s:
        raise GenerationError("Generator returned an empty summary", kind="summary")
    return s


def validate_quiz(data: Any, min_questions: int) -> dict[str, Any]:
    """
    Parse generator output into typed questions and re-serialize it, so a
    stored quiz is always well-formed. Anything else is a GenerationError.
    """
    try:
        quiz = parse_quiz_payload(data)
    except (pydantic.ValidationError, TypeError) as e:
        raise GenerationError(f"Invalid quiz format: {e}", kind="quiz") from e

    if len(quiz.questions) < min_questions:
        raise GenerationError(
            f"Quiz must have at least {min_questions} questions (got {len(quiz.questions)})",
            kind="quiz",
        )
    return quiz.model_dump(mode="json", exclude_none=True)


def check_transcript(transcript: str, max_chars: int) -> str:
    t = (transcript or "").strip()
    if not t:
        raise GenerationError("Transcript is empty")
    if len(t) > max_chars:
        raise GenerationError(f"Transcript too long (max {max_chars} characters)")
    return t
