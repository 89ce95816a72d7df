from __future__ import annotations

import re
import time
from typing import Any

from lecture_ai.core.errors import GenerationError
from lecture_ai.services.llm.base import GenerationResult, check_transcript, validate_quiz, validate_summary

_DISTRACTORS = ["Not mentioned in the video", "The opposite of what the video states", "An unrelated detail"]


def _clean_text(text: str) -> str:
    return re.sub(r"\s+", " ", text or "").strip()


def _chunk_words(text: str, chunk_words: int = 20) -> list[str]:
    words = [w for w in (text or "").split() if w]
    return [" ".join(words[i : i + chunk_words]).strip() for i in range(0, len(words), chunk_words)]


def _simple_sentence_split(text: str, want: int) -> list[str]:
    """
    Punctuation split first; transcripts without punctuation (auto captions)
    fall back to fixed-size word chunks.
    """
    text = _clean_text(text)
    if not text:
        return []
    parts = [p.strip() for p in re.split(r"(?<=[.!?])\s+", text) if p.strip()]
    if len(parts) < want:
        chunked = _chunk_words(text, chunk_words=max(6, len(text.split()) // max(want, 1)))
        if len(chunked) > len(parts):
            parts = chunked
    return parts


class HeuristicGenerator:
    """
    Deterministic, offline generator. Useful for local development and as a
    stand-in when no OpenAI key is configured; output quality is minimal but
    passes the same shape validation as the real provider.
    """

    name = "heuristic"
    default_model = "heuristic-v1"

    def __init__(self, max_transcript_chars: int = 50000, min_quiz_questions: int = 5) -> None:
        self.max_transcript_chars = max_transcript_chars
        self.min_quiz_questions = min_quiz_questions

    @property
    def configured(self) -> bool:
        return True

    def _quiz(self, sents: list[str]) -> dict[str, Any]:
        questions: list[dict[str, Any]] = []
        for i, s in enumerate(sents[:10]):
            if i % 3 == 2:
                questions.append(
                    {
                        "id": f"q{i + 1}",
                        "type": "true_false",
                        "question": f"True or false: the video states that \"{s}\"",
                        "correct_answer": True,
                        "explanation": "This statement appears in the transcript.",
                        "difficulty": "easy",
                    }
                )
                continue
            answer_index = i % 4
            options = list(_DISTRACTORS)
            options.insert(answer_index, s)
            questions.append(
                {
                    "id": f"q{i + 1}",
                    "type": "multiple_choice",
                    "question": f"Which of the following best matches a point made in the video? (#{i + 1})",
                    "options": options,
                    "correct_answer": answer_index,
                    "explanation": "Only this option is taken from the transcript.",
                    "difficulty": "medium",
                }
            )
        return {"questions": questions}

    def generate(self, kind: str, transcript: str, *, model: str | None = None) -> GenerationResult:
        started = time.monotonic()
        text = check_transcript(transcript, self.max_transcript_chars)

        if kind == "summary":
            sents = _simple_sentence_split(text, want=3)
            payload: Any = validate_summary(" ".join(sents[:3]) if sents else text[:400])
        elif kind == "quiz":
            sents = _simple_sentence_split(text, want=self.min_quiz_questions)
            payload = validate_quiz(self._quiz(sents), self.min_quiz_questions)
        else:
            raise GenerationError(f"Unsupported artifact kind: {kind}", kind=kind)

        return GenerationResult(
            payload=payload,
            model=self.default_model,
            processing_time_ms=int((time.monotonic() - started) * 1000),
        )
