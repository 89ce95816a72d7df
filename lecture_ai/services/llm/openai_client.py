from __future__ import annotations

import json
import re
import time
from typing import Any

import structlog

from lecture_ai.core.errors import GenerationError
from lecture_ai.services.llm.base import GenerationResult, check_transcript, validate_quiz, validate_summary
from lecture_ai.services.llm.prompts import (
    QUIZ_SYSTEM,
    QUIZ_USER_TEMPLATE,
    SUMMARY_SYSTEM,
    SUMMARY_USER_TEMPLATE,
)

log = structlog.get_logger(__name__)


# ----------------------------
# Transcript cleanup
# ----------------------------

_STAGE_DIR_RE = re.compile(
    r"""\[
        (?:\s*music\s*|\s*laughter\s*|\s*applause\s*|\s*inaudible\s*|\s*silence\s*|[^\]]{1,40})
    \]""",
    re.IGNORECASE | re.VERBOSE,
)
_CODE_FENCE_RE = re.compile(r"```(?:json)?\s*|```")


def _clean_text(text: str) -> str:
    s = (text or "").strip()
    if not s:
        return ""
    s = _STAGE_DIR_RE.sub(" ", s)
    s = re.sub(r"\s+", " ", s).strip()
    return s


def _extract_json(text: str) -> dict[str, Any]:
    """
    Best-effort JSON extraction if model returns extra text or code fences.
    """
    text = _CODE_FENCE_RE.sub("", (text or "")).strip()
    if not text:
        raise ValueError("Empty response from OpenAI")

    # Fast path
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        pass

    # Try to find outermost JSON object
    start = text.find("{")
    end = text.rfind("}")
    if start >= 0 and end > start:
        return json.loads(text[start : end + 1])

    raise ValueError(f"OpenAI returned non-JSON. First 200 chars: {text[:200]!r}")


# ----------------------------
# Client
# ----------------------------

def _build_openai_client(api_key: str | None, timeout_sec: float, max_retries: int):
    if not api_key:
        raise GenerationError("OPENAI_API_KEY is missing")

    from openai import OpenAI

    return OpenAI(api_key=api_key, timeout=timeout_sec, max_retries=max_retries)


class OpenAIGenerator:
    """
    Generator backed by the OpenAI chat completions API.

    The SDK enforces ``timeout_sec`` per request; a timeout (or any API
    error) surfaces as GenerationError so nothing partial is stored.
    """

    name = "openai"

    def __init__(
        self,
        api_key: str | None,
        default_model: str,
        timeout_sec: float = 120.0,
        max_retries: int = 2,
        max_transcript_chars: int = 50000,
        min_quiz_questions: int = 5,
        client: Any = None,
    ) -> None:
        self.default_model = default_model
        self.max_transcript_chars = max_transcript_chars
        self.min_quiz_questions = min_quiz_questions
        self._api_key = api_key
        self._timeout_sec = timeout_sec
        self._max_retries = max_retries
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self._api_key) or self._client is not None

    def _get_client(self):
        if self._client is None:
            self._client = _build_openai_client(self._api_key, self._timeout_sec, self._max_retries)
        return self._client

    def _chat(self, model: str, system: str, user: str, *, json_mode: bool, max_tokens: int):
        client = self._get_client()
        messages = [
            {"role": "system", "content": system},
            {"role": "user", "content": user},
        ]
        if json_mode:
            try:
                return client.chat.completions.create(
                    model=model,
                    messages=messages,
                    response_format={"type": "json_object"},
                    max_completion_tokens=max_tokens,
                )
            except TypeError:
                # Older SDK may not support response_format -> prompt-only JSON
                messages[-1]["content"] = user + "\n\nReturn ONLY valid JSON."
        return client.chat.completions.create(model=model, messages=messages, max_completion_tokens=max_tokens)

    def generate(self, kind: str, transcript: str, *, model: str | None = None) -> GenerationResult:
        use_model = model or self.default_model
        cleaned = check_transcript(_clean_text(transcript), self.max_transcript_chars)
        started = time.monotonic()

        try:
            if kind == "summary":
                resp = self._chat(
                    use_model,
                    SUMMARY_SYSTEM,
                    SUMMARY_USER_TEMPLATE.format(transcript=cleaned),
                    json_mode=False,
                    max_tokens=600,
                )
                payload: Any = validate_summary(resp.choices[0].message.content or "")
            elif kind == "quiz":
                resp = self._chat(
                    use_model,
                    QUIZ_SYSTEM,
                    QUIZ_USER_TEMPLATE.format(transcript=cleaned, min_questions=self.min_quiz_questions),
                    json_mode=True,
                    max_tokens=2500,
                )
                raw = (resp.choices[0].message.content or "").strip()
                payload = validate_quiz(_extract_json(raw), self.min_quiz_questions)
            else:
                raise GenerationError(f"Unsupported artifact kind: {kind}", kind=kind)
        except GenerationError as e:
            e.kind = e.kind or kind
            raise
        except Exception as e:
            log.error("openai_generation_failed", kind=kind, model=use_model, error=str(e))
            raise GenerationError(f"Failed to generate {kind}: {e}", kind=kind) from e

        usage = getattr(resp, "usage", None)
        return GenerationResult(
            payload=payload,
            model=use_model,
            processing_time_ms=int((time.monotonic() - started) * 1000),
            tokens_used=getattr(usage, "total_tokens", None),
        )
