from __future__ import annotations

from lecture_ai.core.config import Settings
from lecture_ai.services.llm.base import GenerationResult, Generator
from lecture_ai.services.llm.heuristic import HeuristicGenerator
from lecture_ai.services.llm.openai_client import OpenAIGenerator


def build_generator(settings: Settings) -> Generator:
    provider = settings.generator_provider
    if provider == "heuristic":
        return HeuristicGenerator(
            max_transcript_chars=settings.transcript_max_chars,
            min_quiz_questions=settings.quiz_min_questions,
        )
    if provider == "openai":
        return OpenAIGenerator(
            api_key=settings.openai_api_key,
            default_model=settings.openai_model,
            timeout_sec=settings.openai_timeout_sec,
            max_retries=settings.openai_max_retries,
            max_transcript_chars=settings.transcript_max_chars,
            min_quiz_questions=settings.quiz_min_questions,
        )
    raise ValueError(f"Unknown GENERATOR_PROVIDER: {provider}")


__all__ = ["GenerationResult", "Generator", "HeuristicGenerator", "OpenAIGenerator", "build_generator"]
