from __future__ import annotations

from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator, model_validator


class VideoContext(BaseModel):
    """Back-reference from a cumulative question to the video it came from."""

    subject_id: str
    video_title: str | None = None
    video_number: int
    timestamp: float | None = None


class _QuestionBase(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    question: str = Field(min_length=1)
    explanation: str | None = None
    difficulty: Literal["easy", "medium", "hard"] | None = None
    # seconds into the video where the topic appears
    timestamp: float | None = None

    # only set on questions inside a cumulative quiz
    video_context: VideoContext | None = None

    @field_validator("difficulty", mode="before")
    @classmethod
    def _lower_difficulty(cls, v: Any) -> Any:
        return v.strip().lower() if isinstance(v, str) else v


class MultipleChoiceQuestion(_QuestionBase):
    type: Literal["multiple_choice"] = "multiple_choice"
    options: list[str] = Field(min_length=2)
    correct_answer: int

    @model_validator(mode="after")
    def _answer_in_range(self) -> "MultipleChoiceQuestion":
        if not 0 <= self.correct_answer < len(self.options):
            raise ValueError(
                f"correct_answer {self.correct_answer} out of range (0..{len(self.options) - 1})"
            )
        return self


class TrueFalseQuestion(_QuestionBase):
    type: Literal["true_false"] = "true_false"
    correct_answer: bool


Question = Annotated[Union[MultipleChoiceQuestion, TrueFalseQuestion], Field(discriminator="type")]


class QuizPayload(BaseModel):
    questions: list[Question] = Field(default_factory=list)


_question_list = TypeAdapter(list[Question])
_question = TypeAdapter(Question)


def _question_items(data: Any) -> list[Any]:
    items = data.get("questions") if isinstance(data, dict) else data
    if items is None:
        return []
    if not isinstance(items, list):
        raise TypeError("quiz questions must be a list")

    fixed: list[Any] = []
    for it in items:
        if isinstance(it, dict) and "type" not in it and "questionType" in it:
            it = {**it, "type": it["questionType"]}
        fixed.append(it)
    return fixed


def parse_quiz_payload(data: Any) -> QuizPayload:
    """
    Accepts {"questions": [...]} or a bare list. Tolerates the older
    "questionType" spelling for the discriminator. Raises pydantic's
    ValidationError on malformed questions.
    """
    if isinstance(data, QuizPayload):
        return data
    return QuizPayload(questions=_question_list.validate_python(_question_items(data)))


def parse_valid_questions(data: Any) -> tuple[list[MultipleChoiceQuestion | TrueFalseQuestion], int]:
    """Like parse_quiz_payload, but drops malformed questions. Returns (questions, skipped)."""
    if isinstance(data, QuizPayload):
        return list(data.questions), 0
    valid = []
    skipped = 0
    for it in _question_items(data):
        try:
            valid.append(_question.validate_python(it))
        except ValidationError:
            skipped += 1
    return valid, skipped


def dump_questions(questions: list[MultipleChoiceQuestion | TrueFalseQuestion]) -> list[dict[str, Any]]:
    return [q.model_dump(mode="json", exclude_none=True) for q in questions]
