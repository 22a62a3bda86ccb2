"""Domain models for question banks, quiz sessions and results."""

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictInt,
    field_validator,
    model_validator,
)

from utils.config import OPTIONS_PER_QUESTION, TIME_PER_QUESTION, UNANSWERED


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SessionStatus(str, Enum):
    GENERATED = "generated"
    INSTANCE_SELECTED = "instance_selected"
    IN_PROGRESS = "in_progress"
    SUBMITTED = "submitted"


class Question(BaseModel):
    """A single multiple-choice question with its answer key."""

    model_config = ConfigDict(frozen=True)

    id: str
    question: str
    options: List[str]
    # bools and numeric strings are rejected, not coerced
    correct_answer: StrictInt
    explanation: str = ""

    @field_validator("question")
    @classmethod
    def question_not_blank(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("question text is empty")
        return value

    @field_validator("options")
    @classmethod
    def options_not_blank(cls, value: List[str]) -> List[str]:
        options = [option.strip() for option in value]
        if any(not option for option in options):
            raise ValueError("option text is empty")
        return options

    @model_validator(mode="after")
    def check_answer_key(self):
        if len(self.options) != OPTIONS_PER_QUESTION:
            raise ValueError(
                f"expected {OPTIONS_PER_QUESTION} options, got {len(self.options)}"
            )
        if not 0 <= self.correct_answer < len(self.options):
            raise ValueError(f"correct_answer {self.correct_answer} out of range")
        return self


class QuizSession(BaseModel):
    """Live state for one generated document: the bank plus the selected
    instance. A submitted session is kept as a tombstone without questions."""

    session_id: str
    user_id: str
    file_name: str
    file_size: int
    created_at: datetime = Field(default_factory=utc_now)
    status: SessionStatus = SessionStatus.GENERATED
    questions: List[Question] = Field(default_factory=list)
    instance_question_ids: List[str] = Field(default_factory=list)
    time_per_question: int = TIME_PER_QUESTION
    result_id: Optional[str] = None

    @property
    def total_questions(self) -> int:
        return len(self.questions)

    def instance_questions(self) -> List[Question]:
        by_id = {question.id: question for question in self.questions}
        return [by_id[question_id] for question_id in self.instance_question_ids]


class DetailedAnswer(BaseModel):
    question_id: str
    question: str
    options: List[str]
    user_answer: int = UNANSWERED
    correct_answer: int
    is_correct: bool
    explanation: str = ""


class QuizResult(BaseModel):
    """Immutable record of one scored attempt."""

    model_config = ConfigDict(frozen=True)

    id: str
    user_id: str
    session_id: str
    file_name: str
    total_questions: int
    correct_answers: int
    wrong_answers: int
    percentage: int
    time_spent: int
    completed_at: datetime = Field(default_factory=utc_now)
    detailed_answers: List[DetailedAnswer] = Field(default_factory=list)


class HistoryStatistics(BaseModel):
    total_quizzes: int = 0
    average_score: int = 0
    best_score: int = 0
