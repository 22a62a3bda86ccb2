"""Request and response models of the quiz HTTP API (camelCase on the wire)."""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from utils.models import DetailedAnswer, HistoryStatistics, QuizResult
from services.quiz_service import QuizInstance


class ApiModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class GenerateQuizResponse(ApiModel):
    session_id: str
    file_name: str
    file_size: int
    total_questions: int


class StartQuizRequest(ApiModel):
    session_id: str = Field(..., min_length=1)
    number_of_questions: int


class QuestionOut(ApiModel):
    id: str
    question: str
    options: List[str]


class StartQuizResponse(ApiModel):
    session_id: str
    file_name: str
    questions: List[QuestionOut]
    total_questions: int
    time_per_question: int

    @classmethod
    def from_instance(cls, instance: QuizInstance) -> "StartQuizResponse":
        return cls(
            session_id=instance.session_id,
            file_name=instance.file_name,
            questions=[
                QuestionOut(id=q.id, question=q.question, options=q.options)
                for q in instance.questions
            ],
            total_questions=instance.total_questions,
            time_per_question=instance.time_per_question,
        )


class ProgressRequest(ApiModel):
    session_id: str = Field(..., min_length=1)


class ProgressResponse(ApiModel):
    session_id: str
    status: str


class AnswerIn(ApiModel):
    question_id: str
    selected_answer: Optional[int] = None


class SubmitQuizRequest(ApiModel):
    session_id: str = Field(..., min_length=1)
    answers: List[AnswerIn] = Field(default_factory=list)
    time_spent: int = Field(default=0, ge=0)


class DetailedAnswerOut(ApiModel):
    question_id: str
    question: str
    options: List[str]
    user_answer: int
    correct_answer: int
    is_correct: bool
    explanation: str

    @classmethod
    def from_answer(cls, answer: DetailedAnswer) -> "DetailedAnswerOut":
        return cls(**answer.model_dump())


class SubmitQuizResponse(ApiModel):
    result_id: str
    total_questions: int
    correct_answers: int
    wrong_answers: int
    percentage: int
    time_spent: int
    detailed_answers: List[DetailedAnswerOut]

    @classmethod
    def from_result(cls, result: QuizResult) -> "SubmitQuizResponse":
        return cls(
            result_id=result.id,
            total_questions=result.total_questions,
            correct_answers=result.correct_answers,
            wrong_answers=result.wrong_answers,
            percentage=result.percentage,
            time_spent=result.time_spent,
            detailed_answers=[DetailedAnswerOut.from_answer(a) for a in result.detailed_answers],
        )


class QuizResultOut(ApiModel):
    id: str
    file_name: str
    total_questions: int
    correct_answers: int
    wrong_answers: int
    percentage: int
    time_spent: int
    completed_at: datetime
    detailed_answers: List[DetailedAnswerOut]

    @classmethod
    def from_result(cls, result: QuizResult) -> "QuizResultOut":
        return cls(
            id=result.id,
            file_name=result.file_name,
            total_questions=result.total_questions,
            correct_answers=result.correct_answers,
            wrong_answers=result.wrong_answers,
            percentage=result.percentage,
            time_spent=result.time_spent,
            completed_at=result.completed_at,
            detailed_answers=[DetailedAnswerOut.from_answer(a) for a in result.detailed_answers],
        )


class HistoryItem(ApiModel):
    id: str
    file_name: str
    completed_at: datetime
    total_questions: int
    percentage: int
    time_spent: int


class HistoryStatisticsOut(ApiModel):
    total_quizzes: int
    average_score: int
    best_score: int

    @classmethod
    def from_statistics(cls, stats: HistoryStatistics) -> "HistoryStatisticsOut":
        return cls(**stats.model_dump())


class Pagination(ApiModel):
    page: int
    limit: int
    total: int


class HistoryResponse(ApiModel):
    results: List[HistoryItem]
    statistics: HistoryStatisticsOut
    pagination: Pagination
