"""Scoring Engine.

Scores a submission against the stored answer key, persists the result and
only then closes the session. Answers are matched by question id, so the
order of the submitted answers never matters.
"""

import uuid
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from logger import get_logger
from services.result_store import ResultStore
from services.session_store import SessionStore
from services.quiz_service import ensure_not_submitted
from utils.common import round_half_up
from utils.config import UNANSWERED
from utils.errors import InvalidTransition, ValidationError
from utils.models import DetailedAnswer, Question, QuizResult, QuizSession, SessionStatus

logger = get_logger(__name__)


@dataclass(frozen=True)
class SubmittedAnswer:
    question_id: str
    selected_answer: Optional[int] = None


@dataclass
class Submission:
    answers: List[SubmittedAnswer] = field(default_factory=list)
    time_spent: int = 0


def collect_answers(questions: List[Question], submission: Submission) -> Dict[str, int]:
    """Maps every instance question id to the selected index or UNANSWERED.

    Raises:
        ValidationError: unknown or duplicate question ids, out of range
            indexes or a negative time spent.
    """
    if submission.time_spent < 0:
        raise ValidationError("Time spent must be a non-negative integer")

    known = {question.id: len(question.options) for question in questions}
    selected: Dict[str, int] = {}
    for answer in submission.answers:
        if answer.question_id not in known:
            raise ValidationError(f"Unknown question id: {answer.question_id}")
        if answer.question_id in selected:
            raise ValidationError(f"Duplicate answer for question {answer.question_id}")

        index = UNANSWERED if answer.selected_answer is None else answer.selected_answer
        if index != UNANSWERED and not 0 <= index < known[answer.question_id]:
            raise ValidationError(
                f"Selected answer {index} out of range for question {answer.question_id}"
            )
        selected[answer.question_id] = index

    return {question.id: selected.get(question.id, UNANSWERED) for question in questions}


def score_answers(questions: List[Question], selected: Dict[str, int]) -> List[DetailedAnswer]:
    """Per-question breakdown. Unanswered always counts as wrong."""
    detailed = []
    for question in questions:
        user_answer = selected.get(question.id, UNANSWERED)
        detailed.append(
            DetailedAnswer(
                question_id=question.id,
                question=question.question,
                options=list(question.options),
                user_answer=user_answer,
                correct_answer=question.correct_answer,
                is_correct=user_answer == question.correct_answer,
                explanation=question.explanation,
            )
        )
    return detailed


def build_result(
    session: QuizSession,
    submission: Submission,
    result_id: Optional[str] = None,
) -> QuizResult:
    """Pure scoring of a submission against a session's instance."""
    questions = session.instance_questions()
    if not questions:
        raise InvalidTransition("Quiz has no selected questions")

    detailed = score_answers(questions, collect_answers(questions, submission))
    total = len(detailed)
    correct = sum(1 for answer in detailed if answer.is_correct)

    return QuizResult(
        id=result_id or uuid.uuid4().hex,
        user_id=session.user_id,
        session_id=session.session_id,
        file_name=session.file_name,
        total_questions=total,
        correct_answers=correct,
        wrong_answers=total - correct,
        percentage=round_half_up(100 * correct, total),
        time_spent=submission.time_spent,
        detailed_answers=detailed,
    )


def tombstone(session: QuizSession, result_id: str) -> QuizSession:
    """Submitted sessions keep only what is needed to reject a resubmit."""
    return session.model_copy(
        update={
            "status": SessionStatus.SUBMITTED,
            "result_id": result_id,
            "questions": [],
            "instance_question_ids": [],
        }
    )


class ScoringService:
    def __init__(self, session_store: SessionStore, result_store: ResultStore):
        self.session_store = session_store
        self.result_store = result_store

    def score(self, session_id: str, user_id: str, submission: Submission) -> QuizResult:
        """Scores, persists and closes a session exactly once.

        Raises:
            NotFound, Forbidden, InvalidTransition, AlreadySubmitted,
            ValidationError
        """
        with self.session_store.lock(session_id):
            session = self.session_store.get(session_id, user_id)
            ensure_not_submitted(session)
            if session.status == SessionStatus.GENERATED:
                raise InvalidTransition("Quiz has not been started yet")

            result = build_result(session, submission)
            self.result_store.save(result)
            self.session_store.put(tombstone(session, result.id))

        logger.info(
            f"Scored session {session_id[:8]}...: {result.correct_answers}/"
            f"{result.total_questions} ({result.percentage}%) in {result.time_spent}s"
        )
        return result
