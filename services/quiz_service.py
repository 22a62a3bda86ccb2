"""Quiz Instance Controller.

Selects the served subset of a bank and drives the session through
Generated -> InstanceSelected -> InProgress. Submission is handled by the
scoring service.
"""

from dataclasses import dataclass
from typing import List

from logger import get_logger
from services.session_store import SessionStore
from utils.config import ALLOWED_QUESTION_COUNTS
from utils.errors import AlreadySubmitted, InvalidTransition, ValidationError
from utils.models import Question, QuizSession, SessionStatus

logger = get_logger(__name__)


@dataclass(frozen=True)
class PublicQuestion:
    """A question as served to the client, without its answer key."""

    id: str
    question: str
    options: List[str]

    @classmethod
    def from_question(cls, question: Question) -> "PublicQuestion":
        return cls(id=question.id, question=question.question, options=list(question.options))


@dataclass(frozen=True)
class QuizInstance:
    session_id: str
    file_name: str
    questions: List[PublicQuestion]
    time_per_question: int

    @property
    def total_questions(self) -> int:
        return len(self.questions)


def ensure_not_submitted(session: QuizSession) -> None:
    if session.status == SessionStatus.SUBMITTED:
        raise AlreadySubmitted(
            f"This quiz has already been submitted (result {session.result_id})"
        )


def to_instance(session: QuizSession) -> QuizInstance:
    return QuizInstance(
        session_id=session.session_id,
        file_name=session.file_name,
        questions=[PublicQuestion.from_question(q) for q in session.instance_questions()],
        time_per_question=session.time_per_question,
    )


class QuizService:
    def __init__(self, session_store: SessionStore):
        self.session_store = session_store

    @staticmethod
    def validate_count(requested_count: int) -> None:
        if requested_count not in ALLOWED_QUESTION_COUNTS:
            allowed = ", ".join(str(c) for c in ALLOWED_QUESTION_COUNTS)
            raise ValidationError(f"Number of questions must be one of {allowed}")

    def select_instance(
        self, session_id: str, user_id: str, requested_count: int
    ) -> QuizInstance:
        """Serves the first requested_count questions of the bank, clamped to
        the bank size. Selecting again before submission replaces the
        previous instance."""
        self.validate_count(requested_count)

        with self.session_store.lock(session_id):
            session = self.session_store.get(session_id, user_id)
            ensure_not_submitted(session)

            count = min(requested_count, session.total_questions)
            if count < requested_count:
                logger.info(
                    f"Requested {requested_count} questions, bank has {session.total_questions}; clamping"
                )
            session.instance_question_ids = [q.id for q in session.questions[:count]]
            session.status = SessionStatus.INSTANCE_SELECTED
            self.session_store.put(session)

        logger.info(f"Session {session_id[:8]}... started with {count} questions")
        return to_instance(session)

    def resume(self, session_id: str, user_id: str) -> QuizInstance:
        """Re-serves the current instance, e.g. after a page reload."""
        session = self.session_store.get(session_id, user_id)
        ensure_not_submitted(session)
        if session.status == SessionStatus.GENERATED:
            raise InvalidTransition("Quiz has not been started yet")
        self.session_store.touch(session_id, user_id)
        return to_instance(session)

    def record_progress(self, session_id: str, user_id: str) -> SessionStatus:
        """Heartbeat from the client timer: refreshes the idle window and
        marks the attempt as in progress."""
        with self.session_store.lock(session_id):
            session = self.session_store.get(session_id, user_id)
            ensure_not_submitted(session)
            if session.status == SessionStatus.GENERATED:
                raise InvalidTransition("Quiz has not been started yet")
            if session.status == SessionStatus.INSTANCE_SELECTED:
                session.status = SessionStatus.IN_PROGRESS
                self.session_store.put(session)
            else:
                self.session_store.touch(session_id, user_id)
        return session.status

    def abandon(self, session_id: str, user_id: str) -> None:
        with self.session_store.lock(session_id):
            self.session_store.delete(session_id, user_id)
