"""Question Bank Generator.

Sends normalized document text to the configured LLM, validates the
returned questions against the Question schema and stores the resulting
bank in the Session Store under a freshly minted session id.
"""

import secrets
from typing import Any, Dict, List, Optional

from pydantic import ValidationError as PydanticValidationError

from logger import get_logger
from services.llm_service import LLMService
from services.session_store import SessionStore
from utils.chunker import DocumentChunker
from utils.common import timing_decorator
from utils.config import MAX_INPUT_WORDS, TARGET_QUESTION_COUNT
from utils.errors import (
    GenerationEmpty,
    GenerationMalformed,
    GenerationUnavailable,
    LLMServiceError,
)
from utils.models import Question, QuizSession
from utils.response_format import question_response_schema

logger = get_logger(__name__)


def new_session_id() -> str:
    """High-entropy, URL-safe session identifier."""
    return secrets.token_urlsafe(32)


class GenerateQuestionService:
    def __init__(
        self,
        llm_service: LLMService,
        session_store: SessionStore,
        target_count: int = TARGET_QUESTION_COUNT,
        max_input_words: int = MAX_INPUT_WORDS,
    ):
        """Initialize the question generation service."""
        self.llm_service = llm_service
        self.session_store = session_store
        self.target_count = target_count
        self.max_input_words = max_input_words
        self.response_schema = question_response_schema()

        logger.info("Generate Question Service initialized")

    def create_bank(
        self,
        text: str,
        user_id: str,
        file_name: str,
        file_size: int,
    ) -> QuizSession:
        """Generates a question bank and stores it as a new session.

        Returns:
            The stored session in the Generated state
        """
        questions = self.generate(text, self.target_count)
        session = QuizSession(
            session_id=new_session_id(),
            user_id=user_id,
            file_name=file_name,
            file_size=file_size,
            questions=questions,
        )
        self.session_store.put(session)
        logger.info(
            f"Created question bank with {len(questions)} questions from {file_name} "
            f"for user {user_id}"
        )
        return session

    @timing_decorator
    def generate(self, text: str, target_count: int) -> List[Question]:
        """Generates up to target_count validated questions from text.

        A response that cannot be parsed at all is retried once with a
        shorter excerpt of the text. A parseable response without a single
        valid question is not retried.

        Raises:
            GenerationMalformed, GenerationEmpty, GenerationUnavailable
        """
        context = self.build_llm_context(text, self.max_input_words)
        items = self._request_questions(context, target_count)

        if items is None:
            shorter = self.build_llm_context(text, max(1, self.max_input_words // 2))
            logger.warning(
                f"Unparseable model response, retrying with {len(shorter.split())} words"
            )
            items = self._request_questions(shorter, target_count)
            if items is None:
                raise GenerationMalformed()

        questions = self.validate_questions(items, target_count)
        if not questions:
            raise GenerationEmpty()
        return questions

    def build_llm_context(self, text: str, max_words: int) -> str:
        chunker = DocumentChunker(target_words=max_words)
        return chunker.leading_chunk(text)

    def _call_llm(self, context: str, target_count: int) -> Dict[str, Any]:
        """Calls the model, retrying exactly once on a transient failure."""
        for attempt in (1, 2):
            try:
                return self.llm_service.generate_questions(
                    context, target_count, response_schema=self.response_schema
                )
            except LLMServiceError as e:
                if e.transient and attempt == 1:
                    logger.warning(f"Transient LLM failure, retrying once: {e}")
                    continue
                logger.error(f"LLM call failed: {e}")
                raise GenerationUnavailable() from e

    def _request_questions(self, context: str, target_count: int) -> Optional[List[Any]]:
        """Returns the raw question list, or None if the response has no
        recognizable question list."""
        event = self._call_llm(context, target_count)
        response = event.get("response") if isinstance(event, dict) else None

        if isinstance(response, dict):
            response = response.get("questions")
        if not isinstance(response, list):
            logger.warning(
                f"Malformed model response (finish_reason={event.get('finish_reason') if isinstance(event, dict) else None})"
            )
            return None
        return response

    def validate_questions(self, items: List[Any], target_count: int) -> List[Question]:
        """Keeps the items that satisfy the Question schema, in order, and
        numbers them q1..qN. Invalid items are dropped, never repaired."""
        questions = []
        dropped = 0
        for item in items:
            if len(questions) >= target_count:
                break
            if not isinstance(item, dict):
                dropped += 1
                continue
            try:
                question = Question(
                    id=f"q{len(questions) + 1}",
                    question=item.get("question", ""),
                    options=item.get("options", []),
                    correct_answer=item.get("correct_answer", -1),
                    explanation=item.get("explanation") or "",
                )
            except PydanticValidationError as e:
                dropped += 1
                logger.warning(f"Dropped invalid question: {e.errors()[0]['msg']}")
                continue
            questions.append(question)

        logger.info(
            f"Validated {len(questions)} questions ({dropped} dropped, target {target_count})"
        )
        return questions
