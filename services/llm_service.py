from abc import ABC, abstractmethod
from typing import Any, Dict

from logger import get_logger
from utils.config import OPTIONS_PER_QUESTION
from utils.prompt import PromptService

logger = get_logger(__name__)


class LLMService(ABC):
    """Capability interface over a generative text backend."""

    def __init__(self):
        pass

    @abstractmethod
    def get_response(
        self,
        system_prompt: str,
        user_prompt: str,
        response_schema: Any = None,
        **kwargs,
    ) -> Dict[str, Any]:
        """
        Generates a single, non-streamed response from the LLM.

        Args:
            system_prompt: The system prompt.
            user_prompt: The user's prompt.
            response_schema: ResponseSchema for structured output.
            **kwargs: Additional arguments for the specific LLM implementation.

        Returns:
            ``{"response": <parsed JSON or raw text>, "finish_reason": str}``

        Raises:
            LLMServiceError: on timeouts, transport failures or API errors.
        """

    def generate_questions(
        self,
        text: str,
        limit: int,
        response_schema: Any = None,
    ) -> Dict[str, Any]:
        """Asks the model for ``limit`` multiple choice questions grounded in
        ``text``."""
        system_prompt = PromptService.get_quiz_generate_prompt(
            limit, options=OPTIONS_PER_QUESTION
        )
        user_prompt = PromptService.get_quiz_user_prompt(text)
        logger.debug(f"Generating {limit} questions from {len(text)} chars")
        return self.get_response(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            response_schema=response_schema,
        )
