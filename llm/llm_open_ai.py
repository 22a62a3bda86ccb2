import os
from typing import Any, Dict

import openai
from dotenv import load_dotenv
from openai import OpenAI

from logger import get_logger
from services.llm_service import LLMService as BaseLLMService
from utils.common import safe_str_to_json
from utils.config import LLM_MAX_TOKENS, LLM_TEMPERATURE, LLM_TIMEOUT_SECONDS
from utils.errors import LLMServiceError

logger = get_logger(__name__)
load_dotenv()


class LLMService(BaseLLMService):
    def __init__(self, timeout: float = LLM_TIMEOUT_SECONDS):
        """Initialize the LLM service with OpenAI client."""
        super().__init__()
        api_key = os.getenv("OPENAI_API_KEY")
        if not api_key:
            raise ValueError("OPENAI_API_KEY not found in environment variables")

        # Retries are decided by the question generator, not the SDK
        self.client = OpenAI(api_key=api_key, timeout=timeout, max_retries=0)
        self.model = os.getenv("OPENAI_MODEL", "gpt-4o-mini")

    def get_response(
        self,
        system_prompt: str,
        user_prompt: str,
        response_schema: Any = None,
        **kwargs,
    ) -> Dict[str, Any]:
        """Generates a response using the OpenAI chat completions API."""
        api_kwargs = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": LLM_TEMPERATURE,
            "max_tokens": LLM_MAX_TOKENS,
        }

        if response_schema:
            api_kwargs["response_format"] = response_schema.to_payload()

        try:
            completion = self.client.chat.completions.create(**api_kwargs)
        except (openai.APITimeoutError, openai.APIConnectionError, openai.RateLimitError) as e:
            raise LLMServiceError(f"OpenAI request failed: {e}", transient=True) from e
        except openai.APIStatusError as e:
            raise LLMServiceError(
                f"OpenAI API Error {e.status_code}: {e.message}",
                transient=e.status_code >= 500,
            ) from e
        except openai.OpenAIError as e:
            raise LLMServiceError(f"OpenAI request failed: {e}") from e

        choice = completion.choices[0]
        return {
            "response": safe_str_to_json(choice.message.content),
            "finish_reason": choice.finish_reason,
        }
