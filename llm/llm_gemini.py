import os
from typing import Any, Dict

import google.generativeai as genai
from dotenv import load_dotenv
from google.api_core import exceptions as google_exceptions

from logger import get_logger
from services.llm_service import LLMService as BaseLLMService
from utils.common import safe_str_to_json
from utils.config import LLM_MAX_TOKENS, LLM_TEMPERATURE, LLM_TIMEOUT_SECONDS
from utils.errors import LLMServiceError

logger = get_logger(__name__)
load_dotenv()

TRANSIENT_ERRORS = (
    google_exceptions.DeadlineExceeded,
    google_exceptions.ServiceUnavailable,
    google_exceptions.ResourceExhausted,
    google_exceptions.InternalServerError,
)


class LLMService(BaseLLMService):
    def __init__(self, timeout: float = LLM_TIMEOUT_SECONDS):
        """Initialize the LLM service with Gemini API client."""
        super().__init__()
        api_key = os.getenv("GEMINI_API_KEY")
        if not api_key:
            raise ValueError("GEMINI_API_KEY not found in environment variables")

        genai.configure(api_key=api_key)

        self.model_name = os.getenv("GEMINI_MODEL", "gemini-2.0-flash-exp")
        self.model = genai.GenerativeModel(self.model_name)
        self.timeout = timeout

    def get_response(
        self,
        system_prompt: str,
        user_prompt: str,
        response_schema: Any = None,
        **kwargs,
    ) -> Dict[str, Any]:
        """Generates a response using Gemini."""
        generation_config = {
            "temperature": LLM_TEMPERATURE,
            "max_output_tokens": LLM_MAX_TOKENS,
        }
        if response_schema:
            # Gemini rejects JSON schema $defs, the prompt carries the shape
            generation_config["response_mime_type"] = "application/json"

        full_prompt = f"{system_prompt}\n\n{user_prompt}"
        logger.debug(f"System Prompt: {system_prompt[:100]}...")

        try:
            response = self.model.generate_content(
                full_prompt,
                generation_config=generation_config,
                request_options={"timeout": self.timeout},
            )
        except TRANSIENT_ERRORS as e:
            raise LLMServiceError(f"Gemini request failed: {e}", transient=True) from e
        except google_exceptions.GoogleAPIError as e:
            raise LLMServiceError(f"Gemini request failed: {e}") from e

        finish_reason = None
        if response.candidates:
            finish_reason = str(response.candidates[0].finish_reason)

        try:
            text = response.text
        except ValueError as e:
            # Blocked or empty candidates have no text accessor
            raise LLMServiceError(f"Gemini returned no text: {e}") from e

        return {"response": safe_str_to_json(text), "finish_reason": finish_reason}
