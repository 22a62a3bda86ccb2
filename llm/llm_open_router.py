import os
from typing import Any, Dict

import requests
from dotenv import load_dotenv

from logger import get_logger
from services.llm_service import LLMService as BaseLLMService
from utils.common import safe_str_to_json
from utils.config import LLM_MAX_TOKENS, LLM_TEMPERATURE, LLM_TIMEOUT_SECONDS
from utils.errors import LLMServiceError

logger = get_logger(__name__)
load_dotenv()

TRANSIENT_STATUS_CODES = {408, 429, 500, 502, 503, 504}


class LLMService(BaseLLMService):
    def __init__(self, timeout: float = LLM_TIMEOUT_SECONDS):
        """Initialize the LLM service with OpenRouter."""
        super().__init__()
        self.api_key = os.getenv("OPENROUTER_API_KEY")
        self.base_url = os.getenv(
            "OPENROUTER_URL", "https://openrouter.ai/api/v1/chat/completions"
        )
        self.model = os.getenv("OPEN_ROUTER_MODEL", "openai/gpt-4o-mini")
        self.timeout = timeout

        if not self.api_key:
            raise ValueError("OPENROUTER_API_KEY not found in environment variables")

    def get_response(
        self,
        system_prompt: str,
        user_prompt: str,
        response_schema: Any = None,
        **kwargs,
    ) -> Dict[str, Any]:
        """Generates a response using OpenRouter."""

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
            "HTTP-Referer": os.getenv("GITHUB_REPO_URL", ""),
        }

        payload = {
            "model": self.model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": LLM_TEMPERATURE,
            "max_tokens": LLM_MAX_TOKENS,
            "stream": False,
        }

        if response_schema:
            payload["response_format"] = response_schema.to_payload()

        logger.debug("Generating response -- Open Router")
        try:
            response = requests.post(
                self.base_url,
                headers=headers,
                json=payload,
                timeout=self.timeout,
            )
        except (requests.Timeout, requests.ConnectionError) as e:
            raise LLMServiceError(f"OpenRouter request failed: {e}", transient=True) from e
        except requests.RequestException as e:
            raise LLMServiceError(f"OpenRouter request failed: {e}") from e

        if not response.ok:
            raise LLMServiceError(
                f"LLM API Error {response.status_code}: {response.text[:200]}",
                transient=response.status_code in TRANSIENT_STATUS_CODES,
            )

        try:
            event = response.json()
            choice = event["choices"][0]
            content = choice["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise LLMServiceError(f"Unexpected OpenRouter payload: {e!r}") from e

        return {
            "response": safe_str_to_json(content),
            "finish_reason": choice.get("finish_reason"),
        }
