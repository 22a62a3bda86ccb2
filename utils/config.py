"""Environment driven settings for the quiz service."""

import os
from dotenv import load_dotenv

load_dotenv(override=False)


def env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


def env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, str(default)))
    except (TypeError, ValueError):
        return default


def env_str(name: str, default: str) -> str:
    return os.getenv(name, default)


# Upload / extraction
MAX_UPLOAD_BYTES = env_int("QUIZ_MAX_UPLOAD_MB", 10) * 1024 * 1024
MIN_TEXT_LENGTH = env_int("QUIZ_MIN_TEXT_LENGTH", 100)
SOFFICE_BIN = env_str("SOFFICE_BIN", "soffice")
SOFFICE_TIMEOUT_SECONDS = env_int("SOFFICE_TIMEOUT_SECONDS", 60)

# Generation
TARGET_QUESTION_COUNT = env_int("QUIZ_TARGET_QUESTIONS", 100)
MAX_INPUT_WORDS = env_int("QUIZ_MAX_INPUT_WORDS", 6000)
LLM_PROVIDER = env_str("LLM_PROVIDER", "open_router")
LLM_TIMEOUT_SECONDS = env_float("LLM_TIMEOUT_SECONDS", 120.0)
LLM_MAX_TOKENS = env_int("LLM_MAX_TOKENS", 16000)
LLM_TEMPERATURE = env_float("LLM_TEMPERATURE", 0.4)

# Sessions
SESSION_STORE_BACKEND = env_str("QUIZ_SESSION_STORE", "memory")
SESSION_IDLE_SECONDS = env_int("QUIZ_SESSION_IDLE_SECONDS", 3600)
EVICTION_INTERVAL_SECONDS = env_int("QUIZ_EVICTION_INTERVAL_SECONDS", 60)
SESSION_LOCK_TIMEOUT = env_float("QUIZ_SESSION_LOCK_TIMEOUT", 30.0)

# Results / history
RESULT_STORE_BACKEND = env_str("QUIZ_RESULT_STORE", "memory")
RESULT_COLLECTION = env_str("QUIZ_RESULT_COLLECTION", "quiz_results")
HISTORY_PAGE_SIZE = env_int("QUIZ_HISTORY_PAGE_SIZE", 20)

# Fixed quiz rules
ALLOWED_QUESTION_COUNTS = (30, 60, 90, 100)
TIME_PER_QUESTION = 60
OPTIONS_PER_QUESTION = 4
UNANSWERED = -1
