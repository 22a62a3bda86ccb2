import os

from db.mongo_db import MongoDB
from db.redis_db import RedisDB
from document.document_loader import DocumentLoader
from logger import get_logger
from services.generate_question_service import GenerateQuestionService
from services.history_service import HistoryService
from services.llm_service import LLMService
from services.quiz_service import QuizService
from services.result_store import InMemoryResultStore, MongoResultStore, ResultStore
from services.scoring_service import ScoringService
from services.session_store import InMemorySessionStore, RedisSessionStore, SessionStore
from utils.config import LLM_PROVIDER, RESULT_STORE_BACKEND, SESSION_STORE_BACKEND

logger = get_logger(__name__)

REDIS_DB = None
MONGO_DB = None
DOCUMENT_LOADER = None
LLM_SERVICE = None
SESSION_STORE = None
RESULT_STORE = None
GENERATE_QUESTION_SERVICE = None
QUIZ_SERVICE = None
SCORING_SERVICE = None
HISTORY_SERVICE = None


def create_llm_service(provider: str = LLM_PROVIDER) -> LLMService:
    if provider == "openai":
        from llm.llm_open_ai import LLMService as OpenAIService

        return OpenAIService()
    if provider == "gemini":
        from llm.llm_gemini import LLMService as GeminiService

        return GeminiService()
    if provider == "open_router":
        from llm.llm_open_router import LLMService as OpenRouterService

        return OpenRouterService()
    raise ValueError(f"Unknown LLM_PROVIDER: {provider}")


def get_document_loader() -> DocumentLoader:
    global DOCUMENT_LOADER
    if DOCUMENT_LOADER is None:
        DOCUMENT_LOADER = DocumentLoader()
    return DOCUMENT_LOADER


def get_llm_service() -> LLMService:
    global LLM_SERVICE
    if LLM_SERVICE is None:
        LLM_SERVICE = create_llm_service()
        logger.info(f"LLM service initialized ({LLM_PROVIDER})")
    return LLM_SERVICE


def get_session_store() -> SessionStore:
    global SESSION_STORE, REDIS_DB
    if SESSION_STORE is None:
        if SESSION_STORE_BACKEND == "redis":
            REDIS_DB = RedisDB(
                host=os.getenv("REDIS_HOST", "localhost"),
                port=int(os.getenv("REDIS_PORT", 6379)),
                username=os.getenv("REDIS_USER", "default"),
                password=os.getenv("REDIS_PASSWORD", ""),
            )
            SESSION_STORE = RedisSessionStore(REDIS_DB)
        else:
            SESSION_STORE = InMemorySessionStore()
        logger.info(f"Session store initialized ({SESSION_STORE_BACKEND})")
    return SESSION_STORE


def get_result_store() -> ResultStore:
    global RESULT_STORE, MONGO_DB
    if RESULT_STORE is None:
        if RESULT_STORE_BACKEND == "mongo":
            MONGO_DB = MongoDB(os.getenv("MONGO_URI"), os.getenv("MONGO_DB_NAME"))
            RESULT_STORE = MongoResultStore(MONGO_DB)
        else:
            RESULT_STORE = InMemoryResultStore()
        logger.info(f"Result store initialized ({RESULT_STORE_BACKEND})")
    return RESULT_STORE


def get_generate_question_service() -> GenerateQuestionService:
    global GENERATE_QUESTION_SERVICE
    if GENERATE_QUESTION_SERVICE is None:
        GENERATE_QUESTION_SERVICE = GenerateQuestionService(
            llm_service=get_llm_service(),
            session_store=get_session_store(),
        )
    return GENERATE_QUESTION_SERVICE


def get_quiz_service() -> QuizService:
    global QUIZ_SERVICE
    if QUIZ_SERVICE is None:
        QUIZ_SERVICE = QuizService(get_session_store())
    return QUIZ_SERVICE


def get_scoring_service() -> ScoringService:
    global SCORING_SERVICE
    if SCORING_SERVICE is None:
        SCORING_SERVICE = ScoringService(get_session_store(), get_result_store())
    return SCORING_SERVICE


def get_history_service() -> HistoryService:
    global HISTORY_SERVICE
    if HISTORY_SERVICE is None:
        HISTORY_SERVICE = HistoryService(get_result_store())
    return HISTORY_SERVICE


def close_clients():
    """Closes the Redis and MongoDB connections opened by the stores."""
    if REDIS_DB is not None:
        REDIS_DB.close()
    if MONGO_DB is not None:
        MONGO_DB.close()
