"""Main entry point for the document quiz API."""

import asyncio
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, File, Header, Query, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response

from document.document_loader import DocumentLoader
from logger import get_logger
from services.generate_question_service import GenerateQuestionService
from services.history_service import HistoryService
from services.quiz_service import QuizService
from services.scoring_service import ScoringService, Submission, SubmittedAnswer
from services.service import (
    close_clients,
    get_document_loader,
    get_generate_question_service,
    get_history_service,
    get_quiz_service,
    get_scoring_service,
    get_session_store,
)
from utils.config import EVICTION_INTERVAL_SECONDS, HISTORY_PAGE_SIZE, MAX_UPLOAD_BYTES
from utils.errors import QuizError, Unauthorized
from utils.schema import (
    GenerateQuizResponse,
    HistoryItem,
    HistoryResponse,
    HistoryStatisticsOut,
    Pagination,
    ProgressRequest,
    ProgressResponse,
    QuizResultOut,
    StartQuizRequest,
    StartQuizResponse,
    SubmitQuizRequest,
    SubmitQuizResponse,
)

logger = get_logger(__name__)


async def evict_idle_sessions():
    """Periodically drops quiz sessions nobody touched within the idle window."""
    while True:
        await asyncio.sleep(EVICTION_INTERVAL_SECONDS)
        try:
            await asyncio.to_thread(get_session_store().evict_idle)
        except Exception as e:
            logger.exception(f"Idle session eviction failed: {e}")


@asynccontextmanager
async def lifespan(app: FastAPI):
    task = asyncio.create_task(evict_idle_sessions())
    yield
    task.cancel()
    close_clients()


app = FastAPI(
    lifespan=lifespan,
    title="Document Quiz API",
    description="""
    ## Document Quiz API

    Turns an uploaded document into a bank of multiple choice questions,
    serves timed quiz attempts from it and keeps scored results.

    ### Flow:
    * `POST /quiz/generate` upload a PDF, Word or PowerPoint file
    * `POST /quiz/start` pick 30, 60, 90 or 100 questions
    * `POST /quiz/submit` submit answers, get the scored review
    * `GET /quiz/history` past results and statistics
    """,
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
)


@app.exception_handler(QuizError)
async def quiz_error_handler(request: Request, exc: QuizError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
    message = f"{location}: {first.get('msg', 'invalid request')}" if location else "Malformed request"
    return JSONResponse(
        status_code=400,
        content={"success": False, "error": "ValidationError", "message": message},
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled exception on {request.url.path}: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={
            "success": False,
            "error": "InternalError",
            "message": "An internal server error occurred.",
        },
    )


def get_current_user(x_user_id: Optional[str] = Header(None)) -> str:
    """Caller identity as provided by the upstream auth middleware."""
    if not x_user_id or not x_user_id.strip():
        raise Unauthorized()
    return x_user_id.strip()


@app.get("/ping")
async def ping():
    return {"status": "alive"}


@app.get("/")
async def root():
    """Root endpoint with API information."""
    return {
        "message": "Document Quiz API",
        "documentation": {"swagger_ui": "/docs", "redoc": "/redoc"},
        "endpoints": {
            "POST /quiz/generate": "Upload a document (pdf, doc, docx, ppt, pptx)",
            "POST /quiz/start": "Start an attempt with 30, 60, 90 or 100 questions",
            "POST /quiz/progress": "Keep an attempt alive",
            "GET /quiz/session/{sessionId}": "Resume the current attempt",
            "POST /quiz/submit": "Submit answers",
            "GET /quiz/history": "Past results and statistics",
            "GET /quiz/result/{resultId}": "Full result review",
            "GET /health": "Health check",
        },
    }


@app.post("/quiz/generate", response_model=GenerateQuizResponse)
def generate_quiz(
    file: UploadFile = File(...),
    user_id: str = Depends(get_current_user),
    loader: DocumentLoader = Depends(get_document_loader),
    generator: GenerateQuestionService = Depends(get_generate_question_service),
):
    """
    Upload a document and generate its question bank.

    - **file**: PDF, Word (.doc/.docx) or PowerPoint (.ppt/.pptx), max 10MB
    """
    file_name = os.path.basename(file.filename or "document")
    # One byte over the limit is enough to reject the upload
    data = file.file.read(MAX_UPLOAD_BYTES + 1)

    text = loader.extract(data, file.content_type, file_name)
    session = generator.create_bank(
        text=text,
        user_id=user_id,
        file_name=file_name,
        file_size=len(data),
    )
    return GenerateQuizResponse(
        session_id=session.session_id,
        file_name=session.file_name,
        file_size=session.file_size,
        total_questions=session.total_questions,
    )


@app.post("/quiz/start", response_model=StartQuizResponse)
def start_quiz(
    request: StartQuizRequest,
    user_id: str = Depends(get_current_user),
    quiz_service: QuizService = Depends(get_quiz_service),
):
    """Select the attempt size and receive the questions without answers."""
    instance = quiz_service.select_instance(
        request.session_id, user_id, request.number_of_questions
    )
    return StartQuizResponse.from_instance(instance)


@app.get("/quiz/session/{session_id}", response_model=StartQuizResponse)
def resume_quiz(
    session_id: str,
    user_id: str = Depends(get_current_user),
    quiz_service: QuizService = Depends(get_quiz_service),
):
    """Re-fetch the current attempt after a page reload."""
    return StartQuizResponse.from_instance(quiz_service.resume(session_id, user_id))


@app.post("/quiz/progress", response_model=ProgressResponse)
def quiz_progress(
    request: ProgressRequest,
    user_id: str = Depends(get_current_user),
    quiz_service: QuizService = Depends(get_quiz_service),
):
    status = quiz_service.record_progress(request.session_id, user_id)
    return ProgressResponse(session_id=request.session_id, status=status.value)


@app.delete("/quiz/session/{session_id}", status_code=204)
def abandon_quiz(
    session_id: str,
    user_id: str = Depends(get_current_user),
    quiz_service: QuizService = Depends(get_quiz_service),
):
    quiz_service.abandon(session_id, user_id)
    return Response(status_code=204)


@app.post("/quiz/submit", response_model=SubmitQuizResponse)
def submit_quiz(
    request: SubmitQuizRequest,
    user_id: str = Depends(get_current_user),
    scoring_service: ScoringService = Depends(get_scoring_service),
):
    """Score the attempt. Each session can be submitted exactly once."""
    submission = Submission(
        answers=[
            SubmittedAnswer(question_id=a.question_id, selected_answer=a.selected_answer)
            for a in request.answers
        ],
        time_spent=request.time_spent,
    )
    result = scoring_service.score(request.session_id, user_id, submission)
    return SubmitQuizResponse.from_result(result)


@app.get("/quiz/history", response_model=HistoryResponse)
def quiz_history(
    page: int = Query(1, ge=1),
    limit: int = Query(HISTORY_PAGE_SIZE, ge=1, le=100),
    user_id: str = Depends(get_current_user),
    history_service: HistoryService = Depends(get_history_service),
):
    results = history_service.list_for(user_id, page=page, limit=limit)
    return HistoryResponse(
        results=[
            HistoryItem(
                id=r.id,
                file_name=r.file_name,
                completed_at=r.completed_at,
                total_questions=r.total_questions,
                percentage=r.percentage,
                time_spent=r.time_spent,
            )
            for r in results
        ],
        statistics=HistoryStatisticsOut.from_statistics(history_service.stats_for(user_id)),
        pagination=Pagination(
            page=page, limit=limit, total=history_service.count_for(user_id)
        ),
    )


@app.get("/quiz/result/{result_id}", response_model=QuizResultOut)
def quiz_result(
    result_id: str,
    user_id: str = Depends(get_current_user),
    history_service: HistoryService = Depends(get_history_service),
):
    return QuizResultOut.from_result(history_service.get_result(result_id, user_id))


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=int(os.getenv("PORT", 8000)))
