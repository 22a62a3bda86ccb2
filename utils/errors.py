"""Error taxonomy shared by every stage of the quiz pipeline.

Each error carries a stable machine-readable ``kind`` and the HTTP status
the API layer answers with.
"""


class QuizError(Exception):
    kind = "QuizError"
    status_code = 500
    default_message = "Quiz request failed"

    def __init__(self, message: str = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self):
        return {"success": False, "error": self.kind, "message": self.message}


class ValidationError(QuizError):
    kind = "ValidationError"
    status_code = 400
    default_message = "Malformed request"


class Unauthorized(QuizError):
    kind = "Unauthorized"
    status_code = 401
    default_message = "Authentication required"


# Extraction stage
class UnsupportedFormat(QuizError):
    kind = "UnsupportedFormat"
    status_code = 400
    default_message = (
        "Unsupported file type. Please upload PDF, Word, or PowerPoint files."
    )


class ExtractionFailed(QuizError):
    kind = "ExtractionFailed"
    status_code = 400
    default_message = "Failed to extract text from file"


class InsufficientContent(QuizError):
    kind = "InsufficientContent"
    status_code = 400
    default_message = "Insufficient text content extracted from file"


class FileTooLarge(QuizError):
    kind = "FileTooLarge"
    status_code = 413
    default_message = "File size exceeds the upload limit"


# Generation stage
class GenerationEmpty(QuizError):
    kind = "GenerationEmpty"
    status_code = 502
    default_message = "No valid questions could be generated from this document"


class GenerationMalformed(QuizError):
    kind = "GenerationMalformed"
    status_code = 502
    default_message = "Question generation returned an unreadable response"


class GenerationUnavailable(QuizError):
    kind = "GenerationUnavailable"
    status_code = 503
    default_message = "Question generation service is unavailable"


# Session stage
class NotFound(QuizError):
    kind = "NotFound"
    status_code = 404
    default_message = "Quiz session not found or expired"


class Forbidden(QuizError):
    kind = "Forbidden"
    status_code = 403
    default_message = "You do not have access to this quiz session"


class InvalidTransition(QuizError):
    kind = "InvalidTransition"
    status_code = 409
    default_message = "Operation not allowed in the current quiz state"


class AlreadySubmitted(QuizError):
    kind = "AlreadySubmitted"
    status_code = 409
    default_message = "This quiz has already been submitted"


class SessionBusy(QuizError):
    kind = "SessionBusy"
    status_code = 409
    default_message = "Another request for this quiz session is in progress"


class LLMServiceError(Exception):
    """Raised by model backends. ``transient`` marks timeouts, connection
    failures, rate limits and 5xx answers."""

    def __init__(self, message: str, transient: bool = False):
        super().__init__(message)
        self.transient = transient
