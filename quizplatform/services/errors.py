class QuizError(Exception):
    """Base error for test composition, chunking, scoring and review.

    `code` is a stable machine-readable tag, `status_code` the HTTP status the
    routers answer with.
    """
    code = "QUIZ_ERROR"
    status_code = 400

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(QuizError):
    code = "VALIDATION_ERROR"
    status_code = 400


class DuplicateSectionError(ValidationError):
    code = "DUPLICATE_SECTION"


class ChunkTooLargeError(QuizError):
    code = "CHUNK_TOO_LARGE"
    status_code = 413


class NotFoundError(QuizError):
    code = "NOT_FOUND"
    status_code = 404


class AccessDeniedError(QuizError):
    code = "ACCESS_DENIED"
    status_code = 403


class AlreadyApprovedError(QuizError):
    code = "ALREADY_APPROVED"
    status_code = 409


class AlreadyLockedError(QuizError):
    code = "ALREADY_LOCKED"
    status_code = 409


class AlreadySubmittedError(QuizError):
    code = "ALREADY_SUBMITTED"
    status_code = 409


class SyncSessionError(QuizError):
    code = "SYNC_SESSION_ERROR"
    status_code = 409
