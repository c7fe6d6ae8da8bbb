# util/errors.py
from fastapi import HTTPException, status
from util.enums import ErrorMessage


class AppError(HTTPException):
    # Flow: raise AppError to short-circuit with a typed status & message.
    def __init__(
        self, message: str, http_status: int = status.HTTP_400_BAD_REQUEST
    ) -> None:
        super().__init__(status_code=http_status, detail=message)

    @classmethod
    def of(cls, error: ErrorMessage, detail: str | None = None) -> "AppError":
        message = error.value.message
        if detail:
            message = f"{message}: {detail}"
        return cls(message, error.value.http_status)


class CitationError(Exception):
    """
    Recoverable failure while validating one extraction (missing chunks,
    capability failure). Batch validation records it and moves on.
    """
