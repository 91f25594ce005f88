from typing import Any, Dict, Optional

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse


class DomainError(Exception):
    """Base exception for all domain errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.message = message
        self.code = code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)

    def to_http_exception(self) -> HTTPException:
        return HTTPException(
            status_code=self.status_code,
            detail={
                "message": self.message,
                "code": self.code,
                "details": self.details,
            },
        )


class ValidationError(DomainError):
    """Malformed interval, bad duration, past start, text too long."""

    status_code = status.HTTP_400_BAD_REQUEST


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND


class UnauthorizedActionError(DomainError):
    """The actor lacks the role or ownership required."""

    status_code = status.HTTP_403_FORBIDDEN


class SlotUnavailableError(DomainError):
    """The requested window is not free or no longer covered by availability."""

    status_code = status.HTTP_409_CONFLICT


class StudentConflictError(SlotUnavailableError):
    """The student already holds a blocking session overlapping the window."""


class InvalidTransitionError(DomainError):
    status_code = status.HTTP_409_CONFLICT


class ConcurrencyConflictError(DomainError):
    """The stored version differs from the one the caller read."""

    status_code = status.HTTP_409_CONFLICT


class WriteConflict(Exception):
    """Raised by stores when the database rejects a write because of contention."""


def register_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(DomainError)
    async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
        http_exc = exc.to_http_exception()
        return JSONResponse(status_code=http_exc.status_code, content={"detail": http_exc.detail})
