"""Maps domain errors to HTTP responses."""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from app.domain.exceptions import (
    ConversationNotFound,
    HandoffAlreadyProcessed,
    HandoffNotFound,
    NoEligibleTeam,
    TeamNotFound,
)

_STATUS_BY_ERROR: list[tuple[type[Exception], int]] = [
    (ConversationNotFound, 404),
    (HandoffNotFound, 404),
    (TeamNotFound, 404),
    (HandoffAlreadyProcessed, 409),
    (NoEligibleTeam, 422),
    # InvalidHandoffTarget is a ValueError
    (ValueError, 422),
]


def register_error_handlers(app: FastAPI) -> None:
    for error_type, status_code in _STATUS_BY_ERROR:
        app.add_exception_handler(error_type, _handler(status_code))


def _handler(status_code: int):
    async def handle(request: Request, exc: Exception) -> JSONResponse:
        return JSONResponse(status_code=status_code, content={"detail": str(exc)})

    return handle
