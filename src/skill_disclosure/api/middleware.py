"""Error handling middleware for FastAPI."""

from fastapi import Request
from fastapi.responses import JSONResponse

from skill_disclosure.utils.errors import (
    CancelledError,
    LoadTimeout,
    ReferenceNotFoundError,
    SessionStateError,
    SkillNotFoundError,
)


async def skill_not_found_handler(request: Request, exc: SkillNotFoundError) -> JSONResponse:
    """Handle unknown skill errors.

    Args:
        request: FastAPI request
        exc: Exception instance

    Returns:
        JSON error response
    """
    return JSONResponse(
        status_code=404,
        content={
            "error": "skill_not_found",
            "message": str(exc),
            "skill_id": exc.skill_id,
        },
    )


async def reference_not_found_handler(request: Request, exc: ReferenceNotFoundError) -> JSONResponse:
    """Handle unknown reference errors."""
    return JSONResponse(
        status_code=404,
        content={
            "error": "reference_not_found",
            "message": str(exc),
            "skill_id": exc.skill_id,
            "reference_id": exc.reference_id,
            "available": exc.available,
        },
    )


async def load_timeout_handler(request: Request, exc: LoadTimeout) -> JSONResponse:
    """Handle load timeouts that escape a session (e.g. registry reloads).

    Args:
        request: FastAPI request
        exc: Exception instance

    Returns:
        JSON error response
    """
    return JSONResponse(
        status_code=504,
        content={
            "error": "load_timeout",
            "message": str(exc),
            "operation": exc.operation,
            "timeout": exc.timeout,
        },
    )


async def session_state_handler(request: Request, exc: SessionStateError) -> JSONResponse:
    """Handle invalid session state transitions."""
    return JSONResponse(
        status_code=409,
        content={
            "error": "invalid_session_state",
            "message": str(exc),
            "state": exc.state,
        },
    )


async def cancelled_handler(request: Request, exc: CancelledError) -> JSONResponse:
    """Handle cancelled sessions."""
    return JSONResponse(
        status_code=409,
        content={
            "error": "cancelled",
            "message": str(exc),
            "state": exc.state,
        },
    )


def register_exception_handlers(app):
    """Register all exception handlers with FastAPI app.

    Args:
        app: FastAPI application instance
    """
    app.add_exception_handler(SkillNotFoundError, skill_not_found_handler)
    app.add_exception_handler(ReferenceNotFoundError, reference_not_found_handler)
    app.add_exception_handler(LoadTimeout, load_timeout_handler)
    app.add_exception_handler(SessionStateError, session_state_handler)
    app.add_exception_handler(CancelledError, cancelled_handler)
