"""
Exception handlers for FastAPI.

Maps challenge errors to HTTP responses. Rejections always produce the
same generic body so clients cannot tell the subtypes apart.
"""

from fastapi import Request, status
from fastapi.responses import JSONResponse

from custody_challenge.application.results import GENERIC_FAILURE_MESSAGE
from custody_challenge.domain.errors import (
    InfrastructureError,
    ContractViolationError,
    VerificationFailedError,
)


async def infrastructure_error_handler(request: Request, exc: InfrastructureError):
    """Handle InfrastructureError (503, retryable)."""
    return JSONResponse(
        status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        content={"error": exc.code, "message": exc.message, "retryable": True},
        headers={"Retry-After": "1"},
    )


async def contract_violation_handler(request: Request, exc: ContractViolationError):
    """Handle ContractViolationError (422)."""
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"error": exc.code, "message": exc.message},
    )


async def verification_failed_handler(request: Request, exc: VerificationFailedError):
    """Handle VerificationFailedError (401, generic)."""
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content={"error": exc.code, "message": GENERIC_FAILURE_MESSAGE},
    )


def register_exception_handlers(app):
    """
    Register uniform exception handlers for the FastAPI app.

    Args:
        app: The FastAPI application instance
    """
    app.add_exception_handler(InfrastructureError, infrastructure_error_handler)
    app.add_exception_handler(ContractViolationError, contract_violation_handler)
    app.add_exception_handler(VerificationFailedError, verification_failed_handler)
