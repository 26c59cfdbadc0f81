import logging

from fastapi import HTTPException, status

from errors import (
    ChallengeError,
    ConfirmError,
    RecordNotFound,
    RegistrationError,
    StoreError,
    ValidationError,
    WorkflowStateError,
)

logger = logging.getLogger(__name__)

CLIENT_CHALLENGE_REASONS = {"invalid-number", "human-verification-failed"}


def to_http_exception(exc: RegistrationError) -> HTTPException:
    if isinstance(exc, ValidationError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    if isinstance(exc, ConfirmError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
    if isinstance(exc, ChallengeError):
        if exc.reason in CLIENT_CHALLENGE_REASONS:
            return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=exc.message)
        return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=exc.message)
    if isinstance(exc, RecordNotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Registration not found")
    if isinstance(exc, StoreError):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=exc.message)
    if isinstance(exc, WorkflowStateError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=exc.message)
    logger.error("Unmapped registration error %s: %s", type(exc).__name__, exc.message)
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Unexpected error")
