from typing import Optional

from fastapi import HTTPException, status


class ServiceError(Exception):
    """Base exception for service layer errors."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code


class ValidationError(ServiceError):
    """Malformed input: code too short, missing required field."""

    status_code = status.HTTP_400_BAD_REQUEST


class ConflictError(ServiceError):
    """Uniqueness violation (referral code, email, phone)."""

    status_code = status.HTTP_409_CONFLICT


class NotFoundError(ServiceError):
    status_code = status.HTTP_404_NOT_FOUND


class InvalidReferralCodeError(ServiceError):
    """Submitted referral code has no owner (only raised under the reject policy)."""

    status_code = status.HTTP_400_BAD_REQUEST


class InvalidTransitionError(ServiceError):
    """Requested role change is not a supported promotion."""

    status_code = status.HTTP_400_BAD_REQUEST


class GenerationExhaustedError(ServiceError):
    """No free referral code found within the attempt budget."""

    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR


def http_exception_from(e: ServiceError) -> HTTPException:
    """Map a service error to an HTTP response; 5xx details are not leaked."""
    if e.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        return HTTPException(status_code=e.status_code, detail="Internal server error")
    return HTTPException(status_code=e.status_code, detail=e.message)
