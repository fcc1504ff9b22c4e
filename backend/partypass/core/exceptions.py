"""
Error taxonomy for the service layer.

Every error is an HTTPException subclass so services can raise them directly,
the same way they would raise a plain HTTPException. The handlers registered in
main.py render all of them as {"error": message}.
"""

from typing import Optional

from fastapi import HTTPException, status


class PartyPassError(HTTPException):
    status_code: int = status.HTTP_400_BAD_REQUEST
    default_message: str = "Request failed"

    def __init__(self, message: Optional[str] = None, headers: Optional[dict] = None):
        super().__init__(
            status_code=self.status_code,
            detail=message or self.default_message,
            headers=headers,
        )

    @property
    def message(self) -> str:
        return self.detail


class ValidationFailed(PartyPassError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Invalid request"


class Unauthorized(PartyPassError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_message = "Invalid credentials"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message, headers={"WWW-Authenticate": "Bearer"})


class Forbidden(PartyPassError):
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Forbidden"


class NotFound(PartyPassError):
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class Conflict(PartyPassError):
    status_code = status.HTTP_409_CONFLICT
    default_message = "Conflict"


class QuotaExceeded(PartyPassError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Ticket limit reached"


class PreconditionFailed(PartyPassError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Precondition failed"


class RateLimited(PartyPassError):
    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_message = "Too many requests"

    def __init__(self, retry_after: int, message: Optional[str] = None):
        self.retry_after = max(1, int(retry_after))
        super().__init__(message, headers={"Retry-After": str(self.retry_after)})


class InternalError(PartyPassError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Internal server error"
