from __future__ import annotations

from fastapi import status


class BuildTrackError(Exception):
    """Base class for domain errors surfaced to API callers."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail: str = "Internal server error"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class NotFound(BuildTrackError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class Forbidden(BuildTrackError):
    status_code = status.HTTP_403_FORBIDDEN
    default_detail = "Access denied"


class ValidationError(BuildTrackError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid request"


class Unauthorized(BuildTrackError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Authentication required"


class Conflict(BuildTrackError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "Conflict"


class UpstreamFailure(BuildTrackError):
    status_code = status.HTTP_502_BAD_GATEWAY
    default_detail = "Upstream service unavailable"
