"""
Domain errors raised by the services.

Routers catch these at the HTTP boundary and turn them into
``HTTPException`` responses with the status code carried by each class.
"""

from typing import Optional

from fastapi import HTTPException, status


class FestivalAppError(Exception):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_http(self) -> HTTPException:
        return HTTPException(status_code=self.status_code, detail=self.message)


class InvalidCodeError(FestivalAppError):
    """Submitted code matches no QR code, master code or category code."""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str = "Invalid access code or QR code"):
        super().__init__(message)


class PersistenceWriteError(FestivalAppError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR

    def __init__(self, message: str = "Error processing access", cause: Optional[str] = None):
        super().__init__(message)
        self.cause = cause


class UploadError(FestivalAppError):
    """A single file failed validation or transfer; other files continue."""
    status_code = status.HTTP_400_BAD_REQUEST

    def __init__(self, filename: str, reason: str):
        super().__init__(f"{filename}: {reason}")
        self.filename = filename
        self.reason = reason


class NotFoundError(FestivalAppError):
    status_code = status.HTTP_404_NOT_FOUND


class PermissionDeniedError(FestivalAppError):
    status_code = status.HTTP_403_FORBIDDEN


class DuplicateCodeError(FestivalAppError):
    status_code = status.HTTP_409_CONFLICT


class ValidationError(FestivalAppError):
    status_code = status.HTTP_400_BAD_REQUEST
