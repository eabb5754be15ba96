"""Error taxonomy shared by the services and the HTTP layer."""

from typing import Dict, List, Optional


class AppError(Exception):
    """Base class for errors that map onto an HTTP response."""

    status_code: int = 500

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self) -> dict:
        return {"message": self.message}


class InvalidInput(AppError):
    """Malformed id, failed schema validation, rejected upload."""

    status_code = 400

    def __init__(self, message: str, errors: Optional[List[Dict[str, str]]] = None):
        super().__init__(message)
        self.errors = errors or []

    def to_dict(self) -> dict:
        body = super().to_dict()
        if self.errors:
            body["errors"] = self.errors
        return body


class Unauthorized(AppError):
    status_code = 401


class NotFound(AppError):
    status_code = 404


class UpstreamFailure(AppError):
    """An external API call failed after the resource was known to exist."""

    status_code = 500


class DuplicateRecord(Exception):
    """Raised by a store when a uniqueness rule would be broken."""
