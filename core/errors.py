# core/errors.py

from typing import Any, Dict, List, Optional


GENERIC_SERVER_ERROR = "Server error. Please try again later."


def extract_error_detail(error: Exception) -> str:
    """
    Safely extract a readable message from a storage-layer exception.
    Handles:
      • OSError (errno + filename)
      • SQLAlchemy errors (.orig driver error)
      • Generic Python exceptions
    """

    # Case 1 — filesystem errors
    if isinstance(error, OSError):
        parts = [error.strerror or str(error)]
        if error.filename:
            parts.append(str(error.filename))
        return ": ".join(parts)

    # Case 2 — SQLAlchemy wraps the driver exception
    orig = getattr(error, "orig", None)
    if orig is not None:
        return str(orig)

    # Case 3 — plain string fallback
    return str(error) or error.__class__.__name__


class SignupServiceError(Exception):
    """Base class for every error the signup endpoints report to callers."""

    status_code = 500
    message = GENERIC_SERVER_ERROR

    def __init__(self, message: Optional[str] = None):
        if message is not None:
            self.message = message
        super().__init__(self.message)

    def to_content(self) -> Dict[str, Any]:
        return {"success": False, "message": self.message}


class ValidationError(SignupServiceError):
    """Malformed or missing input. Carries one entry per offending field."""

    status_code = 400
    message = "Invalid signup submission"

    def __init__(self, errors: List[Dict[str, str]]):
        self.errors = errors
        super().__init__()

    @property
    def fields(self) -> List[str]:
        return [e["field"] for e in self.errors]

    def to_content(self) -> Dict[str, Any]:
        return {"success": False, "errors": self.errors}


class DuplicateError(SignupServiceError):
    status_code = 409
    message = "This email is already on the waitlist!"


class AuthError(SignupServiceError):
    status_code = 401
    message = "Unauthorized"

    def to_content(self) -> Dict[str, Any]:
        return {"error": self.message}


class StorageError(SignupServiceError):
    """
    Reading or writing the signup store failed.
    `detail` is for server logs only; callers get the generic message.
    """

    status_code = 500

    def __init__(self, detail: str):
        self.detail = detail
        super().__init__(GENERIC_SERVER_ERROR)

    def __str__(self) -> str:
        return self.detail

    @classmethod
    def wrap(cls, error: Exception, operation: str) -> "StorageError":
        return cls(f"{operation}: {extract_error_detail(error)}")
