# core/errors.py

"""
Error taxonomy for the entitlement and publication core.

    ValidationError     bad caller input, never retried            -> 400
    NotFoundError       missing user / review / post / grant       -> 404
    PreconditionError   state-machine rule violated                -> 409
    StoreError          Supabase / collaborator failure, retryable -> 503
    ConsistencyWarning  claims mirror diverges, reported only
"""

from typing import Optional

from core.logging_config import logger


class AdminCoreError(Exception):
    """Base class for every error the core raises on purpose."""

    status_code = 500
    retryable = False

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    @property
    def error_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict:
        return {"detail": self.message, "error_type": self.error_type}


class ValidationError(AdminCoreError):
    status_code = 400


class NotFoundError(AdminCoreError):
    status_code = 404


class PreconditionError(AdminCoreError):
    status_code = 409


class StoreError(AdminCoreError):
    status_code = 503
    retryable = True

    def __init__(self, operation: str, detail: str):
        super().__init__(f"{operation}: {detail}")
        self.operation = operation
        self.detail = detail


class ConsistencyWarning(UserWarning):
    """
    The claims mirror embedded in a user's session token disagrees with the
    authoritative profile fields. Logged and returned, never raised.
    """

    def __init__(
        self,
        user_id: str,
        expected: dict,
        observed: Optional[dict],
    ):
        self.user_id = user_id
        self.expected = expected
        self.observed = observed
        super().__init__(
            f"Claims mirror for user {user_id} is out of sync: "
            f"expected {expected}, observed {observed}"
        )

    def to_dict(self) -> dict:
        return {
            "user_id": self.user_id,
            "expected": self.expected,
            "observed": self.observed,
            "message": str(self),
        }


def extract_supabase_error(error: Exception) -> str:
    """
    Safely extract readable details from Supabase Python client errors.
    Handles:
      • PostgREST errors
      • GoTrue (Auth) errors
      • Generic Python exceptions
    """

    # Case 1: Supabase Auth / GoTrue / PostgREST APIError
    message = getattr(error, "message", None)
    if message:
        return str(message)

    # Case 2: Supabase errors with args (common)
    if getattr(error, "args", None):
        return str(error.args[0])

    # Case 3: Plain string fallback
    text = str(error)
    return text or "Unknown Supabase error"


def store_error(error: Exception, operation: str) -> StoreError:
    """
    Wrap a Supabase / database exception in a StoreError.
    Returns (doesn't raise) so the caller can `raise ... from error`.
    """
    detail = extract_supabase_error(error)
    logger.error(f"{operation}: {detail}")
    return StoreError(operation, detail)
