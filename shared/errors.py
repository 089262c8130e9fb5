"""
Shared error handling for the rule group reconciler.
"""

from enum import Enum
from typing import Dict, Any, Optional


class ErrorKind(str, Enum):
    """Closed set of failure kinds surfaced by the remote API client."""
    CONFLICT = "conflict"
    THROTTLED = "throttled"
    NOT_FOUND = "not_found"
    NON_EMPTY = "non_empty"
    INVALID = "invalid"
    INTERNAL = "internal"


class RuleGroupException(Exception):
    """Base exception for the reconciler."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a diagnostic payload."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }


class SchemaError(RuleGroupException):
    """Malformed activated rule record or rule group attribute."""

    def __init__(self, message: str = "Invalid record", details: Optional[Dict[str, Any]] = None):
        super().__init__("SCHEMA_ERROR", message, details)


class RemoteApiError(RuleGroupException):
    """Failure reported by the remote rule group API."""

    kind = ErrorKind.INTERNAL

    def __init__(self, message: str = "Remote API error", remote_code: Optional[str] = None,
                 details: Optional[Dict[str, Any]] = None):
        self.remote_code = remote_code
        details = dict(details or {})
        if remote_code:
            details.setdefault("remote_code", remote_code)
        super().__init__(self.kind.name, message, details)


class NotFoundError(RemoteApiError):
    """The rule group does not exist remotely."""
    kind = ErrorKind.NOT_FOUND


class ConflictError(RemoteApiError):
    """The change token is stale or another mutation won the race."""
    kind = ErrorKind.CONFLICT


class ThrottledError(RemoteApiError):
    """The remote API rate-limited the call."""
    kind = ErrorKind.THROTTLED


class NonEmptyEntityError(RemoteApiError):
    """The rule group still has activated rules."""
    kind = ErrorKind.NON_EMPTY


class InvalidRequestError(RemoteApiError):
    """The remote API rejected the request parameters."""
    kind = ErrorKind.INVALID


class RetryTimeoutError(RuleGroupException):
    """Raised when the retry deadline passes before the mutation succeeds."""

    def __init__(self, message: str, last_exception: Optional[Exception], attempts: int):
        super().__init__("RETRY_TIMEOUT", message, {
            "attempts": attempts,
            "last_error": str(last_exception) if last_exception else None
        })
        self.last_exception = last_exception
        self.attempts = attempts


class RetryCancelledError(RuleGroupException):
    """Raised when the caller cancels an in-flight retry loop."""

    def __init__(self, message: str = "Retry cancelled", attempts: int = 0):
        super().__init__("RETRY_CANCELLED", message, {"attempts": attempts})
        self.attempts = attempts


class OperationError(RuleGroupException):
    """Terminal failure of a reconciler operation."""

    error_code = "OPERATION_ERROR"
    operation = "operation"

    def __init__(self, rule_group_id: Optional[str], cause: Exception):
        self.rule_group_id = rule_group_id
        self.cause = cause
        target = f"WAF Rule Group {rule_group_id}" if rule_group_id else "WAF Rule Group"
        super().__init__(
            self.error_code,
            f"Error {self.operation} {target}: {cause}",
            {
                "operation": self.operation,
                "rule_group_id": rule_group_id,
                "cause": type(cause).__name__
            }
        )


class CreateError(OperationError):
    error_code = "CREATE_ERROR"
    operation = "creating"


class UpdateError(OperationError):
    error_code = "UPDATE_ERROR"
    operation = "updating"


class DeleteError(OperationError):
    error_code = "DELETE_ERROR"
    operation = "deleting"
