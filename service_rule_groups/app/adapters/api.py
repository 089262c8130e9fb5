"""
Remote rule group API protocol and error classification.
"""

from typing import Dict, List, Optional, Protocol, Sequence, Type

from shared.errors import (
    ErrorKind, RemoteApiError, ConflictError, ThrottledError, NotFoundError,
    NonEmptyEntityError, InvalidRequestError
)
from ..rules.models import ActivatedRule, RuleGroupRef, RuleGroupUpdate


class RuleGroupApi(Protocol):
    """Primitive operations offered by the remote WAF API.

    Implementations raise RemoteApiError subclasses, never bare transport
    errors, so retry policy can key on ErrorKind.
    """

    def get_change_token(self, scope: str) -> str:
        ...

    def create_rule_group(self, change_token: str, name: str, metric_name: str) -> str:
        ...

    def get_rule_group(self, rule_group_id: str) -> RuleGroupRef:
        ...

    def list_activated_rules(self, rule_group_id: str) -> List[ActivatedRule]:
        ...

    def update_rule_group(self, change_token: str, rule_group_id: str,
                          updates: Sequence[RuleGroupUpdate]) -> None:
        ...

    def delete_rule_group(self, change_token: str, rule_group_id: str) -> None:
        ...


ERROR_CODE_KINDS: Dict[str, ErrorKind] = {
    "WAFStaleDataException": ErrorKind.CONFLICT,
    "WAFOptimisticLockException": ErrorKind.CONFLICT,
    "ThrottlingException": ErrorKind.THROTTLED,
    "Throttling": ErrorKind.THROTTLED,
    "TooManyRequestsException": ErrorKind.THROTTLED,
    "WAFLimitsExceededException": ErrorKind.INVALID,
    "WAFNonexistentItemException": ErrorKind.NOT_FOUND,
    "WAFNonexistentContainerException": ErrorKind.INVALID,
    "WAFNonEmptyEntityException": ErrorKind.NON_EMPTY,
    "WAFReferencedItemException": ErrorKind.INVALID,
    "WAFInvalidParameterException": ErrorKind.INVALID,
    "WAFInvalidOperationException": ErrorKind.INVALID,
    "WAFDisallowedNameException": ErrorKind.INVALID,
}

_KIND_ERRORS: Dict[ErrorKind, Type[RemoteApiError]] = {
    ErrorKind.CONFLICT: ConflictError,
    ErrorKind.THROTTLED: ThrottledError,
    ErrorKind.NOT_FOUND: NotFoundError,
    ErrorKind.NON_EMPTY: NonEmptyEntityError,
    ErrorKind.INVALID: InvalidRequestError,
    ErrorKind.INTERNAL: RemoteApiError,
}


def classify_error_code(code: Optional[str]) -> ErrorKind:
    """Map a remote error code to its ErrorKind."""
    if not code:
        return ErrorKind.INTERNAL
    return ERROR_CODE_KINDS.get(code, ErrorKind.INTERNAL)


def error_for_code(code: Optional[str], message: str = "") -> RemoteApiError:
    """Build the exception matching a remote error code."""
    error_class = _KIND_ERRORS[classify_error_code(code)]
    return error_class(message or code or "Remote API error", remote_code=code)
