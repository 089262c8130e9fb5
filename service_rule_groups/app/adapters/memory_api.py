"""
In-memory RuleGroupApi.

Keeps rule groups in process and enforces the same change-token rules as
the remote service: one live token per scope, consumed by the mutation
that uses it, and any other token rejected as stale. Useful for tests and
local dry runs of a reconciliation.
"""

import threading
import uuid
from collections import defaultdict, deque
from typing import Any, Deque, Dict, List, Optional, Sequence, Tuple

from shared.errors import ErrorKind
from shared.logging import get_logger
from .api import error_for_code
from ..rules.models import ActivatedRule, ChangeAction, RuleGroupRef, RuleGroupUpdate


class InMemoryRuleGroupApi:
    """Process-local implementation of the remote rule group API."""

    def __init__(self):
        self.logger = get_logger("rule_groups.memory_api")
        self._lock = threading.RLock()
        self._groups: Dict[str, RuleGroupRef] = {}
        self._members: Dict[str, List[ActivatedRule]] = {}
        self._current_tokens: Dict[str, Optional[str]] = {}
        self._token_scopes: Dict[str, str] = {}
        self._failures: Dict[str, Deque[Exception]] = defaultdict(deque)
        self.calls: List[Tuple[Any, ...]] = []

    # Test hooks

    def inject_failure(self, method: str, exc: Exception, times: int = 1) -> None:
        """Make the next ``times`` calls to ``method`` raise ``exc``."""
        with self._lock:
            for _ in range(times):
                self._failures[method].append(exc)

    def invalidate_token(self, scope: str = "global") -> None:
        """Simulate a mutation by another holder of the scope's token."""
        with self._lock:
            self._current_tokens[scope] = None

    def calls_to(self, method: str) -> List[Tuple[Any, ...]]:
        return [call for call in self.calls if call[0] == method]

    def _maybe_fail(self, method: str) -> None:
        queue = self._failures.get(method)
        if queue:
            exc = queue.popleft()
            if getattr(exc, "kind", None) == ErrorKind.CONFLICT:
                # A conflict means another writer consumed the live tokens.
                for scope in self._current_tokens:
                    self._current_tokens[scope] = None
            raise exc

    def _consume_token(self, change_token: str) -> None:
        scope = self._token_scopes.get(change_token)
        if scope is None or self._current_tokens.get(scope) != change_token:
            raise error_for_code("WAFStaleDataException", "The input token is no longer current")
        self._current_tokens[scope] = None

    def _require_group(self, rule_group_id: str) -> RuleGroupRef:
        group = self._groups.get(rule_group_id)
        if group is None:
            raise error_for_code("WAFNonexistentItemException", f"Rule group {rule_group_id} does not exist")
        return group

    # RuleGroupApi

    def get_change_token(self, scope: str) -> str:
        with self._lock:
            self.calls.append(("get_change_token", scope))
            self._maybe_fail("get_change_token")
            token = self._current_tokens.get(scope)
            if token is None:
                token = str(uuid.uuid4())
                self._current_tokens[scope] = token
                self._token_scopes[token] = scope
            return token

    def create_rule_group(self, change_token: str, name: str, metric_name: str) -> str:
        with self._lock:
            self.calls.append(("create_rule_group", change_token, name, metric_name))
            self._maybe_fail("create_rule_group")
            self._consume_token(change_token)
            rule_group_id = str(uuid.uuid4())
            self._groups[rule_group_id] = RuleGroupRef(rule_group_id, name, metric_name)
            self._members[rule_group_id] = []
            self.logger.debug("Created rule group", rule_group_id=rule_group_id, name=name)
            return rule_group_id

    def get_rule_group(self, rule_group_id: str) -> RuleGroupRef:
        with self._lock:
            self.calls.append(("get_rule_group", rule_group_id))
            self._maybe_fail("get_rule_group")
            return self._require_group(rule_group_id)

    def list_activated_rules(self, rule_group_id: str) -> List[ActivatedRule]:
        with self._lock:
            self.calls.append(("list_activated_rules", rule_group_id))
            self._maybe_fail("list_activated_rules")
            self._require_group(rule_group_id)
            return list(self._members[rule_group_id])

    def update_rule_group(self, change_token: str, rule_group_id: str,
                          updates: Sequence[RuleGroupUpdate]) -> None:
        with self._lock:
            self.calls.append(("update_rule_group", change_token, rule_group_id, list(updates)))
            self._maybe_fail("update_rule_group")
            self._consume_token(change_token)
            self._require_group(rule_group_id)

            # Validate against a copy so a rejected batch leaves no trace.
            members = list(self._members[rule_group_id])
            for update in updates:
                rule = update.activated_rule
                if update.action == ChangeAction.DELETE:
                    if rule not in members:
                        raise error_for_code(
                            "WAFNonexistentItemException",
                            f"Activated rule {rule.rule_id} is not in rule group {rule_group_id}"
                        )
                    members.remove(rule)
                else:
                    if any(member.rule_id == rule.rule_id for member in members):
                        raise error_for_code(
                            "WAFInvalidOperationException",
                            f"Rule {rule.rule_id} is already activated in rule group {rule_group_id}"
                        )
                    members.append(rule)

            self._members[rule_group_id] = members

    def delete_rule_group(self, change_token: str, rule_group_id: str) -> None:
        with self._lock:
            self.calls.append(("delete_rule_group", change_token, rule_group_id))
            self._maybe_fail("delete_rule_group")
            self._consume_token(change_token)
            self._require_group(rule_group_id)
            if self._members[rule_group_id]:
                raise error_for_code(
                    "WAFNonEmptyEntityException",
                    f"Rule group {rule_group_id} still has activated rules"
                )
            del self._groups[rule_group_id]
            del self._members[rule_group_id]
