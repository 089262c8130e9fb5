"""
Rule group lifecycle reconciler.

Create, read, update and delete a remote rule group so that its activated
rules match what the caller declares. Membership changes are computed by
the differ and applied through the change-token retryer as one batch.
"""

import re
import threading
from typing import Iterable, List, Optional

from shared.config import ReconcilerConfig
from shared.errors import (
    SchemaError, NotFoundError, CreateError, UpdateError, DeleteError
)
from shared.logging import get_logger, set_reconcile_id, clear_context
from shared.metrics import MetricsCollector
from shared.retry import RetryConfig
from .adapters.api import RuleGroupApi
from .rules.codec import encode_all
from .rules.differ import Member, diff_activated_rules
from .rules.models import ChangeAction, RuleGroup, RuleGroupUpdate
from .tokens.retryer import ChangeTokenRetryer

METRIC_NAME_PATTERN = re.compile(r"[0-9A-Za-z]+")


def validate_metric_name(metric_name: str) -> str:
    """Metric names are alphanumeric only, no whitespace."""
    if not isinstance(metric_name, str) or not METRIC_NAME_PATTERN.fullmatch(metric_name):
        raise SchemaError(
            "Only alphanumeric characters allowed in metric_name",
            details={"metric_name": metric_name}
        )
    return metric_name


class RuleGroupReconciler:
    """Drives one rule group through Absent -> Created -> Updated* -> Deleted."""

    def __init__(self,
                 api: RuleGroupApi,
                 retryer: Optional[ChangeTokenRetryer] = None,
                 config: Optional[ReconcilerConfig] = None,
                 metrics: Optional[MetricsCollector] = None):
        self.api = api
        self.config = config or ReconcilerConfig()
        self.metrics = metrics or (retryer.metrics if retryer else MetricsCollector(self.config.service_name))
        self.retryer = retryer or ChangeTokenRetryer(
            api,
            scope=self.config.change_token_scope,
            config=RetryConfig.from_settings(self.config),
            metrics=self.metrics
        )
        self.logger = get_logger("rule_groups.reconciler")

    def create(self, name: str, metric_name: str, activated_rules: Iterable[Member] = (),
               cancel: Optional[threading.Event] = None) -> Optional[RuleGroup]:
        """Create the rule group and populate it with ``activated_rules``.

        Records are validated before the group is allocated, so a malformed
        record raises SchemaError without touching the remote.
        """
        validate_metric_name(metric_name)
        activated_rules = encode_all(activated_rules)

        try:
            rule_group_id = self.retryer.retry_with_token(
                lambda token: self.api.create_rule_group(token, name, metric_name),
                operation="create_rule_group",
                cancel=cancel
            )
        except Exception as e:
            raise CreateError(None, e) from e

        self.logger.info("Created WAF Rule Group", rule_group_id=rule_group_id, name=name)

        self.update(rule_group_id, [], activated_rules, cancel=cancel)
        return self.read(rule_group_id)

    def read(self, rule_group_id: str) -> Optional[RuleGroup]:
        """Fetch the rule group, or None when it no longer exists."""
        try:
            ref = self.api.get_rule_group(rule_group_id)
            activated_rules = self.api.list_activated_rules(rule_group_id)
        except NotFoundError:
            self.logger.warning(
                "WAF Rule Group not found, removing from state",
                rule_group_id=rule_group_id
            )
            return None

        return RuleGroup.from_ref(ref, activated_rules)

    def update(self, rule_group_id: str, old: Iterable[Member], new: Iterable[Member],
               cancel: Optional[threading.Event] = None) -> List[RuleGroupUpdate]:
        """Apply the membership change from ``old`` to ``new``.

        Returns the submitted updates; an empty list means nothing changed
        and no request was made.
        """
        updates = diff_activated_rules(old, new)
        if not updates:
            self.logger.debug("Activated rules unchanged", rule_group_id=rule_group_id)
            return updates

        try:
            self.retryer.retry_with_token(
                lambda token: self.api.update_rule_group(token, rule_group_id, updates),
                operation="update_rule_group",
                cancel=cancel
            )
        except Exception as e:
            raise UpdateError(rule_group_id, e) from e

        deletes = sum(1 for update in updates if update.action == ChangeAction.DELETE)
        self.metrics.record_updates(ChangeAction.DELETE.value, deletes)
        self.metrics.record_updates(ChangeAction.INSERT.value, len(updates) - deletes)
        self.logger.info(
            "Updated WAF Rule Group",
            rule_group_id=rule_group_id,
            deletes=deletes,
            inserts=len(updates) - deletes
        )
        return updates

    def sync(self, rule_group_id: str, old: Iterable[Member], new: Iterable[Member],
             cancel: Optional[threading.Event] = None) -> Optional[RuleGroup]:
        """Update membership, then return the refreshed rule group."""
        self.update(rule_group_id, old, new, cancel=cancel)
        return self.read(rule_group_id)

    def delete(self, rule_group_id: str, current_members: Iterable[Member],
               cancel: Optional[threading.Event] = None) -> None:
        """Drain the rule group, then delete it.

        The remote API refuses to delete a rule group that still has
        activated rules, so non-empty groups are emptied first.
        """
        current_members = list(current_members)
        if current_members:
            try:
                self.update(rule_group_id, current_members, [], cancel=cancel)
            except UpdateError as e:
                # A missing member and a missing group share an error code.
                if isinstance(e.cause, NotFoundError) and self.read(rule_group_id) is None:
                    self.logger.warning("WAF Rule Group already deleted", rule_group_id=rule_group_id)
                    return
                raise DeleteError(rule_group_id, e.cause) from e

        try:
            self.retryer.retry_with_token(
                lambda token: self.api.delete_rule_group(token, rule_group_id),
                operation="delete_rule_group",
                cancel=cancel
            )
        except NotFoundError:
            self.logger.warning("WAF Rule Group already deleted", rule_group_id=rule_group_id)
            return
        except Exception as e:
            raise DeleteError(rule_group_id, e) from e

        self.logger.info("Deleted WAF Rule Group", rule_group_id=rule_group_id)

    def reconcile(self, name: str, metric_name: str, desired: Iterable[Member],
                  rule_group_id: Optional[str] = None,
                  cancel: Optional[threading.Event] = None) -> Optional[RuleGroup]:
        """Converge the remote rule group on the declared state.

        Without an id, or when the recorded rule group has disappeared, the
        group is created. A changed name or metric name cannot be applied
        in place, so the group is replaced. Otherwise only membership is
        updated, diffing against what the remote currently reports.
        """
        validate_metric_name(metric_name)
        desired = encode_all(desired)

        reconcile_id = set_reconcile_id()
        try:
            current = self.read(rule_group_id) if rule_group_id else None
            if current is None:
                return self.create(name, metric_name, desired, cancel=cancel)

            if current.name != name or current.metric_name != metric_name:
                self.logger.info(
                    "Replacing WAF Rule Group",
                    rule_group_id=rule_group_id,
                    reconcile_id=reconcile_id
                )
                self.delete(current.rule_group_id, current.activated_rules, cancel=cancel)
                return self.create(name, metric_name, desired, cancel=cancel)

            return self.sync(current.rule_group_id, current.activated_rules, desired, cancel=cancel)
        finally:
            clear_context()
