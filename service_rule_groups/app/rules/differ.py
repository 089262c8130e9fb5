"""
Set differ for activated rules.

Turns the last-known member list and the desired member list into the
ordered updates that transform one into the other. Deletes always come
before inserts so a rule can vacate a priority slot that an inserted
rule takes within the same request.
"""

from typing import Iterable, List, Union

from shared.logging import get_logger
from .codec import Record, encode_all
from .models import ActivatedRule, ChangeAction, RuleGroupUpdate

logger = get_logger("rule_groups.differ")

Member = Union[Record, ActivatedRule]


def diff_activated_rules(old: Iterable[Member], new: Iterable[Member]) -> List[RuleGroupUpdate]:
    """Compute the updates that turn ``old`` into ``new``.

    Members are matched by full structural equality, one instance at a
    time, so duplicates are treated as a multiset. A member whose
    priority (or any other attribute) changed becomes a delete plus an
    insert; the remote API has no in-place update.

    Raises SchemaError if any record is malformed.
    """
    old_rules = encode_all(old)
    remaining = encode_all(new)

    updates: List[RuleGroupUpdate] = []

    for rule in old_rules:
        try:
            remaining.remove(rule)
        except ValueError:
            updates.append(RuleGroupUpdate.delete(rule))

    updates.extend(RuleGroupUpdate.insert(rule) for rule in remaining)

    logger.debug(
        "Computed activated rule diff",
        old_count=len(old_rules),
        deletes=len(updates) - len(remaining),
        inserts=len(remaining)
    )
    return updates


def apply_updates(members: Iterable[ActivatedRule], updates: Iterable[RuleGroupUpdate]) -> List[ActivatedRule]:
    """Replay updates onto a member list.

    A delete removes one equal member, an insert appends. Raises
    ValueError when a delete targets a member that is not present.
    """
    result = list(members)
    for update in updates:
        if update.action == ChangeAction.DELETE:
            result.remove(update.activated_rule)
        else:
            result.append(update.activated_rule)
    return result
