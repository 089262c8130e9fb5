"""
Rule group data models.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class RuleType(str, Enum):
    """Activated rule types."""
    REGULAR = "REGULAR"
    RATE_BASED = "RATE_BASED"
    GROUP = "GROUP"


class WafActionType(str, Enum):
    """Action taken when an activated rule matches."""
    ALLOW = "ALLOW"
    BLOCK = "BLOCK"
    COUNT = "COUNT"


class WafOverrideActionType(str, Enum):
    """Override applied to the rules of a nested rule group."""
    NONE = "NONE"
    COUNT = "COUNT"


class ChangeAction(str, Enum):
    """Kind of rule group update."""
    INSERT = "INSERT"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ActivatedRule:
    """A rule activated inside a rule group.

    Equality covers all five attributes, so two activations of the same
    rule_id with different priorities are different members.
    """
    priority: int
    rule_id: str
    type: RuleType = RuleType.REGULAR
    action: Optional[WafActionType] = None
    override_action: Optional[WafOverrideActionType] = None


@dataclass(frozen=True)
class RuleGroupUpdate:
    """One insert or delete of an activated rule."""
    action: ChangeAction
    activated_rule: ActivatedRule

    @classmethod
    def insert(cls, rule: ActivatedRule) -> "RuleGroupUpdate":
        return cls(ChangeAction.INSERT, rule)

    @classmethod
    def delete(cls, rule: ActivatedRule) -> "RuleGroupUpdate":
        return cls(ChangeAction.DELETE, rule)


@dataclass(frozen=True)
class RuleGroupRef:
    """Identity of a remote rule group. Name and metric name never change."""
    rule_group_id: str
    name: str
    metric_name: str


@dataclass
class RuleGroup:
    """A rule group together with its current members."""
    rule_group_id: str
    name: str
    metric_name: str
    activated_rules: List[ActivatedRule] = field(default_factory=list)

    @classmethod
    def from_ref(cls, ref: RuleGroupRef, activated_rules: List[ActivatedRule]) -> "RuleGroup":
        return cls(
            rule_group_id=ref.rule_group_id,
            name=ref.name,
            metric_name=ref.metric_name,
            activated_rules=list(activated_rules)
        )
