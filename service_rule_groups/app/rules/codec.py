"""
Codec between generic activated rule records and ActivatedRule values.

A record is the map-like shape used at the CRUD boundary::

    {
        "priority": 1,
        "rule_id": "a1b2",
        "type": "GROUP",
        "override_action": [{"type": "COUNT"}],
    }

``action`` and ``override_action`` are optional one-element blocks.
"""

from typing import Annotated, Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, ValidationError

from shared.errors import SchemaError
from .models import ActivatedRule, RuleType, WafActionType, WafOverrideActionType


Record = Mapping[str, Any]


class _ActionBlock(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: WafActionType


class _OverrideActionBlock(BaseModel):
    model_config = ConfigDict(extra="forbid")

    type: WafOverrideActionType


class _ActivatedRuleRecord(BaseModel):
    """Validation schema for an activated rule record."""

    model_config = ConfigDict(extra="forbid")

    priority: StrictInt
    rule_id: StrictStr
    type: RuleType = RuleType.REGULAR
    action: Optional[Annotated[List[_ActionBlock], Field(max_length=1)]] = None
    override_action: Optional[Annotated[List[_OverrideActionBlock], Field(max_length=1)]] = None


def _format_errors(exc: ValidationError) -> List[Dict[str, Any]]:
    return [
        {"loc": ".".join(str(part) for part in error["loc"]), "msg": error["msg"]}
        for error in exc.errors()
    ]


def encode(record: Record) -> ActivatedRule:
    """Validate a record and build the ActivatedRule it describes."""
    if not isinstance(record, Mapping):
        raise SchemaError(
            "Activated rule record must be a mapping",
            details={"received": type(record).__name__}
        )

    try:
        parsed = _ActivatedRuleRecord.model_validate(dict(record))
    except ValidationError as e:
        errors = _format_errors(e)
        summary = "; ".join(f"{err['loc']}: {err['msg']}" for err in errors)
        raise SchemaError(f"Invalid activated rule record: {summary}", details={"errors": errors}) from e

    return ActivatedRule(
        priority=parsed.priority,
        rule_id=parsed.rule_id,
        type=parsed.type,
        action=parsed.action[0].type if parsed.action else None,
        override_action=parsed.override_action[0].type if parsed.override_action else None
    )


def decode(rule: ActivatedRule) -> Dict[str, Any]:
    """Flatten an ActivatedRule into a record."""
    record: Dict[str, Any] = {
        "priority": rule.priority,
        "rule_id": rule.rule_id,
        "type": rule.type.value,
    }
    if rule.action is not None:
        record["action"] = [{"type": rule.action.value}]
    if rule.override_action is not None:
        record["override_action"] = [{"type": rule.override_action.value}]
    return record


def coerce(member: Union[Record, ActivatedRule]) -> ActivatedRule:
    """Accept either an ActivatedRule or a record."""
    if isinstance(member, ActivatedRule):
        return member
    return encode(member)


def encode_all(records: Iterable[Union[Record, ActivatedRule]]) -> List[ActivatedRule]:
    return [coerce(record) for record in records]


def decode_all(rules: Iterable[ActivatedRule]) -> List[Dict[str, Any]]:
    return [decode(rule) for rule in rules]
