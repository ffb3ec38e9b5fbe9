"""Evaluates constraint rules against a decision.

Supported rule types:

- ``budget_threshold``: compare a numeric field with a value
- ``policy_regex``: a text field must match a pattern
- ``technical_compatibility``: a field must be one of the allowed values
- ``compliance_required_fields``: listed fields must be present and non-empty

Fields are dotted paths into the decision document built by
``decision_document`` (e.g. ``context.cost``). Constraints without a rule,
with an unknown rule type or with an incomplete rule pass.
"""

import logging
import operator
import re
from dataclasses import dataclass, field
from typing import Any

from decivue.core.models.constraint import Constraint
from decivue.core.models.decision import Decision

logger = logging.getLogger(__name__)

_OPERATORS = {
    "<": operator.lt,
    "<=": operator.le,
    ">": operator.gt,
    ">=": operator.ge,
    "==": operator.eq,
    "!=": operator.ne,
}

_REGEX_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL}

_MISSING = object()


@dataclass
class RuleResult:
    passed: bool
    reason: str | None = None
    details: dict = field(default_factory=dict)


def decision_document(decision: Decision) -> dict:
    """The view of a decision that rule fields are resolved against."""
    return {
        "title": decision.title,
        "description": decision.description,
        "category": decision.category,
        "parameters": decision.parameters or {},
        "context": decision.context or {},
    }


def get_path(document: Any, path: str) -> Any:
    """Resolve a dotted path, returning a sentinel when any segment is missing."""
    current = document
    for key in path.split("."):
        if not isinstance(current, dict) or key not in current:
            return _MISSING
        current = current[key]
    return current


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _budget_threshold(rule: dict, document: dict) -> RuleResult:
    path = rule.get("field") or "context.cost"
    op = rule.get("operator") or "<="
    threshold = rule.get("value")
    if threshold is None or op not in _OPERATORS:
        return RuleResult(True)

    actual = get_path(document, path)
    if not _is_number(actual):
        return RuleResult(
            False,
            f'Budget field "{path}" not found or not a number',
            {"field": path, "threshold": threshold},
        )
    if _OPERATORS[op](actual, threshold):
        return RuleResult(True)
    return RuleResult(
        False,
        f"Budget constraint violated: {actual:g} {op} {threshold:g} is false",
        {"field": path, "actual": actual, "operator": op, "threshold": threshold},
    )


def _policy_regex(rule: dict, document: dict) -> RuleResult:
    pattern = rule.get("pattern")
    if not pattern:
        return RuleResult(True)
    path = rule.get("field") or "description"
    flags = rule.get("flags") if rule.get("flags") is not None else "i"

    text = get_path(document, path)
    if not isinstance(text, str):
        return RuleResult(
            False,
            f'Field "{path}" must be text to match a policy pattern',
            {"field": path, "pattern": pattern},
        )

    compiled_flags = 0
    for flag in flags:
        compiled_flags |= _REGEX_FLAGS.get(flag, 0)
    try:
        matched = re.search(pattern, text, compiled_flags) is not None
    except re.error:
        logger.warning("Invalid policy pattern %r; constraint passes", pattern)
        return RuleResult(True)

    if matched:
        return RuleResult(True)
    return RuleResult(
        False,
        f"Decision {path} does not match required pattern: {pattern}",
        {"field": path, "pattern": pattern, "flags": flags, "text": text[:200]},
    )


def _technical_compatibility(rule: dict, document: dict) -> RuleResult:
    path = rule.get("field")
    if not path:
        return RuleResult(True)
    allowed = rule.get("allowed_values") or []
    actual = get_path(document, path)
    if actual is not _MISSING and actual in allowed:
        return RuleResult(True)
    shown = None if actual is _MISSING else actual
    return RuleResult(
        False,
        f'Value "{shown}" not in allowed list for {path}',
        {"field": path, "actual": shown, "allowed_values": allowed},
    )


def _required_fields(rule: dict, document: dict) -> RuleResult:
    required = rule.get("fields") or []
    if not required:
        return RuleResult(True)
    missing = [
        path for path in required if get_path(document, path) in (_MISSING, None, "")
    ]
    if not missing:
        return RuleResult(True)
    return RuleResult(
        False,
        f"Missing required fields: {', '.join(missing)}",
        {"missing_fields": missing, "required_fields": required},
    )


_VALIDATORS = {
    "budget_threshold": _budget_threshold,
    "policy_regex": _policy_regex,
    "technical_compatibility": _technical_compatibility,
    "compliance_required_fields": _required_fields,
}


def validate_rule(rule: dict | None, document: dict) -> RuleResult:
    """Check one rule against a decision document."""
    if not rule:
        return RuleResult(True)
    validator = _VALIDATORS.get(rule.get("type"))
    if validator is None:
        logger.warning("Unknown constraint rule type %r; constraint passes", rule.get("type"))
        return RuleResult(True)
    return validator(rule, document)


def validate_constraint(constraint: Constraint, decision: Decision) -> RuleResult:
    result = validate_rule(constraint.rule, decision_document(decision))
    if not result.passed:
        result.details.setdefault("constraint", constraint.name)
    return result
