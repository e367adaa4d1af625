"""
Condition evaluation for the RBAC engine.

A condition selects a value from one of three scopes (the user, the
resource, or the whole evaluation context) through a dot-separated path
and compares it with the condition's value. Conditions of type
``function`` delegate to a caller-supplied predicate instead.

Evaluation never raises: unknown operators, unknown types, type
mismatches and failing predicates all evaluate to False.
"""

import re
from typing import Any, Mapping

from shared.logging import get_logger
from .models import Condition, ConditionOperator, ConditionType, EvaluationContext

logger = get_logger("rbac.conditions")

_COLLECTION_TYPES = (list, tuple, set, frozenset)


def get_nested_value(obj: Any, path: str) -> Any:
    """Resolve a dot-path (e.g. ``profile.email``) against mappings and objects."""
    current = obj
    for part in path.split("."):
        if current is None:
            return None
        if isinstance(current, Mapping):
            current = current.get(part)
        else:
            current = getattr(current, part, None)
    return current


def _strict_equals(left: Any, right: Any) -> bool:
    # True == 1 in Python; a strict comparison must tell them apart.
    if isinstance(left, bool) or isinstance(right, bool):
        return type(left) is type(right) and left == right
    return left == right


def _contains_strict(collection: Any, item: Any) -> bool:
    return any(_strict_equals(element, item) for element in collection)


def compare_values(subject: Any, expected: Any, operator: Any) -> bool:
    """Compare ``subject`` (the looked-up value) with ``expected`` using ``operator``."""
    try:
        if operator == ConditionOperator.EQ:
            return _strict_equals(subject, expected)

        elif operator == ConditionOperator.NE:
            return not _strict_equals(subject, expected)

        elif operator == ConditionOperator.GT:
            return subject > expected

        elif operator == ConditionOperator.GTE:
            return subject >= expected

        elif operator == ConditionOperator.LT:
            return subject < expected

        elif operator == ConditionOperator.LTE:
            return subject <= expected

        elif operator == ConditionOperator.IN:
            return isinstance(expected, _COLLECTION_TYPES) and _contains_strict(expected, subject)

        elif operator == ConditionOperator.NIN:
            return isinstance(expected, _COLLECTION_TYPES) and not _contains_strict(expected, subject)

        elif operator == ConditionOperator.CONTAINS:
            if isinstance(subject, str) and isinstance(expected, str):
                return expected in subject
            if isinstance(subject, _COLLECTION_TYPES):
                return _contains_strict(subject, expected)
            return False

        elif operator == ConditionOperator.REGEX:
            if isinstance(subject, str) and isinstance(expected, str):
                return re.search(expected, subject) is not None
            return False

        else:
            logger.warning("Unknown condition operator", operator=str(operator))
            return False

    except (TypeError, re.error):
        # Non-comparable operands or an invalid pattern
        return False


def evaluate_condition(condition: Condition, context: EvaluationContext) -> bool:
    """Evaluate a single condition against the evaluation context."""
    try:
        if condition.type == ConditionType.FUNCTION:
            if condition.custom_function is None:
                return False
            return bool(condition.custom_function(context, context.user, context.resource))

        if not condition.field:
            return False

        if condition.type == ConditionType.USER:
            scope = context.user.to_dict()
        elif condition.type == ConditionType.RESOURCE:
            scope = context.resource.to_dict()
        elif condition.type == ConditionType.CONTEXT:
            scope = context.to_dict()
        else:
            logger.warning("Unknown condition type", condition_type=str(condition.type))
            return False

        subject = get_nested_value(scope, condition.field)
        return compare_values(subject, condition.value, condition.operator)

    except Exception as e:
        logger.error("Error evaluating condition", condition_type=str(condition.type), error=str(e))
        return False
