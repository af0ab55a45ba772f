"""
Built-in secondary rules.

Each rule takes the attribute node and an already type-checked value and
returns a failure message, or None when the value passes. Kind bundles map
option names (pattern, min, max, allowed) to the rule matching their kind.
"""

from typing import Any, Optional

MESSAGES = {
    "required": "is required",
    "type": "is not {kind}",
    "pattern": "is in invalid format",
    "too_short": "is too short (minimum is {count} characters)",
    "too_long": "is too long (maximum is {count} characters)",
    "greater_than_or_equal_to": "must be greater than or equal to {count}",
    "less_than_or_equal_to": "must be less than or equal to {count}",
    "too_few_items": "is too short (minimum is {count} items)",
    "too_many_items": "is too long (maximum is {count} items)",
    "inclusion": "is not included in the list",
}


def check_pattern(node, value: Any) -> Optional[str]:
    if node.pattern.search(value) is None:
        return MESSAGES["pattern"]
    return None


def check_min_length(node, value: Any) -> Optional[str]:
    if len(value) < node.min:
        return MESSAGES["too_short"].format(count=node.min)
    return None


def check_max_length(node, value: Any) -> Optional[str]:
    if len(value) > node.max:
        return MESSAGES["too_long"].format(count=node.max)
    return None


def check_minimum(node, value: Any) -> Optional[str]:
    if value < node.min:
        return MESSAGES["greater_than_or_equal_to"].format(count=node.min)
    return None


def check_maximum(node, value: Any) -> Optional[str]:
    if value > node.max:
        return MESSAGES["less_than_or_equal_to"].format(count=node.max)
    return None


def check_min_items(node, value: Any) -> Optional[str]:
    if len(value) < node.min:
        return MESSAGES["too_few_items"].format(count=node.min)
    return None


def check_max_items(node, value: Any) -> Optional[str]:
    if len(value) > node.max:
        return MESSAGES["too_many_items"].format(count=node.max)
    return None


def check_allowed(node, value: Any) -> Optional[str]:
    if value not in node.allowed:
        return MESSAGES["inclusion"]
    return None


# Fixed evaluation order for secondary checks
RULE_ORDER = ("pattern", "min", "max", "allowed")

STRING_RULES = {
    "pattern": check_pattern,
    "min": check_min_length,
    "max": check_max_length,
    "allowed": check_allowed,
}

NUMBER_RULES = {
    "min": check_minimum,
    "max": check_maximum,
    "allowed": check_allowed,
}

ARRAY_RULES = {
    "min": check_min_items,
    "max": check_max_items,
}
