"""
Validator engine - checks untyped input against a schema.

validate() walks the schema and the input together and returns a Result:
- value: the input projected onto the schema (coerced types, defaults applied)
- errors: a tree mirroring the input (object -> name-keyed dict,
  array -> index-keyed dict, leaf -> list of messages); empty means valid

Validation failures are data, never exceptions. Every field is visited so
callers can echo the full set of field errors. The only exception raised
here is UnknownSchemaError for a reference that doesn't resolve.
"""

import copy
import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Tuple, Union

from .accessors import get_value
from .attributes import AttributeNode
from .errors import ContractViolation
from .rules import MESSAGES, RULE_ORDER

logger = logging.getLogger('apicontract.validate')

# Key holding a container's own messages when it also has child errors
NON_FIELD_ERRORS = "__all__"

# Marks a field with no output value
OMIT = object()

ErrorTree = Union[Dict[Any, Any], List[str]]


@dataclass
class Result:
    """Outcome of a validation pass."""
    value: Any
    errors: ErrorTree = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "value": self.value,
            "errors": self.errors,
        }

    def raise_for_errors(self) -> "Result":
        """
        Raises:
            ContractViolation: If the result carries any error
        """
        if self.errors:
            raise ContractViolation(
                message=f"{count_errors(self.errors)} validation error(s)",
                details={"errors": self.errors},
            )
        return self


def count_errors(errors: ErrorTree) -> int:
    """Count leaf messages in an error tree."""
    if isinstance(errors, list):
        return len(errors)
    return sum(count_errors(sub) for sub in errors.values())


class _Validator:
    def __init__(self, resolver):
        self.resolver = resolver
        self.kinds = resolver.kinds

    def visit_field(self, node: AttributeNode, host: Any) -> Tuple[Any, ErrorTree]:
        for condition in node.conditions:
            if not condition.evaluate(host, self.resolver):
                return OMIT, []
        present, raw = get_value(host, node.accessor)
        return self.visit_value(node, present, raw, host)

    def visit_value(self, node: AttributeNode, present: bool, raw: Any, host: Any) -> Tuple[Any, ErrorTree]:
        if present and raw is None and node.nullable:
            return None, []

        if not present or raw is None:
            messages = [MESSAGES["required"]] if node.required else []
            if node.has_default:
                return copy.deepcopy(node.default), messages
            if node.structure == "array":
                return [], messages
            return OMIT, messages

        bundle = self.kinds.get(node.kind)
        try:
            value = bundle.coerce(raw)
        except (TypeError, ValueError):
            # No secondary checks against a wrongly-typed value
            return raw, [MESSAGES["type"].format(kind=node.kind)]

        messages = []
        for option in RULE_ORDER:
            rule = bundle.rules.get(option)
            if rule is None or getattr(node, option) is None:
                continue
            message = rule(node, value)
            if message:
                messages.append(message)
        for custom in node.validators:
            messages.extend(custom.check(value, host, self.resolver))

        if node.structure == "object":
            value, child_errors = self.visit_children(node, value)
        elif node.structure == "schema":
            value, child_errors = self.visit_children(self.resolver.resolve_element(node), value)
        elif node.structure == "array":
            value, child_errors = self.visit_items(node, value)
        else:
            child_errors = {}

        if not child_errors:
            return value, messages
        if messages:
            child_errors[NON_FIELD_ERRORS] = messages
        return value, child_errors

    def visit_children(self, node: AttributeNode, host: Any) -> Tuple[Dict[str, Any], Dict[str, ErrorTree]]:
        value: Dict[str, Any] = {}
        errors: Dict[str, ErrorTree] = {}
        for child in node.children:
            child_value, child_errors = self.visit_field(child, host)
            if child_value is not OMIT:
                value[child.name] = child_value
            if child_errors:
                errors[child.name] = child_errors
        return value, errors

    def visit_items(self, node: AttributeNode, items: List[Any]) -> Tuple[List[Any], Dict[int, ErrorTree]]:
        element = self.resolver.resolve_element(node)
        value: List[Any] = []
        errors: Dict[int, ErrorTree] = {}
        for index, item in enumerate(items):
            if item is None and not element.nullable:
                # Array positions are always present input
                value.append(None)
                errors[index] = [MESSAGES["type"].format(kind=element.kind)]
                continue
            item_value, item_errors = self.visit_value(element, True, item, items)
            value.append(None if item_value is OMIT else item_value)
            if item_errors:
                errors[index] = item_errors
        return value, errors


def _run(resolver, node: AttributeNode, data: Any) -> Result:
    if data is None:
        data = {}
    value, errors = _Validator(resolver).visit_value(node, True, data, None)
    if value is OMIT:
        value = None
    if errors:
        logger.debug(f"validation_failed: schema={node.name} errors={count_errors(errors)}")
    return Result(value=value, errors=errors or {})


def validate(registry, schema: Union[str, AttributeNode], data: Any) -> Result:
    """
    Validate `data` against a schema.

    Args:
        registry: Registry used to resolve schema references
        schema: Registered schema name, or an AttributeNode
        data: Untyped input (mapping or host object)

    Returns:
        Result with the normalized value and the error tree

    Raises:
        UnknownSchemaError: If a referenced schema is not registered
    """
    resolver = registry.resolver()
    node = resolver.resolve(schema) if isinstance(schema, str) else schema
    return _run(resolver, node, data)


def validate_params(registry, endpoint_path: str, operation_name: str, data: Any) -> Result:
    """Validate request params against an operation's effective params schema."""
    resolver = registry.resolver()
    endpoint = resolver.resolve_endpoint(endpoint_path)
    node = endpoint.operation(operation_name).effective_params(endpoint, resolver)
    return _run(resolver, node, data)
