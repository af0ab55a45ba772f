"""
Serializer engine - projects a value onto a schema's canonical output shape.

Independent of validation: no required/pattern/min/max checks and no error
channel. Malformed or missing members degrade to absent handling (declared
default, [] for arrays, otherwise None), so the output of an object always
carries every declared field except private and condition-false ones.
"""

import copy
from typing import Any, Dict, Iterable, Union

from .accessors import get_value
from .attributes import AttributeNode

# Marks a field left out of the output
OMIT = object()


class _Serializer:
    def __init__(self, resolver):
        self.resolver = resolver
        self.kinds = resolver.kinds

    def visit_field(self, node: AttributeNode, host: Any) -> Any:
        if node.private:
            return OMIT
        for condition in node.conditions:
            if not condition.evaluate(host, self.resolver):
                return OMIT
        present, raw = get_value(host, node.accessor)
        return self.visit_value(node, present, raw)

    def visit_value(self, node: AttributeNode, present: bool, raw: Any) -> Any:
        if not present or raw is None:
            return self.absent(node)

        bundle = self.kinds.get(node.kind)
        try:
            value = bundle.coerce(raw) if node.structure else bundle.project(raw)
        except (TypeError, ValueError):
            return self.absent(node)

        if node.structure == "array":
            return self.visit_items(node, value)
        if node.structure == "object":
            return self.visit_children(node, value)
        if node.structure == "schema":
            return self.visit_children(self.resolver.resolve_element(node), value)
        return value

    def visit_children(self, node: AttributeNode, host: Any) -> Dict[str, Any]:
        output = {}
        for child in node.children:
            value = self.visit_field(child, host)
            if value is not OMIT:
                output[child.name] = value
        return output

    def visit_items(self, node: AttributeNode, items: Iterable[Any]) -> list:
        element = self.resolver.resolve_element(node)
        return [self.visit_value(element, True, item) for item in items]

    def absent(self, node: AttributeNode) -> Any:
        if node.has_default:
            return copy.deepcopy(node.default)
        if node.structure == "array":
            return []
        return None


def serialize(registry, schema: Union[str, AttributeNode], obj: Any, many: bool = False) -> Any:
    """
    Serialize `obj` (mapping or host object) through a schema.

    Args:
        registry: Registry used to resolve schema references
        schema: Registered schema name, or an AttributeNode
        obj: Value to serialize; never mutated
        many: Treat `obj` as a sequence and serialize each item

    Returns:
        Output dict keyed by the schema's declared fields (a list when many=True)

    Raises:
        UnknownSchemaError: If a referenced schema is not registered
    """
    resolver = registry.resolver()
    node = resolver.resolve(schema) if isinstance(schema, str) else schema
    serializer = _Serializer(resolver)
    if many:
        return [serializer.visit_value(node, True, item) for item in (obj or [])]
    return serializer.visit_value(node, True, obj)
