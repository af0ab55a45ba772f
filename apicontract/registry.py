"""
Schema Registry - single source of truth for schemas and endpoints.

The registry is an explicit value passed to every engine call; there is no
module-level singleton, so several registries can coexist (tests, hot
reload by swapping a whole registry).

References between schemas are stored by name and resolved per traversal
through a Resolver, never cached across calls. Re-registering a name is
therefore visible to the very next validate/serialize/generate call.

Writes are copy-on-write under a lock: each Resolver holds the mapping
objects that were current when it was created, so a traversal sees one
consistent snapshot even if a writer replaces a schema meanwhile.
"""

import logging
import threading
from types import MappingProxyType
from typing import Any, Callable, Dict, List, Mapping, Optional

from .attributes import AttributeNode, SchemaDefinition, build_schema, check_identifier
from .endpoints import EndpointDefinition, build_endpoint
from .conditions import NamedRule
from .errors import DefinitionError, InvalidOptionError, UnknownSchemaError
from .kinds import DEFAULT_KINDS, KindBundle, KindTable

logger = logging.getLogger('apicontract.registry')


class Resolver:
    """Name lookups against one registry snapshot."""

    def __init__(
        self,
        schemas: Mapping[str, AttributeNode],
        endpoints: Mapping[str, EndpointDefinition],
        kinds: KindTable,
        predicates: Mapping[str, Callable],
        rules: Mapping[str, Callable],
    ):
        self.schemas = schemas
        self.endpoints = endpoints
        self.kinds = kinds
        self.predicates = predicates
        self.rules = rules
        self._builtin_nodes: Dict[str, AttributeNode] = {}

    def resolve(self, name: str) -> AttributeNode:
        """
        Get the root node registered under `name`.

        Raises:
            UnknownSchemaError: If nothing is registered under that name now
        """
        node = self.schemas.get(name)
        if node is None:
            raise UnknownSchemaError(name)
        return node

    def resolve_element(self, node: AttributeNode) -> AttributeNode:
        """
        Map an array or schema attribute to the node it points at.

        Primitive element kinds resolve to a synthetic built-in node, inline
        array blocks to their element node, anything else by schema name.
        """
        if node.element is not None:
            return node.element
        ref = node.of
        if ref is None:
            raise InvalidOptionError(f"Attribute '{node.name}' ({node.kind}) has no element reference")
        if node.kind == "array" and self.kinds.is_primitive(ref):
            builtin = self._builtin_nodes.get(ref)
            if builtin is None:
                builtin = AttributeNode(ref, ref, kinds=self.kinds)
                self._builtin_nodes[ref] = builtin
            return builtin
        return self.resolve(ref)

    def resolve_endpoint(self, path: str) -> EndpointDefinition:
        endpoint = self.endpoints.get(path)
        if endpoint is None:
            raise UnknownSchemaError(path, kind="endpoint")
        return endpoint

    def predicate(self, name: str) -> Optional[Callable]:
        return self.predicates.get(name)

    def rule(self, name: str) -> Optional[Callable]:
        return self.rules.get(name)


class Registry:
    """Name -> node table for schemas, plus endpoints, named rules and kinds."""

    def __init__(self, kinds: Optional[KindTable] = None):
        self.kinds = (kinds if kinds is not None else DEFAULT_KINDS).copy()
        self._lock = threading.Lock()
        self._schemas: Mapping[str, AttributeNode] = MappingProxyType({})
        self._endpoints: Mapping[str, EndpointDefinition] = MappingProxyType({})
        self._predicates: Mapping[str, Callable] = MappingProxyType({})
        self._rules: Mapping[str, Callable] = MappingProxyType({})

    # ------------------------------------------------------------------
    # Registration (single writer)
    # ------------------------------------------------------------------

    def register_schema(self, name: str, definition: SchemaDefinition) -> AttributeNode:
        """
        Register a schema, replacing any previous mapping for `name`.

        Args:
            name: Schema name (identifier)
            definition: Builder callable taking a SchemaBuilder, or an object AttributeNode

        Returns:
            The frozen root node

        Raises:
            DefinitionError: If the declaration is malformed
        """
        check_identifier(name, "schema name")
        root = build_schema(name, definition, self.kinds).freeze()
        self._check_rules(root)
        with self._lock:
            replaced = name in self._schemas
            schemas = dict(self._schemas)
            schemas[name] = root
            self._schemas = MappingProxyType(schemas)
        logger.debug(f"schema_registered: {name} ({'replaced' if replaced else 'new'})")
        return root

    def schema(self, name: str) -> Callable[[Callable], Callable]:
        """Decorator form of register_schema."""
        def decorator(fn: Callable) -> Callable:
            self.register_schema(name, fn)
            return fn
        return decorator

    def unregister_schema(self, name: str) -> None:
        with self._lock:
            if name not in self._schemas:
                raise UnknownSchemaError(name)
            schemas = dict(self._schemas)
            del schemas[name]
            self._schemas = MappingProxyType(schemas)
        logger.debug(f"schema_unregistered: {name}")

    def register_endpoint(self, path: str, definition: Callable) -> EndpointDefinition:
        """
        Register an endpoint under its path prefix, replacing any previous one.

        The builder receives an EndpointBuilder and declares the default
        params and the operations.
        """
        endpoint = build_endpoint(path, definition, self.kinds)
        for op in endpoint.operations.values():
            if isinstance(op.params, AttributeNode):
                self._check_rules(op.params)
        if endpoint.default_params is not None:
            self._check_rules(endpoint.default_params)
        with self._lock:
            replaced = endpoint.path in self._endpoints
            endpoints = dict(self._endpoints)
            endpoints[endpoint.path] = endpoint
            self._endpoints = MappingProxyType(endpoints)
        logger.debug(
            f"endpoint_registered: {endpoint.path} operations={list(endpoint.operations)} "
            f"({'replaced' if replaced else 'new'})"
        )
        return endpoint

    def endpoint(self, path: str) -> Callable[[Callable], Callable]:
        """Decorator form of register_endpoint."""
        def decorator(fn: Callable) -> Callable:
            self.register_endpoint(path, fn)
            return fn
        return decorator

    def register_predicate(self, name: str, fn: Callable[[Any], Any]) -> None:
        """Register a named condition usable as `when="name"` / `unless="name"`."""
        check_identifier(name, "predicate name")
        with self._lock:
            predicates = dict(self._predicates)
            predicates[name] = fn
            self._predicates = MappingProxyType(predicates)

    def register_rule(self, name: str, fn: Callable[[Any, Any], Any]) -> None:
        """Register a named custom validator usable in `validators=[...]`."""
        check_identifier(name, "rule name")
        with self._lock:
            rules = dict(self._rules)
            rules[name] = fn
            self._rules = MappingProxyType(rules)

    def _check_rules(self, node: AttributeNode) -> None:
        """Named validators must be registered before the schema using them."""
        for rule in node.validators:
            if isinstance(rule, NamedRule) and rule.name not in self._rules:
                raise DefinitionError(f"Unknown rule '{rule.name}' on attribute '{node.name}'")
        for child in node.children:
            self._check_rules(child)
        if node.element is not None:
            self._check_rules(node.element)

    def register_kind(self, bundle: KindBundle) -> None:
        """Add or replace an attribute kind for schemas declared after this call."""
        with self._lock:
            kinds = self.kinds.copy()
            kinds.register(bundle)
            self.kinds = kinds

    # ------------------------------------------------------------------
    # Lookups (many readers)
    # ------------------------------------------------------------------

    def resolver(self) -> Resolver:
        """Get a Resolver over the current snapshot."""
        return Resolver(self._schemas, self._endpoints, self.kinds, self._predicates, self._rules)

    def resolve(self, name: str) -> AttributeNode:
        return self.resolver().resolve(name)

    def resolve_element(self, node: AttributeNode) -> AttributeNode:
        return self.resolver().resolve_element(node)

    def resolve_endpoint(self, path: str) -> EndpointDefinition:
        return self.resolver().resolve_endpoint(path)

    def schema_names(self) -> List[str]:
        """Get list of registered schema names in registration order."""
        return list(self._schemas.keys())

    def endpoint_paths(self) -> List[str]:
        return list(self._endpoints.keys())

    def __contains__(self, name: str) -> bool:
        return name in self._schemas
