"""
Attribute node model and the declarative SchemaBuilder.

An AttributeNode only holds data and checks that its own shape is valid.
Coercion, messages and projection live in kind bundles (see kinds.py), and
references to other schemas are kept as names so recursive schemas never
embed each other.

Usage:
    def hero(s):
        s.string("name", min=4, required=True)
        s.array("friends", of="hero")
        s.object("stats", lambda o: o.integer("power", min=0))

    registry.register_schema("hero", hero)
"""

import re
from typing import Any, Callable, Dict, Iterator, Optional, Tuple, Union

from .conditions import as_condition, as_rule
from .errors import DuplicateFieldError, InvalidOptionError
from .kinds import DEFAULT_KINDS, KindTable

IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def check_identifier(value: Any, what: str = "name") -> str:
    if not isinstance(value, str) or not IDENTIFIER.match(value):
        raise InvalidOptionError(f"Invalid {what} {value!r}: must be an identifier")
    return value


def _check_bound(node_name: str, option: str, value: Any, kind: str) -> Any:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidOptionError(f"'{node_name}': {option} must be a number, got {value!r}")
    if kind in ("string", "array") and (not isinstance(value, int) or value < 0):
        raise InvalidOptionError(f"'{node_name}': {option} must be a non-negative integer for {kind}")
    return value


class AttributeNode:
    """A single declared field: name, kind, accessor, options, children."""

    def __init__(
        self,
        name: str,
        kind: str,
        kinds: Optional[KindTable] = None,
        element: Optional["AttributeNode"] = None,
        **options: Any,
    ):
        kinds = kinds if kinds is not None else DEFAULT_KINDS
        bundle = kinds.get(kind)

        self.name = check_identifier(name)
        self.kind = kind
        self.structure = bundle.structure

        for option in options:
            if not bundle.accepts(option):
                raise InvalidOptionError(f"Option '{option}' does not apply to {kind} attribute '{name}'")

        self.accessor = check_identifier(options.get("accessor", name), "accessor")
        self.required = bool(options.get("required", False))
        self.private = bool(options.get("private", False))
        self.deprecated = bool(options.get("deprecated", False))
        self.nullable = bool(options.get("null", False))
        self.description = options.get("description")
        self.format = options.get("format")
        self.has_default = "default" in options
        self.default = options.get("default")

        self.pattern = None
        if options.get("pattern") is not None:
            try:
                self.pattern = re.compile(options["pattern"])
            except (re.error, TypeError) as e:
                raise InvalidOptionError(f"'{name}': invalid pattern {options['pattern']!r}: {e}") from None

        self.min = options.get("min")
        self.max = options.get("max")
        if self.min is not None:
            _check_bound(name, "min", self.min, kind)
        if self.max is not None:
            _check_bound(name, "max", self.max, kind)
        if self.min is not None and self.max is not None and self.min > self.max:
            raise InvalidOptionError(f"'{name}': min ({self.min}) is greater than max ({self.max})")

        self.allowed = None
        if options.get("allowed") is not None:
            allowed = options["allowed"]
            if isinstance(allowed, (str, bytes)) or not hasattr(allowed, "__iter__"):
                raise InvalidOptionError(f"'{name}': allowed must be a collection, got {allowed!r}")
            self.allowed = tuple(allowed)

        conditions = []
        if options.get("when") is not None:
            conditions.append(as_condition(options["when"]))
        if options.get("unless") is not None:
            conditions.append(as_condition(options["unless"], negate=True))
        self.conditions = tuple(conditions)

        validators = options.get("validators") or ()
        if callable(validators) or isinstance(validators, str):
            validators = (validators,)
        self.validators = tuple(as_rule(v) for v in validators)

        self.of = self._element_ref(options.get("of"), element, kinds)
        self.element = element
        self._children: Dict[str, AttributeNode] = {}
        self._frozen = False

    def _element_ref(self, of, element, kinds: KindTable) -> Optional[str]:
        if self.kind == "schema":
            return check_identifier(of if of is not None else self.name, "schema reference")
        if self.kind != "array":
            if element is not None:
                raise InvalidOptionError(f"'{self.name}': only array attributes take an element block")
            return None
        if element is not None:
            if of is not None:
                raise InvalidOptionError(f"'{self.name}': array takes either 'of' or an element block, not both")
            return None
        if of is None:
            raise InvalidOptionError(f"'{self.name}': array requires 'of' or an element block")
        check_identifier(of, "element reference")
        if of in kinds and not kinds.is_primitive(of):
            raise InvalidOptionError(f"'{self.name}': arrays of '{of}' need an element block or a schema name")
        return of

    @property
    def children(self) -> Tuple["AttributeNode", ...]:
        return tuple(self._children.values())

    def child(self, name: str) -> Optional["AttributeNode"]:
        return self._children.get(name)

    def add_child(self, node: "AttributeNode") -> "AttributeNode":
        if self.kind != "object":
            raise InvalidOptionError(f"Cannot add children to {self.kind} attribute '{self.name}'")
        if self._frozen:
            raise InvalidOptionError(f"Attribute '{self.name}' is registered and can no longer change")
        if node.name in self._children:
            raise DuplicateFieldError(self.name, node.name)
        self._children[node.name] = node
        return node

    def freeze(self) -> "AttributeNode":
        """Mark this tree immutable; called when the schema is registered."""
        self._frozen = True
        for child in self._children.values():
            child.freeze()
        if self.element is not None:
            self.element.freeze()
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __iter__(self) -> Iterator["AttributeNode"]:
        return iter(self._children.values())

    def __repr__(self):
        ref = f" of={self.of!r}" if self.of else ""
        return f"<AttributeNode {self.name}:{self.kind}{ref} children={len(self._children)}>"


class SchemaBuilder:
    """Declarative field declarations appended to an object node."""

    def __init__(self, node: AttributeNode, kinds: Optional[KindTable] = None):
        self.node = node
        self.kinds = kinds if kinds is not None else DEFAULT_KINDS

    def field(self, name: str, kind: str, block: Optional[Callable] = None, **options) -> AttributeNode:
        """Declare an attribute of any registered kind (including custom ones)."""
        if block is None:
            return self.node.add_child(AttributeNode(name, kind, kinds=self.kinds, **options))

        if kind == "object":
            node = AttributeNode(name, "object", kinds=self.kinds, **options)
            block(SchemaBuilder(node, self.kinds))
            return self.node.add_child(node)
        if kind == "array":
            element = AttributeNode(name, "object", kinds=self.kinds)
            block(SchemaBuilder(element, self.kinds))
            node = AttributeNode(name, "array", kinds=self.kinds, element=element, **options)
            return self.node.add_child(node)
        raise InvalidOptionError(f"'{name}': only object and array attributes take a block")

    def string(self, name: str, **options) -> AttributeNode:
        return self.field(name, "string", **options)

    def boolean(self, name: str, **options) -> AttributeNode:
        return self.field(name, "boolean", **options)

    def number(self, name: str, **options) -> AttributeNode:
        return self.field(name, "number", **options)

    def integer(self, name: str, **options) -> AttributeNode:
        return self.field(name, "integer", **options)

    def float(self, name: str, **options) -> AttributeNode:
        return self.field(name, "float", **options)

    def array(self, name: str, block: Optional[Callable] = None, **options) -> AttributeNode:
        return self.field(name, "array", block, **options)

    def object(self, name: str, block: Optional[Callable] = None, **options) -> AttributeNode:
        return self.field(name, "object", block, **options)

    def schema(self, name: str, of: Optional[str] = None, **options) -> AttributeNode:
        if of is not None:
            options["of"] = of
        return self.field(name, "schema", **options)


SchemaDefinition = Union[AttributeNode, Callable[[SchemaBuilder], Any]]


def build_schema(name: str, definition: SchemaDefinition, kinds: Optional[KindTable] = None) -> AttributeNode:
    """Turn a builder callable (or a ready object node) into a root node."""
    if isinstance(definition, AttributeNode):
        if definition.kind != "object":
            raise InvalidOptionError(f"Schema '{name}' must be an object attribute, got {definition.kind}")
        return definition
    if not callable(definition):
        raise InvalidOptionError(f"Schema '{name}' needs a builder callable or an AttributeNode")
    root = AttributeNode(name, "object", kinds=kinds)
    definition(SchemaBuilder(root, kinds))
    return root
