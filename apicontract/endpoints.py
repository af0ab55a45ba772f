"""
Endpoint & parameter composition.

An endpoint groups operations under a path prefix and may declare a default
params schema. Each operation carries a params directive from which its
effective params schema is computed on every lookup:

    False / None            -> empty schema
    True                    -> the endpoint default, verbatim
    ["a", "b"]              -> only those default fields
    ["a"], exclude=True     -> every default field except those
    callable                -> an inline schema replacing the default
    "/other"                -> the default params of another endpoint

Usage:
    def heroes(e):
        e.params(lambda s: (s.string("name", required=True), s.integer("age")))
        e.get("index", path="/", schema="hero", many=True)
        e.post("create", path="/", params=True, schema="hero")
        e.patch("update", path="/:id", params=["age"], exclude=True)

    registry.register_endpoint("/heroes", heroes)
"""

import re
from typing import Any, Callable, Dict, Optional, Sequence, Union

from .attributes import AttributeNode, SchemaDefinition, build_schema, check_identifier
from .errors import DefinitionError, InvalidOptionError, UnknownSchemaError
from .kinds import KindTable

HTTP_METHODS = ("get", "post", "put", "patch", "delete", "head", "options")

ParamsDirective = Union[None, bool, Sequence[str], Callable, str, AttributeNode]

_PATH_PARAM = re.compile(r":([A-Za-z_][A-Za-z0-9_]*)")


def join_path(prefix: str, sub_path: str) -> str:
    """Join an endpoint prefix and an operation sub path: ("/heroes", "/:id") -> "/heroes/:id"."""
    prefix = prefix.rstrip("/")
    sub_path = (sub_path or "").strip()
    if sub_path in ("", "/"):
        return prefix or "/"
    return f"{prefix}/{sub_path.lstrip('/')}"


def path_parameters(path: str):
    """Get the `:name` placeholders of a path, in order."""
    return _PATH_PARAM.findall(path)


def to_openapi_path(path: str) -> str:
    """Convert `:id` placeholders to OpenAPI `{id}` form."""
    return _PATH_PARAM.sub(r"{\1}", path)


class OperationDefinition:
    """A single HTTP operation of an endpoint."""

    def __init__(
        self,
        name: str,
        method: str,
        path: str = "/",
        params: ParamsDirective = False,
        exclude: bool = False,
        schema: Optional[str] = None,
        many: bool = False,
        description: Optional[str] = None,
        deprecated: bool = False,
        kinds: Optional[KindTable] = None,
    ):
        self.name = check_identifier(name, "operation name")
        method = str(method).lower()
        if method not in HTTP_METHODS:
            raise InvalidOptionError(f"Operation '{name}': unsupported HTTP method {method!r}")
        self.method = method
        self.path = path or "/"
        self.exclude = bool(exclude)
        self.schema = check_identifier(schema, "response schema") if schema is not None else None
        self.many = bool(many)
        self.description = description
        self.deprecated = bool(deprecated)
        self.params = self._check_directive(params, kinds)

    def _check_directive(self, params: ParamsDirective, kinds: Optional[KindTable]):
        if self.exclude and (isinstance(params, (bool, str)) or params is None or callable(params)):
            raise InvalidOptionError(f"Operation '{self.name}': exclude only applies to a list of field names")
        if params is None or isinstance(params, (bool, AttributeNode)):
            return params
        if isinstance(params, str):
            if not params.startswith("/"):
                raise InvalidOptionError(
                    f"Operation '{self.name}': params reference {params!r} must be an endpoint path"
                )
            return params
        if callable(params):
            return build_schema(f"{self.name}_params", params, kinds).freeze()
        if isinstance(params, (list, tuple, set, frozenset)):
            return tuple(check_identifier(n, "param name") for n in params)
        raise InvalidOptionError(f"Operation '{self.name}': invalid params directive {params!r}")

    def effective_params(self, endpoint: "EndpointDefinition", resolver) -> AttributeNode:
        """
        Compute the params schema this operation accepts.

        Computed on every call so a replaced endpoint default is seen at once.

        Raises:
            DefinitionError: If the directive can't be satisfied
        """
        directive = self.params
        schema_name = f"{self.name}_params"

        if directive is None or directive is False:
            return AttributeNode(schema_name, "object").freeze()

        if isinstance(directive, AttributeNode):
            return directive

        if directive is True:
            if endpoint.default_params is None:
                raise DefinitionError(
                    f"Operation '{self.name}' uses params=True but endpoint '{endpoint.path}' has no default params"
                )
            return endpoint.default_params

        if isinstance(directive, str):
            other = resolver.resolve_endpoint(directive)
            if other.default_params is None:
                raise DefinitionError(
                    f"Operation '{self.name}' references endpoint '{directive}' which has no default params"
                )
            return other.default_params

        # List of field names picked from (or excluded from) the default
        default = endpoint.default_params
        if default is None:
            raise DefinitionError(
                f"Operation '{self.name}' selects params from endpoint '{endpoint.path}' which has no default params"
            )
        for field_name in directive:
            if default.child(field_name) is None:
                raise InvalidOptionError(
                    f"Operation '{self.name}': unknown param '{field_name}' in endpoint '{endpoint.path}'"
                )

        effective = AttributeNode(schema_name, "object")
        if self.exclude:
            selected = [c for c in default.children if c.name not in directive]
        else:
            selected = [c for c in default.children if c.name in directive]
        for child in selected:
            effective.add_child(child)
        return effective.freeze()

    def __repr__(self):
        return f"<OperationDefinition {self.method.upper()} {self.name} {self.path}>"


class EndpointDefinition:
    """Operations sharing a path prefix and a default params schema."""

    def __init__(self, path: str, description: Optional[str] = None):
        if not isinstance(path, str) or not path.startswith("/"):
            raise InvalidOptionError(f"Endpoint path must start with '/', got {path!r}")
        self.path = path.rstrip("/") or "/"
        self.name = "_".join(p for p in re.split(r"[^A-Za-z0-9_]+", self.path) if p) or "root"
        if self.name[0].isdigit():
            self.name = f"_{self.name}"
        self.description = description
        self.default_params: Optional[AttributeNode] = None
        self.operations: Dict[str, OperationDefinition] = {}

    def add_operation(self, operation: OperationDefinition) -> OperationDefinition:
        if operation.name in self.operations:
            raise InvalidOptionError(f"Duplicate operation '{operation.name}' in endpoint '{self.path}'")
        self.operations[operation.name] = operation
        return operation

    def operation(self, name: str) -> OperationDefinition:
        op = self.operations.get(name)
        if op is None:
            raise UnknownSchemaError(f"{self.path}#{name}", kind="operation")
        return op

    def full_path(self, operation: OperationDefinition) -> str:
        return join_path(self.path, operation.path)

    def __repr__(self):
        return f"<EndpointDefinition {self.path} operations={list(self.operations)}>"


class EndpointBuilder:
    """Declarative surface for an endpoint's default params and operations."""

    def __init__(self, endpoint: EndpointDefinition, kinds: Optional[KindTable] = None):
        self.endpoint = endpoint
        self.kinds = kinds

    def params(self, definition: SchemaDefinition) -> AttributeNode:
        """Declare the endpoint's default params schema."""
        self.endpoint.default_params = build_schema(f"{self.endpoint.name}_params", definition, self.kinds).freeze()
        return self.endpoint.default_params

    def describe(self, text: str) -> None:
        self.endpoint.description = text

    def operation(self, method: str, name: str, path: str = "/", **options: Any) -> OperationDefinition:
        op = OperationDefinition(name, method, path, kinds=self.kinds, **options)
        return self.endpoint.add_operation(op)

    def get(self, name: str, path: str = "/", **options) -> OperationDefinition:
        return self.operation("get", name, path, **options)

    def post(self, name: str, path: str = "/", **options) -> OperationDefinition:
        return self.operation("post", name, path, **options)

    def put(self, name: str, path: str = "/", **options) -> OperationDefinition:
        return self.operation("put", name, path, **options)

    def patch(self, name: str, path: str = "/", **options) -> OperationDefinition:
        return self.operation("patch", name, path, **options)

    def delete(self, name: str, path: str = "/", **options) -> OperationDefinition:
        return self.operation("delete", name, path, **options)


def build_endpoint(path: str, definition: Callable, kinds: Optional[KindTable] = None) -> EndpointDefinition:
    endpoint = EndpointDefinition(path)
    if not callable(definition):
        raise InvalidOptionError(f"Endpoint '{path}' needs a builder callable")
    definition(EndpointBuilder(endpoint, kinds))
    return endpoint


def effective_params(registry, endpoint_path: str, operation_name: str) -> AttributeNode:
    """Look up an operation and compute its effective params schema."""
    resolver = registry.resolver()
    endpoint = resolver.resolve_endpoint(endpoint_path)
    return endpoint.operation(operation_name).effective_params(endpoint, resolver)
