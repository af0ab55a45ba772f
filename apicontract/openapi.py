"""
OpenAPI descriptor generator.

Walks every registered schema and endpoint and emits an OpenAPI 3 document:
- components.schemas.<name> for each schema
- paths.<prefix><subpath>.<method> for each operation
- schema references are always "$ref": "#/components/schemas/<name>", never
  inlined, so recursive schemas are described without expansion

Only structural metadata is read; no data is evaluated. The only failure is
UnknownSchemaError for a reference that doesn't resolve.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .attributes import AttributeNode
from .config import Config
from .endpoints import EndpointDefinition, OperationDefinition, path_parameters, to_openapi_path

logger = logging.getLogger('apicontract.openapi')

REF_PREFIX = "#/components/schemas/"

# Methods whose params travel in the query string
QUERY_METHODS = ("get", "delete", "head", "options")


class ServerSpec(BaseModel):
    model_config = ConfigDict(frozen=True, extra='ignore')

    url: str
    description: Optional[str] = None


class OpenAPISettings(BaseModel):
    """
    Document-level settings for the generator.

    Frozen after creation; accepts both field names and aliases
    (e.g. openapi_version / openapiVersion). Servers may be given as plain
    URL strings.
    """
    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        extra='ignore',
    )

    openapi_version: str = Field("3.0.3", alias="openapiVersion")
    title: str = "API"
    version: str = "1.0.0"
    description: Optional[str] = None
    servers: List[ServerSpec] = Field(default_factory=list)

    @field_validator('servers', mode='before')
    @classmethod
    def servers_from_urls(cls, v):
        if v is None:
            return []
        return [{"url": item} if isinstance(item, str) else item for item in v]

    @classmethod
    def from_config(cls, config: Optional[Config] = None) -> "OpenAPISettings":
        config = config or Config.from_env()
        return cls(
            openapi_version=config.OPENAPI_VERSION,
            title=config.OPENAPI_TITLE,
            version=config.OPENAPI_API_VERSION,
            description=config.OPENAPI_DESCRIPTION or None,
            servers=config.OPENAPI_SERVERS,
        )


def schema_ref(name: str) -> Dict[str, str]:
    return {"$ref": f"{REF_PREFIX}{name}"}


def _json_value(value: Any) -> Any:
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return [_json_value(v) for v in value]
    if isinstance(value, dict):
        return {k: _json_value(v) for k, v in value.items()}
    return value


class _DescriptorWalker:
    def __init__(self, resolver):
        self.resolver = resolver
        self.kinds = resolver.kinds

    def node_schema(self, node: AttributeNode) -> Dict[str, Any]:
        if node.structure == "schema":
            self.resolver.resolve(node.of)
            ref = schema_ref(node.of)
            extra = self._metadata(node, {})
            if not extra:
                return ref
            # Siblings of $ref are ignored in OpenAPI 3.0, wrap instead
            return {"allOf": [ref], **extra}

        bundle = self.kinds.get(node.kind)
        desc = dict(bundle.descriptor)
        if node.structure == "array":
            desc["items"] = self.element_schema(node)
        elif node.structure == "object":
            desc.update(self.object_schema(node.children))

        if node.pattern is not None:
            desc["pattern"] = node.pattern.pattern
        if node.allowed is not None:
            desc["enum"] = _json_value(list(node.allowed))
        if node.format:
            desc["format"] = node.format
        if bundle.bounds:
            low, high = bundle.bounds
            if node.min is not None:
                desc[low] = node.min
            if node.max is not None:
                desc[high] = node.max
        return self._metadata(node, desc)

    def _metadata(self, node: AttributeNode, desc: Dict[str, Any]) -> Dict[str, Any]:
        if node.description:
            desc["description"] = node.description
        if node.has_default:
            desc["default"] = _json_value(node.default)
        if node.nullable:
            desc["nullable"] = True
        if node.deprecated:
            desc["deprecated"] = True
        return desc

    def element_schema(self, node: AttributeNode) -> Dict[str, Any]:
        if node.element is not None:
            return {"type": "object", **self.object_schema(node.element.children)}
        if self.kinds.is_primitive(node.of):
            return dict(self.kinds.get(node.of).descriptor)
        self.resolver.resolve(node.of)
        return schema_ref(node.of)

    def object_schema(self, children: Iterable[AttributeNode]) -> Dict[str, Any]:
        properties = {}
        required = []
        for child in children:
            if child.private:
                continue
            properties[child.name] = self.node_schema(child)
            if child.required:
                required.append(child.name)
        out: Dict[str, Any] = {"properties": properties}
        if required:
            out["required"] = required
        return out

    def schema_component(self, root: AttributeNode) -> Dict[str, Any]:
        component = {"type": "object", **self.object_schema(root.children)}
        if root.description:
            component["description"] = root.description
        return component

    def operation(self, endpoint: EndpointDefinition, op: OperationDefinition) -> Dict[str, Any]:
        params = op.effective_params(endpoint, self.resolver)
        full_path = endpoint.full_path(op)
        path_names = path_parameters(full_path)

        doc: Dict[str, Any] = {
            "operationId": f"{endpoint.name}_{op.name}",
            "tags": [endpoint.name],
        }
        if op.description:
            doc["summary"] = op.description
        if op.deprecated:
            doc["deprecated"] = True

        parameters = []
        for name in path_names:
            child = params.child(name)
            parameters.append({
                "name": name,
                "in": "path",
                "required": True,
                "schema": self.node_schema(child) if child is not None else {"type": "string"},
            })

        fields = [c for c in params.children if c.name not in path_names and not c.private]
        if op.method in QUERY_METHODS:
            for child in fields:
                parameter = {
                    "name": child.name,
                    "in": "query",
                    "required": child.required,
                    "schema": self.node_schema(child),
                }
                if child.description:
                    parameter["description"] = child.description
                parameters.append(parameter)
        elif fields:
            doc["requestBody"] = {
                "required": any(c.required for c in fields),
                "content": {
                    "application/json": {
                        "schema": {"type": "object", **self.object_schema(fields)},
                    }
                },
            }
        if parameters:
            doc["parameters"] = parameters

        doc["responses"] = self.responses(op, has_params=bool(params.children))
        return doc

    def responses(self, op: OperationDefinition, has_params: bool) -> Dict[str, Any]:
        ok: Dict[str, Any] = {"description": "OK"}
        if op.schema is not None:
            self.resolver.resolve(op.schema)
            body = schema_ref(op.schema)
            if op.many:
                body = {"type": "array", "items": body}
            ok["content"] = {"application/json": {"schema": body}}
        responses = {"200": ok}
        if has_params:
            responses["400"] = {"description": "Invalid params"}
        return responses


def generate(registry, settings: Optional[OpenAPISettings] = None) -> Dict[str, Any]:
    """
    Build the OpenAPI document for everything registered in `registry`.

    Args:
        registry: Registry holding schemas and endpoints
        settings: Document settings (defaults to the environment config)

    Returns:
        OpenAPI document as a nested dict

    Raises:
        UnknownSchemaError: If a schema reference doesn't resolve
    """
    settings = settings or OpenAPISettings.from_config()
    resolver = registry.resolver()
    walker = _DescriptorWalker(resolver)

    info: Dict[str, Any] = {"title": settings.title, "version": settings.version}
    if settings.description:
        info["description"] = settings.description

    document: Dict[str, Any] = {"openapi": settings.openapi_version, "info": info}
    if settings.servers:
        document["servers"] = [s.model_dump(exclude_none=True) for s in settings.servers]

    paths: Dict[str, Dict[str, Any]] = {}
    tags = []
    for endpoint in resolver.endpoints.values():
        tag = {"name": endpoint.name}
        if endpoint.description:
            tag["description"] = endpoint.description
        tags.append(tag)
        for op in endpoint.operations.values():
            path = to_openapi_path(endpoint.full_path(op))
            paths.setdefault(path, {})[op.method] = walker.operation(endpoint, op)
    if tags:
        document["tags"] = tags
    document["paths"] = paths

    document["components"] = {
        "schemas": {name: walker.schema_component(root) for name, root in resolver.schemas.items()},
    }
    logger.debug(f"openapi_generated: schemas={len(resolver.schemas)} paths={len(paths)}")
    return document
