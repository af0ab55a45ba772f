"""
Schema-definition engine.

One declarative schema drives validation, serialization and OpenAPI
generation. Provides the Registry, the validate/serialize engines, endpoint
params composition, the descriptor generator and the @api_contract decorator.
"""

from .attributes import AttributeNode, SchemaBuilder
from .conditions import InlineCondition, InlineRule, NamedCondition, NamedRule
from .config import Config, SchemaMode
from .endpoints import EndpointDefinition, OperationDefinition, effective_params
from .errors import (
    ContractViolation,
    DefinitionError,
    DuplicateFieldError,
    InvalidOptionError,
    UnknownKindError,
    UnknownSchemaError,
)
from .kinds import KindBundle
from .openapi import OpenAPISettings, generate
from .registry import Registry, Resolver
from .serialize import serialize
from .validate import Result, validate, validate_params
from .wrapper import api_contract

__all__ = [
    'AttributeNode',
    'SchemaBuilder',
    'InlineCondition',
    'InlineRule',
    'NamedCondition',
    'NamedRule',
    'Config',
    'SchemaMode',
    'EndpointDefinition',
    'OperationDefinition',
    'effective_params',
    'ContractViolation',
    'DefinitionError',
    'DuplicateFieldError',
    'InvalidOptionError',
    'UnknownKindError',
    'UnknownSchemaError',
    'KindBundle',
    'OpenAPISettings',
    'generate',
    'Registry',
    'Resolver',
    'serialize',
    'Result',
    'validate',
    'validate_params',
    'api_contract',
]
