"""
Kind table - maps an attribute kind name to its behaviour bundle.

Engines never branch on node classes; they look the kind up here and call
the bundle's coerce (type check), rules (secondary checks) and project
(serializer) functions. New kinds are added with KindTable.register().
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, FrozenSet, Iterator, Optional, Tuple

from .errors import UnknownKindError
from .rules import ARRAY_RULES, NUMBER_RULES, STRING_RULES

# Options every kind accepts
COMMON_OPTIONS = frozenset({
    "required", "private", "deprecated", "default", "description",
    "when", "unless", "validators", "null", "accessor",
})

# Kinds whose traversal is handled structurally by the engines
STRUCTURES = ("array", "object", "schema")

_TRUE_STRINGS = ("true", "1", "yes", "on")
_FALSE_STRINGS = ("false", "0", "no", "off")


@dataclass(frozen=True)
class KindBundle:
    """Behaviour for one attribute kind."""
    name: str
    coerce: Callable[[Any], Any]            # raises TypeError/ValueError when not of this kind
    project: Callable[[Any], Any]           # serializer projection
    descriptor: Dict[str, Any] = field(default_factory=dict)
    options: FrozenSet[str] = frozenset()   # kind-specific options
    rules: Dict[str, Callable] = field(default_factory=dict)
    bounds: Optional[Tuple[str, str]] = None  # OpenAPI keywords for min/max
    structure: Optional[str] = None         # "array" | "object" | "schema" for containers

    @property
    def is_primitive(self) -> bool:
        return self.structure is None

    def accepts(self, option: str) -> bool:
        return option in COMMON_OPTIONS or option in self.options


def _reject_bool(value: Any, kind: str) -> None:
    if isinstance(value, bool):
        raise TypeError(f"Expected {kind}, got bool")


def coerce_string(value: Any) -> str:
    if not isinstance(value, str):
        raise TypeError(f"Expected str, got {type(value).__name__}")
    return value


def coerce_integer(value: Any) -> int:
    _reject_bool(value, "int")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        return int(value.strip())
    if isinstance(value, float) and value.is_integer():
        return int(value)
    raise TypeError(f"Expected int, got {type(value).__name__}: {value!r}")


def coerce_number(value: Any):
    _reject_bool(value, "number")
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            return float(text)
    raise TypeError(f"Expected number, got {type(value).__name__}: {value!r}")


def coerce_float(value: Any) -> float:
    _reject_bool(value, "float")
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str):
        return float(value.strip())
    raise TypeError(f"Expected float, got {type(value).__name__}: {value!r}")


def coerce_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    lower = str(value).strip().lower()
    if lower in _TRUE_STRINGS:
        return True
    if lower in _FALSE_STRINGS:
        return False
    raise ValueError(f"Expected bool, got: {value!r}")


def coerce_array(value: Any) -> list:
    if isinstance(value, (list, tuple)):
        return list(value)
    raise TypeError(f"Expected array, got {type(value).__name__}")


def coerce_object(value: Any) -> Any:
    if isinstance(value, Mapping):
        return value
    if isinstance(value, (str, bytes, bool, int, float, list, tuple, set)):
        raise TypeError(f"Expected object, got {type(value).__name__}")
    # Arbitrary host objects are read through the accessor
    return value


def project_number(value: Any):
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, (int, float)):
        return value
    return coerce_number(value)


def _identity(value: Any) -> Any:
    return value


BUILTIN_KINDS = (
    KindBundle(
        name="string",
        coerce=coerce_string,
        project=str,
        descriptor={"type": "string"},
        options=frozenset({"pattern", "min", "max", "allowed", "format"}),
        rules=STRING_RULES,
        bounds=("minLength", "maxLength"),
    ),
    KindBundle(
        name="boolean",
        coerce=coerce_boolean,
        project=coerce_boolean,
        descriptor={"type": "boolean"},
    ),
    KindBundle(
        name="number",
        coerce=coerce_number,
        project=project_number,
        descriptor={"type": "number"},
        options=frozenset({"min", "max", "allowed", "format"}),
        rules=NUMBER_RULES,
        bounds=("minimum", "maximum"),
    ),
    KindBundle(
        name="integer",
        coerce=coerce_integer,
        project=int,
        descriptor={"type": "integer"},
        options=frozenset({"min", "max", "allowed", "format"}),
        rules=NUMBER_RULES,
        bounds=("minimum", "maximum"),
    ),
    KindBundle(
        name="float",
        coerce=coerce_float,
        project=float,
        descriptor={"type": "number", "format": "float"},
        options=frozenset({"min", "max", "allowed"}),
        rules=NUMBER_RULES,
        bounds=("minimum", "maximum"),
    ),
    KindBundle(
        name="array",
        coerce=coerce_array,
        project=_identity,
        descriptor={"type": "array"},
        options=frozenset({"of", "min", "max"}),
        rules=ARRAY_RULES,
        bounds=("minItems", "maxItems"),
        structure="array",
    ),
    KindBundle(
        name="object",
        coerce=coerce_object,
        project=_identity,
        descriptor={"type": "object"},
        structure="object",
    ),
    KindBundle(
        name="schema",
        coerce=coerce_object,
        project=_identity,
        options=frozenset({"of"}),
        structure="schema",
    ),
)


class KindTable:
    """Mutable name -> KindBundle mapping, populated at start-up."""

    def __init__(self, bundles=()):
        self._bundles: Dict[str, KindBundle] = {}
        for bundle in bundles:
            self.register(bundle)

    def register(self, bundle: KindBundle) -> None:
        """Add or replace the bundle for bundle.name."""
        self._bundles[bundle.name] = bundle

    def get(self, name: str) -> KindBundle:
        try:
            return self._bundles[name]
        except KeyError:
            raise UnknownKindError(name) from None

    def is_primitive(self, name: str) -> bool:
        bundle = self._bundles.get(name)
        return bundle is not None and bundle.is_primitive

    def copy(self) -> "KindTable":
        return KindTable(self._bundles.values())

    def __contains__(self, name: str) -> bool:
        return name in self._bundles

    def __iter__(self) -> Iterator[str]:
        return iter(self._bundles)


DEFAULT_KINDS = KindTable(BUILTIN_KINDS)
