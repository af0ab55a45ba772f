"""
Definition-time errors.

These are programmer mistakes raised while building schemas, composing
endpoint params, or resolving references. They are never caught inside the
package; validation problems with *data* are returned in Result.errors.
"""

from dataclasses import dataclass
from typing import Any, Dict


class DefinitionError(Exception):
    """Base class for schema/endpoint definition mistakes."""


class UnknownSchemaError(DefinitionError, LookupError):
    """Raised when a schema or endpoint name is not registered at lookup time."""

    def __init__(self, name: str, kind: str = "schema"):
        super().__init__(f"Unknown {kind} '{name}'")
        self.name = name
        self.kind = kind


class DuplicateFieldError(DefinitionError):
    """Raised when two sibling attributes share a name."""

    def __init__(self, parent: str, name: str):
        super().__init__(f"Duplicate field '{name}' in '{parent}'")
        self.parent = parent
        self.name = name


class InvalidOptionError(DefinitionError):
    """Raised for invalid identifiers or options that don't apply to a kind."""


class UnknownKindError(DefinitionError):
    """Raised when an attribute declares a kind with no registered bundle."""

    def __init__(self, kind: str):
        super().__init__(f"Unknown attribute kind '{kind}'")
        self.kind = kind


@dataclass
class ContractViolation(Exception):
    """Raised when a caller asks for a failed Result to be enforced."""
    message: str
    details: Dict[str, Any]

    def __str__(self):
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dict for JSON serialization."""
        return {
            "message": self.message,
            "details": self.details,
        }
