"""
Conditional predicates and custom validation rules.

Both come in two variants dispatched through one interface:
- Named: looked up by name at evaluation time (registry table first, then
  the host object for conditions).
- Inline: a callable supplied directly in the attribute declaration.

Rule contract: ``rule(value, host)`` returns None when the value passes, or a
message (or list of messages) describing the failure.
"""

import copy
from typing import Any, Callable, List, Optional, Union

from .accessors import get_value
from .errors import DefinitionError, InvalidOptionError


class Condition:
    """Decides whether an attribute takes part in a traversal."""

    def __init__(self, negate: bool = False):
        self.negate = negate

    def evaluate(self, host: Any, resolver) -> bool:
        result = bool(self._check(host, resolver))
        return not result if self.negate else result

    def negated(self) -> "Condition":
        """Copy of this condition with the outcome inverted."""
        clone = copy.copy(self)
        clone.negate = not self.negate
        return clone

    def _check(self, host: Any, resolver) -> Any:
        raise NotImplementedError


class NamedCondition(Condition):
    def __init__(self, name: str, negate: bool = False):
        super().__init__(negate)
        self.name = name

    def _check(self, host, resolver):
        predicate = resolver.predicate(self.name)
        if predicate is not None:
            return predicate(host)
        # Falls back to a member of the host: method, property or key
        present, value = get_value(host, self.name)
        return present and value

    def __repr__(self):
        return f"NamedCondition({self.name!r}, negate={self.negate})"


class InlineCondition(Condition):
    def __init__(self, fn: Callable[[Any], Any], negate: bool = False):
        super().__init__(negate)
        self.fn = fn

    def _check(self, host, resolver):
        return self.fn(host)

    def __repr__(self):
        return f"InlineCondition({self.fn!r}, negate={self.negate})"


def as_condition(declared: Union[str, Callable, Condition], negate: bool = False) -> Condition:
    """Build a Condition from a declaration value."""
    if isinstance(declared, Condition):
        return declared.negated() if negate else declared
    if isinstance(declared, str):
        return NamedCondition(declared, negate=negate)
    if callable(declared):
        return InlineCondition(declared, negate=negate)
    raise InvalidOptionError(f"Condition must be a name or a callable, got {declared!r}")


class Rule:
    """A custom validator attached to an attribute."""

    def check(self, value: Any, host: Any, resolver) -> List[str]:
        outcome = self._call(value, host, resolver)
        if outcome is None or outcome is True:
            return []
        if outcome is False:
            return ["is invalid"]
        if isinstance(outcome, str):
            return [outcome]
        return [str(message) for message in outcome]

    def _call(self, value, host, resolver):
        raise NotImplementedError


class NamedRule(Rule):
    def __init__(self, name: str):
        self.name = name

    def _call(self, value, host, resolver):
        fn = resolver.rule(self.name)
        if fn is None:
            raise DefinitionError(f"Unknown rule '{self.name}'")
        return fn(value, host)

    def __repr__(self):
        return f"NamedRule({self.name!r})"


class InlineRule(Rule):
    def __init__(self, fn: Callable[[Any, Any], Optional[Union[str, List[str]]]]):
        self.fn = fn

    def _call(self, value, host, resolver):
        return self.fn(value, host)

    def __repr__(self):
        return f"InlineRule({self.fn!r})"


def as_rule(declared: Union[str, Callable, Rule]) -> Rule:
    """Build a Rule from a declaration value."""
    if isinstance(declared, Rule):
        return declared
    if isinstance(declared, str):
        return NamedRule(declared)
    if callable(declared):
        return InlineRule(declared)
    raise InvalidOptionError(f"Validator must be a name or a callable, got {declared!r}")
