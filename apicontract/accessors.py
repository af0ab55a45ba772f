"""
Accessor abstraction - reads a named member from a host value.

Works on keyed containers (any Mapping) and on arbitrary objects exposing a
matching attribute, property, or zero-argument method.
"""

import inspect
from collections.abc import Mapping
from typing import Any, Tuple

ABSENT = object()


def get_value(host: Any, name: str) -> Tuple[bool, Any]:
    """
    Extract `name` from `host`.

    Returns:
        (present, value). A missing key or attribute yields (False, None);
        this never raises for missing members.
    """
    if host is None:
        return False, None

    if isinstance(host, Mapping):
        if name in host:
            return True, host[name]
        return False, None

    value = getattr(host, name, ABSENT)
    if value is ABSENT:
        return False, None
    if inspect.ismethod(value):
        value = value()
    return True, value
