"""
Shared pytest fixtures.

Provides:
- registry: a Registry with the recursive `hero` schema and a `team` schema
- heroes_registry: the same plus a `/heroes` endpoint with default params
"""

import sys
from pathlib import Path

# Make the repo root and scripts/ importable for script tests
repo_root = Path(__file__).parent.parent
for path in (repo_root, repo_root / "scripts"):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

import pytest

from apicontract import Registry


def hero_schema(s):
    s.string("name", min=4, required=True)
    s.array("friends", of="hero")


def team_schema(s):
    s.string("name", required=True)
    s.schema("leader", of="hero")
    s.array("members", of="hero")


def heroes_endpoint(e):
    e.params(lambda s: (
        s.string("name", required=True),
        s.integer("age", min=0),
        s.string("alias"),
    ))
    e.get("index", path="/", schema="hero", many=True)
    e.get("show", path="/:id", params=lambda s: s.integer("id", required=True), schema="hero")
    e.post("create", path="/", params=True, schema="hero")
    e.patch("update", path="/:id", params=["alias"], exclude=True)
    e.delete("destroy", path="/:id")


@pytest.fixture
def registry():
    """Registry with `hero` (self-referencing) and `team` schemas."""
    registry = Registry()
    registry.register_schema("hero", hero_schema)
    registry.register_schema("team", team_schema)
    return registry


@pytest.fixture
def heroes_registry(registry):
    """Registry with the hero schemas and the `/heroes` endpoint."""
    registry.register_endpoint("/heroes", heroes_endpoint)
    return registry
