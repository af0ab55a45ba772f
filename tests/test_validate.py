"""
Validator engine tests.

Covers:
- required / default / absent handling
- type checks stopping further checks on a node
- secondary checks in order, multiple messages per field
- error trees for nested objects and arrays (index keyed)
- recursive schemas and lazy, per-call reference resolution
"""

import pytest

from apicontract import (
    ContractViolation,
    DefinitionError,
    InlineCondition,
    NamedCondition,
    Registry,
    UnknownSchemaError,
    validate,
)
from apicontract.validate import NON_FIELD_ERRORS, count_errors


class TestHeroExample:
    """The recursive `hero` schema end to end."""

    def test_short_name_and_nested_friend(self, registry):
        result = validate(registry, "hero", {"name": "Th", "friends": [{"name": "Iron Man"}]})

        assert result.errors == {"name": ["is too short (minimum is 4 characters)"]}
        assert result.value == {
            "name": "Th",
            "friends": [{"name": "Iron Man", "friends": []}],
        }
        assert not result.valid

    def test_empty_friends_terminates(self, registry):
        result = validate(registry, "hero", {"name": "Thor", "friends": []})

        assert result.valid
        assert result.value == {"name": "Thor", "friends": []}

    def test_error_path_uses_input_index(self, registry):
        data = {
            "name": "Captain",
            "friends": [{"name": "Hulk"}, {"name": "Tony"}, {"name": "Al"}],
        }

        result = validate(registry, "hero", data)

        assert result.errors == {
            "friends": {2: {"name": ["is too short (minimum is 4 characters)"]}},
        }

    def test_deeply_nested_errors(self, registry):
        data = {"name": "Thor", "friends": [{"name": "Loki", "friends": [{}]}]}

        result = validate(registry, "hero", data)

        assert result.errors == {"friends": {0: {"friends": {0: {"name": ["is required"]}}}}}

    def test_required_missing(self, registry):
        result = validate(registry, "hero", {})

        assert result.errors == {"name": ["is required"]}
        assert "name" not in result.value
        assert result.value == {"friends": []}


class TestAbsentValues:
    """Absent, null and default handling."""

    @pytest.fixture
    def reg(self):
        registry = Registry()
        registry.register_schema("profile", lambda s: (
            s.string("nickname", default="anon"),
            s.string("bio"),
            s.string("website", null=True),
            s.integer("level", required=True, default=1),
        ))
        return registry

    def test_default_applied(self, reg):
        result = validate(reg, "profile", {})

        assert result.value == {"nickname": "anon", "level": 1}

    def test_required_with_default_still_reports(self, reg):
        result = validate(reg, "profile", {})

        assert result.errors == {"level": ["is required"]}

    def test_none_is_absent_unless_nullable(self, reg):
        result = validate(reg, "profile", {"bio": None, "website": None, "level": 3})

        assert result.valid
        assert result.value == {"nickname": "anon", "website": None, "level": 3}

    def test_none_input_treated_as_empty(self, reg):
        result = validate(reg, "profile", None)

        assert result.errors == {"level": ["is required"]}

    def test_default_is_copied(self):
        registry = Registry()
        registry.register_schema("bag", lambda s: s.array("tags", of="string", default=["a"]))

        first = validate(registry, "bag", {})
        first.value["tags"].append("b")
        second = validate(registry, "bag", {})

        assert second.value == {"tags": ["a"]}


class TestTypeChecks:
    """Kind type checks and coercion."""

    @pytest.fixture
    def reg(self):
        registry = Registry()
        registry.register_schema("item", lambda s: (
            s.string("title", min=3, pattern=r"^[a-z]+$"),
            s.integer("count", min=1),
            s.float("price"),
            s.number("weight"),
            s.boolean("active"),
            s.array("tags", of="string"),
            s.object("meta", lambda o: o.string("source")),
        ))
        return registry

    def test_type_failure_stops_secondary_checks(self, reg):
        result = validate(reg, "item", {"title": 12})

        assert result.errors == {"title": ["is not string"]}

    def test_coercion_from_strings(self, reg):
        result = validate(reg, "item", {
            "count": "5", "price": "9.5", "weight": "3", "active": "true",
        })

        assert result.valid
        assert result.value == {"count": 5, "price": 9.5, "weight": 3, "active": True, "tags": []}

    def test_bool_is_not_integer(self, reg):
        result = validate(reg, "item", {"count": True})

        assert result.errors == {"count": ["is not integer"]}

    def test_bad_integer_string(self, reg):
        result = validate(reg, "item", {"count": "3.5"})

        assert result.errors == {"count": ["is not integer"]}

    def test_array_type(self, reg):
        result = validate(reg, "item", {"tags": "a,b"})

        assert result.errors == {"tags": ["is not array"]}

    def test_array_element_type(self, reg):
        result = validate(reg, "item", {"tags": ["ok", 3]})

        assert result.errors == {"tags": {1: ["is not string"]}}
        assert result.value["tags"] == ["ok", 3]

    def test_null_array_element(self, reg):
        result = validate(reg, "item", {"tags": ["a", None]})

        assert result.errors == {"tags": {1: ["is not string"]}}
        assert result.value["tags"] == ["a", None]

    def test_null_schema_element(self, registry):
        result = validate(registry, "hero", {"name": "Thor", "friends": [None]})

        assert result.errors == {"friends": {0: ["is not object"]}}

    def test_object_type(self, reg):
        result = validate(reg, "item", {"meta": "nope"})

        assert result.errors == {"meta": ["is not object"]}

    def test_nested_object(self, reg):
        result = validate(reg, "item", {"meta": {"source": 1}})

        assert result.errors == {"meta": {"source": ["is not string"]}}


class TestSecondaryChecks:
    """pattern, min, max and allowed, plus custom validators."""

    def test_multiple_failures_coexist(self):
        registry = Registry()
        registry.register_schema("code", lambda s: s.string("value", pattern=r"^\d+$", min=5))

        result = validate(registry, "code", {"value": "ab"})

        assert result.errors == {"value": [
            "is in invalid format",
            "is too short (minimum is 5 characters)",
        ]}

    def test_number_range(self):
        registry = Registry()
        registry.register_schema("score", lambda s: s.integer("points", min=0, max=10))

        assert validate(registry, "score", {"points": -1}).errors == {
            "points": ["must be greater than or equal to 0"]
        }
        assert validate(registry, "score", {"points": 11}).errors == {
            "points": ["must be less than or equal to 10"]
        }

    def test_allowed_values(self):
        registry = Registry()
        registry.register_schema("order", lambda s: s.string("status", allowed=["open", "closed"]))

        result = validate(registry, "order", {"status": "lost"})

        assert result.errors == {"status": ["is not included in the list"]}

    def test_array_item_count(self):
        registry = Registry()
        registry.register_schema("pair", lambda s: s.array("items", of="integer", min=2, max=2))

        result = validate(registry, "pair", {"items": [1]})

        assert result.errors == {"items": ["is too short (minimum is 2 items)"]}

    def test_container_messages_alongside_child_errors(self):
        registry = Registry()
        registry.register_schema("pair", lambda s: s.array("items", of="integer", max=1))

        result = validate(registry, "pair", {"items": [1, "x"]})

        assert result.errors == {"items": {
            1: ["is not integer"],
            NON_FIELD_ERRORS: ["is too long (maximum is 1 items)"],
        }}

    def test_custom_validators_in_order(self):
        def no_admin(value, host):
            return "is reserved" if value == "admin" else None

        def lowercase(value, host):
            return None if value == value.lower() else "must be lowercase"

        registry = Registry()
        registry.register_rule("lowercase", lowercase)
        registry.register_schema("user", lambda s: s.string("login", validators=[no_admin, "lowercase"]))

        assert validate(registry, "user", {"login": "admin"}).errors == {"login": ["is reserved"]}
        assert validate(registry, "user", {"login": "Bob"}).errors == {"login": ["must be lowercase"]}

    def test_unknown_named_rule_halts_registration(self):
        registry = Registry()

        with pytest.raises(DefinitionError):
            registry.register_schema("user", lambda s: s.string("login", validators=["lowercase"]))
        with pytest.raises(DefinitionError):
            registry.register_endpoint("/users", lambda e: e.post(
                "create", params=lambda s: s.array("tags", lambda t: t.string("label", validators="slug")),
            ))

        assert "user" not in registry
        assert registry.endpoint_paths() == []

    def test_custom_validator_sees_host(self):
        def matches_password(value, host):
            if value != host.get("password"):
                return "doesn't match password"

        registry = Registry()
        registry.register_schema("signup", lambda s: (
            s.string("password"),
            s.string("confirmation", validators=matches_password),
        ))

        result = validate(registry, "signup", {"password": "secret", "confirmation": "secrte"})

        assert result.errors == {"confirmation": ["doesn't match password"]}


class TestConditions:
    """when/unless predicates skip checks and output."""

    def test_inline_condition_skips_node(self):
        registry = Registry()
        registry.register_schema("payment", lambda s: (
            s.string("method"),
            s.string("card_number", required=True, when=lambda host: host.get("method") == "card"),
        ))

        skipped = validate(registry, "payment", {"method": "cash", "card_number": 4})
        checked = validate(registry, "payment", {"method": "card"})

        assert skipped.valid
        assert skipped.value == {"method": "cash"}
        assert checked.errors == {"card_number": ["is required"]}

    def test_named_predicate(self):
        registry = Registry()
        registry.register_predicate("is_company", lambda host: host.get("type") == "company")
        registry.register_schema("account", lambda s: (
            s.string("type"),
            s.string("vat_id", required=True, when="is_company"),
            s.string("birthday", required=True, unless="is_company"),
        ))

        result = validate(registry, "account", {"type": "company"})

        assert result.errors == {"vat_id": ["is required"]}

    def test_unless_with_condition_instance(self):
        registry = Registry()
        registry.register_predicate("is_guest", lambda host: host.get("guest"))
        registry.register_schema("visitor", lambda s: (
            s.string("email", required=True, unless=InlineCondition(lambda host: host.get("guest"))),
            s.string("name", required=True, unless=NamedCondition("is_guest")),
        ))

        assert validate(registry, "visitor", {"guest": True}).errors == {}
        assert validate(registry, "visitor", {"guest": False}).errors == {
            "email": ["is required"],
            "name": ["is required"],
        }

    def test_negated_unless_condition(self):
        registry = Registry()
        registry.register_schema("visitor", lambda s: s.string(
            "email", required=True, unless=InlineCondition(lambda host: host.get("guest"), negate=True),
        ))

        assert validate(registry, "visitor", {"guest": True}).errors == {"email": ["is required"]}
        assert validate(registry, "visitor", {}).errors == {}


class TestHostObjects:
    """Input may be an arbitrary object read through the accessor."""

    def test_object_attributes_and_methods(self):
        class Hero:
            name = "Vision"

            def friends(self):
                return []

        registry = Registry()
        registry.register_schema("hero", lambda s: (
            s.string("name", min=4, required=True),
            s.array("friends", of="hero"),
        ))

        result = validate(registry, "hero", Hero())

        assert result.valid
        assert result.value == {"name": "Vision", "friends": []}

    def test_accessor_alias(self):
        registry = Registry()
        registry.register_schema("user", lambda s: s.string("name", accessor="full_name", required=True))

        result = validate(registry, "user", {"full_name": "Ada Lovelace"})

        assert result.value == {"name": "Ada Lovelace"}


class TestReferenceResolution:
    """Forward references and re-registration are resolved per call."""

    def test_forward_reference_unresolved_raises(self):
        registry = Registry()
        registry.register_schema("team", lambda s: s.schema("leader", of="hero"))

        with pytest.raises(UnknownSchemaError):
            validate(registry, "team", {"leader": {"name": "Thor"}})

        registry.register_schema("hero", lambda s: s.string("name"))
        assert validate(registry, "team", {"leader": {"name": "Thor"}}).valid

    def test_absent_reference_not_resolved(self):
        registry = Registry()
        registry.register_schema("team", lambda s: s.schema("leader", of="hero"))

        assert validate(registry, "team", {}).valid

    def test_reregistration_visible_immediately(self, registry):
        data = {"name": "Avengers", "leader": {"name": "Steve", "rank": "captain"}}
        assert validate(registry, "team", data).value["leader"] == {"name": "Steve", "friends": []}

        registry.register_schema("hero", lambda s: (
            s.string("name"),
            s.string("rank", allowed=["general"]),
        ))
        result = validate(registry, "team", data)

        assert result.value["leader"] == {"name": "Steve", "rank": "captain"}
        assert result.errors == {"leader": {"rank": ["is not included in the list"]}}

    def test_mutual_recursion(self):
        registry = Registry()
        registry.register_schema("author", lambda s: (
            s.string("name", required=True),
            s.array("books", of="book"),
        ))
        registry.register_schema("book", lambda s: (
            s.string("title", required=True),
            s.schema("author", of="author"),
        ))

        result = validate(registry, "author", {
            "name": "Le Guin",
            "books": [{"title": "Earthsea", "author": {"name": "Le Guin"}}, {"author": {}}],
        })

        assert result.errors == {"books": {1: {
            "title": ["is required"],
            "author": {"name": ["is required"]},
        }}}


class TestResult:
    def test_raise_for_errors(self, registry):
        result = validate(registry, "hero", {"name": "Th"})

        with pytest.raises(ContractViolation) as exc_info:
            result.raise_for_errors()

        assert "1 validation error(s)" in str(exc_info.value)
        assert exc_info.value.details == {"errors": result.errors}

    def test_valid_result_passes_through(self, registry):
        result = validate(registry, "hero", {"name": "Thor"})

        assert result.raise_for_errors() is result
        assert result.to_dict() == {"value": {"name": "Thor", "friends": []}, "errors": {}}

    def test_count_errors(self):
        assert count_errors({"a": ["x", "y"], "b": {0: ["z"]}}) == 3
