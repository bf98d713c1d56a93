"""Unit tests for the request context, accessors, expansion and scoped stores."""

from zoneinfo import ZoneInfo

import pytest
import structlog.testing

from screenkit.context import (
    FieldAccessor,
    InMemoryScopedStore,
    MapStack,
    StringExpander,
    create_screen_context,
    expand_string,
    find_in_trail,
    trail_key,
)
from screenkit.context.accessor import parse_name_path
from screenkit.context.stack import GLOBAL_CONTEXT, PARAMETERS, TIME_ZONE, WIDGET_TRAIL
from screenkit.entity import GenericValue
from screenkit.errors import ActionConfigError


class TestMapStack:
    """Test MapStack layering."""

    def test_reads_top_down_and_writes_top(self):
        """Test lookups fall through layers while writes stay local."""
        stack = MapStack({"a": 1, "b": 2})
        stack.push({"b": 3})
        stack["c"] = 4

        assert stack["a"] == 1
        assert stack["b"] == 3
        assert stack.top == {"b": 3, "c": 4}
        assert stack.bottom == {"a": 1, "b": 2}
        assert sorted(stack) == ["a", "b", "c"]
        assert len(stack) == 3

    def test_pop_layer(self):
        """Test popping discards local writes."""
        stack = MapStack({"a": 1})
        stack.push()
        stack["a"] = 2
        assert stack.depth == 2

        assert stack.pop_layer() == {"a": 2}
        assert stack["a"] == 1

    def test_bottom_layer_is_kept(self):
        """Test the bottom layer cannot be popped."""
        with pytest.raises(IndexError):
            MapStack().pop_layer()

    def test_missing_key(self):
        """Test missing keys behave like a mapping."""
        stack = MapStack()
        assert stack.get("missing") is None
        assert "missing" not in stack
        with pytest.raises(KeyError):
            stack["missing"]


class TestCreateScreenContext:
    """Test request context creation."""

    def test_reserved_keys(self):
        """Test the reserved entries are installed in the global layer."""
        context = create_screen_context(parameters={"id": "7"}, locale="fr_FR", time_zone="Europe/Paris")

        assert context[PARAMETERS] == {"id": "7"}
        assert context["locale"] == "fr_FR"
        assert context[TIME_ZONE] == ZoneInfo("Europe/Paris")
        assert context[WIDGET_TRAIL] == []
        assert context.depth == 2

    def test_global_context_is_bottom_layer(self):
        """Test globalContext references the bottom layer itself."""
        context = create_screen_context()
        context[GLOBAL_CONTEXT]["shared"] = "yes"

        assert context[GLOBAL_CONTEXT] is context.bottom
        assert context["shared"] == "yes"
        assert "shared" not in context.top

    def test_extra_attributes(self):
        """Test extra attributes land in the global layer."""
        context = create_screen_context(userLogin={"userLoginId": "admin"})
        assert context.bottom["userLogin"] == {"userLoginId": "admin"}


class TestFieldAccessor:
    """Test name-path field access."""

    def test_parse_name_path(self):
        """Test name paths split into tokens."""
        assert parse_name_path("a.b[0].c") == [("key", "a"), ("key", "b"), ("index", 0), ("key", "c")]
        assert parse_name_path("items[]") == [("key", "items"), ("append", None)]

    def test_invalid_name(self):
        """Test malformed names are rejected at construction."""
        with pytest.raises(ActionConfigError):
            FieldAccessor("[0]")

    def test_get_nested(self):
        """Test nested reads through maps and lists."""
        context = {"order": {"items": [{"sku": "A1"}, {"sku": "B2"}]}}

        assert FieldAccessor("order.items[1].sku").get(context) == "B2"
        assert FieldAccessor("order.items[5].sku").get(context) is None
        assert FieldAccessor("order.missing.sku").get(context) is None
        assert FieldAccessor("").get(context) is None

    def test_put_creates_intermediates(self):
        """Test writes create the maps and lists on the way."""
        context = {}
        FieldAccessor("order.items[0].sku").put(context, "A1")
        FieldAccessor("order.items[].sku").put(context, "B2")
        FieldAccessor("order.total").put(context, 10)

        assert context == {"order": {"items": [{"sku": "A1"}, {"sku": "B2"}], "total": 10}}

    def test_put_replaces_list_entry(self):
        """Test an existing index is overwritten."""
        context = {"names": ["a", "b"]}
        FieldAccessor("names[1]").put(context, "z")
        assert context["names"] == ["a", "z"]

    def test_expanded_name(self):
        """Test names with embedded expressions resolve at run time."""
        context = {"which": "shipping", "address": {"shipping": "Main St"}}
        accessor = FieldAccessor("address.${which}")

        assert accessor.get(context) == "Main St"
        accessor.put(context, "Side St")
        assert context["address"]["shipping"] == "Side St"

    def test_put_through_scalar_fails(self):
        """Test writing below a scalar is an error."""
        with pytest.raises(TypeError):
            FieldAccessor("name.first").put({"name": "Ann"}, "x")


class TestStringExpander:
    """Test ${...} expansion."""

    def test_literal_text(self):
        """Test text without expressions is returned as-is."""
        expander = StringExpander("plain text")
        assert expander.expand_string({}) == "plain text"
        assert StringExpander(None).is_empty()

    def test_expression_with_suffix(self):
        """Test an expression followed by literal text."""
        assert StringExpander("${b}+suffix").expand_string({"b": "x"}) == "x+suffix"

    def test_nested_lookup(self):
        """Test dotted lookups into maps."""
        context = {"parameters": {"orderId": "O1"}}
        assert expand_string("Order ${parameters.orderId}", context) == "Order O1"

    def test_missing_values_expand_empty(self):
        """Test missing and None values expand to an empty string."""
        assert expand_string("[${missing}]", {}) == "[]"
        assert expand_string("[${missing.deeper}]", {}) == "[]"
        assert expand_string("[${none}]", {"none": None}) == "[]"

    def test_locale_is_available(self):
        """Test the locale argument is visible to the expression."""
        assert StringExpander("Labels_${locale}").expand_string({}, "fr") == "Labels_fr"

    def test_invalid_expression(self):
        """Test syntax errors surface at construction."""
        with pytest.raises(ActionConfigError):
            StringExpander("${a b c}")

    def test_map_keys_win_over_attributes(self):
        """Test dotted names read map keys even when they match method names."""
        context = {
            "order": {"items": "3 items", "get": "x"},
            "product": GenericValue("Product", {"delegator": "main"}),
        }

        assert expand_string("${order.items}", context) == "3 items"
        assert expand_string("${order.get}", context) == "x"
        assert expand_string("${product.delegator}", context) == "main"
        assert expand_string("[${order.values}]", context) == "[]"
        assert expand_string("${order.items}", context) == FieldAccessor("order.items").get(context)

    def test_only_dollar_braces_are_syntax(self):
        """Test jinja block and comment markers are plain text."""
        context = {"name": "Ann"}

        assert expand_string("Ticket {#1} for ${name}", context) == "Ticket {#1} for Ann"
        assert expand_string("{% if x %}${name}{# note #}", context) == "{% if x %}Ann{# note #}"

    def test_render_failure_is_logged(self):
        """Test expressions failing at render time log an error and expand empty."""
        with structlog.testing.capture_logs() as logs:
            assert expand_string("[${missing + 1}]", {}) == ""

        assert logs[0]["event"] == "Could not expand expression"
        assert logs[0]["log_level"] == "error"


class TestScopedStores:
    """Test scoped stores and widget trail keys."""

    def test_trail_key(self):
        """Test keys are built from the widget trail."""
        assert trail_key(["Main", "Body"], "title") == "Main|Body|title"
        assert trail_key([], "title") == "title"
        assert trail_key(None, "title") == "title"

    def test_find_in_trail_falls_back(self):
        """Test lookups try shorter trails down to the bare name."""
        store = InMemoryScopedStore("session", {"Main|title": "main", "other": "bare"})

        assert find_in_trail(store, ["Main", "Body"], "title") == "main"
        assert find_in_trail(store, ["Main", "Body"], "other") == "bare"
        assert find_in_trail(store, ["Main"], "nothing") is None

    def test_store_operations(self):
        """Test setting, removing and listing attributes."""
        store = InMemoryScopedStore("application")
        store.set_attribute("a", 1)

        assert store.get_attribute("a") == 1
        assert store.attribute_names() == ["a"]
        assert store.get_stats() == {"store": "application", "attributes": 1}
        assert store.remove_attribute("a") is True
        assert store.remove_attribute("a") is False
