"""Unit tests for entity query and relation actions."""

from datetime import datetime, timedelta, timezone

import pytest

from screenkit.actions import ActionContext, ActionList, ActionStatus
from screenkit.context import create_screen_context
from screenkit.entity import EntityConditionList, EntityError, EntityExpr, GenericValue, filter_by_date
from screenkit.entity.finders import _ListFinder
from screenkit.errors import ActionConfigError, ActionError


class TestEntityOne:
    """Test the entity-one action."""

    def test_primary_key_from_parameters_and_context(self, run_actions, screen_context, mock_delegator):
        """Test primary key values come from parameters, overridden by the context."""
        product = GenericValue("Product", {"productId": "P2", "name": "Widget"}, mock_delegator)
        mock_delegator.find_one.return_value = product
        screen_context["parameters"]["productId"] = "P1"
        screen_context["productId"] = "P2"

        run_actions({"entity-one": {"entity-name": "Product", "value-field": "product"}})

        mock_delegator.find_one.assert_called_once_with("Product", {"productId": "P2"}, False)
        assert screen_context["product"] is product

    def test_field_map_and_select(self, run_actions, screen_context, mock_delegator):
        """Test field-map values and select-field narrowing."""
        mock_delegator.find_one.return_value = GenericValue(
            "Product", {"productId": "P9", "name": "Gadget", "price": 3}, mock_delegator
        )

        run_actions(
            {
                "entity-one": {
                    "entity-name": "Product",
                    "value-name": "product",
                    "auto-field-map": "false",
                    "use-cache": "true",
                    "field-map": [{"field-name": "productId", "value": "P9"}],
                    "select-field": ["name"],
                }
            }
        )

        mock_delegator.find_one.assert_called_once_with("Product", {"productId": "P9"}, True)
        assert dict(screen_context["product"]) == {"name": "Gadget"}
        assert screen_context["product"].entity_name == "Product"

    def test_not_found_stores_none(self, run_actions, screen_context):
        """Test a missing value leaves the field empty."""
        run_actions({"entity-one": {"entity-name": "Product", "value-field": "product"}})

        assert screen_context["product"] is None

    def test_entity_error(self, run_actions, mock_delegator):
        """Test entity failures fail the action."""
        mock_delegator.find_one.side_effect = EntityError("connection lost")

        with pytest.raises(ActionError, match="Error doing entity query by condition: connection lost"):
            run_actions({"entity-one": {"entity-name": "Product", "value-field": "product"}})

    def test_requires_delegator(self):
        """Test the action needs a delegator."""
        with pytest.raises(ActionError, match="No delegator available"):
            ActionList.read([{"entity-one": {"entity-name": "Product", "value-field": "product"}}]).run(
                ActionContext(context=create_screen_context())
            )

    def test_invalid_definition(self):
        """Test definition errors surface at construction."""
        with pytest.raises(ActionConfigError):
            ActionList.read([{"entity-one": {"entity-name": "Product"}}])


class TestEntityAnd:
    """Test the entity-and action."""

    def test_field_map_condition(self, run_actions, screen_context, mock_delegator):
        """Test the field map becomes an and-list of equality conditions."""
        items = [GenericValue("OrderItem", {"orderId": "O1", "seq": "1"})]
        mock_delegator.find_list.return_value = items
        screen_context["orderId"] = "O1"

        run_actions(
            {
                "entity-and": {
                    "entity-name": "OrderItem",
                    "list": "orderItems",
                    "field-map": [{"field-name": "orderId"}],
                    "order-by": ["seq"],
                }
            }
        )

        mock_delegator.find_list.assert_called_once_with(
            "OrderItem",
            EntityConditionList((EntityExpr("orderId", "equals", "O1"),), "and"),
            select_fields=None,
            order_by=["seq"],
            use_cache=False,
            distinct=False,
        )
        assert screen_context["orderItems"] == items

    def test_legacy_list_name(self, run_actions, screen_context):
        """Test list-name is accepted for list."""
        run_actions(
            {"entity-and": {"entity-name": "OrderItem", "list-name": "orderItems", "field-map": [{"field-name": "orderId"}]}}
        )

        assert screen_context["orderItems"] == []

    def test_field_map_required(self):
        """Test entity-and needs a field map."""
        with pytest.raises(ActionConfigError):
            ActionList.read([{"entity-and": {"entity-name": "OrderItem", "list": "orderItems"}}])

    def test_filter_by_date(self, run_actions, screen_context, mock_delegator):
        """Test values outside their date range are removed."""
        now = datetime.now(timezone.utc)
        current = GenericValue("ProductPrice", {"fromDate": now - timedelta(days=1)})
        expired = GenericValue("ProductPrice", {"fromDate": now - timedelta(days=9), "thruDate": now - timedelta(days=2)})
        future = GenericValue("ProductPrice", {"fromDate": now + timedelta(days=3)})
        mock_delegator.find_list.return_value = [current, expired, future]

        run_actions(
            {
                "entity-and": {
                    "entity-name": "ProductPrice",
                    "list": "prices",
                    "filter-by-date": "true",
                    "field-map": [{"field-name": "productId", "value": "P1"}],
                }
            }
        )

        assert screen_context["prices"] == [current]


class TestEntityCondition:
    """Test the entity-condition action."""

    def test_condition_tree(self, run_actions, screen_context, mock_delegator):
        """Test nested conditions, list operators and ignored conditions."""
        screen_context["sortField"] = "-orderDate"

        run_actions(
            {
                "entity-condition": {
                    "entity-name": "OrderHeader",
                    "list": "orders",
                    "distinct": "true",
                    "order-by": ["${sortField}"],
                    "select-field": ["orderId", "statusId"],
                    "condition": {
                        "condition-list": {
                            "combine": "or",
                            "conditions": [
                                {"condition-expr": {"field-name": "statusId", "operator": "in", "value": "OPEN, HELD"}},
                                {
                                    "condition-expr": {
                                        "field-name": "customerId",
                                        "from-field": "missingCustomer",
                                        "ignore-if-null": "true",
                                    }
                                },
                                {
                                    "condition-expr": {
                                        "field-name": "orderId",
                                        "from-field": "parameters.orderId",
                                        "ignore-case": "true",
                                    }
                                },
                            ],
                        }
                    },
                }
            }
        )

        mock_delegator.find_list.assert_called_once_with(
            "OrderHeader",
            EntityConditionList(
                (
                    EntityExpr("statusId", "in", ["OPEN", "HELD"]),
                    EntityExpr("orderId", "equals", "O1", True),
                ),
                "or",
            ),
            select_fields=["orderId", "statusId"],
            order_by=["-orderDate"],
            use_cache=False,
            distinct=True,
        )

    def test_without_condition(self, run_actions, mock_delegator):
        """Test a missing condition finds everything."""
        run_actions({"entity-condition": {"entity-name": "OrderHeader", "list": "orders"}})

        assert mock_delegator.find_list.call_args.args == ("OrderHeader", None)

    def test_invalid_operator(self):
        """Test unknown operators are rejected."""
        with pytest.raises(ActionConfigError):
            ActionList.read(
                [
                    {
                        "entity-condition": {
                            "entity-name": "OrderHeader",
                            "list": "orders",
                            "condition": {"condition-expr": {"field-name": "a", "operator": "roughly", "value": "1"}},
                        }
                    }
                ]
            )

    def test_entity_error(self, run_actions, mock_delegator):
        """Test query failures fail the action."""
        mock_delegator.find_list.side_effect = EntityError("bad condition")

        with pytest.raises(ActionError, match="Error doing entity query by condition"):
            run_actions({"entity-condition": {"entity-name": "OrderHeader", "list": "orders"}})


class TestGetRelated:
    """Test the relation traversal actions."""

    def test_get_related_one(self, run_actions, screen_context, mock_delegator):
        """Test the related value is stored in the target field."""
        order = GenericValue("OrderHeader", {"orderId": "O1"}, mock_delegator)
        customer = GenericValue("Party", {"partyId": "C1"}, mock_delegator)
        mock_delegator.get_related_one.return_value = customer
        screen_context["order"] = order

        results = run_actions(
            {"get-related-one": {"value-field": "order", "relation-name": "Customer", "to-value-field": "customer"}}
        )

        mock_delegator.get_related_one.assert_called_once_with("Customer", order, False)
        assert screen_context["customer"] is customer
        assert results[0].status == ActionStatus.SUCCESS

    def test_get_related(self, run_actions, screen_context, mock_delegator):
        """Test constraints and ordering are passed to the relation fetch."""
        order = GenericValue("OrderHeader", {"orderId": "O1"}, mock_delegator)
        items = [GenericValue("OrderItem", {"seq": "1"})]
        mock_delegator.get_related.return_value = items
        screen_context.update({"order": order, "itemFilter": {"statusId": "OPEN"}, "itemOrder": ["seq"]})

        run_actions(
            {
                "get-related": {
                    "value-name": "order",
                    "relation-name": "OrderItem",
                    "list-name": "items",
                    "map-name": "itemFilter",
                    "order-by-list-name": "itemOrder",
                    "use-cache": "true",
                }
            }
        )

        mock_delegator.get_related.assert_called_once_with(
            "OrderItem", order, {"statusId": "OPEN"}, ["seq"], True
        )
        assert screen_context["items"] == items

    def test_missing_source_is_skipped(self, run_actions, screen_context, mock_delegator):
        """Test a missing source value completes without setting the target."""
        results = run_actions(
            {"get-related-one": {"value-field": "order", "relation-name": "Customer", "to-value-field": "customer"}},
            {"get-related": {"value-field": "order", "relation-name": "OrderItem", "list": "items"}},
        )

        assert [r.status for r in results] == [ActionStatus.SKIPPED, ActionStatus.SKIPPED]
        assert "customer" not in screen_context
        assert "items" not in screen_context
        mock_delegator.get_related_one.assert_not_called()

    def test_non_entity_source(self, run_actions, screen_context):
        """Test a source that is not an entity value fails naming value and relation."""
        screen_context["order"] = {"orderId": "O1"}

        with pytest.raises(ActionError) as exc_info:
            run_actions(
                {"get-related-one": {"value-field": "order", "relation-name": "Customer", "to-value-field": "customer"}}
            )

        message = str(exc_info.value)
        assert "order" in message
        assert "Customer" in message

    def test_relation_error(self, run_actions, screen_context, mock_delegator):
        """Test relation failures name the entity and relation."""
        screen_context["order"] = GenericValue("OrderHeader", {"orderId": "O1"}, mock_delegator)
        mock_delegator.get_related.side_effect = EntityError("no such relation")

        with pytest.raises(ActionError, match="OrderHeader for the relation-name: Missing"):
            run_actions({"get-related": {"value-field": "order", "relation-name": "Missing", "list": "items"}})

    def test_value_without_delegator(self, run_actions, screen_context):
        """Test a detached value cannot traverse relations."""
        screen_context["order"] = GenericValue("OrderHeader", {"orderId": "O1"})

        with pytest.raises(ActionError, match="has no delegator"):
            run_actions(
                {"get-related-one": {"value-field": "order", "relation-name": "Customer", "to-value-field": "customer"}}
            )

    def test_attributes_required(self):
        """Test relation-name and targets are required."""
        with pytest.raises(ActionConfigError):
            ActionList.read([{"get-related-one": {"value-field": "order", "relation-name": "Customer"}}])

        with pytest.raises(ActionConfigError):
            ActionList.read([{"get-related": {"value-field": "order", "list": "items"}}])


class TestFilterByDate:
    """Test date range filtering."""

    def test_naive_dates_compared_in_utc(self):
        """Test naive dates are compared against an aware moment."""
        moment = datetime(2024, 6, 1, tzinfo=timezone.utc)
        values = [
            {"fromDate": datetime(2024, 1, 1), "thruDate": datetime(2024, 12, 31)},
            {"fromDate": datetime(2024, 7, 1)},
            {"thruDate": datetime(2024, 6, 1)},
        ]

        assert filter_by_date(values, moment) == [values[0]]


class TestListFinder:
    """Test the list finder base."""

    def test_condition_builder_is_required(self):
        """Test list finders must say how they build their condition."""

        class NoConditionFinder(_ListFinder):
            pass

        with pytest.raises(TypeError):
            NoConditionFinder()
