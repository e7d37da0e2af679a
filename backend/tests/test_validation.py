# Overview: Pytest coverage for payload validation and money helpers.

"""
Validation Tests

Covers strict integer coercion, tax math, order/receive line normalization,
and the model-metadata payload validator used by the item and counterparty
routes.
"""

import pytest

from tradebook.models import Item, Customer
from tradebook.errors import ValidationError
from tradebook.validation import (
    MAX_PRICE_CENTS,
    ModelValidationPolicy,
    coerce_int,
    enforce_rules_counterparty,
    enforce_rules_item,
    parse_tax_rate_bps,
    require_money_cents,
    tax_amount_cents,
    validate_order_lines,
    validate_payload,
    validate_receive_lines,
)


class TestCoerceInt:

    @pytest.mark.parametrize("raw,expected", [(5, 5), ("42", 42), (" -3 ", -3), (0, 0)])
    def test_accepts_plain_integers(self, raw, expected):
        assert coerce_int(raw, "qty") == expected

    @pytest.mark.parametrize("raw", [True, 1.0, "12.5", "1e5", "", "abc", None, [1]])
    def test_rejects_everything_else(self, raw):
        with pytest.raises(ValidationError):
            coerce_int(raw, "qty")


class TestMoney:

    def test_require_money_cents(self):
        assert require_money_cents("250", "amount") == 250
        assert require_money_cents(0, "amount") == 0
        with pytest.raises(ValidationError):
            require_money_cents(0, "amount", allow_zero=False)
        with pytest.raises(ValidationError):
            require_money_cents(-1, "amount")
        with pytest.raises(ValidationError):
            require_money_cents(MAX_PRICE_CENTS * 1000 + 1, "amount")

    @pytest.mark.parametrize("raw,bps", [(None, 0), (0, 0), (15, 1500), ("7.5", 750), (0.25, 25), (100, 10000)])
    def test_tax_rate_to_bps(self, raw, bps):
        assert parse_tax_rate_bps(raw) == bps

    @pytest.mark.parametrize("raw", [-1, 100.5, "abc", "0.001", True])
    def test_tax_rate_rejected(self, raw):
        with pytest.raises(ValidationError):
            parse_tax_rate_bps(raw)

    def test_tax_rounds_half_up(self):
        # 999 x 7.5% = 74.925
        assert tax_amount_cents(999, 750) == 75
        # 10 x 5% = 0.5
        assert tax_amount_cents(10, 500) == 1
        # 30 x 15% = 4.5
        assert tax_amount_cents(30, 1500) == 5
        assert tax_amount_cents(1000, 0) == 0


class TestOrderLines:

    def test_normalizes(self):
        lines = validate_order_lines([{"item_id": "3", "quantity": "2", "unit_price_cents": 150}])
        assert lines == [{"item_id": 3, "quantity": 2, "unit_price_cents": 150}]

    @pytest.mark.parametrize("lines", [
        [],
        None,
        "not-a-list",
        [{"item_id": 1, "quantity": 0, "unit_price_cents": 100}],
        [{"item_id": 1, "quantity": 1, "unit_price_cents": -1}],
        [{"item_id": 1, "quantity": 1}],
        [{"item_id": 1, "quantity": 1.5, "unit_price_cents": 100}],
        [
            {"item_id": 1, "quantity": 1, "unit_price_cents": 100},
            {"item_id": 1, "quantity": 2, "unit_price_cents": 100},
        ],
    ])
    def test_rejects(self, lines):
        with pytest.raises(ValidationError):
            validate_order_lines(lines)

    def test_receive_lines(self):
        assert validate_receive_lines([{"item_id": 1, "received_quantity": 0}]) == [
            {"item_id": 1, "received_quantity": 0}
        ]
        with pytest.raises(ValidationError):
            validate_receive_lines([{"item_id": 1, "received_quantity": -2}])
        with pytest.raises(ValidationError):
            validate_receive_lines([{"item_id": 1}])


class TestValidatePayload:

    POLICY = ModelValidationPolicy(
        writable_fields={"sku", "name", "opening_stock", "selling_price_cents", "is_active"},
        required_on_create={"sku", "name"},
    )

    def test_create_requires_fields(self, app):
        with pytest.raises(ValidationError):
            validate_payload(model=Item, payload={"sku": "A-1"}, policy=self.POLICY, partial=False)

    def test_rejects_fields_outside_policy(self, app):
        with pytest.raises(ValidationError):
            validate_payload(model=Item, payload={"current_stock": 5}, policy=self.POLICY, partial=True)

    def test_coerces_and_strips(self, app):
        patch = validate_payload(
            model=Item,
            payload={"sku": "  A-1 ", "name": "Rice 5kg", "opening_stock": "12", "is_active": True},
            policy=self.POLICY,
            partial=False,
        )
        assert patch == {"sku": "A-1", "name": "Rice 5kg", "opening_stock": 12, "is_active": True}

    @pytest.mark.parametrize("raw", ["false", "true", 0, 1, None])
    def test_boolean_columns_require_real_booleans(self, app, raw):
        with pytest.raises(ValidationError):
            validate_payload(model=Item, payload={"is_active": raw}, policy=self.POLICY, partial=True)

    def test_blank_and_null(self, app):
        with pytest.raises(ValidationError):
            validate_payload(model=Item, payload={"name": "   "}, policy=self.POLICY, partial=True)
        with pytest.raises(ValidationError):
            validate_payload(model=Item, payload={"name": None}, policy=self.POLICY, partial=True)

    def test_max_length(self, app):
        with pytest.raises(ValidationError):
            validate_payload(model=Item, payload={"sku": "X" * 101}, policy=self.POLICY, partial=True)


class TestBusinessRules:

    def test_item_rules(self):
        enforce_rules_item({"selling_price_cents": 100, "reorder_level": 0})
        with pytest.raises(ValidationError):
            enforce_rules_item({"selling_price_cents": -1})
        with pytest.raises(ValidationError):
            enforce_rules_item({"reorder_level": -5})
        with pytest.raises(ValidationError):
            enforce_rules_item({"tax_rate_bps": 10001})

    def test_counterparty_rules(self):
        enforce_rules_counterparty({"email": "sales@nile.example", "credit_limit_cents": 0})
        with pytest.raises(ValidationError):
            enforce_rules_counterparty({"email": "nile.example"})
        with pytest.raises(ValidationError):
            enforce_rules_counterparty({"credit_limit_cents": -100})

    def test_customer_payload(self, app):
        policy = ModelValidationPolicy(writable_fields={"name", "phone"}, required_on_create={"name"})
        patch = validate_payload(model=Customer, payload={"name": "Sara"}, policy=policy, partial=False)
        assert patch == {"name": "Sara"}
