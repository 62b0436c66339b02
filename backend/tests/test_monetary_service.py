# Overview: Pytest coverage for transaction total/balance/status derivation.

from decimal import Decimal

import pytest

from bookkeeper.errors import ErrorKind, InvalidInputError
from bookkeeper.services.ledger_types import LineItem
from bookkeeper.services.monetary_service import (
    amount_paid_for_status,
    derive_totals,
    payment_status_for,
)


def _items():
    return [
        LineItem.build("Widget", 2, "10.00"),
        LineItem.build("Gadget", 1, "5.00"),
    ]


class TestLineItem:
    def test_subtotal_is_quantity_times_price(self):
        item = LineItem.build("Rice", 3, "1.10")
        assert item.subtotal == Decimal("3.30")

    def test_price_rounded_half_up_to_cents(self):
        item = LineItem.build("Thread", 1, "0.125")
        assert item.selling_price == Decimal("0.13")

    @pytest.mark.parametrize("quantity", [0, -1, "abc", 1.5, True])
    def test_rejects_bad_quantity(self, quantity):
        with pytest.raises(InvalidInputError):
            LineItem.build("Widget", quantity, "1.00")

    def test_rejects_negative_price(self):
        with pytest.raises(InvalidInputError):
            LineItem.build("Widget", 1, "-0.01")

    def test_from_dict_recomputes_subtotal(self):
        item = LineItem.from_dict({"name": "Widget", "quantity_selected": 2, "selling_price": "4.00", "subtotal": "999.00"})
        assert item.subtotal == Decimal("8.00")


class TestDeriveTotals:
    def test_two_lines_with_discount_and_partial_payment(self):
        result = derive_totals(_items(), "3.00", "15.00")
        assert result.subtotal == Decimal("25.00")
        assert result.total == Decimal("22.00")
        assert result.balance == Decimal("7.00")
        assert result.payment_status == "partially_paid"

    def test_unpaid(self):
        result = derive_totals(_items(), 0, 0)
        assert result.total == Decimal("25.00")
        assert result.balance == Decimal("25.00")
        assert result.payment_status == "unpaid"

    def test_exact_payment_is_paid(self):
        result = derive_totals(_items(), 0, "25.00")
        assert result.balance == Decimal("0.00")
        assert result.payment_status == "paid"

    def test_overpayment_gives_negative_balance_and_paid(self):
        result = derive_totals(_items(), 0, "30.00")
        assert result.balance == Decimal("-5.00")
        assert result.payment_status == "paid"

    def test_discount_larger_than_subtotal_clamps_total_to_zero(self):
        result = derive_totals(_items(), "40.00", 0)
        assert result.total == Decimal("0.00")
        assert result.payment_status == "paid"

    def test_empty_items(self):
        result = derive_totals([], 0, 0)
        assert result.subtotal == Decimal("0.00")
        assert result.total == Decimal("0.00")

    def test_negative_discount_rejected(self):
        with pytest.raises(InvalidInputError) as exc:
            derive_totals(_items(), "-1.00", 0)
        assert exc.value.kind == ErrorKind.INVALID_INPUT

    def test_negative_amount_paid_rejected(self):
        with pytest.raises(InvalidInputError):
            derive_totals(_items(), 0, "-1.00")

    def test_idempotent(self):
        first = derive_totals(_items(), "3.00", "15.00")
        second = derive_totals(_items(), "3.00", "15.00")
        assert first == second

    def test_invariants_hold_across_inputs(self):
        for discount, paid in [("0", "0"), ("3", "15"), ("25", "0"), ("0", "100"), ("1.5", "23.5")]:
            result = derive_totals(_items(), discount, paid)
            assert result.subtotal == sum(i.subtotal for i in _items())
            assert result.total == max(result.subtotal - Decimal(discount), Decimal("0"))
            assert result.balance == result.total - Decimal(paid)
            assert (result.payment_status == "paid") == (result.balance <= 0)

    def test_payment_status_for(self):
        assert payment_status_for(Decimal("10"), Decimal("0")) == "unpaid"
        assert payment_status_for(Decimal("10"), Decimal("4")) == "partially_paid"
        assert payment_status_for(Decimal("10"), Decimal("10")) == "paid"


class TestDeclaredStatus:
    def test_paid_uses_total(self):
        assert amount_paid_for_status("paid", Decimal("22.00"), None) == Decimal("22.00")

    def test_unpaid_uses_zero(self):
        assert amount_paid_for_status("unpaid", Decimal("22.00"), "10.00") == Decimal("0.00")

    def test_partially_paid_requires_amount_between_zero_and_total(self):
        assert amount_paid_for_status("partially_paid", Decimal("22.00"), "15") == Decimal("15.00")
        for bad in ("0", "22.00", "30"):
            with pytest.raises(InvalidInputError):
                amount_paid_for_status("partially_paid", Decimal("22.00"), bad)

    def test_partially_paid_without_amount(self):
        with pytest.raises(InvalidInputError):
            amount_paid_for_status("partially_paid", Decimal("22.00"), None)

    def test_unknown_status(self):
        with pytest.raises(InvalidInputError):
            amount_paid_for_status("settled", Decimal("22.00"), "1")

    def test_no_declaration_passes_amount_through(self):
        assert amount_paid_for_status(None, Decimal("22.00"), "30") == Decimal("30.00")
