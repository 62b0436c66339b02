# Overview: Pytest coverage for analytics windows and ledger metrics.

from datetime import datetime
from decimal import Decimal

import pytest

from bookkeeper.errors import InvalidInputError
from bookkeeper.services import aggregation_service as agg
from bookkeeper.services.ledger_types import LineItem, TransactionSnapshot
from bookkeeper.time_utils import EPOCH


pytestmark = pytest.mark.analytics

NOW = datetime(2024, 6, 30, 12, 0)


def sale(date, items, contact_id=None, contact_name=None, payment_method="cash"):
    lines = tuple(LineItem.build(name, qty, price) for name, qty, price in items)
    return TransactionSnapshot(
        id=None,
        type="sale",
        date=date,
        total=sum((i.subtotal for i in lines), Decimal("0")),
        contact_id=contact_id,
        contact_name=contact_name,
        payment_method=payment_method,
        items=lines,
    )


def expense(date, items, contact_id=None, contact_name=None):
    snapshot = sale(date, items, contact_id, contact_name)
    return TransactionSnapshot(**{**snapshot.__dict__, "type": "expense"})


@pytest.fixture
def ledger():
    return [
        sale(datetime(2024, 6, 1, 9, 30), [("Widget", 2, "40.00"), ("Gadget", 1, "20.00")], 1, "Ada"),
        expense(datetime(2024, 6, 10, 8, 0), [("Rent", 1, "80.00")], 2, "Supplies Ltd"),
        sale(datetime(2024, 6, 20, 9, 15), [("Widget", 5, "60.00")], 1, "Ada"),
        sale(datetime(2024, 6, 21, 14, 0), [("Gadget", 1, "50.00")]),
        # exactly at the window start: excluded
        sale(datetime(2024, 5, 30, 12, 0), [("Widget", 1, "999.00")], 3, "Bola"),
    ]


class TestWindows:
    def test_one_month_clamps_day(self):
        start, end = agg.resolve_window("1M", datetime(2024, 3, 31, 12, 0))
        assert start == datetime(2024, 2, 29, 12, 0)
        assert end == datetime(2024, 3, 31, 12, 0)

    def test_default_is_three_months(self):
        start, _ = agg.resolve_window(None, datetime(2024, 3, 31, 12, 0))
        assert start == datetime(2023, 12, 31, 12, 0)

    def test_six_months_crosses_year(self):
        start, _ = agg.resolve_window("6M", datetime(2024, 2, 15))
        assert start == datetime(2023, 8, 15)

    def test_year_to_date(self):
        start, _ = agg.resolve_window("YTD", NOW)
        assert start == datetime(2024, 1, 1)

    def test_all_starts_at_epoch(self):
        start, _ = agg.resolve_window("ALL", NOW)
        assert start == EPOCH

    def test_lowercase_key_accepted(self):
        assert agg.resolve_window("1m", NOW) == agg.resolve_window("1M", NOW)

    def test_unknown_range(self):
        with pytest.raises(InvalidInputError):
            agg.resolve_window("2W", NOW)


class TestFormulas:
    def test_percentage_change_zero_previous(self):
        assert agg.percentage_change(Decimal("100"), Decimal("0")) == 0.0

    def test_percentage_change(self):
        assert agg.percentage_change(Decimal("150"), Decimal("100")) == 50.0

    def test_profit_margin_zero_sales(self):
        assert agg.profit_margin(Decimal("0"), Decimal("80")) == 0.0

    def test_repeat_customer_rate_counts_missing_contact_once(self):
        sales = [
            sale(NOW, [("A", 1, "1")], 1),
            sale(NOW, [("A", 1, "1")], 1),
            sale(NOW, [("A", 1, "1")]),
            sale(NOW, [("A", 1, "1")]),
        ]
        assert agg.repeat_customer_rate(sales) == 50.0

    def test_repeat_customer_rate_no_sales(self):
        assert agg.repeat_customer_rate([]) == 0.0


class TestAggregate:
    def test_headline_metrics(self, ledger):
        start, now = agg.resolve_window("1M", NOW)
        metrics = agg.aggregate(ledger, start, now)

        assert metrics.total_revenue == Decimal("450.00")
        assert metrics.total_expenses == Decimal("80.00")
        assert metrics.total_profit == Decimal("370.00")
        assert metrics.total_orders == 3
        assert metrics.average_order_value == Decimal("150.00")
        assert metrics.profit_margin == pytest.approx(82.2222, rel=1e-4)
        # recent (after the midpoint) 350 vs previous 100
        assert metrics.sales_growth == pytest.approx(250.0)
        assert metrics.repeat_customer_rate == pytest.approx(66.6667, rel=1e-4)

    def test_breakdowns(self, ledger):
        start, now = agg.resolve_window("1M", NOW)
        metrics = agg.aggregate(ledger, start, now)

        assert [(p.name, p.quantity, p.revenue) for p in metrics.top_products] == [
            ("Widget", 7, Decimal("380.00")),
            ("Gadget", 2, Decimal("70.00")),
        ]
        assert [(c.name, c.transactions, c.revenue) for c in metrics.top_customers] == [
            ("Ada", 2, Decimal("400.00")),
        ]
        assert [(e.name, e.amount) for e in metrics.top_expenses] == [("Rent", Decimal("80.00"))]
        assert [(s.name, s.amount) for s in metrics.top_suppliers] == [("Supplies Ltd", Decimal("80.00"))]
        assert [(t.time, t.sales, t.count) for t in metrics.best_sales_times] == [
            ("09:00", Decimal("400.00"), 2),
            ("14:00", Decimal("50.00"), 1),
        ]
        assert [d.day for d in metrics.sales_by_day] == ["Thursday", "Saturday", "Friday"]

    def test_daily_series_in_date_order(self, ledger):
        start, now = agg.resolve_window("1M", NOW)
        daily = agg.aggregate(ledger, start, now).daily

        assert [p.date for p in daily] == ["2024-06-01", "2024-06-10", "2024-06-20", "2024-06-21"]
        assert daily[1].expenses == Decimal("80.00")
        assert daily[1].profit == Decimal("-80.00")

    def test_all_range_includes_everything(self, ledger):
        metrics = agg.aggregate(ledger, EPOCH, NOW)
        assert metrics.total_orders == 4
        assert metrics.total_revenue == Decimal("1449.00")

    def test_empty_ledger(self):
        metrics = agg.aggregate([], EPOCH, NOW)
        assert metrics.total_revenue == Decimal("0")
        assert metrics.average_order_value == Decimal("0")
        assert metrics.profit_margin == 0.0
        assert metrics.top_products == []

    def test_does_not_mutate_input(self, ledger):
        before = list(ledger)
        agg.aggregate(ledger, EPOCH, NOW)
        assert ledger == before

    def test_deterministic(self, ledger):
        assert agg.aggregate(ledger, EPOCH, NOW) == agg.aggregate(ledger, EPOCH, NOW)

    def test_ties_keep_first_encountered(self):
        sales = [
            sale(NOW, [("Beta", 1, "10.00")]),
            sale(NOW, [("Alpha", 1, "10.00")]),
        ]
        assert [p.name for p in agg.top_products(sales)] == ["Beta", "Alpha"]

    def test_reordering_input_keeps_sums(self, ledger):
        forward = agg.aggregate(ledger, EPOCH, NOW)
        backward = agg.aggregate(list(reversed(ledger)), EPOCH, NOW)

        assert backward.to_dict()["metrics"] == forward.to_dict()["metrics"]
        assert backward.daily == forward.daily

        def amounts(rows, value):
            return {row.name: getattr(row, value) for row in rows}

        assert amounts(backward.top_products, "revenue") == amounts(forward.top_products, "revenue")
        assert amounts(backward.top_customers, "revenue") == amounts(forward.top_customers, "revenue")
        assert amounts(backward.top_expenses, "amount") == amounts(forward.top_expenses, "amount")
        assert amounts(backward.top_suppliers, "amount") == amounts(forward.top_suppliers, "amount")
        assert amounts(backward.sales_by_payment_method, "amount") == amounts(forward.sales_by_payment_method, "amount")
        assert {t.time: t.sales for t in backward.best_sales_times} == {t.time: t.sales for t in forward.best_sales_times}
        assert {d.day: d.sales for d in backward.sales_by_day} == {d.day: d.sales for d in forward.sales_by_day}

    def test_sales_by_payment_method(self):
        sales = [
            sale(NOW, [("Widget", 1, "30.00")], payment_method="card"),
            sale(NOW, [("Widget", 1, "50.00")], payment_method="bank_transfer"),
            sale(NOW, [("Gadget", 1, "40.00")], payment_method="card"),
        ]
        expenses = [expense(NOW, [("Rent", 1, "500.00")])]

        metrics = agg.aggregate(sales + expenses, EPOCH, NOW)

        assert [(m.name, m.amount) for m in metrics.sales_by_payment_method] == [
            ("card", Decimal("70.00")),
            ("bank_transfer", Decimal("50.00")),
        ]
        assert metrics.to_dict()["sales_by_payment_method"][0] == {"name": "card", "amount": "70.00"}

    def test_payment_method_ties_keep_first_encountered(self):
        sales = [
            sale(NOW, [("Widget", 1, "10.00")], payment_method="mobile_money"),
            sale(NOW, [("Widget", 1, "10.00")], payment_method="cash"),
        ]
        assert [m.name for m in agg.sales_by_payment_method(sales)] == ["mobile_money", "cash"]

    def test_top_lists_capped_at_five(self):
        sales = [sale(NOW, [(f"P{i}", 1, str(i))]) for i in range(1, 9)]
        top = agg.top_products(sales)
        assert len(top) == 5
        assert top[0].name == "P8"

    def test_to_dict_serializes_money_as_strings(self, ledger):
        body = agg.aggregate(ledger, EPOCH, NOW).to_dict()
        assert body["metrics"]["total_revenue"] == "1449.00"
        assert body["top_products"][0]["revenue"] == "1379.00"


class TestDashboardMetrics:
    def test_subset(self, ledger):
        start, now = agg.resolve_window("1M", NOW)
        metrics = agg.dashboard_metrics(ledger, start, now)
        assert metrics.total_sales == Decimal("450.00")
        assert metrics.total_expenses == Decimal("80.00")
        assert metrics.total_orders == 3
        assert metrics.sales_growth == pytest.approx(250.0)
