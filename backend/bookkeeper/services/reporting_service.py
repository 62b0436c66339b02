# Overview: Loads ledger data for a business and runs the analytics over it.

from __future__ import annotations

from datetime import datetime

from ..time_utils import utcnow
from .aggregation_service import aggregate, dashboard_metrics, resolve_window
from .contact_service import debt_summary
from .inventory_service import stock_alerts
from .repository import Filter, Repository, Sort


def _load_snapshots(business_id: int, start: datetime, *, repo: Repository) -> list:
    rows = repo.fetch(
        "transactions",
        [Filter("business_id", "eq", business_id), Filter("date", "gt", start)],
        [Sort("date")],
    )
    return [t.snapshot() for t in rows]


def ledger_summary(
    business_id: int,
    range_key: str | None = None,
    *,
    now: datetime | None = None,
    repo: Repository | None = None,
) -> dict:
    """Full analytics for the analytics page."""
    repo = repo or Repository()
    now = now or utcnow()
    start, end = resolve_window(range_key, now)
    metrics = aggregate(_load_snapshots(business_id, start, repo=repo), start, end)
    body = metrics.to_dict()
    body["range"] = (range_key or "3M").upper()
    return body


def dashboard(
    business_id: int,
    range_key: str | None = None,
    *,
    low_stock_threshold: int = 3,
    now: datetime | None = None,
    repo: Repository | None = None,
) -> dict:
    """Home dashboard: headline metrics, stock alerts and debts."""
    repo = repo or Repository()
    now = now or utcnow()
    start, end = resolve_window(range_key, now)
    metrics = dashboard_metrics(_load_snapshots(business_id, start, repo=repo), start, end)
    return {
        "range": (range_key or "3M").upper(),
        "metrics": metrics.to_dict(),
        "stock": stock_alerts(business_id, low_stock_threshold, repo=repo),
        "debts": debt_summary(business_id, repo=repo),
    }
