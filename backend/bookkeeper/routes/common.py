# Overview: Shared request parsing and error responses for the API blueprints.

from __future__ import annotations

from flask import current_app, jsonify, request

from ..errors import ErrorKind, LedgerError
from ..services.repository import Page, Sort
from ..time_utils import parse_iso_datetime
from ..validation import ValidationError


def error_response(error: LedgerError):
    """JSON body + status for a ledger error."""
    if error.kind == ErrorKind.INCONSISTENT_STATE:
        current_app.logger.error("Inconsistent ledger state: %s %s", error, error.details)
    return jsonify(error.to_dict()), error.http_status


def internal_error(message: str):
    current_app.logger.exception(message)
    return jsonify({"error": "Internal server error"}), 500


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def parse_page() -> Page:
    """?page=&page_size= clamped to [1, MAX_PAGE_SIZE]."""
    number = request.args.get("page", 1, type=int)
    size = request.args.get("page_size", current_app.config["DEFAULT_PAGE_SIZE"], type=int)

    if number < 1:
        number = 1
    if size < 1:
        size = 1
    if size > current_app.config["MAX_PAGE_SIZE"]:
        size = current_app.config["MAX_PAGE_SIZE"]
    return Page(number=number, size=size)


def parse_sort(allowed: set[str]) -> Sort | None:
    """?sort=field or ?sort=-field (descending)."""
    raw = (request.args.get("sort") or "").strip()
    if not raw:
        return None
    descending = raw.startswith("-")
    field = raw.lstrip("-")
    if field not in allowed:
        raise ValidationError(f"sort must be one of: {', '.join(sorted(allowed))}")
    return Sort(field, descending=descending)


def parse_date_arg(name: str):
    raw = request.args.get(name)
    try:
        value = parse_iso_datetime(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 datetime")
    return value


def parse_bool_arg(name: str, default: bool | None) -> bool | None:
    raw = request.args.get(name)
    if raw is None:
        return default
    value = raw.strip().lower()
    if value in ("true", "1", "yes"):
        return True
    if value in ("false", "0", "no"):
        return False
    if value in ("all", "any"):
        return None
    raise ValidationError(f"{name} must be true, false or all")


def paginated(rows: list, total: int, page: Page) -> dict:
    return {
        "items": rows,
        "count": total,
        "page": page.number,
        "page_size": page.size,
    }
