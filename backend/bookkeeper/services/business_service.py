# Overview: Tenant (business) creation and lookup.

from __future__ import annotations

from ..models import Business
from ..validation import ModelValidationPolicy, validate_payload
from .concurrency import run_with_retry
from .repository import Repository, Sort


BUSINESS_POLICY = ModelValidationPolicy(
    writable_fields={"name", "preferred_currency"},
    required_on_create={"name"},
)


def create_business(payload: dict, *, repo: Repository | None = None) -> Business:
    repo = repo or Repository()
    patch = validate_payload(model=Business, payload=payload, policy=BUSINESS_POLICY, partial=False)
    if patch.get("preferred_currency"):
        patch["preferred_currency"] = patch["preferred_currency"].upper()
    else:
        patch.pop("preferred_currency", None)

    def _op():
        return repo.insert("businesses", patch)

    return run_with_retry(_op)


def get_business(business_id: int, *, repo: Repository | None = None) -> Business:
    repo = repo or Repository()
    return repo.require("businesses", business_id)


def list_businesses(*, repo: Repository | None = None) -> list[Business]:
    repo = repo or Repository()
    return repo.fetch("businesses", [], [Sort("name")])
