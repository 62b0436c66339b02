# Overview: Domain error kinds shared by services and routes.

"""
Ledger error hierarchy.

Every service failure carries an ErrorKind so routes and the CLI can decide
how to surface it:

- INVALID_INPUT: bad payload (negative discount, missing field). Actionable.
- NOT_FOUND: reference to a missing contact/transaction/record. Actionable.
- ALREADY_PROCESSED: a bank record was already converted. Informational no-op.
- INCONSISTENT_STATE: a reconciliation write half-failed. Never retried;
  reported through the reconciliation audit instead of a generic failure.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_INPUT = "INVALID_INPUT"
    ALREADY_PROCESSED = "ALREADY_PROCESSED"
    NOT_FOUND = "NOT_FOUND"
    INCONSISTENT_STATE = "INCONSISTENT_STATE"


class LedgerError(Exception):
    """Base class for ledger operation errors."""

    kind: ErrorKind = ErrorKind.INVALID_INPUT
    http_status: int = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": str(self), "kind": self.kind.value}
        if self.details:
            body["details"] = self.details
        return body


class InvalidInputError(LedgerError):
    kind = ErrorKind.INVALID_INPUT
    http_status = 400


class NotFoundError(LedgerError):
    kind = ErrorKind.NOT_FOUND
    http_status = 404


class AlreadyProcessedError(LedgerError):
    kind = ErrorKind.ALREADY_PROCESSED
    http_status = 409


class InconsistentStateError(LedgerError):
    kind = ErrorKind.INCONSISTENT_STATE
    http_status = 500
