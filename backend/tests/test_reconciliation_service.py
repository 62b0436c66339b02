# Overview: Pytest coverage for converting bank statement lines into transactions.

"""
Bank Reconciliation Tests

Covers the exactly-once conversion of bank payment records:
- money-in -> sale, money-out -> expense, fully paid by bank transfer
- second conversion is ALREADY_PROCESSED and creates nothing
- a lost race discards the duplicate transaction
- a failed conditional update is INCONSISTENT_STATE with an audit entry
"""

from datetime import datetime
from decimal import Decimal

import pytest
from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, OperationalError

from bookkeeper.errors import (
    AlreadyProcessedError,
    ErrorKind,
    InconsistentStateError,
    InvalidInputError,
    NotFoundError,
)
from bookkeeper.models import BankPaymentRecord, Contact, ReconciliationIssue, Transaction
from bookkeeper.services import reconciliation_service, transaction_service
from bookkeeper.services.repository import Repository


pytestmark = pytest.mark.reconciliation


class TestConvert:
    def test_money_in_becomes_paid_sale(self, db_session, business, make_bank_record):
        record = make_bank_record(amount="50.00")

        txn = reconciliation_service.convert(record.id, business_id=business.id)

        assert txn.type == "sale"
        assert txn.date == datetime(2024, 5, 1, 10, 0)
        assert txn.amount_paid == Decimal("50.00")
        assert txn.total == Decimal("50.00")
        assert txn.payment_status == "paid"
        assert txn.payment_method == "bank_transfer"
        assert txn.items[0]["name"] == "Transfer from Ada"

        db_session.refresh(record)
        assert record.processed is True
        assert record.transaction_id == txn.id

    def test_money_out_becomes_expense_with_supplier(self, db_session, business, make_bank_record):
        record = make_bank_record(amount="120.00", record_type="money-out", description="Stock purchase", beneficiary="Mega Supplies")

        txn = reconciliation_service.convert(record.id, business_id=business.id)

        assert txn.type == "expense"
        contact = db_session.get(Contact, txn.contact_id)
        assert contact.name == "Mega Supplies"
        assert contact.type == "supplier"

    def test_draft_items_and_contact_override_seed(self, db_session, business, make_bank_record):
        record = make_bank_record(amount="30.00")
        draft = {
            "items": [{"name": "Bread", "quantity_selected": 3, "selling_price": "10.00"}],
            "contact_name": "Chidi",
        }

        txn = reconciliation_service.convert(record.id, draft, business_id=business.id)

        assert txn.items[0]["name"] == "Bread"
        assert txn.subtotal == Decimal("30.00")
        assert txn.payment_status == "paid"
        assert db_session.get(Contact, txn.contact_id).name == "Chidi"

    def test_draft_total_above_record_amount_is_rejected(self, db_session, business, make_bank_record):
        record = make_bank_record(amount="50.00")
        draft = {"items": [{"name": "Generator", "quantity_selected": 1, "selling_price": "150.00"}]}

        with pytest.raises(InvalidInputError) as exc:
            reconciliation_service.convert(record.id, draft, business_id=business.id)

        assert exc.value.details == {"total": "150.00", "amount": "50.00"}
        assert db_session.query(Transaction).count() == 0
        db_session.refresh(record)
        assert record.processed is False
        assert record.transaction_id is None

    def test_draft_discount_can_bring_total_within_amount(self, db_session, business, make_bank_record):
        record = make_bank_record(amount="50.00")
        draft = {
            "items": [{"name": "Generator", "quantity_selected": 1, "selling_price": "150.00"}],
            "discount": "100.00",
        }

        txn = reconciliation_service.convert(record.id, draft, business_id=business.id)

        assert txn.total == Decimal("50.00")
        assert txn.amount_paid == Decimal("50.00")
        assert txn.payment_status == "paid"

    def test_blank_description_falls_back(self, db_session, business, make_bank_record):
        record = make_bank_record(description="", beneficiary=None)
        txn = reconciliation_service.convert(record.id, business_id=business.id)
        assert txn.items[0]["name"] == "Bank transfer"
        assert txn.contact_id is None

    def test_second_conversion_is_already_processed(self, db_session, business, make_bank_record):
        record = make_bank_record()
        first = reconciliation_service.convert(record.id, business_id=business.id)

        with pytest.raises(AlreadyProcessedError) as exc:
            reconciliation_service.convert(record.id, business_id=business.id)

        assert exc.value.kind == ErrorKind.ALREADY_PROCESSED
        assert exc.value.details["transaction_id"] == first.id
        assert db_session.query(Transaction).count() == 1

    def test_other_business_record_not_found(self, db_session, business, other_business, make_bank_record):
        record = make_bank_record()
        with pytest.raises(NotFoundError):
            reconciliation_service.convert(record.id, business_id=other_business.id)

    def test_lost_race_discards_duplicate(self, db_session, business, make_bank_record, monkeypatch):
        record = make_bank_record()

        def _someone_else_won(self, collection, record_id, expected, patch):
            return None

        monkeypatch.setattr(Repository, "compare_and_swap", _someone_else_won)

        with pytest.raises(AlreadyProcessedError):
            reconciliation_service.convert(record.id, business_id=business.id)

        assert db_session.query(Transaction).count() == 0
        assert db_session.query(ReconciliationIssue).count() == 0

    def test_conditional_update_loses_to_concurrent_writer(self, db_session, business, make_bank_record, monkeypatch):
        record = make_bank_record()
        real_create = transaction_service.create_transaction

        def _create_then_lose_race(business_id, payload, *, repo=None):
            winner = real_create(business_id, payload, repo=repo)
            ours = real_create(business_id, payload, repo=repo)
            # another request links the record first
            db_session.execute(
                update(BankPaymentRecord)
                .where(BankPaymentRecord.id == record.id)
                .values(processed=True, transaction_id=winner.id)
            )
            db_session.commit()
            return ours

        monkeypatch.setattr(transaction_service, "create_transaction", _create_then_lose_race)

        with pytest.raises(AlreadyProcessedError) as exc:
            reconciliation_service.convert(record.id, business_id=business.id)

        remaining = db_session.query(Transaction).all()
        assert len(remaining) == 1
        assert exc.value.details["transaction_id"] == remaining[0].id

    def test_unique_violation_maps_to_already_processed(self, db_session, business, make_bank_record, monkeypatch):
        record = make_bank_record()

        def _duplicate_link(self, collection, record_id, expected, patch):
            raise IntegrityError("UPDATE bank_payment_records", {}, Exception("UNIQUE constraint failed"))

        monkeypatch.setattr(Repository, "compare_and_swap", _duplicate_link)

        with pytest.raises(AlreadyProcessedError):
            reconciliation_service.convert(record.id, business_id=business.id)
        assert db_session.query(Transaction).count() == 0

    def test_failed_update_is_inconsistent_state(self, db_session, business, make_bank_record, monkeypatch):
        record = make_bank_record()
        calls = []

        def _disk_error(self, collection, record_id, expected, patch):
            calls.append(record_id)
            raise OperationalError("UPDATE bank_payment_records", {}, Exception("disk I/O error"))

        monkeypatch.setattr(Repository, "compare_and_swap", _disk_error)

        with pytest.raises(InconsistentStateError) as exc:
            reconciliation_service.convert(record.id, business_id=business.id)

        # never retried
        assert calls == [record.id]
        assert exc.value.kind == ErrorKind.INCONSISTENT_STATE

        issue = db_session.get(ReconciliationIssue, exc.value.details["issue_id"])
        assert issue.kind == reconciliation_service.ISSUE_ORPHAN_TRANSACTION
        assert issue.bank_record_id == record.id
        assert issue.transaction_id == exc.value.details["transaction_id"]

        # the transaction stays, the record stays unprocessed
        assert db_session.query(Transaction).count() == 1
        db_session.expire_all()
        assert db_session.get(BankPaymentRecord, record.id).processed is False

    def test_issue_can_be_resolved_once(self, db_session, business, make_bank_record, monkeypatch):
        record = make_bank_record()
        def _locked(self, collection, record_id, expected, patch):
            raise OperationalError("UPDATE bank_payment_records", {}, Exception("database is locked"))

        monkeypatch.setattr(Repository, "compare_and_swap", _locked)
        with pytest.raises(InconsistentStateError) as exc:
            reconciliation_service.convert(record.id, business_id=business.id)
        monkeypatch.undo()

        issue_id = exc.value.details["issue_id"]
        assert [i.id for i in reconciliation_service.list_issues(business.id)] == [issue_id]

        resolved = reconciliation_service.resolve_issue(issue_id, "Linked by hand", business_id=business.id)
        assert resolved.resolved_at is not None
        assert reconciliation_service.list_issues(business.id) == []
        with pytest.raises(InvalidInputError):
            reconciliation_service.resolve_issue(issue_id, "again", business_id=business.id)


class TestRecords:
    def test_create_batch(self, db_session, business):
        rows = [
            {"date": "2024-05-01", "type": "money-in", "amount": "50.00", "description": "POS"},
            {"date": "2024-05-02", "type": "money-out", "amount": "12.50", "beneficiary_name": "Power Co"},
        ]
        created = reconciliation_service.create_records(business.id, rows)

        assert len(created) == 2
        assert all(r.processed is False for r in created)
        assert created[1].amount == Decimal("12.50")

    def test_create_batch_is_all_or_nothing(self, db_session, business):
        rows = [
            {"date": "2024-05-01", "type": "money-in", "amount": "50.00"},
            {"date": "2024-05-02", "type": "sideways", "amount": "1.00"},
        ]
        with pytest.raises(InvalidInputError) as exc:
            reconciliation_service.create_records(business.id, rows)
        assert "records[1]" in str(exc.value)
        assert db_session.query(BankPaymentRecord).count() == 0

    def test_amount_must_be_positive(self, db_session, business):
        with pytest.raises(InvalidInputError):
            reconciliation_service.create_records(business.id, [{"date": "2024-05-01", "type": "money-in", "amount": "0"}])

    def test_list_defaults_to_unprocessed(self, db_session, business, make_bank_record):
        done = make_bank_record(description="first")
        pending = make_bank_record(description="second")
        reconciliation_service.convert(done.id, business_id=business.id)

        rows, total = reconciliation_service.list_records(business.id)
        assert total == 1
        assert rows[0].id == pending.id

        rows, total = reconciliation_service.list_records(business.id, processed=None)
        assert total == 2

    def test_processed_record_cannot_be_deleted(self, db_session, business, make_bank_record):
        record = make_bank_record()
        reconciliation_service.convert(record.id, business_id=business.id)
        with pytest.raises(AlreadyProcessedError):
            reconciliation_service.delete_record(record.id, business_id=business.id)

    def test_unprocessed_record_can_be_deleted(self, db_session, business, make_bank_record):
        record = make_bank_record()
        reconciliation_service.delete_record(record.id, business_id=business.id)
        assert db_session.query(BankPaymentRecord).count() == 0
