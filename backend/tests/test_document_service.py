# Overview: Pytest coverage for the receipt/invoice lifecycle.

import pytest

from bookkeeper.errors import InvalidInputError, NotFoundError
from bookkeeper.models import ReceiptInvoice
from bookkeeper.services import document_service, transaction_service
from bookkeeper.services.document_service import next_status


@pytest.fixture
def paid_sale(db_session, business):
    return transaction_service.create_transaction(business.id, {
        "type": "sale",
        "contact_name": "Ada",
        "items": [{"name": "Bread", "quantity_selected": 2, "selling_price": "3.50"}],
        "payment_status": "paid",
    })


class TestTransitions:
    def test_export_moves_draft_to_sent(self):
        assert next_status("draft", "export") == "sent"

    def test_export_leaves_sent_and_viewed(self):
        assert next_status("sent", "export") == "sent"
        assert next_status("viewed", "export") == "viewed"

    def test_view_only_from_sent(self):
        assert next_status("sent", "view") == "viewed"
        assert next_status("viewed", "view") == "viewed"
        with pytest.raises(InvalidInputError):
            next_status("draft", "view")

    def test_unknown_event(self):
        with pytest.raises(InvalidInputError):
            next_status("sent", "draft")


class TestDocuments:
    def test_type_follows_payment_status(self, db_session, business, paid_sale):
        receipt = document_service.create_document(paid_sale.id, business_id=business.id)
        assert receipt.type == "receipt"
        assert receipt.status == "draft"

        unpaid = transaction_service.create_transaction(business.id, {
            "type": "sale",
            "items": [{"name": "Bread", "quantity_selected": 1, "selling_price": "3.50"}],
        })
        invoice = document_service.create_document(unpaid.id, business_id=business.id)
        assert invoice.type == "invoice"

    def test_explicit_type_validated(self, db_session, business, paid_sale):
        with pytest.raises(InvalidInputError):
            document_service.create_document(paid_sale.id, document_type="memo", business_id=business.id)

    def test_export_marks_sent_once(self, db_session, business, paid_sale):
        doc = document_service.create_document(paid_sale.id, business_id=business.id)

        doc, content = document_service.export_document(doc.id, business_id=business.id)
        assert doc.status == "sent"
        first_sent_at = doc.sent_at
        assert first_sent_at is not None

        text = content.decode("utf-8")
        assert "Bread,2,3.50,7.00" in text
        assert "total,7.00" in text
        assert "contact,Ada" in text

        doc, _ = document_service.export_document(doc.id, business_id=business.id)
        assert doc.status == "sent"
        assert doc.sent_at == first_sent_at

    def test_failed_export_stays_draft(self, db_session, business, paid_sale):
        doc = document_service.create_document(paid_sale.id, business_id=business.id)

        def _broken_exporter(document, transaction):
            raise RuntimeError("renderer unavailable")

        with pytest.raises(RuntimeError):
            document_service.export_document(doc.id, _broken_exporter, business_id=business.id)

        db_session.expire_all()
        stored = db_session.get(ReceiptInvoice, doc.id)
        assert stored.status == "draft"
        assert stored.sent_at is None

    def test_custom_exporter_receives_document_and_transaction(self, db_session, business, paid_sale):
        doc = document_service.create_document(paid_sale.id, business_id=business.id)
        seen = []

        def _exporter(document, transaction):
            seen.append((document.id, transaction.id))
            return b"%PDF-stub"

        _, content = document_service.export_document(doc.id, _exporter, business_id=business.id)
        assert content == b"%PDF-stub"
        assert seen == [(doc.id, paid_sale.id)]

    def test_viewed_requires_sent(self, db_session, business, paid_sale):
        doc = document_service.create_document(paid_sale.id, business_id=business.id)
        with pytest.raises(InvalidInputError):
            document_service.mark_viewed(doc.id, business_id=business.id)

        document_service.export_document(doc.id, business_id=business.id)
        viewed = document_service.mark_viewed(doc.id, business_id=business.id)
        assert viewed.status == "viewed"
        assert viewed.viewed_at is not None

        # export after viewed keeps viewed
        doc, _ = document_service.export_document(doc.id, business_id=business.id)
        assert doc.status == "viewed"

    def test_list_and_delete(self, db_session, business, paid_sale):
        doc = document_service.create_document(paid_sale.id, business_id=business.id)
        rows, total = document_service.list_documents(business.id, status="draft")
        assert total == 1 and rows[0].id == doc.id

        document_service.delete_document(doc.id, business_id=business.id)
        with pytest.raises(NotFoundError):
            document_service.export_document(doc.id, business_id=business.id)
