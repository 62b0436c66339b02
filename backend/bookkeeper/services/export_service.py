# Overview: Renders receipts/invoices into downloadable bytes.

from __future__ import annotations

import csv
import io
from typing import Protocol

from ..models import ReceiptInvoice, Transaction
from ..money import money_str
from ..time_utils import to_utc_z


class DocumentExporter(Protocol):
    def __call__(self, document: ReceiptInvoice, transaction: Transaction) -> bytes: ...


def csv_exporter(document: ReceiptInvoice, transaction: Transaction) -> bytes:
    """Header block, one row per line item, then the totals."""
    buffer = io.StringIO()
    writer = csv.writer(buffer)

    writer.writerow(["document", document.type])
    writer.writerow(["number", f"{document.type[:3].upper()}-{document.id:06d}"])
    writer.writerow(["transaction", transaction.id])
    writer.writerow(["date", to_utc_z(transaction.date)])
    writer.writerow(["contact", transaction.contact.name if transaction.contact else ""])
    writer.writerow([])

    writer.writerow(["item", "quantity", "price", "subtotal"])
    for item in transaction.line_items():
        writer.writerow([item.name, item.quantity_selected, money_str(item.selling_price), money_str(item.subtotal)])
    writer.writerow([])

    writer.writerow(["subtotal", money_str(transaction.subtotal)])
    writer.writerow(["discount", money_str(transaction.discount)])
    writer.writerow(["total", money_str(transaction.total)])
    writer.writerow(["amount_paid", money_str(transaction.amount_paid)])
    writer.writerow(["balance", money_str(transaction.balance)])
    writer.writerow(["payment_status", transaction.payment_status])
    return buffer.getvalue().encode("utf-8")
