from .business import Business
from .contacts import Contact
from .inventory import InventoryItem
from .transactions import Transaction
from .bank import BankPaymentRecord, ReconciliationIssue
from .documents import ReceiptInvoice

__all__ = [
    'Business',
    'Contact',
    'InventoryItem',
    'Transaction',
    'BankPaymentRecord', 'ReconciliationIssue',
    'ReceiptInvoice',
]
