"""Initial ledger schema

Revision ID: 20261016_initial
Revises:
Create Date: 2026-10-16
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261016_initial"
down_revision = None
branch_labels = None
depends_on = None

MONEY = sa.Numeric(14, 2)


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
    ]


def upgrade():
    op.create_table(
        "businesses",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("preferred_currency", sa.String(64), nullable=False, server_default="USD"),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_businesses"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "contacts",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("business_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("phone", sa.String(32), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"], name="fk_contacts_business_id_businesses"),
        sa.PrimaryKeyConstraint("id", name="pk_contacts"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("contacts", schema=None) as batch_op:
        batch_op.create_index("ix_contacts_business_id", ["business_id"], unique=False)
        batch_op.create_index("ix_contacts_business_type_name", ["business_id", "type", "name"], unique=False)

    op.create_table(
        "inventory_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("business_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(16), nullable=False, server_default="product"),
        sa.Column("name", sa.String(128), nullable=False),
        sa.Column("sku", sa.String(64), nullable=True),
        sa.Column("quantity", sa.Integer(), nullable=True),
        sa.Column("selling_price", MONEY, nullable=False),
        sa.Column("cost_price", MONEY, nullable=True),
        *_timestamps(),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.CheckConstraint("quantity IS NULL OR quantity >= 0", name="ck_inventory_items_quantity_non_negative"),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"], name="fk_inventory_items_business_id_businesses"),
        sa.PrimaryKeyConstraint("id", name="pk_inventory_items"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("inventory_items", schema=None) as batch_op:
        batch_op.create_index("ix_inventory_items_business_id", ["business_id"], unique=False)
        batch_op.create_index("ix_inventory_items_business_type", ["business_id", "type"], unique=False)

    op.create_table(
        "transactions",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("business_id", sa.Integer(), nullable=False),
        sa.Column("contact_id", sa.Integer(), nullable=True),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("items", sa.JSON(), nullable=False),
        sa.Column("subtotal", MONEY, nullable=False),
        sa.Column("discount", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("total", MONEY, nullable=False),
        sa.Column("amount_paid", MONEY, nullable=False, server_default=sa.text("0")),
        sa.Column("balance", MONEY, nullable=False),
        sa.Column("payment_status", sa.String(16), nullable=False),
        sa.Column("payment_method", sa.String(32), nullable=False, server_default="cash"),
        *_timestamps(),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.CheckConstraint("discount >= 0", name="ck_transactions_discount_non_negative"),
        sa.CheckConstraint("amount_paid >= 0", name="ck_transactions_amount_paid_non_negative"),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"], name="fk_transactions_business_id_businesses"),
        sa.ForeignKeyConstraint(["contact_id"], ["contacts.id"], name="fk_transactions_contact_id_contacts"),
        sa.PrimaryKeyConstraint("id", name="pk_transactions"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("transactions", schema=None) as batch_op:
        batch_op.create_index("ix_transactions_business_id", ["business_id"], unique=False)
        batch_op.create_index("ix_transactions_contact_id", ["contact_id"], unique=False)
        batch_op.create_index("ix_transactions_date", ["date"], unique=False)
        batch_op.create_index("ix_transactions_payment_status", ["payment_status"], unique=False)
        batch_op.create_index("ix_transactions_business_type_date", ["business_id", "type", "date"], unique=False)
        batch_op.create_index("ix_transactions_business_status", ["business_id", "payment_status"], unique=False)

    op.create_table(
        "bank_payment_records",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("business_id", sa.Integer(), nullable=False),
        sa.Column("date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("amount", MONEY, nullable=False),
        sa.Column("beneficiary_name", sa.String(255), nullable=True),
        sa.Column("transaction_id", sa.Integer(), nullable=True),
        sa.Column("processed", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"], name="fk_bank_payment_records_business_id_businesses"),
        sa.ForeignKeyConstraint(["transaction_id"], ["transactions.id"], name="fk_bank_payment_records_transaction_id_transactions"),
        sa.PrimaryKeyConstraint("id", name="pk_bank_payment_records"),
        sa.UniqueConstraint("transaction_id", name="uq_bank_payment_records_transaction_id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("bank_payment_records", schema=None) as batch_op:
        batch_op.create_index("ix_bank_payment_records_business_id", ["business_id"], unique=False)
        batch_op.create_index(
            "ix_bank_payment_records_business_processed", ["business_id", "processed", "date"], unique=False
        )

    op.create_table(
        "reconciliation_issues",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("business_id", sa.Integer(), nullable=False),
        sa.Column("bank_record_id", sa.Integer(), nullable=False),
        sa.Column("transaction_id", sa.Integer(), nullable=True),
        sa.Column("kind", sa.String(32), nullable=False),
        sa.Column("detail", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("resolution_note", sa.String(255), nullable=True),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"], name="fk_reconciliation_issues_business_id_businesses"),
        sa.PrimaryKeyConstraint("id", name="pk_reconciliation_issues"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("reconciliation_issues", schema=None) as batch_op:
        batch_op.create_index("ix_reconciliation_issues_business_id", ["business_id"], unique=False)
        batch_op.create_index("ix_reconciliation_issues_bank_record_id", ["bank_record_id"], unique=False)

    op.create_table(
        "receipts_invoices",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("business_id", sa.Integer(), nullable=False),
        sa.Column("transaction_id", sa.Integer(), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("status", sa.String(16), nullable=False, server_default="draft"),
        sa.Column("sent_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("viewed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["business_id"], ["businesses.id"], name="fk_receipts_invoices_business_id_businesses"),
        sa.ForeignKeyConstraint(
            ["transaction_id"], ["transactions.id"],
            name="fk_receipts_invoices_transaction_id_transactions",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_receipts_invoices"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("receipts_invoices", schema=None) as batch_op:
        batch_op.create_index("ix_receipts_invoices_business_id", ["business_id"], unique=False)
        batch_op.create_index("ix_receipts_invoices_transaction_id", ["transaction_id"], unique=False)
        batch_op.create_index("ix_receipts_invoices_business_status", ["business_id", "status"], unique=False)


def downgrade():
    op.drop_table("receipts_invoices")
    op.drop_table("reconciliation_issues")
    op.drop_table("bank_payment_records")
    op.drop_table("transactions")
    op.drop_table("inventory_items")
    op.drop_table("contacts")
    op.drop_table("businesses")
