"""
SQLAlchemy Core table definitions.

Column order here is the field order of the matching records in
``auth_models`` and ``models``.
"""

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    ForeignKey,
    Integer,
    LargeBinary,
    MetaData,
    Table,
    Text,
)

metadata = MetaData()

# 64-bit keys; SQLite only autoincrements INTEGER PRIMARY KEY
Key = BigInteger().with_variant(Integer(), "sqlite")


users = Table(
    "users",
    metadata,
    Column("user_id", Key, primary_key=True, autoincrement=True),
    Column("username", Text, nullable=False),
    Column("email", Text, nullable=False),
    Column("profile_picture", LargeBinary, nullable=True),
    Column("password_hash", Text, nullable=False),
)

invoices = Table(
    "invoices",
    metadata,
    Column("invoice_id", Key, primary_key=True, autoincrement=True),
    Column("owner_id", Key, ForeignKey("users.user_id"), nullable=False, index=True),
)

invoice_proof = Table(
    "invoice_proof",
    metadata,
    Column("proof_id", Key, primary_key=True, autoincrement=True),
    Column("invoice_id", Key, ForeignKey("invoices.invoice_id"), nullable=False, index=True),
    Column("data", LargeBinary, nullable=False),
)

invoice_permissions = Table(
    "invoice_permissions",
    metadata,
    Column("access_id", Key, primary_key=True, autoincrement=True),
    Column("borrower_id", Key, ForeignKey("users.user_id"), nullable=False, index=True),
    Column("invoice_id", Key, ForeignKey("invoices.invoice_id"), nullable=False, index=True),
    Column("read_access", Boolean, nullable=False),
    Column("write_access", Boolean, nullable=False),
)

invoice_line_items = Table(
    "invoice_line_items",
    metadata,
    Column("id", Key, primary_key=True, autoincrement=True),
    Column("invoice_id", Key, ForeignKey("invoices.invoice_id"), nullable=False, index=True),
    Column("item_name", Text, nullable=False),
    # Integer cents
    Column("item_price_usd", BigInteger, nullable=False),
)
