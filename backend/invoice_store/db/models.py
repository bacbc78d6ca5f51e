"""
Invoice models and their insert/select functions.

Relationships are plain foreign-key integers; related rows are fetched with
explicit queries rather than loaded onto the record.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import func, insert, select

from ..shared.errors import translate_db_errors
from ..shared.money import format_usd
from .records import (
    Insertable,
    Record,
    check_record_matches_table,
    require_bool,
    require_bytes,
    require_int,
    require_str,
)
from .schema import invoice_line_items, invoice_permissions, invoice_proof, invoices

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Invoice(Record):
    __table__ = invoices

    invoice_id: int
    owner_id: int


@dataclass(frozen=True)
class NewInvoice(Insertable):
    __table__ = invoices

    owner_id: int

    def __post_init__(self):
        require_int("owner_id", self.owner_id)


@dataclass(frozen=True)
class InvoiceProof(Record):
    """Opaque binary evidence attached to an invoice. Never modified once stored."""
    __table__ = invoice_proof

    proof_id: int
    invoice_id: int
    data: bytes

    def __repr__(self):
        return f"<InvoiceProof(proof_id={self.proof_id}, invoice_id={self.invoice_id}, bytes={len(self.data)})>"

    def to_dict(self):
        return {"proof_id": self.proof_id, "invoice_id": self.invoice_id, "size": len(self.data)}


@dataclass(frozen=True)
class NewInvoiceProof(Insertable):
    __table__ = invoice_proof

    invoice_id: int
    data: bytes

    def __post_init__(self):
        require_int("invoice_id", self.invoice_id)
        require_bytes("data", self.data)

    def __repr__(self):
        return f"<NewInvoiceProof(invoice_id={self.invoice_id}, bytes={len(self.data)})>"


@dataclass(frozen=True)
class InvoicePermissions(Record):
    """
    Access granted to ``borrower_id`` on ``invoice_id``.

    A row with both flags false is an explicit "no access" grant, which is
    different from having no row at all.
    """
    __table__ = invoice_permissions

    access_id: int
    borrower_id: int
    invoice_id: int
    read_access: bool
    write_access: bool


@dataclass(frozen=True)
class NewInvoicePermissions(Insertable):
    __table__ = invoice_permissions

    borrower_id: int
    invoice_id: int
    read_access: bool
    write_access: bool

    def __post_init__(self):
        require_int("borrower_id", self.borrower_id)
        require_int("invoice_id", self.invoice_id)
        require_bool("read_access", self.read_access)
        require_bool("write_access", self.write_access)


@dataclass(frozen=True)
class InvoiceLineItem(Record):
    """A priced line on an invoice. ``item_price_usd`` is integer cents."""
    __table__ = invoice_line_items

    id: int
    invoice_id: int
    item_name: str
    item_price_usd: int

    def to_dict(self):
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "item_name": self.item_name,
            "item_price_usd": self.item_price_usd,
            "item_price_display": format_usd(self.item_price_usd),
        }


@dataclass(frozen=True)
class NewInvoiceLineItem(Insertable):
    __table__ = invoice_line_items

    invoice_id: int
    item_name: str
    item_price_usd: int

    def __post_init__(self):
        require_int("invoice_id", self.invoice_id)
        require_str("item_name", self.item_name)
        # Cents only; use shared.money.to_cents for dollar amounts
        require_int("item_price_usd", self.item_price_usd)


check_record_matches_table(Invoice, invoices, NewInvoice)
check_record_matches_table(InvoiceProof, invoice_proof, NewInvoiceProof)
check_record_matches_table(InvoicePermissions, invoice_permissions, NewInvoicePermissions)
check_record_matches_table(InvoiceLineItem, invoice_line_items, NewInvoiceLineItem)


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------


def _insert(conn, record_cls, new_record, operation):
    table = record_cls.__table__
    stmt = insert(table).values(**new_record.to_row()).returning(*table.c)
    with translate_db_errors(operation):
        row = conn.execute(stmt).one()
    record = record_cls.from_row(row)
    logger.debug("%s -> %r", operation, record)
    return record


def _fetch_one(conn, record_cls, stmt, operation):
    with translate_db_errors(operation):
        row = conn.execute(stmt).first()
    return record_cls.from_row(row) if row is not None else None


def _fetch_all(conn, record_cls, stmt, operation):
    with translate_db_errors(operation):
        rows = conn.execute(stmt).all()
    return [record_cls.from_row(row) for row in rows]


# Invoices

def insert_invoice(conn, new_invoice: NewInvoice) -> Invoice:
    """
    Insert a new invoice.

    Raises:
        ConstraintViolationError: If ``owner_id`` does not reference a user.
    """
    invoice = _insert(conn, Invoice, new_invoice, "insert_invoice")
    logger.info("Created invoice %s for owner %s", invoice.invoice_id, invoice.owner_id)
    return invoice


def create_invoice(conn, owner_id: int) -> Invoice:
    return insert_invoice(conn, NewInvoice(owner_id=owner_id))


def get_invoice(conn, invoice_id: int) -> Optional[Invoice]:
    stmt = select(invoices).where(invoices.c.invoice_id == invoice_id)
    return _fetch_one(conn, Invoice, stmt, "get_invoice")


def list_invoices_for_owner(conn, owner_id: int) -> List[Invoice]:
    stmt = select(invoices).where(invoices.c.owner_id == owner_id).order_by(invoices.c.invoice_id)
    return _fetch_all(conn, Invoice, stmt, "list_invoices_for_owner")


# Proofs

def insert_invoice_proof(conn, new_proof: NewInvoiceProof) -> InvoiceProof:
    """
    Attach proof data to an invoice.

    Raises:
        ConstraintViolationError: If ``invoice_id`` does not reference an invoice.
    """
    proof = _insert(conn, InvoiceProof, new_proof, "insert_invoice_proof")
    logger.info("Stored proof %s (%d bytes) for invoice %s", proof.proof_id, len(proof.data), proof.invoice_id)
    return proof


def get_invoice_proof(conn, proof_id: int) -> Optional[InvoiceProof]:
    stmt = select(invoice_proof).where(invoice_proof.c.proof_id == proof_id)
    return _fetch_one(conn, InvoiceProof, stmt, "get_invoice_proof")


def list_proofs_for_invoice(conn, invoice_id: int) -> List[InvoiceProof]:
    stmt = (
        select(invoice_proof)
        .where(invoice_proof.c.invoice_id == invoice_id)
        .order_by(invoice_proof.c.proof_id)
    )
    return _fetch_all(conn, InvoiceProof, stmt, "list_proofs_for_invoice")


# Permissions

def insert_invoice_permissions(conn, new_permissions: NewInvoicePermissions) -> InvoicePermissions:
    """
    Grant a borrower access flags on an invoice.

    Both flags may be False; the row then records an explicit denial.

    Raises:
        ConstraintViolationError: If the borrower or invoice does not exist.
    """
    grant = _insert(conn, InvoicePermissions, new_permissions, "insert_invoice_permissions")
    logger.info(
        "Granted user %s on invoice %s (read=%s, write=%s)",
        grant.borrower_id, grant.invoice_id, grant.read_access, grant.write_access,
    )
    return grant


def get_invoice_permissions(conn, borrower_id: int, invoice_id: int) -> Optional[InvoicePermissions]:
    """
    Get the grant for a borrower/invoice pair, or None if there is none.

    No update operation exists, so the latest row for the pair is authoritative.
    """
    stmt = (
        select(invoice_permissions)
        .where(
            invoice_permissions.c.borrower_id == borrower_id,
            invoice_permissions.c.invoice_id == invoice_id,
        )
        .order_by(invoice_permissions.c.access_id.desc())
        .limit(1)
    )
    return _fetch_one(conn, InvoicePermissions, stmt, "get_invoice_permissions")


def list_permissions_for_invoice(conn, invoice_id: int) -> List[InvoicePermissions]:
    stmt = (
        select(invoice_permissions)
        .where(invoice_permissions.c.invoice_id == invoice_id)
        .order_by(invoice_permissions.c.access_id)
    )
    return _fetch_all(conn, InvoicePermissions, stmt, "list_permissions_for_invoice")


def list_invoices_shared_with(conn, borrower_id: int) -> List[Invoice]:
    """Invoices on which ``borrower_id`` holds a grant with read or write access."""
    latest = (
        select(func.max(invoice_permissions.c.access_id))
        .where(invoice_permissions.c.borrower_id == borrower_id)
        .group_by(invoice_permissions.c.invoice_id)
    )
    stmt = (
        select(invoices)
        .join(invoice_permissions, invoice_permissions.c.invoice_id == invoices.c.invoice_id)
        .where(
            invoice_permissions.c.access_id.in_(latest),
            (invoice_permissions.c.read_access | invoice_permissions.c.write_access),
        )
        .order_by(invoices.c.invoice_id)
    )
    return _fetch_all(conn, Invoice, stmt, "list_invoices_shared_with")


def has_access(conn, borrower_id: int, invoice_id: int, write: bool = False) -> bool:
    """
    Check a borrower's access to an invoice.

    Absence of a permissions row means no access.
    """
    grant = get_invoice_permissions(conn, borrower_id, invoice_id)
    if grant is None:
        return False
    return grant.write_access if write else grant.read_access


# Line items

def insert_line_item(conn, new_item: NewInvoiceLineItem) -> InvoiceLineItem:
    """
    Add a line item to an invoice.

    Raises:
        ConstraintViolationError: If ``invoice_id`` does not reference an invoice.
    """
    item = _insert(conn, InvoiceLineItem, new_item, "insert_line_item")
    logger.info(
        "Added line item %s '%s' (%s) to invoice %s",
        item.id, item.item_name, format_usd(item.item_price_usd), item.invoice_id,
    )
    return item


def list_line_items_for_invoice(conn, invoice_id: int) -> List[InvoiceLineItem]:
    stmt = (
        select(invoice_line_items)
        .where(invoice_line_items.c.invoice_id == invoice_id)
        .order_by(invoice_line_items.c.id)
    )
    return _fetch_all(conn, InvoiceLineItem, stmt, "list_line_items_for_invoice")


def invoice_total_cents(conn, invoice_id: int) -> int:
    """Sum of line item prices in cents; 0 for an invoice without items."""
    stmt = select(func.coalesce(func.sum(invoice_line_items.c.item_price_usd), 0)).where(
        invoice_line_items.c.invoice_id == invoice_id
    )
    with translate_db_errors("invoice_total_cents"):
        total = conn.execute(stmt).scalar_one()
    return int(total)
