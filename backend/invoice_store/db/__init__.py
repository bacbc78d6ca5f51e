"""
Database package for invoice persistence.

Provides table definitions, record types and insert/select functions for
users, invoices, proofs, permissions and line items, plus connection management.
"""

from .db import get_engine, get_database_url, connect, dispose_engine, init_db, reset_db
from .schema import metadata
from .auth_models import (
    User, NewUser, create_user, insert_user,
    get_user_by_id, get_user_by_username, get_user_by_email,
    hash_password, verify_password, password_needs_rehash,
)
from .models import (
    Invoice, NewInvoice, insert_invoice, create_invoice, get_invoice, list_invoices_for_owner,
    InvoiceProof, NewInvoiceProof, insert_invoice_proof, get_invoice_proof, list_proofs_for_invoice,
    InvoicePermissions, NewInvoicePermissions, insert_invoice_permissions, get_invoice_permissions,
    list_permissions_for_invoice, list_invoices_shared_with, has_access,
    InvoiceLineItem, NewInvoiceLineItem, insert_line_item, list_line_items_for_invoice,
    invoice_total_cents,
)

__all__ = [
    "get_engine", "get_database_url", "connect", "dispose_engine", "init_db", "reset_db", "metadata",
    "User", "NewUser", "create_user", "insert_user",
    "get_user_by_id", "get_user_by_username", "get_user_by_email",
    "hash_password", "verify_password", "password_needs_rehash",
    "Invoice", "NewInvoice", "insert_invoice", "create_invoice", "get_invoice", "list_invoices_for_owner",
    "InvoiceProof", "NewInvoiceProof", "insert_invoice_proof", "get_invoice_proof", "list_proofs_for_invoice",
    "InvoicePermissions", "NewInvoicePermissions", "insert_invoice_permissions", "get_invoice_permissions",
    "list_permissions_for_invoice", "list_invoices_shared_with", "has_access",
    "InvoiceLineItem", "NewInvoiceLineItem", "insert_line_item", "list_line_items_for_invoice",
    "invoice_total_cents",
]
