"""
Tests for the error taxonomy and database error translation.
"""

import os
import shutil
import tempfile
import unittest
from dataclasses import dataclass
from unittest.mock import patch

from sqlalchemy import exc as sa_exc
from sqlalchemy import text

from invoice_store.db import db as db_module
from invoice_store.db.models import NewInvoice, insert_invoice
from invoice_store.db.records import Insertable, Record, check_record_matches_table
from invoice_store.db.schema import invoices
from invoice_store.shared.errors import (
    ConnectivityError,
    ConstraintViolationError,
    InvoiceStoreError,
    SchemaMismatchError,
    classify_db_error,
    translate_db_errors,
)


def _dbapi_error(cls, message):
    return cls("INSERT ...", {}, Exception(message))


class ClassifyTests(unittest.TestCase):

    def test_integrity_error(self):
        """Test that IntegrityError maps to a constraint violation."""
        error = classify_db_error(_dbapi_error(sa_exc.IntegrityError, "UNIQUE constraint failed"), "op")
        self.assertIsInstance(error, ConstraintViolationError)
        self.assertFalse(error.retryable)
        self.assertEqual(error.operation, "op")

    def test_operational_error_is_connectivity(self):
        """Test that OperationalError maps to a retryable connectivity failure."""
        error = classify_db_error(_dbapi_error(sa_exc.OperationalError, "could not connect to server"))
        self.assertIsInstance(error, ConnectivityError)
        self.assertTrue(error.retryable)
        self.assertEqual(error.kind, "connectivity-failure")

    def test_missing_table_is_schema_mismatch(self):
        """Test that a missing SQLite table maps to schema mismatch."""
        error = classify_db_error(_dbapi_error(sa_exc.OperationalError, "no such table: invoices"))
        self.assertIsInstance(error, SchemaMismatchError)

    def test_programming_error_is_schema_mismatch(self):
        """Test that ProgrammingError maps to schema mismatch."""
        error = classify_db_error(_dbapi_error(sa_exc.ProgrammingError, 'relation "invoices" does not exist'))
        self.assertIsInstance(error, SchemaMismatchError)

    def test_unclassified_errors_pass_through(self):
        """Test that errors outside the taxonomy propagate unchanged."""
        with self.assertRaises(sa_exc.ArgumentError):
            with translate_db_errors("op"):
                raise sa_exc.ArgumentError("bad argument")

    def test_translated_error_chains_original(self):
        """Test that the original database error is chained."""
        original = _dbapi_error(sa_exc.IntegrityError, "NOT NULL constraint failed")
        with self.assertRaises(ConstraintViolationError) as cm:
            with translate_db_errors("op"):
                raise original
        self.assertIs(cm.exception.__cause__, original)
        self.assertIsInstance(cm.exception, InvoiceStoreError)


class DatabaseFailureTests(unittest.TestCase):
    """Failures against a real SQLite file."""

    def setUp(self):
        self.tmp_dir = tempfile.mkdtemp()

    def tearDown(self):
        db_module.dispose_engine()
        shutil.rmtree(self.tmp_dir, ignore_errors=True)

    def test_unreachable_database_is_connectivity_error(self):
        """Test that an unopenable database is a connectivity failure."""
        url = f"sqlite:///{os.path.join(self.tmp_dir, 'missing', 'dir', 'test.db')}"
        with patch.dict(os.environ, {"DATABASE_URL": url}):
            db_module.dispose_engine()
            with self.assertRaises(ConnectivityError):
                with db_module.connect() as conn:
                    insert_invoice(conn, NewInvoice(owner_id=1))

    def test_missing_tables_is_schema_mismatch(self):
        """Test inserting before init_db is a schema mismatch."""
        url = f"sqlite:///{os.path.join(self.tmp_dir, 'empty.db')}"
        with patch.dict(os.environ, {"DATABASE_URL": url}):
            db_module.dispose_engine()
            with self.assertRaises(SchemaMismatchError):
                with db_module.connect() as conn:
                    insert_invoice(conn, NewInvoice(owner_id=1))

    def test_foreign_keys_enforced_on_sqlite(self):
        """Test that SQLite connections have foreign keys switched on."""
        url = f"sqlite:///{os.path.join(self.tmp_dir, 'fk.db')}"
        with patch.dict(os.environ, {"DATABASE_URL": url}):
            db_module.dispose_engine()
            with db_module.connect() as conn:
                self.assertEqual(conn.execute(text("PRAGMA foreign_keys")).scalar_one(), 1)


class RecordTableCheckTests(unittest.TestCase):

    def test_matching_pair_passes(self):
        """Test that a matching record and insertable pass the check."""
        from invoice_store.db.models import Invoice

        check_record_matches_table(Invoice, invoices, NewInvoice)

    def test_field_order_mismatch_raises(self):
        """Test that reordered fields raise SchemaMismatchError."""
        @dataclass(frozen=True)
        class Reordered(Record):
            owner_id: int
            invoice_id: int

        with self.assertRaises(SchemaMismatchError):
            check_record_matches_table(Reordered, invoices)

    def test_insertable_with_primary_key_raises(self):
        """Test that an insertable carrying the key raises SchemaMismatchError."""
        from invoice_store.db.models import Invoice

        @dataclass(frozen=True)
        class WithKey(Insertable):
            invoice_id: int
            owner_id: int

        with self.assertRaises(SchemaMismatchError):
            check_record_matches_table(Invoice, invoices, WithKey)

    def test_row_missing_column_raises(self):
        """Test that a row without a needed column raises SchemaMismatchError."""
        from invoice_store.db.models import Invoice

        with self.assertRaises(SchemaMismatchError):
            Invoice.from_row({"invoice_id": 1})


if __name__ == "__main__":
    unittest.main()
