"""Relational model layer for the invoicing application."""

__version__ = "0.1.0"
