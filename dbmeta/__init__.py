"""Database metadata records, readers for several databases and psql-style describe output."""

__version__ = "0.1.0"