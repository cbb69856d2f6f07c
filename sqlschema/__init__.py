"""sqlschema - relational schema discovery and vendor DDL generation."""

__version__ = "0.1.0"
