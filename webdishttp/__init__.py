"""Incremental HTTP/1.x parser and response rendering helpers."""

__version__ = "0.1.2.dev0"

__all__ = ["core", "headers", "methods", "parser", "response", "startline", "tables"]