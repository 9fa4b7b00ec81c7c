"""Decrypt, merge and query local chat message databases."""

__version__ = "0.1.0"

__all__ = ["__version__"]