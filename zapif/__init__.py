"""Chunks and semantic actions for simplifying C and C++ preprocessor conditionals."""

__version__ = "1.5.0"

__all__ = ["__version__"]