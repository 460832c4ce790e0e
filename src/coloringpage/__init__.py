"""Coloring Page Generator - turn photos into printable coloring pages with AI."""

__version__ = "1.0.0"

__all__ = ["__version__"]
