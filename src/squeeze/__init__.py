"""Squeeze — local-first subscription tracker."""

__version__ = "0.1.0"
