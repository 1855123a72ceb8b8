"""Utilities package for category-tree."""
