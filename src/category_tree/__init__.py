"""Category groups, nested-set category trees and per-locale URIs."""

__version__ = "0.1.0"
