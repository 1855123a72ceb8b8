"""
Database models package.

This package contains all SQLAlchemy ORM models for the application.
"""

from .base import Base, BaseModel
from .element import Element, ElementLocale, ElementContent
from .structure import Structure, StructureElement
from .field_layout import FieldLayout, FieldLayoutField
from .category_group import CategoryGroup, CategoryGroupLocale
from .category import Category

__all__ = [
    "Base",
    "BaseModel",
    "Element",
    "ElementLocale",
    "ElementContent",
    "Structure",
    "StructureElement",
    "FieldLayout",
    "FieldLayoutField",
    "CategoryGroup",
    "CategoryGroupLocale",
    "Category",
]
