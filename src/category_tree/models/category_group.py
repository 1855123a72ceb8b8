"""
CategoryGroup models.

A category group defines a typed collection of categories. It owns one
Structure (the category tree) and one FieldLayout, and carries one
CategoryGroupLocale row per enabled locale with that locale's URL formats.
"""

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import BaseModel


class CategoryGroup(BaseModel):
    """
    CategoryGroup model.

    Attributes:
        name: Display name (unique)
        handle: URL-safe identifier (unique)
        has_urls: Whether categories in this group get URIs
        template: Template path rendered for category URLs (NULL without URLs)
        structure_id: Owned Structure
        field_layout_id: Owned FieldLayout

    Relationships:
        structure: Many-to-One with Structure (joined load, for max_levels)
        locales: One-to-Many with CategoryGroupLocale (cascade delete)
    """

    __tablename__ = "category_groups"

    name = Column(String(255), nullable=False, unique=True)
    handle = Column(String(255), nullable=False, unique=True)
    has_urls = Column(Boolean, nullable=False, default=True)
    template = Column(String(500), nullable=True)
    structure_id = Column(
        Integer, ForeignKey("structures.id", ondelete="CASCADE"), nullable=True
    )
    field_layout_id = Column(
        Integer, ForeignKey("field_layouts.id", ondelete="SET NULL"), nullable=True
    )

    structure = relationship("Structure", lazy="joined")
    locales = relationship(
        "CategoryGroupLocale",
        back_populates="group",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="selectin",
    )

    __table_args__ = (Index("idx_category_group_handle", "handle"),)


class CategoryGroupLocale(BaseModel):
    """
    URL formats of a category group in one locale.

    Attributes:
        group_id: Owning category group
        locale: Locale identifier (e.g. "en", "de-CH")
        url_format: URI format for top-level categories
        nested_url_format: URI format for nested categories
    """

    __tablename__ = "category_group_locales"

    group_id = Column(
        Integer, ForeignKey("category_groups.id", ondelete="CASCADE"), nullable=False
    )
    locale = Column(String(12), nullable=False)
    url_format = Column(String(255), nullable=True)
    nested_url_format = Column(String(255), nullable=True)

    group = relationship("CategoryGroup", back_populates="locales")

    __table_args__ = (
        UniqueConstraint("group_id", "locale", name="uq_category_group_locale"),
    )

    def __repr__(self) -> str:
        """String representation of a group locale row."""
        return f"CategoryGroupLocale(group_id={self.group_id}, locale='{self.locale}')"
