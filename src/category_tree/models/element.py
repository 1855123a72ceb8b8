"""
Element models shared by every content entity type.

An Element row carries the identity of a content entity. Per-locale data is
split into two tables: ElementLocale (slug, URI, enabled flag) and
ElementContent (title and custom field values).
"""

from sqlalchemy import (
    Boolean,
    Column,
    ForeignKey,
    Index,
    Integer,
    JSON,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .base import BaseModel


class Element(BaseModel):
    """
    Element model.

    Attributes:
        type: Element type tag (e.g. "category")
        enabled: Global enabled flag

    Relationships:
        locales: One-to-Many with ElementLocale (cascade delete)
        content: One-to-Many with ElementContent (cascade delete)
    """

    __tablename__ = "elements"

    type = Column(String(50), nullable=False, index=True)
    enabled = Column(Boolean, nullable=False, default=True)

    locales = relationship(
        "ElementLocale",
        back_populates="element",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    content = relationship(
        "ElementContent",
        back_populates="element",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )


class ElementLocale(BaseModel):
    """Slug and URI of an element in one locale."""

    __tablename__ = "element_locales"

    element_id = Column(
        Integer, ForeignKey("elements.id", ondelete="CASCADE"), nullable=False
    )
    locale = Column(String(12), nullable=False)
    slug = Column(String(255), nullable=True)
    uri = Column(String(255), nullable=True)
    enabled = Column(Boolean, nullable=False, default=True)

    element = relationship("Element", back_populates="locales")

    __table_args__ = (
        UniqueConstraint("element_id", "locale", name="uq_element_locale"),
        Index("idx_element_locale_uri", "uri", "locale"),
    )


class ElementContent(BaseModel):
    """Title and custom field values of an element in one locale."""

    __tablename__ = "element_content"

    element_id = Column(
        Integer, ForeignKey("elements.id", ondelete="CASCADE"), nullable=False
    )
    locale = Column(String(12), nullable=False)
    title = Column(String(255), nullable=True)
    fields = Column(JSON, nullable=False, default=dict)

    element = relationship("Element", back_populates="content")

    __table_args__ = (
        UniqueConstraint("element_id", "locale", name="uq_element_content_locale"),
    )
