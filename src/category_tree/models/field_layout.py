"""
FieldLayout models for custom field schemas.

A field layout is an ordered list of custom fields attached to an entity
type. Each category group owns exactly one layout.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Integer, String
from sqlalchemy.orm import relationship

from .base import BaseModel


class FieldLayout(BaseModel):
    """
    FieldLayout model.

    Attributes:
        type: Element type the layout applies to (e.g. "category")

    Relationships:
        fields: One-to-Many with FieldLayoutField, ordered by sort_order
    """

    __tablename__ = "field_layouts"

    type = Column(String(50), nullable=False)

    fields = relationship(
        "FieldLayoutField",
        back_populates="layout",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="FieldLayoutField.sort_order",
    )


class FieldLayoutField(BaseModel):
    """One custom field of a layout."""

    __tablename__ = "field_layout_fields"

    layout_id = Column(
        Integer, ForeignKey("field_layouts.id", ondelete="CASCADE"), nullable=False
    )
    handle = Column(String(64), nullable=False)
    name = Column(String(255), nullable=False)
    required = Column(Boolean, nullable=False, default=False)
    sort_order = Column(Integer, nullable=False, default=0)

    layout = relationship("FieldLayout", back_populates="fields")
