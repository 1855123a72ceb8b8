"""
Category model.

Categories are elements; this table only records the owning group. The
category's position in its group's tree lives in structure_elements.
"""

from sqlalchemy import Column, ForeignKey, Integer

from .base import BaseModel


class Category(BaseModel):
    """
    Category model keyed by the shared element ID.

    Attributes:
        id: Element ID (primary key, also a foreign key to elements)
        group_id: Owning category group (immutable)
    """

    __tablename__ = "categories"

    id = Column(
        Integer,
        ForeignKey("elements.id", ondelete="CASCADE"),
        primary_key=True,
        autoincrement=False,
    )
    group_id = Column(
        Integer,
        ForeignKey("category_groups.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
