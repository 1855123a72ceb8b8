"""
Structure models for nested-set category trees.

A Structure owns an ordered tree of elements. Positions are stored as a
nested set (lft, rgt, level). Every structure has one hidden root node at
level 0 (element_id is NULL); top-level elements sit at level 1 beneath it.
"""

from sqlalchemy import Column, Integer, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import BaseModel


class Structure(BaseModel):
    """
    Structure model representing one nested-set tree.

    Attributes:
        max_levels: Maximum depth of the tree (0 means unlimited)

    Relationships:
        nodes: One-to-Many with StructureElement (cascade delete)
    """

    __tablename__ = "structures"

    max_levels = Column(Integer, nullable=False, default=0)

    nodes = relationship(
        "StructureElement",
        back_populates="structure",
        cascade="all, delete-orphan",
        passive_deletes=True,
        lazy="select",
    )


class StructureElement(BaseModel):
    """
    One node of a structure.

    Attributes:
        structure_id: Owning structure
        element_id: Element placed at this node (NULL for the hidden root)
        lft: Left nested-set boundary
        rgt: Right nested-set boundary
        level: Depth (0 for the hidden root, 1 for top-level elements)
    """

    __tablename__ = "structure_elements"

    structure_id = Column(
        Integer, ForeignKey("structures.id", ondelete="CASCADE"), nullable=False
    )
    element_id = Column(
        Integer, ForeignKey("elements.id", ondelete="CASCADE"), nullable=True
    )
    lft = Column(Integer, nullable=False)
    rgt = Column(Integer, nullable=False)
    level = Column(Integer, nullable=False)

    structure = relationship("Structure", back_populates="nodes")

    __table_args__ = (
        UniqueConstraint("structure_id", "element_id", name="uq_structure_element"),
        Index("idx_structure_element_lft", "structure_id", "lft"),
    )

    def __repr__(self) -> str:
        """String representation of a structure node."""
        return (
            f"StructureElement(structure_id={self.structure_id}, element_id={self.element_id}, "
            f"lft={self.lft}, rgt={self.rgt}, level={self.level})"
        )
