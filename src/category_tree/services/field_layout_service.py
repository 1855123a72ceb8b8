"""
Field Layout Service - persistence of custom field layouts.

Session Management Pattern:
- Every method takes the caller's session; the caller owns the transaction.
"""

from typing import Optional

from sqlalchemy.orm import Session

from category_tree.models.field_layout import FieldLayout, FieldLayoutField
from category_tree.services.dto import FieldLayoutData, FieldLayoutFieldData
from category_tree.services.logging_utils import get_service_logger

logger = get_service_logger(__name__)


def _to_data(layout: FieldLayout) -> FieldLayoutData:
    return FieldLayoutData(
        id=layout.id,
        type=layout.type,
        fields=[
            FieldLayoutFieldData(
                handle=f.handle,
                name=f.name,
                required=f.required,
                sort_order=f.sort_order,
            )
            for f in layout.fields
        ],
    )


class FieldLayoutService:
    """SQLAlchemy implementation of field layout storage."""

    def get_layout_by_id(self, layout_id: int, session: Session) -> Optional[FieldLayoutData]:
        layout = session.get(FieldLayout, layout_id)
        return _to_data(layout) if layout is not None else None

    def save_layout(self, layout: FieldLayoutData, session: Session) -> FieldLayoutData:
        """
        Save a layout as a new row and record the generated ID on it.

        Layouts are replaced rather than edited: callers delete the old
        layout and save the new one.
        """
        record = FieldLayout(type=layout.type)
        for index, field_data in enumerate(layout.fields):
            record.fields.append(
                FieldLayoutField(
                    handle=field_data.handle,
                    name=field_data.name,
                    required=field_data.required,
                    sort_order=field_data.sort_order or index,
                )
            )
        session.add(record)
        session.flush()

        layout.id = record.id
        logger.debug(f"Saved field layout {record.id} with {len(layout.fields)} field(s)")
        return layout

    def delete_layout_by_id(self, layout_id: int, session: Session) -> bool:
        deleted = (
            session.query(FieldLayout)
            .filter(FieldLayout.id == layout_id)
            .delete(synchronize_session=False)
        )
        return bool(deleted)
