"""Custom column service for org-scoped dashboard columns."""

from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from flowlink.db.enums import CustomColumnType
from flowlink.db.models import CustomColumn

MIN_SELECT_OPTIONS = 2


def list_custom_columns(db: Session, org_id: UUID) -> list[CustomColumn]:
    return (
        db.query(CustomColumn)
        .filter(CustomColumn.organization_id == org_id)
        .order_by(CustomColumn.sort_order, CustomColumn.created_at)
        .all()
    )


def get_custom_column(db: Session, org_id: UUID, column_id: UUID) -> CustomColumn | None:
    return (
        db.query(CustomColumn)
        .filter(CustomColumn.organization_id == org_id, CustomColumn.id == column_id)
        .first()
    )


def validate_select_options(column_type: str, select_options: list[str] | None) -> list[str] | None:
    """Select columns need at least two non-blank options; others keep none."""
    if column_type != CustomColumnType.SELECT.value:
        return None
    options = [option.strip() for option in select_options or [] if option and option.strip()]
    if len(options) < MIN_SELECT_OPTIONS:
        raise ValueError("Select columns require at least 2 options")
    return options


def create_custom_column(
    db: Session,
    org_id: UUID,
    *,
    name: str,
    label: str,
    column_type: str,
    default_value: str | None = None,
    select_options: list[str] | None = None,
    is_required: bool = False,
) -> CustomColumn:
    """
    Create a column at the end of the organization's column order.

    Raises LookupError on a duplicate name and ValueError on bad options.
    """
    options = validate_select_options(column_type, select_options)

    existing = (
        db.query(CustomColumn)
        .filter(CustomColumn.organization_id == org_id, CustomColumn.name == name)
        .first()
    )
    if existing:
        raise LookupError("Custom column name already exists")

    last_order = (
        db.query(func.max(CustomColumn.sort_order))
        .filter(CustomColumn.organization_id == org_id)
        .scalar()
    )
    column = CustomColumn(
        organization_id=org_id,
        name=name,
        label=label,
        column_type=column_type,
        default_value=default_value,
        select_options=options,
        is_required=is_required,
        sort_order=(last_order or 0) + 1,
    )
    db.add(column)
    db.commit()
    db.refresh(column)
    return column


def delete_custom_column(db: Session, column: CustomColumn) -> None:
    db.delete(column)
    db.commit()
