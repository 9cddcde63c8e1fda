"""SQLAlchemy Base and common model utilities."""

from datetime import datetime, timezone
from typing import Any, ClassVar

from sqlalchemy import DateTime, MetaData, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Naming convention for constraints (helps with migrations)
convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_name)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

metadata = MetaData(naming_convention=convention)


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    metadata = metadata

    type_annotation_map = {
        datetime: DateTime(timezone=True),
    }


class DocumentMixin:
    """Mixin for tables that mirror a document collection.

    ``document_fields`` maps the document's camelCase field names to the
    mapped attribute names, so stores can accept the same filters and field
    changes whatever the backend.
    """

    document_fields: ClassVar[dict[str, str]] = {}

    id: Mapped[str] = mapped_column(String(128), primary_key=True)

    @classmethod
    def attribute_for(cls, field: str) -> str:
        try:
            return cls.document_fields[field]
        except KeyError:
            raise KeyError(f"Unknown field {field!r} for {cls.__tablename__}") from None

    def to_document(self) -> dict[str, Any]:
        fields = {}
        for field, attr in self.document_fields.items():
            value = getattr(self, attr)
            # SQLite drops tzinfo; all stored timestamps are UTC
            if isinstance(value, datetime) and value.tzinfo is None:
                value = value.replace(tzinfo=timezone.utc)
            fields[field] = value
        return fields


class TimestampMixin:
    """Mixin that adds created_at and updated_at timestamps."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
