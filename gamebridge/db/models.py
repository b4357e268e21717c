"""
Database Models - SQLAlchemy ORM models with strict typing.

The record store keeps every document in one table keyed by
(collection path, document id) with the fields in a JSONB column.
"""

from datetime import UTC, datetime
from typing import Any

from sqlalchemy import DateTime, Index, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def utc_now() -> datetime:
    """Get current UTC timestamp."""
    return datetime.now(UTC)


class Document(Base):
    """
    ORM model for documents table.

    Holds users, purchases and per-user subscription receipts.
    """

    __tablename__ = "documents"

    collection: Mapped[str] = mapped_column(String(512), primary_key=True)
    # Purchase tokens are long opaque strings
    doc_id: Mapped[str] = mapped_column(Text, primary_key=True)

    data: Mapped[dict[str, Any]] = mapped_column(JSONB, nullable=False, default=dict)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utc_now, onupdate=utc_now
    )

    __table_args__ = (Index("idx_documents_collection", "collection"),)

    def __repr__(self) -> str:
        return f"<Document({self.collection}/{self.doc_id})>"
