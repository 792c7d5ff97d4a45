"""
Customize transaction document.

The durable staging record for a customize session: the raw values a client
has submitted, keyed by setting id, plus the publication status.
"""

import uuid
from datetime import datetime
from enum import Enum
from typing import Optional

from sqlalchemy import DateTime, ForeignKey, JSON, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from src.kernel.models.base import Base, TimestampMixin


class TransactionStatus(str, Enum):
    """Publication status of a transaction document."""
    DRAFT = "draft"
    PENDING = "pending"
    PUBLISH = "publish"


class CustomizeTransactionPost(Base, TimestampMixin):
    """
    Staging document for a customize transaction.

    The primary key is the client-visible transaction UUID. The payload is
    rewritten as a whole on every save.
    """

    __tablename__ = "customize_transactions"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid(),
        primary_key=True,
    )
    status: Mapped[TransactionStatus] = mapped_column(
        String(20),
        default=TransactionStatus.DRAFT,
        nullable=False,
        index=True,
    )
    payload: Mapped[dict] = mapped_column(
        JSON,
        nullable=False,
        default=dict,
    )
    author_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid(),
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    stylesheet: Mapped[Optional[str]] = mapped_column(
        String(191),
        nullable=True,
    )
    published_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    @property
    def is_published(self) -> bool:
        return TransactionStatus(self.status) == TransactionStatus.PUBLISH

    def __repr__(self) -> str:
        return f"<CustomizeTransactionPost {self.id} status={self.status}>"
