"""
Site option rows: the durable key/value store that settings read and write.
"""

from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, DateTime, JSON, String, func
from sqlalchemy.orm import Mapped, mapped_column

from src.kernel.models.base import Base


class Option(Base):
    """A single named option. Values are arbitrary JSON."""

    __tablename__ = "options"

    name: Mapped[str] = mapped_column(
        String(191),
        primary_key=True,
    )
    value: Mapped[Any] = mapped_column(
        JSON,
        nullable=True,
    )
    autoload: Mapped[bool] = mapped_column(
        Boolean,
        default=True,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Option {self.name}>"
