"""
Event type definitions using Pydantic for validation.

These are the payload schemas for events logged to the audit trail.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class BaseEvent(BaseModel):
    """Base event payload structure."""

    model_config = ConfigDict(extra="allow")

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    metadata: Dict[str, Any] = Field(default_factory=dict)


class TransactionUpdatedEvent(BaseEvent):
    """A batch of values was staged into a transaction."""

    stylesheet: Optional[str] = None
    accepted_settings: List[str] = Field(default_factory=list)
    rejected_settings: List[str] = Field(default_factory=list)


class TransactionStatusChangedEvent(BaseEvent):
    """A transaction document moved between draft, pending and publish."""

    from_status: Optional[str] = None
    to_status: str
    saved_settings: List[str] = Field(default_factory=list)
    skipped_settings: List[str] = Field(default_factory=list)


class ThemeSwitchedEvent(BaseEvent):
    """The active theme was switched while saving a customize session."""

    from_stylesheet: Optional[str] = None
    to_stylesheet: str
