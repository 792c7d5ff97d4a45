"""
Kernel Data Models

SQLAlchemy models for users, site options, customize transaction documents
and the audit log.
"""

from src.kernel.models.base import Base, TimestampMixin, generate_uuid
from src.kernel.models.user import User, UserRole
from src.kernel.models.option import Option
from src.kernel.models.customize_transaction import CustomizeTransactionPost, TransactionStatus
from src.kernel.models.event_log import EventLog, EventType

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "generate_uuid",
    # User
    "User",
    "UserRole",
    # Storage
    "Option",
    "CustomizeTransactionPost",
    "TransactionStatus",
    # Event Log
    "EventLog",
    "EventType",
]
