"""
Stable Kernel Layer

Foundational components the customize engine builds on:
- Identity Core (user accounts, access tokens, nonces)
- Permission Core (role capabilities, meta capability mapping)
- Storage (autoloaded option store, transaction document store)
- Immutable Event Log (audit trail of transaction and theme changes)
"""

from src.kernel.models import (
    User,
    UserRole,
    Option,
    CustomizeTransactionPost,
    TransactionStatus,
    EventLog,
    EventType,
)

__all__ = [
    # User & Identity
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
