"""Orchestration layer - transaction status state machine."""

from src.orchestration.state_machine import (
    InvalidTransitionError,
    can_transition,
    is_terminal,
    required_capabilities,
    valid_transitions,
)
from src.kernel.models.customize_transaction import TransactionStatus

__all__ = [
    "InvalidTransitionError",
    "can_transition",
    "is_terminal",
    "required_capabilities",
    "valid_transitions",
    "TransactionStatus",
]
