"""
State machine for customize transaction documents.

A transaction is staged as a draft, may be submitted for review as pending,
and is finally published. Publication is terminal: further edits need a new
transaction UUID.
"""

from typing import Dict, FrozenSet, List, Optional, Set, Tuple

from src.kernel.models.customize_transaction import TransactionStatus
from src.kernel.permissions.capabilities import Capability


class InvalidTransitionError(ValueError):
    """Raised for a status change the state machine does not allow."""

    def __init__(self, from_status: Optional[str], to_status: str):
        super().__init__(f"Invalid transition: {from_status or 'new'} -> {to_status}")
        self.from_status = from_status
        self.to_status = to_status


# Valid transitions: (from_status, to_status) -> capabilities required beyond edit rights
_TRANSITIONS: Dict[Tuple[str, str], FrozenSet[Capability]] = {
    (TransactionStatus.DRAFT.value, TransactionStatus.DRAFT.value): frozenset(),
    (TransactionStatus.DRAFT.value, TransactionStatus.PENDING.value): frozenset(),
    (TransactionStatus.DRAFT.value, TransactionStatus.PUBLISH.value): frozenset({Capability.PUBLISH_CUSTOMIZE_TRANSACTIONS}),
    (TransactionStatus.PENDING.value, TransactionStatus.PENDING.value): frozenset(),
    (TransactionStatus.PENDING.value, TransactionStatus.DRAFT.value): frozenset(),
    (TransactionStatus.PENDING.value, TransactionStatus.PUBLISH.value): frozenset({Capability.PUBLISH_CUSTOMIZE_TRANSACTIONS}),
}

# A brand-new document may start in any status
_INITIAL: Dict[str, FrozenSet[Capability]] = {
    TransactionStatus.DRAFT.value: frozenset(),
    TransactionStatus.PENDING.value: frozenset(),
    TransactionStatus.PUBLISH.value: frozenset({Capability.PUBLISH_CUSTOMIZE_TRANSACTIONS}),
}


def _value(status) -> Optional[str]:
    if status is None:
        return None
    return status.value if hasattr(status, "value") else str(status)


def valid_transitions(from_status) -> List[str]:
    """Return list of valid target statuses from the given status (None = new)."""
    current = _value(from_status)
    if current is None:
        return list(_INITIAL)
    targets: Set[str] = set()
    for (f, t) in _TRANSITIONS:
        if f == current:
            targets.add(t)
    return sorted(targets)


def required_capabilities(from_status, to_status) -> FrozenSet[Capability]:
    """
    Capabilities needed for the transition.

    Raises:
        InvalidTransitionError: If the transition is not allowed
    """
    current, target = _value(from_status), _value(to_status)
    if current is None:
        if target not in _INITIAL:
            raise InvalidTransitionError(current, target)
        return _INITIAL[target]
    key = (current, target)
    if key not in _TRANSITIONS:
        raise InvalidTransitionError(current, target)
    return _TRANSITIONS[key]


def can_transition(gate, from_status, to_status) -> bool:
    """Check if the actor behind gate may move from_status -> to_status."""
    try:
        needed = required_capabilities(from_status, to_status)
    except InvalidTransitionError:
        return False
    return all(gate.can(cap) for cap in needed)


def is_terminal(status) -> bool:
    return _value(status) == TransactionStatus.PUBLISH.value
