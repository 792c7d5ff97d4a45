"""
Capability gate - can the current actor perform action X.

Primitive capabilities are granted per role. Meta capabilities are mapped
to primitive ones at check time, optionally depending on the resource
being acted on (e.g. whether the actor authored a transaction document).
"""

from enum import Enum
from typing import Dict, FrozenSet, List, Optional

from src.kernel.models.customize_transaction import CustomizeTransactionPost
from src.kernel.models.user import User, UserRole


class Capability(str, Enum):
    """Named permissions an actor may hold."""

    # Meta capabilities (mapped, never granted directly)
    CUSTOMIZE = "customize"
    EDIT_CUSTOMIZE_TRANSACTION = "edit_customize_transaction"

    # Site administration
    MANAGE_OPTIONS = "manage_options"
    EDIT_THEME_OPTIONS = "edit_theme_options"
    SWITCH_THEMES = "switch_themes"

    # Transaction documents
    CREATE_CUSTOMIZE_TRANSACTIONS = "create_customize_transactions"
    EDIT_CUSTOMIZE_TRANSACTIONS = "edit_customize_transactions"
    EDIT_OTHERS_CUSTOMIZE_TRANSACTIONS = "edit_others_customize_transactions"
    PUBLISH_CUSTOMIZE_TRANSACTIONS = "publish_customize_transactions"

    READ = "read"

    # Never granted; used to lock a setting or container away from everyone
    DO_NOT_ALLOW = "do_not_allow"


_TRANSACTION_AUTHOR_CAPS = frozenset({
    Capability.CREATE_CUSTOMIZE_TRANSACTIONS,
    Capability.EDIT_CUSTOMIZE_TRANSACTIONS,
})

ROLE_CAPABILITIES: Dict[UserRole, FrozenSet[Capability]] = {
    UserRole.ADMINISTRATOR: frozenset({
        Capability.READ,
        Capability.MANAGE_OPTIONS,
        Capability.EDIT_THEME_OPTIONS,
        Capability.SWITCH_THEMES,
        Capability.CREATE_CUSTOMIZE_TRANSACTIONS,
        Capability.EDIT_CUSTOMIZE_TRANSACTIONS,
        Capability.EDIT_OTHERS_CUSTOMIZE_TRANSACTIONS,
        Capability.PUBLISH_CUSTOMIZE_TRANSACTIONS,
    }),
    # May stage theme changes but not publish them or touch site options
    UserRole.DESIGNER: frozenset({
        Capability.READ,
        Capability.EDIT_THEME_OPTIONS,
    }) | _TRANSACTION_AUTHOR_CAPS,
    UserRole.EDITOR: frozenset({
        Capability.READ,
        Capability.EDIT_OTHERS_CUSTOMIZE_TRANSACTIONS,
    }) | _TRANSACTION_AUTHOR_CAPS,
    UserRole.SUBSCRIBER: frozenset({
        Capability.READ,
    }),
}


def _coerce_role(role) -> Optional[UserRole]:
    # Roles come back from SQLite as plain strings
    try:
        return UserRole(role)
    except ValueError:
        return None


class CapabilityGate:
    """
    Capability checks for one actor.

    Usage:
        gate = CapabilityGate(user)
        if gate.can(Capability.CUSTOMIZE):
            ...
        gate.can(Capability.EDIT_CUSTOMIZE_TRANSACTION, transaction_post)
    """

    def __init__(self, actor: Optional[User]):
        self.actor = actor
        if actor is None or not actor.is_active:
            self._granted: FrozenSet[Capability] = frozenset()
        else:
            role = _coerce_role(actor.role)
            self._granted = ROLE_CAPABILITIES.get(role, frozenset()) if role else frozenset()

    @property
    def actor_id(self):
        return self.actor.id if self.actor is not None else None

    def map_meta_capability(
        self,
        capability: Capability,
        resource: Optional[CustomizeTransactionPost] = None,
    ) -> List[Capability]:
        """Translate a capability into the primitive capabilities it requires."""
        if capability == Capability.CUSTOMIZE:
            return [Capability.EDIT_THEME_OPTIONS]
        if capability == Capability.EDIT_CUSTOMIZE_TRANSACTION:
            if resource is None:
                return [Capability.DO_NOT_ALLOW]
            required = [Capability.EDIT_CUSTOMIZE_TRANSACTIONS]
            if resource.author_id is None or resource.author_id != self.actor_id:
                required.append(Capability.EDIT_OTHERS_CUSTOMIZE_TRANSACTIONS)
            return required
        return [capability]

    def can(
        self,
        capability,
        resource: Optional[CustomizeTransactionPost] = None,
    ) -> bool:
        """Whether the actor holds the capability (meta capabilities mapped)."""
        try:
            capability = Capability(capability)
        except ValueError:
            return False
        required = self.map_meta_capability(capability, resource)
        return all(cap in self._granted for cap in required)

    def can_edit_transaction(self, post: Optional[CustomizeTransactionPost]) -> bool:
        """Edit rights if the document exists, create rights otherwise."""
        if post is not None:
            return self.can(Capability.EDIT_CUSTOMIZE_TRANSACTION, post)
        return self.can(Capability.CREATE_CUSTOMIZE_TRANSACTIONS)
