"""
Permission Core - role capabilities and meta capability mapping.
"""

from src.kernel.permissions.capabilities import (
    Capability,
    CapabilityGate,
    ROLE_CAPABILITIES,
)

__all__ = [
    "Capability",
    "CapabilityGate",
    "ROLE_CAPABILITIES",
]
