"""
Identity Core - access tokens, nonces and user lookup.
"""

from src.kernel.identity.jwt import (
    JWTManager,
    AccessTokenPayload,
    create_access_token,
    verify_access_token,
)
from src.kernel.identity.nonce import NonceManager, update_action, save_action
from src.kernel.identity.identity_service import IdentityService

__all__ = [
    "JWTManager",
    "AccessTokenPayload",
    "create_access_token",
    "verify_access_token",
    "NonceManager",
    "update_action",
    "save_action",
    "IdentityService",
]
