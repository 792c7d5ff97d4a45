"""
Process-wide customize extensions.

Code extending the customizer registers its hook callbacks and dynamic
setting resolvers here once, at import or startup. Every request's
CustomizeManager is built from them.

Usage:
    extensions = get_customize_extensions()
    extensions.add_hook(SAVE_RESPONSE, add_receipt)
    extensions.add_resolver(brand_setting_resolver)
"""

from typing import Any, Callable, List, Optional

from src.engines.customize.hooks import CustomizeHooks
from src.engines.customize.setting_registry import SettingResolver


class CustomizeExtensions:
    """Hook callbacks and setting resolvers shared by all sessions."""

    def __init__(self) -> None:
        self.hooks = CustomizeHooks()
        self.resolvers: List[SettingResolver] = []

    def add_hook(self, name: str, callback: Callable[..., Any]) -> None:
        self.hooks.add(name, callback)

    def add_resolver(self, resolver: SettingResolver) -> None:
        self.resolvers.append(resolver)

    def session_hooks(self) -> CustomizeHooks:
        """Hooks for one session; callbacks added to it stay in that session."""
        return self.hooks.copy()


_extensions: Optional[CustomizeExtensions] = None


def get_customize_extensions() -> CustomizeExtensions:
    """Get or create the process-wide extension set."""
    global _extensions
    if _extensions is None:
        _extensions = CustomizeExtensions()
    return _extensions
