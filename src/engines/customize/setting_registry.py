"""
Setting registry.

Owns the id -> Setting table, and materialises settings the client refers to
but no code registered statically ("dynamic" settings) through a chain of
resolvers.
"""

import re
from typing import Any, Callable, Dict, Iterable, Iterator, List, Optional, Tuple

from src.engines.customize.setting import Setting, create_setting
from src.kernel.permissions.capabilities import Capability
from src.logging_config import get_logger

logger = get_logger(__name__)

# A resolver answers (kind, constructor kwargs) for a setting id, or None to decline
SettingResolver = Callable[[str], Optional[Tuple[str, Dict[str, Any]]]]

_WIDGET_SETTING = re.compile(r"^widget_[a-z0-9_-]+\[\d+\]$")
_SIDEBAR_SETTING = re.compile(r"^sidebars_widgets\[[a-z0-9_-]+\]$")


def widget_setting_resolver(setting_id: str) -> Optional[Tuple[str, Dict[str, Any]]]:
    """Widget instances and sidebar assignments created client-side."""
    if _WIDGET_SETTING.match(setting_id):
        return "option", {
            "capability": Capability.EDIT_THEME_OPTIONS.value,
            "default": {},
            "transport": "refresh",
        }
    if _SIDEBAR_SETTING.match(setting_id):
        return "option", {
            "capability": Capability.EDIT_THEME_OPTIONS.value,
            "default": [],
        }
    return None


class SettingRegistry:
    """
    Registered settings keyed by id.

    Usage:
        registry = SettingRegistry()
        registry.add(OptionSetting("blogname", capability="manage_options"))
        registry.add_resolver(my_resolver)
        registry.add_dynamic_settings(["widget_text[3]"])
    """

    def __init__(self, resolvers: Optional[Iterable[SettingResolver]] = None):
        self._settings: Dict[str, Setting] = {}
        self._resolvers: List[SettingResolver] = list(resolvers or [])

    def __contains__(self, setting_id: str) -> bool:
        return setting_id in self._settings

    def __iter__(self) -> Iterator[Setting]:
        return iter(list(self._settings.values()))

    def __len__(self) -> int:
        return len(self._settings)

    def ids(self) -> List[str]:
        return list(self._settings)

    def add(self, setting: Setting) -> Setting:
        """Register a setting; a later registration for the same id replaces it."""
        self._settings[setting.id] = setting
        return setting

    def add_setting(self, setting_id: str, kind: str = "theme_mod", **kwargs: Any) -> Setting:
        """Construct and register a setting from its kind tag."""
        return self.add(create_setting(setting_id, kind, **kwargs))

    def get(self, setting_id: str) -> Optional[Setting]:
        return self._settings.get(setting_id)

    def remove(self, setting_id: str) -> None:
        self._settings.pop(setting_id, None)

    def add_resolver(self, resolver: SettingResolver) -> None:
        self._resolvers.append(resolver)

    def resolve(self, setting_id: str) -> Optional[Tuple[str, Dict[str, Any]]]:
        """First resolver answer for the id, or None when every resolver declines."""
        for resolver in self._resolvers:
            answer = resolver(setting_id)
            if answer is not None:
                return answer
        return None

    def add_dynamic_settings(self, setting_ids: Iterable[str]) -> List[Setting]:
        """
        Register settings for ids nobody registered statically.

        Ids already registered are left alone; ids no resolver recognises are
        dropped without error.

        Returns:
            The settings that were added, in input order
        """
        added: List[Setting] = []
        for setting_id in setting_ids:
            if setting_id in self._settings:
                continue
            answer = self.resolve(setting_id)
            if answer is None:
                logger.debug("No resolver for dynamic setting", extra={"setting_id": setting_id})
                continue
            kind, kwargs = answer
            added.append(self.add(create_setting(setting_id, kind, **kwargs)))
        return added
