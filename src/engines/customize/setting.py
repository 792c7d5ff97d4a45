"""
Customize settings.

A setting is a named, sanitizable value backed by some storage. Its id may
use array-path syntax (``nav_menu_locations[primary]``): the part before the
first bracket names the root value in storage, the bracketed keys address a
leaf inside it. Reads, previews and saves touch only that leaf.

Settings hold no reference to the manager; storage and the active theme are
passed in by the caller.
"""

import copy
from typing import Any, Callable, Dict, Optional, Sequence, Tuple, Type

from src.engines.customize.errors import SettingValidationError
from src.engines.customize.theme import Theme
from src.kernel.permissions.capabilities import Capability, CapabilityGate
from src.kernel.storage.option_store import MISSING, OptionStore

TRANSPORT_REFRESH = "refresh"
TRANSPORT_POST_MESSAGE = "postMessage"
TRANSPORTS = (TRANSPORT_REFRESH, TRANSPORT_POST_MESSAGE)

SanitizeCallback = Callable[[Any], Any]


def parse_setting_id(setting_id: str) -> Tuple[str, Tuple[str, ...]]:
    """Split ``base[a][b]`` into ``("base", ("a", "b"))``."""
    parts = setting_id.replace("]", "").split("[")
    return parts[0], tuple(p for p in parts[1:])


def get_path(root: Any, path: Sequence[str]) -> Any:
    """Walk a nested mapping; returns MISSING when the root or any key is absent."""
    node = root
    for key in path:
        if not isinstance(node, dict) or key not in node:
            return MISSING
        node = node[key]
    return node


def replace_path(root: Any, path: Sequence[str], value: Any) -> Any:
    """Return a copy of root with the leaf at path replaced by value."""
    if not path:
        return value
    root = copy.deepcopy(root) if isinstance(root, dict) else {}
    node = root
    for key in path[:-1]:
        child = node.get(key)
        if not isinstance(child, dict):
            child = {}
            node[key] = child
        node = child
    node[path[-1]] = value
    return root


def passes_checks(
    gate: CapabilityGate,
    theme: Optional[Theme],
    capability: Optional[str],
    theme_supports: Sequence[str],
) -> bool:
    """Shared capability + theme-feature check for settings and containers."""
    if capability and not gate.can(capability):
        return False
    if theme_supports:
        if theme is None or not theme.has_support(*theme_supports):
            return False
    return True


class Setting:
    """
    Base setting. Subclasses decide where the root value lives.

    Args:
        setting_id: Setting id, optionally with array-path syntax
        default: Value when nothing is stored
        capability: Capability required to change the setting
        theme_supports: Feature (and sub-features) the theme must support
        sanitize_callback: raw -> sanitized; raises SettingValidationError
        sanitize_js_callback: stored value -> value exported to the client
        transport: 'refresh' or 'postMessage'
    """

    kind = "theme_mod"

    def __init__(
        self,
        setting_id: str,
        *,
        default: Any = None,
        capability: str = Capability.EDIT_THEME_OPTIONS.value,
        theme_supports: Sequence[str] = (),
        sanitize_callback: Optional[SanitizeCallback] = None,
        sanitize_js_callback: Optional[SanitizeCallback] = None,
        transport: str = TRANSPORT_REFRESH,
        dirty: bool = False,
    ):
        if transport not in TRANSPORTS:
            raise ValueError(f"Unknown transport {transport!r}")
        if isinstance(theme_supports, str):
            theme_supports = (theme_supports,)
        self.id = setting_id
        self.id_base, self.id_keys = parse_setting_id(setting_id)
        self.default = default
        self.capability = capability.value if isinstance(capability, Capability) else capability
        self.theme_supports = tuple(theme_supports)
        self.sanitize_callback = sanitize_callback
        self.sanitize_js_callback = sanitize_js_callback
        self.transport = transport
        self.dirty = dirty

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.id}>"

    @property
    def is_multidimensional(self) -> bool:
        return bool(self.id_keys)

    def storage_key(self, stylesheet: str) -> str:
        """Option name holding this setting's root value."""
        return f"theme_mods_{stylesheet}"

    def storage_path(self) -> Tuple[str, ...]:
        """Keys leading from the root value to this setting's leaf."""
        return (self.id_base,) + self.id_keys

    def sanitize(self, raw: Any) -> Any:
        """
        Sanitize a raw client value.

        Raises:
            SettingValidationError: If the value is invalid; carries this setting's id
        """
        if self.sanitize_callback is None:
            return raw
        try:
            return self.sanitize_callback(raw)
        except SettingValidationError as exc:
            exc.setting_id = self.id
            raise

    def js_value(self, value: Any) -> Any:
        """Value as exported to the client."""
        if self.sanitize_js_callback is not None:
            return self.sanitize_js_callback(value)
        return value

    def read(self, options: OptionStore, stylesheet: str) -> Any:
        """
        Current effective value: stored leaf, else the setting default.

        Reads through the option store's read filters, so while a preview is
        active this returns the previewed value.
        """
        root = options.get(self.storage_key(stylesheet), MISSING)
        value = get_path(root, self.storage_path())
        return self.default if value is MISSING else value

    def read_stored(self, options: OptionStore, stylesheet: str) -> Any:
        """Like read() but ignoring any preview override."""
        root = options.get_raw(self.storage_key(stylesheet), MISSING)
        value = get_path(root, self.storage_path())
        return self.default if value is MISSING else value

    def override(self, root: Any, value: Any) -> Any:
        """Root value with this setting's leaf replaced, for preview reads."""
        return replace_path(root, self.storage_path(), value)

    async def save(self, options: OptionStore, stylesheet: str, value: Any) -> None:
        """Write a sanitized value into durable storage."""
        key = self.storage_key(stylesheet)
        root = options.get_raw(key)
        await options.update(key, replace_path(root, self.storage_path(), value))

    def check_capabilities(self, gate: CapabilityGate, theme: Optional[Theme]) -> bool:
        return passes_checks(gate, theme, self.capability, self.theme_supports)


class ThemeModSetting(Setting):
    """Stored inside the per-theme ``theme_mods_<stylesheet>`` option."""

    kind = "theme_mod"


class OptionSetting(Setting):
    """Stored as a site option named after the id base."""

    kind = "option"

    def storage_key(self, stylesheet: str) -> str:
        return self.id_base

    def storage_path(self) -> Tuple[str, ...]:
        return self.id_keys


class FilterSetting(Setting):
    """Preview-only setting: readable through overrides, never persisted."""

    kind = "filter"

    def storage_key(self, stylesheet: str) -> str:
        return f"_customize_filter_{self.id_base}"

    def storage_path(self) -> Tuple[str, ...]:
        return self.id_keys

    async def save(self, options: OptionStore, stylesheet: str, value: Any) -> None:
        return None


# Discriminant tag -> constructor
SETTING_KINDS: Dict[str, Type[Setting]] = {
    ThemeModSetting.kind: ThemeModSetting,
    OptionSetting.kind: OptionSetting,
    FilterSetting.kind: FilterSetting,
}


def create_setting(setting_id: str, kind: str = ThemeModSetting.kind, **kwargs: Any) -> Setting:
    """
    Build a setting from its kind tag.

    Raises:
        ValueError: If the kind is not registered
    """
    try:
        factory = SETTING_KINDS[kind]
    except KeyError:
        raise ValueError(f"Unknown setting kind {kind!r}") from None
    return factory(setting_id, **kwargs)
