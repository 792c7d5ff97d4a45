"""
Themes known to the service.

Loading themes from disk is out of scope; a theme here is just the metadata
the customizer needs: its identifiers, the features it supports (with their
default arguments) and its registered menu locations.
"""

from typing import Any, Dict, Iterable, List, Optional

from pydantic import BaseModel, Field


class Theme(BaseModel):
    """A theme that can be previewed and activated."""

    stylesheet: str
    template: str
    name: str
    supports: Dict[str, Any] = Field(default_factory=dict)
    menu_locations: Dict[str, str] = Field(default_factory=dict)
    errors: List[str] = Field(default_factory=list)
    allowed: bool = True

    def has_support(self, feature: str, *args: str) -> bool:
        """
        Whether the theme supports a feature.

        Extra args name sub-features that must be truthy in the feature's
        argument mapping, e.g. has_support("custom-header", "header-text").
        """
        if feature not in self.supports:
            return False
        options = self.supports[feature]
        for sub in args:
            if not isinstance(options, dict) or not options.get(sub):
                return False
        return True

    def get_support(self, feature: str, key: str, default: Any = None) -> Any:
        """Read one argument of a supported feature."""
        options = self.supports.get(feature)
        if isinstance(options, dict):
            return options.get(key, default)
        return default


class ThemeRegistry:
    """Lookup table of available themes keyed by stylesheet."""

    def __init__(self, themes: Optional[Iterable[Theme]] = None):
        self._themes: Dict[str, Theme] = {}
        for theme in themes or ():
            self.add(theme)

    def add(self, theme: Theme) -> None:
        self._themes[theme.stylesheet] = theme

    def get(self, stylesheet: Optional[str]) -> Optional[Theme]:
        if not stylesheet:
            return None
        return self._themes.get(stylesheet)

    def all(self) -> List[Theme]:
        return list(self._themes.values())


def default_themes() -> List[Theme]:
    """Themes bundled with the service."""
    return [
        Theme(
            stylesheet="meridian",
            template="meridian",
            name="Meridian",
            supports={
                "custom-header": {
                    "default-image": "",
                    "default-text-color": "333333",
                    "header-text": True,
                },
                "custom-background": {
                    "default-color": "ffffff",
                    "default-image": "",
                    "default-repeat": "repeat",
                    "default-position-x": "left",
                    "default-attachment": "scroll",
                    "wp-head-callback": "_custom_background_cb",
                },
                "menus": True,
            },
            menu_locations={"primary": "Primary Menu", "social": "Social Links Menu"},
        ),
        Theme(
            stylesheet="tidewater",
            template="tidewater",
            name="Tidewater",
            supports={
                "custom-background": {
                    "default-color": "f1f1f1",
                    "default-image": "",
                    "default-repeat": "no-repeat",
                    "default-position-x": "center",
                    "default-attachment": "fixed",
                },
                "menus": True,
            },
            menu_locations={"primary": "Top Menu"},
        ),
    ]


_registry: Optional[ThemeRegistry] = None


def get_theme_registry() -> ThemeRegistry:
    """Get or create the process-wide theme registry."""
    global _registry
    if _registry is None:
        _registry = ThemeRegistry(default_themes())
    return _registry
