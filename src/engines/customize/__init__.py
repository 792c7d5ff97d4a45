"""
Customize Engine - staged setting edits with live preview.

Components:
- Settings and the setting registry (sanitization, dynamic settings)
- Panels, sections and controls (capability-filtered, ordered tree)
- Transaction (pending values, draft/pending/publish document)
- Preview engine (request-scoped read overrides)
- Manager (per-request session controller)
"""

from src.engines.customize.containers import (
    ActiveTree,
    Control,
    ContainerRegistry,
    Panel,
    Section,
    TreeNode,
)
from src.engines.customize.errors import CustomizeError, SettingValidationError
from src.engines.customize.extensions import CustomizeExtensions, get_customize_extensions
from src.engines.customize.hooks import CustomizeHooks
from src.engines.customize.manager import CustomizeManager, CustomizeRequest
from src.engines.customize.preview import PreviewContext, PreviewEngine
from src.engines.customize.setting import (
    SETTING_KINDS,
    FilterSetting,
    OptionSetting,
    Setting,
    ThemeModSetting,
    create_setting,
)
from src.engines.customize.setting_registry import SettingRegistry, widget_setting_resolver
from src.engines.customize.theme import Theme, ThemeRegistry, get_theme_registry
from src.engines.customize.transaction import CustomizeTransaction

__all__ = [
    "ActiveTree",
    "Control",
    "ContainerRegistry",
    "Panel",
    "Section",
    "TreeNode",
    "CustomizeError",
    "SettingValidationError",
    "CustomizeExtensions",
    "get_customize_extensions",
    "CustomizeHooks",
    "CustomizeManager",
    "CustomizeRequest",
    "PreviewContext",
    "PreviewEngine",
    "SETTING_KINDS",
    "FilterSetting",
    "OptionSetting",
    "Setting",
    "ThemeModSetting",
    "create_setting",
    "SettingRegistry",
    "widget_setting_resolver",
    "Theme",
    "ThemeRegistry",
    "get_theme_registry",
    "CustomizeTransaction",
]
