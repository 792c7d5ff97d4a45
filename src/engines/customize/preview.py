"""
Preview overrides.

A PreviewContext is owned by one request and handed to the OptionStore as its
read filters. Every override is tagged with the token of the PreviewEngine
entry that installed it, so leaving preview removes exactly those overrides
and nothing else.
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, Protocol, Set, Tuple

from src.engines.customize.setting import MISSING, Setting
from src.engines.customize.theme import Theme
from src.logging_config import get_logger

logger = get_logger(__name__)

Override = Callable[[Any], Any]


class PendingValues(Protocol):
    """Source of sanitized pending values (the transaction)."""

    def pending_value(self, setting: Setting) -> Any:
        ...


class PreviewContext:
    """Per-key stacks of read overrides."""

    def __init__(self) -> None:
        self._overrides: Dict[str, List[Tuple[object, Override]]] = {}

    def __len__(self) -> int:
        return sum(len(stack) for stack in self._overrides.values())

    def push(self, key: str, owner: object, override: Override) -> None:
        self._overrides.setdefault(key, []).append((owner, override))

    def remove_owner(self, owner: object) -> int:
        """Drop every override installed by owner. Returns how many went."""
        removed = 0
        for key in list(self._overrides):
            stack = self._overrides[key]
            kept = [entry for entry in stack if entry[0] is not owner]
            removed += len(stack) - len(kept)
            if kept:
                self._overrides[key] = kept
            else:
                del self._overrides[key]
        return removed

    def is_overridden(self, key: str) -> bool:
        return key in self._overrides

    def apply(self, key: str, value: Any) -> Any:
        for _, override in self._overrides.get(key, ()):
            value = override(value)
        return value


class PreviewEngine:
    """
    Installs and removes preview overrides for a set of settings.

    enter() is a no-op while already entered and leave() is a no-op when not
    entered. Settings registered after enter() are not covered until extend()
    is called with them.
    """

    def __init__(self, context: PreviewContext):
        self.context = context
        self._token: Optional[object] = None
        self._covered: Set[str] = set()
        self._values: Optional[PendingValues] = None
        self._stylesheet: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return self._token is not None

    @property
    def covered(self) -> Set[str]:
        return set(self._covered)

    def enter(
        self,
        settings: Iterable[Setting],
        values: PendingValues,
        stylesheet: str,
        theme: Optional[Theme] = None,
    ) -> None:
        """
        Start previewing.

        Args:
            settings: Settings whose reads should observe pending values
            values: Where pending values come from; consulted on every read
            stylesheet: Stylesheet whose theme mods are being previewed
            theme: Theme to present as active, when previewing a theme switch
        """
        if self._token is not None:
            return
        self._token = object()
        self._values = values
        self._stylesheet = stylesheet
        if theme is not None:
            self._install_theme(theme)
        self.extend(settings)
        logger.debug("Entered preview", extra={"overrides": len(self._covered)})

    def extend(self, settings: Iterable[Setting]) -> None:
        """Cover settings registered after enter()."""
        if self._token is None:
            return
        for setting in settings:
            if setting.id in self._covered:
                continue
            self.context.push(
                setting.storage_key(self._stylesheet),
                self._token,
                self._setting_override(setting),
            )
            self._covered.add(setting.id)

    def leave(self) -> None:
        if self._token is None:
            return
        self.context.remove_owner(self._token)
        self._token = None
        self._values = None
        self._stylesheet = None
        self._covered.clear()
        logger.debug("Left preview")

    def _setting_override(self, setting: Setting) -> Override:
        values = self._values

        def _override(root: Any) -> Any:
            value = values.pending_value(setting)
            if value is MISSING:
                return root
            return setting.override(root, value)

        return _override

    def _install_theme(self, theme: Theme) -> None:
        for key, value in (
            ("stylesheet", theme.stylesheet),
            ("template", theme.template),
            ("current_theme", theme.name),
        ):
            self.context.push(key, self._token, lambda _root, v=value: v)
