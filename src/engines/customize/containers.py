"""
Panels, sections and controls, and assembly of the active container tree.

Containers refer to each other only by id: a control names its section and
settings, a section names its panel. prepare() is a pure rebuild over the
registered tables; it never mutates a container.
"""

import itertools
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

from src.engines.customize.setting import passes_checks
from src.engines.customize.setting_registry import SettingRegistry
from src.engines.customize.theme import Theme
from src.kernel.permissions.capabilities import Capability, CapabilityGate

_instance_counter = itertools.count(1)


def _next_instance_number() -> int:
    return next(_instance_counter)


@dataclass(eq=False)
class Container:
    """Common container attributes. Smaller priority sorts first."""

    id: str
    priority: int = 160
    title: str = ""
    description: str = ""
    capability: Optional[str] = Capability.EDIT_THEME_OPTIONS.value
    theme_supports: Tuple[str, ...] = ()
    instance_number: int = field(default_factory=_next_instance_number)

    kind = "container"

    def __post_init__(self) -> None:
        if isinstance(self.theme_supports, str):
            self.theme_supports = (self.theme_supports,)
        else:
            self.theme_supports = tuple(self.theme_supports)
        if isinstance(self.capability, Capability):
            self.capability = self.capability.value

    @property
    def sort_key(self) -> Tuple[int, int]:
        return (self.priority, self.instance_number)

    def check_capabilities(self, gate: CapabilityGate, theme: Optional[Theme]) -> bool:
        return passes_checks(gate, theme, self.capability, self.theme_supports)


@dataclass(eq=False)
class Panel(Container):
    kind = "panel"


@dataclass(eq=False)
class Section(Container):
    panel: Optional[str] = None

    kind = "section"


@dataclass(eq=False)
class Control(Container):
    """
    A UI control editing one setting (or several, for compound controls).

    ``settings`` defaults to the control's own id. Controls carry no
    capability of their own by default: they are usable when every setting
    they edit is.
    """

    section: str = ""
    settings: Tuple[str, ...] = ()
    type: str = "text"
    label: str = ""
    choices: Dict[str, str] = field(default_factory=dict)
    priority: int = 10
    capability: Optional[str] = None

    kind = "control"

    def __post_init__(self) -> None:
        super().__post_init__()
        if isinstance(self.settings, str):
            self.settings = (self.settings,)
        self.settings = tuple(self.settings) or (self.id,)

    @property
    def primary_setting(self) -> str:
        return self.settings[0]

    def check_settings(
        self,
        gate: CapabilityGate,
        theme: Optional[Theme],
        settings: SettingRegistry,
    ) -> bool:
        for setting_id in self.settings:
            setting = settings.get(setting_id)
            if setting is None or not setting.check_capabilities(gate, theme):
                return False
        return True


@dataclass(frozen=True)
class TreeNode:
    """One node of the prepared tree. Children are already ordered."""

    kind: str
    id: str
    priority: int
    instance_number: int
    children: Tuple["TreeNode", ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.kind,
            "id": self.id,
            "priority": self.priority,
            "children": [child.to_dict() for child in self.children],
        }


@dataclass(frozen=True)
class ActiveTree:
    """Result of ContainerRegistry.prepare()."""

    containers: Tuple[TreeNode, ...] = ()
    panel_ids: Tuple[str, ...] = ()
    section_ids: Tuple[str, ...] = ()
    control_ids: Tuple[str, ...] = ()

    def walk(self) -> Iterable[TreeNode]:
        stack = list(reversed(self.containers))
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.children))

    def to_list(self) -> List[Dict[str, Any]]:
        return [node.to_dict() for node in self.containers]


def _sorted(containers: Iterable[Container]) -> List[Container]:
    return sorted(containers, key=lambda c: c.sort_key)


def _leaf(container: Container, children: Sequence[TreeNode] = ()) -> TreeNode:
    return TreeNode(
        kind=container.kind,
        id=container.id,
        priority=container.priority,
        instance_number=container.instance_number,
        children=tuple(children),
    )


class ContainerRegistry:
    """Registered panels, sections and controls keyed by id."""

    def __init__(self) -> None:
        self.panels: Dict[str, Panel] = {}
        self.sections: Dict[str, Section] = {}
        self.controls: Dict[str, Control] = {}
        self.control_types: List[str] = []

    def add_panel(self, panel_or_id, **kwargs: Any) -> Panel:
        panel = panel_or_id if isinstance(panel_or_id, Panel) else Panel(panel_or_id, **kwargs)
        self.panels[panel.id] = panel
        return panel

    def get_panel(self, panel_id: str) -> Optional[Panel]:
        return self.panels.get(panel_id)

    def remove_panel(self, panel_id: str) -> None:
        self.panels.pop(panel_id, None)

    def add_section(self, section_or_id, **kwargs: Any) -> Section:
        section = section_or_id if isinstance(section_or_id, Section) else Section(section_or_id, **kwargs)
        self.sections[section.id] = section
        return section

    def get_section(self, section_id: str) -> Optional[Section]:
        return self.sections.get(section_id)

    def remove_section(self, section_id: str) -> None:
        self.sections.pop(section_id, None)

    def add_control(self, control_or_id, **kwargs: Any) -> Control:
        control = control_or_id if isinstance(control_or_id, Control) else Control(control_or_id, **kwargs)
        self.controls[control.id] = control
        return control

    def get_control(self, control_id: str) -> Optional[Control]:
        return self.controls.get(control_id)

    def remove_control(self, control_id: str) -> None:
        self.controls.pop(control_id, None)

    def register_control_type(self, control_type: str) -> None:
        """Mark a control type as renderable from client-side templates."""
        if control_type not in self.control_types:
            self.control_types.append(control_type)

    def prepare(
        self,
        gate: CapabilityGate,
        theme: Optional[Theme],
        settings: SettingRegistry,
    ) -> ActiveTree:
        """
        Build the active, ordered tree for one actor.

        Controls need an existing section and usable settings; sections need
        at least one surviving control (and, when they name a panel, that
        panel must exist); panels need at least one surviving section. Top
        level sections and panels are then ordered together. Equal priorities
        keep registration order.
        """
        section_controls: Dict[str, List[TreeNode]] = {}
        control_ids: List[str] = []
        for control in _sorted(self.controls.values()):
            if control.section not in self.sections:
                continue
            if not control.check_capabilities(gate, theme):
                continue
            if not control.check_settings(gate, theme, settings):
                continue
            section_controls.setdefault(control.section, []).append(_leaf(control))
            control_ids.append(control.id)

        panel_sections: Dict[str, List[TreeNode]] = {}
        top_level: List[Tuple[Container, TreeNode]] = []
        section_ids: List[str] = []
        for section in _sorted(self.sections.values()):
            controls = section_controls.get(section.id)
            if not controls or not section.check_capabilities(gate, theme):
                continue
            node = _leaf(section, controls)
            if section.panel:
                if section.panel not in self.panels:
                    continue
                panel_sections.setdefault(section.panel, []).append(node)
            else:
                top_level.append((section, node))
            section_ids.append(section.id)

        panel_ids: List[str] = []
        for panel in _sorted(self.panels.values()):
            sections = panel_sections.get(panel.id)
            if not sections or not panel.check_capabilities(gate, theme):
                continue
            top_level.append((panel, _leaf(panel, sections)))
            panel_ids.append(panel.id)

        # Sections that only survived inside a dropped panel are not active
        live_panels = set(panel_ids)
        section_ids = [
            sid for sid in section_ids
            if not self.sections[sid].panel or self.sections[sid].panel in live_panels
        ]
        live_sections = set(section_ids)
        control_ids = [cid for cid in control_ids if self.controls[cid].section in live_sections]

        top_level.sort(key=lambda pair: pair[0].sort_key)
        return ActiveTree(
            containers=tuple(node for _, node in top_level),
            panel_ids=tuple(panel_ids),
            section_ids=tuple(section_ids),
            control_ids=tuple(control_ids),
        )
