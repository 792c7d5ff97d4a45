"""Unit tests for container registration and active tree assembly."""

import uuid

import pytest

from src.engines.customize.containers import ActiveTree, Control, ContainerRegistry, Panel, Section
from src.engines.customize.setting_registry import SettingRegistry
from src.engines.customize.theme import Theme
from src.kernel.models.user import User, UserRole
from src.kernel.permissions.capabilities import CapabilityGate


def gate_for(role: UserRole) -> CapabilityGate:
    return CapabilityGate(User(
        id=uuid.uuid4(), email="x@example.com", display_name="x", role=role, is_active=True,
    ))


@pytest.fixture
def theme() -> Theme:
    return Theme(
        stylesheet="meridian",
        template="meridian",
        name="Meridian",
        supports={"custom-background": {"default-color": "ffffff"}},
    )


@pytest.fixture
def admin() -> CapabilityGate:
    return gate_for(UserRole.ADMINISTRATOR)


@pytest.fixture
def settings() -> SettingRegistry:
    registry = SettingRegistry()
    registry.add_setting("blogname", "option", capability="manage_options")
    registry.add_setting("background_color", theme_supports="custom-background")
    registry.add_setting("header_textcolor", theme_supports=("custom-header", "header-text"))
    registry.add_setting("accent")
    return registry


class TestOrdering:
    def test_lower_priority_section_comes_first(self, admin, theme, settings):
        containers = ContainerRegistry()
        containers.add_section("colors", priority=40)
        containers.add_section("title_tagline", priority=20)
        containers.add_control("background_color", section="colors")
        containers.add_control("blogname", section="title_tagline")

        tree = containers.prepare(admin, theme, settings)
        assert [node.id for node in tree.containers] == ["title_tagline", "colors"]

    def test_equal_priority_keeps_registration_order(self, admin, theme, settings):
        containers = ContainerRegistry()
        for section_id in ("zeta", "alpha", "mid"):
            containers.add_section(section_id, priority=50)
            containers.add_control(f"{section_id}_control", settings="accent", section=section_id)

        tree = containers.prepare(admin, theme, settings)
        assert [node.id for node in tree.containers] == ["zeta", "alpha", "mid"]

    def test_panels_and_top_level_sections_are_merged(self, admin, theme, settings):
        containers = ContainerRegistry()
        containers.add_panel("widgets", priority=110)
        containers.add_section("sidebar", panel="widgets")
        containers.add_section("colors", priority=40)
        containers.add_section("nav", priority=120)
        for section_id in ("sidebar", "colors", "nav"):
            containers.add_control(f"{section_id}_accent", settings="accent", section=section_id)

        tree = containers.prepare(admin, theme, settings)
        assert [(n.kind, n.id) for n in tree.containers] == [
            ("section", "colors"),
            ("panel", "widgets"),
            ("section", "nav"),
        ]
        assert [child.id for child in tree.containers[1].children] == ["sidebar"]

    def test_controls_ordered_within_section(self, admin, theme, settings):
        containers = ContainerRegistry()
        containers.add_section("colors")
        containers.add_control(Control("late", settings="accent", section="colors", priority=30))
        containers.add_control("early", settings="accent", section="colors", priority=5)

        tree = containers.prepare(admin, theme, settings)
        assert [c.id for c in tree.containers[0].children] == ["early", "late"]


class TestFiltering:
    def test_control_hidden_when_actor_lacks_setting_capability(self, theme, settings):
        containers = ContainerRegistry()
        containers.add_section("title_tagline", priority=20)
        containers.add_control("blogname", section="title_tagline")
        containers.add_control("accent", section="title_tagline")

        admin_tree = containers.prepare(gate_for(UserRole.ADMINISTRATOR), theme, settings)
        designer_tree = containers.prepare(gate_for(UserRole.DESIGNER), theme, settings)

        assert "blogname" in admin_tree.control_ids
        assert "blogname" not in designer_tree.control_ids
        assert "accent" in designer_tree.control_ids

    def test_control_hidden_when_capability_fails(self, admin, theme, settings):
        containers = ContainerRegistry()
        containers.add_section("colors")
        containers.add_control("accent", section="colors", capability="do_not_allow")
        assert containers.prepare(admin, theme, settings).containers == ()

    def test_theme_support_gates_settings_and_sections(self, admin, theme, settings):
        containers = ContainerRegistry()
        containers.add_section("colors", priority=40)
        containers.add_section("header_image", priority=60, theme_supports="custom-header")
        containers.add_control("background_color", section="colors")
        containers.add_control("header_textcolor", section="colors")
        containers.add_control("header_accent", settings="accent", section="header_image")

        tree = containers.prepare(admin, theme, settings)
        assert tree.section_ids == ("colors",)
        assert tree.control_ids == ("background_color",)

    def test_dangling_references_are_dropped(self, admin, theme, settings):
        containers = ContainerRegistry()
        containers.add_control("orphan", settings="accent", section="missing")
        containers.add_control("unknown_setting", settings="nope", section="colors")
        containers.add_section("colors")
        containers.add_section("in_missing_panel", panel="ghost")
        containers.add_control("in_ghost", settings="accent", section="in_missing_panel")
        containers.add_panel("empty_panel")

        tree = containers.prepare(admin, theme, settings)
        assert tree == ActiveTree()

    def test_section_without_controls_is_dropped(self, admin, theme, settings):
        containers = ContainerRegistry()
        containers.add_section("empty")
        assert containers.prepare(admin, theme, settings).section_ids == ()


class TestPrepare:
    def test_prepare_is_idempotent(self, admin, theme, settings):
        containers = ContainerRegistry()
        containers.add_panel(Panel("widgets", priority=110))
        containers.add_section(Section("sidebar", panel="widgets"))
        containers.add_section("colors", priority=40)
        containers.add_control("accent", section="sidebar")
        containers.add_control("background_color", section="colors")

        first = containers.prepare(admin, theme, settings)
        second = containers.prepare(admin, theme, settings)
        assert first == second
        assert first.to_list() == second.to_list()

    def test_empty_registry_gives_empty_tree(self, admin, theme, settings):
        assert ContainerRegistry().prepare(admin, theme, settings) == ActiveTree()

    def test_control_defaults_to_setting_of_same_id(self):
        control = Control("blogname", section="title_tagline")
        assert control.settings == ("blogname",)
        assert control.primary_setting == "blogname"

    def test_register_control_type_once(self):
        containers = ContainerRegistry()
        containers.register_control_type("color")
        containers.register_control_type("color")
        assert containers.control_types == ["color"]

    def test_remove_control(self, admin, theme, settings):
        containers = ContainerRegistry()
        containers.add_section("colors")
        containers.add_control("accent", section="colors")
        containers.remove_control("accent")
        assert containers.get_control("accent") is None
        assert containers.prepare(admin, theme, settings).containers == ()
