"""
Built-in sections, settings and controls.

Registered for every customize session before extension hooks run, so hooks
can remove or replace any of them.
"""

from src.engines.customize import sanitizers
from src.engines.customize.setting import TRANSPORT_POST_MESSAGE
from src.kernel.permissions.capabilities import Capability

CONTROL_TYPES = ("color", "upload", "image", "background_image")

BACKGROUND_REPEAT_CHOICES = {
    "no-repeat": "No Repeat",
    "repeat": "Tile",
    "repeat-x": "Tile Horizontally",
    "repeat-y": "Tile Vertically",
}
BACKGROUND_POSITION_CHOICES = {"left": "Left", "center": "Center", "right": "Right"}
BACKGROUND_ATTACHMENT_CHOICES = {"scroll": "Scroll", "fixed": "Fixed"}
SHOW_ON_FRONT_CHOICES = {"posts": "Your latest posts", "page": "A static page"}

DEFAULT_BACKGROUND_CALLBACK = "_custom_background_cb"


def register_core_controls(manager) -> None:
    """Register the core customize tree on a manager."""
    settings = manager.settings
    containers = manager.containers
    options = manager.options
    theme = manager.theme
    manage_options = Capability.MANAGE_OPTIONS.value

    def support(feature: str, key: str, default=None):
        return theme.get_support(feature, key, default) if theme is not None else default

    for control_type in CONTROL_TYPES:
        containers.register_control_type(control_type)

    # Site title & tagline
    containers.add_section("title_tagline", title="Site Title & Tagline", priority=20)
    for setting_id, label in (("blogname", "Site Title"), ("blogdescription", "Tagline")):
        settings.add_setting(
            setting_id,
            "option",
            default=options.get_raw(setting_id, ""),
            capability=manage_options,
            sanitize_callback=sanitizers.strip_tags,
        )
        containers.add_control(setting_id, label=label, section="title_tagline")

    # Colors
    containers.add_section("colors", title="Colors", priority=40)
    default_text_color = support("custom-header", "default-text-color", "")
    settings.add_setting(
        "header_textcolor",
        theme_supports=("custom-header", "header-text"),
        default=default_text_color,
        sanitize_callback=sanitizers.header_textcolor(default_text_color),
        sanitize_js_callback=sanitizers.maybe_hash_hex_color,
    )
    containers.add_control(
        "display_header_text",
        settings="header_textcolor",
        label="Display Header Text",
        section="title_tagline",
        type="checkbox",
    )
    containers.add_control(
        "header_textcolor", label="Header Text Color", section="colors", type="color",
    )
    settings.add_setting(
        "background_color",
        theme_supports="custom-background",
        default=support("custom-background", "default-color", ""),
        sanitize_callback=sanitizers.sanitize_hex_color_no_hash,
        sanitize_js_callback=sanitizers.maybe_hash_hex_color,
    )
    containers.add_control(
        "background_color", label="Background Color", section="colors", type="color",
    )

    # Header image
    containers.add_section(
        "header_image", title="Header Image", theme_supports="custom-header", priority=60,
    )
    settings.add_setting(
        "header_image",
        "filter",
        default=support("custom-header", "default-image", ""),
        theme_supports="custom-header",
    )
    settings.add_setting("header_image_data", theme_supports="custom-header")
    containers.add_control(
        "header_image",
        settings=("header_image", "header_image_data"),
        label="Header Image",
        section="header_image",
        type="image",
    )

    # Background image
    containers.add_section(
        "background_image",
        title="Background Image",
        theme_supports="custom-background",
        priority=80,
    )
    settings.add_setting(
        "background_image",
        default=support("custom-background", "default-image", ""),
        theme_supports="custom-background",
    )
    settings.add_setting("background_image_thumb", theme_supports="custom-background")
    containers.add_control(
        "background_image",
        label="Background Image",
        section="background_image",
        type="background_image",
    )
    for prop, label, choices, default_key in (
        ("repeat", "Background Repeat", BACKGROUND_REPEAT_CHOICES, "default-repeat"),
        ("position_x", "Background Position", BACKGROUND_POSITION_CHOICES, "default-position-x"),
        ("attachment", "Background Attachment", BACKGROUND_ATTACHMENT_CHOICES, "default-attachment"),
    ):
        setting_id = f"background_{prop}"
        settings.add_setting(
            setting_id,
            default=support("custom-background", default_key, ""),
            theme_supports="custom-background",
            sanitize_callback=sanitizers.one_of(choices),
        )
        containers.add_control(
            setting_id,
            label=label,
            section="background_image",
            type="radio",
            choices=dict(choices),
        )

    # The default background callback can repaint without a reload
    if support("custom-background", "wp-head-callback") == DEFAULT_BACKGROUND_CALLBACK:
        for prop in ("color", "image", "position_x", "repeat", "attachment"):
            settings.get(f"background_{prop}").transport = TRANSPORT_POST_MESSAGE

    # Navigation menus
    locations = theme.menu_locations if theme is not None else {}
    containers.add_section(
        "nav",
        title="Navigation",
        theme_supports="menus",
        priority=100,
        description=f"Your theme supports {len(locations)} menu location(s).",
    )
    menus = options.get_raw("nav_menus", {}) or {}
    menu_choices = {"": "- Select -"}
    menu_choices.update({str(menu_id): str(name)[:40] for menu_id, name in menus.items()})
    for location, description in locations.items():
        setting_id = f"nav_menu_locations[{location}]"
        settings.add_setting(
            setting_id,
            sanitize_callback=sanitizers.absint,
            theme_supports="menus",
        )
        containers.add_control(
            setting_id,
            label=description,
            section="nav",
            type="select",
            choices=menu_choices,
        )

    # Static front page, only offered when the site has pages
    if sanitizers.absint(options.get_raw("page_count", 0)) > 0:
        containers.add_section(
            "static_front_page",
            title="Static Front Page",
            priority=120,
            description="Your theme supports a static front page.",
        )
        settings.add_setting(
            "show_on_front",
            "option",
            default=options.get_raw("show_on_front", "posts"),
            capability=manage_options,
            sanitize_callback=sanitizers.one_of(SHOW_ON_FRONT_CHOICES),
        )
        containers.add_control(
            "show_on_front",
            label="Front page displays",
            section="static_front_page",
            type="radio",
            choices=dict(SHOW_ON_FRONT_CHOICES),
        )
        for setting_id, label in (("page_on_front", "Front page"), ("page_for_posts", "Posts page")):
            settings.add_setting(
                setting_id,
                "option",
                capability=manage_options,
                sanitize_callback=sanitizers.absint,
            )
            containers.add_control(
                setting_id,
                label=label,
                section="static_front_page",
                type="dropdown-pages",
            )
