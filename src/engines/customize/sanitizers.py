"""
Sanitize callbacks for setting values.

Each callback takes a raw value and returns the sanitized one, or raises
SettingValidationError when the value cannot be made valid.
"""

import html
import re
from typing import Any, Callable, Iterable

from src.engines.customize.errors import SettingValidationError

_HEX_COLOR = re.compile(r"^#([A-Fa-f0-9]{3}){1,2}$")
_SCRIPT_STYLE = re.compile(r"<(script|style)[^>]*?>.*?</\1>", re.IGNORECASE | re.DOTALL)
_TAG = re.compile(r"<[^>]*>")


def sanitize_hex_color(color: Any) -> str:
    """Accept '', '#abc' or '#aabbcc'."""
    if color == "":
        return ""
    if isinstance(color, str) and _HEX_COLOR.match(color):
        return color
    raise SettingValidationError(f"Invalid hex color: {color!r}")


def sanitize_hex_color_no_hash(color: Any) -> str:
    """Like sanitize_hex_color but stores the color without its leading '#'."""
    if not isinstance(color, str):
        raise SettingValidationError(f"Invalid hex color: {color!r}")
    color = color.lstrip("#")
    if color == "":
        return ""
    sanitize_hex_color("#" + color)
    return color


def maybe_hash_hex_color(color: Any) -> Any:
    """Add the '#' back to a hashless hex color; other values pass untouched."""
    try:
        unhashed = sanitize_hex_color_no_hash(color)
    except SettingValidationError:
        return color
    if unhashed:
        return "#" + unhashed
    return color


def strip_tags(value: Any) -> str:
    """Remove markup, dropping script and style bodies entirely."""
    if value is None:
        return ""
    text = _SCRIPT_STYLE.sub("", str(value))
    text = _TAG.sub("", text)
    return text.strip()


def sanitize_text_field(value: Any) -> str:
    """Single-line plain text: tags stripped, entities decoded, whitespace collapsed."""
    text = html.unescape(strip_tags(value))
    return " ".join(text.split())


def absint(value: Any) -> int:
    """Absolute integer value; non-numeric input is rejected."""
    if isinstance(value, bool):
        return int(value)
    try:
        return abs(int(float(value))) if value not in ("", None) else 0
    except (TypeError, ValueError, OverflowError):
        raise SettingValidationError(f"Not an integer: {value!r}")


def one_of(choices: Iterable[str]) -> Callable[[Any], str]:
    """Build a callback accepting only the given choices."""
    allowed = tuple(choices)

    def _sanitize(value: Any) -> str:
        if value in allowed:
            return value
        raise SettingValidationError(
            f"{value!r} is not one of: {', '.join(allowed)}"
        )

    return _sanitize


def header_textcolor(default_color: str = "") -> Callable[[Any], str]:
    """
    Header text color: 'blank' hides the header text, any other value must be
    a hashless hex color; empty or invalid colors fall back to the theme
    default.
    """

    def _sanitize(color: Any) -> str:
        if color == "blank":
            return "blank"
        try:
            color = sanitize_hex_color_no_hash(color)
        except SettingValidationError:
            color = ""
        return color or default_color

    return _sanitize
