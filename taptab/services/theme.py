"""
Restaurant themes.

A theme is a JSON document with three sections:

    {
        "colors": {"background": "0 0% 7%", "primary": "38 92% 50%", ...},
        "fonts": {"heading": "Playfair Display", "body": "Inter"},
        "visual": {"mode": "dark", "cornerRadius": "0.75rem"}
    }

Colors are HSL tokens (``"H S% L%"``) consumed as CSS custom properties.
Older restaurants store ``{"mode": ..., "primaryColor": "hsl(...)"}``;
``normalize_theme`` upgrades those on read.

Rendering never fails because of a theme: ``build_theme_context`` falls
back to the default theme and logs the problem.
"""

import copy
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Optional
from urllib.parse import quote_plus

logger = logging.getLogger(__name__)

MAX_HISTORY = 50

DEFAULT_THEME = {
    "colors": {
        "background": "0 0% 7%",
        "foreground": "0 0% 98%",
        "card": "0 0% 10%",
        "cardForeground": "0 0% 98%",
        "primary": "38 92% 50%",
        "primaryForeground": "0 0% 7%",
        "secondary": "0 0% 15%",
        "secondaryForeground": "0 0% 98%",
        "muted": "0 0% 15%",
        "mutedForeground": "0 0% 64%",
        "accent": "38 92% 50%",
        "accentForeground": "0 0% 7%",
        "border": "0 0% 18%",
        "ring": "38 92% 50%",
    },
    "fonts": {
        "heading": "Playfair Display",
        "body": "Inter",
    },
    "visual": {
        "mode": "dark",
        "cornerRadius": "0.75rem",
    },
}

# Families served from Google Fonts, with their CSS class suffix
FONT_MAP = {
    "Playfair Display": "playfair",
    "Lora": "lora",
    "Crimson Text": "crimson",
    "Merriweather": "merriweather",
    "Cormorant Garamond": "cormorant",
    "Libre Baskerville": "libre",
    "Source Serif 4": "source-serif",
    "Spectral": "spectral",
    "Inter": "inter",
    "Montserrat": "montserrat",
    "Raleway": "raleway",
    "Open Sans": "open-sans",
    "Roboto": "roboto",
    "Lato": "lato",
    "Nunito": "nunito",
    "Work Sans": "work-sans",
    "Poppins": "poppins",
    "Quicksand": "quicksand",
    "Barlow": "barlow",
    "DM Sans": "dm-sans",
}

_UNSAFE_CSS = re.compile(r"[;{}<>\"'\\]")


def get_default_theme() -> dict:
    return copy.deepcopy(DEFAULT_THEME)


def camel_to_kebab(name: str) -> str:
    """``primaryForeground`` → ``primary-foreground``."""
    return re.sub(r"([a-z0-9])([A-Z])", r"\1-\2", name).lower()


def hsl_to_token(value: Optional[str]) -> Optional[str]:
    """``"hsl(38, 92%, 50%)"`` → ``"38 92% 50%"``; other values pass through."""
    if not value:
        return None
    value = value.strip()
    if value.startswith("hsl("):
        inner = value[value.index("(") + 1:value.rindex(")")]
        return " ".join(inner.replace(",", " ").split())
    return value


def normalize_theme(raw: Any) -> Optional[dict]:
    """
    Current-format theme of a stored value, or None when nothing is stored.

    Nested themes pass through. Legacy ``{mode, primaryColor}`` values are
    merged into the default theme with the primary color applied to
    ``primary``, ``ring`` and ``accent``.
    """
    if not raw:
        return None
    if not isinstance(raw, dict):
        raise ValueError(f"Theme must be an object, got {type(raw).__name__}")

    if raw.get("colors") and raw.get("fonts") and raw.get("visual"):
        return raw

    theme = get_default_theme()
    theme["visual"]["mode"] = "light" if raw.get("mode") == "light" else "dark"
    primary = hsl_to_token(raw.get("primaryColor"))
    if primary:
        theme["colors"].update(primary=primary, ring=primary, accent=primary)
    return theme


def google_font_url(family: str) -> Optional[str]:
    if family not in FONT_MAP:
        return None
    return (
        "https://fonts.googleapis.com/css2?family="
        f"{quote_plus(family)}:wght@400;500;600;700&display=swap"
    )


def font_class(family: Optional[str]) -> str:
    return f"font-{FONT_MAP.get(family or '', 'inter')}"


@dataclass
class ThemeContext:
    """Everything a template needs to apply a theme."""

    css_variables: dict[str, str] = field(default_factory=dict)
    mode: str = "dark"
    font_urls: list[str] = field(default_factory=list)
    heading_font: str = "Playfair Display"
    body_font: str = "Inter"

    @property
    def mode_class(self) -> str:
        return "dark" if self.mode == "dark" else "light"

    @property
    def style_block(self) -> str:
        declarations = " ".join(f"{name}: {value};" for name, value in self.css_variables.items())
        return f":root {{ {declarations} }}"


def _css_value(value: Any) -> str:
    return _UNSAFE_CSS.sub("", str(value)).strip()


def _context_from(theme: dict) -> ThemeContext:
    variables = {}
    for key, value in (theme.get("colors") or {}).items():
        if value:
            variables[f"--{camel_to_kebab(key)}"] = _css_value(value)

    visual = theme.get("visual") or {}
    if visual.get("cornerRadius"):
        variables["--radius"] = _css_value(visual["cornerRadius"])

    fonts = theme.get("fonts") or {}
    heading = fonts.get("heading") or DEFAULT_THEME["fonts"]["heading"]
    body = fonts.get("body") or DEFAULT_THEME["fonts"]["body"]
    variables["--font-heading"] = _css_value(heading)
    variables["--font-body"] = _css_value(body)

    font_urls = []
    for family in dict.fromkeys([heading, body]):
        url = google_font_url(family)
        if url:
            font_urls.append(url)

    return ThemeContext(
        css_variables=variables,
        mode="light" if visual.get("mode") == "light" else "dark",
        font_urls=font_urls,
        heading_font=heading,
        body_font=body,
    )


def build_theme_context(raw: Any) -> ThemeContext:
    """Theme context of a stored theme; any error yields the default context."""
    try:
        theme = normalize_theme(raw) or get_default_theme()
        return _context_from(theme)
    except Exception as e:
        logger.warning(f"Invalid theme, using default: {e}")
        return _context_from(get_default_theme())


class ThemeHistory:
    """
    Linear undo/redo stack of theme edits, bounded to the last 50 states.

    Example:
        >>> history = ThemeHistory(t1)
        >>> history.push(t2); history.push(t3)
        >>> history.undo()  # t2
    """

    def __init__(self, initial: dict, max_size: int = MAX_HISTORY):
        self.max_size = max_size
        self._states: list[dict] = [initial]
        self._index = 0

    @property
    def current(self) -> dict:
        return self._states[self._index]

    @property
    def can_undo(self) -> bool:
        return self._index > 0

    @property
    def can_redo(self) -> bool:
        return self._index < len(self._states) - 1

    def __len__(self) -> int:
        return len(self._states)

    def push(self, theme: dict) -> None:
        """Record a new state; anything that was undone is discarded."""
        self._states = self._states[:self._index + 1]
        self._states.append(theme)
        if len(self._states) > self.max_size:
            self._states.pop(0)
        self._index = len(self._states) - 1

    def undo(self) -> Optional[dict]:
        if not self.can_undo:
            return None
        self._index -= 1
        return self.current

    def redo(self) -> Optional[dict]:
        if not self.can_redo:
            return None
        self._index += 1
        return self.current

    def reset(self, theme: dict) -> None:
        self._states = [theme]
        self._index = 0
