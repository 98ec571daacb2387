"""
Theme catalog.

Themes are static palettes referenced by id only. The interpreter checks
membership and never mutates a palette.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping

from race_terminal.constants import DEFAULT_THEME
from race_terminal.core.domain.base import ValueObject


class Theme(ValueObject):
    """A named palette of semantic slot -> color value."""

    id: str
    palette: dict[str, str]
    group: str = "color"


def _color(
    theme_id: str,
    background: str,
    foreground: str,
    primary: str,
    secondary: str,
    accent: str,
    muted: str,
    border: str,
) -> Theme:
    return Theme(
        id=theme_id,
        palette={
            "background": background,
            "foreground": foreground,
            "primary": primary,
            "secondary": secondary,
            "accent": accent,
            "muted": muted,
            "border": border,
        },
    )


def _team(theme_id: str, primary: str, secondary: str) -> Theme:
    return Theme(
        id=theme_id,
        palette={
            "primary": primary,
            "secondary": secondary,
            "accent": primary,
            "border": primary,
        },
        group="team",
    )


DEFAULT_THEMES: tuple[Theme, ...] = (
    _color(
        DEFAULT_THEME,
        "0 0% 0%", "210 40% 98%", "186 100% 50%", "288 100% 73%",
        "288 100% 73%", "217.2 32.6% 17.5%", "186 100% 50%",
    ),
    _color("monokai", "#272822", "#f8f8f2", "#a6e22e", "#66d9ef", "#fd971f", "#75715e", "#f92672"),
    _color("dracula", "#282a36", "#f8f8f2", "#bd93f9", "#6272a4", "#ff79c6", "#44475a", "#50fa7b"),
    _color("github-dark", "#0d1117", "#c9d1d9", "#58a6ff", "#8b949e", "#d2a8ff", "#21262d", "#7ee787"),
    _color("nord", "#2e3440", "#d8dee9", "#88c0d0", "#81a1c1", "#5e81ac", "#4c566a", "#a3be8c"),
    _color("solarized", "#002b36", "#839496", "#2aa198", "#586e75", "#268bd2", "#073642", "#859900"),
    _color("tokyo-night", "#1a1b26", "#a9b1d6", "#7aa2f7", "#565f89", "#bb9af7", "#24283b", "#9ece6a"),
    _color("gruvbox", "#282828", "#ebdbb2", "#b8bb26", "#928374", "#fe8019", "#3c3836", "#98971a"),
    _color("material", "#263238", "#eeffff", "#82aaff", "#546e7a", "#c792ea", "#37474f", "#c3e88d"),
    _team("red_bull", "217 100% 50%", "240 100% 47%"),
    _team("mercedes", "174 100% 41%", "174 100% 41%"),
    _team("ferrari", "0 100% 43%", "48 100% 50%"),
    _team("mclaren", "32 100% 50%", "199 100% 40%"),
    _team("aston_martin", "170 100% 22%", "170 100% 35%"),
    _team("alpine", "203 100% 50%", "339 85% 55%"),
    _team("williams", "217 100% 50%", "217 100% 65%"),
    _team("alphatauri", "212 39% 27%", "212 39% 40%"),
    _team("alfa", "0 100% 28%", "0 100% 40%"),
    _team("haas", "0 0% 100%", "0 0% 80%"),
)


class ThemeCatalog(Mapping[str, Theme]):
    """Read-only, id-keyed collection of themes with a fallback id."""

    def __init__(
        self, themes: tuple[Theme, ...] = DEFAULT_THEMES, default_id: str = DEFAULT_THEME
    ) -> None:
        self._themes: dict[str, Theme] = {theme.id: theme for theme in themes}
        if default_id not in self._themes:
            raise ValueError(f"Default theme '{default_id}' is not in the catalog")
        self._default_id = default_id

    @property
    def default_id(self) -> str:
        return self._default_id

    def __getitem__(self, theme_id: str) -> Theme:
        return self._themes[theme_id]

    def __iter__(self) -> Iterator[str]:
        return iter(self._themes)

    def __len__(self) -> int:
        return len(self._themes)

    def resolve(self, theme_id: str | None) -> str:
        """Return a valid theme id: the normalized input, or the default."""
        candidate = (theme_id or "").strip().lower()
        return candidate if candidate in self._themes else self._default_id

    def ids_in_group(self, group: str) -> list[str]:
        return [theme.id for theme in self._themes.values() if theme.group == group]
