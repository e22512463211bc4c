"""Spacing and sizing metrics consumed by the layout engine."""

from dataclasses import dataclass, field

from mindmap_core.models.geometry import Insets


@dataclass(frozen=True)
class ThemeMetrics:
    """Geometric constants of a theme. Colors live with the renderer, not here."""

    name: str = "light"
    node_gap_x: float = 30.0
    node_gap_y: float = 10.0
    main_gap_x: float = 65.0
    main_gap_y: float = 45.0
    # Extra vertical room around non-root parents' children.
    parent_padding_y: float = 12.0
    root_padding: Insets = field(default_factory=lambda: Insets(30.0, 10.0))
    main_padding: Insets = field(default_factory=lambda: Insets(25.0, 8.0))
    topic_padding: float = 3.0
    root_font_size: float = 25.0
    main_font_size: float = 16.0
    font_size: float = 14.0
    max_width_em: float = 35.0
    tag_font_size: float = 12.0
    tag_padding_x: float = 8.0
    tag_padding_y: float = 4.0
    tag_margin: float = 4.0
    tag_margin_top: float = 2.0
    icon_margin: float = 5.0
    expand_indicator_size: float = 18.0
    expand_indicator_padding: float = 8.0
    hyperlink_indicator_size: float = 14.0
    hyperlink_indicator_inset: float = 4.0
    summary_gap: float = 10.0
    summary_bracket_width: float = 12.0

    def padding_for(self, depth: int) -> Insets:
        if depth == 0:
            return self.root_padding
        if depth == 1:
            return self.main_padding
        return Insets(self.topic_padding, self.topic_padding)

    def font_size_for(self, depth: int) -> float:
        if depth == 0:
            return self.root_font_size
        if depth == 1:
            return self.main_font_size
        return self.font_size

    def gaps_below(self, depth: int) -> tuple[float, float]:
        """Horizontal and vertical gap between a node at depth and its children."""
        if depth == 0:
            return self.main_gap_x, self.main_gap_y
        return self.node_gap_x * 2, self.node_gap_y + self.parent_padding_y


LIGHT = ThemeMetrics(name="light")
DARK = ThemeMetrics(name="dark")

THEMES: dict[str, ThemeMetrics] = {LIGHT.name: LIGHT, DARK.name: DARK}


def get_theme(name: str) -> ThemeMetrics:
    """Look up theme metrics by name."""
    try:
        return THEMES[name]
    except KeyError:
        msg = f"Unknown theme {name!r}; expected one of {sorted(THEMES)}"
        raise ValueError(msg) from None
