"""Font-free text measurement for headless layout."""

from mindmap_core.models.geometry import TextMetrics

CHAR_WIDTH_EM = 0.56
BOLD_CHAR_WIDTH_EM = 0.62
LINE_HEIGHT_EM = 1.3


class ApproximateTextMeasurer:
    """Measure text with a fixed per-character advance.

    Used when no real font engine is available (CLI, tool server, tests).
    Lines are broken on explicit newlines, then greedily on spaces; words
    longer than a line are split by characters.
    """

    def measure(self, text: str, *, font_size: float, bold: bool, max_width: float) -> TextMetrics:
        advance = font_size * (BOLD_CHAR_WIDTH_EM if bold else CHAR_WIDTH_EM)
        line_height = font_size * LINE_HEIGHT_EM
        max_chars = max(1, int(max_width // advance)) if max_width > 0 else None

        lengths: list[int] = []
        for paragraph in text.split("\n"):
            lengths.extend(_wrap(paragraph, max_chars))

        widths = [n * advance for n in lengths]
        return TextMetrics(
            width=max(widths),
            height=len(lengths) * line_height,
            last_line_width=widths[-1],
            line_height=line_height,
        )


def _wrap(paragraph: str, max_chars: int | None) -> list[int]:
    """Return the character count of each wrapped line of one paragraph."""
    if max_chars is None or len(paragraph) <= max_chars:
        return [len(paragraph)]
    lines: list[int] = []
    current = 0
    for word in paragraph.split(" "):
        needed = len(word) if current == 0 else current + 1 + len(word)
        if needed <= max_chars:
            current = needed
            continue
        if current:
            lines.append(current)
        while len(word) > max_chars:
            lines.append(max_chars)
            word = word[max_chars:]
        current = len(word)
    lines.append(current)
    return lines
