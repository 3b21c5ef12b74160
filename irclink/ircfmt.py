"""Helpers to strip mIRC-style formatting from IRC text.

Color codes are \\003 followed by an optional foreground and background color
number; style codes are single control characters that toggle a style on and
off.
"""

import re

STYLE_CHARS = {
    "\x0f": "normal",
    "\x1f": "underline",
    "\x02": "bold",
    "\x1d": "italic",
    "\x16": "inverse",
    "\x1e": "strikethrough",
    "\x11": "monospace",
}

COLOR_CHAR = "\x03"

COLOR_RE = re.compile(r"\x03\d{0,2}(,\d{0,2}|\x02\x02)?")


def strip_colors(text: str) -> str:
    """Remove color codes, including their color numbers."""
    return COLOR_RE.sub("", text)


def strip_style(text: str) -> str:
    """Remove style characters.

    A pair of identical style characters is only removed if it encloses at
    least one character; unpaired style characters are always removed. Color
    characters take part in the pairing but are left in place, for
    strip_colors() to deal with.
    """
    chars = list(text)
    # stack of (style character, position) still waiting for their pair
    opened: list[tuple[str, int]] = []

    i = 0
    while i < len(chars):
        char = chars[i]
        if char in STYLE_CHARS or char == COLOR_CHAR:
            if opened and opened[-1][0] == char:
                _, start = opened.pop()
                if i - start > 1 and char != COLOR_CHAR:
                    del chars[i]
                    del chars[start]
                    i -= 2
            else:
                opened.append((char, i))
        i += 1

    for char, pos in reversed(opened):
        if char != COLOR_CHAR:
            del chars[pos]

    return "".join(chars)


def strip_colors_and_style(text: str) -> str:
    """Remove all formatting."""
    return strip_colors(strip_style(text))
