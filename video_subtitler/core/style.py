"""Subtitle style resolution for the ffmpeg/libass subtitle renderer.

WHY: Callers describe styles loosely ("white", "#ff0000", "black@0.5",
missing fields). The renderer's ASS styling engine needs every field
filled and every color written as blue-green-red hex. Resolution is the
single place where that normalization happens, so the renderer never
sees a partial or malformed style.

HOW: SubtitleStyle holds the caller's optional fields. resolve() fills
defaults, validates sizes, converts colors via to_renderer_color() and
maps the position to an ASS numpad alignment. ResolvedStyle.force_style()
produces the string passed to the subtitles filter.

RULES:
- resolve() never raises; garbage falls back to defaults
- Named colors are matched case-insensitively
- "#RRGGBB" becomes "BBGGRR" (libass byte order)
- A value with an "@alpha" suffix is resolved by its base token
- Anything else resolves to white ("FFFFFF")
- Positions: bottom → 2, center → 5, top → 8 (ASS numpad alignment)
- Font names lose quotes, commas, colons, backslashes and equals signs;
  a name left empty falls back to Arial
"""

from __future__ import annotations

import logging
import re
from dataclasses import asdict, dataclass
from typing import Any, Mapping, Optional, Union

logger = logging.getLogger(__name__)

# Renderer-encoded (BBGGRR) values for the supported color names.
NAMED_COLORS: dict[str, str] = {
    "white": "FFFFFF",
    "black": "000000",
    "red": "0000FF",
    "green": "00FF00",
    "blue": "FF0000",
    "yellow": "00FFFF",
    "cyan": "FFFF00",
    "magenta": "FF00FF",
}

FALLBACK_COLOR = NAMED_COLORS["white"]

POSITION_ALIGNMENT: dict[str, int] = {
    "bottom": 2,
    "center": 5,
    "top": 8,
}

DEFAULT_FONT_NAME = "Arial"
DEFAULT_FONT_SIZE_PX = 24
DEFAULT_FONT_COLOR = "white"
DEFAULT_BACKGROUND_COLOR = "black@0.5"
DEFAULT_OUTLINE_COLOR = "black"
DEFAULT_OUTLINE_WIDTH_PX = 2
DEFAULT_POSITION = "bottom"

_HEX_RE = re.compile(r"^#([0-9a-fA-F]{6})$")
_ALPHA_SEPARATOR = "@"
# Characters with meaning inside a force_style value or the filter graph.
_FONT_NAME_UNSAFE_RE = re.compile(r"['\\,:=]")


@dataclass
class SubtitleStyle:
    """Caller-supplied style; every field is optional."""

    font_name: Optional[str] = None
    font_size_px: Optional[int] = None
    font_color: Optional[str] = None
    background_color: Optional[str] = None
    outline_color: Optional[str] = None
    outline_width_px: Optional[int] = None
    position: Optional[str] = None


@dataclass(frozen=True)
class ResolvedStyle:
    """A fully populated, renderer-ready style.

    Colors are six hex digits in blue-green-red order, without the
    ``&H`` prefix.
    """

    font_name: str
    font_size_px: int
    font_color: str
    background_color: str
    outline_color: str
    outline_width_px: int
    position: str
    alignment: int

    def force_style(self) -> str:
        """Render the ASS ``force_style`` override string for the subtitles filter."""
        return ",".join([
            "FontName={}".format(self.font_name),
            "FontSize={}".format(self.font_size_px),
            "PrimaryColour=&H{}".format(self.font_color),
            "OutlineColour=&H{}".format(self.outline_color),
            "BackColour=&H{}".format(self.background_color),
            "Outline={}".format(self.outline_width_px),
            "BorderStyle=3",
            "Alignment={}".format(self.alignment),
        ])

    def to_dict(self) -> dict:
        return asdict(self)


def to_renderer_color(value: Any) -> str:
    """Convert a color name or ``#RRGGBB`` value to renderer byte order.

    >>> to_renderer_color("#112233")
    '332211'
    >>> to_renderer_color("not-a-color")
    'FFFFFF'
    """
    if not isinstance(value, str):
        return FALLBACK_COLOR

    token = value.strip()
    named = NAMED_COLORS.get(token.lower())
    if named is not None:
        return named

    match = _HEX_RE.match(token)
    if match:
        hex_digits = match.group(1).upper()
        red, green, blue = hex_digits[0:2], hex_digits[2:4], hex_digits[4:6]
        return blue + green + red

    if _ALPHA_SEPARATOR in token:
        base = token.split(_ALPHA_SEPARATOR, 1)[0]
        return to_renderer_color(base)

    return FALLBACK_COLOR


def resolve(style: Union[SubtitleStyle, Mapping[str, Any], None] = None) -> ResolvedStyle:
    """Fill defaults and normalize a caller style for the renderer."""
    if style is None:
        fields: Mapping[str, Any] = {}
    elif isinstance(style, SubtitleStyle):
        fields = asdict(style)
    else:
        fields = style

    font_name = fields.get("font_name")
    if isinstance(font_name, str):
        font_name = _FONT_NAME_UNSAFE_RE.sub("", font_name).strip()
    if not font_name or not isinstance(font_name, str):
        font_name = DEFAULT_FONT_NAME

    position = fields.get("position")
    if isinstance(position, str) and position.strip().lower() in POSITION_ALIGNMENT:
        position = position.strip().lower()
    else:
        position = DEFAULT_POSITION

    return ResolvedStyle(
        font_name=font_name,
        font_size_px=_coerce_int(fields.get("font_size_px"), DEFAULT_FONT_SIZE_PX, minimum=1),
        font_color=to_renderer_color(_or_default(fields.get("font_color"), DEFAULT_FONT_COLOR)),
        background_color=to_renderer_color(
            _or_default(fields.get("background_color"), DEFAULT_BACKGROUND_COLOR)
        ),
        outline_color=to_renderer_color(
            _or_default(fields.get("outline_color"), DEFAULT_OUTLINE_COLOR)
        ),
        outline_width_px=_coerce_int(
            fields.get("outline_width_px"), DEFAULT_OUTLINE_WIDTH_PX, minimum=0
        ),
        position=position,
        alignment=POSITION_ALIGNMENT[position],
    )


def _or_default(value: Any, default: str) -> Any:
    if value is None or (isinstance(value, str) and not value.strip()):
        return default
    return value


def _coerce_int(value: Any, default: int, minimum: int) -> int:
    """Return value as an int >= minimum, or default."""
    if value is None or isinstance(value, bool):
        return default
    try:
        number = int(value)
    except (TypeError, ValueError):
        logger.debug("Ignoring non-integer style value %r", value)
        return default
    if number < minimum:
        return default
    return number
