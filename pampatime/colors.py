"""
Color derivation.

An event's colors are a pure function of its `type` (modality or subject
category). Any non-empty type gets an HSL triple derived from a stable hash
of the lowercased, trimmed string, so the same type always renders with the
same colors, across runs and machines:

    hue        = |hash| % 360
    saturation = 45 + |hash >> 8| % 35        (45-79 %)
    lightness  = 88 % bg, 50 % border, 25 % text

Empty types get DEFAULT_COLORS. Conflicted events are drawn with
CONFLICT_COLORS instead, but only in the render view, never in the store.
"""

from __future__ import annotations

from dataclasses import replace
from typing import Optional

from pampatime.model import Event, EventColors

DEFAULT_COLORS = EventColors(bg="#f3f4f6", border="#9ca3af", text="#374151")
CONFLICT_COLORS = EventColors(bg="#fee2e2", border="#dc2626", text="#7f1d1d")

_BG_LIGHTNESS = 88
_BORDER_LIGHTNESS = 50
_TEXT_LIGHTNESS = 25


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value


def string_hash(text: str) -> int:
    """
    32-bit signed rolling hash (hash * 31 + code unit) over UTF-16 code units.
    """
    data = text.encode("utf-16-le", "surrogatepass")
    h = 0
    for i in range(0, len(data), 2):
        unit = data[i] | (data[i + 1] << 8)
        h = _to_int32((h << 5) - h + unit)
    return h


def get_colors(event_type: Optional[str] = "") -> EventColors:
    """
    Return the color triple for an event type. Never raises.
    """
    normalized = (event_type or "").strip().lower()
    if not normalized:
        return DEFAULT_COLORS

    h = string_hash(normalized)
    hue = abs(h) % 360
    saturation = 45 + abs(h >> 8) % 35

    return EventColors(
        bg=f"hsl({hue}, {saturation}%, {_BG_LIGHTNESS}%)",
        border=f"hsl({hue}, {saturation}%, {_BORDER_LIGHTNESS}%)",
        text=f"hsl({hue}, {saturation}%, {_TEXT_LIGHTNESS}%)",
    )


def apply_colors(event: Event) -> Event:
    """
    Return a copy of the event with its colors recomputed from `type`.

    Whatever colors the event carried before are discarded.
    """
    colors = get_colors(event.type)
    return replace(
        event,
        background_color=colors.bg,
        border_color=colors.border,
        text_color=colors.text,
    )
