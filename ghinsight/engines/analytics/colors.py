"""Deterministic chart colors for languages, topics, and other labels."""

from __future__ import annotations

LANGUAGE_COLORS: dict[str, str] = {
    "JavaScript": "#f1e05a",
    "TypeScript": "#2b7489",
    "Python": "#3572A5",
    "Java": "#b07219",
    "C#": "#178600",
    "PHP": "#4F5D95",
    "C++": "#f34b7d",
    "C": "#555555",
    "Shell": "#89e051",
    "Ruby": "#701516",
    "Go": "#00ADD8",
    "Swift": "#ffac45",
    "Kotlin": "#F18E33",
    "Rust": "#dea584",
    "Dart": "#00B4AB",
    "HTML": "#e34c26",
    "CSS": "#563d7c",
    "Jupyter Notebook": "#DA5B0B",
    "Vue": "#2c3e50",
    "R": "#198CE7",
    "Other": "#8b8b8b",
}

PR_STATE_COLORS = ("#10b981", "#ef4444", "#8b5cf6")  # Open, Closed, Merged
VISIBILITY_COLORS = ("#22c55e", "#6366f1")  # Public, Private
ORIGIN_COLORS = ("#3b82f6", "#a855f7")  # Original, Forked


def color_for(name: str) -> str:
    """Fixed color for well-known languages, hash color for anything else."""
    return LANGUAGE_COLORS.get(name) or hash_color(name)


def hash_color(name: str) -> str:
    """Stable ``#rrggbb`` derived from a 32-bit string hash of *name*.

    Each channel lands in 55..254 so the color is never near black or white.
    """
    h = 0
    for code in _utf16_units(name):
        shifted = _to_int32(_to_int32(h) << 5)
        h = code + (shifted - h)
    h = _to_int32(h)
    r = (h & 0xFF) % 200 + 55
    g = ((h >> 8) & 0xFF) % 200 + 55
    b = ((h >> 16) & 0xFF) % 200 + 55
    return f"#{r:02x}{g:02x}{b:02x}"


def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value >= 0x80000000 else value


def _utf16_units(text: str) -> list[int]:
    raw = text.encode("utf-16-le")
    return [int.from_bytes(raw[i : i + 2], "little") for i in range(0, len(raw), 2)]
