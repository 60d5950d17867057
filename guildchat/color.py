"""RGB colours used for role display."""

from __future__ import annotations

import re
from dataclasses import dataclass

_HEX_PATTERN = re.compile(
    r"#(?P<red>[0-9a-fA-F]{2})(?P<green>[0-9a-fA-F]{2})(?P<blue>[0-9a-fA-F]{2})"
)


@dataclass(frozen=True)
class Color:
    """An 8-bit-per-channel RGB colour."""

    red: int
    green: int
    blue: int

    def __post_init__(self) -> None:
        for name in ("red", "green", "blue"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(f"{name} must be an integer")
            if not 0 <= value <= 255:
                raise ValueError(f"{name} must be between 0 and 255, got {value}")

    @classmethod
    def from_hex(cls, text: str) -> Color:
        """Parse a colour written as ``#RRGGBB``; raise ValueError otherwise."""
        match = _HEX_PATTERN.fullmatch(text)
        if match is None:
            raise ValueError(f"not a hex colour: {text!r}")
        return cls(
            int(match["red"], 16),
            int(match["green"], 16),
            int(match["blue"], 16),
        )

    def to_hex(self) -> str:
        """Return the colour as an upper-case ``#RRGGBB`` string."""
        return f"#{self.red:02X}{self.green:02X}{self.blue:02X}"

    @classmethod
    def default_role_color(cls) -> Color:
        """Colour given to a guild's default role."""
        return cls(211, 211, 211)

    @classmethod
    def owner_role_color(cls) -> Color:
        """Colour given to a guild's owner role."""
        return cls(255, 255, 255)