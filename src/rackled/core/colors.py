"""Hex color helpers"""

import random
import re
from typing import Optional

from ..common.exceptions import ValidationError

_HEX_COLOR = re.compile(r"^#?([0-9a-fA-F]{6})$")


def normalize_color(color) -> str:
    """Return ``#RRGGBB`` in upper case, accepting an optional leading ``#``"""
    if not isinstance(color, str):
        raise ValidationError(f'Missing or invalid color {color!r}, expected "#RRGGBB".')
    match = _HEX_COLOR.match(color.strip())
    if not match:
        raise ValidationError(f'Invalid color "{color}", expected "#RRGGBB".')
    return "#" + match.group(1).upper()


def strip_hash(color: str) -> str:
    return color[1:] if color.startswith("#") else color


def random_hex_color(rng: Optional[random.Random] = None) -> str:
    rng = rng or random
    return f"#{rng.randrange(0xFFFFFF):06X}"
