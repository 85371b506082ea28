"""In-memory mirror of the desired LED colors."""

import logging
from typing import Dict, Iterable, List

from ..common.exceptions import RangeError
from .config import SIDES, RackConfig, SystemDefaults
from .geometry import Geometry, PixelPair

logger = logging.getLogger(__name__)


class LedStateStore:
    """Per-side color arrays, sized once from configuration.

    Entries are only ever overwritten; the number of entries stays
    constant for the life of the process.
    """

    def __init__(
        self,
        config: RackConfig,
        geometry: Geometry,
        initial_color: str = SystemDefaults.OFF_COLOR,
    ):
        self.config = config
        self.geometry = geometry
        self._states: Dict[str, List[str]] = {
            side: [initial_color] * config.sides[side].length for side in SIDES
        }

    def length(self, side: str) -> int:
        return self.config.side(side).length

    def color_at(self, side: str, index: int) -> str:
        return self._states[side][index]

    def set_range(self, side: str, start: int, length: int, color: str) -> List[PixelPair]:
        """Overwrite ``[start, start + length)`` on ``side``"""
        side_length = self.length(side)
        if start < 0 or length < 0 or start + length > side_length:
            raise RangeError(
                f'Out-of-range segment on "{side}" (start={start}, length={length})'
            )
        pairs = [PixelPair(side, start + i, color) for i in range(length)]
        self.apply(pairs)
        return pairs

    def set_from_vertical_segment(
        self, side: str, v_start: int, v_length: int, color: str
    ) -> List[PixelPair]:
        """Expand a ruler segment on ``side`` and record the result"""
        pairs = self.geometry.expand_vertical_segment(side, v_start, v_length, color)
        self.apply(pairs)
        return pairs

    def apply(self, pairs: Iterable[PixelPair]) -> None:
        """Record pairs in order; later pairs win on the same LED"""
        for pair in pairs:
            self._states[pair.side][pair.index] = pair.color

    def fill(self, color: str) -> List[PixelPair]:
        """Set every LED of every side"""
        pairs: List[PixelPair] = []
        for side in SIDES:
            pairs.extend(self.set_range(side, 0, self.length(side), color))
        return pairs

    def snapshot(self) -> Dict[str, List[Dict[str, str]]]:
        """Copy of the full state, ``{side: [{"color": ...}, ...]}``"""
        return {
            side: [{"color": color} for color in colors]
            for side, colors in self._states.items()
        }
