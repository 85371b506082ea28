"""Index mapping between side-local, ruler, rack-unit and global coordinates.

Four coordinate spaces are involved:

* local index  - 0-based position of an LED on its own side
* global index - position in the flat pixel array of the device
* ruler row    - position on the canonical vertical ruler shared by the
                 left and right sides (``rack_units_count * rack_unit_size``)
* U number     - rack unit, 1..``rack_units_count``

Everything here is pure arithmetic on the loaded configuration. Reversal
is applied only when going local -> global, so ruler -> local mapping is
monotonic on every side.
"""

import logging
import math
from dataclasses import dataclass
from typing import List

from ..common.exceptions import ConfigurationError, RangeError
from .config import RackConfig, is_int

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PixelPair:
    """A color addressed to one LED of one side"""

    side: str
    index: int
    color: str


@dataclass(frozen=True)
class VerticalRange:
    """Contiguous run of ruler rows"""

    v_start: int
    v_length: int

    @property
    def rows(self) -> range:
        return range(self.v_start, self.v_start + self.v_length)


class Geometry:
    """Coordinate conversions for one rack configuration"""

    def __init__(self, config: RackConfig):
        self.config = config
        self.canonical_height = config.canonical_height
        self._bases = config.side_bases()

    def base(self, side: str) -> int:
        """Global index of local 0 before reversal"""
        self.config.side(side)
        return self._bases[side]

    def local_to_global(self, side: str, local_index: int) -> int:
        """Map a side-local index to the device's global index.

        Callers validate ``0 <= local_index < length`` beforehand.
        """
        cfg = self.config.side(side)
        effective = cfg.length - 1 - local_index if cfg.reverse else local_index
        return self._bases[side] + effective

    def vertical_to_local(self, side: str, v: int) -> int:
        """Map a ruler row to a local index on ``side``.

        The row is scaled proportionally onto the side, rounded half away
        from zero, shifted by the side's calibration offset and clamped
        to the strip.
        """
        if not is_int(v) or not 0 <= v < self.canonical_height:
            raise RangeError(
                f"Vertical index {v} out of range 0..{self.canonical_height - 1}"
            )
        cfg = self.config.side(side)
        if cfg.length <= 0:
            raise ConfigurationError(f'Side "{side}" has no LEDs.')

        if self.canonical_height > 1:
            raw = v / (self.canonical_height - 1) * (cfg.length - 1)
        else:
            raw = 0.0
        # raw is never negative, so floor(x + 0.5) rounds half away from zero
        local = math.floor(raw + 0.5) + cfg.calibration_offset
        return max(0, min(cfg.length - 1, local))

    def u_to_vertical_range(self, unum: int) -> VerticalRange:
        """Ruler rows covered by rack unit ``unum``.

        Both ends are clamped to the ruler independently before the
        length is derived from them.
        """
        count = self.config.rack_units_count
        if not is_int(unum) or not 1 <= unum <= count:
            raise RangeError(f"U number {unum} out of range 1..{count}")

        size = self.config.rack_unit_size
        last_row = self.canonical_height - 1
        v_start = (unum - 1) * size
        v_end = v_start + size - 1
        c_start = max(0, min(last_row, v_start))
        c_end = max(0, min(last_row, v_end))
        return VerticalRange(v_start=c_start, v_length=c_end - c_start + 1)

    def expand_vertical_segment(
        self, side: str, v_start: int, v_length: int, color: str
    ) -> List[PixelPair]:
        """One pair per ruler row of the segment, in row order.

        Pure: nothing is recorded. Neighbouring rows may land on the same
        local index on sides shorter than the ruler.
        """
        return [
            PixelPair(side, self.vertical_to_local(side, v_start + dv), color)
            for dv in range(v_length)
        ]
