"""Equipment and named rack units resolved from configuration at load time."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple

from ..common.exceptions import ConfigurationError, UnknownEquipmentError, ValidationError
from .config import VERTICAL_SIDES, RackConfig, is_int
from .geometry import VerticalRange

logger = logging.getLogger(__name__)


def normalize_sides(side_prop: Any) -> Tuple[str, ...]:
    """Resolve an equipment ``side`` setting to left and/or right.

    Accepts "left", "right", "both" or a list of those; anything else
    means both sides.
    """
    if isinstance(side_prop, (list, tuple)):
        wanted = {str(s).lower() for s in side_prop}
        sides = tuple(s for s in VERTICAL_SIDES if s in wanted)
        if sides:
            return sides
    elif isinstance(side_prop, str):
        value = side_prop.lower()
        if value in VERTICAL_SIDES:
            return (value,)
        if value == "both":
            return VERTICAL_SIDES
    return VERTICAL_SIDES


def normalize_unit_list(values: Sequence[Any], units_count: int) -> Tuple[int, ...]:
    """Parse a ``rack_units`` list into 1-based U numbers.

    Lists containing 0 are taken as 0-based and shifted. Entries that are
    not integers or fall outside 1..units_count are dropped.
    """
    parsed = []
    for value in values:
        if is_int(value):
            parsed.append(value)
        elif isinstance(value, str) and value.strip().lstrip("-").isdigit():
            parsed.append(int(value))
    zero_based = 0 in parsed
    units = (n + 1 if zero_based else n for n in parsed)
    return tuple(u for u in units if 1 <= u <= units_count)


def normalize_vertical_spec(spec: Any, rack_unit_size: int) -> VerticalRange:
    """Convert a ``vertical`` entry to ruler rows (given in U unless unit is "leds")"""
    if (
        not isinstance(spec, dict)
        or not is_int(spec.get("start"))
        or not is_int(spec.get("length"))
    ):
        raise ConfigurationError(f"Invalid vertical spec: {spec!r}")
    if str(spec.get("unit", "")).lower() == "leds":
        return VerticalRange(v_start=spec["start"], v_length=spec["length"])
    return VerticalRange(
        v_start=spec["start"] * rack_unit_size,
        v_length=spec["length"] * rack_unit_size,
    )


@dataclass(frozen=True)
class Equipment:
    """A device mounted in the rack"""

    id: str
    name: str
    units: Tuple[int, ...]
    sides: Tuple[str, ...]
    rack_units: Tuple[Any, ...]  # as configured

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "rack_units": list(self.rack_units),
            "units": list(self.units),
            "sides": list(self.sides),
        }


@dataclass(frozen=True)
class RackUnitSegment:
    """Part of a named rack unit: a local run or a ruler run on one side"""

    kind: str  # "local" or "vertical"
    side: str
    start: int
    length: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "side": self.side,
            "start": self.start,
            "length": self.length,
        }


@dataclass(frozen=True)
class RackUnit:
    id: str
    segments: Tuple[RackUnitSegment, ...]

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "segments": [s.to_dict() for s in self.segments]}


class Catalog:
    """Lookup of equipments and named rack units by id"""

    def __init__(self, config: RackConfig):
        self.config = config
        self.equipments: Dict[str, Equipment] = {}
        self.rack_units: Dict[str, RackUnit] = {}

        for eq in config.equipments:
            units = normalize_unit_list(eq.rack_units, config.rack_units_count)
            if eq.rack_units and not units:
                logger.warning(f'Equipment "{eq.id}" has no usable rack units')
            self.equipments[eq.id] = Equipment(
                id=eq.id,
                name=eq.name,
                units=units,
                sides=normalize_sides(eq.side),
                rack_units=tuple(eq.rack_units),
            )

        for unit in config.rack_units:
            self.rack_units[unit.id] = RackUnit(
                id=unit.id, segments=tuple(self._build_segments(unit))
            )

        logger.info(
            f"Catalog: {len(self.equipments)} equipments, {len(self.rack_units)} named rack units"
        )

    def _build_segments(self, unit) -> List[RackUnitSegment]:
        segments = []
        for side, spec in unit.local.items():
            start, length = int(spec["start"]), int(spec["length"])
            side_length = self.config.sides[side].length
            if start < 0 or length < 0 or start + length > side_length:
                raise ConfigurationError(
                    f'Rack unit "{unit.id}" segment on {side} exceeds {side_length} LEDs'
                )
            segments.append(RackUnitSegment("local", side, start, length))

        if unit.vertical is not None:
            rows = normalize_vertical_spec(unit.vertical, self.config.rack_unit_size)
            height = self.config.canonical_height
            if rows.v_start < 0 or rows.v_length < 0 or rows.v_start + rows.v_length > height:
                raise ConfigurationError(
                    f'Rack unit "{unit.id}" vertical segment exceeds ruler of {height} rows'
                )
            for side in VERTICAL_SIDES:
                segments.append(
                    RackUnitSegment("vertical", side, rows.v_start, rows.v_length)
                )
        return segments

    def equipment(self, equipment_id: str) -> Equipment:
        """Equipment with at least one usable unit"""
        eq = self.equipments.get(equipment_id)
        if eq is None or not eq.units:
            raise UnknownEquipmentError(equipment_id)
        return eq

    def rack_unit(self, unit_id: str) -> RackUnit:
        unit = self.rack_units.get(unit_id)
        if unit is None:
            raise ValidationError(f'Unknown rack unit "{unit_id}".')
        return unit
