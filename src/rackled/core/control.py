"""Application context and command handlers for the rack LED strip."""

import asyncio
import logging
import re
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence, Tuple

from ..common.exceptions import RangeError, ValidationError
from .catalog import Catalog
from .colors import normalize_color, random_hex_color
from .config import SIDES, VERTICAL_SIDES, DeviceConfig, RackConfig, SystemDefaults, is_int
from .device import DevicePatchSender
from .geometry import Geometry, PixelPair
from .patch import Patch, build_patch
from .state import LedStateStore
from .tasks import BackgroundTask, BlinkManager

logger = logging.getLogger(__name__)

_UNIT_RANGE = re.compile(r"^(\d+)-(\d+)$")


def parse_unit_range(spec: str) -> Tuple[int, int]:
    """Parse ``"start-end"``; reversed bounds are swapped"""
    match = _UNIT_RANGE.match(str(spec))
    if not match:
        raise ValidationError("Invalid range format. Use start-end.")
    start, end = int(match.group(1)), int(match.group(2))
    if start > end:
        start, end = end, start
    return start, end


def _check_times(times: Any) -> int:
    if not is_int(times) or times < 0:
        raise ValidationError(f'"times" must be a non-negative integer, got {times!r}')
    return times


def _ms_to_seconds(value: Any, name: str) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value < 0:
        raise ValidationError(f'"{name}" must be a non-negative number of ms, got {value!r}')
    return value / 1000.0


def _format_ms(value: float) -> str:
    """``250.0`` reads as ``250``"""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    return str(value)


class RackController:
    """Owns configuration, geometry, LED state and the device link.

    Every synchronous command resolves its pixels, records them in the
    state store and sends them to the device as a single patch. Blink
    and scan commands run as background tasks and return immediately.
    """

    def __init__(
        self,
        config: RackConfig,
        device: Optional[DeviceConfig] = None,
        sender: Optional[DevicePatchSender] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.config = config
        self.device_config = device or DeviceConfig()
        self.geometry = Geometry(config)
        self.store = LedStateStore(config, self.geometry)
        self.catalog = Catalog(config)
        self.sender = sender or DevicePatchSender(self.device_config)
        self.tasks = BlinkManager()
        self._sleep = sleep

    async def start(self) -> None:
        logger.info(
            f"Rack controller ready: {self.config.total_pixels} LEDs, "
            f"ruler of {self.geometry.canonical_height} rows"
        )

    async def stop(self) -> None:
        """Cancel background sequences and close the device link"""
        logger.info("Stopping rack controller")
        await self.tasks.stop()
        await self.sender.close()

    async def _push(self, pairs: Sequence[PixelPair]) -> Patch:
        """Send already recorded ``pairs`` to the device in one call"""
        patch = build_patch(pairs, self.geometry)
        await self.sender.send(patch)
        return patch

    async def _send(self, pairs: Sequence[PixelPair]) -> Patch:
        """Record ``pairs`` and push them to the device in one call"""
        self.store.apply(pairs)
        return await self._push(pairs)

    def _detail(self, pair: PixelPair, **extra) -> Dict[str, Any]:
        detail = dict(extra)
        detail.update(
            side=pair.side,
            localIndex=pair.index,
            globalIndex=self.geometry.local_to_global(pair.side, pair.index),
            color=pair.color,
        )
        return detail

    def _resolve_units(
        self, units: Sequence[int], sides: Sequence[str], color: str
    ) -> Tuple[List[PixelPair], List[Dict[str, Any]]]:
        """Pixels of ``units`` on ``sides``, side-major then by ruler row"""
        ranges = [(u, self.geometry.u_to_vertical_range(u)) for u in units]
        pairs: List[PixelPair] = []
        details: List[Dict[str, Any]] = []
        for side in sides:
            for unum, rows in ranges:
                segment = self.geometry.expand_vertical_segment(
                    side, rows.v_start, rows.v_length, color
                )
                for v, pair in zip(rows.rows, segment):
                    details.append(self._detail(pair, u=unum, v=v))
                pairs.extend(segment)
        return pairs, details

    # Status

    def status(self) -> Dict[str, Any]:
        """Configuration, geometry and the full state snapshot"""
        bases = self.config.side_bases()
        return {
            "config": {side: self.config.sides[side].length for side in SIDES},
            "reverse": {side: self.config.sides[side].reverse for side in SIDES},
            "calibrationOffset": {
                side: self.config.sides[side].calibration_offset for side in SIDES
            },
            "start": {side: bases[side] for side in SIDES},
            "verticalHeight": self.geometry.canonical_height,
            "rackUnitSize": self.config.rack_unit_size,
            "rackUnitsCount": self.config.rack_units_count,
            "equipments": [eq.to_dict() for eq in self.catalog.equipments.values()],
            "rackUnits": [unit.to_dict() for unit in self.catalog.rack_units.values()],
            "activeTasks": len(self.tasks.running),
            "states": self.store.snapshot(),
        }

    # Direct side addressing

    async def set_side_pixels(
        self, side: str, leds: Sequence[Tuple[int, Any]]
    ) -> Dict[str, Any]:
        """Set individual LEDs on one side; nothing is applied unless all are valid"""
        length = self.config.side(side).length
        pairs = []
        for index, color in leds:
            if not is_int(index) or not 0 <= index < length:
                raise RangeError(f'Invalid LED index {index} for side "{side}".')
            pairs.append(PixelPair(side, index, normalize_color(color)))

        await self._send(pairs)
        return {"message": f"Updated {side}", "count": len(pairs)}

    # Rack units

    async def light_unit(self, unum: int, color: Any) -> Dict[str, Any]:
        color = normalize_color(color)
        rows = self.geometry.u_to_vertical_range(unum)
        pairs, details = self._resolve_units([unum], VERTICAL_SIDES, color)
        await self._send(pairs)
        return {
            "message": f"Lit U{unum} on {'&'.join(VERTICAL_SIDES)} with {color}",
            "rackUnitsCount": self.config.rack_units_count,
            "vStart": rows.v_start,
            "vLength": rows.v_length,
            "details": details,
        }

    async def light_unit_range(self, range_spec: str, color: Any) -> Dict[str, Any]:
        start, end = parse_unit_range(range_spec)
        color = normalize_color(color)
        pairs, details = self._resolve_units(
            range(start, end + 1), VERTICAL_SIDES, color
        )
        await self._send(pairs)
        return {
            "message": f"Lit U{start}-U{end} on {'&'.join(VERTICAL_SIDES)} with {color}",
            "rackUnitsCount": self.config.rack_units_count,
            "details": details,
        }

    def blink_unit(
        self,
        unum: int,
        color: Any = SystemDefaults.DEFAULT_BLINK_COLOR,
        times: int = SystemDefaults.DEFAULT_BLINK_TIMES,
        interval_ms: float = SystemDefaults.DEFAULT_BLINK_INTERVAL_MS,
    ) -> Dict[str, Any]:
        color = normalize_color(color)
        _check_times(times)
        interval = _ms_to_seconds(interval_ms, "interval")
        self.geometry.u_to_vertical_range(unum)

        description = (
            f"Blinking U{unum} on {'&'.join(VERTICAL_SIDES)} with {color}, "
            f"{times} times, {_format_ms(interval_ms)}ms interval"
        )
        record = self.tasks.spawn(
            "unit-blink",
            description,
            self._blink([unum], VERTICAL_SIDES, color, times, interval),
        )
        return self._blink_ack(record, [unum], VERTICAL_SIDES)

    def blink_unit_range(
        self,
        range_spec: str,
        color: Any = SystemDefaults.DEFAULT_BLINK_COLOR,
        times: int = SystemDefaults.DEFAULT_BLINK_TIMES,
        interval_ms: float = SystemDefaults.DEFAULT_BLINK_INTERVAL_MS,
    ) -> Dict[str, Any]:
        start, end = parse_unit_range(range_spec)
        color = normalize_color(color)
        _check_times(times)
        interval = _ms_to_seconds(interval_ms, "interval")
        units = list(range(start, end + 1))
        for unum in units:
            self.geometry.u_to_vertical_range(unum)

        description = (
            f"Blinking U{start}-U{end} on {'&'.join(VERTICAL_SIDES)} with {color}, "
            f"{times} times, {_format_ms(interval_ms)}ms interval"
        )
        record = self.tasks.spawn(
            "unit-range-blink",
            description,
            self._blink(units, VERTICAL_SIDES, color, times, interval),
        )
        return self._blink_ack(record, units, VERTICAL_SIDES)

    # Equipments and named rack units

    async def light_equipment(self, equipment_id: str, color: Any) -> Dict[str, Any]:
        color = normalize_color(color)
        eq = self.catalog.equipment(equipment_id)
        pairs, details = self._resolve_units(eq.units, eq.sides, color)
        await self._send(pairs)
        return {
            "message": f"Equipment {eq.id} ({eq.name}) updated",
            "units": list(eq.units),
            "sides": list(eq.sides),
            "leds": len(pairs),
            "details": details,
        }

    def blink_equipment(
        self,
        equipment_id: str,
        color: Any = SystemDefaults.DEFAULT_BLINK_COLOR,
        times: int = SystemDefaults.DEFAULT_BLINK_TIMES,
        interval_ms: float = SystemDefaults.DEFAULT_BLINK_INTERVAL_MS,
    ) -> Dict[str, Any]:
        color = normalize_color(color)
        _check_times(times)
        interval = _ms_to_seconds(interval_ms, "interval")
        eq = self.catalog.equipment(equipment_id)

        description = (
            f"Blinking equipment {eq.id} ({eq.name}) on {'&'.join(eq.sides)} with {color}, "
            f"{times} times, {_format_ms(interval_ms)}ms interval"
        )
        record = self.tasks.spawn(
            "equipment-blink",
            description,
            self._blink(eq.units, eq.sides, color, times, interval),
        )
        return self._blink_ack(record, eq.units, eq.sides)

    async def light_rack_unit(self, unit_id: str, color: Any) -> Dict[str, Any]:
        """Light a named rack unit from the ``rack_units`` catalog"""
        color = normalize_color(color)
        unit = self.catalog.rack_unit(unit_id)
        pairs: List[PixelPair] = []
        for segment in unit.segments:
            if segment.kind == "local":
                pairs.extend(
                    self.store.set_range(
                        segment.side, segment.start, segment.length, color
                    )
                )
            else:
                pairs.extend(
                    self.store.set_from_vertical_segment(
                        segment.side, segment.start, segment.length, color
                    )
                )
        await self._push(pairs)
        return {
            "message": f"Rack unit {unit.id} updated",
            "leds": len(pairs),
            "details": [self._detail(pair) for pair in pairs],
        }

    # Maintenance

    async def fill_all(self, color: str) -> Patch:
        pairs = self.store.fill(color)
        return await self._push(pairs)

    async def clear(self) -> Dict[str, Any]:
        await self.fill_all(SystemDefaults.OFF_COLOR)
        return {"message": f"All LEDs cleared (black {SystemDefaults.OFF_COLOR})"}

    async def reset(self) -> Dict[str, Any]:
        await self.fill_all(SystemDefaults.RESET_COLOR)
        return {"message": f"All LEDs reset to white ({SystemDefaults.RESET_COLOR})"}

    # Diagnostics

    async def test_side(self, side: str) -> Dict[str, Any]:
        """Light a whole side: first LED blue, last red, the rest green"""
        cfg = self.config.side(side)
        length = cfg.length
        pairs = []
        for i in range(length):
            if i == 0:
                color = SystemDefaults.TEST_START_COLOR
            elif i == length - 1:
                color = SystemDefaults.TEST_END_COLOR
            else:
                color = SystemDefaults.TEST_MIDDLE_COLOR
            pairs.append(PixelPair(side, i, color))

        await self._send(pairs)
        return {
            "message": (
                f'Tested side "{side}" ({length} LEDs). '
                "Start=Blue, End=Red, Middle=Green."
            ),
            "leds": length,
            "offset": cfg.calibration_offset,
            "details": [
                {
                    "localIndex": pair.index,
                    "globalIndex": self.geometry.local_to_global(side, pair.index),
                    "color": pair.color,
                }
                for pair in pairs
            ],
        }

    def scan_units(
        self,
        start: Optional[int] = None,
        end: int = 1,
        times: int = SystemDefaults.DEFAULT_SCAN_TIMES,
        interval_ms: float = SystemDefaults.DEFAULT_SCAN_INTERVAL_MS,
        pause_ms: float = SystemDefaults.DEFAULT_SCAN_PAUSE_MS,
    ) -> Dict[str, Any]:
        """Blink every U from ``start`` down to ``end``, each in a random color"""
        count = self.config.rack_units_count
        start = count if start is None else start
        if not is_int(start) or not is_int(end):
            raise ValidationError('"from" and "to" must be integers.')
        if not (1 <= start <= count and 1 <= end <= count):
            raise RangeError(f'"from" and "to" must be in 1..{count}.')
        if start < end:
            raise ValidationError('"from" should be >= "to" for a downward scan.')
        _check_times(times)
        interval = _ms_to_seconds(interval_ms, "interval")
        pause = _ms_to_seconds(pause_ms, "pauseBetweenUnits")

        description = (
            f"Starting U scan from U{start} down to U{end}. "
            f"Each U blinks {times}x with interval {_format_ms(interval_ms)}ms."
        )
        record = self.tasks.spawn(
            "scan", description, self._scan(start, end, times, interval, pause)
        )
        return self._blink_ack(record, None, VERTICAL_SIDES)

    # Background sequences

    def _blink_ack(
        self,
        record: BackgroundTask,
        units: Optional[Sequence[int]],
        sides: Sequence[str],
    ) -> Dict[str, Any]:
        ack = {"message": record.description, "taskId": record.id, "sides": list(sides)}
        if units is not None:
            ack["units"] = list(units)
        return ack

    async def _blink(
        self,
        units: Sequence[int],
        sides: Sequence[str],
        color: str,
        times: int,
        interval: float,
    ) -> None:
        """Alternate ``color`` and black; a failed patch ends the sequence"""
        for _ in range(times):
            on_pairs, _ = self._resolve_units(units, sides, color)
            await self._send(on_pairs)
            await self._sleep(interval)

            off_pairs, _ = self._resolve_units(units, sides, SystemDefaults.OFF_COLOR)
            await self._send(off_pairs)
            await self._sleep(interval)

    async def _scan(
        self, start: int, end: int, times: int, interval: float, pause: float
    ) -> None:
        for unum in range(start, end - 1, -1):
            color = random_hex_color()
            logger.debug(f"Scan at U{unum} with {color}")
            await self._blink([unum], VERTICAL_SIDES, color, times, interval)
            if pause > 0:
                await self._sleep(pause)
