"""Device patch payloads.

The controller firmware takes a flat list alternating global index and
color without the leading hash::

    {"seg": {"i": [12, "FF0000", 13, "FF0000"]}}
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Tuple

from .colors import strip_hash
from .geometry import Geometry, PixelPair


@dataclass
class Patch:
    """One coalesced update for the device"""

    entries: List[Tuple[int, str]] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.entries)

    def to_payload(self) -> Dict[str, Any]:
        flat: List[Any] = []
        for global_index, color in self.entries:
            flat.extend((global_index, color))
        return {"seg": {"i": flat}}


def build_patch(pairs: Iterable[PixelPair], geometry: Geometry) -> Patch:
    """Resolve global indices for ``pairs``, keeping their order"""
    return Patch(
        entries=[
            (geometry.local_to_global(pair.side, pair.index), strip_hash(pair.color))
            for pair in pairs
        ]
    )
