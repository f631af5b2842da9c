"""Scan pattern: layer-grouped spot positions traversed in delivery order.

A pattern is an ordered sequence of layers (one beam energy each), each an
ordered sequence of spots. A forward cursor supplies spots to the dose
engine: spots within a layer in insertion order, layers in ascending index
order. The end of the pattern is signalled by ``None``.

Example:
    >>> pattern = ScanPattern()
    >>> pattern.define_scan_pattern()
    >>> pattern.reset()
    >>> spot = pattern.get_spot()
    >>> while spot is not None:
    ...     deliver(spot)
    ...     spot = pattern.get_next_spot()
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Iterator, List, Optional, Tuple

from pbs_dose.config.plan_config import ScanConfig
from pbs_dose.core.tables import WeightTable


@dataclass(frozen=True)
class SpotPosition:
    """Position [mm] and weight of a single Bragg peak.

    ``z`` is the nominal range of the peak, which selects its depth-dose profile.
    """

    x: int
    y: int
    z: int
    weight: float = 1.0


@dataclass
class ScanSpeed:
    """Speed of scanning and number of paintings.

    Carried as metadata for delivery-timing extensions; the static dose sum
    does not depend on it.
    """

    layer_time: float = 0.0
    energy_change_time: float = 0.0
    paintings: List[int] = field(default_factory=list)


class ScanState(Enum):
    """Lifecycle of a scan pattern."""

    IDLE = "idle"
    DEFINED = "defined"
    TRAVERSING = "traversing"
    EXHAUSTED = "exhausted"


def _inclusive(start: int, stop: int, step: int) -> range:
    return range(start, stop + 1, step)


class ScanPattern:
    """Ordered, layer-grouped spot positions with a forward cursor.

    Invariant: the cursor addresses a valid spot, or the pattern is exhausted.
    """

    def __init__(self, layers: Optional[Iterable[Iterable[SpotPosition]]] = None):
        self._layers: List[List[SpotPosition]] = []
        self.speed = ScanSpeed()
        self.current_layer = 0
        self.current_spot_no = 0
        self._started = False
        for spots in layers or ():
            self.add_layer(spots)

    # ------------------------------------------------------------------
    # Definition
    # ------------------------------------------------------------------

    def add_layer(self, spots: Iterable[SpotPosition]) -> int:
        """Append a layer and return its index. Empty layers are rejected."""
        layer = list(spots)
        if not layer:
            raise ValueError("A layer must contain at least one spot")
        self._layers.append(layer)
        self.reset()
        return len(self._layers) - 1

    def clear(self) -> None:
        self._layers = []
        self.reset()

    def define_scan_pattern(self, template: Optional[ScanConfig] = None) -> None:
        """Populate the pattern from a fixed rectangular template.

        One layer per template depth, each a rectangular x/y spot grid with
        weight 1. Also sets the scan-speed metadata from the template.
        Replaces any previously defined layers.
        """
        template = template or ScanConfig()
        self._layers = []
        for z in _inclusive(*template.z):
            layer = [
                SpotPosition(x, y, z, 1.0)
                for y in _inclusive(*template.y)
                for x in _inclusive(*template.x)
            ]
            self._layers.append(layer)
        self.speed = ScanSpeed(
            layer_time=template.layer_time,
            energy_change_time=template.energy_change_time,
            paintings=list(template.paintings),
        )
        self.reset()

    def define_target_pattern(
        self,
        x_width: int,
        y_width: int,
        z_min: int,
        z_max: int,
        spacing: int,
        weights: Optional[WeightTable] = None,
    ) -> None:
        """Populate the pattern to cover a box centred on the beam axis.

        Spots are placed every ``spacing`` mm over [-x_width / 2, x_width / 2]
        and [-y_width / 2, y_width / 2], one layer per depth from ``z_max``
        down to ``z_min``. Spot weights come from ``weights`` by depth
        (1.0 if no table is given). Replaces any previously defined layers.
        """
        if spacing <= 0:
            raise ValueError(f"spacing must be > 0, got {spacing}")
        if z_max < z_min or z_min < 0:
            raise ValueError(f"invalid depth window [{z_min}, {z_max}]")

        half_x = (x_width // 2) // spacing * spacing
        half_y = (y_width // 2) // spacing * spacing
        self._layers = []
        for z in range(z_max, z_min - 1, -spacing):
            weight = weights.get(z) if weights is not None else 1.0
            layer = [
                SpotPosition(x, y, z, weight)
                for y in _inclusive(-half_y, half_y, spacing)
                for x in _inclusive(-half_x, half_x, spacing)
            ]
            self._layers.append(layer)
        self.reset()

    def set_scan_speed(self, speed: ScanSpeed) -> None:
        self.speed = speed

    # ------------------------------------------------------------------
    # Traversal
    # ------------------------------------------------------------------

    def reset(self) -> None:
        """Move the cursor to spot 0 of layer 0."""
        self.current_layer = 0
        self.current_spot_no = 0
        self._started = False

    @property
    def state(self) -> ScanState:
        if not self._layers:
            return ScanState.IDLE
        if self.current_layer >= len(self._layers):
            return ScanState.EXHAUSTED
        return ScanState.TRAVERSING if self._started else ScanState.DEFINED

    def number_layers(self) -> int:
        return len(self._layers)

    def layer_size(self, layer: int) -> int:
        if 0 <= layer < len(self._layers):
            return len(self._layers[layer])
        return 0

    def get_spot(self, layer: Optional[int] = None, spot_no: Optional[int] = None) -> Optional[SpotPosition]:
        """Spot at the cursor, or at (layer, spot_no) if given.

        Returns None when the address is out of bounds or the pattern is exhausted.
        """
        if layer is None:
            layer, spot_no = self.current_layer, self.current_spot_no
        elif spot_no is None:
            spot_no = 0
        if 0 <= layer < len(self._layers) and 0 <= spot_no < len(self._layers[layer]):
            return self._layers[layer][spot_no]
        return None

    def get_next_spot(self) -> Optional[SpotPosition]:
        """Advance the cursor and return the spot it now addresses.

        Moves to the next spot of the current layer, or to spot 0 of the next
        layer once the current one is exhausted. Returns None once all layers
        are exhausted, and on every later call.
        """
        if self.current_layer >= len(self._layers):
            return None
        self._started = True
        self.current_spot_no += 1
        if self.current_spot_no >= len(self._layers[self.current_layer]):
            self.current_layer += 1
            self.current_spot_no = 0
        return self.get_spot()

    def __iter__(self) -> Iterator[SpotPosition]:
        """Iterate over all spots in delivery order without moving the cursor."""
        for layer in self._layers:
            yield from layer

    def __len__(self) -> int:
        return sum(len(layer) for layer in self._layers)

    @property
    def layers(self) -> Tuple[Tuple[SpotPosition, ...], ...]:
        return tuple(tuple(layer) for layer in self._layers)

    def __repr__(self) -> str:
        return f"ScanPattern(layers={self.number_layers()}, spots={len(self)}, state={self.state.value})"
