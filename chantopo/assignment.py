"""Unit and box assignment capabilities.

The topology index does not know about detector hardware. It is handed an
assigner that maps every channel to a unit id and every unit to a box id,
together with the number of units and boxes the assigner declares.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Protocol, runtime_checkable

from chantopo.layout import ChannelId


@runtime_checkable
class UnitAssigner(Protocol):
    """Maps channels to units and units to boxes.

    Unit ids must fall in ``[0, n_units)`` and box ids in ``[0, n_boxes)``.
    """

    @property
    def n_units(self) -> int: ...

    @property
    def n_boxes(self) -> int: ...

    def unit_of(self, channel: ChannelId) -> int: ...

    def box_of(self, unit: int) -> int: ...


@dataclass(frozen=True)
class FunctionAssigner:
    """Assigner built from two plain functions and their declared bounds."""

    unit_fn: Callable[[ChannelId], int]
    box_fn: Callable[[int], int]
    n_units: int
    n_boxes: int

    def unit_of(self, channel: ChannelId) -> int:
        return self.unit_fn(channel)

    def box_of(self, unit: int) -> int:
        return self.box_fn(unit)


def eta_side_region(channel: ChannelId) -> int:
    """Return 0 for channels at negative eta and 1 for positive eta."""
    return 0 if channel.eta < 0 else 1


@dataclass(frozen=True)
class WedgeAssigner:
    """Groups channels into azimuthal wedges within detector regions.

    A region (for example a detector half) is split into
    ``phi_count // phi_per_unit`` units. The phi column of a channel is
    ``(phi + phi_offset) % phi_count``, so a non-zero offset lets a unit
    straddle the phi seam. Consecutive units are packed into boxes of
    ``units_per_box``.

    Attributes:
        phi_count: Number of distinct phi columns in the azimuthal range.
        phi_per_unit: Phi columns read out by one unit.
        phi_offset: Shift applied to phi before column grouping.
        units_per_box: Units aggregated into one box.
        region_of: Function mapping a channel to its region index.
        n_regions: Number of regions ``region_of`` can return.
    """

    phi_count: int
    phi_per_unit: int = 1
    phi_offset: int = 0
    units_per_box: int = 1
    region_of: Callable[[ChannelId], int] = eta_side_region
    n_regions: int = 2

    def __post_init__(self) -> None:
        """Validate grouping parameters."""
        if self.phi_count <= 0:
            raise ValueError("phi_count must be positive")
        if self.phi_per_unit <= 0 or self.phi_count % self.phi_per_unit:
            raise ValueError("phi_per_unit must be a positive divisor of phi_count")
        if self.units_per_box <= 0 or self.n_units % self.units_per_box:
            raise ValueError("units_per_box must be a positive divisor of n_units")
        if self.n_regions <= 0:
            raise ValueError("n_regions must be positive")

    @property
    def units_per_region(self) -> int:
        return self.phi_count // self.phi_per_unit

    @property
    def n_units(self) -> int:
        return self.n_regions * self.units_per_region

    @property
    def n_boxes(self) -> int:
        return self.n_units // self.units_per_box

    def unit_of(self, channel: ChannelId) -> int:
        column = (channel.phi + self.phi_offset) % self.phi_count
        return self.region_of(channel) * self.units_per_region + (
            column // self.phi_per_unit
        )

    def box_of(self, unit: int) -> int:
        return unit // self.units_per_box
