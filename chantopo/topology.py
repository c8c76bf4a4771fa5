"""Channel topology index.

Builds the bijection between channel coordinates and dense integer indices,
groups channels into units and boxes, and exposes the neighbor queries used
by channel selection code.
"""

from __future__ import annotations

import operator
from typing import Iterable

import numpy as np

from chantopo.assignment import UnitAssigner
from chantopo.errors import ConfigurationError, IndexOutOfRange, InvalidIdentifier
from chantopo.layout import ChannelId, LayoutRules, enumerate_channels
from chantopo.log_config import get_logger
from chantopo.neighbors import NeighborGraph, UnitAggregator

logger = get_logger(__name__)


class TopologyIndex:
    """Immutable channel index with unit/box hierarchy and neighbor queries.

    Construction either completes fully or raises; no partially built index
    is ever returned. After construction only the neighbor caches change,
    and they are filled under a lock.

    Args:
        rules: Layout definition producing the channel enumeration.
        assigner: Unit/box assignment capability.
        precompute_neighbors: Fill the neighbor caches during construction
            instead of on first query.

    Raises:
        ConfigurationError: If the enumeration count is wrong or the assigner
            returns ids outside its declared bounds.
    """

    def __init__(
        self,
        rules: LayoutRules,
        assigner: UnitAssigner,
        precompute_neighbors: bool = True,
    ) -> None:
        channels = enumerate_channels(rules)
        n_units = int(assigner.n_units)
        n_boxes = int(assigner.n_boxes)
        if n_units <= 0 or n_boxes <= 0:
            raise ConfigurationError(
                f"Assigner must declare positive unit and box counts, "
                f"got {n_units} units and {n_boxes} boxes"
            )

        self._rules = rules
        self._channels: tuple[ChannelId, ...] = tuple(channels)
        self._inverse: dict[ChannelId, int] = {
            channel: i for i, channel in enumerate(self._channels)
        }
        self._n_units = n_units
        self._n_boxes = n_boxes

        count = len(self._channels)
        unit_lookup = np.empty(count, dtype=np.int64)
        box_lookup = np.empty(count, dtype=np.int64)
        unit_position = np.empty(count, dtype=np.int64)
        box_position = np.empty(count, dtype=np.int64)
        unit_members: list[list[int]] = [[] for _ in range(n_units)]
        box_members: list[list[int]] = [[] for _ in range(n_boxes)]

        for i, channel in enumerate(self._channels):
            unit = _assigned_id(assigner.unit_of(channel), "unit", channel)
            if not 0 <= unit < n_units:
                raise ConfigurationError(
                    f"Assigner placed channel {channel} in unit {unit}, "
                    f"outside [0, {n_units})"
                )
            box = _assigned_id(assigner.box_of(unit), "box", f"unit {unit}")
            if not 0 <= box < n_boxes:
                raise ConfigurationError(
                    f"Assigner placed unit {unit} in box {box}, "
                    f"outside [0, {n_boxes})"
                )
            unit_lookup[i] = unit
            unit_position[i] = len(unit_members[unit])
            unit_members[unit].append(i)
            box_lookup[i] = box
            box_position[i] = len(box_members[box])
            box_members[box].append(i)

        for array in (unit_lookup, box_lookup, unit_position, box_position):
            array.setflags(write=False)
        self._unit_lookup = unit_lookup
        self._box_lookup = box_lookup
        self._unit_position = unit_position
        self._box_position = box_position
        self._unit_members: tuple[tuple[int, ...], ...] = tuple(
            tuple(members) for members in unit_members
        )
        self._box_members: tuple[tuple[int, ...], ...] = tuple(
            tuple(members) for members in box_members
        )

        self._graph = NeighborGraph(self)
        self._aggregator = UnitAggregator(self, self._graph)

        logger.info(
            f"Built topology index '{rules.name}': {count:,} channels, "
            f"{n_units} units, {n_boxes} boxes"
        )
        empty_units = sum(1 for members in self._unit_members if not members)
        if empty_units:
            logger.debug(f"{empty_units} of {n_units} units have no channels")

        if precompute_neighbors:
            self._graph.fill()
            self._aggregator.fill()

    # ------------------------------------------------------------------
    # Sizes and raw data

    @property
    def rules(self) -> LayoutRules:
        return self._rules

    @property
    def channel_count(self) -> int:
        """Number of channels N; valid indices are ``0 .. N-1``."""
        return len(self._channels)

    def __len__(self) -> int:
        return len(self._channels)

    @property
    def n_units(self) -> int:
        return self._n_units

    @property
    def n_boxes(self) -> int:
        return self._n_boxes

    @property
    def channels(self) -> tuple[ChannelId, ...]:
        """All channel ids in index order."""
        return self._channels

    @property
    def neighbor_graph(self) -> NeighborGraph:
        return self._graph

    @property
    def aggregator(self) -> UnitAggregator:
        return self._aggregator

    # ------------------------------------------------------------------
    # Coordinate <-> index bijection

    def index_of(self, channel: ChannelId) -> int:
        """Return the dense index of a channel.

        Raises:
            InvalidIdentifier: If the channel is not part of the layout.
        """
        try:
            return self._inverse[channel]
        except (KeyError, TypeError):
            raise InvalidIdentifier(
                f"Channel {channel} is not part of layout '{self._rules.name}'"
            ) from None

    def linear_index(self, depth: int, eta: int, phi: int) -> int:
        """Return the dense index of the channel at ``(depth, eta, phi)``."""
        return self.index_of(ChannelId(depth, eta, phi))

    def id_of(self, index: int) -> ChannelId:
        """Return the channel id stored at ``index``.

        Raises:
            IndexOutOfRange: If ``index`` is not in ``[0, N)``.
        """
        return self._channels[self._check_index(index)]

    def is_valid(self, channel: object) -> bool:
        """Return True if ``channel`` is an enumerated channel id."""
        try:
            return channel in self._inverse
        except TypeError:
            return False

    def is_valid_triple(self, depth: int, eta: int, phi: int) -> bool:
        return ChannelId(depth, eta, phi) in self._inverse

    # ------------------------------------------------------------------
    # Unit / box hierarchy

    def unit_of(self, index: int) -> int:
        return int(self._unit_lookup[self._check_index(index)])

    def box_of(self, index: int) -> int:
        return int(self._box_lookup[self._check_index(index)])

    def position_in_unit(self, index: int) -> int:
        """Return the position of a channel within its unit's member list."""
        return int(self._unit_position[self._check_index(index)])

    def position_in_box(self, index: int) -> int:
        """Return the position of a channel within its box's member list."""
        return int(self._box_position[self._check_index(index)])

    def members_of_unit(self, unit: int) -> tuple[int, ...]:
        """Return channel indices of a unit in ascending order."""
        return self._unit_members[self._check_unit(unit)]

    def members_of_box(self, box: int) -> tuple[int, ...]:
        """Return channel indices of a box in ascending order."""
        box = _checked(box, self._n_boxes, "box")
        return self._box_members[box]

    def units_of_box(self, box: int) -> tuple[int, ...]:
        """Return the ids of units with at least one channel in ``box``."""
        members = self.members_of_box(box)
        return tuple(sorted({int(self._unit_lookup[i]) for i in members}))

    # ------------------------------------------------------------------
    # Neighbor queries

    def neighbors_of(self, index: int) -> tuple[int, ...]:
        """Return cross-unit neighbors of a channel, ascending."""
        return self._graph.neighbors_of(index)

    def neighbors_of_unit(self, unit: int) -> tuple[int, ...]:
        """Return the union of neighbor sets of every channel in a unit."""
        return self._aggregator.neighbors_of_unit(unit)

    def neighbors_of_channel_subset(self, indices: Iterable[int]) -> tuple[int, ...]:
        """Return the union of neighbor sets of the given channels."""
        return self._aggregator.neighbors_of_channel_subset(indices)

    def max_members_per_unit(self) -> int:
        return self._aggregator.max_members_per_unit()

    def max_members_per_box(self) -> int:
        return self._aggregator.max_members_per_box()

    def clear_cache(self) -> None:
        """Drop cached neighbor data; it is recomputed on next access."""
        self._aggregator.clear_cache()
        self._graph.clear_cache()

    # ------------------------------------------------------------------

    def _check_index(self, index: int) -> int:
        return _checked(index, len(self._channels), "channel index")

    def _check_unit(self, unit: int) -> int:
        return _checked(unit, self._n_units, "unit")

    def __repr__(self) -> str:
        return (
            f"TopologyIndex(layout={self._rules.name!r}, "
            f"channels={len(self._channels)}, units={self._n_units}, "
            f"boxes={self._n_boxes})"
        )


def _assigned_id(value: object, what: str, owner: object) -> int:
    """Return an assigner result as an int, rejecting non-integral ids."""
    try:
        return operator.index(value)
    except TypeError:
        raise ConfigurationError(
            f"Assigner returned non-integer {what} {value!r} for {owner}"
        ) from None


def _checked(value: int, limit: int, what: str) -> int:
    """Return ``value`` as an int if it lies in ``[0, limit)``."""
    value = operator.index(value)
    if not 0 <= value < limit:
        raise IndexOutOfRange(f"{what} {value} out of range [0, {limit})")
    return value
