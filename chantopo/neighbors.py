"""Cross-unit neighbor graph and unit-level aggregation.

Two channels are neighbors when they sit at the same depth, at most one eta
step and one phi step apart (with eta zero skipped and the phi range stitched
at its ends), and are read out by different units.
"""

from __future__ import annotations

import threading
from typing import TYPE_CHECKING, Iterable

from chantopo.errors import IndexOutOfRange, InvalidArgument
from chantopo.layout import ChannelId, step_eta, wrap_phi
from chantopo.log_config import get_logger

if TYPE_CHECKING:
    from chantopo.topology import TopologyIndex

logger = get_logger(__name__)

# A channel has at most eight cells around it in the 3x3 eta-phi ring.
MAX_CHANNEL_NEIGHBORS = 8

_SHIFTS = (-1, 0, 1)


class NeighborGraph:
    """Per-channel cross-unit adjacency, computed once and cached.

    The whole graph is filled in a single pass, either eagerly by the owning
    index or on the first query. Filled tuples are never modified.
    """

    def __init__(self, index: TopologyIndex) -> None:
        self._index = index
        self._lock = threading.Lock()
        self._neighbors: tuple[tuple[int, ...], ...] | None = None

    @property
    def is_filled(self) -> bool:
        return self._neighbors is not None

    def fill(self) -> None:
        """Compute neighbor sets for every channel if not done yet."""
        self._table()

    def clear_cache(self) -> None:
        with self._lock:
            self._neighbors = None

    def neighbors_of(self, index: int) -> tuple[int, ...]:
        """Return sorted indices of cross-unit neighbors of a channel.

        Raises:
            IndexOutOfRange: If ``index`` is not a valid channel index.
        """
        table = self._table()
        try:
            if index < 0:
                raise IndexError
            return table[index]
        except (IndexError, TypeError):
            raise IndexOutOfRange(
                f"channel index {index} out of range [0, {len(table)})"
            ) from None

    def compute(self, index: int) -> tuple[int, ...]:
        """Compute the neighbor set of one channel without using the cache."""
        idx = self._index
        rules = idx.rules
        center = idx.id_of(index)
        my_unit = idx.unit_of(index)

        found: list[int] = []
        for eta_shift in _SHIFTS:
            eta = step_eta(center.eta, eta_shift)
            for phi_shift in _SHIFTS:
                if not (eta_shift or phi_shift):
                    continue
                phi = wrap_phi(center.phi + phi_shift, rules.phi_low, rules.phi_high)
                candidate = ChannelId(center.depth, eta, phi)
                if not idx.is_valid(candidate):
                    continue
                neighbor = idx.index_of(candidate)
                if idx.unit_of(neighbor) != my_unit:
                    found.append(neighbor)

        assert len(found) <= MAX_CHANNEL_NEIGHBORS
        found.sort()
        return tuple(found)

    def _table(self) -> tuple[tuple[int, ...], ...]:
        table = self._neighbors
        if table is not None:
            return table
        with self._lock:
            if self._neighbors is None:
                count = self._index.channel_count
                self._neighbors = tuple(self.compute(i) for i in range(count))
                edges = sum(len(n) for n in self._neighbors) // 2
                logger.debug(
                    f"Filled neighbor graph: {count:,} channels, {edges:,} "
                    "cross-unit adjacencies"
                )
            return self._neighbors


class UnitAggregator:
    """Neighbor unions over units and over caller-supplied channel groups."""

    def __init__(self, index: TopologyIndex, graph: NeighborGraph) -> None:
        self._index = index
        self._graph = graph
        self._lock = threading.Lock()
        self._unit_neighbors: tuple[tuple[int, ...], ...] | None = None
        self._max_unit = max(
            len(index.members_of_unit(u)) for u in range(index.n_units)
        )
        self._max_box = max(len(index.members_of_box(b)) for b in range(index.n_boxes))

    def fill(self) -> None:
        """Compute neighbor unions for every unit if not done yet."""
        self._table()

    def clear_cache(self) -> None:
        with self._lock:
            self._unit_neighbors = None

    def max_members_per_unit(self) -> int:
        """Return the largest number of channels assigned to one unit."""
        return self._max_unit

    def max_members_per_box(self) -> int:
        """Return the largest number of channels assigned to one box."""
        return self._max_box

    def neighbors_of_unit(self, unit: int) -> tuple[int, ...]:
        """Return sorted neighbors of all channels in ``unit``.

        Raises:
            IndexOutOfRange: If ``unit`` is not a valid unit id.
        """
        self._index.members_of_unit(unit)
        return self._table()[unit]

    def neighbors_of_channel_subset(self, indices: Iterable[int]) -> tuple[int, ...]:
        """Return the sorted union of neighbor sets of ``indices``.

        Args:
            indices: Channel indices; at most ``max_members_per_unit()`` of them.

        Raises:
            InvalidArgument: If more indices are given than one unit can hold.
            IndexOutOfRange: If any index is invalid.
        """
        indices = list(indices)
        if len(indices) > self._max_unit:
            raise InvalidArgument(
                f"Channel subset of size {len(indices)} exceeds the per-unit "
                f"bound of {self._max_unit}"
            )
        return self._union(indices)

    def _union(self, indices: Iterable[int]) -> tuple[int, ...]:
        merged: set[int] = set()
        for i in indices:
            merged.update(self._graph.neighbors_of(i))
        return tuple(sorted(merged))

    def _table(self) -> tuple[tuple[int, ...], ...]:
        table = self._unit_neighbors
        if table is not None:
            return table
        with self._lock:
            if self._unit_neighbors is None:
                self._unit_neighbors = tuple(
                    self._union(self._index.members_of_unit(u))
                    for u in range(self._index.n_units)
                )
                logger.debug(
                    f"Filled unit neighbor table for {self._index.n_units} units"
                )
            return self._unit_neighbors
