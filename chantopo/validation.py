"""Consistency audit for a built topology index.

``validate_index`` walks the whole index and reports every broken invariant
as a human-readable string. An empty list means the index is consistent.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import numpy as np

from chantopo.log_config import get_logger
from chantopo.neighbors import MAX_CHANNEL_NEIGHBORS

if TYPE_CHECKING:
    from chantopo.topology import TopologyIndex

logger = get_logger(__name__)

# Stop reporting a class of issue after this many examples
_MAX_EXAMPLES = 10


def _check_bijection(index: TopologyIndex) -> list[str]:
    issues: list[str] = []
    rules = index.rules
    for depth in rules.depth_values():
        for phi in range(rules.phi_low, rules.phi_high + 1):
            if index.is_valid_triple(depth, 0, phi):
                issues.append(f"Eta 0 accepted as valid at depth {depth}, phi {phi}")
                break
    for i, channel in enumerate(index.channels):
        if channel.eta == 0:
            issues.append(f"Channel {i} has eta 0: {channel}")
        if index.index_of(channel) != i:
            issues.append(
                f"Round trip broken: index {i} -> {channel} -> "
                f"{index.index_of(channel)}"
            )
        if len(issues) >= _MAX_EXAMPLES:
            break
    return issues


def _check_hierarchy(index: TopologyIndex) -> list[str]:
    issues: list[str] = []
    units = np.array([index.unit_of(i) for i in range(index.channel_count)])
    boxes = np.array([index.box_of(i) for i in range(index.channel_count)])

    unit_sizes = np.bincount(units, minlength=index.n_units)
    box_sizes = np.bincount(boxes, minlength=index.n_boxes)
    for unit in range(index.n_units):
        members = index.members_of_unit(unit)
        if len(members) != unit_sizes[unit]:
            issues.append(
                f"Unit {unit} lists {len(members)} members but "
                f"{unit_sizes[unit]} channels map to it"
            )
        if list(members) != sorted(members):
            issues.append(f"Unit {unit} member list is not ascending")
        for pos, i in enumerate(members):
            if index.position_in_unit(i) != pos:
                issues.append(f"Channel {i} has wrong position in unit {unit}")
        if members and len({index.box_of(i) for i in members}) != 1:
            issues.append(f"Unit {unit} spans more than one box")
    for box in range(index.n_boxes):
        members = index.members_of_box(box)
        if len(members) != box_sizes[box]:
            issues.append(
                f"Box {box} lists {len(members)} members but "
                f"{box_sizes[box]} channels map to it"
            )
        for pos, i in enumerate(members):
            if index.position_in_box(i) != pos:
                issues.append(f"Channel {i} has wrong position in box {box}")

    if unit_sizes.max() != index.max_members_per_unit():
        issues.append("max_members_per_unit disagrees with unit sizes")
    if box_sizes.max() != index.max_members_per_box():
        issues.append("max_members_per_box disagrees with box sizes")
    return issues[:_MAX_EXAMPLES]


def _check_neighbors(index: TopologyIndex) -> list[str]:
    issues: list[str] = []
    neighbor_sets = [set(index.neighbors_of(i)) for i in range(index.channel_count)]
    for i in range(index.channel_count):
        neighbors = index.neighbors_of(i)
        if len(neighbors) > MAX_CHANNEL_NEIGHBORS:
            issues.append(f"Channel {i} has {len(neighbors)} neighbors")
        if list(neighbors) != sorted(neighbor_sets[i]):
            issues.append(f"Neighbors of channel {i} are not sorted and unique")
        if i in neighbor_sets[i]:
            issues.append(f"Channel {i} is its own neighbor")
        my_unit = index.unit_of(i)
        for j in neighbors:
            if index.unit_of(j) == my_unit:
                issues.append(f"Channel {i} has same-unit neighbor {j}")
            if i not in neighbor_sets[j]:
                issues.append(f"Asymmetric adjacency: {j} in N({i}) but not vice versa")
        if len(issues) >= _MAX_EXAMPLES:
            return issues

    for unit in range(index.n_units):
        expected: set[int] = set()
        for i in index.members_of_unit(unit):
            expected |= neighbor_sets[i]
        if index.neighbors_of_unit(unit) != tuple(sorted(expected)):
            issues.append(f"Unit {unit} neighbor union is inconsistent")
        if len(issues) >= _MAX_EXAMPLES:
            break
    return issues


def validate_index(index: TopologyIndex) -> list[str]:
    """Audit every structural invariant of a topology index.

    Args:
        index: Index to check.

    Returns:
        List of issue descriptions; empty when the index is consistent.
    """
    logger.info(f"Validating topology index '{index.rules.name}'")
    issues = _check_bijection(index) + _check_hierarchy(index) + _check_neighbors(index)
    if issues:
        logger.warning(f"Topology validation found {len(issues)} issue(s)")
    else:
        logger.info("Topology validation passed")
    return issues
