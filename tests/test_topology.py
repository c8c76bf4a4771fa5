"""Tests for the coordinate/index bijection and unit/box hierarchy."""

from __future__ import annotations

import numpy as np
import pytest

from chantopo.assignment import FunctionAssigner
from chantopo.errors import ConfigurationError, IndexOutOfRange, InvalidIdentifier
from chantopo.layout import ChannelId
from chantopo.topology import TopologyIndex


class TestBijection:
    """index_of / id_of round trips and failure modes."""

    def test_round_trip_from_index(self, small_index):
        for i in range(small_index.channel_count):
            assert small_index.index_of(small_index.id_of(i)) == i

    def test_round_trip_from_id(self, small_index):
        for channel in small_index.channels:
            assert small_index.id_of(small_index.index_of(channel)) == channel

    def test_channel_count(self, small_index):
        assert small_index.channel_count == 32
        assert len(small_index) == 32

    def test_linear_index(self, small_index):
        assert small_index.linear_index(1, 1, 1) == 8
        assert small_index.linear_index(2, -2, 1) == 16

    def test_eta_zero_is_invalid_identifier(self, small_index):
        with pytest.raises(InvalidIdentifier):
            small_index.index_of(ChannelId(1, 0, 1))
        assert not small_index.is_valid(ChannelId(1, 0, 1))

    def test_unknown_channel_is_invalid_identifier(self, small_index):
        with pytest.raises(InvalidIdentifier, match="not part of layout 'small'"):
            small_index.index_of(ChannelId(3, 1, 1))
        with pytest.raises(InvalidIdentifier):
            small_index.linear_index(1, 1, 5)

    def test_id_of_out_of_range(self, small_index):
        with pytest.raises(IndexOutOfRange):
            small_index.id_of(32)
        with pytest.raises(IndexOutOfRange):
            small_index.id_of(-1)

    def test_out_of_range_is_index_error(self, small_index):
        with pytest.raises(IndexError):
            small_index.id_of(1000)

    def test_numpy_integer_index(self, small_index):
        assert small_index.id_of(np.int64(8)) == ChannelId(1, 1, 1)

    def test_is_valid_is_total(self, small_index):
        assert small_index.is_valid(ChannelId(1, -1, 3))
        assert not small_index.is_valid(ChannelId(1, -1, 5))
        assert not small_index.is_valid((1, -1, 3))
        assert not small_index.is_valid([1, -1, 3])
        assert not small_index.is_valid(None)
        assert small_index.is_valid_triple(2, 2, 4)
        assert not small_index.is_valid_triple(2, 0, 4)


class TestHierarchy:
    """Unit and box grouping built from the injected assigner."""

    def test_unit_assignment(self, small_index):
        assert small_index.n_units == 2
        assert small_index.members_of_unit(0) == tuple(range(0, 8)) + tuple(
            range(16, 24)
        )
        assert small_index.members_of_unit(1) == tuple(range(8, 16)) + tuple(
            range(24, 32)
        )
        assert small_index.unit_of(8) == 1
        assert small_index.unit_of(7) == 0

    def test_positions(self, small_index):
        assert small_index.position_in_unit(0) == 0
        assert small_index.position_in_unit(16) == 8
        assert small_index.position_in_unit(24) == 8
        assert small_index.position_in_box(31) == 31
        for unit in range(small_index.n_units):
            for pos, i in enumerate(small_index.members_of_unit(unit)):
                assert small_index.position_in_unit(i) == pos

    def test_single_box(self, small_index):
        assert small_index.n_boxes == 1
        assert small_index.members_of_box(0) == tuple(range(32))
        assert small_index.box_of(5) == 0
        assert small_index.units_of_box(0) == (0, 1)

    def test_max_members(self, small_index):
        assert small_index.max_members_per_unit() == 16
        assert small_index.max_members_per_box() == 32

    def test_bad_unit_and_box(self, small_index):
        with pytest.raises(IndexOutOfRange):
            small_index.members_of_unit(2)
        with pytest.raises(IndexOutOfRange):
            small_index.members_of_box(1)
        with pytest.raises(IndexOutOfRange):
            small_index.unit_of(32)

    def test_return_types_are_plain_ints(self, small_index):
        assert type(small_index.unit_of(3)) is int
        assert type(small_index.box_of(3)) is int
        assert type(small_index.position_in_unit(3)) is int


class TestConstructionFailures:
    """Assigners that break their declared bounds make construction fail."""

    def test_unit_out_of_bounds(self, small_rules):
        assigner = FunctionAssigner(
            unit_fn=lambda c: 5, box_fn=lambda u: 0, n_units=2, n_boxes=1
        )
        with pytest.raises(ConfigurationError, match="outside \\[0, 2\\)"):
            TopologyIndex(small_rules, assigner)

    def test_box_out_of_bounds(self, small_rules):
        assigner = FunctionAssigner(
            unit_fn=lambda c: 0, box_fn=lambda u: 3, n_units=2, n_boxes=1
        )
        with pytest.raises(ConfigurationError, match="in box 3"):
            TopologyIndex(small_rules, assigner)

    def test_negative_unit(self, small_rules):
        assigner = FunctionAssigner(
            unit_fn=lambda c: -1, box_fn=lambda u: 0, n_units=2, n_boxes=1
        )
        with pytest.raises(ConfigurationError):
            TopologyIndex(small_rules, assigner)

    def test_non_integer_unit(self, small_rules):
        assigner = FunctionAssigner(
            unit_fn=lambda c: 1.0, box_fn=lambda u: 0, n_units=2, n_boxes=1
        )
        with pytest.raises(ConfigurationError, match="non-integer unit 1.0"):
            TopologyIndex(small_rules, assigner)

    def test_non_integer_box(self, small_rules):
        assigner = FunctionAssigner(
            unit_fn=lambda c: 0, box_fn=lambda u: "0", n_units=2, n_boxes=1
        )
        with pytest.raises(ConfigurationError, match="non-integer box"):
            TopologyIndex(small_rules, assigner)

    def test_numpy_integer_ids_are_accepted(self, small_rules):
        assigner = FunctionAssigner(
            unit_fn=lambda c: np.int64(c.eta > 0),
            box_fn=lambda u: np.int32(0),
            n_units=2,
            n_boxes=1,
        )
        index = TopologyIndex(small_rules, assigner)
        assert index.members_of_unit(1) == tuple(range(8, 16)) + tuple(range(24, 32))

    def test_zero_declared_units(self, small_rules):
        assigner = FunctionAssigner(
            unit_fn=lambda c: 0, box_fn=lambda u: 0, n_units=0, n_boxes=1
        )
        with pytest.raises(ConfigurationError, match="positive unit and box counts"):
            TopologyIndex(small_rules, assigner)

    def test_count_mismatch_propagates(self, small_rules, eta_side_assigner):
        from dataclasses import replace

        with pytest.raises(ConfigurationError):
            TopologyIndex(replace(small_rules, expected_count=33), eta_side_assigner)


def test_lookup_tables_are_read_only(small_index):
    with pytest.raises(ValueError):
        small_index._unit_lookup[0] = 1


def test_repr(small_index):
    assert repr(small_index) == (
        "TopologyIndex(layout='small', channels=32, units=2, boxes=1)"
    )
