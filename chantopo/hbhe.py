"""HCAL barrel/endcap (HB/HE) channel layout and readout model.

The HB/HE read-out channels span three depths. Eta runs over -29..29 without
zero; phi runs over 1..72, but above |eta| = 20 (and at depth 3 near
|eta| = 27) towers are twice as wide in phi and only odd phi values exist.

Units are HPDs (hybrid photodiodes) and boxes are RBXs (readout boxes, four
HPDs each). An HPD reads one phi column of one half of one subdetector;
RBX wedges start at phi 71, so phi 71, 72, 1 and 2 share a box.
"""

from __future__ import annotations

from chantopo.assignment import FunctionAssigner
from chantopo.errors import ConfigurationError
from chantopo.layout import (
    COARSE_PHI_STEP,
    ChannelId,
    DepthLayout,
    EtaBand,
    LayoutRules,
)
from chantopo.topology import TopologyIndex

HBHE_CHANNEL_COUNT = 5184
HBHE_PHI_COUNT = 72
HBHE_MAX_ABS_ETA = 29
HBHE_MAX_DEPTH = 3

NUM_HPDS = 288
NUM_RBXS = 72
HPDS_PER_RBX = NUM_HPDS // NUM_RBXS

# Readout regions in HPD numbering order
REGIONS = (("HB", 1), ("HB", -1), ("HE", 1), ("HE", -1))
_REGION_INDEX = {key: i for i, key in enumerate(REGIONS)}


def _coarse(eta_min: int, eta_max: int) -> EtaBand:
    return EtaBand(eta_min, eta_max, COARSE_PHI_STEP)


def _fine(eta_min: int, eta_max: int) -> EtaBand:
    return EtaBand(eta_min, eta_max)


HBHE_LAYOUT = LayoutRules(
    name="hbhe",
    depths=(
        DepthLayout(1, (_coarse(-29, -21), _fine(-20, 20), _coarse(21, 29))),
        DepthLayout(
            2,
            (
                _coarse(-29, -21),
                _fine(-20, -18),
                _fine(-16, -15),
                _fine(15, 16),
                _fine(18, 20),
                _coarse(21, 29),
            ),
        ),
        DepthLayout(3, (_coarse(-28, -27), _fine(-16, -16), _fine(16, 16), _coarse(27, 28))),
    ),
    expected_count=HBHE_CHANNEL_COUNT,
    phi_low=1,
    phi_high=HBHE_PHI_COUNT,
)


def subdetector(depth: int, eta: int) -> str:
    """Return "HB" or "HE" for a tower at the given depth and eta.

    Towers at |eta| = 16 belong to the barrel at depths 1-2 and to the
    endcap at depth 3.

    Raises:
        ConfigurationError: If the tower lies outside the HB/HE acceptance.
    """
    abs_eta = abs(eta)
    if not 0 < abs_eta <= HBHE_MAX_ABS_ETA:
        raise ConfigurationError(f"eta {eta} is outside the HB/HE acceptance")
    if not 0 < depth <= HBHE_MAX_DEPTH:
        raise ConfigurationError(f"depth {depth} is outside the HB/HE acceptance")
    if abs_eta == HBHE_MAX_ABS_ETA and depth > 2:
        raise ConfigurationError(f"eta {eta} has no tower at depth {depth}")

    if abs_eta <= 15:
        return "HB"
    if abs_eta == 16:
        return "HB" if depth <= 2 else "HE"
    return "HE"


def hbhe_region(channel: ChannelId) -> int:
    """Return the readout region (0..3) of a channel, see ``REGIONS``."""
    side = 1 if channel.eta > 0 else -1
    return _REGION_INDEX[(subdetector(channel.depth, channel.eta), side)]


def hpd_of(channel: ChannelId) -> int:
    """Return the HPD reading out a channel.

    Double-width HE towers at depth 2, and the |eta| = 27 row at depth 3,
    are read out on the phi column following their own. Every HE HPD then
    holds 18 channels, the same as in HB.
    """
    column = (channel.phi + 1) % HBHE_PHI_COUNT
    abs_eta = abs(channel.eta)
    shifted_row = channel.depth == 2 or (channel.depth == 3 and abs_eta == 27)
    if abs_eta > 20 and shifted_row:
        column = (column + 1) % HBHE_PHI_COUNT
    return hbhe_region(channel) * HBHE_PHI_COUNT + column


def rbx_of(hpd: int) -> int:
    """Return the RBX containing an HPD."""
    return hpd // HPDS_PER_RBX


HBHE_ASSIGNER = FunctionAssigner(
    unit_fn=hpd_of, box_fn=rbx_of, n_units=NUM_HPDS, n_boxes=NUM_RBXS
)


def build_hbhe_index(precompute_neighbors: bool = True) -> TopologyIndex:
    """Build the topology index for the full HB/HE channel set."""
    return TopologyIndex(
        HBHE_LAYOUT, HBHE_ASSIGNER, precompute_neighbors=precompute_neighbors
    )
