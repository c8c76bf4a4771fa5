"""Channel layout rules and canonical enumeration.

A layout is a list of depths; each depth is a list of eta bands; each band
either covers every phi value in the azimuthal range (fine granularity) or
only the odd subset of it (coarse granularity). The enumeration order defined
here is the canonical channel index assignment used everywhere else.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from chantopo.errors import ConfigurationError
from chantopo.log_config import get_logger

logger = get_logger(__name__)

FINE_PHI_STEP = 1
COARSE_PHI_STEP = 2


@dataclass(frozen=True, order=True)
class ChannelId:
    """Structured channel coordinate (depth, eta, phi).

    Instances with ``eta == 0`` can be created so that they can be looked up
    and rejected, but enumeration never produces them.
    """

    depth: int
    eta: int
    phi: int

    def as_tuple(self) -> tuple[int, int, int]:
        """Return the coordinate as a plain ``(depth, eta, phi)`` tuple."""
        return (self.depth, self.eta, self.phi)

    def __str__(self) -> str:
        return f"(depth={self.depth}, eta={self.eta}, phi={self.phi})"


@dataclass(frozen=True)
class EtaBand:
    """Inclusive eta range sharing one phi granularity.

    Attributes:
        eta_min: First eta value of the band.
        eta_max: Last eta value of the band (inclusive).
        phi_step: 1 for every phi in the azimuthal range, 2 for the odd subset.
    """

    eta_min: int
    eta_max: int
    phi_step: int = FINE_PHI_STEP

    def etas(self) -> list[int]:
        """Return eta values of the band in ascending order, zero excluded."""
        return [eta for eta in range(self.eta_min, self.eta_max + 1) if eta != 0]

    def phis(self, phi_low: int, phi_high: int) -> list[int]:
        """Return phi values of the band in ascending order."""
        if self.phi_step == FINE_PHI_STEP:
            return list(range(phi_low, phi_high + 1))
        # Coarse bands stop short of the upper edge: 1, 3, ..., 71 for 1..72
        return list(range(phi_low, phi_high, COARSE_PHI_STEP))


@dataclass(frozen=True)
class DepthLayout:
    """Ordered eta bands populated at one depth."""

    depth: int
    bands: tuple[EtaBand, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        """Normalize bands into a tuple so the layout stays hashable."""
        object.__setattr__(self, "bands", tuple(self.bands))


@dataclass(frozen=True)
class LayoutRules:
    """Complete static definition of the valid channel set.

    Attributes:
        name: Short layout name used in logs and exports.
        depths: Depth layouts in enumeration order.
        expected_count: Number of channels the enumeration must produce.
        phi_low: Lowest phi value of the azimuthal range.
        phi_high: Highest phi value of the azimuthal range.
    """

    name: str
    depths: tuple[DepthLayout, ...]
    expected_count: int
    phi_low: int = 1
    phi_high: int = 72

    def __post_init__(self) -> None:
        """Normalize depths into a tuple so the layout stays hashable."""
        object.__setattr__(self, "depths", tuple(self.depths))

    def channel_count(self) -> int:
        """Return the number of channels implied by the band definitions."""
        total = 0
        for depth_layout in self.depths:
            for band in depth_layout.bands:
                total += len(band.etas()) * len(band.phis(self.phi_low, self.phi_high))
        return total

    def depth_values(self) -> list[int]:
        """Return the distinct depths in enumeration order."""
        seen: list[int] = []
        for depth_layout in self.depths:
            if depth_layout.depth not in seen:
                seen.append(depth_layout.depth)
        return seen


def step_eta(eta: int, shift: int) -> int:
    """Move ``eta`` by ``shift`` units, jumping over zero.

    Args:
        eta: Starting eta value.
        shift: Signed step, normally -1, 0 or +1.

    Returns:
        ``eta + shift``, advanced one more unit in the same direction when the
        plain sum would be zero.
    """
    stepped = eta + shift
    if stepped == 0:
        stepped += shift
    return stepped


def wrap_phi(phi: int, phi_low: int, phi_high: int) -> int:
    """Stitch the two ends of the azimuthal range together.

    This is a literal two-value substitution, not modular arithmetic: only
    ``phi_low - 1`` and ``phi_high + 1`` are rewritten. With the default
    1..72 range, 0 becomes 72 and 73 becomes 1.

    Args:
        phi: Candidate phi value, at most one step outside the range.
        phi_low: Lowest phi value of the range.
        phi_high: Highest phi value of the range.

    Returns:
        Substituted phi value.
    """
    if phi == phi_low - 1:
        return phi_high
    if phi == phi_high + 1:
        return phi_low
    return phi


def _check_rules(rules: LayoutRules) -> None:
    """Reject structurally broken rules before enumeration."""
    if rules.phi_low < 1 or rules.phi_high < rules.phi_low:
        raise ConfigurationError(
            f"Layout '{rules.name}': invalid phi range "
            f"[{rules.phi_low}, {rules.phi_high}]"
        )
    if not rules.depths:
        raise ConfigurationError(f"Layout '{rules.name}' declares no depths")
    for depth_layout in rules.depths:
        if depth_layout.depth < 1:
            raise ConfigurationError(
                f"Layout '{rules.name}': depth must be positive, "
                f"got {depth_layout.depth}"
            )
        for band in depth_layout.bands:
            if band.phi_step not in (FINE_PHI_STEP, COARSE_PHI_STEP):
                raise ConfigurationError(
                    f"Layout '{rules.name}': phi_step must be 1 or 2, "
                    f"got {band.phi_step}"
                )
            if band.eta_max < band.eta_min:
                raise ConfigurationError(
                    f"Layout '{rules.name}': empty eta band "
                    f"[{band.eta_min}, {band.eta_max}] at depth {depth_layout.depth}"
                )


def enumerate_channels(rules: LayoutRules) -> list[ChannelId]:
    """Produce the canonical ordered channel list for a layout.

    Order: depths as declared, bands as declared within a depth, eta
    ascending within a band, phi ascending within an eta row.

    Args:
        rules: Layout definition.

    Returns:
        List of channel ids; position in the list is the channel index.

    Raises:
        ConfigurationError: If the rules are malformed, bands overlap, or the
            number of produced channels differs from ``rules.expected_count``.
    """
    _check_rules(rules)

    channels: list[ChannelId] = []
    seen: set[ChannelId] = set()
    for depth_layout in rules.depths:
        for band in depth_layout.bands:
            phis = band.phis(rules.phi_low, rules.phi_high)
            for eta in band.etas():
                for phi in phis:
                    channel = ChannelId(depth_layout.depth, eta, phi)
                    if channel in seen:
                        raise ConfigurationError(
                            f"Layout '{rules.name}': channel {channel} "
                            "is produced by more than one band"
                        )
                    seen.add(channel)
                    channels.append(channel)

    if len(channels) != rules.expected_count:
        raise ConfigurationError(
            f"Layout '{rules.name}' produced {len(channels)} channels, "
            f"expected {rules.expected_count}"
        )

    logger.debug(f"Enumerated {len(channels):,} channels for layout '{rules.name}'")
    return channels
