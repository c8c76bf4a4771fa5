"""Configuration management for the channel topology index."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import yaml

from chantopo.assignment import UnitAssigner, WedgeAssigner, eta_side_region
from chantopo.hbhe import HBHE_ASSIGNER, HBHE_LAYOUT, hbhe_region
from chantopo.layout import ChannelId, DepthLayout, EtaBand, LayoutRules
from chantopo.log_config import get_logger
from chantopo.topology import TopologyIndex

logger = get_logger(__name__)

LAYOUT_PRESETS: dict[str, LayoutRules] = {"hbhe": HBHE_LAYOUT}

# Region function name -> (function, number of regions it can return)
REGION_FUNCTIONS: dict[str, tuple[Callable[[ChannelId], int], int]] = {
    "eta_side": (eta_side_region, 2),
    "hbhe": (hbhe_region, 4),
}

ASSIGNMENT_MODELS = ("hbhe", "wedge")


@dataclass
class AssignmentConfig:
    """Unit/box assignment configuration.

    ``model: hbhe`` uses the built-in HPD/RBX readout model. ``model: wedge``
    groups channels into phi wedges within regions; the remaining fields
    parameterize that grouping (see ``WedgeAssigner``).
    """

    model: str = "hbhe"
    phi_count: int = 72
    phi_per_unit: int = 1
    phi_offset: int = 1
    units_per_box: int = 4
    regions: str = "hbhe"

    def build_assigner(self) -> UnitAssigner:
        """Create the assigner described by this configuration.

        Raises:
            ValueError: If the model or region function is unknown.
        """
        if self.model == "hbhe":
            return HBHE_ASSIGNER
        if self.model == "wedge":
            if self.regions not in REGION_FUNCTIONS:
                raise ValueError(
                    f"Unknown assignment regions '{self.regions}'; "
                    f"expected one of {sorted(REGION_FUNCTIONS)}"
                )
            region_fn, n_regions = REGION_FUNCTIONS[self.regions]
            return WedgeAssigner(
                phi_count=self.phi_count,
                phi_per_unit=self.phi_per_unit,
                phi_offset=self.phi_offset,
                units_per_box=self.units_per_box,
                region_of=region_fn,
                n_regions=n_regions,
            )
        raise ValueError(
            f"Unknown assignment model '{self.model}'; "
            f"expected one of {list(ASSIGNMENT_MODELS)}"
        )


@dataclass
class NeighborsConfig:
    """Neighbor cache behaviour."""

    precompute: bool = True  # Fill neighbor caches while building the index


@dataclass
class OutputConfig:
    """Formatting of exported artefacts."""

    json_indent: int = 2
    map_dpi: int = 150


@dataclass
class TopologyConfig:
    """Complete configuration: layout rules plus assignment and output settings."""

    layout: LayoutRules = field(default_factory=lambda: HBHE_LAYOUT)
    assignment: AssignmentConfig = field(default_factory=AssignmentConfig)
    neighbors: NeighborsConfig = field(default_factory=NeighborsConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    _source_path: Path | None = None

    @classmethod
    def from_yaml(cls, config_path: Path) -> TopologyConfig:
        """Load configuration from YAML file.

        Args:
            config_path: Path to YAML configuration file.

        Returns:
            Parsed configuration object.

        Raises:
            FileNotFoundError: If config file doesn't exist.
            yaml.YAMLError: If YAML is invalid.
            ValueError: If configuration is invalid.
        """
        logger.info(f"Loading configuration from: {config_path}")

        if not config_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {config_path}")

        try:
            with open(config_path, "r") as f:
                raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.error(f"Invalid YAML in configuration: {e}")
            raise

        if not isinstance(raw_config, dict):
            raise ValueError("Configuration file must contain a mapping")

        cfg = cls._from_dict(raw_config)
        cfg._source_path = Path(config_path)
        return cfg

    @classmethod
    def _from_dict(cls, config_dict: dict[str, Any]) -> TopologyConfig:
        """Create configuration from dictionary.

        Args:
            config_dict: Raw configuration dictionary.

        Returns:
            Parsed configuration object.
        """
        if "layout" not in config_dict:
            raise ValueError("Missing required 'layout' configuration section")
        if "assignment" not in config_dict:
            raise ValueError("Missing required 'assignment' configuration section")

        layout = _parse_layout(config_dict["layout"])

        assignment_dict = config_dict["assignment"]
        if not isinstance(assignment_dict, dict):
            raise ValueError("'assignment' configuration section must be a dictionary")
        try:
            assignment = AssignmentConfig(**assignment_dict)
        except TypeError as e:
            raise ValueError(f"Invalid 'assignment' configuration: {e}") from e
        if assignment.model not in ASSIGNMENT_MODELS:
            raise ValueError(
                f"'assignment.model' must be one of {list(ASSIGNMENT_MODELS)}, "
                f"got '{assignment.model}'"
            )

        neighbors_dict = config_dict.get("neighbors", {}) or {}
        if not isinstance(neighbors_dict, dict):
            raise ValueError("'neighbors' configuration section must be a dictionary")
        neighbors = NeighborsConfig(
            precompute=bool(neighbors_dict.get("precompute", True))
        )

        output_dict = config_dict.get("output", {}) or {}
        if not isinstance(output_dict, dict):
            raise ValueError("'output' configuration section must be a dictionary")
        output = OutputConfig(
            json_indent=int(output_dict.get("json_indent", 2)),
            map_dpi=int(output_dict.get("map_dpi", 150)),
        )
        if output.map_dpi <= 0:
            raise ValueError("'output.map_dpi' must be a positive integer")

        return cls(
            layout=layout, assignment=assignment, neighbors=neighbors, output=output
        )

    def build_index(self) -> TopologyIndex:
        """Build the topology index described by this configuration."""
        return TopologyIndex(
            self.layout,
            self.assignment.build_assigner(),
            precompute_neighbors=self.neighbors.precompute,
        )

    def summary(self) -> str:
        """Generate configuration summary string.

        Returns:
            Human-readable configuration summary.
        """
        lines = [
            "CHANNEL TOPOLOGY CONFIGURATION",
            "=" * 60,
            "",
            "LAYOUT",
            "-" * 30,
            f"   Name: {self.layout.name}",
            f"   Depths: {self.layout.depth_values()}",
            f"   Phi Range: {self.layout.phi_low}..{self.layout.phi_high}",
            f"   Expected Channels: {self.layout.expected_count:,}",
            f"   Channels From Bands: {self.layout.channel_count():,}",
            "",
            "ASSIGNMENT",
            "-" * 30,
            f"   Model: {self.assignment.model}",
        ]
        if self.assignment.model == "wedge":
            lines += [
                f"   Regions: {self.assignment.regions}",
                f"   Phi Per Unit: {self.assignment.phi_per_unit}",
                f"   Units Per Box: {self.assignment.units_per_box}",
            ]
        lines += [
            "",
            "NEIGHBORS",
            "-" * 30,
            f"   Precompute: {self.neighbors.precompute}",
            "",
            "=" * 60,
        ]
        return "\n".join(lines)


def _parse_layout(layout_dict: Any) -> LayoutRules:
    """Parse the 'layout' section into ``LayoutRules``."""
    if not isinstance(layout_dict, dict):
        raise ValueError("'layout' configuration section must be a dictionary")

    if "preset" in layout_dict:
        preset = str(layout_dict["preset"])
        if preset not in LAYOUT_PRESETS:
            raise ValueError(
                f"Unknown layout preset '{preset}'; "
                f"expected one of {sorted(LAYOUT_PRESETS)}"
            )
        return LAYOUT_PRESETS[preset]

    for key in ("name", "expected_count", "depths"):
        if key not in layout_dict:
            raise ValueError(f"Missing required 'layout.{key}'")

    depths_list = layout_dict["depths"]
    if not isinstance(depths_list, list) or not depths_list:
        raise ValueError("'layout.depths' must be a non-empty list")

    depths: list[DepthLayout] = []
    for entry in depths_list:
        if not isinstance(entry, dict):
            raise ValueError("Each item in 'layout.depths' must be a dictionary")
        if "depth" not in entry or "bands" not in entry:
            raise ValueError("Each layout depth must include 'depth' and 'bands'")
        bands_list = entry["bands"]
        if not isinstance(bands_list, list):
            raise ValueError("'bands' must be a list of band entries")
        bands: list[EtaBand] = []
        for band in bands_list:
            if not isinstance(band, dict):
                raise ValueError("Each band must be a dictionary")
            try:
                bands.append(
                    EtaBand(
                        eta_min=int(band["eta_min"]),
                        eta_max=int(band["eta_max"]),
                        phi_step=int(band.get("phi_step", 1)),
                    )
                )
            except KeyError as e:
                raise ValueError(f"Band is missing required key {e}") from e
        depths.append(DepthLayout(depth=int(entry["depth"]), bands=tuple(bands)))

    return LayoutRules(
        name=str(layout_dict["name"]),
        depths=tuple(depths),
        expected_count=int(layout_dict["expected_count"]),
        phi_low=int(layout_dict.get("phi_low", 1)),
        phi_high=int(layout_dict.get("phi_high", 72)),
    )
