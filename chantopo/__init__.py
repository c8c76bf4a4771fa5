"""Channel topology index for segmented detector read-out.

Enumerates the valid read-out channels of a detector layout, maps channel
coordinates to dense indices, groups channels into units and boxes, and
computes the cross-unit neighbor graph used by channel selection code.
"""

__version__ = "0.1.0"

# Core classes and utilities
from .assignment import FunctionAssigner, UnitAssigner, WedgeAssigner
from .config import TopologyConfig
from .errors import (
    ConfigurationError,
    IndexOutOfRange,
    InvalidArgument,
    InvalidIdentifier,
    TopologyError,
)
from .hbhe import HBHE_LAYOUT, build_hbhe_index
from .layout import ChannelId, DepthLayout, EtaBand, LayoutRules, enumerate_channels
from .topology import TopologyIndex

__all__ = [
    "ChannelId",
    "ConfigurationError",
    "DepthLayout",
    "EtaBand",
    "FunctionAssigner",
    "HBHE_LAYOUT",
    "IndexOutOfRange",
    "InvalidArgument",
    "InvalidIdentifier",
    "LayoutRules",
    "TopologyConfig",
    "TopologyError",
    "TopologyIndex",
    "UnitAssigner",
    "WedgeAssigner",
    "build_hbhe_index",
    "enumerate_channels",
]
