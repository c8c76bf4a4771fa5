"""Pytest configuration and shared fixtures for channel topology tests."""

import pytest

from chantopo.assignment import WedgeAssigner
from chantopo.layout import DepthLayout, EtaBand, LayoutRules
from chantopo.topology import TopologyIndex


@pytest.fixture
def small_rules():
    """Two depths, eta {-2, -1, 1, 2}, phi 1..4, fully populated."""
    band = EtaBand(-2, 2)
    return LayoutRules(
        name="small",
        depths=(DepthLayout(1, (band,)), DepthLayout(2, (band,))),
        expected_count=32,
        phi_low=1,
        phi_high=4,
    )


@pytest.fixture
def eta_side_assigner():
    """Two units split by the sign of eta, both in one box."""
    return WedgeAssigner(phi_count=4, phi_per_unit=4, units_per_box=2)


@pytest.fixture
def small_index(small_rules, eta_side_assigner):
    """Index over the 32-channel layout with neighbors filled eagerly."""
    return TopologyIndex(small_rules, eta_side_assigner)


@pytest.fixture
def lazy_small_index(small_rules, eta_side_assigner):
    """Same as ``small_index`` but neighbors are filled on first query."""
    return TopologyIndex(small_rules, eta_side_assigner, precompute_neighbors=False)


@pytest.fixture(scope="session")
def hbhe_index():
    """Full HB/HE index; built once per session."""
    from chantopo.hbhe import build_hbhe_index

    return build_hbhe_index()


@pytest.fixture
def small_config_dict():
    """Configuration dictionary describing the 32-channel layout."""
    return {
        "layout": {
            "name": "small",
            "phi_low": 1,
            "phi_high": 4,
            "expected_count": 32,
            "depths": [
                {"depth": 1, "bands": [{"eta_min": -2, "eta_max": 2, "phi_step": 1}]},
                {"depth": 2, "bands": [{"eta_min": -2, "eta_max": 2, "phi_step": 1}]},
            ],
        },
        "assignment": {
            "model": "wedge",
            "phi_count": 4,
            "phi_per_unit": 4,
            "phi_offset": 0,
            "units_per_box": 2,
            "regions": "eta_side",
        },
        "neighbors": {"precompute": False},
        "output": {"json_indent": 1, "map_dpi": 50},
    }


@pytest.fixture
def small_config_file(tmp_path, small_config_dict):
    """Write the 32-channel configuration to a temporary YAML file."""
    import yaml

    config_file = tmp_path / "small.yml"
    with open(config_file, "w") as f:
        yaml.dump(small_config_dict, f, default_flow_style=False, indent=2)
    return config_file


@pytest.fixture
def invalid_config_file(tmp_path):
    """Create an invalid YAML configuration file for testing."""
    config_file = tmp_path / "invalid_config.yml"
    config_file.write_text("invalid: yaml: content: [unclosed")
    return config_file
