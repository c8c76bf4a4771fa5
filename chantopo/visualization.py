"""Visualization utilities for the channel topology."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import matplotlib.pyplot as plt
import numpy as np

from chantopo.layout import COARSE_PHI_STEP
from chantopo.log_config import get_logger

if TYPE_CHECKING:
    from chantopo.topology import TopologyIndex

logger = get_logger(__name__)


def _unit_grid(
    index: TopologyIndex, depth: int
) -> tuple[np.ndarray, list[int], list[int]]:
    """Return an eta x phi array of unit ids (NaN where no channel exists)."""
    rules = index.rules
    etas = sorted({c.eta for c in index.channels if c.depth == depth})
    phis = list(range(rules.phi_low, rules.phi_high + 1))
    grid = np.full((len(etas), len(phis)), np.nan)
    row_of = {eta: r for r, eta in enumerate(etas)}

    coarse_etas = {
        eta
        for layout in rules.depths
        if layout.depth == depth
        for band in layout.bands
        if band.phi_step == COARSE_PHI_STEP
        for eta in band.etas()
    }
    for i, channel in enumerate(index.channels):
        if channel.depth != depth:
            continue
        row = row_of[channel.eta]
        col = channel.phi - rules.phi_low
        grid[row, col] = index.unit_of(i)
        # Double-width towers cover the following phi cell as well
        if channel.eta in coarse_etas and col + 1 < len(phis):
            grid[row, col + 1] = index.unit_of(i)
    return grid, etas, phis


def export_unit_map(
    index: TopologyIndex,
    depth: int,
    output_path: Path,
    highlight_unit: int | None = None,
    dpi: int = 150,
) -> None:
    """Export an eta-phi map of one depth coloured by unit.

    Args:
        index: Topology index to draw.
        depth: Depth to draw.
        output_path: Image path; the format follows the file suffix.
        highlight_unit: Optional unit whose members and cross-unit neighbors
            are marked on the map.
        dpi: Output resolution.

    Raises:
        ValueError: If the depth has no channels or the unit id is invalid.
        RuntimeError: If rendering or saving fails.
    """
    if depth not in index.rules.depth_values():
        raise ValueError(f"Cannot create map: no channels at depth {depth}")
    if highlight_unit is not None and not 0 <= highlight_unit < index.n_units:
        raise ValueError(f"Cannot create map: unit {highlight_unit} does not exist")

    logger.info(f"Exporting unit map for depth {depth} to {output_path}")
    grid, etas, phis = _unit_grid(index, depth)

    fig = None
    try:
        fig, ax = plt.subplots(figsize=(12, max(4.0, 0.25 * len(etas))))
        ax.imshow(
            np.ma.masked_invalid(grid),
            cmap="tab20",
            aspect="auto",
            interpolation="nearest",
            origin="lower",
            extent=(phis[0] - 0.5, phis[-1] + 0.5, -0.5, len(etas) - 0.5),
        )
        ax.set_yticks(range(len(etas)))
        ax.set_yticklabels([str(eta) for eta in etas], fontsize=6)
        ax.set_xlabel("phi")
        ax.set_ylabel("eta")
        title = f"{index.rules.name}: units at depth {depth}"

        if highlight_unit is not None:
            row_of = {eta: r for r, eta in enumerate(etas)}
            members = [
                index.id_of(i)
                for i in index.members_of_unit(highlight_unit)
                if index.id_of(i).depth == depth
            ]
            neighbors = [
                index.id_of(i)
                for i in index.neighbors_of_unit(highlight_unit)
                if index.id_of(i).depth == depth
            ]
            ax.scatter(
                [c.phi for c in members],
                [row_of[c.eta] for c in members],
                marker="s",
                s=18,
                facecolors="none",
                edgecolors="black",
            )
            ax.scatter(
                [c.phi for c in neighbors],
                [row_of[c.eta] for c in neighbors],
                marker="x",
                s=18,
                color="red",
            )
            title += f" (unit {highlight_unit} and neighbors)"

        ax.set_title(title, fontsize=12)
        plt.tight_layout()
        output_path.parent.mkdir(parents=True, exist_ok=True)
        fig.savefig(output_path, dpi=dpi, bbox_inches="tight")
    except Exception as e:
        if output_path.exists():
            output_path.unlink()
            logger.debug(f"Cleaned up partial file: {output_path}")
        raise RuntimeError(f"Failed to export unit map to {output_path}: {e}") from e
    finally:
        if fig is not None:
            plt.close(fig)

    logger.info(f"Saved unit map → {output_path}")
