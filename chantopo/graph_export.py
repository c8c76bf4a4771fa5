"""NetworkX views and JSON export of the channel topology.

The channel graph has one node per channel index and one edge per cross-unit
neighbor pair. The unit graph collapses it onto units, weighting each edge by
the number of adjacent channel pairs between the two units.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

import networkx as nx

from chantopo.log_config import get_logger

if TYPE_CHECKING:
    from chantopo.topology import TopologyIndex

logger = get_logger(__name__)


def build_channel_graph(index: TopologyIndex) -> nx.Graph:
    """Return the cross-unit channel adjacency as an undirected graph.

    Node keys are channel indices; node attributes are ``depth``, ``eta``,
    ``phi``, ``unit`` and ``box``.
    """
    graph = nx.Graph(layout=index.rules.name)
    for i, channel in enumerate(index.channels):
        graph.add_node(
            i,
            depth=channel.depth,
            eta=channel.eta,
            phi=channel.phi,
            unit=index.unit_of(i),
            box=index.box_of(i),
        )
    for i in range(index.channel_count):
        for j in index.neighbors_of(i):
            if i < j:
                graph.add_edge(i, j)
    logger.debug(
        f"Channel graph: {graph.number_of_nodes():,} nodes, "
        f"{graph.number_of_edges():,} edges"
    )
    return graph


def build_unit_graph(index: TopologyIndex) -> nx.Graph:
    """Return the unit-level adjacency graph.

    Node keys are unit ids with ``box`` and ``size`` attributes (``box`` is
    None for units without channels); edge ``weight`` counts the adjacent
    channel pairs between two units.
    """
    graph = nx.Graph(layout=index.rules.name)
    for unit in range(index.n_units):
        members = index.members_of_unit(unit)
        box = index.box_of(members[0]) if members else None
        graph.add_node(unit, box=box, size=len(members))

    for i in range(index.channel_count):
        unit_i = index.unit_of(i)
        for j in index.neighbors_of(i):
            if i >= j:
                continue
            unit_j = index.unit_of(j)
            if graph.has_edge(unit_i, unit_j):
                graph[unit_i][unit_j]["weight"] += 1
            else:
                graph.add_edge(unit_i, unit_j, weight=1)
    return graph


def save_to_json(index: TopologyIndex, path: Path, indent: int = 2) -> None:
    """Save the channel topology to JSON.

    Args:
        index: Topology index to export.
        path: Output path for JSON file.
        indent: JSON indentation.
    """
    logger.info(f"Saving channel topology to JSON: {path}")

    graph = build_channel_graph(index)
    out: dict[str, Any] = {
        "layout": index.rules.name,
        "channel_count": index.channel_count,
        "n_units": index.n_units,
        "n_boxes": index.n_boxes,
        "nodes": [],
        "edges": [],
    }
    for node, data in graph.nodes(data=True):
        out["nodes"].append({"id": int(node), **data})
    for u, v in graph.edges():
        out["edges"].append({"source": int(u), "target": int(v)})

    path.parent.mkdir(parents=True, exist_ok=True)
    with path.open("w") as f:
        json.dump(out, f, indent=indent)

    size_kb = path.stat().st_size / 1024
    logger.info(f"Saved channel topology: {size_kb:.1f} KB")


def load_from_json(path: Path) -> nx.Graph:
    """Load a channel topology graph written by ``save_to_json``.

    Args:
        path: Input path for JSON file.

    Returns:
        Channel graph with the same nodes, attributes and edges, and the
        layout name, unit and box counts in ``graph.graph``.

    Raises:
        ValueError: If the file does not look like a channel topology export.
    """
    logger.info(f"Loading channel topology from JSON: {path}")

    with path.open("r") as f:
        data = json.load(f)

    for key in ("layout", "nodes", "edges"):
        if key not in data:
            raise ValueError(f"Channel topology JSON is missing '{key}'")

    graph = nx.Graph(
        layout=data["layout"],
        n_units=data.get("n_units"),
        n_boxes=data.get("n_boxes"),
    )
    for node_data in data["nodes"]:
        node_data = dict(node_data)
        key = int(node_data.pop("id"))
        graph.add_node(key, **node_data)
    for edge in data["edges"]:
        graph.add_edge(int(edge["source"]), int(edge["target"]))

    expected = data.get("channel_count")
    if expected is not None and expected != graph.number_of_nodes():
        raise ValueError(
            f"Channel topology JSON declares {expected} channels but lists "
            f"{graph.number_of_nodes()}"
        )

    logger.info(
        f"Loaded channel topology: {graph.number_of_nodes():,} nodes, "
        f"{graph.number_of_edges():,} edges"
    )
    return graph
