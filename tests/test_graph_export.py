"""Tests for networkx views and JSON export."""

from __future__ import annotations

import json
from pathlib import Path

import networkx as nx
import pytest

from chantopo.graph_export import (
    build_channel_graph,
    build_unit_graph,
    load_from_json,
    save_to_json,
)


class TestChannelGraph:
    def test_nodes_and_attrs(self, small_index):
        graph = build_channel_graph(small_index)
        assert graph.number_of_nodes() == 32
        assert graph.nodes[8] == {"depth": 1, "eta": 1, "phi": 1, "unit": 1, "box": 0}
        assert graph.graph["layout"] == "small"

    def test_edges_match_neighbors(self, small_index):
        graph = build_channel_graph(small_index)
        for i in range(small_index.channel_count):
            assert tuple(sorted(graph.neighbors(i))) == small_index.neighbors_of(i)

    def test_edge_count(self, small_index):
        # Each depth: 4 eta -1 cells x 3 eta 1 cells across the unit boundary
        assert build_channel_graph(small_index).number_of_edges() == 24

    def test_graph_is_bipartite_across_units(self, small_index):
        graph = build_channel_graph(small_index)
        for u, v in graph.edges():
            assert graph.nodes[u]["unit"] != graph.nodes[v]["unit"]


class TestUnitGraph:
    def test_two_units(self, small_index):
        graph = build_unit_graph(small_index)
        assert sorted(graph.nodes) == [0, 1]
        assert graph.nodes[0] == {"box": 0, "size": 16}
        assert graph[0][1]["weight"] == 24

    def test_hbhe_units_connected(self, hbhe_index):
        graph = build_unit_graph(hbhe_index)
        assert graph.number_of_nodes() == 288
        assert nx.is_connected(graph)
        total = sum(w for _, _, w in graph.edges(data="weight"))
        assert total == build_channel_graph(hbhe_index).number_of_edges()


class TestJson:
    def test_save_and_load(self, small_index, tmp_path: Path):
        path = tmp_path / "out" / "topology.json"
        save_to_json(small_index, path, indent=1)
        assert path.exists()

        raw = json.loads(path.read_text())
        assert raw["layout"] == "small"
        assert raw["channel_count"] == 32
        assert raw["n_units"] == 2

        graph = load_from_json(path)
        assert graph.number_of_nodes() == 32
        assert graph.number_of_edges() == 24
        assert graph.nodes[8]["unit"] == 1
        assert graph.graph["n_boxes"] == 1

    def test_load_rejects_foreign_json(self, tmp_path: Path):
        path = tmp_path / "other.json"
        path.write_text(json.dumps({"nodes": [], "edges": []}))
        with pytest.raises(ValueError, match="missing 'layout'"):
            load_from_json(path)

    def test_load_rejects_count_mismatch(self, tmp_path: Path):
        path = tmp_path / "short.json"
        path.write_text(
            json.dumps(
                {
                    "layout": "x",
                    "channel_count": 3,
                    "nodes": [{"id": 0}],
                    "edges": [],
                }
            )
        )
        with pytest.raises(ValueError, match="declares 3 channels"):
            load_from_json(path)
