# site_linkgraph/export.py
"""
Serialize a LinkGraph for external visualization clients.

Two shapes:
- Edge list: [{"source": ..., "target": ...}, ...]. The client derives the
  node set from edge endpoints. Depth/state may be added per record.
- Force graph: {"nodes": [...], "links": [...]}, the shape consumed by
  d3-force / force-graph, with node attributes for coloring by depth/state.
"""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Mapping

from site_linkgraph.graph import LinkGraph

log = logging.getLogger(__name__)


def to_edge_records(graph: LinkGraph, *, include_metadata: bool = False) -> List[Dict[str, Any]]:
    """Edges in insertion order as a flat list of records."""
    records: List[Dict[str, Any]] = []
    for link in graph.edges():
        record: Dict[str, Any] = {"source": link.source, "target": link.target}
        if include_metadata:
            source = graph.page(link.source)
            target = graph.page(link.target)
            record["source_depth"] = source.depth
            record["target_depth"] = target.depth
            record["target_state"] = target.state
        records.append(record)
    return records


def from_edge_records(records: Iterable[Mapping[str, Any]]) -> LinkGraph:
    """
    Rebuild a graph from edge records. Nodes come from edge endpoints in
    first-seen order; depth is restored when the record carries it.
    """
    graph = LinkGraph()
    for i, record in enumerate(records):
        try:
            source = record["source"]
            target = record["target"]
        except KeyError as e:
            raise ValueError(f"Edge record {i} is missing {e.args[0]!r}: {record!r}") from e
        graph.add_page(source, depth=record.get("source_depth"))
        graph.add_page(target, depth=record.get("target_depth"))
        graph.add_edge(source, target)
    return graph


def to_force_graph(graph: LinkGraph) -> Dict[str, List[Dict[str, Any]]]:
    nodes = [
        {
            "id": page.url,
            "depth": page.depth,
            "state": page.state,
            "status_code": page.status_code,
            "in_degree": graph.in_degree(page.url),
            "out_degree": graph.out_degree(page.url),
        }
        for page in graph.nodes()
    ]
    return {"nodes": nodes, "links": to_edge_records(graph)}


def write_json(data: Any, path: str | Path) -> Path:
    out_path = Path(path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)
    log.info("Wrote %s", out_path)
    return out_path


def read_edge_records(path: str | Path) -> List[Dict[str, Any]]:
    """Load an edge list, or the links of a force-graph file."""
    with Path(path).open("r", encoding="utf-8") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("links", [])
    if not isinstance(data, list):
        raise ValueError(f"{path} does not contain an edge list")
    return data
