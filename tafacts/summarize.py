from __future__ import annotations

from collections import Counter
from typing import Dict, List

from .graph import FactGraph
from .model import EdgeKind, Node, NodeKind, Summaries


def summarize_file(graph: FactGraph, node: Node) -> str:
	members = [graph.find_node(e.dest_id) for e in graph.edges_from(node.id, EdgeKind.FILE_CONTAINS)]
	by_kind: Dict[NodeKind, List[str]] = {}
	for member in members:
		if member is not None:
			by_kind.setdefault(member.kind, []).append(member.name)
	parts: List[str] = [f"File {node.id}"]
	for kind in (NodeKind.CLASS, NodeKind.ENUM, NodeKind.FUNCTION, NodeKind.VARIABLE):
		names = by_kind.get(kind)
		if names:
			parts.append(f"  {kind.name.title()}: {', '.join(sorted(names)[:10])}")
	return "\n".join(parts)


def summarize_graph(graph: FactGraph) -> Summaries:
	nodes_by_kind = Counter(n.kind.value for n in graph.nodes())
	edges_by_kind = Counter(e.kind.value for e in graph.edges())

	per_file: Dict[str, str] = {}
	for node in graph.nodes():
		if node.kind == NodeKind.FILE:
			per_file[node.id] = summarize_file(graph, node)

	global_overview = (
		f"Fact base: {len(graph)} entities, {sum(edges_by_kind.values())} relations, "
		f"{nodes_by_kind.get(NodeKind.FILE.value, 0)} files, "
		f"{nodes_by_kind.get(NodeKind.SUBSYSTEM.value, 0)} subsystems"
	)

	return Summaries(
		global_overview=global_overview,
		nodes_by_kind=dict(nodes_by_kind),
		edges_by_kind=dict(edges_by_kind),
		per_file=per_file,
	)
