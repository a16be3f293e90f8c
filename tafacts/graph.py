from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional, Tuple, Union

from .model import Edge, EdgeKey, EdgeKind, Node, NodeKind, ResolveReport


logger = logging.getLogger(__name__)

ContainerLookup = Callable[[str], Optional[Node]]


class FactGraph:
	"""In-memory fact base of nodes and edges.

	Nodes are stored by id and edges by source id. The name index and the
	destination index are derived from those two tables and can be rebuilt at
	any time with ``rebuild_indices``. Edge endpoints are plain ids, looked up
	through the graph when needed.
	"""

	def __init__(self):
		self._nodes: Dict[str, Node] = {}
		self._edges_by_src: Dict[str, List[Edge]] = {}
		self._names: Dict[str, List[str]] = {}
		self._edges_by_dst: Dict[str, List[Edge]] = {}

	# Mutation

	def add_node(self, node: Node, trusted: bool = False) -> bool:
		"""Register a copy of a node unless its id is taken.

		``trusted`` skips the duplicate check. The caller's object is never
		stored, so later changes to its attributes do not reach the graph.
		"""
		if not trusted and node.id in self._nodes:
			logger.debug("duplicate node id rejected: %s", node.id)
			return False
		previous = self._nodes.get(node.id)
		if previous is not None:
			self._unindex_name(previous)
		self._nodes[node.id] = node.model_copy(deep=True)
		self._names.setdefault(node.name, []).append(node.id)
		return True

	def add_edge(self, edge: Edge, trusted: bool = False) -> bool:
		"""Insert an edge, keeping containment a forest.

		Contains self-loops are always rejected. Duplicate ``(src, dst, kind)``
		edges are rejected unless ``trusted``. A new Contains edge replaces any
		Contains edge already pointing at the same destination.
		"""
		if edge.kind == EdgeKind.CONTAINS and edge.source_id == edge.dest_id:
			logger.debug("contain self-loop rejected: %s", edge.source_id)
			return False
		if not trusted and self.find_edge(edge.source_id, edge.dest_id, edge.kind) is not None:
			return False

		if edge.kind == EdgeKind.CONTAINS:
			for parent in self.edges_to(edge.dest_id, EdgeKind.CONTAINS):
				self.remove_edge(parent)

		edge = edge.model_copy(deep=True)
		self._edges_by_src.setdefault(edge.source_id, []).append(edge)
		self._edges_by_dst.setdefault(edge.dest_id, []).append(edge)
		return True

	def remove_node_safe(self, node_id: str) -> bool:
		"""Remove a node and every edge it takes part in."""
		if not self.remove_node_unsafe(node_id):
			return False
		for edge in self.edges_from(node_id) + self.edges_to(node_id):
			self.remove_edge(edge)
		return True

	def remove_node_unsafe(self, node_id: str) -> bool:
		"""Remove only the node entry. Edges naming it are left in place."""
		node = self._nodes.pop(node_id, None)
		if node is None:
			return False
		self._unindex_name(node)
		return True

	def remove_edge(self, edge: Edge) -> bool:
		key = edge.key
		removed = _drop_edge(self._edges_by_src, edge.source_id, key)
		_drop_edge(self._edges_by_dst, edge.dest_id, key)
		return removed

	def add_node_attribute(self, node_id: str, key: str, value: str) -> bool:
		node = self._nodes.get(node_id)
		if node is None:
			return False
		return node.attributes.add(key, value)

	def add_edge_attribute(self, source_id: str, dest_id: str, kind: EdgeKind, key: str, value: str) -> bool:
		edge = self.find_edge(source_id, dest_id, kind)
		if edge is None:
			return False
		return edge.attributes.add(key, value)

	# Front end contract

	def create_node(self, node_id: str, name: str, kind: NodeKind) -> bool:
		return self.add_node(Node(id=node_id, name=name, kind=kind))

	def create_edge(self, source_id: str, dest_id: str, kind: EdgeKind) -> bool:
		resolved = source_id in self._nodes and dest_id in self._nodes
		return self.add_edge(Edge(source_id=source_id, dest_id=dest_id, kind=kind, resolved=resolved))

	def set_attribute(self, target: Union[str, EdgeKey], key: str, value: str) -> bool:
		if isinstance(target, tuple):
			source_id, dest_id, kind = target
			return self.add_edge_attribute(source_id, dest_id, kind, key, value)
		return self.add_node_attribute(target, key, value)

	# Queries

	def find_node(self, node_id: str) -> Optional[Node]:
		return self._nodes.get(node_id)

	def find_nodes_by_name(self, name: str) -> List[Node]:
		return [self._nodes[i] for i in self._names.get(name, []) if i in self._nodes]

	def find_edge(self, source_id: str, dest_id: str, kind: EdgeKind) -> Optional[Edge]:
		for edge in self._edges_by_src.get(source_id, []):
			if edge.dest_id == dest_id and edge.kind == kind:
				return edge
		return None

	def edges_from(self, node_id: str, kind: Optional[EdgeKind] = None) -> List[Edge]:
		return [e for e in self._edges_by_src.get(node_id, []) if kind is None or e.kind == kind]

	def edges_to(self, node_id: str, kind: Optional[EdgeKind] = None) -> List[Edge]:
		return [e for e in self._edges_by_dst.get(node_id, []) if kind is None or e.kind == kind]

	def edges_between(self, source_id: str, dest_id: str) -> List[Edge]:
		return [e for e in self._edges_by_src.get(source_id, []) if e.dest_id == dest_id]

	def nodes(self) -> List[Node]:
		return list(self._nodes.values())

	def edges(self) -> List[Edge]:
		return [edge for edges in self._edges_by_src.values() for edge in edges]

	def is_empty(self) -> bool:
		return not self._nodes and not any(self._edges_by_src.values())

	def __len__(self) -> int:
		return len(self._nodes)

	def __contains__(self, node_id: object) -> bool:
		return node_id in self._nodes

	# Bulk passes

	def resolve_references(self) -> ResolveReport:
		"""Bind unresolved edges whose endpoints both exist; drop the rest."""
		report = ResolveReport()
		dangling: List[Edge] = []
		for edge in self.edges():
			if edge.resolved:
				report.resolved += 1
				continue
			if edge.source_id in self._nodes and edge.dest_id in self._nodes:
				self._mark_resolved(edge)
				report.resolved += 1
			else:
				dangling.append(edge)
		for edge in dangling:
			self.remove_edge(edge)
		report.unresolved = len(dangling)
		logger.info("references resolved: %d, unresolved: %d", report.resolved, report.unresolved)
		return report

	def attach_to_containers(self, lookup: ContainerLookup, file_attribute: str = "filename") -> int:
		"""Add a FileContains edge from each node's container to the node.

		Only nodes with exactly one value under ``file_attribute`` are
		attached. Returns the number of edges added.
		"""
		added = 0
		for node in self.nodes():
			values = node.attributes.get(file_attribute)
			if len(values) != 1 or not values[0]:
				continue
			container = lookup(values[0])
			if container is None or container.id == node.id:
				continue
			edge = Edge(source_id=container.id, dest_id=node.id, kind=EdgeKind.FILE_CONTAINS, resolved=container.id in self._nodes)
			if self.add_edge(edge):
				added += 1
		logger.debug("attached %d nodes to containers", added)
		return added

	def rebuild_indices(self) -> None:
		self._names = {}
		for node in self._nodes.values():
			self._names.setdefault(node.name, []).append(node.id)
		self._edges_by_dst = {}
		for edge in self.edges():
			self._edges_by_dst.setdefault(edge.dest_id, []).append(edge)

	def clear(self) -> None:
		self._nodes.clear()
		self._edges_by_src.clear()
		self._names.clear()
		self._edges_by_dst.clear()

	def _mark_resolved(self, edge: Edge) -> None:
		bound = edge.model_copy(update={"resolved": True})
		for table, node_id in ((self._edges_by_src, edge.source_id), (self._edges_by_dst, edge.dest_id)):
			edges = table[node_id]
			for i, candidate in enumerate(edges):
				if candidate is edge:
					edges[i] = bound
					break

	def _unindex_name(self, node: Node) -> None:
		ids = self._names.get(node.name)
		if not ids:
			return
		if node.id in ids:
			ids.remove(node.id)
		if not ids:
			del self._names[node.name]


def _drop_edge(table: Dict[str, List[Edge]], node_id: str, key: Tuple[str, str, EdgeKind]) -> bool:
	edges = table.get(node_id)
	if not edges:
		return False
	kept = [e for e in edges if e.key != key]
	if kept:
		table[node_id] = kept
	else:
		del table[node_id]
	return len(kept) != len(edges)
