from __future__ import annotations

import logging
from typing import Optional

from .config import DEFAULT_CONFIG, ExtractConfig
from .fs_scan import Hierarchy
from .graph import ContainerLookup, FactGraph
from .model import Node


logger = logging.getLogger(__name__)


def container_lookup(graph: FactGraph, hierarchy: Hierarchy, config: ExtractConfig = DEFAULT_CONFIG) -> ContainerLookup:
	"""Map a source path to the graph node that should contain its facts.

	With File nodes excluded, facts go to the file's directory instead.
	"""

	def lookup(path: str) -> Optional[Node]:
		file_node = hierarchy.file_node(path)
		if file_node is None:
			return None
		if config.include_files:
			return graph.find_node(file_node.id)
		if config.include_subsystems:
			parent = hierarchy.parent_of(file_node.id)
			if parent is not None:
				return graph.find_node(parent)
		return None

	return lookup


def attach_hierarchy(graph: FactGraph, hierarchy: Hierarchy, config: ExtractConfig = DEFAULT_CONFIG) -> int:
	"""Insert the container nodes and edges, then attach facts to them."""
	kept = set()
	for node in hierarchy.nodes.values():
		if not config.includes(node.kind):
			continue
		graph.add_node(node)
		kept.add(node.id)

	for edge in hierarchy.edges:
		if edge.source_id in kept and edge.dest_id in kept:
			graph.add_edge(edge)

	added = graph.attach_to_containers(container_lookup(graph, hierarchy, config), config.file_attribute)
	logger.info(
		"hierarchy attached: %d containers, %d facts placed",
		len(kept),
		added,
	)
	return added
