from __future__ import annotations

import logging
import os
from typing import Dict, List

from .ast_parse import producer_for
from .config import DEFAULT_CONFIG, ExtractConfig
from .fs_scan import build_hierarchy, scan_repository
from .graph import FactGraph
from .hierarchy import attach_hierarchy
from .model import FileInfo


logger = logging.getLogger(__name__)


def extract_repository(root: str, config: ExtractConfig = DEFAULT_CONFIG) -> FactGraph:
	"""Scan ``root``, run the front ends, attach containers and resolve."""
	root = os.path.abspath(root)
	if not os.path.isdir(root):
		raise NotADirectoryError(root)

	files = scan_repository(root)
	by_language: Dict[str, List[FileInfo]] = {}
	for f in files:
		by_language.setdefault(f.language, []).append(f)

	graph = FactGraph()
	handled: List[FileInfo] = []
	for language, group in sorted(by_language.items()):
		producer = producer_for(language)
		if producer is None:
			logger.debug("no front end for %s, %d files only placed in the hierarchy", language, len(group))
		else:
			producer.produce(group, graph)
		handled.extend(group)

	attach_hierarchy(graph, build_hierarchy(handled), config)
	graph.resolve_references()
	return graph
