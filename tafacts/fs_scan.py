from __future__ import annotations

import os
from typing import Dict, Iterable, List, Optional

from .model import Edge, EdgeKind, FileInfo, Node, NodeKind


EXTENSION_LANGUAGE: Dict[str, str] = {
	".py": "python",
	".ts": "typescript",
	".tsx": "typescript",
	".js": "javascript",
	".jsx": "javascript",
	".java": "java",
	".go": "go",
	".rs": "rust",
	".c": "c",
	".h": "c",
	".cpp": "cpp",
	".cc": "cpp",
	".hpp": "cpp",
}

IGNORED_DIRS = {".git", "node_modules", "dist", "build", "__pycache__", ".venv", "venv"}


def detect_language(filename: str) -> str:
	_, ext = os.path.splitext(filename)
	return EXTENSION_LANGUAGE.get(ext.lower(), "unknown")


def to_rel_path(root: str, file_path: str) -> str:
	return os.path.relpath(file_path, root).replace(os.sep, "/")


def to_module_name(rel_path: str) -> str:
	without_ext = os.path.splitext(rel_path)[0]
	parts = [part for part in without_ext.split("/") if part != "__init__"]
	return ".".join(parts).replace("-", "_")


def to_package_name(module_name: str) -> str:
	if "." in module_name:
		return module_name.rsplit(".", 1)[0]
	return ""


def scan_repository(root: str) -> List[FileInfo]:
	files: List[FileInfo] = []
	for dirpath, dirnames, filenames in os.walk(root):
		dirnames[:] = sorted(d for d in dirnames if d not in IGNORED_DIRS)
		for filename in sorted(filenames):
			language = detect_language(filename)
			if language == "unknown":
				continue
			path = os.path.join(dirpath, filename)
			rel_path = to_rel_path(root, path)
			module = None
			package = None
			if language == "python":
				module = to_module_name(rel_path)
				package = to_package_name(module)
			files.append(
				FileInfo(
					path=path,
					rel_path=rel_path,
					language=language,
					package=package or None,
					module=module or None,
				)
			)
	return files


class Hierarchy:
	"""Subsystem and file containers for a set of source files.

	Every directory on a file's path becomes a Subsystem node, every file a
	File node, and each is linked to its parent directory by a Contains edge.
	Node ids are the slash-separated paths relative to the scanned root.
	"""

	def __init__(self):
		self.nodes: Dict[str, Node] = {}
		self.edges: List[Edge] = []
		self.parents: Dict[str, str] = {}

	def _add(self, node_id: str, kind: NodeKind, parent: Optional[str]) -> Node:
		node = self.nodes.get(node_id)
		if node is not None:
			return node
		node = Node(id=node_id, name=node_id.rsplit("/", 1)[-1], kind=kind)
		self.nodes[node_id] = node
		if parent is not None:
			self.parents[node_id] = parent
			self.edges.append(Edge(source_id=parent, dest_id=node_id, kind=EdgeKind.CONTAINS, resolved=True))
		return node

	def add_path(self, rel_path: str, language: Optional[str] = None) -> Node:
		parts = [p for p in rel_path.split("/") if p and p != "."]
		parent: Optional[str] = None
		for i in range(1, len(parts)):
			dir_id = "/".join(parts[:i])
			self._add(dir_id, NodeKind.SUBSYSTEM, parent)
			parent = dir_id
		node = self._add("/".join(parts), NodeKind.FILE, parent)
		if language:
			node.attributes.add("language", language)
		return node

	def file_node(self, rel_path: str) -> Optional[Node]:
		node = self.nodes.get(rel_path)
		if node is None or node.kind != NodeKind.FILE:
			return None
		return node

	def parent_of(self, node_id: str) -> Optional[str]:
		return self.parents.get(node_id)


def build_hierarchy(files: Iterable[FileInfo]) -> Hierarchy:
	hierarchy = Hierarchy()
	for f in files:
		hierarchy.add_path(f.rel_path, f.language)
	return hierarchy
