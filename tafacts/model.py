from __future__ import annotations

from enum import Enum
from typing import Dict, Iterator, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field

from .errors import UnknownTagError


class NodeKind(str, Enum):
	"""Entity kinds. The value is the tag written to the TA file."""

	FILE = "file"
	SUBSYSTEM = "subsystem"
	CLASS = "class"
	FUNCTION = "function"
	VARIABLE = "object"
	ENUM = "enum"

	@classmethod
	def from_tag(cls, tag: str) -> "NodeKind":
		try:
			return cls(tag)
		except ValueError:
			raise UnknownTagError(f"unknown entity kind: {tag}") from None


class EdgeKind(str, Enum):
	"""Relation kinds. The value is the relation name written to the TA file."""

	CONTAINS = "contain"
	FILE_CONTAINS = "fileContain"
	CALLS = "call"
	REFERENCES = "reference"
	INHERITS = "inherit"

	@classmethod
	def from_tag(cls, tag: str) -> "EdgeKind":
		try:
			return cls(tag)
		except ValueError:
			raise UnknownTagError(f"unknown relation: {tag}") from None


class AttributeMap(BaseModel):
	"""Multi-valued attributes: key -> ordered, duplicate-free values."""

	entries: Dict[str, List[str]] = Field(default_factory=dict)

	def add(self, key: str, value: str) -> bool:
		values = self.entries.setdefault(key, [])
		if value not in values:
			values.append(value)
		return True

	def get(self, key: str) -> List[str]:
		return list(self.entries.get(key, []))

	def has(self, key: str, value: Optional[str] = None) -> bool:
		if key not in self.entries:
			return False
		return value is None or value in self.entries[key]

	def clear(self, key: str) -> bool:
		return self.entries.pop(key, None) is not None

	def keys(self) -> List[str]:
		return list(self.entries)

	def items(self) -> Iterator[Tuple[str, List[str]]]:
		for key, values in self.entries.items():
			yield key, list(values)

	def as_sets(self) -> Dict[str, frozenset]:
		return {key: frozenset(values) for key, values in self.entries.items()}

	def __len__(self) -> int:
		return len(self.entries)

	def __bool__(self) -> bool:
		return bool(self.entries)


class Node(BaseModel):
	"""A graph entity. Fields are fixed once built; attributes only grow."""

	model_config = ConfigDict(frozen=True)

	id: str
	name: str
	kind: NodeKind
	attributes: AttributeMap = Field(default_factory=AttributeMap)


EdgeKey = Tuple[str, str, EdgeKind]


class Edge(BaseModel):
	model_config = ConfigDict(frozen=True)

	source_id: str
	dest_id: str
	kind: EdgeKind
	resolved: bool = False
	attributes: AttributeMap = Field(default_factory=AttributeMap)

	@property
	def key(self) -> EdgeKey:
		return (self.source_id, self.dest_id, self.kind)


class ResolveReport(BaseModel):
	resolved: int = 0
	unresolved: int = 0


class ApplyReport(BaseModel):
	nodes: int = 0
	edges: int = 0
	missing_targets: int = 0


class FileInfo(BaseModel):
	path: str
	rel_path: str
	language: str
	package: Optional[str] = None
	module: Optional[str] = None


class Summaries(BaseModel):
	global_overview: str
	nodes_by_kind: Dict[str, int]
	edges_by_kind: Dict[str, int]
	per_file: Dict[str, str]


class ExtractResult(BaseModel):
	ta: str
	summaries: Summaries
