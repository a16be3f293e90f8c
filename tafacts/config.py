from __future__ import annotations

from pydantic import BaseModel

from .model import NodeKind


class ExtractConfig(BaseModel):
	"""Options shared by the codec, the hierarchy attachment and the pipeline."""

	include_files: bool = True
	include_subsystems: bool = True
	# relation whose tuples declare entities instead of edges
	entity_relation: str = "$INSTANCE"
	# attribute naming the source file a node was declared in
	file_attribute: str = "filename"
	label_attribute: str = "label"

	def includes(self, kind: NodeKind) -> bool:
		if kind == NodeKind.FILE:
			return self.include_files
		if kind == NodeKind.SUBSYSTEM:
			return self.include_subsystems
		return True


DEFAULT_CONFIG = ExtractConfig()
