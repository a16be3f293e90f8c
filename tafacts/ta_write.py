from __future__ import annotations

from datetime import datetime
from typing import Dict, Iterable, List, Optional, Set, Tuple

from .config import DEFAULT_CONFIG, ExtractConfig
from .graph import FactGraph
from .model import AttributeMap, EdgeKind, NodeKind
from .ta_lex import quote
from .ta_parse import ATTRIBUTE_FLAG, RELATION_FLAG, SCHEME_FLAG


HEADER = "// Tuple-Attribute fact base generated by tafacts"


def render_attributes(attributes: AttributeMap) -> str:
	parts: List[str] = []
	for key, values in attributes.items():
		if not values:
			continue
		if len(values) == 1:
			parts.append(f"{quote(key)} = {quote(values[0])}")
		else:
			parts.append(f"{quote(key)} = ( {' '.join(quote(v) for v in values)} )")
	return "{ " + " ".join(parts) + " }"


def render_schema() -> List[str]:
	lines = [f"{SCHEME_FLAG} :"]
	for kind in NodeKind:
		lines.append(f"$INHERIT {kind.value} $ENTITY")
	for kind in EdgeKind:
		lines.append(f"{kind.value} $ENTITY $ENTITY")
	lines.append("")
	return lines


def _relation_lines(relations: Dict[str, Set[Tuple[str, str]]]) -> Iterable[str]:
	for name, pairs in relations.items():
		for a, b in sorted(pairs):
			yield f"{quote(name, False)} {quote(a, False)} {quote(b, False)}"


def write_ta(
	graph: FactGraph,
	config: ExtractConfig = DEFAULT_CONFIG,
	schema: bool = False,
	now: Optional[datetime] = None,
) -> str:
	"""Render the graph as Tuple-Attribute text.

	The entity relation comes first, then one relation per edge kind in the
	order it is first met. Pairs within a relation are sorted.
	"""
	stamp = (now or datetime.now()).strftime("%A, %B %d %Y %H:%M:%S")
	nodes = [n for n in graph.nodes() if config.includes(n.kind)]
	excluded = {n.id for n in graph.nodes() if not config.includes(n.kind)}
	edges = [e for e in graph.edges() if e.source_id not in excluded and e.dest_id not in excluded]

	relations: Dict[str, Set[Tuple[str, str]]] = {config.entity_relation: set()}
	for node in nodes:
		relations[config.entity_relation].add((node.id, node.kind.value))
	for edge in edges:
		relations.setdefault(edge.kind.value, set()).add((edge.source_id, edge.dest_id))

	lines: List[str] = [HEADER, f"// Generated on: {stamp}", ""]
	if schema:
		lines.extend(render_schema())
	lines.append(f"{RELATION_FLAG} :")
	lines.extend(_relation_lines(relations))
	lines.append("")
	lines.append(f"{ATTRIBUTE_FLAG} :")
	for node in nodes:
		if node.attributes:
			lines.append(f"{quote(node.id)} {render_attributes(node.attributes)}")
	for edge in edges:
		if edge.attributes:
			lines.append(f"( {quote(edge.source_id)} {quote(edge.dest_id)} ) {render_attributes(edge.attributes)}")
	return "\n".join(lines) + "\n"
