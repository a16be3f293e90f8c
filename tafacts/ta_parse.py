"""Tuple-Attribute text parser.

Parsing happens in two steps. ``parse_ta`` turns the text into a
``TADocument`` without touching any graph, raising ``FormatError`` on the
first grammar violation. ``TADocument.apply`` then loads the document into a
``FactGraph``; it never raises, so a malformed file leaves the graph as it
was.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Set, Tuple, Union

from .config import DEFAULT_CONFIG, ExtractConfig
from .errors import FormatError, UnknownTagError
from .graph import FactGraph
from .model import ApplyReport, Edge, EdgeKind, Node, NodeKind
from .ta_lex import TALexer, Token, TokenKind


logger = logging.getLogger(__name__)

SCHEME_FLAG = "SCHEME TUPLE"
RELATION_FLAG = "FACT TUPLE"
ATTRIBUTE_FLAG = "FACT ATTRIBUTE"

Pair = Tuple[str, str]
AttributeTarget = Union[str, Pair]
AttributeBlock = Dict[str, List[str]]


@dataclass
class TADocument:
	entity_relation: str
	relations: Dict[str, Set[Pair]] = field(default_factory=dict)
	entity_kinds: Dict[str, NodeKind] = field(default_factory=dict)
	entity_attributes: Dict[str, AttributeBlock] = field(default_factory=dict)
	pair_attributes: Dict[Pair, AttributeBlock] = field(default_factory=dict)

	def add_relation(self, name: str, a: str, b: str, lineno: int) -> None:
		if name == self.entity_relation:
			try:
				kind = NodeKind.from_tag(b)
			except UnknownTagError as e:
				raise FormatError(str(e), lineno) from None
			known = self.entity_kinds.get(a)
			if known is not None and known != kind:
				raise FormatError(f"entity {a} declared as both {known.value} and {kind.value}", lineno)
			self.entity_kinds[a] = kind
		else:
			try:
				EdgeKind.from_tag(name)
			except UnknownTagError as e:
				raise FormatError(str(e), lineno) from None
		self.relations.setdefault(name, set()).add((a, b))

	def add_attributes(self, target: AttributeTarget, block: AttributeBlock) -> None:
		if isinstance(target, tuple):
			merged = self.pair_attributes.setdefault(target, {})
		else:
			merged = self.entity_attributes.setdefault(target, {})
		for key, values in block.items():
			current = merged.setdefault(key, [])
			for value in values:
				if value not in current:
					current.append(value)

	def apply(self, graph: FactGraph, config: ExtractConfig = DEFAULT_CONFIG, trusted: Optional[bool] = None) -> ApplyReport:
		"""Load the document into ``graph``. Edges are inserted unresolved."""
		report = ApplyReport()
		if trusted is None:
			trusted = graph.is_empty()

		for node_id, _tag in sorted(self.relations.get(self.entity_relation, ())):
			labels = self.entity_attributes.get(node_id, {}).get(config.label_attribute, [])
			name = labels[0] if len(labels) == 1 else node_id
			node = Node(id=node_id, name=name, kind=self.entity_kinds[node_id])
			if graph.add_node(node, trusted=trusted):
				report.nodes += 1

		for rel_name, pairs in self.relations.items():
			if rel_name == self.entity_relation:
				continue
			kind = EdgeKind(rel_name)
			for src, dst in sorted(pairs):
				if graph.add_edge(Edge(source_id=src, dest_id=dst, kind=kind)):
					report.edges += 1

		for node_id, block in self.entity_attributes.items():
			node = graph.find_node(node_id)
			if node is None:
				logger.warning("attributes given for unknown entity %s", node_id)
				report.missing_targets += 1
				continue
			for key, values in block.items():
				for value in values:
					node.attributes.add(key, value)

		for (src, dst), block in self.pair_attributes.items():
			edges = graph.edges_between(src, dst)
			if not edges:
				logger.warning("attributes given for unknown relation (%s %s)", src, dst)
				report.missing_targets += 1
				continue
			for edge in edges:
				for key, values in block.items():
					for value in values:
						edge.attributes.add(key, value)

		logger.debug("applied %d nodes, %d edges", report.nodes, report.edges)
		return report


def _section_header(line: str) -> Optional[str]:
	for flag in (SCHEME_FLAG, RELATION_FLAG, ATTRIBUTE_FLAG):
		if line.startswith(flag):
			return flag
	return None


def parse_ta(text: str, config: ExtractConfig = DEFAULT_CONFIG) -> TADocument:
	document = TADocument(entity_relation=config.entity_relation)
	lexer = TALexer()
	section: Optional[str] = None
	tuple_seen = False
	lineno = 0

	for lineno, line in enumerate(text.splitlines(), start=1):
		header = None if lexer.in_block_comment else _section_header(line)
		if header is not None:
			if header == SCHEME_FLAG and section == SCHEME_FLAG:
				raise FormatError(f"unexpected {SCHEME_FLAG} inside schema section", lineno)
			if header == ATTRIBUTE_FLAG and not tuple_seen:
				raise FormatError(f"{ATTRIBUTE_FLAG} encountered before {RELATION_FLAG}", lineno)
			if header == RELATION_FLAG:
				tuple_seen = True
			section = header
			# a comment opened on the header line carries on below it
			lexer.strip_comments(line[len(header):])
			continue

		# schema bodies and preamble carry no facts, only comment state
		if section is None or section == SCHEME_FLAG:
			lexer.strip_comments(line)
			continue

		if section == RELATION_FLAG:
			tokens = lexer.tokenize(line, lineno, punctuation=False)
			if not tokens:
				continue
			if len(tokens) != 3:
				raise FormatError("relation line must hold exactly one tuple: name A B", lineno)
			name, a, b = (t.text for t in tokens)
			document.add_relation(name, a, b, lineno)
		else:
			tokens = lexer.tokenize(line, lineno)
			if not tokens:
				continue
			target, block = _AttributeLineParser(tokens, lineno).parse()
			document.add_attributes(target, block)

	if not tuple_seen:
		raise FormatError(f"no {RELATION_FLAG} section found", lineno or None)
	return document


class _AttributeLineParser:
	"""Recursive descent over the tokens of one attribute line.

	line   := target block
	target := WORD | '(' WORD WORD ')'
	block  := '{' (WORD '=' value)* '}'
	value  := WORD | '(' WORD* ')'

	STRING is accepted anywhere WORD is.
	"""

	def __init__(self, tokens: List[Token], lineno: int):
		self.tokens = tokens
		self.lineno = lineno
		self.pos = 0

	def parse(self) -> Tuple[AttributeTarget, AttributeBlock]:
		target = self._target()
		block = self._block()
		if self.pos < len(self.tokens):
			extra = self.tokens[self.pos]
			raise FormatError(f"unexpected {extra.text!r} after closing brace", extra.line)
		return target, block

	def _next(self, expected: str) -> Token:
		if self.pos >= len(self.tokens):
			raise FormatError(f"unexpected end of line, expected {expected}", self.lineno)
		token = self.tokens[self.pos]
		self.pos += 1
		return token

	def _expect(self, kind: TokenKind, expected: str) -> Token:
		token = self._next(expected)
		if token.kind != kind:
			raise FormatError(f"expected {expected}, got {token.text!r}", token.line)
		return token

	def _word(self, expected: str) -> str:
		token = self._next(expected)
		if token.kind not in (TokenKind.WORD, TokenKind.STRING):
			raise FormatError(f"expected {expected}, got {token.text!r}", token.line)
		return token.text

	def _target(self) -> AttributeTarget:
		token = self._next("attribute target")
		if token.kind == TokenKind.LPAREN:
			src = self._word("source id")
			dst = self._word("destination id")
			self._expect(TokenKind.RPAREN, "')'")
			return (src, dst)
		if token.kind in (TokenKind.WORD, TokenKind.STRING):
			return token.text
		raise FormatError(f"expected attribute target, got {token.text!r}", token.line)

	def _block(self) -> AttributeBlock:
		self._expect(TokenKind.LBRACE, "'{'")
		block: AttributeBlock = {}
		while True:
			token = self._next("'}'")
			if token.kind == TokenKind.RBRACE:
				return block
			if token.kind not in (TokenKind.WORD, TokenKind.STRING):
				raise FormatError(f"expected attribute name, got {token.text!r}", token.line)
			self._expect(TokenKind.EQUALS, f"'=' after {token.text}")
			values = block.setdefault(token.text, [])
			for value in self._value():
				if value not in values:
					values.append(value)

	def _value(self) -> List[str]:
		token = self._next("attribute value")
		if token.kind in (TokenKind.WORD, TokenKind.STRING):
			return [token.text]
		if token.kind != TokenKind.LPAREN:
			raise FormatError(f"expected attribute value, got {token.text!r}", token.line)
		values: List[str] = []
		while True:
			token = self._next("')'")
			if token.kind == TokenKind.RPAREN:
				return values
			if token.kind not in (TokenKind.WORD, TokenKind.STRING):
				raise FormatError(f"unexpected {token.text!r} in value list", token.line)
			values.append(token.text)


def read_ta(
	text: str,
	config: ExtractConfig = DEFAULT_CONFIG,
	graph: Optional[FactGraph] = None,
	resolve: bool = True,
) -> FactGraph:
	"""Parse TA text into ``graph`` (a new graph by default) and resolve it."""
	document = parse_ta(text, config)
	if graph is None:
		graph = FactGraph()
	document.apply(graph, config)
	if resolve:
		graph.resolve_references()
	return graph
