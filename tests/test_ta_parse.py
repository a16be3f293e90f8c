from textwrap import dedent

import pytest

from tafacts.config import ExtractConfig
from tafacts.errors import FormatError
from tafacts.graph import FactGraph
from tafacts.model import EdgeKind, Node, NodeKind
from tafacts.ta_parse import parse_ta, read_ta


ENT = ExtractConfig(entity_relation="ent")


def _snapshot(graph):
	nodes = {(n.id, n.name, n.kind, tuple(sorted(n.attributes.as_sets().items()))) for n in graph.nodes()}
	edges = {(e.key, tuple(sorted(e.attributes.as_sets().items()))) for e in graph.edges()}
	return nodes, edges


def test_example_file():
	text = dedent(
		"""\
		SCHEME TUPLE :
		FACT TUPLE :
		ent foo file
		ent bar function
		contain foo bar
		FACT ATTRIBUTE :
		bar { signature = intfoo }
		"""
	)
	graph = read_ta(text, ENT)
	assert {(n.id, n.kind) for n in graph.nodes()} == {("foo", NodeKind.FILE), ("bar", NodeKind.FUNCTION)}
	edge = graph.find_edge("foo", "bar", EdgeKind.CONTAINS)
	assert edge is not None and edge.resolved
	assert len(graph.edges()) == 1
	assert graph.find_node("bar").attributes.get("signature") == ["intfoo"]


def test_schema_body_is_skipped():
	text = dedent(
		"""\
		// header comment
		SCHEME TUPLE :
		$INHERIT cFunction cRoot
		anything goes { here
		FACT TUPLE :
		$INSTANCE f function
		"""
	)
	graph = read_ta(text)
	assert [n.id for n in graph.nodes()] == ["f"]


def test_duplicate_pairs_collapse():
	document = parse_ta("FACT TUPLE :\ncall a b\ncall a b\ncall b a\n")
	assert document.relations["call"] == {("a", "b"), ("b", "a")}


def test_comments_in_sections():
	text = dedent(
		"""\
		FACT TUPLE :
		$INSTANCE a function // a
		/* $INSTANCE hidden function
		$INSTANCE also_hidden function */
		$INSTANCE b function
		call a b
		FACT ATTRIBUTE :
		a { k = v } // note
		/* b { k = ( */
		"""
	)
	graph = read_ta(text)
	assert {n.id for n in graph.nodes()} == {"a", "b"}
	assert graph.find_node("a").attributes.get("k") == ["v"]
	assert not graph.find_node("b").attributes


def test_pair_and_multi_valued_attributes():
	text = dedent(
		"""\
		FACT TUPLE :
		$INSTANCE a function
		$INSTANCE b function
		call a b
		reference a b
		FACT ATTRIBUTE :
		a { lines = ( 1 2 3 ) kind = "static inline" }
		(a b) { lineno = 4 }
		( a b ) { lineno = ( 4 5 ) }
		"""
	)
	graph = read_ta(text)
	assert graph.find_node("a").attributes.get("lines") == ["1", "2", "3"]
	assert graph.find_node("a").attributes.get("kind") == ["static inline"]
	for kind in (EdgeKind.CALLS, EdgeKind.REFERENCES):
		assert graph.find_edge("a", "b", kind).attributes.get("lineno") == ["4", "5"]


def test_label_attribute_names_node():
	text = "FACT TUPLE :\n$INSTANCE m.py[f] function\nFACT ATTRIBUTE :\nm.py[f] { label = pkg.m.f }\n"
	graph = read_ta(text)
	assert graph.find_nodes_by_name("pkg.m.f")[0].id == "m.py[f]"


def test_missing_equals_reports_line_and_leaves_graph_untouched():
	graph = FactGraph()
	graph.add_node(Node(id="keep", name="keep", kind=NodeKind.CLASS))
	before = _snapshot(graph)
	text = dedent(
		"""\
		FACT TUPLE :
		$INSTANCE bar function
		call bar keep
		FACT ATTRIBUTE :
		bar { k (missing equals) v }
		"""
	)
	with pytest.raises(FormatError) as exc:
		read_ta(text, graph=graph)
	assert exc.value.line == 5
	assert "line 5" in str(exc.value)
	assert _snapshot(graph) == before


@pytest.mark.parametrize(
	"body, line",
	[
		("FACT TUPLE :\ncall a\n", 2),
		("FACT TUPLE :\ncall a b c\n", 2),
		("FACT TUPLE :\n$INSTANCE a function\nFACT ATTRIBUTE :\na { k = v\n", 4),
		("FACT TUPLE :\n$INSTANCE a function\nFACT ATTRIBUTE :\na { k = ( v }\n", 4),
		("FACT TUPLE :\n$INSTANCE a function\nFACT ATTRIBUTE :\na k = v }\n", 4),
		("FACT TUPLE :\n$INSTANCE a function\nFACT ATTRIBUTE :\n( a ) { k = v }\n", 4),
		("FACT TUPLE :\n$INSTANCE a function\nFACT ATTRIBUTE :\na { k = v } extra\n", 4),
		("FACT TUPLE :\n$INSTANCE a function\nFACT ATTRIBUTE :\n\na {\n", 5),
	],
)
def test_grammar_violations(body, line):
	with pytest.raises(FormatError) as exc:
		parse_ta(body)
	assert exc.value.line == line


def test_attribute_section_before_tuples():
	with pytest.raises(FormatError) as exc:
		parse_ta("FACT ATTRIBUTE :\na { k = v }\nFACT TUPLE :\n")
	assert exc.value.line == 1


def test_missing_tuple_section():
	with pytest.raises(FormatError):
		parse_ta("SCHEME TUPLE :\n$INHERIT a b\n")
	with pytest.raises(FormatError):
		parse_ta("")


def test_schema_header_twice():
	with pytest.raises(FormatError) as exc:
		parse_ta("SCHEME TUPLE :\nx\nSCHEME TUPLE :\n")
	assert exc.value.line == 3


def test_unknown_tags():
	with pytest.raises(FormatError) as exc:
		parse_ta("FACT TUPLE :\n$INSTANCE a function\nvarWrite a a\n")
	assert exc.value.line == 3
	with pytest.raises(FormatError) as exc:
		parse_ta("FACT TUPLE :\n$INSTANCE a macro\n")
	assert exc.value.line == 2


def test_conflicting_entity_kinds():
	with pytest.raises(FormatError) as exc:
		parse_ta("FACT TUPLE :\n$INSTANCE a function\n$INSTANCE a class\n")
	assert exc.value.line == 3


def test_unresolved_relations_dropped():
	text = "FACT TUPLE :\n$INSTANCE a function\ncall a ghost\ncall a a\n"
	graph = read_ta(text)
	assert [e.key for e in graph.edges()] == [("a", "a", EdgeKind.CALLS)]

	unresolved = read_ta(text, resolve=False)
	assert len(unresolved.edges()) == 2
	assert not any(e.resolved for e in unresolved.edges())


def test_attributes_for_unknown_targets_are_counted():
	document = parse_ta("FACT TUPLE :\n$INSTANCE a function\nFACT ATTRIBUTE :\nghost { k = v }\n(a ghost) { k = v }\n")
	report = document.apply(FactGraph())
	assert report.nodes == 1
	assert report.missing_targets == 2


def test_repeated_sections_accumulate():
	text = "FACT TUPLE :\n$INSTANCE a function\nFACT ATTRIBUTE :\na { k = 1 }\nFACT TUPLE :\n$INSTANCE b class\nFACT ATTRIBUTE :\na { k = 2 }\n"
	graph = read_ta(text)
	assert {n.id for n in graph.nodes()} == {"a", "b"}
	assert graph.find_node("a").attributes.get("k") == ["1", "2"]


def test_load_into_populated_graph_rejects_duplicates():
	graph = FactGraph()
	graph.add_node(Node(id="a", name="a", kind=NodeKind.CLASS))
	report = parse_ta("FACT TUPLE :\n$INSTANCE a function\n$INSTANCE b function\n").apply(graph)
	assert report.nodes == 1
	assert graph.find_node("a").kind == NodeKind.CLASS


def test_comment_opened_on_header_line():
	text = dedent(
		"""\
		SCHEME TUPLE : /* opened here
		FACT TUPLE :
		*/
		FACT TUPLE : /* note
		$INSTANCE hidden function
		*/
		$INSTANCE a function
		FACT ATTRIBUTE : // trailing
		a { k = v }
		"""
	)
	graph = read_ta(text)
	assert [n.id for n in graph.nodes()] == ["a"]
	assert graph.find_node("a").attributes.get("k") == ["v"]
