import ast
from textwrap import dedent

import pytest

from tafacts.ast_parse import PythonFactProducer, make_id, resolve_import
from tafacts.fs_scan import scan_repository
from tafacts.graph import FactGraph
from tafacts.model import EdgeKind, NodeKind


@pytest.fixture
def repo(tmp_path):
	pkg = tmp_path / "pkg"
	pkg.mkdir()
	(pkg / "__init__.py").write_text("")
	(pkg / "base.py").write_text(
		dedent(
			"""
			class Base:
				def run(self):
					return helper()

			def helper():
				return LIMIT

			LIMIT = 3
			"""
		)
	)
	(pkg / "m.py").write_text(
		dedent(
			"""
			import os
			from enum import Enum
			from .base import Base, helper

			class Color(Enum):
				RED = 1

			class A(Base):
				@staticmethod
				def m(self, x, *, y=1, **kw):
					return self.n(x)

				def n(self, x):
					return helper()

			def f(a, b=2, *args, **kwargs):
				return A()
			"""
		)
	)
	(pkg / "broken.py").write_text("def oops(:\n")
	return tmp_path


def _produce(root):
	graph = FactGraph()
	parsed = PythonFactProducer().produce(scan_repository(str(root)), graph)
	return graph, parsed


def test_parse_simple_module(repo):
	graph, parsed = _produce(repo)
	assert parsed == 3

	a = graph.find_node(make_id("pkg/m.py", "A"))
	assert a.kind == NodeKind.CLASS
	assert a.name == "pkg.m.A"
	assert a.attributes.get("filename") == ["pkg/m.py"]
	assert graph.find_node(make_id("pkg/m.py", "Color")).kind == NodeKind.ENUM
	assert graph.find_node(make_id("pkg/m.py", "Color.RED")).kind == NodeKind.VARIABLE
	assert graph.find_node(make_id("pkg/base.py", "LIMIT")).kind == NodeKind.VARIABLE

	f = graph.find_node(make_id("pkg/m.py", "f"))
	assert f.kind == NodeKind.FUNCTION
	assert f.attributes.get("signature") == ["(a, b, *args, **kwargs)"]
	m = graph.find_node(make_id("pkg/m.py", "A.m"))
	assert m.attributes.get("signature") == ["(self, x, *, y, **kw)"]
	assert m.attributes.get("decorators") == ["staticmethod"]


def test_relations(repo):
	graph, _ = _produce(repo)
	m = lambda q: make_id("pkg/m.py", q)
	base = lambda q: make_id("pkg/base.py", q)

	assert graph.find_edge(m("A"), m("A.m"), EdgeKind.CONTAINS) is not None
	assert graph.find_edge(m("Color"), m("Color.RED"), EdgeKind.CONTAINS) is not None
	assert graph.find_edge(m("A.m"), m("A.n"), EdgeKind.CALLS) is not None
	assert graph.find_edge(m("f"), m("A"), EdgeKind.CALLS) is not None
	assert graph.find_edge(base("Base.run"), base("helper"), EdgeKind.CALLS) is not None
	assert graph.find_edge(base("helper"), base("LIMIT"), EdgeKind.REFERENCES) is not None

	inherit = graph.find_edge(m("A"), base("Base"), EdgeKind.INHERITS)
	assert inherit is not None
	cross = graph.find_edge(m("A.n"), base("helper"), EdgeKind.CALLS)
	assert cross is not None and cross.resolved
	assert cross.attributes.get("lineno")

	# self.n(x) is a call, not a reference
	assert graph.find_edge(m("A.m"), m("A.n"), EdgeKind.REFERENCES) is None


def test_resolve_import_levels():
	node = ast.parse("from .base import x").body[0]
	assert resolve_import("pkg.m", node) == "pkg.base"
	assert resolve_import("pkg", node, is_package=True) == "pkg.base"
	node = ast.parse("from .. import y").body[0]
	assert resolve_import("pkg.sub.m", node) == "pkg"
	node = ast.parse("from os import path").body[0]
	assert resolve_import("pkg.m", node) == "os"


def test_redefinition_keeps_first_definition(tmp_path):
	(tmp_path / "m.py").write_text("f = 1\n\ndef f(x):\n\treturn g()\n\ndef g():\n\tpass\n")
	graph, _ = _produce(tmp_path)
	f = graph.find_node(make_id("m.py", "f"))
	assert f.kind == NodeKind.VARIABLE
	assert f.attributes.get("lineno") == ["1"]
	assert not f.attributes.has("signature")
	assert graph.find_edge(make_id("m.py", "f"), make_id("m.py", "g"), EdgeKind.CALLS) is None
