from __future__ import annotations

import ast
import logging
from typing import Dict, Iterable, List, Optional, Protocol, Set, Tuple, Union

from .model import EdgeKey, EdgeKind, FileInfo, NodeKind


logger = logging.getLogger(__name__)

ENUM_BASES = {"Enum", "IntEnum", "StrEnum", "Flag", "IntFlag"}

FunctionDefs = (ast.FunctionDef, ast.AsyncFunctionDef)


class FactSink(Protocol):
	def create_node(self, node_id: str, name: str, kind: NodeKind) -> bool: ...

	def create_edge(self, source_id: str, dest_id: str, kind: EdgeKind) -> bool: ...

	def set_attribute(self, target: Union[str, EdgeKey], key: str, value: str) -> bool: ...


class FactProducer(Protocol):
	"""Front end turning source files of one language into facts."""

	language: str

	def produce(self, files: Iterable[FileInfo], sink: FactSink) -> int: ...


def make_id(rel_path: str, qualname: str) -> str:
	return f"{rel_path}[{qualname}]"


def _get_decorator_names(node: ast.AST) -> List[str]:
	decorators: List[str] = []
	for deco in getattr(node, "decorator_list", []) or []:
		if isinstance(deco, ast.Call):
			deco = deco.func
		if isinstance(deco, ast.Name):
			decorators.append(deco.id)
		elif isinstance(deco, ast.Attribute):
			# Collect dotted attribute like module.decorator
			parts: List[str] = []
			cursor = deco
			while isinstance(cursor, ast.Attribute):
				parts.append(cursor.attr)
				cursor = cursor.value  # type: ignore[assignment]
			if isinstance(cursor, ast.Name):
				parts.append(cursor.id)
			decorators.append(".".join(reversed(parts)))
		else:
			decorators.append(ast.unparse(deco))
	return decorators


def _format_args(args: ast.arguments) -> str:
	parts: List[str] = []
	for a in args.posonlyargs:
		parts.append(a.arg)
	if args.posonlyargs:
		parts.append("/")
	for a in args.args:
		parts.append(a.arg)
	if args.vararg:
		parts.append("*" + args.vararg.arg)
	elif args.kwonlyargs:
		parts.append("*")
	for a in args.kwonlyargs:
		parts.append(a.arg)
	if args.kwarg:
		parts.append("**" + args.kwarg.arg)
	return ", ".join(parts)


def _assigned_names(node: ast.AST) -> List[str]:
	if isinstance(node, ast.Assign):
		targets = node.targets
	elif isinstance(node, ast.AnnAssign):
		targets = [node.target]
	else:
		return []
	names: List[str] = []
	for target in targets:
		if isinstance(target, ast.Name):
			names.append(target.id)
		elif isinstance(target, ast.Tuple):
			names.extend(elt.id for elt in target.elts if isinstance(elt, ast.Name))
	return names


def resolve_import(module: str, node: ast.ImportFrom, is_package: bool = False) -> str:
	"""Absolute module name of a ``from ... import`` statement."""
	if not node.level:
		return node.module or ""
	base = module.split(".") if module else []
	drop = node.level - 1 if is_package else node.level
	if drop > len(base):
		return node.module or ""
	base = base[: len(base) - drop]
	if node.module:
		base.append(node.module)
	return ".".join(base)


class ModuleWalker:
	"""Emit the facts of one Python module into a sink."""

	def __init__(self, info: FileInfo, module_paths: Dict[str, str], sink: FactSink):
		self.path = info.rel_path
		self.module = info.module or ""
		self.is_package = info.rel_path.endswith("__init__.py")
		self.module_paths = module_paths
		self.sink = sink
		self.scope: Dict[str, str] = {}
		self.module_aliases: Dict[str, str] = {}
		self.variables: Set[str] = set()
		self.class_members: Dict[str, Dict[str, str]] = {}
		self.functions: List[Tuple[str, ast.AST, Optional[str]]] = []

	def _label(self, qualname: str) -> str:
		return f"{self.module}.{qualname}" if self.module else qualname

	def _node(self, qualname: str, kind: NodeKind, lineno: int) -> Optional[str]:
		"""Create the node for ``qualname``; None if the id is already taken."""
		node_id = make_id(self.path, qualname)
		if not self.sink.create_node(node_id, self._label(qualname), kind):
			# first definition wins, later rebindings add no facts
			logger.debug("%s:%d redefines %s, skipped", self.path, lineno, qualname)
			return None
		self.sink.set_attribute(node_id, "filename", self.path)
		self.sink.set_attribute(node_id, "label", self._label(qualname))
		self.sink.set_attribute(node_id, "lineno", str(lineno))
		return node_id

	def _function(self, fn: ast.AST, qualname: str, owner: Optional[str]) -> str:
		node_id = self._node(qualname, NodeKind.FUNCTION, fn.lineno)
		if node_id is None:
			return make_id(self.path, qualname)
		self.sink.set_attribute(node_id, "signature", f"({_format_args(fn.args)})")
		for deco in _get_decorator_names(fn):
			self.sink.set_attribute(node_id, "decorators", deco)
		if isinstance(fn, ast.AsyncFunctionDef):
			self.sink.set_attribute(node_id, "isAsync", "1")
		self.functions.append((node_id, fn, owner))
		return node_id

	def _variable(self, qualname: str, lineno: int) -> str:
		self._node(qualname, NodeKind.VARIABLE, lineno)
		return make_id(self.path, qualname)

	def _class(self, cls: ast.ClassDef) -> Optional[str]:
		base_names = [ast.unparse(b) for b in cls.bases]
		is_enum = any(name.rsplit(".", 1)[-1] in ENUM_BASES for name in base_names)
		node_id = self._node(cls.name, NodeKind.ENUM if is_enum else NodeKind.CLASS, cls.lineno)
		if node_id is None:
			return None
		for base in base_names:
			self.sink.set_attribute(node_id, "bases", base)
		for deco in _get_decorator_names(cls):
			self.sink.set_attribute(node_id, "decorators", deco)

		members: Dict[str, str] = {}
		for sub in cls.body:
			if isinstance(sub, FunctionDefs):
				members[sub.name] = self._function(sub, f"{cls.name}.{sub.name}", cls.name)
			else:
				for name in _assigned_names(sub):
					members[name] = self._variable(f"{cls.name}.{name}", sub.lineno)
		for member_id in members.values():
			self.sink.create_edge(node_id, member_id, EdgeKind.CONTAINS)
		self.class_members[cls.name] = members
		return node_id

	def _import(self, node: ast.AST) -> None:
		if isinstance(node, ast.Import):
			for alias in node.names:
				if alias.name in self.module_paths:
					self.module_aliases[alias.asname or alias.name] = self.module_paths[alias.name]
			return
		source = resolve_import(self.module, node, self.is_package)
		for alias in node.names:
			local = alias.asname or alias.name
			submodule = f"{source}.{alias.name}" if source else alias.name
			if submodule in self.module_paths:
				self.module_aliases[local] = self.module_paths[submodule]
			elif source in self.module_paths:
				self.scope[local] = make_id(self.module_paths[source], alias.name)

	def _resolve_expr(self, expr: ast.AST, owner: Optional[str]) -> Optional[str]:
		if isinstance(expr, ast.Name):
			return self.scope.get(expr.id)
		if isinstance(expr, ast.Attribute) and isinstance(expr.value, ast.Name):
			base = expr.value.id
			if base in ("self", "cls") and owner is not None:
				return self.class_members.get(owner, {}).get(expr.attr)
			if base in self.module_aliases:
				return make_id(self.module_aliases[base], expr.attr)
			if base in self.class_members:
				return self.class_members[base].get(expr.attr)
		return None

	def _relate(self, source_id: str, target_id: str, kind: EdgeKind, lineno: int) -> None:
		if source_id == target_id and kind != EdgeKind.CALLS:
			return
		self.sink.create_edge(source_id, target_id, kind)
		self.sink.set_attribute((source_id, target_id, kind), "lineno", str(lineno))

	def _function_relations(self, node_id: str, fn: ast.AST, owner: Optional[str]) -> None:
		callees: Set[int] = set()
		for sub in ast.walk(fn):
			if isinstance(sub, ast.Call):
				callees.add(id(sub.func))
				target = self._resolve_expr(sub.func, owner)
				if target is not None:
					self._relate(node_id, target, EdgeKind.CALLS, sub.lineno)

		for sub in ast.walk(fn):
			if id(sub) in callees or not isinstance(getattr(sub, "ctx", None), ast.Load):
				continue
			if isinstance(sub, ast.Name):
				if sub.id in self.variables:
					self._relate(node_id, self.scope[sub.id], EdgeKind.REFERENCES, sub.lineno)
			elif isinstance(sub, ast.Attribute):
				target = self._resolve_expr(sub, owner)
				if target is not None:
					self._relate(node_id, target, EdgeKind.REFERENCES, sub.lineno)

	def walk(self, tree: ast.Module) -> None:
		classes: List[Tuple[str, ast.ClassDef]] = []
		for node in tree.body:
			if isinstance(node, (ast.Import, ast.ImportFrom)):
				self._import(node)
			elif isinstance(node, FunctionDefs):
				self.scope[node.name] = self._function(node, node.name, None)
			elif isinstance(node, ast.ClassDef):
				class_id = self._class(node)
				if class_id is None:
					continue
				self.scope[node.name] = class_id
				classes.append((class_id, node))
			else:
				for name in _assigned_names(node):
					self.scope[name] = self._variable(name, node.lineno)
					self.variables.add(name)

		for class_id, cls in classes:
			for base in cls.bases:
				target = self._resolve_expr(base, None)
				if target is not None:
					self._relate(class_id, target, EdgeKind.INHERITS, cls.lineno)

		for node_id, fn, owner in self.functions:
			self._function_relations(node_id, fn, owner)


class PythonFactProducer:
	"""Front end for Python sources, built on the standard ``ast`` module."""

	language = "python"

	def produce(self, files: Iterable[FileInfo], sink: FactSink) -> int:
		python_files = [f for f in files if f.language == self.language and f.module is not None]
		module_paths = {f.module: f.rel_path for f in python_files}
		parsed = 0
		for f in python_files:
			try:
				with open(f.path, "r", encoding="utf-8") as fh:
					text = fh.read()
				tree = ast.parse(text, filename=f.path)
			except (OSError, UnicodeDecodeError, SyntaxError, ValueError) as e:
				# unreadable or invalid modules are skipped, not fatal
				logger.warning("skipping %s: %s", f.rel_path, e)
				continue
			ModuleWalker(f, module_paths, sink).walk(tree)
			parsed += 1
		logger.info("python front end processed %d of %d modules", parsed, len(python_files))
		return parsed


PRODUCERS: Dict[str, type] = {
	PythonFactProducer.language: PythonFactProducer,
}


def producer_for(language: str) -> Optional[FactProducer]:
	cls = PRODUCERS.get(language)
	return cls() if cls is not None else None
