"""Fact base extraction and Tuple-Attribute (TA) persistence.

Modules:
- model.py: Nodes, edges, attribute maps and the closed kind tables.
- graph.py: The in-memory fact graph and its invariants.
- ta_lex.py, ta_parse.py, ta_write.py: The TA text codec.
- ta_file.py: Loading and saving TA files.
- fs_scan.py, hierarchy.py: Subsystem/file containers for source files.
- ast_parse.py: Python front end emitting facts.
- pipeline.py: Repository extraction end to end.
- summarize.py: Textual summaries of a fact graph.
"""

from .config import ExtractConfig
from .errors import FormatError, TAError, TAFileError
from .graph import FactGraph
from .model import AttributeMap, Edge, EdgeKind, Node, NodeKind
from .ta_file import load_from_file, save_to_file
from .ta_parse import parse_ta, read_ta
from .ta_write import write_ta

__all__ = [
	"AttributeMap",
	"Edge",
	"EdgeKind",
	"ExtractConfig",
	"FactGraph",
	"FormatError",
	"Node",
	"NodeKind",
	"TAError",
	"TAFileError",
	"load_from_file",
	"parse_ta",
	"read_ta",
	"save_to_file",
	"write_ta",
]
