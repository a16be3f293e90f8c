from __future__ import annotations

import logging
import os
import tempfile
from typing import Optional

from .config import DEFAULT_CONFIG, ExtractConfig
from .errors import TAFileError
from .graph import FactGraph
from .ta_parse import read_ta
from .ta_write import write_ta


logger = logging.getLogger(__name__)


def load_from_file(
	path: str,
	config: ExtractConfig = DEFAULT_CONFIG,
	graph: Optional[FactGraph] = None,
	resolve: bool = True,
) -> FactGraph:
	"""Read a TA file into a graph.

	Raises ``TAFileError`` if the file cannot be read and ``FormatError`` if
	it is malformed. In both cases ``graph`` is left untouched.
	"""
	try:
		with open(path, "r", encoding="utf-8") as fh:
			text = fh.read()
	except (OSError, UnicodeDecodeError) as e:
		raise TAFileError(f"the TA file {path} could not be read: {e}") from e
	graph = read_ta(text, config, graph=graph, resolve=resolve)
	logger.info("loaded %s: %d nodes, %d edges", path, len(graph), len(graph.edges()))
	return graph


def save_to_file(
	graph: FactGraph,
	path: str,
	config: ExtractConfig = DEFAULT_CONFIG,
	schema: bool = False,
) -> None:
	"""Write the graph to ``path``.

	The text goes to a temporary file in the same directory which then
	replaces ``path``, so a failed write never leaves a truncated file behind.
	"""
	text = write_ta(graph, config, schema=schema)
	directory = os.path.dirname(os.path.abspath(path))
	tmp_path = None
	try:
		fd, tmp_path = tempfile.mkstemp(prefix=".tafacts-", suffix=".ta", dir=directory)
		with os.fdopen(fd, "w", encoding="utf-8") as fh:
			fh.write(text)
		os.replace(tmp_path, path)
	except OSError as e:
		if tmp_path is not None and os.path.exists(tmp_path):
			os.unlink(tmp_path)
		raise TAFileError(f"the TA file could not be written to {path}: {e}") from e
	logger.info("TA file written to %s", path)
