from __future__ import annotations

import argparse
import logging
import sys

import uvicorn

from tafacts.config import ExtractConfig
from tafacts.errors import TAError
from tafacts.pipeline import extract_repository
from tafacts.summarize import summarize_graph
from tafacts.ta_file import load_from_file, save_to_file


logger = logging.getLogger("tafacts.cli")


def _config(args: argparse.Namespace) -> ExtractConfig:
	return ExtractConfig(
		include_files=not getattr(args, "exclude_files", False),
		include_subsystems=not getattr(args, "exclude_subsystems", False),
		entity_relation=args.entity_relation,
	)


def cmd_extract(args: argparse.Namespace) -> None:
	config = _config(args)
	graph = extract_repository(args.path, config)
	save_to_file(graph, args.output, config, schema=args.schema)
	print(summarize_graph(graph).global_overview)


def cmd_summarize(args: argparse.Namespace) -> None:
	graph = load_from_file(args.file, _config(args))
	summaries = summarize_graph(graph)
	print(summaries.global_overview)
	for kind, count in sorted(summaries.nodes_by_kind.items()):
		print(f"  {kind}: {count}")
	for kind, count in sorted(summaries.edges_by_kind.items()):
		print(f"  {kind}: {count}")


def cmd_convert(args: argparse.Namespace) -> None:
	config = _config(args)
	graph = load_from_file(args.input, config)
	save_to_file(graph, args.output, config, schema=args.schema)


def cmd_serve(args: argparse.Namespace) -> None:
	uvicorn.run("api:app", host=args.host, port=args.port, reload=args.reload)


def build_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(prog="tafacts")
	parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")
	parser.add_argument("--entity-relation", default="$INSTANCE", help="Relation declaring entities")
	sub = parser.add_subparsers(dest="cmd", required=True)

	pe = sub.add_parser("extract", help="Extract a fact base from a repository into a TA file")
	pe.add_argument("path", help="Path to repository root")
	pe.add_argument("-o", "--output", default="out.ta", help="TA file to write")
	pe.add_argument("--exclude-files", action="store_true", help="Leave File entities out")
	pe.add_argument("--exclude-subsystems", action="store_true", help="Leave Subsystem entities out")
	pe.add_argument("--schema", action="store_true", help="Write a SCHEME TUPLE section")
	pe.set_defaults(func=cmd_extract)

	ps = sub.add_parser("summarize", help="Print a summary of a TA file")
	ps.add_argument("file")
	ps.set_defaults(func=cmd_summarize)

	pc = sub.add_parser("convert", help="Load a TA file and write it back out")
	pc.add_argument("input")
	pc.add_argument("output")
	pc.add_argument("--exclude-files", action="store_true")
	pc.add_argument("--exclude-subsystems", action="store_true")
	pc.add_argument("--schema", action="store_true")
	pc.set_defaults(func=cmd_convert)

	pv = sub.add_parser("serve", help="Run FastAPI server")
	pv.add_argument("--host", default="127.0.0.1")
	pv.add_argument("--port", type=int, default=8000)
	pv.add_argument("--reload", action="store_true")
	pv.set_defaults(func=cmd_serve)
	return parser


def main(argv=None) -> int:
	args = build_parser().parse_args(argv)
	logging.basicConfig(
		level=logging.DEBUG if args.verbose else logging.INFO,
		format="%(levelname)s %(name)s: %(message)s",
	)
	try:
		args.func(args)
	except (TAError, NotADirectoryError) as e:
		logger.error("%s", e)
		return 1
	return 0


if __name__ == "__main__":
	sys.exit(main())
