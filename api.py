from __future__ import annotations

import logging
import os

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from tafacts.config import ExtractConfig
from tafacts.errors import TAError
from tafacts.model import ExtractResult, Summaries
from tafacts.pipeline import extract_repository
from tafacts.summarize import summarize_graph
from tafacts.ta_file import load_from_file
from tafacts.ta_write import write_ta


logger = logging.getLogger("tafacts.api")

app = FastAPI(title="TA Fact Extractor")


class ExtractRequest(BaseModel):
	root_path: str
	config: ExtractConfig = ExtractConfig()
	schema_section: bool = False


class SummarizeRequest(BaseModel):
	ta_path: str
	config: ExtractConfig = ExtractConfig()


@app.post("/extract", response_model=ExtractResult)
def extract(req: ExtractRequest) -> ExtractResult:
	root = os.path.abspath(req.root_path)
	if not os.path.isdir(root):
		raise HTTPException(status_code=400, detail=f"Invalid root_path: {root}")

	graph = extract_repository(root, req.config)
	return ExtractResult(
		ta=write_ta(graph, req.config, schema=req.schema_section),
		summaries=summarize_graph(graph),
	)


@app.post("/summarize", response_model=Summaries)
def summarize(req: SummarizeRequest) -> Summaries:
	try:
		graph = load_from_file(req.ta_path, req.config)
	except TAError as e:
		logger.warning("could not load %s: %s", req.ta_path, e)
		raise HTTPException(status_code=400, detail=str(e))
	return summarize_graph(graph)


def create_app() -> FastAPI:
	return app
