from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, Literal, Union

import uvicorn
from fastapi import Depends, FastAPI, HTTPException
from fastapi.responses import HTMLResponse, PlainTextResponse
from fastapi.staticfiles import StaticFiles
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from export_report import build_json_report, build_markdown_report, panel_entries, summary_label
from lua_checker import SAMPLE_SOURCE, LuaCheckerEngine
from webapp.settings import Settings, get_settings

logger = logging.getLogger(__name__)

app = FastAPI(title="Lua Syntax Checker", version="1.0.0")

STATIC_DIR = Path(__file__).parent / "static"
if STATIC_DIR.exists():
	app.mount("/static", StaticFiles(directory=str(STATIC_DIR)), name="static")

app.add_middleware(
	CORSMiddleware,
	allow_origins=get_settings().cors_origins,
	allow_credentials=True,
	allow_methods=["*"],
	allow_headers=["*"],
)


class CheckRequest(BaseModel):
	source: str


class ReportRequest(BaseModel):
	source: str
	format: Literal["json", "markdown"] = "json"


def _guard_size(source: str, settings: Settings) -> None:
	if len(source) > settings.max_source_chars:
		logger.warning("Rejected source of %d chars (limit %d)", len(source), settings.max_source_chars)
		raise HTTPException(
			status_code=413,
			detail=f"Source is {len(source)} characters; the limit is {settings.max_source_chars}.",
		)


@app.get("/", response_class=HTMLResponse)
def index() -> HTMLResponse:
	index_path = STATIC_DIR / "index.html"
	if index_path.exists():
		return HTMLResponse(index_path.read_text(encoding="utf-8"))
	return HTMLResponse(
		"<h2>Lua Syntax Checker API</h2>"
		"<p>POST <code>/api/check</code> with JSON: <code>{\"source\": \"...\"}</code></p>"
		"<p>POST <code>/api/report</code> with JSON: <code>{\"source\": \"...\", \"format\": \"markdown\"}</code></p>"
	)


@app.get("/health")
def health() -> Dict[str, str]:
	return {"status": "ok"}


@app.get("/api/sample")
def sample() -> Dict[str, str]:
	return {"source": SAMPLE_SOURCE}


@app.post("/api/check")
def check_source(req: CheckRequest, settings: Settings = Depends(get_settings)) -> Dict[str, Any]:
	_guard_size(req.source, settings)
	engine = LuaCheckerEngine()
	art = engine.check(req.source)
	logger.info(
		"Checked %d line(s): %d error(s), %d warning(s)", art.line_count, art.error_count, art.warning_count
	)
	return {
		"duration_ms": art.duration_ms,
		"line_count": art.line_count,
		"diagnostic_count": len(art.diagnostics),
		"error_count": art.error_count,
		"warning_count": art.warning_count,
		"has_errors": art.has_errors,
		"summary": summary_label(art.diagnostics),
		"diagnostics": [d.to_dict() for d in art.diagnostics],
		"annotations": [d.to_annotation() for d in art.diagnostics],
		"panel": panel_entries(art.diagnostics),
	}


@app.post("/api/report", response_model=None)
def report_source(
	req: ReportRequest, settings: Settings = Depends(get_settings)
) -> Union[Dict[str, Any], PlainTextResponse]:
	_guard_size(req.source, settings)
	art = LuaCheckerEngine().check(req.source)
	if req.format == "markdown":
		return PlainTextResponse(build_markdown_report(req.source, art), media_type="text/markdown")
	return build_json_report(art)


def run() -> None:
	settings = get_settings()
	logging.basicConfig(level=settings.log_level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
	uvicorn.run("webapp.main:app", host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
	run()
