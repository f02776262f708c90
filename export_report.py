from __future__ import annotations

"""
Build shareable reports for a Lua syntax check, and check files from the command line.

Formats:
  - text      one line per diagnostic plus a summary line (default)
  - json      machine-readable report
  - markdown  report with a code frame around the first issue and the full source

Run:
  python -X utf8 export_report.py script.lua --format markdown --output report.md
  python -X utf8 export_report.py script.lua --show-source

Exit status: 0 when clean, 1 when errors were found (or warnings with --strict),
2 when the input could not be read.
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence

from lua_checker import CheckArtifacts, Diagnostic, LuaCheckerEngine

logger = logging.getLogger(__name__)

FORMATS = ("text", "json", "markdown")


def location(diag: Diagnostic) -> str:
	"""1-based `line:column` of the diagnostic start."""
	return f"{diag.span.start.line + 1}:{diag.span.start.column + 1}"


def summary_label(diagnostics: Sequence[Diagnostic]) -> str:
	count = len(diagnostics)
	if count == 0:
		return "No errors"
	return f"{count} error{'s' if count != 1 else ''}"


def panel_entries(diagnostics: Sequence[Diagnostic]) -> List[Dict[str, Any]]:
	"""
	Rows for the issues panel.

	`jump_to` is where the cursor goes when the row is clicked; `select` is the
	range to highlight afterwards, omitted when the span is empty.
	"""
	entries: List[Dict[str, Any]] = []
	for index, diag in enumerate(diagnostics):
		start = diag.span.start
		entries.append(
			{
				"index": index,
				"title": f"Line {start.line + 1}, Column {start.column + 1}",
				"badge": diag.severity.name,
				"severity": diag.severity.label,
				"message": diag.message,
				"jump_to": start.to_dict(),
				"select": None if diag.span.is_empty() else diag.span.to_dict(),
			}
		)
	return entries


def format_diagnostic(diag: Diagnostic, source: str) -> str:
	lines = source.split("\n")
	loc = ""
	frame = ""
	line_no = diag.span.start.line
	if 0 <= line_no < len(lines):
		col = diag.span.start.column
		caret = " " * col + "^"
		loc = f"Location: line {line_no + 1}, col {col + 1}\n"
		frame = f"\n{lines[line_no]}\n{caret}\n"
	return f"[{diag.severity.name}] {diag.message}\n{loc}{frame}"


def build_json_report(artifacts: CheckArtifacts) -> Dict[str, Any]:
	return {
		"diagnostics": [diag.to_dict() for diag in artifacts.diagnostics],
		"diagnostic_count": len(artifacts.diagnostics),
		"error_count": artifacts.error_count,
		"warning_count": artifacts.warning_count,
		"has_errors": artifacts.has_errors,
		"line_count": artifacts.line_count,
		"duration_ms": artifacts.duration_ms,
	}


def build_text_report(artifacts: CheckArtifacts, name: str = "<source>", source: Optional[str] = None) -> str:
	"""One line per diagnostic, or a caret code frame per diagnostic when `source` is given."""
	out: List[str] = []
	for diag in artifacts.diagnostics:
		if source is not None:
			out.append(f"{name}: {format_diagnostic(diag, source)}")
			continue
		start = diag.span.start
		out.append(f"{name}: [{diag.severity.name}] line {start.line + 1}, col {start.column + 1}: {diag.message}")
	out.append(
		f"Errors: {artifacts.error_count} | Warnings: {artifacts.warning_count}"
		f" | Lines: {artifacts.line_count} | Time: {artifacts.duration_ms:.2f} ms"
	)
	return "\n".join(out) + "\n"


def build_markdown_report(source: str, artifacts: CheckArtifacts) -> str:
	diag_lines = [f"- **{d.severity.name}** at `{location(d)}`: {d.message}" for d in artifacts.diagnostics]

	# Short code frame around the first issue.
	frame = ""
	lines = source.split("\n")
	if artifacts.diagnostics:
		i = artifacts.diagnostics[0].span.start.line
		if 0 <= i < len(lines):
			start = max(0, i - 2)
			end = min(len(lines), i + 3)
			frame_lines = []
			for ln in range(start, end):
				prefix = ">> " if ln == i else "   "
				frame_lines.append(f"{prefix}{ln + 1:>3} | {lines[ln]}")
			frame = "**Code frame (around first issue)**\n\n```lua\n" + "\n".join(frame_lines) + "\n```\n\n"

	return (
		"# Lua Syntax Check Report\n\n"
		f"- Time: **{artifacts.duration_ms:.2f} ms**\n"
		f"- Lines: **{artifacts.line_count}**\n"
		f"- Errors: **{artifacts.error_count}**\n"
		f"- Warnings: **{artifacts.warning_count}**\n\n"
		"## Diagnostics\n\n"
		+ ("\n".join(diag_lines) if diag_lines else "_No diagnostics._")
		+ "\n\n"
		+ frame
		+ "## Source\n\n```lua\n"
		+ source.rstrip()
		+ "\n```\n"
	)


def render(fmt: str, source: str, artifacts: CheckArtifacts, name: str = "<source>", show_source: bool = False) -> str:
	if fmt == "json":
		return json.dumps(build_json_report(artifacts), indent=2) + "\n"
	if fmt == "markdown":
		return build_markdown_report(source, artifacts)
	return build_text_report(artifacts, name, source if show_source else None)


def exit_status(artifacts: CheckArtifacts, strict: bool = False) -> int:
	if artifacts.has_errors:
		return 1
	if strict and artifacts.warning_count:
		return 1
	return 0


def _read_source(path: str) -> str:
	if path == "-":
		return sys.stdin.read()
	return Path(path).read_text(encoding="utf-8-sig")


def build_arg_parser() -> argparse.ArgumentParser:
	parser = argparse.ArgumentParser(prog="lua-check", description="Check Lua source for structural mistakes.")
	parser.add_argument("file", help="Lua source file, or '-' to read standard input")
	parser.add_argument("--format", choices=FORMATS, default="text", help="report format (default: text)")
	parser.add_argument("--output", "-o", help="write the report to this path instead of standard output")
	parser.add_argument("--strict", action="store_true", help="treat warnings as failures")
	parser.add_argument("--show-source", action="store_true", help="text format: print a code frame under each diagnostic")
	parser.add_argument("--verbose", "-v", action="store_true", help="enable debug logging")
	return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
	args = build_arg_parser().parse_args(argv)
	logging.basicConfig(
		level=logging.DEBUG if args.verbose else logging.WARNING,
		format="%(levelname)s %(name)s: %(message)s",
	)

	try:
		source = _read_source(args.file)
	except (OSError, UnicodeDecodeError) as exc:
		logger.error("Cannot read %s: %s", args.file, exc)
		return 2

	artifacts = LuaCheckerEngine().check(source)
	report = render(args.format, source, artifacts, name=args.file, show_source=args.show_source)

	if args.output:
		Path(args.output).write_text(report, encoding="utf-8")
		logger.info("Report written to %s", args.output)
	else:
		sys.stdout.write(report)

	return exit_status(artifacts, strict=args.strict)


if __name__ == "__main__":
	sys.exit(main())
