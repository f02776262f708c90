"""Structural Lua linter: string/comment aware bracket matching, block keyword nesting, common omissions."""

from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Dict, Generic, Iterable, Iterator, List, Optional, Tuple, TypeVar, Union

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Diagnostic infrastructure


class Severity(Enum):
	ERROR = auto()
	WARNING = auto()

	@property
	def label(self) -> str:
		return self.name.lower()


@dataclass(frozen=True)
class Position:
	"""Zero-based line/column pair."""

	line: int
	column: int

	def __post_init__(self) -> None:
		if self.line < 0 or self.column < 0:
			raise ValueError("Position line and column cannot be negative")

	def to_dict(self) -> Dict[str, int]:
		return {"line": self.line, "column": self.column}


@dataclass(frozen=True)
class Span:
	"""Half-open range [start, end) between two positions."""

	start: Position
	end: Position

	@staticmethod
	def on_line(line: int, start: int, end: int) -> "Span":
		return Span(Position(line, start), Position(line, end))

	def is_empty(self) -> bool:
		return self.start == self.end

	def to_dict(self) -> Dict[str, Dict[str, int]]:
		return {"start": self.start.to_dict(), "end": self.end.to_dict()}


@dataclass(frozen=True)
class Diagnostic:
	severity: Severity
	message: str
	span: Span

	def to_dict(self) -> Dict[str, Any]:
		return {
			"severity": self.severity.label,
			"message": self.message,
			"span": self.span.to_dict(),
		}

	def to_annotation(self) -> Dict[str, Any]:
		"""Lint annotation in the shape CodeMirror's lint addon expects (`line`/`ch`)."""
		return {
			"from": {"line": self.span.start.line, "ch": self.span.start.column},
			"to": {"line": self.span.end.line, "ch": self.span.end.column},
			"message": self.message,
			"severity": self.severity.label,
		}


class DiagnosticEngine:
	def __init__(self) -> None:
		self._items: List[Diagnostic] = []

	@property
	def items(self) -> List[Diagnostic]:
		return self._items

	def report(self, severity: Severity, message: str, span: Span) -> None:
		self._items.append(Diagnostic(severity, message, span))

	def extend(self, diagnostics: Iterable[Diagnostic]) -> None:
		self._items.extend(diagnostics)


# ---------------------------------------------------------------------------
# Lexical classification


COMMENT_MARKER = "--"
QUOTES = "\"'"
BOM = "\ufeff"


def _trim(line: str) -> str:
	"""`str.strip()` that also drops U+FEFF, the byte-order mark some editors write."""
	trimmed = line.strip()
	while trimmed[:1] == BOM or trimmed[-1:] == BOM:
		trimmed = trimmed.strip(BOM).strip()
	return trimmed


class LineScanner:
	"""
	Walks a single line and yields the characters that are plain code.

	String and comment state start fresh on every line; a quote left open at
	the end of a line does not carry over. A delimiter preceded by a backslash
	does not close the string, so `"a\\\\"` (escaped backslash before the quote)
	is misread as still open.
	"""

	def __init__(self, line: str) -> None:
		self.line = line
		self.length = len(line)
		self.index = 0
		self.in_string = False
		self.string_delimiter = ""
		self.in_comment = False

	def code_characters(self) -> Iterator[Tuple[int, str]]:
		while not self._is_eol():
			ch = self._peek()
			if not self.in_string and ch == "-" and self._peek_next() == "-":
				self.in_comment = True
				self.index += 2
				continue
			if self.in_comment:
				self.index += 1
				continue
			if not self.in_string and ch in QUOTES:
				self.in_string = True
				self.string_delimiter = ch
			elif self.in_string and ch == self.string_delimiter and self._previous() != "\\":
				self.in_string = False
				self.string_delimiter = ""
			if not self.in_string:
				yield self.index, ch
			self.index += 1

	def _peek(self) -> str:
		return self.line[self.index]

	def _peek_next(self) -> str:
		if self.index + 1 >= self.length:
			return ""
		return self.line[self.index + 1]

	def _previous(self) -> str:
		if self.index == 0:
			return ""
		return self.line[self.index - 1]

	def _is_eol(self) -> bool:
		return self.index >= self.length


# ---------------------------------------------------------------------------
# Open frames


BRACKET_PAIRS: Dict[str, str] = {"(": ")", "[": "]", "{": "}"}
CLOSING_BRACKETS = frozenset(BRACKET_PAIRS.values())

BLOCK_KEYWORDS: Tuple[str, ...] = ("function", "if", "for", "while", "repeat", "do")
_KEYWORD_PATTERNS = {keyword: re.compile(rf"\b{keyword}\b", re.ASCII) for keyword in BLOCK_KEYWORDS}

# Unclosed blocks are marked over a fixed width of the opening line.
UNCLOSED_BLOCK_WIDTH = 10


@dataclass(frozen=True)
class BracketFrame:
	character: str
	line: int
	column: int

	@property
	def closer(self) -> str:
		return BRACKET_PAIRS[self.character]

	def unclosed(self) -> Diagnostic:
		return Diagnostic(
			Severity.ERROR,
			f"Unclosed '{self.character}'",
			Span.on_line(self.line, self.column, self.column + 1),
		)


@dataclass(frozen=True)
class BlockFrame:
	keyword: str
	line: int

	@property
	def closer(self) -> str:
		return "until" if self.keyword == "repeat" else "end"

	def unclosed(self) -> Diagnostic:
		return Diagnostic(
			Severity.ERROR,
			f"Unclosed '{self.keyword}' block - missing '{self.closer}'",
			Span.on_line(self.line, 0, UNCLOSED_BLOCK_WIDTH),
		)


Frame = Union[BracketFrame, BlockFrame]
FrameT = TypeVar("FrameT", BracketFrame, BlockFrame)


class FrameStack(Generic[FrameT]):
	def __init__(self) -> None:
		self._frames: List[FrameT] = []

	def __len__(self) -> int:
		return len(self._frames)

	def push(self, frame: FrameT) -> None:
		self._frames.append(frame)

	def pop(self) -> Optional[FrameT]:
		if not self._frames:
			return None
		return self._frames.pop()

	def peek(self) -> Optional[FrameT]:
		if not self._frames:
			return None
		return self._frames[-1]

	def drain(self) -> List[Diagnostic]:
		"""Turn every frame still open into its "unclosed" diagnostic, oldest first."""
		unclosed = [frame.unclosed() for frame in self._frames]
		self._frames.clear()
		return unclosed


# ---------------------------------------------------------------------------
# Validator


class LuaValidator:
	"""
	Single forward pass over the document, one line at a time.

	Per line, diagnostics are reported in this order: bracket problems (left
	to right), block keyword problems, then the one-line omission checks.
	Brackets and blocks still open at the end are appended last, brackets
	before blocks.
	"""

	def __init__(self, diagnostics: DiagnosticEngine) -> None:
		self.diagnostics = diagnostics
		self.brackets: FrameStack[BracketFrame] = FrameStack()
		self.blocks: FrameStack[BlockFrame] = FrameStack()

	def run(self, source: str) -> None:
		for line_no, line in enumerate(source.split("\n")):
			trimmed = _trim(line)
			is_comment = trimmed.startswith(COMMENT_MARKER)
			self._match_brackets(line_no, line)
			self._match_blocks(line_no, line, trimmed, is_comment)
			self._check_omissions(line_no, line, trimmed, is_comment)
		self.diagnostics.extend(self.brackets.drain())
		self.diagnostics.extend(self.blocks.drain())

	def _match_brackets(self, line_no: int, line: str) -> None:
		for column, ch in LineScanner(line).code_characters():
			if ch in BRACKET_PAIRS:
				self.brackets.push(BracketFrame(ch, line_no, column))
			elif ch in CLOSING_BRACKETS:
				opener = self.brackets.pop()
				if opener is None:
					self.diagnostics.report(
						Severity.ERROR, f"Unexpected closing '{ch}'", Span.on_line(line_no, column, column + 1)
					)
				elif opener.closer != ch:
					self.diagnostics.report(
						Severity.ERROR,
						f"Mismatched brackets: expected '{opener.closer}' but found '{ch}'",
						Span.on_line(line_no, column, column + 1),
					)

	def _match_blocks(self, line_no: int, line: str, trimmed: str, is_comment: bool) -> None:
		if not is_comment:
			for keyword in BLOCK_KEYWORDS:
				if _KEYWORD_PATTERNS[keyword].search(trimmed):
					self.blocks.push(BlockFrame(keyword, line_no))

		# Closers are only recognised when they are alone on the line.
		if trimmed == "end":
			if self.blocks.pop() is None:
				self.diagnostics.report(
					Severity.ERROR,
					"Unexpected 'end' - no matching block statement",
					Span.on_line(line_no, 0, len(line)),
				)
		elif trimmed == "until":
			top = self.blocks.peek()
			if top is None or top.keyword != "repeat":
				self.diagnostics.report(
					Severity.ERROR,
					"'until' without matching 'repeat'",
					Span.on_line(line_no, 0, len(line)),
				)
			else:
				self.blocks.pop()

	def _check_omissions(self, line_no: int, line: str, trimmed: str, is_comment: bool) -> None:
		# Line-local: a header split over several lines still warns.
		if "function" in trimmed and "(" in trimmed and ")" not in trimmed:
			self.diagnostics.report(
				Severity.ERROR,
				"Unclosed function parameter list",
				Span.on_line(line_no, line.index("("), len(line)),
			)
		if is_comment:
			return
		if "if " in trimmed and "then" not in trimmed:
			self.diagnostics.report(
				Severity.WARNING,
				"Missing 'then' after 'if' statement",
				Span.on_line(line_no, 0, len(line)),
			)
		if ("for " in trimmed or "while " in trimmed) and "do" not in trimmed:
			self.diagnostics.report(
				Severity.WARNING,
				"Missing 'do' after loop statement",
				Span.on_line(line_no, 0, len(line)),
			)


def validate(text: str) -> List[Diagnostic]:
	"""Check `text` and return its diagnostics in discovery order. Never raises for any string."""
	diagnostics = DiagnosticEngine()
	LuaValidator(diagnostics).run(text)
	return diagnostics.items


# ---------------------------------------------------------------------------
# Check pipeline


@dataclass
class CheckArtifacts:
	diagnostics: List[Diagnostic]
	line_count: int
	duration_ms: float

	@property
	def error_count(self) -> int:
		return sum(1 for d in self.diagnostics if d.severity == Severity.ERROR)

	@property
	def warning_count(self) -> int:
		return sum(1 for d in self.diagnostics if d.severity == Severity.WARNING)

	@property
	def has_errors(self) -> bool:
		return self.error_count > 0


class LuaCheckerEngine:
	def check(self, source: str) -> CheckArtifacts:
		start = time.perf_counter()
		diagnostics = validate(source)
		duration_ms = (time.perf_counter() - start) * 1000
		artifacts = CheckArtifacts(diagnostics=diagnostics, line_count=source.count("\n") + 1, duration_ms=duration_ms)
		logger.debug(
			"Checked %d line(s): %d error(s), %d warning(s) in %.2f ms",
			artifacts.line_count,
			artifacts.error_count,
			artifacts.warning_count,
			duration_ms,
		)
		return artifacts


SAMPLE_SOURCE = """-- Welcome to Lua Syntax Checker
-- Start typing your Lua code here

function greet(name)
    if name then
        print("Hello, " .. name .. "!")
    else
        print("Hello, World!")
    end
end

-- Example with potential syntax error (uncomment to test):
-- function broken_function(
--     print("Missing closing parenthesis")

greet("Developer")

-- Try some advanced Lua features:
local numbers = {1, 2, 3, 4, 5}
for i, v in ipairs(numbers) do
    print("Index: " .. i .. ", Value: " .. v)
end

-- Coroutine example
local co = coroutine.create(function()
    for i = 1, 3 do
        print("Coroutine step: " .. i)
        coroutine.yield()
    end
end)

coroutine.resume(co)
"""


__all__ = [
	"BLOCK_KEYWORDS",
	"BRACKET_PAIRS",
	"SAMPLE_SOURCE",
	"BlockFrame",
	"BracketFrame",
	"CheckArtifacts",
	"Diagnostic",
	"DiagnosticEngine",
	"Frame",
	"FrameStack",
	"LineScanner",
	"LuaCheckerEngine",
	"LuaValidator",
	"Position",
	"Severity",
	"Span",
	"validate",
]
