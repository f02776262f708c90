import pytest

from lua_checker import (
	SAMPLE_SOURCE,
	BlockFrame,
	BracketFrame,
	Diagnostic,
	DiagnosticEngine,
	FrameStack,
	LineScanner,
	LuaCheckerEngine,
	Position,
	Severity,
	Span,
	validate,
)


def messages(text: str) -> list:
	return [d.message for d in validate(text)]


def test_empty_source_has_no_diagnostics() -> None:
	assert validate("") == []


@pytest.mark.parametrize(
	"source",
	[
		"(foo)",
		"local t = {1, 2, [3] = (4)}",
		"print(\"(\")",
		"print('[')",
		's = "a\\"(b"',
		"local format = 1",
	],
)
def test_balanced_or_quoted_brackets_produce_nothing(source: str) -> None:
	assert validate(source) == []


def test_unclosed_bracket_points_at_opener() -> None:
	diagnostics = validate("(foo")

	assert diagnostics == [Diagnostic(Severity.ERROR, "Unclosed '('", Span.on_line(0, 0, 1))]


def test_unexpected_closer() -> None:
	diagnostics = validate(")")

	assert diagnostics == [Diagnostic(Severity.ERROR, "Unexpected closing ')'", Span.on_line(0, 0, 1))]


def test_mismatched_pair_consumes_opener() -> None:
	diagnostics = validate("(]")

	assert diagnostics == [
		Diagnostic(Severity.ERROR, "Mismatched brackets: expected ')' but found ']'", Span.on_line(0, 1, 2))
	]


def test_mismatches_do_not_resynchronise() -> None:
	assert messages("([)]") == [
		"Mismatched brackets: expected ']' but found ')'",
		"Mismatched brackets: expected ')' but found ']'",
	]


def test_unclosed_brackets_are_reported_oldest_first() -> None:
	assert messages("x = ({") == ["Unclosed '('", "Unclosed '{'"]


def test_comment_hides_brackets_and_keywords() -> None:
	assert validate("-- ( [ { end") == []


def test_trailing_comment_hides_brackets() -> None:
	assert validate("x = 1 -- (") == []


def test_string_state_resets_at_line_end() -> None:
	diagnostics = validate('x = "abc\n(')

	assert diagnostics == [Diagnostic(Severity.ERROR, "Unclosed '('", Span.on_line(1, 0, 1))]


def test_function_block_closed_by_end() -> None:
	assert validate("function f()\nend") == []


def test_repeat_closed_by_bare_until() -> None:
	assert validate("repeat\nuntil") == []


def test_until_with_condition_is_not_a_closer() -> None:
	diagnostics = validate("repeat\nuntil true")

	assert diagnostics == [
		Diagnostic(Severity.ERROR, "Unclosed 'repeat' block - missing 'until'", Span.on_line(0, 0, 10))
	]


def test_end_followed_by_paren_is_not_a_closer() -> None:
	assert messages("f(function()\nend)") == ["Unclosed 'function' block - missing 'end'"]


def test_if_then_end_is_clean() -> None:
	assert validate("if x > 0 then\nend") == []


def test_missing_then_warns_but_block_still_matches() -> None:
	diagnostics = validate("if x > 0\nend")

	assert diagnostics == [
		Diagnostic(Severity.WARNING, "Missing 'then' after 'if' statement", Span.on_line(0, 0, 8))
	]


@pytest.mark.parametrize("source", ["for i = 1, 3\nend", "while true\nend"])
def test_missing_do_warns(source: str) -> None:
	diagnostics = validate(source)

	assert len(diagnostics) == 1
	assert diagnostics[0].severity == Severity.WARNING
	assert diagnostics[0].message == "Missing 'do' after loop statement"


def test_for_do_line_opens_two_blocks() -> None:
	assert messages("for i = 1, 2 do\nend") == ["Unclosed 'for' block - missing 'end'"]


def test_unexpected_end_spans_whole_line() -> None:
	diagnostics = validate("  end  ")

	assert diagnostics == [
		Diagnostic(Severity.ERROR, "Unexpected 'end' - no matching block statement", Span.on_line(0, 0, 7))
	]


def test_until_without_repeat() -> None:
	assert messages("until") == ["'until' without matching 'repeat'"]
	assert messages("if a then\nuntil") == [
		"'until' without matching 'repeat'",
		"Unclosed 'if' block - missing 'end'",
	]


def test_unclosed_parameter_list() -> None:
	diagnostics = validate("  function g(a, b")

	assert diagnostics == [
		Diagnostic(Severity.ERROR, "Unclosed function parameter list", Span.on_line(0, 12, 17)),
		Diagnostic(Severity.ERROR, "Unclosed '('", Span.on_line(0, 12, 13)),
		Diagnostic(Severity.ERROR, "Unclosed 'function' block - missing 'end'", Span.on_line(0, 0, 10)),
	]


def test_comment_lines_skip_loop_and_if_warnings() -> None:
	assert validate("-- if x\n-- while y") == []


def test_commented_parameter_list_still_reported() -> None:
	assert messages("-- function f(") == ["Unclosed function parameter list"]


def test_keyword_inside_string_is_still_counted() -> None:
	assert messages('print("do it")') == ["Unclosed 'do' block - missing 'end'"]


def test_order_within_a_line() -> None:
	assert messages("if x)") == [
		"Unexpected closing ')'",
		"Missing 'then' after 'if' statement",
		"Unclosed 'if' block - missing 'end'",
	]


def test_sample_source_diagnostics() -> None:
	assert validate(SAMPLE_SOURCE) == [
		Diagnostic(Severity.ERROR, "Unclosed function parameter list", Span.on_line(12, 27, 28)),
		Diagnostic(Severity.ERROR, "Unclosed 'for' block - missing 'end'", Span.on_line(19, 0, 10)),
		Diagnostic(Severity.ERROR, "Unclosed 'function' block - missing 'end'", Span.on_line(24, 0, 10)),
		Diagnostic(Severity.ERROR, "Unclosed 'for' block - missing 'end'", Span.on_line(25, 0, 10)),
	]


def test_validation_is_deterministic() -> None:
	source = "function f(\n  if x\n    y = {[1] = (2]\n  end\nrepeat\nuntil x\n)"

	assert validate(source) == validate(source)
	assert [d.to_dict() for d in validate(source)] == [d.to_dict() for d in validate(source)]


def test_large_input() -> None:
	assert validate("x = {}\n" * 5000) == []
	assert len(validate("(" * 5000)) == 5000


def test_line_scanner_yields_code_characters_only() -> None:
	assert list(LineScanner('a"(b"c').code_characters()) == [(0, "a"), (4, '"'), (5, "c")]
	assert list(LineScanner("x -- (").code_characters()) == [(0, "x"), (1, " ")]


def test_frame_stack_drain_empties_stack() -> None:
	stack: FrameStack[BlockFrame] = FrameStack()
	stack.push(BlockFrame("repeat", 2))
	stack.push(BlockFrame("while", 3))

	drained = stack.drain()

	assert [d.message for d in drained] == [
		"Unclosed 'repeat' block - missing 'until'",
		"Unclosed 'while' block - missing 'end'",
	]
	assert len(stack) == 0
	assert stack.pop() is None


def test_bracket_frame_closer() -> None:
	assert BracketFrame("[", 0, 0).closer == "]"
	assert BracketFrame("{", 1, 4).unclosed().span == Span.on_line(1, 4, 5)


def test_position_rejects_negative_values() -> None:
	with pytest.raises(ValueError):
		Position(-1, 0)


def test_annotation_shape() -> None:
	diag = validate(")")[0]

	assert diag.to_annotation() == {
		"from": {"line": 0, "ch": 0},
		"to": {"line": 0, "ch": 1},
		"message": "Unexpected closing ')'",
		"severity": "error",
	}


def test_engine_artifacts() -> None:
	art = LuaCheckerEngine().check("if x\nend\n)")

	assert art.line_count == 3
	assert art.error_count == 1
	assert art.warning_count == 1
	assert art.has_errors is True
	assert art.duration_ms >= 0


def test_byte_order_mark_is_trimmed_like_whitespace() -> None:
	assert validate("\ufeffend") == [
		Diagnostic(Severity.ERROR, "Unexpected 'end' - no matching block statement", Span.on_line(0, 0, 4))
	]
	assert validate("\ufeff-- if this is a note\nprint(1)\n") == []


def test_validator_keeps_no_state_between_runs() -> None:
	validate(")")

	assert validate("") == []
	assert not hasattr(DiagnosticEngine, "clear")
