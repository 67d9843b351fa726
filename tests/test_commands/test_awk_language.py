"""Unit tests for the awk lexer, parser and value helpers."""

import pytest

from monk_tty.commands.awk import AwkSyntaxError, parse_program
from monk_tty.commands.awk import ast
from monk_tty.commands.awk import builtins as bi
from monk_tty.commands.awk.lexer import tokenize
from monk_tty.commands.awk.types import TokenType


class TestLexer:
    def test_slash_after_operand_is_division(self):
        types = [t.type for t in tokenize("a / b")]
        assert TokenType.REGEX not in types

    def test_slash_at_start_is_regex(self):
        tokens = tokenize("/a+b/ { print }")
        assert tokens[0].type == TokenType.REGEX
        assert tokens[0].value == "a+b"

    def test_newline_after_comma_continues(self):
        types = [t.type for t in tokenize("print a,\nb")]
        assert TokenType.NEWLINE not in types

    def test_comments_are_skipped(self):
        tokens = tokenize("x = 1 # set x\n")
        assert [t.value for t in tokens if t.type == TokenType.IDENTIFIER] == ["x"]

    def test_string_escapes(self):
        tokens = tokenize('"a\\tb\\n"')
        assert tokens[0].value == "a\tb\n"

    def test_positions(self):
        tokens = tokenize("BEGIN {\n  x = 1\n}")
        x = next(t for t in tokens if t.value == "x")
        assert (x.line, x.column) == (2, 3)

    def test_unterminated_string(self):
        with pytest.raises(AwkSyntaxError, match="unterminated string"):
            tokenize('print "oops')

    def test_unexpected_character(self):
        with pytest.raises(AwkSyntaxError, match="line 1, column 7"):
            tokenize("print @")


class TestParser:
    def test_program_sections(self):
        program = parse_program("BEGIN { x = 1 } /a/ { print } END { print x } function f(a) { return a }")
        assert len(program.begin) == 1
        assert len(program.rules) == 1
        assert len(program.end) == 1
        assert list(program.functions) == ["f"]
        assert program.functions["f"].params == ["a"]

    def test_pattern_without_action(self):
        rule = parse_program("NR > 1").rules[0]
        assert rule.action is None
        assert isinstance(rule.pattern, ast.Binary)

    def test_range_pattern(self):
        rule = parse_program("/start/, /end/").rules[0]
        assert isinstance(rule.pattern, ast.RangePattern)

    def test_print_redirect(self):
        stmt = parse_program('{ print $1, $2 > "out" }').rules[0].action.statements[0]
        assert isinstance(stmt, ast.Print)
        assert len(stmt.args) == 2
        assert stmt.redirect == ">"

    def test_comparison_inside_print_parens(self):
        stmt = parse_program("{ print (1 > 2) }").rules[0].action.statements[0]
        assert stmt.redirect is None
        assert len(stmt.args) == 1
        assert isinstance(stmt.args[0], ast.Binary)

    def test_power_binds_tighter_than_unary_minus(self):
        stmt = parse_program("BEGIN { x = -2 ^ 2 }").begin[0].statements[0]
        value = stmt.expr.value
        assert isinstance(value, ast.Unary)
        assert isinstance(value.operand, ast.Binary)
        assert value.operand.op == "^"

    def test_concatenation_below_addition(self):
        stmt = parse_program('BEGIN { x = "a" 1 + 2 }').begin[0].statements[0]
        value = stmt.expr.value
        assert isinstance(value, ast.Concat)
        assert isinstance(value.right, ast.Binary)

    def test_in_with_tuple(self):
        stmt = parse_program("BEGIN { x = (1, 2) in m }").begin[0].statements[0]
        assert isinstance(stmt.expr.value, ast.InExpr)
        assert len(stmt.expr.value.subscripts) == 2

    def test_getline_forms(self):
        statements = parse_program('BEGIN { getline; getline x < "f"; "cmd" | getline y }').begin[0].statements
        plain, from_file, from_command = (s.expr for s in statements)
        assert plain.target is None and plain.file is None
        assert from_file.target.name == "x"
        assert from_command.command.value == "cmd"

    def test_semicolon_before_else(self):
        stmt = parse_program("BEGIN { if (x) y = 1; else y = 2 }").begin[0].statements[0]
        assert stmt.otherwise is not None

    def test_missing_brace(self):
        with pytest.raises(AwkSyntaxError, match="missing '}'"):
            parse_program("{ print $1")

    def test_assignment_to_constant(self):
        with pytest.raises(AwkSyntaxError, match="assignment to non-variable"):
            parse_program("BEGIN { 1 = 2 }")

    def test_redefined_function(self):
        with pytest.raises(AwkSyntaxError, match="redefined"):
            parse_program("function f() {} function f() {}")

    def test_builtin_cannot_be_redefined(self):
        with pytest.raises(AwkSyntaxError):
            parse_program("function length(s) { return 1 }")

    def test_duplicate_parameter(self):
        with pytest.raises(AwkSyntaxError, match="duplicate parameter"):
            parse_program("function f(a, a) {}")


class TestValues:
    def test_to_number_uses_leading_prefix(self):
        assert bi.to_number("3x") == 3.0
        assert bi.to_number(" 1e3 ") == 1000.0
        assert bi.to_number("x3") == 0.0
        assert bi.to_number(bi.UNSET) == 0.0

    def test_number_formatting(self):
        assert bi.to_str(3.0) == "3"
        assert bi.to_str(0.5) == "0.5"
        assert bi.to_str(1 / 3) == "0.333333"
        assert bi.to_str(-0.0) == "0"

    def test_uninitialized_compares_both_ways(self):
        assert bi.compare(bi.UNSET, 0.0) == 0
        assert bi.compare(bi.UNSET, "") == 0

    def test_strnum_comparison(self):
        assert bi.compare("10", "9") > 0
        assert bi.compare("10", "9x") < 0

    def test_truthiness(self):
        assert not bi.to_bool("")
        assert bi.to_bool("0")
        assert not bi.to_bool(0.0)


class TestStringHelpers:
    def test_split_fields_default(self):
        assert bi.split_fields("  a\tb  c ", " ") == ["a", "b", "c"]

    def test_split_fields_literal_char(self):
        assert bi.split_fields("a|b||c", "|") == ["a", "b", "", "c"]

    def test_split_fields_regex(self):
        assert bi.split_fields("a1b22c", "[0-9]+") == ["a", "b", "c"]

    def test_split_fields_paragraph(self):
        assert bi.split_fields("a:b\nc", ":", paragraph=True) == ["a", "b", "c"]

    def test_split_records(self):
        assert bi.split_records("a\nb\n", "\n") == ["a", "b"]
        assert bi.split_records("\n\na\nb\n\n\nc\n", "") == ["a\nb", "c"]

    def test_substr(self):
        assert bi.substr("hello", 2) == "ello"
        assert bi.substr("hello", 0, 2) == "h"
        assert bi.substr("hello", 1.5, 2) == "el"
        assert bi.substr("hello", 10) == ""

    def test_replacement_ampersand(self):
        assert bi.expand_replacement("[&]", "x") == "[x]"
        assert bi.expand_replacement("\\&", "x") == "&"

    def test_index(self):
        assert bi.index("hello", "ll") == 3.0
        assert bi.index("hello", "z") == 0.0
        assert bi.index("", "") == 0.0

    def test_match(self):
        assert bi.match("foobar", bi.compile_regex("o+")) == (2.0, 2.0)
        assert bi.match("foobar", bi.compile_regex("z")) == (0.0, -1.0)

    def test_posix_classes(self):
        assert bi.compile_regex("^[[:digit:]]+$").match("123")
        assert not bi.compile_regex("^[[:alpha:]]+$").match("a1")


class TestPrintf:
    def test_conversions(self):
        assert bi.format_printf("%d %i", [3.9, -3.9]) == "3 -3"
        assert bi.format_printf("%5s|%-5s|", ["ab", "cd"]) == "   ab|cd   |"
        assert bi.format_printf("%.3s", ["abcdef"]) == "abc"
        assert bi.format_printf("%e", [1234.5]) == "1.234500e+03"
        assert bi.format_printf("%o %X", [8.0, 255.0]) == "10 FF"

    def test_char_from_string(self):
        assert bi.format_printf("%c", ["hello"]) == "h"
        assert bi.format_printf("%c", ["65"]) == "A"
        assert bi.format_printf("%c", [bi.UNSET]) == ""

    def test_missing_arguments(self):
        assert bi.format_printf("%s|%d", []) == "|0"

    def test_literal_percent_and_unknown(self):
        assert bi.format_printf("100%% %z", []) == "100% %z"


class TestRandom:
    def test_same_seed_same_sequence(self):
        a = bi.RandomState()
        b = bi.RandomState()
        assert [a.rand() for _ in range(3)] == [b.rand() for _ in range(3)]

    def test_srand_returns_previous_seed(self):
        state = bi.RandomState()
        assert state.srand(5) == 0.0
        assert state.srand(7) == 5.0
