"""Tests for the awk command."""

import asyncio

import pytest

from monk_tty import ExecutionLimits, Shell


class TestAwkBasic:
    """Test basic awk functionality."""

    @pytest.mark.asyncio
    async def test_print_all(self):
        shell = Shell(files={"/input.txt": "hello\nworld"})
        result = await shell.exec("awk '{print}' /input.txt")
        assert result.stdout == "hello\nworld\n"
        assert result.exit_code == 0

    @pytest.mark.asyncio
    async def test_print_field(self):
        shell = Shell(files={"/input.txt": "a b c\nd e f\n"})
        result = await shell.exec("awk '{print $2}' /input.txt")
        assert result.stdout == "b\ne\n"

    @pytest.mark.asyncio
    async def test_print_last_field(self):
        shell = Shell(files={"/input.txt": "a b c\nd e f\n"})
        result = await shell.exec("awk '{print $NF}' /input.txt")
        assert result.stdout == "c\nf\n"

    @pytest.mark.asyncio
    async def test_stdin(self):
        shell = Shell()
        result = await shell.exec("echo 'x y' | awk '{print $2}'")
        assert result.stdout == "y\n"

    @pytest.mark.asyncio
    async def test_stdin_dash(self):
        shell = Shell()
        result = await shell.exec("awk '{print NR, $0}' -", stdin="a\nb\n")
        assert result.stdout == "1 a\n2 b\n"

    @pytest.mark.asyncio
    async def test_begin_only_does_not_read_input(self):
        shell = Shell()
        result = await shell.exec("awk 'BEGIN{print \"start\"}'", stdin="ignored\n")
        assert result.stdout == "start\n"

    @pytest.mark.asyncio
    async def test_end_block(self):
        shell = Shell(files={"/input.txt": "a\nb\n"})
        result = await shell.exec("awk 'END{print NR}' /input.txt")
        assert result.stdout == "2\n"

    @pytest.mark.asyncio
    async def test_sum_column(self):
        shell = Shell(files={"/n.txt": "1\n2\n3.5\n"})
        result = await shell.exec("awk '{sum += $1} END {print sum}' /n.txt")
        assert result.stdout == "6.5\n"


class TestAwkFields:
    @pytest.mark.asyncio
    async def test_default_separator_trims(self):
        shell = Shell()
        result = await shell.exec("""echo "  a  b c  " | awk '{print NF; print $1 "-" $2 "-" $3}'""")
        assert result.stdout == "3\na-b-c\n"

    @pytest.mark.asyncio
    async def test_single_char_separator_keeps_empty_fields(self):
        shell = Shell()
        result = await shell.exec("""echo "a,,c" | awk -F, '{print NF; print "[" $2 "]"}'""")
        assert result.stdout == "3\n[]\n"

    @pytest.mark.asyncio
    async def test_tab_separator(self):
        shell = Shell(files={"/t.tsv": "a b\tc\n"})
        result = await shell.exec("awk -F '\\t' '{print $2}' /t.tsv")
        assert result.stdout == "c\n"

    @pytest.mark.asyncio
    async def test_regex_separator(self):
        shell = Shell()
        result = await shell.exec("""echo "a1b22c" | awk -F '[0-9]+' '{print $3}'""")
        assert result.stdout == "c\n"

    @pytest.mark.asyncio
    async def test_separator_set_in_begin(self):
        shell = Shell()
        result = await shell.exec("""echo "a:b" | awk 'BEGIN{FS=":"} {print $2}'""")
        assert result.stdout == "b\n"

    @pytest.mark.asyncio
    async def test_assigning_field_rebuilds_record(self):
        shell = Shell()
        result = await shell.exec("""echo "a b c" | awk '{$2 = "X"; print; print NF}'""")
        assert result.stdout == "a X c\n3\n"

    @pytest.mark.asyncio
    async def test_output_separator(self):
        shell = Shell()
        result = await shell.exec("""echo "a b c" | awk 'BEGIN{OFS="-"} {$1 = $1; print; print $1, $3}'""")
        assert result.stdout == "a-b-c\na-c\n"

    @pytest.mark.asyncio
    async def test_assign_beyond_nf(self):
        shell = Shell()
        result = await shell.exec("""echo "a" | awk '{$3 = "c"; print; print NF}'""")
        assert result.stdout == "a  c\n3\n"

    @pytest.mark.asyncio
    async def test_set_nf_truncates(self):
        shell = Shell()
        result = await shell.exec("""echo "a b c d" | awk '{NF = 2; print}'""")
        assert result.stdout == "a b\n"

    @pytest.mark.asyncio
    async def test_increment_field(self):
        shell = Shell()
        result = await shell.exec("echo 5 | awk '{$1++; print $1}'")
        assert result.stdout == "6\n"


class TestAwkValues:
    @pytest.mark.asyncio
    async def test_numeric_looking_strings_compare_numerically(self):
        shell = Shell()
        result = await shell.exec("""awk 'BEGIN{print ("10" < "9")}'""")
        assert result.stdout == "0\n"

    @pytest.mark.asyncio
    async def test_non_numeric_strings_compare_lexically(self):
        shell = Shell()
        result = await shell.exec("""awk 'BEGIN{print ("abc" < "abd"), ("10" < "9x")}'""")
        assert result.stdout == "1 1\n"

    @pytest.mark.asyncio
    async def test_fields_compare_numerically(self):
        shell = Shell(files={"/n.txt": "10\n9\n100\n"})
        result = await shell.exec("awk '$1 > 9' /n.txt")
        assert result.stdout == "10\n100\n"

    @pytest.mark.asyncio
    async def test_uninitialized_is_zero_and_empty(self):
        shell = Shell()
        result = await shell.exec("""awk 'BEGIN{if (x == 0 && x == "") print "both"; print x "|" y + 0}'""")
        assert result.stdout == "both\n|0\n"

    @pytest.mark.asyncio
    async def test_string_to_number_prefix(self):
        shell = Shell()
        result = await shell.exec("""awk 'BEGIN{print "3x" + 4, "abc" + 0}'""")
        assert result.stdout == "7 0\n"

    @pytest.mark.asyncio
    async def test_number_output(self):
        shell = Shell()
        result = await shell.exec("awk 'BEGIN{print 3/2, 1e6, 0.1 + 0.2, 1/3}'")
        assert result.stdout == "1.5 1000000 0.3 0.333333\n"

    @pytest.mark.asyncio
    async def test_arithmetic(self):
        shell = Shell()
        result = await shell.exec("awk 'BEGIN{print int(3.9), int(-3.9), sqrt(16), 2^10, 7%3, -2^2}'")
        assert result.stdout == "3 -3 4 1024 1 -4\n"

    @pytest.mark.asyncio
    async def test_division_by_zero_yields_zero(self):
        shell = Shell()
        result = await shell.exec("awk 'BEGIN{print 1/0, 5%0}'")
        assert result.stdout == "0 0\n"
        assert result.exit_code == 0

    @pytest.mark.asyncio
    async def test_string_escapes(self):
        shell = Shell()
        result = await shell.exec("""awk 'BEGIN{print "a\\tb\\\\c\\"d"}'""")
        assert result.stdout == 'a\tb\\c"d\n'

    @pytest.mark.asyncio
    async def test_ternary_and_logic(self):
        shell = Shell()
        result = await shell.exec("""awk 'BEGIN{x = 5; print (x > 3 ? "big" : "small"), !x, (x && 0), (0 || x)}'""")
        assert result.stdout == "big 0 0 1\n"


class TestAwkPatterns:
    @pytest.mark.asyncio
    async def test_regex_pattern(self):
        shell = Shell(files={"/f.txt": "apple\nbanana\ncherry\n"})
        result = await shell.exec("awk '/an/' /f.txt")
        assert result.stdout == "banana\n"

    @pytest.mark.asyncio
    async def test_match_operators(self):
        shell = Shell(files={"/f.txt": "apple 1\nbanana 2\ncherry 3\n"})
        result = await shell.exec("awk '$1 ~ /^c/ {print $2} $1 !~ /a/ {print \"no a: \" $1}' /f.txt")
        assert result.stdout == "3\nno a: cherry\n"

    @pytest.mark.asyncio
    async def test_dynamic_regex(self):
        shell = Shell(files={"/f.txt": "apple\nbanana\n"})
        result = await shell.exec("awk -v pat='^b' '$0 ~ pat' /f.txt")
        assert result.stdout == "banana\n"

    @pytest.mark.asyncio
    async def test_range_pattern(self):
        shell = Shell(files={"/r.txt": "a\nstart\nb\nend\nc\n"})
        result = await shell.exec("awk '/start/,/end/' /r.txt")
        assert result.stdout == "start\nb\nend\n"

    @pytest.mark.asyncio
    async def test_range_pattern_reopens(self):
        shell = Shell(files={"/r.txt": "1\n2\n3\n4\n5\n6\n"})
        result = await shell.exec("awk '$1 % 3 == 1, $1 % 3 == 2 {print}' /r.txt")
        assert result.stdout == "1\n2\n4\n5\n"

    @pytest.mark.asyncio
    async def test_range_on_single_record(self):
        shell = Shell(files={"/r.txt": "x\nstart end\ny\n"})
        result = await shell.exec("awk '/start/,/end/' /r.txt")
        assert result.stdout == "start end\n"

    @pytest.mark.asyncio
    async def test_expression_pattern(self):
        shell = Shell(files={"/f.txt": "a\nb\nc\n"})
        result = await shell.exec("awk 'NR > 1 {print NR \": \" $0}' /f.txt")
        assert result.stdout == "2: b\n3: c\n"


class TestAwkControlFlow:
    @pytest.mark.asyncio
    async def test_next_skips_remaining_rules(self):
        shell = Shell(files={"/f.txt": "a\nskip\nb\n"})
        result = await shell.exec("awk '/skip/ {next} {print}' /f.txt")
        assert result.stdout == "a\nb\n"

    @pytest.mark.asyncio
    async def test_exit_in_rule_runs_end(self):
        shell = Shell(files={"/f.txt": "a\nb\n"})
        result = await shell.exec("awk '{print; exit 3} END {print \"end\"}' /f.txt")
        assert result.stdout == "a\nend\n"
        assert result.exit_code == 3

    @pytest.mark.asyncio
    async def test_exit_in_begin_stops_immediately(self):
        shell = Shell(files={"/f.txt": "a\n"})
        result = await shell.exec("awk 'BEGIN {exit 4} {print} END {print \"end\"}' /f.txt")
        assert result.stdout == ""
        assert result.exit_code == 4

    @pytest.mark.asyncio
    async def test_exit_in_end(self):
        shell = Shell()
        result = await shell.exec("awk 'END {print \"a\"; exit 1; print \"b\"}'", stdin="x\n")
        assert result.stdout == "a\n"
        assert result.exit_code == 1

    @pytest.mark.asyncio
    async def test_exit_without_code_keeps_earlier_code(self):
        shell = Shell()
        result = await shell.exec("awk '{exit 5} END {exit}'", stdin="x\n")
        assert result.exit_code == 5

    @pytest.mark.asyncio
    async def test_loops(self):
        shell = Shell()
        program = (
            "BEGIN {"
            " for (i = 1; i <= 5; i++) { if (i == 2) continue; if (i == 4) break; s = s i };"
            " while (j < 3) j++;"
            " do { k++ } while (k < 0);"
            " print s, j, k"
            "}"
        )
        result = await shell.exec(f"awk '{program}'")
        assert result.stdout == "13 3 1\n"

    @pytest.mark.asyncio
    async def test_next_inside_function(self):
        shell = Shell(files={"/f.txt": "a\nb\nc\n"})
        result = await shell.exec(
            "awk 'function skip_b() { if ($0 == \"b\") next } { skip_b(); print }' /f.txt"
        )
        assert result.stdout == "a\nc\n"

    @pytest.mark.asyncio
    async def test_exit_inside_function(self):
        shell = Shell(files={"/f.txt": "a\nb\n"})
        result = await shell.exec(
            "awk 'function stop() { exit 7 } { print; stop() } END { print \"end\" }' /f.txt"
        )
        assert result.stdout == "a\nend\n"
        assert result.exit_code == 7


class TestAwkArrays:
    @pytest.mark.asyncio
    async def test_count_words(self):
        shell = Shell(files={"/w.txt": "b a\nb c b\n"})
        result = await shell.exec("awk '{for (i = 1; i <= NF; i++) n[$i]++} END {print n[\"a\"], n[\"b\"], n[\"c\"]}' /w.txt")
        assert result.stdout == "1 3 1\n"

    @pytest.mark.asyncio
    async def test_in_and_delete(self):
        shell = Shell()
        result = await shell.exec(
            """awk 'BEGIN{a["x"] = 1; a["y"] = 2; delete a["x"]; print ("x" in a), ("y" in a), length(a)}'"""
        )
        assert result.stdout == "0 1 1\n"

    @pytest.mark.asyncio
    async def test_delete_whole_array(self):
        shell = Shell()
        result = await shell.exec("""awk 'BEGIN{a[1]; a[2]; delete a; print length(a)}'""")
        assert result.stdout == "0\n"

    @pytest.mark.asyncio
    async def test_multi_dimensional(self):
        shell = Shell()
        result = await shell.exec(
            """awk 'BEGIN{m[1, 2] = "x"; if ((1, 2) in m) print "yes"; for (k in m) { split(k, p, SUBSEP); print p[1], p[2] }}'"""
        )
        assert result.stdout == "yes\n1 2\n"

    @pytest.mark.asyncio
    async def test_for_in(self):
        shell = Shell()
        result = await shell.exec("""awk 'BEGIN{a["k"] = "v"; for (key in a) print key, a[key]}'""")
        assert result.stdout == "k v\n"

    @pytest.mark.asyncio
    async def test_scalar_used_as_array(self):
        shell = Shell()
        result = await shell.exec("awk 'BEGIN{x = 1; x[1] = 2}'")
        assert result.exit_code == 1
        assert result.stderr == "awk: attempt to use scalar 'x' as an array\n"


class TestAwkFunctions:
    @pytest.mark.asyncio
    async def test_user_function(self):
        shell = Shell()
        result = await shell.exec("awk 'function add(a, b) { return a + b } BEGIN { print add(2, 3) }'")
        assert result.stdout == "5\n"

    @pytest.mark.asyncio
    async def test_recursion(self):
        shell = Shell()
        result = await shell.exec(
            "awk 'function fact(n) { return n <= 1 ? 1 : n * fact(n - 1) } BEGIN { print fact(10) }'"
        )
        assert result.stdout == "3628800\n"

    @pytest.mark.asyncio
    async def test_scalars_by_value(self):
        shell = Shell()
        result = await shell.exec("awk 'function inc(x) { x++; return x } BEGIN { y = 5; print inc(y), y }'")
        assert result.stdout == "6 5\n"

    @pytest.mark.asyncio
    async def test_arrays_by_reference(self):
        shell = Shell()
        result = await shell.exec(
            "awk 'function fill(arr, n,   i) { for (i = 1; i <= n; i++) arr[i] = i * i }"
            " BEGIN { fill(sq, 3); print sq[1], sq[2], sq[3] }'"
        )
        assert result.stdout == "1 4 9\n"

    @pytest.mark.asyncio
    async def test_existing_array_by_reference(self):
        shell = Shell()
        result = await shell.exec(
            "awk 'function clear(arr) { delete arr[\"a\"] } BEGIN { t[\"a\"] = 1; t[\"b\"] = 2; clear(t); print length(t) }'"
        )
        assert result.stdout == "1\n"

    @pytest.mark.asyncio
    async def test_locals_are_fresh(self):
        shell = Shell()
        result = await shell.exec(
            "awk 'function f(   tmp) { tmp = tmp \"x\"; return tmp } BEGIN { f(); print f() }'"
        )
        assert result.stdout == "x\n"

    @pytest.mark.asyncio
    async def test_runaway_recursion_is_caught(self):
        shell = Shell()
        result = await shell.exec("awk 'function f(n) { return f(n + 1) } BEGIN { f(1) }'")
        assert result.exit_code == 1
        assert result.stderr == "awk: stack depth exceeded\n"

    @pytest.mark.asyncio
    async def test_depth_limit_is_configurable(self):
        shell = Shell(limits=ExecutionLimits(max_awk_call_depth=5))
        result = await shell.exec(
            "awk 'function fact(n) { return n <= 1 ? 1 : n * fact(n - 1) } BEGIN { print fact(10) }'"
        )
        assert result.exit_code == 1
        assert "stack depth exceeded" in result.stderr
        result = await shell.exec(
            "awk 'function fact(n) { return n <= 1 ? 1 : n * fact(n - 1) } BEGIN { print fact(5) }'"
        )
        assert result.stdout == "120\n"

    @pytest.mark.asyncio
    async def test_too_many_arguments(self):
        shell = Shell()
        result = await shell.exec("awk 'function f(a) { return a } BEGIN { f(1, 2) }'")
        assert result.exit_code == 1
        assert "accepts only 1" in result.stderr


class TestAwkBuiltins:
    @pytest.mark.asyncio
    async def test_string_functions(self):
        shell = Shell()
        result = await shell.exec(
            """awk 'BEGIN{print length("abc"), substr("hello", 2, 3), index("hello", "ll"), toupper("ab"), tolower("CD")}'"""
        )
        assert result.stdout == "3 ell 3 AB cd\n"

    @pytest.mark.asyncio
    async def test_length_of_record(self):
        shell = Shell()
        result = await shell.exec("echo hello | awk '{print length}'")
        assert result.stdout == "5\n"

    @pytest.mark.asyncio
    async def test_substr_clipping(self):
        shell = Shell()
        result = await shell.exec("""awk 'BEGIN{print substr("hello", 0) "|" substr("hello", -1, 3) "|" substr("hello", 4, 100)}'""")
        assert result.stdout == "hello|h|lo\n"

    @pytest.mark.asyncio
    async def test_gsub_on_record(self):
        shell = Shell()
        result = await shell.exec("echo 'foo boo' | awk '{n = gsub(/o/, \"0\"); print n, $0, $2}'")
        assert result.stdout == "4 f00 b00 b00\n"

    @pytest.mark.asyncio
    async def test_sub_with_ampersand(self):
        shell = Shell()
        result = await shell.exec("""awk 'BEGIN{s = "hello"; sub(/l+/, "[&]", s); print s}'""")
        assert result.stdout == "he[ll]o\n"

    @pytest.mark.asyncio
    async def test_split(self):
        shell = Shell()
        result = await shell.exec("""awk 'BEGIN{n = split("a:b:c", parts, ":"); print n, parts[1], parts[3]}'""")
        assert result.stdout == "3 a c\n"

    @pytest.mark.asyncio
    async def test_split_regex(self):
        shell = Shell()
        result = await shell.exec("""awk 'BEGIN{n = split("a1b22c", parts, /[0-9]+/); print n, parts[2]}'""")
        assert result.stdout == "3 b\n"

    @pytest.mark.asyncio
    async def test_match(self):
        shell = Shell()
        result = await shell.exec("""awk 'BEGIN{print match("foobar", /ob/), RSTART, RLENGTH}'""")
        assert result.stdout == "3 3 2\n"

    @pytest.mark.asyncio
    async def test_invalid_regex_in_builtin_is_lenient(self):
        shell = Shell()
        result = await shell.exec("""awk 'BEGIN{print match("abc", "("), RLENGTH}'""")
        assert result.stdout == "0 -1\n"
        assert result.exit_code == 0

    @pytest.mark.asyncio
    async def test_printf(self):
        shell = Shell()
        result = await shell.exec(
            """awk 'BEGIN{printf "%-5s|%5.2f|%d|%x|%c|%%\\n", "ab", 3.14159, 42.9, 255, 65}'"""
        )
        assert result.stdout == "ab   | 3.14|42|ff|A|%\n"

    @pytest.mark.asyncio
    async def test_printf_char_from_numeric_field(self):
        shell = Shell()
        result = await shell.exec("""echo 65 x | awk '{printf "%c%c\\n", $1, $2}'""")
        assert result.stdout == "Ax\n"

    @pytest.mark.asyncio
    async def test_index_of_empty_string(self):
        shell = Shell()
        result = await shell.exec("""awk 'BEGIN{print index("", ""), index("abc", "")}'""")
        assert result.stdout == "0 0\n"

    @pytest.mark.asyncio
    async def test_printf_star_width(self):
        shell = Shell()
        result = await shell.exec("""awk 'BEGIN{printf("[%*d]\\n", 4, 7)}'""")
        assert result.stdout == "[   7]\n"

    @pytest.mark.asyncio
    async def test_sprintf(self):
        shell = Shell()
        result = await shell.exec("""awk 'BEGIN{s = sprintf("%03d-%s", 7, "x"); print s}'""")
        assert result.stdout == "007-x\n"

    @pytest.mark.asyncio
    async def test_srand_is_repeatable(self):
        shell = Shell()
        result = await shell.exec(
            "awk 'BEGIN{srand(1); a = rand(); srand(1); b = rand(); print (a == b), (a >= 0 && a < 1), srand(9)}'"
        )
        assert result.stdout == "1 1 1\n"

    @pytest.mark.asyncio
    async def test_environ(self):
        shell = Shell(env={"GREETING": "hi"})
        result = await shell.exec("""awk 'BEGIN{print ENVIRON["GREETING"]}'""")
        assert result.stdout == "hi\n"

    @pytest.mark.asyncio
    async def test_command_getline_reads_nothing(self):
        shell = Shell()
        result = await shell.exec("""awk 'BEGIN{r = ("date" | getline d); print r, system("true")}'""")
        assert result.stdout == "0 -1\n"


class TestAwkInput:
    @pytest.mark.asyncio
    async def test_multiple_files(self):
        shell = Shell(files={"/a.txt": "1\n2\n", "/b.txt": "3\n"})
        result = await shell.exec("awk '{print FILENAME, FNR, NR}' /a.txt /b.txt")
        assert result.stdout == "/a.txt 1 1\n/a.txt 2 2\n/b.txt 1 3\n"

    @pytest.mark.asyncio
    async def test_relative_file(self):
        shell = Shell(files={"/home/root/data.txt": "x\n"}, cwd="/home/root")
        result = await shell.exec("awk '{print}' data.txt")
        assert result.stdout == "x\n"

    @pytest.mark.asyncio
    async def test_missing_file_exit_two(self):
        shell = Shell(files={"/a.txt": "ok\n"})
        result = await shell.exec("awk '{print}' /nope.txt /a.txt")
        assert result.stdout == "ok\n"
        assert result.stderr == "awk: /nope.txt: No such file or directory\n"
        assert result.exit_code == 2

    @pytest.mark.asyncio
    async def test_operand_assignments(self):
        shell = Shell(files={"/a.txt": "x\n", "/b.txt": "y\n"})
        result = await shell.exec("awk '{print v, $0}' v=1 /a.txt v=2 /b.txt")
        assert result.stdout == "1 x\n2 y\n"

    @pytest.mark.asyncio
    async def test_paragraph_mode(self):
        shell = Shell(files={"/p.txt": "a b\nc\n\n\nd e\n"})
        result = await shell.exec("awk 'BEGIN{RS = \"\"} {print NR \": \" $1, NF}' /p.txt")
        assert result.stdout == "1: a 3\n2: d 2\n"

    @pytest.mark.asyncio
    async def test_custom_record_separator(self):
        shell = Shell()
        result = await shell.exec("awk 'BEGIN{RS = \";\"} {print NR, $0}'", stdin="a;b;c")
        assert result.stdout == "1 a\n2 b\n3 c\n"

    @pytest.mark.asyncio
    async def test_getline_from_file(self):
        shell = Shell(files={"/d.txt": "1\n2\n3\n"})
        result = await shell.exec(
            """awk 'BEGIN{while ((getline line < "/d.txt") > 0) total += line; print total}'"""
        )
        assert result.stdout == "6\n"

    @pytest.mark.asyncio
    async def test_getline_missing_file(self):
        shell = Shell()
        result = await shell.exec("""awk 'BEGIN{print (getline line < "/nope")}'""")
        assert result.stdout == "-1\n"

    @pytest.mark.asyncio
    async def test_plain_getline_advances_record(self):
        shell = Shell(files={"/f.txt": "a\nb\nc\n"})
        result = await shell.exec("awk 'NR == 1 {getline; print \"now\", $0, NR}' /f.txt")
        assert result.stdout == "now b 2\n"


class TestAwkOutput:
    @pytest.mark.asyncio
    async def test_redirect_truncates_once(self):
        shell = Shell(files={"/out.txt": "old\n", "/f.txt": "a 1\nb 2\n"})
        result = await shell.exec("awk '{print $1 > \"/out.txt\"}' /f.txt")
        assert result.stdout == ""
        assert await shell.read_file("/out.txt") == "a\nb\n"

    @pytest.mark.asyncio
    async def test_append_redirect(self):
        shell = Shell(files={"/out.txt": "old\n"})
        await shell.exec("awk 'BEGIN{print \"new\" >> \"/out.txt\"}'")
        assert await shell.read_file("/out.txt") == "old\nnew\n"

    @pytest.mark.asyncio
    async def test_stderr_target(self):
        shell = Shell()
        result = await shell.exec("awk 'BEGIN{print \"oops\" > \"/dev/stderr\"}'")
        assert result.stderr == "oops\n"
        assert result.stdout == ""

    @pytest.mark.asyncio
    async def test_redirect_to_read_only_mount(self):
        shell = Shell()
        result = await shell.exec("awk 'BEGIN{print \"x\" > \"/bin/awk\"}'")
        assert result.exit_code == 1
        assert result.stderr == "awk: can't redirect to '/bin/awk': Read-only file system\n"

    @pytest.mark.asyncio
    async def test_printf_redirect(self):
        shell = Shell()
        await shell.exec("awk 'BEGIN{printf \"%s-%s\", \"a\", \"b\" > \"/o.txt\"}'")
        assert await shell.read_file("/o.txt") == "a-b"


class TestAwkOptions:
    @pytest.mark.asyncio
    async def test_variable_option(self):
        shell = Shell()
        result = await shell.exec("awk -v name=World 'BEGIN{print \"Hello, \" name}'")
        assert result.stdout == "Hello, World\n"

    @pytest.mark.asyncio
    async def test_variable_option_escapes(self):
        shell = Shell()
        result = await shell.exec("awk -v 's=a\\tb' 'BEGIN{print s}'")
        assert result.stdout == "a\tb\n"

    @pytest.mark.asyncio
    async def test_program_file(self):
        shell = Shell(files={"/prog.awk": "{ print $2 }\n", "/data.txt": "a b\nc d\n"})
        result = await shell.exec("awk -f /prog.awk /data.txt")
        assert result.stdout == "b\nd\n"

    @pytest.mark.asyncio
    async def test_missing_program_file(self):
        shell = Shell()
        result = await shell.exec("awk -f /nope.awk")
        assert result.exit_code == 2
        assert result.stderr == "awk: /nope.awk: No such file or directory\n"

    @pytest.mark.asyncio
    async def test_invalid_option(self):
        shell = Shell()
        result = await shell.exec("awk -z '{print}'")
        assert result.exit_code == 2
        assert result.stderr.startswith("awk: invalid option -- 'z'\n")

    @pytest.mark.asyncio
    async def test_invalid_variable_option(self):
        shell = Shell()
        result = await shell.exec("awk -v 1x=3 'BEGIN{}'")
        assert result.exit_code == 2
        assert result.stderr == "awk: invalid -v argument: 1x=3\n"

    @pytest.mark.asyncio
    async def test_no_program(self):
        shell = Shell()
        result = await shell.exec("awk")
        assert result.exit_code == 2
        assert "usage: awk" in result.stderr


class TestAwkErrors:
    @pytest.mark.asyncio
    async def test_syntax_error(self):
        shell = Shell(files={"/f.txt": "a\n"})
        result = await shell.exec("awk '{print $1' /f.txt")
        assert result.exit_code == 1
        assert result.stdout == ""
        assert result.stderr.startswith("awk: syntax error at line 1")

    @pytest.mark.asyncio
    async def test_syntax_error_runs_nothing(self):
        shell = Shell()
        result = await shell.exec("awk 'BEGIN{print \"hi\"} {print $1 +}'")
        assert result.exit_code == 1
        assert result.stdout == ""

    @pytest.mark.asyncio
    async def test_cancel_infinite_loop(self):
        shell = Shell()
        task = asyncio.ensure_future(shell.exec("awk 'BEGIN{while (1) {}}'"))
        await asyncio.sleep(0.1)
        shell.cancel()
        result = await asyncio.wait_for(task, timeout=2)
        assert result.exit_code == 130
