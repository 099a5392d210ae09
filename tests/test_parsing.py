"""Tests for CSV line splitting, parsing and row assembly."""

import pytest

from core.errors import EmptyInputError
from ingestion.parsing import (
    LogicalLines,
    assemble_row,
    format_line,
    parse_csv,
    parse_header,
    parse_line,
    split_lines,
)


class TestSplitLines:
    def test_skips_blank_and_whitespace_lines(self):
        lines = split_lines("h1,h2\n\n   \n1,2\n\t\n3,4\n")
        assert list(lines) == ["h1,h2", "1,2", "3,4"]

    def test_iteration_restarts(self):
        lines = LogicalLines("a\nb\n")
        assert list(lines) == ["a", "b"]
        assert list(lines) == ["a", "b"]

    @pytest.mark.parametrize("text", ["", "\n", "  \n\n \t \n", "\r\n\r\n"])
    def test_empty_input_rejected(self, text):
        with pytest.raises(EmptyInputError):
            split_lines(text)

    def test_lines_are_not_trimmed(self):
        assert list(split_lines("  a,b  \r\n")) == ["  a,b  \r"]


class TestParseLine:
    def test_plain_fields(self):
        assert parse_line("a,b,c") == ["a", "b", "c"]

    def test_quoted_comma(self):
        assert parse_line('a,"b,c",d') == ["a", "b,c", "d"]

    def test_escaped_quote(self):
        assert parse_line('a,"b""c",d') == ["a", 'b"c', "d"]

    def test_fields_are_trimmed(self):
        assert parse_line("  a , b ,c\r") == ["a", "b", "c"]

    def test_empty_fields_kept(self):
        assert parse_line(",,") == ["", "", ""]
        assert parse_line("a,") == ["a", ""]

    def test_unterminated_quote_is_accepted(self):
        assert parse_line('a,"b,c') == ["a", "b,c"]

    def test_quote_after_leading_space_opens_run(self):
        assert parse_line('a, "x, y" ,b') == ["a", "x, y", "b"]

    def test_only_escaped_quotes(self):
        assert parse_line('""""') == ['"']

    def test_parsing_is_idempotent(self):
        line = 'id,"Smith, J.","said ""hi""",  3 '
        assert parse_line(line) == parse_line(line)


class TestParseHeader:
    def test_strips_residual_quotes(self):
        assert parse_header('"name","a""b",plain') == ["name", "ab", "plain"]


class TestFormatLine:
    def test_quotes_values_with_commas_and_quotes(self):
        assert format_line(["a", "b,c", 'd"e']) == 'a,"b,c","d""e"'

    @pytest.mark.parametrize(
        "values",
        [
            ["1", "Smith, J.", "NY"],
            ["x", 'say "hi"', ""],
            ["only"],
            ["", "", "trailing"],
        ],
    )
    def test_parse_reverses_format(self, values):
        assert parse_line(format_line(values)) == values


class TestAssembleRow:
    def test_exact_width(self):
        row = assemble_row(["a", "b"], ["1", "2"], row_number=1)
        assert row.fields == {"a": "1", "b": "2"}
        assert row.row_number == 1

    def test_missing_values_default_to_empty(self):
        row = assemble_row(["a", "b", "c"], ["1"], row_number=4)
        assert row.fields == {"a": "1", "b": "", "c": ""}

    def test_extra_values_dropped(self):
        row = assemble_row(["a"], ["1", "2", "3"], row_number=1)
        assert row.fields == {"a": "1"}

    def test_empty_first_value_drops_row(self):
        assert assemble_row(["a", "b"], ["", "2"], row_number=1) is None

    def test_duplicate_header_last_value_wins(self):
        row = assemble_row(["a", "b", "a"], ["1", "2", "3"], row_number=1)
        assert row.get("a") == "3"
        assert row.get("b") == "2"


class TestParseCsv:
    def test_blank_line_tolerance(self):
        parsed = parse_csv("h1,h2\n\n1,2\n")
        assert parsed.headers == ["h1", "h2"]
        assert parsed.row_count == 1
        assert parsed.rows[0].row_number == 1
        assert parsed.rows[0].fields == {"h1": "1", "h2": "2"}

    def test_row_numbers_contiguous_over_accepted_rows(self):
        parsed = parse_csv("id,name\n1,a\n,skipped\n2,b\n ,also skipped\n3,c\n")
        assert [r.row_number for r in parsed.rows] == [1, 2, 3]
        assert [r.get("id") for r in parsed.rows] == ["1", "2", "3"]
        assert parsed.skipped_lines == 2

    def test_columns_keep_header_order(self):
        parsed = parse_csv('"zeta","alpha",mid\n1,2,3\n')
        assert parsed.headers == ["zeta", "alpha", "mid"]

    def test_crlf_input(self):
        parsed = parse_csv("a,b\r\n1,2\r\n3,4\r\n")
        assert parsed.headers == ["a", "b"]
        assert [r.fields for r in parsed.rows] == [{"a": "1", "b": "2"}, {"a": "3", "b": "4"}]

    def test_header_only(self):
        parsed = parse_csv("a,b\n")
        assert parsed.headers == ["a", "b"]
        assert parsed.rows == []

    def test_quoted_values_through_pipeline(self):
        parsed = parse_csv('city,note\n"Paris, FR","the ""best"""\n')
        assert parsed.rows[0].fields == {"city": "Paris, FR", "note": 'the "best"'}

    def test_whitespace_only_input(self):
        with pytest.raises(EmptyInputError):
            parse_csv(" \n\n\t")
