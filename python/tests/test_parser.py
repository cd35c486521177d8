"""Tests for raw listing parsing helpers."""

import pytest

from dmmp.errors import BugError
from dmmp.parser import field_at, parse_listing, split_string, str_to_uint32


class TestSplitString:
    def test_keep_empty(self, ctx):
        """Empty items are kept so positions stay stable."""
        assert split_string(ctx, "sdb|faulty||", "|", skip_empty=False) == [
            "sdb", "faulty", "", ""]

    def test_skip_empty(self, ctx):
        assert split_string(ctx, "a\n\nb\n", "\n", skip_empty=True) == ["a", "b"]

    def test_input_untouched(self, ctx):
        text = "a|b"
        split_string(ctx, text, "|", skip_empty=False)
        assert text == "a|b"


class TestParseListing:
    def test_lines_and_fields(self, ctx):
        reply = "36001|mpatha\n36002|mpathb\n"
        assert parse_listing(ctx, reply) == [["36001", "mpatha"], ["36002", "mpathb"]]

    def test_blank_lines_skipped(self, ctx):
        assert parse_listing(ctx, "\n\nw|n\n\n") == [["w", "n"]]

    def test_empty_reply(self, ctx):
        assert parse_listing(ctx, "") == []

    def test_empty_middle_field(self, ctx):
        assert parse_listing(ctx, "sdc|faulty||\n") == [["sdc", "faulty", "", ""]]


class TestFieldAt:
    def test_present(self, ctx):
        assert field_at(ctx, ["a", "b"], 1, "alias") == "b"

    def test_missing(self, ctx, log_recorder):
        """A missing field is a BUG."""
        with pytest.raises(BugError, match="Got NULL alias"):
            field_at(ctx, ["a"], 1, "alias")
        assert log_recorder.messages(3) == ["BUG: Got NULL alias"]

    def test_empty(self, ctx):
        with pytest.raises(BugError, match="Got empty wwid"):
            field_at(ctx, [""], 0, "wwid")

    def test_empty_allowed(self, ctx):
        assert field_at(ctx, [""], 0, "wwid", allow_empty=True) == ""


class TestStrToUint32:
    @pytest.mark.parametrize("text, value", [
        ("0", 0), ("1", 1), ("50", 50), ("4294967295", 4294967295), ("007", 7),
    ])
    def test_valid(self, ctx, text, value):
        assert str_to_uint32(ctx, text) == value

    @pytest.mark.parametrize("text", [
        "", "-1", "+1", "abc", "1x", " 1", "4294967296", "٣",
    ])
    def test_invalid(self, ctx, text):
        """Negative, non-numeric or overflowing input is a BUG."""
        with pytest.raises(BugError, match="uint32_t"):
            str_to_uint32(ctx, text)
