"""
Tests for utility functions in tensionchart.utils module.
"""

from datetime import date
from types import SimpleNamespace

from tensionchart.models.base import Area, Tension, Vision
from tensionchart.utils import format_date, item_label, parse_date, split_items_by_date


class TestParseDate:
    """Tests for the parse_date function."""

    def test_parse_iso_format(self):
        """Test parsing ISO 8601 format (YYYY-MM-DD)."""
        assert parse_date("2024-12-31") == date(2024, 12, 31)

    def test_parse_slash_format_yyyy_mm_dd(self):
        assert parse_date("2024/12/31") == date(2024, 12, 31)

    def test_parse_dd_mm_yyyy_slash(self):
        """Test parsing DD/MM/YYYY format."""
        assert parse_date("31/12/2024") == date(2024, 12, 31)

    def test_parse_compact_format(self):
        assert parse_date("20241231") == date(2024, 12, 31)

    def test_parse_month_dd_yyyy(self):
        assert parse_date("December 31, 2024") == date(2024, 12, 31)

    def test_parse_strips_whitespace(self):
        assert parse_date("  2024-01-02 ") == date(2024, 1, 2)

    def test_parse_invalid_format(self):
        """Test parsing invalid date format returns None."""
        assert parse_date("not a date") is None

    def test_parse_empty_string(self):
        assert parse_date("") is None


class TestFormatDate:
    """Tests for the format_date function."""

    def test_format_date(self):
        assert format_date(date(2024, 3, 5)) == "2024-03-05"

    def test_format_none(self):
        assert format_date(None) == ""


class TestSplitItemsByDate:
    """Tests for the dated/undated split."""

    def items(self):
        return [
            SimpleNamespace(id="u2", due_date=None, sort_order=2),
            SimpleNamespace(id="d2", due_date=date(2025, 5, 1), sort_order=0),
            SimpleNamespace(id="u1", due_date=None, sort_order=1),
            SimpleNamespace(id="d1", due_date=date(2025, 1, 1), sort_order=9),
        ]

    def test_buckets_are_ordered_independently(self):
        dated, undated = split_items_by_date(self.items())
        assert [i.id for i in dated] == ["d1", "d2"]
        assert [i.id for i in undated] == ["u1", "u2"]

    def test_descending_dates(self):
        """Test descending order flips dates but never the undated bucket."""
        dated, undated = split_items_by_date(self.items(), descending=True)
        assert [i.id for i in dated] == ["d2", "d1"]
        assert [i.id for i in undated] == ["u1", "u2"]

    def test_custom_date_getter(self):
        items = [SimpleNamespace(id="x", target=date(2025, 1, 1), sort_order=0)]
        dated, undated = split_items_by_date(items, get_date=lambda item: item.target)
        assert dated == items
        assert undated == []


class TestItemLabel:
    """Tests for item_label."""

    def test_label_by_kind(self):
        assert item_label(Tension(chart_id="c", title="Gap")) == "Gap"
        assert item_label(Area(chart_id="c", name="Health")) == "Health"
        assert item_label(Vision(chart_id="c", content="Ship v1")) == "Ship v1"

    def test_empty_text_falls_back_to_id(self):
        vision = Vision(id="v1", chart_id="c")
        assert item_label(vision) == "v1"

    def test_truncates_and_collapses_whitespace(self):
        label = item_label(Vision(chart_id="c", content="word  " * 20), max_length=10)
        assert len(label) == 10
        assert label.endswith("…")
        assert "  " not in label
