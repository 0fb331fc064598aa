"""Tests for page title and revision id validation."""

import pytest

from wiki_truth_sync.validators import (
    MAX_TITLE_BYTES,
    format_validation_error,
    normalize_page_title,
    parse_revision_id,
    validate_page_title,
)


class TestValidatePageTitle:
    @pytest.mark.parametrize(
        "title", ["Widget", "Main Page", "Zürich/History", "A:B"]
    )
    def test_valid(self, title):
        assert validate_page_title(title) == (True, "")

    @pytest.mark.parametrize("title", ["", "   "])
    def test_empty(self, title):
        ok, error = validate_page_title(title)
        assert not ok
        assert error == "Page title cannot be empty"

    def test_illegal_characters_listed(self):
        ok, error = validate_page_title("a[b]|c")
        assert not ok
        assert error == "Page title cannot contain [ ] |"

    def test_byte_length_counted_in_utf8(self):
        assert validate_page_title("a" * MAX_TITLE_BYTES)[0]
        ok, error = validate_page_title("ü" * 128)
        assert not ok
        assert "255 bytes" in error


class TestNormalizePageTitle:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Main_Page", "Main Page"),
            ("main page", "Main page"),
            ("  Main__Page ", "Main Page"),
            ("Main Page", "Main Page"),
            ("élan", "Élan"),
            ("", ""),
        ],
    )
    def test_canonical_form(self, raw, expected):
        assert normalize_page_title(raw) == expected

    def test_document_ref_uses_canonical_title(self):
        from wiki_truth_sync.sync.models import DocumentRef

        assert DocumentRef(title="Main_Page") == DocumentRef(title="Main Page")
        assert DocumentRef(namespace=4, title="policy").key == "4:Policy"


class TestParseRevisionId:
    @pytest.mark.parametrize("value", [None, "", 0, "0"])
    def test_absent(self, value):
        assert parse_revision_id(value) == (None, "")

    @pytest.mark.parametrize(
        "value,expected", [(4, 4), ("4", 4), (" 17 ", 17), ("007", 7)]
    )
    def test_valid(self, value, expected):
        assert parse_revision_id(value) == (expected, "")

    @pytest.mark.parametrize("value", ["abc", "4.5", "-3", "1e3"])
    def test_non_integer_strings(self, value):
        rev_id, error = parse_revision_id(value)
        assert rev_id is None
        assert error.startswith("Revision id must be an integer")

    def test_negative_int(self):
        assert parse_revision_id(-3) == (None, "Revision id must be positive")

    def test_bool_rejected(self):
        rev_id, error = parse_revision_id(True)
        assert rev_id is None
        assert error


def test_format_validation_error():
    assert format_validation_error("Field", "is bad") == "Field is bad"
