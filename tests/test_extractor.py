"""Tests for HTML extraction of lots, form fields and header badges.

Testing Philosophy:
    Extractors are pure functions, so they are tested against realistic
    HTML fixtures without any network mocking.
"""

from typing import Callable

import pytest

from funpay.exceptions import MalformedDocumentError
from funpay.extractor import (
    extract_balance,
    extract_fields,
    extract_lots,
    extract_username,
    parse_balance,
    parse_html,
)
from funpay.models import LotField


class TestExtractLots:
    """Test suite for the profile page lot index."""

    def test_groups_offers_by_node_in_document_order(
        self, profile_page_factory: Callable
    ) -> None:
        html = profile_page_factory(
            [
                ("https://funpay.com/lots/game1/", ["https://funpay.com/lots/offer?id=1", "/lots/offer?id=2"]),
                ("/lots/game2/", ["/lots/offer?id=3"]),
            ]
        )

        lots = extract_lots(parse_html(html))

        assert lots == {"game1": ["1", "2"], "game2": ["3"]}
        assert list(lots) == ["game1", "game2"]

    def test_repeated_node_appends(self, profile_page_factory: Callable) -> None:
        html = profile_page_factory(
            [
                ("/lots/81/", ["/lots/offer?id=10"]),
                ("/chips/99/", ["/chips/offer?id=20"]),
                ("/lots/81/", ["/lots/offer?id=11"]),
            ]
        )

        assert extract_lots(parse_html(html)) == {"81": ["10", "11"], "99": ["20"]}

    def test_short_category_path_is_skipped(self, profile_page_factory: Callable) -> None:
        html = profile_page_factory(
            [
                ("/lots", ["/lots/offer?id=1"]),
                ("/lots/5/", ["/lots/offer?id=2"]),
            ]
        )

        assert extract_lots(parse_html(html)) == {"5": ["2"]}

    def test_unparsable_category_href_fails_whole_call(
        self, profile_page_factory: Callable
    ) -> None:
        html = profile_page_factory(
            [
                ("/lots/5/", ["/lots/offer?id=2"]),
                ("http://[broken/lots/6/", ["/lots/offer?id=3"]),
            ]
        )

        with pytest.raises(MalformedDocumentError):
            extract_lots(parse_html(html))

    def test_unparsable_item_href_is_skipped(self, profile_page_factory: Callable) -> None:
        html = profile_page_factory(
            [("/lots/5/", ["http://[broken?id=1", "/lots/offer?id=2", "/lots/offer"])]
        )

        assert extract_lots(parse_html(html)) == {"5": ["2"]}

    def test_node_without_items_gets_empty_list(self, profile_page_factory: Callable) -> None:
        html = profile_page_factory([("/lots/7/", [])])

        assert extract_lots(parse_html(html)) == {"7": []}

    def test_offer_without_category_link_is_skipped(self) -> None:
        html = '<div class="offer"><a class="tc-item" href="/lots/offer?id=1"></a></div>'

        assert extract_lots(parse_html(html)) == {}


class TestExtractFields:
    """Test suite for the listing edit form."""

    def test_reads_all_controls(self, edit_form_html: str) -> None:
        fields = extract_fields(parse_html(edit_form_html))

        assert fields["offer_id"] == LotField(value="456")
        assert fields["node_id"] == LotField(value="81")
        assert fields["fields[summary][ru]"] == LotField(value="Gold coins")
        assert fields["price"] == LotField(value="")
        assert fields["fields[desc][ru]"] == LotField(value="Fast delivery")

    def test_csrf_field_is_excluded(self, edit_form_html: str) -> None:
        fields = extract_fields(parse_html(edit_form_html))

        assert "csrf_token" not in fields

    def test_checkboxes(self, edit_form_html: str) -> None:
        fields = extract_fields(parse_html(edit_form_html))

        assert fields["active"] == LotField(value="on", variants=["on", ""])
        assert fields["deactivate_after_sale"] == LotField(value="", variants=["on", ""])

    def test_select_variants_and_selected_value(self, edit_form_html: str) -> None:
        fields = extract_fields(parse_html(edit_form_html))

        assert fields["fields[server]"] == LotField(value="us", variants=["", "eu", "us"])

    def test_only_first_form_is_read(self, edit_form_html: str) -> None:
        fields = extract_fields(parse_html(edit_form_html))

        assert "ignored" not in fields

    def test_no_form_yields_empty_map(self) -> None:
        assert extract_fields(parse_html("<html><body><p>Nothing</p></body></html>")) == {}

    def test_later_scan_overwrites_earlier(self) -> None:
        html = """
        <form>
            <input name="comment" value="from input">
            <textarea name="comment">from textarea</textarea>
            <select name="comment"><option value="from select" selected></option></select>
        </form>
        """

        fields = extract_fields(parse_html(html))

        assert fields["comment"] == LotField(value="from select", variants=["from select"])

    def test_select_without_selected_option(self) -> None:
        html = '<form><select name="s"><option value="a"></option><option value="b"></option></select></form>'

        assert extract_fields(parse_html(html))["s"] == LotField(value="", variants=["a", "b"])


class TestHeaderBadges:
    """Test suite for username and balance extraction."""

    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            ("541 ₽", 541.0),
            ("1 234 ₽", 1234.0),
            ("1,234 ₽", 1234.0),
            ("1.234.567 ₽", 1234567.0),
            ("12,50 €", 1250.0),
            ("$0.99", 99.0),
            ("", 0.0),
            ("₽", 0.0),
            ("no balance", 0.0),
        ],
    )
    def test_parse_balance(self, raw: str, expected: float) -> None:
        assert parse_balance(raw) == expected

    def test_extract_balance_ignores_separators(self) -> None:
        document = parse_html('<span class="badge-balance">1.2.3</span>')

        assert extract_balance(document) == 123.0

    def test_missing_badges(self) -> None:
        document = parse_html("<body></body>")

        assert extract_balance(document) == 0.0
        assert extract_username(document) == ""

    def test_username_is_stripped(self) -> None:
        document = parse_html('<div class="user-link-name">\n  seller \n</div>')

        assert extract_username(document) == "seller"
