"""HTML extraction for FunPay pages.

Every CSS selector the client depends on lives in this module, so a
markup change on the site means editing this file only. All functions
are pure: they read a parsed document and return fresh values.

Error policy:
    Navigation structure is load-bearing, listing entries are best-effort.
    An offer block whose category link cannot be parsed fails the whole
    extraction; a single listing link that cannot be parsed is skipped.
"""

import re
from urllib.parse import parse_qs, urlsplit

from bs4 import BeautifulSoup

from funpay.exceptions import MalformedDocumentError
from funpay.logger import get_logger
from funpay.models import LotField, LotFields, LotIndex

log = get_logger(__name__)

# Profile page
SELECTOR_OFFER = ".offer"
SELECTOR_OFFER_NODE_LINK = "h3 a[href]"
SELECTOR_OFFER_ITEM_LINK = "a.tc-item[href]"

# Page header
SELECTOR_USERNAME = ".user-link-name"
SELECTOR_BALANCE = ".badge-balance"

# Listing edit form
FORM_CSRF_FIELD = "csrf_token"
CHECKBOX_ON = "on"
CHECKBOX_VARIANTS = [CHECKBOX_ON, ""]

_BALANCE_NOISE_RE = re.compile(r"\D", re.ASCII)


def parse_html(
    content: str | bytes,
    url: str | None = None,
    encoding: str | None = None,
) -> BeautifulSoup:
    """Parse a response body into a document.

    Args:
        content: Raw HTML.
        url: Source URL, used for error context only.
        encoding: Charset declared by the server for byte content; detected
            from the markup when None.

    Returns:
        Parsed BeautifulSoup document.

    Raises:
        MalformedDocumentError: If the markup cannot be parsed.
    """
    try:
        if isinstance(content, bytes) and encoding:
            return BeautifulSoup(content, "html.parser", from_encoding=encoding)
        return BeautifulSoup(content, "html.parser")
    except Exception as exc:
        raise MalformedDocumentError(reason=str(exc), url=url) from exc


def extract_lots(document: BeautifulSoup) -> LotIndex:
    """Build the node -> offer ids index from a user profile page.

    The node id is the third component of the category link path
    ("/lots/81/" -> "81"). Offer ids come from the id query parameter of
    each listing link, in document order.

    Args:
        document: Parsed /users/<id>/ page.

    Returns:
        Mapping of node id to offer ids.

    Raises:
        MalformedDocumentError: If a category link cannot be parsed as a URL.
    """
    lots: LotIndex = {}

    for offer in document.select(SELECTOR_OFFER):
        node_link = offer.select_one(SELECTOR_OFFER_NODE_LINK)
        if node_link is None:
            continue

        node_href = node_link["href"]
        try:
            node_path = urlsplit(node_href).path
        except ValueError as exc:
            raise MalformedDocumentError(
                reason=f"invalid category link '{node_href}': {exc}"
            ) from exc

        components = node_path.split("/")
        if len(components) < 3:
            log.debug("Offer skipped, unexpected category link", href=node_href)
            continue

        offer_ids = lots.setdefault(components[2], [])
        for item in offer.select(SELECTOR_OFFER_ITEM_LINK):
            try:
                query = parse_qs(urlsplit(item["href"]).query)
            except ValueError:
                continue

            ids = query.get("id")
            if ids:
                offer_ids.append(ids[0])

    return lots


def extract_fields(document: BeautifulSoup) -> LotFields:
    """Read the controls of the first form on the page.

    Inputs are scanned first, then textareas, then selects; a name seen
    again in a later scan overwrites the earlier entry. The CSRF token
    input is never included.

    Args:
        document: Parsed /lots/offerEdit page.

    Returns:
        Field name to LotField mapping; empty when the page has no form.
    """
    fields: LotFields = {}

    form = document.find("form")
    if form is None:
        return fields

    for tag in form.select("input[name]"):
        name = tag["name"]

        if tag.get("type", "").lower() == "checkbox":
            fields[name] = LotField(
                value=CHECKBOX_ON if tag.has_attr("checked") else "",
                variants=list(CHECKBOX_VARIANTS),
            )
            continue

        if name == FORM_CSRF_FIELD:
            continue

        fields[name] = LotField(value=tag.get("value", ""))

    for tag in form.select("textarea[name]"):
        fields[tag["name"]] = LotField(value=tag.get_text())

    for tag in form.select("select[name]"):
        field = LotField()
        for option in tag.select("option[value]"):
            value = option["value"]
            field.variants.append(value)
            if option.has_attr("selected"):
                field.value = value

        fields[tag["name"]] = field

    return fields


def extract_username(document: BeautifulSoup) -> str:
    """Return the account name shown in the page header, or ""."""
    tag = document.select_one(SELECTOR_USERNAME)
    return tag.get_text().strip() if tag is not None else ""


def parse_balance(raw: str) -> float:
    """Convert balance badge text such as "1 234 ₽" to a number.

    Every non-digit character is dropped, separators included, so
    "1,234 ₽" reads as 1234. Text without digits reads as 0.
    """
    digits = _BALANCE_NOISE_RE.sub("", raw)
    if not digits:
        return 0.0
    return float(digits)


def extract_balance(document: BeautifulSoup) -> float:
    """Return the balance from the page header badge, or 0 when it is missing."""
    tag = document.select_one(SELECTOR_BALANCE)
    if tag is None:
        return 0.0
    return parse_balance(tag.get_text())
