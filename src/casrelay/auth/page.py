"""
HTML helpers for the CAS login and failure pages.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from lxml import etree, html

logger = logging.getLogger(__name__)


def _parse(text: str) -> html.HtmlElement | None:
    if not text.strip():
        return None
    try:
        return html.fromstring(text)
    except (etree.ParserError, ValueError):
        return None


def extract_execution(text: str) -> str | None:
    """Returns the value of the login form's hidden ``execution`` field."""
    tree = _parse(text)
    if tree is None:
        return None
    values = tree.xpath('//form//input[@name="execution"]/@value')
    return str(values[0]) if values else None


def is_failure_page(
    text: str,
    markers: Iterable[str] = (),
    xpath: str | None = None,
) -> bool:
    """Checks whether a response body is the CAS credential-rejection page.

    Args:
        text: Decoded response body.
        markers: Substrings whose presence identifies the failure page.
        xpath: Optional XPath expression; any match identifies the failure
            page.
    """
    if any(m and m in text for m in markers):
        return True
    if not xpath:
        return False

    tree = _parse(text)
    if tree is None:
        return False
    try:
        return bool(tree.xpath(xpath))
    except etree.XPathError:
        logger.warning("Invalid failure_xpath expression: %s", xpath)
        return False
