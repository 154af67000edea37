"""
Link and pagination discovery on list pages.
"""
import logging
from typing import List, Optional
from urllib.parse import urldefrag, urljoin

from bs4 import BeautifulSoup

from core.normalize import element_text
from .url_classifier import is_detail_href

logger = logging.getLogger(__name__)

NEXT_LINK_TEXT = 'next'


def is_followable_href(href: Optional[str]) -> bool:
    """Reject empty, in-page, mailto and javascript hrefs."""
    if not href:
        return False
    href = href.strip().lower()
    return bool(href) and not href.startswith(('#', 'mailto:', 'javascript:'))


def to_absolute(href: str, base_url: str) -> Optional[str]:
    """Resolve an href against the page URL, dropping any fragment."""
    try:
        absolute = urljoin(base_url, href.strip())
    except ValueError as e:
        logger.debug(f"[links] Could not resolve {href!r} against {base_url}: {e}")
        return None
    return urldefrag(absolute)[0] or None


def find_detail_links(soup: BeautifulSoup, page_url: str) -> List[str]:
    """
    Absolute URLs of every job detail link on a list page.

    Document order is preserved; repeated links collapse to their first
    occurrence.
    """
    links = []
    seen = set()

    for anchor in soup.find_all('a', href=True):
        href = anchor.get('href', '')
        if not is_followable_href(href) or not is_detail_href(href):
            continue
        absolute = to_absolute(href, page_url)
        if absolute and absolute not in seen:
            seen.add(absolute)
            links.append(absolute)

    return links


def find_next_page(soup: BeautifulSoup, page_url: str, current_page: int) -> Optional[str]:
    """
    URL of the next list page, or None when pagination ends here.

    Prefers an explicit "next" link, then a numbered link for current_page + 1.
    """
    anchors = [a for a in soup.find_all('a', href=True) if is_followable_href(a.get('href'))]

    for anchor in anchors:
        if element_text(anchor).lower() == NEXT_LINK_TEXT:
            return to_absolute(anchor['href'], page_url)

    wanted = str(current_page + 1)
    for anchor in anchors:
        if element_text(anchor) == wanted:
            return to_absolute(anchor['href'], page_url)

    return None
