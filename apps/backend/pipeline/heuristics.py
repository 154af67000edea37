"""
Layout-label extractor.

Finds field captions ("Industry", "Company Name", ...) in the rendered DOM by
their text, independent of the exact markup, and reads the value next to them.
Works across the card, definition-list and breadcrumb layouts the board has
used over time.
"""

import html
import logging
from typing import Callable, Dict, Iterator, List, Optional

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

from core.normalize import INVISIBLE_TAGS, collapse_whitespace, element_text, own_text, strip_label
from .partial import PartialExtraction

logger = logging.getLogger(__name__)

# Field -> caption text on the page
FIELD_LABELS: Dict[str, str] = {
    'company': 'Company Name',
    'industry': 'Industry',
    'job_type': 'Job Type',
    'location': 'Location',
    'salary': 'Salary',
    'working_hours': 'Working Hours',
    'chinese_level': 'Chinese Level',
    'japanese_level': 'Japanese Level',
    'holidays': 'Holidays',
    'job_contract_period': 'Job Contract Period',
    'company_info_html': 'Company Info',
    'description_html': 'Job Description',
}

# Section headers that end a block scan
STOP_MARKERS = tuple(label.lower() for label in FIELD_LABELS.values()) + (
    'job requirements',
    'apply for this job',
)

# Detail pages carry the job title in an h4; h1 is site chrome on most layouts
TITLE_HEADINGS = ('h4', 'h1')

BREADCRUMB_SEPARATOR = ' > '

# Value cells of a label row contribute their contents, not the cell itself
TABLE_CELLS = ('td', 'th')


def find_label_node(soup: BeautifulSoup, label: str) -> Optional[Tag]:
    """
    Find the element acting as the caption for a label.

    Scans body elements depth-first in document order and returns the first
    one whose own text (direct text children only) equals or starts with the
    label, case-insensitively. The document is not modified.
    """
    target = collapse_whitespace(label).lower()
    if not target:
        return None

    root = soup.body or soup
    for node in root.descendants:
        if not isinstance(node, Tag) or node.name in INVISIBLE_TAGS:
            continue
        if node.find_parent(INVISIBLE_TAGS):
            continue
        text = own_text(node).lower()
        if text and (text == target or text.startswith(target)):
            return node

    return None


def following_siblings(node: Tag) -> Iterator:
    """Siblings after a node, skipping comments and whitespace-only strings."""
    for sibling in node.next_siblings:
        if isinstance(sibling, Comment):
            continue
        if isinstance(sibling, NavigableString) and not sibling.strip():
            continue
        yield sibling


def next_non_empty_sibling(node: Tag):
    for sibling in following_siblings(node):
        if element_text(sibling):
            return sibling
    return None


def link_texts(node) -> List[str]:
    if not isinstance(node, Tag):
        return []
    return [text for text in (element_text(a) for a in node.find_all('a')) if text]


class LabelExtractor:
    """Extracts job fields from label/value pairs in the page layout."""

    source = 'label'

    def __init__(self):
        self._rules: Dict[str, Callable[[Tag, str], Optional[str]]] = {
            'company': self._sibling_value,
            'industry': self._link_or_sibling_value,
            'job_type': self._link_or_sibling_value,
            'location': self._breadcrumb_value,
            'salary': self._salary_value,
            'working_hours': self._inline_or_sibling_value,
            'chinese_level': self._inline_or_sibling_value,
            'japanese_level': self._inline_or_sibling_value,
            'holidays': self._inline_or_sibling_value,
            'job_contract_period': self._inline_or_sibling_value,
            'company_info_html': self._block_value,
            'description_html': self._block_value,
        }

    def extract(self, soup: BeautifulSoup, url: Optional[str] = None) -> PartialExtraction:
        partial = PartialExtraction(self.source)

        title = self.extract_title(soup)
        if title:
            partial.set('title', title)

        for field_name in FIELD_LABELS:
            value = self.extract_field(soup, field_name)
            if value:
                partial.set(field_name, value)

        logger.debug(f"[label] Extracted {len(partial)} fields from {url or 'document'}")
        return partial

    def extract_field(self, soup: BeautifulSoup, field_name: str) -> Optional[str]:
        """Read one field through its label rule; None when the label is absent."""
        label = FIELD_LABELS[field_name]
        node = find_label_node(soup, label)
        if node is None:
            return None
        return self._rules[field_name](node, label) or None

    def extract_title(self, soup: BeautifulSoup) -> Optional[str]:
        for heading in TITLE_HEADINGS:
            for tag in soup.find_all(heading):
                text = element_text(tag)
                if text:
                    return text
        return None

    # Field rules

    def _sibling_value(self, node: Tag, label: str) -> Optional[str]:
        sibling = next_non_empty_sibling(node)
        if sibling is not None:
            return element_text(sibling)
        return strip_label(element_text(node), label)

    def _link_or_sibling_value(self, node: Tag, label: str) -> Optional[str]:
        links = link_texts(node)
        if links:
            return links[0]
        sibling = next_non_empty_sibling(node)
        if sibling is not None:
            return element_text(sibling)
        return strip_label(element_text(node), label)

    def _breadcrumb_value(self, node: Tag, label: str) -> Optional[str]:
        links = link_texts(node)
        if len(links) > 1:
            return BREADCRUMB_SEPARATOR.join(links)

        value = strip_label(element_text(node), label)
        if value:
            return value

        sibling = next_non_empty_sibling(node)
        if sibling is None:
            return None
        sibling_links = link_texts(sibling)
        if len(sibling_links) > 1:
            return BREADCRUMB_SEPARATOR.join(sibling_links)
        return element_text(sibling)

    def _salary_value(self, node: Tag, label: str) -> Optional[str]:
        value = strip_label(element_text(node), label)
        sibling = next(following_siblings(node), None)
        sibling_text = element_text(sibling)
        if sibling_text:
            value = f"{value} {sibling_text}"
        return collapse_whitespace(value)

    def _inline_or_sibling_value(self, node: Tag, label: str) -> Optional[str]:
        value = strip_label(element_text(node), label)
        if value:
            return value
        sibling = next_non_empty_sibling(node)
        return element_text(sibling) if sibling is not None else None

    def _block_value(self, node: Tag, label: str) -> Optional[str]:
        """Collect the markup following a section caption up to the next section."""
        fragments = []

        residual = strip_label(own_text(node), label)
        if residual:
            fragments.append(html.escape(residual))

        for sibling in following_siblings(node):
            marker = (own_text(sibling) or element_text(sibling)).lower()
            if marker.startswith(STOP_MARKERS):
                break
            if isinstance(sibling, NavigableString):
                fragments.append(html.escape(collapse_whitespace(str(sibling))))
            elif sibling.name in TABLE_CELLS:
                fragments.append(sibling.decode_contents().strip())
            else:
                fragments.append(str(sibling))

        block = ''.join(fragments).strip()
        return block or None
