"""
Text normalization helpers shared by the extractors and the merge step.

Flattens HTML fragments to plain text, collapses whitespace, and computes the
"own text" of an element (its direct text children only).
"""

import re
from typing import Optional

from bs4 import BeautifulSoup, Comment, NavigableString, Tag

WHITESPACE_RE = re.compile(r'\s+')

# Elements whose text never belongs to visible content
INVISIBLE_TAGS = ('script', 'style', 'noscript', 'iframe', 'template')

# Separators allowed between a label and its value ("Salary: 5M", "Salary - 5M")
LABEL_SEPARATORS = ' \t\r\n:：-–|'


def collapse_whitespace(text: Optional[str]) -> str:
    """Collapse whitespace runs to single spaces and trim."""
    if not text:
        return ''
    return WHITESPACE_RE.sub(' ', text).strip()


def clean_text(html: Optional[str]) -> Optional[str]:
    """
    Flatten an HTML fragment to whitespace-collapsed plain text.

    Invisible elements (scripts, styles, iframes) are dropped. Returns None
    for a missing fragment so callers can keep "absent" distinct from "empty".
    """
    if html is None:
        return None

    soup = BeautifulSoup(html, 'html.parser')
    for tag in soup.find_all(INVISIBLE_TAGS):
        tag.decompose()
    for comment in soup.find_all(string=lambda s: isinstance(s, Comment)):
        comment.extract()

    return collapse_whitespace(soup.get_text(' '))


def visible_text(soup) -> str:
    """
    Whitespace-collapsed body text of a parsed document.

    Unlike clean_text this reads an already parsed document and leaves it
    untouched.
    """
    root = soup.body or soup
    parts = [
        str(s) for s in root.find_all(string=True)
        if not isinstance(s, Comment) and not s.find_parent(INVISIBLE_TAGS)
    ]
    return collapse_whitespace(' '.join(parts))


def element_text(node) -> str:
    """Whitespace-collapsed text of a tag or string node."""
    if node is None:
        return ''
    if isinstance(node, NavigableString):
        if isinstance(node, Comment):
            return ''
        return collapse_whitespace(str(node))
    return collapse_whitespace(node.get_text(' '))


def own_text(node) -> str:
    """
    Text of a node excluding descendant element text.

    For a tag this is the concatenation of its direct string children; for a
    bare string node it is the string itself.
    """
    if node is None:
        return ''
    if isinstance(node, NavigableString):
        return element_text(node)
    if not isinstance(node, Tag):
        return ''

    parts = [
        str(child) for child in node.children
        if isinstance(child, NavigableString) and not isinstance(child, Comment)
    ]
    return collapse_whitespace(' '.join(parts))


def strip_label(text: Optional[str], label: str) -> str:
    """
    Remove a leading label (case-insensitive) and any separator after it.

    "Salary: 5,000,000 JPY" -> "5,000,000 JPY". Text that does not start with
    the label is returned collapsed but otherwise unchanged.
    """
    text = collapse_whitespace(text)
    if text.lower().startswith(label.lower()):
        text = text[len(label):]
    return text.lstrip(LABEL_SEPARATORS).strip()
