"""
URL classification: list pages vs job detail pages.
"""
import re
from urllib.parse import urlparse

LIST = 'LIST'
DETAIL = 'DETAIL'
ROLES = (LIST, DETAIL)

# /en/jobs/detail/<positive integer id>
DETAIL_PATH_RE = re.compile(r'/en/jobs/detail/0*[1-9]\d*(?![\d])', re.IGNORECASE)


def is_detail_href(href: str) -> bool:
    """Check whether an href (absolute or relative) points at a job detail page."""
    if not href:
        return False
    try:
        path = urlparse(href.strip()).path
    except ValueError:
        return False
    return bool(DETAIL_PATH_RE.search(path))


def classify_url(url: str) -> str:
    """
    Classify a URL as DETAIL or LIST from its path shape.

    Anything that is not recognisably a detail page, malformed URLs included,
    is treated as a LIST page.
    """
    return DETAIL if is_detail_href(url) else LIST
