"""
Regex fallback extractor.

Last-resort strategy for pages whose DOM gives no usable label structure:
flattens the body text and captures the text between one field caption and
the next ("Job Type ... Industry"). Windows can pick up trailing boilerplate
when a page uses an unexpected next section; the merge only lets these values
fill fields no better strategy found.
"""

import html
import logging
import re
from typing import List, Optional, Tuple

from bs4 import BeautifulSoup

from core.normalize import visible_text
from .partial import PartialExtraction

logger = logging.getLogger(__name__)

# Captions that can follow a language-level line, whichever comes first ends it
LANGUAGE_LEVEL_ENDS = (
    'Japanese Level',
    'Chinese Level',
    'English Level',
    'Other Language',
    'Job Requirements',
    'Holidays',
    'Working Hours',
    'Salary',
    'Company Info',
)

# (field, start caption, captions that end the window), in application order
REGEX_WINDOWS: List[Tuple[str, str, Tuple[str, ...]]] = [
    ('job_type', 'Job Type', ('Industry',)),
    ('industry', 'Industry', ('Location',)),
    ('location', 'Location', ('Job Description',)),
    ('company_info_html', 'Company Info', ('Working Hours',)),
    ('salary', 'Salary', ('Job Type', 'Industry', 'Working Hours')),
    ('working_hours', 'Working Hours', ('Holidays', 'Chinese Level', 'Japanese Level')),
    ('chinese_level', 'Chinese Level', tuple(e for e in LANGUAGE_LEVEL_ENDS if e != 'Chinese Level')),
    ('japanese_level', 'Japanese Level', tuple(e for e in LANGUAGE_LEVEL_ENDS if e != 'Japanese Level')),
]

# Fields whose value is stored as markup
MARKUP_FIELDS = ('company_info_html',)


def build_window(start: str, ends: Tuple[str, ...]) -> re.Pattern:
    """Compile a lazy "start ... (capture) ... end" window."""
    end_pattern = '|'.join(re.escape(end) for end in ends)
    return re.compile(
        rf"{re.escape(start)}\s*[:：]?\s*(.+?)\s*(?:{end_pattern})",
        re.IGNORECASE
    )


COMPILED_WINDOWS = [(field, build_window(start, ends)) for field, start, ends in REGEX_WINDOWS]


class RegexFallbackExtractor:
    """Extracts job fields from label-to-label windows over flattened text."""

    source = 'regex'

    def extract(self, soup: BeautifulSoup, url: Optional[str] = None) -> PartialExtraction:
        return self.extract_from_text(visible_text(soup), url)

    def extract_from_text(self, text: str, url: Optional[str] = None) -> PartialExtraction:
        partial = PartialExtraction(self.source)
        if not text:
            return partial

        for field_name, pattern in COMPILED_WINDOWS:
            match = pattern.search(text)
            if not match:
                continue
            value = match.group(1).strip(' :：-')
            if not value:
                continue
            if field_name in MARKUP_FIELDS:
                value = html.escape(value)
            partial.set(field_name, value, raw_snippet=match.group(0))

        logger.debug(f"[regex] Extracted {len(partial)} fields from {url or 'document'}")
        return partial
