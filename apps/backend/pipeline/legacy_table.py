"""
Legacy table extractor.

Older detail pages render every field as a two-column table row:
<tr><td>Company Name</td><td>Acme KK</td></tr>. The first cell is matched
against known row labels and the last cell holds the value.
"""

import logging
from typing import Dict, List, Optional

from bs4 import BeautifulSoup, Tag

from core.normalize import clean_text, element_text
from .partial import PartialExtraction

logger = logging.getLogger(__name__)

# Field -> first-cell label (compared lowercased)
TABLE_ROWS: Dict[str, str] = {
    'company': 'company name',
    'description_html': 'job description',
    'location': 'location',
    'salary': 'salary',
    'job_type': 'job type',
    'industry': 'industry',
    'working_hours': 'working hours',
    'chinese_level': 'chinese level',
    'japanese_level': 'japanese level',
    'holidays': 'holidays',
    'job_contract_period': 'job contract period',
    'job_requirements': 'job requirements',
    'company_info_html': 'company info',
}

# Fields that keep the cell markup; everything else is flattened to text
MARKUP_FIELDS = ('description_html', 'company_info_html')


def row_cells(row: Tag) -> List[Tag]:
    cells = row.find_all(['td', 'th'], recursive=False)
    return cells or row.find_all(['td', 'th'])


class LegacyTableExtractor:
    """Extracts job fields from two-column label/value table rows."""

    source = 'table'

    def extract(self, soup: BeautifulSoup, url: Optional[str] = None) -> PartialExtraction:
        partial = PartialExtraction(self.source)

        rows = self._index_rows(soup)
        if not rows:
            return partial

        for field_name, label in TABLE_ROWS.items():
            markup = self.find_row_value(rows, label)
            if markup is None:
                continue
            if field_name in MARKUP_FIELDS:
                partial.set(field_name, markup)
            else:
                partial.set(field_name, clean_text(markup))

        logger.debug(f"[table] Extracted {len(partial)} fields from {url or 'document'}")
        return partial

    def _index_rows(self, soup: BeautifulSoup) -> List[List[Tag]]:
        """Rows with at least a label cell and a value cell, in document order."""
        indexed = []
        for row in soup.find_all('tr'):
            cells = row_cells(row)
            if len(cells) >= 2:
                indexed.append(cells)
        return indexed

    @staticmethod
    def find_row_value(rows: List[List[Tag]], label: str) -> Optional[str]:
        """Inner markup of the last cell of the first row labelled `label`."""
        target = label.lower()
        for cells in rows:
            if element_text(cells[0]).lower() == target:
                return cells[-1].decode_contents().strip()
        return None
