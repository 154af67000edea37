"""
JSON-LD extractor.

Extracts job information from structured JSON-LD data (Schema.org JobPosting).
"""

import json
import logging
from typing import Any, Dict, List, Optional

from bs4 import BeautifulSoup
from dateutil import parser as date_parser

from .partial import PartialExtraction

logger = logging.getLogger(__name__)

# Address parts, in the order they are joined
ADDRESS_PARTS = ('addressCountry', 'addressRegion', 'addressLocality', 'streetAddress')
LOCATION_SEPARATOR = ', '


class JSONLDExtractor:
    """Extracts job data from JSON-LD structured data."""

    source = 'jsonld'

    def extract(self, soup: BeautifulSoup, url: Optional[str] = None) -> PartialExtraction:
        """
        Extract job fields from the first JobPosting block on the page.

        Malformed blocks are skipped. A page without a JobPosting yields an
        empty PartialExtraction.
        """
        partial = PartialExtraction(self.source)

        posting = self.find_job_posting(soup)
        if posting is None:
            return partial

        self._extract_job_posting(posting, partial)
        logger.debug(f"[jsonld] Extracted {len(partial)} fields from {url or 'document'}")
        return partial

    def find_job_posting(self, soup: BeautifulSoup) -> Optional[Dict]:
        """Return the first JobPosting object embedded in the page, if any."""
        scripts = soup.find_all('script', type='application/ld+json')

        for script in scripts:
            raw = script.string if script.string is not None else script.get_text()
            if not raw or not raw.strip():
                continue
            try:
                data = json.loads(raw)
            except (json.JSONDecodeError, TypeError) as e:
                logger.debug(f"[jsonld] Skipping malformed block: {e}")
                continue

            for item in self._flatten_jsonld(data):
                if self._is_job_posting(item):
                    return item

        return None

    def _flatten_jsonld(self, data: Any) -> List[Dict]:
        """Flatten JSON-LD structure to list of items."""
        items = []

        if isinstance(data, dict):
            if self._is_job_posting(data):
                items.append(data)
            elif '@graph' in data and isinstance(data['@graph'], list):
                items.extend([item for item in data['@graph'] if isinstance(item, dict)])
        elif isinstance(data, list):
            items.extend([item for item in data if isinstance(item, dict)])

        return items

    def _is_job_posting(self, item: Dict) -> bool:
        """Check if JSON-LD item declares type JobPosting."""
        item_type = item.get('@type', item.get('type'))
        if isinstance(item_type, str):
            return item_type == 'JobPosting'
        elif isinstance(item_type, list):
            return 'JobPosting' in item_type
        return False

    def _extract_job_posting(self, job_data: Dict, partial: PartialExtraction):
        """Fill the partial from a JobPosting object."""
        title = job_data.get('title') or job_data.get('name')
        if title:
            partial.set('title', str(title))

        org = job_data.get('hiringOrganization')
        if isinstance(org, dict):
            if org.get('name'):
                partial.set('company', str(org['name']))
            if org.get('description'):
                partial.set('company_info_html', str(org['description']))
        elif isinstance(org, str):
            partial.set('company', org)

        if job_data.get('datePosted'):
            partial.set('date_posted', self._format_date(str(job_data['datePosted'])))

        if job_data.get('description'):
            partial.set('description_html', str(job_data['description']))

        location = self._format_location(job_data.get('jobLocation'))
        if location:
            partial.set('location', location)

        salary = self._format_salary(job_data.get('baseSalary'))
        if salary:
            partial.set('salary', salary)

        employment_type = self._join_values(job_data.get('employmentType'))
        if employment_type:
            partial.set('job_type', employment_type)

        industry = self._join_values(job_data.get('industry'))
        if industry:
            partial.set('industry', industry)

    def _format_date(self, date_str: str) -> str:
        """Normalize a date to YYYY-MM-DD, keeping the raw value when unparseable."""
        try:
            return date_parser.isoparse(date_str).strftime('%Y-%m-%d')
        except (ValueError, OverflowError):
            pass
        try:
            return date_parser.parse(date_str).strftime('%Y-%m-%d')
        except (ValueError, OverflowError):
            logger.debug(f"[jsonld] Keeping unparseable datePosted: {date_str}")
            return date_str

    def _format_location(self, loc: Any) -> Optional[str]:
        """Join address parts: country, region, locality, street."""
        if isinstance(loc, list):
            loc = loc[0] if loc else None
        if isinstance(loc, str):
            return loc.strip() or None
        if not isinstance(loc, dict):
            return None

        addr = loc.get('address')
        if isinstance(addr, str):
            return addr.strip() or None
        if not isinstance(addr, dict):
            return str(loc['name']).strip() if loc.get('name') else None

        parts = []
        for key in ADDRESS_PARTS:
            value = addr.get(key)
            if isinstance(value, dict):
                value = value.get('name')
            if value and str(value).strip():
                parts.append(str(value).strip())

        return LOCATION_SEPARATOR.join(parts) if parts else None

    def _format_salary(self, base_salary: Any) -> Optional[str]:
        """
        Format a MonetaryAmount as "<currency> <min> - <max> <unit>".

        Every piece is optional; present pieces are joined by single spaces.
        """
        if not isinstance(base_salary, dict):
            return None

        pieces = []
        currency = base_salary.get('currency')
        if currency:
            pieces.append(str(currency).strip())

        value = base_salary.get('value')
        unit = base_salary.get('unitText')

        if isinstance(value, dict):
            unit = value.get('unitText') or unit
            min_value = value.get('minValue')
            max_value = value.get('maxValue')
            single = value.get('value')
            if min_value is not None and max_value is not None:
                pieces.append(f"{self._format_amount(min_value)} - {self._format_amount(max_value)}")
            elif single is not None:
                pieces.append(self._format_amount(single))
            elif min_value is not None:
                pieces.append(self._format_amount(min_value))
            elif max_value is not None:
                pieces.append(self._format_amount(max_value))
        elif value is not None and value != '':
            pieces.append(self._format_amount(value))

        if unit:
            pieces.append(str(unit).strip())

        pieces = [p for p in pieces if p]
        return ' '.join(pieces) if pieces else None

    @staticmethod
    def _format_amount(amount: Any) -> str:
        if isinstance(amount, float) and amount.is_integer():
            return str(int(amount))
        return str(amount).strip()

    @staticmethod
    def _join_values(value: Any) -> Optional[str]:
        if isinstance(value, list):
            parts = [str(v).strip() for v in value if v is not None and str(v).strip()]
            return ', '.join(parts) if parts else None
        if isinstance(value, dict):
            value = value.get('name')
        if value is None:
            return None
        return str(value).strip() or None
