"""
Main extraction orchestrator.

Implements the detail-page pipeline with deterministic fallbacks:
1. JSON-LD structured data
2. Layout labels (DOM caption/value pairs)
3. Regex windows over flattened text
4. Legacy two-column tables

Each stage returns a PartialExtraction; the merge keeps the first value found
for every field in that order.
"""

import logging
from typing import List, Optional

from bs4 import BeautifulSoup

from . import __version__
from .heuristics import LabelExtractor
from .jsonld import JSONLDExtractor
from .legacy_table import LegacyTableExtractor
from .merge import MergeResult, merge_extractions
from .partial import PartialExtraction
from .regex_fallback import RegexFallbackExtractor

logger = logging.getLogger(__name__)


class Extractor:
    """Runs every extraction strategy over a detail page and merges the results."""

    def __init__(self):
        self.strategies = [
            JSONLDExtractor(),
            LabelExtractor(),
            RegexFallbackExtractor(),
            LegacyTableExtractor(),
        ]
        logger.debug(f"Extractor initialized (pipeline {__version__}, {len(self.strategies)} strategies)")

    def run_strategies(self, soup: BeautifulSoup, url: str) -> List[PartialExtraction]:
        """
        Run each strategy once.

        A strategy that raises is logged and contributes nothing; the page
        still gets the benefit of the others.
        """
        partials = []
        for strategy in self.strategies:
            try:
                partial = strategy.extract(soup, url)
            except Exception as e:
                logger.warning(f"[extractor] {strategy.source} strategy failed on {url}: {e}", exc_info=True)
                continue
            for field_name, field in partial.items():
                logger.debug(f"[extractor] {strategy.source} {field_name}: {field.raw_snippet!r}")
            partials.append(partial)
        return partials

    def extract_from_html(self, html: str, url: str,
                          soup: Optional[BeautifulSoup] = None,
                          category: Optional[str] = None) -> MergeResult:
        """
        Extract a canonical job record from a detail page.

        Args:
            html: Raw HTML content
            url: Absolute URL of the detail page (becomes source_url)
            soup: Pre-parsed BeautifulSoup object (optional)
            category: Search category echoed onto the record

        Returns:
            MergeResult holding the record or the reason there is none
        """
        if soup is None:
            soup = BeautifulSoup(html or '', 'html.parser')

        partials = self.run_strategies(soup, url)
        result = merge_extractions(partials, source_url=url, category=category)

        if result.is_valid():
            logger.debug(f"[extractor] {url}: field sources {result.sources}")
        return result
