"""
Seed request construction.
"""
import logging
from typing import List
from urllib.parse import urlencode

from app.config import CrawlConfig
from .frontier import CrawlRequest
from .url_classifier import LIST

logger = logging.getLogger(__name__)

SEARCH_ENDPOINT = 'https://www.daijob.com/en/jobs/search_result'


def build_start_url(keyword: str = '', location: str = '', category: str = '') -> str:
    """Search results URL for page 1; empty parameters are left out."""
    params = {}
    if keyword:
        params['keyword'] = keyword.strip()
    if location:
        params['location'] = location.strip()
    if category:
        params['category'] = category.strip()
    params['page'] = '1'
    return f"{SEARCH_ENDPOINT}?{urlencode(params)}"


def initial_requests(config: CrawlConfig) -> List[CrawlRequest]:
    """
    Requests the crawl starts from.

    Explicit start URLs are used verbatim and classified by their path; list
    pages among them start at page 1. Without explicit URLs a single search
    page is built from keyword, location and category.
    """
    urls = config.explicit_start_urls
    if not urls:
        urls = [build_start_url(config.keyword, config.location, config.category)]
        return [CrawlRequest(urls[0], LIST, page_number=1)]

    requests = [CrawlRequest(url) for url in urls]
    logger.info(f"Built {len(requests)} initial URLs to scrape")
    return requests
