"""
Crawl frontier: request model, shared run state, and the LIST/DETAIL handler.

The controller is the only code that mutates FrontierState. Every mutation
goes through the state's locked accessors, so concurrent handlers cannot
enqueue the same detail page twice or save more records than requested.
"""
import logging
import threading
from collections import defaultdict
from typing import Dict, List, Optional

from bs4 import BeautifulSoup

from pipeline.extractor import Extractor
from .links import find_detail_links, find_next_page
from .sink import ResultSink
from .url_classifier import DETAIL, LIST, ROLES, classify_url

logger = logging.getLogger(__name__)

STUB_SOURCE = 'daijob.com'


class CrawlRequest:
    """A URL to fetch, with its fixed role and list page number."""

    def __init__(self, url: str, role: Optional[str] = None,
                 page_number: int = 1, retry_count: int = 0):
        if role is not None and role not in ROLES:
            raise ValueError(f"Unknown request role: {role}")
        self.url = url
        self.role = role or classify_url(url)
        self.page_number = page_number if self.role == LIST else None
        self.retry_count = retry_count

    def retry(self) -> 'CrawlRequest':
        return CrawlRequest(self.url, self.role, self.page_number or 1, self.retry_count + 1)

    def __eq__(self, other):
        if not isinstance(other, CrawlRequest):
            return NotImplemented
        return (self.url, self.role, self.page_number) == (other.url, other.role, other.page_number)

    def __hash__(self):
        return hash((self.url, self.role, self.page_number))

    def __repr__(self):
        if self.role == LIST:
            return f"CrawlRequest({self.role} {self.url} page={self.page_number})"
        return f"CrawlRequest({self.role} {self.url})"


class FrontierState:
    """Run-level progress shared by every handler."""

    def __init__(self, results_wanted: int, max_pages: int, dedupe: bool = True):
        self.results_wanted = results_wanted
        self.max_pages = max_pages
        self.dedupe = dedupe
        self.seen_detail_urls = set()
        self.saved_urls = set()
        self.saved_count = 0
        self._lock = threading.Lock()

    @property
    def remaining(self) -> int:
        with self._lock:
            return max(0, self.results_wanted - self.saved_count)

    def quota_reached(self) -> bool:
        with self._lock:
            return self.saved_count >= self.results_wanted

    def mark_seen(self, url: str) -> bool:
        """
        Check-and-insert on the seen set.

        Returns True if the URL was new (and is now seen). With dedupe off
        every URL counts as new.
        """
        if not self.dedupe:
            return True
        with self._lock:
            if url in self.seen_detail_urls:
                return False
            self.seen_detail_urls.add(url)
            return True

    def is_seen(self, url: str) -> bool:
        if not self.dedupe:
            return False
        with self._lock:
            return url in self.seen_detail_urls

    def reserve_slot(self, url: str) -> bool:
        """
        Check-and-increment on the saved counter.

        Returns False when the quota is already met, or when dedupe is on and
        this URL was already saved.
        """
        with self._lock:
            if self.saved_count >= self.results_wanted:
                return False
            if self.dedupe and url in self.saved_urls:
                return False
            self.saved_urls.add(url)
            self.saved_count += 1
            return True

    def release_slot(self, url: str):
        """Give back a reservation whose result never reached the sink."""
        with self._lock:
            if url in self.saved_urls:
                self.saved_urls.discard(url)
                self.saved_count -= 1

    def is_saved(self, url: str) -> bool:
        with self._lock:
            return url in self.saved_urls


class RunStats:
    """Per-run counters."""

    def __init__(self):
        self.counters: Dict[str, int] = defaultdict(int)
        self._lock = threading.Lock()

    def incr(self, name: str, value: int = 1):
        with self._lock:
            self.counters[name] += value

    def get(self, name: str) -> int:
        with self._lock:
            return self.counters.get(name, 0)

    def as_dict(self) -> Dict[str, int]:
        with self._lock:
            return dict(self.counters)


class FrontierController:
    """
    Handles fetched pages according to their role.

    LIST pages yield detail requests (or URL stubs) and the next list page;
    DETAIL pages go through the extraction pipeline and into the sink.
    """

    def __init__(
        self,
        state: FrontierState,
        sink: ResultSink,
        collect_details: bool = True,
        category: Optional[str] = None,
        extractor: Optional[Extractor] = None
    ):
        self.state = state
        self.sink = sink
        self.collect_details = collect_details
        self.category = category
        self.extractor = extractor or Extractor()
        self.stats = RunStats()

    def should_skip(self, request: CrawlRequest) -> bool:
        """True for detail requests that no longer need fetching."""
        return request.role == DETAIL and self.state.quota_reached()

    def handle(self, request: CrawlRequest, html: Optional[str] = None,
               soup: Optional[BeautifulSoup] = None) -> List[CrawlRequest]:
        """
        Process one fetched page and return the requests it produces.

        Failures are logged and swallowed here so one bad page never stops
        the run.
        """
        logger.info(f"[frontier] Processing {request.role} page: {request.url}"
                    + (f" (page {request.page_number})" if request.role == LIST else ""))
        try:
            if soup is None:
                soup = BeautifulSoup(html or '', 'html.parser')
            if request.role == LIST:
                return self.handle_list(request, soup)
            return self.handle_detail(request, soup)
        except Exception as e:
            logger.error(f"[frontier] Error processing {request.role} page {request.url}: {e}", exc_info=True)
            self.stats.incr('failed')
            return []

    def handle_list(self, request: CrawlRequest, soup: BeautifulSoup) -> List[CrawlRequest]:
        self.stats.incr('list_pages')
        links = find_detail_links(soup, request.url)
        logger.info(f"[frontier] LIST {request.url} -> found {len(links)} job links")

        new_requests = []
        if self.collect_details:
            new_requests.extend(self._detail_requests(links))
            if new_requests:
                logger.info(f"[frontier] Enqueued {len(new_requests)} detail pages")
        else:
            pushed = self._push_stubs(links)
            if pushed:
                logger.info(f"[frontier] Saved {pushed} job URLs, total saved: {self.state.saved_count}")

        if not self.state.quota_reached() and request.page_number < self.state.max_pages:
            try:
                next_url = find_next_page(soup, request.url, request.page_number)
            except Exception as e:
                logger.error(f"[frontier] Pagination lookup failed on {request.url}: {e}", exc_info=True)
                self.stats.incr('failed')
                next_url = None
            if next_url:
                new_requests.append(CrawlRequest(next_url, LIST, page_number=request.page_number + 1))
                logger.info(f"[frontier] Enqueued next page: {next_url}")
            else:
                logger.info(f"[frontier] No next page found on {request.url}")

        return new_requests

    def _detail_requests(self, links: List[str]) -> List[CrawlRequest]:
        """
        Candidate detail requests for links not seen yet, up to the remaining quota.

        Links are only read against the seen set here; whoever enqueues the
        requests marks them seen, so a list page whose results are dropped
        (timeout, retry) yields the same candidates again.
        """
        remaining = self.state.remaining
        requests = []
        for link in links:
            if len(requests) >= remaining:
                break
            if not self.state.is_seen(link):
                requests.append(CrawlRequest(link, DETAIL))
        return requests

    def accept(self, request: CrawlRequest) -> bool:
        """
        Claim a request for the queue.

        New detail requests go through the seen set (check-and-insert);
        retries and list requests are always accepted.
        """
        if request.role == DETAIL and request.retry_count == 0:
            return self.state.mark_seen(request.url)
        return True

    def _push_stubs(self, links: List[str]) -> int:
        pushed = 0
        for link in links:
            if self.state.quota_reached():
                break
            if not self.state.mark_seen(link):
                continue
            if not self.state.reserve_slot(link):
                continue
            try:
                self.sink.push({'url': link, '_source': STUB_SOURCE})
            except Exception:
                self.state.release_slot(link)
                raise
            pushed += 1
            self.stats.incr('saved')
        return pushed

    def handle_detail(self, request: CrawlRequest, soup: BeautifulSoup) -> List[CrawlRequest]:
        if self.state.quota_reached():
            logger.info(f"[frontier] Reached results limit, skipping detail page {request.url}")
            self.stats.incr('skipped')
            return []

        self.stats.incr('detail_pages')
        result = self.extractor.extract_from_html(None, request.url, soup=soup, category=self.category)
        if not result.is_valid():
            logger.warning(f"[frontier] Dropping {request.url}: {result.reason}")
            self.stats.incr('invalid')
            return []

        record = result.record
        if not self.state.reserve_slot(request.url):
            reason = 'already saved' if self.state.is_saved(request.url) else 'results limit reached'
            logger.info(f"[frontier] Discarding {request.url}: {reason}")
            self.stats.incr('skipped')
            return []

        try:
            self.sink.push(record.to_dict())
        except Exception:
            self.state.release_slot(request.url)
            raise

        self.stats.incr('saved')
        logger.info(f"[frontier] Saved job: {record.title} at {record.company}, total saved: {self.state.saved_count}")
        return []
