"""
Concurrent request dispatcher.

A fixed pool of worker tasks drains an asyncio queue of CrawlRequests. Each
request is fetched with HTTPClient, then handed to FrontierController in a
worker thread; the requests it returns go back on the queue. The run ends
when the queue is drained.
"""
import asyncio
import logging
import random
from typing import Awaitable, Callable, Iterable, List, Optional, Set, Tuple

import httpx
from bs4 import BeautifulSoup

from app.config import CrawlConfig, EngineSettings
from core.net import HTTPClient
from .frontier import CrawlRequest, FrontierController, FrontierState, RunStats
from .seeds import initial_requests
from .sink import ResultSink
from .url_classifier import LIST

logger = logging.getLogger(__name__)

PreRequestHook = Callable[[CrawlRequest], Awaitable[None]]


class FetchError(Exception):
    """Non-200 response for a crawl request"""

    def __init__(self, url: str, status: int):
        super().__init__(f"HTTP {status} for {url}")
        self.url = url
        self.status = status


def random_delay_hook(min_ms: int, max_ms: int, sleep=asyncio.sleep) -> PreRequestHook:
    """Pre-request hook that sleeps a random interval between min_ms and max_ms"""
    async def hook(request: CrawlRequest):
        delay = random.uniform(min_ms, max_ms) / 1000.0
        if delay > 0:
            await sleep(delay)
    return hook


class CrawlDispatcher:
    """Runs requests through fetch and controller with bounded concurrency"""

    def __init__(
        self,
        controller: FrontierController,
        client: HTTPClient,
        settings: Optional[EngineSettings] = None,
        pre_request_hooks: Optional[List[PreRequestHook]] = None
    ):
        self.controller = controller
        self.client = client
        self.settings = settings or EngineSettings()
        self.pre_request_hooks = list(pre_request_hooks or [])
        self.queue: Optional[asyncio.Queue] = None
        self._list_keys: Set[Tuple[str, int]] = set()

    @property
    def state(self) -> FrontierState:
        return self.controller.state

    @property
    def stats(self) -> RunStats:
        return self.controller.stats

    def enqueue(self, request: CrawlRequest) -> bool:
        """
        Add a request to the queue.

        Nothing new is accepted once the quota is met. New detail pages are
        marked seen here, at the point they enter the queue; list pages are
        deduplicated on (url, page). Retries are always accepted.
        """
        if self.state.quota_reached():
            logger.debug(f"[dispatcher] Quota met, not enqueueing {request}")
            return False
        if request.role == LIST and request.retry_count == 0:
            key = (request.url, request.page_number)
            if key in self._list_keys:
                logger.debug(f"[dispatcher] Duplicate list page {request}")
                return False
            self._list_keys.add(key)
        elif not self.controller.accept(request):
            logger.debug(f"[dispatcher] Already seen {request}")
            return False
        self.queue.put_nowait(request)
        return True

    async def run(self, requests: Iterable[CrawlRequest]) -> RunStats:
        self.queue = asyncio.Queue()
        for request in requests:
            self.enqueue(request)

        workers = [
            asyncio.create_task(self._worker(i))
            for i in range(self.settings.max_concurrency)
        ]
        try:
            await self.queue.join()
        finally:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)
        return self.stats

    async def _worker(self, worker_id: int):
        while True:
            request = await self.queue.get()
            try:
                await self._process(request)
            except Exception as e:
                logger.error(f"[dispatcher] Worker {worker_id} failed on {request.url}: {e}", exc_info=True)
                self.stats.incr('failed')
            finally:
                self.queue.task_done()

    async def _process(self, request: CrawlRequest):
        if self.controller.should_skip(request):
            logger.info(f"[dispatcher] Skipping {request.url}: results limit reached")
            self.stats.incr('skipped')
            return

        for hook in self.pre_request_hooks:
            await hook(request)

        try:
            new_requests = await asyncio.wait_for(
                self._fetch_and_handle(request),
                timeout=self.settings.handler_timeout_secs
            )
        except asyncio.TimeoutError:
            self._retry_or_fail(request, f"timed out after {self.settings.handler_timeout_secs}s")
            return
        except (FetchError, httpx.HTTPError) as e:
            self._retry_or_fail(request, str(e))
            return

        for new_request in new_requests:
            self.enqueue(new_request)

    async def _fetch_and_handle(self, request: CrawlRequest) -> List[CrawlRequest]:
        self.stats.incr('requests')
        status, _, text = await self.client.fetch(request.url)
        if status != 200:
            raise FetchError(request.url, status)
        return await asyncio.to_thread(self._handle, request, text)

    def _handle(self, request: CrawlRequest, html: str) -> List[CrawlRequest]:
        soup = BeautifulSoup(html, 'html.parser')
        return self.controller.handle(request, soup=soup)

    def _retry_or_fail(self, request: CrawlRequest, reason: str):
        if request.retry_count < self.settings.max_request_retries and not self.controller.should_skip(request):
            logger.warning(f"[dispatcher] Retrying {request.url} "
                           f"({request.retry_count + 1}/{self.settings.max_request_retries}): {reason}")
            self.stats.incr('retried')
            self.enqueue(request.retry())
            return
        logger.error(f"[dispatcher] Request failed permanently: {request.url}: {reason}")
        self.stats.incr('failed')


async def run_crawl(
    config: CrawlConfig,
    sink: ResultSink,
    settings: Optional[EngineSettings] = None,
    transport=None,
    pre_request_hooks: Optional[List[PreRequestHook]] = None
) -> RunStats:
    """
    Crawl from the configured start URLs until the queue drains.

    Returns the run counters; 'saved' is the number of results pushed to
    the sink.
    """
    settings = settings or EngineSettings.from_env()
    logger.info(f"[dispatcher] Starting crawl with {settings!r}")

    state = FrontierState(config.results_wanted, config.max_pages, dedupe=config.dedupe)
    controller = FrontierController(
        state,
        sink,
        collect_details=config.collect_details,
        category=config.category or None,
    )
    client = HTTPClient(
        user_agent=settings.user_agent,
        proxy_urls=config.proxy_urls,
        timeout=settings.request_timeout_secs,
        max_retry_after=settings.retry_after_cap,
        transport=transport,
    )
    if pre_request_hooks is None:
        pre_request_hooks = [random_delay_hook(settings.min_delay_ms, settings.max_delay_ms)]

    dispatcher = CrawlDispatcher(controller, client, settings, pre_request_hooks)
    stats = await dispatcher.run(initial_requests(config))

    logger.info(f"[dispatcher] Run stats: {stats.as_dict()}")
    logger.info(f"Finished. Total jobs saved: {state.saved_count}")
    return stats
