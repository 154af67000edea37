"""
Tests for the concurrent dispatcher against a mocked Daijob site.
"""

import json
import time

import httpx
import pytest

from app.config import CrawlConfig, EngineSettings
from crawler.dispatcher import CrawlDispatcher, random_delay_hook, run_crawl
from crawler.frontier import CrawlRequest, FrontierController, FrontierState
from crawler.links import find_next_page
from crawler.sink import MemorySink
from core.net import HTTPClient

BASE = "https://www.daijob.com"


def list_page(ids, next_page=None):
    anchors = ''.join(f'<a href="/en/jobs/detail/{i}">Job {i}</a>' for i in ids)
    pager = f'<a href="/en/jobs/search_result?keyword=java&page={next_page}">Next</a>' if next_page else ''
    return f"<html><body>{anchors}{pager}</body></html>"


def detail_page(job_id):
    posting = {"@type": "JobPosting", "title": f"Job {job_id}", "hiringOrganization": {"name": "Acme"}}
    return f'<html><head><script type="application/ld+json">{json.dumps(posting)}</script></head></html>'


class FakeSite:
    """Two search pages; job 3 is listed on both."""

    def __init__(self, failing=()):
        self.failing = set(failing)
        self.requested = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path
        self.requested.append(str(request.url))
        if path == "/en/jobs/search_result":
            page = request.url.params.get('page')
            if page == '1':
                return httpx.Response(200, text=list_page([1, 2, 3], next_page=2))
            if page == '2':
                return httpx.Response(200, text=list_page([3, 4]))
            return httpx.Response(404, text="Not found")
        if path.startswith("/en/jobs/detail/"):
            job_id = path.rsplit('/', 1)[-1]
            if job_id in self.failing:
                return httpx.Response(500, text="Server error")
            return httpx.Response(200, text=detail_page(job_id))
        return httpx.Response(404, text="Not found")

    def detail_hits(self, job_id):
        return sum(1 for url in self.requested if url.endswith(f"/en/jobs/detail/{job_id}"))


def settings(**overrides):
    values = dict(max_concurrency=3, max_request_retries=1, handler_timeout_secs=10,
                  min_delay_ms=0, max_delay_ms=0)
    values.update(overrides)
    return EngineSettings(**values)


@pytest.mark.asyncio
async def test_crawl_follows_pagination_and_dedupes():
    site = FakeSite()
    sink = MemorySink()
    config = CrawlConfig(keyword="java", results_wanted=10)

    stats = await run_crawl(config, sink, settings(), transport=httpx.MockTransport(site), pre_request_hooks=[])

    urls = sorted(item['source_url'] for item in sink.items)
    assert urls == [f"{BASE}/en/jobs/detail/{i}" for i in range(1, 5)]
    assert site.detail_hits(3) == 1
    assert stats.get('saved') == 4


@pytest.mark.asyncio
async def test_crawl_stops_at_quota():
    site = FakeSite()
    sink = MemorySink()
    config = CrawlConfig(keyword="java", results_wanted=2)

    await run_crawl(config, sink, settings(), transport=httpx.MockTransport(site), pre_request_hooks=[])

    assert len(sink) == 2
    assert len({item['source_url'] for item in sink.items}) == 2


@pytest.mark.asyncio
async def test_stub_mode_skips_detail_pages():
    site = FakeSite()
    sink = MemorySink()
    config = CrawlConfig.model_validate({"keyword": "java", "results_wanted": 3, "collectDetails": False})

    await run_crawl(config, sink, settings(), transport=httpx.MockTransport(site), pre_request_hooks=[])

    assert [item['url'] for item in sink.items] == [f"{BASE}/en/jobs/detail/{i}" for i in (1, 2, 3)]
    assert all(item['_source'] == 'daijob.com' for item in sink.items)
    assert not any('/en/jobs/detail/' in url for url in site.requested)


@pytest.mark.asyncio
async def test_failed_request_retried_then_counted():
    site = FakeSite(failing={'2'})
    sink = MemorySink()
    config = CrawlConfig(keyword="java", results_wanted=10)

    stats = await run_crawl(config, sink, settings(max_request_retries=1),
                            transport=httpx.MockTransport(site), pre_request_hooks=[])

    assert site.detail_hits(2) == 2
    assert stats.get('failed') == 1
    assert len(sink) == 3


@pytest.mark.asyncio
async def test_timed_out_list_page_retried_with_its_links(monkeypatch):
    calls = []

    def slow_first_pager(soup, url, page_number):
        calls.append(url)
        if len(calls) == 1:
            time.sleep(0.5)
        return find_next_page(soup, url, page_number)

    monkeypatch.setattr("crawler.frontier.find_next_page", slow_first_pager)
    site = FakeSite()
    sink = MemorySink()
    config = CrawlConfig(keyword="java", results_wanted=10)

    stats = await run_crawl(config, sink, settings(handler_timeout_secs=0.2, max_request_retries=2),
                            transport=httpx.MockTransport(site), pre_request_hooks=[])

    urls = sorted(item['source_url'] for item in sink.items)
    assert urls == [f"{BASE}/en/jobs/detail/{i}" for i in range(1, 5)]
    assert stats.get('retried') >= 1


@pytest.mark.asyncio
async def test_explicit_detail_start_urls():
    site = FakeSite()
    sink = MemorySink()
    config = CrawlConfig.model_validate({
        "startUrls": [{"url": f"{BASE}/en/jobs/detail/7"}, f"{BASE}/en/jobs/detail/7"],
    })

    await run_crawl(config, sink, settings(), transport=httpx.MockTransport(site), pre_request_hooks=[])

    assert [item['title'] for item in sink.items] == ["Job 7"]
    assert site.detail_hits(7) == 1


@pytest.mark.asyncio
async def test_pre_request_hooks_run_per_request():
    site = FakeSite()
    seen = []

    async def record(request):
        seen.append(request.role)

    state = FrontierState(results_wanted=1, max_pages=1)
    controller = FrontierController(state, MemorySink())
    client = HTTPClient(transport=httpx.MockTransport(site))
    dispatcher = CrawlDispatcher(controller, client, settings(), pre_request_hooks=[record])

    await dispatcher.run([CrawlRequest(f"{BASE}/en/jobs/detail/1")])

    assert seen == ['DETAIL']
    assert state.saved_count == 1


@pytest.mark.asyncio
async def test_random_delay_hook_bounds():
    delays = []

    async def fake_sleep(seconds):
        delays.append(seconds)

    hook = random_delay_hook(1000, 3000, sleep=fake_sleep)
    for _ in range(20):
        await hook(CrawlRequest(f"{BASE}/en/jobs/detail/1"))

    assert len(delays) == 20
    assert all(1.0 <= d <= 3.0 for d in delays)
