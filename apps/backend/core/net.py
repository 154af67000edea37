"""
HTTP client with retries, backoff, browser-like headers and proxy rotation
"""
import asyncio
import itertools
import logging
import random
import time
from typing import Dict, List, Optional, Tuple

import httpx
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
MAX_RETRIES = 2
MAX_RETRY_AFTER = 30.0

# Desktop browsers the board sees most; one is picked per request
USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/122.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:125.0) Gecko/20100101 Firefox/125.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14.4; rv:124.0) Gecko/20100101 Firefox/124.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 14_4) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.4 Safari/605.1.15",
]

# Headers that identify automated clients
BOT_HEADERS = ('DNT', 'do-not-track')


class HTTPClient:
    """Async HTTP client for list and detail pages"""

    def __init__(
        self,
        user_agent: Optional[str] = None,
        proxy_urls: Optional[List[str]] = None,
        timeout: float = DEFAULT_TIMEOUT,
        max_retry_after: float = MAX_RETRY_AFTER,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.user_agent = user_agent
        self.timeout = httpx.Timeout(timeout)
        self.max_retry_after = max_retry_after
        self.transport = transport
        self._proxies = itertools.cycle(proxy_urls) if proxy_urls else None

    def _next_proxy(self) -> Optional[str]:
        return next(self._proxies) if self._proxies else None

    def _get_headers(self, custom_headers: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        """Build realistic browser headers; bot-identifying headers are never sent"""
        headers = {
            "User-Agent": self.user_agent or random.choice(USER_AGENTS),
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9,ja;q=0.8",
            "Accept-Encoding": "gzip, deflate",
            "Connection": "keep-alive",
            "Upgrade-Insecure-Requests": "1",
            "Sec-Fetch-Dest": "document",
            "Sec-Fetch-Mode": "navigate",
            "Sec-Fetch-Site": "same-origin",
        }
        if custom_headers:
            headers.update(custom_headers)
        for name in BOT_HEADERS:
            for key in [k for k in headers if k.lower() == name.lower()]:
                del headers[key]
        return headers

    async def _handle_retry_after(self, headers: Dict[str, str], url: str):
        """Honour a Retry-After header (seconds or HTTP date) before giving up on a response"""
        retry_after = headers.get("Retry-After") or headers.get("retry-after")
        if not retry_after:
            return
        try:
            wait_seconds = int(retry_after)
        except ValueError:
            try:
                from email.utils import parsedate_to_datetime
                retry_date = parsedate_to_datetime(retry_after)
                wait_seconds = max(0, int(retry_date.timestamp() - time.time()))
            except (TypeError, ValueError):
                logger.warning(f"[net] Could not parse Retry-After header: {retry_after}")
                return
        wait_seconds = min(wait_seconds, self.max_retry_after)
        if wait_seconds > 0:
            logger.info(f"[net] Retry-After header: waiting {wait_seconds}s for {url}")
            await asyncio.sleep(wait_seconds)

    @retry(
        stop=stop_after_attempt(MAX_RETRIES + 1),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        retry=retry_if_exception_type((httpx.TimeoutException, httpx.ConnectError)),
        reraise=True
    )
    async def fetch(self, url: str, headers: Optional[Dict[str, str]] = None) -> Tuple[int, Dict[str, str], str]:
        """
        GET a page.

        Connection errors and timeouts are retried with exponential backoff;
        any other error propagates to the caller.

        Returns:
            (status_code, headers, text)
        """
        request_headers = self._get_headers(headers)
        client_kwargs = {"timeout": self.timeout, "follow_redirects": True}
        if self.transport is not None:
            client_kwargs["transport"] = self.transport
        else:
            proxy = self._next_proxy()
            if proxy:
                client_kwargs["proxy"] = proxy

        async with httpx.AsyncClient(**client_kwargs) as client:
            start_time = time.time()
            try:
                response = await client.get(url, headers=request_headers)
            except httpx.TimeoutException as e:
                logger.error(f"[net] Timeout fetching {url}: {e}")
                raise
            except httpx.ConnectError as e:
                logger.error(f"[net] Connection error fetching {url}: {e}")
                raise

            elapsed_ms = int((time.time() - start_time) * 1000)
            response_headers = dict(response.headers)
            if response.status_code in (429, 503):
                await self._handle_retry_after(response_headers, url)

            logger.info(f"[net] GET {response.status_code} {url} ({len(response.content)} bytes, {elapsed_ms}ms)")
            return response.status_code, response_headers, response.text
