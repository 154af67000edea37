"""
Run configuration.

CrawlConfig is the crawl input (search parameters, quotas, start URLs). It
accepts the input keys of the original actor (camelCase such as
collectDetails/startUrls) as well as snake_case names.

EngineSettings holds the dispatcher knobs, read from DAIJOB_* environment
variables.
"""
import json
import logging
import math
import os
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

logger = logging.getLogger(__name__)

DEFAULT_RESULTS_WANTED = 100
DEFAULT_MAX_PAGES = 999
UNBOUNDED = sys.maxsize


def _as_number(value: Any) -> float:
    """Numeric value of an input, NaN when it is not a number."""
    if isinstance(value, bool):
        return float(value)
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


class CrawlConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra='ignore')

    keyword: str = ''
    location: str = ''
    category: str = ''
    results_wanted: int = DEFAULT_RESULTS_WANTED
    max_pages: int = DEFAULT_MAX_PAGES
    collect_details: bool = Field(True, alias='collectDetails')
    dedupe: bool = True
    start_url: Optional[str] = Field(None, alias='startUrl')
    start_urls: List[str] = Field(default_factory=list, alias='startUrls')
    url: Optional[str] = None
    proxy_configuration: Optional[Dict[str, Any]] = Field(None, alias='proxyConfiguration')

    @field_validator('keyword', 'location', 'category', mode='before')
    @classmethod
    def _strip_text(cls, value):
        return '' if value is None else str(value).strip()

    @field_validator('results_wanted', mode='before')
    @classmethod
    def _results_wanted(cls, value):
        if value is None:
            return DEFAULT_RESULTS_WANTED
        number = _as_number(value)
        if not math.isfinite(number):
            return UNBOUNDED
        return max(1, int(number))

    @field_validator('max_pages', mode='before')
    @classmethod
    def _max_pages(cls, value):
        number = _as_number(value)
        if not math.isfinite(number):
            return DEFAULT_MAX_PAGES
        return max(1, int(number))

    @field_validator('start_urls', mode='before')
    @classmethod
    def _start_urls(cls, value):
        if value is None:
            return []
        if isinstance(value, (str, dict)):
            value = [value]
        urls = []
        for entry in value:
            if isinstance(entry, dict):
                entry = entry.get('url')
            if entry and str(entry).strip():
                urls.append(str(entry).strip())
        return urls

    @property
    def explicit_start_urls(self) -> List[str]:
        """Operator-supplied start URLs, in input order."""
        urls = list(self.start_urls)
        for single in (self.start_url, self.url):
            if single and single.strip():
                urls.append(single.strip())
        return urls

    @property
    def proxy_urls(self) -> List[str]:
        if not self.proxy_configuration:
            return []
        urls = self.proxy_configuration.get('proxyUrls') or self.proxy_configuration.get('proxy_urls') or []
        if isinstance(urls, str):
            urls = [urls]
        return [u for u in urls if u]


def load_config(path: Optional[Union[str, Path]] = None,
                overrides: Optional[Dict[str, Any]] = None) -> CrawlConfig:
    """
    Build a CrawlConfig from a JSON input file plus explicit overrides.

    Overrides with a None value are ignored. Raises pydantic.ValidationError
    for invalid input.
    """
    data: Dict[str, Any] = {}
    if path:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f) or {}
        logger.info(f"Loaded crawl input from {path}")

    for key, value in (overrides or {}).items():
        if value is None:
            continue
        field = CrawlConfig.model_fields.get(key)
        if field is not None and field.alias:
            data.pop(field.alias, None)
        data[key] = value

    return CrawlConfig.model_validate(data)


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning(f"Invalid integer for {name}: {raw!r}, using {default}")
        return default


class EngineSettings:
    """Dispatcher settings from the environment"""

    def __init__(
        self,
        max_concurrency: int = 5,
        max_request_retries: int = 5,
        handler_timeout_secs: float = 60.0,
        request_timeout_secs: float = 30.0,
        min_delay_ms: int = 1000,
        max_delay_ms: int = 3000,
        user_agent: Optional[str] = None
    ):
        self.max_concurrency = max(1, max_concurrency)
        self.max_request_retries = max(0, max_request_retries)
        self.handler_timeout_secs = handler_timeout_secs
        self.request_timeout_secs = request_timeout_secs
        self.min_delay_ms = max(0, min_delay_ms)
        self.max_delay_ms = max(self.min_delay_ms, max_delay_ms)
        self.user_agent = user_agent

    @property
    def retry_after_cap(self) -> float:
        """Longest Retry-After wait that still leaves the handler time to fetch."""
        return self.handler_timeout_secs / 2

    @classmethod
    def from_env(cls) -> 'EngineSettings':
        return cls(
            max_concurrency=_int_env("DAIJOB_MAX_CONCURRENCY", 5),
            max_request_retries=_int_env("DAIJOB_MAX_RETRIES", 5),
            handler_timeout_secs=_int_env("DAIJOB_HANDLER_TIMEOUT_SECS", 60),
            request_timeout_secs=_int_env("DAIJOB_REQUEST_TIMEOUT_SECS", 30),
            min_delay_ms=_int_env("DAIJOB_MIN_DELAY_MS", 1000),
            max_delay_ms=_int_env("DAIJOB_MAX_DELAY_MS", 3000),
            user_agent=os.getenv("DAIJOB_USER_AGENT") or None,
        )

    def __repr__(self):
        return (f"EngineSettings(concurrency={self.max_concurrency}, retries={self.max_request_retries}, "
                f"timeout={self.handler_timeout_secs}s, delay={self.min_delay_ms}-{self.max_delay_ms}ms)")
