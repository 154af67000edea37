"""
Daijob crawler: request frontier, link discovery and the concurrent dispatcher.
"""

from .dispatcher import CrawlDispatcher, run_crawl
from .frontier import CrawlRequest, FrontierController, FrontierState
from .sink import JsonLinesSink, MemorySink, ResultSink
from .url_classifier import DETAIL, LIST, classify_url

__all__ = [
    'CrawlDispatcher', 'run_crawl',
    'CrawlRequest', 'FrontierController', 'FrontierState',
    'JsonLinesSink', 'MemorySink', 'ResultSink',
    'DETAIL', 'LIST', 'classify_url',
]
