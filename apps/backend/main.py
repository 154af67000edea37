#!/usr/bin/env python3
"""
Daijob crawler command line.

Reads a JSON crawl input, crawls the board and appends results to a JSON
Lines file.

Usage:
    daijob-crawl --input input.json --output results.jsonl
    daijob-crawl --keyword engineer --results-wanted 20 --no-details
"""
import argparse
import asyncio
import logging
import os
import sys
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import ValidationError

from app.config import EngineSettings, load_config
from crawler.dispatcher import run_crawl
from crawler.sink import JsonLinesSink

load_dotenv()

logger = logging.getLogger(__name__)

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DEFAULT_OUTPUT = 'results.jsonl'

EXIT_OK = 0
EXIT_INVALID_CONFIG = 2


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Crawl Daijob job listings')
    parser.add_argument('--input', type=str, help='Path to JSON crawl input')
    parser.add_argument('--output', type=str, default=DEFAULT_OUTPUT,
                        help=f'JSON Lines output file (default: {DEFAULT_OUTPUT})')
    parser.add_argument('--results-wanted', type=str, help='Number of results to save')
    parser.add_argument('--max-pages', type=str, help='Maximum list pages to follow')
    parser.add_argument('--keyword', type=str, help='Search keyword')
    parser.add_argument('--no-details', action='store_true',
                        help='Save job URLs from list pages instead of visiting detail pages')
    parser.add_argument('--log-level', type=str,
                        default=os.getenv('DAIJOB_LOG_LEVEL', 'INFO'),
                        help='Logging level (default: INFO)')
    return parser


def cli(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(level=args.log_level.upper(), format=LOG_FORMAT)

    overrides = {
        'results_wanted': args.results_wanted,
        'max_pages': args.max_pages,
        'keyword': args.keyword,
    }
    if args.no_details:
        overrides['collect_details'] = False

    try:
        config = load_config(args.input, overrides)
    except (OSError, ValueError, ValidationError) as e:
        logger.error(f"Invalid crawl input: {e}")
        return EXIT_INVALID_CONFIG

    settings = EngineSettings.from_env()
    sink = JsonLinesSink(args.output)
    try:
        asyncio.run(run_crawl(config, sink, settings))
    finally:
        sink.close()
    logger.info(f"Wrote {sink.count} results to {args.output}")
    return EXIT_OK


if __name__ == '__main__':
    sys.exit(cli())
