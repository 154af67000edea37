"""
Tests for the daijob-crawl command line.
Invalid input must stop the run before any request is made.
"""
import json
import logging
import pytest
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "apps" / "backend"))

import main


def test_invalid_input_exit_code(tmp_path):
    """Test that a bad crawl input exits with status 2."""
    input_path = tmp_path / "input.json"
    input_path.write_text(json.dumps({"collectDetails": "sometimes"}))

    code = main.cli(["--input", str(input_path), "--output", str(tmp_path / "out.jsonl")])

    assert code == main.EXIT_INVALID_CONFIG
    assert not (tmp_path / "out.jsonl").exists()


def test_missing_input_file(tmp_path):
    code = main.cli(["--input", str(tmp_path / "missing.json")])
    assert code == main.EXIT_INVALID_CONFIG


def test_parser_options():
    args = main.build_parser().parse_args([
        "--keyword", "java", "--results-wanted", "20", "--max-pages", "3", "--no-details",
    ])
    assert args.keyword == "java"
    assert args.results_wanted == "20"
    assert args.no_details is True
    assert args.output == main.DEFAULT_OUTPUT


def test_run_writes_results(tmp_path, monkeypatch, caplog):
    """A full run writes one JSON line per saved result."""
    calls = {}

    async def fake_run_crawl(config, sink, settings):
        calls['config'] = config
        sink.push({'url': 'https://www.daijob.com/en/jobs/detail/1', '_source': 'daijob.com'})

    monkeypatch.setattr(main, "run_crawl", fake_run_crawl)
    output = tmp_path / "out.jsonl"

    with caplog.at_level(logging.INFO, logger="main"):
        code = main.cli(["--keyword", "java", "--no-details", "--output", str(output)])

    assert code == main.EXIT_OK
    assert calls['config'].collect_details is False
    assert calls['config'].keyword == "java"
    lines = output.read_text().splitlines()
    assert json.loads(lines[0])['_source'] == 'daijob.com'
    assert f"Wrote 1 results to {output}" in caplog.text
