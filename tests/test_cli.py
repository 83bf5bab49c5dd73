"""Tests for the command line interface."""

import json
import sys

import pytest

from ecom_scraper.cli import build_parser, interrupt_handler, main
from ecom_scraper.core.parser_cache import ParserCache


def test_crawl_arguments():
    args = build_parser().parse_args([
        "--format", "csv", "crawl", "--url", "https://x/list",
        "--pagination-param", "pagina", "--max-pages", "20",
    ])

    assert args.command == "crawl"
    assert args.pagination_param == "pagina"
    assert args.max_pages == 20
    assert args.format == "csv"


def test_invalid_pagination_param_rejected():
    with pytest.raises(SystemExit):
        build_parser().parse_args(["crawl", "--url", "https://x/list", "--pagination-param", "p"])


def test_cache_export_requires_file(monkeypatch, tmp_path):
    monkeypatch.setattr(sys, "argv", ["ecom-scraper", "--cache-dir", str(tmp_path), "cache", "export"])

    with pytest.raises(SystemExit) as exc_info:
        main()

    assert exc_info.value.code == 2


def test_cache_list_and_export(monkeypatch, tmp_path, capsys):
    cache_dir = tmp_path / "cache"
    with ParserCache(cache_dir=str(cache_dir)) as cache:
        cache.put("https://shop.com/shoes", "CODE", "Shoes")

    export_file = tmp_path / "parsers.json"
    monkeypatch.setattr(sys, "argv", [
        "ecom-scraper", "--cache-dir", str(cache_dir), "cache", "export", "--file", str(export_file),
    ])

    with pytest.raises(SystemExit) as exc_info:
        main()

    assert exc_info.value.code == 0
    assert "Exported 1 parsers" in capsys.readouterr().out
    assert list(json.loads(export_file.read_text()).values())[0]["code"] == "CODE"


class RecordingTask:
    def __init__(self):
        self.cancelled = False

    def cancel(self):
        self.cancelled = True


class StubScraper:
    def __init__(self, has_session):
        self.has_session = has_session
        self.cancel_calls = 0

    def cancel(self):
        self.cancel_calls += 1
        return self.has_session


def test_interrupt_before_tab_opens_aborts_run():
    task = RecordingTask()
    scraper = StubScraper(has_session=False)

    interrupt_handler(scraper, task)()

    assert scraper.cancel_calls == 1
    assert task.cancelled is True


def test_interrupt_during_crawl_stops_gracefully():
    task = RecordingTask()
    scraper = StubScraper(has_session=True)

    interrupt_handler(scraper, task)()

    assert scraper.cancel_calls == 1
    assert task.cancelled is False
