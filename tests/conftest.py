"""Shared fixtures."""

import pytest

from ecom_scraper.core.config import CrawlConfig
from ecom_scraper.core.parser_cache import ParserCache


@pytest.fixture
def fast_config():
    """Crawl settings with every delay removed."""
    return CrawlConfig(
        max_pages=5,
        navigation_timeout=0.05,
        settle_delay=0,
        inject_wait=0,
        extract_retry_delay=0,
        page_delay=0,
    )


@pytest.fixture
def parser_cache(tmp_path):
    cache = ParserCache(cache_dir=str(tmp_path / "cache"))
    yield cache
    cache.close()
