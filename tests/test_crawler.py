"""Tests for the pagination crawl loop."""

import pytest

from ecom_scraper.core.config import CrawlConfig
from ecom_scraper.core.crawler import CrawlSession, PaginationCrawler
from ecom_scraper.core.errors import ExecutionError
from fakes import FakeSandbox, FakeTab, page_number_of

CODE = "function extractProducts(t) { return []; }"


def products_until(last_page, per_page=2):
    """Fake parser: per_page products on pages 1..last_page, none after."""
    def run(code, text):
        page = page_number_of(text)
        if page > last_page:
            return []
        return [{"name": f"p{page}-{i}"} for i in range(per_page)]
    return run


@pytest.mark.asyncio
async def test_crawl_stops_after_two_empty_pages(fast_config):
    tab = FakeTab("https://x/list")
    crawler = PaginationCrawler(FakeSandbox(products_until(3)), config=fast_config)

    result = await crawler.crawl(CrawlSession(tab), CODE)

    assert len(result.products) == 6
    assert result.pages_processed == 5
    assert result.consecutive_failures == 2
    assert result.completed_naturally is True
    assert result.stop_reason == "exhausted"
    assert tab.navigations == [f"https://x/list?page={n}" for n in range(2, 6)]
    assert [p["name"] for p in result.products][:3] == ["p1-0", "p1-1", "p2-0"]
    assert result.summary() == "Completed: 6 products from 5 pages"


@pytest.mark.asyncio
async def test_cancel_between_pages(fast_config):
    tab = FakeTab("https://x/list")
    session = CrawlSession(tab)
    parse = products_until(10)

    def run(code, text):
        products = parse(code, text)
        if page_number_of(text) == 2:
            session.cancel()
        return products

    crawler = PaginationCrawler(FakeSandbox(run), config=fast_config)

    result = await crawler.crawl(session, CODE)

    assert [p["name"] for p in result.products] == ["p1-0", "p1-1", "p2-0", "p2-1"]
    assert result.completed_naturally is False
    assert result.stop_reason == "cancelled"
    assert result.summary().startswith("Stopped: 4 products")
    assert tab.navigations == ["https://x/list?page=2"]


@pytest.mark.asyncio
async def test_cancelled_before_start_processes_nothing(fast_config):
    session = CrawlSession(FakeTab("https://x/list"))
    session.cancel()
    crawler = PaginationCrawler(FakeSandbox(products_until(10)), config=fast_config)

    result = await crawler.crawl(session, CODE)

    assert result.products == []
    assert result.pages_processed == 0
    assert result.completed_naturally is False


@pytest.mark.asyncio
async def test_max_pages_limit():
    config = CrawlConfig(max_pages=3, settle_delay=0, inject_wait=0, extract_retry_delay=0, page_delay=0)
    tab = FakeTab("https://x/list")
    crawler = PaginationCrawler(FakeSandbox(products_until(100)), config=config)

    result = await crawler.crawl(CrawlSession(tab), CODE)

    assert len(result.products) == 6
    assert result.pages_processed == 3
    assert result.stop_reason == "max_pages"
    assert result.completed_naturally is True


@pytest.mark.asyncio
async def test_base_url_drops_existing_pagination():
    config = CrawlConfig(pagination_param="pagina", max_pages=3, settle_delay=0, page_delay=0)
    tab = FakeTab("https://x/list?sort=asc&page=7&pagina=4")
    crawler = PaginationCrawler(FakeSandbox(products_until(100)), config=config)

    await crawler.crawl(CrawlSession(tab), CODE)

    assert tab.navigations == [
        "https://x/list?sort=asc&pagina=2",
        "https://x/list?sort=asc&pagina=3",
    ]


@pytest.mark.asyncio
async def test_initial_text_reused_for_page_one(fast_config):
    sandbox = FakeSandbox(products_until(1))
    crawler = PaginationCrawler(sandbox, config=fast_config)
    tab = FakeTab("https://x/list")

    await crawler.crawl(CrawlSession(tab), CODE, initial_text="URL: https://x/list\n\nProducts")

    assert sandbox.inputs[0] == "URL: https://x/list\n\nProducts"
    assert tab.pings == 2  # pages 2 and 3 only


@pytest.mark.asyncio
async def test_navigation_timeouts_count_as_failures(fast_config):
    tab = FakeTab("https://x/list", hang_on={"https://x/list?page=2", "https://x/list?page=3"})
    crawler = PaginationCrawler(FakeSandbox(products_until(100)), config=fast_config)

    result = await crawler.crawl(CrawlSession(tab), CODE)

    assert len(result.products) == 2
    assert result.stop_reason == "exhausted"
    assert len(result.errors) == 2
    assert "page 2" in result.errors[0]


@pytest.mark.asyncio
async def test_failure_counter_resets_on_success(fast_config):
    def run(code, text):
        page = page_number_of(text)
        if page in (2, 4):
            raise ExecutionError("TypeError: cannot read properties of undefined")
        if page > 5:
            return []
        return [{"name": f"p{page}"}]

    config = CrawlConfig(max_pages=10, settle_delay=0, page_delay=0)
    crawler = PaginationCrawler(FakeSandbox(run), config=config)

    result = await crawler.crawl(CrawlSession(FakeTab("https://x/list")), CODE)

    assert [p["name"] for p in result.products] == ["p1", "p3", "p5"]
    assert result.pages_processed == 7
    assert result.stop_reason == "exhausted"


@pytest.mark.asyncio
async def test_extraction_is_retried(fast_config):
    tab = FakeTab("https://x/list", extract_failures=2)
    crawler = PaginationCrawler(FakeSandbox(products_until(1)), config=fast_config)

    result = await crawler.crawl(CrawlSession(tab), CODE)

    assert len(result.products) == 2
    assert result.errors == []


@pytest.mark.asyncio
async def test_extraction_exhausted_counts_as_failure(fast_config):
    tab = FakeTab("https://x/list", extract_failures=3)
    crawler = PaginationCrawler(FakeSandbox(products_until(10)), config=fast_config)

    result = await crawler.crawl(CrawlSession(tab), CODE)

    assert "after 3 attempts" in result.errors[0]
    # Page 1 failed; pages 2.. succeed
    assert result.products[0]["name"] == "p2-0"


def test_invalid_pagination_param():
    with pytest.raises(ValueError):
        CrawlConfig(pagination_param="p")
