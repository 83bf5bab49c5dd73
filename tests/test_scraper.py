"""End-to-end tests for the EcomScraper facade with in-process fakes."""

import json

import pytest

from ecom_scraper.core.config import CrawlConfig
from ecom_scraper.core.errors import ParserNotFound
from ecom_scraper.core.scraper import EcomScraper
from fakes import FakeLLMClient, FakeSandbox, FakeTab, page_number_of

CODE = "function extractProducts(t) { /* cards */ }"
REPLY = json.dumps({"explanation": "Reads cards", "code": CODE})


class FakeBrowser:
    def __init__(self):
        self.opened = []

    async def open_tab(self, url):
        self.opened.append(url)
        return FakeTab(url)

    def create_sandbox(self):
        raise AssertionError("tests pass their own sandbox")

    async def close(self):
        pass


def three_pages(code, text):
    page = page_number_of(text)
    return [{"name": f"p{page}"}] if page <= 3 else []


@pytest.fixture
def make_scraper(tmp_path):
    scrapers = []

    def factory(responses, run=three_pages):
        scraper = EcomScraper(
            cache_dir=str(tmp_path / "cache"),
            output_dir=str(tmp_path / "output"),
            crawl_config=CrawlConfig(max_pages=10, settle_delay=0, page_delay=0),
            llm_client=FakeLLMClient(responses),
            browser=FakeBrowser(),
            sandbox=FakeSandbox(run),
        )
        scrapers.append(scraper)
        return scraper

    yield factory
    for scraper in scrapers:
        scraper.parser_cache.close()


@pytest.mark.asyncio
async def test_generate_parser_saves_code_and_products(make_scraper, tmp_path):
    scraper = make_scraper([REPLY])

    result = await scraper.generate_parser("https://x/list")

    assert result.validated is True
    code_file = tmp_path / "output" / "generatecode" / "Test Shop" / "generated-product-parser.js"
    products_file = tmp_path / "output" / "code-generated" / "Test Shop" / "extracted-products.json"
    assert code_file.read_text(encoding="utf-8") == CODE
    assert json.loads(products_file.read_text(encoding="utf-8"))[0]["name"] == "p1"


@pytest.mark.asyncio
async def test_obtain_without_parser_raises(make_scraper):
    scraper = make_scraper([])

    with pytest.raises(ParserNotFound):
        await scraper.obtain_products("https://x/list")


@pytest.mark.asyncio
async def test_obtain_uses_cached_parser_for_subpage(make_scraper):
    scraper = make_scraper([])
    scraper.parser_cache.put("https://x/list", CODE, "List")

    products = await scraper.obtain_products("https://x/list/shoes?page=2")

    assert [p["name"] for p in products] == ["p2"]


@pytest.mark.asyncio
async def test_scrape_all_pages_generates_then_crawls(make_scraper, tmp_path):
    scraper = make_scraper([REPLY])

    result = await scraper.scrape_all_pages("https://x/list")

    assert [p["name"] for p in result.products] == ["p1", "p2", "p3"]
    assert result.completed_naturally is True
    assert scraper.parser_cache.load("https://x/list") == CODE
    all_pages = tmp_path / "output" / "code-generated" / "Test Shop" / "extracted-products-all-pages.json"
    assert len(json.loads(all_pages.read_text(encoding="utf-8"))) == 3


@pytest.mark.asyncio
async def test_scrape_all_pages_without_generation_raises(make_scraper):
    scraper = make_scraper([])

    with pytest.raises(ParserNotFound):
        await scraper.scrape_all_pages("https://x/list", generate_if_missing=False)


@pytest.mark.asyncio
async def test_cancelled_crawl_still_saves(make_scraper, tmp_path):
    holder = {}

    def run(code, text):
        if page_number_of(text) == 2:
            holder["scraper"].cancel()
        return three_pages(code, text)

    scraper = make_scraper([], run=run)
    holder["scraper"] = scraper
    scraper.parser_cache.put("https://x/list", CODE, "List")

    result = await scraper.scrape_all_pages("https://x/list", title="Partial")

    assert result.completed_naturally is False
    saved = tmp_path / "output" / "code-generated" / "Partial" / "extracted-products-all-pages.json"
    assert [p["name"] for p in json.loads(saved.read_text(encoding="utf-8"))] == ["p1", "p2"]


@pytest.mark.asyncio
async def test_stop_does_not_carry_into_next_crawl(make_scraper):
    calls = {"count": 0}

    def run(code, text):
        calls["count"] += 1
        if calls["count"] == 1:
            holder["scraper"].cancel()
        return three_pages(code, text)

    holder = {}
    scraper = make_scraper([], run=run)
    holder["scraper"] = scraper
    scraper.parser_cache.put("https://x/list", CODE, "List")

    first = await scraper.scrape_all_pages("https://x/list")
    second = await scraper.scrape_all_pages("https://x/list")

    assert first.stop_reason == "cancelled"
    assert first.pages_processed == 1
    assert second.stop_reason == "exhausted"
    assert second.completed_naturally is True
    assert [p["name"] for p in second.products] == ["p1", "p2", "p3"]
    assert scraper.session.cancelled is False


def test_cancel_before_tab_opens_is_reported(make_scraper):
    scraper = make_scraper([])

    assert scraper.session is None
    assert scraper.cancel() is False


@pytest.mark.asyncio
async def test_tab_reused_for_same_url(make_scraper):
    scraper = make_scraper([])
    scraper.parser_cache.put("https://x/list", CODE, "List")

    await scraper.obtain_products("https://x/list")
    await scraper.obtain_products("https://x/list/")

    assert scraper.browser.opened == ["https://x/list"]
