"""
Ecom Scraper - Main orchestration class
Ties the browser, the parser generator, the parser cache and the crawler
together behind three user actions: generate, obtain and scrape all pages
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from .browser_tab import BrowserSession
from .config import CrawlConfig, MAX_ITERATIONS
from .content_converter import ContentConverter
from .crawler import CrawlSession, PaginationCrawler
from .errors import ContentUnavailable, ExecutionError, ParserNotFound
from .llm_client import LLMClient
from .models import CrawlResult, GenerationResult, PageContent
from .parser_cache import ParserCache
from .parser_generator import ParserGenerator
from .results_writer import ResultsWriter
from .sandbox import Sandbox
from .url_utils import normalize_for_comparison

logger = logging.getLogger(__name__)


class EcomScraper:
    """
    AI-generated product extraction for e-commerce listings

    Flow:
    1. Open the listing in a browser tab and snapshot it as text
    2. Reuse a cached parser for the URL (or a parent path), or generate one
       with the reflection loop
    3. Run the parser on this page, or on every ?page=N page
    4. Write products (and generated code) under the output directory
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        model_name: Optional[str] = None,
        cache_dir: str = "./cache",
        output_dir: str = "./output",
        headless: bool = True,
        browser_timeout: int = 30000,  # Browser navigation timeout in milliseconds
        crawl_config: Optional[CrawlConfig] = None,
        max_iterations: int = MAX_ITERATIONS,
        output_format: str = 'json',
        log_level: int = logging.INFO,
        llm_client: Optional[LLMClient] = None,
        browser: Optional[BrowserSession] = None,
        sandbox: Optional[Sandbox] = None
    ):
        """
        Initialize Ecom Scraper

        Args:
            api_key: API key for the model provider (auto-detected if None)
            model_name: litellm model string (auto-detected if None)
            cache_dir: Directory for the parser cache
            output_dir: Directory for exported products and code
            headless: Run browser in headless mode
            browser_timeout: Browser navigation timeout in milliseconds
            crawl_config: Pagination settings (parameter, max pages, timings)
            max_iterations: Reflection loop budget per generation
            output_format: 'json' or 'csv' for product files
            log_level: Logging level
            llm_client: Pre-built model client
            browser: Pre-built browser session
            sandbox: Pre-built execution sandbox (default: one page in the browser)
        """
        logging.basicConfig(
            level=log_level,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )

        self.output_format = output_format
        self.llm_client = llm_client or LLMClient(api_key=api_key, model_name=model_name)
        self.parser_cache = ParserCache(cache_dir=cache_dir)
        self.writer = ResultsWriter(output_dir)
        self.converter = ContentConverter()
        self.crawl_config = crawl_config or CrawlConfig()
        self.generator = ParserGenerator(self.llm_client, self.parser_cache, max_iterations=max_iterations)
        self.browser = browser or BrowserSession(headless=headless, timeout=browser_timeout)

        self._sandbox = sandbox
        self._crawler: Optional[PaginationCrawler] = None
        self.session: Optional[CrawlSession] = None

        logger.info(" Ecom Scraper initialized")

    @property
    def sandbox(self) -> Sandbox:
        if self._sandbox is None:
            self._sandbox = self.browser.create_sandbox()
        return self._sandbox

    @property
    def crawler(self) -> PaginationCrawler:
        if self._crawler is None:
            self._crawler = PaginationCrawler(self.sandbox, self.converter, self.crawl_config)
        return self._crawler

    async def open(self, url: str) -> CrawlSession:
        """Load url in a tab, reusing the current tab if it already shows it"""
        if self.session is not None and (
            normalize_for_comparison(self.session.tab.url) == normalize_for_comparison(url)
        ):
            return self.session

        tab = await self.browser.open_tab(url)
        self.session = CrawlSession(tab)
        return self.session

    async def capture_sample(self, session: CrawlSession) -> Tuple[PageContent, str]:
        """Snapshot the session's current page and convert it to parser input text"""
        return await self.crawler.read_page(session.tab)

    async def generate_parser(self, url: str, title: Optional[str] = None) -> GenerationResult:
        """
        Generate a parser for the listing at url, save the code and the
        products it extracts from this page.

        Args:
            url: Listing URL
            title: Folder name for outputs (default: page title)

        Returns:
            GenerationResult
        """
        session = await self.open(url)
        page, text = await self.capture_sample(session)
        title = title or page.title

        result = await self.generator.generate(text, session.tab.url, title, sandbox=self.sandbox)
        self.writer.write_parser_code(result.code, title)

        products = result.products
        if products is None:
            try:
                products = await self.sandbox.execute(result.code, text)
            except ExecutionError as e:
                logger.warning(f" Generated code failed on this page: {e}")
                products = []
        self.writer.write_products(products, title, all_pages=False, fmt=self.output_format)

        status = "validated" if result.validated else "NOT validated"
        logger.info(
            f" Parser generated in {result.iterations} iteration(s), {status}, "
            f"{len(products)} products on this page"
        )
        return result

    async def obtain_products(self, url: str, title: Optional[str] = None) -> List[Dict[str, Any]]:
        """
        Run the cached parser on the page at url and save the products.

        Raises:
            ParserNotFound: if no cached parser matches url
        """
        session = await self.open(url)
        code = self.parser_cache.load(session.tab.url) or self.parser_cache.load(url)
        if code is None:
            raise ParserNotFound(url)

        page, text = await self.capture_sample(session)
        products = await self.sandbox.execute(code, text)
        self.writer.write_products(products, title or page.title, all_pages=False, fmt=self.output_format)
        logger.info(f" Extracted {len(products)} products")
        return products

    async def scrape_all_pages(
        self,
        url: str,
        title: Optional[str] = None,
        generate_if_missing: bool = True
    ) -> CrawlResult:
        """
        Crawl all pages of the listing at url with the cached parser.

        With no cached parser one is generated from page 1 first (unless
        generate_if_missing is False). Whatever was collected is saved, also
        when the crawl was cancelled.

        Raises:
            ParserNotFound: if there is no cached parser and no page 1 sample
                to generate one from
        """
        # A stop request belongs to one crawl; a reused tab starts clean
        if self.session is not None:
            self.session.reset()
        session = await self.open(url)
        code = self.parser_cache.load(session.tab.url) or self.parser_cache.load(url)

        initial_text: Optional[str] = None
        try:
            page, initial_text = await self.capture_sample(session)
            title = title or page.title
        except ContentUnavailable as e:
            logger.warning(f" Could not read page 1 before crawling: {e}")
        title = title or ''

        if code is None:
            if not generate_if_missing or not initial_text or not initial_text.strip():
                raise ParserNotFound(url)
            logger.info(" No cached parser for this listing, generating one")
            generated = await self.generator.generate(initial_text, session.tab.url, title, sandbox=self.sandbox)
            code = generated.code

        try:
            result = await self.crawler.crawl(session, code, initial_text=initial_text)
        finally:
            session.reset()
        self.writer.write_products(result.products, title, all_pages=True, fmt=self.output_format)
        return result

    def cancel(self) -> bool:
        """
        Stop the running crawl after the current page.

        Returns:
            False if no tab is open yet, so there is nothing to stop gracefully
        """
        if self.session is None:
            return False
        self.session.cancel()
        return True

    def list_parsers(self) -> List[Dict[str, Any]]:
        return [entry.to_dict() for entry in self.parser_cache.list_entries()]

    def get_cache_stats(self) -> Dict[str, Any]:
        """Get cache statistics"""
        return self.parser_cache.get_stats()

    def clear_cache(self) -> int:
        """Clear parser cache"""
        return self.parser_cache.clear()

    def export_cache(self, export_path: str) -> int:
        """Export cache to file"""
        return self.parser_cache.export_cache(export_path)

    def import_cache(self, import_path: str) -> int:
        """Import cache from file"""
        return self.parser_cache.import_cache(import_path)

    async def close(self) -> None:
        if self._sandbox is not None:
            await self._sandbox.close()
        await self.browser.close()
        self.parser_cache.close()
        logger.info(" Ecom Scraper closed")

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()
