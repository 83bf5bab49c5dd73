"""
Pagination Crawler

Walks ?page=N (or ?pagina=N) listing pages in one tab, runs the cached parser
on each page and accumulates products until the listing runs dry, the page
limit is reached or the session is cancelled.
"""

import asyncio
import logging
from typing import List, Optional, Tuple

from .browser_tab import BrowserTab
from .config import CrawlConfig, MAX_CONSECUTIVE_FAILURES, PAGINATION_PARAMS
from .content_converter import ContentConverter
from .errors import ContentUnavailable, ScraperError
from .models import CrawlResult, CrawlState, PageContent
from .navigation import navigate_and_wait
from .sandbox import Sandbox
from .url_utils import build_pagination_url, strip_pagination

logger = logging.getLogger(__name__)


class CrawlSession:
    """
    One crawl's ownership of a tab plus its cancellation flag.

    cancel() is cooperative: the crawler checks the flag before each page and
    after the inter-page delay, never in the middle of a page.
    """

    def __init__(self, tab: BrowserTab):
        self.tab = tab
        self.cancelled = False

    def cancel(self) -> None:
        if not self.cancelled:
            logger.info(" Stop requested, finishing current page")
        self.cancelled = True

    def reset(self) -> None:
        self.cancelled = False


class PaginationCrawler:
    """Runs a parser over consecutive listing pages"""

    def __init__(
        self,
        sandbox: Sandbox,
        converter: Optional[ContentConverter] = None,
        config: Optional[CrawlConfig] = None
    ):
        self.sandbox = sandbox
        self.converter = converter or ContentConverter()
        self.config = config or CrawlConfig()

    async def crawl(
        self,
        session: CrawlSession,
        code: str,
        initial_text: Optional[str] = None
    ) -> CrawlResult:
        """
        Crawl every listing page reachable by the pagination parameter.

        Args:
            session: Tab (with page 1 loaded) and cancellation flag
            code: extractProducts source to run on every page
            initial_text: Already-converted page 1 text, reused instead of
                extracting page 1 again

        Returns:
            CrawlResult with everything accumulated up to the stop
        """
        config = self.config
        tab = session.tab
        base_url = strip_pagination(tab.url, PAGINATION_PARAMS)
        state = CrawlState()
        errors: List[str] = []
        pages_processed = 0
        stop_reason = 'max_pages'

        logger.info(f" Crawling {base_url} (?{config.pagination_param}=N, max {config.max_pages} pages)")

        while True:
            if session.cancelled:
                stop_reason = 'cancelled'
                break

            page_number = state.page_number
            products = []
            try:
                text = await self._acquire_text(tab, base_url, page_number, initial_text)
                products = await self.sandbox.execute(code, text)
            except ScraperError as e:
                logger.warning(f" Page {page_number} failed: {e}")
                errors.append(f"page {page_number}: {e}")

            pages_processed += 1

            if products:
                state.accumulated.extend(products)
                state.consecutive_failures = 0
                logger.info(
                    f" Page {page_number}: {len(products)} products "
                    f"({len(state.accumulated)} total)"
                )
            else:
                state.consecutive_failures += 1
                logger.info(
                    f" Page {page_number}: no products "
                    f"({state.consecutive_failures}/{MAX_CONSECUTIVE_FAILURES} consecutive failures)"
                )

            if state.consecutive_failures >= MAX_CONSECUTIVE_FAILURES:
                stop_reason = 'exhausted'
                break

            if page_number + 1 > config.max_pages:
                stop_reason = 'max_pages'
                break

            state.page_number += 1
            await asyncio.sleep(config.page_delay)

            if session.cancelled:
                stop_reason = 'cancelled'
                break

        state.cancelled = stop_reason == 'cancelled'
        result = CrawlResult(
            products=state.accumulated,
            pages_processed=pages_processed,
            completed_naturally=not state.cancelled,
            stop_reason=stop_reason,
            consecutive_failures=state.consecutive_failures,
            errors=errors
        )
        logger.info(f" {result.summary()} (stop: {stop_reason})")
        return result

    async def _acquire_text(
        self,
        tab: BrowserTab,
        base_url: str,
        page_number: int,
        initial_text: Optional[str]
    ) -> str:
        if page_number == 1 and initial_text and initial_text.strip():
            return initial_text

        if page_number > 1:
            url = build_pagination_url(base_url, page_number, self.config.pagination_param)
            logger.info(f" Navigating to page {page_number}: {url}")
            await navigate_and_wait(tab, url, self.config.navigation_timeout)

        _, text = await self.read_page(tab)
        return text

    async def read_page(self, tab: BrowserTab) -> Tuple[PageContent, str]:
        """
        Snapshot the page currently loaded in tab and convert it to text.

        Raises:
            ContentUnavailable: if every extraction attempt failed
        """
        await self._stabilize(tab)
        page = await self._extract_page(tab)
        return page, self.converter.convert(page)

    async def _stabilize(self, tab: BrowserTab) -> bool:
        """Settle, then make sure the content script answers (re-injecting if not)"""
        await asyncio.sleep(self.config.settle_delay)

        for attempt in range(1, self.config.probe_attempts + 1):
            if await tab.ping():
                return True
            logger.debug(f"   Content script not ready (attempt {attempt}), re-injecting")
            await tab.inject_content_script()
            await asyncio.sleep(self.config.inject_wait)

        logger.warning(" Content script never answered, extracting anyway")
        return False

    async def _extract_page(self, tab: BrowserTab) -> PageContent:
        attempts = self.config.extract_attempts
        last_reason: Optional[str] = None

        for attempt in range(1, attempts + 1):
            try:
                return await tab.extract_content()
            except ContentUnavailable as e:
                last_reason = e.reason or str(e)
                logger.debug(f"   Extraction attempt {attempt}/{attempts} failed: {last_reason}")

            if attempt < attempts:
                await asyncio.sleep(self.config.extract_retry_delay)

        raise ContentUnavailable(tab.url, attempts, last_reason)
