"""
Browser tab host using Playwright (Async)

The crawler drives a single tab through this interface: navigate, listen for
load-state events, probe/re-inject the content script and pull page content.
"""

import logging
import random
from abc import ABC, abstractmethod
from typing import Callable, List, Optional

from playwright.async_api import async_playwright, Browser, BrowserContext, Frame, Page, Playwright
from playwright.async_api import Error as PlaywrightError

from .config import EXECUTION_TIMEOUT
from .errors import ContentUnavailable, NavigationFailed
from .models import PageContent, TabEvent
from .sandbox import PlaywrightSandbox

logger = logging.getLogger(__name__)

TabListener = Callable[[TabEvent], None]

# Injected into listing pages. Exposes a liveness ping and a content snapshot.
CONTENT_SCRIPT = """
(() => {
    if (window.__ecomScraper) return;
    const meta = (selector) => {
        const el = document.querySelector(selector);
        return el ? el.getAttribute('content') : null;
    };
    window.__ecomScraper = {
        ping: () => 'pong',
        extract: () => {
            const schemaOrgData = [];
            document.querySelectorAll('script[type="application/ld+json"]').forEach((script) => {
                try { schemaOrgData.push(JSON.parse(script.textContent)); } catch (e) {}
            });
            return {
                content: document.documentElement.outerHTML,
                title: document.title || '',
                url: location.href,
                metadata: {
                    description: meta('meta[name="description"]') || meta('meta[property="og:description"]'),
                    site: meta('meta[property="og:site_name"]'),
                    image: meta('meta[property="og:image"]'),
                    schemaOrgData: schemaOrgData
                }
            };
        }
    };
})();
"""

PING_JS = "() => !!(window.__ecomScraper && window.__ecomScraper.ping() === 'pong')"
EXTRACT_JS = "() => window.__ecomScraper.extract()"

USER_AGENTS = [
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36',
    'Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36 Edg/120.0.0.0',
    'Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.1 Safari/605.1.15'
]


class BrowserTab(ABC):
    """A single browser tab owned by one crawl"""

    def __init__(self):
        self._listeners: List[TabListener] = []

    @property
    @abstractmethod
    def url(self) -> str:
        """URL currently loaded in the tab"""

    def add_listener(self, listener: TabListener) -> None:
        self._listeners.append(listener)

    def remove_listener(self, listener: TabListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def emit(self, event: TabEvent) -> None:
        for listener in list(self._listeners):
            listener(event)

    @abstractmethod
    async def navigate(self, url: str) -> None:
        """Start navigating; completion is reported through a 'complete' TabEvent"""

    @abstractmethod
    async def ping(self) -> bool:
        """True when the content script answers"""

    @abstractmethod
    async def inject_content_script(self) -> None:
        pass

    @abstractmethod
    async def extract_content(self) -> PageContent:
        """Snapshot of the page; raises ContentUnavailable on failure"""


class PlaywrightTab(BrowserTab):
    """BrowserTab over a Playwright Page"""

    def __init__(self, page: Page, navigation_timeout: int = 30000):
        super().__init__()
        self.page = page
        self.navigation_timeout = navigation_timeout
        page.on('framenavigated', self._on_frame_navigated)
        page.on('load', self._on_load)

    @property
    def url(self) -> str:
        return self.page.url

    def _on_frame_navigated(self, frame: Frame) -> None:
        if frame == self.page.main_frame:
            self.emit(TabEvent(status='loading', url=frame.url))

    def _on_load(self, page: Page) -> None:
        self.emit(TabEvent(status='complete', url=page.url))

    async def navigate(self, url: str) -> None:
        try:
            await self.page.goto(url, wait_until='commit', timeout=self.navigation_timeout)
        except PlaywrightError as e:
            raise NavigationFailed(url, e.message) from e

    async def ping(self) -> bool:
        try:
            return bool(await self.page.evaluate(PING_JS))
        except PlaywrightError as e:
            logger.debug(f" Content script ping failed: {e.message}")
            return False

    async def inject_content_script(self) -> None:
        try:
            await self.page.add_script_tag(content=CONTENT_SCRIPT)
        except PlaywrightError as e:
            logger.warning(f" Content script injection failed: {e.message}")

    async def extract_content(self) -> PageContent:
        try:
            data = await self.page.evaluate(EXTRACT_JS)
        except PlaywrightError as e:
            raise ContentUnavailable(self.url, 1, e.message) from e

        if not data or not data.get('content'):
            raise ContentUnavailable(self.url, 1, "content script returned no content")

        return PageContent(
            content=data['content'],
            title=data.get('title') or '',
            url=data.get('url') or self.url,
            metadata=data.get('metadata') or {}
        )


class BrowserSession:
    """
    Owns the Playwright browser, the crawl tab's context and a separate context
    for the code sandbox
    """

    def __init__(
        self,
        headless: bool = True,
        timeout: int = 30000,  # 30 seconds
        execution_timeout: float = EXECUTION_TIMEOUT
    ):
        """
        Initialize Browser Session

        Args:
            headless: Run browser in headless mode
            timeout: Navigation timeout in milliseconds
            execution_timeout: Seconds a generated parser may run
        """
        self.headless = headless
        self.timeout = timeout
        self.execution_timeout = execution_timeout
        self.playwright: Optional[Playwright] = None
        self.browser: Optional[Browser] = None
        self.context: Optional[BrowserContext] = None
        self.sandbox_context: Optional[BrowserContext] = None

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.close()

    async def start(self) -> None:
        logger.info(" Launching playwright browser...")
        self.playwright = await async_playwright().start()
        self.browser = await self.playwright.chromium.launch(
            headless=self.headless,
            args=[
                '--disable-blink-features=AutomationControlled',
                '--disable-dev-shm-usage',
                '--no-sandbox'
            ]
        )
        self.context = await self.browser.new_context(
            ignore_https_errors=True,
            viewport={
                'width': random.choice([1920, 1366, 1536, 1440]),
                'height': random.choice([1080, 768, 864, 900])
            },
            user_agent=random.choice(USER_AGENTS)
        )
        # Generated code never shares cookies or storage with the crawl tab
        self.sandbox_context = await self.browser.new_context()

    async def open_tab(self, url: str) -> PlaywrightTab:
        """Open a tab, load url and inject the content script"""
        if self.context is None:
            await self.start()

        page = await self.context.new_page()
        tab = PlaywrightTab(page, navigation_timeout=self.timeout)
        logger.info(f" Opening {url}")
        try:
            await page.goto(url, wait_until='load', timeout=self.timeout)
        except PlaywrightError as e:
            raise NavigationFailed(url, e.message) from e
        await tab.inject_content_script()
        return tab

    def create_sandbox(self) -> PlaywrightSandbox:
        return PlaywrightSandbox(self.sandbox_context, execution_timeout=self.execution_timeout)

    async def close(self) -> None:
        if self.browser:
            await self.browser.close()
            self.browser = None
        if self.playwright:
            await self.playwright.stop()
            self.playwright = None
        logger.info(" Browser closed")
