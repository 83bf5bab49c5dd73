"""
Configuration defaults for parser generation and pagination crawling
"""

from dataclasses import dataclass

# Reflection loop
MAX_ITERATIONS = 3
MAX_SAMPLE_CHARS = 60000  # prompt budget for the page sample

# Crawl loop
MAX_CONSECUTIVE_FAILURES = 2
DEFAULT_MAX_PAGES = 500
PAGINATION_PARAMS = ('page', 'pagina')

# Readiness / extraction budgets
NAVIGATION_TIMEOUT = 30.0      # seconds
SETTLE_DELAY = 3.0             # after load completes
PROBE_ATTEMPTS = 5
INJECT_WAIT = 1.5              # after re-injecting the content script
EXTRACT_ATTEMPTS = 3
EXTRACT_RETRY_DELAY = 1.0
PAGE_DELAY = 1.5               # between pages
EXECUTION_TIMEOUT = 30.0       # generated code run time


@dataclass
class CrawlConfig:
    """
    Settings for one pagination crawl

    Args:
        pagination_param: Query parameter carrying the page number ('page' or 'pagina')
        max_pages: Highest page number to visit
        navigation_timeout: Seconds to wait for a page load to complete
        settle_delay: Seconds to wait after load before probing the page
        probe_attempts: Liveness probes (with re-injection) before extracting anyway
        inject_wait: Seconds to wait after re-injecting the content script
        extract_attempts: Content extraction attempts per page
        extract_retry_delay: Seconds between extraction attempts
        page_delay: Politeness delay between pages
    """
    pagination_param: str = 'page'
    max_pages: int = DEFAULT_MAX_PAGES
    navigation_timeout: float = NAVIGATION_TIMEOUT
    settle_delay: float = SETTLE_DELAY
    probe_attempts: int = PROBE_ATTEMPTS
    inject_wait: float = INJECT_WAIT
    extract_attempts: int = EXTRACT_ATTEMPTS
    extract_retry_delay: float = EXTRACT_RETRY_DELAY
    page_delay: float = PAGE_DELAY

    def __post_init__(self):
        if self.pagination_param not in PAGINATION_PARAMS:
            raise ValueError(
                f"Invalid pagination_param: {self.pagination_param}. "
                f"Use one of {', '.join(PAGINATION_PARAMS)}"
            )
        if self.max_pages < 1:
            raise ValueError(f"max_pages must be >= 1, got {self.max_pages}")
