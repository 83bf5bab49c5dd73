"""
Error taxonomy for parser generation and pagination crawling
"""

from typing import Optional


class ScraperError(Exception):
    """Base class for all ecom-scraper errors"""


class MalformedResponse(ScraperError):
    """Model output could not be turned into a non-empty code body"""


class ExecutionError(ScraperError):
    """Generated code threw, lacked extractProducts, returned a non-array or timed out"""


class ValidationFailed(ScraperError):
    """Generated code ran but produced a structurally useless result"""

    def __init__(self, reason: str):
        self.reason = reason
        super().__init__(reason)


class LLMTransportError(ScraperError):
    """The language model request failed or returned no content"""


class NavigationFailed(ScraperError):
    """Tab could not be navigated to the target URL"""

    def __init__(self, url: str, reason: str):
        self.url = url
        self.reason = reason
        super().__init__(f"Failed to navigate to {url}: {reason}")


class NavigationTimeout(NavigationFailed):
    """Tab did not report a completed load of the target URL in time"""

    def __init__(self, url: str, timeout: float):
        self.timeout = timeout
        super().__init__(url, f"timeout waiting for page to load ({timeout:.0f}s)")


class ContentUnavailable(ScraperError):
    """Page content could not be extracted after all retries"""

    def __init__(self, url: str, attempts: int, reason: Optional[str] = None):
        self.url = url
        self.attempts = attempts
        self.reason = reason
        message = f"Failed to extract page content from {url} after {attempts} attempts"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ParserNotFound(ScraperError):
    """No cached parser matches the URL and there is no sample to generate one from"""

    def __init__(self, url: str):
        self.url = url
        super().__init__(
            f"No saved parser code found for {url}. "
            "Run 'generate' on this page first to create one."
        )
