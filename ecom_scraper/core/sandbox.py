"""
Sandboxed execution of generated extraction code

Generated code is untrusted. It only ever sees the input text and only its
return value comes back. The Playwright implementation runs it in a dedicated
about:blank page, never in the crawl tab and never in the Python process.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from playwright.async_api import BrowserContext, Page, Error as PlaywrightError

from .config import EXECUTION_TIMEOUT
from .errors import ExecutionError
from .models import normalize_product

logger = logging.getLogger(__name__)

ENTRYPOINT = 'extractProducts'

# Runs inside the sandbox page. The generated source becomes the body of a
# Function so its declarations stay local to that call.
RUNNER_JS = r"""
async ([code, text]) => {
    const run = new Function('__input', code + "\n;if (typeof extractProducts !== 'function') {\n" +
        "  throw new Error('extractProducts function not found in generated code');\n}\n" +
        "return extractProducts(__input);");
    const value = await run(text);
    return {
        isArray: Array.isArray(value),
        type: value === null ? 'null' : typeof value,
        value: Array.isArray(value) ? value : null
    };
}
"""


class Sandbox(ABC):
    """Runs generated code against a text sample and returns product records"""

    async def execute(self, code: str, input_text: str) -> List[Dict[str, Any]]:
        """
        Run extractProducts(input_text) from the generated code.

        Args:
            code: Generated JavaScript defining extractProducts
            input_text: Page text passed as the only argument

        Returns:
            The returned array with dict elements normalized to the Product shape

        Raises:
            ExecutionError: if the code throws, lacks extractProducts, returns
                a non-array or exceeds the execution timeout
        """
        result = await self._run(code, input_text)

        if not isinstance(result, list):
            raise ExecutionError(
                f"{ENTRYPOINT} returned {type(result).__name__} instead of an array"
            )

        return [normalize_product(item) if isinstance(item, dict) else item for item in result]

    @abstractmethod
    async def _run(self, code: str, input_text: str) -> Any:
        """Execute and return the raw value, raising ExecutionError on failure"""

    async def close(self) -> None:
        pass


class PlaywrightSandbox(Sandbox):
    """Executes generated JavaScript in an isolated about:blank page"""

    def __init__(
        self,
        context: BrowserContext,
        execution_timeout: float = EXECUTION_TIMEOUT
    ):
        """
        Args:
            context: Browser context to open the sandbox page in. Use a context
                separate from the crawl tab so cookies and storage are not shared.
            execution_timeout: Seconds before a run is abandoned
        """
        self.context = context
        self.execution_timeout = execution_timeout
        self._page: Optional[Page] = None

    async def _get_page(self) -> Page:
        if self._page is None or self._page.is_closed():
            self._page = await self.context.new_page()
            await self._page.goto('about:blank')
        return self._page

    async def _run(self, code: str, input_text: str) -> Any:
        page = await self._get_page()
        logger.debug(f" Executing generated code ({len(code)} chars) on {len(input_text)} chars of input")

        try:
            outcome = await asyncio.wait_for(
                page.evaluate(RUNNER_JS, [code, input_text]),
                timeout=self.execution_timeout
            )
        except asyncio.TimeoutError:
            # A runaway loop keeps the page busy; throw it away
            await self._discard_page()
            raise ExecutionError(
                f"Code execution exceeded {self.execution_timeout:.0f} seconds"
            )
        except PlaywrightError as e:
            raise ExecutionError(f"Failed to execute parser code: {e.message}") from e

        if not outcome or not outcome.get('isArray'):
            kind = outcome.get('type') if outcome else 'undefined'
            raise ExecutionError(f"{ENTRYPOINT} returned {kind} instead of an array")

        items = outcome.get('value') or []
        logger.debug(f" Generated code returned {len(items)} items")
        return items

    async def _discard_page(self) -> None:
        page, self._page = self._page, None
        if page is None:
            return
        try:
            await page.close()
        except PlaywrightError as e:
            logger.warning(f" Could not close sandbox page: {e.message}")

    async def close(self) -> None:
        await self._discard_page()
