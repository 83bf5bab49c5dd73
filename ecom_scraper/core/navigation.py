"""
Wait for a tab to finish loading a specific URL

Load-complete events can fire more than once per navigation (redirects,
same-document updates, late events from the previous page). The waiter
resolves on the first matching 'complete' event and ignores everything after.
"""

import asyncio
import logging

from .browser_tab import BrowserTab
from .config import NAVIGATION_TIMEOUT
from .errors import NavigationTimeout
from .models import TabEvent
from .url_utils import normalize_for_comparison

logger = logging.getLogger(__name__)


async def navigate_and_wait(
    tab: BrowserTab,
    url: str,
    timeout: float = NAVIGATION_TIMEOUT
) -> None:
    """
    Navigate tab to url and wait until it reports a completed load of that URL.

    Args:
        tab: Tab to navigate
        url: Target URL
        timeout: Seconds to wait for the load to complete

    Raises:
        NavigationTimeout: if no matching 'complete' event arrives in time
        NavigationFailed: if the tab refuses the navigation
    """
    loop = asyncio.get_running_loop()
    loaded = loop.create_future()
    target = normalize_for_comparison(url)

    def on_event(event: TabEvent) -> None:
        if loaded.done():
            return
        if event.status != 'complete':
            return
        if normalize_for_comparison(event.url) != target:
            logger.debug(f" Ignoring load of {event.url} while waiting for {url}")
            return
        loaded.set_result(event.url)

    tab.add_listener(on_event)
    try:
        await tab.navigate(url)
        await asyncio.wait_for(loaded, timeout=timeout)
    except asyncio.TimeoutError:
        raise NavigationTimeout(url, timeout)
    finally:
        tab.remove_listener(on_event)
