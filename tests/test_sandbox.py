"""Tests for sandbox result handling and the Playwright runner."""

import pytest
import pytest_asyncio

from ecom_scraper.core.errors import ExecutionError
from ecom_scraper.core.models import PRODUCT_FIELDS, normalize_product
from fakes import FakeSandbox


@pytest.mark.asyncio
async def test_non_array_result_is_execution_error():
    sandbox = FakeSandbox(lambda code, text: {"name": "x"})

    with pytest.raises(ExecutionError):
        await sandbox.execute("code", "text")


@pytest.mark.asyncio
async def test_products_are_normalized():
    sandbox = FakeSandbox(lambda code, text: [{"name": "x", "images": "a.jpg", "extra": 1}])

    products = await sandbox.execute("code", "text")

    assert set(PRODUCT_FIELDS) <= set(products[0])
    assert products[0]["images"] == ["a.jpg"]
    assert products[0]["attributes"] == {}
    assert products[0]["extra"] == 1


def test_normalize_product_keeps_values():
    product = normalize_product({"name": "x", "priceNormalized": 0, "attributes": {"size": "M"}})

    assert product["priceNormalized"] == 0
    assert product["attributes"] == {"size": "M"}
    assert product["currency"] is None


@pytest_asyncio.fixture
async def browser_context():
    async_api = pytest.importorskip("playwright.async_api")
    try:
        playwright = await async_api.async_playwright().start()
        browser = await playwright.chromium.launch()
    except Exception as e:
        pytest.skip(f"Chromium not available: {e}")
    context = await browser.new_context()
    yield context
    await browser.close()
    await playwright.stop()


@pytest.mark.asyncio
async def test_playwright_sandbox_runs_generated_code(browser_context):
    from ecom_scraper.core.sandbox import PlaywrightSandbox

    sandbox = PlaywrightSandbox(browser_context, execution_timeout=10)
    code = """
    function extractProducts(text) {
        return text.split('\\n').filter(Boolean).map(line => ({name: line}));
    }
    """

    products = await sandbox.execute(code, "Runner X\nTrail Y")
    await sandbox.close()

    assert [p["name"] for p in products] == ["Runner X", "Trail Y"]


@pytest.mark.asyncio
async def test_playwright_sandbox_errors(browser_context):
    from ecom_scraper.core.sandbox import PlaywrightSandbox

    sandbox = PlaywrightSandbox(browser_context, execution_timeout=1)

    with pytest.raises(ExecutionError, match="extractProducts function not found"):
        await sandbox.execute("function other() { return []; }", "x")

    with pytest.raises(ExecutionError, match="instead of an array"):
        await sandbox.execute("function extractProducts(t) { return 'nope'; }", "x")

    with pytest.raises(ExecutionError, match="exceeded"):
        await sandbox.execute("function extractProducts(t) { while (true) {} }", "x")

    await sandbox.close()
