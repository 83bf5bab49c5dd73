"""
Pagination Example
Scrape every ?page=N page of a listing with one generated parser
"""

import asyncio
import os

from ecom_scraper import EcomScraper
from ecom_scraper.core import CrawlConfig

API_KEY = os.getenv('OPENROUTER_API_KEY')

URL = 'https://www.example-shop.com/shoes'


async def main():
    config = CrawlConfig(
        pagination_param='page',  # or 'pagina'
        max_pages=50
    )

    async with EcomScraper(api_key=API_KEY, crawl_config=config, output_format='csv') as scraper:
        result = await scraper.scrape_all_pages(URL)

    print(f"\n✅ {result.summary()}")
    print(f"   Stop reason: {result.stop_reason}")
    for error in result.errors:
        print(f"   ⚠️ {error}")


if __name__ == '__main__':
    asyncio.run(main())
