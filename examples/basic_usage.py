"""
Basic Usage Example
Generate a parser for one listing page, then reuse it from the cache
"""

import asyncio
import os

from ecom_scraper import EcomScraper

# Set your API key (or use environment variable)
API_KEY = os.getenv('OPENROUTER_API_KEY')  # or OPENAI_API_KEY, ANTHROPIC_API_KEY, GEMINI_API_KEY

URL = 'https://books.toscrape.com/catalogue/category/books/travel_2/index.html'


async def main():
    async with EcomScraper(api_key=API_KEY, output_dir='./output') as scraper:
        # First run: the model writes extractProducts and it is self-tested on this page
        result = await scraper.generate_parser(URL)
        print(f"\n✅ Parser generated in {result.iterations} iteration(s)")
        print(f"   Validated: {result.validated}")
        print(f"   Model: {result.model_used}")

        # Later runs: no model call, the cached parser is reused
        products = await scraper.obtain_products(URL)
        print(f"\n📦 Extracted {len(products)} products")

        for i, product in enumerate(products[:5], 1):
            print(f"\nProduct {i}:")
            for field, value in product.items():
                print(f"  {field}: {value}")


if __name__ == '__main__':
    asyncio.run(main())
