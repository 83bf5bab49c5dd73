"""
Command Line Interface for Ecom Scraper
"""

import argparse
import asyncio
import json
import logging
import signal
import sys

from .core.config import CrawlConfig, DEFAULT_MAX_PAGES, PAGINATION_PARAMS
from .core.errors import ScraperError
from .core.scraper import EcomScraper


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description='Ecom Scraper - AI-generated product parsers for e-commerce listings'
    )

    # AI Configuration
    parser.add_argument(
        '--api-key',
        type=str,
        help='API key for AI provider (or set via environment variable)'
    )
    parser.add_argument(
        '--model',
        type=str,
        help='litellm model string (default: auto-detected from the API key)'
    )

    # Storage
    parser.add_argument(
        '--cache-dir',
        type=str,
        default='./cache',
        help='Parser cache directory (default: ./cache)'
    )
    parser.add_argument(
        '--output-dir',
        type=str,
        default='./output',
        help='Output directory for products and generated code (default: ./output)'
    )
    parser.add_argument(
        '--format',
        type=str,
        choices=['json', 'csv'],
        default='json',
        help='Product file format (default: json)'
    )

    # Other
    parser.add_argument(
        '--headful',
        action='store_true',
        help='Show the browser window'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )

    commands = parser.add_subparsers(dest='command', required=True)

    generate = commands.add_parser('generate', help='Generate and save a parser for a listing page')
    generate.add_argument('--url', type=str, required=True, help='Listing URL')
    generate.add_argument('--title', type=str, help='Output folder name (default: page title)')

    obtain = commands.add_parser('obtain', help='Extract products from one page with the cached parser')
    obtain.add_argument('--url', type=str, required=True, help='Listing URL')
    obtain.add_argument('--title', type=str, help='Output folder name (default: page title)')

    crawl = commands.add_parser('crawl', help='Extract products from every page of a listing')
    crawl.add_argument('--url', type=str, required=True, help='Listing URL')
    crawl.add_argument('--title', type=str, help='Output folder name (default: page title)')
    crawl.add_argument(
        '--pagination-param',
        type=str,
        choices=list(PAGINATION_PARAMS),
        default='page',
        help='Query parameter carrying the page number (default: page)'
    )
    crawl.add_argument(
        '--max-pages',
        type=int,
        default=DEFAULT_MAX_PAGES,
        help=f'Highest page number to visit (default: {DEFAULT_MAX_PAGES})'
    )
    crawl.add_argument(
        '--no-generate',
        action='store_true',
        help='Fail instead of generating a parser when none is cached'
    )

    cache = commands.add_parser('cache', help='Manage cached parsers')
    cache.add_argument('action', choices=['list', 'stats', 'clear', 'export', 'import'])
    cache.add_argument('--file', type=str, help='JSON file for export/import')

    return parser


def main():
    parser = build_parser()
    args = parser.parse_args()

    # Setup logging
    log_level = logging.DEBUG if args.verbose else logging.INFO

    if args.command == 'cache' and args.action in ('export', 'import') and not args.file:
        parser.error(f'cache {args.action} requires --file')

    crawl_config = None
    if args.command == 'crawl':
        try:
            crawl_config = CrawlConfig(pagination_param=args.pagination_param, max_pages=args.max_pages)
        except ValueError as e:
            parser.error(str(e))

    # Initialize scraper
    try:
        scraper = EcomScraper(
            api_key=args.api_key,
            model_name=args.model,
            cache_dir=args.cache_dir,
            output_dir=args.output_dir,
            headless=not args.headful,
            crawl_config=crawl_config,
            output_format=args.format,
            log_level=log_level
        )
    except Exception as e:
        print(f"❌ Failed to initialize scraper: {e}")
        sys.exit(1)

    try:
        exit_code = asyncio.run(run_command(scraper, args))
    except KeyboardInterrupt:
        print("\n⚠️ Interrupted by user")
        sys.exit(1)

    sys.exit(exit_code)


async def run_command(scraper: EcomScraper, args) -> int:
    """Run one subcommand; returns the process exit code"""
    try:
        if args.command == 'cache':
            return run_cache_command(scraper, args)

        if args.command == 'generate':
            result = await scraper.generate_parser(args.url, title=args.title)
            status = "validated" if result.validated else "NOT validated (saved anyway)"
            print(f"\n✅ Parser generated!")
            print(f"   Iterations: {result.iterations}")
            print(f"   Status: {status}")
            print(f"   Products on this page: {len(result.products or [])}")
            return 0

        if args.command == 'obtain':
            products = await scraper.obtain_products(args.url, title=args.title)
            print(f"\n✅ Extraction complete!")
            print(f"   Products: {len(products)}")
            return 0

        if args.command == 'crawl':
            return await run_crawl(scraper, args)

    except ScraperError as e:
        print(f"\n❌ Error: {e}")
        return 1
    finally:
        await scraper.close()

    return 1


def interrupt_handler(scraper: EcomScraper, task: asyncio.Task):
    """SIGINT callback: stop after the current page, or abort if no tab is open yet"""
    def on_interrupt():
        if not scraper.cancel():
            task.cancel()
    return on_interrupt


async def run_crawl(scraper: EcomScraper, args) -> int:
    # Ctrl+C stops after the current page; collected products are still saved
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, interrupt_handler(scraper, asyncio.current_task()))
    except NotImplementedError:
        pass

    try:
        result = await scraper.scrape_all_pages(
            args.url,
            title=args.title,
            generate_if_missing=not args.no_generate
        )
    except asyncio.CancelledError:
        print("\n⚠️ Interrupted before the crawl started")
        return 1
    finally:
        try:
            loop.remove_signal_handler(signal.SIGINT)
        except NotImplementedError:
            pass

    icon = "✅" if result.completed_naturally else "⚠️"
    print(f"\n{icon} {result.summary()}")
    if result.errors:
        print(f"   Page errors: {len(result.errors)}")
    return 0 if result.completed_naturally else 1


def run_cache_command(scraper: EcomScraper, args) -> int:
    if args.action == 'list':
        entries = scraper.list_parsers()
        for entry in entries:
            print(f"   {entry['source_url']}  ({entry['title'] or 'untitled'})")
        print(f"\n📦 {len(entries)} cached parsers")
    elif args.action == 'stats':
        print(json.dumps(scraper.get_cache_stats(), indent=2))
    elif args.action == 'clear':
        removed = scraper.clear_cache()
        print(f"🗑️ Removed {removed} cached parsers")
    elif args.action == 'export':
        count = scraper.export_cache(args.file)
        print(f"💾 Exported {count} parsers to {args.file}")
    elif args.action == 'import':
        count = scraper.import_cache(args.file)
        print(f"📥 Imported {count} parsers from {args.file}")
    return 0


if __name__ == '__main__':
    main()
