"""
Cache Management Example
Inspect, back up and restore generated parsers
"""

from ecom_scraper.core import ParserCache


def main():
    with ParserCache(cache_dir='./cache') as cache:
        # One parser per listing section; sub-pages match by path prefix
        print("🔎 Cached parsers:")
        for entry in cache.list_entries():
            print(f"   {entry.source_url}  ({entry.title or 'untitled'})")

        code = cache.load('https://books.toscrape.com/catalogue/category/books/travel_2/page-2.html')
        print(f"\n   Parser for travel page 2: {'found' if code else 'not cached'}")

        stats = cache.get_stats()
        print(f"\n💾 Cache Statistics:")
        print(f"   Entries: {stats['entries']}")
        print(f"   Directory: {stats['directory']}")

        # Export cache (for sharing or backup)
        print("\n📤 Exporting cache...")
        cache.export_cache('parsers_backup.json')

        print("\n🗑️  Clearing cache...")
        removed = cache.clear()
        print(f"   ✅ Removed {removed} parsers")

        print("\n📥 Importing cache...")
        restored = cache.import_cache('parsers_backup.json')
        print(f"   ✅ Restored {restored} parsers")


if __name__ == '__main__':
    main()
