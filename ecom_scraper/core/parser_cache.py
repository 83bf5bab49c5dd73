"""
Parser Cache
Stores generated extraction code per listing URL and finds it again for
sub-pages and paginated variants of that URL
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

import diskcache

from .models import GeneratedParser
from .url_utils import normalize_url_key, is_path_prefix, same_origin, urls_prefix_match

logger = logging.getLogger(__name__)

KEY_PREFIX = 'parser:'


def cache_key(url: str) -> str:
    return f"{KEY_PREFIX}{normalize_url_key(url)}"


class ParserCache:
    """
    URL-keyed store of generated parsers

    Lookup is exact first, then by segment-aligned path prefix, so one parser
    generated for /shop/shoes also serves /shop/shoes/running?page=3.
    """

    def __init__(
        self,
        cache_dir: str = "./cache",
        ttl: Optional[int] = None,
        store: Optional[diskcache.Cache] = None
    ):
        """
        Initialize Parser Cache

        Args:
            cache_dir: Directory for cache storage
            ttl: Optional time to live in seconds (None = keep forever)
            store: Pre-built diskcache.Cache to use instead of opening cache_dir
        """
        self.cache_dir = Path(cache_dir)
        self.ttl = ttl

        if store is not None:
            self.cache = store
        else:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            self.cache = diskcache.Cache(str(self.cache_dir))
        logger.info(f" Parser cache initialized: {self.cache_dir}")

    def put(self, url: str, code: str, title: str = '') -> GeneratedParser:
        """
        Store code for a URL, superseding overlapping entries.

        Entries whose stored URL prefixes the new URL, or is prefixed by it,
        are removed first so that a stale parser for an overlapping section
        can never be matched ahead of the fresh one.

        Args:
            url: Page the code was generated from
            code: Generated extraction code
            title: Page title

        Returns:
            The stored GeneratedParser
        """
        for key, entry in list(self._iter_entries()):
            if urls_prefix_match(entry.source_url, url):
                self.cache.delete(key)
                logger.info(f" Superseded cached parser for {entry.source_url}")

        parser = GeneratedParser(code=code, source_url=url, title=title)
        self.cache.set(cache_key(url), parser.to_dict(), expire=self.ttl)
        logger.info(f" Cached parser: {normalize_url_key(url)}")
        return parser

    def get_exact(self, url: str) -> Optional[str]:
        """Code stored under this exact normalized URL, or None"""
        data = self.cache.get(cache_key(url))
        if data:
            logger.info(f" Cache hit (exact): {normalize_url_key(url)}")
            return data['code']
        return None

    def get_by_prefix(self, url: str) -> Optional[str]:
        """
        Most specific cached parser whose URL path prefixes this URL's path.

        Only entries with the same scheme and hostname are considered.
        Candidates are ordered by stored path length, longest first.
        """
        path = urlsplit(url).path
        candidates = [
            entry for _, entry in self._iter_entries()
            if same_origin(entry.source_url, url)
            and is_path_prefix(urlsplit(entry.source_url).path, path)
        ]

        if not candidates:
            logger.info(f" Cache miss: {normalize_url_key(url)}")
            return None

        candidates.sort(key=lambda entry: len(urlsplit(entry.source_url).path.rstrip('/')), reverse=True)
        best = candidates[0]
        logger.info(f" Cache hit (prefix {best.source_url}): {normalize_url_key(url)}")
        return best.code

    def load(self, url: str) -> Optional[str]:
        """Exact match, then prefix match, then None"""
        return self.get_exact(url) or self.get_by_prefix(url)

    def get_entry(self, url: str) -> Optional[GeneratedParser]:
        data = self.cache.get(cache_key(url))
        return GeneratedParser.from_dict(data) if data else None

    def delete(self, url: str) -> bool:
        deleted = self.cache.delete(cache_key(url))
        if deleted:
            logger.info(f" Deleted cached parser: {normalize_url_key(url)}")
        return deleted

    def list_entries(self) -> List[GeneratedParser]:
        return [entry for _, entry in self._iter_entries()]

    def clear(self) -> int:
        """Remove every cached parser; returns the number removed"""
        keys = [key for key, _ in self._iter_entries()]
        for key in keys:
            self.cache.delete(key)
        logger.info(f" Cleared {len(keys)} cached parsers")
        return len(keys)

    def get_stats(self) -> Dict[str, Any]:
        return {
            'entries': len(self.list_entries()),
            'volume': self.cache.volume(),
            'directory': str(self.cache_dir),
            'ttl': self.ttl
        }

    def export_cache(self, export_path: str) -> int:
        """
        Export all parsers to a JSON file

        Returns:
            Number of exported entries
        """
        export_data = {
            normalize_url_key(entry.source_url): entry.to_dict()
            for entry in self.list_entries()
        }
        with open(export_path, 'w') as f:
            json.dump(export_data, f, indent=2)

        logger.info(f" Exported {len(export_data)} cache entries to {export_path}")
        return len(export_data)

    def import_cache(self, import_path: str) -> int:
        """
        Import parsers from a JSON file written by export_cache

        Entries go through put(), so overlapping entries supersede each other
        in file order.
        """
        with open(import_path, 'r') as f:
            import_data = json.load(f)

        for data in import_data.values():
            entry = GeneratedParser.from_dict(data)
            self.put(entry.source_url, entry.code, entry.title)

        logger.info(f" Imported {len(import_data)} cache entries from {import_path}")
        return len(import_data)

    def _iter_entries(self):
        for key in list(self.cache.iterkeys()):
            if not isinstance(key, str) or not key.startswith(KEY_PREFIX):
                continue
            data = self.cache.get(key)
            if data:
                yield key, GeneratedParser.from_dict(data)

    def close(self) -> None:
        self.cache.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
