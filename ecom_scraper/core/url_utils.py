"""
URL helpers for the parser cache and the pagination crawler
"""

import re
from typing import Iterable, List, Tuple
from urllib.parse import urlsplit, urlunsplit, parse_qsl, urlencode

from .config import PAGINATION_PARAMS

# Characters that cannot appear in a cache key / file name
UNSAFE_KEY_CHARS = re.compile(r'[\\:*?"<>|\s]')
UNSAFE_TITLE_CHARS = re.compile(r'[\\/:*?"<>|]')
LEADING_WWW = re.compile(r'^(?:www\.)+')
QUERY_OR_FRAGMENT = re.compile(r'[?#]')


def _split(url: str) -> Tuple[str, str]:
    """(host, path) of a URL or of an already normalized key"""
    if '://' in url:
        try:
            parts = urlsplit(url)
            return parts.netloc, parts.path
        except ValueError:
            url = url.split('://', 1)[1]
    # Scheme-less input is a key: host up to the first slash, no query
    url = QUERY_OR_FRAGMENT.split(url, 1)[0]
    host, slash, path = url.partition('/')
    return host, slash + path


def normalize_url_key(url: str) -> str:
    """
    Build the cache key for a URL: host (lowercase, no leading www.) + path.

    Query and fragment are dropped, a trailing slash is removed and
    filesystem-unsafe characters are replaced with '_'. Applying it to its own
    output returns the same key.

    Examples:
        'https://www.Shop.com/Shoes/?page=2' -> 'shop.com/Shoes'
        'http://shop.com:8080/a' -> 'shop.com_8080/a'
    """
    host, path = _split(url.strip())
    host = LEADING_WWW.sub('', host.lower())
    path = path.rstrip('/')
    return UNSAFE_KEY_CHARS.sub('_', host + path)


def normalize_for_comparison(url: str) -> str:
    """Scheme + host + path + sorted query, without trailing slash"""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url.rstrip('/')
    if not parts.scheme or not parts.netloc:
        return url.rstrip('/')

    query = sorted(parse_qsl(parts.query, keep_blank_values=True), key=lambda kv: kv[0])
    normalized = urlunsplit((
        parts.scheme.lower(),
        parts.netloc.lower(),
        parts.path.rstrip('/'),
        urlencode(query),
        ''
    ))
    return normalized.rstrip('/')


def path_segments(path: str) -> List[str]:
    return [segment for segment in path.split('/') if segment]


def is_path_prefix(prefix: str, path: str) -> bool:
    """Segment-aligned prefix test: '/shop' prefixes '/shop/shoes' but not '/shopping'"""
    prefix_segments = path_segments(prefix)
    segments = path_segments(path)
    return segments[:len(prefix_segments)] == prefix_segments


def same_origin(url_a: str, url_b: str) -> bool:
    """Same scheme and hostname"""
    a, b = urlsplit(url_a), urlsplit(url_b)
    return (
        a.scheme.lower() == b.scheme.lower()
        and (a.hostname or '') == (b.hostname or '')
    )


def urls_prefix_match(url_a: str, url_b: str) -> bool:
    """True when both URLs share an origin and one path prefixes the other"""
    if not same_origin(url_a, url_b):
        return False
    path_a, path_b = urlsplit(url_a).path, urlsplit(url_b).path
    return is_path_prefix(path_a, path_b) or is_path_prefix(path_b, path_a)


def strip_pagination(url: str, params: Iterable[str] = PAGINATION_PARAMS) -> str:
    """Remove any pagination parameters from the query string"""
    parts = urlsplit(url)
    params = set(params)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in params]
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


def build_pagination_url(base_url: str, page_number: int, param: str = 'page') -> str:
    """
    Set the pagination parameter to page_number.

    Examples:
        build_pagination_url('https://x/list', 3) -> 'https://x/list?page=3'
        build_pagination_url('https://x/list?sort=asc&page=1', 2, 'page')
            -> 'https://x/list?sort=asc&page=2'
    """
    parts = urlsplit(base_url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != param]
    query.append((param, str(page_number)))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


def sanitize_title(title: str) -> str:
    """Strip characters that are invalid in file names; 'untitled' if nothing is left"""
    cleaned = UNSAFE_TITLE_CHARS.sub('', title or '').strip()
    return cleaned or 'untitled'
