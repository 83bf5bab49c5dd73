"""
Content Converter - turns a page snapshot into the text generated parsers read

The same conversion is used for the generation sample and for every crawled
page, so a parser written against the sample sees the same shape of text on
page 2..N. Product links and images are kept; JSON-LD blocks are appended
because listing data often lives there.
"""

import re
import json
import logging
from typing import Any, Dict, List

import html2text
from bs4 import BeautifulSoup, Comment

from .models import PageContent

logger = logging.getLogger(__name__)


class ContentConverter:
    """HTML + page metadata -> markdown"""

    # Never carry listing data
    REMOVE_TAGS = [
        'script',
        'style',
        'noscript',
        'iframe',
        'embed',
        'object',
        'svg',
        'template',
    ]

    # Class/ID fragments of elements that are noise on listing pages
    NOISE_PATTERNS = [
        'advertisement', 'ad-banner', 'google-ad',
        'cookie-consent', 'cookie-banner', 'gdpr-notice',
        'newsletter', 'email-signup',
        'social-share', 'share-button', 'social-links',
    ]

    JSON_LD_LIMIT = 20000  # chars of schema.org data appended

    def __init__(self, ignore_links: bool = False, ignore_images: bool = False):
        """
        Args:
            ignore_links: Drop hyperlinks from the markdown
            ignore_images: Drop images from the markdown
        """
        self.h = html2text.HTML2Text()
        self.h.unicode_snob = True
        self.h.ignore_links = ignore_links
        self.h.ignore_images = ignore_images
        self.h.body_width = 0  # Don't wrap lines
        self.h.ignore_emphasis = True

    def convert(self, page: PageContent) -> str:
        """
        Convert a page snapshot to markdown.

        Args:
            page: Snapshot from the content script

        Returns:
            Markdown with a title/URL header and any JSON-LD data appended
        """
        original_size = len(page.content)
        html = self.clean(page.content)

        if page.url:
            self.h.baseurl = page.url
        markdown = self.h.handle(html).strip()

        parts = []
        if page.title:
            parts.append(f"# {page.title}")
        if page.url:
            parts.append(f"URL: {page.url}")
        description = page.metadata.get('description') if page.metadata else None
        if description:
            parts.append(f"Description: {description}")
        parts.append(markdown)

        schema_data = (page.metadata or {}).get('schemaOrgData') or []
        if schema_data:
            parts.append(self._format_json_ld(schema_data))

        text = "\n\n".join(part for part in parts if part)
        logger.info(f" Converted page to text ({original_size:,} -> {len(text):,} chars)")
        return text

    def clean(self, html: str) -> str:
        """Strip tags and elements that never carry product data"""
        soup = BeautifulSoup(html, 'html.parser')

        for tag_name in self.REMOVE_TAGS:
            for tag in soup.find_all(tag_name):
                tag.decompose()

        for comment in soup.find_all(string=lambda text: isinstance(text, Comment)):
            comment.extract()

        removed = 0
        for tag in soup.find_all(True):
            if tag.decomposed:
                continue
            classes = tag.get('class') or []
            class_str = ' '.join(classes) if isinstance(classes, list) else str(classes)
            combined = (class_str + ' ' + (tag.get('id') or '')).lower()
            if any(pattern in combined for pattern in self.NOISE_PATTERNS):
                tag.decompose()
                removed += 1

        if removed:
            logger.debug(f"   Removed {removed} noise elements")

        return re.sub(r'>\s+<', '><', str(soup))

    def _format_json_ld(self, schema_data: List[Dict[str, Any]]) -> str:
        blocks = []
        for item in schema_data:
            blocks.append(json.dumps(item, ensure_ascii=False, default=str))
        joined = "\n".join(blocks)[:self.JSON_LD_LIMIT]
        return f"## Structured data (JSON-LD)\n\n```json\n{joined}\n```"
