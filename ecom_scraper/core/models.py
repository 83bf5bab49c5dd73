"""
Records shared by the generator, the cache and the crawler
"""

import time
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

# On-disk product shape. Keys are camelCase because the exported JSON is
# consumed as-is downstream.
PRODUCT_FIELDS = (
    'name',
    'priceRaw',
    'priceNormalized',
    'currency',
    'images',
    'availability',
    'url',
    'attributes',
)

# Fields that make a product record worth keeping
KEY_PRODUCT_FIELDS = ('name', 'priceRaw', 'priceNormalized')


def normalize_product(raw: Dict[str, Any]) -> Dict[str, Any]:
    """
    Fill in every product key so consumers can rely on key presence.

    Missing scalars become None, missing/None containers become empty.
    Extra keys returned by the generated routine are kept.
    """
    product = dict(raw)
    for key in PRODUCT_FIELDS:
        product.setdefault(key, None)

    if product['images'] is None:
        product['images'] = []
    elif isinstance(product['images'], str):
        product['images'] = [product['images']]

    if product['attributes'] is None:
        product['attributes'] = {}

    return product


@dataclass
class GeneratedParser:
    """Cached extraction routine for a listing URL"""
    code: str
    source_url: str
    title: str
    generated_at: float = field(default_factory=time.time)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'GeneratedParser':
        return cls(
            code=data['code'],
            source_url=data['source_url'],
            title=data.get('title', ''),
            generated_at=data.get('generated_at', time.time()),
        )


@dataclass
class GenerationAttempt:
    """Latest reflection-loop attempt; only this one is kept between iterations"""
    iteration: int
    prompt_variant: str  # "initial" | "reflection"
    code: Optional[str] = None
    error: Optional[str] = None


@dataclass
class GenerationResult:
    code: str
    explanation: str
    iterations: int
    validated: bool
    products: Optional[List[Dict[str, Any]]] = None
    model_used: Optional[str] = None


@dataclass
class PageContent:
    """Raw page content as returned by the content script"""
    content: str
    title: str = ''
    url: str = ''
    metadata: Dict[str, Any] = field(default_factory=dict)


@dataclass
class TabEvent:
    """Load-state change reported by the browser tab"""
    status: str  # "loading" | "complete"
    url: str


@dataclass
class CrawlState:
    """Per-crawl mutable state. Never persisted."""
    page_number: int = 1
    accumulated: List[Dict[str, Any]] = field(default_factory=list)
    consecutive_failures: int = 0
    cancelled: bool = False


@dataclass
class CrawlResult:
    products: List[Dict[str, Any]]
    pages_processed: int
    completed_naturally: bool
    stop_reason: str  # "exhausted" | "max_pages" | "cancelled"
    consecutive_failures: int = 0
    errors: List[str] = field(default_factory=list)

    def summary(self) -> str:
        prefix = "Completed" if self.completed_naturally else "Stopped"
        return f"{prefix}: {len(self.products)} products from {self.pages_processed} pages"
