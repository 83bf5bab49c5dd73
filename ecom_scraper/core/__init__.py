"""Core scraping modules"""

from .scraper import EcomScraper
from .config import CrawlConfig
from .crawler import CrawlSession, PaginationCrawler
from .parser_cache import ParserCache
from .parser_generator import ParserGenerator
from .llm_client import LLMClient
from .sandbox import Sandbox, PlaywrightSandbox
from .content_converter import ContentConverter
from .results_writer import ResultsWriter

__all__ = [
    "EcomScraper",
    "CrawlConfig",
    "CrawlSession",
    "PaginationCrawler",
    "ParserCache",
    "ParserGenerator",
    "LLMClient",
    "Sandbox",
    "PlaywrightSandbox",
    "ContentConverter",
    "ResultsWriter"
]
