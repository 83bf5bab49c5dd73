"""
Ecom Scraper
AI-generated product parsers for e-commerce listings, cached per URL and run
across every page of a paginated listing
"""

__version__ = "1.0.0"

from .core.scraper import EcomScraper

__all__ = ["EcomScraper"]
