"""
Results Writer - saves extracted products and generated parser code

Layout under the output directory:
    code-generated/{title}/extracted-products.json
    code-generated/{title}/extracted-products-all-pages.json
    generatecode/{title}/generated-product-parser.js
"""

import csv
import io
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

from .url_utils import sanitize_title

logger = logging.getLogger(__name__)

PRODUCTS_DIR = 'code-generated'
CODE_DIR = 'generatecode'
PRODUCTS_FILE = 'extracted-products'
ALL_PAGES_FILE = 'extracted-products-all-pages'
CODE_FILE = 'generated-product-parser.js'


def products_to_csv(products: List[Dict[str, Any]]) -> str:
    """
    Convert product dicts to CSV.

    The header is the union of keys in first-seen order. Lists and dicts are
    JSON-encoded, None becomes an empty cell.
    """
    if not products:
        return ''

    fieldnames: List[str] = []
    for product in products:
        for key in product:
            if key not in fieldnames:
                fieldnames.append(key)

    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=fieldnames, lineterminator='\n')
    writer.writeheader()
    for product in products:
        row = {}
        for key in fieldnames:
            value = product.get(key)
            if isinstance(value, (list, dict)):
                value = json.dumps(value, ensure_ascii=False)
            elif value is None:
                value = ''
            row[key] = value
        writer.writerow(row)

    return buffer.getvalue()


class ResultsWriter:
    """Writes files under an output directory"""

    def __init__(self, output_dir: Union[str, Path] = './output'):
        self.output_dir = Path(output_dir)

    def persist(self, content: str, file_name: str, mime_type: str = 'application/json') -> Path:
        """
        Write content to output_dir/file_name, creating parent directories.

        Args:
            content: Text to write
            file_name: Relative path under the output directory
            mime_type: Content type, used for logging only

        Returns:
            Path of the written file
        """
        path = self.output_dir / file_name
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding='utf-8')
        logger.info(f" Saved {path} ({mime_type}, {len(content):,} chars)")
        return path

    def write_products(
        self,
        products: List[Dict[str, Any]],
        title: str,
        all_pages: bool = False,
        fmt: str = 'json'
    ) -> Path:
        """Save a product list as JSON (default) or CSV"""
        base = ALL_PAGES_FILE if all_pages else PRODUCTS_FILE
        folder = f"{PRODUCTS_DIR}/{sanitize_title(title)}"

        if fmt == 'csv':
            return self.persist(products_to_csv(products), f"{folder}/{base}.csv", 'text/csv')
        if fmt != 'json':
            raise ValueError(f"Unsupported output format: {fmt}")

        content = json.dumps(products, indent=2, ensure_ascii=False)
        return self.persist(content, f"{folder}/{base}.json", 'application/json')

    def write_parser_code(self, code: str, title: str) -> Path:
        return self.persist(
            code,
            f"{CODE_DIR}/{sanitize_title(title)}/{CODE_FILE}",
            'application/javascript'
        )
