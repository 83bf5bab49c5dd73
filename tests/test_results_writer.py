"""Tests for product and parser code export."""

import csv
import io
import json

import pytest

from ecom_scraper.core.results_writer import ResultsWriter, products_to_csv

PRODUCTS = [
    {"name": "Runner X", "priceRaw": "$89.99", "priceNormalized": 89.99, "images": ["a.jpg"], "attributes": {}},
    {"name": "Trail Y", "priceRaw": None, "priceNormalized": None, "images": [], "attributes": {"color": "red"}, "sku": "T-1"},
]


def test_products_json_path(tmp_path):
    writer = ResultsWriter(tmp_path)

    path = writer.write_products(PRODUCTS, 'Shoes: "Sale"')

    assert path == tmp_path / "code-generated" / "Shoes Sale" / "extracted-products.json"
    assert json.loads(path.read_text(encoding="utf-8")) == PRODUCTS


def test_all_pages_file_name(tmp_path):
    path = ResultsWriter(tmp_path).write_products(PRODUCTS, "", all_pages=True)

    assert path == tmp_path / "code-generated" / "untitled" / "extracted-products-all-pages.json"


def test_parser_code_path(tmp_path):
    path = ResultsWriter(tmp_path).write_parser_code("function extractProducts(t) {}", "Shoes")

    assert path == tmp_path / "generatecode" / "Shoes" / "generated-product-parser.js"
    assert path.read_text(encoding="utf-8") == "function extractProducts(t) {}"


def test_csv_export(tmp_path):
    path = ResultsWriter(tmp_path).write_products(PRODUCTS, "Shoes", fmt="csv")

    assert path.suffix == ".csv"
    rows = list(csv.DictReader(io.StringIO(path.read_text(encoding="utf-8"))))
    assert rows[0]["name"] == "Runner X"
    assert rows[0]["images"] == '["a.jpg"]'
    assert rows[0]["sku"] == ""
    assert rows[1]["priceRaw"] == ""
    assert json.loads(rows[1]["attributes"]) == {"color": "red"}


def test_csv_header_is_union_of_keys():
    header = products_to_csv(PRODUCTS).splitlines()[0]

    assert header.split(",") == ["name", "priceRaw", "priceNormalized", "images", "attributes", "sku"]
    assert products_to_csv([]) == ""


def test_unknown_format_rejected(tmp_path):
    with pytest.raises(ValueError):
        ResultsWriter(tmp_path).write_products(PRODUCTS, "Shoes", fmt="xml")
