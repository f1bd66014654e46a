"""Tests for the catalog service and the filter-options parser."""

import asyncio
import json
from datetime import date
from decimal import Decimal

import pytest

from phonecatalog.database import Database
from phonecatalog.errors import NotFoundError
from phonecatalog.filters import FilterCriteria, SortSpec
from phonecatalog.service import CatalogService, jsonable_row, parse_filter_options

from conftest import TOTAL_PHONES


def run_service(url, call):
    """Run ``call(service)`` against a fresh pool and close it afterwards."""

    async def go():
        db = Database(url)
        try:
            return await call(CatalogService(db))
        finally:
            await db.close()

    return asyncio.run(go())


class TestParseFilterOptions:
    def test_json_strings(self):
        rows = [
            {"type": "brands", "options": json.dumps([
                {"brand_id": 2, "brand_name": "Samsung"},
                {"brand_id": 1, "brand_name": "Apple"},
            ])},
            {"type": "storageOptions", "options": "[256, 64, 128]"},
            {"type": "priceRange", "options": '{"min": 99.5, "max": 1999}'},
        ]
        options = parse_filter_options(rows)
        assert [b["brand_name"] for b in options.brands] == ["Apple", "Samsung"]
        assert options.storage_options == [64, 128, 256]
        assert options.price_range.min == 99.5
        assert options.price_range.max == 1999
        assert options.chipsets == []

    def test_already_decoded_values(self):
        rows = [
            {"type": "chipsets", "options": [{"chipset_id": 1, "chipset_name": "A16 Bionic"}]},
            {"type": "priceRange", "options": {"min": 100, "max": 200}},
        ]
        options = parse_filter_options(rows)
        assert options.chipsets == [{"chipset_id": 1, "chipset_name": "A16 Bionic"}]
        assert options.price_range.max == 200

    def test_malformed_group_falls_back_without_affecting_others(self):
        rows = [
            {"type": "brands", "options": "{not json"},
            {"type": "displayTypes", "options": '"AMOLED"'},
            {"type": "storageOptions", "options": "[128]"},
        ]
        options = parse_filter_options(rows)
        assert options.brands == []
        assert options.display_types == []
        assert options.storage_options == [128]

    def test_null_groups_use_defaults(self):
        options = parse_filter_options([{"type": "brands", "options": None}])
        assert options.brands == []
        assert options.price_range.min == 0
        assert options.price_range.max == 0


class TestJsonableRow:
    def test_converts_driver_types(self):
        row = jsonable_row({"price": Decimal("499.99"), "released": date(2023, 9, 22), "model": "X"})
        assert row == {"price": 499.99, "released": "2023-09-22", "model": "X"}


class TestCatalogService:
    def test_list_devices(self, catalog_url):
        result = run_service(catalog_url, lambda s: s.list_devices(1, 5))
        assert [d["phone_id"] for d in result.data.devices] == [1, 2, 3, 4, 5]
        assert result.data.pagination.total == TOTAL_PHONES
        assert result.data.pagination.total_pages == 3
        assert result.sql_query.startswith("SELECT")

    def test_search_samsung_with_ram(self, catalog_url):
        criteria = FilterCriteria.model_validate({"brand": "Samsung", "ramGb": 8})
        result = run_service(
            catalog_url,
            lambda s: s.search(criteria, SortSpec(sort_by="ps.ram_gb", sort_order="desc"), 1, 5),
        )
        phones = result.data.phones
        assert result.data.pagination.total == 7
        assert len(phones) == 5
        assert phones[0]["ram_gb"] == 16
        assert all(p["brand_name"] == "Samsung" and p["ram_gb"] >= 8 for p in phones)
        assert result.data.sorting.sort_by == "ps.ram_gb"
        assert result.data.sorting.sort_order == "desc"

    def test_no_fan_out_from_pricing_variants(self, catalog_url):
        # Galaxy S20 has two pricing rows; it must be listed once at its lowest price
        criteria = FilterCriteria.model_validate({"brand": "Samsung"})
        result = run_service(catalog_url, lambda s: s.search(criteria, SortSpec(), 1, 100))
        ids = [p["phone_id"] for p in result.data.phones]
        assert len(ids) == len(set(ids)) == 9
        assert result.data.phones[0]["price_unofficial"] == 280

    def test_price_range_matches_any_variant(self, empty_db_url):
        # Cheapest variant is below the range, the other one is inside it
        criteria = FilterCriteria.model_validate({"priceRange": {"min": 1000, "max": 2000}})

        async def go():
            db = Database(empty_db_url)
            try:
                await db.create_tables()
                await db.execute("INSERT INTO brands (brand_name) VALUES (?)", ["Google"])
                await db.execute(
                    "INSERT INTO phones (brand_id, model, device_type, status) VALUES (1, ?, ?, ?)",
                    ["Pixel 8 Pro", "Smartphone", "Available"],
                )
                for price in (800, 1500):
                    await db.execute(
                        "INSERT INTO phone_pricing (phone_id, price_unofficial) VALUES (1, ?)", [price]
                    )
                return await CatalogService(db).search(criteria, SortSpec(), 1, 20)
            finally:
                await db.close()

        result = asyncio.run(go())
        assert result.data.pagination.total == 1
        assert [p["model"] for p in result.data.phones] == ["Pixel 8 Pro"]
        # Listed once, at its lowest price
        assert result.data.phones[0]["price_unofficial"] == 800

    def test_get_phone(self, catalog_url):
        result = run_service(catalog_url, lambda s: s.get_phone(1))
        phone = result.data.phone
        assert phone["model"] == "Galaxy S20"
        assert phone["brand_name"] == "Samsung"
        assert sorted(phone["colors"]) == ["Green", "Phantom Black"]
        assert len(phone["pricing_variants"]) == 2

    def test_get_phone_without_pricing(self, catalog_url):
        phone = run_service(catalog_url, lambda s: s.get_phone(11)).data.phone
        assert phone["model"] == "iPhone 15"
        assert phone["pricing_variants"] == []
        assert phone["colors"] == []

    def test_get_missing_phone(self, catalog_url):
        with pytest.raises(NotFoundError) as exc_info:
            run_service(catalog_url, lambda s: s.get_phone(999999))
        assert exc_info.value.message == "Phone with ID 999999 not found"

    def test_filter_options_only_referenced(self, catalog_url):
        options = run_service(catalog_url, lambda s: s.get_filter_options()).data
        assert sorted(c["chipset_name"] for c in options.chipsets) == [
            "A16 Bionic", "Dimensity 9200", "Snapdragon 8 Gen 2",
        ]
        assert [b["brand_name"] for b in options.brands] == ["Apple", "Samsung", "Xiaomi"]
        assert len(options.display_types) == 3
        assert options.storage_options == [128, 256, 512]
        assert options.price_range.min == 280
        assert options.price_range.max == 1600
