"""Tests for CSV parsing helpers and the seeder."""

import asyncio
import csv
from datetime import date, datetime

import pytest

from phonecatalog.database import Database
from phonecatalog.seeder import (
    CSVSeeder,
    dedupe_rows,
    map_status,
    parse_bool,
    parse_date,
    parse_float,
    parse_int,
    parse_timestamp,
    split_colors,
)

FIELDS = [
    "brand", "model", "status", "release_date", "chipset", "architecture",
    "operating_system", "os_version", "display_type", "ram", "internal_storage",
    "battery_capacity", "screen_size", "colors", "price_official", "price_unofficial",
    "usb_type_c", "scraped_at",
]

ROWS = [
    {
        "brand": "Samsung", "model": "Galaxy A54", "status": "Available",
        "release_date": "2023-03-24", "chipset": "Exynos 1380", "architecture": "64-bit",
        "operating_system": "Android", "os_version": "13", "display_type": "Super AMOLED",
        "ram": "8GB", "internal_storage": "128GB", "battery_capacity": "5000 mAh",
        "screen_size": "6.4 inches", "colors": "Awesome Lime, Awesome Graphite, Awesome Lime",
        "price_official": "", "price_unofficial": "BDT 41,999", "usb_type_c": "Yes",
        "scraped_at": "2024-01-10T08:30:00Z",
    },
    {
        "brand": "samsung ", "model": "galaxy a54", "status": "Discontinued",
        "ram": "6GB",
    },
    {
        "brand": "Samsung", "model": "Galaxy A34", "status": "Upcoming (Exp. Release 2023)",
        "chipset": "Dimensity 1080", "operating_system": "Android", "os_version": "13",
        "display_type": "Super AMOLED", "ram": "6GB", "internal_storage": "128GB",
        "price_official": "32999", "colors": "",
    },
    {
        "brand": "", "model": "Nameless",
    },
]


class TestParsing:
    def test_parse_int(self):
        assert parse_int("5000 mAh") == 5000
        assert parse_int("8GB") == 8
        assert parse_int("") is None
        assert parse_int(None) is None

    def test_parse_float(self):
        assert parse_float("6.4 inches") == 6.4
        assert parse_float("BDT 41,999") == 41999.0
        assert parse_float("n/a") is None

    @pytest.mark.parametrize("value,expected", [
        ("Yes", True), ("available", True), ("1", True), ("TRUE", True),
        ("No", False), ("", False), (None, False),
    ])
    def test_parse_bool(self, value, expected):
        assert parse_bool(value) is expected

    def test_parse_dates(self):
        assert parse_date("2023-03-24") == date(2023, 3, 24)
        assert parse_date("24 March 2023") == date(2023, 3, 24)
        assert parse_date("soon") is None
        assert parse_timestamp("2024-01-10T08:30:00Z") == datetime(2024, 1, 10, 8, 30)

    @pytest.mark.parametrize("value,expected", [
        ("Available", "Available"),
        ("Upcoming", "Upcoming"),
        ("Exp. Release 2024, June", "Upcoming"),
        ("Rumored", "Rumored"),
        ("Discontinued", "Discontinued"),
        ("", "Available"),
        (None, "Available"),
    ])
    def test_map_status(self, value, expected):
        assert map_status(value) == expected

    def test_split_colors(self):
        assert split_colors("Black, White,, Black ") == ["Black", "White"]
        assert split_colors(None) == []

    def test_dedupe_first_wins(self):
        unique = dedupe_rows(ROWS)
        assert len(unique) == 3
        assert unique[0]["status"] == "Available"


class TestCSVSeeder:
    def write_csv(self, path):
        with open(path, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=FIELDS)
            writer.writeheader()
            for row in ROWS:
                writer.writerow(row)
        return path

    def test_seed_and_reseed(self, tmp_path, empty_db_url):
        csv_path = self.write_csv(tmp_path / "phones.csv")

        async def go():
            db = Database(empty_db_url)
            try:
                await db.create_tables()
                first = await CSVSeeder(db).seed_from_csv(csv_path)
                second = await CSVSeeder(db).seed_from_csv(csv_path)
                counts = {}
                for table in ("brands", "phones", "chipsets", "display_types",
                              "phone_specifications", "phone_colors", "phone_pricing"):
                    result = await db.execute(f"SELECT COUNT(*) AS n FROM {table}")
                    counts[table] = result.rows[0]["n"]
                phone = (await db.execute(
                    "SELECT p.status, ps.ram_gb, ps.battery_capacity, ps.usb_type_c, "
                    "pr.price_unofficial, pr.price_official "
                    "FROM phones p "
                    "JOIN phone_specifications ps ON ps.phone_id = p.phone_id "
                    "JOIN phone_pricing pr ON pr.phone_id = p.phone_id "
                    "WHERE p.model = ?",
                    ["Galaxy A54"],
                )).rows[0]
                upcoming = (await db.execute(
                    "SELECT status FROM phones WHERE model = ?", ["Galaxy A34"]
                )).rows[0]
                return first, second, counts, phone, upcoming
            finally:
                await db.close()

        first, second, counts, phone, upcoming = asyncio.run(go())

        assert (first.loaded, first.unique, first.imported, first.failed) == (4, 3, 2, 1)
        assert second.imported == 2
        # Re-running updates in place
        assert counts == {
            "brands": 1,
            "phones": 2,
            "chipsets": 2,
            "display_types": 1,
            "phone_specifications": 2,
            "phone_colors": 2,
            "phone_pricing": 2,
        }
        assert phone["status"] == "Available"
        assert phone["ram_gb"] == 8
        assert phone["battery_capacity"] == 5000
        assert phone["usb_type_c"] == 1
        assert phone["price_unofficial"] == 41999
        assert phone["price_official"] is None
        assert upcoming["status"] == "Upcoming"

    def test_limit(self, tmp_path, empty_db_url):
        csv_path = self.write_csv(tmp_path / "phones.csv")

        async def go():
            db = Database(empty_db_url)
            try:
                await db.create_tables()
                return await CSVSeeder(db).seed_from_csv(csv_path, limit=1)
            finally:
                await db.close()

        report = asyncio.run(go())
        assert (report.loaded, report.imported) == (1, 1)
