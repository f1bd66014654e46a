"""Tests for filter criteria normalization, sorting and pagination inputs."""

import math

import pytest

from phonecatalog.filters import (
    FilterCriteria,
    NumericRange,
    SortSpec,
    clamp_pagination,
    positive_number,
    sanitize_text,
)


class TestFilterCriteria:
    """Normalization of client-supplied filters."""

    def test_empty_input_is_empty(self):
        assert FilterCriteria().is_empty
        assert FilterCriteria.model_validate({}).is_empty

    def test_blank_strings_are_dropped(self):
        criteria = FilterCriteria.model_validate({"brand": "   ", "chipset": "", "displayType": None})
        assert criteria.is_empty

    def test_web_client_keys(self):
        criteria = FilterCriteria.model_validate({
            "brand": "Samsung",
            "displayType": "AMOLED",
            "internalStorage": "128GB",
            "ramGb": 8,
            "batteryCapacity": "5000",
            "priceRange": {"min": 500, "max": 1200},
            "screenSize": {"min": 6.1, "max": 6.7},
        })
        assert criteria.brand == "Samsung"
        assert criteria.display_type == "AMOLED"
        assert criteria.min_internal_storage_gb == 128
        assert criteria.min_ram_gb == 8
        assert criteria.min_battery_capacity == 5000
        assert criteria.price_range == NumericRange(min=500, max=1200)
        assert criteria.screen_size_range == NumericRange(min=6.1, max=6.7)

    def test_long_field_names_accepted(self):
        criteria = FilterCriteria.model_validate({
            "minRamGb": 12,
            "minInternalStorageGb": 256,
            "minBatteryCapacity": 4500,
            "screenSizeRange": {"min": 6},
        })
        assert criteria.min_ram_gb == 12
        assert criteria.min_internal_storage_gb == 256
        assert criteria.min_battery_capacity == 4500
        assert criteria.screen_size_range.min == 6
        assert criteria.screen_size_range.max is None

    @pytest.mark.parametrize("bad", [0, -4, "abc", float("nan"), float("inf"), True, [8]])
    def test_non_positive_or_non_finite_numbers_are_dropped(self, bad):
        criteria = FilterCriteria.model_validate({"ramGb": bad})
        assert criteria.min_ram_gb is None
        assert criteria.is_empty

    def test_range_with_no_usable_bounds_is_dropped(self):
        criteria = FilterCriteria.model_validate({"priceRange": {"min": -1, "max": "x"}})
        assert criteria.price_range is None

    def test_range_that_is_not_an_object_is_dropped(self):
        criteria = FilterCriteria.model_validate({"priceRange": "cheap", "screenSize": 6})
        assert criteria.price_range is None
        assert criteria.screen_size_range is None

    def test_unknown_keys_ignored(self):
        criteria = FilterCriteria.model_validate({"color": "red", "brand": "Apple"})
        assert criteria.brand == "Apple"

    def test_script_tags_stripped(self):
        criteria = FilterCriteria.model_validate({"brand": "<script>alert(1)</script>Samsung"})
        assert criteria.brand == "Samsung"

    def test_to_response_uses_client_keys(self):
        criteria = FilterCriteria.model_validate({"brand": "Samsung", "minRamGb": 8})
        assert criteria.to_response() == {"brand": "Samsung", "ramGb": 8}


class TestHelpers:
    """Value coercion helpers."""

    def test_positive_number_with_units(self):
        assert positive_number("128GB") == 128.0
        assert positive_number(" 6.7 inches") == 6.7

    def test_positive_number_rejects(self):
        assert positive_number(None) is None
        assert positive_number(False) is None
        assert positive_number(0) is None
        assert positive_number(-math.inf) is None
        assert positive_number({"min": 1}) is None

    def test_sanitize_text(self):
        assert sanitize_text("  javascript:Pixel ") == "Pixel"
        assert sanitize_text(42) is None
        assert sanitize_text("") is None


class TestSortSpec:
    def test_defaults(self):
        sort = SortSpec()
        assert sort.sort_by is None
        assert sort.sort_order == "asc"

    def test_order_normalized(self):
        assert SortSpec(sort_order="DESC").sort_order == "desc"
        assert SortSpec(sort_order="sideways").sort_order == "asc"

    def test_blank_column_is_none(self):
        assert SortSpec(sort_by="  ").sort_by is None
        assert SortSpec(sort_by=12).sort_by is None


class TestClampPagination:
    @pytest.mark.parametrize(
        "page,size,expected",
        [
            (1, 20, (1, 20)),
            (0, 20, (1, 20)),
            (-5, 0, (1, 1)),
            (3, 1000, (3, 100)),
            ("2", "50", (2, 50)),
            ("x", None, (1, 20)),
        ],
    )
    def test_clamps(self, page, size, expected):
        assert clamp_pagination(page, size) == expected
