"""
Filter criteria, sorting and pagination inputs for catalog searches.

Everything here normalizes instead of rejecting: blank strings, non-numeric,
non-finite or non-positive numbers simply drop the field they were meant for.
"""
import math
import re
from typing import Any, Literal, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 100

_LEADING_NUMBER_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)")
_SCRIPT_TAG_RE = re.compile(r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE)
_JS_PROTOCOL_RE = re.compile(r"javascript:", re.IGNORECASE)


def sanitize_text(value: Any) -> Optional[str]:
    """Strip script tags and ``javascript:`` from a string; blank becomes None."""
    if not isinstance(value, str):
        return None
    cleaned = _JS_PROTOCOL_RE.sub("", _SCRIPT_TAG_RE.sub("", value)).strip()
    return cleaned or None


def positive_number(value: Any) -> Optional[float]:
    """
    Coerce a client-supplied value to a positive finite float.

    Accepts numbers and numeric strings with trailing units ("128GB" -> 128.0).
    Returns None for anything else.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        match = _LEADING_NUMBER_RE.match(value)
        if not match:
            return None
        number = float(match.group(1))
    else:
        return None

    if not math.isfinite(number) or number <= 0:
        return None
    return number


def positive_int(value: Any) -> Optional[int]:
    number = positive_number(value)
    if number is None:
        return None
    as_int = int(number)
    return as_int if as_int > 0 else None


class NumericRange(BaseModel):
    """Inclusive numeric range; either bound may be missing."""

    model_config = ConfigDict(frozen=True)

    min: Optional[float] = None
    max: Optional[float] = None

    @field_validator("min", "max", mode="before")
    @classmethod
    def _drop_invalid_bound(cls, v: Any) -> Optional[float]:
        return positive_number(v)

    @property
    def is_empty(self) -> bool:
        return self.min is None and self.max is None


class FilterCriteria(BaseModel):
    """
    Optional constraints over the catalog.

    String filters are exact matches; numeric filters are "at least" bounds;
    ranges are inclusive on both ends. No populated field means no filtering.
    Input keys follow the web client (``ramGb``, ``internalStorage``, ...);
    the longer ``min*`` names are accepted too.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    brand: Optional[str] = None
    chipset: Optional[str] = None
    display_type: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("displayType", "display_type"),
        serialization_alias="displayType",
    )
    min_internal_storage_gb: Optional[int] = Field(
        None,
        validation_alias=AliasChoices(
            "internalStorage", "minInternalStorageGb", "min_internal_storage_gb"
        ),
        serialization_alias="internalStorage",
    )
    min_ram_gb: Optional[int] = Field(
        None,
        validation_alias=AliasChoices("ramGb", "minRamGb", "min_ram_gb"),
        serialization_alias="ramGb",
    )
    min_battery_capacity: Optional[int] = Field(
        None,
        validation_alias=AliasChoices(
            "batteryCapacity", "minBatteryCapacity", "min_battery_capacity"
        ),
        serialization_alias="batteryCapacity",
    )
    price_range: Optional[NumericRange] = Field(
        None,
        validation_alias=AliasChoices("priceRange", "price_range"),
        serialization_alias="priceRange",
    )
    screen_size_range: Optional[NumericRange] = Field(
        None,
        validation_alias=AliasChoices("screenSize", "screenSizeRange", "screen_size_range"),
        serialization_alias="screenSize",
    )

    @field_validator("brand", "chipset", "display_type", mode="before")
    @classmethod
    def _clean_text(cls, v: Any) -> Optional[str]:
        return sanitize_text(v)

    @field_validator(
        "min_internal_storage_gb", "min_ram_gb", "min_battery_capacity", mode="before"
    )
    @classmethod
    def _clean_lower_bound(cls, v: Any) -> Optional[int]:
        return positive_int(v)

    @field_validator("price_range", "screen_size_range", mode="before")
    @classmethod
    def _clean_range(cls, v: Any) -> Any:
        if isinstance(v, (dict, NumericRange)):
            return v
        return None

    @field_validator("price_range", "screen_size_range")
    @classmethod
    def _drop_empty_range(cls, v: Optional[NumericRange]) -> Optional[NumericRange]:
        if v is None or v.is_empty:
            return None
        return v

    @property
    def is_empty(self) -> bool:
        return not self.model_dump(exclude_none=True)

    def to_response(self) -> dict[str, Any]:
        """Populated fields only, keyed the way the web client sends them."""
        return self.model_dump(by_alias=True, exclude_none=True)


class SortSpec(BaseModel):
    """Requested ordering; the column is checked against an allow-list later."""

    model_config = ConfigDict(frozen=True)

    sort_by: Optional[str] = None
    sort_order: Literal["asc", "desc"] = "asc"

    @field_validator("sort_by", mode="before")
    @classmethod
    def _clean_column(cls, v: Any) -> Optional[str]:
        if not isinstance(v, str):
            return None
        return v.strip() or None

    @field_validator("sort_order", mode="before")
    @classmethod
    def _normalize_order(cls, v: Any) -> str:
        return "desc" if isinstance(v, str) and v.strip().lower() == "desc" else "asc"


def clamp_pagination(page: Any, page_size: Any) -> tuple[int, int]:
    """
    Clamp pagination to page >= 1 and 1 <= page_size <= MAX_PAGE_SIZE.

    Values that are not integers fall back to the defaults.
    """
    page = _as_int(page, DEFAULT_PAGE)
    page_size = _as_int(page_size, DEFAULT_PAGE_SIZE)
    return max(1, page), min(MAX_PAGE_SIZE, max(1, page_size))


def _as_int(value: Any, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float) and math.isfinite(value):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value.strip())
        except ValueError:
            return default
    return default
