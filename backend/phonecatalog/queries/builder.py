"""
Dynamic SQL builder for catalog queries.

All methods are pure: they return SQL text and an ordered parameter list and
never touch the database. The list and count queries share one predicate
routine so their WHERE clauses cannot drift apart.
"""
from dataclasses import dataclass, field
from typing import Any, List, Optional

from phonecatalog.filters import FilterCriteria, SortSpec, clamp_pagination
from phonecatalog.queries.dialects import PRICE_SENTINEL, SQLDialect, SQLiteDialect
from phonecatalog.queries.predicates import (
    AnyOf,
    Between,
    Equals,
    Exists,
    GreaterOrEqual,
    LessOrEqual,
    Predicate,
)


PRIMARY_KEY_COLUMN = "p.phone_id"

SORTABLE_COLUMNS = (
    "p.phone_id",
    "b.brand_name",
    "p.model",
    "p.release_date",
    "ps.ram_gb",
    "ps.internal_storage_gb",
    "ps.battery_capacity",
    "ds.screen_size",
    "pr.price_unofficial",
    "pr.price_official",
)

# "ram_gb" -> "ps.ram_gb"
_SORT_ALIASES = {column.split(".", 1)[1]: column for column in SORTABLE_COLUMNS}

LIST_COLUMNS = (
    "p.phone_id",
    "b.brand_name",
    "p.model",
    "p.image_url",
    "p.status",
    "p.release_date",
    "ps.ram_gb",
    "ps.internal_storage_gb",
    "ps.battery_capacity",
    "ds.screen_size",
    "dt.display_type_name",
    "c.chipset_name",
    "pr.price_unofficial",
    "pr.price_official",
)

DETAIL_COLUMNS = (
    # Phone
    "p.phone_id", "p.model", "p.device_type", "p.release_date", "p.status",
    "p.detail_url", "p.image_url", "p.scraped_at",
    "b.brand_name",
    # Specifications
    "ps.cpu", "ps.cpu_cores", "ps.gpu", "ps.ram_gb", "ps.internal_storage_gb",
    "ps.expandable_memory", "ps.battery_capacity", "ps.quick_charging",
    "ps.bluetooth_version", "ps.network", "ps.wlan", "ps.usb", "ps.usb_otg",
    "ps.usb_type_c",
    # Display
    "ds.screen_size", "ds.resolution", "ds.pixel_density", "ds.refresh_rate",
    "ds.brightness", "ds.aspect_ratio", "ds.screen_protection",
    "ds.screen_to_body_ratio", "ds.touch_screen", "ds.notch", "ds.edge",
    # Physical
    "phys.height", "phys.width", "phys.thickness", "phys.weight",
    "phys.ip_rating", "phys.waterproof", "phys.ruggedness",
    # Camera
    "cam.primary_camera_resolution", "cam.primary_camera_features",
    "cam.primary_camera_autofocus", "cam.primary_camera_flash",
    "cam.primary_camera_image_resolution", "cam.video",
    # Audio
    "audio.audio_jack", "audio.loudspeaker",
    # Additional features
    "feat.features", "feat.face_unlock", "feat.gps", "feat.gprs", "feat.volte",
    "feat.sim_size", "feat.sim_slot", "feat.speed",
    # Lookup names
    "c.chipset_name", "c.architecture", "c.fabrication",
    "os.os_name", "os.os_version", "os.user_interface",
    "dt.display_type_name", "st.storage_type_name", "rt.ram_type_name",
    # Lowest listed prices
    "pr.price_official", "pr.price_unofficial",
)

# One row per phone: lowest non-zero price per column across its variants.
PRICING_SUMMARY_JOIN = (
    "LEFT JOIN (\n"
    "  SELECT phone_id,\n"
    "    MIN(NULLIF(price_official, 0)) AS price_official,\n"
    "    MIN(NULLIF(price_unofficial, 0)) AS price_unofficial\n"
    "  FROM phone_pricing\n"
    "  GROUP BY phone_id\n"
    ") pr ON p.phone_id = pr.phone_id"
)

FILTER_JOINS = (
    "FROM phones p",
    "INNER JOIN brands b ON p.brand_id = b.brand_id",
    "LEFT JOIN phone_specifications ps ON p.phone_id = ps.phone_id",
    "LEFT JOIN display_specifications ds ON p.phone_id = ds.phone_id",
    "LEFT JOIN display_types dt ON ps.display_type_id = dt.display_type_id",
    "LEFT JOIN chipsets c ON ps.chipset_id = c.chipset_id",
    PRICING_SUMMARY_JOIN,
)

DETAIL_JOINS = (
    "FROM phones p",
    "INNER JOIN brands b ON p.brand_id = b.brand_id",
    "LEFT JOIN phone_specifications ps ON p.phone_id = ps.phone_id",
    "LEFT JOIN display_specifications ds ON p.phone_id = ds.phone_id",
    "LEFT JOIN physical_specifications phys ON p.phone_id = phys.phone_id",
    "LEFT JOIN camera_specifications cam ON p.phone_id = cam.phone_id",
    "LEFT JOIN audio_features audio ON p.phone_id = audio.phone_id",
    "LEFT JOIN additional_features feat ON p.phone_id = feat.phone_id",
    "LEFT JOIN chipsets c ON ps.chipset_id = c.chipset_id",
    "LEFT JOIN operating_systems os ON ps.os_id = os.os_id",
    "LEFT JOIN display_types dt ON ps.display_type_id = dt.display_type_id",
    "LEFT JOIN storage_types st ON ps.storage_type_id = st.storage_type_id",
    "LEFT JOIN ram_types rt ON ps.ram_type_id = rt.ram_type_id",
    PRICING_SUMMARY_JOIN,
)


@dataclass(frozen=True)
class BuiltQuery:
    """SQL text plus the values for its placeholders, in order."""

    sql: str
    params: List[Any] = field(default_factory=list)


@dataclass(frozen=True)
class ResolvedSort:
    column: str
    direction: str  # "ASC" or "DESC"


def resolve_sort(sort: Optional[SortSpec]) -> ResolvedSort:
    """
    Map a requested sort onto the allow-list.

    Unknown columns fall back to the primary key in ascending order.
    """
    sort = sort or SortSpec()
    column = sort.sort_by or PRIMARY_KEY_COLUMN
    if column in _SORT_ALIASES:
        column = _SORT_ALIASES[column]
    if column not in SORTABLE_COLUMNS:
        return ResolvedSort(PRIMARY_KEY_COLUMN, "ASC")
    return ResolvedSort(column, "DESC" if sort.sort_order == "desc" else "ASC")


def price_bounds(low: Optional[float], high: Optional[float]) -> List[Predicate]:
    """
    Bounds checked against a single pricing variant; either price column
    may satisfy each bound.
    """
    bounds: List[Predicate] = []
    if low is not None:
        bounds.append(AnyOf((
            GreaterOrEqual("pp.price_unofficial", low),
            GreaterOrEqual("pp.price_official", low),
        )))
    if high is not None:
        bounds.append(AnyOf((
            LessOrEqual("pp.price_unofficial", high),
            LessOrEqual("pp.price_official", high),
        )))
    return bounds


def build_predicates(criteria: Optional[FilterCriteria]) -> List[Predicate]:
    """
    Compile filter criteria to predicates.

    Field order is fixed: brand, chipset, display type, storage, RAM, battery,
    price min, price max, screen min, screen max.
    """
    if criteria is None:
        return []

    predicates: List[Predicate] = []

    if criteria.brand:
        predicates.append(Equals("b.brand_name", criteria.brand))
    if criteria.chipset:
        predicates.append(Equals("c.chipset_name", criteria.chipset))
    if criteria.display_type:
        predicates.append(Equals("dt.display_type_name", criteria.display_type))
    if criteria.min_internal_storage_gb:
        predicates.append(GreaterOrEqual("ps.internal_storage_gb", criteria.min_internal_storage_gb))
    if criteria.min_ram_gb:
        predicates.append(GreaterOrEqual("ps.ram_gb", criteria.min_ram_gb))
    if criteria.min_battery_capacity:
        predicates.append(GreaterOrEqual("ps.battery_capacity", criteria.min_battery_capacity))

    price = criteria.price_range
    if price is not None:
        price_conditions = price_bounds(price.min, price.max)
        if price_conditions:
            predicates.append(Exists(
                "phone_pricing", "pp", "pp.phone_id = p.phone_id", tuple(price_conditions)
            ))

    screen = criteria.screen_size_range
    if screen is not None:
        if screen.min is not None and screen.max is not None:
            predicates.append(Between("ds.screen_size", screen.min, screen.max))
        elif screen.min is not None:
            predicates.append(GreaterOrEqual("ds.screen_size", screen.min))
        else:
            predicates.append(LessOrEqual("ds.screen_size", screen.max))

    return predicates


class QueryBuilder:
    """Builds catalog queries for one SQL dialect."""

    def __init__(self, dialect: Optional[SQLDialect] = None) -> None:
        self.dialect = dialect or SQLiteDialect()

    def _placeholder(self) -> str:
        return self.dialect.placeholder

    def _filtered_from(self, criteria: Optional[FilterCriteria]) -> tuple[List[str], List[Any]]:
        """FROM/JOIN/WHERE lines shared by the list and count queries."""
        lines = list(FILTER_JOINS)
        where, params = self.dialect.render_where(build_predicates(criteria))
        if where:
            lines.append(where)
        return lines, params

    def build_list_query(
        self,
        criteria: Optional[FilterCriteria] = None,
        sort: Optional[SortSpec] = None,
        page: Any = 1,
        page_size: Any = 20,
    ) -> BuiltQuery:
        """
        Filtered, sorted, paginated phone list.

        LIMIT/OFFSET are embedded as integers because MySQL prepared statements
        reject placeholders there; they are clamped here regardless of what the
        caller already checked.
        """
        from_lines, params = self._filtered_from(criteria)
        resolved = resolve_sort(sort)
        page, page_size = clamp_pagination(page, page_size)
        offset = (page - 1) * page_size

        order_by = f"ORDER BY {resolved.column} {resolved.direction}"
        if resolved.column != PRIMARY_KEY_COLUMN:
            order_by += f", {PRIMARY_KEY_COLUMN} ASC"

        lines = ["SELECT", "  " + ",\n  ".join(LIST_COLUMNS)]
        lines += from_lines
        lines.append(order_by)
        lines.append(f"LIMIT {int(page_size)} OFFSET {int(offset)}")
        return BuiltQuery("\n".join(lines), params)

    def build_count_query(self, criteria: Optional[FilterCriteria] = None) -> BuiltQuery:
        """Total number of distinct phones matching the same filters."""
        from_lines, params = self._filtered_from(criteria)
        lines = [f"SELECT COUNT(DISTINCT {PRIMARY_KEY_COLUMN}) AS total"] + from_lines
        return BuiltQuery("\n".join(lines), params)

    def build_detail_query(self, phone_id: int) -> BuiltQuery:
        lines = ["SELECT", "  " + ",\n  ".join(DETAIL_COLUMNS)]
        lines += DETAIL_JOINS
        lines.append(f"WHERE {PRIMARY_KEY_COLUMN} = {self._placeholder()}")
        lines.append("LIMIT 1")
        return BuiltQuery("\n".join(lines), [phone_id])

    def build_colors_query(self, phone_id: int) -> BuiltQuery:
        sql = (
            "SELECT color_name\n"
            "FROM phone_colors\n"
            f"WHERE phone_id = {self._placeholder()}\n"
            "ORDER BY color_name"
        )
        return BuiltQuery(sql, [phone_id])

    def build_pricing_query(self, phone_id: int) -> BuiltQuery:
        sql = (
            "SELECT\n"
            "  pricing_id,\n"
            "  price_official,\n"
            "  price_unofficial,\n"
            "  price_old,\n"
            "  price_savings,\n"
            "  price_updated,\n"
            "  variant_description\n"
            "FROM phone_pricing\n"
            f"WHERE phone_id = {self._placeholder()}\n"
            "ORDER BY pricing_id"
        )
        return BuiltQuery(sql, [phone_id])

    def build_lookup_options_query(self) -> BuiltQuery:
        """
        Dropdown options in one statement: one (type, options) row per group.

        Only lookup rows referenced by at least one phone are included. The
        price range ignores null and zero prices.
        """
        d = self.dialect

        def lookup_group(group: str, table: str, id_col: str, name_col: str, used_ids: str) -> str:
            obj = d.json_object(f"'{id_col}'", id_col, f"'{name_col}'", name_col)
            return (
                f"SELECT '{group}' AS type, {d.json_array_agg(obj)} AS options\n"
                f"FROM {table}\n"
                f"WHERE {id_col} IN ({used_ids})"
            )

        brands = lookup_group(
            "brands", "brands", "brand_id", "brand_name",
            "SELECT DISTINCT brand_id FROM phones",
        )
        chipsets = lookup_group(
            "chipsets", "chipsets", "chipset_id", "chipset_name",
            "SELECT DISTINCT chipset_id FROM phone_specifications WHERE chipset_id IS NOT NULL",
        )
        display_types = lookup_group(
            "displayTypes", "display_types", "display_type_id", "display_type_name",
            "SELECT DISTINCT display_type_id FROM phone_specifications WHERE display_type_id IS NOT NULL",
        )
        storage = (
            f"SELECT 'storageOptions' AS type, {d.json_array_agg('internal_storage_gb')} AS options\n"
            "FROM (\n"
            "  SELECT DISTINCT internal_storage_gb\n"
            "  FROM phone_specifications\n"
            "  WHERE internal_storage_gb IS NOT NULL\n"
            ") storage_opts"
        )

        lowest = d.least(
            f"COALESCE(NULLIF(price_unofficial, 0), {PRICE_SENTINEL})",
            f"COALESCE(NULLIF(price_official, 0), {PRICE_SENTINEL})",
        )
        highest = d.greatest("COALESCE(price_unofficial, 0)", "COALESCE(price_official, 0)")
        price_obj = d.json_object(
            "'min'", f"COALESCE(MIN({lowest}), 0)",
            "'max'", f"COALESCE(MAX({highest}), 0)",
        )
        price_range = (
            f"SELECT 'priceRange' AS type, {price_obj} AS options\n"
            "FROM phone_pricing\n"
            "WHERE (price_unofficial IS NOT NULL AND price_unofficial > 0)\n"
            "   OR (price_official IS NOT NULL AND price_official > 0)"
        )

        sql = "\nUNION ALL\n".join([brands, chipsets, display_types, storage, price_range])
        return BuiltQuery(sql, [])
