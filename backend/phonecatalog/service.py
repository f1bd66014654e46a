"""
Catalog service.

One method per endpoint; each builds its queries, runs them through the
Database and shapes the response envelope.
"""
import json
import math
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional

from phonecatalog.database import Database
from phonecatalog.errors import NotFoundError
from phonecatalog.filters import FilterCriteria, SortSpec, clamp_pagination
from phonecatalog.logging_config import get_logger
from phonecatalog.queries import QueryBuilder, resolve_sort
from phonecatalog.schemas import (
    APIResponse,
    DeviceList,
    FilterOptions,
    Pagination,
    PhoneDetails,
    PriceRange,
    SearchResults,
    Sorting,
)


log = get_logger("catalog")


def jsonable_value(value: Any) -> Any:
    """Driver values to plain JSON types (Decimal prices, dates)."""
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    return value


def jsonable_row(row: Dict[str, Any]) -> Dict[str, Any]:
    return {key: jsonable_value(value) for key, value in row.items()}


def _decode_options(options: Any) -> Any:
    if isinstance(options, (bytes, bytearray)):
        options = options.decode("utf-8")
    if isinstance(options, str):
        return json.loads(options)
    return options


def parse_filter_options(rows: Iterable[Dict[str, Any]]) -> FilterOptions:
    """
    Turn (type, options) rows from the lookup query into FilterOptions.

    A group whose payload can't be decoded is logged and left at its empty
    default; the other groups are unaffected.
    """
    groups: Dict[str, Any] = {}

    for row in rows:
        group = row.get("type")
        raw = row.get("options")
        if raw is None:
            continue
        try:
            options = _decode_options(raw)
            if group in ("brands", "chipsets", "displayTypes"):
                if not isinstance(options, list) or not all(isinstance(o, dict) for o in options):
                    raise ValueError(f"expected a list of objects, got {type(options).__name__}")
                name_key = {
                    "brands": "brand_name",
                    "chipsets": "chipset_name",
                    "displayTypes": "display_type_name",
                }[group]
                groups[group] = sorted(options, key=lambda o: str(o.get(name_key) or ""))
            elif group == "storageOptions":
                if not isinstance(options, list):
                    raise ValueError(f"expected a list, got {type(options).__name__}")
                groups[group] = sorted(jsonable_value(o) for o in options if o is not None)
            elif group == "priceRange":
                groups[group] = PriceRange.model_validate(options)
            else:
                log.warning("filter_options_unknown_group", group=group)
        except (ValueError, TypeError) as e:
            log.warning("filter_options_parse_failed", group=group, error=str(e))

    return FilterOptions(
        brands=groups.get("brands", []),
        chipsets=groups.get("chipsets", []),
        display_types=groups.get("displayTypes", []),
        storage_options=groups.get("storageOptions", []),
        price_range=groups.get("priceRange", PriceRange()),
    )


class CatalogService:
    """Read-only access to the phone catalog."""

    def __init__(self, db: Database, builder: Optional[QueryBuilder] = None) -> None:
        self.db = db
        self.builder = builder or QueryBuilder(db.dialect)

    async def _page(
        self,
        criteria: FilterCriteria,
        sort: SortSpec,
        page: int,
        limit: int,
    ) -> tuple[List[Dict[str, Any]], Pagination, Any]:
        page, limit = clamp_pagination(page, limit)

        result = await self.db.run(self.builder.build_list_query(criteria, sort, page, limit))
        count = await self.db.run(self.builder.build_count_query(criteria))
        total = int(count.rows[0]["total"]) if count.rows else 0

        pagination = Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit),
        )
        return [jsonable_row(r) for r in result.rows], pagination, result

    async def list_devices(self, page: int = 1, limit: int = 20) -> APIResponse[DeviceList]:
        """Unfiltered catalog, ordered by id."""
        rows, pagination, result = await self._page(FilterCriteria(), SortSpec(), page, limit)
        return APIResponse[DeviceList](
            data=DeviceList(devices=rows, pagination=pagination),
            sql_query=result.sql,
            execution_time=result.elapsed_ms,
        )

    async def search(
        self,
        criteria: FilterCriteria,
        sort: SortSpec,
        page: int = 1,
        limit: int = 20,
    ) -> APIResponse[SearchResults]:
        """
        Filtered search.

        Flow:
        1. Run the paginated list query
        2. Run the count query with the same filters
        3. Derive total pages from the count
        """
        rows, pagination, result = await self._page(criteria, sort, page, limit)
        resolved = resolve_sort(sort)

        log.info(
            "search_completed",
            filters=criteria.to_response(),
            total=pagination.total,
            returned=len(rows),
            elapsed_ms=result.elapsed_ms,
        )

        return APIResponse[SearchResults](
            data=SearchResults(
                phones=rows,
                pagination=pagination,
                filters=criteria.to_response(),
                sorting=Sorting(sort_by=resolved.column, sort_order=resolved.direction.lower()),
            ),
            sql_query=result.sql,
            execution_time=result.elapsed_ms,
        )

    async def get_phone(self, phone_id: int) -> APIResponse[PhoneDetails]:
        """
        Full record for one phone, with its colors and pricing variants.

        Raises NotFoundError if no phone has this id.
        """
        result = await self.db.run(self.builder.build_detail_query(phone_id))
        if not result.rows:
            raise NotFoundError(f"Phone with ID {phone_id}")

        phone = jsonable_row(result.rows[0])

        colors = await self.db.run(self.builder.build_colors_query(phone_id))
        phone["colors"] = [row["color_name"] for row in colors.rows]

        pricing = await self.db.run(self.builder.build_pricing_query(phone_id))
        phone["pricing_variants"] = [
            jsonable_row(row)
            for row in pricing.rows
            if row.get("price_official") is not None or row.get("price_unofficial") is not None
        ]

        return APIResponse[PhoneDetails](
            data=PhoneDetails(phone=phone),
            sql_query=result.sql,
            execution_time=result.elapsed_ms,
        )

    async def get_filter_options(self) -> APIResponse[FilterOptions]:
        result = await self.db.run(self.builder.build_lookup_options_query())
        return APIResponse[FilterOptions](
            data=parse_filter_options(result.rows),
            sql_query=result.sql,
            execution_time=result.elapsed_ms,
        )
