#!/usr/bin/env python3
"""
Debug script to see the SQL the catalog generates and what the API returns.

    python debug_queries.py            # print generated SQL only
    python debug_queries.py --live     # also query a running server
"""
import asyncio
import sys

from phonecatalog.api_client import CatalogAPIClient
from phonecatalog.filters import FilterCriteria, SortSpec
from phonecatalog.queries import MySQLDialect, QueryBuilder, SQLiteDialect


SAMPLE_SEARCHES = [
    ("No filters", {}, SortSpec()),
    ("Samsung, 8GB+ RAM", {"brand": "Samsung", "ramGb": 8}, SortSpec(sort_by="ps.ram_gb", sort_order="desc")),
    ("Price 300-900", {"priceRange": {"min": 300, "max": 900}}, SortSpec(sort_by="pr.price_unofficial")),
    ("6.1-6.7 inch AMOLED", {"displayType": "AMOLED", "screenSize": {"min": 6.1, "max": 6.7}}, SortSpec()),
]


def print_generated_sql() -> None:
    for dialect in (MySQLDialect(), SQLiteDialect()):
        builder = QueryBuilder(dialect)
        print("\n" + "=" * 70)
        print(f"DIALECT: {dialect.name}")
        print("=" * 70)

        for title, filters, sort in SAMPLE_SEARCHES:
            criteria = FilterCriteria.model_validate(filters)
            listing = builder.build_list_query(criteria, sort, 1, 20)
            count = builder.build_count_query(criteria)

            print(f"\n🔍 {title}")
            print("-" * 60)
            print(listing.sql)
            print(f"Params: {listing.params}")
            print(f"\nCount: {count.sql.splitlines()[0]} ... ({len(count.params)} params)")

        print("\n📋 Filter options query:")
        print(builder.build_lookup_options_query().sql)


async def query_live_server() -> None:
    client = CatalogAPIClient(retry_delays=())
    try:
        health = await client.health()
        if not health.success:
            print(f"❌ Server not reachable: {health.error.message}")
            return
        print("\n✅ Server is up")

        options = await client.get_filter_options()
        if options.success:
            data = options.data
            print(f"   {len(data['brands'])} brands, {len(data['chipsets'])} chipsets, "
                  f"price range {data['priceRange']}")

        for title, filters, sort in SAMPLE_SEARCHES:
            result = await client.search_phones(filters, sort.sort_by or "p.phone_id", sort.sort_order)
            if result.success:
                pagination = result.data["pagination"]
                print(f"\n🔍 {title}: {pagination['total']} phones in {result.execution_time}ms")
                for phone in result.data["phones"][:3]:
                    print(f"   - {phone['brand_name']} {phone['model']}")
            else:
                print(f"\n❌ {title}: {result.error.code} {result.error.message}")
    finally:
        await client.close()


if __name__ == "__main__":
    print_generated_sql()
    if "--live" in sys.argv:
        asyncio.run(query_live_server())
