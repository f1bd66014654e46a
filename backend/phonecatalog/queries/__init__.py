"""
Query building for the phone catalog.
"""
from phonecatalog.queries.builder import (
    BuiltQuery,
    QueryBuilder,
    ResolvedSort,
    SORTABLE_COLUMNS,
    build_predicates,
    resolve_sort,
)
from phonecatalog.queries.dialects import MySQLDialect, SQLDialect, SQLiteDialect, get_dialect
from phonecatalog.queries.predicates import AnyOf, Between, Equals, Exists, GreaterOrEqual, LessOrEqual

__all__ = [
    'BuiltQuery',
    'QueryBuilder',
    'ResolvedSort',
    'SORTABLE_COLUMNS',
    'build_predicates',
    'resolve_sort',
    'SQLDialect',
    'MySQLDialect',
    'SQLiteDialect',
    'get_dialect',
    'AnyOf',
    'Between',
    'Equals',
    'Exists',
    'GreaterOrEqual',
    'LessOrEqual',
]
