"""
SQL dialects the query builder can render for.

A dialect owns the placeholder style expected by the async driver and the
handful of functions that differ between engines (JSON aggregation,
row-wise min/max).
"""
from abc import ABC, abstractmethod
from typing import Dict, Iterable, List, Tuple

from phonecatalog.queries.predicates import (
    AnyOf,
    Between,
    Equals,
    Exists,
    GreaterOrEqual,
    LessOrEqual,
    Predicate,
    predicate_params,
)


# Larger than any real price; keeps null/zero prices out of MIN()
PRICE_SENTINEL = 999999999


class SQLDialect(ABC):
    """Base class for all dialects."""

    name: str = ""
    placeholder: str = "?"

    def render_predicate(self, predicate: Predicate) -> str:
        if isinstance(predicate, Equals):
            return f"{predicate.column} = {self.placeholder}"
        if isinstance(predicate, GreaterOrEqual):
            return f"{predicate.column} >= {self.placeholder}"
        if isinstance(predicate, LessOrEqual):
            return f"{predicate.column} <= {self.placeholder}"
        if isinstance(predicate, Between):
            return f"{predicate.column} BETWEEN {self.placeholder} AND {self.placeholder}"
        if isinstance(predicate, AnyOf):
            return "(" + " OR ".join(self.render_predicate(p) for p in predicate.options) + ")"
        if isinstance(predicate, Exists):
            where = " AND ".join(
                [predicate.correlation] + [self.render_predicate(p) for p in predicate.conditions]
            )
            return f"EXISTS (SELECT 1 FROM {predicate.table} {predicate.alias} WHERE {where})"
        raise TypeError(f"Unknown predicate: {predicate!r}")

    def render_where(self, predicates: Iterable[Predicate]) -> Tuple[str, List]:
        """
        Render predicates as a WHERE clause joined by AND.

        Returns ("", []) when there is nothing to filter on.
        """
        fragments: List[str] = []
        params: List = []
        for predicate in predicates:
            fragments.append(self.render_predicate(predicate))
            params.extend(predicate_params(predicate))

        if not fragments:
            return "", []
        return "WHERE " + " AND ".join(fragments), params

    @abstractmethod
    def json_array_agg(self, expression: str) -> str:
        """Aggregate rows into a JSON array."""
        pass

    @abstractmethod
    def json_object(self, *pairs: str) -> str:
        """Build a JSON object from alternating key/value expressions."""
        pass

    @abstractmethod
    def least(self, *expressions: str) -> str:
        pass

    @abstractmethod
    def greatest(self, *expressions: str) -> str:
        pass


class MySQLDialect(SQLDialect):
    name = "mysql"
    placeholder = "%s"

    def json_array_agg(self, expression: str) -> str:
        return f"JSON_ARRAYAGG({expression})"

    def json_object(self, *pairs: str) -> str:
        return f"JSON_OBJECT({', '.join(pairs)})"

    def least(self, *expressions: str) -> str:
        return f"LEAST({', '.join(expressions)})"

    def greatest(self, *expressions: str) -> str:
        return f"GREATEST({', '.join(expressions)})"


class SQLiteDialect(SQLDialect):
    name = "sqlite"
    placeholder = "?"

    def json_array_agg(self, expression: str) -> str:
        return f"json_group_array({expression})"

    def json_object(self, *pairs: str) -> str:
        return f"json_object({', '.join(pairs)})"

    # Multi-argument MIN/MAX are scalar functions in SQLite
    def least(self, *expressions: str) -> str:
        return f"MIN({', '.join(expressions)})"

    def greatest(self, *expressions: str) -> str:
        return f"MAX({', '.join(expressions)})"


_DIALECTS: Dict[str, SQLDialect] = {
    "mysql": MySQLDialect(),
    "mariadb": MySQLDialect(),
    "sqlite": SQLiteDialect(),
}


def get_dialect(name: str) -> SQLDialect:
    """Look up a dialect by SQLAlchemy backend name (e.g. 'mysql', 'sqlite')."""
    try:
        return _DIALECTS[name.lower()]
    except KeyError:
        raise ValueError(
            f"Unsupported database dialect '{name}'. Expected one of: {', '.join(sorted(_DIALECTS))}"
        ) from None
