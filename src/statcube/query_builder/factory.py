"""Query Builder Factory.

Maps a dialect name to its query builder. Builders are stateless, so one
instance per dialect is shared by every build in the process.
"""

from typing import Dict, Type

from statcube.query_builder.base import BaseQueryBuilder
from statcube.query_builder.duckdb_builder import DuckDBQueryBuilder


class QueryBuilderFactory:
    """Factory for dialect-specific query builders.

    Example:
        >>> builder = QueryBuilderFactory.create("duckdb")
        >>> builder.quote_identifier("Area Code")
        '"Area Code"'
    """

    _registry: Dict[str, Type[BaseQueryBuilder]] = {
        DuckDBQueryBuilder.dialect: DuckDBQueryBuilder,
    }
    _instances: Dict[str, BaseQueryBuilder] = {}

    @classmethod
    def create(cls, dialect: str = DuckDBQueryBuilder.dialect) -> BaseQueryBuilder:
        """Return the shared builder for ``dialect``.

        Raises:
            ValueError: If no builder is registered for the dialect
        """
        builder_class = cls._registry.get(dialect)
        if builder_class is None:
            raise ValueError(
                f"No query builder for dialect '{dialect}'. Available: {', '.join(sorted(cls._registry))}"
            )
        if dialect not in cls._instances:
            cls._instances[dialect] = builder_class()
        return cls._instances[dialect]


def get_query_builder(dialect: str = DuckDBQueryBuilder.dialect) -> BaseQueryBuilder:
    """Convenience wrapper around ``QueryBuilderFactory.create``."""
    return QueryBuilderFactory.create(dialect)
