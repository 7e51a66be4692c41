"""Query builder module for SQL generation.

Query builders translate operations and view fragments into SQL but do NOT
execute queries; that's handled by the engine.

Design Principles:
    1. **SQL Generation Only**: Builders only generate SQL strings
    2. **Dialect-Specific**: Each dialect has its own builder
    3. **Quoting Through sqlglot**: Identifiers and literals are escaped by
       sqlglot's generator for the target dialect
    4. **Stateless**: Builders don't maintain state between calls
    5. **Operation-Based**: All builders work with Operation types

Example:
    >>> from statcube.query_builder import get_query_builder
    >>> from statcube.operations import DropTable
    >>>
    >>> builder = get_query_builder()
    >>> builder.build_query(DropTable(object_name="update_table"))
    'DROP TABLE IF EXISTS "update_table"'
"""

from statcube.query_builder.base import BaseQueryBuilder
from statcube.query_builder.duckdb_builder import DuckDBQueryBuilder
from statcube.query_builder.factory import QueryBuilderFactory, get_query_builder

__all__ = [
    "BaseQueryBuilder",
    "DuckDBQueryBuilder",
    "QueryBuilderFactory",
    "get_query_builder",
]
