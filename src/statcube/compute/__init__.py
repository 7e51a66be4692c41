"""Compute module: the DuckDB working store a cube is built in.

Operations describe WHAT to do, the query builder renders them and the
engine executes them against a private DuckDB connection.

Example:
    >>> from statcube.compute import DuckDBEngine
    >>> from statcube.operations import DropTable
    >>>
    >>> with DuckDBEngine() as engine:
    ...     engine.execute_operation(DropTable(object_name="staging_table"))
"""

from statcube.compute.engine import DuckDBEngine

__all__ = [
    "DuckDBEngine",
]
