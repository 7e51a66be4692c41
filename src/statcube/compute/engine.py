import time
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

import duckdb
import pandas as pd

from statcube.common.exceptions import StatCubeError, query_execution_error
from statcube.logging import get_logger
from statcube.operations import BaseOperation
from statcube.query_builder import BaseQueryBuilder, get_query_builder
from statcube.settings import EngineSettings
from statcube.utils.decorators import traced

logger = get_logger(__name__)

Parameters = Optional[Sequence[Any]]


class DuckDBEngine:
    """DuckDB execution engine for one cube build.

    Each engine owns a single private connection: an in-memory working
    store while a cube is built, or a read-only connection to a finished
    cube file for previews and exports. Nothing is shared between engines,
    so concurrent builds need no locking.

    Features:
        - Lazy connection with session settings applied on open
        - Fetch methods returning rows, scalars, dicts or DataFrames
        - Operation execution through the DuckDB query builder
        - Spans and duration logging around every statement
        - Idempotent close, safe to call on every exit path

    Example:
        >>> with DuckDBEngine(settings.engine) as engine:
        ...     engine.execute_query("CREATE TABLE t (a INTEGER)")
        ...     engine.fetch_scalar("SELECT count(*) FROM t")
        0
    """

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        database: Union[str, Path] = ":memory:",
        read_only: bool = False,
        query_builder: Optional[BaseQueryBuilder] = None,
    ):
        """Initialize the engine.

        Args:
            settings: Session settings; engine defaults when omitted
            database: ':memory:' for a working store, or a cube file path
            read_only: Open ``database`` read-only
            query_builder: Builder rendering operations; DuckDB builder by default
        """
        self.settings = settings or EngineSettings()
        self.database = str(database)
        self.read_only = read_only
        self.query_builder = query_builder or get_query_builder("duckdb")
        self._connection: Optional[duckdb.DuckDBPyConnection] = None
        self._closed = False
        self._loaded_extensions: set = set()
        self._connection_info: Dict[str, Any] = {
            "platform": "duckdb",
            "database": self.database,
            "read_only": read_only,
        }

    @property
    def connection(self) -> duckdb.DuckDBPyConnection:
        """Get or open the connection.

        Raises:
            StatCubeError: If the engine has been closed
        """
        if self._closed:
            raise StatCubeError(f"Engine for {self.database} is closed")
        if self._connection is None:
            self._connection = self._connect()
        return self._connection

    @property
    def closed(self) -> bool:
        return self._closed

    def _connect(self) -> duckdb.DuckDBPyConnection:
        try:
            conn = duckdb.connect(database=self.database, read_only=self.read_only)
        except duckdb.Error as exc:
            raise StatCubeError(
                f"Failed to open DuckDB database {self.database}",
                details={"database": self.database},
                cause=exc,
            )
        self._apply_connection_settings(conn)
        logger.debug("Opened DuckDB connection", extra=self._log_fields())
        return conn

    def _apply_connection_settings(self, conn: duckdb.DuckDBPyConnection) -> None:
        """Apply session settings with SET statements."""
        statements: List[str] = []
        if self.settings.threads is not None:
            statements.append(f"SET threads = {int(self.settings.threads)}")
        if self.settings.memory_limit:
            statements.append(f"SET memory_limit = {self.query_builder.quote_string(self.settings.memory_limit)}")
        if self.settings.temp_directory:
            statements.append(f"SET temp_directory = {self.query_builder.quote_string(self.settings.temp_directory)}")
        if not self.settings.preserve_insertion_order:
            statements.append("SET preserve_insertion_order = false")
        for statement in statements:
            conn.execute(statement)

    def _log_fields(self, telemetry: Optional[Dict[str, str]] = None) -> Dict[str, str]:
        payload: Dict[str, str] = dict(telemetry or {})
        info = self.get_connection_info()
        payload.setdefault("db.platform", info["platform"])
        payload.setdefault("db.name", info["database"])
        payload.setdefault("db.read_only", str(info["read_only"]).lower())
        return payload

    def _span_attributes(
        self,
        query: str,
        telemetry: Optional[Dict[str, str]] = None,
        *,
        operation: str,
        batch_total: Optional[int] = None,
    ) -> Dict[str, Any]:
        """Build OpenTelemetry span attributes for SQL operations."""
        sanitized_query = (query or "").strip()
        if sanitized_query and len(sanitized_query) > 4096:
            sanitized_query = f"{sanitized_query[:4093]}..."

        attributes: Dict[str, Any] = {
            "db.system": "duckdb",
            "db.operation": operation,
            "db.name": self.database,
        }

        if sanitized_query:
            attributes["db.statement"] = sanitized_query
            attributes["db.statement.length"] = len(sanitized_query)

        if batch_total is not None:
            attributes["db.batch.count"] = batch_total

        if telemetry:
            table_name = telemetry.get("operation.object")
            if table_name:
                attributes["db.sql.table"] = table_name
            for key, value in telemetry.items():
                attributes[f"statcube.telemetry.{key}"] = value

        return attributes

    @traced(
        span_name="statcube.engine.execute",
        attribute_getter=lambda self, query, parameters=None, telemetry=None: self._span_attributes(
            query,
            telemetry,
            operation="execute",
        ),
    )
    def execute_query(
        self,
        query: str,
        parameters: Parameters = None,
        telemetry: Optional[Dict[str, str]] = None,
    ) -> None:
        """Execute a SQL statement without returning results."""
        start_time = time.time()
        payload = self._log_fields(telemetry)

        try:
            if parameters is None:
                self.connection.execute(query)
            else:
                self.connection.execute(query, list(parameters))

            duration = time.time() - start_time
            logger.debug(
                "SQL query executed",
                extra={**payload, "duration.seconds": f"{duration:.6f}"},
            )

        except duckdb.Error as exc:
            duration = time.time() - start_time
            logger.error(
                "SQL query failed",
                extra={**payload, "duration.seconds": f"{duration:.6f}", "error": str(exc)},
            )
            raise query_execution_error(query, exc)

    @traced(
        span_name="statcube.engine.execute_many",
        attribute_getter=lambda self, query, rows, telemetry=None: self._span_attributes(
            query,
            telemetry,
            operation="execute_many",
            batch_total=len(rows),
        ),
    )
    def execute_many(
        self,
        query: str,
        rows: Sequence[Sequence[Any]],
        telemetry: Optional[Dict[str, str]] = None,
    ) -> None:
        """Execute a parameterized statement once per row of parameters."""
        if not rows:
            return
        start_time = time.time()
        payload = self._log_fields(telemetry)

        try:
            self.connection.executemany(query, [list(row) for row in rows])

            duration = time.time() - start_time
            logger.debug(
                "SQL batch executed",
                extra={**payload, "batch.total": str(len(rows)), "duration.seconds": f"{duration:.6f}"},
            )

        except duckdb.Error as exc:
            duration = time.time() - start_time
            logger.error(
                "SQL batch failed",
                extra={**payload, "duration.seconds": f"{duration:.6f}", "error": str(exc)},
            )
            raise query_execution_error(query, exc)

    @traced(
        span_name="statcube.engine.fetch_rows",
        attribute_getter=lambda self, query, parameters=None, telemetry=None: self._span_attributes(
            query,
            telemetry,
            operation="fetch_rows",
        ),
    )
    def fetch_rows(
        self,
        query: str,
        parameters: Parameters = None,
        telemetry: Optional[Dict[str, str]] = None,
    ) -> Tuple[List[str], List[Tuple[Any, ...]]]:
        """Execute query and return (column names, row tuples)."""
        start_time = time.time()
        payload = self._log_fields(telemetry)

        try:
            cursor = self.connection.execute(query, list(parameters) if parameters is not None else None)
            headers = [column[0] for column in (cursor.description or [])]
            rows = cursor.fetchall()

            duration = time.time() - start_time
            logger.debug(
                "Rows fetched",
                extra={**payload, "row_count": str(len(rows)), "duration.seconds": f"{duration:.6f}"},
            )
            return headers, rows

        except duckdb.Error as exc:
            duration = time.time() - start_time
            logger.error(
                "Row fetch failed",
                extra={**payload, "duration.seconds": f"{duration:.6f}", "error": str(exc)},
            )
            raise query_execution_error(query, exc)

    def fetch_all(
        self,
        query: str,
        parameters: Parameters = None,
        telemetry: Optional[Dict[str, str]] = None,
    ) -> List[Dict[str, Any]]:
        """Execute query and fetch all results as list of dictionaries."""
        headers, rows = self.fetch_rows(query, parameters, telemetry)
        return [dict(zip(headers, row)) for row in rows]

    @traced(
        span_name="statcube.engine.fetch_scalar",
        attribute_getter=lambda self, query, parameters=None, telemetry=None: self._span_attributes(
            query,
            telemetry,
            operation="fetch_scalar",
        ),
    )
    def fetch_scalar(
        self,
        query: str,
        parameters: Parameters = None,
        telemetry: Optional[Dict[str, str]] = None,
    ) -> Any:
        """Execute query and return single scalar value.

        Used for queries that return a single value (COUNT, MAX, etc).

        Args:
            query: SQL query that returns single value
            parameters: Optional positional parameters
            telemetry: Optional context for logging/telemetry

        Returns:
            First column of the first row, or None when there are no rows
        """
        start_time = time.time()
        payload = self._log_fields(telemetry)

        try:
            cursor = self.connection.execute(query, list(parameters) if parameters is not None else None)
            row = cursor.fetchone()
            value = row[0] if row else None

            duration = time.time() - start_time
            logger.debug(
                "Scalar fetched",
                extra={**payload, "duration.seconds": f"{duration:.6f}", "value_is_null": str(value is None)},
            )
            return value

        except duckdb.Error as exc:
            duration = time.time() - start_time
            logger.error(
                "Scalar fetch failed",
                extra={**payload, "duration.seconds": f"{duration:.6f}", "error": str(exc)},
            )
            raise query_execution_error(query, exc)

    @traced(
        span_name="statcube.engine.fetch_dataframe",
        attribute_getter=lambda self, query, parameters=None, telemetry=None: self._span_attributes(
            query,
            telemetry,
            operation="fetch_dataframe",
        ),
    )
    def fetch_dataframe(
        self,
        query: str,
        parameters: Parameters = None,
        telemetry: Optional[Dict[str, str]] = None,
    ) -> pd.DataFrame:
        """Execute query and return results as pandas DataFrame."""
        start_time = time.time()
        payload = self._log_fields(telemetry)

        try:
            cursor = self.connection.execute(query, list(parameters) if parameters is not None else None)
            df = cursor.df()

            duration = time.time() - start_time
            logger.debug(
                "DataFrame fetched",
                extra={**payload, "rows": str(len(df)), "duration.seconds": f"{duration:.6f}"},
            )
            return df

        except duckdb.Error as exc:
            duration = time.time() - start_time
            logger.error(
                "DataFrame fetch failed",
                extra={**payload, "duration.seconds": f"{duration:.6f}", "error": str(exc)},
            )
            raise query_execution_error(query, exc)

    def execute_operation(
        self,
        operation: BaseOperation,
        parameters: Parameters = None,
        telemetry: Optional[Dict[str, str]] = None,
    ) -> str:
        """Render ``operation`` with the query builder and execute it.

        Returns:
            The SQL that was executed
        """
        payload: Dict[str, str] = dict(telemetry or {})
        payload.update(operation.telemetry_fields())
        query = self.query_builder.build_query(operation)
        self.execute_query(query, parameters, telemetry=payload)
        return query

    def execute_operation_many(
        self,
        operation: BaseOperation,
        rows: Sequence[Sequence[Any]],
        telemetry: Optional[Dict[str, str]] = None,
    ) -> str:
        """Render a parameterized operation once and execute it per row."""
        payload: Dict[str, str] = dict(telemetry or {})
        payload.update(operation.telemetry_fields())
        query = self.query_builder.build_query(operation)
        self.execute_many(query, rows, telemetry=payload)
        return query

    def load_extension(self, name: str) -> None:
        """Install (if needed) and load a DuckDB extension once per connection."""
        if name in self._loaded_extensions:
            return
        quoted = self.query_builder.quote_identifier(name)
        self.execute_query(f"INSTALL {quoted}")
        self.execute_query(f"LOAD {quoted}")
        self._loaded_extensions.add(name)

    def table_exists(self, table_name: str) -> bool:
        count = self.fetch_scalar(
            "SELECT count(*) FROM information_schema.tables WHERE table_name = ?",
            [table_name],
        )
        return bool(count)

    def get_connection_info(self) -> Dict[str, Any]:
        """Get connection information for debugging/logging."""
        return self._connection_info.copy()

    def close(self) -> None:
        """Close the connection. Further calls are no-ops."""
        if self._closed:
            return
        self._closed = True
        if self._connection is not None:
            try:
                self._connection.close()
            finally:
                self._connection = None
                logger.debug("Closed DuckDB connection", extra=self._log_fields())

    def __enter__(self) -> "DuckDBEngine":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
