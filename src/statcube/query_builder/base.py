from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence

import sqlglot
from sqlglot import exp
from sqlglot.errors import ParseError

from statcube.constants.sql import QueryType
from statcube.logging import get_logger
from statcube.operations import (
    BaseOperation,
    ColumnRef,
    CopyDatabase,
    CreateTable,
    CreateView,
    Delete,
    DropTable,
    Export,
    Expression,
    Insert,
    JoinClause,
    LoadFile,
    OrderBy,
    SelectItem,
    Update,
    ViewFragments,
)
from statcube.protocols.operations import ColumnDefinition

logger = get_logger(__name__)


class BaseQueryBuilder(ABC):
    """Base interface for query builders.

    Query builders turn operations and view fragments into SQL text for one
    dialect. They do NOT execute queries; that responsibility belongs to
    the engine.

    Every identifier and string literal passes through ``quote_identifier``
    and ``quote_string``, which delegate to sqlglot for the dialect's
    quoting rules. Dataset-controlled names (column headers, locale
    display names, lookup codes) never reach SQL text any other way.
    """

    dialect: str = ""

    @abstractmethod
    def _build_create_table(self, operation: CreateTable) -> str:
        """Build CREATE TABLE statement."""
        pass

    @abstractmethod
    def _build_drop_table(self, operation: DropTable) -> str:
        """Build DROP TABLE statement."""
        pass

    @abstractmethod
    def _build_insert(self, operation: Insert) -> str:
        """Build INSERT statement.

        Args:
            operation: Insert operation

        Returns:
            INSERT statement; parameterized when the operation carries values
        """
        pass

    @abstractmethod
    def _build_update(self, operation: Update) -> str:
        """Build UPDATE statement."""
        pass

    @abstractmethod
    def _build_delete(self, operation: Delete) -> str:
        """Build DELETE statement."""
        pass

    @abstractmethod
    def _build_create_view(self, operation: CreateView) -> str:
        """Build CREATE VIEW statement."""
        pass

    @abstractmethod
    def _build_load_file(self, operation: LoadFile) -> str:
        """Build a statement creating a table from a local file.

        Args:
            operation: LoadFile operation

        Returns:
            CREATE TABLE ... AS SELECT over the dialect's file reader
        """
        pass

    @abstractmethod
    def _build_export(self, operation: Export) -> str:
        """Build a statement writing a table or view to a file."""
        pass

    @abstractmethod
    def _build_copy_database(self, operation: CopyDatabase) -> str:
        """Build the statements copying the working store into a database file."""
        pass

    def build_query(self, operation: BaseOperation) -> str:
        """Build SQL query from operation.

        Args:
            operation: Operation to convert to SQL

        Returns:
            Dialect-specific SQL

        Raises:
            NotImplementedError: If operation type is not supported
        """
        operation_mapping = {
            QueryType.CREATE_TABLE: self._build_create_table,
            QueryType.DROP_TABLE: self._build_drop_table,
            QueryType.INSERT: self._build_insert,
            QueryType.UPDATE: self._build_update,
            QueryType.DELETE: self._build_delete,
            QueryType.CREATE_VIEW: self._build_create_view,
            QueryType.LOAD_FILE: self._build_load_file,
            QueryType.EXPORT: self._build_export,
            QueryType.COPY_DATABASE: self._build_copy_database,
        }

        builder_method = operation_mapping.get(operation.operation_type)
        if builder_method:
            return builder_method(operation)

        raise NotImplementedError(
            f"Operation type {operation.operation_type} not supported by {self.__class__.__name__}"
        )

    def quote_identifier(self, identifier: str) -> str:
        """Quote an identifier for safe SQL usage.

        Args:
            identifier: Table, column or alias name

        Returns:
            Quoted identifier, with embedded quotes escaped
        """
        if not identifier:
            raise ValueError("Empty identifier")
        return exp.to_identifier(identifier, quoted=True).sql(dialect=self.dialect)

    def quote_string(self, value: str) -> str:
        """Quote a string value for SQL.

        Args:
            value: String value to quote

        Returns:
            Properly quoted and escaped string literal
        """
        return exp.Literal.string(value).sql(dialect=self.dialect)

    def format_column_list(self, columns: Sequence[str]) -> str:
        """Comma-separated list of quoted columns."""
        return ", ".join(self.quote_identifier(col) for col in columns)

    def format_set_clause(self, columns: Dict[str, str]) -> str:
        """Format SET clause for UPDATE.

        Args:
            columns: Dictionary of column -> rendered expression

        Returns:
            SET clause like '"col1" = expr1, "col2" = expr2'
        """
        return ", ".join(
            f"{self.quote_identifier(col)} = {expression}" for col, expression in columns.items()
        )

    def format_column_definitions(self, columns: List[ColumnDefinition]) -> str:
        """Format column definitions for CREATE TABLE.

        A composite primary key is emitted as a table constraint after the
        columns, in declaration order.
        """
        definitions = []
        for col in columns:
            definition = f"{self.quote_identifier(col.name)} {col.data_type}"

            if not col.nullable:
                definition += " NOT NULL"

            if col.default_value is not None:
                if isinstance(col.default_value, str):
                    definition += f" DEFAULT {self.quote_string(col.default_value)}"
                else:
                    definition += f" DEFAULT {col.default_value}"

            definitions.append(definition)

        key = [col.name for col in columns if col.primary_key]
        if key:
            definitions.append(f"PRIMARY KEY ({self.format_column_list(key)})")

        return ", ".join(definitions)

    # View fragment rendering

    def render_column(self, ref: ColumnRef) -> str:
        return f"{self.quote_identifier(ref.table)}.{self.quote_identifier(ref.column)}"

    def render_expression(self, expression: Expression) -> str:
        """Substitute quoted columns and literals into an expression template."""
        substitutions: Dict[str, str] = {}
        for index, ref in enumerate(expression.columns):
            substitutions[f"c{index}"] = self.render_column(ref)
        for index, literal in enumerate(expression.literals):
            substitutions[f"s{index}"] = self.quote_string(literal)
        return expression.template.format(**substitutions)

    def render_select_item(self, item: SelectItem) -> str:
        if isinstance(item.expression, ColumnRef):
            rendered = self.render_column(item.expression)
        else:
            rendered = self.render_expression(item.expression)
        if item.alias:
            return f"{rendered} AS {self.quote_identifier(item.alias)}"
        return rendered

    def render_join(self, join: JoinClause, locale: str) -> str:
        """Render a LEFT JOIN, binding its locale condition to ``locale``."""
        conditions = []
        for condition in join.conditions:
            left = self.render_column(condition.left)
            right = self.render_column(condition.right)
            if condition.cast_to_text:
                left, right = f"CAST({left} AS VARCHAR)", f"CAST({right} AS VARCHAR)"
            conditions.append(f"{left} = {right}")
        if join.locale_column:
            locale_ref = ColumnRef(table=join.table, column=join.locale_column)
            conditions.append(f"{self.render_column(locale_ref)} = {self.quote_string(locale.lower())}")
        return f"LEFT JOIN {self.quote_identifier(join.table)} ON {' AND '.join(conditions)}"

    def render_order_by(self, order_by: OrderBy) -> str:
        direction = " DESC" if order_by.descending else ""
        return f"{self.render_column(order_by.column)}{direction}"

    def build_view_select(
        self,
        fragments: ViewFragments,
        locale: str,
        source_table: str,
        raw: bool = False,
    ) -> str:
        """Assemble the SELECT of one locale view from accumulated fragments.

        Args:
            fragments: Everything the resolvers contributed
            locale: Locale the view renders
            source_table: Table the view selects from
            raw: Use the unformatted select items

        Returns:
            SELECT statement; ``*`` when no select items were contributed
        """
        selects = [self.render_select_item(item) for item in fragments.selects_for(locale, raw=raw)]
        parts = [f"SELECT {', '.join(selects) if selects else '*'}"]
        parts.append(f"FROM {self.quote_identifier(source_table)}")
        parts.extend(self.render_join(join, locale) for join in fragments.joins)
        if fragments.order_bys:
            parts.append(f"ORDER BY {', '.join(self.render_order_by(o) for o in fragments.order_bys)}")
        return "\n".join(parts)

    def validate_sql(self, sql: str) -> Optional[str]:
        """Parse generated SQL with sqlglot.

        Returns:
            None when the statement parses, otherwise the parse error text.
            Callers log the result; the engine remains the authority.
        """
        try:
            sqlglot.parse_one(sql, read=self.dialect)
        except ParseError as exc:
            logger.warning(
                "Generated SQL did not parse",
                extra={"sql.dialect": self.dialect, "error": str(exc)},
            )
            return str(exc)
        return None

    def format_values_placeholders(self, columns: Sequence[str], casts: Dict[str, Any]) -> str:
        """``(?, CAST(? AS T), ...)`` for a parameterized VALUES insert."""
        placeholders = [f"CAST(? AS {casts[col]})" if col in casts else "?" for col in columns]
        return f"({', '.join(placeholders)})"
