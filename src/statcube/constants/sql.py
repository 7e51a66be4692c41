"""SQL and query-related constants.

These are Layer 0 constants: fundamental statement kinds used by
operations, the query builder and the engine without creating
circular dependencies.
"""

from enum import Enum


class QueryType(str, Enum):
    """SQL statement type enumeration.

    Categories:
    - DML: INSERT, UPDATE, DELETE, LOAD_FILE
    - DDL: CREATE_TABLE, DROP_TABLE, CREATE_VIEW
    - Export: EXPORT, COPY_DATABASE
    """

    # Data Manipulation (DML)
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    LOAD_FILE = "LOAD_FILE"

    # Data Definition (DDL)
    CREATE_TABLE = "CREATE_TABLE"
    DROP_TABLE = "DROP_TABLE"
    CREATE_VIEW = "CREATE_VIEW"

    # Export
    EXPORT = "EXPORT"
    COPY_DATABASE = "COPY_DATABASE"
