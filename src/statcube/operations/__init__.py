"""Database operations module.

This module provides data structures that describe database operations
independent of how they are executed. Operations are pure data that can be:
- Rendered into SQL by the query builder
- Executed by the engine
- Logged and traced through their telemetry fields

View fragments (select items, joins, ordering) are the typed parts each
cube resolver contributes to the per-locale views.
"""

# Base operation
from statcube.operations.base import BaseOperation

# DDL operations
from statcube.operations.ddl import (
    CreateTable,
    DropTable,
)

# DML operations
from statcube.operations.dml import (
    Insert,
    Update,
    Delete,
)

# View operations
from statcube.operations.views import CreateView

# File and data movement operations
from statcube.operations.copy import (
    LoadFile,
    Export,
    CopyDatabase,
)

# View fragments
from statcube.operations.fragments import (
    ColumnRef,
    Expression,
    SelectItem,
    JoinCondition,
    JoinClause,
    OrderBy,
    ViewFragments,
)

__all__ = [
    # Base
    "BaseOperation",
    # DDL
    "CreateTable",
    "DropTable",
    # DML
    "Insert",
    "Update",
    "Delete",
    # Views
    "CreateView",
    # Files
    "LoadFile",
    "Export",
    "CopyDatabase",
    # Fragments
    "ColumnRef",
    "Expression",
    "SelectItem",
    "JoinCondition",
    "JoinClause",
    "OrderBy",
    "ViewFragments",
]
