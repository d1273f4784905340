"""Database operations module.

This module provides data structures that describe database operations
independent of how they are executed. Operations are pure data that can be:
- Transformed into SQL by the BigQuery statement builder
- Executed by the execution client
- Logged and traced through their telemetry fields
"""

# Base operation
from bqdriver.operations.base import BaseOperation

# DDL operations
from bqdriver.operations.ddl import (
    CreateTable,
    TruncateTable,
)

# DML operations
from bqdriver.operations.dml import (
    Insert,
    Delete,
    Merge,
)

# View operations
from bqdriver.operations.views import (
    CreateView,
)

# Copy operations
from bqdriver.operations.copy import (
    CloneTable,
    CopyTable,
)

__all__ = [
    # Base
    "BaseOperation",
    # DDL
    "CreateTable",
    "TruncateTable",
    # DML
    "Insert",
    "Delete",
    "Merge",
    # Views
    "CreateView",
    # Copy
    "CloneTable",
    "CopyTable",
]
