"""Constants module for bqdriver.

This module contains all constant values and enumerations used throughout
the driver. As Layer 0 in the architecture, this module has no
dependencies on other bqdriver modules.

Organization:
    - sql: Statement types, logical data types, operators, sort order
    - imports: Import, dedup, create and load strategy enums
    - bigquery: BigQuery type families, reserved names and retry markers
"""

from bqdriver.constants.sql import (
    DataType,
    MULTI_VALUE_OPERATOR_SQL,
    OPERATOR_SQL,
    Operator,
    Order,
    QueryMode,
    QueryType,
)
from bqdriver.constants.imports import (
    CreateMode,
    DedupType,
    ImportStrategy,
    ImportType,
    LoadStrategy,
    TimestampMode,
)
from bqdriver.constants.bigquery import BACKEND_NAME, TIMESTAMP_COLUMN

__all__ = [
    # SQL
    "QueryType",
    "QueryMode",
    "DataType",
    "Operator",
    "Order",
    "OPERATOR_SQL",
    "MULTI_VALUE_OPERATOR_SQL",
    # Imports
    "ImportType",
    "DedupType",
    "CreateMode",
    "TimestampMode",
    "ImportStrategy",
    "LoadStrategy",
    # BigQuery
    "BACKEND_NAME",
    "TIMESTAMP_COLUMN",
]
