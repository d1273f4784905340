"""SQL and query-related constants.

This module contains fundamental SQL operation enums and constants
that are used across multiple layers of the architecture.

These constants are in Layer 0 as they represent core SQL concepts
that can be used by any layer without creating circular dependencies.

Enum member names always equal their values so that models configured
with ``use_enum_values`` compare and hash the same as the enum members.
"""

from enum import Enum


class QueryType(str, Enum):
    """SQL statement type enumeration.

    Defines the statements the BigQuery statement builder can render
    from operation models.

    Categories:
    - DML: INSERT, DELETE, MERGE, TRUNCATE
    - DDL: CREATE_TABLE, CREATE_VIEW, CLONE_TABLE, COPY_TABLE
    """

    # Data Manipulation (DML)
    INSERT = "INSERT"
    DELETE = "DELETE"
    MERGE = "MERGE"
    TRUNCATE = "TRUNCATE"

    # Data Definition (DDL) - Tables
    CREATE_TABLE = "CREATE_TABLE"
    CLONE_TABLE = "CLONE_TABLE"
    COPY_TABLE = "COPY_TABLE"

    # Data Definition (DDL) - Views
    CREATE_VIEW = "CREATE_VIEW"


class QueryMode(str, Enum):
    """Statement shape produced by the filter query builder."""

    SELECT = "SELECT"
    DELETE = "DELETE"
    PREVIEW = "PREVIEW"


class DataType(str, Enum):
    """Logical data types carried by protocol filters and ordering specs.

    Protocol values always travel as strings; the logical type tells the
    query builder how to cast them for comparison and sorting.
    """

    STRING = "STRING"
    INTEGER = "INTEGER"
    DOUBLE = "DOUBLE"
    BIGINT = "BIGINT"
    REAL = "REAL"
    DECIMAL = "DECIMAL"


class Operator(str, Enum):
    """Comparison operators accepted in where filters."""

    eq = "eq"
    ne = "ne"
    gt = "gt"
    ge = "ge"
    lt = "lt"
    le = "le"


class Order(str, Enum):
    """Sort direction."""

    ASC = "ASC"
    DESC = "DESC"


OPERATOR_SQL = {
    Operator.eq: "=",
    Operator.ne: "<>",
    Operator.gt: ">",
    Operator.ge: ">=",
    Operator.lt: "<",
    Operator.le: "<=",
}

MULTI_VALUE_OPERATOR_SQL = {
    Operator.eq: "IN",
    Operator.ne: "NOT IN",
}
