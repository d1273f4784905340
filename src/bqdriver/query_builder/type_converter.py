"""Cast expressions for logical protocol types."""

from bqdriver.common.exceptions import UnsupportedTypeError
from bqdriver.constants.sql import DataType

# Logical type -> BigQuery type used in SAFE_CAST. STRING is never cast.
SQL_TYPES = {
    DataType.INTEGER: "INT64",
    DataType.DOUBLE: "NUMERIC",
    DataType.REAL: "NUMERIC",
    DataType.BIGINT: "BIGINT",
    DataType.DECIMAL: "DECIMAL",
}

SUPPORTED_TYPES = "|".join(data_type.value for data_type in DataType)


class TypeConverter:
    """Renders a column reference cast to a logical type.

    Used by filter comparison and ORDER BY generation so that numeric
    values stored in STRING columns compare numerically.
    """

    @staticmethod
    def is_supported(logical_type: str) -> bool:
        return logical_type.upper() in DataType.__members__

    @classmethod
    def cast_expression(cls, table_alias: str, column_name: str, logical_type: str) -> str:
        """Return `` `alias`.`column` `` wrapped in SAFE_CAST when needed.

        Raises:
            UnsupportedTypeError: If ``logical_type`` is not a known logical type.
        """
        reference = f"`{table_alias}`.`{column_name}`"
        return cls.cast_value(reference, logical_type)

    @classmethod
    def cast_value(cls, expression: str, logical_type: str) -> str:
        """Wrap any SQL expression in SAFE_CAST to ``logical_type``."""
        if not cls.is_supported(logical_type):
            raise UnsupportedTypeError(
                f"Data type {logical_type} not recognized. "
                f"Possible datatypes are [{SUPPORTED_TYPES}]",
                details={"data_type": logical_type},
            )

        data_type = DataType(logical_type.upper())
        if data_type == DataType.STRING:
            return expression
        return f"SAFE_CAST({expression} AS {SQL_TYPES[data_type]})"
