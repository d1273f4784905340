"""Base operation definitions.

This module defines the base operation class that all database operations
inherit from. Operations are data structures that describe what statement
should be issued, independent of how it is rendered or executed.
"""

import re
from typing import Any, Dict, Optional

from pydantic import Field, field_validator

from bqdriver.constants.sql import QueryType
from bqdriver.types.base import DriverBaseModel


def _stringify(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


class BaseOperation(DriverBaseModel):
    """Base class for all database operations.

    Operations are pure data structures that describe WHAT to do,
    not HOW to do it. They are transformed into SQL by the statement
    builder and executed by the execution client.

    Attributes:
        operation_type: The type of operation to perform
        schema_name: BigQuery dataset name
        object_name: Name of the table or view
        logging_context: Extra key/values attached to telemetry
    """
    operation_type: QueryType
    schema_name: str = Field(..., min_length=1, max_length=1024)
    object_name: str = Field(..., min_length=1, max_length=1024)
    logging_context: Optional[dict] = Field(default_factory=dict, description="Extra key/values for logging/tracking")

    @field_validator('schema_name', 'object_name')
    @classmethod
    def validate_sql_identifier(cls, v: str, info) -> str:
        """Validate dataset and table identifiers to prevent injection."""
        if not re.match(r'^[A-Za-z0-9_][A-Za-z0-9_\-]*$', v):
            raise ValueError(
                f"Invalid {info.field_name}: '{v}'. "
                f"Must contain only letters, digits, underscores or dashes."
            )
        return v

    def telemetry_fields(self) -> Dict[str, str]:
        """Return flattened telemetry fields describing this operation."""
        payload: Dict[str, str] = {
            "operation.type": getattr(self.operation_type, "value", self.operation_type),
            "operation.schema": self.schema_name,
            "operation.object": self.object_name,
        }
        for key, value in (self.logging_context or {}).items():
            sanitized = _stringify(value)
            if sanitized is not None:
                payload[f"operation.ctx.{key}"] = sanitized
        return payload
