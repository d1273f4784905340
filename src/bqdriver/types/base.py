"""Base model classes shared by commands, responses and definitions."""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict


class DriverBaseModel(BaseModel):
    """Base model for bqdriver commands and responses.

    Enum fields hold their string values, so models compare equal to the
    values received from callers and serialize without conversion.
    """
    model_config = ConfigDict(
        arbitrary_types_allowed=True,
        use_enum_values=True,
        validate_assignment=True
    )

    def to_dict(self) -> Dict[str, Any]:
        """JSON-ready representation, unset optional fields left out.

        Datetimes become ISO strings and nested models plain dictionaries.
        """
        return self.model_dump(mode="json", exclude_none=True)


class DriverValueModel(DriverBaseModel):
    """Immutable value object.

    Used for definitions and results that are built once per command
    invocation and must not change while the command runs.
    """
    model_config = ConfigDict(frozen=True)
