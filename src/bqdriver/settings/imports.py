"""Import, preview and sampling settings."""

from pydantic import Field, model_validator
from pydantic_settings import SettingsConfigDict

from .base import DriverBaseSettings


class ImportSettings(DriverBaseSettings):
    """Limits and naming used by imports and table previews."""

    model_config = SettingsConfigDict(
        env_prefix="IMPORT_",
        case_sensitive=False
    )

    staging_table_prefix: str = Field(
        default="__temp_",
        min_length=1,
        description="Prefix of staging table names"
    )
    large_table_threshold: int = Field(
        default=10_000,
        ge=0,
        description="Row count above which unfiltered previews are sampled"
    )
    default_sample_percent: int = Field(
        default=10,
        ge=1,
        le=100,
        description="Sample size of large table previews"
    )
    minimum_sample_percent: int = Field(
        default=1,
        ge=1,
        le=100,
        description="Sample size used when the preview limit is a small fraction of the table"
    )
    preview_default_limit: int = Field(
        default=100,
        ge=1,
        description="Preview row limit when the caller requests none"
    )
    preview_max_limit: int = Field(
        default=1000,
        ge=1,
        description="Largest preview row limit accepted"
    )
    truncate_length: int = Field(
        default=16384,
        ge=1,
        description="Characters kept from large values in previews"
    )

    @model_validator(mode="after")
    def validate_limits(self):
        if self.minimum_sample_percent > self.default_sample_percent:
            raise ValueError("minimum_sample_percent cannot exceed default_sample_percent")
        if self.preview_default_limit > self.preview_max_limit:
            raise ValueError("preview_default_limit cannot exceed preview_max_limit")
        return self
