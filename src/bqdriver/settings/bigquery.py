"""BigQuery connection settings.

This module contains only the configuration needed to create a BigQuery
client. The client itself is created by ``bqdriver.compute.factory``.
"""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import SettingsConfigDict

from .base import DriverBaseSettings


class BigQuerySettings(DriverBaseSettings):
    """Configuration settings for the BigQuery execution client.

    Note: Retry settings (max_retries, retry_delay_seconds) are inherited
    from DriverBaseSettings.
    """

    model_config = SettingsConfigDict(
        env_prefix="BIGQUERY_",
        case_sensitive=False
    )

    project_id: Optional[str] = Field(
        None,
        description="GCP project the jobs run in, None uses the credentials' project"
    )
    location: Optional[str] = Field(
        None,
        description="BigQuery location (e.g., US, EU, europe-west1)"
    )
    credentials_file: Optional[str] = Field(
        None,
        description="Service account JSON key file, None uses application default credentials"
    )
    job_timeout_seconds: float = Field(
        default=3600.0,
        gt=0,
        description="Maximum time to wait for a query job to finish"
    )
    backoff_cap_seconds: float = Field(
        default=60.0,
        gt=0,
        description="Upper bound of the exponential backoff between retries"
    )
    default_dataset: Optional[str] = Field(
        None,
        description="Dataset used to resolve unqualified table names"
    )

    @field_validator("location")
    @classmethod
    def validate_location(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            raise ValueError("location cannot be empty")
        return v.strip() if v else v

    @property
    def uses_service_account_file(self) -> bool:
        return bool(self.credentials_file)
