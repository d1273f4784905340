"""Settings module providing configuration management for bqdriver.

Configuration is built on Pydantic Settings and split into domain-specific
files, each handling one aspect of the driver configuration.

Architecture:
    1. Base Layer (base.py):
       - DriverBaseSettings: Base class with common functionality

    2. Domain Settings:
       - bigquery.py: Project, location, credentials and job timeouts
       - imports.py: Staging naming, preview limits and sampling

    3. Main Aggregator (main.py):
       - _Settings: Aggregates all domain settings
       - get_settings(): Singleton factory function
       - _reload_settings(): Force reload from environment

Configuration Sources (precedence order):
    1. Environment Variables (highest priority)
    2. ``.env`` file
    3. Default Values in code (lowest priority)

Environment Variable Naming:
    - Format: [PREFIX_]SETTING_NAME
    - Prefixes: BIGQUERY_, IMPORT_
    - Nested: Use double underscore __ (e.g., BIGQUERY__LOCATION)

Quick Start:
    >>> from bqdriver.settings import get_settings
    >>>
    >>> settings = get_settings()
    >>> settings.bigquery.job_timeout_seconds
    3600.0
    >>> settings.imports.large_table_threshold
    10000
"""

# Main settings and functions
from .main import _Settings, get_settings, _reload_settings

# Base classes
from .base import DriverBaseSettings

# Domain-specific settings
from .bigquery import BigQuerySettings
from .imports import ImportSettings

__all__ = [
    "get_settings",
    "DriverBaseSettings",
    "BigQuerySettings",
    "ImportSettings",
]
