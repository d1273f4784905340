"""Type definitions for bqdriver.

This module provides the value objects used throughout the driver:
table and column definitions, filters, import options, resolved import
contexts, generated queries and the command/response models.
"""

from .base import DriverBaseModel, DriverValueModel
from .table import ColumnDefinition, TableDefinition, TableStats
from .filters import ExportFilters, OrderBy, WhereFilter, WhereRefTableFilter
from .imports import (
    ColumnMapping,
    ImportOptions,
    ImportResult,
    ImportSource,
    SelectSource,
    SourceContext,
    SourceTableMapping,
    TableReference,
    TableSource,
)
from .query import QueryBuilderResult, QueryResult

__all__ = [
    # Base models
    'DriverBaseModel',
    'DriverValueModel',
    # Tables
    'ColumnDefinition',
    'TableDefinition',
    'TableStats',
    # Filters
    'ExportFilters',
    'OrderBy',
    'WhereFilter',
    'WhereRefTableFilter',
    # Imports
    'ColumnMapping',
    'ImportOptions',
    'ImportResult',
    'ImportSource',
    'SelectSource',
    'SourceContext',
    'SourceTableMapping',
    'TableReference',
    'TableSource',
    # Queries
    'QueryBuilderResult',
    'QueryResult',
]
