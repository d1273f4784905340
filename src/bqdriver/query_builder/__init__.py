"""Query builder module for BigQuery SQL generation.

Query builders translate operations, filters and import sources into
GoogleSQL but do NOT execute queries; that is handled by the execution
client.

Architecture:
    - base.py: Quoting helpers and the abstract statement builder
    - bigquery.py: Statement builder for table operations (DDL/DML)
    - type_converter.py: Casts for logical protocol types
    - predicates.py: WHERE assembly and parameter naming
    - filter_builder.py: SELECT / DELETE / PREVIEW over one table
    - import_builder.py: Source SELECT of table-to-table imports

Design Principles:
    1. **SQL Generation Only**: Builders only generate SQL strings
    2. **Security First**: Identifiers are validated and back-tick quoted,
       values travel as ``@name`` parameters
    3. **Stateless**: Builders don't maintain state between calls

Example:
    >>> from bqdriver.query_builder import BigQueryQueryBuilder
    >>> from bqdriver.operations import TruncateTable
    >>>
    >>> builder = BigQueryQueryBuilder()
    >>> builder.build_query(TruncateTable(schema_name="sales", object_name="orders"))
    'TRUNCATE TABLE `sales`.`orders`'
"""

from bqdriver.query_builder.base import BaseQueryBuilder, SQLQuoting
from bqdriver.query_builder.bigquery import BigQueryQueryBuilder
from bqdriver.query_builder.filter_builder import FilterQueryBuilder, truncation_flag
from bqdriver.query_builder.import_builder import ImportQueryBuilder
from bqdriver.query_builder.predicates import PredicateBuilder, rewrite_placeholders
from bqdriver.query_builder.type_converter import TypeConverter

__all__ = [
    "BaseQueryBuilder",
    "SQLQuoting",
    "BigQueryQueryBuilder",
    "FilterQueryBuilder",
    "ImportQueryBuilder",
    "PredicateBuilder",
    "TypeConverter",
    "rewrite_placeholders",
    "truncation_flag",
]
