"""Table-to-table import pipeline.

The pipeline resolves the source, resolves or creates the destination,
picks a load strategy, stages rows and merges them into the destination.
``ImportOrchestrator`` drives the whole flow for one command.
"""

from bqdriver.imports.destination_resolver import DestinationResolver, columns_compatible
from bqdriver.imports.merge import MergeEngine
from bqdriver.imports.orchestrator import ImportOrchestrator
from bqdriver.imports.source_resolver import SourceResolver
from bqdriver.imports.staging import (
    StagingOrchestrator,
    decide_load_strategy,
    generate_staging_table_name,
    staging_table,
    staging_table_definition,
)
from bqdriver.imports.timers import ImportTimers

__all__ = [
    "ImportOrchestrator",
    "SourceResolver",
    "DestinationResolver",
    "columns_compatible",
    "StagingOrchestrator",
    "decide_load_strategy",
    "generate_staging_table_name",
    "staging_table",
    "staging_table_definition",
    "MergeEngine",
    "ImportTimers",
]
