"""Protocol definitions for bqdriver.

This module contains protocol definitions that define contracts for
the components reaching BigQuery. Protocols provide type-safe interfaces
without requiring inheritance, following Python's structural subtyping
(duck typing with type hints).
"""

from .execution import ExecutionClient

__all__ = [
    "ExecutionClient",
]
