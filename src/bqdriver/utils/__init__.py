"""Utility functions and helpers for bqdriver.

This module provides common utility functions used throughout the package.
"""

from bqdriver.utils.decorators import (
    retry,
    retry_with_backoff,
    traced,
)

__all__ = [
    # Decorators
    "retry",
    "retry_with_backoff",
    "traced",
]
