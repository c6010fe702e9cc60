"""Utility modules for infrastructure layer"""

from . import datetime_utils
from .retry import RetryResult, calculate_retry_delay, linear_backoff, retry_until_found

__all__ = [
    "datetime_utils",
    "RetryResult",
    "calculate_retry_delay",
    "linear_backoff",
    "retry_until_found",
]
