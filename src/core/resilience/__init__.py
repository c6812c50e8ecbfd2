"""
Resilience patterns module.

Components:
    - RetryConfig / retry_async: Linear backoff for transient failures
    - AdmissionGate: FIFO bounded-concurrency gate
"""

from .admission_gate import AdmissionGate
from .retry import (
    DEFAULT_RETRY,
    RetryConfig,
    RetryStats,
    retry_async,
)

__all__ = [
    # Admission gate
    "AdmissionGate",
    # Retry
    "RetryConfig",
    "RetryStats",
    "retry_async",
    "DEFAULT_RETRY",
]
