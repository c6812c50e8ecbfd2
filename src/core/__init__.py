"""
Core library: Reusable, domain-agnostic components.

Modules:
    auth        - Bearer credential caching with single-flight refresh
    resilience  - Linear-backoff retry, FIFO admission gate
    logging     - Structured JSON logging with correlation IDs
    errors      - Error classification and exception hierarchy
    download    - Async HTTP download logic

Design Principles:
    - No dependencies on the secure asset domain layer
    - All modules are independently testable
    - Async-first where applicable
"""

from .types import CredentialSource, ErrorCategory

__version__ = "0.1.0"

__all__ = [
    "ErrorCategory",
    "CredentialSource",
]
