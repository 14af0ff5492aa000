"""Structured logging for the repository layer."""

from domain_repository.observability.logger import (
    get_logger,
    get_trace_id,
    new_trace_id,
    set_trace_id,
    setup_logging,
)

__all__ = [
    "get_logger",
    "get_trace_id",
    "new_trace_id",
    "set_trace_id",
    "setup_logging",
]
