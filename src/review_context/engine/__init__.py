"""Context engine and its collector/filter contracts."""

from review_context.engine.base import (
    BuildParams,
    ContextCollector,
    ContextFilter,
    has_pull_request_params,
)
from review_context.engine.engine import ContextEngine

__all__ = [
    "BuildParams",
    "ContextCollector",
    "ContextEngine",
    "ContextFilter",
    "has_pull_request_params",
]
