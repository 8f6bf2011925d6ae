"""Filters that prune and transform the collected bundle."""

from review_context.filters.paths import (
    BinaryFileFilter,
    ConfiguredPathFilter,
    PathRules,
    VendorPathFilter,
)
from review_context.filters.relevance import RelevanceFilter
from review_context.filters.sensitive import SensitiveDataFilter
from review_context.filters.token_limit import TokenLimitFilter

__all__ = [
    "BinaryFileFilter",
    "ConfiguredPathFilter",
    "PathRules",
    "RelevanceFilter",
    "SensitiveDataFilter",
    "TokenLimitFilter",
    "VendorPathFilter",
]
