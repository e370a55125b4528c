"""Binding, classification, results and caching used by the executor."""

from sqlrunner.core.cache import CacheKey, CacheStore, DiskCacheStore, QueryCache, UnifiedCache, make_cache_key
from sqlrunner.core.classifier import StatementKind, classify
from sqlrunner.core.parameters import (
    BoundParameters,
    ParameterStyle,
    ParameterType,
    TypedParameter,
    bind_parameters,
    count_placeholders,
    infer_parameter_type,
    normalize_placeholders,
)
from sqlrunner.core.result import (
    Column,
    ColumnInfo,
    ExecutionFailure,
    MutationResult,
    QueryOutcome,
    SelectResult,
    StatementResult,
    build_select_result,
)

__all__ = (
    "BoundParameters",
    "CacheKey",
    "CacheStore",
    "Column",
    "ColumnInfo",
    "DiskCacheStore",
    "ExecutionFailure",
    "MutationResult",
    "ParameterStyle",
    "ParameterType",
    "QueryCache",
    "QueryOutcome",
    "SelectResult",
    "StatementKind",
    "StatementResult",
    "TypedParameter",
    "UnifiedCache",
    "bind_parameters",
    "build_select_result",
    "classify",
    "count_placeholders",
    "infer_parameter_type",
    "make_cache_key",
    "normalize_placeholders",
)
