"""Statement classification by leading keyword."""

import re
from enum import Enum
from typing import Final, Optional

import sqlglot
from sqlglot.errors import TokenError

from sqlrunner.utils.logging import get_logger

__all__ = ("StatementKind", "classify")

logger = get_logger("core.classifier")

_LEADING_KEYWORD: Final = re.compile(r"^\s*([A-Za-z]+)(?=\s)")
_LEADING_COMMENT: Final = re.compile(r"^\s*(?:--|#|/\*)")

_ROW_RETURNING_KEYWORDS: Final = frozenset({
    "DESC",
    "DESCRIBE",
    "EXPLAIN",
    "PRAGMA",
    "SELECT",
    "SHOW",
    "TABLE",
    "VALUES",
    "WITH",
})


class StatementKind(str, Enum):
    """Closed set of statement kinds the executor distinguishes."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"
    REPLACE = "REPLACE"
    SELECT = "SELECT"
    OTHER = "OTHER"

    @property
    def is_mutating(self) -> bool:
        return self in _MUTATING_KINDS

    @property
    def returns_insert_id(self) -> bool:
        """Only INSERT and REPLACE generate a new identifier."""
        return self in {StatementKind.INSERT, StatementKind.REPLACE}

    def __str__(self) -> str:
        return self.value


_MUTATING_KINDS: Final = frozenset({
    StatementKind.INSERT,
    StatementKind.UPDATE,
    StatementKind.DELETE,
    StatementKind.REPLACE,
})


def _keyword_after_comments(sql: str) -> "Optional[str]":
    try:
        tokens = sqlglot.tokenize(sql, read="mysql")
    except TokenError:
        logger.debug("Could not tokenize statement for classification", exc_info=True)
        return None
    if len(tokens) < 2:
        return None
    return tokens[0].text


def _keyword_to_kind(keyword: str) -> StatementKind:
    keyword = keyword.upper()
    if keyword in StatementKind.__members__ and keyword not in {"SELECT", "OTHER"}:
        return StatementKind[keyword]
    if keyword in _ROW_RETURNING_KEYWORDS:
        return StatementKind.SELECT
    return StatementKind.OTHER


def classify(sql: str) -> StatementKind:
    """Classify ``sql`` by its leading keyword.

    The match is case-insensitive, ignores leading whitespace and requires the
    keyword to be followed by whitespace. Leading comments are skipped.

    Args:
        sql: The statement text.

    Returns:
        The statement kind.
    """
    match = _LEADING_KEYWORD.match(sql)
    if match is not None:
        return _keyword_to_kind(match.group(1))
    if _LEADING_COMMENT.match(sql):
        keyword = _keyword_after_comments(sql)
        if keyword is not None:
            return _keyword_to_kind(keyword)
    return StatementKind.OTHER
