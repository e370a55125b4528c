"""Parameter binding for SQL statements.

Components:
- ParameterStyle enum: positional placeholder markers understood by the adapters
- ParameterType enum: wire type tag inferred per argument
- TypedParameter: value paired with its inferred tag
- BoundParameters: ordered, typed parameter set for a prepared statement
- normalize_placeholders / count_placeholders: placeholder rewriting that
  leaves quoted strings and comments untouched
"""

import re
from collections.abc import Callable, Sequence
from enum import Enum
from functools import singledispatch
from typing import Any, Final, NamedTuple

from mypy_extensions import mypyc_attr

from sqlrunner.utils.serializers import to_json

__all__ = (
    "BoundParameters",
    "ParameterStyle",
    "ParameterType",
    "TypedParameter",
    "bind_parameters",
    "coerce_parameter",
    "count_placeholders",
    "infer_parameter_type",
    "normalize_placeholders",
)


_PLACEHOLDER_REGEX: Final = re.compile(
    r"""
    (?P<dquote>"(?:[^"\\]|\\.)*") |
    (?P<squote>'(?:[^'\\]|\\.)*') |
    (?P<backtick>`[^`]*`) |
    (?P<line_comment>(?:--|\#)[^\r\n]*) |
    (?P<block_comment>/\*(?:[^*]|\*(?!/))*\*/) |
    (?P<escaped_percent>%%) |
    (?P<pyformat_pos>%s) |
    (?P<qmark>\?)
    """,
    re.VERBOSE | re.MULTILINE | re.DOTALL,
)


class ParameterStyle(str, Enum):
    """Positional placeholder styles.

    - QMARK: ? placeholders
    - POSITIONAL_PYFORMAT: %s placeholders
    """

    QMARK = "qmark"
    POSITIONAL_PYFORMAT = "pyformat_positional"

    @property
    def marker(self) -> str:
        return "?" if self is ParameterStyle.QMARK else "%s"


class ParameterType(str, Enum):
    """Wire type tag for a bound parameter."""

    FLOAT = "d"
    INTEGER = "i"
    STRING = "s"
    BINARY = "b"


@singledispatch
def infer_parameter_type(value: Any) -> ParameterType:
    """Infer the wire type tag of ``value``.

    Anything that is not a float, an integer or a string falls back to
    :attr:`ParameterType.BINARY`.
    """
    return ParameterType.BINARY


@infer_parameter_type.register
def _(value: float) -> ParameterType:
    return ParameterType.FLOAT


@infer_parameter_type.register
def _(value: int) -> ParameterType:
    return ParameterType.INTEGER


@infer_parameter_type.register
def _(value: bool) -> ParameterType:
    # bool subclasses int but is not an integer parameter
    return ParameterType.BINARY


@infer_parameter_type.register
def _(value: str) -> ParameterType:
    return ParameterType.STRING


_TYPE_COERCION_MAP: "Final[dict[type, Callable[[Any], Any]]]" = {
    bool: int,
    dict: to_json,
    list: to_json,
    tuple: lambda v: to_json(list(v)),
}


def coerce_parameter(value: Any) -> Any:
    """Convert ``value`` into something every DB-API driver accepts."""
    converter = _TYPE_COERCION_MAP.get(type(value))
    if converter is None:
        return value
    return converter(value)


@mypyc_attr(allow_interpreted_subclasses=False)
class TypedParameter:
    """Parameter value paired with its inferred wire type.

    Attributes:
        value: The parameter value as supplied by the caller
        parameter_type: The inferred type tag
    """

    __slots__ = ("parameter_type", "value")

    def __init__(self, value: Any, parameter_type: "ParameterType | None" = None) -> None:
        self.value = value
        self.parameter_type = parameter_type or infer_parameter_type(value)

    @property
    def driver_value(self) -> Any:
        return coerce_parameter(self.value)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, TypedParameter):
            return False
        return self.parameter_type is other.parameter_type and self.value == other.value

    def __hash__(self) -> int:
        return hash(self.parameter_type)

    def __repr__(self) -> str:
        return f"TypedParameter({self.value!r}, {self.parameter_type.value!r})"


class BoundParameters(NamedTuple):
    """Ordered parameter set ready for a prepared statement.

    Attributes:
        type_tags: One tag character per parameter, in order (e.g. ``"disb"``)
        parameters: The typed parameters, in the order they were given
    """

    type_tags: str
    parameters: "tuple[TypedParameter, ...]"

    @property
    def values(self) -> "tuple[Any, ...]":
        return tuple(parameter.driver_value for parameter in self.parameters)


def bind_parameters(args: "Sequence[Any]") -> BoundParameters:
    """Classify every argument and build the typed parameter set.

    Values are classified only; no range or length validation happens here.

    Args:
        args: Untyped argument values in placeholder order.

    Returns:
        The tag string and the typed parameters, in the same order as ``args``.
    """
    parameters = tuple(TypedParameter(arg) for arg in args)
    return BoundParameters("".join(parameter.parameter_type.value for parameter in parameters), parameters)


def normalize_placeholders(sql: str, style: ParameterStyle) -> str:
    """Rewrite positional placeholders to the marker of ``style``.

    Both ``?`` and ``%s`` are recognised; markers inside quoted strings,
    quoted identifiers and comments are left alone.
    """
    if "?" not in sql and "%s" not in sql:
        return sql
    marker = style.marker

    def _replace(match: "re.Match[str]") -> str:
        kind = match.lastgroup
        if kind in {"qmark", "pyformat_pos"}:
            return marker
        return match.group(0)

    return _PLACEHOLDER_REGEX.sub(_replace, sql)


def count_placeholders(sql: str) -> int:
    """Count positional placeholders outside strings and comments."""
    return sum(1 for match in _PLACEHOLDER_REGEX.finditer(sql) if match.lastgroup in {"qmark", "pyformat_pos"})
