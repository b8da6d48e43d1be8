"""
.. module:: parameters
   :platform: Unix, Windows, MacOSX
   :synopsis: Statement parameters, parameter markers and sp_executesql requests
"""
from __future__ import annotations

import collections.abc
import functools
import typing
from typing import Any

from . import tds_base
from .tds_types import SqlTypeMetaclass, TypeInferrer, ucs2_length

PARAMSTYLES = ("numeric", "named")

SP_EXECUTESQL = "sp_executesql"

_NAME_CHARS = frozenset(
    "abcdefghijklmnopqrstuvwxyzABCDEFGHIJKLMNOPQRSTUVWXYZ0123456789_"
)
_DIGITS = frozenset("0123456789")


@functools.total_ordering
class Parameter:
    """
    Wraps a parameter value, used to pass OUTPUT parameters to stored procedures
    and parametrized statements.

    :param value: parameter value, can also be an instance of :class:`SqlType`
    :param output: whether parameter is an OUTPUT parameter
    """

    def __init__(self, value: Any, output: bool = False):
        self._value = value
        self._output = bool(output)

    @property
    def value(self) -> Any:
        return self._value

    @property
    def output(self) -> bool:
        return self._output

    def __repr__(self):
        if self._output:
            return "Parameter({!r}, output=True)".format(self._value)
        return "Parameter({!r})".format(self._value)

    def __eq__(self, other):
        if isinstance(other, Parameter):
            other = other.value
        return self._value == other

    def __lt__(self, other):
        if isinstance(other, Parameter):
            other = other.value
        return self._value < other

    __hash__ = None  # type: ignore


class BoundResult:
    """
    What became of a bound parameter after execution: ``BoundResult.Input``
    for input parameters, ``BoundResult.Output(value)`` for OUTPUT parameters
    whose value was returned by the server.
    """

    Input: typing.ClassVar[BoundResult]
    Output: typing.ClassVar[typing.Type[_Output]]

    is_output = False


class _Input(BoundResult):
    def __repr__(self):
        return "BoundResult.Input"


class _Output(BoundResult):
    is_output = True

    def __init__(self, value: Any):
        self.value = value

    def __eq__(self, other):
        return isinstance(other, _Output) and self.value == other.value

    def __hash__(self):
        return hash(("output", repr(self.value)))

    def __repr__(self):
        return "BoundResult.Output({!r})".format(self.value)


BoundResult.Input = _Input()
BoundResult.Output = _Output


class BoundParameter(typing.NamedTuple):
    """
    Parameter ready to be sent to the server
    """

    name: str
    sql_type: SqlTypeMetaclass
    value: Any
    output: bool
    # maximum length reported for variable length types, -1 otherwise
    size: int

    @property
    def declaration(self) -> str:
        decl = "{} {}".format(self.name, self.sql_type.get_declaration())
        if self.output:
            decl += " OUTPUT"
        return decl


class Request(typing.NamedTuple):
    """
    Statement prepared for submission. Plain SQL batches have no procedure name.
    """

    sql: str
    procname: str | None = None
    parameters: list[BoundParameter] = []
    # position of the first user parameter in `parameters`
    first_param: int = 0

    @property
    def is_rpc(self) -> bool:
        return self.procname is not None


def bind_parameter(
    inferrer: TypeInferrer, name: str, value: Any, minimize_types: bool = True
) -> BoundParameter:
    output = False
    if isinstance(value, Parameter):
        output = value.output
        value = value.value
    bound = inferrer.bind(value, minimize_types=minimize_types)
    return BoundParameter(
        name=name,
        sql_type=bound.sql_type,
        value=bound.value,
        output=output,
        size=bound.size,
    )


def parse_markers(sql: str, paramstyle: str) -> list[tuple[int, int, int | str]]:
    """
    Finds parameter markers in a statement, ignoring text of string literals.

    :returns: list of tuples (start, end, key) where key is a parameter index
      for numeric paramstyle or a parameter name for named paramstyle
    :raises InterfaceError: for a marker without index or name
    """
    markers: list[tuple[int, int, int | str]] = []
    allowed = _DIGITS if paramstyle == "numeric" else _NAME_CHARS
    in_literal = False
    pos = 0
    length = len(sql)
    while pos < length:
        ch = sql[pos]
        if ch == "'":
            in_literal = not in_literal
            pos += 1
        elif ch == ":" and not in_literal:
            end = pos + 1
            while end < length and sql[end] in allowed:
                end += 1
            if end == pos + 1:
                raise tds_base.InterfaceError("invalid parameter marker")
            token = sql[pos + 1 : end]
            key: int | str = int(token) if paramstyle == "numeric" else token
            markers.append((pos, end, key))
            pos = end
        else:
            pos += 1
    return markers


def build_request(
    sql: str,
    parameters: typing.Sequence[Any] | typing.Mapping[str, Any] | None,
    paramstyle: str,
    inferrer: TypeInferrer,
    minimize_types: bool = True,
) -> Request:
    """
    Turns a statement with parameter markers into a ``sp_executesql`` call.
    Without parameters the statement is sent unchanged as a plain SQL batch.
    """
    if parameters is None:
        return Request(sql)
    if paramstyle == "named":
        if not isinstance(parameters, collections.abc.Mapping):
            raise TypeError(
                "parameters must be a mapping for named paramstyle, got {}".format(
                    type(parameters).__name__
                )
            )
    elif isinstance(parameters, (str, bytes)) or not isinstance(
        parameters, collections.abc.Sequence
    ):
        raise TypeError(
            "parameters must be a sequence for numeric paramstyle, got {}".format(
                type(parameters).__name__
            )
        )

    markers = parse_markers(sql, paramstyle)
    if not markers and not parameters:
        return Request(sql)

    pieces = []
    last = 0
    for start, end, key in markers:
        pieces.append(sql[last:start])
        if paramstyle == "numeric":
            assert isinstance(key, int)
            if key >= len(parameters):
                raise IndexError(str(key))
            pieces.append("@param{}".format(key))
        else:
            if key not in parameters:
                raise LookupError('unknown named parameter "{}"'.format(key))
            pieces.append("@{}".format(key))
        last = end
    pieces.append(sql[last:])
    stmt = "".join(pieces)

    if isinstance(parameters, collections.abc.Mapping):
        named = [("@{}".format(name), value) for name, value in parameters.items()]
    else:
        named = [
            ("@param{}".format(i), value) for i, value in enumerate(parameters)
        ]
    bound = [
        bind_parameter(inferrer, name, value, minimize_types) for name, value in named
    ]
    declarations = ", ".join(param.declaration for param in bound)
    header = [
        _bind_text(inferrer, "@stmt", stmt),
        _bind_text(inferrer, "@params", declarations),
    ]
    return Request(
        sql=stmt,
        procname=SP_EXECUTESQL,
        parameters=header + bound,
        first_param=len(header),
    )


def _bind_text(inferrer: TypeInferrer, name: str, text: str) -> BoundParameter:
    bound = inferrer.bind_nvarchar(text, ucs2_length(text))
    return BoundParameter(name, bound.sql_type, bound.value, False, bound.size)


def build_procedure_request(
    procname: str,
    parameters: typing.Sequence[Any] | typing.Mapping[str, Any],
    inferrer: TypeInferrer,
) -> Request:
    """
    Stored procedure call, parameters are passed either by position (a tuple)
    or by name (a dict with keys starting with ``@``).
    """
    if isinstance(parameters, dict):
        bound = []
        for name, value in parameters.items():
            if not isinstance(name, str) or not name.startswith("@") or len(name) < 2:
                raise tds_base.InterfaceError(
                    'invalid parameter name "{}"'.format(name)
                )
            bound.append(bind_parameter(inferrer, name, value))
    elif isinstance(parameters, tuple):
        bound = [bind_parameter(inferrer, "", value) for value in parameters]
    else:
        raise TypeError(
            "parameters must be a tuple or a dict, got {}".format(
                type(parameters).__name__
            )
        )
    return Request(sql=procname, procname=procname, parameters=bound, first_param=0)


def resolve_results(
    request: Request, outputs: dict[int, Any]
) -> list[BoundResult]:
    """
    Pairs user parameters of a request with OUTPUT values returned by the server.

    :param outputs: returned values keyed by position in ``request.parameters``
    """
    results: list[BoundResult] = []
    for pos in range(request.first_param, len(request.parameters)):
        if request.parameters[pos].output and pos in outputs:
            results.append(BoundResult.Output(outputs[pos]))
        else:
            results.append(BoundResult.Input)
    return results
