"""
This module implements the Cursor class
"""
from __future__ import annotations

import collections.abc
import enum
import typing
from typing import Any, Iterable, Iterator

from . import tds_base, tds_types
from .parameters import (
    Request,
    build_procedure_request,
    build_request,
    resolve_results,
)
from .rows import ColumnIndex, Row, RowList
from .tds_base import logger
from .tds_types import ColumnDescription

if typing.TYPE_CHECKING:
    from .connection import Connection
    from .tds_session import Session


class CursorState(enum.Enum):
    #: created, nothing was executed yet
    UNUSED = 0
    #: request submitted, first result was not read yet
    EXECUTING = 1
    #: positioned on a result set which has columns
    HAS_RESULTS = 2
    #: response fully consumed
    EXHAUSTED = 3
    CLOSED = 4


class Cursor:
    """
    Database cursor, created by :meth:`Connection.cursor`

    Cursor is used to execute statements and to iterate over
    result sets they produce.
    """

    _cursor_closed_exception = tds_base.InterfaceError("cursor closed")

    def __init__(self, connection: Connection):
        self._connection = connection
        self._state = CursorState.UNUSED
        self._arraysize = 1
        self._description: tuple[ColumnDescription, ...] | None = None
        self._column_index: ColumnIndex | None = None
        self._converter = None
        self._rownumber: int | None = None
        self._rowcount = -1
        self._rowcount_reliable = True
        self._return_value: int | None = None
        self._messages: list[tds_base.Message] = []

    def __enter__(self) -> Cursor:
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __iter__(self) -> Iterator[Row]:
        return self

    def __next__(self) -> Row:
        row = self.fetchone()
        if row is None:
            raise StopIteration
        return row

    def _check(self) -> Session:
        if self._state is CursorState.CLOSED:
            raise self._cursor_closed_exception
        return self._connection._check_usable()

    def _reset(self, state: CursorState = CursorState.UNUSED) -> None:
        self._state = state
        self._description = None
        self._column_index = None
        self._converter = None
        self._rownumber = None

    def _detach(self) -> None:
        """
        Called by connection when another cursor starts a statement,
        unread results of this cursor are lost.
        """
        if self._state is not CursorState.CLOSED:
            self._reset()

    def _connection_closing(self) -> None:
        self._reset()

    @property
    def connection(self) -> Connection:
        """
        Connection this cursor was created from
        """
        return self._connection

    @property
    def description(self) -> tuple[ColumnDescription, ...] | None:
        """
        Description of columns of the current result set, ``None`` if
        there is no result set.
        Each entry is a :class:`tds_types.ColumnDescription` tuple.
        """
        self._check()
        return self._description

    @property
    def rowcount(self) -> int:
        """
        Number of rows affected by the last statement or -1
        if it's not known.

        Check :attr:`rowcount_reliable` after parametrized statements and
        stored procedure calls.
        """
        self._check()
        return self._rowcount

    @property
    def rowcount_reliable(self) -> bool:
        """
        Whether :attr:`rowcount` can be trusted for the last execution.

        Row counts of parametrized statements, which are executed as
        remote procedure calls, are not reported by servers using
        TDS protocol older than 7.2.
        """
        self._check()
        return self._rowcount_reliable

    @property
    def rownumber(self) -> int | None:
        """
        Index of the next row in the current result set, ``None`` if
        there is no result set
        """
        self._check()
        if self._description is None:
            return None
        return self._rownumber

    @property
    def arraysize(self) -> int:
        return self._arraysize

    @arraysize.setter
    def arraysize(self, value: int) -> None:
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError("arraysize must be an int")
        self._arraysize = value

    @property
    def return_value(self) -> int | None:
        """
        Value returned by ``RETURN`` statement of the last called
        stored procedure, available after all it's result sets were read
        """
        self._check()
        return self._return_value

    @property
    def spid(self) -> int | None:
        self._check()
        return self._connection.spid

    @property
    def messages(self) -> list[tds_base.Message]:
        """
        Messages received during the last statement executed by this cursor
        """
        self._check()
        return list(self._messages)

    def setinputsizes(self, sizes: Any = None) -> None:
        """
        This method does nothing, as permitted by DB-API specification.
        """
        self._check()

    def setoutputsize(self, size: Any = None, column: int = 0) -> None:
        """
        This method does nothing, as permitted by DB-API specification.
        """
        self._check()

    def close(self) -> None:
        """
        Closes the cursor. The cursor is unusable from this point.
        """
        if self._state is CursorState.CLOSED:
            return
        logger.debug("Closing cursor")
        self._reset(CursorState.CLOSED)
        self._connection._release_cursor(self)

    #
    # execution
    #
    def _begin(self) -> Session:
        self._check()
        session = self._connection._begin_statement(self)
        self._messages = self._connection._messages
        self._reset()
        self._rowcount = -1
        self._return_value = None
        return session

    def _submit(self, session: Session, request: Request) -> None:
        conn = self._connection
        if request.is_rpc:
            assert request.procname is not None
            logger.info("Calling %s", request.procname)
            conn._call(session.submit_rpc, request.procname, request.parameters)
            self._rowcount_reliable = tds_base.IS_TDS72_PLUS(session.tds_version)
        else:
            logger.info("Executing %s", request.sql[:100])
            conn._call(session.submit_query, request.sql)
            self._rowcount_reliable = True
        self._state = CursorState.EXECUTING

    def _next_result(self, session: Session) -> bool:
        """
        Moves to the next result set which has columns.

        :returns: False when the response is complete
        """
        while True:
            columns = self._connection._call(session.next_result)
            if columns is None:
                self._finish(session)
                return False
            self._rowcount = session.rowcount
            if columns:
                self._set_columns(session, columns)
                return True

    def _set_columns(self, session: Session, columns: list[tds_base.Column]) -> None:
        normalized = [
            tds_types.normalize_column(col, session.tds_version) for col in columns
        ]
        self._description = tuple(tds_types.describe_column(col) for col in normalized)
        self._column_index = ColumnIndex([col.name for col in normalized])
        self._converter = tds_types.row_converter(normalized)
        self._rownumber = 0
        self._state = CursorState.HAS_RESULTS

    def _finish(self, session: Session) -> None:
        self._reset(CursorState.EXHAUSTED)
        self._rowcount = session.rowcount
        self._return_value = session.return_status

    def _run(self, session: Session, request: Request) -> None:
        try:
            self._submit(session, request)
            self._next_result(session)
        except BaseException:
            self._reset()
            raise

    def execute(
        self,
        operation: str,
        params: typing.Sequence[Any] | typing.Mapping[str, Any] | None = None,
    ) -> None:
        """
        Execute an operation.

        :param operation: SQL statement, parameters are referenced with
          ``:N`` markers for numeric paramstyle or ``:name`` for named paramstyle
        :param params: sequence or mapping of parameter values, if omitted
          the statement is sent as is
        """
        session = self._begin()
        try:
            request = build_request(
                operation,
                params,
                self._connection.paramstyle,
                self._connection._inferrer,
            )
        except BaseException:
            self._reset()
            raise
        self._run(session, request)

    def executemany(
        self,
        operation: str,
        params_seq: Iterable[typing.Sequence[Any] | typing.Mapping[str, Any]],
    ) -> None:
        """
        Execute an operation once for every item of `params_seq`.

        All items should be of the same kind and have the same number of parameters.
        Results are discarded, :attr:`rowcount` is the total number of affected rows.
        """
        session = self._begin()
        items = list(params_seq)
        named = self._connection.paramstyle == "named"
        kind = "mapping" if named else "sequence"
        expected = None
        for num, item in enumerate(items):
            if named:
                valid = isinstance(item, collections.abc.Mapping)
            else:
                valid = isinstance(
                    item, collections.abc.Sequence
                ) and not isinstance(item, (str, bytes))
            if not valid:
                raise TypeError("invalid parameter {} item {}".format(kind, num))
            if expected is None:
                expected = len(item)
            elif len(item) != expected:
                raise tds_base.InterfaceError(
                    "unexpected parameter count in {} item {}".format(kind, num)
                )
        inferrer = self._connection._inferrer
        requests = [
            build_request(operation, item, self._connection.paramstyle, inferrer, False)
            for item in items
        ]
        total = -1
        reliable = True
        try:
            for request in requests:
                self._submit(session, request)
                reliable = reliable and self._rowcount_reliable
                while self._next_result(session):
                    self._discard_rows(session)
                if self._rowcount >= 0:
                    total = max(total, 0) + self._rowcount
        except BaseException:
            self._reset()
            raise
        self._rowcount = total
        self._rowcount_reliable = reliable

    def callproc(
        self,
        procname: str,
        parameters: tuple[Any, ...] | dict[str, Any] = (),
    ) -> tuple[Any, ...] | dict[str, Any]:
        """
        Call a stored procedure.

        :param procname: name of the procedure
        :param parameters: tuple of positional parameters or a dict of
          named parameters, names should start with ``@``.
          OUTPUT parameters are passed as :class:`tdsbind.Parameter` with
          ``output=True``.
        :returns: copy of `parameters` with OUTPUT parameters replaced by
          values returned by the procedure
        """
        session = self._begin()
        try:
            request = build_procedure_request(
                procname, parameters, self._connection._inferrer
            )
        except BaseException:
            self._reset()
            raise
        self._run(session, request)

        has_outputs = any(p.output for p in request.parameters)
        if self._state is CursorState.HAS_RESULTS:
            if has_outputs:
                self._connection._client_warning(
                    "output parameters are not supported with result sets"
                )
            return _copy_params(parameters)

        results = resolve_results(request, session.output_params())
        if isinstance(parameters, dict):
            return {
                name: result.value if result.is_output else value
                for (name, value), result in zip(parameters.items(), results)
            }
        return tuple(
            result.value if result.is_output else value
            for value, result in zip(parameters, results)
        )

    #
    # fetching
    #
    def _check_results(self) -> Session:
        session = self._check()
        if self._description is None:
            raise tds_base.InterfaceError("no results")
        return session

    def _read_row(self, session: Session) -> list[Any] | None:
        if self._state is not CursorState.HAS_RESULTS:
            return None
        values = self._connection._call(session.fetch_row)
        if values is None:
            self._rowcount = session.rowcount
            return None
        assert self._converter is not None
        self._rownumber = (self._rownumber or 0) + 1
        return self._converter(values)

    def _discard_rows(self, session: Session) -> None:
        while self._read_row(session) is not None:
            pass

    def fetchone(self) -> Row | None:
        """
        Fetch next row of the current result set

        :returns: :class:`Row` or ``None`` when the result set is exhausted
        """
        session = self._check_results()
        values = self._read_row(session)
        if values is None:
            return None
        assert self._column_index is not None
        return Row(self._column_index, values)

    def fetchmany(self, size: int | None = None) -> RowList:
        """
        Fetch next `size` rows of the current result set,
        :attr:`arraysize` rows by default
        """
        session = self._check_results()
        if size is None:
            size = self._arraysize
        values = []
        while len(values) < size:
            row = self._read_row(session)
            if row is None:
                break
            values.append(row)
        assert self._column_index is not None
        return RowList(self._column_index, values)

    def fetchall(self) -> RowList:
        """
        Fetch all remaining rows of the current result set
        """
        session = self._check_results()
        values = []
        while True:
            row = self._read_row(session)
            if row is None:
                break
            values.append(row)
        assert self._column_index is not None
        return RowList(self._column_index, values)

    def nextset(self) -> bool | None:
        """
        Skip to the next result set, unread rows of the current one are discarded.

        :returns: ``True`` if there is another result set, ``None`` otherwise
        """
        session = self._check()
        if self._state not in (CursorState.EXECUTING, CursorState.HAS_RESULTS):
            return None
        try:
            self._discard_rows(session)
            if self._next_result(session):
                # unknown until rows are fetched
                self._rownumber = None
                return True
        except BaseException:
            self._reset()
            raise
        return None


def _copy_params(
    parameters: tuple[Any, ...] | dict[str, Any]
) -> tuple[Any, ...] | dict[str, Any]:
    if isinstance(parameters, dict):
        return dict(parameters)
    return tuple(parameters)
