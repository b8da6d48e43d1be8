"""
In-memory session used by tests instead of a live server
"""
from __future__ import annotations

import typing
from typing import Any

from tdsbind import tds_base
from tdsbind.tds_base import Column, make_message
from tdsbind.tds_session import RequestFailed, SessionLost


def int_column(name: str, nullable: bool = True) -> Column:
    return Column(name, tds_base.SYBINTN, 4, 0, 0, nullable)


def nvarchar_column(name: str, size: int = 50, nullable: bool = True) -> Column:
    return Column(name, tds_base.XSYBNVARCHAR, size, 0, 0, nullable)


def varchar_column(name: str, size: int = 50, nullable: bool = True) -> Column:
    return Column(name, tds_base.XSYBVARCHAR, size, 0, 0, nullable)


def error(number: int, text: str, severity: int = 16) -> tds_base.Message:
    return make_message(number, text, severity=severity, server="TESTSRV", line=1)


def info(number: int, text: str, severity: int = 0) -> tds_base.Message:
    return make_message(number, text, severity=severity, server="TESTSRV", line=1)


class Result:
    """
    One result of a scripted response.

    A result without columns only carries a row count, e.g. of an UPDATE.
    Messages are delivered when the result is reached; ``fail`` makes the
    session report the request as failed right after delivering them.
    """

    def __init__(
        self,
        columns: list[Column] | None = None,
        rows: typing.Iterable[typing.Sequence[Any]] = (),
        rowcount: int = -1,
        messages: typing.Iterable[tds_base.Message] = (),
        fail: bool = False,
        lost: bool = False,
    ):
        self.columns = columns
        self.rows = [list(row) for row in rows]
        self.rowcount = rowcount
        self.messages = list(messages)
        self.fail = fail
        self.lost = lost


class Response:
    def __init__(
        self,
        *results: Result,
        messages: typing.Iterable[tds_base.Message] = (),
        output: dict[int, Any] | None = None,
        return_status: int | None = None,
        database: str | None = None,
    ):
        self.results = list(results)
        self.messages = list(messages)
        self.output = output or {}
        self.return_status = return_status
        self.database = database


class Request(typing.NamedTuple):
    kind: str
    # SQL text of the batch or the statement of sp_executesql, procedure name otherwise
    text: str
    procname: str | None = None
    params: list = []


class FakeSession:
    """
    Implements the session protocol over scripted responses.

    Responses are registered with :meth:`respond` and looked up by the
    text of a SQL batch, by the ``@stmt`` of a parametrized statement or
    by the procedure name. Unknown requests get an empty response.
    """

    def __init__(self, tds_version: int = tds_base.TDS74, spid: int = 55):
        self._tds_version = tds_version
        self._spid = spid
        self._database: str | None = "master"
        self._handler = None
        self._responses: dict[str, Response] = {}
        self._response: Response | None = None
        self._results: list[Result] = []
        self._current: Result | None = None
        self._row_pos = 0
        self._rowcount = -1
        self._return_status: int | None = None
        self.requests: list[Request] = []
        self.bulk_batches: list[tuple[list[Column], list[str], list[list[Any]]]] = []
        self.timeout: int | None = None
        self.closed = False
        self.cancelled = 0

    def respond(self, text: str, *results: Result, **kwargs: Any) -> None:
        self._responses[text] = Response(*results, **kwargs)

    @property
    def sql(self) -> list[str]:
        """Text of every request submitted so far"""
        return [req.text for req in self.requests]

    @property
    def tds_version(self) -> int:
        return self._tds_version

    @property
    def spid(self) -> int:
        return self._spid

    @property
    def database(self) -> str | None:
        return self._database

    @property
    def rowcount(self) -> int:
        return self._rowcount

    @property
    def return_status(self) -> int | None:
        return self._return_status

    def set_message_handler(self, handler) -> None:
        self._handler = handler

    def set_timeout(self, timeout: int) -> None:
        self.timeout = timeout

    def _deliver(self, messages: list[tds_base.Message]) -> None:
        for msg in messages:
            self._handler(msg)

    def _start(self, request: Request) -> None:
        assert not self.closed
        self.requests.append(request)
        response = self._responses.get(request.text, Response())
        self._response = response
        self._results = list(response.results)
        self._current = None
        self._rowcount = -1
        self._return_status = None
        if response.database is not None:
            self._database = response.database
        self._deliver(response.messages)

    def submit_query(self, sql: str) -> None:
        self._start(Request("query", sql))

    def submit_rpc(self, procname: str, params: list) -> None:
        text = procname
        if procname == "sp_executesql":
            text = params[0].value
        self._start(Request("rpc", text, procname, list(params)))

    def next_result(self) -> list[Column] | None:
        self._current = None
        if not self._results:
            if self._response is not None:
                self._return_status = self._response.return_status
            return None
        result = self._results.pop(0)
        self._deliver(result.messages)
        if result.lost:
            raise SessionLost("request timed out", timeout=True)
        if result.fail:
            self._results = []
            raise RequestFailed("request failed")
        if result.columns is None:
            self._rowcount = result.rowcount
            return []
        self._current = result
        self._row_pos = 0
        self._rowcount = -1
        return list(result.columns)

    def fetch_row(self) -> list[Any] | None:
        result = self._current
        if result is None:
            return None
        if self._row_pos >= len(result.rows):
            self._rowcount = (
                result.rowcount if result.rowcount >= 0 else len(result.rows)
            )
            return None
        row = list(result.rows[self._row_pos])
        self._row_pos += 1
        return row

    def output_params(self) -> dict[int, Any]:
        if self._response is None:
            return {}
        return dict(self._response.output)

    def bulk_copy(self, columns, declarations, rows) -> int:
        batch = [list(row) for row in rows]
        self.bulk_batches.append((list(columns), list(declarations), batch))
        self._rowcount = len(batch)
        return len(batch)

    def cancel(self) -> None:
        self.cancelled += 1
        self._results = []
        self._current = None

    def close(self) -> None:
        self.closed = True
