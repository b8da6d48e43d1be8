"""
.. module:: tds_session
   :platform: Unix, Windows, MacOSX
   :synopsis: Boundary between the driver and the TDS protocol implementation

The driver never touches the network itself, all requests go through an
object implementing :class:`Session`. The production implementation,
:class:`PytdsSession`, delegates to the ``pytds`` package.
"""
from __future__ import annotations

import typing
from collections.abc import Callable, Iterable
from typing import Any

import pytds
import pytds.login
import pytds.tds_base
import pytds.tds_types

from . import tds_base, utils
from .parameters import BoundParameter
from .tds_base import Column, Message, logger


class RequestFailed(Exception):
    """
    Raised by a session when the server rejected a request.
    Details are available in the messages received with the response.

    :param error_class: exception class used when no error message was received
    """

    def __init__(
        self,
        msg: str,
        error_class: typing.Type[tds_base.DatabaseError] = tds_base.DatabaseError,
    ):
        super().__init__(msg)
        self.error_class = error_class


class SessionLost(Exception):
    """
    Raised by a session when it can no longer be used, e.g. because of
    a network error or a timeout
    """

    def __init__(self, msg: str, timeout: bool = False):
        super().__init__(msg)
        self.timeout = timeout


MessageHandler = Callable[[Message], None]


class Session(typing.Protocol):
    """
    Operations the driver requires from a TDS session.

    A session processes one request at a time. Every message received
    from the server is passed to the handler installed with
    :meth:`set_message_handler`, in the order it was received.
    """

    @property
    def tds_version(self) -> int:
        ...

    @property
    def spid(self) -> int:
        ...

    @property
    def database(self) -> str | None:
        ...

    @property
    def rowcount(self) -> int:
        """Rows affected by the last completed statement or -1"""
        ...

    @property
    def return_status(self) -> int | None:
        ...

    def set_message_handler(self, handler: MessageHandler) -> None:
        ...

    def set_timeout(self, timeout: int) -> None:
        ...

    def submit_query(self, sql: str) -> None:
        ...

    def submit_rpc(self, procname: str, params: list[BoundParameter]) -> None:
        ...

    def next_result(self) -> list[Column] | None:
        """
        Advances to the next result of the pending request.

        :returns: columns of the next result set, an empty list for a result
          carrying only a row count, ``None`` when the response is complete
        """
        ...

    def fetch_row(self) -> list[Any] | None:
        """Next row of the current result set or ``None``"""
        ...

    def output_params(self) -> dict[int, Any]:
        """OUTPUT values of the last RPC keyed by position of the parameter"""
        ...

    def bulk_copy(
        self, columns: list[Column], declarations: list[str], rows: Iterable[list[Any]]
    ) -> int:
        ...

    def cancel(self) -> None:
        ...

    def close(self) -> None:
        ...


def _convert_message(msg: dict[str, Any]) -> Message:
    return {
        "number": msg["msgno"],
        "state": msg["state"],
        "severity": msg["severity"],
        "description": msg["message"],
        "server": msg["server"],
        "proc": msg["proc_name"],
        "line": msg["line_number"],
    }


class PytdsSession:
    """
    :class:`Session` implemented on top of a ``pytds`` connection

    :param conn: open ``pytds`` connection
    """

    def __init__(self, conn: Any):
        self._conn = conn
        self._session = conn._tds_socket.main_session
        self._handler: MessageHandler | None = None
        # login produces informational messages which are not reported
        self._seen = len(self._session.messages)
        self._result_started = False
        self._is_rpc = False

    @classmethod
    def open(
        cls,
        server: str,
        port: int | None,
        instance: str | None,
        user: str,
        password: str,
        database: str | None,
        appname: str,
        hostname: str | None,
        login_timeout: int,
        timeout: int,
        tds_version: int,
        read_only: bool,
        ntlmv2: bool,
    ) -> PytdsSession:
        """
        Connect and log in, retrying with exponential backoff until
        `login_timeout` expires.

        :raises OperationalError: when login did not succeed
        """
        dsn = server if not instance else "{}\\{}".format(server, instance)
        auth = None
        if ntlmv2:
            auth = pytds.login.NtlmAuth(user_name=user, password=password)
            user = password = ""

        def attempt(attempt_timeout: float) -> Any:
            return pytds.connect(
                dsn=dsn,
                port=None if instance else port,
                database=database,
                user=user or None,
                password=password or None,
                timeout=timeout or None,
                login_timeout=attempt_timeout,
                appname=appname,
                tds_version=tds_version,
                autocommit=True,
                readonly=read_only,
                auth=auth,
                disable_connect_retry=True,
            )

        def handle_error(ex: Exception) -> None:
            if isinstance(ex, pytds.tds_base.LoginError):
                raise ex

        logger.debug("Connecting to %s as %s", dsn, hostname or "local host")
        try:
            conn = utils.exponential_backoff(
                work=attempt,
                ex_handler=handle_error,
                max_time_sec=login_timeout,
                first_attempt_time_sec=min(login_timeout, 1) or login_timeout,
            )
        except pytds.tds_base.LoginError as ex:
            raise tds_base.OperationalError(ex.text)
        except (TimeoutError, OSError, pytds.tds_base.Error) as ex:
            raise tds_base.OperationalError(
                "Unable to connect to {}: {}".format(dsn, ex)
            )
        return cls(conn)

    @property
    def tds_version(self) -> int:
        return self._conn._tds_socket.tds_version

    @property
    def spid(self) -> int:
        return self._session._spid

    @property
    def database(self) -> str | None:
        return self._conn._tds_socket.env.database

    @property
    def rowcount(self) -> int:
        return self._session.rows_affected

    @property
    def return_status(self) -> int | None:
        if self._session.has_status:
            return self._session.ret_status
        return None

    def set_message_handler(self, handler: MessageHandler) -> None:
        self._handler = handler

    def set_timeout(self, timeout: int) -> None:
        self._conn._tds_socket.sock.settimeout(timeout or None)

    def _drain_messages(self) -> None:
        messages = self._session.messages
        # pytds drops trailing "statement has been terminated" messages
        self._seen = min(self._seen, len(messages))
        pending = messages[self._seen :]
        self._seen = len(messages)
        if self._handler is not None:
            for msg in pending:
                self._handler(_convert_message(msg))

    def _invoke(self, work: Callable[..., Any], *args: Any) -> Any:
        try:
            return work(*args)
        except pytds.tds_base.DataError as ex:
            raise tds_base.DataError(str(ex))
        except pytds.tds_base.DatabaseError as ex:
            raise RequestFailed(ex.text)
        except TimeoutError as ex:
            raise SessionLost("request timed out", timeout=True) from ex
        except (OSError, pytds.tds_base.Error) as ex:
            raise SessionLost(str(ex) or type(ex).__name__) from ex
        finally:
            self._drain_messages()

    def _param(self, param: BoundParameter) -> Any:
        flags = pytds.tds_base.fByRefValue if param.output else 0
        return pytds.tds_base.Param(
            name=param.name,
            type=param.sql_type,
            value=param.value,
            flags=flags,
        )

    def submit_query(self, sql: str) -> None:
        self._seen = 0
        self._is_rpc = False
        self._result_started = False

        def submit():
            self._session.submit_plain_query(sql)
            self._session.begin_response()

        self._invoke(submit)

    def submit_rpc(self, procname: str, params: list[BoundParameter]) -> None:
        self._seen = 0
        self._is_rpc = True
        self._result_started = False
        name: Any = procname
        if procname == "sp_executesql":
            name = pytds.tds_base.SP_EXECUTESQL
        pytds_params = [self._param(param) for param in params]

        def submit():
            self._session.submit_rpc(name, pytds_params)
            self._session.begin_response()

        self._invoke(submit)

    def _advance(self) -> bool | None:
        session = self._session
        if not self._result_started:
            self._result_started = True
            if self._is_rpc:
                return session.process_rpc()
            return session.find_result_or_done()
        if session.state == pytds.tds_base.TDS_IDLE:
            return None
        return session.next_set()

    def next_result(self) -> list[Column] | None:
        session = self._session
        previous = session.res_info
        found = self._invoke(self._advance)
        if session.res_info is not None and session.res_info is not previous:
            return [self._column(col) for col in session.res_info.columns]
        if found:
            return []
        return None

    def _column(self, col: Any) -> Column:
        serializer = col.serializer
        return Column(
            name=col.column_name,
            type_code=serializer.get_typeid(),
            size=int(serializer.size or 0),
            precision=serializer.precision or 0,
            scale=serializer.scale or 0,
            nullable=bool(col.flags & pytds.tds_base.Column.fNullable),
            identity=bool(col.flags & pytds.tds_base.Column.fIdentity),
        )

    def fetch_row(self) -> list[Any] | None:
        session = self._session
        if session.res_info is None:
            return None
        if not self._invoke(session.next_row):
            return None
        return list(session.row)

    def output_params(self) -> dict[int, Any]:
        return {
            ordinal: param.value
            for ordinal, param in self._session.output_params.items()
        }

    def bulk_copy(
        self, columns: list[Column], declarations: list[str], rows: Iterable[list[Any]]
    ) -> int:
        metadata = []
        for column, declaration in zip(columns, declarations):
            flags = 0
            if column.nullable:
                flags |= pytds.tds_base.Column.fNullable
            if column.identity:
                flags |= pytds.tds_base.Column.fIdentity
            metadata.append(
                pytds.tds_base.Column(
                    name=column.name,
                    type=pytds.tds_types.sql_type_by_declaration(declaration),
                    flags=flags,
                )
            )

        def submit():
            self._session.submit_bulk(metadata, rows)
            self._session.process_simple_request()

        self._invoke(submit)
        return self._session.rows_affected

    def cancel(self) -> None:
        self._invoke(self._session.cancel_if_pending)

    def close(self) -> None:
        try:
            self._conn.close()
        except (OSError, pytds.tds_base.Error) as ex:
            logger.debug("Error while closing session: %s", ex)
