"""
This module implements the Connection class
"""
from __future__ import annotations

import collections.abc
import typing
import warnings
import weakref
from typing import Any, Callable, Iterable

from . import tds_base, tds_types
from .tds_base import Message, logger, tds_quote_id
from .tds_session import RequestFailed, Session, SessionLost
from .tds_types import TypeInferrer

if typing.TYPE_CHECKING:
    from .cursor import Cursor

T = typing.TypeVar("T")

MAX_TIMEOUT = 2**31 - 1

ANSI_DEFAULTS_SQL = (
    "SET ARITHABORT ON;"
    "SET ANSI_DEFAULTS ON;"
    "SET CONCAT_NULL_YIELDS_NULL ON;"
    "SET TEXTSIZE 2147483647;"
)


class Connection:
    """
    Connection to an MS SQL Server, created by :func:`tdsbind.connect`.

    A connection runs one request at a time. Executing a statement on one
    cursor discards unread results of any other cursor of the connection.
    """

    _connection_closed_exception = tds_base.InterfaceError("connection closed")

    def __init__(
        self,
        session: Session,
        paramstyle: str = "numeric",
        autocommit: bool = False,
        ansi_defaults: bool = True,
        enable_bcp: bool = True,
        charset: str = "cp1252",
        warning_as_error: bool = False,
        timeout: int | None = None,
    ) -> None:
        self._session: Session | None = session
        self._dead = False
        self._paramstyle = paramstyle
        self._autocommit = autocommit
        self._enable_bcp = enable_bcp
        self._timeout = timeout
        #: raise :class:`tdsbind.Warning` instead of emitting it with :func:`warnings.warn`
        self.warning_as_error = warning_as_error
        # messages of the last statement
        self._messages: list[Message] = []
        # messages received during the current session call
        self._received: list[Message] = []
        # references to all cursors opened from connection
        # those references used to close cursors when connection is closed
        self._cursors: weakref.WeakSet[Cursor] = weakref.WeakSet()
        self._active_cursor: weakref.ReferenceType[Cursor] | None = None
        self._inferrer = TypeInferrer(
            tds_version=session.tds_version,
            charset=charset,
            report_warning=self._client_warning,
        )
        session.set_message_handler(self._on_message)
        if ansi_defaults:
            self._execute(ANSI_DEFAULTS_SQL)
        if not autocommit:
            self._execute("SET IMPLICIT_TRANSACTIONS ON")

    def __repr__(self):
        if self._session is None:
            return "<Connection closed>"
        return "<Connection spid={} tds_version={}>".format(
            self._session.spid, self.tds_version
        )

    def __enter__(self) -> Connection:
        return self

    def __exit__(self, exc_type, exc_value, traceback) -> None:
        if self._session is None:
            return
        if exc_type is None and not self._dead and not self._autocommit:
            self.commit()
        self.close()

    #
    # internal interface used by cursors
    #
    def _check_open(self) -> Session:
        if self._session is None:
            raise self._connection_closed_exception
        return self._session

    def _check_usable(self) -> Session:
        session = self._check_open()
        if self._dead:
            raise tds_base.InterfaceError("connection is dead")
        return session

    def _begin_statement(self, cursor: Cursor | None = None) -> Session:
        """
        Prepares connection for a new statement: results of the previously
        active cursor are discarded and messages are cleared
        """
        session = self._check_usable()
        active = self._active_cursor() if self._active_cursor is not None else None
        if active is not None and active is not cursor:
            active._detach()
        self._active_cursor = weakref.ref(cursor) if cursor is not None else None
        self._messages = []
        return session

    def _release_cursor(self, cursor: Cursor) -> None:
        if self._active_cursor is not None and self._active_cursor() is cursor:
            self._active_cursor = None

    def _on_message(self, msg: Message) -> None:
        self._messages.append(msg)
        self._received.append(msg)

    def _client_warning(self, text: str) -> None:
        msg = tds_base.make_message(0, text)
        self._messages.append(msg)
        self._warn(tds_base.Warning(text, last_message=msg))

    def _warn(self, warning: tds_base.Warning) -> None:
        if self.warning_as_error:
            raise warning
        warnings.warn(warning, stacklevel=4)

    def _call(self, work: Callable[..., T], *args: Any) -> T:
        """
        Runs a session operation, converts session failures and server
        messages into exceptions and warnings.
        """
        self._check_usable()
        self._received = []
        try:
            result = work(*args)
        except RequestFailed as ex:
            raise self._request_error(ex) from None
        except SessionLost as ex:
            self._dead = True
            if ex.timeout:
                logger.warning("Request timed out, connection is no longer usable")
            raise tds_base.InterfaceError(str(ex)) from ex
        self._process_messages()
        return result

    def _request_error(self, ex: RequestFailed) -> tds_base.DatabaseError:
        errors = [msg for msg in self._received if not tds_base.is_warning(msg)]
        if not errors:
            return ex.error_class(str(ex))
        # the first of the most severe errors
        msg = max(errors, key=lambda m: m["severity"])
        return tds_base._create_exception_by_message(msg)

    def _process_messages(self) -> None:
        received, self._received = self._received, []
        errors = [msg for msg in received if not tds_base.is_warning(msg)]
        if errors:
            msg = max(errors, key=lambda m: m["severity"])
            raise tds_base._create_exception_by_message(msg)
        for msg in received:
            if msg["number"] <= 0 or msg["number"] in tds_base.envchange_messages:
                continue
            self._warn(tds_base._create_warning_by_message(msg))

    def _drain(self, session: Session) -> None:
        while True:
            columns = self._call(session.next_result)
            if columns is None:
                return
            if columns:
                while self._call(session.fetch_row) is not None:
                    pass

    def _execute(self, sql: str) -> None:
        """
        Executes a statement ignoring results, used for connection housekeeping
        """
        session = self._begin_statement()
        logger.info("Executing %s", sql)
        self._call(session.submit_query, sql)
        self._drain(session)

    #
    # public interface
    #
    @property
    def messages(self) -> list[Message]:
        """
        Messages received from the server during the last statement,
        including informational messages which are not reported as warnings
        """
        return list(self._messages)

    @property
    def paramstyle(self) -> str:
        return self._paramstyle

    @property
    def autocommit(self) -> bool:
        """
        The current state of autocommit on the connection.
        Switching autocommit on commits a transaction in progress.
        """
        self._check_open()
        return self._autocommit

    @autocommit.setter
    def autocommit(self, value: bool) -> None:
        self._check_usable()
        if not isinstance(value, bool):
            raise TypeError("autocommit must be True or False")
        sql = ""
        if not self._autocommit:
            sql = "IF @@TRANCOUNT > 0 COMMIT TRANSACTION;"
        sql += "SET IMPLICIT_TRANSACTIONS {};".format("OFF" if value else "ON")
        self._execute(sql)
        self._autocommit = value

    @property
    def timeout(self) -> int | None:
        """
        Timeout of requests in seconds, 0 disables timeout.
        """
        self._check_open()
        return self._timeout

    @timeout.setter
    def timeout(self, value: int) -> None:
        session = self._check_usable()
        if isinstance(value, bool) or not isinstance(value, int):
            raise TypeError("timeout must be an int")
        if not 0 <= value <= MAX_TIMEOUT:
            raise ValueError(value)
        session.set_timeout(value)
        self._timeout = value

    @property
    def database(self) -> str | None:
        """
        Current database
        """
        return self._check_open().database

    @database.setter
    def database(self, value: str) -> None:
        self.use(value)

    def use(self, database: str) -> None:
        """
        Switch to another database
        """
        self._check_usable()
        if not isinstance(database, str):
            raise TypeError("database name must be a string")
        self._execute("USE {}".format(tds_quote_id(database)))

    @property
    def tds_version(self) -> str | None:
        """
        Version of the TDS protocol that is being used by this connection, e.g. ``"7.4"``
        """
        return tds_base.tds_version_name(self._check_open().tds_version)

    @property
    def spid(self) -> int:
        """
        Server process identifier of the session
        """
        return self._check_open().spid

    def cursor(self) -> Cursor:
        """
        Return cursor object that can be used to make queries and fetch
        results from the database.
        """
        from .cursor import Cursor

        self._check_usable()
        cursor = Cursor(self)
        self._cursors.add(cursor)
        return cursor

    def commit(self) -> None:
        """
        Commit transaction which is currently in progress.
        Does nothing in autocommit mode.
        """
        self._check_usable()
        if not self._autocommit:
            self._execute("IF @@TRANCOUNT > 0 COMMIT TRANSACTION")

    def rollback(self) -> None:
        """
        Roll back transaction which is currently in progress.
        Does nothing in autocommit mode.
        """
        self._check_usable()
        if not self._autocommit:
            self._execute("IF @@TRANCOUNT > 0 ROLLBACK TRANSACTION")

    def close(self) -> None:
        """Close connection to an MS SQL Server.

        All cursors opened from the connection are closed too.
        Transaction in progress is rolled back by the server.
        """
        if self._session is None:
            raise self._connection_closed_exception
        logger.debug("Closing connection")
        for cursor in list(self._cursors):
            cursor._connection_closing()
        session, self._session = self._session, None
        self._active_cursor = None
        session.close()

    def bulk_insert(
        self,
        table: str,
        rows: Iterable[Any],
        batch_size: int | None = None,
        tablock: bool = False,
        auto_encode: bool = True,
    ) -> int:
        """
        Insert rows into a table using bulk copy.

        :param table: name of the table, it is used as is in ``INSERT BULK`` statement
        :param rows: iterable of rows, each row is either a sequence of values
          in table column order or a mapping of column names to values
        :param batch_size: number of rows sent in a single batch, all rows are
          sent in a single batch by default
        :param tablock: take table lock for the duration of each batch
        :param auto_encode: replace characters of strings inserted into single byte
          string columns which can't be represented in connection code page
        :returns: number of rows saved
        """
        self._check_usable()
        if not self._enable_bcp:
            raise tds_base.NotSupportedError("bulk copy is not enabled")
        if batch_size is not None and (
            isinstance(batch_size, bool) or not isinstance(batch_size, int)
        ):
            raise TypeError("batch_size must be an int")
        if batch_size is not None and batch_size < 1:
            raise ValueError(batch_size)
        try:
            rows_iter = iter(rows)
        except TypeError:
            raise TypeError(rows)

        columns = self._table_columns(table)
        declarations = [tds_types.declaration_for_column(col) for col in columns]
        col_defs = ", ".join(
            "{} {}".format(tds_quote_id(col.name), decl)
            for col, decl in zip(columns, declarations)
        )
        operation = "INSERT BULK {}({})".format(table, col_defs)
        if tablock:
            operation += " WITH (TABLOCK)"

        saved = 0
        batch: list[list[Any]] = []
        for num, row in enumerate(rows_iter):
            batch.append(self._bulk_row(columns, row, num, auto_encode))
            if batch_size is not None and len(batch) >= batch_size:
                saved += self._send_batch(operation, columns, declarations, batch)
                batch = []
        if batch:
            saved += self._send_batch(operation, columns, declarations, batch)
        logger.info("Bulk copied %d rows into %s", saved, table)
        return saved

    def _table_columns(self, table: str) -> list[tds_base.Column]:
        session = self._begin_statement()
        self._call(session.submit_query, "SELECT TOP 0 * FROM {}".format(table))
        columns = self._call(session.next_result) or []
        self._drain(session)
        return [
            tds_types.normalize_column(col, session.tds_version) for col in columns
        ]

    def _bulk_row(
        self,
        columns: list[tds_base.Column],
        row: Any,
        num: int,
        auto_encode: bool,
    ) -> list[Any]:
        if isinstance(row, collections.abc.Mapping):
            values = []
            for col in columns:
                if col.name in row:
                    values.append(row[col.name])
                elif col.nullable or col.identity:
                    values.append(None)
                else:
                    raise KeyError(col.name)
        elif isinstance(row, collections.abc.Sequence) and not isinstance(
            row, (str, bytes)
        ):
            if len(row) != len(columns):
                raise tds_base.InterfaceError(
                    "unexpected column count in row {}".format(num)
                )
            values = list(row)
        else:
            raise TypeError("invalid sequence for row {}".format(num))

        for i, (col, value) in enumerate(zip(columns, values)):
            value = tds_types.unwrap(value)
            if (
                auto_encode
                and isinstance(value, str)
                and col.type_code in _single_byte_string_types
            ):
                value, _ = self._inferrer.encode_varchar(value)
            values[i] = value
        return values

    def _send_batch(
        self,
        operation: str,
        columns: list[tds_base.Column],
        declarations: list[str],
        batch: list[list[Any]],
    ) -> int:
        session = self._begin_statement()
        logger.info("Sending batch of %d rows", len(batch))
        self._call(session.submit_query, operation)
        self._drain(session)
        return self._call(session.bulk_copy, columns, declarations, batch)


_single_byte_string_types = (
    tds_base.XSYBCHAR,
    tds_base.XSYBVARCHAR,
    tds_base.SYBCHAR,
    tds_base.SYBVARCHAR,
    tds_base.SYBTEXT,
)
