"""DB-SIG compliant module for communicating with MS SQL servers"""
from __future__ import annotations

import datetime
import time

from . import tds_base
from . import tds_session
from . import utils
from .connection import Connection
from .connection_pool import ConnectionPool  # noqa: F401 # export
from .cursor import Cursor, CursorState  # noqa: F401 # export
from .parameters import PARAMSTYLES, BoundResult, Parameter  # noqa: F401 # export
from .rows import Row, RowList  # noqa: F401 # export
from .tds_base import (
    Error,  # noqa: F401 # export
    DatabaseError,  # noqa: F401 # export
    ProgrammingError,  # noqa: F401 # export
    IntegrityError,  # noqa: F401 # export
    DataError,  # noqa: F401 # export
    InternalError,  # noqa: F401 # export
    InterfaceError,  # noqa: F401 # export
    OperationalError,  # noqa: F401 # export
    NotSupportedError,  # noqa: F401 # export
    Warning,  # noqa: F401 # export
    TdsType,  # noqa: F401 # export
    logger,
)
from .tds_base import (
    ROWID,  # noqa: F401 # export
    DECIMAL,  # noqa: F401 # export
    STRING,  # noqa: F401 # export
    BINARY,  # noqa: F401 # export
    NUMBER,  # noqa: F401 # export
    DATETIME,  # noqa: F401 # export
)
from .tds_types import (
    SqlBigInt,  # noqa: F401 # export
    SqlBinary,  # noqa: F401 # export
    SqlChar,  # noqa: F401 # export
    SqlDate,  # noqa: F401 # export
    SqlDecimal,  # noqa: F401 # export
    SqlInt,  # noqa: F401 # export
    SqlNVarChar,  # noqa: F401 # export
    SqlSmallInt,  # noqa: F401 # export
    SqlTinyInt,  # noqa: F401 # export
    SqlType,  # noqa: F401 # export
    SqlVarBinary,  # noqa: F401 # export
    SqlVarChar,  # noqa: F401 # export
)

__version__ = "1.0.0"

#: Compliant with DB SIG 2.0
apilevel = "2.0"

#: Module may be shared, but not connections
threadsafety = 1

#: Default parameter marker style, ``:0``, ``:1`` etc.
paramstyle = "numeric"

_default_paramstyle = paramstyle


def connect(
    server: str,
    port: int = 1433,
    instance: str | None = None,
    user: str = "",
    password: str = "",
    database: str | None = None,
    appname: str = "tdsbind",
    hostname: str | None = None,
    login_timeout: int = 5,
    timeout: int = 5,
    tds_version: str | None = None,
    autocommit: bool = False,
    ansi_defaults: bool = True,
    enable_bcp: bool = True,
    paramstyle: str | None = None,
    read_only: bool = False,
    ntlmv2: bool = False,
    charset: str = "cp1252",
    warning_as_error: bool = False,
) -> Connection:
    """
    Opens connection to the database

    :keyword server: SQL server host, can also include instance name: <host>[\\<instance>]
    :keyword port: the TCP port to use to connect to the server, ignored when instance is given
    :keyword instance: name of the SQL server instance
    :keyword user: database user to connect as
    :keyword password: user's password
    :keyword database: the database to initially connect to
    :keyword appname: application name reported to the server
    :keyword hostname: name of the client host reported in log records
    :keyword login_timeout: timeout for connection and login in seconds
    :keyword timeout: query timeout in seconds, 0 means no timeout
    :keyword tds_version: TDS protocol version to use, one of ``"7.0"`` to ``"7.4"``,
      the newest version is used by default
    :keyword autocommit: Enable or disable database level autocommit
    :keyword ansi_defaults: set ANSI compliant session options after login
    :keyword enable_bcp: allow :meth:`Connection.bulk_insert`
    :keyword paramstyle: parameter marker style, ``"numeric"`` (default) or ``"named"``
    :keyword read_only: connect with read-only application intent
    :keyword ntlmv2: authenticate with NTLMv2 using `user` in ``DOMAIN\\user`` form
    :keyword charset: code page used to encode VARCHAR parameters
    :keyword warning_as_error: raise :class:`Warning` instead of emitting it
    :returns: An instance of :class:`Connection`
    """
    if paramstyle is None:
        paramstyle = _default_paramstyle
    if paramstyle not in PARAMSTYLES:
        raise ValueError('unsupported paramstyle "{}"'.format(paramstyle))
    version = tds_base.parse_tds_version(tds_version)
    host, server_instance = utils.parse_server(server)
    instance = instance or server_instance
    logger.info("Opening connection to %s", server)
    session = tds_session.PytdsSession.open(
        server=host,
        port=port,
        instance=instance,
        user=user,
        password=password,
        database=database,
        appname=appname,
        hostname=hostname,
        login_timeout=login_timeout,
        timeout=timeout,
        tds_version=version,
        read_only=read_only,
        ntlmv2=ntlmv2,
    )
    try:
        return Connection(
            session,
            paramstyle=paramstyle,
            autocommit=autocommit,
            ansi_defaults=ansi_defaults,
            enable_bcp=enable_bcp,
            charset=charset,
            warning_as_error=warning_as_error,
            timeout=timeout,
        )
    except Exception:
        session.close()
        raise


def Date(year: int, month: int, day: int) -> datetime.date:
    return datetime.date(year, month, day)


def DateFromTicks(ticks: float) -> datetime.date:
    return datetime.date.fromtimestamp(ticks)


def Time(hour: int, minute: int, second: int, microsecond: int = 0) -> datetime.time:
    return datetime.time(hour, minute, second, microsecond)


def TimeFromTicks(ticks: float) -> datetime.time:
    return Time(*time.localtime(ticks)[3:6])


def Timestamp(
    year: int,
    month: int,
    day: int,
    hour: int,
    minute: int,
    second: int,
    microsecond: int = 0,
) -> datetime.datetime:
    return datetime.datetime(year, month, day, hour, minute, second, microsecond)


def TimestampFromTicks(ticks: float) -> datetime.datetime:
    return datetime.datetime.fromtimestamp(ticks)


def Binary(value: bytes | bytearray | memoryview) -> bytes:
    return bytes(value)
