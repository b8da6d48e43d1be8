"""
.. module:: tds_base
   :platform: Unix, Windows, MacOSX
   :synopsis: Constants, exceptions and classification of server messages
"""
from __future__ import annotations

import builtins
import logging
import typing
from typing import TypedDict

from pytds.tds_base import (  # noqa: F401 # export
    SYBBINARY,
    SYBBIT,
    SYBBITN,
    SYBCHAR,
    SYBDATETIME,
    SYBDATETIME4,
    SYBDATETIMN,
    SYBDECIMAL,
    SYBFLT8,
    SYBFLTN,
    SYBIMAGE,
    SYBINT1,
    SYBINT2,
    SYBINT4,
    SYBINT8,
    SYBINTN,
    SYBMONEY,
    SYBMONEY4,
    SYBMONEYN,
    SYBMSDATE,
    SYBMSDATETIME2,
    SYBMSDATETIMEOFFSET,
    SYBMSTIME,
    SYBMSUDT,
    SYBMSXML,
    SYBNTEXT,
    SYBNUMERIC,
    SYBREAL,
    SYBTEXT,
    SYBUNIQUE,
    SYBVARBINARY,
    SYBVARCHAR,
    SYBVARIANT,
    SYBVOID,
    TDS70,
    TDS71,
    TDS72,
    TDS73,
    TDS74,
    XSYBBINARY,
    XSYBCHAR,
    XSYBNCHAR,
    XSYBNVARCHAR,
    XSYBVARBINARY,
    XSYBVARCHAR,
    DBAPITypeObject,
)
from pytds.tds_base import (  # noqa: F401 # export
    BINARY,
    DECIMAL,
    NUMBER,
    ROWID,
    STRING,
)

logger = logging.getLogger("tdsbind")

TDS_VERSIONS = {
    "7.0": TDS70,
    "7.1": TDS71,
    "7.2": TDS72,
    "7.3": TDS73,
    "7.4": TDS74,
}


def IS_TDS72_PLUS(tds_version: int) -> bool:
    return tds_version >= TDS72


def IS_TDS73_PLUS(tds_version: int) -> bool:
    return tds_version >= TDS73


def tds_version_name(tds_version: int) -> str | None:
    """
    Convert protocol version number into it's dotted form, e.g. ``"7.4"``
    """
    for name, version in TDS_VERSIONS.items():
        if (version >> 24) == (tds_version >> 24):
            return name
    return None


def parse_tds_version(name: str | None) -> int:
    if name is None:
        return TDS74
    try:
        return TDS_VERSIONS[name]
    except (KeyError, TypeError):
        raise InterfaceError(f'unsupported TDS version "{name}"')


class TdsType:
    """
    Type codes reported in :attr:`Cursor.description` and by the
    ``tdstype`` attribute of SQL type wrappers
    """

    BIT = SYBBIT
    BITN = SYBBITN
    TINYINT = SYBINT1
    SMALLINT = SYBINT2
    INT = SYBINT4
    BIGINT = SYBINT8
    INTN = SYBINTN
    REAL = SYBREAL
    FLOAT = SYBFLT8
    FLOATN = SYBFLTN
    SMALLMONEY = SYBMONEY4
    MONEY = SYBMONEY
    MONEYN = SYBMONEYN
    DECIMAL = SYBDECIMAL
    NUMERIC = SYBNUMERIC
    SMALLDATETIME = SYBDATETIME4
    DATETIME = SYBDATETIME
    DATETIMEN = SYBDATETIMN
    DATE = SYBMSDATE
    TIME = SYBMSTIME
    DATETIME2 = SYBMSDATETIME2
    DATETIMEOFFSET = SYBMSDATETIMEOFFSET
    CHAR = XSYBCHAR
    VARCHAR = XSYBVARCHAR
    NCHAR = XSYBNCHAR
    NVARCHAR = XSYBNVARCHAR
    TEXT = SYBTEXT
    NTEXT = SYBNTEXT
    BINARY = XSYBBINARY
    VARBINARY = XSYBVARBINARY
    IMAGE = SYBIMAGE
    GUID = SYBUNIQUE
    XML = SYBMSXML
    VARIANT = SYBVARIANT
    VOID = SYBVOID


def tds_quote_id(ident: str) -> str:
    """Quote an identifier according to MSSQL rules

    :param ident: identifier to quote
    :returns: Quoted identifier
    """
    return "[{0}]".format(ident.replace("]", "]]"))


class Column(typing.NamedTuple):
    """
    Metadata of a single result column as reported by the session
    """

    name: str
    type_code: int
    size: int
    precision: int
    scale: int
    nullable: bool
    identity: bool = False


class Message(TypedDict):
    """
    A message received from the server, either informational or an error
    """

    number: int
    state: int
    severity: int
    description: str
    server: str
    proc: str
    line: int


def make_message(
    number: int,
    description: str,
    severity: int = 0,
    state: int = 1,
    server: str = "",
    proc: str = "",
    line: int = 0,
) -> Message:
    return {
        "number": number,
        "state": state,
        "severity": severity,
        "description": description,
        "server": server,
        "proc": proc,
        "line": line,
    }


class Warning(builtins.Warning):
    """
    Raised or emitted for important warnings, e.g. informational server
    messages or data truncation during parameter binding.

    Derives from builtin :class:`Warning` so it can be emitted with
    :func:`warnings.warn` and controlled by warning filters.
    """

    def __init__(self, msg: str, last_message: Message | None = None):
        super().__init__(msg)
        self.last_message = last_message


class Error(Exception):
    """
    Base class for all error classes
    """

    pass


class InterfaceError(Error):
    """
    Errors related to the driver itself rather than to the database, e.g.
    using a closed cursor or a malformed parameter marker
    """

    pass


class DatabaseError(Error):
    """
    This error is raised when MSSQL server returns an error which includes error number
    """

    def __init__(self, msg: str, last_message: Message | None = None):
        super().__init__(msg)
        self.text = msg
        self.last_message = last_message
        self.number = 0
        self.severity = 0
        self.state = 0
        self.line = 0
        self.procedure = ""
        self.server = ""
        if last_message is not None:
            self.number = last_message["number"]
            self.severity = last_message["severity"]
            self.state = last_message["state"]
            self.line = last_message["line"]
            self.procedure = last_message["proc"]
            self.server = last_message["server"]

    @property
    def message(self) -> str:
        if self.procedure:
            return (
                "SQL Server message %d, severity %d, state %d, "
                "procedure %s, line %d:\n%s"
                % (
                    self.number,
                    self.severity,
                    self.state,
                    self.procedure,
                    self.line,
                    self.text,
                )
            )
        else:
            return "SQL Server message %d, severity %d, state %d, " "line %d:\n%s" % (
                self.number,
                self.severity,
                self.state,
                self.line,
                self.text,
            )


class DataError(DatabaseError):
    """
    This error is raised when input parameter contains data which cannot be converted to acceptable data type.
    """

    pass


class OperationalError(DatabaseError):
    """
    Errors outside of the programmer's control, e.g. lost connection or
    resource exhaustion on the server
    """

    pass


class IntegrityError(DatabaseError):
    """
    Constraint violations, e.g. duplicate keys or NULL in a NOT NULL column
    """

    pass


class InternalError(DatabaseError):
    """
    Internal errors of the database, e.g. transaction deadlocks
    """

    pass


class ProgrammingError(DatabaseError):
    """
    Syntax errors, missing objects and other mistakes in submitted SQL
    """

    pass


class NotSupportedError(DatabaseError):
    """
    Raised when a method or a database feature is not supported
    """

    pass


# messages with severity at or below this level are informational
WARNING_SEVERITY_MAX = 10

# first error number available to RAISERROR with custom messages
USER_ERROR_NUMBER_MIN = 50000

# environment change notifications, never reported as warnings
envchange_messages = (
    5701,  # changed database context
    5703,  # changed language setting
    5704,  # changed client character set
)

# severity 14 messages which are constraint violations
unique_errors = (
    2601,  # violate unique index
    2627,  # violate UNIQUE KEY constraint
)

# severity 16 messages mapped to DataError
data_errors = (
    220,  # arithmetic overflow for data type
    517,  # adding a value to a date column caused an overflow
    518,  # cannot convert data type
    529,  # explicit conversion is not allowed
    8114,  # error converting data type
    8115,  # arithmetic overflow converting to data type
    8134,  # divide by zero
    8152,  # string or binary data would be truncated
)

# severity 16 messages mapped to IntegrityError
integrity_errors = (
    515,  # NULL insert
    544,  # explicit value for identity column
    545,  # explicit value must be specified for identity column
    547,  # FK related
    548,  # identity range check
)

# severity 16 messages mapped to NotSupportedError
not_supported_errors = (
    40508,  # USE statement is not supported to switch between databases
    40515,  # reference to database and/or server name is not supported
)


def is_warning(msg: Message) -> bool:
    return msg["severity"] <= WARNING_SEVERITY_MAX


def exception_class_for_message(msg: Message) -> typing.Type[DatabaseError]:
    """
    Map server message to a DB-API exception class, using message severity and,
    for some severities, message number
    """
    msg_no = msg["number"]
    if msg_no >= USER_ERROR_NUMBER_MIN:
        return ProgrammingError
    severity = msg["severity"]
    if severity in (11, 15):
        return ProgrammingError
    if severity == 12:
        return IntegrityError
    if severity == 13:
        return InternalError
    if severity == 14:
        if msg_no in unique_errors:
            return IntegrityError
        return DatabaseError
    if severity == 16:
        if msg_no in data_errors:
            return DataError
        if msg_no in integrity_errors:
            return IntegrityError
        if msg_no in not_supported_errors:
            return NotSupportedError
        return ProgrammingError
    if 17 <= severity <= 24:
        return OperationalError
    return DatabaseError


def _create_exception_by_message(msg: Message) -> DatabaseError:
    ex_class = exception_class_for_message(msg)
    return ex_class(msg["description"], last_message=msg)


def _create_warning_by_message(msg: Message) -> Warning:
    return Warning(msg["description"], last_message=msg)


# pytds leaves native date and time types out of DATETIME
DATETIME = DBAPITypeObject(
    SYBDATETIME,
    SYBDATETIME4,
    SYBDATETIMN,
    SYBMSDATE,
    SYBMSTIME,
    SYBMSDATETIME2,
    SYBMSDATETIMEOFFSET,
)
