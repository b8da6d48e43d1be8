"""
.. module:: tds_types
   :platform: Unix, Windows, MacOSX
   :synopsis: Python to SQL type inference and result column types

Values passed as statement parameters are described by an instance of
a ``pytds`` :class:`SqlTypeMetaclass` subclass, which knows how the value is
declared in the ``@params`` argument of ``sp_executesql`` and is handed to
``pytds`` unchanged when the request is sent.
"""
from __future__ import annotations

import datetime
import decimal
import typing
import uuid
from collections.abc import Callable
from typing import Any

from pytds.tds_types import (
    BigIntType,
    BinaryType,
    BitType,
    CharType,
    DateTime2Type,
    DateTimeType,
    DateType,
    DecimalType,
    FloatType,
    ImageType,
    IntType,
    NTextType,
    NVarCharMaxType,
    NVarCharType,
    SmallIntType,
    SqlTypeMetaclass,
    TextType,
    TimeType,
    TinyIntType,
    VarBinaryMaxType,
    VarBinaryType,
    VarCharMaxType,
    VarCharType,
)

from . import tds_base
from .tds_base import Column

TINYINT_RANGE = (0, 2**8 - 1)
SMALLINT_RANGE = (-(2**15), 2**15 - 1)
INT_RANGE = (-(2**31), 2**31 - 1)
BIGINT_RANGE = (-(2**63), 2**63 - 1)

# longest value which fits into a sized declaration
MAX_VARCHAR_SIZE = 8000
MAX_NVARCHAR_SIZE = 4000
MAX_BINARY_SIZE = 8000

MAX_DECIMAL_PRECISION = 38

# substituted for characters missing from the connection code page
REPLACEMENT_CHARACTER = "\ufffd"

# time portion of DATETIME values standing in for TIME
_BASE_DATE = datetime.date(1900, 1, 1)

_ucs2_codec = "utf-16-le"

_decimal_context = decimal.Context(prec=MAX_DECIMAL_PRECISION)


class BoundValue(typing.NamedTuple):
    """
    Result of binding a single Python value: the declared SQL type, the
    value as it will be transmitted and the reported maximum length
    """

    sql_type: SqlTypeMetaclass
    value: Any
    size: int


ReportWarning = Callable[[str], None]


def _ignore_warning(msg: str) -> None:
    pass


class TypeInferrer:
    """
    Maps Python values and :class:`SqlType` wrappers to SQL declarations
    for the negotiated protocol version.

    :param tds_version: negotiated protocol version, e.g. :const:`tds_base.TDS74`
    :param charset: code page used to encode single byte strings
    :param nchar: if false strings are sent as single byte VARCHAR/TEXT
    :param report_warning: receives text of warnings produced during binding,
      e.g. when a character is not representable in `charset`
    """

    def __init__(
        self,
        tds_version: int,
        charset: str = "cp1252",
        nchar: bool = True,
        report_warning: ReportWarning | None = None,
    ):
        self._tds_version = tds_version
        self._charset = charset
        self._nchar = nchar
        self._report_warning = report_warning or _ignore_warning

    @property
    def tds_version(self) -> int:
        return self._tds_version

    @property
    def charset(self) -> str:
        return self._charset

    def warn(self, msg: str) -> None:
        self._report_warning(msg)

    def bind(self, value: Any, minimize_types: bool = True) -> BoundValue:
        """
        Choose SQL type for a value.

        :param value: plain Python value or an instance of :class:`SqlType`
        :param minimize_types: when false the widest type of a family is
          declared, so that statements executed repeatedly with different
          values share the same parameter declarations
        """
        if isinstance(value, SqlType):
            return value.bind(self)
        if value is None:
            return BoundValue(VarCharType(1), None, 0)
        if isinstance(value, bool):
            return BoundValue(BitType(), value, -1)
        if isinstance(value, int):
            return self._bind_int(value, minimize_types)
        if isinstance(value, float):
            return BoundValue(FloatType(), value, -1)
        if isinstance(value, decimal.Decimal):
            return self.bind_decimal(value, minimize_types=minimize_types)
        if isinstance(value, (bytes, bytearray, memoryview)):
            value = bytes(value)
            if not minimize_types:
                return BoundValue(self.long_binary_type(), value, len(value))
            return self.bind_varbinary(value, len(value))
        if isinstance(value, str):
            if self._nchar:
                size = ucs2_length(value)
                if not minimize_types:
                    return BoundValue(self.long_nvarchar_type(), value, size)
                return self.bind_nvarchar(value, size)
            value, size = self.encode_varchar(value)
            if not minimize_types:
                return BoundValue(self.long_varchar_type(), value, size)
            return self.bind_varchar(value, size)
        if isinstance(value, datetime.datetime):
            return self.bind_datetime(value)
        if isinstance(value, datetime.date):
            return BoundValue(
                DateTimeType(),
                datetime.datetime.combine(value, datetime.time()),
                -1,
            )
        if isinstance(value, datetime.time):
            if tds_base.IS_TDS73_PLUS(self._tds_version):
                return BoundValue(TimeType(), value, -1)
            return BoundValue(
                DateTimeType(), datetime.datetime.combine(_BASE_DATE, value), -1
            )
        if isinstance(value, uuid.UUID):
            return BoundValue(CharType(36), str(value), 36)
        raise tds_base.InterfaceError(
            'could not implicitly convert Python type "{}" to SQL'.format(
                type(value).__qualname__
            )
        )

    def _bind_int(self, value: int, minimize_types: bool) -> BoundValue:
        if not BIGINT_RANGE[0] <= value <= BIGINT_RANGE[1]:
            raise OverflowError("int too big to convert")
        if not minimize_types:
            return BoundValue(BigIntType(), value, -1)
        if TINYINT_RANGE[0] <= value <= TINYINT_RANGE[1]:
            sql_type: SqlTypeMetaclass = TinyIntType()
        elif SMALLINT_RANGE[0] <= value <= SMALLINT_RANGE[1]:
            sql_type = SmallIntType()
        elif INT_RANGE[0] <= value <= INT_RANGE[1]:
            sql_type = IntType()
        else:
            sql_type = BigIntType()
        return BoundValue(sql_type, value, -1)

    def bind_decimal(
        self,
        value: decimal.Decimal,
        precision: int | None = None,
        scale: int | None = None,
        minimize_types: bool = True,
    ) -> BoundValue:
        if precision is None:
            precision, scale = self._decimal_precision(value)
        assert scale is not None
        if not value.is_finite():
            raise tds_base.DataError("{!r} out of range".format(value))
        try:
            value = value.quantize(
                decimal.Decimal(1).scaleb(-scale),
                rounding=decimal.ROUND_HALF_EVEN,
                context=_decimal_context,
            )
        except decimal.InvalidOperation:
            raise tds_base.DataError("{!r} out of range".format(value))
        if not minimize_types:
            precision = MAX_DECIMAL_PRECISION
        return BoundValue(DecimalType(precision, scale), value, -1)

    def _decimal_precision(self, value: decimal.Decimal) -> tuple[int, int]:
        if not value.is_finite():
            raise tds_base.DataError("{!r} out of range".format(value))
        _, digits, exponent = value.as_tuple()
        assert isinstance(exponent, int)
        if exponent >= 0:
            integer = len(digits) + exponent
            fractional = 0
        else:
            integer = max(len(digits) + exponent, 0)
            fractional = -exponent
        if integer > MAX_DECIMAL_PRECISION:
            raise tds_base.DataError("{!r} out of range".format(value))
        precision = max(integer + fractional, 1)
        scale = fractional
        if precision > MAX_DECIMAL_PRECISION:
            self.warn(
                "{!r} exceeds SQL DECIMAL precision; truncating".format(value)
            )
            precision = MAX_DECIMAL_PRECISION
            scale = min(fractional, MAX_DECIMAL_PRECISION - integer)
        return precision, scale

    def bind_datetime(self, value: datetime.datetime) -> BoundValue:
        if value.microsecond and tds_base.IS_TDS73_PLUS(self._tds_version):
            return BoundValue(DateTime2Type(), value, -1)
        return BoundValue(DateTimeType(), value, -1)

    def bind_varbinary(self, value: bytes | None, size: int) -> BoundValue:
        if size > MAX_BINARY_SIZE:
            return BoundValue(self.long_binary_type(), value, size)
        return BoundValue(VarBinaryType(max(size, 1)), value, size)

    def bind_varchar(self, value: str | None, size: int) -> BoundValue:
        if size > MAX_VARCHAR_SIZE:
            return BoundValue(TextType(), value, size)
        return BoundValue(VarCharType(max(size, 1)), value, size)

    def bind_nvarchar(self, value: str | None, size: int) -> BoundValue:
        if size > MAX_NVARCHAR_SIZE:
            return BoundValue(self.long_nvarchar_type(), value, size)
        return BoundValue(NVarCharType(max(size, 1)), value, size)

    def long_binary_type(self) -> SqlTypeMetaclass:
        if tds_base.IS_TDS72_PLUS(self._tds_version):
            return VarBinaryMaxType()
        return ImageType()

    def long_varchar_type(self) -> SqlTypeMetaclass:
        if tds_base.IS_TDS72_PLUS(self._tds_version):
            return VarCharMaxType()
        return TextType()

    def long_nvarchar_type(self) -> SqlTypeMetaclass:
        if tds_base.IS_TDS72_PLUS(self._tds_version):
            return NVarCharMaxType()
        return NTextType()

    def encode_varchar(self, value: str) -> tuple[str, int]:
        """
        Make sure every character of `value` can be represented in the connection
        code page. Characters which can't are replaced and a warning is reported.

        :returns: tuple of possibly modified value and it's encoded length in bytes
        """
        try:
            return value, len(value.encode(self._charset))
        except UnicodeEncodeError:
            pass
        replacement = _replacement_for(self._charset)
        chars = []
        size = 0
        for ch in value:
            try:
                size += len(ch.encode(self._charset))
                chars.append(ch)
            except UnicodeEncodeError:
                self.warn(
                    "Unicode codepoint U+{:08X} is not representable in {}; "
                    "replaced".format(ord(ch), self._charset)
                )
                chars.append(replacement)
                size += len(replacement.encode(self._charset))
        return "".join(chars), size


def _replacement_for(charset: str) -> str:
    try:
        REPLACEMENT_CHARACTER.encode(charset)
    except UnicodeEncodeError:
        return "?"
    return REPLACEMENT_CHARACTER


def ucs2_length(value: str) -> int:
    """Number of UTF-16 code units needed to encode `value`"""
    return len(value.encode(_ucs2_codec, "surrogatepass")) // 2


#
# Wrappers for explicitly typed parameter values
#
class SqlType:
    """
    Base class of wrappers used to explicitly specify SQL type of a parameter value.

    :param value: wrapped value, ``None`` for ``NULL``
    :param size: size of variable length types, ``-1`` for fixed length types
    """

    tdstype = tds_base.SYBVOID

    def __init__(self, value: Any, size: int = -1):
        self._value = value
        self._size = size
        self._explicit_size = False

    @property
    def value(self) -> Any:
        return self._value

    @property
    def size(self) -> int:
        return self._size

    def __repr__(self):
        if self._explicit_size:
            return "{}({!r}, size={})".format(
                type(self).__name__, self._value, self._size
            )
        return "{}({!r})".format(type(self).__name__, self._value)

    def bind(self, inferrer: TypeInferrer) -> BoundValue:
        raise NotImplementedError()


class _SqlIntegerType(SqlType):
    sql_type: type[SqlTypeMetaclass] = IntType
    value_range = INT_RANGE

    def __init__(self, value: int | None):
        if value is not None:
            if isinstance(value, bool) or not isinstance(value, int):
                raise TypeError(value)
            low, high = self.value_range
            if not low <= value <= high:
                raise OverflowError(
                    "{} is out of range for {}".format(value, type(self).__name__)
                )
        super().__init__(value)

    def bind(self, inferrer):
        return BoundValue(self.sql_type(), self._value, -1)


class SqlTinyInt(_SqlIntegerType):
    tdstype = tds_base.SYBINT1
    sql_type = TinyIntType
    value_range = TINYINT_RANGE


class SqlSmallInt(_SqlIntegerType):
    tdstype = tds_base.SYBINT2
    sql_type = SmallIntType
    value_range = SMALLINT_RANGE


class SqlInt(_SqlIntegerType):
    tdstype = tds_base.SYBINT4
    sql_type = IntType
    value_range = INT_RANGE


class SqlBigInt(_SqlIntegerType):
    tdstype = tds_base.SYBINT8
    sql_type = BigIntType
    value_range = BIGINT_RANGE


class SqlDecimal(SqlType):
    """
    DECIMAL value with explicit precision and scale.
    Digits beyond `scale` are rounded when the value is sent.
    """

    tdstype = tds_base.SYBDECIMAL

    def __init__(self, value: Any, precision: int = 18, scale: int = 0):
        if not 1 <= precision <= MAX_DECIMAL_PRECISION:
            raise ValueError("invalid precision: {}".format(precision))
        if not 0 <= scale <= precision:
            raise ValueError("invalid scale: {}".format(scale))
        if value is not None:
            _to_decimal(value)
        super().__init__(value)
        self._precision = precision
        self._scale = scale

    @property
    def precision(self) -> int:
        return self._precision

    @property
    def scale(self) -> int:
        return self._scale

    def __repr__(self):
        return "SqlDecimal({!r}, precision={}, scale={})".format(
            self._value, self._precision, self._scale
        )

    def bind(self, inferrer):
        if self._value is None:
            return BoundValue(DecimalType(self._precision, self._scale), None, -1)
        return inferrer.bind_decimal(
            _to_decimal(self._value), precision=self._precision, scale=self._scale
        )


def _to_decimal(value: Any) -> decimal.Decimal:
    if isinstance(value, decimal.Decimal):
        return value
    if isinstance(value, float):
        return decimal.Decimal(repr(value))
    return decimal.Decimal(value)


def _check_binary(value: Any) -> bytes | None:
    if value is None:
        return None
    if not isinstance(value, (bytes, bytearray, memoryview)):
        raise TypeError(value)
    return bytes(value)


def _check_text(value: Any) -> str | None:
    if value is not None and not isinstance(value, str):
        raise TypeError(value)
    return value


class SqlBinary(SqlType):
    tdstype = tds_base.XSYBBINARY

    def __init__(self, value: Any):
        value = _check_binary(value)
        size = max(1, len(value)) if value is not None else 1
        if size > MAX_BINARY_SIZE:
            raise ValueError("BINARY value is longer than {}".format(MAX_BINARY_SIZE))
        super().__init__(value, size)

    def bind(self, inferrer):
        return BoundValue(BinaryType(self._size), self._value, self._size)


class SqlVarBinary(SqlType):
    """
    VARBINARY value, an explicit `size` shorter than the value truncates it
    """

    tdstype = tds_base.XSYBVARBINARY

    def __init__(self, value: Any, size: int | None = None):
        value = _check_binary(value)
        natural = len(value) if value is not None else 0
        super().__init__(value, natural if size is None else size)
        if size is not None:
            if size < 1:
                raise ValueError("invalid size: {}".format(size))
            self._explicit_size = True

    def bind(self, inferrer):
        value = self._value
        if value is not None and len(value) > self._size:
            value = value[: self._size]
        return inferrer.bind_varbinary(value, self._size)


class SqlChar(SqlType):
    tdstype = tds_base.XSYBCHAR

    def __init__(self, value: Any):
        value = _check_text(value)
        super().__init__(value, len(value) if value is not None else 1)
        if self._size > MAX_VARCHAR_SIZE:
            raise ValueError("CHAR value is longer than {}".format(MAX_VARCHAR_SIZE))

    def bind(self, inferrer):
        value = self._value
        if value is None:
            return BoundValue(CharType(1), None, 0)
        value, size = inferrer.encode_varchar(value)
        if size > MAX_VARCHAR_SIZE:
            raise ValueError("CHAR value is longer than {}".format(MAX_VARCHAR_SIZE))
        return BoundValue(CharType(max(size, 1)), value, size)


class SqlVarChar(SqlType):
    """
    VARCHAR value encoded with connection code page.
    Size is measured in encoded bytes, an explicit `size` shorter than
    the value truncates it.
    """

    tdstype = tds_base.XSYBVARCHAR

    def __init__(self, value: Any, size: int | None = None):
        value = _check_text(value)
        natural = len(value) if value is not None else 1
        super().__init__(value, natural if size is None else size)
        if size is not None:
            if size < 1:
                raise ValueError("invalid size: {}".format(size))
            self._explicit_size = True

    def bind(self, inferrer):
        value = self._value
        if value is None:
            return inferrer.bind_varchar(None, self._size)
        value, size = inferrer.encode_varchar(value)
        if not self._explicit_size:
            return inferrer.bind_varchar(value, size)
        if size > self._size:
            encoded = value.encode(inferrer.charset)[: self._size]
            value = encoded.decode(inferrer.charset, "ignore")
        # declared with the requested size, e.g. to reserve an OUTPUT buffer
        return inferrer.bind_varchar(value, self._size)


class SqlNVarChar(SqlType):
    """
    NVARCHAR value, size is measured in UTF-16 code units
    """

    tdstype = tds_base.XSYBNVARCHAR

    def __init__(self, value: Any, size: int | None = None):
        value = _check_text(value)
        natural = ucs2_length(value) if value is not None else 0
        super().__init__(value, natural if size is None else size)
        if size is not None:
            if size < 1:
                raise ValueError("invalid size: {}".format(size))
            self._explicit_size = True

    def bind(self, inferrer):
        value = self._value
        size = self._size
        if value is not None and ucs2_length(value) > size:
            encoded = value.encode(_ucs2_codec, "surrogatepass")[: size * 2]
            value = encoded.decode(_ucs2_codec, "ignore")
        return inferrer.bind_nvarchar(value, size)


class SqlDate(SqlType):
    tdstype = tds_base.SYBMSDATE

    def __init__(self, value: Any):
        if isinstance(value, datetime.datetime):
            value = value.date()
        elif value is not None and not isinstance(value, datetime.date):
            raise TypeError(value)
        super().__init__(value)

    def bind(self, inferrer):
        if tds_base.IS_TDS73_PLUS(inferrer.tds_version):
            return BoundValue(DateType(), self._value, -1)
        value = self._value
        if value is not None:
            value = datetime.datetime.combine(value, datetime.time())
        return BoundValue(DateTimeType(), value, -1)


def unwrap(value: Any) -> Any:
    """Plain Python value of a parameter which may be wrapped into :class:`SqlType`"""
    if isinstance(value, SqlType):
        return value.value
    return value


#
# Result columns
#
_sized_variants = {
    tds_base.SYBINTN: {
        1: tds_base.SYBINT1,
        2: tds_base.SYBINT2,
        4: tds_base.SYBINT4,
        8: tds_base.SYBINT8,
    },
    tds_base.SYBFLTN: {4: tds_base.SYBREAL, 8: tds_base.SYBFLT8},
    tds_base.SYBMONEYN: {4: tds_base.SYBMONEY4, 8: tds_base.SYBMONEY},
    tds_base.SYBDATETIMN: {4: tds_base.SYBDATETIME4, 8: tds_base.SYBDATETIME},
}

_native_temporal_types = (
    tds_base.SYBMSDATE,
    tds_base.SYBMSTIME,
    tds_base.SYBMSDATETIME2,
    tds_base.SYBMSDATETIMEOFFSET,
)

_unsupported_types = (tds_base.SYBVOID, tds_base.SYBVARIANT, tds_base.SYBMSUDT)


class ColumnDescription(typing.NamedTuple):
    """Entry of :attr:`Cursor.description`"""

    name: str
    type_code: int
    display_size: int | None
    internal_size: int
    precision: int | None
    scale: int | None
    null_ok: bool


def normalize_column(column: Column, tds_version: int) -> Column:
    """
    Replace nullable variants of fixed types by the fixed type of the same size
    and report native date and time types as character data when the
    negotiated protocol can't carry them.

    :raises NotSupportedError: for columns of unsupported types
    """
    type_code = column.type_code
    if type_code in _unsupported_types:
        raise tds_base.NotSupportedError(
            'unsupported type {} for column "{}"'.format(type_code, column.name)
        )
    variants = _sized_variants.get(type_code)
    if variants is not None:
        type_code = variants.get(column.size, type_code)
    elif type_code == tds_base.SYBBITN:
        type_code = tds_base.SYBBIT
    elif type_code in _native_temporal_types and not tds_base.IS_TDS73_PLUS(
        tds_version
    ):
        type_code = tds_base.XSYBNVARCHAR
    if type_code == column.type_code:
        return column
    return column._replace(type_code=type_code)


def describe_column(column: Column) -> ColumnDescription:
    if column.type_code == tds_base.DECIMAL or column.type_code in _native_temporal_types:
        precision, scale = column.precision, column.scale
    else:
        precision, scale = None, None
    return ColumnDescription(
        name=column.name,
        type_code=column.type_code,
        display_size=None,
        internal_size=column.size,
        precision=precision,
        scale=scale,
        null_ok=column.nullable,
    )


def _to_bool(value):
    return None if value is None else bool(value)


def _to_bytes(value):
    return None if value is None or isinstance(value, bytes) else bytes(value)


_value_converters: dict[int, Callable[[Any], Any]] = {
    tds_base.SYBBIT: _to_bool,
    tds_base.SYBIMAGE: _to_bytes,
    tds_base.XSYBBINARY: _to_bytes,
    tds_base.XSYBVARBINARY: _to_bytes,
    tds_base.SYBBINARY: _to_bytes,
    tds_base.SYBVARBINARY: _to_bytes,
}


def row_converter(columns: list[Column]) -> Callable[[list[Any]], list[Any]]:
    """
    Returns function converting a list of raw column values into
    Python values, columns should already be normalized
    """
    converters = [(i, _value_converters.get(col.type_code)) for i, col in enumerate(columns)]
    converters = [(i, conv) for i, conv in converters if conv is not None]

    def convert(values: list[Any]) -> list[Any]:
        for i, conv in converters:
            values[i] = conv(values[i])
        return values

    return convert


_fixed_declarations = {
    tds_base.SYBBIT: "BIT",
    tds_base.SYBINT1: "TINYINT",
    tds_base.SYBINT2: "SMALLINT",
    tds_base.SYBINT4: "INT",
    tds_base.SYBINT8: "BIGINT",
    tds_base.SYBREAL: "REAL",
    tds_base.SYBFLT8: "FLOAT",
    tds_base.SYBMONEY4: "SMALLMONEY",
    tds_base.SYBMONEY: "MONEY",
    tds_base.SYBDATETIME4: "SMALLDATETIME",
    tds_base.SYBDATETIME: "DATETIME",
    tds_base.SYBMSDATE: "DATE",
    tds_base.SYBTEXT: "TEXT",
    tds_base.SYBNTEXT: "NTEXT",
    tds_base.SYBIMAGE: "IMAGE",
    tds_base.SYBUNIQUE: "UNIQUEIDENTIFIER",
    tds_base.SYBMSXML: "XML",
}

_sized_declarations = {
    tds_base.XSYBCHAR: ("CHAR", MAX_VARCHAR_SIZE),
    tds_base.SYBCHAR: ("CHAR", MAX_VARCHAR_SIZE),
    tds_base.XSYBVARCHAR: ("VARCHAR", MAX_VARCHAR_SIZE),
    tds_base.SYBVARCHAR: ("VARCHAR", MAX_VARCHAR_SIZE),
    tds_base.XSYBNCHAR: ("NCHAR", MAX_NVARCHAR_SIZE),
    tds_base.XSYBNVARCHAR: ("NVARCHAR", MAX_NVARCHAR_SIZE),
    tds_base.XSYBBINARY: ("BINARY", MAX_BINARY_SIZE),
    tds_base.SYBBINARY: ("BINARY", MAX_BINARY_SIZE),
    tds_base.XSYBVARBINARY: ("VARBINARY", MAX_BINARY_SIZE),
    tds_base.SYBVARBINARY: ("VARBINARY", MAX_BINARY_SIZE),
}


def declaration_for_column(column: Column) -> str:
    """
    SQL declaration of a table column, used to describe columns of ``INSERT BULK``

    :param column: normalized column metadata
    """
    type_code = column.type_code
    declaration = _fixed_declarations.get(type_code)
    if declaration is not None:
        return declaration
    if type_code in (tds_base.SYBDECIMAL, tds_base.SYBNUMERIC):
        return "DECIMAL({}, {})".format(column.precision, column.scale)
    if type_code == tds_base.SYBMSTIME:
        return "TIME({})".format(column.scale)
    if type_code == tds_base.SYBMSDATETIME2:
        return "DATETIME2({})".format(column.scale)
    if type_code == tds_base.SYBMSDATETIMEOFFSET:
        return "DATETIMEOFFSET({})".format(column.scale)
    sized = _sized_declarations.get(type_code)
    if sized is not None:
        name, max_size = sized
        if column.size <= 0 or column.size > max_size:
            return "{}(MAX)".format(name)
        return "{}({})".format(name, column.size)
    raise tds_base.NotSupportedError(
        'unsupported type {} for column "{}"'.format(type_code, column.name)
    )
