#coding:utf-8
#
#   PROGRAM/MODULE: fbsql
#   FILE:           sqlda.py
#   DESCRIPTION:    Firebird SQL execution core - XSQLDA marshalling and value conversion
#   CREATED:        18.10.2026
#
#  Software distributed under the License is distributed AS IS,
#  WITHOUT WARRANTY OF ANY KIND, either express or implied.
#  See the License for the specific language governing rights
#  and limitations under the License.
#
#  The Original Code was created by Pavel Cisar
#
#  Copyright (c) Pavel Cisar <pcisar@users.sourceforge.net>
#  and all contributors signed below.
#
#  All Rights Reserved.
#  Contributor(s): ______________________________________.
#
# See LICENSE.TXT for details.

"""XSQLDA handling: descriptor allocation, layout of data and NULL indicators
in flat buffer, and conversion between Python values and Firebird data.

Layout of descriptor entries (in order) inside the buffer:

- data are aligned to `sqllen` bytes (TEXT to 1 byte, VARYING to 2 bytes
  and 2 more bytes are reserved for VARYING length prefix),
- NULL indicator (short) follows data aligned to 2 bytes.
"""

import ctypes
import datetime
import decimal
import struct
import warnings

from . import ibase
from .ibase import (ISC_SHORT, ISC_SCHAR, ISC_LONG, XSQLVAR, XSQLDA_PTR, SQLDA_version1,
                    SQL_TEXT, SQL_VARYING, SQL_SHORT, SQL_LONG, SQL_FLOAT, SQL_DOUBLE,
                    SQL_D_FLOAT, SQL_TIMESTAMP, SQL_BLOB, SQL_ARRAY, SQL_TYPE_TIME,
                    SQL_TYPE_DATE, SQL_INT64, SHRT_MIN, SHRT_MAX, INT_MIN, INT_MAX,
                    LONG_MIN, LONG_MAX, FLT_MIN, FLT_MAX)
from .errors import ProgrammingError, DataError, NotSupportedError, FirebirdWarning
from .utils import bytes_to_int, int_to_bytes

#: Initial capacity of XSQLDA
SQLDA_COLSINIT = 10
#: Size of segments used to write BLOB values
BLOB_SEGMENT_SIZE = 4096

_SIZE_OF_SHORT = ctypes.sizeof(ctypes.c_short)

# Character set IDs that need special handling
_CHARSET_OCTETS = 1
_CHARSET_UNICODE_FSS = 3
_CHARSET_UTF8 = 4
_CHARSET_GB18030 = 69

_BLOB_SUBTYPE_TEXT = 1

MSG_NOT_NULL = "specified column is not permitted to be null"
MSG_PARAM_COUNT = "statement requires %d items; %d given"
MSG_UNSUPPORTED = "Specified table includes unsupported datatype (%d)"

__xsqlda_cache = {}

def xsqlda_type(size):
    "Returns XSQLDA structure class with `size` XSQLVAR entries."
    if size in __xsqlda_cache:
        cls = __xsqlda_cache[size]
    else:
        class XSQLDA(ctypes.Structure):
            pass
        XSQLDA._fields_ = [
            ('version', ISC_SHORT),
            ('sqldaid', ISC_SCHAR * 8),
            ('sqldabc', ISC_LONG),
            ('sqln', ISC_SHORT),
            ('sqld', ISC_SHORT),
            ('sqlvar', XSQLVAR * size),
        ]
        __xsqlda_cache[size] = XSQLDA
        cls = XSQLDA
    return cls

def xsqlda_factory(size):
    "Returns new XSQLDA with capacity for `size` entries."
    xsqlda = xsqlda_type(size)()
    xsqlda.version = SQLDA_version1
    xsqlda.sqln = size
    return xsqlda

def align(n, b):
    "Round `n` up to nearest multiple of `b` (which must be power of 2)."
    return (n + b - 1) & ~(b - 1)

def slot_size(sqltype, sqllen):
    """Returns (alignment, length) of data slot for descriptor entry.

    Args:
        sqltype (int): XSQLVAR.sqltype (NULL flag is ignored).
        sqllen (int): XSQLVAR.sqllen
    """
    vartype = sqltype & ~1
    alignment = length = sqllen
    if vartype == SQL_TEXT:
        alignment = 1
    elif vartype == SQL_VARYING:
        length += _SIZE_OF_SHORT
        alignment = _SIZE_OF_SHORT
    return max(alignment, 1), length

def calculate_layout(entries):
    """Computes layout of descriptor entries in flat buffer.

    Args:
        entries: Iterable of (sqltype, sqllen) pairs.

    Returns:
        tuple: (list of (data_offset, indicator_offset) pairs, total buffer size)
    """
    offsets = []
    offset = 0
    for sqltype, sqllen in entries:
        alignment, length = slot_size(sqltype, sqllen)
        offset = align(offset, alignment)
        data_offset = offset
        offset += length
        offset = align(offset, _SIZE_OF_SHORT)
        offsets.append((data_offset, offset))
        offset += _SIZE_OF_SHORT
    return offsets, offset

def calculate_buffsize(xsqlda):
    "Returns size of buffer required by all entries of `xsqlda`."
    return calculate_layout((v.sqltype, v.sqllen) for v in xsqlda.sqlvar[:xsqlda.sqld])[1]


class SQLBuffer(object):
    """Flat memory block for XSQLVAR data and NULL indicators.

    The block only grows, so once allocated it's reused by all subsequent
    statements that fit into it.
    """
    def __init__(self):
        self._buffer = None
        #: Current size of the memory block
        self.size = 0
    def reserve(self, size):
        """Ensure that buffer has at least `size` bytes. Content of the buffer
        is lost when buffer has to grow.

        Returns:
            bool: True if new memory block was allocated.
        """
        if self._buffer is None or size > self.size:
            self._buffer = ctypes.create_string_buffer(max(size, 1))
            self.size = max(size, 1)
            return True
        return False
    def pointer(self, offset, ctype=ctypes.c_char):
        "Returns ctypes pointer to `ctype` at `offset` inside the buffer."
        return ctypes.cast(ctypes.addressof(self._buffer) + offset, ctypes.POINTER(ctype))
    def write(self, offset, data):
        "Copy `data` into buffer at `offset`."
        if offset + len(data) > self.size:
            raise ValueError("Data don't fit into buffer")
        ctypes.memmove(ctypes.addressof(self._buffer) + offset, bytes(data), len(data))
    def read(self, offset, length):
        "Returns copy of `length` bytes at `offset`."
        return ctypes.string_at(ctypes.addressof(self._buffer) + offset, length)


# Date/time conversions (the same arithmetic as isc_encode_sql_date & Co.)

def encode_date(v):
    "Convert datetime.date to ISC_DATE bytes."
    i = v.month + 9
    jy = v.year + (i // 12) - 1
    jm = i % 12
    c = jy // 100
    jy -= 100 * c
    j = ((146097 * c) // 4 + (1461 * jy) // 4
         + (153 * jm + 2) // 5 + v.day - 678882)
    return int_to_bytes(j, 4)

def encode_time(v):
    "Convert datetime.time to ISC_TIME bytes."
    t = ((v.hour * 3600 + v.minute * 60 + v.second) * 10000
         + v.microsecond // 100)
    return struct.pack('<L', t)

def decode_date(raw_value):
    "Convert ISC_DATE bytes to datetime.date"
    nday = bytes_to_int(raw_value) + 678882
    century = (4 * nday - 1) // 146097
    nday = 4 * nday - 1 - 146097 * century
    day = nday // 4

    nday = (4 * day + 3) // 1461
    day = 4 * day + 3 - 1461 * nday
    day = (day + 4) // 4

    month = (5 * day - 3) // 153
    day = 5 * day - 3 - 153 * month
    day = (day + 5) // 5
    year = 100 * century + nday
    if month < 10:
        month += 3
    else:
        month -= 9
        year += 1
    return datetime.date(year, month, day)

def decode_time(raw_value):
    "Convert ISC_TIME bytes to datetime.time"
    n = struct.unpack('<L', raw_value)[0]
    s = n // 10000
    m = s // 60
    h = m // 60
    return datetime.time(h, m % 60, s % 60, (n % 10000) * 100)


def python_charset(charset):
    "Returns Python codec name for Firebird character set name (None for OCTETS)."
    if charset is not None:
        charset = charset.upper()
    return ibase.charset_map.get(charset, charset)

def _integer(value, sqlvar, vmin, vmax, message):
    if not isinstance(value, (int, float, decimal.Decimal)):
        raise TypeError("Objects of type %s are not acceptable input for"
                        " a integer column (parameter %s)" % (type(value).__name__,
                                                             _var_name(sqlvar)))
    value = int(value)
    if value < vmin or value > vmax:
        raise DataError(message, -802)
    return value

def _float(value, sqlvar):
    if not isinstance(value, (int, float, decimal.Decimal)):
        raise TypeError("Objects of type %s are not acceptable input for"
                        " a float column (parameter %s)" % (type(value).__name__,
                                                           _var_name(sqlvar)))
    return float(value)

def _string(value, charset):
    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if not isinstance(value, str):
        value = str(value)
    return value.encode(charset or ibase.sys_encoding)

def _var_name(sqlvar):
    return sqlvar.sqlname[:sqlvar.sqlname_length].decode('utf_8', 'replace') or '?'

def encode_value(sqlvar, value, charset, blob_writer):
    """Convert Python value into data for descriptor entry.

    Args:
        sqlvar (XSQLVAR): Descriptor entry.
        value: Python value (not None).
        charset (str): Python codec for strings.
        blob_writer (callable): Called with bytes to store as new BLOB, returns BLOB ID (bytes).

    Returns:
        tuple: (data, alignment, length of reserved space)

    Raises:
        TypeError: When value type is not acceptable for the column.
        ValueError: When string value is too long.
        fbsql.DataError: When numeric value is out of range.
        fbsql.NotSupportedError: For ARRAY and unknown column types.
    """
    vartype = sqlvar.sqltype & ~1
    if vartype == SQL_TEXT:
        data = _string(value, charset)
        if len(data) > sqlvar.sqllen:
            raise ValueError("Value of parameter (%s) is too long, expected %i, found %i"
                             % (_var_name(sqlvar), sqlvar.sqllen, len(data)))
        sqlvar.sqllen = len(data)
        return data, 1, len(data) + 1
    elif vartype == SQL_VARYING:
        data = _string(value, charset)
        if len(data) > sqlvar.sqllen:
            raise ValueError("Value of parameter (%s) is too long, expected %i, found %i"
                             % (_var_name(sqlvar), sqlvar.sqllen, len(data)))
        return struct.pack('=h', len(data)) + data, _SIZE_OF_SHORT, len(data) + _SIZE_OF_SHORT
    elif vartype == SQL_SHORT:
        value = _integer(value, sqlvar, SHRT_MIN, SHRT_MAX, "short integer overflow")
        return struct.pack('=h', value), sqlvar.sqllen, sqlvar.sqllen
    elif vartype == SQL_LONG:
        value = _integer(value, sqlvar, INT_MIN, INT_MAX, "integer overflow")
        return struct.pack('=i', value), sqlvar.sqllen, sqlvar.sqllen
    elif vartype == SQL_INT64:
        value = _integer(value, sqlvar, LONG_MIN, LONG_MAX, "64-bit integer overflow")
        return struct.pack('=q', value), sqlvar.sqllen, sqlvar.sqllen
    elif vartype == SQL_FLOAT:
        value = _float(value, sqlvar)
        if value != 0.0 and not (FLT_MIN <= abs(value) <= FLT_MAX):
            raise DataError("float overflow", -802)
        return struct.pack('=f', value), sqlvar.sqllen, sqlvar.sqllen
    elif vartype in (SQL_DOUBLE, SQL_D_FLOAT):
        return struct.pack('=d', _float(value, sqlvar)), sqlvar.sqllen, sqlvar.sqllen
    elif vartype == SQL_TIMESTAMP:
        if isinstance(value, datetime.datetime):
            data = encode_date(value.date()) + encode_time(value.time())
        elif isinstance(value, datetime.date):
            data = encode_date(value) + encode_time(datetime.time())
        else:
            raise TypeError("datetime.datetime or datetime.date expected")
        return data, sqlvar.sqllen, sqlvar.sqllen
    elif vartype == SQL_TYPE_DATE:
        if isinstance(value, datetime.datetime):
            value = value.date()
        elif not isinstance(value, datetime.date):
            raise TypeError("datetime.date expected")
        return encode_date(value), sqlvar.sqllen, sqlvar.sqllen
    elif vartype == SQL_TYPE_TIME:
        if isinstance(value, datetime.datetime):
            value = value.time()
        elif not isinstance(value, datetime.time):
            raise TypeError("datetime.time expected")
        return encode_time(value), sqlvar.sqllen, sqlvar.sqllen
    elif vartype == SQL_BLOB:
        return blob_writer(_string(value, charset)), sqlvar.sqllen, sqlvar.sqllen
    elif vartype == SQL_ARRAY:
        raise NotSupportedError("Arrays not supported")
    else:
        raise NotSupportedError(MSG_UNSUPPORTED % vartype)

def _scaled(value, scale):
    if scale < 0:
        return value / (10 ** -scale)
    return value

def decode_value(sqlvar, charset, blob_reader):
    """Convert data of descriptor entry into Python value.

    Args:
        sqlvar (XSQLVAR): Descriptor entry with valid data.
        charset (str): Python codec for strings.
        blob_reader (callable): Called with BLOB ID (bytes), returns BLOB content.
    """
    vartype = sqlvar.sqltype & ~1
    if vartype == SQL_TEXT:
        value = ctypes.string_at(sqlvar.sqldata, sqlvar.sqllen)
        if charset and sqlvar.sqlsubtype != _CHARSET_OCTETS:
            value = value.decode(charset)
            # CHAR with multibyte encoding requires special handling
            if sqlvar.sqlsubtype in (_CHARSET_UTF8, _CHARSET_GB18030):
                value = value[:sqlvar.sqllen // 4]
            elif sqlvar.sqlsubtype == _CHARSET_UNICODE_FSS:
                value = value[:sqlvar.sqllen // 3]
        return value
    elif vartype == SQL_VARYING:
        address = ctypes.cast(sqlvar.sqldata, ctypes.c_void_p).value
        size = struct.unpack('=h', ctypes.string_at(address, _SIZE_OF_SHORT))[0]
        value = ctypes.string_at(address + _SIZE_OF_SHORT, size)
        if charset and sqlvar.sqlsubtype != _CHARSET_OCTETS:
            value = value.decode(charset)
        return value
    elif vartype == SQL_SHORT:
        value = struct.unpack('=h', ctypes.string_at(sqlvar.sqldata, 2))[0]
        return _scaled(value, sqlvar.sqlscale)
    elif vartype == SQL_LONG:
        value = struct.unpack('=i', ctypes.string_at(sqlvar.sqldata, 4))[0]
        return _scaled(value, sqlvar.sqlscale)
    elif vartype == SQL_INT64:
        value = struct.unpack('=q', ctypes.string_at(sqlvar.sqldata, 8))[0]
        return _scaled(value, sqlvar.sqlscale)
    elif vartype == SQL_FLOAT:
        return struct.unpack('=f', ctypes.string_at(sqlvar.sqldata, 4))[0]
    elif vartype in (SQL_DOUBLE, SQL_D_FLOAT):
        return struct.unpack('=d', ctypes.string_at(sqlvar.sqldata, 8))[0]
    elif vartype == SQL_TIMESTAMP:
        raw = ctypes.string_at(sqlvar.sqldata, 8)
        return datetime.datetime.combine(decode_date(raw[:4]), decode_time(raw[4:]))
    elif vartype == SQL_TYPE_DATE:
        return decode_date(ctypes.string_at(sqlvar.sqldata, 4))
    elif vartype == SQL_TYPE_TIME:
        return decode_time(ctypes.string_at(sqlvar.sqldata, 4))
    elif vartype == SQL_BLOB:
        value = blob_reader(ctypes.string_at(sqlvar.sqldata, sqlvar.sqllen))
        if charset and sqlvar.sqlsubtype == _BLOB_SUBTYPE_TEXT:
            value = value.decode(charset)
        return value
    elif vartype == SQL_ARRAY:
        warnings.warn("ARRAY not supported (yet)", FirebirdWarning, stacklevel=4)
        return None
    else:
        raise NotSupportedError(MSG_UNSUPPORTED % vartype)


class Descriptor(object):
    """XSQLDA for statement input parameters or output columns together with
    buffer for their values.

    Args:
        size (int): Initial capacity.
    """
    def __init__(self, size=SQLDA_COLSINIT):
        #: XSQLDA structure
        self.xsqlda = xsqlda_factory(size)
        #: Buffer for data and NULL indicators
        self.buffer = SQLBuffer()
        self.__saved = []
    def __get_count(self):
        return self.xsqlda.sqld
    def __get_capacity(self):
        return self.xsqlda.sqln
    def __get_sqlvars(self):
        return self.xsqlda.sqlvar[:self.xsqlda.sqld]
    def __get_pointer(self):
        return ctypes.cast(ctypes.pointer(self.xsqlda), XSQLDA_PTR)
    def grow(self):
        """Reallocate XSQLDA when last describe reported more entries than
        its capacity.

        Returns:
            bool: True when XSQLDA was reallocated and must be described again.
        """
        if self.xsqlda.sqld > self.xsqlda.sqln:
            self.xsqlda = xsqlda_factory(self.xsqlda.sqld)
            return True
        return False
    def save(self):
        "Remember type and length of all entries as returned by describe."
        self.__saved = [(v.sqltype, v.sqllen) for v in self.sqlvars]
    def restore(self):
        "Restore type and length of all entries to values remembered by :meth:`save`."
        for sqlvar, (sqltype, sqllen) in zip(self.sqlvars, self.__saved):
            sqlvar.sqltype = sqltype
            sqlvar.sqllen = sqllen
    def layout(self):
        """Point data and indicators of all entries into the buffer (grown if
        necessary).

        Returns:
            list: (data_offset, indicator_offset) for each entry.
        """
        sqlvars = self.sqlvars
        offsets, size = calculate_layout((v.sqltype, v.sqllen) for v in sqlvars)
        self.buffer.reserve(size)
        for sqlvar, (data_offset, indicator_offset) in zip(sqlvars, offsets):
            sqlvar.sqldata = self.buffer.pointer(data_offset)
            sqlvar.sqlind = self.buffer.pointer(indicator_offset, ISC_SHORT)
        return offsets
    def encode(self, values, charset, blob_writer):
        """Store parameter values into the buffer.

        Args:
            values (sequence): Parameter values.
            charset (str): Python codec for strings.
            blob_writer (callable): See :func:`encode_value`.

        Returns:
            list: (data_offset, indicator_offset) for each entry; offset is None
            for NULL value or non-nullable entry respectively.

        Raises:
            fbsql.ProgrammingError: When number of values doesn't match number
                of parameters, or None is passed for non-nullable parameter.
        """
        sqlvars = self.sqlvars
        if len(values) != len(sqlvars):
            raise ProgrammingError(MSG_PARAM_COUNT % (len(sqlvars), len(values)))
        self.restore()
        image = bytearray()
        offsets = []
        for sqlvar, value in zip(sqlvars, values):
            nullable = sqlvar.sqltype & 1
            data_offset = indicator_offset = None
            if value is None:
                if not nullable:
                    raise ProgrammingError(MSG_NOT_NULL)
            else:
                data, alignment, length = encode_value(sqlvar, value, charset, blob_writer)
                data_offset = align(len(image), alignment)
                image.extend(bytes(data_offset + length - len(image)))
                image[data_offset:data_offset + len(data)] = data
            if nullable:
                indicator_offset = align(len(image), _SIZE_OF_SHORT)
                image.extend(bytes(indicator_offset - len(image)))
                image.extend(struct.pack('=h', -1 if value is None else 0))
            offsets.append((data_offset, indicator_offset))
        self.buffer.reserve(len(image))
        self.buffer.write(0, image)
        for sqlvar, (data_offset, indicator_offset) in zip(sqlvars, offsets):
            sqlvar.sqldata = None if data_offset is None else self.buffer.pointer(data_offset)
            sqlvar.sqlind = (None if indicator_offset is None
                             else self.buffer.pointer(indicator_offset, ISC_SHORT))
        return offsets
    def decode(self, charset, blob_reader):
        """Returns tuple with values of all entries.

        Args:
            charset (str): Python codec for strings.
            blob_reader (callable): See :func:`decode_value`.
        """
        values = []
        for sqlvar in self.sqlvars:
            if (sqlvar.sqltype & 1) and bool(sqlvar.sqlind) and sqlvar.sqlind[0] == -1:
                values.append(None)
            else:
                values.append(decode_value(sqlvar, charset, blob_reader))
        return tuple(values)
    def describe_columns(self, charset):
        """Returns column description for all entries.

        Returns:
            tuple: 7-item tuples (name, type_code, display_size, internal_size,
            precision, scale, null_ok).
        """
        charset = charset or 'utf_8'
        desc = []
        for sqlvar in self.sqlvars:
            sqlname = sqlvar.sqlname[:sqlvar.sqlname_length].decode(charset)
            alias = sqlvar.aliasname[:sqlvar.aliasname_length].decode(charset)
            if alias and alias != sqlname:
                sqlname = alias
            vartype = sqlvar.sqltype & ~1
            internal_size = sqlvar.sqllen
            if vartype == SQL_VARYING:
                internal_size += _SIZE_OF_SHORT
            desc.append((sqlname, vartype, sqlvar.sqllen, internal_size, 0,
                         sqlvar.sqlscale, bool(sqlvar.sqltype & 1)))
        return tuple(desc)

    #: Number of entries described
    count = property(__get_count)
    #: Number of entries XSQLDA can hold
    capacity = property(__get_capacity)
    #: List of described XSQLVAR entries
    sqlvars = property(__get_sqlvars)
    #: Pointer to XSQLDA suitable for API calls
    pointer = property(__get_pointer)
