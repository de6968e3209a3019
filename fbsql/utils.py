#coding:utf-8
#
#   PROGRAM/MODULE: fbsql
#   FILE:           utils.py
#   DESCRIPTION:    Firebird SQL execution core - various utility functions and classes
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

import struct

_INT_FORMATS = {1: 'b', 2: '<h', 4: '<l', 8: '<q'}
_UINT_FORMATS = {1: 'B', 2: '<H', 4: '<L', 8: '<Q'}

def bytes_to_int(b):
    """Read signed integer stored in little endian (VAX) byte order.

    Args:
        b (bytes): 1, 2, 4 or 8 bytes.
    """
    return struct.unpack(_INT_FORMATS[len(b)], b)[0]

def bytes_to_uint(b):
    "Read unsigned integer stored in little endian (VAX) byte order."
    return struct.unpack(_UINT_FORMATS[len(b)], b)[0]

def int_to_bytes(val, nbytes):
    "Convert int value to little endian bytes."
    return struct.pack(_INT_FORMATS[nbytes], val)

def parse_info_items(buf):
    """Split result buffer of `isc_*_info` call into items.

    Args:
        buf (bytes): Content of the result buffer.

    Returns:
        dict: info item code -> integer value (stored as VAX integer of
        any length). Parsing stops at `isc_info_end`.

    Raises:
        ValueError: When buffer content is truncated or malformed.
    """
    result = {}
    pos = 0
    while pos < len(buf):
        code = buf[pos]
        if code == 1:  # isc_info_end
            break
        if code == 2:  # isc_info_truncated
            raise ValueError("Result buffer for information request is too small")
        if pos + 3 > len(buf):
            raise ValueError("Malformed information buffer")
        length = bytes_to_uint(buf[pos + 1:pos + 3])
        value = buf[pos + 3:pos + 3 + length]
        if len(value) != length:
            raise ValueError("Malformed information buffer")
        result[code] = int.from_bytes(value, 'little') if length else 0
        pos += 3 + length
    return result


class Iterator(object):
    """Generic iterator implementation.
    """
    def __init__(self, method, sentinel=None):
        """
        Args:
            method (callable): Callable without parameters that returns next item.
            sentinel: Value that when returned by `method` indicates the end of sequence.
        """
        self.getnext = method
        self.sentinel = sentinel
        self.exhausted = False
    def __iter__(self):
        return self
    def __next__(self):
        if self.exhausted:
            raise StopIteration
        else:
            result = self.getnext()
            self.exhausted = (result == self.sentinel)
            if self.exhausted:
                raise StopIteration
            else:
                return result
