#coding:utf-8
#
#   PROGRAM/MODULE: fbsql
#   FILE:           tpb.py
#   DESCRIPTION:    Firebird SQL execution core - Transaction parameter block compiler
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

"""Compiles human readable transaction options into Firebird TPB and back.

Accepted option string (case insensitive, whitespace delimited)::

    READ [ONLY] | READ WRITE
    [ISOLATION LEVEL] SNAPSHOT [TABLE STABILITY]
    [ISOLATION LEVEL] READ COMMITTED [[NO] RECORD_VERSION]
    WAIT | NO WAIT
    RESERVING table[, table ...] FOR {SHARED|PROTECTED} {READ|WRITE} [, ...]

Every TPB starts as :data:`DEFAULT_TPB` and options overwrite its access mode,
isolation level and lock resolution bytes. Each of these may be set only once.
Record version option follows the header, table reservations are always last.
"""

import collections

from .ibase import (isc_tpb_version1, isc_tpb_consistency, isc_tpb_concurrency,
                    isc_tpb_shared, isc_tpb_protected, isc_tpb_wait, isc_tpb_nowait,
                    isc_tpb_read, isc_tpb_write, isc_tpb_lock_read, isc_tpb_lock_write,
                    isc_tpb_read_committed, isc_tpb_rec_version, isc_tpb_no_rec_version)
from .errors import TransactionOptionError

#: TPB used when transaction is started without options.
DEFAULT_TPB = bytes([isc_tpb_version1, isc_tpb_write, isc_tpb_concurrency, isc_tpb_nowait])

#: Maximum length of table name in RESERVING clause.
MAX_TABLE_NAME_LENGTH = 31

# TPB slots
SLOT_ACCESS = 1
SLOT_ISOLATION = 2
SLOT_LOCK_RESOLUTION = 3
_APPEND = -1
_NONE = 0
_RESERVING = -2

_ANY = ('*',)

#: words: tokens the option consists of (`_ANY` matches without consuming a token)
#: value: TPB byte, position: TPB slot, `_APPEND` or `_NONE`
#: follow: table of options that must follow
_Option = collections.namedtuple('_Option', 'words value position follow')

_RECORD_VERSION_OPTIONS = (
    _Option(('NO', 'RECORD_VERSION'), isc_tpb_no_rec_version, _APPEND, None),
    _Option(('RECORD_VERSION',), isc_tpb_rec_version, _APPEND, None),
    _Option(_ANY, isc_tpb_no_rec_version, _APPEND, None),
)
_READ_OPTIONS = (
    _Option(('WRITE',), isc_tpb_write, SLOT_ACCESS, None),
    _Option(('ONLY',), isc_tpb_read, SLOT_ACCESS, None),
    _Option(('COMMITTED',), isc_tpb_read_committed, SLOT_ISOLATION, _RECORD_VERSION_OPTIONS),
    _Option(_ANY, isc_tpb_read, SLOT_ACCESS, None),
)
_SNAPSHOT_OPTIONS = (
    _Option(('TABLE', 'STABILITY'), isc_tpb_consistency, SLOT_ISOLATION, None),
    _Option(_ANY, isc_tpb_concurrency, SLOT_ISOLATION, None),
)
_ISOLATION_OPTIONS = (
    _Option(('SNAPSHOT',), None, _NONE, _SNAPSHOT_OPTIONS),
    _Option(('READ', 'COMMITTED'), isc_tpb_read_committed, SLOT_ISOLATION,
            _RECORD_VERSION_OPTIONS),
)
_TRANSACTION_OPTIONS = (
    _Option(('READ',), None, _NONE, _READ_OPTIONS),
    _Option(('WAIT',), isc_tpb_wait, SLOT_LOCK_RESOLUTION, None),
    _Option(('NO', 'WAIT'), isc_tpb_nowait, SLOT_LOCK_RESOLUTION, None),
    _Option(('ISOLATION', 'LEVEL'), None, _NONE, _ISOLATION_OPTIONS),
    _Option(('SNAPSHOT',), None, _NONE, _SNAPSHOT_OPTIONS),
    _Option(('RESERVING',), None, _RESERVING, None),
)

_SHARING_MODES = {'SHARED': isc_tpb_shared, 'PROTECTED': isc_tpb_protected}
_ACCESS_MODES = {'READ': isc_tpb_lock_read, 'WRITE': isc_tpb_lock_write}

ILLEGAL_OPTION = "Illegal transaction option was specified"
DUPLICATE_OPTION = "Duplicate transaction option was specified"
NEEDS_TABLES = "RESERVING needs table name list"
NEEDS_LOCK_MODE = "RESERVING needs {SHARED|PROTECTED} {READ|WRITE}"
ILLEGAL_TABLE_NAME = "Illegal table name was specified"
UNEXPECTED_END = "Unexpected end of command"


def _match(options, tokens, pos):
    for option in options:
        if option.words == _ANY:
            return option
        end = pos + len(option.words)
        if end <= len(tokens) and tuple(tokens[pos:end]) == option.words:
            return option
    return None

def _reservation_records(names, sharing_mode, access_mode):
    records = bytearray()
    for name in names:
        name_bytes = name.encode('utf_8')
        if len(name_bytes) > MAX_TABLE_NAME_LENGTH:
            raise TransactionOptionError(ILLEGAL_TABLE_NAME)
        records.append(access_mode)
        records.append(len(name_bytes))
        records.extend(name_bytes)
        records.append(sharing_mode)
    return records

def _parse_reservations(tokens, pos):
    """Parse table list(s) of RESERVING clause that starts at `pos`.

    Returns:
        tuple: (reservation records, position of first unconsumed token)
    """
    records = bytearray()
    while True:
        if pos >= len(tokens) or tokens[pos] == 'FOR':
            raise TransactionOptionError(NEEDS_TABLES)
        try:
            end = tokens.index('FOR', pos)
        except ValueError:
            raise TransactionOptionError(UNEXPECTED_END)
        names = ' '.join(tokens[pos:end]).replace(',', ' ').split()
        if not names:
            raise TransactionOptionError(NEEDS_TABLES)
        if end + 2 >= len(tokens):
            raise TransactionOptionError(NEEDS_LOCK_MODE)
        sharing_mode = _SHARING_MODES.get(tokens[end + 1])
        access, comma, rest = tokens[end + 2].partition(',')
        access_mode = _ACCESS_MODES.get(access)
        if sharing_mode is None or access_mode is None:
            raise TransactionOptionError(NEEDS_LOCK_MODE)
        records.extend(_reservation_records(names, sharing_mode, access_mode))
        pos = end + 3
        if comma:
            if rest:
                # "WRITE,T2" - next table list starts inside this token
                tokens[end + 2] = rest
                pos = end + 2
            elif pos >= len(tokens):
                raise TransactionOptionError(UNEXPECTED_END)
        elif pos < len(tokens) and tokens[pos].startswith(','):
            if tokens[pos] == ',':
                pos += 1
                if pos >= len(tokens):
                    raise TransactionOptionError(UNEXPECTED_END)
            else:
                tokens[pos] = tokens[pos][1:]
        else:
            return records, pos

def parse_options(options):
    """Compile transaction option string into TPB.

    Args:
        options (str): Transaction options, for example
            `'READ COMMITTED NO WAIT'` or `'RESERVING T1, T2 FOR PROTECTED WRITE'`.

    Returns:
        bytes: Transaction parameter block.

    Raises:
        fbsql.TransactionOptionError: For unknown or duplicate options, and
            incomplete or invalid RESERVING clause.

    Example:
        >>> list(parse_options('READ COMMITTED WAIT'))
        [1, 9, 15, 6, 18]
    """
    tpb = bytearray(DEFAULT_TPB)
    reservations = bytearray()
    tokens = options.upper().split()
    assigned = set()
    pos = 0
    table = _TRANSACTION_OPTIONS
    while pos < len(tokens) or table is not _TRANSACTION_OPTIONS:
        option = _match(table, tokens, pos)
        if option is None:
            raise TransactionOptionError(UNEXPECTED_END if pos >= len(tokens) else ILLEGAL_OPTION)
        if option.position in assigned:
            raise TransactionOptionError(DUPLICATE_OPTION)
        if option.position == _RESERVING:
            assigned.add(_RESERVING)
            reservations, pos = _parse_reservations(tokens, pos + 1)
            table = _TRANSACTION_OPTIONS
            continue
        if option.position > 0:
            assigned.add(option.position)
            tpb[option.position] = option.value
        elif option.position == _APPEND:
            tpb.append(option.value)
        if option.words != _ANY:
            pos += len(option.words)
        table = option.follow or _TRANSACTION_OPTIONS
    return bytes(tpb + reservations)

def format_options(tpb):
    """Render TPB created by :func:`parse_options` back to option string.

    Args:
        tpb (bytes): Transaction parameter block.

    Returns:
        str: Canonical option string, that :func:`parse_options` compiles into
        the same TPB.

    Raises:
        ValueError: When `tpb` has different structure than one produced
            by :func:`parse_options`.
    """
    tpb = bytes(tpb)
    if len(tpb) < 4 or tpb[0] != isc_tpb_version1:
        raise ValueError("TPB must start with version byte and three option bytes")
    access = {isc_tpb_read: 'READ ONLY', isc_tpb_write: 'READ WRITE'}.get(tpb[1])
    isolation = {isc_tpb_concurrency: 'ISOLATION LEVEL SNAPSHOT',
                 isc_tpb_consistency: 'ISOLATION LEVEL SNAPSHOT TABLE STABILITY',
                 isc_tpb_read_committed: 'ISOLATION LEVEL READ COMMITTED'}.get(tpb[2])
    lock_resolution = {isc_tpb_wait: 'WAIT', isc_tpb_nowait: 'NO WAIT'}.get(tpb[3])
    if None in (access, isolation, lock_resolution):
        raise ValueError("Unknown option in TPB header %r" % tpb[:4])
    record_version = None
    reservations = []
    pos = 4
    while pos < len(tpb):
        code = tpb[pos]
        if code in (isc_tpb_rec_version, isc_tpb_no_rec_version) and record_version is None:
            record_version = code
            pos += 1
        elif code in (isc_tpb_lock_read, isc_tpb_lock_write) and pos + 2 < len(tpb):
            name_end = pos + 2 + tpb[pos + 1]
            if name_end >= len(tpb) or tpb[name_end] not in (isc_tpb_shared, isc_tpb_protected):
                raise ValueError("Invalid table reservation in TPB")
            reservations.append((tpb[pos + 2:name_end].decode('utf_8'), tpb[name_end], code))
            pos = name_end + 1
        else:
            raise ValueError("Unexpected code %d at position %d in TPB" % (code, pos))
    if record_version is not None and tpb[2] != isc_tpb_read_committed:
        raise ValueError("Record version option requires READ COMMITTED isolation")
    parts = [access, isolation]
    if tpb[2] == isc_tpb_read_committed:
        parts.append('NO RECORD_VERSION' if record_version != isc_tpb_rec_version
                     else 'RECORD_VERSION')
    parts.append(lock_resolution)
    if reservations:
        sharing_names = dict((v, k) for k, v in _SHARING_MODES.items())
        access_names = dict((v, k) for k, v in _ACCESS_MODES.items())
        clauses = []
        names = []
        for i, (name, sharing_mode, access_mode) in enumerate(reservations):
            names.append(name)
            if (i + 1 == len(reservations)
                    or reservations[i + 1][1:] != (sharing_mode, access_mode)):
                clauses.append('%s FOR %s %s' % (', '.join(names), sharing_names[sharing_mode],
                                                 access_names[access_mode]))
                names = []
        parts.append('RESERVING ' + ', '.join(clauses))
    return ' '.join(parts)
