#coding:utf-8
#
#   PROGRAM/MODULE: fbsql
#   FILE:           __init__.py
#   DESCRIPTION:    Firebird SQL execution core
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

from fbsql.fbcore import *
from fbsql.fbcore import __version__
from fbsql.errors import *
from fbsql.tpb import DEFAULT_TPB, parse_options, format_options

__all__ = (
    'Connection', 'Cursor', 'Database', 'Environment', 'TransactionContext',
    'ParameterBuffer', 'default_environment',
    'DESCRIPTION_DISPLAY_SIZE', 'DESCRIPTION_INTERNAL_SIZE', 'DESCRIPTION_NAME',
    'DESCRIPTION_NULL_OK', 'DESCRIPTION_PRECISION', 'DESCRIPTION_SCALE',
    'DESCRIPTION_TYPE_CODE', 'STATEMENT_DDL', 'STATEMENT_DML',
    'Error', 'InterfaceError', 'DatabaseError', 'DataError', 'OperationalError',
    'IntegrityError', 'InternalError', 'ProgrammingError', 'NotSupportedError',
    'TransactionOptionError', 'FirebirdWarning',
    'HOOK_API_LOADED', 'HOOK_DATABASE_ATTACHED', 'HOOK_DATABASE_CLOSED',
    'add_hook', 'remove_hook', 'get_hooks', 'load_api',
    'DEFAULT_TPB', 'parse_options', 'format_options',
    '__version__', 'apilevel', 'threadsafety', 'paramstyle',
    'connect', 'create_database', 'drop_database',
)
