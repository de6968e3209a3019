#coding:utf-8
#
#   PROGRAM/MODULE: fbsql
#   FILE:           fbcore.py
#   DESCRIPTION:    Firebird SQL execution core - Core
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

import sys
import os
import ctypes
import struct
import logging
import threading
import warnings
import weakref

from . import ibase
from . import sqlda
from . import utils
from .ibase import (ISC_STATUS_ARRAY, ISC_STATUS_PTR, ISC_TEB, ISC_QUAD, XSQLDA_PTR,
                    SQLDA_version1, SQL_DIALECT_CURRENT, DSQL_close, DSQL_drop,
                    isc_db_handle, isc_tr_handle, isc_stmt_handle, isc_blob_handle,
                    isc_dpb_version1, isc_dpb_user_name, isc_dpb_password,
                    isc_dpb_lc_ctype, isc_dpb_sql_role_name, isc_info_end,
                    isc_info_db_sql_dialect, isc_info_sql_stmt_type,
                    isc_info_sql_stmt_select, isc_info_sql_stmt_select_for_upd,
                    isc_info_sql_stmt_ddl, isc_info_sql_stmt_exec_procedure,
                    isc_info_sql_stmt_start_trans, isc_info_sql_stmt_commit,
                    isc_info_sql_stmt_rollback, isc_info_blob_max_segment,
                    isc_info_blob_num_segments, isc_info_blob_total_length,
                    isc_segment, isc_segstr_eof, sys_encoding)
from .errors import (Error, InterfaceError, DatabaseError, DataError, OperationalError,
                     IntegrityError, InternalError, ProgrammingError, NotSupportedError,
                     FirebirdWarning)
from .tpb import DEFAULT_TPB, parse_options

log = logging.getLogger(__name__)

#: Current driver version
__version__ = '1.0.0'

apilevel = '2.0'
threadsafety = 1
paramstyle = 'qmark'

HOOK_API_LOADED = 1
HOOK_DATABASE_ATTACHED = 2
HOOK_DATABASE_CLOSED = 5

hooks = {}

#: Value returned by :meth:`Cursor.execute` for DDL statements
STATEMENT_DDL = 1
#: Value returned by :meth:`Cursor.execute` for other statements that don't return rows
STATEMENT_DML = 0

# Indices of items in column description
DESCRIPTION_NAME = 0
DESCRIPTION_TYPE_CODE = 1
DESCRIPTION_DISPLAY_SIZE = 2
DESCRIPTION_INTERNAL_SIZE = 3
DESCRIPTION_PRECISION = 4
DESCRIPTION_SCALE = 5
DESCRIPTION_NULL_OK = 6

#: Value returned by isc_dsql_fetch when there are no more rows
RESULT_SET_EXHAUSTED = 100

_FS_ENCODING = sys.getfilesystemencoding()

MSG_CLOSED_CONNECTION = "closed db connection"
MSG_CLOSED_CURSOR = "closed db cursor"
MSG_DROPPED_CURSOR = "dropped db cursor"

def add_hook(hook_type, func):
    """Instals hook function for specified hook_type.

    Args:
        hook_type (int): One from `HOOK_*` constants
        func (callable): Hook routine to be installed

    .. important::

        Routine must have a signature required for given hook type.
        However it's not checked when hook is installed, and any
        issue will lead to run-time error when hook routine is executed.
    """
    hooks.setdefault(hook_type, list()).append(func)

def remove_hook(hook_type, func):
    """Uninstalls previously installed hook function for
    specified hook_type.

    Args:
        hook_type (int): One from `HOOK_*` constants
        func (callable): Hook routine to be uninstalled

    If hook routine wasn't previously installed, it does nothing.
    """
    routines = hooks.get(hook_type, list())
    if func in routines:
        routines.remove(func)

def get_hooks(hook_type):
    """Returns list of installed hook routines for specified hook_type.

    Args:
        hook_type (int): One from `HOOK_*` constants

    Returns:
        List of installed hook routines.
    """
    return hooks.get(hook_type, list())

def load_api(fb_library_name=None):
    """Initializes bindings to Firebird Client Library unless they are already initialized.
    Called automatically by :meth:`Database.connect`, :meth:`Database.create`
    and :meth:`Database.drop`.

    Args:
        fb_library_name (str): (optional) Path to Firebird Client Library.
        When it's not specified, fbsql does its best to locate appropriate client library.

    Returns:
        :class:`~fbsql.ibase.fbclient_API` instance.

    Raises:
        fbsql.InterfaceError: When client library can't be loaded.

    Hooks:
        Event HOOK_API_LOADED: Executed after api is initialized. Hook routine must
        have signature: hook_func(api). Any value returned by hook is ignored.
    """
    if not hasattr(sys.modules[__name__], 'api'):
        try:
            fb_api = ibase.fbclient_API(fb_library_name)
        except (OSError, AttributeError) as e:
            raise InterfaceError("Firebird Client Library could not be loaded: %s" % e)
        setattr(sys.modules[__name__], 'api', fb_api)
        log.debug("Firebird client library %s loaded", fb_api.client_library_name)
        for hook in get_hooks(HOOK_API_LOADED):
            hook(getattr(sys.modules[__name__], 'api'))
    return getattr(sys.modules[__name__], 'api')

def db_api_error(status_vector):
    return status_vector[0] == 1 and status_vector[1] > 0

def exception_from_status(error, status, preamble=None):
    """Returns exception built from content of status vector.

    Message consists of `preamble`, SQL error message for SQLCODE and all
    messages from status vector (one per line).

    Args:
        error: Exception class.
        status (ISC_STATUS_ARRAY): Status vector.
        preamble (str): First line of message.
    """
    msglist = []
    msg = ctypes.create_string_buffer(512)

    if preamble:
        msglist.append(preamble)
    sqlcode = api.isc_sqlcode(status)
    gds_code = status[1]
    api.isc_sql_interprete(sqlcode, msg, 512)
    if msg.value:
        msglist.append('- ' + msg.value.decode(sys_encoding, 'replace'))

    pvector = ctypes.cast(ctypes.addressof(status), ISC_STATUS_PTR)

    while True:
        result = api.fb_interpret(msg, 512, pvector)
        if result != 0:
            msglist.append('- ' + msg.value.decode(sys_encoding, 'replace'))
        else:
            break
    return error('\n'.join(msglist), sqlcode, gds_code)


class ParameterBuffer(object):
    """Helper class for construction of Database parameter buffer.
    Parameters are stored in insertion order."""
    def __init__(self, charset):
        self.items = []
        self.charset = charset
    def add_parameter_code(self, code):
        """Add parameter code to parameter buffer.

        Args:
            code (int): Firebird code for the parameter
        """
        self.items.append(struct.pack('B', code))
    def add_string_parameter(self, code, value):
        """Add string to parameter buffer.

        Args:
            code (int): Firebird code for the parameter
            value (str): Parameter value
        """
        value = value.encode(self.charset or sys_encoding)
        slen = len(value)
        if slen >= 256:
            # Because the length is denoted in the DPB by a single byte.
            raise ProgrammingError("Too large parameter buffer component (>256 bytes).")
        self.items.append(struct.pack('BB%ds' % slen, code, slen, value))
    def get_buffer(self):
        """Get parameter buffer content.

        Returns:
            bytes: Byte string with all inserted parameters.
        """
        return b''.join(self.items)
    def clear(self):
        "Clear all parameters stored in parameter buffer."
        self.items = []
    def get_length(self):
        "Returns actual total length of parameter buffer."
        return sum((len(x) for x in self.items))


class _cursor_weakref_callback(object):
    """Wraps callback function used in weakrefs so it's called only if still exists.
    """
    def __init__(self, obj):
        self.__obj = weakref.ref(obj)
    def __call__(self, ref):
        obj = self.__obj()
        if obj is not None and ref in obj._cursors:
            obj._cursors.remove(ref)

class _weakref_callback(object):
    """Wraps callback function used in weakrefs so it's called only if still exists.
    """
    def __init__(self, func):
        self.__funcref = weakref.WeakMethod(func)
    def __call__(self, *args, **kwargs):
        func = self.__funcref()
        if func:
            func(*args, **kwargs)


class Environment(object):
    """Process-wide state of the client: the ambient transaction and registry
    of live connections.

    There is at most one ambient transaction per environment, but it may span
    all (or selected) connections registered in it. Transaction is started
    implicitly by first statement execution, or explicitly by
    :meth:`start_transaction` (:meth:`Connection.transaction`).

    Module-level :data:`default_environment` is used unless other environment
    is passed to :class:`Database`.
    """
    def __init__(self):
        #: Lock acquired by all operations that call the client library
        self.lock = threading.RLock()
        self._isc_status = ISC_STATUS_ARRAY()
        self._tr_handle = None
        self.__connections = []
    def __connection_deleted(self, ref):
        if ref in self.__connections:
            self.__connections.remove(ref)
    def __get_connections(self):
        return [con for con in (ref() for ref in self.__connections)
                if con is not None and not con.closed]
    def __get_transaction_started(self):
        return self._tr_handle is not None
    def _register(self, connection):
        self.__connections.insert(0, weakref.ref(connection,
                                                 _weakref_callback(self.__connection_deleted)))
    def _deregister(self, connection):
        for ref in self.__connections:
            if ref() is connection:
                self.__connections.remove(ref)
                break
    def _close_cursors(self):
        for con in self.connections:
            con._close_cursors()
    def start_transaction(self, options=None, *dbs):
        """Start the ambient transaction.

        Args:
            options: Transaction options. `None` for :data:`~fbsql.tpb.DEFAULT_TPB`,
                string with options (see :func:`~fbsql.tpb.parse_options`)
                or `bytes` with complete TPB.
            dbs: :class:`Connection` instances that should participate in
                transaction. All registered connections are used when not specified.

        Raises:
            fbsql.ProgrammingError: When transaction is already started, too many
                connections are specified or there is no connection.
            fbsql.TransactionOptionError: When `options` can't be compiled.
            TypeError: When `dbs` contains something else than Connection.
        """
        with self.lock:
            if self.transaction_started:
                raise ProgrammingError("The transaction has been already started")
            if options is None:
                tpb = DEFAULT_TPB
            elif isinstance(options, str):
                tpb = parse_options(options)
            elif isinstance(options, (bytes, bytearray)):
                tpb = bytes(options)
            else:
                raise TypeError("Transaction options must be str or bytes, not %s"
                                % type(options).__name__)
            connections = self.connections
            if len(dbs) > len(connections):
                raise ProgrammingError("Too many databases specified for the transaction")
            for con in dbs:
                if not isinstance(con, Connection):
                    raise TypeError("Wrong argument type %s (expected Connection)"
                                    % type(con).__name__)
                if con.closed:
                    raise ProgrammingError(MSG_CLOSED_CONNECTION)
            if dbs:
                connections = list(dbs)
            if not connections:
                raise ProgrammingError("No database connection available for the transaction")
            cnum = len(connections)
            teb_array = (ISC_TEB * cnum)()
            for i, con in enumerate(connections):
                teb_array[i].db_ptr = ctypes.pointer(con._db_handle)
                teb_array[i].tpb_len = len(tpb)
                teb_array[i].tpb_ptr = tpb
            tr_handle = isc_tr_handle(0)
            api.isc_start_multiple(self._isc_status, tr_handle, cnum, teb_array)
            if db_api_error(self._isc_status):
                raise exception_from_status(DatabaseError, self._isc_status,
                                            "Error while starting transaction:")
            self._tr_handle = tr_handle
            log.debug("Transaction started on %d connection(s)", cnum)
    def __end_transaction(self, end_func, action):
        with self.lock:
            self._close_cursors()
            if self._tr_handle is not None:
                end_func(self._isc_status, self._tr_handle)
                if db_api_error(self._isc_status):
                    raise exception_from_status(DatabaseError, self._isc_status,
                                                "Error while %s transaction:" % action)
                self._tr_handle = None
                log.debug("Transaction %s", 'committed' if action == 'committing'
                          else 'rolled back')
    def commit(self):
        """Commit the ambient transaction. All open cursors on all connections
        are closed first. Does nothing (except closing cursors) when transaction
        is not active.
        """
        self.__end_transaction(api.isc_commit_transaction, 'committing')
    def rollback(self):
        """Roll back the ambient transaction. All open cursors on all connections
        are closed first. Does nothing (except closing cursors) when transaction
        is not active.
        """
        self.__end_transaction(api.isc_rollback_transaction, 'rolling back')

    #: List of live connections (newest first)
    connections = property(__get_connections)
    #: True if the ambient transaction is active
    transaction_started = property(__get_transaction_started)

#: Environment used by default
default_environment = Environment()


class TransactionContext(object):
    """Context Manager for ambient transaction started by :meth:`Connection.transaction`.

    Performs `rollback` if exception is thrown inside code block, otherwise
    performs `commit` at the end of block. Does nothing if transaction was
    already resolved inside the block.

    Examples:
       .. code-block:: python

          with con.transaction('READ COMMITTED'):
              con.execute('insert into tableA (x,y) values (?,?)', x, y)
              con.execute('insert into tableB (x,y) values (?,?)', x, y)

    """
    #: :class:`Environment` this instance manages.
    environment = None
    def __init__(self, environment):
        self.environment = environment
    def __enter__(self):
        return self.environment
    def __exit__(self, exc_type, exc_val, exc_tb):
        if not self.environment.transaction_started:
            return
        if exc_type is None:
            self.environment.commit()
        else:
            self.environment.rollback()


class Connection(object):
    """
    Represents a connection between the database client (the Python process)
    and the database server.

    .. important::

       DO NOT create instances of this class directly! Use only
       :meth:`Database.connect`, :meth:`Database.create` or :func:`connect`
       to get Connection instances.
    """

    # PEP 249 (Python DB API 2.0) extensions
    Error = Error
    InterfaceError = InterfaceError
    DatabaseError = DatabaseError
    DataError = DataError
    OperationalError = OperationalError
    IntegrityError = IntegrityError
    InternalError = InternalError
    ProgrammingError = ProgrammingError
    NotSupportedError = NotSupportedError

    def __init__(self, db_handle, database):
        """
        Args:
            db_handle: Database handle of attachment.
            database (Database): Database parameters.
        """
        self._isc_status = ISC_STATUS_ARRAY()
        self._db_handle = db_handle
        self._cursors = []
        self.__database = database
        self.__env = database.environment
        self._python_charset = sqlda.python_charset(database.charset)
        self.__db_dialect = self.__query_db_dialect()
        self.__dialect = min(SQL_DIALECT_CURRENT, self.__db_dialect)
        if self.__dialect < SQL_DIALECT_CURRENT:
            log.info("Database %s uses SQL dialect %d", database.database, self.__dialect)
        self.__env._register(self)
    def __query_db_dialect(self):
        request = bytes([isc_info_db_sql_dialect, isc_info_end])
        res_buf = ctypes.create_string_buffer(16)
        api.isc_database_info(self._isc_status, self._db_handle,
                              len(request), request, len(res_buf), res_buf)
        if db_api_error(self._isc_status):
            raise exception_from_status(DatabaseError, self._isc_status,
                                        "Error while requesting database information:")
        try:
            items = utils.parse_info_items(res_buf.raw)
        except ValueError as e:
            raise InternalError(str(e))
        return items.get(isc_info_db_sql_dialect, 1)
    def _check(self):
        if self._db_handle is None:
            raise ProgrammingError(MSG_CLOSED_CONNECTION)
    def _close_cursors(self):
        for ref in list(self._cursors):
            cursor = ref()
            if cursor is not None and cursor.open:
                cursor.close()
    def __drop_cursors(self):
        for ref in list(self._cursors):
            cursor = ref()
            if cursor is not None and not cursor.dropped:
                cursor.drop()
        self._cursors = []
    def _add_cursor(self, cursor):
        self._cursors.append(weakref.ref(cursor, _cursor_weakref_callback(self)))
    def _remove_cursor(self, cursor):
        for ref in self._cursors:
            if ref() is cursor:
                self._cursors.remove(ref)
                break
    def __commit_active(self):
        if self.__env.transaction_started:
            self.__env.commit()
    def __close(self, finalizing=False):
        with self.__env.lock:
            for step in (self.__commit_active, self.__drop_cursors):
                try:
                    step()
                except Error as e:
                    if not finalizing:
                        raise
                    warnings.warn("Error while closing connection: %s" % e, FirebirdWarning)
            try:
                api.isc_detach_database(self._isc_status, self._db_handle)
                if db_api_error(self._isc_status):
                    raise exception_from_status(DatabaseError, self._isc_status,
                                                "Error while detaching from database:")
            finally:
                self._db_handle = None
                self.__env._deregister(self)
            log.debug("Detached from database %s", self.__database.database)
        for hook in get_hooks(HOOK_DATABASE_CLOSED):
            hook(self)
    def _drop_database(self):
        self._check()
        with self.__env.lock:
            self.__drop_cursors()
            api.isc_drop_database(self._isc_status, self._db_handle)
            if db_api_error(self._isc_status):
                raise exception_from_status(DatabaseError, self._isc_status,
                                            "Error while dropping database:")
            self._db_handle = None
            self.__env._deregister(self)
    def __enter__(self):
        return self
    def __exit__(self, *args):
        if not self.closed:
            self.close()
    def __del__(self):
        if getattr(self, '_db_handle', None) is not None:
            try:
                self.__close(finalizing=True)
            except Error as e:
                warnings.warn("Error while closing connection: %s" % e, FirebirdWarning)
    def __get_closed(self):
        return self._db_handle is None
    def __get_dialect(self):
        return self.__dialect
    def __get_db_dialect(self):
        return self.__db_dialect
    def __get_database(self):
        return self.__database.database
    def __get_charset(self):
        return self.__database.charset
    def __get_environment(self):
        return self.__env
    def __get_transaction_started(self):
        return self.__env.transaction_started
    def cursor(self):
        """Returns new :class:`Cursor` bound to this connection.

        Raises:
            fbsql.ProgrammingError: When connection is closed.
        """
        self._check()
        return Cursor(self)
    def execute(self, sql, *args):
        """Execute SQL statement using new cursor.

        Args:
            sql (str): SQL statement.
            args: Parameter values (see :meth:`Cursor.execute`).

        Returns:
            :class:`Cursor` with open result set for SELECT statements,
            otherwise :data:`STATEMENT_DDL` or :data:`STATEMENT_DML`.
        """
        cursor = self.cursor()
        try:
            result = cursor.execute(sql, *args)
        except Error:
            cursor.drop()
            raise
        if cursor.open:
            return cursor
        cursor.drop()
        return result
    def transaction(self, options=None, *dbs):
        """Start the ambient transaction.

        Args:
            options: Transaction options, see :meth:`Environment.start_transaction`.
            dbs: :class:`Connection` instances that should participate in the transaction.

        Returns:
            :class:`TransactionContext` that commits the transaction at the end
            of `with` block (or rolls it back when exception is raised).
        """
        self._check()
        self.__env.start_transaction(options, *dbs)
        return TransactionContext(self.__env)
    def commit(self):
        """Commit the ambient transaction. Closes all open cursors on all
        connections first.
        """
        self._check()
        self.__env.commit()
    def rollback(self):
        """Roll back the ambient transaction. Closes all open cursors on all
        connections first.
        """
        self._check()
        self.__env.rollback()
    def close(self):
        """Close the connection now (rather than whenever `__del__` is called).

        The ambient transaction is committed when active, all cursors of this
        connection are dropped and the connection is detached from database.
        The connection will be unusable from this point forward.

        Raises:
            fbsql.ProgrammingError: When connection is already closed.

        Hooks:
            Event `HOOK_DATABASE_CLOSED`: Executed after connection
            is closed. Hook must have signature: hook_func(connection).
            Any value returned by hook is ignored.
        """
        self._check()
        self.__close()

    #: True if connection is closed
    closed = property(__get_closed)
    #: SQL dialect used by this connection (never higher than :attr:`db_dialect`)
    dialect = property(__get_dialect)
    #: SQL dialect of the database
    db_dialect = property(__get_db_dialect)
    #: Database file specification
    database = property(__get_database)
    #: Connection character set
    charset = property(__get_charset)
    #: :class:`Environment` the connection is registered in
    environment = property(__get_environment)
    #: True if the ambient transaction is active
    transaction_started = property(__get_transaction_started)


class Cursor(object):
    """Represents SQL statement and its result set.

    .. important::

       DO NOT create instances of this class directly! Use only
       :meth:`Connection.cursor` or :meth:`Connection.execute`.

    Cursor handle is allocated on creation and reused by each :meth:`execute`
    until the cursor is dropped.
    """
    def __init__(self, connection):
        self._isc_status = ISC_STATUS_ARRAY()
        self._connection = connection
        self._stmt_handle = None
        self._in_sqlda = sqlda.Descriptor()
        self._out_sqlda = sqlda.Descriptor()
        #: Statement type (`isc_info_sql_stmt_*` code) of last executed statement
        self.statement_type = None
        self.__open = False
        self.__description = None
        self.__output_cache = None
        stmt_handle = isc_stmt_handle(0)
        with connection.environment.lock:
            api.isc_dsql_alloc_statement2(self._isc_status, connection._db_handle, stmt_handle)
            if db_api_error(self._isc_status):
                raise exception_from_status(DatabaseError, self._isc_status,
                                            "Error while allocating SQL statement:")
        self._stmt_handle = stmt_handle
        connection._add_cursor(self)
    def __check(self):
        if self._stmt_handle is None:
            raise ProgrammingError(MSG_DROPPED_CURSOR)
        if self._connection.closed:
            raise ProgrammingError(MSG_CLOSED_CONNECTION)
    def __get_transaction_handle(self):
        env = self._connection.environment
        if not env.transaction_started:
            env.start_transaction()
        return env._tr_handle
    def __get_statement_type(self):
        info = ctypes.create_string_buffer(20)
        request = bytes([isc_info_sql_stmt_type])
        api.isc_dsql_sql_info(self._isc_status, self._stmt_handle, len(request), request,
                              len(info), info)
        if db_api_error(self._isc_status):
            raise exception_from_status(DatabaseError, self._isc_status,
                                        "Error while determining SQL statement type:")
        try:
            items = utils.parse_info_items(info.raw)
        except ValueError as e:
            raise InternalError(str(e))
        if isc_info_sql_stmt_type not in items:
            raise InternalError("Cursor.execute, determine statement type:\n"
                                "first byte must be 'isc_info_sql_stmt_type'")
        return items[isc_info_sql_stmt_type]
    def __describe(self, describe_func, descriptor, action):
        describe_func(self._isc_status, self._stmt_handle, SQLDA_version1, descriptor.pointer)
        if db_api_error(self._isc_status):
            raise exception_from_status(DatabaseError, self._isc_status,
                                        "Error while determining SQL statement %s:" % action)
    def __close_statement(self):
        # Executed procedure has no server-side cursor to close
        if self.__output_cache is None:
            api.isc_dsql_free_statement(self._isc_status, self._stmt_handle, DSQL_close)
            if db_api_error(self._isc_status):
                raise exception_from_status(DatabaseError, self._isc_status,
                                            "Error while closing SQL statement:")
        self.__open = False
        self.__description = None
        self.__output_cache = None
    def __discard_blob(self, blob_handle):
        # Status of the failed call is already in the raised exception
        api.isc_close_blob(ISC_STATUS_ARRAY(), blob_handle)
    def __write_blob(self, data):
        blobid = ISC_QUAD(0, 0)
        blob_handle = isc_blob_handle(0)
        api.isc_create_blob2(self._isc_status, self._connection._db_handle,
                             self.__get_transaction_handle(), blob_handle, blobid, 0, None)
        if db_api_error(self._isc_status):
            raise exception_from_status(DatabaseError, self._isc_status,
                                        "Cursor.write_input_blob/isc_create_blob2:")
        try:
            for pos in range(0, len(data), sqlda.BLOB_SEGMENT_SIZE):
                segment = data[pos:pos + sqlda.BLOB_SEGMENT_SIZE]
                api.isc_put_segment(self._isc_status, blob_handle, len(segment), segment)
                if db_api_error(self._isc_status):
                    raise exception_from_status(DatabaseError, self._isc_status,
                                                "Cursor.write_input_blob/isc_put_segment:")
        except Error:
            self.__discard_blob(blob_handle)
            raise
        api.isc_close_blob(self._isc_status, blob_handle)
        if db_api_error(self._isc_status):
            raise exception_from_status(DatabaseError, self._isc_status,
                                        "Cursor.write_input_blob/isc_close_blob:")
        return bytes(blobid)
    def __read_blob(self, raw_blobid):
        blobid = ISC_QUAD.from_buffer_copy(raw_blobid)
        blob_handle = isc_blob_handle(0)
        api.isc_open_blob2(self._isc_status, self._connection._db_handle,
                           self.__get_transaction_handle(), blob_handle, blobid, 0, None)
        if db_api_error(self._isc_status):
            raise exception_from_status(DatabaseError, self._isc_status,
                                        "Cursor.read_output_blob/isc_open_blob2:")
        try:
            # Get BLOB total length and max. size of segment
            request = bytes([isc_info_blob_max_segment, isc_info_blob_num_segments,
                             isc_info_blob_total_length, isc_info_end])
            result = ctypes.create_string_buffer(32)
            api.isc_blob_info(self._isc_status, blob_handle, len(request), request,
                              len(result), result)
            if db_api_error(self._isc_status):
                raise exception_from_status(DatabaseError, self._isc_status,
                                            "Cursor.read_output_blob/isc_blob_info:")
            try:
                info = utils.parse_info_items(result.raw)
            except ValueError as e:
                raise InternalError(str(e))
            blob_length = info.get(isc_info_blob_total_length, 0)
            segment_size = info.get(isc_info_blob_max_segment, 0) or sqlda.BLOB_SEGMENT_SIZE
            # Load BLOB
            value = bytearray(blob_length)
            bytes_read = 0
            bytes_actually_read = ctypes.c_ushort(0)
            while bytes_read < blob_length:
                size = min(segment_size, blob_length - bytes_read, 0xFFFF)
                segment = ctypes.create_string_buffer(size)
                status = api.isc_get_segment(self._isc_status, blob_handle,
                                             bytes_actually_read, size, segment)
                if status == isc_segstr_eof:
                    break
                if status not in (0, isc_segment):
                    raise exception_from_status(DatabaseError, self._isc_status,
                                                "Cursor.read_output_blob/isc_get_segment:")
                if not bytes_actually_read.value:
                    break
                value[bytes_read:bytes_read + bytes_actually_read.value] = \
                    segment.raw[:bytes_actually_read.value]
                bytes_read += bytes_actually_read.value
        except Error:
            self.__discard_blob(blob_handle)
            raise
        api.isc_close_blob(self._isc_status, blob_handle)
        if db_api_error(self._isc_status):
            raise exception_from_status(DatabaseError, self._isc_status,
                                        "Cursor.read_output_blob/isc_close_blob:")
        return bytes(value[:bytes_read])
    def __set_parameters(self, values):
        self._in_sqlda.encode(values, self._connection._python_charset, self.__write_blob)
    def __execute(self, tr_handle, xsqlda_in, xsqlda_out=None):
        api.isc_dsql_execute2(self._isc_status, tr_handle, self._stmt_handle,
                              SQLDA_version1, xsqlda_in, xsqlda_out)
        if db_api_error(self._isc_status):
            raise exception_from_status(DatabaseError, self._isc_status,
                                        "Error while executing SQL statement:")
    def __enter__(self):
        return self
    def __exit__(self, *args):
        if not self.dropped:
            self.close()
    def __del__(self):
        if getattr(self, '_stmt_handle', None) is not None and not self._connection.closed:
            try:
                self.drop()
            except Error as e:
                warnings.warn("Error while dropping cursor: %s" % e, FirebirdWarning)
    def __iter__(self):
        return utils.Iterator(self.fetch, None)
    def __get_open(self):
        return self.__open
    def __get_dropped(self):
        return self._stmt_handle is None
    def __get_description(self):
        return self.__description
    def __get_connection(self):
        return self._connection
    def execute(self, sql, *args):
        """Prepare and execute SQL statement.

        Args:
            sql (str): SQL statement with `?` parameter markers.
            args: Parameter values. For statements that don't return rows,
                when the first argument is a list or tuple, each argument is
                a row of parameter values and the statement is executed once
                per row.

        Returns:
            `None` for SELECT statements (the cursor is open and rows
            can be fetched), :data:`STATEMENT_DDL` for DDL statements,
            :data:`STATEMENT_DML` for others.

        Raises:
            fbsql.ProgrammingError: When cursor is dropped, connection is closed,
                number of parameter values doesn't match the statement, or
                statement controls transactions.
            fbsql.DatabaseError: When database reports an error.
        """
        self.__check()
        connection = self._connection
        with connection.environment.lock:
            if self.__open:
                self.__close_statement()
            tr_handle = self.__get_transaction_handle()
            op = sql.encode(connection._python_charset or sys_encoding)
            api.isc_dsql_prepare(self._isc_status, tr_handle, self._stmt_handle,
                                 len(op), op, connection.dialect, self._out_sqlda.pointer)
            if db_api_error(self._isc_status):
                raise exception_from_status(DatabaseError, self._isc_status,
                                            "Error while preparing SQL statement:")
            self.statement_type = self.__get_statement_type()
            log.debug("Executing statement of type %d", self.statement_type)
            # Init XSQLDA for input parameters
            self.__describe(api.isc_dsql_describe_bind, self._in_sqlda, 'parameters')
            if self._in_sqlda.grow():
                self.__describe(api.isc_dsql_describe_bind, self._in_sqlda, 'parameters')
            self._in_sqlda.save()
            if self._in_sqlda.count:
                self._in_sqlda.buffer.reserve(sqlda.calculate_buffsize(self._in_sqlda.xsqlda))
            xsqlda_in = self._in_sqlda.pointer if self._in_sqlda.count else None
            if self._out_sqlda.count == 0:
                if self.statement_type == isc_info_sql_stmt_start_trans:
                    raise ProgrammingError("use Connection.transaction()")
                elif self.statement_type == isc_info_sql_stmt_commit:
                    raise ProgrammingError("use Connection.commit()")
                elif self.statement_type == isc_info_sql_stmt_rollback:
                    raise ProgrammingError("use Connection.rollback()")
                if self._in_sqlda.count:
                    if not args:
                        raise ProgrammingError(sqlda.MSG_PARAM_COUNT % (self._in_sqlda.count, 0))
                    if isinstance(args[0], (list, tuple)):
                        rows = args
                    else:
                        rows = (args,)
                    for row in rows:
                        self.__set_parameters(row)
                        self.__execute(tr_handle, xsqlda_in)
                else:
                    if args:
                        raise ProgrammingError(sqlda.MSG_PARAM_COUNT % (0, len(args)))
                    self.__execute(tr_handle, None)
            else:
                if self._out_sqlda.grow():
                    self.__describe(api.isc_dsql_describe, self._out_sqlda, 'output')
                if self._in_sqlda.count:
                    if not args:
                        raise ProgrammingError(sqlda.MSG_PARAM_COUNT % (self._in_sqlda.count, 0))
                    if len(args) == 1 and isinstance(args[0], (list, tuple)):
                        args = args[0]
                    self.__set_parameters(args)
                elif args:
                    raise ProgrammingError(sqlda.MSG_PARAM_COUNT % (0, len(args)))
                self._out_sqlda.layout()
                if self.statement_type == isc_info_sql_stmt_exec_procedure:
                    # Procedure returns its single row immediately, it's served
                    # by fetch() from cache
                    self.__execute(tr_handle, xsqlda_in, self._out_sqlda.pointer)
                    self.__output_cache = [self._out_sqlda.decode(connection._python_charset,
                                                                  self.__read_blob)]
                else:
                    self.__execute(tr_handle, xsqlda_in)
                self.__open = True
                self.__description = self._out_sqlda.describe_columns(connection._python_charset)
        if self.statement_type in (isc_info_sql_stmt_select, isc_info_sql_stmt_select_for_upd):
            return None
        elif self.statement_type == isc_info_sql_stmt_ddl:
            return STATEMENT_DDL
        return STATEMENT_DML
    def executemany(self, sql, seq_of_parameters):
        """Execute SQL statement that doesn't return rows once for each row
        of parameter values.

        Args:
            sql (str): SQL statement.
            seq_of_parameters: Sequence of parameter value sequences.
        """
        return self.execute(sql, *[tuple(row) for row in seq_of_parameters])
    def fetch(self):
        """Fetch next row of the result set.

        Returns:
            tuple: Row values, or `None` when there are no more rows.

        Raises:
            fbsql.ProgrammingError: When cursor is dropped or closed, or the
                connection is closed.
        """
        self.__check()
        if not self.__open:
            raise ProgrammingError(MSG_CLOSED_CURSOR)
        if self.__output_cache is not None:
            return self.__output_cache.pop() if self.__output_cache else None
        with self._connection.environment.lock:
            result = api.isc_dsql_fetch(self._isc_status, self._stmt_handle,
                                        SQLDA_version1, self._out_sqlda.pointer)
            if result == RESULT_SET_EXHAUSTED:
                return None
            if db_api_error(self._isc_status):
                raise exception_from_status(DatabaseError, self._isc_status, "Cursor.fetch:")
            return self._out_sqlda.decode(self._connection._python_charset, self.__read_blob)
    def fetchone(self):
        "Same as :meth:`fetch`."
        return self.fetch()
    def fetchall(self):
        """Fetch all remaining rows.

        Returns:
            list: List of tuples.
        """
        return [row for row in self]
    def each(self, callback):
        """Call `callback` with each remaining row.

        Args:
            callback (callable): Function with signature `callback(row)`.
        """
        for row in self:
            callback(row)
    def close(self):
        """Close the result set. Cursor stays usable for next :meth:`execute`.
        Does nothing if the cursor is not open.

        Raises:
            fbsql.ProgrammingError: When cursor is dropped.
        """
        if self._stmt_handle is None:
            raise ProgrammingError(MSG_DROPPED_CURSOR)
        if self.__open:
            with self._connection.environment.lock:
                self.__close_statement()
    def drop(self):
        """Close the cursor (if open) and release the statement handle.
        Cursor is unusable from this point forward.

        Raises:
            fbsql.ProgrammingError: When cursor is already dropped.
        """
        if self._stmt_handle is None:
            raise ProgrammingError(MSG_DROPPED_CURSOR)
        with self._connection.environment.lock:
            if self.__open:
                self.__close_statement()
            stmt_handle = self._stmt_handle
            self._stmt_handle = None
            self.__description = None
            self._connection._remove_cursor(self)
            api.isc_dsql_free_statement(self._isc_status, stmt_handle, DSQL_drop)
            if db_api_error(self._isc_status):
                raise exception_from_status(DatabaseError, self._isc_status,
                                            "Error while dropping SQL statement:")

    #: True if cursor has open result set
    open = property(__get_open)
    #: True if cursor is dropped
    dropped = property(__get_dropped)
    #: Column description of open result set (tuple of 7-item tuples) or None
    description = property(__get_description)
    #: :class:`Connection` the cursor belongs to
    connection = property(__get_connection)


class Database(object):
    """Parameters of database connection, and operations that create, attach
    and drop the database.

    Args:
        database (str): Database file specification (with optional
            `host:` prefix) or alias.
        username (str): User name. `ISC_USER` environment variable or `sysdba`
            when not specified.
        password (str): User password. `ISC_PASSWORD` environment variable or
            `masterkey` when not specified.
        charset (str): Connection character set (`NONE` when not specified).
        role (str): SQL role.
        page_size (int): Page size for :meth:`create` (default 1024).
        fb_library_name (str): Path to Firebird Client Library.
        environment (Environment): Environment for connections
            (:data:`default_environment` when not specified).

    Raises:
        fbsql.ProgrammingError: When database is not specified.
    """
    def __init__(self, database=None, username=None, password=None, charset=None,
                 role=None, page_size=None, fb_library_name=None, environment=None):
        if not database:
            raise ProgrammingError("Database must be specified.")
        self.__database = database
        self.__username = username or os.environ.get('ISC_USER', 'sysdba')
        self.__password = password or os.environ.get('ISC_PASSWORD', 'masterkey')
        self.__charset = (charset or 'NONE').upper()
        self.__role = role
        self.__page_size = page_size or 1024
        self.__fb_library_name = fb_library_name
        self.__env = environment or default_environment
    def __get_database(self):
        return self.__database
    def __get_username(self):
        return self.__username
    def __get_password(self):
        return self.__password
    def __get_charset(self):
        return self.__charset
    def __get_role(self):
        return self.__role
    def __get_page_size(self):
        return self.__page_size
    def __get_environment(self):
        return self.__env
    def _dpb(self):
        "Returns Database Parameter Buffer with connection parameters."
        dpb = ParameterBuffer(sqlda.python_charset(self.__charset))
        dpb.add_parameter_code(isc_dpb_version1)
        dpb.add_string_parameter(isc_dpb_user_name, self.__username)
        dpb.add_string_parameter(isc_dpb_password, self.__password)
        if self.__charset:
            dpb.add_string_parameter(isc_dpb_lc_ctype, self.__charset)
        if self.__role:
            dpb.add_string_parameter(isc_dpb_sql_role_name, self.__role)
        return dpb.get_buffer()
    def connect(self):
        """Attach to the database.

        Returns:
            :class:`Connection`

        Hooks:
            Event `HOOK_DATABASE_ATTACHED`: Executed before Connection instance is
            returned. Hook must have signature: hook_func(connection).
            Any value returned by hook is ignored.
        """
        load_api(self.__fb_library_name)
        isc_status = ISC_STATUS_ARRAY()
        db_handle = isc_db_handle(0)
        dsn = self.__database.encode(_FS_ENCODING)
        dpbuf = self._dpb()
        with self.__env.lock:
            api.isc_attach_database(isc_status, len(dsn), dsn, db_handle, len(dpbuf), dpbuf)
            if db_api_error(isc_status):
                raise exception_from_status(DatabaseError, isc_status,
                                            "Error while connecting to database:")
            con = Connection(db_handle, self)
        log.debug("Attached to database %s", self.__database)
        for hook in get_hooks(HOOK_DATABASE_ATTACHED):
            hook(con)
        return con
    def create(self, connect=False):
        """Create the database.

        Args:
            connect (bool): When True, :class:`Connection` to the new database
                is returned.

        Returns:
            :class:`Connection` when `connect` is True, otherwise this instance.
        """
        load_api(self.__fb_library_name)
        sql = ("CREATE DATABASE '%s' USER '%s' PASSWORD '%s' PAGE_SIZE = %d"
               " DEFAULT CHARACTER SET %s;" % (self.__database, self.__username,
                                               self.__password, self.__page_size,
                                               self.__charset))
        sql = sql.encode(_FS_ENCODING)
        isc_status = ISC_STATUS_ARRAY()
        tr_handle = isc_tr_handle(0)
        db_handle = isc_db_handle(0)
        xsqlda = sqlda.xsqlda_factory(1)
        with self.__env.lock:
            # isc_dsql_execute_immediate segfaults when NULL (None) is passed
            # as XSQLDA, so we provide one here
            api.isc_dsql_execute_immediate(isc_status, db_handle, tr_handle,
                                           len(sql), sql, SQL_DIALECT_CURRENT,
                                           ctypes.cast(ctypes.pointer(xsqlda), XSQLDA_PTR))
            if db_api_error(isc_status):
                raise exception_from_status(DatabaseError, isc_status,
                                            "Error while creating database:")
            log.debug("Database %s created", self.__database)
            if not connect:
                api.isc_detach_database(isc_status, db_handle)
                if db_api_error(isc_status):
                    raise exception_from_status(DatabaseError, isc_status,
                                                "Error while detaching from database:")
                return self
            con = Connection(db_handle, self)
        for hook in get_hooks(HOOK_DATABASE_ATTACHED):
            hook(con)
        return con
    def drop(self):
        """Drop the database.

        Raises:
            fbsql.DatabaseError: When database can't be dropped (for example
                when it's used by other attachments).
        """
        con = self.connect()
        try:
            con._drop_database()
        except Error:
            con.close()
            raise
        log.debug("Database %s dropped", self.__database)

    #: Database file specification
    database = property(__get_database)
    #: User name
    username = property(__get_username)
    #: User password
    password = property(__get_password)
    #: Character set name
    charset = property(__get_charset)
    #: SQL role name
    role = property(__get_role)
    #: Page size for new database
    page_size = property(__get_page_size)
    #: :class:`Environment` of connections
    environment = property(__get_environment)


def connect(database=None, **kwargs):
    """Establish a connection to database.

    Args:
        database (str): Database file specification or alias.

    Keyword Args:
        See :class:`Database`.

    Returns:
        :class:`Connection`
    """
    return Database(database, **kwargs).connect()

def create_database(database=None, **kwargs):
    """Creates a new database and returns :class:`Connection` to it.

    Keyword Args:
        See :class:`Database`.
    """
    return Database(database, **kwargs).create(connect=True)

def drop_database(database=None, **kwargs):
    """Drops the database.

    Keyword Args:
        See :class:`Database`.
    """
    Database(database, **kwargs).drop()
