#coding:utf-8
#
#   PROGRAM/MODULE: fbsql
#   FILE:           test_fbsql.py
#   DESCRIPTION:    Unit tests for fbsql core (run against fake client library)
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

import unittest
from unittest import mock
import os
import fbsql
from fbsql import fbcore, ibase
from fbsql.ibase import (SQL_VARYING, SQL_LONG, SQL_BLOB,
                         isc_info_sql_stmt_select as SELECT,
                         isc_info_sql_stmt_insert as INSERT,
                         isc_info_sql_stmt_ddl as DDL,
                         isc_info_sql_stmt_exec_procedure as EXEC_PROCEDURE)
from fakeapi import (FakeAPI, Column, long, varying, isc_dsql_error, isc_io_error,
                     isc_unique_key_violation, isc_lock_conflict, isc_bad_db_handle)

CREATE_T = 'CREATE TABLE t(i INTEGER)'
INSERT_T = 'INSERT INTO t VALUES (?)'
SELECT_T = 'SELECT i FROM t'

class FbsqlTestCase(unittest.TestCase):
    def setUp(self):
        self.api = FakeAPI()
        fbcore.api = self.api
        self.env = fbsql.Environment()
        self.db = fbsql.Database('test.fdb', username='SYSDBA', password='masterkey',
                                 charset='UTF8', environment=self.env)
        self.api.script(CREATE_T, DDL)
        self.api.script(INSERT_T, INSERT, inputs=[Column('I', SQL_LONG + 1, 4)], table='T')
        self.api.script(SELECT_T, SELECT, outputs=[Column('I', SQL_LONG + 1, 4)], table='T')
    def tearDown(self):
        self.api.failures.clear()
        fbcore.api = self.api
        for con in self.env.connections:
            con.close()
        del fbcore.api
    def connect(self):
        return self.db.connect()
    def call_names(self, *names):
        return [name for name, args in self.api.calls if name in names]

class TestScenarios(FbsqlTestCase):
    def test_create_insert_select_drop(self):
        con = self.db.create(connect=True)
        self.assertListEqual(self.api.immediate,
                             ["CREATE DATABASE 'test.fdb' USER 'SYSDBA' PASSWORD 'masterkey'"
                              " PAGE_SIZE = 1024 DEFAULT CHARACTER SET UTF8;"])
        self.assertEqual(con.execute(CREATE_T), fbsql.STATEMENT_DDL)
        self.assertEqual(con.execute(INSERT_T, 42), fbsql.STATEMENT_DML)
        with con.execute(SELECT_T) as cur:
            self.assertListEqual(cur.fetchall(), [(42,)])
        con.commit()
        self.assertListEqual(self.api.tables['T'], [(long(42),)])
        con.close()
        self.db.drop()
        self.assertListEqual(self.api.dropped, ['test.fdb'])
        self.assertListEqual(self.env.connections, [])
    def test_create_without_connect(self):
        self.assertIs(self.db.create(), self.db)
        self.assertEqual(self.api.called('isc_detach_database'), 1)
        self.assertDictEqual(self.api.attachments, {})
        self.assertListEqual(self.env.connections, [])
    def test_scaled_decimal(self):
        self.api.script('INSERT INTO d VALUES (?)', INSERT,
                        inputs=[Column('D', SQL_LONG + 1, 4, -2)], table='D')
        self.api.script('SELECT d FROM d', SELECT,
                        outputs=[Column('D', SQL_LONG + 1, 4, -2)], table='D')
        con = self.connect()
        con.execute('INSERT INTO d VALUES (?)', 12345)
        cur = con.execute('SELECT d FROM d')
        self.assertListEqual(cur.fetchall(), [(123.45,)])
        self.assertTupleEqual(cur.description, (('D', SQL_LONG, 4, 4, 0, -2, True),))
    def test_varchar(self):
        self.api.script('INSERT INTO v VALUES (?)', INSERT,
                        inputs=[Column('V', SQL_VARYING + 1, 10, subtype=4)], table='V')
        self.api.script('SELECT v FROM v', SELECT,
                        outputs=[Column('V', SQL_VARYING + 1, 10, subtype=4)], table='V')
        con = self.connect()
        con.execute('INSERT INTO v VALUES (?)', 'hi')
        self.assertTupleEqual(self.api.executed[-1],
                              ('INSERT INTO v VALUES (?)', (b'\x02\x00hi',)))
        self.assertListEqual(con.execute('SELECT v FROM v').fetchall(), [('hi',)])
    def test_null(self):
        self.api.script('INSERT INTO nn VALUES (?)', INSERT,
                        inputs=[Column('N', SQL_LONG, 4)], table='NN')
        con = self.connect()
        con.execute(INSERT_T, None)
        self.assertListEqual(con.execute(SELECT_T).fetchall(), [(None,)])
        with self.assertRaises(fbsql.ProgrammingError) as cm:
            con.execute('INSERT INTO nn VALUES (?)', None)
        self.assertTupleEqual(cm.exception.args,
                              ("specified column is not permitted to be null",))
    def test_multi_row_execute(self):
        con = self.connect()
        self.assertEqual(con.execute(INSERT_T, [1], [2], [3]), fbsql.STATEMENT_DML)
        self.assertEqual(self.api.called('isc_dsql_execute2'), 3)
        self.assertListEqual(con.execute(SELECT_T).fetchall(), [(1,), (2,), (3,)])
    def test_executemany(self):
        con = self.connect()
        cur = con.cursor()
        cur.executemany(INSERT_T, [(1,), (2,)])
        self.assertListEqual([params for sql, params in self.api.executed],
                             [(long(1),), (long(2),)])
        with self.assertRaises(fbsql.ProgrammingError) as cm:
            cur.executemany(INSERT_T, [])
        self.assertTupleEqual(cm.exception.args, ("statement requires 1 items; 0 given",))

class TestTransactions(FbsqlTestCase):
    def test_implicit_transaction(self):
        con = self.connect()
        self.assertFalse(con.transaction_started)
        con.execute(CREATE_T)
        self.assertTrue(con.transaction_started)
        self.assertListEqual(self.api.tpbs, [fbsql.DEFAULT_TPB])
        con.commit()
        self.assertFalse(con.transaction_started)
    def test_options(self):
        con = self.connect()
        con.transaction('READ COMMITTED WAIT')
        self.assertEqual(self.api.tpbs[-1], bytes([ibase.isc_tpb_version1, ibase.isc_tpb_write,
                                                   ibase.isc_tpb_read_committed,
                                                   ibase.isc_tpb_wait,
                                                   ibase.isc_tpb_no_rec_version]))
        con.rollback()
        con.transaction(b'\x01\x08\x02\x07')
        self.assertEqual(self.api.tpbs[-1], b'\x01\x08\x02\x07')
        con.rollback()
        with self.assertRaises(fbsql.TransactionOptionError):
            con.transaction('READ WRITE WAIT READ WRITE')
        with self.assertRaises(TypeError):
            con.transaction(42)
        self.assertFalse(con.transaction_started)
    def test_already_started(self):
        con = self.connect()
        con.transaction()
        with self.assertRaises(fbsql.ProgrammingError) as cm:
            con.transaction()
        self.assertTupleEqual(cm.exception.args, ("The transaction has been already started",))
        con.commit()
        self.assertFalse(con.transaction_started)
        con.transaction()
        self.assertTrue(con.transaction_started)
    def test_databases(self):
        con = self.connect()
        with self.assertRaises(fbsql.ProgrammingError) as cm:
            con.transaction(None, con, con)
        self.assertTupleEqual(cm.exception.args,
                              ("Too many databases specified for the transaction",))
        with self.assertRaises(TypeError) as cm:
            con.transaction(None, 'test.fdb')
        self.assertTupleEqual(cm.exception.args, ("Wrong argument type str (expected Connection)",))
        self.assertFalse(self.env.transaction_started)
    def test_no_connection(self):
        with self.assertRaises(fbsql.ProgrammingError) as cm:
            self.env.start_transaction()
        self.assertTupleEqual(cm.exception.args,
                              ("No database connection available for the transaction",))
    def test_multiple_connections(self):
        other = fbsql.Database('other.fdb', username='SYSDBA', password='masterkey',
                               environment=self.env)
        con1 = self.connect()
        con2 = other.connect()
        self.assertListEqual(self.env.connections, [con2, con1])
        con1.transaction()
        self.assertListEqual(self.api.teb_handles[-1],
                             [con2._db_handle.value, con1._db_handle.value])
        con1.commit()
        con2.transaction(None, con1)
        self.assertListEqual(self.api.teb_handles[-1], [con1._db_handle.value])
        con2.rollback()
        con2.close()
        with self.assertRaises(fbsql.ProgrammingError) as cm:
            con1.transaction(None, con2)
        self.assertTupleEqual(cm.exception.args, ("closed db connection",))
        self.assertListEqual(self.env.connections, [con1])
    def test_independent_environments(self):
        other_env = fbsql.Environment()
        other = fbsql.Database('other.fdb', environment=other_env)
        con1 = self.connect()
        con2 = other.connect()
        try:
            con1.transaction()
            self.assertFalse(con2.transaction_started)
            self.assertListEqual(self.api.teb_handles[-1], [con1._db_handle.value])
        finally:
            con2.close()
    def test_commit_closes_cursors(self):
        other = fbsql.Database('other.fdb', environment=self.env)
        con1 = self.connect()
        con2 = other.connect()
        cur = con1.execute(SELECT_T)
        self.assertTrue(cur.open)
        con2.commit()
        self.assertFalse(cur.open)
        self.assertFalse(cur.dropped)
        with self.assertRaises(fbsql.ProgrammingError) as cm:
            cur.fetch()
        self.assertTupleEqual(cm.exception.args, ("closed db cursor",))
        cur = con1.execute(SELECT_T)
        con1.rollback()
        self.assertFalse(cur.open)
    def test_rollback(self):
        con = self.connect()
        con.execute(INSERT_T, 1)
        con.rollback()
        self.assertListEqual(con.execute(SELECT_T).fetchall(), [])
        self.assertListEqual(self.api.tables['T'], [])
    def test_context_manager(self):
        con = self.connect()
        with con.transaction() as env:
            self.assertIs(env, self.env)
            con.execute(INSERT_T, 1)
        self.assertFalse(con.transaction_started)
        self.assertListEqual(self.api.tables['T'], [(long(1),)])
        with self.assertRaises(ZeroDivisionError):
            with con.transaction():
                con.execute(INSERT_T, 2)
                1 / 0
        self.assertFalse(con.transaction_started)
        self.assertListEqual(self.api.tables['T'], [(long(1),)])
        with con.transaction():
            con.execute(INSERT_T, 3)
            con.rollback()
        self.assertEqual(self.api.called('isc_commit_transaction'), 1)
    def test_commit_error(self):
        con = self.connect()
        con.execute(INSERT_T, 1)
        self.api.fail('isc_commit_transaction', isc_lock_conflict, 'deadlock')
        with self.assertRaises(fbsql.DatabaseError) as cm:
            con.commit()
        self.assertEqual(cm.exception.error_code, -901)
        self.assertTrue(con.transaction_started)
        con.rollback()
        self.assertFalse(con.transaction_started)
    def test_control_statements(self):
        self.api.script('SET TRANSACTION', ibase.isc_info_sql_stmt_start_trans)
        self.api.script('COMMIT', ibase.isc_info_sql_stmt_commit)
        self.api.script('ROLLBACK', ibase.isc_info_sql_stmt_rollback)
        con = self.connect()
        for sql, message in [('SET TRANSACTION', "use Connection.transaction()"),
                             ('COMMIT', "use Connection.commit()"),
                             ('ROLLBACK', "use Connection.rollback()")]:
            with self.assertRaises(fbsql.ProgrammingError) as cm:
                con.execute(sql)
            self.assertTupleEqual(cm.exception.args, (message,))
        self.assertEqual(self.api.called('isc_dsql_execute2'), 0)

class TestConnection(FbsqlTestCase):
    def test_dpb(self):
        self.connect()
        self.assertEqual(self.api.dpbs['test.fdb'],
                         b'\x01' + bytes([ibase.isc_dpb_user_name, 6]) + b'SYSDBA'
                         + bytes([ibase.isc_dpb_password, 9]) + b'masterkey'
                         + bytes([ibase.isc_dpb_lc_ctype, 4]) + b'UTF8')
        fbsql.Database('role.fdb', username='u', password='p', role='ADMIN',
                       environment=self.env).connect()
        self.assertEqual(self.api.dpbs['role.fdb'],
                         b'\x01\x1c\x01u\x1d\x01p\x30\x04NONE\x3c\x05ADMIN')
    def test_too_long_parameter(self):
        db = fbsql.Database('test.fdb', password='x' * 256, environment=self.env)
        with self.assertRaises(fbsql.ProgrammingError):
            db.connect()
    def test_defaults(self):
        with mock.patch.dict(os.environ, {'ISC_USER': 'alice', 'ISC_PASSWORD': 'secret'}):
            db = fbsql.Database('test.fdb')
        self.assertEqual(db.username, 'alice')
        self.assertEqual(db.password, 'secret')
        self.assertEqual(db.charset, 'NONE')
        self.assertEqual(db.page_size, 1024)
        self.assertIsNone(db.role)
        self.assertIs(db.environment, fbsql.default_environment)
        with mock.patch.dict(os.environ):
            os.environ.pop('ISC_USER', None)
            os.environ.pop('ISC_PASSWORD', None)
            db = fbsql.Database('test.fdb', charset='utf8', page_size=8192)
        self.assertEqual(db.username, 'sysdba')
        self.assertEqual(db.password, 'masterkey')
        self.assertEqual(db.charset, 'UTF8')
        self.assertEqual(db.page_size, 8192)
    def test_missing_database(self):
        with self.assertRaises(fbsql.ProgrammingError) as cm:
            fbsql.Database()
        self.assertTupleEqual(cm.exception.args, ("Database must be specified.",))
        with self.assertRaises(fbsql.ProgrammingError):
            fbsql.connect()
    def test_module_functions(self):
        params = dict(username='SYSDBA', password='masterkey', environment=self.env)
        con = fbsql.create_database('new.fdb', **params)
        self.assertFalse(con.closed)
        self.assertEqual(con.database, 'new.fdb')
        con.close()
        con = fbsql.connect('new.fdb', **params)
        self.assertEqual(self.api.attachments[con._db_handle.value], 'new.fdb')
        con.close()
        fbsql.drop_database('new.fdb', **params)
        self.assertListEqual(self.api.dropped, ['new.fdb'])
    def test_dialect(self):
        con = self.connect()
        self.assertEqual(con.dialect, 3)
        self.assertEqual(con.db_dialect, 3)
        con.execute(CREATE_T)
        prepare = [args for name, args in self.api.calls if name == 'isc_dsql_prepare']
        self.assertEqual(prepare[-1][2], 3)
        self.api.dialect = 1
        with self.assertLogs('fbsql.fbcore', 'INFO') as cm:
            con = self.connect()
        self.assertIn('uses SQL dialect 1', cm.output[0])
        self.assertEqual(con.dialect, 1)
        self.assertEqual(con.db_dialect, 1)
        self.api.dialect = None
        con = self.connect()
        self.assertEqual(con.db_dialect, 1)
        self.assertLessEqual(con.dialect, con.db_dialect)
    def test_attach_error(self):
        self.api.fail('isc_attach_database', isc_io_error, 'I/O error during "open" operation')
        with self.assertRaises(fbsql.DatabaseError) as cm:
            self.connect()
        self.assertEqual(cm.exception.error_code, -902)
        self.assertEqual(cm.exception.gds_code, isc_io_error)
        self.assertEqual(str(cm.exception),
                         'Error while connecting to database:\n'
                         '- SQL error code = -902\n'
                         '- I/O error during "open" operation')
        self.assertListEqual(self.env.connections, [])
    def test_closed(self):
        con = self.connect()
        cur = con.cursor()
        self.assertFalse(con.closed)
        con.close()
        self.assertTrue(con.closed)
        self.assertTrue(cur.dropped)
        self.assertListEqual(self.env.connections, [])
        for method, args in [(con.cursor, ()), (con.execute, (SELECT_T,)), (con.commit, ()),
                             (con.rollback, ()), (con.transaction, ()), (con.close, ())]:
            with self.assertRaises(fbsql.ProgrammingError) as cm:
                method(*args)
            self.assertTupleEqual(cm.exception.args, ("closed db connection",))
        with self.assertRaises(fbsql.ProgrammingError) as cm:
            cur.execute(SELECT_T)
        self.assertTupleEqual(cm.exception.args, ("dropped db cursor",))
    def test_close_commits(self):
        con = self.connect()
        con.execute(INSERT_T, 7)
        cur = con.execute(SELECT_T)
        con.close()
        self.assertListEqual(self.api.tables['T'], [(long(7),)])
        self.assertFalse(self.env.transaction_started)
        self.assertTrue(cur.dropped)
        self.assertListEqual(self.call_names('isc_commit_transaction', 'isc_dsql_free_statement',
                                             'isc_detach_database')[-3:],
                             ['isc_commit_transaction', 'isc_dsql_free_statement',
                              'isc_detach_database'])
    def test_detach_error(self):
        con = self.connect()
        self.api.fail('isc_detach_database', isc_io_error, 'connection lost')
        with self.assertRaises(fbsql.DatabaseError):
            con.close()
        self.assertTrue(con.closed)
        self.assertListEqual(self.env.connections, [])
    def test_drop_error(self):
        self.api.fail('isc_drop_database', isc_lock_conflict, 'lock conflict on no wait transaction')
        with self.assertRaises(fbsql.DatabaseError) as cm:
            self.db.drop()
        self.assertEqual(cm.exception.error_code, -901)
        self.assertListEqual(self.env.connections, [])
        self.assertListEqual(self.api.dropped, [])
    def test_context_manager(self):
        with self.connect() as con:
            con.execute(INSERT_T, 1)
        self.assertTrue(con.closed)
        self.assertListEqual(self.api.tables['T'], [(long(1),)])
        with self.assertRaises(fbsql.DatabaseError):
            with self.connect() as con:
                con.execute('SELECT foo')
        self.assertTrue(con.closed)
    def test_finalizer(self):
        con = self.connect()
        self.api.fail('isc_detach_database', isc_io_error, 'connection lost')
        with self.assertWarns(fbsql.FirebirdWarning):
            del con
        self.assertListEqual(self.env.connections, [])
    def test_finalizer_commit_error(self):
        con = self.connect()
        con.execute(INSERT_T, 1)
        self.api.fail('isc_commit_transaction', isc_lock_conflict, 'deadlock')
        with self.assertWarns(fbsql.FirebirdWarning) as cm:
            del con
        self.assertIn('deadlock', str(cm.warning))
        self.assertEqual(self.api.called('isc_detach_database'), 1)
        self.assertDictEqual(self.api.attachments, {})
        self.assertListEqual(self.env.connections, [])
    def test_hooks(self):
        attached = []
        closed = []
        fbsql.add_hook(fbsql.HOOK_DATABASE_ATTACHED, attached.append)
        self.addCleanup(fbsql.remove_hook, fbsql.HOOK_DATABASE_ATTACHED, attached.append)
        fbsql.add_hook(fbsql.HOOK_DATABASE_CLOSED, closed.append)
        self.addCleanup(fbsql.remove_hook, fbsql.HOOK_DATABASE_CLOSED, closed.append)
        self.assertIn(attached.append, fbsql.get_hooks(fbsql.HOOK_DATABASE_ATTACHED))
        con = self.connect()
        self.assertListEqual(attached, [con])
        con.close()
        self.assertListEqual(closed, [con])
        fbsql.remove_hook(fbsql.HOOK_DATABASE_CLOSED, closed.append)
        fbsql.remove_hook(fbsql.HOOK_DATABASE_CLOSED, closed.append)
        self.assertNotIn(closed.append, fbsql.get_hooks(fbsql.HOOK_DATABASE_CLOSED))
    def test_load_api(self):
        loaded = []
        fbsql.add_hook(fbsql.HOOK_API_LOADED, loaded.append)
        self.addCleanup(fbsql.remove_hook, fbsql.HOOK_API_LOADED, loaded.append)
        del fbcore.api
        with mock.patch.object(ibase, 'fbclient_API', return_value=self.api) as factory:
            self.assertIs(fbsql.load_api('/opt/firebird/lib/libfbclient.so'), self.api)
            self.assertIs(fbsql.load_api(), self.api)
        factory.assert_called_once_with('/opt/firebird/lib/libfbclient.so')
        self.assertListEqual(loaded, [self.api])
        del fbcore.api
        with mock.patch.object(ibase, 'fbclient_API', side_effect=OSError('not found')):
            with self.assertRaises(fbsql.InterfaceError):
                fbsql.load_api()
        self.assertFalse(hasattr(fbcore, 'api'))
    def test_logging(self):
        with self.assertLogs('fbsql.fbcore', 'DEBUG') as cm:
            con = self.connect()
            con.execute(CREATE_T)
            con.commit()
            con.close()
        output = '\n'.join(cm.output)
        self.assertIn('Attached to database test.fdb', output)
        self.assertIn('Transaction committed', output)
        self.assertIn('Detached from database test.fdb', output)

class TestCursor(FbsqlTestCase):
    def test_description(self):
        self.api.script('SELECT i AS id, v FROM t', SELECT,
                        outputs=[Column('I', SQL_LONG + 1, 4, alias='ID'),
                                 Column('V', SQL_VARYING, 10, subtype=4)],
                        rows=[(long(1), varying(b'one'))])
        con = self.connect()
        cur = con.cursor()
        self.assertIsNone(cur.description)
        self.assertIsNone(cur.execute('SELECT i AS id, v FROM t'))
        self.assertTupleEqual(cur.description, (('ID', SQL_LONG, 4, 4, 0, 0, True),
                                                ('V', SQL_VARYING, 10, 12, 0, 0, False)))
        self.assertEqual(cur.description[0][fbsql.DESCRIPTION_NAME], 'ID')
        self.assertEqual(cur.description[1][fbsql.DESCRIPTION_INTERNAL_SIZE], 12)
        self.assertEqual(cur.statement_type, SELECT)
        self.assertIs(cur.connection, con)
        cur.close()
        self.assertIsNone(cur.description)
    def test_growing_descriptors(self):
        self.api.script('SELECT * FROM wide', SELECT,
                        outputs=[Column('C%d' % i, SQL_LONG, 4) for i in range(12)],
                        rows=[tuple(long(i) for i in range(12))])
        self.api.script('INSERT INTO wide VALUES (?,?,?,?,?,?,?,?,?,?,?)', INSERT,
                        inputs=[Column('C%d' % i, SQL_LONG, 4) for i in range(11)])
        con = self.connect()
        cur = con.execute('SELECT * FROM wide')
        self.assertTupleEqual(cur.fetchone(), tuple(range(12)))
        self.assertEqual(len(cur.description), 12)
        self.assertEqual(self.api.called('isc_dsql_describe'), 1)
        con.execute('INSERT INTO wide VALUES (?,?,?,?,?,?,?,?,?,?,?)', *range(11))
        self.assertTupleEqual(self.api.executed[-1][1], tuple(long(i) for i in range(11)))
        self.assertEqual(self.api.called('isc_dsql_describe_bind'), 3)
    def test_parameter_errors(self):
        con = self.connect()
        with self.assertRaises(fbsql.ProgrammingError) as cm:
            con.execute(INSERT_T)
        self.assertTupleEqual(cm.exception.args, ("statement requires 1 items; 0 given",))
        with self.assertRaises(fbsql.ProgrammingError) as cm:
            con.execute(INSERT_T, 1, 2)
        self.assertTupleEqual(cm.exception.args, ("statement requires 1 items; 2 given",))
        with self.assertRaises(fbsql.ProgrammingError) as cm:
            con.execute(CREATE_T, 1)
        self.assertTupleEqual(cm.exception.args, ("statement requires 0 items; 1 given",))
        with self.assertRaises(fbsql.ProgrammingError):
            con.execute(SELECT_T, 1)
        with self.assertRaises(TypeError):
            con.execute(INSERT_T, 'one')
        with self.assertRaises(fbsql.DataError):
            con.execute(INSERT_T, 2 ** 31)
        self.assertListEqual(self.api.executed, [])
    def test_select_parameters(self):
        self.api.script('SELECT i FROM t WHERE i > ?', SELECT,
                        inputs=[Column('I', SQL_LONG, 4)],
                        outputs=[Column('I', SQL_LONG + 1, 4)], table='T')
        con = self.connect()
        con.execute(INSERT_T, 5)
        cur = con.execute('SELECT i FROM t WHERE i > ?', [1])
        self.assertTupleEqual(self.api.executed[-1][1], (long(1),))
        self.assertListEqual(cur.fetchall(), [(5,)])
        cur.execute('SELECT i FROM t WHERE i > ?', 2)
        self.assertTupleEqual(self.api.executed[-1][1], (long(2),))
        with self.assertRaises(fbsql.ProgrammingError) as cm:
            cur.execute('SELECT i FROM t WHERE i > ?')
        self.assertTupleEqual(cm.exception.args, ("statement requires 1 items; 0 given",))
    def test_database_errors(self):
        con = self.connect()
        with self.assertRaises(fbsql.DatabaseError) as cm:
            con.execute('SELECT foo')
        self.assertEqual(cm.exception.error_code, -104)
        self.assertEqual(cm.exception.gds_code, isc_dsql_error)
        self.assertEqual(str(cm.exception),
                         'Error while preparing SQL statement:\n'
                         '- SQL error code = -104\n'
                         '- Dynamic SQL Error\n'
                         '- Token unknown - SELECT foo')
        self.api.script('INSERT INTO u VALUES (1)', INSERT, error=isc_unique_key_violation)
        with self.assertRaises(fbsql.DatabaseError) as cm:
            con.execute('INSERT INTO u VALUES (1)')
        self.assertEqual(cm.exception.error_code, -803)
        self.assertTrue(str(cm.exception).startswith('Error while executing SQL statement:\n'))
        self.assertEqual(self.api.called('isc_dsql_alloc_statement2'),
                         self.api.called('isc_dsql_free_statement'))
    def test_fetch_error(self):
        con = self.connect()
        con.execute(INSERT_T, 1)
        cur = con.execute(SELECT_T)
        self.api.fail('isc_dsql_fetch', isc_io_error, 'connection lost')
        with self.assertRaises(fbsql.DatabaseError) as cm:
            cur.fetch()
        self.assertTrue(str(cm.exception).startswith('Cursor.fetch:\n'))
    def test_allocation_error(self):
        con = self.connect()
        self.api.fail('isc_dsql_alloc_statement2', isc_bad_db_handle, 'invalid database handle')
        with self.assertRaises(fbsql.DatabaseError) as cm:
            con.cursor()
        self.assertEqual(cm.exception.error_code, -904)
    def test_iteration(self):
        con = self.connect()
        con.execute(INSERT_T, [1], [2], [3], [4])
        cur = con.execute(SELECT_T)
        self.assertTupleEqual(cur.fetchone(), (1,))
        self.assertListEqual([row for row in cur], [(2,), (3,), (4,)])
        self.assertIsNone(cur.fetch())
        cur.execute(SELECT_T)
        rows = []
        cur.each(rows.append)
        self.assertListEqual(rows, [(1,), (2,), (3,), (4,)])
        cur.execute(SELECT_T)
        cur.fetch()
        self.assertListEqual(cur.fetchall(), [(2,), (3,), (4,)])
        self.assertListEqual(cur.fetchall(), [])
    def test_reexecute_closes(self):
        con = self.connect()
        cur = con.execute(SELECT_T)
        cur.execute(SELECT_T)
        self.assertTrue(cur.open)
        closes = [args for name, args in self.api.calls
                  if name == 'isc_dsql_free_statement' and args[1] == ibase.DSQL_close]
        self.assertEqual(len(closes), 1)
    def test_dropped(self):
        con = self.connect()
        cur = con.cursor()
        with self.assertRaises(fbsql.ProgrammingError) as cm:
            cur.fetch()
        self.assertTupleEqual(cm.exception.args, ("closed db cursor",))
        cur.close()
        cur.drop()
        self.assertTrue(cur.dropped)
        for method, args in [(cur.execute, (SELECT_T,)), (cur.fetch, ()), (cur.close, ()),
                             (cur.drop, ())]:
            with self.assertRaises(fbsql.ProgrammingError) as cm:
                method(*args)
            self.assertTupleEqual(cm.exception.args, ("dropped db cursor",))
    def test_context_manager(self):
        con = self.connect()
        with con.cursor() as cur:
            cur.execute(SELECT_T)
            self.assertTrue(cur.open)
        self.assertFalse(cur.open)
        self.assertFalse(cur.dropped)
        with cur:
            cur.drop()
        self.assertTrue(cur.dropped)
    def test_finalizer(self):
        con = self.connect()
        cur = con.cursor()
        self.api.fail('isc_dsql_free_statement', isc_io_error, 'connection lost')
        with self.assertWarns(fbsql.FirebirdWarning):
            del cur
    def test_executed_procedure(self):
        sql = 'EXECUTE PROCEDURE p(?)'
        self.api.script(sql, EXEC_PROCEDURE, inputs=[Column('X', SQL_LONG, 4)],
                        outputs=[Column('R', SQL_LONG + 1, 4),
                                 Column('S', SQL_VARYING + 1, 20, subtype=4)],
                        rows=[(long(7), varying(b'seven'))])
        con = self.connect()
        cur = con.execute(sql, 3)
        self.assertTupleEqual(self.api.executed[-1], (sql, (long(3),)))
        self.assertTupleEqual(cur.fetchone(), (7, 'seven'))
        self.assertIsNone(cur.fetchone())
        closes = self.api.called('isc_dsql_free_statement')
        cur.close()
        self.assertEqual(self.api.called('isc_dsql_free_statement'), closes)
        cur = con.cursor()
        self.assertEqual(cur.execute(sql, 3), fbsql.STATEMENT_DML)
        self.assertTrue(cur.open)
        self.assertListEqual(cur.fetchall(), [(7, 'seven')])

class TestBlobs(FbsqlTestCase):
    def setUp(self):
        super(TestBlobs, self).setUp()
        self.api.script('INSERT INTO b VALUES (?)', INSERT,
                        inputs=[Column('B', SQL_BLOB + 1, 8)], table='B')
        self.api.script('SELECT b FROM b', SELECT,
                        outputs=[Column('B', SQL_BLOB + 1, 8)], table='B')
        self.api.script('INSERT INTO memo VALUES (?)', INSERT,
                        inputs=[Column('M', SQL_BLOB + 1, 8, subtype=1)], table='MEMO')
        self.api.script('SELECT m FROM memo', SELECT,
                        outputs=[Column('M', SQL_BLOB + 1, 8, subtype=1)], table='MEMO')
    def test_binary(self):
        data = bytes(i % 251 for i in range(10000))
        con = self.connect()
        con.execute('INSERT INTO b VALUES (?)', data)
        self.assertListEqual(self.api.segments, [4096, 4096, 1808])
        self.assertListEqual(con.execute('SELECT b FROM b').fetchall(), [(data,)])
    def test_small_segments(self):
        data = bytes(i % 251 for i in range(10000))
        self.api.segment_size = 100
        con = self.connect()
        con.execute('INSERT INTO b VALUES (?)', data)
        self.assertListEqual(con.execute('SELECT b FROM b').fetchall(), [(data,)])
        self.assertEqual(self.api.called('isc_get_segment'), 100)
    def test_empty_and_null(self):
        con = self.connect()
        con.execute('INSERT INTO b VALUES (?)', [b''], [None])
        self.assertListEqual(con.execute('SELECT b FROM b').fetchall(), [(b'',), (None,)])
    def test_text(self):
        con = self.connect()
        con.execute('INSERT INTO memo VALUES (?)', 'Příliš žluťoučký kůň')
        self.assertListEqual(con.execute('SELECT m FROM memo').fetchall(),
                             [('Příliš žluťoučký kůň',)])
    def test_write_error_closes_blob(self):
        con = self.connect()
        self.api.fail('isc_put_segment', isc_io_error, 'connection lost')
        with self.assertRaises(fbsql.DatabaseError):
            con.execute('INSERT INTO b VALUES (?)', b'data')
        self.assertEqual(self.api.called('isc_close_blob'), 1)
        self.assertDictEqual(self.api.blob_handles, {})
        self.assertListEqual(self.api.executed, [])
    def test_read_error_closes_blob(self):
        con = self.connect()
        con.execute('INSERT INTO b VALUES (?)', [b'first'], [b'second'])
        self.api.fail('isc_blob_info', isc_io_error, 'connection lost')
        with self.assertRaises(fbsql.DatabaseError):
            con.execute('SELECT b FROM b').fetch()
        self.assertDictEqual(self.api.blob_handles, {})
        self.api.fail('isc_get_segment', isc_io_error, 'connection lost')
        with self.assertRaises(fbsql.DatabaseError):
            con.execute('SELECT b FROM b').fetch()
        self.assertDictEqual(self.api.blob_handles, {})
        self.assertListEqual(con.execute('SELECT b FROM b').fetchall(),
                             [(b'first',), (b'second',)])


if __name__ == '__main__':
    unittest.main()
