#coding:utf-8
#
#   PROGRAM/MODULE: fbsql
#   FILE:           test_tpb.py
#   DESCRIPTION:    Tests for transaction parameter block compiler
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
import fbsql
from fbsql import ibase
from fbsql.tpb import parse_options, format_options, DEFAULT_TPB

HEADER = [ibase.isc_tpb_version1, ibase.isc_tpb_write, ibase.isc_tpb_concurrency,
          ibase.isc_tpb_nowait]

class TestParseOptions(unittest.TestCase):
    def assertCompilesTo(self, options, expected):
        self.assertEqual(parse_options(options), bytes(expected))
    def assertFailsWith(self, options, message):
        with self.assertRaises(fbsql.TransactionOptionError) as cm:
            parse_options(options)
        self.assertTupleEqual(cm.exception.args, (message,))
    def test_default(self):
        self.assertEqual(DEFAULT_TPB, bytes(HEADER))
        self.assertCompilesTo('', HEADER)
        self.assertCompilesTo('   ', HEADER)
    def test_read_committed(self):
        self.assertCompilesTo('READ COMMITTED WAIT',
                              [ibase.isc_tpb_version1, ibase.isc_tpb_write,
                               ibase.isc_tpb_read_committed, ibase.isc_tpb_wait,
                               ibase.isc_tpb_no_rec_version])
        self.assertCompilesTo('read committed record_version',
                              [1, 9, 15, 7, ibase.isc_tpb_rec_version])
        self.assertCompilesTo('READ COMMITTED NO RECORD_VERSION NO WAIT',
                              [1, 9, 15, 7, ibase.isc_tpb_no_rec_version])
        self.assertCompilesTo('ISOLATION LEVEL READ COMMITTED',
                              [1, 9, 15, 7, ibase.isc_tpb_no_rec_version])
    def test_access_mode(self):
        self.assertCompilesTo('READ ONLY', [1, ibase.isc_tpb_read, 2, 7])
        self.assertCompilesTo('READ', [1, ibase.isc_tpb_read, 2, 7])
        self.assertCompilesTo('READ WRITE', [1, ibase.isc_tpb_write, 2, 7])
        self.assertCompilesTo('READ WAIT', [1, ibase.isc_tpb_read, 2, ibase.isc_tpb_wait])
    def test_snapshot(self):
        self.assertCompilesTo('SNAPSHOT', [1, 9, ibase.isc_tpb_concurrency, 7])
        self.assertCompilesTo('SNAPSHOT TABLE STABILITY', [1, 9, ibase.isc_tpb_consistency, 7])
        self.assertCompilesTo('ISOLATION LEVEL SNAPSHOT TABLE STABILITY WAIT',
                              [1, 9, ibase.isc_tpb_consistency, 6])
        self.assertCompilesTo('READ ONLY ISOLATION LEVEL SNAPSHOT NO WAIT',
                              [1, 8, ibase.isc_tpb_concurrency, 7])
    def test_reserving(self):
        self.assertCompilesTo('RESERVING t1 FOR PROTECTED WRITE',
                              HEADER + [ibase.isc_tpb_lock_write, 2, ord('T'), ord('1'),
                                        ibase.isc_tpb_protected])
        self.assertCompilesTo('RESERVING T1, T2 FOR SHARED READ, T3 FOR PROTECTED WRITE',
                              HEADER + [10, 2, ord('T'), ord('1'), 3,
                                        10, 2, ord('T'), ord('2'), 3,
                                        11, 2, ord('T'), ord('3'), 4])
        self.assertCompilesTo('RESERVING A,B FOR SHARED WRITE',
                              HEADER + [11, 1, ord('A'), 3, 11, 1, ord('B'), 3])
        self.assertCompilesTo('WAIT RESERVING A FOR SHARED READ , B FOR SHARED READ',
                              [1, 9, 2, 6, 10, 1, ord('A'), 3, 10, 1, ord('B'), 3])
        self.assertCompilesTo('RESERVING A FOR SHARED READ READ COMMITTED',
                              [1, 9, 15, 7, 18, 10, 1, ord('A'), 3])
    def test_duplicates(self):
        self.assertFailsWith('READ WRITE WAIT READ WRITE',
                             "Duplicate transaction option was specified")
        self.assertFailsWith('WAIT NO WAIT', "Duplicate transaction option was specified")
        self.assertFailsWith('SNAPSHOT READ COMMITTED',
                             "Duplicate transaction option was specified")
        self.assertFailsWith('RESERVING A FOR SHARED READ RESERVING B FOR SHARED READ',
                             "Duplicate transaction option was specified")
    def test_errors(self):
        self.assertFailsWith('FOO', "Illegal transaction option was specified")
        self.assertFailsWith('ISOLATION LEVEL FOO', "Illegal transaction option was specified")
        self.assertFailsWith('ISOLATION LEVEL', "Unexpected end of command")
        self.assertFailsWith('NO', "Illegal transaction option was specified")
        self.assertFailsWith('RESERVING', "RESERVING needs table name list")
        self.assertFailsWith('RESERVING FOR SHARED READ', "RESERVING needs table name list")
        self.assertFailsWith('RESERVING T1', "Unexpected end of command")
        self.assertFailsWith('RESERVING T1 FOR', "RESERVING needs {SHARED|PROTECTED} {READ|WRITE}")
        self.assertFailsWith('RESERVING T1 FOR SHARED',
                             "RESERVING needs {SHARED|PROTECTED} {READ|WRITE}")
        self.assertFailsWith('RESERVING T1 FOR EXCLUSIVE READ',
                             "RESERVING needs {SHARED|PROTECTED} {READ|WRITE}")
        self.assertFailsWith('RESERVING T1 FOR SHARED READ,', "Unexpected end of command")
        self.assertFailsWith('RESERVING %s FOR SHARED READ' % ('T' * 32),
                             "Illegal table name was specified")
    def test_table_name_length(self):
        tpb = parse_options('RESERVING %s FOR SHARED READ' % ('T' * 31))
        self.assertEqual(tpb[5], 31)
        self.assertEqual(len(tpb), 4 + 3 + 31)

class TestFormatOptions(unittest.TestCase):
    def test_format(self):
        self.assertEqual(format_options(DEFAULT_TPB),
                         'READ WRITE ISOLATION LEVEL SNAPSHOT NO WAIT')
        self.assertEqual(format_options(parse_options('read committed wait')),
                         'READ WRITE ISOLATION LEVEL READ COMMITTED NO RECORD_VERSION WAIT')
        self.assertEqual(format_options(parse_options('READ ONLY SNAPSHOT TABLE STABILITY')),
                         'READ ONLY ISOLATION LEVEL SNAPSHOT TABLE STABILITY NO WAIT')
        self.assertEqual(format_options(parse_options(
            'RESERVING T1, T2 FOR SHARED READ, T3 FOR PROTECTED WRITE')),
            'READ WRITE ISOLATION LEVEL SNAPSHOT NO WAIT'
            ' RESERVING T1, T2 FOR SHARED READ, T3 FOR PROTECTED WRITE')
    def test_idempotence(self):
        for options in ['', 'READ', 'READ COMMITTED RECORD_VERSION WAIT',
                        'ISOLATION LEVEL SNAPSHOT TABLE STABILITY',
                        'READ ONLY NO WAIT RESERVING A FOR SHARED READ, B, C FOR PROTECTED WRITE',
                        'RESERVING A FOR SHARED READ READ COMMITTED NO RECORD_VERSION']:
            tpb = parse_options(options)
            self.assertEqual(parse_options(format_options(tpb)), tpb)
    def test_invalid(self):
        with self.assertRaises(ValueError):
            format_options(b'\x01\x09')
        with self.assertRaises(ValueError):
            format_options(bytes([3, 9, 2, 7]))
        with self.assertRaises(ValueError):
            format_options(bytes([1, 9, 2, 7, ibase.isc_tpb_rec_version]))
        with self.assertRaises(ValueError):
            format_options(bytes([1, 9, 2, 7, 10, 1, ord('A'), 99]))

if __name__ == '__main__':
    unittest.main()
