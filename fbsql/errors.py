#coding:utf-8
#
#   PROGRAM/MODULE: fbsql
#   FILE:           errors.py
#   DESCRIPTION:    Firebird SQL execution core - Exceptions and warnings
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

# Exceptions required by Python Database API

class Error(Exception):
    """Exception that is the base class of all other error
    exceptions. You can use this to catch all errors with one
    single 'except' statement. Warnings are not considered
    errors and thus should not use this class as base.

    Args:
        msg (str): Error message.
        error_code (int): SQLCODE reported by Firebird, `None` for errors
            detected by fbsql itself.
        gds_code (int): First Firebird (GDS) error code from status vector.
    """
    def __init__(self, msg='', error_code=None, gds_code=None):
        super(Error, self).__init__(msg)
        #: SQLCODE of the error (or None)
        self.error_code = error_code
        #: Firebird (GDS) error code (or None)
        self.gds_code = gds_code

class InterfaceError(Error):
    """Exception raised for errors that are related to the
    database interface rather than the database itself."""
    pass

class DatabaseError(Error):
    "Exception raised for errors that are related to the database."
    pass

class DataError(DatabaseError):
    """Exception raised for errors that are due to problems with
    the processed data like division by zero, numeric value
    out of range, etc."""
    pass

class OperationalError(DatabaseError):
    """Exception raised for errors that are related to the
    database's operation and not necessarily under the control
    of the programmer."""
    pass

class IntegrityError(DatabaseError):
    """Exception raised when the relational integrity of the
    database is affected, e.g. a foreign key check fails."""
    pass

class InternalError(DatabaseError):
    """Exception raised when the database encounters an internal
    error, e.g. the result of an information call can't be parsed."""
    pass

class ProgrammingError(DatabaseError):
    """Exception raised for programming errors, e.g. closed cursor
    or connection is used, wrong number of parameters specified, etc."""
    pass

class NotSupportedError(DatabaseError):
    """Exception raised in case a method or database API was used
    which is not supported by the database"""
    pass

class TransactionOptionError(ProgrammingError):
    "Exception raised when transaction option string can't be compiled into TPB."
    pass

class FirebirdWarning(UserWarning):
    """Warning issued instead of exception where raising is not possible
    (object finalization) or where data are silently dropped (ARRAY columns)."""
    pass
