"""
Error taxonomy for schema registration, request validation and execution.
"""
import re

TRANSIENT_PATTERNS = [
    # SSL/TLS errors
    r'ssl',
    r'tls',
    # Connection drops
    r'connection.*(closed|reset|refused|lost|terminated|broken)',
    r'server closed',
    r'eof detected',
    r'broken pipe',
    # Network issues
    r'could not connect',
    r'no route to host',
    r'network.*(unreachable|error)',
    r'host.*(unreachable|down)',
    # Database unavailable
    r'database.*unavailable',
    r'too many connections',
    r'database is locked',
]

_TRANSIENT_REGEX = re.compile('|'.join(TRANSIENT_PATTERNS), re.IGNORECASE)


def is_transient_error(exc: BaseException) -> bool:
    """Check if an exception looks like a transient failure.

    Nothing in this package retries. This is offered so callers can build
    their own retry policy on top of `ExecutionError`.

    :param exc: The exception to check.
    :returns: True if the message matches a known transient pattern.
    """
    return bool(_TRANSIENT_REGEX.search(str(exc)))


class SqldError(Exception):
    """Base class for all errors raised by this package.
    """


class SchemaError(SqldError):
    """Invalid record declaration, raised at registration time.
    """


class NotRegistered(SchemaError):
    """Record type has no registered schema.
    """


class CatalogSealed(SchemaError):
    """Write attempted on a sealed catalog.
    """


class ValidationError(SqldError):
    """Request rejected before reaching the database.
    """


class RewriteError(SqldError):
    """Placeholder left unresolved after rewriting.
    """


class ExecutionError(SqldError):
    """Driver or connection failure while running a statement.
    """

    @property
    def transient(self) -> bool:
        cause = self.__cause__ or self
        return is_transient_error(cause)


class UnsupportedConnection(ExecutionError):
    """No execution strategy handles the given connection object.
    """


class ExecutionCancelled(ExecutionError):
    """Statement cancelled by the caller or by its deadline.
    """


class ScanError(SqldError):
    """Returned row could not be mapped onto the result record.
    """


def is_client_error(exc: BaseException) -> bool:
    """Return True when the error was caused by the request itself.

    Client errors are safe to report verbatim.
    """
    return isinstance(exc, ValidationError)
