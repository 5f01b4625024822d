"""
Error classes for apexcompile.

Errors are raised at the Tooling API boundary and propagate out of the
phase that failed (inventory, staging, submission or polling):
- RemoteQueryError: a Tooling query reported a non-success status
- RemoteApiError: a REST call returned an error-shaped payload
- SfCommandError: the sf process failed without a usable payload
- DiagnosticUnavailable: compiler errors could not be read or parsed

None of these are retried. Container cleanup still runs after any of them.

An unsuccessful compile is not an error: it is reported through
CompileOutcome.UNSUCCESSFUL on the CompileResult.
"""


class ApexCompileError(Exception):
    """Base exception for apexcompile."""
    pass


class RemoteQueryError(ApexCompileError):
    """
    Tooling query failed.

    Raised when `sf data query` returns a payload with a non-zero status.
    The message is the one reported by the org.
    """
    pass


class RemoteApiError(ApexCompileError):
    """
    Tooling REST call returned an error payload.

    Examples:
    - INVALID_CROSS_REFERENCE_KEY on a member pointing at a deleted class
    - NOT_FOUND when reading a request that no longer exists
    - DUPLICATE_VALUE on a container name collision
    """

    def __init__(self, code: str, message: str):
        self.code = code
        self.message = message
        super().__init__(f"{code}: {message}")


class SfCommandError(ApexCompileError):
    """
    The sf CLI could not be run or exited without printing a payload.

    Carries the process stderr with CLI warning lines removed.
    """
    pass


class DiagnosticUnavailable(ApexCompileError):
    """
    Compiler diagnostics could not be obtained or parsed.

    Never escapes the report step: callers degrade to the generic
    error message or a "no details" notice.
    """
    pass


class ConfigError(ApexCompileError):
    """Configuration validation error."""
    pass
