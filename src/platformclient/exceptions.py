"""Exception hierarchy for platformclient.

All exceptions inherit from :class:`PlatformClientError`, which carries an
``exit_code`` attribute mapped to a constant from
:mod:`platformclient.exit_codes`.

Transport failures are deliberately absent from this hierarchy: non-2xx
responses and network errors raised by :mod:`httpx` propagate unchanged so
that callers keep access to the original request and response.

Subclass hierarchy::

    PlatformClientError        (exit 1)
    +-- ConfigError            (exit 1)
    +-- AuthError              (exit 3)
        +-- InvalidCredentialsError
        +-- NotLoggedInError
"""

from platformclient.exit_codes import EXIT_AUTH_FAILURE, EXIT_GENERIC_FAILURE


class PlatformClientError(Exception):
    """Base exception for all platformclient errors.

    Args:
        message: Human-readable error description.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class ConfigError(PlatformClientError):
    """Raised for configuration problems (unknown keys, invalid values, unreadable files)."""

    exit_code = EXIT_GENERIC_FAILURE


class AuthError(PlatformClientError):
    """Raised when authentication fails or a token response is unusable."""

    exit_code = EXIT_AUTH_FAILURE


class InvalidCredentialsError(AuthError):
    """Raised when the token endpoint rejects a username/password pair with HTTP 401."""


class NotLoggedInError(AuthError):
    """Raised when an authenticated operation is attempted without any session token."""
