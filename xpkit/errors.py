"""Error types raised by the XPKit SDK.

Every error carries the HTTP status code (when one is known) and the raw or
serialized response body, so callers can branch on ``status_code`` without
parsing messages. Resource accessors rely on this to reinterpret specific
statuses, e.g. a 404 from a verify endpoint meaning "does not exist".
"""


class XPKitError(Exception):
    """Base error for the SDK.

    Attributes:
        status_code: HTTP status of the response, or None when no response
            was received
        response: Raw or JSON-serialized response body for diagnostics
    """

    def __init__(self, message: str, status_code: int | None = None, response: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.response = response

    @property
    def code(self) -> int | None:
        """Alias for ``status_code``."""
        return self.status_code


class TransportError(XPKitError):
    """Network failure, or a response body that could not be parsed."""

    pass


class ApiError(XPKitError):
    """The API answered with a status outside the success range."""

    pass


class AuthFlowError(XPKitError):
    """Token acquisition failed.

    Raised instead of the underlying transport or API error so that a failed
    login is distinguishable from a failed resource call. The original error
    is chained as ``__cause__`` and its status (if any) is copied over.
    """

    pass


class ValidationError(XPKitError):
    """A local precondition failed before any request was made."""

    pass


class CredentialStoreError(XPKitError):
    """The credential store could not read, write or decrypt a record."""

    pass
