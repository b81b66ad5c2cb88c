"""
Errors raised by the Congress client.

Backend errors keep the HTTP status code so callers can test for things like
not-found without parsing the message.
"""
import http
import requests

class CongressClientError(Exception):
    """Base error for every Congress client failure."""

class CongressError(CongressClientError):
    """
    Error returned by the Congress backend (any non-2xx response).

    Params:
    - status_code: HTTP status code of the response.
    - message: The raw response body.
    """
    def __init__(self, status_code: int, message: str):
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message

    @classmethod
    def from_response(cls, response):
        """Build a CongressError from a `requests.Response`, reading the body in full."""
        try:
            message = response.text
        except requests.RequestException as e:
            message = str(e)
        return cls(response.status_code, message)

class InvalidPortError(CongressError):
    """Downstream port number is outside 1..224. Raised before any request is sent."""
    def __init__(self, message: str = "Invalid port number"):
        super().__init__(int(http.HTTPStatus.BAD_REQUEST), message)

class CongressConnectionError(CongressClientError):
    """Network connection to the backend failed before a response was received."""

class CongressDecodeError(CongressClientError):
    """The response body could not be decoded as JSON."""

class StreamError(CongressClientError):
    """Error published on a data stream's error channel."""

def error_status_code(err: BaseException) -> int:
    """Return the HTTP status code of a CongressError, 0 for any other error."""
    if isinstance(err, CongressError):
        return err.status_code
    return 0

def error_message(err: BaseException) -> str:
    """Return the message of a CongressError, "" for any other error."""
    if isinstance(err, CongressError):
        return err.message
    return ""

def is_not_found(err: BaseException) -> bool:
    """True if err is a backend not-found error."""
    return error_status_code(err) == http.HTTPStatus.NOT_FOUND
