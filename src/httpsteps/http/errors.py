"""
Exceptions a handler raises to answer with an error status.

    raise HTTPError(HTTPStatus.NOT_FOUND, "`id` not found")

The router turns it into a plain-text response carrying the message, so a
handler can stop at the first failed check without building the response
itself.
"""

from .status_codes import HTTPStatus


class HTTPError(Exception):
    """An error that maps directly to an HTTP status and body."""

    def __init__(self, status: HTTPStatus, message: str):
        super().__init__(message)
        self.status = HTTPStatus(status)
        self.message = message

    def __repr__(self) -> str:
        return f"HTTPError({int(self.status)}, {self.message!r})"
