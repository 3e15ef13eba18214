"""wrybridge exception hierarchy.

All wrybridge-specific exceptions inherit from WryBridgeException, enabling
catch-all handling while supporting specific error types.

Two families exist:

- ``BridgeRequestError`` and its subclasses describe a single failed
  request. They are always converted to a response by the codec or the
  router and never escape to the renderer.
- ``ConstructionError`` and its subclasses abort building a view. They
  propagate to whoever called the builder.
"""

from __future__ import annotations

from http import HTTPStatus
from typing import TYPE_CHECKING, Any

from .responses import error_response


if TYPE_CHECKING:
    from .models import Response


class WryBridgeException(Exception):
    """Base exception for all wrybridge errors."""

    def __init__(self, message: str, **context: Any) -> None:
        """Initialize wrybridge exception.

        Parameters
        ----------
        message : str
            Human-readable error message.
        **context : Any
            Additional context (command, path, template, etc.).
        """
        super().__init__(message)
        self.message = message
        self.context = context

    def __str__(self) -> str:
        """Format exception with context."""
        if self.context:
            ctx = ", ".join(f"{k}={v!r}" for k, v in self.context.items())
            return f"{self.message} ({ctx})"
        return self.message


class BridgeRequestError(WryBridgeException):
    """A request could not be answered successfully.

    Subclasses fix the status code. ``to_response`` renders the error as a
    plain-text response carrying the bridge headers.
    """

    status_code: HTTPStatus = HTTPStatus.INTERNAL_SERVER_ERROR

    def to_response(self) -> Response:
        """Convert the error into its HTTP-shaped response."""
        return error_response(self.status_code, self.message)


class DecodeError(BridgeRequestError):
    """Request body does not decode as the command's input type."""

    status_code = HTTPStatus.BAD_REQUEST

    def __init__(self, message: str, command: str | None = None, **context: Any) -> None:
        """Initialize decode error.

        Parameters
        ----------
        message : str
            The decoder's description of the failure.
        command : str, optional
            The command whose input failed to decode.
        **context : Any
            Additional context.
        """
        super().__init__(message, command=command, **context)
        self.command = command


class HandlerError(BridgeRequestError):
    """The invoked command returned a domain error."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, command: str | None = None, **context: Any) -> None:
        """Initialize handler error.

        Parameters
        ----------
        message : str
            The command's error description.
        command : str, optional
            The command that failed.
        **context : Any
            Additional context.
        """
        super().__init__(message, command=command, **context)
        self.command = command


class EncodeError(BridgeRequestError):
    """The command's successful output could not be serialized."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR

    def __init__(self, message: str, command: str | None = None, **context: Any) -> None:
        """Initialize encode error.

        Parameters
        ----------
        message : str
            The encoder's description of the failure.
        command : str, optional
            The command whose output failed to encode.
        **context : Any
            Additional context.
        """
        super().__init__(message, command=command, **context)
        self.command = command


class NotFoundError(BridgeRequestError):
    """Path matches neither a static asset nor a registered command."""

    status_code = HTTPStatus.NOT_FOUND

    def __init__(self, message: str = "page not found", path: str | None = None) -> None:
        super().__init__(message, path=path)
        self.path = path


class UnsupportedAssetError(BridgeRequestError):
    """Static path resolves to a file with an unrecognized extension."""

    status_code = HTTPStatus.NOT_IMPLEMENTED

    def __init__(
        self,
        message: str = "not yet implemented for the ext of the path",
        path: str | None = None,
    ) -> None:
        super().__init__(message, path=path)
        self.path = path


class CommandError(WryBridgeException):
    """Raised by command functions to report a domain error.

    Any exception raised by a command becomes a 500 response; this class
    exists so command authors can raise something more descriptive than
    ``RuntimeError`` without importing a transport-level error.
    """


class ConstructionError(WryBridgeException):
    """Building the bridge for a view failed.

    Fatal to view construction and never recovered per request.
    """


class TemplateRenderError(ConstructionError):
    """An initialization script template could not be rendered."""

    def __init__(self, message: str, template: str | None = None, **context: Any) -> None:
        """Initialize template error.

        Parameters
        ----------
        message : str
            Human-readable error message.
        template : str, optional
            Name of the template that failed.
        **context : Any
            Additional context.
        """
        super().__init__(message, template=template, **context)
        self.template = template


class WindowHandleError(ConstructionError):
    """The native window handle could not be acquired."""


class DuplicateCommandError(ConstructionError):
    """A strict registry was given two commands with the same name."""

    def __init__(self, message: str, names: list[str]) -> None:
        super().__init__(message, names=names)
        self.names = names
