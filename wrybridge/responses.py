"""Response construction and the bridge's transport header conventions."""

from __future__ import annotations

from http import HTTPStatus

from .models import Response


ACCESS_CONTROL_ALLOW_ORIGIN = "Access-Control-Allow-Origin"
ACCESS_CONTROL_EXPOSE_HEADERS = "Access-Control-Expose-Headers"
ACCESS_CONTROL_ALLOW_HEADERS = "Access-Control-Allow-Headers"
ACCESS_CONTROL_ALLOW_METHODS = "Access-Control-Allow-Methods"
CONTENT_TYPE = "Content-Type"

# Client script checks this header to tell bridge replies from network replies
BRIDGE_RESPONSE_HEADER = "X-Bridge-Response"
BRIDGE_RESPONSE_OK = "ok"

# Sent by the client script on every invoke request
INVOKE_KEY_HEADER = "X-Bridge-Invoke-Key"

APPLICATION_JSON = "application/json"
TEXT_PLAIN = "text/plain"


def bridge_headers() -> list[tuple[str, str]]:
    """Headers present on every bridge response, in order."""
    return [
        (ACCESS_CONTROL_ALLOW_ORIGIN, "*"),
        (ACCESS_CONTROL_EXPOSE_HEADERS, BRIDGE_RESPONSE_HEADER),
        (BRIDGE_RESPONSE_HEADER, BRIDGE_RESPONSE_OK),
    ]


def response_builder(
    status_code: int,
    body: bytes = b"",
    content_type: str | None = None,
) -> Response:
    """Build a response carrying the bridge headers.

    Parameters
    ----------
    status_code : int
        HTTP status code.
    body : bytes, optional
        Raw response body.
    content_type : str or None, optional
        Value for the Content-Type header, omitted when None.

    Returns
    -------
    Response
        The response.
    """
    headers = bridge_headers()
    if content_type is not None:
        headers.append((CONTENT_TYPE, content_type))
    return Response(status_code=int(status_code), headers=headers, body=body)


def error_response(status_code: int, message: object) -> Response:
    """Build a plain-text error response."""
    return response_builder(status_code, str(message).encode("utf-8"), TEXT_PLAIN)


def bad_request(message: object) -> Response:
    """400 with the decode error as text."""
    return error_response(HTTPStatus.BAD_REQUEST, message)


def internal_server_error(message: object) -> Response:
    """500 with the failure as text."""
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, message)


def not_found(message: object = "page not found") -> Response:
    """404 for unknown commands and unresolvable paths."""
    return error_response(HTTPStatus.NOT_FOUND, message)


def not_implemented(message: object = "not yet implemented for the ext of the path") -> Response:
    """501 for static files with an unrecognized extension."""
    return error_response(HTTPStatus.NOT_IMPLEMENTED, message)


def preflight() -> Response:
    """200 answer to a CORS preflight request."""
    response = response_builder(HTTPStatus.OK)
    response.headers.extend(
        [
            (ACCESS_CONTROL_ALLOW_HEADERS, "*"),
            (ACCESS_CONTROL_ALLOW_METHODS, "POST, GET, OPTIONS"),
        ]
    )
    return response
