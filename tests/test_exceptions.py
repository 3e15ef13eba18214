"""Tests for wrybridge.exceptions.

Verifies the hierarchy, message formatting, context storage and the
conversion of request errors into responses.
"""

from __future__ import annotations

import pytest

from wrybridge.exceptions import (
    BridgeRequestError,
    CommandError,
    ConstructionError,
    DecodeError,
    DuplicateCommandError,
    EncodeError,
    HandlerError,
    NotFoundError,
    TemplateRenderError,
    UnsupportedAssetError,
    WindowHandleError,
    WryBridgeException,
)


class TestWryBridgeException:
    """Test base exception class behavior."""

    def test_message_only(self) -> None:
        exc = WryBridgeException("Something went wrong")
        assert exc.message == "Something went wrong"
        assert not exc.context
        assert str(exc) == "Something went wrong"

    def test_with_context(self) -> None:
        exc = WryBridgeException("Failed", command="echo", status=400)
        assert exc.context == {"command": "echo", "status": 400}
        assert "command='echo'" in str(exc)
        assert "status=400" in str(exc)

    def test_is_standard_exception(self) -> None:
        with pytest.raises(WryBridgeException):
            raise WryBridgeException("test")


class TestRequestErrors:
    """Tests for per-request errors and their responses."""

    @pytest.mark.parametrize(
        ("cls", "status"),
        [
            (DecodeError, 400),
            (HandlerError, 500),
            (EncodeError, 500),
            (NotFoundError, 404),
            (UnsupportedAssetError, 501),
        ],
    )
    def test_status_codes(self, cls, status) -> None:
        exc = cls("message")
        assert isinstance(exc, BridgeRequestError)
        response = exc.to_response()
        assert response.status_code == status
        assert response.text == "message"
        assert response.content_type == "text/plain"
        assert response.header("Access-Control-Allow-Origin") == "*"
        assert response.header("X-Bridge-Response") == "ok"

    def test_command_context(self) -> None:
        exc = DecodeError("bad json", command="echo")
        assert exc.command == "echo"
        assert "command='echo'" in str(exc)

    def test_default_messages(self) -> None:
        assert NotFoundError().to_response().text == "page not found"
        assert "not yet implemented" in UnsupportedAssetError().to_response().text

    def test_path_context(self) -> None:
        assert NotFoundError(path="/x").path == "/x"


class TestConstructionErrors:
    """Tests for errors that abort building a view."""

    @pytest.mark.parametrize(
        "cls", [TemplateRenderError, WindowHandleError, DuplicateCommandError]
    )
    def test_hierarchy(self, cls) -> None:
        assert issubclass(cls, ConstructionError)
        assert not issubclass(cls, BridgeRequestError)

    def test_template_name(self) -> None:
        exc = TemplateRenderError("bad", template="core.js")
        assert exc.template == "core.js"

    def test_duplicate_names(self) -> None:
        exc = DuplicateCommandError("dupes", names=["a", "b"])
        assert exc.names == ["a", "b"]

    def test_command_error_is_not_request_error(self) -> None:
        assert not issubclass(CommandError, BridgeRequestError)
