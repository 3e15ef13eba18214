"""Tests for the command codec.

Covers decoding, handler errors, encoding and the response conventions.
"""

from __future__ import annotations

import json
import logging

from typing import Any

import pytest

from pydantic import BaseModel

from tests.conftest import Echo, echo, fail, make_request
from wrybridge.codec import Command, command, is_json
from wrybridge.exceptions import CommandError, DecodeError, EncodeError, HandlerError
from wrybridge.log import get_logger
from wrybridge.responses import APPLICATION_JSON, BRIDGE_RESPONSE_HEADER, TEXT_PLAIN


class Namer(BaseModel):
    name: str


def greet(namer: Namer) -> str:
    return f"Hello, {namer.name}! You've been greeted from Python!"


def _assert_bridge_headers(response) -> None:
    assert response.header("Access-Control-Allow-Origin") == "*"
    assert response.header("Access-Control-Expose-Headers") == BRIDGE_RESPONSE_HEADER
    assert response.header(BRIDGE_RESPONSE_HEADER) == "ok"


class TestCommandConstruction:
    """Tests for building Command adapters."""

    def test_name_defaults_to_function_name(self):
        """Public name is the declared function name."""
        assert Command(greet).name == "greet"

    def test_explicit_name(self):
        """An explicit name overrides the function name."""
        assert Command(greet, name="hello").name == "hello"

    def test_decorator_forms(self):
        """command works bare and with a name."""

        @command
        def ping() -> str:
            return "pong"

        @command(name="renamed")
        def other() -> str:
            return "x"

        assert isinstance(ping, Command)
        assert ping.name == "ping"
        assert other.name == "renamed"

    def test_keeps_docstring(self):
        """Adapter exposes the wrapped function's docstring."""
        assert Command(echo).__doc__ == echo.__doc__


class TestSuccess:
    """Tests for the success path."""

    def test_echo_scenario(self):
        """POST {"value":"hi"} to echo returns the same JSON."""
        response = Command(echo)(make_request("/echo", b'{"value":"hi"}'))
        assert response.status_code == 200
        assert response.json_body() == {"value": "hi"}
        assert response.content_type == APPLICATION_JSON
        _assert_bridge_headers(response)

    def test_string_output_is_json(self):
        """A str result is JSON-encoded."""
        response = Command(greet)(make_request("/greet", b'{"name":"Ada"}'))
        assert response.status_code == 200
        assert response.json_body().startswith("Hello, Ada!")
        assert response.content_type == APPLICATION_JSON

    def test_bytes_output_passes_through(self):
        """bytes results are sent raw, typed by whether they parse as JSON."""

        def raw_text() -> bytes:
            return b"plain words"

        def raw_json() -> bytes:
            return b'{"a": 1}'

        text = Command(raw_text)(make_request("/raw_text"))
        assert text.body == b"plain words"
        assert text.content_type == TEXT_PLAIN

        js = Command(raw_json)(make_request("/raw_json"))
        assert js.content_type == APPLICATION_JSON

    def test_zero_argument_command_accepts_empty_or_json_body(self):
        """Commands without parameters ignore any well-formed body."""

        def version() -> dict[str, str]:
            return {"version": "1"}

        handler = Command(version)
        for body in (b"", b"null", b"{}", b'{"extra": 1}'):
            response = handler(make_request("/version", body))
            assert response.status_code == 200
            assert response.json_body() == {"version": "1"}

    @pytest.mark.parametrize("body", [b"not json", b"{not json", b"[1,"])
    def test_zero_argument_command_rejects_malformed_body(self, body):
        """A malformed body is a 400 even when there is nothing to decode."""

        def ping() -> str:
            return "pong"

        response = Command(ping)(make_request("/ping", body))
        assert response.status_code == 400
        assert response.content_type == TEXT_PLAIN

    def test_multiple_parameters_decode_from_object(self):
        """Several parameters are read from the keys of a JSON object."""

        def add(a: int, b: int = 10) -> int:
            return a + b

        handler = Command(add)
        assert handler(make_request("/add", b'{"a": 1, "b": 2}')).json_body() == 3
        assert handler(make_request("/add", b'{"a": 5}')).json_body() == 15

    def test_unannotated_parameter_accepts_any_json(self):
        """Missing annotations mean Any."""

        def identity(x):
            return x

        response = Command(identity)(make_request("/identity", b"[1, 2, 3]"))
        assert response.json_body() == [1, 2, 3]

    @pytest.mark.parametrize(
        "value",
        [{"value": ""}, {"value": "hi"}, {"value": "ünïcødé ✓"}, {"value": "a\"b\\c"}],
    )
    def test_decoded_input_equals_encoded_value(self, value: dict[str, Any]):
        """JSON-encoding a value and decoding it yields the original input."""
        seen = []

        def capture(x: Echo) -> None:
            seen.append(x)

        Command(capture)(make_request("/capture", json.dumps(value).encode()))
        assert seen == [Echo(**value)]


class TestDecodeFailure:
    """Tests for malformed request bodies."""

    @pytest.mark.parametrize("body", [b"", b"{", b"not json", b"[1,2", b'{"value": 1}', b"{}"])
    def test_malformed_body_is_400(self, body: bytes):
        """Anything that does not decode as the input type is a 400."""
        response = Command(echo)(make_request("/echo", body))
        assert response.status_code == 400
        assert response.content_type == TEXT_PLAIN
        assert response.text
        _assert_bridge_headers(response)

    def test_handler_not_called_on_decode_failure(self):
        """The function is not invoked when decoding fails."""
        calls = []

        def record(x: Echo) -> None:
            calls.append(x)

        Command(record)(make_request("/record", b"nope"))
        assert calls == []

    def test_decode_raises_decode_error(self):
        """decode reports failures as DecodeError."""
        with pytest.raises(DecodeError) as info:
            Command(echo).decode(b"nope")
        assert info.value.command == "echo"


class TestHandlerFailure:
    """Tests for commands that report errors."""

    def test_error_is_500_with_message(self):
        """A raised exception becomes a 500 with its message."""
        response = Command(fail)(make_request("/fail", b'{"value":"x"}'))
        assert response.status_code == 500
        assert response.text == "cannot handle x"
        assert response.content_type == TEXT_PLAIN
        _assert_bridge_headers(response)

    def test_empty_message_uses_exception_name(self):
        """The error body is never empty."""

        def broken() -> None:
            raise ValueError

        response = Command(broken)(make_request("/broken"))
        assert response.status_code == 500
        assert response.text == "ValueError"

    def test_command_error(self):
        """CommandError is reported like any other error."""

        def denied() -> None:
            raise CommandError("access denied")

        response = Command(denied)(make_request("/denied"))
        assert response.status_code == 500
        assert response.text == "access denied"

    def test_invoke_raises_handler_error(self):
        """invoke wraps command failures in HandlerError."""
        with pytest.raises(HandlerError):
            Command(fail).invoke(make_request("/fail", b'{"value":"x"}'))


class TestEncodeFailure:
    """Tests for outputs that cannot be serialized."""

    def test_unserializable_output_is_500(self):
        """An unserializable result is a 500, not a crash."""

        def opaque() -> Any:
            return object()

        response = Command(opaque)(make_request("/opaque"))
        assert response.status_code == 500
        assert response.content_type == TEXT_PLAIN
        assert response.text

    def test_encode_raises_encode_error(self):
        """encode reports failures as EncodeError."""

        def opaque() -> Any:
            return object()

        with pytest.raises(EncodeError):
            Command(opaque).encode(object())


class TestIsJson:
    """Tests for the content-type probe."""

    def test_valid(self):
        assert is_json(b'{"a": [1, 2]}')
        assert is_json(b'"text"')

    def test_invalid(self):
        assert not is_json(b"text")
        assert not is_json(b"\xff\xfe")


class Login(BaseModel):
    user: str
    password: str


class TestLogging:
    """Tests for what a command writes to the log."""

    @pytest.fixture(autouse=True)
    def _logger_ready(self):
        # First use sets the default level, so do it before raising it
        get_logger()

    def test_model_arguments_are_redacted(self, caplog):
        """Secrets inside a decoded model never reach the debug log."""

        def login(credentials: Login) -> str:
            return credentials.user

        with caplog.at_level(logging.DEBUG, logger="wrybridge"):
            response = Command(login)(
                make_request("/login", b'{"user": "ada", "password": "hunter2"}')
            )

        assert response.status_code == 200
        assert "hunter2" not in caplog.text
        assert "[REDACTED]" in caplog.text
        assert "ada" in caplog.text

    def test_keyword_arguments_are_redacted(self, caplog):
        def connect(host: str, token: str) -> str:
            return host

        with caplog.at_level(logging.DEBUG, logger="wrybridge"):
            Command(connect)(make_request("/connect", b'{"host": "h", "token": "s3cret"}'))

        assert "s3cret" not in caplog.text

    def test_command_failure_is_a_warning_without_traceback(self, caplog):
        """A failing command is ordinary request flow, not a crash."""
        with caplog.at_level(logging.DEBUG, logger="wrybridge"):
            Command(fail)(make_request("/fail", b'{"value":"x"}'))

        failures = [r for r in caplog.records if "failed" in r.getMessage()]
        assert len(failures) == 1
        assert failures[0].levelno == logging.WARNING
        assert failures[0].exc_info is None
