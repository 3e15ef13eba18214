"""Command codec: wraps typed functions into uniform request handlers.

A command is an ordinary function whose parameters describe the decoded
request body and whose return value becomes the response body::

    class Namer(BaseModel):
        name: str

    @command
    def greet(namer: Namer) -> str:
        return f"Hello, {namer.name}!"

Raising an exception is the error path: the message becomes a 500
plain-text body. Decoding and encoding use pydantic ``TypeAdapter``.
"""

from __future__ import annotations

import inspect
import json
import typing

from collections.abc import Callable
from http import HTTPStatus
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, TypeAdapter, ValidationError, create_model
from pydantic_core import PydanticSerializationError

from .exceptions import BridgeRequestError, DecodeError, EncodeError, HandlerError
from .log import debug, redact_sensitive_data, warn
from .models import Request, Response
from .responses import APPLICATION_JSON, TEXT_PLAIN, response_builder


D = TypeVar("D")
S = TypeVar("S")

# Uniform handler interface every registry entry exposes
Handler = Callable[[Request], Response]

_ANY_JSON: TypeAdapter[Any] = TypeAdapter(Any)


def _type_hints(func: Callable[..., Any]) -> dict[str, Any]:
    try:
        return typing.get_type_hints(func)
    except (NameError, TypeError):
        # Unresolvable forward references fall back to Any
        return {}


def _describe(exc: BaseException) -> str:
    text = str(exc)
    return text if text else type(exc).__name__


def _loggable(value: Any) -> Any:
    if isinstance(value, BaseModel):
        return value.model_dump(mode="json")
    return value


def is_json(payload: bytes) -> bool:
    """Check whether encoded bytes are valid JSON text."""
    try:
        json.loads(payload)
    except (ValueError, UnicodeDecodeError):
        return False
    return True


class Command(Generic[D, S]):
    """Adapter turning ``func(D) -> S`` into ``(Request) -> Response``.

    Parameters
    ----------
    func : Callable
        The command implementation.
    name : str or None, optional
        Public command name; defaults to ``func.__name__``.
    """

    def __init__(self, func: Callable[..., S], name: str | None = None) -> None:
        self.func = func
        self.name = name or func.__name__
        self.__doc__ = func.__doc__

        hints = _type_hints(func)
        params = [
            p
            for p in inspect.signature(func).parameters.values()
            if p.kind in (p.POSITIONAL_ONLY, p.POSITIONAL_OR_KEYWORD, p.KEYWORD_ONLY)
        ]
        self._params = params
        self._input_adapter: TypeAdapter[Any] | None = None
        self._input_model: type[BaseModel] | None = None

        if len(params) == 1:
            self._input_adapter = TypeAdapter(hints.get(params[0].name, Any))
        elif len(params) > 1:
            fields: dict[str, Any] = {}
            for p in params:
                default = ... if p.default is inspect.Parameter.empty else p.default
                fields[p.name] = (hints.get(p.name, Any), default)
            self._input_model = create_model(f"{self.name}_args", **fields)

        self._output_adapter: TypeAdapter[Any] = TypeAdapter(hints.get("return", Any))

    def __repr__(self) -> str:
        return f"Command({self.name!r})"

    def decode(self, body: bytes) -> tuple[tuple[Any, ...], dict[str, Any]]:
        """Decode a request body into call arguments.

        Raises
        ------
        DecodeError
            If the body is not valid JSON for the input type.
        """
        try:
            if self._input_adapter is not None:
                param = self._params[0]
                value = self._input_adapter.validate_json(body)
                if param.kind is param.KEYWORD_ONLY:
                    return (), {param.name: value}
                return (value,), {}
            if self._input_model is not None:
                model = self._input_model.model_validate_json(body)
                return (), {p.name: getattr(model, p.name) for p in self._params}
            if body.strip():
                # No parameters, but the body must still be JSON
                _ANY_JSON.validate_json(body)
        except ValidationError as e:
            raise DecodeError(str(e), command=self.name) from e
        return (), {}

    def encode(self, output: S) -> bytes:
        """Encode a command result.

        ``bytes`` results are passed through unchanged.

        Raises
        ------
        EncodeError
            If the value cannot be serialized.
        """
        if isinstance(output, bytes):
            return output
        try:
            return self._output_adapter.dump_json(output)
        except (PydanticSerializationError, TypeError, ValueError) as e:
            raise EncodeError(_describe(e), command=self.name) from e

    def invoke(self, request: Request) -> bytes:
        """Decode, call and encode, raising on any failure.

        Raises
        ------
        DecodeError, HandlerError, EncodeError
            Mapped to 400, 500 and 500 by ``__call__``.
        """
        args, kwargs = self.decode(request.body)
        if kwargs:
            shown: Any = {k: _loggable(v) for k, v in kwargs.items()}
        else:
            shown = [_loggable(a) for a in args]
        debug(f"[Command] {self.name} args={redact_sensitive_data(shown)}")

        try:
            output = self.func(*args, **kwargs)
        except Exception as e:
            warn(f"Command '{self.name}' failed: {_describe(e)}")
            raise HandlerError(_describe(e), command=self.name) from e

        return self.encode(output)

    def __call__(self, request: Request) -> Response:
        """Handle a request. Never raises."""
        try:
            payload = self.invoke(request)
        except BridgeRequestError as e:
            return e.to_response()

        content_type = APPLICATION_JSON if is_json(payload) else TEXT_PLAIN
        return response_builder(HTTPStatus.OK, payload, content_type)


def command(
    func: Callable[..., Any] | None = None, *, name: str | None = None
) -> Any:
    """Wrap a function as a :class:`Command`.

    Usable bare (``@command``), with a name (``@command(name="x")``), or
    as a plain call (``command(func)``).
    """
    if func is None:
        return lambda f: Command(f, name=name)
    return Command(func, name=name)
