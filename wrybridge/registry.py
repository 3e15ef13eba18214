"""Command registry: the immutable ``name -> handler`` table of a view."""

from __future__ import annotations

import inspect

from collections.abc import Callable, Iterable, Iterator, Mapping
from types import MappingProxyType
from typing import Any

from .codec import Command, Handler, _type_hints
from .exceptions import DuplicateCommandError
from .log import debug, warn
from .models import Request


# (name, handler) pair as produced by api_handler / api_handlers
HandlerEntry = tuple[str, Handler]


class RawHandler:
    """A handler already in ``(Request) -> Response`` form, passed through unchanged."""

    def __init__(self, func: Handler, name: str | None = None) -> None:
        self.func = func
        self.name = name or func.__name__

    def __call__(self, request: Request) -> Any:
        return self.func(request)

    def __repr__(self) -> str:
        return f"RawHandler({self.name!r})"


def raw_handler(func: Handler | None = None, *, name: str | None = None) -> Any:
    """Mark a ``(Request) -> Response`` function as a pass-through handler."""
    if func is None:
        return lambda f: RawHandler(f, name=name)
    return RawHandler(func, name=name)


def _takes_request(func: Callable[..., Any]) -> bool:
    params = list(inspect.signature(func).parameters.values())
    if not params:
        return False
    return _type_hints(func).get(params[0].name) is Request


def as_handler(func: Callable[..., Any], name: str | None = None) -> Command[Any, Any] | RawHandler:
    """Normalise a function into a uniform handler.

    ``Command`` and ``RawHandler`` instances are returned as is (renamed
    when ``name`` is given). A function whose first parameter is annotated
    ``Request`` is treated as raw; anything else is wrapped in a
    ``Command``.
    """
    if isinstance(func, Command):
        return func if name is None or name == func.name else Command(func.func, name=name)
    if isinstance(func, RawHandler):
        return func if name is None or name == func.name else RawHandler(func.func, name=name)
    if _takes_request(func):
        return RawHandler(func, name=name)
    return Command(func, name=name)


def api_handler(func: Callable[..., Any], name: str | None = None) -> HandlerEntry:
    """Wrap one function into a ``(name, handler)`` pair.

    The public name is the function's declared name unless ``name`` is
    given.
    """
    handler = as_handler(func, name)
    return handler.name, handler


def api_handlers(*funcs: Callable[..., Any]) -> list[HandlerEntry]:
    """Wrap several functions uniformly, keeping their order."""
    return [api_handler(f) for f in funcs]


class CommandRegistry(Mapping[str, Handler]):
    """Read-only mapping from command name to handler.

    Built once by :class:`RegistryBuilder` and shared between concurrent
    requests without locking.
    """

    def __init__(self, entries: Iterable[HandlerEntry] = ()) -> None:
        table: dict[str, Handler] = {}
        for name, handler in entries:
            table[name] = handler
        self._table = MappingProxyType(table)

    def __getitem__(self, name: str) -> Handler:
        return self._table[name]

    def __iter__(self) -> Iterator[str]:
        return iter(self._table)

    def __len__(self) -> int:
        return len(self._table)

    def __repr__(self) -> str:
        return f"CommandRegistry({list(self._table)!r})"

    def lookup(self, path: str) -> Handler | None:
        """Find the handler for a request path (leading ``/`` ignored)."""
        return self._table.get(path.lstrip("/"))


class RegistryBuilder:
    """Collects commands and builds an immutable :class:`CommandRegistry`.

    Name collisions are resolved when the registry is built: by default
    the last registration wins and a warning is logged; in strict mode
    :class:`~wrybridge.exceptions.DuplicateCommandError` is raised.

    Examples
    --------
    >>> builder = RegistryBuilder()
    >>> @builder.command
    ... def ping() -> str:
    ...     return "pong"
    >>> registry = builder.build()
    >>> "ping" in registry
    True
    """

    def __init__(self) -> None:
        self._entries: list[HandlerEntry] = []

    def __len__(self) -> int:
        return len(self._entries)

    def add(self, func: Callable[..., Any], name: str | None = None) -> RegistryBuilder:
        """Register one function, typed or raw."""
        self._entries.append(api_handler(func, name))
        return self

    def add_entry(self, entry: HandlerEntry) -> RegistryBuilder:
        """Register a ``(name, handler)`` pair as produced by :func:`api_handler`."""
        name, handler = entry
        self._entries.append((name, handler))
        return self

    def extend(self, entries: Iterable[HandlerEntry | Callable[..., Any]]) -> RegistryBuilder:
        """Register pairs or functions in order."""
        for entry in entries:
            if isinstance(entry, tuple):
                self.add_entry(entry)
            else:
                self.add(entry)
        return self

    def command(self, func: Callable[..., Any] | None = None, *, name: str | None = None) -> Any:
        """Decorator registering a function and returning it unchanged."""

        def decorator(f: Callable[..., Any]) -> Callable[..., Any]:
            self.add(f, name)
            return f

        if func is None:
            return decorator
        return decorator(func)

    def duplicates(self) -> list[str]:
        """Names registered more than once, in first-seen order."""
        seen: set[str] = set()
        dupes: list[str] = []
        for name, _ in self._entries:
            if name in seen and name not in dupes:
                dupes.append(name)
            seen.add(name)
        return dupes

    def build(self, strict: bool | None = None) -> CommandRegistry:
        """Build the registry.

        Parameters
        ----------
        strict : bool or None, optional
            Reject duplicate names. None reads ``registry.strict`` from
            the settings.

        Returns
        -------
        CommandRegistry
            The immutable registry.

        Raises
        ------
        DuplicateCommandError
            In strict mode, if any name was registered more than once.
        """
        if strict is None:
            from .config import get_settings

            strict = get_settings().registry.strict

        dupes = self.duplicates()
        if dupes:
            if strict:
                raise DuplicateCommandError(
                    f"Duplicate command names: {', '.join(dupes)}", names=dupes
                )
            for name in dupes:
                warn(f"Command '{name}' registered more than once; the last registration wins")

        registry = CommandRegistry(self._entries)
        debug(f"Built command registry with {len(registry)} commands: {list(registry)}")
        return registry
