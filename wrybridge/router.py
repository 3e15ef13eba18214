"""Protocol router for the bridge's custom scheme."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

from .log import debug, exception, warn
from .models import Request, Response
from .registry import CommandRegistry
from .responses import internal_server_error, not_found, preflight
from .static import StaticAssetResolver


# Callback receiving the response of an asynchronously handled request
Responder = Callable[[Response], None]


class ProtocolRouter:
    """Routes custom-scheme requests to static assets or commands.

    Holds no per-request state: the registry is immutable and the static
    root is resolved once here, so one router can serve concurrent
    requests.

    Routing, per request:

    1. Requests for another origin get 404.
    2. ``OPTIONS`` requests get a CORS preflight answer.
    3. If a static root is configured and the path resolves to an existing
       file under it, the static resolver answers (200 or 501).
    4. Otherwise the path without its leading ``/`` is looked up in the
       registry; unknown names get 404.

    Any unexpected failure becomes a 500 response.
    """

    def __init__(
        self,
        registry: CommandRegistry | None = None,
        static_root: str | Path | None = None,
        scheme: str = "wry",
        host: str = "localhost",
        index: str = "index.html",
    ) -> None:
        """Initialize the router.

        Parameters
        ----------
        registry : CommandRegistry or None, optional
            Commands to dispatch to. An empty registry when None.
        static_root : str, Path or None, optional
            Directory to serve static assets from. Static serving is off
            when None.
        scheme : str, optional
            Custom URL scheme of the bridge origin.
        host : str, optional
            Host of the bridge origin.
        index : str, optional
            Document served for ``/``.
        """
        self.registry = registry if registry is not None else CommandRegistry()
        self.static = StaticAssetResolver(static_root, index=index) if static_root else None
        self.scheme = scheme.lower()
        self.host = host.lower()

    @property
    def origin(self) -> str:
        """The bridge origin, e.g. ``wry://localhost``."""
        return f"{self.scheme}://{self.host}"

    def matches(self, request: Request) -> bool:
        """Check whether a request targets the bridge origin.

        ``http(s)://<scheme>.localhost`` is accepted too; that is how
        custom schemes appear on Windows renderers.
        """
        scheme = request.scheme.lower()
        host = request.host.lower()
        if scheme == self.scheme and host == self.host:
            return True
        return scheme in ("http", "https") and host == f"{self.scheme}.{self.host}"

    def handle(self, request: Request) -> Response:
        """Answer a request. Never raises.

        Parameters
        ----------
        request : Request
            The intercepted request.

        Returns
        -------
        Response
            The response to hand back to the renderer.
        """
        try:
            return self._route(request)
        except Exception as e:
            exception(f"Unhandled error routing {request.method} {request.uri}: {e}")
            return internal_server_error(e)

    def handle_async(self, request: Request, responder: Responder) -> None:
        """Answer a request through a responder callback.

        Mirrors renderers whose custom-protocol hook hands over a responder
        instead of waiting for a return value. The responder is called
        exactly once.
        """
        responder(self.handle(request))

    def __call__(self, request: Request) -> Response:
        return self.handle(request)

    def _route(self, request: Request) -> Response:
        path = request.path
        debug(f"[Router] {request.method} {request.scheme}://{request.host}{path}")

        if not self.matches(request):
            warn(f"Request for foreign origin rejected: {request.uri}")
            return not_found()

        if request.method.upper() == "OPTIONS":
            return preflight()

        if self.static is not None and self.static.locate(path) is not None:
            return self.static.resolve(path)

        handler = self.registry.lookup(path)
        if handler is None:
            debug(f"[Router] no command or asset for {path!r}")
            return not_found("not found")
        return handler(request)
