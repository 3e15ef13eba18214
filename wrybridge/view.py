"""View assembly: attaches the router and scripts to a concrete webview.

The renderer itself is an external collaborator described by the
:class:`WebViewBuilder` protocol (wry/pytauri style builders fit it). This
module only decides what gets registered on it and in which order.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

from .config import BridgeSettings, get_settings
from .exceptions import ConstructionError, WindowHandleError
from .log import debug
from .models import InitializationScript, Request, ScriptContext
from .registry import HandlerEntry, RegistryBuilder
from .router import ProtocolRouter, Responder
from .scripts import prepare_scripts


# Custom protocol callback: (webview_id, request, responder)
ProtocolHandler = Callable[[str, Request, Responder], None]


class WebViewBuilder(Protocol):
    """The subset of a native webview builder the bridge needs."""

    def with_id(self, webview_id: str) -> WebViewBuilder: ...

    def with_url(self, url: str) -> WebViewBuilder: ...

    def with_custom_protocol(self, scheme: str, handler: ProtocolHandler) -> WebViewBuilder: ...

    def with_initialization_script(
        self, script: str, main_frame_only: bool
    ) -> WebViewBuilder: ...

    def build_as_child(self, window_handle: Any) -> Any: ...


class HasWindowHandle(Protocol):
    """A native window able to hand out its raw handle."""

    def window_handle(self) -> Any: ...


@dataclass
class BridgeView:
    """A constructed view together with its bridge."""

    webview: Any
    router: ProtocolRouter
    scripts: list[InitializationScript] = field(default_factory=list)


class BridgeBuilder:
    """Builds a webview with the bridge protocol and scripts attached.

    Examples
    --------
    >>> view = (
    ...     BridgeBuilder(native_builder)
    ...     .with_webview_id("greet")
    ...     .serve_static("dist")
    ...     .serve_api(api_handler(greet))
    ...     .build_as_child(window)
    ... )  # doctest: +SKIP
    """

    def __init__(
        self,
        builder: WebViewBuilder,
        settings: BridgeSettings | None = None,
    ) -> None:
        """Initialize the builder.

        Parameters
        ----------
        builder : WebViewBuilder
            The native webview builder to configure.
        settings : BridgeSettings or None, optional
            Settings to read; the cached global settings when None.
        """
        self._builder = builder
        self._settings = settings if settings is not None else get_settings()
        self._webview_id = ""
        self._window_label: str | None = None
        self._context: ScriptContext | None = None
        self._static_root: Path | None = None
        self._commands = RegistryBuilder()
        if self._settings.static.root:
            self._static_root = Path(self._settings.static.root)

    def with_webview_id(self, webview_id: str) -> BridgeBuilder:
        """Set the view id, also used as the view label in scripts."""
        self._webview_id = webview_id
        return self

    def with_window_label(self, label: str) -> BridgeBuilder:
        """Set the label of the hosting window injected into metadata."""
        self._window_label = label
        return self

    def with_context(self, context: ScriptContext) -> BridgeBuilder:
        """Use an explicit script context instead of one built from settings."""
        self._context = context
        return self

    def apply(self, f: Callable[[WebViewBuilder], WebViewBuilder]) -> BridgeBuilder:
        """Apply an arbitrary transformation to the native builder."""
        self._builder = f(self._builder)
        return self

    def serve_static(self, static_root: str | Path) -> BridgeBuilder:
        """Serve files under ``static_root`` and navigate to the bridge origin."""
        self._static_root = Path(static_root)
        return self

    def serve_api(self, entry: HandlerEntry | Callable[..., Any]) -> BridgeBuilder:
        """Register one command (a ``(name, handler)`` pair or a function)."""
        self._commands.extend([entry])
        return self

    def serve_apis(self, entries: Iterable[HandlerEntry | Callable[..., Any]]) -> BridgeBuilder:
        """Register several commands in order."""
        self._commands.extend(entries)
        return self

    def script_context(self) -> ScriptContext:
        """The context the initialization scripts are rendered with."""
        if self._context is not None:
            return self._context
        return ScriptContext.from_settings(
            window_label=self._window_label or f"{self._webview_id}-window",
            webview_label=self._webview_id,
            settings=self._settings,
        )

    def build_router(self) -> ProtocolRouter:
        """Build the router serving this view."""
        protocol = self._settings.protocol
        return ProtocolRouter(
            registry=self._commands.build(strict=self._settings.registry.strict),
            static_root=self._static_root,
            scheme=protocol.scheme,
            host=protocol.host,
            index=self._settings.static.index,
        )

    def build_as_child(self, window: HasWindowHandle) -> BridgeView:
        """Build the webview as a child of ``window``.

        Raises
        ------
        ConstructionError
            If no webview id was set or the registry is invalid.
        WindowHandleError
            If the window handle cannot be acquired.
        TemplateRenderError
            If the initialization scripts cannot be rendered.
        """
        if not self._webview_id:
            raise ConstructionError("A webview id is required to build the bridge")

        router = self.build_router()
        scripts = prepare_scripts(self.script_context())

        try:
            window_handle = window.window_handle()
        except Exception as e:
            raise WindowHandleError(
                f"Failed to acquire window handle: {e}", webview_id=self._webview_id
            ) from e

        def protocol_handler(_webview_id: str, request: Request, responder: Responder) -> None:
            router.handle_async(request, responder)

        builder = self._builder.with_custom_protocol(router.scheme, protocol_handler)
        if router.static is not None:
            builder = builder.with_url(router.origin)
        for script in scripts:
            builder = builder.with_initialization_script(script.script, script.for_main_frame_only)
        webview = builder.with_id(self._webview_id).build_as_child(window_handle)

        debug(
            f"Built webview '{self._webview_id}' with {len(router.registry)} commands, "
            f"static root {router.static.root if router.static else None}"
        )
        return BridgeView(webview=webview, router=router, scripts=scripts)
