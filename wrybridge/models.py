"""Pydantic models for the bridge's requests, responses and scripts."""

from __future__ import annotations

import json
import sys

from enum import Enum
from typing import TYPE_CHECKING, Any, Literal
from urllib.parse import unquote, urlsplit

from pydantic import BaseModel, ConfigDict, Field, model_validator


if TYPE_CHECKING:
    from .config import BridgeSettings


# Global object the core script defines on window
BRIDGE_GLOBAL = "__WRYBRIDGE_INTERNALS__"


def current_os_name() -> str:
    """Normalised name of the running OS, as used by the client scripts."""
    platform = sys.platform
    if platform.startswith("win"):
        return "windows"
    if platform == "darwin":
        return "macos"
    if platform.startswith("linux"):
        return "linux"
    if platform.startswith("freebsd"):
        return "freebsd"
    return platform


class Request(BaseModel):
    """A request issued by content script against the bridge scheme.

    Only ``path`` (the routing key) and ``body`` (the payload) are
    interpreted; everything else is carried for logging.
    """

    method: str = "POST"
    uri: str
    headers: list[tuple[str, str]] = Field(default_factory=list)
    body: bytes = b""

    @property
    def scheme(self) -> str:
        return urlsplit(self.uri).scheme

    @property
    def host(self) -> str:
        return urlsplit(self.uri).hostname or ""

    @property
    def path(self) -> str:
        """Percent-decoded URL path, ``/`` when empty."""
        return unquote(urlsplit(self.uri).path) or "/"

    def header(self, name: str) -> str | None:
        """Return the first header value matching ``name`` (case-insensitive)."""
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None


class Response(BaseModel):
    """The bridge's answer to a single request.

    Headers form an ordered multimap: a list of ``(name, value)`` pairs.
    """

    status_code: int
    headers: list[tuple[str, str]] = Field(default_factory=list)
    body: bytes = b""

    def header(self, name: str) -> str | None:
        """Return the first header value matching ``name`` (case-insensitive)."""
        lowered = name.lower()
        for key, value in self.headers:
            if key.lower() == lowered:
                return value
        return None

    def header_values(self, name: str) -> list[str]:
        """Return every value stored under ``name`` in insertion order."""
        lowered = name.lower()
        return [value for key, value in self.headers if key.lower() == lowered]

    @property
    def content_type(self) -> str | None:
        return self.header("Content-Type")

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")

    def json_body(self) -> Any:
        """Decode the body as JSON."""
        return json.loads(self.body)


class InitializationScript(BaseModel):
    """A script injected into the view before any page script runs."""

    model_config = ConfigDict(frozen=True)

    script: str
    for_main_frame_only: bool = True

    @classmethod
    def main_frame_script(cls, script: str) -> InitializationScript:
        """Create a script injected into the top-level frame only."""
        return cls(script=script, for_main_frame_only=True)


class FreezePrototype(str, Enum):
    """Whether the freeze-prototype snippet is included in the core script."""

    ENABLED = "enabled"
    DISABLED = "disabled"


class ScriptContext(BaseModel):
    """Per-view parameters rendered into the initialization scripts.

    The labels only need to be descriptive, not globally unique. The two
    listener identifiers become window globals; they must differ from each
    other and from the bridge global for the whole lifetime of the page.
    """

    model_config = ConfigDict(frozen=True)

    window_label: str
    webview_label: str
    os_name: str = Field(default_factory=current_os_name)
    scheme: str = "wry"
    host: str = "localhost"
    protocol_scheme: Literal["http", "https"] = "http"
    invoke_key: str = "wrybridge"
    fetch_channel_data_command: str = "plugin:__CHANNEL__|fetch"
    listeners_object_id: str = "__wrybridge_unstable_listeners_object_id__"
    listeners_function_id: str = "__wrybridge_unstable_listeners_function_id__"
    freeze_prototype: FreezePrototype = FreezePrototype.DISABLED

    @model_validator(mode="after")
    def _check_global_names(self) -> ScriptContext:
        names = [self.listeners_object_id, self.listeners_function_id, BRIDGE_GLOBAL]
        if len(set(names)) != len(names):
            msg = (
                "listeners_object_id, listeners_function_id and the bridge global "
                f"must be distinct, got {names}"
            )
            raise ValueError(msg)
        return self

    @classmethod
    def from_settings(
        cls,
        window_label: str,
        webview_label: str,
        settings: BridgeSettings | None = None,
        **overrides: Any,
    ) -> ScriptContext:
        """Build a context from the ``[protocol]`` and ``[scripts]`` settings.

        Parameters
        ----------
        window_label : str
            Label of the hosting window.
        webview_label : str
            Label of the view.
        settings : BridgeSettings or None, optional
            Settings to read; the cached global settings when None.
        **overrides : Any
            Field values taking precedence over settings.

        Returns
        -------
        ScriptContext
            The context.
        """
        if settings is None:
            from .config import get_settings

            settings = get_settings()

        values: dict[str, Any] = {
            "window_label": window_label,
            "webview_label": webview_label,
            "scheme": settings.protocol.scheme,
            "host": settings.protocol.host,
            "protocol_scheme": settings.protocol.protocol_scheme,
            "invoke_key": settings.scripts.invoke_key,
            "fetch_channel_data_command": settings.scripts.fetch_channel_data_command,
            "listeners_object_id": settings.scripts.listeners_object_id,
            "listeners_function_id": settings.scripts.listeners_function_id,
            "freeze_prototype": settings.scripts.freeze_prototype,
        }
        values.update(overrides)
        return cls(**values)
