"""wrybridge - request/response bridge between native Python and webview content.

Lets JavaScript running in an embedded webview invoke Python functions over
a custom URL scheme and receive typed results, serves bundled static
assets on the same origin, and renders the initialization scripts that set
up the client half of the bridge before any page script runs.
"""

from .codec import Command, command
from .config import (
    BridgeSettings,
    LogSettings,
    ProtocolSettings,
    RegistrySettings,
    ScriptSettings,
    StaticSettings,
    get_settings,
    reload_settings,
)
from .exceptions import (
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
from .models import (
    FreezePrototype,
    InitializationScript,
    Request,
    Response,
    ScriptContext,
)
from .registry import (
    CommandRegistry,
    RawHandler,
    RegistryBuilder,
    api_handler,
    api_handlers,
    raw_handler,
)
from .router import ProtocolRouter
from .scripts import prepare_scripts
from .static import StaticAssetResolver
from .view import BridgeBuilder, BridgeView


__version__ = "0.1.0"

__all__ = [
    "BridgeBuilder",
    "BridgeRequestError",
    "BridgeSettings",
    "BridgeView",
    "Command",
    "CommandError",
    "CommandRegistry",
    "ConstructionError",
    "DecodeError",
    "DuplicateCommandError",
    "EncodeError",
    "FreezePrototype",
    "HandlerError",
    "InitializationScript",
    "LogSettings",
    "NotFoundError",
    "ProtocolRouter",
    "ProtocolSettings",
    "RawHandler",
    "RegistryBuilder",
    "RegistrySettings",
    "Request",
    "Response",
    "ScriptContext",
    "ScriptSettings",
    "StaticAssetResolver",
    "StaticSettings",
    "TemplateRenderError",
    "UnsupportedAssetError",
    "WindowHandleError",
    "WryBridgeException",
    "__version__",
    "api_handler",
    "api_handlers",
    "command",
    "get_settings",
    "prepare_scripts",
    "raw_handler",
    "reload_settings",
]
