"""Initialization scripts establishing the client half of the bridge.

Scripts are rendered from the templates in ``frontend/scripts``. Two kinds
of placeholder are recognised:

- ``__TEMPLATE_<name>__`` is replaced by the JSON serialisation of a value,
  so strings arrive quoted and escaped.
- ``__RAW_<name>__`` is replaced verbatim and is used to nest one rendered
  script inside another.

Rendering is strict: a placeholder without a value, a value without a
placeholder, or a value that cannot be serialised raises
:class:`~wrybridge.exceptions.TemplateRenderError`.
"""

from __future__ import annotations

import json
import re

from collections.abc import Mapping
from functools import lru_cache
from pathlib import Path
from typing import Any

from .exceptions import TemplateRenderError
from .log import debug
from .models import FreezePrototype, InitializationScript, ScriptContext
from .responses import BRIDGE_RESPONSE_HEADER, BRIDGE_RESPONSE_OK, INVOKE_KEY_HEADER


SCRIPTS_DIR = Path(__file__).parent / "frontend" / "scripts"

_PLACEHOLDER = re.compile(r"__(TEMPLATE|RAW)_([a-z](?:[a-z0-9_]*[a-z0-9])?)__")

# The only pattern supported; isolation is not implemented
BROWNFIELD_PATTERN = {"pattern": "brownfield"}


@lru_cache(maxsize=16)
def load_template(name: str) -> str:
    """Read a bundled template.

    Raises
    ------
    TemplateRenderError
        If the template does not exist.
    """
    path = SCRIPTS_DIR / name
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise TemplateRenderError(f"Cannot read template: {e}", template=name) from e


def render_template(
    name: str,
    values: Mapping[str, Any] | None = None,
    raw: Mapping[str, str] | None = None,
) -> str:
    """Render a bundled template.

    Parameters
    ----------
    name : str
        Template file name under ``frontend/scripts``.
    values : Mapping or None, optional
        Values for ``__TEMPLATE_<name>__`` placeholders.
    raw : Mapping or None, optional
        Source text for ``__RAW_<name>__`` placeholders.

    Returns
    -------
    str
        The rendered script.

    Raises
    ------
    TemplateRenderError
        On missing, unused or unserialisable values.
    """
    values = dict(values or {})
    raw = dict(raw or {})

    encoded: dict[str, str] = {}
    for key, value in values.items():
        try:
            encoded[key] = json.dumps(value, sort_keys=True)
        except (TypeError, ValueError) as e:
            raise TemplateRenderError(
                f"Value for '{key}' is not JSON-serialisable: {e}", template=name
            ) from e

    source = load_template(name)
    used: set[tuple[str, str]] = set()
    missing: list[str] = []

    def substitute(match: re.Match[str]) -> str:
        kind, key = match.group(1), match.group(2)
        table = encoded if kind == "TEMPLATE" else raw
        if key not in table:
            missing.append(f"__{kind}_{key}__")
            return match.group(0)
        used.add((kind, key))
        return table[key]

    rendered = _PLACEHOLDER.sub(substitute, source)

    if missing:
        raise TemplateRenderError(
            f"No value for placeholder(s): {', '.join(missing)}", template=name
        )
    unused = sorted(
        [f"__TEMPLATE_{k}__" for k in encoded if ("TEMPLATE", k) not in used]
        + [f"__RAW_{k}__" for k in raw if ("RAW", k) not in used]
    )
    if unused:
        raise TemplateRenderError(
            f"Template has no placeholder(s): {', '.join(unused)}", template=name
        )
    return rendered


def event_initialization_script(function_name: str, listeners: str) -> str:
    """Build the event dispatch function.

    Defines ``window[function_name](eventData, ids)`` which runs every
    listener registered under ``window[listeners][eventData.event]`` whose
    id is in ``ids``.

    Parameters
    ----------
    function_name : str
        Global name of the dispatch function.
    listeners : str
        Global name of the listener registry object.

    Returns
    -------
    str
        The script source.
    """
    fn = json.dumps(function_name)
    registry = json.dumps(listeners)
    return f"""if (!Object.prototype.hasOwnProperty.call(window, {fn})) {{
    Object.defineProperty(window, {fn}, {{
      value: function (eventData, ids) {{
        const listeners = (window[{registry}] && window[{registry}][eventData.event]) || []
        for (const id of ids) {{
          const listener = listeners[id]
          if (listener) {{
            eventData.id = id
            window.__WRYBRIDGE_INTERNALS__.runCallback(listener.handlerId, eventData)
          }}
        }}
      }}
    }})
  }}
"""


def initialization_script(context: ScriptContext) -> str:
    """Render the core bridge script.

    Composes, in order: the optional freeze-prototype snippet, the pattern
    object, the core script (callbacks and ``invoke``), the ipc hook and
    the event dispatch function.
    """
    pattern_script = render_template("pattern.js", {"pattern": BROWNFIELD_PATTERN})
    core_script = render_template(
        "core.js",
        {
            "os_name": context.os_name,
            "scheme": context.scheme,
            "host": context.host,
            "protocol_scheme": context.protocol_scheme,
            "invoke_key": context.invoke_key,
        },
    )
    ipc_script = render_template("ipc.js")

    if context.freeze_prototype is FreezePrototype.ENABLED:
        freeze_prototype = load_template("freeze_prototype.js")
    else:
        freeze_prototype = ""

    return render_template(
        "init.js",
        raw={
            "freeze_prototype": freeze_prototype,
            "pattern_script": pattern_script,
            "core_script": core_script,
            "ipc_script": ipc_script,
            "event_initialization_script": event_initialization_script(
                context.listeners_function_id, context.listeners_object_id
            ),
        },
    )


def prepare_scripts(context: ScriptContext) -> list[InitializationScript]:
    """Render the ordered initialization scripts for one view.

    1. bridge presence flag and plugin registry
    2. window/view metadata
    3. core bridge (invoke transport and event dispatch)
    4. platform zoom hotkeys
    5. invoke protocol (fetch transport, channel command, invoke key)

    Every script is main-frame-only. Identical contexts render
    byte-identical scripts.

    Parameters
    ----------
    context : ScriptContext
        Per-view parameters.

    Returns
    -------
    list of InitializationScript
        The scripts, in injection order.

    Raises
    ------
    TemplateRenderError
        If any template fails to render.
    """
    sources = [
        render_template("bridge.js"),
        render_template(
            "metadata.js",
            {
                "window_label": context.window_label,
                "webview_label": context.webview_label,
            },
        ),
        initialization_script(context),
        render_template("zoom-hotkey.js", {"os_name": context.os_name}),
        render_template(
            "ipc-protocol.js",
            {
                "os_name": context.os_name,
                "fetch_channel_data_command": context.fetch_channel_data_command,
                "invoke_key": context.invoke_key,
                "invoke_key_header": INVOKE_KEY_HEADER,
                "response_header": BRIDGE_RESPONSE_HEADER,
                "response_ok": BRIDGE_RESPONSE_OK,
            },
            raw={"process_ipc_message_fn": load_template("process-ipc-message-fn.js").strip()},
        ),
    ]
    debug(
        f"Rendered {len(sources)} initialization scripts for "
        f"{context.window_label}/{context.webview_label} ({sum(map(len, sources))} chars)"
    )
    return [InitializationScript.main_frame_script(s) for s in sources]
