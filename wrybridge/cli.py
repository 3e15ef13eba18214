"""Command-line interface for wrybridge configuration and scripts."""

from __future__ import annotations

import argparse
import os
import sys

from pathlib import Path

from .config import BridgeSettings, _user_config_path
from .exceptions import ConstructionError
from .log import apply_log_settings, enable_debug


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="wrybridge",
        description="wrybridge configuration and development tools",
    )
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    config_parser = subparsers.add_parser("config", help="Show or export configuration")
    config_group = config_parser.add_mutually_exclusive_group()
    config_group.add_argument("--show", action="store_true", help="Show current configuration")
    config_group.add_argument("--toml", action="store_true", help="Export configuration as TOML")
    config_group.add_argument(
        "--env", action="store_true", help="Export configuration as environment variables"
    )
    config_group.add_argument(
        "--sources", action="store_true", help="Show configuration file sources"
    )
    config_parser.add_argument(
        "--output", "-o", type=str, help="Output file path (default: stdout)"
    )

    init_parser = subparsers.add_parser("init", help="Create a wrybridge.toml configuration file")
    init_parser.add_argument(
        "--force", "-f", action="store_true", help="Overwrite existing configuration file"
    )
    init_parser.add_argument(
        "--path",
        "-p",
        type=str,
        default="wrybridge.toml",
        help="Path for configuration file (default: wrybridge.toml)",
    )

    scripts_parser = subparsers.add_parser(
        "scripts", help="Print the initialization scripts rendered for a view"
    )
    scripts_parser.add_argument("--window", default="main", help="Window label (default: main)")
    scripts_parser.add_argument("--webview", default="main", help="View label (default: main)")
    scripts_parser.add_argument("--os", dest="os_name", default=None, help="Target OS name")
    scripts_parser.add_argument(
        "--output", "-o", type=str, help="Output file path (default: stdout)"
    )

    return parser


def main(argv: list[str] | None = None) -> int:
    """Run the main CLI entry point.

    Returns
    -------
    int
        Exit code.
    """
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = BridgeSettings()
    apply_log_settings(settings.log)
    if args.debug:
        enable_debug()

    if args.command == "config":
        return handle_config(args, settings)
    if args.command == "init":
        return handle_init(args, settings)
    if args.command == "scripts":
        return handle_scripts(args, settings)
    parser.print_help()
    return 0


def _write_output(output: str, path: str | None) -> None:
    if path:
        Path(path).write_text(output, encoding="utf-8")
        print(f"Written to {path}")
    else:
        print(output)


def handle_config(args: argparse.Namespace, settings: BridgeSettings) -> int:
    """Handle the config command."""
    if args.sources:
        return show_config_sources()

    if args.toml:
        output = settings.to_toml()
    elif args.env:
        output = settings.to_env()
    else:
        output = settings.show()

    _write_output(output, args.output)
    return 0


def handle_init(args: argparse.Namespace, settings: BridgeSettings) -> int:
    """Handle the init command."""
    path = Path(args.path)

    if path.exists() and not args.force:
        print(f"Error: {path} already exists. Use --force to overwrite.", file=sys.stderr)
        return 1

    header = """# wrybridge configuration file
#
# Environment variables override any setting:
#   WRYBRIDGE_PROTOCOL__SCHEME=wry
#   WRYBRIDGE_STATIC__ROOT=dist
#   WRYBRIDGE_SCRIPTS__INVOKE_KEY=my-app
#   WRYBRIDGE_REGISTRY__STRICT=true

"""
    path.write_text(header + settings.to_toml(), encoding="utf-8")
    print(f"Created {path}")
    return 0


def handle_scripts(args: argparse.Namespace, settings: BridgeSettings) -> int:
    """Handle the scripts command."""
    from .models import ScriptContext
    from .scripts import prepare_scripts

    overrides = {"os_name": args.os_name} if args.os_name else {}
    try:
        context = ScriptContext.from_settings(args.window, args.webview, settings, **overrides)
        scripts = prepare_scripts(context)
    except (ConstructionError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    parts = []
    for index, script in enumerate(scripts, start=1):
        scope = "main frame" if script.for_main_frame_only else "all frames"
        parts.append(f"// --- script {index} ({scope}) ---\n{script.script}")
    _write_output("\n".join(parts), args.output)
    return 0


def show_config_sources() -> int:
    """Show configuration file sources and their status."""
    sources = [
        ("pyproject.toml [tool.wrybridge]", Path("pyproject.toml")),
        ("./wrybridge.toml", Path("wrybridge.toml")),
        ("User config", _user_config_path().expanduser()),
    ]
    env_file = os.environ.get("WRYBRIDGE_CONFIG_FILE")
    if env_file:
        sources.append(("WRYBRIDGE_CONFIG_FILE", Path(env_file)))

    print("Configuration sources (in order of precedence):\n")
    print(f"{'Source':<36} {'Status':<12} Path")
    print("-" * 80)
    print(f"{'Built-in defaults':<36} {'active':<12}")
    for name, path in sources:
        status = "found" if path.exists() else "not found"
        print(f"{name:<36} {status:<12} {path}")

    env_vars = sorted(k for k in os.environ if k.startswith("WRYBRIDGE_"))
    status = f"{len(env_vars)} vars" if env_vars else "no vars"
    print(f"{'Environment variables':<36} {status:<12} {', '.join(env_vars[:3])}")

    print("\nNote: Later sources override earlier ones.")
    return 0
