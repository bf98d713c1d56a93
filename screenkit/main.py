"""Command-line entry point for screenkit."""

import argparse
import sys
from collections.abc import Mapping
from datetime import date, datetime
from decimal import Decimal
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from .config import ScreenSettings
from .context.stack import (
    APPLICATION,
    GLOBAL_CONTEXT,
    SESSION,
    TIME_ZONE,
    MapStack,
)
from .errors import ScreenError
from .screens import RenderRequest, ScreenRenderer
from .utils import set_metrics_enabled, setup_logging
from .view import ScreenFopViewHandler

# context entries that are collaborators rather than data
HIDDEN_KEYS = {APPLICATION, GLOBAL_CONTEXT, SESSION}


def parse_parameters(pairs: Optional[List[str]]) -> Dict[str, str]:
    """Parse repeated ``name=value`` arguments into a parameter map."""
    parameters = {}
    for pair in pairs or []:
        name, separator, value = pair.partition("=")
        if not separator or not name:
            raise argparse.ArgumentTypeError(f"Parameter must be name=value: {pair}")
        parameters[name] = value
    return parameters


def to_plain(value: Any) -> Any:
    """Reduce context values to what ``yaml.safe_dump`` can write."""
    if isinstance(value, Mapping):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple, set)):
        return [to_plain(v) for v in value]
    if value is None or isinstance(value, (str, int, float, bool)):
        return value
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    return str(value)


def context_snapshot(context: MapStack) -> Dict[str, Any]:
    """Flatten the context for display, leaving out collaborator entries."""
    snapshot = {}
    for key in sorted(context):
        if key in HIDDEN_KEYS:
            continue
        value = context[key]
        snapshot[key] = str(value) if key == TIME_ZONE else to_plain(value)
    return snapshot


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="screenkit",
        description="Run screen actions and render screens to formatted documents",
    )
    parser.add_argument("--log-level", help="Override the configured log level")
    parser.add_argument("--log-format", choices=["json", "plain"], help="Override the configured log format")
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_actions = subparsers.add_parser("run-actions", help="Run a screen's actions and print the context")
    run_actions.add_argument("location", help="Screen location, resource#name")
    run_actions.add_argument("-p", "--param", action="append", metavar="NAME=VALUE", help="Request parameter")
    run_actions.add_argument("--locale", help="Request locale, e.g. en_US")

    render = subparsers.add_parser("render", help="Render a screen through the FO view")
    render.add_argument("location", help="Screen location, resource#name")
    render.add_argument("-o", "--output", required=True, help="File the formatted document is written to")
    render.add_argument("-t", "--content-type", help="Output type, defaults to the configured one")
    render.add_argument("-p", "--param", action="append", metavar="NAME=VALUE", help="Request parameter")
    render.add_argument("--locale", help="Request locale, e.g. en_US")

    return parser


def run_actions_command(renderer: ScreenRenderer, args: argparse.Namespace) -> int:
    request = RenderRequest(
        location=args.location,
        parameters=parse_parameters(args.param),
        locale=args.locale,
    )
    action_context = renderer.populate_context_for_request(request)
    screen = renderer.factory.get_screen(args.location)
    screen.run_actions(action_context)
    yaml.safe_dump(context_snapshot(action_context.context), sys.stdout, sort_keys=True, allow_unicode=True)
    return 0


def render_command(renderer: ScreenRenderer, args: argparse.Namespace) -> int:
    handler = ScreenFopViewHandler(renderer)
    view = handler.render(
        RenderRequest(
            location=args.location,
            parameters=parse_parameters(args.param),
            content_type=args.content_type,
            locale=args.locale,
        )
    )
    Path(args.output).write_bytes(view.content)
    print(f"Wrote {view.content_length} bytes of {view.content_type} to {args.output}")
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """Run the screenkit command line."""
    parser = build_parser()
    args = parser.parse_args(argv)

    settings = ScreenSettings()
    if args.log_level:
        settings.log_level = args.log_level
    if args.log_format:
        settings.log_format = args.log_format

    logger = setup_logging(settings.log_level, settings.log_format)
    set_metrics_enabled(settings.metrics_enabled)
    renderer = ScreenRenderer(settings)

    try:
        if args.command == "run-actions":
            return run_actions_command(renderer, args)
        return render_command(renderer, args)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))
    except ScreenError as e:
        logger.error("Command failed", command=args.command, error=str(e), error_type=type(e).__name__)
        return 1


if __name__ == "__main__":
    sys.exit(main())
