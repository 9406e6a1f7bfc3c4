"""``kestrel serve``: run the ASGI app under pounce."""

import argparse
import sys

from kestrel.cli._config import config_from_args, configure_logging
from kestrel.errors import ConfigurationError


def run_serve(args: argparse.Namespace) -> None:
    overrides: dict[str, object] = {}
    if args.host is not None:
        overrides["host"] = args.host
    if args.port is not None:
        overrides["port"] = args.port
    config = config_from_args(args, **overrides)
    configure_logging(config.log_level)

    from kestrel.server.app import App
    from kestrel.server.dev import run_dev_server

    app = App(config)
    try:
        run_dev_server(app, config.host, config.port, reload=args.reload)
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc
