"""``kestrel routes``: print the scanned route tree."""

import argparse
import json
import sys

from kestrel.cli._config import config_from_args, configure_logging
from kestrel.errors import ScanError
from kestrel.routing.scanner import scan_app
from kestrel.routing.tree import format_route_tree, route_tree_to_dict


def run_routes(args: argparse.Namespace) -> None:
    config = config_from_args(args)
    configure_logging(config.log_level)
    try:
        tree = scan_app(config.app_path, project_root=config.root_path)
    except ScanError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    if args.json:
        print(json.dumps(route_tree_to_dict(tree), indent=2))
    else:
        print(format_route_tree(tree))
