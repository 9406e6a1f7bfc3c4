"""Kestrel CLI: build, inspect and serve a project.

Entry point registered as ``kestrel`` in ``pyproject.toml``::

    [project.scripts]
    kestrel = "kestrel.cli:main"
"""

import argparse
import sys


def _add_project_arguments(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--root", default=".", help="Project root (default: current directory)")
    parser.add_argument("--app-dir", default="app", help="Route directory, relative to the root")
    parser.add_argument("--out-dir", default=".kestrel", help="Build output directory")
    parser.add_argument(
        "--log-level",
        default="info",
        choices=["debug", "info", "warning", "error", "critical"],
        help="Logging level",
    )


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for the ``kestrel`` command."""
    parser = argparse.ArgumentParser(
        prog="kestrel",
        description="Kestrel: filesystem-routed server rendering with a streaming wire format.",
    )
    subparsers = parser.add_subparsers(dest="command")

    # -- kestrel build ----------------------------------------------------
    build_parser = subparsers.add_parser("build", help="Prerender static and parametrized routes")
    _add_project_arguments(build_parser)
    build_parser.add_argument("--json", action="store_true", help="Print a JSON build summary")
    build_parser.add_argument(
        "--strict",
        action="store_true",
        help="Exit with status 1 when any route fails to generate",
    )

    # -- kestrel routes ---------------------------------------------------
    routes_parser = subparsers.add_parser("routes", help="Print the scanned route tree")
    _add_project_arguments(routes_parser)
    routes_parser.add_argument("--json", action="store_true", help="Print the tree as JSON")

    # -- kestrel serve ----------------------------------------------------
    serve_parser = subparsers.add_parser("serve", help="Serve the project (requires pounce)")
    _add_project_arguments(serve_parser)
    serve_parser.add_argument("--host", default=None, help="Bind host address")
    serve_parser.add_argument("--port", type=int, default=None, help="Bind port number")
    serve_parser.add_argument("--reload", action="store_true", help="Reload on file changes")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(0)

    if args.command == "build":
        from kestrel.cli._build import run_build

        run_build(args)
    elif args.command == "routes":
        from kestrel.cli._routes import run_routes

        run_routes(args)
    elif args.command == "serve":
        from kestrel.cli._serve import run_serve

        run_serve(args)
