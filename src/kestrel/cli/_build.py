"""``kestrel build``: prerender routes into the output directory.

Scans the app directory, registers client modules, generates every
static and parametrized route, then writes the manifest and the
revalidation metadata. A failing route is reported and skipped.
"""

import argparse
import asyncio
import json
import sys

from kestrel.build.generator import GenerationResult, StaticGenerator, summarize_results
from kestrel.cli._config import config_from_args, configure_logging
from kestrel.errors import ScanError
from kestrel.rendering.registry import ClientRegistry
from kestrel.routing.scanner import scan_app


def run_build(args: argparse.Namespace) -> None:
    config = config_from_args(args)
    configure_logging(config.log_level)
    try:
        tree = scan_app(config.app_path, project_root=config.root_path)
    except ScanError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(1) from exc

    registry = ClientRegistry.from_route_tree(tree, config.root_path, config.component_paths)
    generator = StaticGenerator(config, registry)
    results = asyncio.run(generator.generate(tree))

    if args.json:
        print(json.dumps(summarize_results(results), indent=2))
    else:
        _print_summary(results)

    if args.strict and any(not r.ok for r in results):
        raise SystemExit(1)


def _print_summary(results: list[GenerationResult]) -> None:
    if not results:
        print("No routes to prerender.")
        return
    width = max(len(r.route_path) for r in results)
    for result in results:
        status = "ok" if result.ok else f"FAILED ({result.error})"
        print(f"  {result.route_path:<{width}}  {result.duration_ms:7.1f}ms  {status}")
    failed = sum(1 for r in results if not r.ok)
    print(f"{len(results) - failed} generated, {failed} failed")
