"""Shared CLI helpers: configuration and logging from parsed arguments."""

import argparse
import logging
import sys

from kestrel.config import KestrelConfig
from kestrel.errors import ConfigurationError


def config_from_args(args: argparse.Namespace, **overrides: object) -> KestrelConfig:
    """Build and validate a config; exits with status 2 when invalid."""
    config = KestrelConfig(
        project_root=args.root,
        app_dir=args.app_dir,
        out_dir=args.out_dir,
        log_level=args.log_level,
        **overrides,  # type: ignore[arg-type]
    )
    try:
        config.validate()
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        raise SystemExit(2) from exc
    return config


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)-7s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
