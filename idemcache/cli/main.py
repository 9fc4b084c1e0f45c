"""idemcache CLI — config validation, config scaffolding and cache simulation."""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any, Hashable

import yaml

from idemcache import __version__
from idemcache.config.loader import (
    build_cache_from_config,
    generate_default_config,
    load_config,
    render_config,
    validate_config_file,
)
from idemcache.core.exceptions import ConfigurationError
from idemcache.logging_config import configure_logging
from idemcache.metrics import render_prometheus

_UNHASHABLE = object()


def app(args: list[str] | None = None) -> int:
    """Main CLI entry point.

    Args:
        args: Command-line arguments (defaults to sys.argv).

    Returns:
        Exit code (0 = success, 1 = error).
    """
    parser = argparse.ArgumentParser(
        prog="idemcache",
        description="idemcache — in-memory LRU/TTL cache with idempotency keys",
    )
    parser.add_argument("--version", action="version", version=f"idemcache {__version__}")
    parser.add_argument("--log-level", default=None, help="Log level (default: IDEMCACHE_LOG_LEVEL or INFO)")

    subparsers = parser.add_subparsers(dest="command")

    # validate command
    validate_parser = subparsers.add_parser("validate", help="Validate an idemcache.yaml file")
    validate_parser.add_argument("path", help="Path to YAML config file")

    # config command
    config_parser = subparsers.add_parser("config", help="Show or create configuration")
    config_subparsers = config_parser.add_subparsers(dest="config_command")

    show_parser = config_subparsers.add_parser("show", help="Print the resolved configuration")
    show_parser.add_argument("--config", dest="config_path", default=None, help="Path to YAML config file")

    init_parser = config_subparsers.add_parser("init", help="Write a default idemcache.yaml")
    init_parser.add_argument("--output", default="idemcache.yaml", help="Destination file")
    init_parser.add_argument("--force", action="store_true", help="Overwrite an existing file")

    # simulate command
    sim_parser = subparsers.add_parser("simulate", help="Replay a put/get/remove script against a cache")
    sim_parser.add_argument("script", help="YAML file with an 'ops' list")
    sim_parser.add_argument("--config", dest="config_path", default=None, help="Path to YAML config file")
    sim_parser.add_argument("--capacity", type=int, default=None, help="Override cache capacity")
    sim_parser.add_argument("--metrics", action="store_true", help="Print Prometheus metrics at the end")

    parsed = parser.parse_args(args)
    configure_logging(level=parsed.log_level)

    if parsed.command == "validate":
        return _cmd_validate(parsed.path)
    elif parsed.command == "config":
        if parsed.config_command == "show":
            return _cmd_config_show(parsed.config_path)
        elif parsed.config_command == "init":
            return _cmd_config_init(parsed.output, parsed.force)
        else:
            config_parser.print_help()
            return 1
    elif parsed.command == "simulate":
        return _cmd_simulate(parsed)
    else:
        parser.print_help()
        return 1


def _cmd_validate(path: str) -> int:
    """Validate a YAML config file."""
    errors = validate_config_file(path)
    if errors:
        for err in errors:
            print(f"✗ {err}", file=sys.stderr)
        return 1
    print(f"✓ Valid: {path}")
    return 0


def _cmd_config_show(config_path: str | None) -> int:
    try:
        cfg = load_config(config_path)
    except (ConfigurationError, FileNotFoundError) as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        return 1
    print(render_config(cfg), end="")
    return 0


def _cmd_config_init(output: str, force: bool) -> int:
    dest = Path(output)
    if dest.exists() and not force:
        print(f"✗ {dest} already exists (use --force to overwrite)", file=sys.stderr)
        return 1
    dest.write_text(generate_default_config(), encoding="utf-8")
    print(f"✓ Wrote {dest}")
    return 0


def _cmd_simulate(parsed: argparse.Namespace) -> int:
    """Run each op of the script and report reads, final order and stats.

    Script format::

        ops:
          - put: [key, value]          # or {key: k, value: v, ttl: 5}
          - get: key
          - remove: key
          - cleanup: true
    """
    try:
        cfg = load_config(parsed.config_path)
        if parsed.capacity is not None:
            if parsed.capacity < 0:
                raise ConfigurationError(f"capacity must be >= 0, got {parsed.capacity}")
            cfg.capacity = parsed.capacity
        ops = _load_ops(Path(parsed.script))
    except (ConfigurationError, FileNotFoundError) as e:
        print(f"✗ Error: {e}", file=sys.stderr)
        return 1

    cache = build_cache_from_config(cfg)
    for i, op in enumerate(ops, 1):
        if not isinstance(op, dict) or len(op) != 1:
            print(f"✗ op #{i}: expected a single-key mapping, got {op!r}", file=sys.stderr)
            return 1
        name, arg = next(iter(op.items()))
        if name == "put":
            if isinstance(arg, dict) and "key" in arg:
                key, value, ttl = arg["key"], arg.get("value"), arg.get("ttl")
            elif isinstance(arg, list) and len(arg) == 2:
                key, value, ttl = arg[0], arg[1], None
            else:
                print(f"✗ op #{i}: put expects [key, value] or {{key, value, ttl}}", file=sys.stderr)
                return 1
            key = _as_key(key)
            if key is _UNHASHABLE:
                print(f"✗ op #{i}: key must be hashable", file=sys.stderr)
                return 1
            cache.put(key, value, ttl)
        elif name in ("get", "remove"):
            key = _as_key(arg)
            if key is _UNHASHABLE:
                print(f"✗ op #{i}: key must be hashable", file=sys.stderr)
                return 1
            if name == "get":
                print(f"get {key!r} -> {cache.get(key)!r}")
            else:
                print(f"remove {key!r} -> {cache.remove(key)}")
        elif name == "cleanup":
            print(f"cleanup -> {cache.cleanup()}")
        else:
            print(f"✗ op #{i}: unknown operation {name!r}", file=sys.stderr)
            return 1

    if hasattr(cache, "keys"):
        print("keys (MRU → LRU): " + json.dumps(cache.keys(), default=repr))
    stats = cache.stats()
    print(
        f"size={stats.size} capacity={stats.capacity} hits={stats.hits} misses={stats.misses} "
        f"evictions={stats.evictions} expirations={stats.expirations}"
    )
    if parsed.metrics:
        print(render_prometheus(stats), end="")
    return 0


def _as_key(raw: Any) -> Hashable:
    """YAML lists become tuples; unhashable values map to ``_UNHASHABLE``."""
    key = _tuplify(raw)
    try:
        hash(key)
    except TypeError:
        return _UNHASHABLE
    return key


def _tuplify(raw: Any) -> Any:
    if isinstance(raw, list):
        return tuple(_tuplify(item) for item in raw)
    return raw


def _load_ops(path: Path) -> list:
    if not path.exists():
        raise FileNotFoundError(f"Script not found: {path}")
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML: {e}", file_path=str(path)) from e
    if not isinstance(raw, dict) or not isinstance(raw.get("ops"), list):
        raise ConfigurationError("script must be a mapping with an 'ops' list", file_path=str(path))
    return raw["ops"]