"""Command-line entrypoints for bucket location lookups."""
from __future__ import annotations

import argparse
import sys
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Optional

import httpx
import orjson
from dotenv import load_dotenv

from bucketloc.observability.log import configure_logging
from bucketloc.observability.metrics import MetricsRegistry, record_duration
from bucketloc.observability.tracing import clear_context, set_context
from bucketloc.resolve.errors import ErrorResponse, LocationDecodeError
from bucketloc.session import StorageClient, create_client
from bucketloc.settings import ClientSettings, load_settings

DEFAULT_SETTINGS_PATH = Path("config/settings.toml")
DEFAULT_LOGGING_PATH = Path("config/logging.yaml")


def build_arg_parser() -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    parser = argparse.ArgumentParser(prog="bucketloc", description="Bucket region discovery")
    parser.add_argument("--settings", default=str(DEFAULT_SETTINGS_PATH), help="Path to settings TOML")
    sub = parser.add_subparsers(dest="command", required=True)

    resolve = sub.add_parser("resolve", help="Resolve the region of one or more buckets")
    resolve.add_argument("buckets", nargs="+", help="Bucket names")
    resolve.add_argument("--concurrency", type=int, help="Number of parallel lookups")
    resolve.add_argument("--metrics-out", help="Write counters to this JSON file")

    explain = sub.add_parser("explain", help="Print the signed location request without sending it")
    explain.add_argument("bucket", help="Bucket name")

    return parser


def _settings_or_empty(path: Path) -> Dict[str, object]:
    if not path.exists():
        return {}
    return load_settings(path)


def _print_json(payload: object) -> None:
    print(orjson.dumps(payload, option=orjson.OPT_INDENT_2).decode())


def resolve_buckets(client: StorageClient, buckets: List[str], *, concurrency: int) -> Dict[str, Dict[str, object]]:
    """Resolve buckets in parallel, collecting regions and per-bucket failures."""
    locations: Dict[str, str] = {}
    errors: Dict[str, object] = {}

    def lookup(bucket: str) -> None:
        try:
            locations[bucket] = client.get_bucket_location(bucket)
        except ErrorResponse as exc:
            errors[bucket] = exc.to_dict()
        except (LocationDecodeError, httpx.HTTPError) as exc:
            errors[bucket] = {"message": str(exc)}

    with ThreadPoolExecutor(max_workers=max(1, concurrency)) as pool:
        list(pool.map(lookup, buckets))
    return {"locations": locations, "errors": errors}


def run_resolve(args: argparse.Namespace, settings: Dict[str, object]) -> int:
    """Execute the resolve command and return the process exit code."""
    client_settings = ClientSettings.from_mapping(settings)
    concurrency = args.concurrency or int(settings.get("resolve", {}).get("concurrency", 4))
    metrics = MetricsRegistry()
    set_context(run_id=datetime.now(timezone.utc).strftime("%Y%m%dT%H%M%S"))
    try:
        with record_duration(metrics, "resolve_duration_ms"):
            with create_client(client_settings, metrics=metrics) as client:
                report = resolve_buckets(client, args.buckets, concurrency=concurrency)
    finally:
        clear_context()
    _print_json(report)
    if args.metrics_out:
        metrics.export(path=Path(args.metrics_out))
    return 1 if report["errors"] else 0


def run_explain(args: argparse.Namespace, settings: Dict[str, object]) -> int:
    """Print the signed location request for a bucket."""
    client_settings = ClientSettings.from_mapping(settings)
    with create_client(client_settings) as client:
        request = client.location_request(args.bucket)
        _print_json(
            {
                "bucket": args.bucket,
                "anonymous": client.anonymous,
                "signature_version": client.signature_version.value,
                "method": request.method,
                "url": str(request.url),
                "headers": dict(request.headers),
            }
        )
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """Entry point for the CLI."""
    load_dotenv()
    parser = build_arg_parser()
    args = parser.parse_args(argv)
    settings = _settings_or_empty(Path(args.settings))
    configure_logging(DEFAULT_LOGGING_PATH)

    if args.command == "resolve":
        code = run_resolve(args, settings)
    else:
        code = run_explain(args, settings)
    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
