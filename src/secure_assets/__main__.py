"""
Command line entry point.

Usage:
    # Resolve references and print reference -> handle lines
    python -m secure_assets resolve https://assets.artflaneur.com.au/a.jpg

    # Keep the payloads (handles are released when the command exits)
    python -m secure_assets resolve --output-dir ./out URL [URL ...]

    # Run the secure image proxy
    python -m secure_assets serve --host 0.0.0.0 --port 8080

    # With a YAML config and Prometheus metrics
    python -m secure_assets --config config.yaml --metrics-port 8000 serve
"""

import argparse
import asyncio
import logging
import os
import shutil
import signal
import sys
from pathlib import Path

from aiohttp import web
from dotenv import load_dotenv
from prometheus_client import start_http_server

from core.errors.exceptions import ConfigError
from core.logging.setup import get_logger, setup_logging
from secure_assets.config import load_config, ResolverConfig
from secure_assets.proxy import create_proxy_app
from secure_assets.resolver import SecureAssetResolver

# Placeholder logger until setup_logging() is called in main()
logger = logging.getLogger(__name__)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="secure_assets",
        description="Resolve protected asset references or serve the secure image proxy",
    )
    parser.add_argument("--config", type=Path, default=None, help="YAML config file")
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default="INFO",
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit JSON log lines on stdout. Can also be set via JSON_LOGS.",
    )
    parser.add_argument("--log-file", type=Path, default=None, help="Rotating JSON log file")
    parser.add_argument(
        "--metrics-port",
        type=int,
        default=None,
        help="Start the Prometheus metrics server on this port",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    resolve_parser = subparsers.add_parser("resolve", help="Resolve references and exit")
    resolve_parser.add_argument("references", nargs="+", metavar="REF")
    resolve_parser.add_argument(
        "--output-dir",
        type=Path,
        default=None,
        help="Copy each resolved payload into this directory",
    )

    serve_parser = subparsers.add_parser("serve", help="Run the secure image proxy")
    serve_parser.add_argument("--host", default="127.0.0.1")
    serve_parser.add_argument("--port", type=int, default=8080)

    return parser.parse_args(argv)


async def run_resolve(
    config: ResolverConfig, references: list[str], output_dir: Path | None = None
) -> int:
    """Resolve references concurrently. Returns the number that fell back."""
    failures = []
    async with SecureAssetResolver(config) as resolver:
        resolver.add_failure_listener(failures.append)
        results = await asyncio.gather(*(resolver.resolve(ref) for ref in references))

        for reference, uri in zip(references, results):
            handle = resolver.handle_store.get(uri) if uri else None
            if handle is not None and output_dir is not None:
                output_dir.mkdir(parents=True, exist_ok=True)
                target = output_dir / handle.path.name
                await asyncio.to_thread(shutil.copyfile, handle.path, target)
                uri = str(target)
            print(f"{reference} -> {uri}")

    return len(failures)


async def run_serve(config: ResolverConfig, host: str, port: int) -> None:
    shutdown_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def handle_signal(sig):
        logger.info("Received signal, shutting down", extra={"signal": sig.name})
        shutdown_event.set()

    if sys.platform != "win32":
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, lambda s=sig: handle_signal(s))

    async with SecureAssetResolver(config) as resolver:
        runner = web.AppRunner(create_proxy_app(resolver))
        await runner.setup()
        site = web.TCPSite(runner, host, port)
        await site.start()
        logger.info(f"Secure image proxy listening on http://{host}:{port}")
        try:
            await shutdown_event.wait()
        finally:
            await runner.cleanup()


def main(argv: list[str] | None = None) -> int:
    load_dotenv()

    global logger
    args = parse_args(argv)

    json_logs = args.json_logs or os.getenv("JSON_LOGS", "false").lower() in ("true", "1", "yes")
    setup_logging(
        name="secure_assets",
        log_file=args.log_file,
        json_format=json_logs,
        console_level=getattr(logging, args.log_level),
    )
    logger = get_logger(__name__)

    try:
        config = load_config(args.config)
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return 2

    if args.metrics_port is not None:
        start_http_server(args.metrics_port)
        logger.info(f"Metrics server started on port {args.metrics_port}")

    try:
        if args.command == "resolve":
            failed = asyncio.run(run_resolve(config, args.references, args.output_dir))
            return 1 if failed else 0
        asyncio.run(run_serve(config, args.host, args.port))
    except KeyboardInterrupt:
        logger.info("Interrupted")
    return 0


if __name__ == "__main__":
    sys.exit(main())
