"""Entry point for the qbert server."""

import argparse
import logging
import sys
from typing import Any

import uvicorn

from qbert import __version__
from qbert.config import AuthMode, LogLevel, QbertConfig


def setup_logging(level: LogLevel) -> None:
    """Configure logging for the server."""
    logging.basicConfig(
        level=level.value,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stderr)],
    )


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="qbert",
        description="HTTP API for reading and scaling Kubernetes Deployment replicas",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    # HTTP options
    parser.add_argument(
        "--host",
        default=None,
        help="Host to bind HTTP server to (default: 0.0.0.0)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind HTTP server to (default: 8080)",
    )

    # Auth options
    parser.add_argument(
        "--auth-mode",
        choices=[mode.value for mode in AuthMode],
        default=None,
        help="Authentication mode (default: auto)",
    )
    parser.add_argument(
        "--kubeconfig",
        default=None,
        help="Path to kubeconfig file",
    )
    parser.add_argument(
        "--context",
        default=None,
        help="Kubeconfig context to use",
    )

    # Cluster call options
    parser.add_argument(
        "--request-timeout",
        type=float,
        default=None,
        help="Deadline in seconds for cluster calls per request (default: 10)",
    )

    # Logging
    parser.add_argument(
        "--log-level",
        choices=[level.value for level in LogLevel],
        default=None,
        help="Logging level (default: INFO)",
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> QbertConfig:
    """Build config from args, falling back to environment/defaults."""
    config_kwargs: dict[str, Any] = {}

    if args.host:
        config_kwargs["host"] = args.host

    if args.port:
        config_kwargs["port"] = args.port

    if args.auth_mode:
        config_kwargs["auth_mode"] = AuthMode(args.auth_mode)

    if args.kubeconfig:
        config_kwargs["kubeconfig_path"] = args.kubeconfig

    if args.context:
        config_kwargs["kubeconfig_context"] = args.context

    if args.request_timeout:
        config_kwargs["request_timeout"] = args.request_timeout

    if args.log_level:
        config_kwargs["log_level"] = LogLevel(args.log_level)

    return QbertConfig(**config_kwargs)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    args = parse_args(argv)
    config = build_config(args)

    setup_logging(config.log_level)

    logger = logging.getLogger(__name__)
    logger.info(f"Starting qbert server v{__version__}")

    try:
        warnings = config.validate_auth_config()
        for warning in warnings:
            logger.warning(warning)
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    from qbert.server import create_server

    app = create_server(config)

    logger.info(f"Listening on {config.host}:{config.port}")
    uvicorn.run(
        app,
        host=config.host,
        port=config.port,
        log_level=config.log_level.value.lower(),
        access_log=False,
    )

    return 0


if __name__ == "__main__":
    sys.exit(main())
