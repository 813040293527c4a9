"""
Orchestrator - CLI.

============================================================
RESPONSIBILITY
============================================================
Command-line entry for the news intelligence service.
Settings come from the environment (and .env); flags given
on the command line win over them.

============================================================
USAGE
============================================================
python app.py
python app.py --port 9000 --interval 30
python app.py --single-cycle --log-level DEBUG
python -m orchestrator.cli --no-api

============================================================
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from core.config import AppConfig, set_config
from core.exceptions import ConfigurationError, StartupError
from .core import NewsIntelligenceRuntime, setup_logging


# ============================================================
# CLI ARGUMENT PARSER
# ============================================================

def create_parser() -> argparse.ArgumentParser:
    """Command-line flags; every flag overrides one environment setting."""
    parser = argparse.ArgumentParser(
        prog="crypto-news-intelligence",
        description="Crypto news ingestion, classification and trading signals",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Every option falls back to its environment variable (see .env).

Examples:
  %(prog)s                              # Scheduler + API on 0.0.0.0:8081
  %(prog)s --single-cycle               # One cycle, wait for AI, exit
  %(prog)s --no-api --interval 30       # Scheduler only
        """
    )

    # --------------------------------------------------------
    # Server Options
    # --------------------------------------------------------
    server_group = parser.add_argument_group("Server Options")

    server_group.add_argument(
        "--host",
        type=str,
        help="API bind host (env HOST, default: 0.0.0.0)",
    )

    server_group.add_argument(
        "--port",
        type=int,
        help="API port (env PORT, default: 8081)",
    )

    server_group.add_argument(
        "--no-api",
        action="store_true",
        help="Run the ingestion scheduler without the API server",
    )

    # --------------------------------------------------------
    # Execution Options
    # --------------------------------------------------------
    execution_group = parser.add_argument_group("Execution Options")

    execution_group.add_argument(
        "--interval",
        type=float,
        metavar="SECONDS",
        help="Delay between ingestion cycles (env CYCLE_INTERVAL_SECONDS, default: 10)",
    )

    execution_group.add_argument(
        "--single-cycle",
        action="store_true",
        help="Run a single cycle, wait for its enrichment and exit",
    )

    execution_group.add_argument(
        "--database-url",
        type=str,
        metavar="URL",
        help="SQLAlchemy database URL (env DATABASE_URL)",
    )

    # --------------------------------------------------------
    # Logging Options
    # --------------------------------------------------------
    logging_group = parser.add_argument_group("Logging Options")

    logging_group.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (env LOG_LEVEL, default: INFO)",
    )

    logging_group.add_argument(
        "--log-format",
        type=str,
        choices=["json", "text"],
        help="Logging format (env LOG_FORMAT, default: text)",
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version="%(prog)s 1.0.0",
    )

    return parser


# ============================================================
# CLI CONFIGURATION BUILDER
# ============================================================

CLI_OVERRIDES = (
    ("host", "host"),
    ("port", "port"),
    ("interval", "cycle_interval_seconds"),
    ("database_url", "database_url"),
    ("log_level", "log_level"),
    ("log_format", "log_format"),
)


def build_config(args: argparse.Namespace, base: Optional[AppConfig] = None) -> AppConfig:
    """
    Apply CLI overrides on top of the environment configuration.

    Args:
        args: Parsed arguments
        base: Starting configuration (default: AppConfig.from_env())

    Returns:
        AppConfig instance
    """
    config = base or AppConfig.from_env()
    for flag, attribute in CLI_OVERRIDES:
        value = getattr(args, flag)
        if value is not None:
            setattr(config, attribute, value)

    return config


# ============================================================
# MAIN ENTRY POINT
# ============================================================

async def async_main(runtime: NewsIntelligenceRuntime, args: argparse.Namespace) -> int:
    """
    Drive the runtime inside the event loop.

    Returns:
        Exit code
    """
    if args.single_cycle:
        report = await runtime.run_single_cycle()
        logging.getLogger("orchestrator").info(f"Single cycle finished: {report.to_dict()}")
        return 0

    await runtime.run(serve_api=not args.no_api)
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    """
    Console entry point, returns the process exit code.

    Args:
        argv: Command line arguments (default: sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    try:
        config = build_config(args)
    except ConfigurationError as e:
        defaults = AppConfig()
        logger = setup_logging(
            args.log_level or defaults.log_level, args.log_format or defaults.log_format
        )
        logger.error(f"Configuration error: {e.to_dict()}")
        return 2
    logger = setup_logging(config.log_level, config.log_format)

    try:
        config.validate()
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e.to_dict()}")
        return 2
    set_config(config)

    print_banner(config, args)

    runtime = NewsIntelligenceRuntime(config)
    try:
        runtime.bootstrap()
    except StartupError as e:
        logger.critical(f"Startup failed: {e.message}")
        return 1

    try:
        return asyncio.run(async_main(runtime, args))
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        return 130


def print_banner(config: AppConfig, args: argparse.Namespace) -> None:
    """Effective non-secret settings on stdout."""
    print()
    print("=" * 60)
    print("  CRYPTO NEWS INTELLIGENCE")
    print("=" * 60)
    print(f"  Sources:    {', '.join(feed.name for feed in config.feeds)}")
    print(f"  Interval:   {config.cycle_interval_seconds}s")
    print(f"  API:        {'disabled' if args.no_api or args.single_cycle else f'{config.host}:{config.port}'}")
    print(f"  Log Level:  {config.log_level}")
    print("=" * 60)
    print()


# ============================================================
# MODULE EXECUTION
# ============================================================

if __name__ == "__main__":
    sys.exit(main())
