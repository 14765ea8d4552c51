#!/usr/bin/env python3
"""
Run a Celery worker that delivers relay tasks to the Loan API.

The worker consumes the Redis broker named by CELERY_BROKER_URL (or
REDIS_URL); the API process publishes to the same broker.
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional

# Add repo root to path so `src.*` imports work when running from scripts/
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from src.tasks.celery_app import celery_app
from src.tasks.runtime import build_runtime
from src.utils.relay_config_loader import load_relay_config


def setup_logging(verbose: bool = False, log_file: Optional[Path] = None) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    handlers = [logging.StreamHandler()]
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )


def main() -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(description="Run the form submission relay worker")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to relay config YAML file (default: config/relay_config.yml)",
    )
    parser.add_argument("--concurrency", type=int, default=2, help="Number of worker processes/threads")
    parser.add_argument(
        "--pool",
        default="prefork",
        choices=["prefork", "solo", "threads"],
        help="Celery execution pool",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")
    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Optional path to log file",
    )

    args = parser.parse_args()
    setup_logging(verbose=args.verbose, log_file=args.log_file)
    logger = logging.getLogger(__name__)

    try:
        config = load_relay_config(args.config)
        runtime = build_runtime(config)
        if not runtime.uses_broker:
            logger.error("CELERY_BROKER_URL or REDIS_URL must be set to run a relay worker")
            return 2

        celery_app.worker_main(
            [
                "worker",
                "--loglevel",
                "DEBUG" if args.verbose else "INFO",
                "--pool",
                args.pool,
                "--concurrency",
                str(args.concurrency),
            ]
        )
        return 0
    except KeyboardInterrupt:
        logger.warning("Worker interrupted by user")
        return 130
    except Exception as e:
        logger.error("Worker error: %s: %s", type(e).__name__, str(e), exc_info=args.verbose)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
