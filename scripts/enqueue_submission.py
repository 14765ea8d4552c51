#!/usr/bin/env python3
"""
Schedule a relay task for a submission stored as JSON.

Input file format:
    {"form_id": "646", "form_data": {...}, "entry_data": {"form_name": "..."}}

Without a broker URL the task runs eagerly in this process, which is how a
submission can be replayed end to end against the mock Loan API
(INTEGRATIONS_MODE=mock) without Redis.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

# Add repo root to path so `src.*` imports work when running from scripts/
sys.path.insert(0, str(Path(__file__).parent.parent))

from dotenv import load_dotenv

from src.tasks.runtime import build_runtime
from src.utils.relay_config_loader import load_relay_config


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def main() -> int:
    load_dotenv()
    parser = argparse.ArgumentParser(description="Schedule a relay task for a stored form submission")
    parser.add_argument("input", type=Path, help="Path to submission JSON file")
    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Path to relay config YAML file (default: config/relay_config.yml)",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Enable verbose logging")

    args = parser.parse_args()
    setup_logging(verbose=args.verbose)
    logger = logging.getLogger(__name__)

    try:
        with open(args.input, "r", encoding="utf-8") as f:
            submission = json.load(f)
        if not isinstance(submission, dict) or "form_id" not in submission:
            logger.error("Input must be a JSON object with at least 'form_id'")
            return 2

        config = load_relay_config(args.config)
        runtime = build_runtime(config)

        task_id = runtime.intake.on_submit(
            submission["form_id"],
            submission.get("form_data") or {},
            submission.get("entry_data") or {},
        )
        if task_id is None:
            logger.info("Nothing scheduled for form %s", submission["form_id"])
            return 0
        logger.info("Scheduled task %s", task_id)
        return 0
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130
    except Exception as e:
        logger.error("Error: %s: %s", type(e).__name__, str(e), exc_info=args.verbose)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
