#!/usr/bin/env python3
"""Niche Scraper: daily Reddit trend reports powered by a PydanticAI agent.

Polls the hot listings of a set of niche subreddits, asks Gemini for
keywords, user problems and recurring phrases, sends a condensed report to
Telegram, stores it as JSON and mirrors it to GitHub.

Usage:
    python main.py                # Daily scheduler + health/dashboard server
    python main.py --now          # Run the pipeline once and exit
    python main.py --test-error   # Send a test alert to Telegram and exit

Exit Codes:
    0    Normal completion
    1    Configuration error
    130  Interrupted (Ctrl+C)

Environment:
    GEMINI_API_KEY, TELEGRAM_BOT_TOKEN, TELEGRAM_CHAT_ID are required.
    See config.py for all configuration options.
"""

import argparse
import asyncio
import json
import logging
import sys

from backup import BackupConfigError
from config import Config
from notifications import NotifierConfigError
from observability.logging import setup_logging

logger = logging.getLogger(__name__)


def cmd_now(config: Config) -> int:
    """Run the pipeline once and exit."""
    from pipeline import run_once

    stats = asyncio.run(run_once(config))
    logger.info("Run complete | stats=%s", json.dumps(stats))
    return 0


def cmd_test_error(config: Config) -> int:
    """Send a synthetic alert through the notifier."""
    from notifications import TelegramNotifier

    notifier = TelegramNotifier.from_config(config)
    delivered = asyncio.run(notifier.send_alert(RuntimeError("This is a test error")))
    if not delivered:
        print("Test alert could not be delivered, see log for details.", file=sys.stderr)
    return 0


def cmd_serve(config: Config) -> int:
    """Run the daily scheduler and the health server until interrupted."""
    from pipeline import Pipeline
    from server import serve

    pipeline = Pipeline.from_config(config)

    async def run_all() -> None:
        await asyncio.gather(pipeline.run_scheduled(), serve(config))

    asyncio.run(run_all())
    return 0


def main() -> int:
    """Main entry point.

    Returns:
        Exit code
    """
    parser = argparse.ArgumentParser(
        description="Niche Scraper: daily Reddit trend reports",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    mode = parser.add_mutually_exclusive_group()
    mode.add_argument(
        "--now",
        action="store_true",
        help="Run the pipeline once immediately and exit",
    )
    mode.add_argument(
        "--test-error",
        action="store_true",
        help="Send a test error alert and exit",
    )
    args = parser.parse_args()

    config = Config.load()
    setup_logging(config)

    # --test-error only needs the notifier
    error = config.validate_notifier() if args.test_error else config.validate()
    if error:
        print(f"Configuration error: {error}", file=sys.stderr)
        return 1

    if config.enable_logfire:
        from observability.tracing import setup_tracing
        setup_tracing(enabled=True, token=config.logfire_token)

    if args.test_error:
        command = cmd_test_error
    elif args.now:
        command = cmd_now
    else:
        command = cmd_serve

    try:
        return command(config)
    except KeyboardInterrupt:
        logger.info("Stopped by user (Ctrl+C)")
        return 130
    except (NotifierConfigError, BackupConfigError) as e:
        print(f"Configuration error: {e}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
