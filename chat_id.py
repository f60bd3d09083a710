#!/usr/bin/env python3
"""Discover the Telegram chat id for TELEGRAM_CHAT_ID.

Run once after creating the bot, then send it any message:

    python chat_id.py

The first incoming message is answered with its chat id, and the id is
written to .env (an existing TELEGRAM_CHAT_ID line is replaced).
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import aiohttp
from dotenv import set_key

from config import Config
from http_utils import client_timeout, create_ssl_context
from notifications import TELEGRAM_API_URL, NotificationError, TelegramNotifier
from observability.logging import setup_logging

logger = logging.getLogger(__name__)

POLL_TIMEOUT = 30


async def wait_for_chat_id(
    bot_token: str,
    api_url: str = TELEGRAM_API_URL,
    retry_delay: float = 5,
) -> str:
    """Long-poll ``getUpdates`` until a message arrives; return its chat id.

    Transport errors and non-JSON answers are retried after ``retry_delay``.

    Raises:
        NotificationError: If Telegram rejects the request
    """
    url = f"{api_url.rstrip('/')}/bot{bot_token}/getUpdates"
    offset = 0
    async with aiohttp.ClientSession() as session:
        while True:
            params = {"timeout": POLL_TIMEOUT, "offset": offset}
            try:
                async with session.get(
                    url,
                    params=params,
                    timeout=client_timeout(POLL_TIMEOUT + 10),
                    ssl=create_ssl_context(),
                ) as resp:
                    body = await resp.json(content_type=None)
            except (aiohttp.ClientError, asyncio.TimeoutError, ValueError) as e:
                logger.warning("getUpdates failed, retrying | error=%s", e)
                await asyncio.sleep(retry_delay)
                continue

            if not isinstance(body, dict) or not body.get("ok"):
                raise NotificationError(f"Telegram getUpdates error: {body}")

            for update in body.get("result", []):
                offset = update["update_id"] + 1
                message = update.get("message") or update.get("channel_post")
                if message and "chat" in message:
                    return str(message["chat"]["id"])


def save_chat_id(chat_id: str, env_file: Path = Path(".env")) -> None:
    """Write TELEGRAM_CHAT_ID into the env file, replacing any existing value."""
    set_key(str(env_file), "TELEGRAM_CHAT_ID", chat_id, quote_mode="never")
    logger.info("Chat id saved | file=%s", env_file)


async def discover(config: Config, env_file: Path, api_url: str = TELEGRAM_API_URL) -> str:
    print("Bot started. Send any message to your bot to get the chat id.")
    chat_id = await wait_for_chat_id(config.telegram_bot_token, api_url)
    save_chat_id(chat_id, env_file)

    notifier = TelegramNotifier(config.telegram_bot_token, chat_id, api_url=api_url)
    try:
        await notifier.send_message(f"✅ Your chat ID is: {chat_id}")
    except NotificationError as e:
        logger.warning("Chat id reply not delivered | error=%s", e)
    return chat_id


def main() -> int:
    parser = argparse.ArgumentParser(description="Find and save the Telegram chat id")
    parser.add_argument("--env-file", default=".env", help="Env file to update (default: .env)")
    args = parser.parse_args()

    config = Config.load(args.env_file)
    setup_logging(config)

    if not config.telegram_bot_token:
        print("Configuration error: TELEGRAM_BOT_TOKEN environment variable is required", file=sys.stderr)
        return 1

    try:
        chat_id = asyncio.run(discover(config, Path(args.env_file)))
    except KeyboardInterrupt:
        return 130
    except NotificationError as e:
        logger.error("Chat id discovery failed | error=%s", e)
        return 1

    print(f"Chat ID {chat_id} has been saved to {args.env_file}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
