"""Telegram notifications for daily reports and error alerts.

This module handles all chat output of the pipeline:
- The condensed daily trends message (Markdown)
- Error alerts sent by any component

Delivery goes through the Telegram Bot API ``sendMessage`` method using
aiohttp. ``send_message`` raises on failure so callers can decide what to
do; ``send_alert`` never raises, since it is itself the last line of error
reporting.

Message Format:
    📊 Daily Trends Report – November 9 #crochet #knitting #crafts

    🧠 Gemini Insights:
    • New Keywords: "a", "b", "c"
    • User Problems: "x", "y"
    • Recurring Phrases: "p", "q"

    🔥 Top Reddit Posts:
    1️⃣ [Title](url)
    👍 523 | 💬 112
"""

import asyncio
import logging
import re
from datetime import date, datetime

import aiohttp

from config import Config
from http_utils import client_timeout, create_ssl_context
from models.report import DailyReport

logger = logging.getLogger(__name__)

TELEGRAM_API_URL = "https://api.telegram.org"

_MARKDOWN_SPECIAL = re.compile(r"([_*`\[])")
_NUMBER_EMOJI = ["1️⃣", "2️⃣", "3️⃣", "4️⃣", "5️⃣", "6️⃣", "7️⃣", "8️⃣", "9️⃣", "🔟"]


class NotificationError(Exception):
    """Raised when a Telegram message could not be delivered."""


class NotifierConfigError(ValueError):
    """Raised when the notifier is constructed without credentials."""


def escape_markdown(text: str) -> str:
    """Escape characters that Telegram's legacy Markdown treats as markup."""
    return _MARKDOWN_SPECIAL.sub(r"\\\1", text)


def _quoted(items: list[str]) -> str:
    """Render a short list as "a", "b" or 'n/a' when empty."""
    if not items:
        return "n/a"
    return ", ".join(f'"{escape_markdown(item)}"' for item in items)


def _format_day(report_date: str) -> str:
    """Format 2025-11-09 as 'November 9'; unknown formats pass through."""
    try:
        parsed = date.fromisoformat(report_date)
    except ValueError:
        return report_date
    return f"{parsed:%B} {parsed.day}"


def format_daily_message(report: DailyReport, hashtags: str = "") -> str:
    """Build the condensed Markdown message for a daily report.

    Args:
        report: Composed daily report
        hashtags: Hashtags appended to the headline

    Returns:
        Message text for ``parse_mode='Markdown'``
    """
    headline = f"📊 Daily Trends Report – {_format_day(report.date)}"
    if hashtags:
        headline += f" {hashtags}"

    insights = report.gemini
    keywords = [k.term for k in insights.new_keywords[:3]]
    problems = [p.problem for p in insights.user_problems[:2]]
    phrases = [p.phrase for p in insights.recurring_phrases[:2]]

    lines = [
        headline,
        "",
        "🧠 Gemini Insights:",
        f"• New Keywords: {_quoted(keywords)}",
        f"• User Problems: {_quoted(problems)}",
        f"• Recurring Phrases: {_quoted(phrases)}",
        "",
        "🔥 Top Reddit Posts:",
    ]

    if not report.top_reddit_posts:
        lines.append("No posts fetched today.")

    for index, post in enumerate(report.top_reddit_posts):
        marker = _NUMBER_EMOJI[index] if index < len(_NUMBER_EMOJI) else f"{index + 1}."
        # Escapes are not honored inside a link: ']' in the text and ')' in
        # the URL would both end it early
        title = post.title.replace("[", "(").replace("]", ")")
        url = post.url.replace(")", "%29")
        lines.append(f"{marker} [{title}]({url})")
        lines.append(f"👍 {post.score} | 💬 {post.num_comments}")

    return "\n".join(lines)


def format_alert(error: BaseException | str, now: datetime | None = None) -> str:
    """Build the text of an error alert."""
    now = now or datetime.now()
    message = str(error) or type(error).__name__
    return f"🚨 Niche-Scraper Error Alert ({now:%Y-%m-%d %H:%M:%S}):\n\n{message}"


class TelegramNotifier:
    """Sends messages to a single Telegram chat.

    Example:
        >>> notifier = TelegramNotifier(bot_token="123:abc", chat_id="42")
        >>> await notifier.send_message("hello")
        >>> await notifier.send_alert(RuntimeError("boom"))
        True
    """

    def __init__(
        self,
        bot_token: str,
        chat_id: str,
        timeout: float = 10,
        api_url: str = TELEGRAM_API_URL,
    ):
        """Initialize the notifier.

        Raises:
            NotifierConfigError: If the bot token or chat id is missing
        """
        if not bot_token:
            raise NotifierConfigError("TELEGRAM_BOT_TOKEN is required for notifications")
        if not chat_id:
            raise NotifierConfigError("TELEGRAM_CHAT_ID is required for notifications")
        self.chat_id = chat_id
        self.timeout = timeout
        self._bot_token = bot_token
        self._api_url = api_url.rstrip("/")

    @classmethod
    def from_config(cls, config: Config) -> "TelegramNotifier":
        return cls(bot_token=config.telegram_bot_token, chat_id=config.telegram_chat_id)

    async def send_message(self, text: str, parse_mode: str | None = None) -> None:
        """Send a message to the configured chat.

        Args:
            text: Message body
            parse_mode: Optional Telegram parse mode ('Markdown', 'HTML')

        Raises:
            NotificationError: On transport errors or a rejected request
        """
        # The URL embeds the bot token, so it is never logged
        url = f"{self._api_url}/bot{self._bot_token}/sendMessage"
        payload: dict[str, object] = {
            "chat_id": self.chat_id,
            "text": text,
            "disable_web_page_preview": True,
        }
        if parse_mode:
            payload["parse_mode"] = parse_mode

        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    url,
                    json=payload,
                    timeout=client_timeout(self.timeout),
                    ssl=create_ssl_context(),
                ) as resp:
                    status = resp.status
                    body = await resp.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise NotificationError(f"Telegram request timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            raise NotificationError(f"Telegram request failed: {e}") from e
        except ValueError as e:
            raise NotificationError(f"Telegram returned invalid JSON: {e}") from e

        if status >= 300 or not isinstance(body, dict) or not body.get("ok"):
            description = body.get("description", "") if isinstance(body, dict) else ""
            raise NotificationError(f"Telegram API error: HTTP {status} {description}".strip())

        logger.debug("Telegram message sent | chat=%s chars=%d", self.chat_id, len(text))

    async def send_report(self, report: DailyReport, hashtags: str = "") -> None:
        """Send the daily report message.

        Raises:
            NotificationError: If delivery failed
        """
        await self.send_message(format_daily_message(report, hashtags), parse_mode="Markdown")
        logger.info("Daily report sent | date=%s", report.date)

    async def send_alert(self, error: BaseException | str) -> bool:
        """Send an error alert; failures are logged, never raised.

        Returns:
            True if the alert was delivered
        """
        try:
            await self.send_message(format_alert(error))
        except NotificationError as e:
            logger.error("Alert delivery failed | error=%s original=%s", e, error)
            return False
        logger.info("Alert sent | message=%s", str(error)[:80])
        return True
