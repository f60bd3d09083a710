"""Tests for Telegram message formatting and the notifier contract."""

from datetime import datetime

import pytest

from conftest import TelegramServer, make_post
from models.insights import Keyword, Phrase, Problem
from models.report import DailyReport, ReportInsights
from notifications import (
    NotificationError,
    NotifierConfigError,
    TelegramNotifier,
    escape_markdown,
    format_alert,
    format_daily_message,
)


def make_report(**overrides) -> DailyReport:
    fields = dict(
        date="2025-11-09",
        niches=["crochet"],
        gemini=ReportInsights(
            new_keywords=[Keyword(term=t) for t in ("mosaic", "c2c", "tapestry", "bobble")],
            user_problems=[Problem(problem=p) for p in ("tension", "counting rows", "yarn splitting")],
            recurring_phrases=[Phrase(phrase=p) for p in ("first project", "any tips", "help please")],
        ),
        top_reddit_posts=[make_post("Finished my blanket", 523, 112), make_post("Stitch markers?", 80, 14)],
    )
    fields.update(overrides)
    return DailyReport(**fields)


class TestDailyMessage:
    def test_layout(self):
        text = format_daily_message(make_report(), "#crochet #knitting")
        lines = text.splitlines()

        assert lines[0] == "📊 Daily Trends Report – November 9 #crochet #knitting"
        assert "🧠 Gemini Insights:" in lines
        assert '• New Keywords: "mosaic", "c2c", "tapestry"' in lines
        assert '• User Problems: "tension", "counting rows"' in lines
        assert '• Recurring Phrases: "first project", "any tips"' in lines
        assert "🔥 Top Reddit Posts:" in lines
        assert "1️⃣ [Finished my blanket](https://www.reddit.com/r/crochet/comments/finished_my_blanket)" in lines
        assert "👍 523 | 💬 112" in lines
        assert "bobble" not in text

    def test_empty_insights_and_posts(self):
        report = make_report(gemini=ReportInsights(), top_reddit_posts=[])
        text = format_daily_message(report)

        assert text.splitlines()[0] == "📊 Daily Trends Report – November 9"
        assert "• New Keywords: n/a" in text
        assert "No posts fetched today." in text

    def test_link_text_keeps_markup_and_swaps_brackets(self):
        post = make_post("My *first* [WIP] c2c_blanket", 10)
        report = make_report(top_reddit_posts=[post])
        text = format_daily_message(report)

        assert f"1️⃣ [My *first* (WIP) c2c_blanket]({post.url})" in text
        assert "\\" not in text

    def test_insight_terms_are_escaped(self):
        report = make_report(gemini=ReportInsights(new_keywords=[Keyword(term="c2c_blanket")]))
        text = format_daily_message(report)

        assert r'• New Keywords: "c2c\_blanket"' in text


def test_escape_markdown():
    assert escape_markdown("a_b*c`d[e") == r"a\_b\*c\`d\[e"
    assert escape_markdown("plain text") == "plain text"


def test_format_alert():
    text = format_alert(RuntimeError("Reddit API error"), now=datetime(2025, 11, 9, 9, 0, 1))
    assert text == "🚨 Niche-Scraper Error Alert (2025-11-09 09:00:01):\n\nReddit API error"


def test_format_alert_without_message():
    assert format_alert(TimeoutError(), now=datetime(2025, 1, 1)).endswith("TimeoutError")


class TestNotifier:
    @pytest.mark.parametrize("token, chat_id", [("", "42"), ("123:abc", "")])
    def test_requires_credentials(self, token, chat_id):
        with pytest.raises(NotifierConfigError):
            TelegramNotifier(bot_token=token, chat_id=chat_id)

    async def test_send_alert_never_raises(self, monkeypatch):
        notifier = TelegramNotifier(bot_token="123:abc", chat_id="42")
        sent = []

        async def broken_send(text, parse_mode=None):
            sent.append(text)
            raise NotificationError("Telegram API error: HTTP 401 Unauthorized")

        monkeypatch.setattr(notifier, "send_message", broken_send)

        assert await notifier.send_alert("boom") is False
        assert sent and sent[0].endswith("boom")

    async def test_send_report_uses_markdown(self, monkeypatch):
        notifier = TelegramNotifier(bot_token="123:abc", chat_id="42")
        calls = []

        async def record(text, parse_mode=None):
            calls.append((text, parse_mode))

        monkeypatch.setattr(notifier, "send_message", record)
        await notifier.send_report(make_report(), "#crochet")

        assert calls[0][1] == "Markdown"
        assert calls[0][0].startswith("📊 Daily Trends Report")


class TestSendMessage:
    async def start(self, serve_app, server: TelegramServer) -> TelegramNotifier:
        api_url = await serve_app(server.app())
        return TelegramNotifier(bot_token="123:abc", chat_id="42", api_url=api_url)

    async def test_posts_payload(self, serve_app):
        server = TelegramServer()
        notifier = await self.start(serve_app, server)

        await notifier.send_message("*hello*", parse_mode="Markdown")

        token, payload = server.sent[0]
        assert token == "123:abc"
        assert payload == {
            "chat_id": "42",
            "text": "*hello*",
            "disable_web_page_preview": True,
            "parse_mode": "Markdown",
        }

    async def test_plain_text_has_no_parse_mode(self, serve_app):
        server = TelegramServer()
        notifier = await self.start(serve_app, server)

        await notifier.send_message("hello")

        assert "parse_mode" not in server.sent[0][1]

    @pytest.mark.parametrize(
        "response, expected",
        [
            ((400, {"ok": False, "description": "Bad Request: can't parse entities"}), "can't parse entities"),
            ((200, {"ok": False, "description": "Forbidden: bot was blocked by the user"}), "bot was blocked"),
            ((502, "Bad Gateway"), "invalid JSON"),
        ],
    )
    async def test_rejected_delivery_raises(self, serve_app, response, expected):
        notifier = await self.start(serve_app, TelegramServer(send_response=response))

        with pytest.raises(NotificationError, match=expected):
            await notifier.send_message("hello")

    async def test_send_alert_swallows_api_errors(self, serve_app):
        server = TelegramServer(send_response=(500, {"ok": False, "description": "Internal Server Error"}))
        notifier = await self.start(serve_app, server)

        assert await notifier.send_alert(RuntimeError("Reddit API error")) is False
        assert server.sent[0][1]["text"].endswith("Reddit API error")
