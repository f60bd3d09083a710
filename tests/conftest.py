"""Shared fixtures: in-memory stand-ins for Reddit, Telegram, GitHub and the model."""

from pathlib import Path

import pytest
from aiohttp import test_utils, web

from backup import GitHubError
from config import Config
from models.post import RedditPost
from notifications import NotificationError


class FakeNotifier:
    """Records alerts and reports instead of calling Telegram."""

    def __init__(self, fail_reports: bool = False):
        self.alerts: list[str] = []
        self.reports = []
        self.fail_reports = fail_reports

    async def send_alert(self, error) -> bool:
        self.alerts.append(str(error))
        return True

    async def send_report(self, report, hashtags: str = "") -> None:
        if self.fail_reports:
            raise NotificationError("Telegram API error: HTTP 400 Bad Request")
        self.reports.append((report, hashtags))


class FakeStore:
    """Remote contents store keyed by path.

    ``exists_errors`` / ``put_errors`` make the next N calls raise.
    """

    def __init__(self, files: dict[str, str] | None = None, exists_errors: int = 0, put_errors: int = 0):
        self.files = dict(files or {})
        self.exists_errors = exists_errors
        self.put_errors = put_errors
        self.exists_calls = 0
        self.put_calls = 0
        self.messages: list[str] = []

    async def exists(self, path: str) -> bool:
        self.exists_calls += 1
        if self.exists_errors:
            self.exists_errors -= 1
            raise GitHubError("GitHub existence check failed: HTTP 502", status=502)
        return path in self.files

    async def put(self, path: str, content_b64: str, message: str) -> None:
        self.put_calls += 1
        if self.put_errors:
            self.put_errors -= 1
            raise GitHubError("GitHub request failed: Connection reset by peer")
        self.files[path] = content_b64
        self.messages.append(message)


class RecordedSleep:
    """Replaces asyncio.sleep and records the requested delays."""

    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class FakeFetcher:
    """Serves canned listings; an Exception value makes that feed fail."""

    def __init__(self, feeds: dict):
        self.feeds = feeds
        self.calls: list[str] = []

    async def fetch_hot(self, subreddit: str, limit: int = 10) -> list[RedditPost]:
        self.calls.append(subreddit)
        result = self.feeds[subreddit]
        if isinstance(result, Exception):
            raise result
        return result[:limit]


def make_post(title: str = "Granny square help", score: int = 10, comments: int = 2, subreddit: str = "r/crochet") -> RedditPost:
    slug = title.lower().replace(" ", "_")
    return RedditPost(
        title=title,
        url=f"https://www.reddit.com/{subreddit}/comments/{slug}",
        score=score,
        num_comments=comments,
        subreddit=subreddit,
    )


@pytest.fixture
def notifier() -> FakeNotifier:
    return FakeNotifier()


@pytest.fixture
def sleep() -> RecordedSleep:
    return RecordedSleep()


@pytest.fixture
def config(tmp_path: Path) -> Config:
    return Config(
        subreddits=["crochet", "knitting"],
        gemini_api_key="test-key",
        telegram_bot_token="123:abc",
        telegram_chat_id="42",
        reports_dir=tmp_path / "reports",
        analysis_dir=tmp_path / "analysis",
        log_dir=tmp_path / "log",
    )


@pytest.fixture
async def serve_app():
    """Start aiohttp apps on localhost; the returned coroutine gives the base URL."""
    servers: list[test_utils.TestServer] = []

    async def start(app: web.Application) -> str:
        server = test_utils.TestServer(app)
        await server.start_server()
        servers.append(server)
        return str(server.make_url("/")).rstrip("/")

    yield start
    for server in servers:
        await server.close()


class TelegramServer:
    """Bot API ``sendMessage`` and ``getUpdates`` on a local aiohttp app.

    ``send_response`` is (status, body); a str body is sent as plain text.
    ``updates`` is served one response per ``getUpdates`` call, in order.
    """

    def __init__(self, send_response=(200, {"ok": True, "result": {}}), updates=()):
        self.send_response = send_response
        self.updates = list(updates)
        self.sent: list[tuple[str, dict]] = []
        self.polls: list[dict] = []

    @staticmethod
    def respond(status: int, body) -> web.Response:
        if isinstance(body, str):
            return web.Response(text=body, status=status)
        return web.json_response(body, status=status)

    async def send_message(self, request: web.Request) -> web.Response:
        self.sent.append((request.match_info["token"], await request.json()))
        return self.respond(*self.send_response)

    async def get_updates(self, request: web.Request) -> web.Response:
        self.polls.append(dict(request.query))
        return self.respond(*self.updates.pop(0))

    def app(self) -> web.Application:
        app = web.Application()
        app.router.add_post("/bot{token}/sendMessage", self.send_message)
        app.router.add_get("/bot{token}/getUpdates", self.get_updates)
        return app
