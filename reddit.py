"""Reddit trend fetching.

This module fetches the current hot posts of a set of subreddits and
normalizes them into RedditPost records.

Access Modes:
    - Public: ``https://www.reddit.com/r/<name>/hot.json`` (no credentials)
    - OAuth: application-only token via the ``client_credentials`` grant,
      then ``https://oauth.reddit.com/r/<name>/hot``. Used when both
      REDDIT_CLIENT_ID and REDDIT_CLIENT_SECRET are configured.

Error Handling Strategy:
    - ``fetch_hot`` raises RedditError for a single feed
    - ``fetch_trending`` fetches feeds one after another; a failing feed is
      logged, alerted and skipped without affecting the others
"""

import asyncio
import logging
import time

import aiohttp

from config import Config
from http_utils import DEFAULT_TIMEOUT, client_timeout, create_ssl_context
from models.post import RedditPost
from models.results import StageResult

logger = logging.getLogger(__name__)

PUBLIC_BASE_URL = "https://www.reddit.com"
OAUTH_BASE_URL = "https://oauth.reddit.com"
TOKEN_URL = "https://www.reddit.com/api/v1/access_token"


class RedditError(Exception):
    """Raised when a subreddit listing cannot be fetched."""


def parse_listing(payload: dict) -> list[RedditPost]:
    """Normalize a Reddit listing payload into posts.

    Skips stickied (pinned moderator) posts and entries without a title.

    Args:
        payload: Decoded JSON of a ``/hot`` listing

    Returns:
        List of RedditPost objects in listing order
    """
    children = payload.get("data", {}).get("children", []) if isinstance(payload, dict) else []
    posts = []
    for child in children:
        data = child.get("data", {}) if isinstance(child, dict) else {}
        title = (data.get("title") or "").strip()
        if not title or data.get("stickied"):
            continue

        url = data.get("url") or ""
        if not url and data.get("permalink"):
            url = f"{PUBLIC_BASE_URL}{data['permalink']}"

        subreddit = data.get("subreddit_name_prefixed") or ""
        if not subreddit and data.get("subreddit"):
            subreddit = f"r/{data['subreddit']}"

        posts.append(RedditPost(
            title=title,
            url=url,
            score=int(data.get("score") or 0),
            num_comments=int(data.get("num_comments") or 0),
            subreddit=subreddit,
        ))
    return posts


class RedditClient:
    """Async client for subreddit hot listings.

    Example:
        >>> client = RedditClient(user_agent="niche-scraper/0.1")
        >>> posts = await client.fetch_hot("crochet", limit=10)
    """

    def __init__(
        self,
        user_agent: str,
        client_id: str = "",
        client_secret: str = "",
        timeout: float = DEFAULT_TIMEOUT,
        public_url: str = PUBLIC_BASE_URL,
        oauth_url: str = OAUTH_BASE_URL,
        token_url: str = TOKEN_URL,
    ):
        self.user_agent = user_agent
        self.timeout = timeout
        self._public_url = public_url.rstrip("/")
        self._oauth_url = oauth_url.rstrip("/")
        self._token_url = token_url
        self._client_id = client_id
        self._client_secret = client_secret
        self._token: str | None = None
        self._token_expires = 0.0

    @classmethod
    def from_config(cls, config: Config) -> "RedditClient":
        return cls(
            user_agent=config.reddit_user_agent,
            client_id=config.reddit_client_id,
            client_secret=config.reddit_client_secret,
        )

    @property
    def uses_oauth(self) -> bool:
        return bool(self._client_id and self._client_secret)

    async def _access_token(self, session: aiohttp.ClientSession) -> str:
        """Return a cached app-only token, refreshing it shortly before expiry."""
        if self._token and time.monotonic() < self._token_expires:
            return self._token

        async with session.post(
            self._token_url,
            data={"grant_type": "client_credentials"},
            auth=aiohttp.BasicAuth(self._client_id, self._client_secret),
            headers={"User-Agent": self.user_agent},
            timeout=client_timeout(self.timeout),
            ssl=create_ssl_context(),
        ) as resp:
            if resp.status != 200:
                raise RedditError(f"Reddit token request failed: HTTP {resp.status}")
            body = await resp.json(content_type=None)

        token = body.get("access_token") if isinstance(body, dict) else None
        if not token:
            raise RedditError("Reddit token response did not include an access_token")
        expires_in = float(body.get("expires_in", 3600))
        self._token = token
        self._token_expires = time.monotonic() + max(expires_in - 60, 0)
        return token

    async def fetch_hot(self, subreddit: str, limit: int = 10) -> list[RedditPost]:
        """Fetch the current hot posts of one subreddit.

        Args:
            subreddit: Community name without the 'r/' prefix
            limit: Number of listing entries to request

        Returns:
            Normalized posts (may be fewer than ``limit``)

        Raises:
            RedditError: On HTTP errors, timeouts or malformed responses
        """
        headers = {"User-Agent": self.user_agent}
        params = {"limit": str(limit), "raw_json": "1"}

        try:
            async with aiohttp.ClientSession() as session:
                if self.uses_oauth:
                    token = await self._access_token(session)
                    headers["Authorization"] = f"Bearer {token}"
                    url = f"{self._oauth_url}/r/{subreddit}/hot"
                else:
                    url = f"{self._public_url}/r/{subreddit}/hot.json"

                async with session.get(
                    url,
                    params=params,
                    headers=headers,
                    timeout=client_timeout(self.timeout),
                    ssl=create_ssl_context(),
                ) as resp:
                    if resp.status != 200:
                        raise RedditError(f"HTTP {resp.status} for r/{subreddit}")
                    payload = await resp.json(content_type=None)
        except asyncio.TimeoutError as e:
            raise RedditError(f"request for r/{subreddit} timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            raise RedditError(f"{type(e).__name__}: {e}") from e
        except ValueError as e:
            raise RedditError(f"invalid JSON for r/{subreddit}: {e}") from e

        posts = parse_listing(payload)
        logger.debug("Fetched r/%s | posts=%d", subreddit, len(posts))
        return posts[:limit]


async def fetch_trending(
    client: RedditClient,
    subreddits: list[str],
    limit: int = 10,
    notifier=None,
) -> StageResult[list[RedditPost]]:
    """Fetch hot posts from every subreddit, one feed at a time.

    Args:
        client: Reddit client (anything with a ``fetch_hot`` coroutine)
        subreddits: Communities to poll
        limit: Posts per community
        notifier: Optional notifier alerted for each failing feed

    Returns:
        StageResult with all posts sorted by score (highest first):
        OK if every feed answered, DEGRADED if some failed, FAILED if all did
    """
    posts: list[RedditPost] = []
    failed: list[str] = []

    for subreddit in subreddits:
        logger.info("Fetching posts | subreddit=r/%s", subreddit)
        try:
            fetched = await client.fetch_hot(subreddit, limit=limit)
        except Exception as e:
            failed.append(subreddit)
            logger.error("Subreddit fetch failed | subreddit=r/%s error=%s", subreddit, e, exc_info=True)
            if notifier is not None:
                await notifier.send_alert(f"Reddit API error for r/{subreddit}: {e}")
            continue
        logger.info("Fetched posts | subreddit=r/%s count=%d", subreddit, len(fetched))
        posts.extend(fetched)

    posts.sort(key=lambda p: p.score, reverse=True)
    logger.info(
        "Feeds fetched | posts=%d feeds=%d errors=%d",
        len(posts), len(subreddits), len(failed),
    )

    if failed and len(failed) == len(subreddits):
        return StageResult.failed(posts, f"all subreddits failed: {', '.join(failed)}")
    if failed:
        return StageResult.degraded(posts, f"failed subreddits: {', '.join(failed)}")
    return StageResult.ok(posts)
