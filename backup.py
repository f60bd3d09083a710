"""Report backup into a GitHub repository.

This module mirrors local daily report files into a GitHub repository using
the contents API. A report date maps to exactly one remote path, and the
uploader never overwrites: if a file already exists at that path the backup
counts as done.

Backup Flow:
    1. Verify the local report exists and is readable (no retry if not)
    2. Check whether the remote path already exists
       - exists  -> ALREADY_PRESENT, nothing uploaded
       - 404     -> upload with a commit message naming the report date
    3. Any error in step 2 is a failed attempt; attempts are separated by a
       fixed delay and capped (3 attempts, 5 seconds by default)
    4. When every attempt failed, send one alert and return FAILED

Known Limitation:
    Presence is authoritative. If the local content for a date changes after
    it was uploaded, the remote copy is kept as is.
"""

import asyncio
import base64
import logging
import re
from datetime import date
from pathlib import Path
from typing import Awaitable, Callable
from urllib.parse import quote

import aiohttp

from config import Config
from http_utils import DEFAULT_TIMEOUT, client_timeout, create_ssl_context
from models.results import BackupOutcome

logger = logging.getLogger(__name__)

GITHUB_API_URL = "https://api.github.com"

_DATE_PATTERN = re.compile(r"\d{4}-\d{2}-\d{2}")


class GitHubError(Exception):
    """Raised when a GitHub API call fails.

    Attributes:
        status: HTTP status code, or None for transport errors
    """

    def __init__(self, message: str, status: int | None = None):
        super().__init__(message)
        self.status = status


class BackupConfigError(ValueError):
    """Raised when backup credentials or the target repository are missing."""


def remote_path_for(local_path: Path, prefix: str = "data/reports") -> str:
    """Derive the remote path for a local report file.

    The mapping only depends on the file name, which is what makes the
    existence check a valid idempotency guard.
    """
    prefix = prefix.strip("/")
    name = Path(local_path).name
    return f"{prefix}/{name}" if prefix else name


def commit_message_for(filename: str, today: date | None = None) -> str:
    """Build the commit message for a report upload.

    Uses the YYYY-MM-DD embedded in the file name, or today's date when the
    name carries none.
    """
    match = _DATE_PATTERN.search(filename)
    report_date = match.group(0) if match else (today or date.today()).isoformat()
    return f"Add daily report {report_date} ({filename})"


class GitHubContentsClient:
    """Minimal client for the GitHub repository contents API.

    Example:
        >>> client = GitHubContentsClient(token="ghp_...", repo="me/niche-reports")
        >>> await client.exists("data/reports/2025-11-09.json")
        False
    """

    def __init__(
        self,
        token: str,
        repo: str,
        branch: str = "main",
        timeout: float = DEFAULT_TIMEOUT,
        api_url: str = GITHUB_API_URL,
    ):
        """Initialize the client.

        Args:
            token: GitHub token with contents write permission
            repo: Target repository as 'owner/name'
            branch: Target branch
            timeout: Per-request timeout in seconds
            api_url: API base URL (GitHub Enterprise or tests)

        Raises:
            BackupConfigError: If the token is missing or repo is malformed
        """
        if not token:
            raise BackupConfigError("GITHUB_TOKEN is required for report backup")
        owner, _, name = repo.partition("/")
        if not owner or not name or "/" in name:
            raise BackupConfigError(f"GITHUB_REPO must be 'owner/name', got '{repo}'")

        self.owner = owner
        self.repo = name
        self.branch = branch or "main"
        self.timeout = timeout
        self._token = token
        self._api_url = api_url.rstrip("/")

    @classmethod
    def from_config(cls, config: Config) -> "GitHubContentsClient":
        return cls(
            token=config.github_token,
            repo=config.github_repo,
            branch=config.github_branch,
        )

    def _url(self, path: str) -> str:
        return f"{self._api_url}/repos/{self.owner}/{self.repo}/contents/{quote(path)}"

    def _headers(self) -> dict[str, str]:
        return {
            "Authorization": f"Bearer {self._token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
            "User-Agent": "niche-scraper",
        }

    async def exists(self, path: str) -> bool:
        """Check whether a file exists at ``path`` on the target branch.

        Returns:
            True on HTTP 200, False on HTTP 404

        Raises:
            GitHubError: On any other status or transport error
        """
        try:
            async with aiohttp.ClientSession() as session:
                async with session.get(
                    self._url(path),
                    params={"ref": self.branch},
                    headers=self._headers(),
                    timeout=client_timeout(self.timeout),
                    ssl=create_ssl_context(),
                ) as resp:
                    if resp.status == 200:
                        return True
                    if resp.status == 404:
                        return False
                    text = await resp.text()
                    raise GitHubError(
                        f"GitHub existence check failed: HTTP {resp.status} {text[:200]}",
                        status=resp.status,
                    )
        except asyncio.TimeoutError as e:
            raise GitHubError(f"GitHub request timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            raise GitHubError(f"GitHub request failed: {e}") from e

    async def put(self, path: str, content_b64: str, message: str) -> None:
        """Create a file at ``path`` with base64 content.

        Raises:
            GitHubError: On a non-2xx status or transport error
        """
        payload = {"message": message, "content": content_b64, "branch": self.branch}
        try:
            async with aiohttp.ClientSession() as session:
                async with session.put(
                    self._url(path),
                    json=payload,
                    headers=self._headers(),
                    timeout=client_timeout(self.timeout),
                    ssl=create_ssl_context(),
                ) as resp:
                    if resp.status in (200, 201):
                        return
                    text = await resp.text()
                    raise GitHubError(
                        f"GitHub upload failed: HTTP {resp.status} {text[:200]}",
                        status=resp.status,
                    )
        except asyncio.TimeoutError as e:
            raise GitHubError(f"GitHub request timed out after {self.timeout}s") from e
        except aiohttp.ClientError as e:
            raise GitHubError(f"GitHub request failed: {e}") from e


class ReportBackup:
    """Backs up local report files with bounded retries and alerting.

    The store only needs ``exists(path)`` and ``put(path, content_b64,
    message)`` coroutines; the notifier only needs ``send_alert(error)``.

    Example:
        >>> backup = ReportBackup(GitHubContentsClient(...), notifier)
        >>> outcome = await backup.upload(Path("data/reports/2025-11-09.json"))
        >>> outcome.succeeded
        True
    """

    def __init__(
        self,
        store,
        notifier=None,
        remote_prefix: str = "data/reports",
        attempts: int = 3,
        retry_delay: float = 5.0,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        """Initialize the uploader.

        Args:
            store: Remote store client (GitHubContentsClient in production)
            notifier: Receives one alert per exhausted upload; optional
            remote_prefix: Remote directory the reports are written to
            attempts: Total check-then-upload attempts (1 initial + retries)
            retry_delay: Fixed wait between attempts in seconds
            sleep: Awaitable used for the wait
        """
        if attempts < 1:
            raise ValueError("attempts must be at least 1")
        self.store = store
        self.notifier = notifier
        self.remote_prefix = remote_prefix
        self.attempts = attempts
        self.retry_delay = retry_delay
        self._sleep = sleep

    @classmethod
    def from_config(cls, config: Config, notifier=None) -> "ReportBackup":
        """Build the uploader from configuration.

        Raises:
            BackupConfigError: If GitHub credentials are incomplete
        """
        return cls(
            GitHubContentsClient.from_config(config),
            notifier=notifier,
            remote_prefix=config.github_reports_path,
            attempts=config.backup_attempts,
            retry_delay=config.backup_retry_delay,
        )

    async def _attempt(self, remote_path: str, content_b64: str, message: str) -> BackupOutcome:
        if await self.store.exists(remote_path):
            return BackupOutcome.ALREADY_PRESENT
        await self.store.put(remote_path, content_b64, message)
        return BackupOutcome.UPLOADED

    async def upload(self, local_path: Path) -> BackupOutcome:
        """Ensure the remote store holds a copy of ``local_path``.

        Never raises; the caller decides how to treat a failed outcome.

        Args:
            local_path: Report file already written to local storage

        Returns:
            BackupOutcome describing what happened
        """
        local_path = Path(local_path)
        if not local_path.is_file():
            logger.error("Backup skipped, report missing | file=%s", local_path)
            return BackupOutcome.SOURCE_MISSING

        filename = local_path.name
        remote_path = remote_path_for(local_path, self.remote_prefix)
        message = commit_message_for(filename)
        try:
            content_b64 = base64.b64encode(local_path.read_bytes()).decode("ascii")
        except OSError as e:
            logger.error("Backup skipped, report unreadable | file=%s error=%s", local_path, e)
            return BackupOutcome.SOURCE_MISSING

        last_error: Exception | None = None
        for attempt in range(1, self.attempts + 1):
            try:
                outcome = await self._attempt(remote_path, content_b64, message)
            except Exception as e:
                last_error = e
                logger.warning(
                    "Backup attempt failed | file=%s attempt=%d/%d error=%s",
                    filename, attempt, self.attempts, e,
                )
                if attempt < self.attempts:
                    await self._sleep(self.retry_delay)
                continue

            if outcome is BackupOutcome.ALREADY_PRESENT:
                logger.info("Backup already present | file=%s path=%s", filename, remote_path)
            else:
                logger.info("Backup uploaded | file=%s path=%s attempt=%d", filename, remote_path, attempt)
            return outcome

        logger.error(
            "Backup failed | file=%s attempts=%d error=%s",
            filename, self.attempts, last_error,
        )
        if self.notifier is not None:
            await self.notifier.send_alert(
                f"GitHub backup failed for {filename} after {self.attempts} attempts: {last_error}"
            )
        return BackupOutcome.FAILED
