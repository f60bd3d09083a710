"""Configuration management for the Niche Scraper pipeline.

This module provides centralized configuration for all pipeline components.
All settings are loaded from environment variables (and an optional .env
file) with sensible defaults.

Environment Variables:
    Required:
        GEMINI_API_KEY: Google Gemini API key for the insight agent
        TELEGRAM_BOT_TOKEN: Bot token used for reports and alerts
        TELEGRAM_CHAT_ID: Chat that receives reports and alerts

    Reddit:
        SUBREDDITS: Comma-separated communities to poll
        POSTS_PER_SUBREDDIT: Hot posts fetched per community
        TOP_POSTS: Highest-scored posts kept in the report
        REDDIT_USER_AGENT: User-Agent sent to Reddit
        REDDIT_CLIENT_ID / REDDIT_CLIENT_SECRET: Optional app-only OAuth

    Analysis:
        INSIGHT_MODEL: PydanticAI model string (provider:model)
        REPORT_HASHTAGS: Hashtags appended to the Telegram report

    Backup (optional, enabled when GITHUB_TOKEN or GITHUB_REPO is set):
        GITHUB_TOKEN: Token with contents write access
        GITHUB_REPO: Target repository as owner/name
        GITHUB_BRANCH: Target branch (default: main)
        GITHUB_REPORTS_PATH: Remote directory for reports
        BACKUP_ATTEMPTS: Total check-then-upload attempts
        BACKUP_RETRY_DELAY: Fixed delay between attempts in seconds

    Output:
        REPORTS_DIR: Directory for daily JSON reports
        ANALYSIS_DIR: Directory for raw model analyses

    Scheduling / Server:
        SCHEDULE_TIME: Daily trigger as HH:MM local time
        HEALTH_HOST / HEALTH_PORT: Health and dashboard server binding

    Logging:
        LOG_DIR, LOG_LEVEL, LOG_FORMAT, LOG_BACKUP_COUNT, LOG_MAX_BYTES

    Optional Features:
        ENABLE_LOGFIRE / LOGFIRE_TOKEN: Logfire/OpenTelemetry tracing
"""

import os
import re
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import find_dotenv, load_dotenv


def _env(key: str, default: str = "") -> str:
    """Get string environment variable with optional default."""
    return os.environ.get(key, default)


def _env_int(key: str, default: int) -> int:
    """Get integer environment variable with default.

    Raises:
        ValueError: If value is set but cannot be parsed as integer
    """
    val = os.environ.get(key)
    if not val:
        return default
    try:
        return int(val)
    except ValueError:
        raise ValueError(f"Invalid integer value for {key}: '{val}'")


def _env_float(key: str, default: float) -> float:
    """Get float environment variable with default.

    Raises:
        ValueError: If value is set but cannot be parsed as float
    """
    val = os.environ.get(key)
    if not val:
        return default
    try:
        return float(val)
    except ValueError:
        raise ValueError(f"Invalid float value for {key}: '{val}'")


def _env_bool(key: str, default: bool = False) -> bool:
    """Get boolean environment variable with default.

    Recognizes truthy values: '1', 'true', 'yes', 'on'
    Recognizes falsy values: '0', 'false', 'no', 'off'
    """
    val = os.environ.get(key, "").lower()
    if val in ("1", "true", "yes", "on"):
        return True
    if val in ("0", "false", "no", "off"):
        return False
    return default


def _env_list(key: str, default: list[str]) -> list[str]:
    """Get comma-separated list environment variable with default."""
    val = os.environ.get(key)
    if not val:
        return list(default)
    return [item.strip() for item in val.split(",") if item.strip()]


DEFAULT_SUBREDDITS = [
    "CrochetHelp",
    "crochet",
    "crochetpatterns",
    "crocheting",
    "CrochetBlankets",
    "Brochet",
    "knitting",
]

DEFAULT_USER_AGENT = "niche-scraper/0.1 (trend digest bot)"

_SCHEDULE_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


@dataclass
class Config:
    """Application configuration loaded from environment variables.

    Use Config.load() to create an instance with values from the environment.

    Example:
        >>> config = Config.load()
        >>> if error := config.validate():
        ...     print(f"Config error: {error}")
    """

    # === Reddit ===
    subreddits: list[str] = field(default_factory=lambda: DEFAULT_SUBREDDITS.copy())
    posts_per_subreddit: int = 10  # POSTS_PER_SUBREDDIT
    top_posts: int = 3  # TOP_POSTS - posts kept in report and message
    reddit_user_agent: str = DEFAULT_USER_AGENT  # REDDIT_USER_AGENT
    reddit_client_id: str = ""  # REDDIT_CLIENT_ID
    reddit_client_secret: str = ""  # REDDIT_CLIENT_SECRET

    # === AI Model ===
    gemini_api_key: str = ""  # GEMINI_API_KEY
    insight_model: str = "google-gla:gemini-2.5-flash"  # INSIGHT_MODEL
    report_hashtags: str = "#crochet #knitting #crafts"  # REPORT_HASHTAGS

    # === Notifications ===
    telegram_bot_token: str = ""  # TELEGRAM_BOT_TOKEN
    telegram_chat_id: str = ""  # TELEGRAM_CHAT_ID

    # === Backup ===
    github_token: str = ""  # GITHUB_TOKEN
    github_repo: str = ""  # GITHUB_REPO - owner/name
    github_branch: str = "main"  # GITHUB_BRANCH
    github_reports_path: str = "data/reports"  # GITHUB_REPORTS_PATH
    backup_attempts: int = 3  # BACKUP_ATTEMPTS - initial attempt + retries
    backup_retry_delay: float = 5.0  # BACKUP_RETRY_DELAY - fixed, seconds

    # === Output Directories ===
    reports_dir: Path = field(default_factory=lambda: Path("data/reports"))  # REPORTS_DIR
    analysis_dir: Path = field(default_factory=lambda: Path("data/analysis"))  # ANALYSIS_DIR
    log_dir: Path = field(default_factory=lambda: Path("log"))  # LOG_DIR

    # === Scheduling / Server ===
    schedule_time: str = "09:00"  # SCHEDULE_TIME - daily, local time
    health_host: str = "0.0.0.0"  # HEALTH_HOST
    health_port: int = 3000  # HEALTH_PORT

    # === Logging Configuration ===
    log_level: str = "INFO"  # LOG_LEVEL
    log_backup_count: int = 30  # LOG_BACKUP_COUNT
    log_max_bytes: int = 0  # LOG_MAX_BYTES - 0 = time-based rotation
    log_format: str = "text"  # LOG_FORMAT - 'text' or 'json'

    # === Optional: Observability ===
    enable_logfire: bool = False  # ENABLE_LOGFIRE
    logfire_token: str = ""  # LOGFIRE_TOKEN

    @classmethod
    def load(cls, env_file: str | None = None) -> "Config":
        """Load configuration from environment variables.

        A .env file (``env_file``, or the nearest one above the working
        directory) is read first; variables already present in the
        environment take precedence.
        """
        load_dotenv(env_file or find_dotenv(usecwd=True))
        return cls(
            subreddits=_env_list("SUBREDDITS", DEFAULT_SUBREDDITS),
            posts_per_subreddit=_env_int("POSTS_PER_SUBREDDIT", 10),
            top_posts=_env_int("TOP_POSTS", 3),
            reddit_user_agent=_env("REDDIT_USER_AGENT", DEFAULT_USER_AGENT),
            reddit_client_id=_env("REDDIT_CLIENT_ID"),
            reddit_client_secret=_env("REDDIT_CLIENT_SECRET"),
            gemini_api_key=_env("GEMINI_API_KEY"),
            insight_model=_env("INSIGHT_MODEL", "google-gla:gemini-2.5-flash"),
            report_hashtags=_env("REPORT_HASHTAGS", "#crochet #knitting #crafts"),
            telegram_bot_token=_env("TELEGRAM_BOT_TOKEN"),
            telegram_chat_id=_env("TELEGRAM_CHAT_ID"),
            github_token=_env("GITHUB_TOKEN"),
            github_repo=_env("GITHUB_REPO"),
            github_branch=_env("GITHUB_BRANCH", "main"),
            github_reports_path=_env("GITHUB_REPORTS_PATH", "data/reports").strip("/"),
            backup_attempts=_env_int("BACKUP_ATTEMPTS", 3),
            backup_retry_delay=_env_float("BACKUP_RETRY_DELAY", 5.0),
            reports_dir=Path(_env("REPORTS_DIR", "data/reports")),
            analysis_dir=Path(_env("ANALYSIS_DIR", "data/analysis")),
            log_dir=Path(_env("LOG_DIR", "log")),
            schedule_time=_env("SCHEDULE_TIME", "09:00"),
            health_host=_env("HEALTH_HOST", "0.0.0.0"),
            health_port=_env_int("HEALTH_PORT", 3000),
            log_level=_env("LOG_LEVEL", "INFO").upper(),
            log_backup_count=_env_int("LOG_BACKUP_COUNT", 30),
            log_max_bytes=_env_int("LOG_MAX_BYTES", 0),
            log_format=_env("LOG_FORMAT", "text").lower(),
            enable_logfire=_env_bool("ENABLE_LOGFIRE", False),
            logfire_token=_env("LOGFIRE_TOKEN"),
        )

    @property
    def backup_enabled(self) -> bool:
        """Backup is opted into by setting any GitHub credential."""
        return bool(self.github_token or self.github_repo)

    @property
    def schedule_hour_minute(self) -> tuple[int, int]:
        """Parse SCHEDULE_TIME into (hour, minute)."""
        match = _SCHEDULE_PATTERN.match(self.schedule_time.strip())
        if not match:
            raise ValueError(f"Invalid SCHEDULE_TIME '{self.schedule_time}' - expected HH:MM")
        return int(match.group(1)), int(match.group(2))

    def validate_notifier(self) -> str | None:
        """Validate only what the Telegram notifier needs."""
        if not self.telegram_bot_token:
            return "TELEGRAM_BOT_TOKEN environment variable is required"
        if not self.telegram_chat_id:
            return "TELEGRAM_CHAT_ID environment variable is required"
        return None

    def validate(self) -> str | None:
        """Validate configuration for required fields and valid values.

        Backup credentials are not checked here: an incomplete backup
        configuration fails fast when the uploader is constructed.

        Returns:
            Error message string if invalid, None if valid.
        """
        if not self.gemini_api_key:
            return "GEMINI_API_KEY environment variable is required"
        if error := self.validate_notifier():
            return error
        if not self.subreddits:
            return "No SUBREDDITS configured"
        if self.posts_per_subreddit <= 0:
            return "POSTS_PER_SUBREDDIT must be positive"
        if self.top_posts <= 0:
            return "TOP_POSTS must be positive"
        if self.backup_attempts <= 0:
            return "BACKUP_ATTEMPTS must be positive"
        if self.backup_retry_delay < 0:
            return "BACKUP_RETRY_DELAY must be non-negative"
        if not _SCHEDULE_PATTERN.match(self.schedule_time.strip()):
            return f"Invalid SCHEDULE_TIME '{self.schedule_time}' - expected HH:MM"
        if not 0 < self.health_port < 65536:
            return "HEALTH_PORT must be between 1 and 65535"
        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            return f"Invalid LOG_LEVEL '{self.log_level}' - must be DEBUG, INFO, WARNING, ERROR, or CRITICAL"
        if self.log_format not in ("text", "json"):
            return f"Invalid LOG_FORMAT '{self.log_format}' - must be 'text' or 'json'"
        if self.log_backup_count < 0:
            return "LOG_BACKUP_COUNT must be non-negative"
        if self.log_max_bytes < 0:
            return "LOG_MAX_BYTES must be non-negative"
        return None
