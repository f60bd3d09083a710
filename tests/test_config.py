"""Tests for environment-driven configuration."""

from pathlib import Path

import pytest

from config import DEFAULT_SUBREDDITS, Config

ENV_KEYS = [
    "SUBREDDITS", "POSTS_PER_SUBREDDIT", "TOP_POSTS", "GEMINI_API_KEY",
    "TELEGRAM_BOT_TOKEN", "TELEGRAM_CHAT_ID", "GITHUB_TOKEN", "GITHUB_REPO",
    "GITHUB_REPORTS_PATH", "BACKUP_ATTEMPTS", "BACKUP_RETRY_DELAY", "REPORTS_DIR",
    "SCHEDULE_TIME", "HEALTH_PORT", "LOG_LEVEL", "LOG_FORMAT", "ENABLE_LOGFIRE",
]


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    for key in ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    # Keep a developer's .env out of the tests
    monkeypatch.chdir(tmp_path)
    return monkeypatch


def test_defaults(clean_env):
    config = Config.load()

    assert config.subreddits == DEFAULT_SUBREDDITS
    assert config.posts_per_subreddit == 10
    assert config.top_posts == 3
    assert config.backup_attempts == 3
    assert config.backup_retry_delay == 5.0
    assert config.reports_dir == Path("data/reports")
    assert config.schedule_hour_minute == (9, 0)
    assert config.health_port == 3000
    assert not config.backup_enabled


def test_environment_overrides(clean_env):
    clean_env.setenv("SUBREDDITS", "crochet, Amigurumi ,,")
    clean_env.setenv("GITHUB_REPO", "me/reports")
    clean_env.setenv("GITHUB_REPORTS_PATH", "/backups/reports/")
    clean_env.setenv("BACKUP_RETRY_DELAY", "0.5")
    clean_env.setenv("LOG_LEVEL", "debug")
    clean_env.setenv("ENABLE_LOGFIRE", "yes")

    config = Config.load()

    assert config.subreddits == ["crochet", "Amigurumi"]
    assert config.backup_enabled
    assert config.github_reports_path == "backups/reports"
    assert config.backup_retry_delay == 0.5
    assert config.log_level == "DEBUG"
    assert config.enable_logfire


def test_env_file_is_read(clean_env, tmp_path):
    env_file = tmp_path / "custom.env"
    env_file.write_text("GEMINI_API_KEY=from-file\nTOP_POSTS=5\n", encoding="utf-8")

    config = Config.load(str(env_file))

    assert config.gemini_api_key == "from-file"
    assert config.top_posts == 5


def test_invalid_integer(clean_env):
    clean_env.setenv("TOP_POSTS", "three")
    with pytest.raises(ValueError, match="TOP_POSTS"):
        Config.load()


def test_validate_accepts_complete_config(config):
    assert config.validate() is None


@pytest.mark.parametrize(
    "field, value, message",
    [
        ("gemini_api_key", "", "GEMINI_API_KEY"),
        ("telegram_bot_token", "", "TELEGRAM_BOT_TOKEN"),
        ("telegram_chat_id", "", "TELEGRAM_CHAT_ID"),
        ("subreddits", [], "SUBREDDITS"),
        ("backup_attempts", 0, "BACKUP_ATTEMPTS"),
        ("schedule_time", "9am", "SCHEDULE_TIME"),
        ("schedule_time", "24:00", "SCHEDULE_TIME"),
        ("health_port", 70000, "HEALTH_PORT"),
        ("log_format", "xml", "LOG_FORMAT"),
    ],
)
def test_validate_rejects(config, field, value, message):
    setattr(config, field, value)
    error = config.validate()
    assert error is not None
    assert message in error


def test_notifier_only_validation(config):
    config.gemini_api_key = ""
    assert config.validate_notifier() is None
    config.telegram_chat_id = ""
    assert "TELEGRAM_CHAT_ID" in config.validate_notifier()


def test_schedule_parsing(config):
    config.schedule_time = "7:05"
    assert config.schedule_hour_minute == (7, 5)
    config.schedule_time = "bogus"
    with pytest.raises(ValueError):
        _ = config.schedule_hour_minute
