"""Pydantic models for the Niche Scraper pipeline.

This package contains the data models used throughout the pipeline:

RedditPost:
    Trending post normalized from a subreddit listing.

InsightBundle:
    Keywords, recurring phrases, user problems, trending topics and
    sentiment extracted by the analyst agent.

DailyReport:
    Persisted per-date report combining posts and insights.

StageResult / BackupOutcome / InsightParse:
    Explicit result types for pipeline stages, backups and parsing.

Example:
    >>> from models import RedditPost, InsightBundle
    >>> bundle = InsightBundle.empty("Analysis failed")
    >>> bundle.is_empty
    True
"""

from models.post import RedditPost
from models.insights import (
    InsightBundle,
    Keyword,
    Phrase,
    Problem,
    Sentiment,
    TrendingTopic,
)
from models.report import DailyReport, ReportInsights
from models.results import (
    BackupOutcome,
    InsightParse,
    ParsedInsights,
    RawInsights,
    StageResult,
    StageStatus,
)

__all__ = [
    "RedditPost",
    "InsightBundle",
    "Keyword",
    "Phrase",
    "Problem",
    "Sentiment",
    "TrendingTopic",
    "DailyReport",
    "ReportInsights",
    "BackupOutcome",
    "InsightParse",
    "ParsedInsights",
    "RawInsights",
    "StageResult",
    "StageStatus",
]
