"""Daily report model persisted once per calendar date.

A DailyReport is the single artifact of a scheduled run. Its date doubles as
the idempotency key: local filenames and remote backup paths are derived
from it, and a report is never mutated after it has been written.

File Format:
    {
      "date": "2025-11-09",
      "niches": ["CrochetHelp", "crochet"],
      "gemini": {
        "new_keywords": [...],
        "user_problems": [...],
        "recurring_phrases": [...]
      },
      "top_reddit_posts": [
        {"title": "...", "url": "...", "score": 523, "numComments": 112, "subreddit": "r/crochet"}
      ]
    }
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from models.insights import InsightBundle, Keyword, Phrase, Problem
from models.post import RedditPost


class ReportInsights(BaseModel):
    """Subset of the insight bundle stored in a report."""

    new_keywords: list[Keyword] = Field(default_factory=list)
    user_problems: list[Problem] = Field(default_factory=list)
    recurring_phrases: list[Phrase] = Field(default_factory=list)

    @classmethod
    def from_bundle(cls, bundle: InsightBundle) -> "ReportInsights":
        """Keep only the sub-lists reports and notifications read."""
        return cls(
            new_keywords=bundle.new_keywords,
            user_problems=bundle.user_problems,
            recurring_phrases=bundle.recurring_phrases,
        )


class DailyReport(BaseModel):
    """Persisted trend report for one date.

    Attributes:
        date: Report date as YYYY-MM-DD
        niches: Subreddits analyzed in the run
        gemini: Keywords, user problems and recurring phrases
        top_reddit_posts: Highest-scored posts of the run
    """

    model_config = ConfigDict(frozen=True)

    date: str = Field(description="Report date (YYYY-MM-DD)")
    niches: list[str] = Field(default_factory=list, description="Subreddits analyzed")
    gemini: ReportInsights = Field(default_factory=ReportInsights)
    top_reddit_posts: list[RedditPost] = Field(default_factory=list)

    def to_json_dict(self) -> dict[str, Any]:
        """Serialize using the on-disk field names."""
        return self.model_dump(mode="json", by_alias=True)

    def __str__(self) -> str:
        """Human-readable representation for logging."""
        return (
            f"DailyReport({self.date}, niches={len(self.niches)}, "
            f"posts={len(self.top_reddit_posts)})"
        )
