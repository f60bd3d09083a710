"""Insight bundle models produced by the analyst agent.

The generative model is asked to answer with a JSON object of this shape:

    {
      "new_keywords": [{"term": "...", "relevance": "high/medium/low"}],
      "recurring_phrases": [{"phrase": "...", "frequency": 5}],
      "user_problems": [{"problem": "...", "mentions": 3}],
      "trending_topics": [{"topic": "...", "growth": "increasing/stable/decreasing"}],
      "sentiment_analysis": {"positive": 0.6, "neutral": 0.3, "negative": 0.1}
    }

Every field has a default so a partially filled answer still validates.
Only the overall shape is checked; unknown keys are ignored.
"""

from pydantic import BaseModel, Field


class Keyword(BaseModel):
    """Newly surfacing search term."""

    term: str = Field(description="Keyword or short key phrase")
    relevance: str = Field(default="", description="high, medium or low")


class Phrase(BaseModel):
    """Phrase that keeps recurring across posts."""

    phrase: str = Field(description="Recurring phrase")
    frequency: int = Field(default=0, description="Approximate occurrence count")


class Problem(BaseModel):
    """Problem or pain point stated by users."""

    problem: str = Field(description="User problem in a few words")
    mentions: int = Field(default=0, description="Approximate mention count")


class TrendingTopic(BaseModel):
    """Topic with a growth direction."""

    topic: str = Field(description="Topic name")
    growth: str = Field(default="", description="increasing, stable or decreasing")


class Sentiment(BaseModel):
    """Share of positive, neutral and negative posts."""

    positive: float = 0.0
    neutral: float = 0.0
    negative: float = 0.0


class InsightBundle(BaseModel):
    """Structured output of the trend analysis step."""

    new_keywords: list[Keyword] = Field(default_factory=list)
    recurring_phrases: list[Phrase] = Field(default_factory=list)
    user_problems: list[Problem] = Field(default_factory=list)
    trending_topics: list[TrendingTopic] = Field(default_factory=list)
    sentiment_analysis: Sentiment = Field(default_factory=Sentiment)
    raw_analysis: str = Field(
        default="",
        description="Model text kept when no structured answer could be parsed",
    )

    @classmethod
    def empty(cls, raw_analysis: str = "") -> "InsightBundle":
        """Create an empty-but-shaped bundle for fallback cases.

        Args:
            raw_analysis: Unparsed model output or a failure marker

        Returns:
            InsightBundle with empty collections and zeroed sentiment
        """
        return cls(raw_analysis=raw_analysis)

    @property
    def is_empty(self) -> bool:
        """True when none of the insight collections carry entries."""
        return not (
            self.new_keywords
            or self.recurring_phrases
            or self.user_problems
            or self.trending_topics
        )
