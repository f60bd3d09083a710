"""Reddit post model for trending items.

Each RedditPost is a flat, immutable record normalized from one entry of a
subreddit's hot listing. Posts live for the duration of a pipeline run and
are only persisted when they make it into a DailyReport.

Serialization:
    The comment count is written as ``numComments`` so report files stay
    compatible with the dashboard that reads them.
"""

from pydantic import BaseModel, ConfigDict, Field


class RedditPost(BaseModel):
    """A trending post fetched from a subreddit.

    Attributes:
        title: Post title
        url: Link target of the post (external link or the post itself)
        score: Net upvotes at fetch time
        num_comments: Comment count at fetch time
        subreddit: Prefixed community name, e.g. 'r/crochet'

    Example:
        >>> post = RedditPost(
        ...     title="My first amigurumi attempt!",
        ...     url="https://reddit.com/r/crochet/abc123",
        ...     score=523,
        ...     num_comments=112,
        ...     subreddit="r/crochet",
        ... )
        >>> post.model_dump(by_alias=True)["numComments"]
        112
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    title: str = Field(description="Post title")
    url: str = Field(default="", description="Link target of the post")
    score: int = Field(default=0, description="Net upvotes")
    num_comments: int = Field(default=0, alias="numComments", description="Comment count")
    subreddit: str = Field(default="", description="Prefixed subreddit name")

    def __str__(self) -> str:
        """Human-readable representation for logging."""
        return f"RedditPost({self.subreddit}, score={self.score}, '{self.title[:50]}')"
