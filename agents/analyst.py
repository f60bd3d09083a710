"""Analyst agent that turns trending posts into an insight bundle.

The agent sends the fetched posts to a text-generation model and asks for a
JSON object describing keywords, recurring phrases, user problems, trending
topics and sentiment. The model answers in free-form text, so the JSON is
extracted opportunistically and validated for shape only.

Parsing Contract:
    ``extract_insights`` returns either ParsedInsights or RawInsights and
    never coerces a bad answer into an empty structure on its own. The
    analyst decides how to fall back:
        - parsed          -> OK with the parsed bundle
        - prose only      -> DEGRADED, empty bundle keeping the raw text
        - broken JSON     -> DEGRADED, empty bundle, alert sent
        - model failure   -> DEGRADED, empty bundle ("Analysis failed"), alert sent
"""

import json
import logging
import re

from openai import AsyncOpenAI
from pydantic import ValidationError
from pydantic_ai import Agent
from pydantic_ai.models import Model
from pydantic_ai.models.google import GoogleModel
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.google import GoogleProvider
from pydantic_ai.providers.openai import OpenAIProvider

from config import Config
from models.insights import InsightBundle
from models.post import RedditPost
from models.results import ParsedInsights, RawInsights, InsightParse, StageResult

logger = logging.getLogger(__name__)

# Greedy on purpose: spans from the first '{' to the last '}'
_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)

ANALYSIS_FAILED = "Analysis failed"

ANALYST_PROMPT = """You are a trend analyst for online hobby communities.

You will receive the current hot posts of several subreddits. Identify
patterns, trends and insights, and answer with ONE JSON object using exactly
this structure:

{
  "new_keywords": [{"term": "keyword", "relevance": "high/medium/low"}],
  "recurring_phrases": [{"phrase": "example phrase", "frequency": 5}],
  "user_problems": [{"problem": "user pain point", "mentions": 3}],
  "trending_topics": [{"topic": "topic name", "growth": "increasing/stable/decreasing"}],
  "sentiment_analysis": {"positive": 0.6, "neutral": 0.3, "negative": 0.1}
}

Rules:
- Base every entry on the posts provided; do not invent data.
- Keep terms, phrases and problems short (a few words each).
- Sentiment shares must add up to 1.0.
- Output the JSON object only, without commentary."""


def _parse_local_model(model_str: str) -> tuple[str, str] | None:
    """Parse 'openai:{model_name}@{base_url}' into (model_name, base_url)."""
    if model_str.startswith("openai:") and "@" in model_str:
        rest = model_str[7:]
        model_name, base_url = rest.split("@", 1)
        return model_name, base_url
    return None


def _create_model(model: str | Model, api_key: str = ""):
    """Create a PydanticAI model instance or pass through a model string.

    Supports:
    - Self-hosted OpenAI-compatible endpoints: 'openai:{model}@http://host:port/v1'
    - Gemini models: 'google-gla:gemini-2.5-flash' (keyed by ``api_key`` when given)
    - Other remote models as PydanticAI model strings
    - Model instances (used as is)
    """
    if not isinstance(model, str):
        return model
    parsed = _parse_local_model(model)
    if parsed:
        model_name, base_url = parsed
        logger.info("Using self-hosted model | model=%s base_url=%s", model_name, base_url)
        client = AsyncOpenAI(base_url=base_url, api_key="local-model")
        return OpenAIChatModel(model_name=model_name, provider=OpenAIProvider(openai_client=client))
    if api_key and model.startswith("google-gla:"):
        return GoogleModel(model.split(":", 1)[1], provider=GoogleProvider(api_key=api_key))
    return model


def _create_agent(model: str | Model, api_key: str = "") -> Agent[None, str]:
    """Create the underlying PydanticAI agent with free-form text output."""
    return Agent(
        _create_model(model, api_key),
        output_type=str,
        system_prompt=ANALYST_PROMPT,
        retries=2,
    )


def build_prompt(posts: list[RedditPost]) -> str:
    """Serialize posts into the user message sent to the model."""
    blocks = [
        f"Title: {post.title}\n"
        f"Score: {post.score}\n"
        f"Comments: {post.num_comments}\n"
        f"Subreddit: {post.subreddit}"
        for post in posts
    ]
    return "Here are the posts to analyze:\n\n" + "\n\n".join(blocks)


def extract_insights(text: str) -> InsightParse:
    """Extract an insight bundle from free-form model output.

    Args:
        text: Raw model answer

    Returns:
        ParsedInsights when a JSON object with the expected shape was found,
        RawInsights otherwise
    """
    text = text or ""
    match = _JSON_OBJECT.search(text)
    if not match:
        return RawInsights(raw_text=text, reason="no JSON object in model output")

    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        return RawInsights(raw_text=text, reason=f"invalid JSON: {e}", parse_error=True)

    try:
        bundle = InsightBundle.model_validate(data)
    except ValidationError as e:
        return RawInsights(
            raw_text=text,
            reason=f"unexpected JSON shape ({e.error_count()} errors)",
            parse_error=True,
        )
    return ParsedInsights(bundle=bundle, raw_text=text)


class InsightAnalyst:
    """Generates an insight bundle for a batch of posts.

    Example:
        >>> analyst = InsightAnalyst("google-gla:gemini-2.5-flash", notifier)
        >>> result = await analyst.analyze(posts)
        >>> result.value.new_keywords
    """

    def __init__(self, model: str | Model, notifier=None, api_key: str = ""):
        """Initialize the analyst.

        Args:
            model: PydanticAI model string or model instance
            notifier: Optional notifier receiving model and parsing alerts
            api_key: Gemini API key for 'google-gla:' models
        """
        self.notifier = notifier
        self._agent = _create_agent(model, api_key)

    @classmethod
    def from_config(cls, config: Config, notifier=None) -> "InsightAnalyst":
        return cls(config.insight_model, notifier=notifier, api_key=config.gemini_api_key)

    async def _alert(self, message: str) -> None:
        if self.notifier is not None:
            await self.notifier.send_alert(message)

    async def generate(self, posts: list[RedditPost]) -> str:
        """Run the model on the posts and return its raw text answer."""
        result = await self._agent.run(build_prompt(posts))
        usage = result.usage()
        logger.info(
            "Model answered | posts=%d chars=%d requests=%d tokens=%s",
            len(posts), len(result.output), usage.requests, usage.total_tokens,
        )
        return result.output

    async def analyze(self, posts: list[RedditPost]) -> StageResult[InsightBundle]:
        """Analyze posts, falling back to an empty bundle on any failure."""
        if not posts:
            logger.warning("Analysis skipped, no posts")
            return StageResult.degraded(InsightBundle.empty(ANALYSIS_FAILED), "no posts to analyze")

        logger.info("Analysis started | posts=%d", len(posts))
        try:
            text = await self.generate(posts)
        except Exception as e:
            logger.error("Model call failed | error=%s type=%s", e, type(e).__name__, exc_info=True)
            await self._alert(f"Gemini API error: {e}")
            return StageResult.degraded(InsightBundle.empty(ANALYSIS_FAILED), str(e))

        parsed = extract_insights(text)
        if isinstance(parsed, ParsedInsights):
            bundle = parsed.bundle
            logger.info(
                "Analysis complete | keywords=%d phrases=%d problems=%d",
                len(bundle.new_keywords), len(bundle.recurring_phrases), len(bundle.user_problems),
            )
            return StageResult.ok(bundle)

        logger.warning("Analysis unstructured | reason=%s", parsed.reason)
        if parsed.parse_error:
            await self._alert(f"JSON parsing error: {parsed.reason}")
        return StageResult.degraded(InsightBundle.empty(parsed.raw_text), parsed.reason)
