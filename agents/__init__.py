"""PydanticAI agents for the Niche Scraper pipeline.

InsightAnalyst:
    Sends trending posts to a text-generation model and extracts a
    structured insight bundle from its answer.

Example:
    >>> from agents import InsightAnalyst
    >>> analyst = InsightAnalyst.from_config(config, notifier)
"""

from agents.analyst import InsightAnalyst, build_prompt, extract_insights

__all__ = [
    "InsightAnalyst",
    "build_prompt",
    "extract_insights",
]
