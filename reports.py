"""Daily report composition and local storage.

Reports are stored one file per date as ``<reports_dir>/<YYYY-MM-DD>.json``.
The full model output of each run is kept separately under
``<analysis_dir>/analysis-<timestamp>.json`` for later inspection.
"""

import json
import logging
import re
from datetime import date, datetime
from pathlib import Path

from models.insights import InsightBundle
from models.post import RedditPost
from models.report import DailyReport, ReportInsights

logger = logging.getLogger(__name__)

_REPORT_NAME = re.compile(r"^(\d{4}-\d{2}-\d{2})\.json$")


def compose_report(
    report_date: date,
    niches: list[str],
    insights: InsightBundle,
    posts: list[RedditPost],
    top_n: int = 3,
) -> DailyReport:
    """Merge fetched posts and generated insights into a daily report.

    Args:
        report_date: Calendar date the report belongs to
        niches: Subreddits analyzed
        insights: Insight bundle (parsed or fallback)
        posts: All fetched posts, any order
        top_n: Number of highest-scored posts to keep

    Returns:
        DailyReport keyed by ``report_date``
    """
    top_posts = sorted(posts, key=lambda p: p.score, reverse=True)[:top_n]
    return DailyReport(
        date=report_date.isoformat(),
        niches=list(niches),
        gemini=ReportInsights.from_bundle(insights),
        top_reddit_posts=top_posts,
    )


def report_path(reports_dir: Path, report_date: str) -> Path:
    """Local path of the report for a date."""
    return Path(reports_dir) / f"{report_date}.json"


def save_report(report: DailyReport, reports_dir: Path) -> Path:
    """Write a report to ``<reports_dir>/<date>.json``.

    Raises:
        OSError: If the directory or file cannot be written
    """
    reports_dir = Path(reports_dir)
    reports_dir.mkdir(parents=True, exist_ok=True)
    path = report_path(reports_dir, report.date)
    path.write_text(json.dumps(report.to_json_dict(), indent=2, ensure_ascii=False), encoding="utf-8")
    logger.info("Report saved | file=%s", path)
    return path


def save_raw_analysis(
    bundle: InsightBundle,
    analysis_dir: Path,
    timestamp: datetime | None = None,
) -> Path:
    """Write the complete insight bundle of a run.

    Raises:
        OSError: If the directory or file cannot be written
    """
    analysis_dir = Path(analysis_dir)
    analysis_dir.mkdir(parents=True, exist_ok=True)
    stamp = (timestamp or datetime.now()).strftime("%Y-%m-%dT%H-%M-%S")
    path = analysis_dir / f"analysis-{stamp}.json"
    path.write_text(bundle.model_dump_json(indent=2), encoding="utf-8")
    logger.debug("Raw analysis saved | file=%s", path.name)
    return path


def load_report(path: Path) -> DailyReport:
    """Read a report file.

    Raises:
        OSError: If the file cannot be read
        pydantic.ValidationError / ValueError: If the content is malformed
    """
    return DailyReport.model_validate_json(Path(path).read_text(encoding="utf-8"))


def list_report_paths(reports_dir: Path) -> list[Path]:
    """Report files named ``YYYY-MM-DD.json``, newest date first."""
    reports_dir = Path(reports_dir)
    if not reports_dir.is_dir():
        return []
    paths = [p for p in reports_dir.iterdir() if p.is_file() and _REPORT_NAME.match(p.name)]
    return sorted(paths, key=lambda p: p.name, reverse=True)


def latest_report_date(reports_dir: Path) -> str | None:
    """Most recent report date found in ``reports_dir``, or None."""
    paths = list_report_paths(reports_dir)
    if not paths:
        return None
    return _REPORT_NAME.match(paths[0].name).group(1)
