"""Read-only dashboard over the stored daily reports.

The dashboard never talks to Reddit, the model or GitHub; it only reads the
report files written by the pipeline. It offers:
- Search across dates, niches and keywords
- A bar chart of the most frequent keywords across reports
- A report list and a detail view for one date

Rendering is plain HTML with inline CSS bars, served by ``server.py``.
"""

import logging
from dataclasses import dataclass
from html import escape
from pathlib import Path

from pydantic import ValidationError

from models.report import DailyReport
from reports import list_report_paths, load_report

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class KeywordFrequency:
    """How many reports mention a keyword."""

    term: str
    count: int


def load_reports(reports_dir: Path) -> list[DailyReport]:
    """Load every report, newest date first.

    Files that cannot be read or parsed are logged and skipped.
    """
    reports = []
    for path in list_report_paths(reports_dir):
        try:
            reports.append(load_report(path))
        except (OSError, ValueError, ValidationError) as e:
            logger.warning("Skipping unreadable report | file=%s error=%s", path.name, e)
    return reports


def _matches(report: DailyReport, term: str) -> bool:
    if term in report.date:
        return True
    if any(term in niche.lower() for niche in report.niches):
        return True
    return any(term in kw.term.lower() for kw in report.gemini.new_keywords)


def search_reports(reports: list[DailyReport], term: str) -> list[DailyReport]:
    """Reports whose date, a niche or a keyword contains ``term``.

    Matching is case-insensitive. An empty term returns every report.
    """
    term = term.strip().lower()
    if not term:
        return list(reports)
    return [r for r in reports if _matches(r, term)]


def find_report(reports: list[DailyReport], report_date: str) -> DailyReport | None:
    for report in reports:
        if report.date == report_date:
            return report
    return None


def keyword_frequencies(reports: list[DailyReport], limit: int = 10) -> list[KeywordFrequency]:
    """Most frequent keywords, counted once per report.

    Keywords are compared case-insensitively; the first spelling seen is
    kept for display. Ties are broken alphabetically.
    """
    counts: dict[str, int] = {}
    spelling: dict[str, str] = {}
    for report in reports:
        seen = set()
        for kw in report.gemini.new_keywords:
            key = kw.term.strip().lower()
            if not key or key in seen:
                continue
            seen.add(key)
            spelling.setdefault(key, kw.term.strip())
            counts[key] = counts.get(key, 0) + 1

    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [KeywordFrequency(term=spelling[key], count=count) for key, count in ranked[:limit]]


# === HTML ===

_PAGE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>Niche Scraper Dashboard</title>
<style>
body {{ font-family: system-ui, sans-serif; margin: 2rem; color: #222; }}
h1 {{ margin-bottom: 0.5rem; }}
.grid {{ display: grid; grid-template-columns: 1fr 2fr; gap: 2rem; }}
.bar-row {{ display: flex; align-items: center; margin: 0.2rem 0; }}
.bar-label {{ width: 12rem; overflow: hidden; text-overflow: ellipsis; white-space: nowrap; }}
.bar {{ background: #7b61ff; height: 1rem; margin-right: 0.5rem; }}
ul.reports li {{ margin: 0.3rem 0; }}
.selected {{ font-weight: bold; }}
.muted {{ color: #888; }}
</style>
</head>
<body>
<h1>Niche Scraper Dashboard</h1>
<form method="get" action="/">
<input type="text" name="q" value="{term}" placeholder="Search date, niche or keyword">
<button type="submit">Search</button>
</form>
<h2>Top keywords</h2>
{chart}
<div class="grid">
<section>
<h2>Reports ({count})</h2>
{listing}
</section>
<section>
{detail}
</section>
</div>
</body>
</html>
"""


def _render_chart(frequencies: list[KeywordFrequency]) -> str:
    if not frequencies:
        return '<p class="muted">No keywords yet.</p>'
    peak = max(f.count for f in frequencies)
    rows = []
    for f in frequencies:
        width = int(20 * f.count / peak)
        rows.append(
            f'<div class="bar-row"><span class="bar-label">{escape(f.term)}</span>'
            f'<span class="bar" style="width: {width}rem"></span>{f.count}</div>'
        )
    return "\n".join(rows)


def _render_listing(reports: list[DailyReport], term: str, selected: DailyReport | None) -> str:
    if not reports:
        return '<p class="muted">No reports found.</p>'
    items = []
    for report in reports:
        href = f"/?date={escape(report.date)}"
        if term:
            href += f"&amp;q={escape(term)}"
        css = ' class="selected"' if selected and selected.date == report.date else ""
        keywords = ", ".join(kw.term for kw in report.gemini.new_keywords[:3])
        items.append(
            f'<li{css}><a href="{href}">{escape(report.date)}</a> '
            f'<span class="muted">{escape(keywords)}</span></li>'
        )
    return '<ul class="reports">\n' + "\n".join(items) + "\n</ul>"


def _render_detail(report: DailyReport | None) -> str:
    if report is None:
        return '<p class="muted">Select a report to see its details.</p>'

    def bullet_list(values: list[str]) -> str:
        if not values:
            return '<p class="muted">None</p>'
        return "<ul>" + "".join(f"<li>{escape(v)}</li>" for v in values) + "</ul>"

    gemini = report.gemini
    posts = "".join(
        f'<li><a href="{escape(p.url)}">{escape(p.title)}</a> '
        f'<span class="muted">{escape(p.subreddit)} · 👍 {p.score} · 💬 {p.num_comments}</span></li>'
        for p in report.top_reddit_posts
    )
    return "\n".join([
        f"<h2>Report {escape(report.date)}</h2>",
        f'<p class="muted">Niches: {escape(", ".join(report.niches))}</p>',
        "<h3>New keywords</h3>",
        bullet_list([f"{k.term} ({k.relevance})" if k.relevance else k.term for k in gemini.new_keywords]),
        "<h3>User problems</h3>",
        bullet_list([f"{p.problem} ({p.mentions})" for p in gemini.user_problems]),
        "<h3>Recurring phrases</h3>",
        bullet_list([f"{p.phrase} ({p.frequency})" for p in gemini.recurring_phrases]),
        "<h3>Top posts</h3>",
        f"<ol>{posts}</ol>" if posts else '<p class="muted">None</p>',
    ])


def render_dashboard(
    reports: list[DailyReport],
    term: str = "",
    selected: DailyReport | None = None,
    frequencies: list[KeywordFrequency] | None = None,
) -> str:
    """Render the dashboard page.

    Args:
        reports: Reports to list (already filtered by ``term``)
        term: Current search term, echoed into the search box
        selected: Report shown in the detail panel
        frequencies: Keyword chart data (defaults to one computed from ``reports``)
    """
    if frequencies is None:
        frequencies = keyword_frequencies(reports)
    return _PAGE.format(
        term=escape(term),
        chart=_render_chart(frequencies),
        count=len(reports),
        listing=_render_listing(reports, term, selected),
        detail=_render_detail(selected),
    )
