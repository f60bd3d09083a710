"""Tests for the dashboard data layer, rendering and HTTP routes."""

import pytest
from fastapi.testclient import TestClient

from conftest import make_post
from dashboard import find_report, keyword_frequencies, load_reports, render_dashboard, search_reports
from models.insights import Keyword
from models.report import DailyReport, ReportInsights
from reports import save_report
from server import NO_REPORTS, create_app


def make_report(day: str, keywords: list[str], niches: list[str] | None = None) -> DailyReport:
    return DailyReport(
        date=day,
        niches=niches or ["crochet"],
        gemini=ReportInsights(new_keywords=[Keyword(term=k) for k in keywords]),
        top_reddit_posts=[make_post(f"Post of {day}", 42, 7)],
    )


@pytest.fixture
def reports_dir(tmp_path):
    directory = tmp_path / "reports"
    save_report(make_report("2025-11-08", ["mosaic", "C2C"]), directory)
    save_report(make_report("2025-11-09", ["c2c", "tapestry"], ["knitting"]), directory)
    save_report(make_report("2025-11-10", ["c2c", "mosaic", "bobble"]), directory)
    return directory


class TestDataLayer:
    def test_load_reports_newest_first(self, reports_dir):
        assert [r.date for r in load_reports(reports_dir)] == ["2025-11-10", "2025-11-09", "2025-11-08"]

    def test_load_reports_skips_broken_files(self, reports_dir):
        (reports_dir / "2025-11-11.json").write_text("{not json", encoding="utf-8")
        assert len(load_reports(reports_dir)) == 3

    @pytest.mark.parametrize(
        "term, dates",
        [
            ("", ["2025-11-10", "2025-11-09", "2025-11-08"]),
            ("11-09", ["2025-11-09"]),
            ("KNIT", ["2025-11-09"]),
            ("mosaic", ["2025-11-10", "2025-11-08"]),
            ("amigurumi", []),
        ],
    )
    def test_search(self, reports_dir, term, dates):
        assert [r.date for r in search_reports(load_reports(reports_dir), term)] == dates

    def test_keyword_frequencies(self, reports_dir):
        frequencies = keyword_frequencies(load_reports(reports_dir))

        assert [(f.term, f.count) for f in frequencies] == [
            ("c2c", 3),
            ("mosaic", 2),
            ("bobble", 1),
            ("tapestry", 1),
        ]

    def test_keyword_frequencies_limit(self, reports_dir):
        assert len(keyword_frequencies(load_reports(reports_dir), limit=2)) == 2

    def test_find_report(self, reports_dir):
        reports = load_reports(reports_dir)
        assert find_report(reports, "2025-11-09").niches == ["knitting"]
        assert find_report(reports, "2024-01-01") is None


class TestRendering:
    def test_page_lists_reports_and_detail(self, reports_dir):
        reports = load_reports(reports_dir)
        html = render_dashboard(reports, "", reports[0])

        assert "2025-11-08" in html
        assert "Report 2025-11-10" in html
        assert "Post of 2025-11-10" in html
        assert "bobble" in html

    def test_escapes_user_content(self):
        report = make_report("2025-11-09", ["<script>alert(1)</script>"])
        html = render_dashboard([report], '"><b>', report)

        assert "<script>alert(1)</script>" not in html
        assert "&lt;script&gt;" in html
        assert '"><b>' not in html

    def test_empty_state(self):
        html = render_dashboard([])
        assert "No reports found." in html
        assert "No keywords yet." in html


class TestServer:
    def test_health_without_reports(self, config):
        client = TestClient(create_app(config))

        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "lastReport": NO_REPORTS}

    def test_health_reports_latest_date(self, config, reports_dir):
        config.reports_dir = reports_dir
        client = TestClient(create_app(config))

        assert client.get("/health").json() == {"status": "ok", "lastReport": "2025-11-10"}

    def test_report_api(self, config, reports_dir):
        config.reports_dir = reports_dir
        client = TestClient(create_app(config))

        listed = client.get("/api/reports", params={"q": "tapestry"}).json()
        assert [r["date"] for r in listed] == ["2025-11-09"]
        assert listed[0]["top_reddit_posts"][0]["numComments"] == 7

        assert client.get("/api/reports/2025-11-08").json()["gemini"]["new_keywords"][0]["term"] == "mosaic"
        assert client.get("/api/reports/2020-01-01").status_code == 404

    def test_keywords_api(self, config, reports_dir):
        config.reports_dir = reports_dir
        client = TestClient(create_app(config))

        assert client.get("/api/keywords", params={"limit": 1}).json() == [{"term": "c2c", "count": 3}]
        assert client.get("/api/keywords", params={"limit": 0}).status_code == 422

    def test_dashboard_page(self, config, reports_dir):
        config.reports_dir = reports_dir
        client = TestClient(create_app(config))

        response = client.get("/", params={"date": "2025-11-09"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/html")
        assert "Report 2025-11-09" in response.text
