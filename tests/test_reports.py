"""Tests for report composition and local storage."""

import json
from datetime import date, datetime

import pytest

from conftest import make_post
from models.insights import InsightBundle, Keyword, Phrase, Problem, TrendingTopic
from reports import (
    compose_report,
    latest_report_date,
    list_report_paths,
    load_report,
    report_path,
    save_raw_analysis,
    save_report,
)


@pytest.fixture
def bundle() -> InsightBundle:
    return InsightBundle(
        new_keywords=[Keyword(term="mosaic crochet", relevance="high")],
        recurring_phrases=[Phrase(phrase="any tips", frequency=6)],
        user_problems=[Problem(problem="curling edges", mentions=3)],
        trending_topics=[TrendingTopic(topic="granny squares", growth="increasing")],
    )


def test_compose_keeps_top_posts_by_score(bundle):
    posts = [make_post("low", 1), make_post("high", 90), make_post("mid", 40), make_post("top", 120)]

    report = compose_report(date(2025, 11, 9), ["crochet"], bundle, posts, top_n=3)

    assert report.date == "2025-11-09"
    assert report.niches == ["crochet"]
    assert [p.title for p in report.top_reddit_posts] == ["top", "high", "mid"]
    assert report.gemini.new_keywords[0].term == "mosaic crochet"


def test_saved_file_uses_report_field_names(tmp_path, bundle):
    report = compose_report(date(2025, 11, 9), ["crochet", "knitting"], bundle, [make_post("p", 5, 3)])

    path = save_report(report, tmp_path / "reports")

    assert path == report_path(tmp_path / "reports", "2025-11-09")
    data = json.loads(path.read_text(encoding="utf-8"))
    assert set(data) == {"date", "niches", "gemini", "top_reddit_posts"}
    assert set(data["gemini"]) == {"new_keywords", "user_problems", "recurring_phrases"}
    assert data["top_reddit_posts"][0] == {
        "title": "p",
        "url": "https://www.reddit.com/r/crochet/comments/p",
        "score": 5,
        "numComments": 3,
        "subreddit": "r/crochet",
    }
    assert path.read_text(encoding="utf-8").startswith('{\n  "date"')


def test_load_report_reads_saved_report(tmp_path, bundle):
    report = compose_report(date(2025, 11, 9), ["crochet"], bundle, [make_post("p", 5, 3)])
    path = save_report(report, tmp_path)

    loaded = load_report(path)

    assert loaded == report
    assert loaded.top_reddit_posts[0].num_comments == 3


def test_raw_analysis_keeps_full_bundle(tmp_path, bundle):
    path = save_raw_analysis(bundle, tmp_path / "analysis", datetime(2025, 11, 9, 9, 0, 5))

    assert path.name == "analysis-2025-11-09T09-00-05.json"
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["trending_topics"][0]["topic"] == "granny squares"
    assert "sentiment_analysis" in data


def test_list_and_latest_ignore_other_files(tmp_path):
    for name in ("2025-11-08.json", "2025-11-10.json", "2025-11-09.json", "notes.json", "2025-11-11.txt"):
        (tmp_path / name).write_text("{}", encoding="utf-8")

    names = [p.name for p in list_report_paths(tmp_path)]

    assert names == ["2025-11-10.json", "2025-11-09.json", "2025-11-08.json"]
    assert latest_report_date(tmp_path) == "2025-11-10"


def test_latest_without_reports(tmp_path):
    assert latest_report_date(tmp_path) is None
    assert latest_report_date(tmp_path / "missing") is None
