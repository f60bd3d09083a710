"""HTTP server: health endpoint, report API and dashboard.

Routes:
    GET /health                 Liveness plus the date of the latest report
    GET /api/reports?q=         Stored reports, newest first, optionally filtered
    GET /api/reports/{date}     One report (404 if missing)
    GET /api/keywords?limit=    Keyword frequencies across reports
    GET /                       HTML dashboard (?q= search, ?date= detail)

Every request reads the report directory afresh, so reports written by the
scheduler in the same process show up without a restart.
"""

import logging

import uvicorn
from fastapi import FastAPI, HTTPException, Query
from fastapi.responses import HTMLResponse

from config import Config
from dashboard import find_report, keyword_frequencies, load_reports, render_dashboard, search_reports
from reports import latest_report_date

logger = logging.getLogger(__name__)

NO_REPORTS = "No reports yet"


def create_app(config: Config) -> FastAPI:
    """Build the FastAPI app reading reports from ``config.reports_dir``."""
    app = FastAPI(
        title="Niche Scraper",
        version="0.1.0",
        description="Daily Reddit trend reports",
    )

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {
            "status": "ok",
            "lastReport": latest_report_date(config.reports_dir) or NO_REPORTS,
        }

    @app.get("/api/reports")
    async def list_reports(q: str = Query("", max_length=100, description="Date, niche or keyword")):
        reports = search_reports(load_reports(config.reports_dir), q)
        return [r.to_json_dict() for r in reports]

    @app.get("/api/reports/{report_date}")
    async def get_report(report_date: str):
        report = find_report(load_reports(config.reports_dir), report_date)
        if report is None:
            raise HTTPException(status_code=404, detail=f"No report for {report_date}")
        return report.to_json_dict()

    @app.get("/api/keywords")
    async def keywords(limit: int = Query(10, ge=1, le=100)):
        frequencies = keyword_frequencies(load_reports(config.reports_dir), limit=limit)
        return [{"term": f.term, "count": f.count} for f in frequencies]

    @app.get("/", response_class=HTMLResponse)
    async def dashboard(q: str = "", date: str = ""):
        reports = load_reports(config.reports_dir)
        matches = search_reports(reports, q)
        selected = find_report(reports, date) if date else None
        return render_dashboard(matches, q, selected, keyword_frequencies(reports))

    return app


async def serve(config: Config) -> None:
    """Serve the app on HEALTH_HOST:HEALTH_PORT until shutdown."""
    server = uvicorn.Server(
        uvicorn.Config(
            create_app(config),
            host=config.health_host,
            port=config.health_port,
            log_level=config.log_level.lower(),
        )
    )
    logger.info("Health server starting | host=%s port=%d", config.health_host, config.health_port)
    await server.serve()
