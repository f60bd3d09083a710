"""Pipeline orchestration for the daily trend report.

This module coordinates one run of the workflow and the daily schedule.

Pipeline Flow:
    1. FETCH: Hot posts of every configured subreddit, one after another
    2. ANALYZE: Insight bundle from the text-generation model
    3. COMPOSE: Daily report (date, niches, insights, top posts)
    4. NOTIFY: Condensed report message to Telegram
    5. PERSIST: Report JSON (and the raw analysis) to local storage
    6. BACKUP: Mirror the report file into GitHub (optional)

Every stage returns a StageResult. A degraded stage hands a safe default to
the next one, so the run keeps going; the only stops are a fetch that
produced nothing at all (no report is written, so a later run can still
produce one for that date) and a failed persist (nothing to back up).
Unexpected exceptions end the run, are logged and alerted; the next
trigger starts fresh.

Scheduling:
    ``run_scheduled`` sleeps until the configured local time every day and
    runs the pipeline. Runs are not guarded against overlapping with a
    manual ``--now`` run in another process.
"""

import asyncio
import logging
import time
import uuid
from dataclasses import asdict, dataclass, field
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import Any, Awaitable, Callable

from agents.analyst import InsightAnalyst
from backup import ReportBackup
from config import Config
from models.insights import InsightBundle
from models.post import RedditPost
from models.report import DailyReport
from models.results import StageResult, StageStatus
from notifications import TelegramNotifier
from observability.logging import run_context
from observability.tracing import trace_operation
from reddit import RedditClient, fetch_trending
from reports import compose_report, save_raw_analysis, save_report

logger = logging.getLogger(__name__)


@dataclass
class PipelineStats:
    """Statistics from a single pipeline run.

    Attributes:
        run_id: Short id also attached to every log line of the run
        report_date: Date key of the report (YYYY-MM-DD)
        fetched: Posts fetched across all subreddits
        stages: Stage name -> StageStatus value
        report_path: Local report file, if written
        backup: BackupOutcome value, 'disabled' or 'skipped'
        errors: Stages that degraded or failed, plus unexpected errors
        duration: Total run time in seconds
    """

    run_id: str = ""
    report_date: str = ""
    fetched: int = 0
    stages: dict[str, str] = field(default_factory=dict)
    report_path: str = ""
    backup: str = "skipped"
    errors: int = 0
    duration: float = 0.0

    def record(self, stage: str, result: StageResult) -> None:
        """Record a stage status, counting anything but OK as an error."""
        self.stages[stage] = result.status.value
        if result.status is not StageStatus.OK:
            self.errors += 1

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        d = asdict(self)
        d["duration"] = round(d["duration"], 2)
        return d


def seconds_until_next_run(now: datetime, hour: int, minute: int) -> float:
    """Seconds from ``now`` until the next daily HH:MM strictly after it."""
    target = now.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if target <= now:
        target += timedelta(days=1)
    return (target - now).total_seconds()


class Pipeline:
    """Daily Reddit trend pipeline.

    All collaborators are passed in explicitly; ``from_config`` wires the
    production ones.

    Components:
        - fetcher: RedditClient (``fetch_hot``)
        - analyst: InsightAnalyst (``analyze``)
        - notifier: TelegramNotifier (``send_report``, ``send_alert``)
        - backup: ReportBackup (``upload``) or None when disabled
    """

    def __init__(
        self,
        config: Config,
        fetcher,
        analyst,
        notifier,
        backup=None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.config = config
        self.fetcher = fetcher
        self.analyst = analyst
        self.notifier = notifier
        self.backup = backup
        self._clock = clock

    @classmethod
    def from_config(cls, config: Config) -> "Pipeline":
        """Build the production pipeline.

        Raises:
            NotifierConfigError: If Telegram credentials are missing
            BackupConfigError: If backup is enabled but incomplete
        """
        notifier = TelegramNotifier.from_config(config)
        backup = ReportBackup.from_config(config, notifier) if config.backup_enabled else None
        if backup is None:
            logger.info("Report backup disabled | reason=no GitHub configuration")

        return cls(
            config,
            fetcher=RedditClient.from_config(config),
            analyst=InsightAnalyst.from_config(config, notifier),
            notifier=notifier,
            backup=backup,
        )

    # === Stages ===

    async def fetch(self) -> StageResult[list[RedditPost]]:
        with trace_operation("fetch", {"subreddits": len(self.config.subreddits)}) as attrs:
            result = await fetch_trending(
                self.fetcher,
                self.config.subreddits,
                limit=self.config.posts_per_subreddit,
                notifier=self.notifier,
            )
            attrs["posts"] = len(result.value)
        return result

    async def analyze(self, posts: list[RedditPost]) -> StageResult[InsightBundle]:
        with trace_operation("analyze", {"posts": len(posts)}):
            return await self.analyst.analyze(posts)

    async def notify(self, report: DailyReport) -> StageResult[bool]:
        with trace_operation("notify"):
            try:
                await self.notifier.send_report(report, self.config.report_hashtags)
            except Exception as e:
                logger.error("Report notification failed | error=%s", e, exc_info=True)
                await self.notifier.send_alert(f"Telegram notification error: {e}")
                return StageResult.degraded(False, str(e))
        return StageResult.ok(True)

    def persist(
        self,
        report: DailyReport,
        insights: InsightBundle,
        now: datetime,
    ) -> StageResult[Path | None]:
        with trace_operation("persist"):
            try:
                path = save_report(report, self.config.reports_dir)
            except OSError as e:
                logger.error("Report save failed | error=%s", e, exc_info=True)
                return StageResult.failed(None, str(e))

            # The raw analysis is auxiliary; failing to keep it is only logged
            try:
                save_raw_analysis(insights, self.config.analysis_dir, now)
            except OSError as e:
                logger.warning("Raw analysis save failed | error=%s", e)
        return StageResult.ok(path)

    async def backup_report(self, path: Path) -> StageResult[str]:
        if self.backup is None:
            return StageResult.ok("disabled")
        with trace_operation("backup", {"file": path.name}):
            outcome = await self.backup.upload(path)
        if outcome.succeeded:
            return StageResult.ok(outcome.value)
        # Not fatal: the local report is already written
        logger.error("Backup not completed | file=%s outcome=%s", path.name, outcome.value)
        return StageResult.failed(outcome.value, f"backup {outcome.value}")

    # === Runs ===

    async def _run_stages(self, report_date: date, now: datetime, stats: PipelineStats) -> None:
        fetched = await self.fetch()
        stats.record("fetch", fetched)
        stats.fetched = len(fetched.value)
        if not fetched.usable:
            logger.error("Run stopped, no posts fetched | error=%s", fetched.error)
            return

        insights = await self.analyze(fetched.value)
        stats.record("analyze", insights)

        report = compose_report(
            report_date,
            self.config.subreddits,
            insights.value,
            fetched.value,
            top_n=self.config.top_posts,
        )

        notified = await self.notify(report)
        stats.record("notify", notified)

        saved = self.persist(report, insights.value, now)
        stats.record("persist", saved)
        if not saved.usable or saved.value is None:
            await self.notifier.send_alert(f"Report save failed for {report.date}: {saved.error}")
            return
        stats.report_path = str(saved.value)

        backed_up = await self.backup_report(saved.value)
        stats.record("backup", backed_up)
        stats.backup = backed_up.value

    async def run_once(self, today: date | None = None) -> PipelineStats:
        """Execute one complete pipeline run.

        Never raises except on cancellation; failures are reflected in the
        returned stats and alerted.

        Args:
            today: Report date override (defaults to the clock's date)

        Returns:
            PipelineStats for the run
        """
        run_id = uuid.uuid4().hex[:8]
        start = time.time()
        now = self._clock()
        report_date = today or now.date()
        stats = PipelineStats(run_id=run_id, report_date=report_date.isoformat())

        with run_context(run_id):
            logger.info(
                "Pipeline started | date=%s subreddits=%d",
                stats.report_date, len(self.config.subreddits),
            )

            try:
                with trace_operation("pipeline_run", {"run_id": run_id}):
                    await self._run_stages(report_date, now, stats)
            except asyncio.CancelledError:
                logger.info("Pipeline run cancelled")
                raise
            except Exception as e:
                logger.error("Pipeline error | type=%s error=%s", type(e).__name__, e, exc_info=True)
                stats.errors += 1
                await self.notifier.send_alert(f"Unexpected error in daily run: {e}")

            stats.duration = time.time() - start
            logger.info(
                "Pipeline done | duration=%.1fs fetched=%d backup=%s errors=%d",
                stats.duration, stats.fetched, stats.backup, stats.errors,
            )
        return stats

    async def run_scheduled(
        self,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Run the pipeline every day at the configured local time."""
        hour, minute = self.config.schedule_hour_minute
        run_count = 0
        total_errors = 0

        logger.info("Scheduler started | daily_at=%02d:%02d", hour, minute)

        try:
            while True:
                delay = seconds_until_next_run(self._clock(), hour, minute)
                logger.info("Next run scheduled | in=%.0fs", delay)
                await sleep(delay)

                run_count += 1
                logger.info("Scheduled task started | run=%d", run_count)
                stats = await self.run_once()
                total_errors += stats.errors
                logger.info("Run complete | run=%d total_errors=%d", run_count, total_errors)
        except asyncio.CancelledError:
            logger.info("Scheduler stopped | runs=%d total_errors=%d", run_count, total_errors)
            raise


async def run_once(config: Config) -> dict[str, Any]:
    """Build the production pipeline, run it once and return stats."""
    pipeline = Pipeline.from_config(config)
    return (await pipeline.run_once()).to_dict()
