import logging
from pathlib import Path
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from apscheduler.triggers.interval import IntervalTrigger

from config import get_settings
from database import session_scope
from services import BackupService


logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def prune_backups(directory: Path, prefix: str, keep: int) -> list[Path]:
    files = sorted(directory.glob(f"{prefix}-*.json"), reverse=True)
    removed = files[keep:] if keep > 0 else []
    for path in removed:
        path.unlink(missing_ok=True)
    return removed


def write_backup(service: BackupService, directory: Path) -> Path:
    directory.mkdir(parents=True, exist_ok=True)
    filename, content = service.export()
    path = directory / filename
    path.write_text(content, encoding="utf-8")
    return path


class SchedulerManager:
    def __init__(self, backup_dir: Optional[Path] = None) -> None:
        settings = get_settings()
        self.settings = settings
        self.backup_dir = backup_dir or settings.backup_dir
        self.scheduler = BackgroundScheduler(timezone=settings.timezone)

    def _run_job(self, source: str = "manual") -> None:
        logger.info(f"backup_run: source={source}")
        try:
            with session_scope() as session:
                path = write_backup(BackupService(session), self.backup_dir)
        except Exception:
            logger.exception(f"backup_run: source={source} failed")
            return
        removed = prune_backups(
            self.backup_dir, self.settings.export_prefix, self.settings.backup_keep
        )
        logger.info(
            f"backup_run: source={source} written={path.name} pruned={len(removed)}"
        )

    def start(self) -> None:
        self._run_job("startup")

        trigger = CronTrigger(hour=3, minute=15)
        self.scheduler.add_job(
            self._run_job,
            trigger,
            args=["daily_03:15"],
            id="backup_daily",
            replace_existing=True,
            misfire_grace_time=3600,
        )

        trigger = IntervalTrigger(hours=6)
        self.scheduler.add_job(
            self._run_job,
            trigger,
            args=["six_hourly_safety_net"],
            id="backup_safety",
            replace_existing=True,
            misfire_grace_time=300,
        )

        self.scheduler.start()
        logger.info("Scheduler started with daily 03:15 backup and 6-hourly safety net")

    def stop(self) -> None:
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
            logger.info("Scheduler stopped")
