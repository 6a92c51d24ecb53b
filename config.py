import os
from functools import lru_cache
from pathlib import Path


class Settings:
    def __init__(
        self,
        data_dir: Path,
        database_url: str,
        timezone: str,
        locale: str,
        forecast_months: int,
        export_prefix: str,
        backup_dir: Path,
        backup_keep: int,
    ) -> None:
        self.data_dir = data_dir
        self.database_url = database_url
        self.timezone = timezone
        self.locale = locale
        self.forecast_months = forecast_months
        self.export_prefix = export_prefix
        self.backup_dir = backup_dir
        self.backup_keep = backup_keep


def _ensure_data_dir() -> Path:
    root = Path(os.getenv("BUDGET_DATA_DIR", "./data")).resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    data_dir = _ensure_data_dir()
    default_db = data_dir / "budget.db"
    database_url = os.getenv("BUDGET_DATABASE_URL", f"sqlite:///{default_db}")
    timezone = os.getenv("BUDGET_TIMEZONE", "Europe/Istanbul")
    locale = os.getenv("BUDGET_LOCALE", "en").lower()
    forecast_months = int(os.getenv("BUDGET_FORECAST_MONTHS", "6"))
    export_prefix = os.getenv("BUDGET_EXPORT_PREFIX", "budget-data")
    backup_dir = Path(
        os.getenv("BUDGET_BACKUP_DIR", str(data_dir / "backups"))
    ).resolve()
    backup_keep = int(os.getenv("BUDGET_BACKUP_KEEP", "14"))
    return Settings(
        data_dir=data_dir,
        database_url=database_url,
        timezone=timezone,
        locale=locale,
        forecast_months=forecast_months,
        export_prefix=export_prefix,
        backup_dir=backup_dir,
        backup_keep=backup_keep,
    )
