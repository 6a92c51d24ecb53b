import logging
from dataclasses import asdict, dataclass
from typing import Optional

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notice:
    title: str
    description: str
    variant: str = "default"

    def as_dict(self) -> dict[str, str]:
        return asdict(self)


class Notifier:
    """Turns outcomes into user-facing notices and keeps a log of them."""

    def __init__(self, log: Optional[logging.Logger] = None) -> None:
        self.log = log or logger

    def success(self, title: str, description: str) -> Notice:
        self.log.info(f"notice: variant=success title={title!r}")
        return Notice(title=title, description=description)

    def failure(self, description: str, title: str = "Error") -> Notice:
        self.log.warning(f"notice: variant=destructive description={description!r}")
        return Notice(title=title, description=description, variant="destructive")
