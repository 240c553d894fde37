"""Diagnostics — JSON log lines for blur runs, rotated under ~/.gaussblur/logs.

Blur timing records carry their geometry and plan as structured fields
(``extra=`` on the logging call); the formatter lifts them into a ``blur``
object so slow blurs can be filtered by size or radii. APP_LOG_DIR may move
the log directory, but only inside ~/.gaussblur. APP_LOG_LEVEL sets the level.
"""

import datetime
import json
import logging
import logging.handlers
import os
from pathlib import Path


logger = logging.getLogger(__name__)

APP_DIR = Path("~/.gaussblur")
LOG_NAME = "gaussblur.log"

# Record attributes set by engine.pipeline.run_box_passes
BLUR_FIELDS = ("width", "height", "radii", "elapsed_ms", "in_place", "skip_alpha")

MAX_LOG_AGE_DAYS = 7
MAX_LOG_BYTES = 10_000_000
LOG_BACKUPS = 7


def log_root() -> Path:
    return APP_DIR.expanduser()


def resolve_log_dir(requested: str | None) -> Path:
    """Log directory for ``requested``; anything outside the app dir is refused."""
    default = log_root() / "logs"
    if not requested:
        return default
    root = log_root().resolve()
    candidate = Path(requested).expanduser().resolve()
    if candidate != root and root not in candidate.parents:
        logger.warning("APP_LOG_DIR %s is outside %s, using default", candidate, root)
        return default
    return candidate


class JSONFormatter(logging.Formatter):
    """One JSON object per record, with blur fields grouped under ``blur``."""

    def format(self, record: logging.LogRecord) -> str:
        entry = {
            "timestamp": datetime.datetime.fromtimestamp(
                record.created, tz=datetime.timezone.utc
            ).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        blur = {name: getattr(record, name) for name in BLUR_FIELDS if hasattr(record, name)}
        if blur:
            entry["blur"] = blur
        if record.exc_info and record.exc_info[1] is not None:
            entry["exception"] = {
                "type": type(record.exc_info[1]).__name__,
                "traceback": self.formatException(record.exc_info),
            }
        return json.dumps(entry, default=str)


def prune_logs(log_dir: Path, max_age_days: int = MAX_LOG_AGE_DAYS) -> int:
    """Delete rotated log files older than ``max_age_days``. Returns the count."""
    cutoff = datetime.datetime.now().timestamp() - max_age_days * 86400
    removed = 0
    try:
        for path in log_dir.glob(f"{LOG_NAME}*"):
            if path.stat().st_mtime < cutoff:
                path.unlink(missing_ok=True)
                removed += 1
    except OSError as e:
        logger.debug("Log cleanup skipped: %s", e)
    return removed


def setup_structured_logging(log_dir: str | None = None) -> Path:
    """Attach a rotating JSON handler to the root logger.

    Args:
        log_dir: Override for APP_LOG_DIR (still confined to ~/.gaussblur).

    Returns:
        The directory logs are written to.
    """
    resolved = resolve_log_dir(log_dir or os.environ.get("APP_LOG_DIR"))
    resolved.mkdir(mode=0o700, parents=True, exist_ok=True)
    prune_logs(resolved)

    handler = logging.handlers.RotatingFileHandler(
        resolved / LOG_NAME,
        maxBytes=MAX_LOG_BYTES,
        backupCount=LOG_BACKUPS,
    )
    handler.setFormatter(JSONFormatter())

    root = logging.getLogger()
    level = os.environ.get("APP_LOG_LEVEL", "INFO").upper()
    root.setLevel(getattr(logging, level, logging.INFO))
    root.addHandler(handler)
    return resolved


def init_diagnostics(log_dir: str | None = None) -> Path:
    """Initialize logging. Call once at process start."""
    resolved = setup_structured_logging(log_dir)
    logger.info("Diagnostics initialized: logging=%s", resolved)
    return resolved
