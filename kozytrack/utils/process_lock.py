"""Single-instance lock file."""

import os
from pathlib import Path

from kozytrack.logging_config import get_logger, log_with_context

logger = get_logger(__name__)


def acquire_lock(lock_path: Path) -> bool:
    """Create the lock file exclusively, writing our PID into it.

    Returns:
        True if the lock was acquired, False if another instance holds it

    Raises:
        OSError: For failures other than the file already existing
    """
    try:
        with open(lock_path, "x", encoding="utf-8") as fh:
            fh.write(str(os.getpid()))
    except FileExistsError:
        try:
            existing_pid = lock_path.read_text(encoding="utf-8").strip()
        except OSError:
            existing_pid = "unknown"
        log_with_context(
            logger,
            "warning",
            "Another instance might be running. Delete the lock file if it is stale.",
            lock_file=str(lock_path),
            existing_pid=existing_pid,
            event_type="lock_held",
        )
        return False

    log_with_context(logger, "info", "Lock acquired", pid=os.getpid(), event_type="lock_acquired")
    return True


def release_lock(lock_path: Path) -> None:
    """Remove the lock file if present."""
    try:
        lock_path.unlink(missing_ok=True)
    except OSError as e:
        log_with_context(
            logger,
            "error",
            "Error releasing lock file",
            lock_file=str(lock_path),
            error=str(e),
            event_type="lock_release_failed",
        )
        return
    logger.info("Lock released")
