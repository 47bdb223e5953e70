# common/file_utils.py
# -*- coding: utf-8 -*-
"""
File system utility functions: backed-up artifact writes, directory creation,
log retention and project ownership.
"""

import datetime
import logging
import os
import pwd
import shutil
import tempfile
import time
from pathlib import Path
from typing import Iterable, List, Optional, Union

from labstack.config_models import AppSettings

from .command_utils import get_symbols, log_bootstrap

module_logger = logging.getLogger(__name__)

RUN_TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"


def make_run_timestamp(now: Optional[datetime.datetime] = None) -> str:
    """Timestamp shared by every backup and log file of one run."""
    return (now or datetime.datetime.now()).strftime(RUN_TIMESTAMP_FORMAT)


class ArtifactWriter:
    """
    Writes generated artifacts, keeping a timestamped copy of any previous version.

    All backups made by one writer share the same `.bak.<timestamp>` suffix, so
    the files replaced by a single run can be found together.
    """

    def __init__(
        self,
        timestamp: str,
        app_settings: Optional[AppSettings] = None,
        current_logger: Optional[logging.Logger] = None,
    ):
        self.timestamp = timestamp
        self.app_settings = app_settings
        self.logger = current_logger or module_logger

    def backup_path(self, path: Path) -> Path:
        return path.with_name(f"{path.name}.bak.{self.timestamp}")

    def write_artifact(self, path: Union[str, Path], content: str) -> Optional[Path]:
        """
        Back up `path` if it exists, then replace it with `content`.

        The new content goes to a temporary file in the same directory which is
        renamed over the destination, so a failed write leaves the old file in place.

        Returns:
            Optional[Path]: The backup file created, or None if there was nothing to back up.
        """
        path = Path(path)
        symbols = get_symbols(self.app_settings)
        path.parent.mkdir(parents=True, exist_ok=True)

        backup: Optional[Path] = None
        if path.exists():
            backup = self.backup_path(path)
            shutil.copy2(path, backup)
            log_bootstrap(
                f"{symbols.get('info', 'ℹ️')} Backup: {path} -> {backup}",
                "info",
                self.logger,
                self.app_settings,
            )

        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(content)
            if backup is not None:
                shutil.copymode(backup, tmp_name)
            else:
                os.chmod(tmp_name, 0o644)
            os.replace(tmp_name, path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise

        log_bootstrap(
            f"{symbols.get('success', '✅')} Wrote: {path}",
            "success",
            self.logger,
            self.app_settings,
        )
        return backup


def ensure_directories(
    directories: Iterable[Path],
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> List[Path]:
    """Create each directory (and parents) if missing. Returns the ones created."""
    logger_to_use = current_logger if current_logger else module_logger
    created: List[Path] = []
    for directory in directories:
        if not directory.is_dir():
            directory.mkdir(parents=True, exist_ok=True)
            created.append(directory)
            log_bootstrap(
                f"Created directory: {directory}",
                "debug",
                logger_to_use,
                app_settings,
            )
    return created


def cleanup_old_logs(
    log_dir: Path,
    retention_days: int,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
    pattern: str = "bootstrap-*.log",
    now: Optional[float] = None,
) -> List[Path]:
    """
    Delete run logs in `log_dir` whose modification time is older than `retention_days`.

    Errors removing individual files are logged and skipped.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    removed: List[Path] = []
    if retention_days <= 0 or not log_dir.is_dir():
        return removed

    cutoff = (now if now is not None else time.time()) - retention_days * 86400
    for log_file in sorted(log_dir.glob(pattern)):
        try:
            if log_file.is_file() and log_file.stat().st_mtime < cutoff:
                log_file.unlink()
                removed.append(log_file)
                log_bootstrap(
                    f"Removed old log: {log_file}", "info", logger_to_use, app_settings
                )
        except OSError as e:
            log_bootstrap(
                f"{symbols.get('warning', '⚠️')} Could not remove old log {log_file}: {e}",
                "warning",
                logger_to_use,
                app_settings,
            )
    return removed


def fix_project_ownership(
    project_root: Path,
    owner: str,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Hand the project tree to `owner` when the bootstrap runs as root.

    Best effort: an unknown user or a chown failure is logged as a warning.

    Returns:
        bool: True if ownership was changed.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)

    if os.geteuid() != 0 or not owner:
        return False
    try:
        entry = pwd.getpwnam(owner)
    except KeyError:
        log_bootstrap(
            f"{symbols.get('warning', '⚠️')} Project owner '{owner}' does not exist; leaving ownership unchanged.",
            "warning",
            logger_to_use,
            app_settings,
        )
        return False

    try:
        os.chown(project_root, entry.pw_uid, entry.pw_gid)
        for root, dirs, files in os.walk(project_root):
            for name in dirs + files:
                os.chown(os.path.join(root, name), entry.pw_uid, entry.pw_gid, follow_symlinks=False)
    except OSError as e:
        log_bootstrap(
            f"{symbols.get('warning', '⚠️')} Could not chown {project_root} to {owner}: {e}",
            "warning",
            logger_to_use,
            app_settings,
        )
        return False

    log_bootstrap(
        f"Project tree {project_root} now owned by {owner}",
        "info",
        logger_to_use,
        app_settings,
    )
    return True
