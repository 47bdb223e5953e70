# common/secret_utils.py
# -*- coding: utf-8 -*-
"""
Generation and persistence of per-service credential files.
"""

import base64
import logging
import os
import secrets
from pathlib import Path
from typing import Callable, Optional

from labstack.config_models import AppSettings

from .command_utils import get_symbols, log_bootstrap

module_logger = logging.getLogger(__name__)

WEAK_FALLBACK_PASSWORD = "Passw0rd!ChangeMe"
PASSWORD_LENGTH = 20


def generate_password(
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> str:
    """
    Return a 20 character password drawn from the OS random source.

    The value is the base64 encoding of 18 random bytes with '/' and '+'
    replaced by 'A' and 'a'. If the platform has no secure random source a
    fixed, well-known password is returned and a warning is logged.
    """
    try:
        raw = secrets.token_bytes(18)
    except NotImplementedError:
        symbols = get_symbols(app_settings)
        log_bootstrap(
            f"{symbols.get('warning', '⚠️')} No secure random source available; "
            f"using the weak default password. Change it after the first start.",
            "warning",
            current_logger if current_logger else module_logger,
            app_settings,
        )
        return WEAK_FALLBACK_PASSWORD
    encoded = base64.b64encode(raw).decode("ascii")
    return encoded.translate(str.maketrans("/+", "Aa"))[:PASSWORD_LENGTH]


def ensure_secret(
    path: Path,
    generator: Callable[[], str] = generate_password,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Create a secret file unless a non-empty one already exists.

    An existing secret is never rotated. New files are created with mode 0600
    and parent directories are created as needed.

    Returns:
        bool: True if a new secret was written, False if an existing one was kept.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    path.parent.mkdir(parents=True, exist_ok=True)

    if path.is_file() and path.stat().st_size > 0:
        log_bootstrap(
            f"{symbols.get('lock', '🔒')} Keeping existing secret: {path}",
            "info",
            logger_to_use,
            app_settings,
        )
        return False

    value = generator()
    old_umask = os.umask(0o077)
    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(value)
    finally:
        os.umask(old_umask)
    try:
        os.chmod(path, 0o600)
    except OSError as e:
        log_bootstrap(
            f"{symbols.get('warning', '⚠️')} Could not restrict permissions on {path}: {e}",
            "warning",
            logger_to_use,
            app_settings,
        )

    log_bootstrap(
        f"{symbols.get('lock', '🔒')} Created secret: {path}",
        "info",
        logger_to_use,
        app_settings,
    )
    return True


def read_secret(path: Path) -> str:
    """Read a secret file, dropping any newlines."""
    return path.read_text(encoding="utf-8").replace("\n", "").replace("\r", "")
