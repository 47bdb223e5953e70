# labstack/preflight.py
# -*- coding: utf-8 -*-
"""
Checks run before anything is changed on the host.
"""

import logging
import subprocess
from typing import Optional, Tuple

from common.command_utils import command_exists, get_symbols, log_bootstrap, run_command
from common.container_runtime import ContainerRuntime
from labstack.config_models import AppSettings
from labstack.errors import PreconditionError

module_logger = logging.getLogger(__name__)


def require_command(command_name: str) -> None:
    if not command_exists(command_name):
        raise PreconditionError(f"Missing command: {command_name}")


def require_compose_v2(runtime: ContainerRuntime) -> None:
    if not runtime.compose_available():
        raise PreconditionError(f"{runtime.command} compose v2 not available.")


def check_prerequisites(
    app_settings: AppSettings,
    context: dict,
    current_logger: Optional[logging.Logger] = None,
    **kwargs,
) -> None:
    """Orchestrator task: the runtime CLI and its compose plugin must be installed."""
    require_command(app_settings.container_runtime_command)
    require_compose_v2(context["runtime"])
    log_bootstrap(
        f"{get_symbols(app_settings).get('success', '✅')} {app_settings.container_runtime_command} and compose v2 available",
        "info",
        current_logger if current_logger else module_logger,
        app_settings,
    )


def nosuid_mount_options(
    runtime: ContainerRuntime,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> Optional[Tuple[str, str]]:
    """
    Return (root dir, mount options) if the runtime's data root is mounted nosuid.

    Any probing problem (no findmnt, runtime info unavailable) yields None.
    """
    if not command_exists("findmnt"):
        return None

    root_dir = runtime.info("{{.DockerRootDir}}")
    if not root_dir:
        return None

    try:
        result = run_command(
            ["findmnt", "-no", "OPTIONS", "--target", root_dir],
            app_settings,
            check=False,
            capture_output=True,
            current_logger=current_logger,
            quiet=True,
        )
    except (OSError, subprocess.SubprocessError):
        return None
    options = (result.stdout or "").strip()
    if "nosuid" in options.split(","):
        return root_dir, options
    return None


def warn_if_runtime_root_nosuid(
    app_settings: AppSettings,
    context: dict,
    current_logger: Optional[logging.Logger] = None,
    **kwargs,
) -> None:
    """Orchestrator task: the broker can fail with internal errors on a nosuid runtime root."""
    logger_to_use = current_logger if current_logger else module_logger
    found = nosuid_mount_options(context["runtime"], app_settings, logger_to_use)
    if found:
        root_dir, options = found
        log_bootstrap(
            f"{get_symbols(app_settings).get('warning', '⚠️')} Runtime root ({root_dir}) is mounted with 'nosuid' ({options}). "
            "MQ can fail hard with internal errors on such setups.",
            "warning",
            logger_to_use,
            app_settings,
        )
