# labstack/gateway.py
# -*- coding: utf-8 -*-
"""
DataPower gateway volume preparation and startup-config seeding.
"""

import logging
import subprocess
from typing import Optional

from common.command_utils import get_symbols, log_bootstrap
from common.container_runtime import ContainerRuntime
from labstack.config_models import AppSettings
from labstack.errors import OneShotTimeoutError
from labstack.templates import render_gateway_startup

module_logger = logging.getLogger(__name__)

CONFIG_MOUNT = "/cfg"
LOCAL_MOUNT = "/loc"
TEMP_MOUNT = "/tmpdp"
STARTUP_FILE_NAME = "auto-startup.cfg"


def prepare_gateway_volumes(
    app_settings: AppSettings,
    context: dict,
    current_logger: Optional[logging.Logger] = None,
    **kwargs,
) -> bool:
    """Orchestrator task: make the config, local and temporary volumes world-writable."""
    logger_to_use = current_logger if current_logger else module_logger
    runtime: ContainerRuntime = context["runtime"]
    volumes = app_settings.volume_names
    mounts = [
        (volumes["dpconfig"], CONFIG_MOUNT),
        (volumes["dplocal"], LOCAL_MOUNT),
        (volumes["dptmp"], TEMP_MOUNT),
    ]
    paths = " ".join(mount for _, mount in mounts)
    log_bootstrap(
        "DataPower: ensuring volumes are writable...", "info", logger_to_use, app_settings
    )
    try:
        runtime.run_one_shot(
            app_settings.dp_image,
            f"set -e; mkdir -p {paths}; chmod -R 0777 {paths} || true",
            user="0:0",
            volumes=mounts,
        )
    except (subprocess.CalledProcessError, OneShotTimeoutError) as e:
        log_bootstrap(
            f"{get_symbols(app_settings).get('warning', '⚠️')} DataPower volume permissions not applied: {e}",
            "warning",
            logger_to_use,
            app_settings,
        )
        return False
    return True


def seed_startup_config(
    app_settings: AppSettings,
    context: dict,
    current_logger: Optional[logging.Logger] = None,
    **kwargs,
) -> None:
    """
    Orchestrator task: copy auto-startup.cfg into the config volume.

    The file is written by a heredoc inside the container, so no host bind mount is needed.
    """
    logger_to_use = current_logger if current_logger else module_logger
    runtime: ContainerRuntime = context["runtime"]
    content = render_gateway_startup(app_settings)
    target = f"{CONFIG_MOUNT}/{STARTUP_FILE_NAME}"
    log_bootstrap(
        f"DataPower: seeding {STARTUP_FILE_NAME} into config volume...",
        "info",
        logger_to_use,
        app_settings,
    )
    runtime.run_one_shot(
        app_settings.dp_image,
        f"set -e; cat > {target} <<'CFG'\n{content}CFG\nchmod 0644 {target} || true",
        user="0:0",
        volumes=[(app_settings.volume_names["dpconfig"], CONFIG_MOUNT)],
    )
