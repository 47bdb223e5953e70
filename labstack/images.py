# labstack/images.py
# -*- coding: utf-8 -*-
"""
Pulls the pinned images of the stack.
"""

import logging
import subprocess
from typing import Iterable, Optional

from common.command_utils import get_symbols, log_bootstrap
from common.container_runtime import ContainerRuntime
from labstack.config_models import AppSettings
from labstack.errors import ImagePullError

module_logger = logging.getLogger(__name__)


def pull_images(
    runtime: ContainerRuntime,
    images: Iterable[str],
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> None:
    """
    Pull each image in order. The first failure aborts with ImagePullError;
    pulls are not retried.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    for image in images:
        log_bootstrap(
            f"{symbols.get('package', '📦')} Pulling {image}",
            "info",
            logger_to_use,
            app_settings,
        )
        try:
            runtime.pull(image)
        except subprocess.CalledProcessError as e:
            raise ImagePullError(image, e.returncode) from e


def pull_stack_images(
    app_settings: AppSettings,
    context: dict,
    current_logger: Optional[logging.Logger] = None,
    **kwargs,
) -> None:
    """Orchestrator task: pull the broker, flow-engine and gateway images."""
    pull_images(
        context["runtime"], app_settings.images.values(), app_settings, current_logger
    )
