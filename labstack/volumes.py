# labstack/volumes.py
# -*- coding: utf-8 -*-
"""
Lifecycle of the named volumes holding each service's persistent data.

Without `--fresh` existing volumes are reused untouched, so data survives
repeated runs. With `--fresh` every declared volume is removed first and then
recreated empty.
"""

import logging
from typing import Iterable, List, Optional

from common.command_utils import get_symbols, log_bootstrap
from common.container_runtime import ContainerRuntime
from labstack.config_models import AppSettings

module_logger = logging.getLogger(__name__)


class VolumeManager:
    """Creates and wipes named volumes through the container runtime."""

    def __init__(
        self,
        runtime: ContainerRuntime,
        app_settings: AppSettings,
        current_logger: Optional[logging.Logger] = None,
    ):
        self.runtime = runtime
        self.app_settings = app_settings
        self.logger = current_logger or module_logger
        self.symbols = get_symbols(app_settings)

    def ensure(self, name: str) -> bool:
        """Create the volume if absent. Returns True if it was created."""
        if self.runtime.volume_exists(name):
            log_bootstrap(
                f"Volume {name} already exists", "debug", self.logger, self.app_settings
            )
            return False
        self.runtime.volume_create(name)
        log_bootstrap(
            f"{self.symbols.get('success', '✅')} Created volume {name}",
            "success",
            self.logger,
            self.app_settings,
        )
        return True

    def wipe(self, name: str) -> None:
        """Remove the volume and its contents. A missing volume is not an error."""
        if self.runtime.volume_remove(name):
            log_bootstrap(
                f"{self.symbols.get('warning', '⚠️')} Wiped volume {name}",
                "info",
                self.logger,
                self.app_settings,
            )
        else:
            log_bootstrap(
                f"Volume {name} was not present; nothing to wipe",
                "debug",
                self.logger,
                self.app_settings,
            )

    def prepare(self, names: Iterable[str], fresh: bool) -> List[str]:
        """
        Bring every volume in `names` into existence, wiping them first when `fresh`.

        Returns:
            List[str]: Names of the volumes created by this call.
        """
        names = list(names)
        if fresh:
            log_bootstrap(
                f"{self.symbols.get('warning', '⚠️')} --fresh: wiping named volumes",
                "info",
                self.logger,
                self.app_settings,
            )
            for name in names:
                self.wipe(name)
        return [name for name in names if self.ensure(name)]


def prepare_volumes(
    app_settings: AppSettings,
    context: dict,
    current_logger: Optional[logging.Logger] = None,
    **kwargs,
) -> List[str]:
    """Orchestrator task: wipe (when fresh) and ensure every stack volume."""
    manager = VolumeManager(context["runtime"], app_settings, current_logger)
    return manager.prepare(app_settings.volume_names.values(), app_settings.fresh)
