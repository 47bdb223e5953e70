# labstack/flow_engine.py
# -*- coding: utf-8 -*-
"""
Offline preparation of the App Connect Enterprise (flow engine) workdir.

All commands run in one-shot containers against the workdir volume, before
the ace service is started.
"""

import logging
from typing import Dict, Optional

from common.command_utils import get_symbols, log_bootstrap
from common.container_runtime import ContainerRuntime
from labstack.config_models import AppSettings
from labstack.permissions import ACE_WORKDIR_MOUNT

module_logger = logging.getLogger(__name__)

WEB_USER_ENV = "ACE_WEB_USER"
WEB_PASSWORD_ENV = "ACE_WEB_PASSWORD"


class FlowEngineAdmin:
    """Admin commands against one flow-engine workdir volume."""

    def __init__(
        self,
        runtime: ContainerRuntime,
        app_settings: AppSettings,
        current_logger: Optional[logging.Logger] = None,
    ):
        self.runtime = runtime
        self.app_settings = app_settings
        self.logger = current_logger or module_logger
        self.image = app_settings.ace_image
        self.volume = app_settings.volume_names["acework"]

    def _run(self, command: str, check: bool = True, env: Optional[Dict[str, str]] = None, **kwargs):
        return self.runtime.run_one_shot(
            self.image,
            command,
            volumes=[(self.volume, ACE_WORKDIR_MOUNT)],
            env_names=list(env or {}),
            env=env,
            check=check,
            **kwargs,
        )

    def workdir_initialized(self) -> bool:
        result = self._run(
            f"test -d {ACE_WORKDIR_MOUNT}/config/common", check=False, quiet=True
        )
        return result.returncode == 0

    def initialize_workdir(self) -> bool:
        """Create the workdir unless it already exists. Returns True if it was created."""
        if self.workdir_initialized():
            log_bootstrap("ACE: workdir already initialized", "info", self.logger, self.app_settings)
            return False
        log_bootstrap(
            "ACE: initializing workdir via mqsicreateworkdir", "info", self.logger, self.app_settings
        )
        self._run(
            f"set -e; mqsicreateworkdir {ACE_WORKDIR_MOUNT}; mkdir -p {ACE_WORKDIR_MOUNT}/overrides"
        )
        return True

    def enable_auth(self) -> None:
        self._run(
            f"set -e; mkdir -p {ACE_WORKDIR_MOUNT}/overrides; "
            f"mqsichangeauthmode -w {ACE_WORKDIR_MOUNT} -b active"
        )

    def upsert_web_user(self, username: str, password: str) -> str:
        """
        Create the web user, or update its password if it already exists.

        The credentials reach the container as environment variables passed by
        name, so they never show up in the logged command line.

        Returns:
            str: "created" or "modified".
        """
        env = {WEB_USER_ENV: username, WEB_PASSWORD_ENV: password}
        base = f'mqsiwebuseradmin -w {ACE_WORKDIR_MOUNT} -u "${WEB_USER_ENV}" -a "${WEB_PASSWORD_ENV}"'

        created = self._run(f"{base} -c", check=False, env=env, quiet=True)
        if created.returncode == 0:
            log_bootstrap(
                f"{get_symbols(self.app_settings).get('success', '✅')} ACE: created web user {username}",
                "success",
                self.logger,
                self.app_settings,
            )
            return "created"

        self._run(f"{base} -m", env=env)
        log_bootstrap(
            f"{get_symbols(self.app_settings).get('success', '✅')} ACE: updated existing web user {username}",
            "success",
            self.logger,
            self.app_settings,
        )
        return "modified"


def initialize_flow_engine_workdir(
    app_settings: AppSettings,
    context: dict,
    current_logger: Optional[logging.Logger] = None,
    **kwargs,
) -> str:
    """Orchestrator task: create the ACE workdir if the volume does not hold one yet."""
    admin = FlowEngineAdmin(context["runtime"], app_settings, current_logger)
    return "created" if admin.initialize_workdir() else "existing"


def configure_flow_engine_access(
    app_settings: AppSettings,
    context: dict,
    current_logger: Optional[logging.Logger] = None,
    **kwargs,
) -> str:
    """Orchestrator task: activate web authentication and upsert the admin web user."""
    logger_to_use = current_logger if current_logger else module_logger
    admin = FlowEngineAdmin(context["runtime"], app_settings, logger_to_use)
    log_bootstrap(
        f"ACE: enabling auth + ensuring web user {app_settings.ace_web_user}",
        "info",
        logger_to_use,
        app_settings,
    )
    admin.enable_auth()
    return admin.upsert_web_user(
        app_settings.ace_web_user, context["passwords"][WEB_PASSWORD_ENV]
    )
