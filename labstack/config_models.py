# labstack/config_models.py
# -*- coding: utf-8 -*-
"""
Pydantic models for the bootstrap configuration.

This module defines the structured settings for the lab stack bootstrapper,
including defaults, type annotations, and descriptions. Every templated
parameter can be overridden by an environment variable of the same name
(upper-case), by a YAML file, or by command-line arguments.

The settings object is frozen: it is built once at startup and passed to
every component.
"""

import os
import re
from pathlib import Path
from typing import Dict, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from common.network_utils import validate_port

# --- Default Static Values (can be overridden by config file/env/cli) ---
PROJECT_DIR_NAME_DEFAULT: str = "mq-ace-dp"

MQ_IMAGE_DEFAULT: str = "icr.io/ibm-messaging/mq:9.3.5.1-r2"
ACE_IMAGE_DEFAULT: str = "ibmcom/ace:latest"
DP_IMAGE_DEFAULT: str = "icr.io/cpopen/datapower/datapower-limited:10.5.0.2"

MQ_QMGR_NAME_DEFAULT: str = "QM1"
NOFILE_DEFAULT: int = 10240
MQDATA_PERMS_DEFAULT: str = "0777"

ACE_WEB_USER_DEFAULT: str = "Admin"

DP_WEBGUI_BIND_DEFAULT: str = "0.0.0.0"
DP_WEBGUI_PORT_DEFAULT: int = 9090
DP_SSH_HOST_PORT_DEFAULT: int = 65000
DP_SSH_CONTAINER_PORT_DEFAULT: int = 22

DOCKER_RUN_TIMEOUT_DEFAULT: int = 180
HEALTH_MAX_ATTEMPTS_DEFAULT: int = 60
HEALTH_DELAY_SECONDS_DEFAULT: float = 2.0
LOG_RETENTION_DAYS_DEFAULT: int = 30

CONTAINER_RUNTIME_COMMAND_DEFAULT: str = "docker"

# Fallback identities when the image cannot be probed.
MQ_RUNTIME_IDENTITY_DEFAULT: str = "1001:0"
ACE_RUNTIME_IDENTITY_DEFAULT: str = "1000:0"

SYMBOLS_DEFAULT: Dict[str, str] = {
    "success": "✅",
    "error": "❌",
    "warning": "⚠️",
    "info": "ℹ️",
    "step": "➡️",
    "gear": "⚙️",
    "package": "📦",
    "rocket": "🚀",
    "sparkles": "✨",
    "critical": "🔥",
    "debug": "🐛",
    "lock": "🔒",
}


def _default_project_root() -> Path:
    return Path.cwd() / PROJECT_DIR_NAME_DEFAULT


def _default_project_owner() -> str:
    return os.environ.get("SUDO_USER") or os.environ.get("USER", "")


def sanitize_stack_name(name: str) -> str:
    """Lower-case a stack name and replace anything outside [a-z0-9] with '_'."""
    return re.sub(r"[^a-z0-9]", "_", name.lower())


class AppSettings(BaseSettings):
    """Main bootstrap settings."""

    model_config = SettingsConfigDict(extra="ignore", frozen=True)

    project_root: Path = Field(
        default_factory=_default_project_root,
        description="Project directory holding secrets, rendered files and logs.",
    )
    project_owner: str = Field(
        default_factory=_default_project_owner,
        description="User that should own the project tree when running as root.",
    )
    stack_name: Optional[str] = Field(
        default=None,
        description="Prefix for named volumes. Defaults to the project directory name.",
    )

    mq_image: str = Field(default=MQ_IMAGE_DEFAULT, description="Broker (IBM MQ) image.")
    ace_image: str = Field(default=ACE_IMAGE_DEFAULT, description="Flow engine (ACE) image.")
    dp_image: str = Field(default=DP_IMAGE_DEFAULT, description="Gateway (DataPower) image.")

    mq_qmgr_name: str = Field(default=MQ_QMGR_NAME_DEFAULT, description="Queue manager name.")
    nofile_soft: int = Field(default=NOFILE_DEFAULT, gt=0, description="Broker soft nofile ulimit.")
    nofile_hard: int = Field(default=NOFILE_DEFAULT, gt=0, description="Broker hard nofile ulimit.")
    mqdata_perms: str = Field(
        default=MQDATA_PERMS_DEFAULT,
        description="Mode applied recursively to the broker data volume.",
    )

    ace_web_user: str = Field(default=ACE_WEB_USER_DEFAULT, description="ACE web UI admin user.")

    dp_webgui_bind: str = Field(default=DP_WEBGUI_BIND_DEFAULT, description="DataPower WebGUI bind address.")
    dp_webgui_port: int = Field(default=DP_WEBGUI_PORT_DEFAULT, description="DataPower WebGUI port.")
    dp_ssh_enabled: bool = Field(default=True, description="Enable SSH in the DataPower startup config.")
    dp_ssh_host_port: int = Field(default=DP_SSH_HOST_PORT_DEFAULT, description="Host port mapped to DataPower SSH.")
    dp_ssh_container_port: int = Field(
        default=DP_SSH_CONTAINER_PORT_DEFAULT,
        description="DataPower SSH port inside the container.",
    )

    docker_run_timeout: int = Field(
        default=DOCKER_RUN_TIMEOUT_DEFAULT,
        ge=0,
        description="Timeout in seconds for one-shot container runs; 0 disables it.",
    )
    health_max_attempts: int = Field(default=HEALTH_MAX_ATTEMPTS_DEFAULT, gt=0)
    health_delay_seconds: float = Field(default=HEALTH_DELAY_SECONDS_DEFAULT, ge=0)
    log_retention_days: int = Field(default=LOG_RETENTION_DAYS_DEFAULT, ge=0)

    container_runtime_command: str = Field(
        default=CONTAINER_RUNTIME_COMMAND_DEFAULT,
        description="Command for the container runtime CLI (e.g., docker, podman).",
    )

    mqdata_vol: Optional[str] = None
    acework_vol: Optional[str] = None
    dpconfig_vol: Optional[str] = None
    dplocal_vol: Optional[str] = None
    dptmp_vol: Optional[str] = None

    fresh: bool = Field(default=False, description="Wipe named volumes before start.")
    debug: bool = Field(default=False, description="Verbose command tracing.")

    symbols: Dict[str, str] = Field(default_factory=lambda: dict(SYMBOLS_DEFAULT))

    @field_validator("dp_webgui_port", "dp_ssh_host_port", "dp_ssh_container_port", mode="before")
    @classmethod
    def _check_port(cls, value):
        if not validate_port(value):
            raise ValueError(f"must be 1..65535 (got: {value})")
        return int(value)

    @field_validator("project_root")
    @classmethod
    def _absolute_root(cls, value: Path) -> Path:
        return value.expanduser().absolute()

    @field_validator("mqdata_perms")
    @classmethod
    def _check_mode(cls, value: str) -> str:
        if not re.fullmatch(r"[0-7]{3,4}", value):
            raise ValueError(f"must be an octal mode such as 0777 (got: {value})")
        return value

    @property
    def stack(self) -> str:
        return sanitize_stack_name(self.stack_name or self.project_root.name)

    @property
    def volume_names(self) -> Dict[str, str]:
        """Named volumes keyed by their compose-local name."""
        return {
            "mqdata": self.mqdata_vol or f"{self.stack}_mqdata",
            "acework": self.acework_vol or f"{self.stack}_acework",
            "dpconfig": self.dpconfig_vol or f"{self.stack}_dpconfig",
            "dplocal": self.dplocal_vol or f"{self.stack}_dplocal",
            "dptmp": self.dptmp_vol or f"{self.stack}_dptmp",
        }

    @property
    def secrets_dir(self) -> Path:
        return self.project_root / "secrets"

    @property
    def logs_dir(self) -> Path:
        return self.project_root / "logs"

    @property
    def images(self) -> Dict[str, str]:
        return {"mq": self.mq_image, "ace": self.ace_image, "datapower": self.dp_image}
