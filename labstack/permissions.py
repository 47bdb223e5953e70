# labstack/permissions.py
# -*- coding: utf-8 -*-
"""
Ownership and mode fixes for the volumes mounted into each container.

Images run as a fixed, usually non-root, numeric user while freshly created
volumes belong to root. The runtime identity is read from the image itself
(a one-shot `id -u` / `id -g`) so an image update that changes the internal
user is picked up; a configured fallback is used when the probe fails.

Every change here is best effort: failures are logged as warnings and the
bootstrap continues.
"""

import logging
import re
import subprocess
from dataclasses import dataclass
from typing import Optional

from common.command_utils import get_symbols, log_bootstrap
from common.container_runtime import ContainerRuntime
from labstack.config_models import (
    ACE_RUNTIME_IDENTITY_DEFAULT,
    MQ_RUNTIME_IDENTITY_DEFAULT,
    AppSettings,
)
from labstack.errors import OneShotTimeoutError

module_logger = logging.getLogger(__name__)

MQ_DATA_MOUNT = "/mnt/mqm"
ACE_WORKDIR_MOUNT = "/workdir"
ACE_RUNTIME_USER = "aceuser"
ACE_WORKDIR_MODE = "u+rwX,g+rwX"


@dataclass(frozen=True)
class RuntimeIdentity:
    uid: int
    gid: int

    def __str__(self) -> str:
        return f"{self.uid}:{self.gid}"

    @classmethod
    def parse(cls, value: str) -> "RuntimeIdentity":
        uid, _, gid = value.partition(":")
        return cls(int(uid), int(gid or 0))


def resolve_runtime_identity(
    runtime: ContainerRuntime,
    image: str,
    user: Optional[str],
    default: RuntimeIdentity,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> RuntimeIdentity:
    """
    Ask the image which uid/gid its process runs as.

    With `user` set, that account is looked up; otherwise the image's default
    user is reported. Non-numeric output falls back to `default` field by field.
    """
    logger_to_use = current_logger if current_logger else module_logger
    target = f" {user}" if user else ""
    try:
        result = runtime.run_one_shot(
            image,
            f"id -u{target} 2>/dev/null; id -g{target} 2>/dev/null",
            check=False,
            quiet=True,
        )
        lines = [line.strip() for line in (result.stdout or "").splitlines() if line.strip()]
    except OneShotTimeoutError as e:
        log_bootstrap(
            f"{get_symbols(app_settings).get('warning', '⚠️')} {e}; using default identity {default}",
            "warning",
            logger_to_use,
            app_settings,
        )
        lines = []

    tail = lines[-2:]
    uid_text = tail[0] if len(tail) == 2 else ""
    gid_text = tail[-1] if len(tail) == 2 else ""
    uid = int(uid_text) if re.fullmatch(r"[0-9]+", uid_text) else default.uid
    gid = int(gid_text) if re.fullmatch(r"[0-9]+", gid_text) else default.gid
    identity = RuntimeIdentity(uid, gid)
    log_bootstrap(
        f"Runtime identity for {image}{f' ({user})' if user else ''}: {identity}",
        "info",
        logger_to_use,
        app_settings,
    )
    return identity


def fix_ownership(
    runtime: ContainerRuntime,
    image: str,
    volume: str,
    mount_path: str,
    identity: RuntimeIdentity,
    mode: str,
    setgid_dirs: bool = False,
    app_settings: Optional[AppSettings] = None,
    current_logger: Optional[logging.Logger] = None,
) -> bool:
    """
    chown/chmod a volume recursively from a root one-shot container.

    Args:
        mode: chmod mode, octal ("0777") or symbolic ("u+rwX,g+rwX").
        setgid_dirs: Also mark every directory 2775 so new files keep the group.

    Returns:
        bool: True on success, False if the change was rejected.
    """
    logger_to_use = current_logger if current_logger else module_logger
    symbols = get_symbols(app_settings)
    script = (
        f"set -e; mkdir -p {mount_path}; chown -R {identity} {mount_path}; "
        f"chmod -R {mode} {mount_path}"
    )
    if setgid_dirs:
        script += f"; find {mount_path} -type d -exec chmod 2775 {{}} + 2>/dev/null || true"

    log_bootstrap(
        f"{symbols.get('gear', '⚙️')} Setting {volume} ownership to {identity}, mode {mode}",
        "info",
        logger_to_use,
        app_settings,
    )
    try:
        runtime.run_one_shot(
            image, script, user="0:0", volumes=[(volume, mount_path)], check=True
        )
    except (subprocess.CalledProcessError, OneShotTimeoutError) as e:
        log_bootstrap(
            f"{symbols.get('warning', '⚠️')} Could not fix ownership of {volume}: {e}",
            "warning",
            logger_to_use,
            app_settings,
        )
        return False
    return True


def fix_broker_permissions(
    app_settings: AppSettings,
    context: dict,
    current_logger: Optional[logging.Logger] = None,
    **kwargs,
) -> bool:
    """Orchestrator task: give the broker data volume to the broker's runtime user."""
    runtime = context["runtime"]
    identity = resolve_runtime_identity(
        runtime,
        app_settings.mq_image,
        None,
        RuntimeIdentity.parse(MQ_RUNTIME_IDENTITY_DEFAULT),
        app_settings,
        current_logger,
    )
    return fix_ownership(
        runtime,
        app_settings.mq_image,
        app_settings.volume_names["mqdata"],
        MQ_DATA_MOUNT,
        identity,
        app_settings.mqdata_perms,
        app_settings=app_settings,
        current_logger=current_logger,
    )


def resolve_flow_engine_identity(
    app_settings: AppSettings,
    context: dict,
    current_logger: Optional[logging.Logger] = None,
    **kwargs,
) -> RuntimeIdentity:
    """Orchestrator task: look up the flow engine's runtime user and keep it in the context."""
    identity = resolve_runtime_identity(
        context["runtime"],
        app_settings.ace_image,
        ACE_RUNTIME_USER,
        RuntimeIdentity.parse(ACE_RUNTIME_IDENTITY_DEFAULT),
        app_settings,
        current_logger,
    )
    context["ace_identity"] = identity
    return identity


def fix_flow_engine_permissions(
    app_settings: AppSettings,
    context: dict,
    current_logger: Optional[logging.Logger] = None,
    **kwargs,
) -> bool:
    """Orchestrator task: hand the flow-engine workdir volume to its runtime user."""
    identity = context.get("ace_identity") or RuntimeIdentity.parse(ACE_RUNTIME_IDENTITY_DEFAULT)
    return fix_ownership(
        context["runtime"],
        app_settings.ace_image,
        app_settings.volume_names["acework"],
        ACE_WORKDIR_MOUNT,
        identity,
        ACE_WORKDIR_MODE,
        setgid_dirs=True,
        app_settings=app_settings,
        current_logger=current_logger,
    )
