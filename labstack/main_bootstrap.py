# labstack/main_bootstrap.py
# -*- coding: utf-8 -*-
"""
Main entry point for the lab stack bootstrapper.

Wires every step of a bootstrap run into an Orchestrator, in the order the
stack needs them: files on the host first, then images and volumes, then the
offline preparation of each volume, and finally the health-gated launch.
"""

import logging
from typing import List, Optional

from common.command_utils import get_symbols, log_bootstrap
from common.container_runtime import ContainerRuntime
from common.core_utils import setup_logging
from common.file_utils import (
    ArtifactWriter,
    cleanup_old_logs,
    ensure_directories,
    fix_project_ownership,
    make_run_timestamp,
)
from common.orchestrator import Orchestrator
from common.secret_utils import ensure_secret, generate_password, read_secret
from labstack.cli_handler import parse_args
from labstack.config_loader import load_app_settings, resolve_project_root
from labstack.config_models import AppSettings
from labstack.errors import ConfigurationError
from labstack.flow_engine import (
    configure_flow_engine_access,
    initialize_flow_engine_workdir,
)
from labstack.gateway import prepare_gateway_volumes, seed_startup_config
from labstack.images import pull_stack_images
from labstack.launcher import launch_stack, stop_stack
from labstack.permissions import (
    fix_broker_permissions,
    fix_flow_engine_permissions,
    resolve_flow_engine_identity,
)
from labstack.preflight import check_prerequisites, warn_if_runtime_root_nosuid
from labstack.templates import (
    COMPOSE_FILE_NAME,
    ENV_FILE_NAME,
    GATEWAY_STARTUP_RELATIVE_PATH,
    MQSC_RELATIVE_PATH,
    SECRET_FILES,
    compose_environment,
    render_compose_manifest,
    render_env_file,
    render_gateway_startup,
    render_mqsc,
)
from labstack.volumes import prepare_volumes

logger = logging.getLogger("labstack")

MQ_CONSOLE_URL = "https://localhost:9443/ibmmq/console/"
ACE_WEBUI_URL = "http://localhost:7600"


def remove_expired_logs(
    app_settings: AppSettings,
    context: dict,
    current_logger: Optional[logging.Logger] = None,
    **kwargs,
) -> List:
    return cleanup_old_logs(
        app_settings.logs_dir,
        app_settings.log_retention_days,
        app_settings,
        current_logger,
    )


def create_project_directories(
    app_settings: AppSettings,
    context: dict,
    current_logger: Optional[logging.Logger] = None,
    **kwargs,
) -> List:
    """Orchestrator task: project root, secrets, logs and the rendered-file folders."""
    root = app_settings.project_root
    log_bootstrap(f"Project root: {root}", "info", current_logger or logger, app_settings)
    return ensure_directories(
        [
            root,
            app_settings.secrets_dir,
            app_settings.logs_dir,
            (root / MQSC_RELATIVE_PATH).parent,
            (root / GATEWAY_STARTUP_RELATIVE_PATH).parent,
        ],
        app_settings,
        current_logger,
    )


def provision_secrets(
    app_settings: AppSettings,
    context: dict,
    current_logger: Optional[logging.Logger] = None,
    **kwargs,
) -> List[str]:
    """
    Orchestrator task: create missing secret files and load all of them.

    The values are kept in the context only; they reach compose through its
    process environment.
    """
    created = []
    passwords = {}
    for env_name, file_name in SECRET_FILES.items():
        path = app_settings.secrets_dir / file_name
        if ensure_secret(
            path,
            generator=lambda: generate_password(app_settings, current_logger),
            app_settings=app_settings,
            current_logger=current_logger,
        ):
            created.append(file_name)
        passwords[env_name] = read_secret(path)
    context["passwords"] = passwords
    context["compose_env"] = compose_environment(passwords)
    return created


def write_service_configs(
    app_settings: AppSettings,
    context: dict,
    current_logger: Optional[logging.Logger] = None,
    **kwargs,
) -> None:
    """Orchestrator task: broker MQSC script and gateway startup script."""
    writer: ArtifactWriter = context["writer"]
    root = app_settings.project_root
    writer.write_artifact(root / MQSC_RELATIVE_PATH, render_mqsc())
    writer.write_artifact(
        root / GATEWAY_STARTUP_RELATIVE_PATH, render_gateway_startup(app_settings)
    )


def write_compose_files(
    app_settings: AppSettings,
    context: dict,
    current_logger: Optional[logging.Logger] = None,
    **kwargs,
) -> None:
    """Orchestrator task: `.env` and the compose manifest."""
    writer: ArtifactWriter = context["writer"]
    root = app_settings.project_root
    writer.write_artifact(root / ENV_FILE_NAME, render_env_file(app_settings))
    writer.write_artifact(root / COMPOSE_FILE_NAME, render_compose_manifest(app_settings))


def log_summary(
    app_settings: AppSettings,
    context: dict,
    current_logger: Optional[logging.Logger] = None,
    **kwargs,
) -> None:
    logger_to_use = current_logger or logger
    symbols = get_symbols(app_settings)
    lines = [
        f"{symbols.get('sparkles', '✨')} Stack is up.",
        f"MQ console:   {MQ_CONSOLE_URL}",
        f"ACE web UI:   {ACE_WEBUI_URL} (user: {app_settings.ace_web_user})",
        f"DataPower UI: https://localhost:{app_settings.dp_webgui_port}",
        f"Secrets:      {app_settings.secrets_dir}",
    ]
    if app_settings.dp_ssh_enabled:
        lines.insert(4, f"DataPower SSH: localhost:{app_settings.dp_ssh_host_port}")
    for line in lines:
        log_bootstrap(line, "info", logger_to_use, app_settings)


def hand_over_project(
    app_settings: AppSettings,
    context: dict,
    current_logger: Optional[logging.Logger] = None,
    **kwargs,
) -> None:
    """Orchestrator task: chown the project tree to its owner when running as root."""
    fix_project_ownership(
        app_settings.project_root,
        app_settings.project_owner,
        app_settings,
        current_logger,
    )


def build_orchestrator(
    app_settings: AppSettings,
    runtime: ContainerRuntime,
    writer: ArtifactWriter,
    current_logger: Optional[logging.Logger] = None,
) -> Orchestrator:
    """Queue every bootstrap step. Best-effort steps are added with fatal=False."""
    logger_to_use = current_logger or logger
    orchestrator = Orchestrator(app_settings, logger_to_use)
    orchestrator.context["runtime"] = runtime
    orchestrator.context["writer"] = writer

    def add(name, func, fatal=True):
        orchestrator.add_task(
            name, func, kwargs={"current_logger": logger_to_use}, fatal=fatal
        )

    add("Remove expired run logs", remove_expired_logs, fatal=False)
    add("Check prerequisites", check_prerequisites)
    add("Create project directories", create_project_directories)
    add("Provision secrets", provision_secrets)
    add("Write broker and gateway configs", write_service_configs)
    add("Pull images", pull_stack_images)
    add("Check runtime root mount options", warn_if_runtime_root_nosuid, fatal=False)
    add("Resolve ACE runtime identity", resolve_flow_engine_identity)
    add("Write compose files", write_compose_files)
    add("Stop previous stack", stop_stack, fatal=False)
    add("Prepare volumes", prepare_volumes)
    add("Fix MQ data permissions", fix_broker_permissions, fatal=False)
    add("Prepare DataPower volumes", prepare_gateway_volumes, fatal=False)
    add("Seed DataPower startup config", seed_startup_config)
    add("Fix ACE workdir permissions", fix_flow_engine_permissions, fatal=False)
    add("Initialize ACE workdir", initialize_flow_engine_workdir)
    add("Configure ACE access", configure_flow_engine_access)
    add("Launch stack", launch_stack)
    add("Summary", log_summary)
    add("Hand over project tree", hand_over_project, fatal=False)
    return orchestrator


def main(argv: Optional[List[str]] = None) -> int:
    """
    Main entry point for the bootstrapper.

    Args:
        argv: Command-line arguments. If None, sys.argv[1:] is used.

    Returns:
        Exit code (0 for success, 1 for failure). Fatal task failures exit
        the process with status 1 from the orchestrator.
    """
    parsed_args = parse_args(argv)
    timestamp = make_run_timestamp()
    log_name = f"bootstrap-{timestamp}.log"

    try:
        app_settings = load_app_settings(parsed_args)
    except ConfigurationError as e:
        setup_logging(
            logging.INFO, resolve_project_root(parsed_args) / "logs" / log_name
        )
        logger.error(f"Configuration error: {e}")
        return 1

    log_file = app_settings.logs_dir / log_name
    setup_logging(
        logging.DEBUG if app_settings.debug else logging.INFO,
        log_file,
        symbols=app_settings.symbols,
    )
    log_bootstrap(f"Run log: {log_file}", "info", logger, app_settings)

    try:
        runtime = ContainerRuntime(app_settings, logger)
        writer = ArtifactWriter(timestamp, app_settings, logger)
        build_orchestrator(app_settings, runtime, writer, logger).run()
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return 1

    log_bootstrap(
        f"{get_symbols(app_settings).get('success', '✅')} Bootstrap complete.",
        "success",
        logger,
        app_settings,
    )
    return 0
