# labstack/cli_handler.py
# -*- coding: utf-8 -*-
"""
Command-line interface of the bootstrapper.
"""

import argparse
from typing import List, Optional

ENV_OVERRIDES_HELP = """\
Env overrides:
  PROJECT_ROOT, PROJECT_OWNER, STACK_NAME
  MQ_IMAGE, ACE_IMAGE, DP_IMAGE, MQ_QMGR_NAME
  NOFILE_SOFT, NOFILE_HARD, MQDATA_PERMS
  ACE_WEB_USER
  DP_WEBGUI_BIND, DP_WEBGUI_PORT, DP_SSH_ENABLED, DP_SSH_HOST_PORT, DP_SSH_CONTAINER_PORT
  DOCKER_RUN_TIMEOUT, HEALTH_MAX_ATTEMPTS, HEALTH_DELAY_SECONDS
  MQDATA_VOL, ACEWORK_VOL, DPCONFIG_VOL, DPLOCAL_VOL, DPTMP_VOL
  CONTAINER_RUNTIME_COMMAND, LOG_RETENTION_DAYS
"""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="labstack-bootstrap",
        description="Bootstrap the MQ + ACE + DataPower lab stack.",
        epilog=ENV_OVERRIDES_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--fresh",
        "--refresh",
        dest="fresh",
        action="store_true",
        default=None,
        help="Wipe named volumes (MQ/ACE/DP persisted data) before start.",
    )
    parser.add_argument(
        "--project-root",
        dest="project_root",
        default=None,
        metavar="PATH",
        help="Project directory (default: ./mq-ace-dp).",
    )
    parser.add_argument(
        "--config",
        dest="config_file",
        default=None,
        metavar="PATH",
        help="YAML settings file (default: <project-root>/stack.yaml if present).",
    )
    parser.add_argument(
        "--debug",
        dest="debug",
        action="store_true",
        default=None,
        help="Log every external command and its output.",
    )
    return parser


def parse_args(args: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments. Unknown arguments exit with status 2."""
    return build_parser().parse_args(args)
