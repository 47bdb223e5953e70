# labstack/templates.py
# -*- coding: utf-8 -*-
"""
Renderers for the files a bootstrap run generates.

- the compose manifest (`docker-compose.yml`);
- the `.env` file consumed by manifest interpolation;
- the broker MQSC script applied when the queue manager is created;
- the gateway `auto-startup.cfg`.

Passwords never appear in rendered text. The manifest references them as
`${VAR}` and `compose_environment` supplies the values to the compose process.
"""

from typing import Any, Dict

import yaml

from labstack.config_models import AppSettings

COMPOSE_FILE_NAME = "docker-compose.yml"
ENV_FILE_NAME = ".env"
MQSC_RELATIVE_PATH = "mq/mqsc/20-config.mqsc"
GATEWAY_STARTUP_RELATIVE_PATH = "datapower/config/auto-startup.cfg"

SECRET_FILES: Dict[str, str] = {
    "MQ_ADMIN_PASSWORD": "mqAdminPassword",
    "MQ_APP_PASSWORD": "mqAppPassword",
    "ACE_WEB_PASSWORD": "aceWebAdminPassword",
}

NETWORK_NAME = "ibmnet"

MQSC_TEMPLATE = """\
* Minimal MQ bootstrap configuration
DEFINE QLOCAL('Q1') REPLACE
DEFINE CHANNEL('DEV.APP.SVRCONN') CHLTYPE(SVRCONN) REPLACE
SET CHLAUTH('DEV.APP.SVRCONN') TYPE(BLOCKUSER) USERLIST('nobody') ACTION(REPLACE)
"""

# DataPower web-mgmt syntax is "local-address <address> <port>".
GATEWAY_WEB_MGMT_TEMPLATE = """\
top; configure terminal
web-mgmt
  admin-state enabled
  local-address {bind} {port}
exit
"""

GATEWAY_SSH_TEMPLATE = """
ssh
  admin-state enabled
  local-address 0.0.0.0 {port}
exit
"""


class _ManifestDumper(yaml.SafeDumper):
    """Indents block sequences under their parent key, as compose files usually are."""

    def increase_indent(self, flow=False, indentless=False):
        return super().increase_indent(flow, False)


def render_mqsc() -> str:
    return MQSC_TEMPLATE


def render_gateway_startup(app_settings: AppSettings) -> str:
    content = GATEWAY_WEB_MGMT_TEMPLATE.format(
        bind=app_settings.dp_webgui_bind, port=app_settings.dp_webgui_port
    )
    if app_settings.dp_ssh_enabled:
        content += GATEWAY_SSH_TEMPLATE.format(port=app_settings.dp_ssh_container_port)
    content += "\nwrite memory\n"
    return content


def render_env_file(app_settings: AppSettings) -> str:
    """Flat KEY=VALUE lines for manifest interpolation. Contains no passwords."""
    volumes = app_settings.volume_names
    groups = [
        {"STACK_NAME": app_settings.stack},
        {
            "MQ_IMAGE": app_settings.mq_image,
            "ACE_IMAGE": app_settings.ace_image,
            "DP_IMAGE": app_settings.dp_image,
        },
        {
            "MQ_QMGR_NAME": app_settings.mq_qmgr_name,
            "NOFILE_SOFT": app_settings.nofile_soft,
            "NOFILE_HARD": app_settings.nofile_hard,
            "MQDATA_PERMS": app_settings.mqdata_perms,
        },
        {"ACE_WEB_USER": app_settings.ace_web_user},
        {
            "DP_WEBGUI_BIND": app_settings.dp_webgui_bind,
            "DP_WEBGUI_PORT": app_settings.dp_webgui_port,
            "DP_SSH_HOST_PORT": app_settings.dp_ssh_host_port,
            "DP_SSH_CONTAINER_PORT": app_settings.dp_ssh_container_port,
        },
        {
            "MQDATA_VOL": volumes["mqdata"],
            "ACEWORK_VOL": volumes["acework"],
            "DPCONFIG_VOL": volumes["dpconfig"],
            "DPLOCAL_VOL": volumes["dplocal"],
            "DPTMP_VOL": volumes["dptmp"],
        },
    ]
    blocks = ["\n".join(f"{key}={value}" for key, value in group.items()) for group in groups]
    return "\n\n".join(blocks) + "\n"


def build_compose_manifest(app_settings: AppSettings) -> Dict[str, Any]:
    """The manifest as a mapping; image refs, ports and volume names are interpolated from .env."""
    datapower_ports = [
        "${DP_WEBGUI_PORT:-9090}:${DP_WEBGUI_PORT:-9090}",
        "5550:5550",
        "9444:9443",
    ]
    if app_settings.dp_ssh_enabled:
        datapower_ports.append("${DP_SSH_HOST_PORT:-65000}:${DP_SSH_CONTAINER_PORT:-22}")

    return {
        "services": {
            "mq": {
                "image": "${MQ_IMAGE}",
                "container_name": "mq",
                "hostname": "mq",
                "restart": "unless-stopped",
                "environment": {
                    "LICENSE": "accept",
                    "MQ_QMGR_NAME": "${MQ_QMGR_NAME:-QM1}",
                    "MQ_CONNAUTH_USE_HTP": "true",
                    "MQ_ADMIN_PASSWORD": "${MQ_ADMIN_PASSWORD}",
                    "MQ_APP_PASSWORD": "${MQ_APP_PASSWORD}",
                },
                "ulimits": {
                    "nofile": {
                        "soft": app_settings.nofile_soft,
                        "hard": app_settings.nofile_hard,
                    }
                },
                "ports": ["1414:1414", "9443:9443"],
                "volumes": [
                    "mqdata:/mnt/mqm",
                    f"./{MQSC_RELATIVE_PATH}:/etc/mqm/20-config.mqsc:ro",
                ],
                "networks": [NETWORK_NAME],
            },
            "ace": {
                "image": "${ACE_IMAGE}",
                "container_name": "ace",
                "hostname": "ace",
                "restart": "unless-stopped",
                "depends_on": ["mq"],
                "environment": {"LICENSE": "accept"},
                "ports": ["7600:7600", "7800:7800", "7843:7843"],
                "volumes": ["acework:/home/aceuser/ace-server"],
                "networks": [NETWORK_NAME],
            },
            "datapower": {
                "image": "${DP_IMAGE}",
                "container_name": "datapower",
                "hostname": "datapower",
                "restart": "unless-stopped",
                "user": "0:0",
                "environment": {
                    "DATAPOWER_ACCEPT_LICENSE": "true",
                    "DATAPOWER_LOG_STDOUT": "true",
                    "DATAPOWER_FAST_STARTUP": "true",
                },
                "ports": datapower_ports,
                "volumes": [
                    "dpconfig:/opt/ibm/datapower/drouter/config",
                    "dplocal:/opt/ibm/datapower/drouter/local",
                    "dptmp:/opt/ibm/datapower/drouter/temporary",
                ],
                "networks": [NETWORK_NAME],
            },
        },
        "volumes": {
            key: {"external": True, "name": f"${{{key.upper()}_VOL}}"}
            for key in app_settings.volume_names
        },
        "networks": {NETWORK_NAME: {"driver": "bridge"}},
    }


def render_compose_manifest(app_settings: AppSettings) -> str:
    return yaml.dump(
        build_compose_manifest(app_settings),
        Dumper=_ManifestDumper,
        sort_keys=False,
        default_flow_style=False,
        allow_unicode=True,
    )


def compose_environment(passwords: Dict[str, str]) -> Dict[str, str]:
    """Variables handed to the compose process so the manifest can interpolate secrets."""
    return {name: passwords[name] for name in SECRET_FILES if name in passwords}
