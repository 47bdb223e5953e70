# labstack/launcher.py
# -*- coding: utf-8 -*-
"""
Health-gated, two-wave start of the stack.

Wave 1 is the broker alone. Its queue manager status is polled a bounded
number of times; only once it reports running does wave 2 (flow engine and
gateway) start. If the broker never comes up, diagnostics are gathered once
and the run aborts, because the second wave depends on the broker.

    STOPPED -> WAVE1_STARTING -> WAVE1_HEALTHY -> WAVE2_STARTING -> RUNNING
                     |
                     +-> FAILED
"""

import enum
import logging
import re
import subprocess
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Sequence

from common.command_utils import get_symbols, log_bootstrap
from common.container_runtime import ContainerRuntime
from common.file_utils import ArtifactWriter
from labstack.config_models import AppSettings
from labstack.errors import HealthCheckError, OneShotTimeoutError
from labstack.permissions import MQ_DATA_MOUNT

module_logger = logging.getLogger(__name__)

BROKER_SERVICE = "mq"
SECOND_WAVE_SERVICES = ("ace", "datapower")
LOG_TAIL_LINES = 200

MQ_ERRORS_DIR = f"{MQ_DATA_MOUNT}/data/errors"
FDC_KEY_FIELDS = (
    "Probe Id",
    "Component",
    "Program Name",
    "Probe Description",
    "Major Errorcode",
    "Minor Errorcode",
    "Comment",
    "errno",
    "File",
    "Line Number",
    "Call",
)
FDC_HIGHLIGHT_LIMIT = 260
_FDC_FIELD_PATTERN = re.compile("|".join(re.escape(name) for name in FDC_KEY_FIELDS))
# Stricter than a plain "running" substring: STATUS(Not running) is not healthy.
_RUNNING_PATTERN = re.compile(r"(?<!not )running", re.IGNORECASE)
_SECTION_MARKER = "@@SECTION "

DIAGNOSTICS_SCRIPT = f"""\
ERR={MQ_ERRORS_DIR}
echo "{_SECTION_MARKER}listing"
ls -ltr "$ERR" 2>/dev/null | tail -n 80
echo "{_SECTION_MARKER}errlog"
tail -n {LOG_TAIL_LINES} "$ERR/AMQERR01.LOG" 2>/dev/null
latest="$(ls -1t "$ERR"/*.FDC 2>/dev/null | head -n 1)"
echo "{_SECTION_MARKER}fdc $latest"
if [ -n "$latest" ]; then cat "$latest"; fi
true
"""


class LaunchState(enum.Enum):
    STOPPED = "stopped"
    WAVE1_STARTING = "wave1_starting"
    WAVE1_HEALTHY = "wave1_healthy"
    WAVE2_STARTING = "wave2_starting"
    RUNNING = "running"
    FAILED = "failed"


_ALLOWED_TRANSITIONS: Dict[LaunchState, Sequence[LaunchState]] = {
    LaunchState.STOPPED: (LaunchState.WAVE1_STARTING,),
    LaunchState.WAVE1_STARTING: (LaunchState.WAVE1_HEALTHY, LaunchState.FAILED),
    LaunchState.WAVE1_HEALTHY: (LaunchState.WAVE2_STARTING,),
    LaunchState.WAVE2_STARTING: (LaunchState.RUNNING,),
    LaunchState.RUNNING: (),
    LaunchState.FAILED: (),
}


def broker_reports_running(status_output: str) -> bool:
    """True if `dspmq` output says running (and not "not running")."""
    return bool(_RUNNING_PATTERN.search(status_output or ""))


def filter_fdc_highlights(fdc_text: str, limit: int = FDC_HIGHLIGHT_LIMIT) -> List[str]:
    """Numbered lines of an FDC file that mention one of the key diagnostic fields."""
    highlights = [
        f"{number}:{line.rstrip()}"
        for number, line in enumerate(fdc_text.splitlines(), start=1)
        if _FDC_FIELD_PATTERN.search(line)
    ]
    return highlights[:limit]


@dataclass
class DiagnosticReport:
    container_logs: str = ""
    error_listing: str = ""
    error_log_tail: str = ""
    latest_fdc: Optional[str] = None
    fdc_highlights: List[str] = field(default_factory=list)

    def render(self) -> str:
        parts = [
            f"== {BROKER_SERVICE} container logs (last {LOG_TAIL_LINES}) ==",
            self.container_logs or "(none)",
            f"== ls -ltr {MQ_ERRORS_DIR} (tail) ==",
            self.error_listing or "(none)",
            "== AMQERR01.LOG (tail) ==",
            self.error_log_tail or "(none)",
        ]
        if self.latest_fdc:
            parts.append(f"== LATEST FDC: {self.latest_fdc} ==")
            parts.append("\n".join(self.fdc_highlights) or "(no key fields found)")
        else:
            parts.append(f"No FDC files found in {MQ_ERRORS_DIR}")
        return "\n".join(parts) + "\n"


def _split_sections(output: str) -> Dict[str, List[str]]:
    sections: Dict[str, List[str]] = {}
    current: Optional[str] = None
    for line in output.splitlines():
        if line.startswith(_SECTION_MARKER):
            current = line[len(_SECTION_MARKER):].strip()
            sections[current.split(" ", 1)[0]] = [current]
        elif current is not None:
            sections[current.split(" ", 1)[0]].append(line)
    return sections


def collect_broker_diagnostics(
    runtime: ContainerRuntime,
    app_settings: AppSettings,
    current_logger: Optional[logging.Logger] = None,
) -> DiagnosticReport:
    """
    Gather the broker's recent logs and its latest first-failure-capture record.

    The error directory is read from the data volume by a root one-shot
    container, so this works even when the broker container has exited.
    Failures while collecting are logged and produce a partial report.
    """
    logger_to_use = current_logger if current_logger else module_logger
    report = DiagnosticReport(container_logs=runtime.logs(BROKER_SERVICE, LOG_TAIL_LINES))

    volume = app_settings.volume_names["mqdata"]
    log_bootstrap(
        f"Dumping MQ diagnostics (FDC + logs) from volume: {volume}",
        "info",
        logger_to_use,
        app_settings,
    )
    try:
        result = runtime.run_one_shot(
            app_settings.mq_image,
            DIAGNOSTICS_SCRIPT,
            user="0:0",
            volumes=[(volume, MQ_DATA_MOUNT)],
            check=False,
            quiet=True,
        )
    except OneShotTimeoutError as e:
        log_bootstrap(
            f"{get_symbols(app_settings).get('warning', '⚠️')} Could not read MQ error directory: {e}",
            "warning",
            logger_to_use,
            app_settings,
        )
        return report

    sections = _split_sections(result.stdout or "")
    report.error_listing = "\n".join(sections.get("listing", [""])[1:]).strip()
    report.error_log_tail = "\n".join(sections.get("errlog", [""])[1:]).strip()
    fdc_section = sections.get("fdc")
    if fdc_section:
        header = fdc_section[0].split(" ", 1)
        latest = header[1].strip() if len(header) > 1 else ""
        if latest:
            report.latest_fdc = latest
            report.fdc_highlights = filter_fdc_highlights("\n".join(fdc_section[1:]))
    return report


DiagnosticsCollector = Callable[[ContainerRuntime, AppSettings, Optional[logging.Logger]], DiagnosticReport]


class HealthGatedLauncher:
    """Starts the broker, waits for it, then starts the rest of the stack."""

    def __init__(
        self,
        runtime: ContainerRuntime,
        app_settings: AppSettings,
        compose_env: Optional[Dict[str, str]] = None,
        diagnostics: DiagnosticsCollector = collect_broker_diagnostics,
        report_writer: Optional[ArtifactWriter] = None,
        sleep: Callable[[float], None] = time.sleep,
        current_logger: Optional[logging.Logger] = None,
    ):
        self.runtime = runtime
        self.app_settings = app_settings
        self.compose_env = compose_env or {}
        self.diagnostics = diagnostics
        self.report_writer = report_writer
        self.sleep = sleep
        self.logger = current_logger or module_logger
        self.symbols = get_symbols(app_settings)
        self.state = LaunchState.STOPPED
        self.attempts_made = 0
        self.report: Optional[DiagnosticReport] = None

    def _transition(self, new_state: LaunchState) -> None:
        if new_state not in _ALLOWED_TRANSITIONS[self.state]:
            raise RuntimeError(f"Illegal launch transition {self.state.name} -> {new_state.name}")
        log_bootstrap(
            f"Launch state: {self.state.name} -> {new_state.name}",
            "debug",
            self.logger,
            self.app_settings,
        )
        self.state = new_state

    def probe_broker(self) -> bool:
        """One status check. A hung `dspmq` counts as not running."""
        try:
            result = self.runtime.exec(
                BROKER_SERVICE, f"dspmq -m {self.app_settings.mq_qmgr_name} 2>/dev/null"
            )
        except subprocess.TimeoutExpired:
            return False
        return result.returncode == 0 and broker_reports_running(result.stdout)

    def wait_for_broker(self) -> bool:
        max_attempts = self.app_settings.health_max_attempts
        log_bootstrap(
            f"Waiting for MQ queue manager to reach RUNNING: {self.app_settings.mq_qmgr_name}",
            "info",
            self.logger,
            self.app_settings,
        )
        for attempt in range(1, max_attempts + 1):
            self.attempts_made = attempt
            if self.probe_broker():
                log_bootstrap(
                    f"{self.symbols.get('success', '✅')} MQ is RUNNING (attempt {attempt}/{max_attempts})",
                    "success",
                    self.logger,
                    self.app_settings,
                )
                return True
            if attempt < max_attempts:
                self.sleep(self.app_settings.health_delay_seconds)
        return False

    def _fail(self) -> None:
        self._transition(LaunchState.FAILED)
        log_bootstrap(
            f"{self.symbols.get('error', '❌')} MQ did NOT reach RUNNING. Showing last logs and dumping diagnostics.",
            "error",
            self.logger,
            self.app_settings,
        )
        self.report = self.diagnostics(self.runtime, self.app_settings, self.logger)
        rendered = self.report.render()
        log_bootstrap(rendered, "error", self.logger, self.app_settings)
        if self.report_writer is not None:
            report_path = self.app_settings.logs_dir / f"mq-diagnostics-{self.report_writer.timestamp}.txt"
            try:
                self.report_writer.write_artifact(report_path, rendered)
            except OSError as e:
                log_bootstrap(
                    f"{self.symbols.get('warning', '⚠️')} Could not save diagnostics to {report_path}: {e}",
                    "warning",
                    self.logger,
                    self.app_settings,
                )
        raise HealthCheckError(BROKER_SERVICE, self.attempts_made)

    def launch(self) -> LaunchState:
        """
        Run both waves.

        Raises:
            HealthCheckError: The broker never reported running; wave 2 was not started.
            subprocess.CalledProcessError: compose failed to start a service.
        """
        self._transition(LaunchState.WAVE1_STARTING)
        log_bootstrap(
            f"{self.symbols.get('rocket', '🚀')} Starting MQ only...", "info", self.logger, self.app_settings
        )
        self.runtime.compose_up([BROKER_SERVICE], env=self.compose_env)
        self.runtime.compose_ps([BROKER_SERVICE], env=self.compose_env)

        if not self.wait_for_broker():
            self._fail()

        self._transition(LaunchState.WAVE1_HEALTHY)
        self._transition(LaunchState.WAVE2_STARTING)
        log_bootstrap(
            f"{self.symbols.get('rocket', '🚀')} Starting {' + '.join(SECOND_WAVE_SERVICES)}...",
            "info",
            self.logger,
            self.app_settings,
        )
        self.runtime.compose_up(list(SECOND_WAVE_SERVICES), env=self.compose_env)
        self.runtime.compose_ps(env=self.compose_env)
        self._transition(LaunchState.RUNNING)
        return self.state


def launch_stack(
    app_settings: AppSettings,
    context: dict,
    current_logger: Optional[logging.Logger] = None,
    **kwargs,
) -> LaunchState:
    """Orchestrator task: health-gated two-wave start."""
    launcher = HealthGatedLauncher(
        context["runtime"],
        app_settings,
        compose_env=context.get("compose_env"),
        report_writer=context.get("writer"),
        current_logger=current_logger,
    )
    return launcher.launch()


def stop_stack(
    app_settings: AppSettings,
    context: dict,
    current_logger: Optional[logging.Logger] = None,
    **kwargs,
) -> None:
    """Orchestrator task: bring any previous stack down before volumes are touched."""
    log_bootstrap("Stopping stack...", "info", current_logger or module_logger, app_settings)
    context["runtime"].compose_down(env=context.get("compose_env"))
