# common/container_runtime.py
# -*- coding: utf-8 -*-
"""
Thin wrapper around the container runtime CLI (docker or podman).

Two kinds of container execution are kept apart:

- one-shot runs (`run_one_shot`) always override the image entrypoint with a
  plain shell and are bounded by the configured timeout, so a misbehaving
  image cannot hang the bootstrap;
- services are only ever started through compose (`compose_up`), using the
  entries of the rendered manifest.
"""

import logging
import os
import subprocess
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from common.command_utils import get_symbols, log_bootstrap, run_command
from labstack.config_models import AppSettings
from labstack.errors import OneShotTimeoutError

module_logger = logging.getLogger(__name__)

VolumeMount = Tuple[str, str]


class ContainerRuntime:
    """Runs container runtime commands for one bootstrap run."""

    def __init__(
        self,
        app_settings: AppSettings,
        current_logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.logger = current_logger or module_logger
        self.command = app_settings.container_runtime_command
        self.timeout = app_settings.docker_run_timeout
        self.project_dir = str(app_settings.project_root)
        self._shell_cache: Dict[str, str] = {}

    def _run(self, args: List[str], **kwargs) -> subprocess.CompletedProcess:
        return run_command(
            [self.command] + list(args),
            self.app_settings,
            current_logger=self.logger,
            **kwargs,
        )

    @staticmethod
    def _merged_env(extra: Optional[Mapping[str, str]]) -> Optional[Dict[str, str]]:
        if not extra:
            return None
        env = dict(os.environ)
        env.update(extra)
        return env

    # --- images -----------------------------------------------------------

    def pull(self, image: str) -> subprocess.CompletedProcess:
        return self._run(["pull", image], capture_output=True)

    # --- runtime information ----------------------------------------------

    def compose_available(self) -> bool:
        try:
            result = self._run(
                ["compose", "version"], check=False, capture_output=True, quiet=True
            )
        except FileNotFoundError:
            return False
        return result.returncode == 0

    def info(self, fmt: str) -> str:
        """Return `info -f <fmt>` output, or an empty string if it fails."""
        result = self._run(
            ["info", "-f", fmt], check=False, capture_output=True, quiet=True
        )
        if result.returncode != 0:
            return ""
        return (result.stdout or "").strip()

    # --- named volumes ----------------------------------------------------

    def volume_exists(self, name: str) -> bool:
        result = self._run(
            ["volume", "inspect", name], check=False, capture_output=True, quiet=True
        )
        return result.returncode == 0

    def volume_create(self, name: str) -> None:
        self._run(["volume", "create", name], capture_output=True)

    def volume_remove(self, name: str) -> bool:
        result = self._run(
            ["volume", "rm", "-f", name], check=False, capture_output=True, quiet=True
        )
        return result.returncode == 0

    # --- one-shot runs ----------------------------------------------------

    def shell_for_image(self, image: str, env_args: Sequence[str] = ()) -> str:
        """Return "bash" if the image ships bash, otherwise "sh". Cached per image."""
        if image in self._shell_cache:
            return self._shell_cache[image]

        shell = "sh"
        try:
            probe = self._run(
                ["run", "--rm", "--entrypoint", "bash", *env_args, image, "-lc", "true"],
                check=False,
                capture_output=True,
                timeout=self.timeout,
                quiet=True,
            )
            if probe.returncode == 0:
                shell = "bash"
        except subprocess.TimeoutExpired:
            log_bootstrap(
                f"{get_symbols(self.app_settings).get('warning', '⚠️')} Shell probe for {image} timed out; using sh.",
                "warning",
                self.logger,
                self.app_settings,
            )
        self._shell_cache[image] = shell
        return shell

    def run_one_shot(
        self,
        image: str,
        command: str,
        user: Optional[str] = None,
        volumes: Sequence[VolumeMount] = (),
        env_names: Sequence[str] = (),
        env: Optional[Mapping[str, str]] = None,
        check: bool = True,
        quiet: bool = False,
    ) -> subprocess.CompletedProcess:
        """
        Run a shell command in a throw-away container without the image entrypoint.

        Args:
            image: Image reference.
            command: Shell script executed with `bash -lc` (or `sh -c`).
            user: Optional `uid:gid` to run as.
            volumes: (volume, mount path) pairs.
            env_names: Variables forwarded by name with `-e NAME`; their values
                come from `env` so they never appear on the command line.
            env: Extra variables for the runtime CLI process.
            check: Raise CalledProcessError on a non-zero exit code.
            quiet: Log the invocation at DEBUG.

        Raises:
            OneShotTimeoutError: The run exceeded `docker_run_timeout`.
        """
        env_args: List[str] = []
        for name in env_names:
            env_args.extend(["-e", name])
        shell = self.shell_for_image(image, ["-e", "LICENSE=accept"])

        args: List[str] = ["run", "--rm", "--entrypoint", shell, "-e", "LICENSE=accept"]
        args.extend(env_args)
        if user:
            args.extend(["-u", user])
        for volume, mount_path in volumes:
            args.extend(["-v", f"{volume}:{mount_path}"])
        args.extend([image, "-lc" if shell == "bash" else "-c", command])

        try:
            return self._run(
                args,
                check=check,
                capture_output=True,
                env=self._merged_env(env),
                timeout=self.timeout,
                quiet=quiet,
            )
        except subprocess.TimeoutExpired as e:
            raise OneShotTimeoutError(image, self.timeout) from e

    # --- compose-managed services -----------------------------------------

    def compose_up(
        self, services: Sequence[str], env: Optional[Mapping[str, str]] = None
    ) -> subprocess.CompletedProcess:
        return self._run(
            ["compose", "up", "-d", *services],
            capture_output=True,
            cwd=self.project_dir,
            env=self._merged_env(env),
        )

    def compose_down(
        self, env: Optional[Mapping[str, str]] = None
    ) -> subprocess.CompletedProcess:
        return self._run(
            ["compose", "down"],
            check=False,
            capture_output=True,
            cwd=self.project_dir,
            env=self._merged_env(env),
        )

    def compose_ps(
        self, services: Sequence[str] = (), env: Optional[Mapping[str, str]] = None
    ) -> subprocess.CompletedProcess:
        return self._run(
            ["compose", "ps", *services],
            check=False,
            capture_output=True,
            cwd=self.project_dir,
            env=self._merged_env(env),
        )

    def exec(self, container: str, command: str) -> subprocess.CompletedProcess:
        """
        Run a command in a running service container, bounded by `docker_run_timeout`.

        Raises:
            subprocess.TimeoutExpired: The command did not finish in time.
        """
        return self._run(
            ["exec", container, "bash", "-lc", command],
            check=False,
            capture_output=True,
            timeout=self.timeout,
            quiet=True,
        )

    def logs(self, container: str, tail: int = 200) -> str:
        result = self._run(
            ["logs", "--tail", str(tail), container],
            check=False,
            capture_output=True,
            quiet=True,
        )
        return "\n".join(
            part.strip() for part in (result.stdout, result.stderr) if part and part.strip()
        )
