# common/orchestrator.py
# -*- coding: utf-8 -*-
"""
Runs the ordered steps of a bootstrap and decides what a failure means.

Every step receives the settings and a shared `context` dict. A step fails
when it raises or returns False. A failed fatal step ends the process with
exit status 1; a failed best-effort step is logged as a warning and the run
continues.
"""

import logging
import sys
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional


class TaskFailed(Exception):
    """A task reported failure by returning False."""


@dataclass
class Task:
    name: str
    func: Callable[..., Any]
    args: List[Any] = field(default_factory=list)
    kwargs: Dict[str, Any] = field(default_factory=dict)
    fatal: bool = True


class Orchestrator:
    """Executes queued tasks in order, sharing one context between them."""

    def __init__(
        self,
        app_settings: Any,
        orchestrator_logger: Optional[logging.Logger] = None,
    ):
        self.app_settings = app_settings
        self.logger = orchestrator_logger or logging.getLogger(__name__)
        self.tasks: List[Task] = []
        self.context: Dict[str, Any] = {}
        self.warnings: List[str] = []

    def add_task(
        self,
        name: str,
        func: Callable[..., Any],
        args: Optional[List[Any]] = None,
        kwargs: Optional[Dict[str, Any]] = None,
        fatal: bool = True,
    ) -> None:
        """
        Queue a task.

        Args:
            name: Label used in progress and failure messages.
            func: Called as `func(*args, **kwargs, context=..., app_settings=...)`.
            args: Positional arguments for `func`.
            kwargs: Keyword arguments for `func`.
            fatal: False marks the task best effort.
        """
        self.tasks.append(Task(name, func, list(args or []), dict(kwargs or {}), fatal))
        self.logger.debug(f"Task '{name}' added to the queue.")

    def _execute(self, task: Task) -> Any:
        result = task.func(
            *task.args,
            **task.kwargs,
            context=self.context,
            app_settings=self.app_settings,
        )
        if result is False:
            raise TaskFailed(f"task '{task.name}' reported failure")
        return result

    def run(self) -> bool:
        """
        Run every queued task.

        Each result is stored in the context as `<task name>_result`.

        Returns:
            True once all tasks have run. A fatal failure never returns: it logs
            "Bootstrap aborted at '<task>': <cause>" and exits with status 1.
        """
        self.logger.info("Orchestration started.")
        total = len(self.tasks)
        for position, task in enumerate(self.tasks, start=1):
            self.logger.info(f"--- Stage {position}/{total}: {task.name} ---")
            try:
                self.context[f"{task.name}_result"] = self._execute(task)
            except Exception as e:
                if not task.fatal:
                    self.warnings.append(task.name)
                    self.logger.warning(
                        f"Best-effort task '{task.name}' failed: {e}. Continuing."
                    )
                    continue
                self.logger.critical(
                    f"🔥 Task '{task.name}' failed: {e}",
                    exc_info=not isinstance(e, TaskFailed),
                )
                self.logger.error(f"Bootstrap aborted at '{task.name}': {e}")
                sys.exit(1)
            self.logger.info(f"✅ Task '{task.name}' completed.")

        if self.warnings:
            self.logger.warning(
                f"Finished with {len(self.warnings)} best-effort step(s) failed: {', '.join(self.warnings)}"
            )
        else:
            self.logger.info("✨ Orchestration finished successfully.")
        return True
