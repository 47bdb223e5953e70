# tests/common/test_orchestrator.py
# -*- coding: utf-8 -*-
"""
Tests for the centralized orchestrator module.
"""

from unittest.mock import MagicMock

import pytest

from common.orchestrator import Orchestrator


class TestOrchestrator:
    """Tests for the Orchestrator class."""

    def test_init(self):
        app_settings = MagicMock()
        logger = MagicMock()

        orchestrator = Orchestrator(app_settings, logger)

        assert orchestrator.app_settings == app_settings
        assert orchestrator.logger == logger
        assert orchestrator.tasks == []
        assert orchestrator.context == {}

    def test_add_task(self):
        orchestrator = Orchestrator(MagicMock(), MagicMock())

        task_func = MagicMock()
        orchestrator.add_task(
            "Test Task",
            task_func,
            ["arg1"],
            {"kwarg1": "value1"},
            False,
        )

        assert len(orchestrator.tasks) == 1
        task = orchestrator.tasks[0]
        assert task.name == "Test Task"
        assert task.func == task_func
        assert task.args == ["arg1"]
        assert task.kwargs == {"kwarg1": "value1"}
        assert task.fatal is False

    def test_run_success_records_results(self):
        app_settings = MagicMock()
        orchestrator = Orchestrator(app_settings, MagicMock())
        task1 = MagicMock(return_value="result1")
        task2 = MagicMock(return_value=None)

        orchestrator.add_task("Task 1", task1)
        orchestrator.add_task("Task 2", task2)

        assert orchestrator.run() is True
        task1.assert_called_once_with(context=orchestrator.context, app_settings=app_settings)
        task2.assert_called_once()
        assert orchestrator.context["Task 1_result"] == "result1"
        assert orchestrator.context["Task 2_result"] is None

    def test_fatal_exception_logs_task_and_exits_1(self):
        logger = MagicMock()
        orchestrator = Orchestrator(MagicMock(), logger)
        task1 = MagicMock(side_effect=Exception("Task 1 failed"))
        task2 = MagicMock()
        orchestrator.add_task("Task 1", task1)
        orchestrator.add_task("Task 2", task2)

        with pytest.raises(SystemExit) as excinfo:
            orchestrator.run()

        assert excinfo.value.code == 1
        task2.assert_not_called()
        logger.critical.assert_called_once_with(
            "🔥 Task 'Task 1' failed: Task 1 failed", exc_info=True
        )
        logger.error.assert_called_once_with(
            "Bootstrap aborted at 'Task 1': Task 1 failed"
        )

    def test_fatal_false_return_is_a_failure(self):
        logger = MagicMock()
        orchestrator = Orchestrator(MagicMock(), logger)
        task2 = MagicMock()
        orchestrator.add_task("Check", MagicMock(return_value=False))
        orchestrator.add_task("Next", task2)

        with pytest.raises(SystemExit) as excinfo:
            orchestrator.run()

        assert excinfo.value.code == 1
        task2.assert_not_called()
        logger.error.assert_called_once_with(
            "Bootstrap aborted at 'Check': task 'Check' reported failure"
        )

    def test_non_fatal_failure_continues(self):
        logger = MagicMock()
        orchestrator = Orchestrator(MagicMock(), logger)
        task1 = MagicMock(side_effect=Exception("Task 1 failed"))
        task2 = MagicMock(return_value=False)
        task3 = MagicMock()

        orchestrator.add_task("Task 1", task1, fatal=False)
        orchestrator.add_task("Task 2", task2, fatal=False)
        orchestrator.add_task("Task 3", task3)

        assert orchestrator.run() is True
        task3.assert_called_once()
        assert orchestrator.warnings == ["Task 1", "Task 2"]
        assert logger.warning.call_count == 3

    def test_context_passing(self):
        orchestrator = Orchestrator(MagicMock(), MagicMock())

        def producer(context, app_settings):
            context["value"] = 42

        def consumer(context, app_settings):
            return context["value"] + 1

        orchestrator.add_task("Producer", producer)
        orchestrator.add_task("Consumer", consumer)
        orchestrator.run()

        assert orchestrator.context["Consumer_result"] == 43
